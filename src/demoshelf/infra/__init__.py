"""
demoshelf Infrastructure - storage of demo records.

This module contains:
- cache: Fingerprint-keyed demo record cache
"""

__all__: list[str] = []
