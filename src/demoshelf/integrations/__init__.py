"""
demoshelf Integrations - external services.

This module contains:
- steam: Steam Web API ban lookup
"""

__all__: list[str] = []
