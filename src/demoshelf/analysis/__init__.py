"""
demoshelf Analysis - derived views over demo records.

This module contains:
- bans: Ban status reconciliation into rosters
- stats: Rank history, overall and per-map statistics
"""

from demoshelf.analysis.bans import BanReconciler
from demoshelf.analysis.stats import MapRecord, MapStats, OverallStats, RankDatePoint, StatsAggregator

__all__: list[str] = [
    "BanReconciler",
    "MapRecord",
    "MapStats",
    "OverallStats",
    "RankDatePoint",
    "StatsAggregator",
]
