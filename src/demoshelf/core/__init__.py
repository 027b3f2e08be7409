"""
demoshelf Core - data model and collaborators shared by every component.

This module contains:
- constants: Closed catalogs (sources, demo types, maps, analysis modes)
- config: Application configuration, logging setup, account context
- ranks: Competitive rank catalog
- models: Demo, Player and Suspect records
- parser: demoparser2 backed replay analyzer
"""

from demoshelf.core.constants import (
    DEFAULT_SOURCE,
    DEMO_EXTENSION,
    AnalysisMode,
    CompetitiveMap,
    DemoSource,
    DemoType,
    MatchVerdict,
)
from demoshelf.core.models import Demo, Player, Suspect
from demoshelf.core.ranks import RANK_CATALOG, Rank, get_rank

__all__ = [
    # Enums
    "AnalysisMode",
    "CompetitiveMap",
    "DemoSource",
    "DemoType",
    "MatchVerdict",
    # Constants
    "DEFAULT_SOURCE",
    "DEMO_EXTENSION",
    "RANK_CATALOG",
    # Records
    "Demo",
    "Player",
    "Rank",
    "Suspect",
    "get_rank",
]
