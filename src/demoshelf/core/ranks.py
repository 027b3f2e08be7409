"""
Competitive rank catalog.

The catalog is ordered by rank number; index 0 is the unranked baseline.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Rank:
    """A single entry of the rank ladder."""

    number: int
    name: str


RANK_CATALOG: tuple[Rank, ...] = (
    Rank(0, "Unranked"),
    Rank(1, "Silver I"),
    Rank(2, "Silver II"),
    Rank(3, "Silver III"),
    Rank(4, "Silver IV"),
    Rank(5, "Silver Elite"),
    Rank(6, "Silver Elite Master"),
    Rank(7, "Gold Nova I"),
    Rank(8, "Gold Nova II"),
    Rank(9, "Gold Nova III"),
    Rank(10, "Gold Nova Master"),
    Rank(11, "Master Guardian I"),
    Rank(12, "Master Guardian II"),
    Rank(13, "Master Guardian Elite"),
    Rank(14, "Distinguished Master Guardian"),
    Rank(15, "Legendary Eagle"),
    Rank(16, "Legendary Eagle Master"),
    Rank(17, "Supreme Master First Class"),
    Rank(18, "The Global Elite"),
)


def get_rank(number: int, catalog: tuple[Rank, ...] = RANK_CATALOG) -> Rank:
    """
    Look up a rank by number.

    Numbers missing from the catalog resolve to the baseline entry.
    """
    for rank in catalog:
        if rank.number == number:
            return rank
    logger.warning(f"Unknown rank number {number}, using {catalog[0].name}")
    return catalog[0]
