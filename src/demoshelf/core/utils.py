"""
Utility functions shared across demoshelf.

This module provides:
- Timing decorator for slow parser passes
- Lenient value conversion used by parsing and backup decoding
- Rounding for statistics ratios
- Formatting helpers for the CLI
"""

import logging
import time
from collections.abc import Callable
from datetime import datetime
from decimal import ROUND_HALF_EVEN, Decimal, InvalidOperation
from functools import wraps
from typing import Any, TypeVar

import pandas as pd

logger = logging.getLogger(__name__)

# Type variable for generic decorators
F = TypeVar("F", bound=Callable[..., Any])

TWO_PLACES = Decimal("0.01")


def timed(func: F) -> F:
    """
    Decorator to measure and log function execution time.

    Usage:
        @timed
        def my_function():
            ...
    """

    @wraps(func)
    def wrapper(*args, **kwargs):
        start_time = time.perf_counter()
        result = func(*args, **kwargs)
        elapsed = time.perf_counter() - start_time
        logger.info(f"{func.__name__} completed in {elapsed:.3f}s")
        return result

    return wrapper  # type: ignore


def validate_steamid(steam_id: Any) -> bool:
    """
    Validate that a steam ID is valid.

    Args:
        steam_id: Value to validate

    Returns:
        True if valid steam ID, False otherwise
    """
    if steam_id is None:
        return False
    try:
        sid = int(steam_id)
        return sid > 0
    except (ValueError, TypeError):
        return False


def safe_int(value: Any, default: int = 0) -> int:
    """Safely convert a value to int."""
    if value is None:
        return default
    try:
        if pd.isna(value):
            return default
        return int(value)
    except (ValueError, TypeError):
        return default


def safe_str(value: Any, default: str = "") -> str:
    """Safely convert a value to string."""
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return default
    return str(value)


def safe_bool(value: Any, default: bool = False) -> bool:
    """Safely convert a value to bool."""
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    try:
        if pd.isna(value):
            return default
        return bool(value)
    except (ValueError, TypeError):
        return default


def safe_float(value: Any, default: float = 0.0) -> float:
    """Safely convert a value to float."""
    if value is None:
        return default
    try:
        if pd.isna(value):
            return default
        return float(value)
    except (ValueError, TypeError):
        return default


def safe_datetime(value: Any, default: datetime | None = None) -> datetime:
    """
    Parse an ISO timestamp, falling back to default (or the epoch).

    Offset-aware values are converted to naive local time, the form file
    modification times take, so parsed dates always compare with each other.
    """
    parsed = None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError:
            pass
    if parsed is not None:
        if parsed.tzinfo is not None:
            parsed = parsed.astimezone().replace(tzinfo=None)
        return parsed
    return default if default is not None else datetime.fromtimestamp(0)


def round2(value: float | int) -> float:
    """
    Round to two decimal places with ties to even.

    Goes through Decimal so that values such as 2.675 round on their
    decimal representation rather than the binary one.
    """
    try:
        return float(Decimal(str(value)).quantize(TWO_PLACES, rounding=ROUND_HALF_EVEN))
    except InvalidOperation:
        return 0.0


def format_duration(seconds: float) -> str:
    """
    Format a duration in seconds to a human-readable string.

    Args:
        seconds: Duration in seconds

    Returns:
        Formatted string like "2m 30s" or "1.5s"
    """
    if seconds < 1:
        return f"{seconds * 1000:.0f}ms"
    elif seconds < 60:
        return f"{seconds:.1f}s"
    else:
        minutes = int(seconds // 60)
        secs = int(seconds % 60)
        return f"{minutes}m {secs}s"
