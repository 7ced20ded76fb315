"""
Restock timers.

The shop restocks each category on a fixed interval aligned to the Unix
epoch (seeds and gear every 5 minutes, eggs every 30, cosmetics every 3
hours). These helpers let a scheduler poll right after a restock instead of
guessing.
"""

from datetime import datetime, timedelta, timezone
from typing import Dict

from .schema import CATEGORY_ORDER, get_category_metadata

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _as_utc(now: datetime) -> datetime:
    if now.tzinfo is None:
        raise ValueError("now must be timezone-aware")
    return now.astimezone(timezone.utc)


def next_restock(category: str, now: datetime) -> datetime:
    """
    Next restock time strictly after `now` for a category.

    Args:
        category: Category identifier
        now: Timezone-aware current time

    Returns:
        Timezone-aware UTC datetime
    """
    interval = timedelta(minutes=get_category_metadata(category)["restock_minutes"])
    elapsed = _as_utc(now) - _EPOCH
    periods = elapsed // interval
    return _EPOCH + (periods + 1) * interval


def seconds_until_restock(category: str, now: datetime) -> int:
    """Whole seconds until the next restock (always at least 1)."""
    remaining = (next_restock(category, now) - _as_utc(now)).total_seconds()
    return max(1, int(remaining))


def next_restock_times(now: datetime) -> Dict[str, datetime]:
    """Next restock time for every category, in schema order."""
    return {category: next_restock(category, now) for category in CATEGORY_ORDER}


def format_countdown(seconds: int) -> str:
    """Format a countdown as MM:SS, or HH:MM:SS from one hour up."""
    seconds = max(0, int(seconds))
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    if hours > 0:
        return f"{hours:02d}:{minutes:02d}:{secs:02d}"
    return f"{minutes:02d}:{secs:02d}"
