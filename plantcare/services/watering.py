"""
Watering schedule derivation.

Turns the free-text watering instruction attached to a plant ("Every 2-3 days")
into a concrete interval and computes the next due timestamp from the last
watering. Both functions are pure; every caller that changes `last_watered`
must recompute `next_watering` through here instead of adjusting the previous
due date.
"""

from __future__ import annotations
from typing import Any, Optional, Tuple
from datetime import datetime, timedelta, timezone
import re

from plantcare.constants import DEFAULT_WATERING_INTERVAL_DAYS, SECONDS_PER_DAY

# "every 5 days", "Every 2-3 days", "water every 7 day"
_EVERY_N_DAYS = re.compile(r"every\s+(\d+)(?:\s*-\s*(\d+))?\s+days?\b", re.IGNORECASE)


def interval_days(description: Any) -> int:
    """
    Parse a watering description into a whole number of days.

    Ranges resolve to their midpoint rounded half up, so "Every 2-3 days"
    gives 3. Missing, empty or unrecognised text gives the default interval.

    Args:
        description: Free-text care instruction (may be None)

    Returns:
        Interval in days (always >= 1)

    Example:
        >>> interval_days("Every 5 days")
        5
        >>> interval_days("Every 2-3 days")
        3
        >>> interval_days("sparingly")
        3
    """
    if not description or not isinstance(description, str):
        return DEFAULT_WATERING_INTERVAL_DAYS

    match = _EVERY_N_DAYS.search(description)
    if not match:
        return DEFAULT_WATERING_INTERVAL_DAYS

    low = int(match.group(1))
    high = int(match.group(2)) if match.group(2) else None

    if high is None:
        return low if low > 0 else DEFAULT_WATERING_INTERVAL_DAYS

    if low <= 0 or high <= 0:
        return DEFAULT_WATERING_INTERVAL_DAYS

    # Round half up on integers: floor((low + high) / 2 + 0.5)
    return (low + high + 1) // 2


def as_utc(value: datetime) -> datetime:
    """Return `value` as an aware UTC datetime (naive values are taken as UTC)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def next_due(last_watered: datetime, days: int) -> datetime:
    """
    Compute the next due timestamp: `last_watered` plus `days` * 86400 seconds.

    Pure elapsed-time arithmetic; no calendar or DST adjustment.
    """
    return as_utc(last_watered) + timedelta(seconds=days * SECONDS_PER_DAY)


def schedule_from(care_water: Optional[str], at: datetime) -> Tuple[int, datetime]:
    """
    Derive (interval, next_due) for a plant watered (or reminded) at `at`.

    Args:
        care_water: The plant's care.water text
        at: Timestamp the schedule restarts from

    Returns:
        (interval_days, next_due_timestamp)
    """
    days = interval_days(care_water)
    return days, next_due(at, days)


def utcnow() -> datetime:
    """Current time as an aware UTC datetime (default clock for services)."""
    return datetime.now(timezone.utc)
