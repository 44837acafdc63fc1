"""Instant/window helpers shared by the reminder scheduler."""

from datetime import datetime

import pytz

# Two instants closer than this are the same reminder.
SAME_INSTANT_TOLERANCE = 0.5


def utc_now():
    return datetime.now(pytz.UTC)


def as_utc(value):
    """Return an aware UTC datetime; naive values are taken to already be UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return pytz.UTC.localize(value)
    return value.astimezone(pytz.UTC)


def to_naive_utc(value):
    """Strip tzinfo after converting to UTC (database columns are naive UTC)."""
    if value is None:
        return None
    return as_utc(value).replace(tzinfo=None)


def clamp(candidate, lower, upper):
    """Return candidate when lower <= candidate <= upper, else None."""
    if candidate is None:
        return None
    if candidate < lower or candidate > upper:
        return None
    return candidate


def pin(candidate, lower, upper):
    """Bound candidate into [lower, upper] instead of rejecting it."""
    return min(max(candidate, lower), upper)


def safe_range(now, upper):
    """
    Window a reminder may be placed in.

    When the upper bound already passed the range collapses to (now, now);
    callers use that to stop offering new reminders.
    """
    if upper >= now:
        return now, upper
    return now, now


def is_collapsed(window):
    lower, upper = window
    return lower == upper


def same_instant(a, b):
    return abs((a - b).total_seconds()) < SAME_INSTANT_TOLERANCE
