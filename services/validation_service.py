from datetime import datetime

from backend.reminder_series import INTERVAL_UNIT_LABELS, INTERVAL_UNIT_SECONDS
from backend.time_window import as_utc

MIN_EVERY_NUMBER = 1
MAX_EVERY_NUMBER = 1000


def parse_bool(value, default=False):
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ["1", "true", "yes", "on"]


def parse_every_number(raw):
    """Parse the "remind me every N" field; None unless a whole number in [1, 1000]."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, float):
        if not raw.is_integer():
            return None
        raw = int(raw)
    if isinstance(raw, int):
        value = raw
    else:
        s = str(raw).strip()
        if not s or not s.lstrip("+-").isdigit():
            return None
        try:
            value = int(s)
        except (TypeError, ValueError):
            return None
    if not (MIN_EVERY_NUMBER <= value <= MAX_EVERY_NUMBER):
        return None
    return value


def parse_interval_unit(raw, default=None):
    """Accept full names ("minutes") or short labels ("min"); return the full name."""
    if raw is None:
        return default
    s = str(raw).strip().lower()
    if s in INTERVAL_UNIT_SECONDS:
        return s
    for unit, label in INTERVAL_UNIT_LABELS.items():
        if s == label or s + "s" == unit:
            return unit
    return default


def parse_reminder_iso(value):
    if not value:
        return None
    if isinstance(value, datetime):
        return as_utc(value)
    try:
        return as_utc(datetime.fromisoformat(str(value).replace("Z", "+00:00")))
    except (TypeError, ValueError):
        return None
