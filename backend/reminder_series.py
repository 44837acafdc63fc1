"""Recurring reminder series generation."""

import logging
import math
from datetime import timedelta

from backend.errors import InvalidStep
from backend.time_window import clamp, utc_now

logger = logging.getLogger(__name__)

INTERVAL_UNIT_SECONDS = {
    'seconds': 1,
    'minutes': 60,
    'hours': 3600,
}
INTERVAL_UNIT_LABELS = {
    'seconds': 'sec',
    'minutes': 'min',
    'hours': 'hr',
}
DEFAULT_INTERVAL_UNIT = 'hours'

MAX_SERIES_ITERATIONS = 500
MAX_SERIES_ENTRIES = 100


def step_seconds(count, unit):
    """Seconds between two reminders of a series; raises InvalidStep when unusable."""
    per_unit = INTERVAL_UNIT_SECONDS.get(unit)
    if per_unit is None:
        raise InvalidStep(f"Unknown interval unit: {unit!r}")
    step = count * per_unit
    if step < 1:
        raise InvalidStep(f"Step of {step}s is below one second")
    return step


def generate_series(start, step, upper_bound, accumulated=None, now=None):
    """
    Append a recurring series to `accumulated` and return it.

    A start in the past is fast-forwarded to the first occurrence at or after
    now, so no already-due entry is emitted. The loop stops at the upper bound,
    after MAX_SERIES_ITERATIONS steps, or once the accumulator holds
    MAX_SERIES_ENTRIES, whichever comes first. The result is not sorted or
    deduplicated.
    """
    if step < 1:
        raise InvalidStep(f"Step of {step}s is below one second")
    now = now or utc_now()
    out = list(accumulated or [])

    cursor = start
    if cursor < now:
        jumps = math.ceil((now - cursor).total_seconds() / step)
        cursor = cursor + timedelta(seconds=jumps * step)

    increment = timedelta(seconds=step)
    iterations = 0
    while cursor <= upper_bound and iterations < MAX_SERIES_ITERATIONS and len(out) < MAX_SERIES_ENTRIES:
        ok = clamp(cursor, now, upper_bound)
        if ok is not None:
            out.append(ok)
        cursor += increment
        iterations += 1

    if iterations >= MAX_SERIES_ITERATIONS:
        logger.debug(f"Series generation stopped at iteration cap ({MAX_SERIES_ITERATIONS})")
    return out
