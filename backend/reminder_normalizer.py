"""Canonical form for a collection of reminder instants."""

from backend.time_window import same_instant, utc_now

MAX_PREVIEW_REMINDERS = 100
MAX_SCHEDULED_REMINDERS = 64


def normalize(instants, event_date, now=None):
    """
    Future-only, within the event window, unique, sorted, capped.

    Entries within SAME_INSTANT_TOLERANCE of an earlier kept entry collapse into
    it, so the result never holds two instants closer than the tolerance.
    """
    now = now or utc_now()
    in_window = sorted(d for d in instants if now <= d <= event_date)
    out = []
    for instant in in_window:
        if out and same_instant(out[-1], instant):
            continue
        out.append(instant)
        if len(out) >= MAX_PREVIEW_REMINDERS:
            break
    return out


def remove_near(instants, target):
    """Drop every entry that is the same reminder as target."""
    return [d for d in instants if not same_instant(d, target)]


def contains_instant(instants, target):
    return any(same_instant(d, target) for d in instants)
