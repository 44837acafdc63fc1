"""Reminder configuration for one event while it is being created or edited."""

import logging
from collections import namedtuple
from datetime import timedelta

from backend.errors import InvalidStep
from backend.reminder_normalizer import MAX_SCHEDULED_REMINDERS, normalize, remove_near
from backend.reminder_series import DEFAULT_INTERVAL_UNIT, generate_series, step_seconds
from backend.time_window import clamp, is_collapsed, pin, safe_range, utc_now
from services.validation_service import parse_every_number, parse_interval_unit

logger = logging.getLogger(__name__)

# Legacy single reminder default: one hour before the event.
LEGACY_DEFAULT_OFFSET = -3600.0

PruneResult = namedtuple('PruneResult', ['kept_offsets', 'schedule'])


def offset_for(instant, event_date):
    """Signed seconds from event_date to instant (negative = before the event)."""
    return (instant - event_date).total_seconds()


def instant_for(offset, event_date):
    return event_date + timedelta(seconds=offset)


def prune_offsets(stored_offsets, event_date, now=None):
    """
    Drop offsets whose instant already passed.

    `schedule` is None when nothing changed; otherwise it holds the offsets to
    re-persist and hand to the dispatcher.
    """
    now = now or utc_now()
    stored = list(stored_offsets or [])
    kept = sorted(o for o in stored if instant_for(o, event_date) >= now)
    if kept == stored:
        return PruneResult(kept, None)
    return PruneResult(kept, kept[:MAX_SCHEDULED_REMINDERS])


class ReminderScheduleController:
    """
    Owns the reminder fields of an edit session and keeps them consistent.

    Callers mutate through the methods below (and the on_*_changed handlers
    after editing a date) instead of assigning attributes directly. Invalid
    input is reset to a safe default and never raises.
    """

    def __init__(
        self,
        event_date,
        recurring_start=None,
        recurring_end=None,
        candidate_instants=None,
        recurring_enabled=False,
        task_reminders=None,
        clock=utc_now,
    ):
        self._clock = clock
        self.event_date = event_date
        if recurring_start is None:
            recurring_start = instant_for(LEGACY_DEFAULT_OFFSET, event_date)
        self.recurring_start = recurring_start
        self.recurring_end = recurring_end if recurring_end is not None else event_date
        self.is_recurring_enabled = recurring_enabled
        self.candidate_instants = list(candidate_instants or [])
        self.custom_instant_draft = recurring_start
        self.every_number = "1"
        self.every_unit = DEFAULT_INTERVAL_UNIT
        self.task_reminders = task_reminders

    @classmethod
    def from_offsets(cls, event_date, offsets, legacy_offset=LEGACY_DEFAULT_OFFSET,
                     task_reminders=None, clock=utc_now):
        """Rebuild edit state from persisted offsets."""
        dates = sorted(instant_for(o, event_date) for o in (offsets or []))
        start = dates[0] if dates else instant_for(legacy_offset, event_date)
        return cls(
            event_date,
            recurring_start=start,
            recurring_end=event_date,
            candidate_instants=dates,
            recurring_enabled=len(dates) > 1,
            task_reminders=task_reminders,
            clock=clock,
        )

    # --- windows ---

    def now(self):
        return self._clock()

    @property
    def series_upper_bound(self):
        return min(self.event_date, self.recurring_end)

    @property
    def custom_range(self):
        return safe_range(self._clock(), self.event_date)

    @property
    def window_collapsed(self):
        """True once the event date passed; no reminder can be added then."""
        return is_collapsed(self.custom_range)

    def _clamp_to_event_window(self, instant, now):
        return clamp(instant, now, self.event_date)

    def _renormalize(self, now=None):
        now = now or self._clock()
        self.candidate_instants = normalize(self.candidate_instants, self.event_date, now=now)

    # --- transitions ---

    def enable_recurring(self):
        self.is_recurring_enabled = True
        if not self.candidate_instants:
            base = self._clamp_to_event_window(self.recurring_start, self._clock())
            if base is not None:
                self.candidate_instants = [base]

    def disable_recurring(self):
        self.is_recurring_enabled = False
        self.candidate_instants = []

    def set_recurring(self, enabled):
        if enabled:
            self.enable_recurring()
        else:
            self.disable_recurring()

    def add_series(self, count=None, unit=None):
        """
        Append a "remind me every <count> <unit>" series starting at recurring_start.

        Returns False when the input was rejected (and reset) or nothing could be
        generated because the input was unusable.
        """
        if count is not None:
            self.every_number = str(count)
        if unit is not None:
            self.every_unit = parse_interval_unit(unit, default=unit)

        n = parse_every_number(self.every_number)
        if n is None:
            logger.debug(f"Rejected interval count {self.every_number!r}")
            self.every_number = "1"
            return False
        try:
            step = step_seconds(n, self.every_unit)
        except InvalidStep as exc:
            logger.debug(f"Rejected interval step: {exc}")
            self.every_number = "1"
            self.every_unit = 'minutes'
            return False

        now = self._clock()
        self.is_recurring_enabled = True
        generated = generate_series(
            self.recurring_start,
            step,
            self.series_upper_bound,
            accumulated=self.candidate_instants,
            now=now,
        )
        self.candidate_instants = normalize(generated, self.event_date, now=now)
        return True

    def add_custom_instant(self, instant=None):
        """Add one reminder anywhere in [now, event_date]; ignores the recurring end."""
        if instant is not None:
            self.custom_instant_draft = instant
        now = self._clock()
        ok = self._clamp_to_event_window(self.custom_instant_draft, now)
        if ok is None:
            return False

        self.is_recurring_enabled = True
        out = list(self.candidate_instants)
        if not out:
            base = self._clamp_to_event_window(self.recurring_start, now)
            if base is not None:
                out.append(base)
        out.append(ok)
        self.candidate_instants = normalize(out, self.event_date, now=now)
        return True

    def remove_instant(self, instant):
        self.candidate_instants = remove_near(self.candidate_instants, instant)

    def on_event_date_changed(self, new_date):
        """Pull every bound under the new event date; returns task ids whose reminder moved."""
        self.event_date = new_date
        if self.recurring_end > new_date:
            self.recurring_end = new_date
        if self.recurring_start > new_date:
            self.recurring_start = new_date

        now = self._clock()
        self.custom_instant_draft = pin(self.custom_instant_draft, *safe_range(now, new_date))

        moved = []
        if self.task_reminders is not None:
            moved = self.task_reminders.clamp_to_event_date(new_date)
        self._renormalize(now)
        return moved

    def on_recurring_start_changed(self, new_start):
        self.recurring_start = new_start
        if self.recurring_end < new_start:
            self.recurring_end = new_start
        self._renormalize()

    def on_recurring_end_changed(self, new_end):
        self.recurring_end = new_end
        now = self._clock()
        self._renormalize(now)
        _, upper = safe_range(now, self.event_date)
        if self.custom_instant_draft > upper:
            self.custom_instant_draft = upper

    # --- persistence mapping ---

    def resolve_instants(self):
        """Instants that a save would schedule, before conversion to offsets."""
        now = self._clock()
        if self.is_recurring_enabled:
            dates = normalize(self.candidate_instants, self.event_date, now=now)
            if dates:
                return dates
        base = self._clamp_to_event_window(self.recurring_start, now)
        return [base] if base is not None else []

    def commit_for_save(self):
        """Offsets to persist and schedule; empty means no reminders."""
        offsets = sorted(offset_for(d, self.event_date) for d in self.resolve_instants())
        return offsets[:MAX_SCHEDULED_REMINDERS]

    def prune_on_load(self, stored_offsets, event_date=None):
        if event_date is None:
            event_date = self.event_date
        return prune_offsets(stored_offsets, event_date, now=self._clock())
