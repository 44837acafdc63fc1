"""Per-task single reminders, kept apart from the event-level reminder set."""

import logging

from backend.time_window import is_collapsed, pin, safe_range, same_instant, utc_now

logger = logging.getLogger(__name__)


class TaskReminderStore:
    """
    At most one committed reminder per task, plus an optional draft being edited.

    Committed instants are bounded by [now, event_date]. Cancelling dispatched
    notifications for cleared or moved reminders is left to the caller.
    """

    def __init__(self, event_date, reminders=None, clock=utc_now):
        self.event_date = event_date
        self._clock = clock
        self._committed = {
            task_id: instant
            for task_id, instant in (reminders or {}).items()
            if instant is not None
        }
        self._drafts = {}

    def get(self, task_id):
        return self._committed.get(task_id)

    def get_draft(self, task_id):
        return self._drafts.get(task_id)

    def items(self):
        return dict(self._committed)

    def set_draft(self, task_id, instant):
        self._drafts[task_id] = instant

    def discard_draft(self, task_id):
        self._drafts.pop(task_id, None)

    def commit_draft(self, task_id):
        """Move the draft into the committed slot and return what was stored."""
        if task_id not in self._drafts:
            return self._committed.get(task_id)
        draft = self._drafts.pop(task_id)
        if draft is None:
            self._committed.pop(task_id, None)
            return None

        window = safe_range(self._clock(), self.event_date)
        if is_collapsed(window):
            logger.debug(f"Event window closed; dropping reminder draft for task {task_id}")
            self._committed.pop(task_id, None)
            return None

        result = pin(draft, *window)
        self._committed[task_id] = result
        return result

    def clear(self, task_id):
        """Remove committed reminder and draft; return the instant that was committed."""
        self._drafts.pop(task_id, None)
        return self._committed.pop(task_id, None)

    def clamp_to_event_date(self, event_date):
        """Lower every reminder later than event_date; return the ids that moved."""
        self.event_date = event_date
        moved = []
        for task_id, instant in self._committed.items():
            if instant > event_date:
                self._committed[task_id] = event_date
                moved.append(task_id)
        return moved

    def is_dirty(self, task_id):
        if task_id not in self._drafts:
            return False
        draft = self._drafts[task_id]
        committed = self._committed.get(task_id)
        if committed is None or draft is None:
            return committed is not draft
        return not same_instant(draft, committed)
