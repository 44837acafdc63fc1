"""Reminder dispatch on top of APScheduler one-shot ('date') jobs."""

import logging
from datetime import timedelta

import pytz
from apscheduler.jobstores.base import JobLookupError

from backend.errors import CollaboratorError
from backend.reminder_controller import instant_for
from backend.reminder_normalizer import MAX_SCHEDULED_REMINDERS
from backend.time_window import as_utc, utc_now

EVENT_REMINDER_CATEGORY = 'EVENT_REMINDER'
TASK_REMINDER_CATEGORY = 'TASK_REMINDER'
DEFAULT_NUDGE_SECONDS = 5


class ReminderDispatchGateway:
    """
    schedule/cancel by identifier. The job id is the identifier, so scheduling
    an id that is already pending replaces it.
    """

    def __init__(self, scheduler, deliver, logger=None, misfire_grace_time=300):
        self.scheduler = scheduler
        self.deliver = deliver
        self.logger = logger or logging.getLogger(__name__)
        self.misfire_grace_time = misfire_grace_time

    def schedule(self, identifier, fire_at, payload):
        try:
            self.scheduler.add_job(
                self._deliver,
                'date',
                run_date=fire_at,
                args=[identifier, payload],
                id=identifier,
                replace_existing=True,
                misfire_grace_time=self.misfire_grace_time
            )
        except Exception as e:
            self.logger.error(f"Error scheduling reminder {identifier}: {e}")
            raise CollaboratorError(f"Could not schedule {identifier}", collaborator='dispatch') from e

    def cancel(self, identifier):
        try:
            self.scheduler.remove_job(identifier)
        except JobLookupError:
            self.logger.debug(f"Could not cancel job {identifier}: not scheduled")
            return False
        except Exception as e:
            self.logger.error(f"Error cancelling reminder {identifier}: {e}")
            raise CollaboratorError(f"Could not cancel {identifier}", collaborator='dispatch') from e
        return True

    def cancel_all(self, prefix):
        removed = 0
        for identifier in self.scheduled_ids(prefix):
            if self.cancel(identifier):
                removed += 1
        if removed:
            self.logger.info(f"Cancelled {removed} reminder job(s) with prefix {prefix}")
        return removed

    def scheduled_ids(self, prefix=''):
        try:
            jobs = self.scheduler.get_jobs()
        except Exception as e:
            raise CollaboratorError("Could not list scheduled reminders", collaborator='dispatch') from e
        return sorted(job.id for job in jobs if job.id.startswith(prefix))

    def _deliver(self, identifier, payload):
        try:
            self.deliver(identifier, payload)
        except Exception as e:
            self.logger.error(f"Error delivering reminder {identifier}: {e}")


def event_reminder_prefix(plan_id):
    return f"event_reminder_{plan_id}_"


def task_reminder_id(task_id):
    return f"task_reminder_{task_id}"


def format_event_date(value, tz_name='UTC'):
    local = as_utc(value).astimezone(pytz.timezone(tz_name))
    return local.strftime('%b %d, %Y at %I:%M %p')


def _nudged(fire_at, now, nudge_seconds):
    # Entries due within the nudge window would be dropped as misfires.
    nudge = timedelta(seconds=nudge_seconds)
    if fire_at - now < nudge:
        return now + nudge
    return fire_at


def schedule_event_reminders(gateway, plan, event_date, offsets, now=None,
                             nudge_seconds=DEFAULT_NUDGE_SECONDS, tz_name='UTC'):
    """Replace every pending reminder of the plan; returns how many were scheduled."""
    prefix = event_reminder_prefix(plan.id)
    gateway.cancel_all(prefix)

    now = now or utc_now()
    future = sorted(
        fire for fire in (instant_for(o, event_date) for o in offsets)
        if fire > now
    )
    to_schedule = future[:MAX_SCHEDULED_REMINDERS]

    payload = {
        'title': f"Upcoming Event: {plan.name}",
        'body': f"Get ready! Your event is on {format_event_date(event_date, tz_name)}. Tap to check your list.",
        'event_plan_id': plan.id,
        'category': EVENT_REMINDER_CATEGORY,
    }
    for idx, fire in enumerate(to_schedule):
        gateway.schedule(f"{prefix}{idx}", _nudged(fire, now, nudge_seconds), dict(payload))
    return len(to_schedule)


def schedule_task_reminder(gateway, task, fire_at, plan_name=None, now=None,
                           nudge_seconds=DEFAULT_NUDGE_SECONDS):
    """Cancel then (re)schedule the task's reminder; past or missing fire times only cancel."""
    identifier = task_reminder_id(task.id)
    gateway.cancel(identifier)
    now = now or utc_now()
    if fire_at is None or fire_at <= now:
        return False
    body = f"From your plan \"{plan_name}\"" if plan_name else ""
    gateway.schedule(identifier, _nudged(fire_at, now, nudge_seconds), {
        'title': f"Task reminder: {task.title}",
        'body': body,
        'event_plan_id': task.plan_id,
        'task_id': task.id,
        'category': TASK_REMINDER_CATEGORY,
    })
    return True


def cancel_task_reminder(gateway, task_id):
    return gateway.cancel(task_reminder_id(task_id))
