from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest
import pytz

from backend.errors import CollaboratorError
from services.notification_gateway import (
    EVENT_REMINDER_CATEGORY,
    ReminderDispatchGateway,
    cancel_task_reminder,
    event_reminder_prefix,
    schedule_event_reminders,
    schedule_task_reminder,
    task_reminder_id,
)

NOW = datetime(2024, 1, 1, tzinfo=pytz.UTC)
EVENT = datetime(2024, 1, 2, tzinfo=pytz.UTC)
PLAN = SimpleNamespace(id='plan-1', name='Trip')


def _jobs(scheduler):
    return {job.id: job for job in scheduler.get_jobs()}


def test_schedule_and_cancel_by_identifier(gateway, scheduler):
    gateway.schedule('event_reminder_x_0', NOW + timedelta(hours=1), {'title': 'x'})
    assert list(_jobs(scheduler)) == ['event_reminder_x_0']
    assert gateway.cancel('event_reminder_x_0') is True
    assert gateway.cancel('event_reminder_x_0') is False
    assert scheduler.get_jobs() == []


def test_cancel_all_only_touches_prefix(gateway):
    gateway.schedule('event_reminder_a_0', NOW + timedelta(hours=1), {})
    gateway.schedule('event_reminder_a_1', NOW + timedelta(hours=2), {})
    gateway.schedule('event_reminder_ab_0', NOW + timedelta(hours=2), {})
    assert gateway.cancel_all(event_reminder_prefix('a')) == 2
    assert gateway.scheduled_ids() == ['event_reminder_ab_0']


def test_schedule_event_reminders_skips_past_and_sorts(gateway, scheduler):
    offsets = [-3600.0, -30 * 3600.0, -7200.0]
    assert schedule_event_reminders(gateway, PLAN, EVENT, offsets, now=NOW) == 2
    jobs = _jobs(scheduler)
    assert sorted(jobs) == ['event_reminder_plan-1_0', 'event_reminder_plan-1_1']
    assert jobs['event_reminder_plan-1_0'].trigger.run_date == EVENT - timedelta(hours=2)
    assert jobs['event_reminder_plan-1_1'].trigger.run_date == EVENT - timedelta(hours=1)
    payload = jobs['event_reminder_plan-1_0'].args[1]
    assert payload['title'] == 'Upcoming Event: Trip'
    assert payload['event_plan_id'] == 'plan-1'
    assert payload['category'] == EVENT_REMINDER_CATEGORY
    assert 'Jan 02, 2024' in payload['body']


def test_schedule_event_reminders_replaces_previous_set(gateway):
    schedule_event_reminders(gateway, PLAN, EVENT, [-60.0 * i for i in range(1, 6)], now=NOW)
    schedule_event_reminders(gateway, PLAN, EVENT, [-60.0], now=NOW)
    assert gateway.scheduled_ids(event_reminder_prefix(PLAN.id)) == ['event_reminder_plan-1_0']


def test_schedule_event_reminders_caps_and_nudges(gateway, scheduler):
    event = NOW + timedelta(hours=3)
    offsets = [-(3 * 3600.0) + 2] + [-60.0 * i for i in range(1, 150)]
    assert schedule_event_reminders(gateway, PLAN, event, offsets, now=NOW, nudge_seconds=5) == 64
    jobs = _jobs(scheduler)
    assert len(jobs) == 64
    # 2 seconds out is pushed to now + nudge
    assert jobs['event_reminder_plan-1_0'].trigger.run_date == NOW + timedelta(seconds=5)


def test_task_reminder_schedule_and_cancel(gateway, scheduler):
    task = SimpleNamespace(id='t1', title='Pack bags', plan_id='plan-1')
    assert schedule_task_reminder(gateway, task, NOW + timedelta(hours=4), plan_name='Trip', now=NOW) is True
    job = _jobs(scheduler)[task_reminder_id('t1')]
    assert job.args[1]['title'] == 'Task reminder: Pack bags'
    assert job.args[1]['task_id'] == 't1'

    assert schedule_task_reminder(gateway, task, NOW - timedelta(hours=1), now=NOW) is False
    assert scheduler.get_jobs() == []
    assert cancel_task_reminder(gateway, 't1') is False


def test_deliver_failures_are_logged_not_raised(scheduler, caplog):
    def boom(identifier, payload):
        raise RuntimeError('channel down')

    gateway = ReminderDispatchGateway(scheduler, boom)
    gateway._deliver('event_reminder_x_0', {})
    assert 'channel down' in caplog.text


def test_deliver_passes_identifier_and_payload(gateway, delivered):
    gateway._deliver('task_reminder_t1', {'title': 'x'})
    assert delivered == [('task_reminder_t1', {'title': 'x'})]


class _BrokenScheduler:
    def add_job(self, *args, **kwargs):
        raise RuntimeError('store unavailable')

    def remove_job(self, job_id):
        raise RuntimeError('store unavailable')

    def get_jobs(self):
        raise RuntimeError('store unavailable')


def test_scheduler_failures_become_collaborator_errors():
    gateway = ReminderDispatchGateway(_BrokenScheduler(), lambda *a: None)
    with pytest.raises(CollaboratorError):
        gateway.schedule('x', NOW, {})
    with pytest.raises(CollaboratorError):
        gateway.cancel('x')
    with pytest.raises(CollaboratorError) as excinfo:
        gateway.cancel_all('x')
    assert excinfo.value.collaborator == 'dispatch'
