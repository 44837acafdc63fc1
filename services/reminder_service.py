"""Edit sessions, saves, and reload pruning for event plan reminders."""

from flask import current_app

from backend.errors import CollaboratorError
from backend.reminder_controller import ReminderScheduleController, prune_offsets
from backend.task_reminders import TaskReminderStore
from backend.time_window import as_utc, to_naive_utc, utc_now
from models import db, EventPlan
from services.notification_gateway import (
    DEFAULT_NUDGE_SECONDS,
    cancel_task_reminder,
    event_reminder_prefix,
    schedule_event_reminders,
    schedule_task_reminder,
)
from services.reminder_store import commit_or_raise, write_offsets


def _nudge_seconds():
    return int(current_app.config.get('REMINDER_NUDGE_SECONDS', DEFAULT_NUDGE_SECONDS))


def _timezone_name():
    return current_app.config.get('DEFAULT_TIMEZONE', 'UTC')


def _reschedule_plan(gateway, plan, offsets, now):
    """Cancel-then-schedule the plan's event reminders and its open task reminders."""
    count = schedule_event_reminders(
        gateway,
        plan,
        as_utc(plan.date),
        offsets,
        now=now,
        nudge_seconds=_nudge_seconds(),
        tz_name=_timezone_name()
    )
    for task in plan.tasks:
        if task.is_completed or task.reminder_at is None:
            cancel_task_reminder(gateway, task.id)
            continue
        schedule_task_reminder(
            gateway,
            task,
            as_utc(task.reminder_at),
            plan_name=plan.name,
            now=now,
            nudge_seconds=_nudge_seconds()
        )
    current_app.logger.info(f"Scheduled {count} reminder(s) for plan {plan.id}")
    return count


def open_edit_session(plan, clock=utc_now):
    """Controller seeded from what is stored for the plan."""
    event_date = as_utc(plan.date)
    task_store = TaskReminderStore(
        event_date,
        {task.id: as_utc(task.reminder_at) for task in plan.tasks},
        clock=clock
    )
    return ReminderScheduleController.from_offsets(
        event_date,
        plan.all_reminder_offsets,
        legacy_offset=plan.reminder_offset,
        task_reminders=task_store,
        clock=clock
    )


def save_edit_session(gateway, plan, controller):
    """
    Persist the session's event date, reminder offsets and task reminders, then
    reschedule everything for the plan. Returns the saved offsets.
    """
    offsets = controller.commit_for_save()
    plan.date = to_naive_utc(controller.event_date)
    write_offsets(plan, offsets)

    task_store = controller.task_reminders
    if task_store is not None:
        committed = task_store.items()
        for task in plan.tasks:
            reminder = None if task.is_completed else committed.get(task.id)
            task.reminder_at = to_naive_utc(reminder)

    commit_or_raise(f"saving reminders for plan {plan.id}")
    _reschedule_plan(gateway, plan, offsets, controller.now())
    return offsets


def refresh_plan_reminders(gateway, plan, clock=utc_now, reschedule=False):
    """
    Drop stored offsets that already passed. When anything was dropped the kept
    list is re-persisted and rescheduled; `reschedule=True` reschedules anyway.
    """
    now = clock()
    result = prune_offsets(plan.all_reminder_offsets, as_utc(plan.date), now=now)
    if result.schedule is not None:
        dropped = len(plan.all_reminder_offsets) - len(result.kept_offsets)
        write_offsets(plan, result.kept_offsets)
        commit_or_raise(f"pruning reminders for plan {plan.id}")
        current_app.logger.info(f"Pruned {dropped} past reminder(s) from plan {plan.id}")
    if result.schedule is not None or reschedule:
        _reschedule_plan(gateway, plan, result.kept_offsets, now)
    return result


def reschedule_all_plans(gateway, clock=utc_now):
    """Startup pass: prune and schedule every open plan. Returns how many succeeded."""
    plans = EventPlan.query.filter_by(is_completed=False).all()
    done = 0
    for plan in plans:
        try:
            refresh_plan_reminders(gateway, plan, clock=clock, reschedule=True)
            done += 1
        except CollaboratorError as e:
            current_app.logger.error(f"Error rescheduling reminders for plan {plan.id}: {e}")
    return done


def set_task_reminder(gateway, task, instant, clock=utc_now):
    """Commit a reminder for one task, bounded to [now, event date]; returns what was stored."""
    plan = task.plan
    store = TaskReminderStore(as_utc(plan.date), {task.id: as_utc(task.reminder_at)}, clock=clock)
    store.set_draft(task.id, instant)
    result = store.commit_draft(task.id)

    task.reminder_at = to_naive_utc(result)
    commit_or_raise(f"saving reminder for task {task.id}")
    if result is None:
        cancel_task_reminder(gateway, task.id)
    else:
        schedule_task_reminder(
            gateway,
            task,
            result,
            plan_name=plan.name,
            now=clock(),
            nudge_seconds=_nudge_seconds()
        )
    return result


def clear_task_reminder(gateway, task):
    task.reminder_at = None
    commit_or_raise(f"clearing reminder for task {task.id}")
    cancel_task_reminder(gateway, task.id)


def complete_task(gateway, task):
    task.is_completed = True
    task.reminder_at = None
    commit_or_raise(f"completing task {task.id}")
    cancel_task_reminder(gateway, task.id)


def complete_plan(gateway, plan):
    """Mark the plan done once every task is; its event reminders are cancelled."""
    if plan.is_completed or not plan.all_tasks_completed():
        return False
    plan.is_completed = True
    commit_or_raise(f"completing plan {plan.id}")
    gateway.cancel_all(event_reminder_prefix(plan.id))
    return True


def delete_plan(gateway, plan):
    gateway.cancel_all(event_reminder_prefix(plan.id))
    for task in plan.tasks:
        cancel_task_reminder(gateway, task.id)
    db.session.delete(plan)
    commit_or_raise(f"deleting plan {plan.id}")
