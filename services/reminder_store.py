"""Persisted reminder offsets for event plans."""

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from backend.errors import CollaboratorError
from models import db, EventPlan


def load_offsets(plan_id):
    plan = db.session.get(EventPlan, plan_id)
    if not plan:
        return []
    return plan.all_reminder_offsets


def save_offsets(plan_id, offsets):
    """Store offsets as the plan's reminder list and mirror the first into the legacy field."""
    plan = db.session.get(EventPlan, plan_id)
    if not plan:
        raise CollaboratorError(f"Event plan {plan_id} not found", collaborator='persistence')
    write_offsets(plan, offsets)
    commit_or_raise(f"saving reminders for plan {plan_id}")


def write_offsets(plan, offsets):
    offsets = list(offsets)
    plan.reminder_offsets = offsets
    if offsets:
        plan.reminder_offset = offsets[0]


def commit_or_raise(action):
    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Error {action}: {e}")
        raise CollaboratorError(f"Persistence failed while {action}", collaborator='persistence') from e
