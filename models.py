import json
import uuid
from datetime import datetime

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

# Default for the legacy single reminder: one hour before the event.
DEFAULT_REMINDER_OFFSET = -3600.0


def _new_id():
    return str(uuid.uuid4())


class EventPlan(db.Model):
    """
    An event with a checklist of tasks and reminders relative to its date.
    `date` is stored as naive UTC.
    """
    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    name = db.Column(db.String(200), nullable=False)
    date = db.Column(db.DateTime, nullable=False)
    # Legacy single reminder; only read when no multi list was ever stored.
    reminder_offset = db.Column(db.Float, nullable=False, default=DEFAULT_REMINDER_OFFSET)
    # JSON-encoded list of float offsets (seconds).
    reminder_offsets_blob = db.Column(db.Text, nullable=True)
    is_completed = db.Column(db.Boolean, default=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    tasks = db.relationship(
        'EventTask',
        backref='plan',
        lazy=True,
        cascade="all, delete-orphan",
        order_by="EventTask.order_index"
    )

    @property
    def reminder_offsets(self):
        if self.reminder_offsets_blob is None:
            return []
        try:
            return [float(v) for v in json.loads(self.reminder_offsets_blob)]
        except (TypeError, ValueError):
            return []

    @reminder_offsets.setter
    def reminder_offsets(self, offsets):
        self.reminder_offsets_blob = json.dumps([float(v) for v in offsets])

    @property
    def all_reminder_offsets(self):
        """Multi list when one was ever stored (even if empty), else the legacy single offset."""
        if self.reminder_offsets_blob is not None:
            return self.reminder_offsets
        return [self.reminder_offset]

    def all_tasks_completed(self):
        return bool(self.tasks) and all(t.is_completed for t in self.tasks)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'date': self.date.isoformat() if self.date else None,
            'reminder_offsets': self.all_reminder_offsets,
            'is_completed': self.is_completed,
            'tasks': [t.to_dict() for t in self.tasks],
        }


class EventTask(db.Model):
    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    plan_id = db.Column(db.String(36), db.ForeignKey('event_plan.id'), nullable=False)
    title = db.Column(db.String(300), nullable=False)
    is_completed = db.Column(db.Boolean, default=False)
    reminder_at = db.Column(db.DateTime, nullable=True)  # naive UTC
    order_index = db.Column(db.Integer, default=0)

    def to_dict(self):
        return {
            'id': self.id,
            'plan_id': self.plan_id,
            'title': self.title,
            'is_completed': self.is_completed,
            'reminder_at': self.reminder_at.isoformat() if self.reminder_at else None,
            'order_index': self.order_index,
        }
