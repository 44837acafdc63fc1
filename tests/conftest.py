import os

os.environ['DATABASE_URL'] = 'sqlite://'
os.environ['ENABLE_REMINDER_JOBS'] = '0'

from datetime import datetime, timedelta

import pytest
import pytz
from apscheduler.schedulers.background import BackgroundScheduler


class FakeClock:
    def __init__(self, now):
        self.current = now

    def __call__(self):
        return self.current

    def advance(self, **kwargs):
        self.current += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 1, 1, tzinfo=pytz.UTC))


@pytest.fixture
def flask_app():
    from app import app
    from models import db

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def scheduler():
    # Never started: jobs stay pending and can be inspected without firing.
    return BackgroundScheduler(timezone=pytz.UTC)


@pytest.fixture
def delivered():
    return []


@pytest.fixture
def gateway(scheduler, delivered):
    from services.notification_gateway import ReminderDispatchGateway

    return ReminderDispatchGateway(scheduler, lambda identifier, payload: delivered.append((identifier, payload)))
