import os

import pytz
from dotenv import load_dotenv
from flask import Flask
from apscheduler.schedulers.background import BackgroundScheduler

load_dotenv()

from models import db
from services.notification_gateway import ReminderDispatchGateway
from services.reminder_service import reschedule_all_plans

app = Flask(__name__)
app.config['SQLALCHEMY_DATABASE_URI'] = os.environ.get('DATABASE_URL', 'sqlite:///reminders.db')
app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
app.config['DEFAULT_TIMEZONE'] = os.environ.get('DEFAULT_TIMEZONE', 'America/New_York')
app.config['REMINDER_NUDGE_SECONDS'] = int(os.environ.get('REMINDER_NUDGE_SECONDS', 5))

db.init_app(app)
dispatch_gateway = None

with app.app_context():
    db.create_all()


def _deliver_reminder(identifier, payload):
    """Hand a due reminder to the notification channel; logged until one is configured."""
    app.logger.info(f"Reminder due {identifier}: {payload.get('title')} {payload.get('body')}")


def start_reminder_dispatch(scheduler=None, deliver=None):
    """Start the background dispatcher and reschedule every open plan's reminders."""
    global dispatch_gateway
    if os.environ.get('ENABLE_REMINDER_JOBS', '1') != '1':
        return None
    if dispatch_gateway and dispatch_gateway.scheduler.running:
        return dispatch_gateway
    if scheduler is None:
        scheduler = BackgroundScheduler(timezone=pytz.UTC)
    dispatch_gateway = ReminderDispatchGateway(scheduler, deliver or _deliver_reminder, logger=app.logger)
    scheduler.start()
    with app.app_context():
        count = reschedule_all_plans(dispatch_gateway)
    app.logger.info(f"Reminder dispatcher started; rescheduled {count} plan(s)")
    return dispatch_gateway


def stop_reminder_dispatch():
    global dispatch_gateway
    if dispatch_gateway and dispatch_gateway.scheduler.running:
        dispatch_gateway.scheduler.shutdown(wait=False)
    dispatch_gateway = None
