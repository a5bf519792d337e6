from celery.schedules import crontab
from propdesk import celery
from propdesk.config import Config

celery.conf.timezone = Config.CELERY_TIMEZONE

celery.conf.beat_schedule = {
    # Expire ended leases and release their properties at midnight
    "expire-ended-leases": {
        "task": "propdesk.tasks.expire_ended_leases",
        "schedule": crontab(hour=0, minute=0),
    },

    # Remind tenants about overdue payments every morning
    "send-overdue-payment-reminders": {
        "task": "propdesk.tasks.send_overdue_payment_reminders",
        "schedule": crontab(hour=9, minute=0),
    },
}
