from propdesk import celery, mail, db
from propdesk.models import DailyTaskLog, Lease, LeaseStatus, Payment, PaymentStatus, User
from propdesk.errors import PropDeskError
from propdesk.utils.lifecycle import LeaseLifecycle
from flask import current_app
from flask_mail import Message
from datetime import date


def claim_daily_run(task_name):
    """Record today's run of `task_name`; returns False if it already ran today."""
    today = date.today()
    existing = DailyTaskLog.query.filter_by(task_name=task_name, run_date=today).first()
    if existing:
        current_app.logger.info(f"{task_name} already executed today. Skipping.")
        return False

    # Insert log BEFORE processing to prevent race condition
    db.session.add(DailyTaskLog(task_name=task_name, run_date=today))
    db.session.commit()
    return True


@celery.task(name="propdesk.tasks.send_email_task")
def send_email_task(subject, recipients, body):
    """Send an email through Flask-Mail."""
    try:
        msg = Message(subject, recipients=recipients, body=body)
        mail.send(msg)
        current_app.logger.info(f"Email sent to {recipients}")
        return True
    except Exception as e:
        current_app.logger.error(f"Failed to send email to {recipients}: {e}", exc_info=True)
        return False


@celery.task(name="propdesk.tasks.expire_ended_leases")
def expire_ended_leases():
    """Move active leases whose end date has passed to 'expired', releasing the property."""
    if not claim_daily_run("expire_ended_leases"):
        return "Already ran today"

    lease_ids = [
        lease.id for lease in Lease.query.filter(
            Lease.status == LeaseStatus.active.value,
            Lease.end_date < date.today(),
        ).all()
    ]

    lifecycle = LeaseLifecycle(actor="scheduler")
    expired = 0
    for lease_id in lease_ids:
        try:
            lifecycle.expire_lease(lease_id)
            expired += 1
        except PropDeskError as e:
            current_app.logger.warning(f"[Scheduler] Could not expire lease {lease_id}: {e.message}")

    if expired:
        current_app.logger.info(f"[Scheduler] {expired} leases updated to 'expired'.")
    else:
        current_app.logger.info("[Scheduler] No leases to expire.")
    return expired


@celery.task(name="propdesk.tasks.send_overdue_payment_reminders")
def send_overdue_payment_reminders():
    """Email every tenant with an overdue pending payment (once per day)."""
    if not claim_daily_run("send_overdue_payment_reminders"):
        return "Already ran today"

    overdue = (
        Payment.query
        .filter(
            Payment.status == PaymentStatus.pending.value,
            Payment.due_date < date.today(),
        )
        .order_by(Payment.due_date.asc())
        .all()
    )
    current_app.logger.info(f"[{date.today()}] Found {len(overdue)} overdue payments.")

    queued = 0
    for payment in overdue:
        tenant = db.session.get(User, payment.tenant_id)
        if not tenant or not tenant.email or not tenant.is_active:
            current_app.logger.warning(f"Skipping payment {payment.id} - no reachable tenant.")
            continue

        body = (
            f"Hello {tenant.name},\n\n"
            f"Your payment of {payment.amount:.2f} ({payment.description or payment.payment_type}) "
            f"was due on {payment.due_date.strftime('%d %b %Y')} and is now "
            f"{payment.days_overdue} days overdue. Late fees may apply.\n\nThanks!"
        )
        send_email_task.delay("Overdue Payment Reminder", [tenant.email], body)
        queued += 1

    current_app.logger.info(f"[Scheduler] Queued {queued} overdue payment reminders.")
    return queued
