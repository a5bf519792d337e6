from datetime import date, datetime, time
from calendar import monthrange
from math import ceil

from propdesk.models import Payment, PaymentType, PaymentStatus


def add_months(anchor: date, months: int, due_day: int) -> date:
    """
    Return the date `months` calendar months after `anchor`'s month, on `due_day`.
    A due day past the end of the target month is clamped to its last day;
    the clamp never carries over, so a 31st due day returns to 31 when it can.
    """
    month_index = anchor.month - 1 + months
    year = anchor.year + month_index // 12
    month = month_index % 12 + 1
    last_day = monthrange(year, month)[1]
    return date(year, month, min(due_day, last_day))


def first_due_date(start_date: date, due_day: int) -> date:
    candidate = add_months(start_date, 0, due_day)
    if candidate < start_date:
        candidate = add_months(start_date, 1, due_day)
    return candidate


def schedule_due_dates(start_date: date, end_date: date, due_day: int):
    """Monthly due dates from the first due date on or after `start_date` through `end_date`."""
    if not 1 <= due_day <= 31:
        raise ValueError(f"due_day must be between 1 and 31, got {due_day}")

    first = first_due_date(start_date, due_day)
    due_dates = []
    offset = 0
    candidate = first
    while candidate <= end_date:
        due_dates.append(candidate)
        offset += 1
        # Always step from the first due date so clamped months do not drift
        candidate = add_months(first, offset, due_day)
    return due_dates


def generate_payment_schedule(lease):
    """
    Build the pending rent payments implied by a lease's term and due day.
    The rows are returned unsaved; the caller adds them in its own transaction.
    """
    payments = []
    for due_date in schedule_due_dates(lease.start_date, lease.end_date, lease.payment_due_day):
        payments.append(Payment(
            lease_id=lease.id,
            tenant_id=lease.tenant_id,
            property_id=lease.property_id,
            amount=lease.monthly_rent,
            payment_type=PaymentType.rent.value,
            status=PaymentStatus.pending.value,
            due_date=due_date,
            description=f"Monthly rent for {due_date.strftime('%B %Y')}",
            is_recurring=True,
            recurring_period="monthly",
        ))
    return payments


def days_late(due_date: date, settled_at: datetime) -> int:
    due_at = datetime.combine(due_date, time.min)
    if settled_at <= due_at:
        return 0
    return ceil((settled_at - due_at).total_seconds() / 86400)


def assess_late_fee(due_date: date, settled_at: datetime, fee_amount: float, grace_days: int) -> float:
    """Late fee owed when settling at `settled_at` a payment due on `due_date`."""
    if days_late(due_date, settled_at) > grace_days:
        return fee_amount
    return 0.0
