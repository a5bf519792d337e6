from datetime import datetime

from flask import current_app

from propdesk import db
from propdesk.errors import NotFoundError, ValidationError
from propdesk.models import Lease, Payment, PaymentStatus, PaymentType, Property, User
from propdesk.utils.billing import assess_late_fee
from propdesk.utils.helper import unit_of_work

LATE_FEE_TRANSACTION_SUFFIX = "_LATE"


def late_fee_for(payment, settled_at):
    """Late fee owed on `payment` if settled at `settled_at`. Payments outside a lease are never charged."""
    if payment.lease_id is None:
        return 0.0
    lease = db.session.get(Lease, payment.lease_id)
    if lease is None:
        return 0.0
    return assess_late_fee(payment.due_date, settled_at, lease.late_fee_amount, lease.late_fee_grace_days)


def ensure_transaction_id_free(transaction_id, exclude_id=None):
    if not transaction_id:
        return
    query = Payment.query.filter(Payment.transaction_id == transaction_id)
    if exclude_id is not None:
        query = query.filter(Payment.id != exclude_id)
    if query.first():
        raise ValidationError(f"Transaction {transaction_id} has already been recorded")


class PaymentLedger:
    """Bookkeeping for individual payment rows: creation, edits and settlement."""

    def __init__(self, actor="app"):
        self.actor = actor

    def get_payment(self, payment_id):
        payment = db.session.get(Payment, payment_id)
        if not payment:
            raise NotFoundError("Payment not found")
        return payment

    def create_payment(self, amount, payment_type, due_date, lease_id=None, property_id=None,
                       tenant_id=None, payment_method=None, description=None, paid_date=None,
                       status=PaymentStatus.pending.value, transaction_id=None):
        with unit_of_work():
            if lease_id:
                lease = db.session.get(Lease, lease_id)
                if not lease:
                    raise ValidationError("Lease not found")
                property_id, tenant_id = lease.property_id, lease.tenant_id
            else:
                if not property_id or not tenant_id:
                    raise ValidationError("propertyId and tenantId required")
                if not db.session.get(Property, property_id):
                    raise ValidationError("Property not found")
                if not db.session.get(User, tenant_id):
                    raise ValidationError("Tenant not found")

            ensure_transaction_id_free(transaction_id)
            payment = Payment(
                lease_id=lease_id,
                tenant_id=tenant_id,
                property_id=property_id,
                amount=amount,
                payment_type=payment_type,
                payment_method=payment_method,
                due_date=due_date,
                paid_date=paid_date,
                status=status,
                description=description,
                transaction_id=transaction_id,
                created_by=str(self.actor),
                updated_by=str(self.actor),
            )
            db.session.add(payment)
        return payment

    def update_payment(self, payment_id, lease_id=None, amount=None, due_date=None,
                       payment_type=None, payment_method=None):
        with unit_of_work():
            payment = self.get_payment(payment_id)
            if lease_id and lease_id != payment.lease_id:
                lease = db.session.get(Lease, lease_id)
                if not lease:
                    raise ValidationError("Lease not found")
                payment.lease_id = lease.id
                payment.tenant_id = lease.tenant_id
                payment.property_id = lease.property_id
            if amount is not None:
                payment.amount = amount
            if due_date is not None:
                payment.due_date = due_date
            if payment_type is not None:
                payment.payment_type = payment_type
            if payment_method is not None:
                payment.payment_method = payment_method
            payment.updated_by = str(self.actor)
        return payment

    def settle_payment(self, payment_id, payment_method=None, transaction_id=None, notes=None,
                       paid_amount=None, now=None):
        """
        Mark a payment as completed and charge the lease's late fee if it applies.

        The late fee is stored on the payment and booked as a second, already
        completed `late_fee` row; both rows are committed together.

        Returns:
            tuple: (payment, late_fee_amount)
        """
        now = now or datetime.now()

        with unit_of_work():
            payment = self.get_payment(payment_id)
            if payment.status == PaymentStatus.completed.value:
                raise ValidationError("Payment has already been settled")

            ensure_transaction_id_free(transaction_id, exclude_id=payment.id)
            late_fee = late_fee_for(payment, now)

            payment.status = PaymentStatus.completed.value
            payment.paid_date = now
            payment.payment_method = payment_method
            payment.transaction_id = transaction_id
            payment.notes = notes or ""
            payment.late_fee = late_fee
            if paid_amount is not None:
                payment.amount = paid_amount
            payment.updated_by = str(self.actor)

            if late_fee > 0:
                late_transaction_id = f"{transaction_id}{LATE_FEE_TRANSACTION_SUFFIX}" if transaction_id else None
                ensure_transaction_id_free(late_transaction_id)
                db.session.add(Payment(
                    lease_id=payment.lease_id,
                    tenant_id=payment.tenant_id,
                    property_id=payment.property_id,
                    amount=late_fee,
                    payment_type=PaymentType.late_fee.value,
                    payment_method=payment_method,
                    due_date=now.date(),
                    paid_date=now,
                    status=PaymentStatus.completed.value,
                    description=f"Late fee for payment {payment.id}",
                    transaction_id=late_transaction_id,
                    created_by=str(self.actor),
                    updated_by=str(self.actor),
                ))

        current_app.logger.info(
            f"Payment {payment.id} settled (receipt {payment.receipt_number}, late fee {late_fee})"
        )
        return payment, late_fee

    def delete_payment(self, payment_id):
        with unit_of_work():
            payment = self.get_payment(payment_id)
            db.session.delete(payment)
        current_app.logger.info(f"Payment {payment_id} deleted")
