from datetime import timedelta

from flask import current_app

from propdesk import db
from propdesk.errors import LeaseStateError, NotFoundError, ValidationError
from propdesk.models import Lease, LeaseStatus, Property, PropertyStatus, User, UserRole
from propdesk.utils.billing import generate_payment_schedule
from propdesk.utils.helper import parse_amount, parse_int, unit_of_work

PENDING = LeaseStatus.pending.value
ACTIVE = LeaseStatus.active.value
EXPIRED = LeaseStatus.expired.value
TERMINATED = LeaseStatus.terminated.value
RENEWED = LeaseStatus.renewed.value

# Statuses that hold a claim on the property's calendar
BLOCKING_STATUSES = (PENDING, ACTIVE)

LEASE_TRANSITIONS = {
    PENDING: {ACTIVE, TERMINATED},
    ACTIVE: {EXPIRED, TERMINATED, RENEWED},
    EXPIRED: {RENEWED},
    TERMINATED: set(),
    RENEWED: set(),
}


def transition(lease, new_status):
    if new_status not in LEASE_TRANSITIONS.get(lease.status, set()):
        raise LeaseStateError(f"Cannot change lease status from {lease.status} to {new_status}")
    lease.status = new_status


# ---------------------
# Occupancy references
# ---------------------

def occupy_property(property_, tenant, lease):
    """The single write path that points a property and its tenant at a lease."""
    property_.current_lease_id = lease.id
    property_.current_tenant_id = tenant.id
    property_.status = PropertyStatus.occupied.value
    tenant.lease_id = lease.id
    tenant.property_id = property_.id


def release_occupancy(lease):
    """Clear the property and tenant references, if they still point at `lease`."""
    property_ = db.session.get(Property, lease.property_id)
    if property_ and property_.current_lease_id == lease.id:
        property_.current_lease_id = None
        property_.current_tenant_id = None
        property_.status = PropertyStatus.available.value

    tenant = db.session.get(User, lease.tenant_id)
    if tenant and tenant.lease_id == lease.id:
        tenant.lease_id = None
        tenant.property_id = None


def find_overlapping_lease(property_id, start_date, end_date, exclude_id=None):
    query = Lease.query.filter(
        Lease.property_id == property_id,
        Lease.status.in_(BLOCKING_STATUSES),
        Lease.start_date <= end_date,
        Lease.end_date >= start_date,
    )
    if exclude_id is not None:
        query = query.filter(Lease.id != exclude_id)
    return query.first()


def resolve_late_fee_policy(late_fee, current=None):
    """
    Fill any missing part of a `lateFee` input.

    Missing keys come from `current`, an existing lease whose policy is being
    edited or renewed, and otherwise from the configured defaults.
    """
    if late_fee is None:
        late_fee = {}
    if not isinstance(late_fee, dict):
        raise ValidationError("lateFee must be an object with amount and gracePeriod")

    amount = late_fee.get("amount")
    grace = late_fee.get("gracePeriod", late_fee.get("gracePeriodDays"))
    if amount is None:
        amount = current.late_fee_amount if current else current_app.config["DEFAULT_LATE_FEE_AMOUNT"]
    if grace is None:
        grace = current.late_fee_grace_days if current else current_app.config["DEFAULT_LATE_FEE_GRACE_DAYS"]

    amount = parse_amount(amount, "lateFee amount", required=True)
    grace = parse_int(grace, "lateFee gracePeriod", required=True)
    if grace < 0:
        raise ValidationError("lateFee gracePeriod cannot be negative")
    return amount, grace


class LeaseLifecycle:
    """
    Creates leases and moves them through their statuses.

    Every operation is one transaction: the lease row, the property and tenant
    references and the generated payments are written together or not at all.
    """

    def __init__(self, actor="app"):
        self.actor = actor

    def get_lease(self, lease_id):
        lease = db.session.get(Lease, lease_id)
        if not lease:
            raise NotFoundError("Lease not found")
        return lease

    # ---------------- CREATE ----------------
    def create_lease(self, property_id, tenant_id, start_date, end_date, lease_terms,
                     monthly_rent=None, security_deposit=None, payment_due_day=None,
                     late_fee=None, utilities=None, pet_deposit=None, additional_charges=None,
                     notes=""):
        with unit_of_work():
            property_ = db.session.get(Property, property_id)
            if not property_ or not property_.is_active:
                raise ValidationError("Property not found")

            tenant = db.session.get(User, tenant_id)
            if not tenant or tenant.role != UserRole.tenant.value or not tenant.is_active:
                raise ValidationError("Invalid tenant")

            lease = self._build_lease(
                property_, tenant, start_date, end_date, lease_terms,
                monthly_rent=monthly_rent,
                security_deposit=security_deposit,
                payment_due_day=payment_due_day,
                late_fee=late_fee,
                utilities=utilities,
                pet_deposit=pet_deposit,
                additional_charges=additional_charges,
                notes=notes,
            )

        current_app.logger.info(
            f"Lease {lease.id} created for property {lease.property_id} and tenant {lease.tenant_id} "
            f"with {len(lease.payments)} scheduled payments"
        )
        return lease

    def _build_lease(self, property_, tenant, start_date, end_date, lease_terms,
                     monthly_rent=None, security_deposit=None, payment_due_day=None,
                     late_fee=None, utilities=None, pet_deposit=None, additional_charges=None,
                     notes="", renewed_from=None):
        if not start_date or not end_date:
            raise ValidationError("startDate and endDate are required")
        if end_date < start_date:
            raise ValidationError("endDate cannot be before startDate")
        if not isinstance(lease_terms, str) or not lease_terms.strip():
            raise ValidationError("leaseTerms is required")

        if payment_due_day is None:
            payment_due_day = current_app.config["DEFAULT_PAYMENT_DUE_DAY"]
        if not 1 <= payment_due_day <= 31:
            raise ValidationError("paymentDueDate must be a day of the month between 1 and 31")

        if find_overlapping_lease(property_.id, start_date, end_date):
            raise ValidationError("Property has overlapping lease dates")

        late_fee_amount, late_fee_grace_days = resolve_late_fee_policy(late_fee, current=renewed_from)

        lease = Lease(
            property_id=property_.id,
            tenant_id=tenant.id,
            start_date=start_date,
            end_date=end_date,
            monthly_rent=monthly_rent if monthly_rent is not None else property_.rent_amount,
            security_deposit=security_deposit if security_deposit is not None else property_.security_deposit,
            lease_terms=lease_terms,
            payment_due_day=payment_due_day,
            late_fee_amount=late_fee_amount,
            late_fee_grace_days=late_fee_grace_days,
            status=PENDING,
            utilities=utilities or {},
            pet_deposit=pet_deposit or 0.0,
            additional_charges=additional_charges or [],
            notes=notes or "",
            renewed_from_id=renewed_from.id if renewed_from else None,
            created_by=str(self.actor),
            updated_by=str(self.actor),
        )
        db.session.add(lease)
        db.session.flush()  # assigns lease.id for the references below

        occupy_property(property_, tenant, lease)
        db.session.add_all(generate_payment_schedule(lease))
        db.session.flush()
        return lease

    # ---------------- STATUS CHANGES ----------------
    def activate_lease(self, lease_id):
        with unit_of_work():
            lease = self.get_lease(lease_id)
            transition(lease, ACTIVE)
            lease.updated_by = str(self.actor)
        current_app.logger.info(f"Lease {lease.id} activated")
        return lease

    def terminate_lease(self, lease_id):
        # Pending payments stay scheduled against the terminated lease
        with unit_of_work():
            lease = self.get_lease(lease_id)
            transition(lease, TERMINATED)
            lease.updated_by = str(self.actor)
            release_occupancy(lease)
        current_app.logger.info(f"Lease {lease.id} terminated; property {lease.property_id} released")
        return lease

    def expire_lease(self, lease_id):
        with unit_of_work():
            lease = self.get_lease(lease_id)
            transition(lease, EXPIRED)
            lease.updated_by = str(self.actor)
            release_occupancy(lease)
        current_app.logger.info(f"Lease {lease.id} expired")
        return lease

    def renew_lease(self, lease_id, end_date, start_date=None, monthly_rent=None,
                    security_deposit=None, lease_terms=None, payment_due_day=None, late_fee=None):
        """Close `lease_id` as renewed and open a pending successor lease for the same tenant."""
        with unit_of_work():
            previous = self.get_lease(lease_id)
            transition(previous, RENEWED)
            previous.updated_by = str(self.actor)
            release_occupancy(previous)
            db.session.flush()

            property_ = db.session.get(Property, previous.property_id)
            tenant = db.session.get(User, previous.tenant_id)
            lease = self._build_lease(
                property_, tenant,
                start_date or previous.end_date + timedelta(days=1),
                end_date,
                lease_terms or previous.lease_terms,
                monthly_rent=monthly_rent if monthly_rent is not None else previous.monthly_rent,
                security_deposit=security_deposit if security_deposit is not None else previous.security_deposit,
                payment_due_day=payment_due_day or previous.payment_due_day,
                late_fee=late_fee,
                utilities=previous.utilities,
                pet_deposit=previous.pet_deposit,
                additional_charges=previous.additional_charges,
                renewed_from=previous,
            )

        current_app.logger.info(f"Lease {previous.id} renewed as {lease.id}")
        return lease

    # ---------------- UPDATE ----------------
    def update_lease(self, lease_id, lease_terms=None, notes=None, utilities=None,
                     pet_deposit=None, additional_charges=None, late_fee=None):
        with unit_of_work():
            lease = self.get_lease(lease_id)
            if lease_terms is not None:
                if not isinstance(lease_terms, str) or not lease_terms.strip():
                    raise ValidationError("leaseTerms cannot be empty")
                lease.lease_terms = lease_terms
            if notes is not None:
                lease.notes = notes
            if utilities is not None:
                lease.utilities = utilities
            if pet_deposit is not None:
                lease.pet_deposit = pet_deposit
            if additional_charges is not None:
                lease.additional_charges = additional_charges
            if late_fee is not None:
                lease.late_fee_amount, lease.late_fee_grace_days = resolve_late_fee_policy(late_fee, current=lease)
            lease.updated_by = str(self.actor)
        return lease

    # ---------------- DELETE ----------------
    def delete_lease(self, lease_id):
        with unit_of_work():
            lease = self.get_lease(lease_id)
            release_occupancy(lease)
            Lease.query.filter_by(renewed_from_id=lease.id).update({"renewed_from_id": None})
            db.session.flush()

            payment_count = len(lease.payments)
            db.session.delete(lease)  # cascades to the lease's payments

        current_app.logger.info(f"Lease {lease_id} deleted along with {payment_count} payments")
