from propdesk import db
from datetime import datetime, date
from math import ceil
from sqlalchemy import Uuid, event
import uuid, enum, secrets, string, time

class TimeStamp:
    created_date = db.Column(db.DateTime, default=datetime.now)
    updated_date = db.Column(db.DateTime, default=datetime.now, onupdate=datetime.now)
    created_by = db.Column(db.String(50), default='app')
    updated_by = db.Column(db.String(50), default='app')


MANAGER_ROLES = ("admin", "property_manager")


class UserRole(str, enum.Enum):
    admin = "admin"
    property_manager = "property_manager"
    tenant = "tenant"


class PropertyStatus(str, enum.Enum):
    available = "available"
    occupied = "occupied"
    maintenance = "maintenance"
    unavailable = "unavailable"


class LeaseStatus(str, enum.Enum):
    pending = "pending"
    active = "active"
    expired = "expired"
    terminated = "terminated"
    renewed = "renewed"


class PaymentType(str, enum.Enum):
    rent = "rent"
    security_deposit = "security_deposit"
    late_fee = "late_fee"
    pet_deposit = "pet_deposit"
    utility = "utility"
    maintenance = "maintenance"
    other = "other"


class PaymentMethod(str, enum.Enum):
    cash = "cash"
    check = "check"
    bank_transfer = "bank_transfer"
    credit_card = "credit_card"
    online = "online"
    other = "other"


class PaymentStatus(str, enum.Enum):
    pending = "pending"
    completed = "completed"
    failed = "failed"
    refunded = "refunded"
    partial = "partial"


class MaintenanceCategory(str, enum.Enum):
    plumbing = "plumbing"
    electrical = "electrical"
    hvac = "hvac"
    appliance = "appliance"
    structural = "structural"
    cosmetic = "cosmetic"
    security = "security"
    other = "other"


class MaintenancePriority(str, enum.Enum):
    low = "low"
    medium = "medium"
    high = "high"
    emergency = "emergency"


class MaintenanceStatus(str, enum.Enum):
    pending = "pending"
    in_progress = "in_progress"
    completed = "completed"
    cancelled = "cancelled"
    on_hold = "on_hold"


# ---------------------------
# User (admin, property manager or tenant)
# ---------------------------
class User(db.Model, TimeStamp):
    __tablename__ = 'users'

    id = db.Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False)
    phone = db.Column(db.String(20))
    role = db.Column(db.String(50), nullable=False, default=UserRole.tenant.value)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    # Tenant back-references to the current occupancy, written only by the lease lifecycle
    property_id = db.Column(Uuid, db.ForeignKey("properties.id", use_alter=True), nullable=True)
    lease_id = db.Column(Uuid, db.ForeignKey("leases.id", use_alter=True), nullable=True)

    leases = db.relationship("Lease", backref="tenant", lazy=True, foreign_keys="Lease.tenant_id")
    payments = db.relationship("Payment", backref="tenant", lazy=True, foreign_keys="Payment.tenant_id")

    @property
    def is_manager(self):
        return self.role in MANAGER_ROLES

    def to_dict(self):
        return {
            "id": str(self.id),
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "role": self.role,
            "isActive": self.is_active,
            "propertyId": str(self.property_id) if self.property_id else None,
            "leaseId": str(self.lease_id) if self.lease_id else None,
        }


# ---------------------------
# Property
# ---------------------------
class Property(db.Model, TimeStamp):
    __tablename__ = "properties"

    id = db.Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = db.Column(db.String(120), nullable=False)
    address = db.Column(db.String(255), nullable=False)
    property_type = db.Column(db.String(50), default="apartment")
    rent_amount = db.Column(db.Float, nullable=False)
    security_deposit = db.Column(db.Float, nullable=False, default=0.0)
    status = db.Column(db.String(20), nullable=False, default=PropertyStatus.available.value)
    managed_by_id = db.Column(Uuid, db.ForeignKey("users.id"), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    # Occupancy, written only by the lease lifecycle
    current_tenant_id = db.Column(Uuid, db.ForeignKey("users.id"), nullable=True)
    current_lease_id = db.Column(Uuid, db.ForeignKey("leases.id", use_alter=True), nullable=True)

    current_tenant = db.relationship("User", foreign_keys=[current_tenant_id])
    leases = db.relationship("Lease", backref="property", lazy=True, foreign_keys="Lease.property_id")
    payments = db.relationship("Payment", backref="property", lazy=True, foreign_keys="Payment.property_id")
    maintenance_requests = db.relationship(
        "MaintenanceRequest", backref="property", lazy=True, foreign_keys="MaintenanceRequest.property_id"
    )

    @property
    def is_occupied(self):
        return self.current_tenant_id is not None and self.current_lease_id is not None

    def to_dict(self):
        return {
            "id": str(self.id),
            "title": self.title,
            "address": self.address,
            "propertyType": self.property_type,
            "rentAmount": self.rent_amount,
            "securityDeposit": self.security_deposit,
            "status": self.status,
            "isActive": self.is_active,
            "managedBy": str(self.managed_by_id) if self.managed_by_id else None,
            "currentTenant": str(self.current_tenant_id) if self.current_tenant_id else None,
            "currentLease": str(self.current_lease_id) if self.current_lease_id else None,
        }


# ---------------------------
# Lease (Tenant <-> Property link)
# ---------------------------
class Lease(db.Model, TimeStamp):
    __tablename__ = "leases"
    __table_args__ = (db.Index("ix_leases_property_status", "property_id", "status"),)

    id = db.Column(Uuid, primary_key=True, default=uuid.uuid4)
    property_id = db.Column(Uuid, db.ForeignKey("properties.id"), nullable=False)
    tenant_id = db.Column(Uuid, db.ForeignKey("users.id"), nullable=False)
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=False)
    monthly_rent = db.Column(db.Float, nullable=False)
    security_deposit = db.Column(db.Float, nullable=False, default=0.0)
    lease_terms = db.Column(db.Text, nullable=False)
    payment_due_day = db.Column(db.Integer, nullable=False, default=1)  # e.g., 5 = rent due on 5th of each month
    late_fee_amount = db.Column(db.Float, nullable=False)
    late_fee_grace_days = db.Column(db.Integer, nullable=False)
    status = db.Column(db.String(20), nullable=False, default=LeaseStatus.pending.value)
    utilities = db.Column(db.JSON, nullable=False, default=dict)
    pet_deposit = db.Column(db.Float, nullable=False, default=0.0)
    additional_charges = db.Column(db.JSON, nullable=False, default=list)
    notes = db.Column(db.Text, nullable=False, default="")
    renewed_from_id = db.Column(Uuid, db.ForeignKey("leases.id"), nullable=True)

    # Generated payments are owned by the lease and go away with it
    payments = db.relationship("Payment", backref="lease", lazy=True, cascade="all")

    @property
    def days_remaining(self):
        return (self.end_date - date.today()).days

    @property
    def duration_months(self):
        return ceil((self.end_date - self.start_date).days / 30)

    @property
    def is_expired(self):
        return date.today() > self.end_date

    def to_dict(self):
        return {
            "id": str(self.id),
            "property": {
                "id": str(self.property_id),
                "title": self.property.title if self.property else None,
                "address": self.property.address if self.property else None,
            },
            "tenant": {
                "id": str(self.tenant_id),
                "name": self.tenant.name if self.tenant else None,
                "email": self.tenant.email if self.tenant else None,
                "phone": self.tenant.phone if self.tenant else None,
            },
            "startDate": self.start_date.isoformat(),
            "endDate": self.end_date.isoformat(),
            "monthlyRent": self.monthly_rent,
            "securityDeposit": self.security_deposit,
            "leaseTerms": self.lease_terms,
            "paymentDueDate": self.payment_due_day,
            "lateFee": {"amount": self.late_fee_amount, "gracePeriod": self.late_fee_grace_days},
            "status": self.status,
            "utilities": self.utilities,
            "petDeposit": self.pet_deposit,
            "additionalCharges": self.additional_charges,
            "notes": self.notes,
            "renewedFrom": str(self.renewed_from_id) if self.renewed_from_id else None,
            "daysRemaining": self.days_remaining,
            "durationMonths": self.duration_months,
            "isExpired": self.is_expired,
        }


# ---------------------------
# Payment
# ---------------------------
class Payment(db.Model, TimeStamp):
    __tablename__ = "payments"
    __table_args__ = (
        db.Index("ix_payments_tenant_due", "tenant_id", "due_date"),
        db.Index("ix_payments_property_due", "property_id", "due_date"),
        db.Index("ix_payments_status_due", "status", "due_date"),
    )

    id = db.Column(Uuid, primary_key=True, default=uuid.uuid4)
    lease_id = db.Column(Uuid, db.ForeignKey("leases.id"), nullable=True)
    tenant_id = db.Column(Uuid, db.ForeignKey("users.id"), nullable=False)
    property_id = db.Column(Uuid, db.ForeignKey("properties.id"), nullable=False)
    amount = db.Column(db.Float, nullable=False)
    payment_type = db.Column(db.String(30), nullable=False)
    payment_method = db.Column(db.String(30), nullable=True)
    status = db.Column(db.String(20), nullable=False, default=PaymentStatus.pending.value)
    due_date = db.Column(db.Date, nullable=False)
    paid_date = db.Column(db.DateTime, nullable=True)
    late_fee = db.Column(db.Float, nullable=False, default=0.0)
    description = db.Column(db.String(255), nullable=True)
    transaction_id = db.Column(db.String(255), unique=True, nullable=True)
    receipt_number = db.Column(db.String(40), unique=True, nullable=True)
    notes = db.Column(db.Text, nullable=False, default="")
    is_recurring = db.Column(db.Boolean, nullable=False, default=False)
    recurring_period = db.Column(db.String(20), nullable=True)  # monthly, quarterly, yearly

    @property
    def is_overdue(self):
        return self.status == PaymentStatus.pending.value and date.today() > self.due_date

    @property
    def days_overdue(self):
        if not self.is_overdue:
            return 0
        return (date.today() - self.due_date).days

    def to_dict(self):
        return {
            "id": str(self.id),
            "lease": str(self.lease_id) if self.lease_id else None,
            "tenant": {
                "id": str(self.tenant_id),
                "name": self.tenant.name if self.tenant else None,
                "email": self.tenant.email if self.tenant else None,
            },
            "property": {
                "id": str(self.property_id),
                "title": self.property.title if self.property else None,
                "address": self.property.address if self.property else None,
            },
            "amount": self.amount,
            "paymentType": self.payment_type,
            "paymentMethod": self.payment_method,
            "status": self.status,
            "dueDate": self.due_date.isoformat(),
            "paidDate": self.paid_date.isoformat() if self.paid_date else None,
            "lateFee": self.late_fee,
            "description": self.description,
            "transactionId": self.transaction_id,
            "receiptNumber": self.receipt_number,
            "notes": self.notes,
            "isRecurring": self.is_recurring,
            "recurringPeriod": self.recurring_period,
            "isOverdue": self.is_overdue,
            "daysOverdue": self.days_overdue,
        }


def generate_receipt_number():
    alphabet = string.ascii_uppercase + string.digits
    suffix = "".join(secrets.choice(alphabet) for _ in range(9))
    return f"RCP-{int(time.time() * 1000)}-{suffix}"


@event.listens_for(Payment, "before_insert")
@event.listens_for(Payment, "before_update")
def _assign_receipt_number(mapper, connection, target):
    # Receipt numbers are issued once, on the first flush as completed
    if target.status == PaymentStatus.completed.value and not target.receipt_number:
        target.receipt_number = generate_receipt_number()


# ---------------------------
# Maintenance requests
# ---------------------------
def default_tenant_access():
    return {"required": True, "scheduledTime": None, "confirmed": False}


class MaintenanceRequest(db.Model, TimeStamp):
    __tablename__ = "maintenance_requests"
    __table_args__ = (
        db.Index("ix_maintenance_property_status", "property_id", "status"),
        db.Index("ix_maintenance_tenant_status", "tenant_id", "status"),
        db.Index("ix_maintenance_priority_status", "priority", "status"),
    )

    id = db.Column(Uuid, primary_key=True, default=uuid.uuid4)
    property_id = db.Column(Uuid, db.ForeignKey("properties.id"), nullable=False)
    tenant_id = db.Column(Uuid, db.ForeignKey("users.id"), nullable=True)  # set when a tenant files it
    requested_by_id = db.Column(Uuid, db.ForeignKey("users.id"), nullable=False)
    assigned_to_id = db.Column(Uuid, db.ForeignKey("users.id"), nullable=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=False)
    category = db.Column(db.String(30), nullable=False)
    priority = db.Column(db.String(20), nullable=False, default=MaintenancePriority.medium.value)
    status = db.Column(db.String(20), nullable=False, default=MaintenanceStatus.pending.value)
    estimated_cost = db.Column(db.Float, nullable=False, default=0.0)
    actual_cost = db.Column(db.Float, nullable=False, default=0.0)
    scheduled_date = db.Column(db.DateTime, nullable=True)
    completed_date = db.Column(db.DateTime, nullable=True)
    vendor_info = db.Column(db.JSON, nullable=False, default=dict)
    is_urgent = db.Column(db.Boolean, nullable=False, default=False)
    tenant_access = db.Column(db.JSON, nullable=False, default=default_tenant_access)

    tenant = db.relationship("User", foreign_keys=[tenant_id])
    requested_by = db.relationship("User", foreign_keys=[requested_by_id])
    assigned_to = db.relationship("User", foreign_keys=[assigned_to_id])
    notes = db.relationship(
        "MaintenanceNote", backref="request", lazy=True,
        cascade="all, delete-orphan", order_by="MaintenanceNote.created_date",
    )

    @property
    def days_since_request(self):
        if not self.created_date:
            return 0
        return ceil((datetime.now() - self.created_date).total_seconds() / 86400)

    def to_dict(self):
        def person(user):
            return {"id": str(user.id), "name": user.name, "email": user.email} if user else None

        return {
            "id": str(self.id),
            "property": {
                "id": str(self.property_id),
                "title": self.property.title if self.property else None,
                "address": self.property.address if self.property else None,
            },
            "tenant": person(self.tenant),
            "requestedBy": person(self.requested_by),
            "assignedTo": person(self.assigned_to),
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "priority": self.priority,
            "status": self.status,
            "estimatedCost": self.estimated_cost,
            "actualCost": self.actual_cost,
            "scheduledDate": self.scheduled_date.isoformat() if self.scheduled_date else None,
            "completedDate": self.completed_date.isoformat() if self.completed_date else None,
            "vendorInfo": self.vendor_info,
            "isUrgent": self.is_urgent,
            "tenantAccess": self.tenant_access,
            "notes": [note.to_dict() for note in self.notes],
            "createdAt": self.created_date.isoformat() if self.created_date else None,
            "daysSinceRequest": self.days_since_request,
        }


class MaintenanceNote(db.Model, TimeStamp):
    __tablename__ = "maintenance_notes"

    id = db.Column(Uuid, primary_key=True, default=uuid.uuid4)
    request_id = db.Column(Uuid, db.ForeignKey("maintenance_requests.id"), nullable=False)
    author_id = db.Column(Uuid, db.ForeignKey("users.id"), nullable=False)
    content = db.Column(db.Text, nullable=False)

    author = db.relationship("User")

    def to_dict(self):
        return {
            "id": str(self.id),
            "author": {"id": str(self.author_id), "name": self.author.name if self.author else None},
            "content": self.content,
            "timestamp": self.created_date.isoformat() if self.created_date else None,
        }


# ---------------------------
# Tasks Log
# ---------------------------

class DailyTaskLog(db.Model):
    __tablename__ = "daily_task_log"

    id = db.Column(Uuid, primary_key=True, default=uuid.uuid4)
    task_name = db.Column(db.String(100), nullable=False)
    run_date = db.Column(db.Date, nullable=False, default=date.today)
