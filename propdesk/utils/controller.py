from datetime import date, datetime, time, timedelta

from flask import request, jsonify, current_app

from propdesk import db
from propdesk.errors import AuthorizationError, NotFoundError, ValidationError
from propdesk.models import (
    Lease, LeaseStatus, MaintenanceCategory, MaintenanceNote, MaintenancePriority, MaintenanceRequest,
    MaintenanceStatus, Payment, PaymentMethod, PaymentStatus, PaymentType, Property, PropertyStatus,
    User, UserRole,
)
from propdesk.utils.helper import (
    AccessHelper, parse_amount, parse_bool, parse_choice, parse_date, parse_datetime, parse_int,
    parse_list, parse_object, parse_text, parse_uuid, unit_of_work,
)
from propdesk.utils.ledger import PaymentLedger
from propdesk.utils.lifecycle import BLOCKING_STATUSES, LeaseLifecycle, transition, release_occupancy


class BaseController:

    def __init__(self):
        self.data = request.get_json(silent=True) or {}
        self.access = AccessHelper()
        self.user_id = self.access.user_id


class PropertyController(BaseController):

    def _get(self, property_id):
        property_ = db.session.get(Property, property_id)
        if not property_:
            raise NotFoundError("Property not found")
        return property_

    # ---------------- ADD PROPERTY ----------------
    def add_property(self):
        required_fields = ["title", "address", "rentAmount"]
        missing = [f for f in required_fields if self.data.get(f) in (None, "")]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

        with unit_of_work():
            property_ = Property(
                title=self.data["title"].strip(),
                address=self.data["address"].strip(),
                property_type=self.data.get("propertyType", "apartment"),
                rent_amount=parse_amount(self.data["rentAmount"], "rentAmount", required=True),
                security_deposit=parse_amount(self.data.get("securityDeposit"), "securityDeposit") or 0.0,
                status=parse_choice(self.data.get("status"), "status", PropertyStatus) or PropertyStatus.available.value,
                managed_by_id=parse_uuid(self.user_id, "managedBy", required=False),
                created_by=str(self.user_id),
                updated_by=str(self.user_id),
            )
            if property_.status == PropertyStatus.occupied.value:
                raise ValidationError("A property only becomes occupied through a lease")
            db.session.add(property_)

        current_app.logger.info(f"Property {property_.id} created by {self.user_id}")
        return jsonify({"message": "Property created successfully", "property": property_.to_dict()}), 201

    # ---------------- UPDATE PROPERTY ----------------
    def update_property(self, property_id):
        with unit_of_work():
            property_ = self._get(property_id)

            if self.data.get("title"):
                property_.title = self.data["title"].strip()
            if self.data.get("address"):
                property_.address = self.data["address"].strip()
            if self.data.get("propertyType"):
                property_.property_type = self.data["propertyType"]
            if "rentAmount" in self.data:
                property_.rent_amount = parse_amount(self.data["rentAmount"], "rentAmount", required=True)
            if "securityDeposit" in self.data:
                property_.security_deposit = parse_amount(self.data["securityDeposit"], "securityDeposit", required=True)

            # Occupancy is owned by the lease lifecycle; only the vacant statuses can be set by hand
            status = parse_choice(self.data.get("status"), "status", PropertyStatus)
            if status:
                if status == PropertyStatus.occupied.value or property_.is_occupied:
                    raise ValidationError("Occupancy status is managed through leases")
                property_.status = status

            property_.updated_by = str(self.user_id)

        return jsonify({"message": "Property updated successfully", "property": property_.to_dict()}), 200

    # ---------------- DISABLE PROPERTY (SOFT) ----------------
    def delete_property(self, property_id):
        with unit_of_work():
            property_ = self._get(property_id)
            if property_.is_occupied:
                raise ValidationError("Property has a current lease and cannot be removed")
            property_.is_active = False
            property_.status = PropertyStatus.unavailable.value
            property_.updated_by = str(self.user_id)

        return jsonify({"message": "Property disabled successfully"}), 200

    def get_all_properties(self):
        query = Property.query
        if request.args.get("includeInactive", "").lower() not in ["true", "1", "yes"]:
            query = query.filter_by(is_active=True)
        status = parse_choice(request.args.get("status"), "status", PropertyStatus)
        if status:
            query = query.filter_by(status=status)

        properties = query.order_by(Property.created_date.desc()).all()
        return jsonify({"properties": [p.to_dict() for p in properties], "total": len(properties)}), 200

    def get_property_detail(self, property_id):
        property_ = self._get(property_id)
        result = property_.to_dict()
        if property_.current_lease_id:
            lease = db.session.get(Lease, property_.current_lease_id)
            result["lease"] = lease.to_dict() if lease else None
        return jsonify(result), 200


class TenantController(BaseController):

    def _get(self, tenant_id):
        tenant = db.session.get(User, tenant_id)
        if not tenant or tenant.role != UserRole.tenant.value:
            raise NotFoundError("Tenant not found")
        return tenant

    # ---------------- ADD TENANT ----------------
    def add_tenant(self):
        required_fields = ["name", "email"]
        missing = [f for f in required_fields if not self.data.get(f)]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

        email = self.data["email"].strip().lower()
        with unit_of_work():
            if User.query.filter_by(email=email).first():
                raise ValidationError("Email already exists")

            tenant = User(
                name=self.data["name"].strip(),
                email=email,
                phone=self.data.get("phone"),
                role=UserRole.tenant.value,
                is_active=True,
                created_by=str(self.user_id),
                updated_by=str(self.user_id),
            )
            db.session.add(tenant)

        current_app.logger.info(f"Tenant {tenant.id} created by {self.user_id}")
        return jsonify({"message": "Tenant added successfully", "tenant": tenant.to_dict()}), 201

    # ---------------- UPDATE TENANT ----------------
    def update_tenant(self, tenant_id):
        self.access.ensure_self_or_manager(tenant_id)

        with unit_of_work():
            tenant = self._get(tenant_id)
            if self.data.get("name"):
                tenant.name = self.data["name"].strip()
            if "phone" in self.data:
                tenant.phone = self.data["phone"]
            if self.data.get("email"):
                email = self.data["email"].strip().lower()
                if email != tenant.email and User.query.filter_by(email=email).first():
                    raise ValidationError("Email already exists")
                tenant.email = email
            tenant.updated_by = str(self.user_id)

        return jsonify({"message": "Tenant updated successfully", "tenant": tenant.to_dict()}), 200

    # ---------------- DEACTIVATE TENANT (SOFT) ----------------
    def delete_tenant(self, tenant_id):
        with unit_of_work():
            tenant = self._get(tenant_id)
            tenant.is_active = False
            tenant.updated_by = str(self.user_id)

            # Open leases end with the tenancy
            open_leases = Lease.query.filter(
                Lease.tenant_id == tenant.id,
                Lease.status.in_(BLOCKING_STATUSES),
            ).all()
            for lease in open_leases:
                transition(lease, LeaseStatus.terminated.value)
                release_occupancy(lease)

        current_app.logger.info(f"Tenant {tenant_id} deactivated; {len(open_leases)} leases terminated")
        return jsonify({"message": "Tenant deactivated successfully"}), 200

    def activate_tenant(self, tenant_id):
        with unit_of_work():
            tenant = self._get(tenant_id)
            tenant.is_active = True
            tenant.updated_by = str(self.user_id)
        return jsonify({"message": "Tenant activated successfully", "tenant": tenant.to_dict()}), 200

    def get_all_tenants(self):
        query = User.query.filter_by(role=UserRole.tenant.value)
        status_filter = request.args.get("status", "active")
        if status_filter in ["active", "inactive"]:
            query = query.filter_by(is_active=status_filter == "active")

        tenants = query.order_by(User.created_date.desc()).all()
        return jsonify({"tenants": [t.to_dict() for t in tenants], "total": len(tenants)}), 200

    def get_tenant_detail(self, tenant_id):
        self.access.ensure_self_or_manager(tenant_id)
        tenant = self._get(tenant_id)

        result = tenant.to_dict()
        if tenant.lease_id:
            lease = db.session.get(Lease, tenant.lease_id)
            result["lease"] = lease.to_dict() if lease else None
        return jsonify(result), 200


# Set at creation and only moved by the lifecycle endpoints
LOCKED_LEASE_FIELDS = (
    "status", "startDate", "endDate", "propertyId", "tenantId",
    "monthlyRent", "securityDeposit", "paymentDueDate",
)


class LeaseController(BaseController):

    def __init__(self):
        super().__init__()
        self.lifecycle = LeaseLifecycle(actor=self.user_id)

    def add_lease(self):
        lease = self.lifecycle.create_lease(
            property_id=parse_uuid(self.data.get("propertyId"), "propertyId"),
            tenant_id=parse_uuid(self.data.get("tenantId"), "tenantId"),
            start_date=parse_date(self.data.get("startDate"), "startDate"),
            end_date=parse_date(self.data.get("endDate"), "endDate"),
            lease_terms=self.data.get("leaseTerms"),
            monthly_rent=parse_amount(self.data.get("monthlyRent"), "monthlyRent"),
            security_deposit=parse_amount(self.data.get("securityDeposit"), "securityDeposit"),
            payment_due_day=parse_int(self.data.get("paymentDueDate"), "paymentDueDate"),
            late_fee=self.data.get("lateFee"),
            utilities=parse_object(self.data.get("utilities"), "utilities"),
            pet_deposit=parse_amount(self.data.get("petDeposit"), "petDeposit"),
            additional_charges=parse_list(self.data.get("additionalCharges"), "additionalCharges"),
            notes=parse_text(self.data.get("notes"), "notes") or "",
        )
        return jsonify({"message": "Lease created successfully", "lease": lease.to_dict()}), 201

    def update_lease(self, lease_id):
        locked = [f for f in LOCKED_LEASE_FIELDS if f in self.data]
        if locked:
            raise ValidationError(
                f"{', '.join(locked)} cannot be changed here; use the lease status and renewal endpoints"
            )
        notes = self.data.get("notes")
        if notes is not None and not isinstance(notes, str):
            raise ValidationError("notes must be a string")

        lease = self.lifecycle.update_lease(
            lease_id,
            lease_terms=self.data.get("leaseTerms"),
            notes=notes,
            utilities=parse_object(self.data.get("utilities"), "utilities"),
            pet_deposit=parse_amount(self.data.get("petDeposit"), "petDeposit"),
            additional_charges=parse_list(self.data.get("additionalCharges"), "additionalCharges"),
            late_fee=self.data.get("lateFee"),
        )
        return jsonify({"message": "Lease updated successfully", "lease": lease.to_dict()}), 200

    def activate_lease(self, lease_id):
        lease = self.lifecycle.activate_lease(lease_id)
        return jsonify({"message": "Lease activated successfully", "lease": lease.to_dict()}), 200

    def terminate_lease(self, lease_id):
        lease = self.lifecycle.terminate_lease(lease_id)
        return jsonify({"message": "Lease terminated successfully", "lease": lease.to_dict()}), 200

    def expire_lease(self, lease_id):
        lease = self.lifecycle.expire_lease(lease_id)
        return jsonify({"message": "Lease expired successfully", "lease": lease.to_dict()}), 200

    def renew_lease(self, lease_id):
        lease = self.lifecycle.renew_lease(
            lease_id,
            end_date=parse_date(self.data.get("endDate"), "endDate"),
            start_date=parse_date(self.data.get("startDate"), "startDate", required=False),
            monthly_rent=parse_amount(self.data.get("monthlyRent"), "monthlyRent"),
            security_deposit=parse_amount(self.data.get("securityDeposit"), "securityDeposit"),
            lease_terms=self.data.get("leaseTerms"),
            payment_due_day=parse_int(self.data.get("paymentDueDate"), "paymentDueDate"),
            late_fee=self.data.get("lateFee"),
        )
        return jsonify({"message": "Lease renewed successfully", "lease": lease.to_dict()}), 201

    def delete_lease(self, lease_id):
        self.lifecycle.delete_lease(lease_id)
        return jsonify({"message": "Lease deleted successfully"}), 200

    def get_all_leases(self):
        query = Lease.query

        status = parse_choice(request.args.get("status"), "status", LeaseStatus)
        if status:
            query = query.filter(Lease.status == status)
        property_id = parse_uuid(request.args.get("propertyId"), "propertyId", required=False)
        if property_id:
            query = query.filter(Lease.property_id == property_id)
        tenant_id = parse_uuid(request.args.get("tenantId"), "tenantId", required=False)
        if tenant_id:
            query = query.filter(Lease.tenant_id == tenant_id)
        start_from = parse_date(request.args.get("startDate"), "startDate", required=False)
        if start_from:
            query = query.filter(Lease.start_date >= start_from)
        start_to = parse_date(request.args.get("endDate"), "endDate", required=False)
        if start_to:
            query = query.filter(Lease.start_date <= start_to)

        leases = query.order_by(Lease.created_date.desc()).all()
        return jsonify({"leases": [lease.to_dict() for lease in leases], "total": len(leases)}), 200

    def get_lease_detail(self, lease_id):
        lease = self.lifecycle.get_lease(lease_id)
        self.access.ensure_self_or_manager(lease.tenant_id)

        payments = (
            Payment.query
            .filter(Payment.lease_id == lease.id)
            .order_by(Payment.due_date.desc())
            .limit(12)
            .all()
        )
        return jsonify({"lease": lease.to_dict(), "payments": [p.to_dict() for p in payments]}), 200

    def get_expiring_leases(self):
        days = parse_int(request.args.get("days"), "days")
        if days is None:
            days = current_app.config["EXPIRING_LEASE_DAYS"]
        if days < 0:
            raise ValidationError("days cannot be negative")

        today = date.today()
        leases = (
            Lease.query
            .filter(
                Lease.status == LeaseStatus.active.value,
                Lease.end_date >= today,
                Lease.end_date <= today + timedelta(days=days),
            )
            .order_by(Lease.end_date.asc())
            .all()
        )
        return jsonify([lease.to_dict() for lease in leases]), 200


class PaymentController(BaseController):

    def __init__(self):
        super().__init__()
        self.ledger = PaymentLedger(actor=self.user_id)

    def add_payment(self):
        paid_on = parse_date(self.data.get("paidDate"), "paidDate", required=False)
        payment = self.ledger.create_payment(
            lease_id=parse_uuid(self.data.get("leaseId"), "leaseId", required=False),
            property_id=parse_uuid(self.data.get("propertyId"), "propertyId", required=False),
            tenant_id=parse_uuid(self.data.get("tenantId"), "tenantId", required=False),
            amount=parse_amount(self.data.get("amount"), "amount", required=True),
            payment_type=parse_choice(self.data.get("paymentType"), "paymentType", PaymentType, required=True),
            payment_method=parse_choice(self.data.get("paymentMethod"), "paymentMethod", PaymentMethod),
            due_date=parse_date(self.data.get("dueDate"), "dueDate"),
            description=self.data.get("description"),
            paid_date=datetime.combine(paid_on, time.min) if paid_on else None,
            status=parse_choice(self.data.get("status"), "status", PaymentStatus) or PaymentStatus.pending.value,
            transaction_id=self.data.get("transactionId"),
        )
        return jsonify({"message": "Payment record created successfully", "payment": payment.to_dict()}), 201

    def update_payment(self, payment_id):
        payment = self.ledger.update_payment(
            payment_id,
            lease_id=parse_uuid(self.data.get("leaseId"), "leaseId", required=False),
            amount=parse_amount(self.data.get("amount"), "amount"),
            due_date=parse_date(self.data.get("dueDate"), "dueDate", required=False),
            payment_type=parse_choice(self.data.get("paymentType"), "paymentType", PaymentType),
            payment_method=parse_choice(self.data.get("paymentMethod"), "paymentMethod", PaymentMethod),
        )
        return jsonify({"message": "Payment updated successfully", "payment": payment.to_dict()}), 200

    def pay(self, payment_id):
        payment, late_fee = self.ledger.settle_payment(
            payment_id,
            payment_method=parse_choice(self.data.get("paymentMethod"), "paymentMethod", PaymentMethod),
            transaction_id=self.data.get("transactionId") or None,
            notes=self.data.get("notes"),
            paid_amount=parse_amount(self.data.get("paidAmount"), "paidAmount"),
        )
        return jsonify({
            "message": "Payment marked as paid successfully",
            "payment": payment.to_dict(),
            "lateFeeApplied": late_fee,
        }), 200

    def delete_payment(self, payment_id):
        self.ledger.delete_payment(payment_id)
        return jsonify({"message": "Payment deleted successfully"}), 200

    def get_payments(self):
        query = Payment.query

        status = parse_choice(request.args.get("status"), "status", PaymentStatus)
        if status:
            query = query.filter(Payment.status == status)
        payment_type = parse_choice(request.args.get("paymentType"), "paymentType", PaymentType)
        if payment_type:
            query = query.filter(Payment.payment_type == payment_type)
        tenant_id = parse_uuid(request.args.get("tenantId"), "tenantId", required=False)
        if tenant_id:
            query = query.filter(Payment.tenant_id == tenant_id)
        property_id = parse_uuid(request.args.get("propertyId"), "propertyId", required=False)
        if property_id:
            query = query.filter(Payment.property_id == property_id)
        due_from = parse_date(request.args.get("startDate"), "startDate", required=False)
        if due_from:
            query = query.filter(Payment.due_date >= due_from)
        due_to = parse_date(request.args.get("endDate"), "endDate", required=False)
        if due_to:
            query = query.filter(Payment.due_date <= due_to)
        if request.args.get("overdue") == "true":
            query = query.filter(
                Payment.status == PaymentStatus.pending.value,
                Payment.due_date < date.today(),
            )

        payments = query.order_by(Payment.due_date.desc()).all()
        return jsonify({"payments": [p.to_dict() for p in payments], "total": len(payments)}), 200

    def get_payment_detail(self, payment_id):
        payment = self.ledger.get_payment(payment_id)
        self.access.ensure_self_or_manager(payment.tenant_id)
        return jsonify(payment.to_dict()), 200

    def get_overdue_payments(self):
        payments = (
            Payment.query
            .filter(
                Payment.status == PaymentStatus.pending.value,
                Payment.due_date < date.today(),
            )
            .order_by(Payment.due_date.asc())
            .all()
        )
        return jsonify([p.to_dict() for p in payments]), 200

    def get_tenant_payments(self, tenant_id):
        self.access.ensure_self_or_manager(tenant_id)
        payments = (
            Payment.query
            .filter(Payment.tenant_id == tenant_id)
            .order_by(Payment.due_date.desc())
            .all()
        )
        return jsonify([p.to_dict() for p in payments]), 200


# Fields a tenant may edit on a request they filed
TENANT_EDITABLE_MAINTENANCE_FIELDS = ("title", "description", "category", "priority", "isUrgent", "tenantAccess")


class MaintenanceController(BaseController):

    def _get(self, request_id):
        maintenance = db.session.get(MaintenanceRequest, request_id)
        if not maintenance:
            raise NotFoundError("Maintenance request not found")
        return maintenance

    def _ensure_can_view(self, maintenance):
        if self.access.is_manager:
            return
        if str(self.user_id) not in (str(maintenance.tenant_id), str(maintenance.requested_by_id)):
            raise AuthorizationError("Access denied")

    # ---------------- LIST / DETAIL ----------------
    def get_all_requests(self):
        query = MaintenanceRequest.query

        # Tenants see their own requests, property managers those on properties they manage
        if self.access.role == UserRole.tenant.value:
            query = query.filter(MaintenanceRequest.tenant_id == parse_uuid(self.user_id, "tenantId"))
        elif self.access.role == UserRole.property_manager.value:
            managed = db.select(Property.id).where(Property.managed_by_id == parse_uuid(self.user_id, "managedBy"))
            query = query.filter(MaintenanceRequest.property_id.in_(managed))

        status = parse_choice(request.args.get("status"), "status", MaintenanceStatus)
        if status:
            query = query.filter(MaintenanceRequest.status == status)
        priority = parse_choice(request.args.get("priority"), "priority", MaintenancePriority)
        if priority:
            query = query.filter(MaintenanceRequest.priority == priority)
        category = parse_choice(request.args.get("category"), "category", MaintenanceCategory)
        if category:
            query = query.filter(MaintenanceRequest.category == category)
        property_id = parse_uuid(request.args.get("propertyId"), "propertyId", required=False)
        if property_id:
            query = query.filter(MaintenanceRequest.property_id == property_id)
        tenant_id = parse_uuid(request.args.get("tenantId"), "tenantId", required=False)
        if tenant_id:
            query = query.filter(MaintenanceRequest.tenant_id == tenant_id)

        maintenance_requests = query.order_by(MaintenanceRequest.created_date.desc()).all()
        return jsonify({
            "maintenanceRequests": [m.to_dict() for m in maintenance_requests],
            "total": len(maintenance_requests),
        }), 200

    def get_request_detail(self, request_id):
        maintenance = self._get(request_id)
        self._ensure_can_view(maintenance)
        return jsonify(maintenance.to_dict()), 200

    # ---------------- CREATE ----------------
    def add_request(self):
        property_id = parse_uuid(self.data.get("propertyId"), "propertyId")
        title = parse_text(self.data.get("title"), "title", required=True)
        description = parse_text(self.data.get("description"), "description", required=True)
        category = parse_choice(self.data.get("category"), "category", MaintenanceCategory, required=True)
        priority = parse_choice(self.data.get("priority"), "priority", MaintenancePriority)
        is_urgent = parse_bool(self.data.get("isUrgent"), "isUrgent")
        is_tenant = self.access.role == UserRole.tenant.value

        with unit_of_work():
            property_ = db.session.get(Property, property_id)
            if not property_ or not property_.is_active:
                raise ValidationError("Property not found")
            if is_tenant and str(property_.current_tenant_id) != str(self.user_id):
                raise AuthorizationError("You can only create requests for your assigned property")

            requester_id = parse_uuid(self.user_id, "requestedBy")
            maintenance = MaintenanceRequest(
                property_id=property_.id,
                tenant_id=requester_id if is_tenant else None,
                requested_by_id=requester_id,
                title=title,
                description=description,
                category=category,
                priority=priority or MaintenancePriority.medium.value,
                status=MaintenanceStatus.pending.value,
                is_urgent=bool(is_urgent),
                created_by=str(self.user_id),
                updated_by=str(self.user_id),
            )
            db.session.add(maintenance)

        current_app.logger.info(
            f"Maintenance request {maintenance.id} ({maintenance.category}, {maintenance.priority}) "
            f"filed for property {maintenance.property_id} by {self.user_id}"
        )
        return jsonify({"message": "Maintenance request created successfully", "maintenance": maintenance.to_dict()}), 201

    # ---------------- UPDATE ----------------
    def update_request(self, request_id):
        for field in ("status", "assignedTo"):
            if field in self.data:
                raise ValidationError(f"{field} is changed through its own endpoint")

        with unit_of_work():
            maintenance = self._get(request_id)
            if not self.access.is_manager:
                if str(maintenance.requested_by_id) != str(self.user_id):
                    raise AuthorizationError("Access denied")
                restricted = [f for f in self.data if f not in TENANT_EDITABLE_MAINTENANCE_FIELDS]
                if restricted:
                    raise AuthorizationError(f"Tenants cannot change {', '.join(restricted)}")

            if "title" in self.data:
                maintenance.title = parse_text(self.data["title"], "title", required=True)
            if "description" in self.data:
                maintenance.description = parse_text(self.data["description"], "description", required=True)
            if "category" in self.data:
                maintenance.category = parse_choice(self.data["category"], "category", MaintenanceCategory, required=True)
            if "priority" in self.data:
                maintenance.priority = parse_choice(self.data["priority"], "priority", MaintenancePriority, required=True)
            if "isUrgent" in self.data:
                maintenance.is_urgent = bool(parse_bool(self.data["isUrgent"], "isUrgent"))
            if "estimatedCost" in self.data:
                maintenance.estimated_cost = parse_amount(self.data["estimatedCost"], "estimatedCost", required=True)
            if "actualCost" in self.data:
                maintenance.actual_cost = parse_amount(self.data["actualCost"], "actualCost", required=True)
            if "scheduledDate" in self.data:
                maintenance.scheduled_date = parse_datetime(self.data["scheduledDate"], "scheduledDate")
            if "completedDate" in self.data:
                maintenance.completed_date = parse_datetime(self.data["completedDate"], "completedDate")
            if "vendorInfo" in self.data:
                maintenance.vendor_info = parse_object(self.data["vendorInfo"], "vendorInfo") or {}
            if "tenantAccess" in self.data:
                access = dict(maintenance.tenant_access or {})
                access.update(parse_object(self.data["tenantAccess"], "tenantAccess") or {})
                maintenance.tenant_access = access

            maintenance.updated_by = str(self.user_id)

        return jsonify({"message": "Maintenance request updated successfully", "maintenance": maintenance.to_dict()}), 200

    # ---------------- NOTES ----------------
    def add_note(self, request_id):
        content = parse_text(self.data.get("content"), "Note content", required=True)

        with unit_of_work():
            maintenance = self._get(request_id)
            self._ensure_can_view(maintenance)
            maintenance.notes.append(MaintenanceNote(
                author_id=parse_uuid(self.user_id, "author"),
                content=content,
                created_by=str(self.user_id),
                updated_by=str(self.user_id),
            ))

        return jsonify({"message": "Note added successfully", "maintenance": maintenance.to_dict()}), 200

    # ---------------- ASSIGN ----------------
    def assign_request(self, request_id):
        assignee_id = parse_uuid(self.data.get("assignedTo"), "assignedTo", required=False)

        with unit_of_work():
            maintenance = self._get(request_id)
            if assignee_id:
                assignee = db.session.get(User, assignee_id)
                if not assignee or not assignee.is_active:
                    raise ValidationError("Invalid assignee")
            maintenance.assigned_to_id = assignee_id
            maintenance.updated_by = str(self.user_id)

        message = "Maintenance request assigned successfully" if assignee_id else "Assignment removed successfully"
        current_app.logger.info(f"Maintenance request {request_id} assigned to {assignee_id} by {self.user_id}")
        return jsonify({"message": message, "maintenance": maintenance.to_dict()}), 200

    # ---------------- STATUS ----------------
    def update_status(self, request_id):
        status = parse_choice(self.data.get("status"), "status", MaintenanceStatus, required=True)

        with unit_of_work():
            maintenance = self._get(request_id)
            if not self.access.is_manager and str(maintenance.assigned_to_id) != str(self.user_id):
                raise AuthorizationError("Access denied")

            if status == MaintenanceStatus.completed.value:
                if maintenance.status != MaintenanceStatus.completed.value:
                    maintenance.completed_date = datetime.now()
            else:
                maintenance.completed_date = None
            maintenance.status = status
            maintenance.updated_by = str(self.user_id)

        current_app.logger.info(f"Maintenance request {request_id} moved to {status} by {self.user_id}")
        return jsonify({"message": "Status updated successfully", "maintenance": maintenance.to_dict()}), 200
