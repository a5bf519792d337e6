from flask import Blueprint, jsonify, current_app
from flask_jwt_extended import jwt_required
from propdesk.errors import PropDeskError, ServerError
from propdesk.utils.controller import (
    PropertyController, TenantController, LeaseController, PaymentController, MaintenanceController,
)
from propdesk.utils.helper import manager_required, admin_required
from propdesk.tasks import expire_ended_leases, send_overdue_payment_reminders

api = Blueprint("api", __name__)


@api.route("/")
def health():
    return jsonify({"status": "ok", "message": "PropDesk API running"}), 200

# ---------------------
# Property Routes
# ---------------------

@api.route("/properties", methods=["POST"])
@jwt_required()
@manager_required
def add_property():
    try:
        properties = PropertyController()
        return properties.add_property()
    except PropDeskError:
        raise
    except Exception as e:
        current_app.logger.error(f"Error adding property: {e}", exc_info=True)
        raise ServerError("Server error creating property")


@api.route("/properties", methods=["GET"])
@jwt_required()
@manager_required
def get_properties():
    try:
        properties = PropertyController()
        return properties.get_all_properties()
    except PropDeskError:
        raise
    except Exception as e:
        current_app.logger.error(f"Error fetching properties: {e}", exc_info=True)
        raise ServerError("Server error fetching properties")


@api.route("/properties/<uuid:property_id>", methods=["GET"])
@jwt_required()
@manager_required
def property_detail(property_id):
    try:
        properties = PropertyController()
        return properties.get_property_detail(property_id)
    except PropDeskError:
        raise
    except Exception as e:
        current_app.logger.error(f"Error fetching property {property_id}: {e}", exc_info=True)
        raise ServerError("Server error fetching property")


@api.route("/properties/<uuid:property_id>", methods=["PUT"])
@jwt_required()
@manager_required
def update_property(property_id):
    try:
        properties = PropertyController()
        return properties.update_property(property_id)
    except PropDeskError:
        raise
    except Exception as e:
        current_app.logger.error(f"Error updating property {property_id}: {e}", exc_info=True)
        raise ServerError("Server error updating property")


@api.route("/properties/<uuid:property_id>", methods=["DELETE"])
@jwt_required()
@admin_required
def delete_property(property_id):
    try:
        properties = PropertyController()
        return properties.delete_property(property_id)
    except PropDeskError:
        raise
    except Exception as e:
        current_app.logger.error(f"Error deleting property {property_id}: {e}", exc_info=True)
        raise ServerError("Server error deleting property")

# ---------------------
# Tenant Routes
# ---------------------

@api.route("/tenants", methods=["POST"])
@jwt_required()
@manager_required
def add_tenant():
    try:
        tenants = TenantController()
        return tenants.add_tenant()
    except PropDeskError:
        raise
    except Exception as e:
        current_app.logger.error(f"Error adding tenant: {e}", exc_info=True)
        raise ServerError("Server error creating tenant")


@api.route("/tenants", methods=["GET"])
@jwt_required()
@manager_required
def get_tenants():
    try:
        tenants = TenantController()
        return tenants.get_all_tenants()
    except PropDeskError:
        raise
    except Exception as e:
        current_app.logger.error(f"Error fetching tenants: {e}", exc_info=True)
        raise ServerError("Server error fetching tenants")


@api.route("/tenants/<uuid:tenant_id>", methods=["GET"])
@jwt_required()
def tenant_detail(tenant_id):
    try:
        tenants = TenantController()
        return tenants.get_tenant_detail(tenant_id)
    except PropDeskError:
        raise
    except Exception as e:
        current_app.logger.error(f"Error fetching tenant {tenant_id}: {e}", exc_info=True)
        raise ServerError("Server error fetching tenant")


@api.route("/tenants/<uuid:tenant_id>", methods=["PUT"])
@jwt_required()
def update_tenant(tenant_id):
    try:
        tenants = TenantController()
        return tenants.update_tenant(tenant_id)
    except PropDeskError:
        raise
    except Exception as e:
        current_app.logger.error(f"Error updating tenant {tenant_id}: {e}", exc_info=True)
        raise ServerError("Server error updating tenant")


@api.route("/tenants/<uuid:tenant_id>", methods=["DELETE"])
@jwt_required()
@manager_required
def delete_tenant(tenant_id):
    try:
        tenants = TenantController()
        return tenants.delete_tenant(tenant_id)
    except PropDeskError:
        raise
    except Exception as e:
        current_app.logger.error(f"Error deleting tenant {tenant_id}: {e}", exc_info=True)
        raise ServerError("Server error deleting tenant")


@api.route("/tenants/<uuid:tenant_id>/activate", methods=["PUT"])
@jwt_required()
@admin_required
def activate_tenant(tenant_id):
    try:
        tenants = TenantController()
        return tenants.activate_tenant(tenant_id)
    except PropDeskError:
        raise
    except Exception as e:
        current_app.logger.error(f"Error activating tenant {tenant_id}: {e}", exc_info=True)
        raise ServerError("Server error activating tenant")

# ---------------------
# Lease Routes
# ---------------------

@api.route("/leases", methods=["POST"])
@jwt_required()
@manager_required
def create_lease():
    try:
        leases = LeaseController()
        return leases.add_lease()
    except PropDeskError:
        raise
    except Exception as e:
        current_app.logger.error(f"Error creating lease: {e}", exc_info=True)
        raise ServerError("Server error creating lease")


@api.route("/leases", methods=["GET"])
@jwt_required()
@manager_required
def get_all_leases():
    try:
        leases = LeaseController()
        return leases.get_all_leases()
    except PropDeskError:
        raise
    except Exception as e:
        current_app.logger.error(f"Error fetching leases: {e}", exc_info=True)
        raise ServerError("Server error fetching leases")


@api.route("/leases/expiring/soon", methods=["GET"])
@jwt_required()
@manager_required
def get_expiring_leases():
    try:
        leases = LeaseController()
        return leases.get_expiring_leases()
    except PropDeskError:
        raise
    except Exception as e:
        current_app.logger.error(f"Error fetching expiring leases: {e}", exc_info=True)
        raise ServerError("Server error fetching expiring leases")


@api.route("/leases/<uuid:lease_id>", methods=["GET"])
@jwt_required()
def get_lease_detail(lease_id):
    try:
        leases = LeaseController()
        return leases.get_lease_detail(lease_id)
    except PropDeskError:
        raise
    except Exception as e:
        current_app.logger.error(f"Error fetching lease {lease_id}: {e}", exc_info=True)
        raise ServerError("Server error fetching lease")


@api.route("/leases/<uuid:lease_id>", methods=["PUT"])
@jwt_required()
@manager_required
def update_lease(lease_id):
    try:
        leases = LeaseController()
        return leases.update_lease(lease_id)
    except PropDeskError:
        raise
    except Exception as e:
        current_app.logger.error(f"Error updating lease {lease_id}: {e}", exc_info=True)
        raise ServerError("Server error updating lease")


@api.route("/leases/<uuid:lease_id>/activate", methods=["PUT"])
@jwt_required()
@manager_required
def activate_lease(lease_id):
    try:
        leases = LeaseController()
        return leases.activate_lease(lease_id)
    except PropDeskError:
        raise
    except Exception as e:
        current_app.logger.error(f"Error activating lease {lease_id}: {e}", exc_info=True)
        raise ServerError("Server error activating lease")


@api.route("/leases/<uuid:lease_id>/terminate", methods=["PUT"])
@jwt_required()
@manager_required
def terminate_lease(lease_id):
    try:
        leases = LeaseController()
        return leases.terminate_lease(lease_id)
    except PropDeskError:
        raise
    except Exception as e:
        current_app.logger.error(f"Error terminating lease {lease_id}: {e}", exc_info=True)
        raise ServerError("Server error terminating lease")


@api.route("/leases/<uuid:lease_id>/expire", methods=["PUT"])
@jwt_required()
@manager_required
def expire_lease(lease_id):
    try:
        leases = LeaseController()
        return leases.expire_lease(lease_id)
    except PropDeskError:
        raise
    except Exception as e:
        current_app.logger.error(f"Error expiring lease {lease_id}: {e}", exc_info=True)
        raise ServerError("Server error expiring lease")


@api.route("/leases/<uuid:lease_id>/renew", methods=["PUT"])
@jwt_required()
@manager_required
def renew_lease(lease_id):
    try:
        leases = LeaseController()
        return leases.renew_lease(lease_id)
    except PropDeskError:
        raise
    except Exception as e:
        current_app.logger.error(f"Error renewing lease {lease_id}: {e}", exc_info=True)
        raise ServerError("Server error renewing lease")


@api.route("/leases/<uuid:lease_id>", methods=["DELETE"])
@jwt_required()
@manager_required
def delete_lease(lease_id):
    try:
        leases = LeaseController()
        return leases.delete_lease(lease_id)
    except PropDeskError:
        raise
    except Exception as e:
        current_app.logger.error(f"Error deleting lease {lease_id}: {e}", exc_info=True)
        raise ServerError("Server error deleting lease")

# ---------------------
# Payments Routes
# ---------------------

@api.route("/payments", methods=["POST"])
@jwt_required()
@manager_required
def add_payment():
    try:
        payments = PaymentController()
        return payments.add_payment()
    except PropDeskError:
        raise
    except Exception as e:
        current_app.logger.error(f"Error in add_payment: {e}", exc_info=True)
        raise ServerError("Server error creating payment")


@api.route("/payments", methods=["GET"])
@jwt_required()
@manager_required
def get_payments():
    try:
        payments = PaymentController()
        return payments.get_payments()
    except PropDeskError:
        raise
    except Exception as e:
        current_app.logger.error(f"Error in get_payments: {e}", exc_info=True)
        raise ServerError("Server error fetching payments")


@api.route("/payments/overdue/list", methods=["GET"])
@jwt_required()
@manager_required
def get_overdue_payments():
    try:
        payments = PaymentController()
        return payments.get_overdue_payments()
    except PropDeskError:
        raise
    except Exception as e:
        current_app.logger.error(f"Error in get_overdue_payments: {e}", exc_info=True)
        raise ServerError("Server error fetching overdue payments")


@api.route("/payments/tenant/<uuid:tenant_id>", methods=["GET"])
@jwt_required()
def get_tenant_payments(tenant_id):
    try:
        payments = PaymentController()
        return payments.get_tenant_payments(tenant_id)
    except PropDeskError:
        raise
    except Exception as e:
        current_app.logger.error(f"Error in get_tenant_payments (tenant: {tenant_id}): {e}", exc_info=True)
        raise ServerError("Server error fetching tenant payments")


@api.route("/payments/<uuid:payment_id>", methods=["GET"])
@jwt_required()
def get_payment_detail(payment_id):
    try:
        payments = PaymentController()
        return payments.get_payment_detail(payment_id)
    except PropDeskError:
        raise
    except Exception as e:
        current_app.logger.error(f"Error in get_payment_detail (ID: {payment_id}): {e}", exc_info=True)
        raise ServerError("Server error fetching payment")


@api.route("/payments/<uuid:payment_id>", methods=["PUT"])
@jwt_required()
@manager_required
def update_payment(payment_id):
    try:
        payments = PaymentController()
        return payments.update_payment(payment_id)
    except PropDeskError:
        raise
    except Exception as e:
        current_app.logger.error(f"Error in update_payment (ID: {payment_id}): {e}", exc_info=True)
        raise ServerError("Server error updating payment")


@api.route("/payments/<uuid:payment_id>/pay", methods=["PUT"])
@jwt_required()
@manager_required
def pay_payment(payment_id):
    try:
        payments = PaymentController()
        return payments.pay(payment_id)
    except PropDeskError:
        raise
    except Exception as e:
        current_app.logger.error(f"Error in pay_payment (ID: {payment_id}): {e}", exc_info=True)
        raise ServerError("Server error processing payment")


@api.route("/payments/<uuid:payment_id>", methods=["DELETE"])
@jwt_required()
@manager_required
def delete_payment(payment_id):
    try:
        payments = PaymentController()
        return payments.delete_payment(payment_id)
    except PropDeskError:
        raise
    except Exception as e:
        current_app.logger.error(f"Error in delete_payment (ID: {payment_id}): {e}", exc_info=True)
        raise ServerError("Server error deleting payment")

# ---------------------
# Maintenance Routes
# ---------------------

@api.route("/maintenance", methods=["GET"])
@jwt_required()
def get_maintenance_requests():
    try:
        maintenance = MaintenanceController()
        return maintenance.get_all_requests()
    except PropDeskError:
        raise
    except Exception as e:
        current_app.logger.error(f"Error fetching maintenance requests: {e}", exc_info=True)
        raise ServerError("Server error fetching maintenance requests")


@api.route("/maintenance/<uuid:request_id>", methods=["GET"])
@jwt_required()
def maintenance_request_detail(request_id):
    try:
        maintenance = MaintenanceController()
        return maintenance.get_request_detail(request_id)
    except PropDeskError:
        raise
    except Exception as e:
        current_app.logger.error(f"Error fetching maintenance request {request_id}: {e}", exc_info=True)
        raise ServerError("Server error fetching maintenance request")


@api.route("/maintenance", methods=["POST"])
@jwt_required()
def add_maintenance_request():
    try:
        maintenance = MaintenanceController()
        return maintenance.add_request()
    except PropDeskError:
        raise
    except Exception as e:
        current_app.logger.error(f"Error creating maintenance request: {e}", exc_info=True)
        raise ServerError("Server error creating maintenance request")


@api.route("/maintenance/<uuid:request_id>", methods=["PUT"])
@jwt_required()
def update_maintenance_request(request_id):
    try:
        maintenance = MaintenanceController()
        return maintenance.update_request(request_id)
    except PropDeskError:
        raise
    except Exception as e:
        current_app.logger.error(f"Error updating maintenance request {request_id}: {e}", exc_info=True)
        raise ServerError("Server error updating maintenance request")


@api.route("/maintenance/<uuid:request_id>/notes", methods=["POST"])
@jwt_required()
def add_maintenance_note(request_id):
    try:
        maintenance = MaintenanceController()
        return maintenance.add_note(request_id)
    except PropDeskError:
        raise
    except Exception as e:
        current_app.logger.error(f"Error adding note to maintenance request {request_id}: {e}", exc_info=True)
        raise ServerError("Server error adding note")


@api.route("/maintenance/<uuid:request_id>/assign", methods=["PUT"])
@jwt_required()
@manager_required
def assign_maintenance_request(request_id):
    try:
        maintenance = MaintenanceController()
        return maintenance.assign_request(request_id)
    except PropDeskError:
        raise
    except Exception as e:
        current_app.logger.error(f"Error assigning maintenance request {request_id}: {e}", exc_info=True)
        raise ServerError("Server error assigning maintenance request")


@api.route("/maintenance/<uuid:request_id>/status", methods=["PUT"])
@jwt_required()
def update_maintenance_status(request_id):
    try:
        maintenance = MaintenanceController()
        return maintenance.update_status(request_id)
    except PropDeskError:
        raise
    except Exception as e:
        current_app.logger.error(f"Error updating status of maintenance request {request_id}: {e}", exc_info=True)
        raise ServerError("Server error updating status")

# ---------------------
# Scheduled Job Triggers
# ---------------------

@api.route("/payments/overdue/remind", methods=["POST"])
@jwt_required()
@manager_required
def trigger_overdue_reminders():
    """Manually queue today's overdue payment reminders."""
    try:
        task = send_overdue_payment_reminders.delay()
        return jsonify({"message": "Reminder task queued successfully", "task_id": task.id}), 202
    except Exception as e:
        current_app.logger.error(f"Error triggering reminder task: {e}", exc_info=True)
        raise ServerError("Failed to trigger reminder task")


@api.route("/leases/expire-ended", methods=["POST"])
@jwt_required()
@admin_required
def trigger_lease_expiry():
    """Manually queue the expiry of leases past their end date."""
    try:
        task = expire_ended_leases.delay()
        return jsonify({"message": "Lease expiry task queued successfully", "task_id": task.id}), 202
    except Exception as e:
        current_app.logger.error(f"Error triggering lease expiry task: {e}", exc_info=True)
        raise ServerError("Failed to trigger lease expiry task")
