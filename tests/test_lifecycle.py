"""Tests for lease creation, status transitions and occupancy references."""

from datetime import date

import pytest

from propdesk import db
from propdesk.errors import LeaseStateError, NotFoundError, ValidationError
from propdesk.models import Lease, Payment, Property, PropertyStatus, User, UserRole
from propdesk.utils.lifecycle import LEASE_TRANSITIONS, find_overlapping_lease, transition


class TestCreateLease:

    def test_creates_pending_lease_with_schedule(self, make_lease, rental, tenant) -> None:
        lease = make_lease(payment_due_day=1, monthly_rent=1000.0)

        assert lease.status == "pending"
        payments = Payment.query.filter_by(lease_id=lease.id).order_by(Payment.due_date).all()
        assert [p.due_date for p in payments] == [
            date(2024, 2, 1), date(2024, 3, 1), date(2024, 4, 1), date(2024, 5, 1), date(2024, 6, 1),
        ]
        assert all(p.amount == 1000.0 and p.status == "pending" for p in payments)

    def test_sets_property_and_tenant_references(self, make_lease, rental, tenant) -> None:
        lease = make_lease()

        property_ = db.session.get(Property, rental.id)
        assert property_.current_lease_id == lease.id
        assert property_.current_tenant_id == tenant.id
        assert property_.status == PropertyStatus.occupied.value

        user = db.session.get(User, tenant.id)
        assert user.lease_id == lease.id
        assert user.property_id == rental.id

    def test_defaults_from_property_and_config(self, make_lease, rental) -> None:
        lease = make_lease()

        assert lease.monthly_rent == rental.rent_amount
        assert lease.security_deposit == rental.security_deposit
        assert lease.payment_due_day == 1
        assert lease.late_fee_amount == 50.0
        assert lease.late_fee_grace_days == 5

    def test_partial_late_fee_policy_is_completed_from_defaults(self, make_lease) -> None:
        lease = make_lease(late_fee={"amount": 75})
        assert lease.late_fee_amount == 75.0
        assert lease.late_fee_grace_days == 5

    def test_rejects_missing_property(self, lifecycle, tenant) -> None:
        import uuid
        with pytest.raises(ValidationError, match="Property not found"):
            lifecycle.create_lease(uuid.uuid4(), tenant.id, date(2024, 1, 1), date(2024, 2, 1), "terms")

    def test_rejects_inactive_property(self, lifecycle, make_property, tenant) -> None:
        property_ = make_property(is_active=False)
        with pytest.raises(ValidationError, match="Property not found"):
            lifecycle.create_lease(property_.id, tenant.id, date(2024, 1, 1), date(2024, 2, 1), "terms")

    def test_rejects_non_tenant_user(self, lifecycle, rental, make_user) -> None:
        manager = make_user(UserRole.property_manager.value)
        with pytest.raises(ValidationError, match="Invalid tenant"):
            lifecycle.create_lease(rental.id, manager.id, date(2024, 1, 1), date(2024, 2, 1), "terms")

    def test_rejects_end_before_start(self, make_lease) -> None:
        with pytest.raises(ValidationError):
            make_lease(start_date=date(2024, 6, 1), end_date=date(2024, 5, 1))

    @pytest.mark.parametrize("due_day", [0, 32])
    def test_rejects_due_day_out_of_range(self, make_lease, due_day) -> None:
        with pytest.raises(ValidationError):
            make_lease(payment_due_day=due_day)
        assert Lease.query.count() == 0

    def test_rejects_missing_terms(self, make_lease) -> None:
        with pytest.raises(ValidationError):
            make_lease(lease_terms="")


class TestOverlap:

    def test_overlapping_pending_lease_is_rejected(self, make_lease, make_user) -> None:
        make_lease(start_date=date(2024, 1, 1), end_date=date(2024, 12, 31))
        other = make_user(UserRole.tenant.value)

        with pytest.raises(ValidationError, match="overlapping"):
            make_lease(start_date=date(2024, 12, 31), end_date=date(2025, 6, 30), tenant_id=other.id)
        assert Lease.query.count() == 1

    def test_adjacent_lease_is_allowed(self, make_lease, make_user) -> None:
        make_lease(start_date=date(2024, 1, 1), end_date=date(2024, 12, 31))
        other = make_user(UserRole.tenant.value)

        lease = make_lease(start_date=date(2025, 1, 1), end_date=date(2025, 12, 31), tenant_id=other.id)
        assert lease.status == "pending"

    def test_terminated_lease_does_not_block(self, make_lease, lifecycle, make_user) -> None:
        first = make_lease(start_date=date(2024, 1, 1), end_date=date(2024, 12, 31))
        lifecycle.terminate_lease(first.id)
        other = make_user(UserRole.tenant.value)

        lease = make_lease(start_date=date(2024, 3, 1), end_date=date(2024, 9, 30), tenant_id=other.id)
        assert lease.id != first.id

    def test_other_property_is_independent(self, make_lease, make_property, make_user) -> None:
        make_lease(start_date=date(2024, 1, 1), end_date=date(2024, 12, 31))
        second = make_property()
        other = make_user(UserRole.tenant.value)

        make_lease(start_date=date(2024, 1, 1), end_date=date(2024, 12, 31),
                   property_id=second.id, tenant_id=other.id)
        assert find_overlapping_lease(second.id, date(2024, 6, 1), date(2024, 6, 2)) is not None


class TestTransitions:

    def test_table_has_no_exit_from_closed_states(self) -> None:
        assert LEASE_TRANSITIONS["terminated"] == set()
        assert LEASE_TRANSITIONS["renewed"] == set()

    def test_transition_rejects_unlisted_move(self) -> None:
        lease = Lease(status="terminated")
        with pytest.raises(LeaseStateError):
            transition(lease, "active")
        assert lease.status == "terminated"

    def test_activate_pending_lease(self, make_lease, lifecycle) -> None:
        lease = make_lease()
        assert lifecycle.activate_lease(lease.id).status == "active"

    def test_cannot_reactivate_terminated_lease(self, make_lease, lifecycle) -> None:
        lease = make_lease()
        lifecycle.terminate_lease(lease.id)

        with pytest.raises(LeaseStateError):
            lifecycle.activate_lease(lease.id)
        assert db.session.get(Lease, lease.id).status == "terminated"

    def test_cannot_expire_pending_lease(self, make_lease, lifecycle) -> None:
        lease = make_lease()
        with pytest.raises(LeaseStateError):
            lifecycle.expire_lease(lease.id)

    def test_unknown_lease(self, lifecycle) -> None:
        import uuid
        with pytest.raises(NotFoundError):
            lifecycle.activate_lease(uuid.uuid4())


class TestTerminate:

    def test_clears_references_and_keeps_pending_payments(self, make_lease, lifecycle, rental, tenant) -> None:
        lease = make_lease()
        lifecycle.activate_lease(lease.id)
        lifecycle.terminate_lease(lease.id)

        property_ = db.session.get(Property, rental.id)
        assert property_.current_lease_id is None
        assert property_.current_tenant_id is None
        assert property_.status == PropertyStatus.available.value

        user = db.session.get(User, tenant.id)
        assert user.lease_id is None
        assert user.property_id is None

        pending = Payment.query.filter_by(lease_id=lease.id, status="pending").count()
        assert pending == 5

    def test_expire_releases_property(self, make_lease, lifecycle, rental) -> None:
        lease = make_lease()
        lifecycle.activate_lease(lease.id)
        assert lifecycle.expire_lease(lease.id).status == "expired"
        assert db.session.get(Property, rental.id).status == PropertyStatus.available.value


class TestRenew:

    def test_successor_takes_over_occupancy(self, make_lease, lifecycle, rental, tenant) -> None:
        lease = make_lease(start_date=date(2024, 1, 1), end_date=date(2024, 12, 31), monthly_rent=1000.0)
        lifecycle.activate_lease(lease.id)

        successor = lifecycle.renew_lease(lease.id, end_date=date(2025, 12, 31), monthly_rent=1100.0)

        assert db.session.get(Lease, lease.id).status == "renewed"
        assert successor.status == "pending"
        assert successor.renewed_from_id == lease.id
        assert successor.start_date == date(2025, 1, 1)
        assert successor.monthly_rent == 1100.0
        assert successor.lease_terms == lease.lease_terms

        property_ = db.session.get(Property, rental.id)
        assert property_.current_lease_id == successor.id
        assert db.session.get(User, tenant.id).lease_id == successor.id
        assert Payment.query.filter_by(lease_id=successor.id).count() == 12

    def test_pending_lease_cannot_be_renewed(self, make_lease, lifecycle) -> None:
        lease = make_lease()
        with pytest.raises(LeaseStateError):
            lifecycle.renew_lease(lease.id, end_date=date(2025, 6, 15))


class TestDelete:

    def test_removes_lease_payments_and_references(self, make_lease, lifecycle, rental, tenant) -> None:
        lease = make_lease()
        lease_id = lease.id

        lifecycle.delete_lease(lease_id)

        assert db.session.get(Lease, lease_id) is None
        assert Payment.query.filter_by(lease_id=lease_id).count() == 0
        assert db.session.get(Property, rental.id).current_lease_id is None
        assert db.session.get(User, tenant.id).lease_id is None

    def test_delete_keeps_payments_of_other_leases(self, make_lease, lifecycle, make_user) -> None:
        first = make_lease(start_date=date(2024, 1, 1), end_date=date(2024, 3, 31))
        other = make_user(UserRole.tenant.value)
        second = make_lease(start_date=date(2024, 4, 1), end_date=date(2024, 6, 30), tenant_id=other.id)

        lifecycle.delete_lease(first.id)
        assert Payment.query.filter_by(lease_id=second.id).count() == 3


class TestAtomicity:

    def test_schedule_failure_rolls_back_everything(self, make_lease, monkeypatch, rental, tenant) -> None:
        def broken_schedule(lease):
            raise RuntimeError("schedule store unavailable")

        monkeypatch.setattr("propdesk.utils.lifecycle.generate_payment_schedule", broken_schedule)

        with pytest.raises(RuntimeError):
            make_lease()

        assert Lease.query.count() == 0
        assert Payment.query.count() == 0
        property_ = db.session.get(Property, rental.id)
        assert property_.current_lease_id is None
        assert property_.status == PropertyStatus.available.value
        assert db.session.get(User, tenant.id).lease_id is None


class TestUpdate:

    def test_edits_descriptive_fields(self, make_lease, lifecycle) -> None:
        lease = make_lease()

        updated = lifecycle.update_lease(
            lease.id, lease_terms="Revised terms", notes="Parking spot 4",
            utilities={"water": True}, pet_deposit=200.0, additional_charges=[{"name": "parking", "amount": 40}],
        )

        assert updated.lease_terms == "Revised terms"
        assert updated.notes == "Parking spot 4"
        assert updated.utilities == {"water": True}
        assert updated.pet_deposit == 200.0
        assert updated.additional_charges == [{"name": "parking", "amount": 40}]
        assert updated.status == "pending"
        assert updated.start_date == date(2024, 1, 15)

    def test_partial_late_fee_keeps_the_other_half(self, make_lease, lifecycle) -> None:
        lease = make_lease(late_fee={"amount": 80, "gracePeriod": 3})

        updated = lifecycle.update_lease(lease.id, late_fee={"gracePeriod": 10})
        assert (updated.late_fee_amount, updated.late_fee_grace_days) == (80.0, 10)

        updated = lifecycle.update_lease(lease.id, late_fee={"amount": 25})
        assert (updated.late_fee_amount, updated.late_fee_grace_days) == (25.0, 10)

    def test_grace_period_days_alias(self, make_lease, lifecycle) -> None:
        lease = make_lease()
        updated = lifecycle.update_lease(lease.id, late_fee={"gracePeriodDays": 7})
        assert updated.late_fee_grace_days == 7

    @pytest.mark.parametrize("late_fee", [5, "50", ["amount"], {"amount": -1}, {"gracePeriod": 2.5}])
    def test_rejects_malformed_late_fee(self, make_lease, lifecycle, late_fee) -> None:
        lease = make_lease()

        with pytest.raises(ValidationError):
            lifecycle.update_lease(lease.id, late_fee=late_fee)

        stored = db.session.get(Lease, lease.id)
        assert (stored.late_fee_amount, stored.late_fee_grace_days) == (50.0, 5)

    @pytest.mark.parametrize("lease_terms", ["", "   ", 123])
    def test_rejects_empty_or_non_text_terms(self, make_lease, lifecycle, lease_terms) -> None:
        lease = make_lease()

        with pytest.raises(ValidationError, match="leaseTerms cannot be empty"):
            lifecycle.update_lease(lease.id, lease_terms=lease_terms)
        assert db.session.get(Lease, lease.id).lease_terms == "Standard residential lease"

    def test_renewal_inherits_unspecified_late_fee_fields(self, make_lease, lifecycle) -> None:
        lease = make_lease(late_fee={"amount": 80, "gracePeriod": 3})
        lifecycle.activate_lease(lease.id)

        successor = lifecycle.renew_lease(lease.id, end_date=date(2024, 12, 15), late_fee={"amount": 90})
        assert (successor.late_fee_amount, successor.late_fee_grace_days) == (90.0, 3)

    def test_create_rejects_non_text_terms(self, make_lease) -> None:
        with pytest.raises(ValidationError, match="leaseTerms is required"):
            make_lease(lease_terms=123)
