"""Pytest configuration and fixtures."""

from datetime import date

import pytest
from flask_jwt_extended import create_access_token

from propdesk import create_app, db
from propdesk.config import TestConfig
from propdesk.models import Property, User, UserRole
from propdesk.utils.lifecycle import LeaseLifecycle


@pytest.fixture(scope="session")
def app():
    """One application for the whole run; Celery tasks bind to the first app created."""
    return create_app(TestConfig)


@pytest.fixture(autouse=True)
def database(app):
    """Fresh tables for every test, inside an application context."""
    with app.app_context():
        db.create_all()
        yield db
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user():
    counter = {"n": 0}

    def _make_user(role=UserRole.tenant.value, name=None, email=None, is_active=True):
        counter["n"] += 1
        user = User(
            name=name or f"{role.title()} {counter['n']}",
            email=email or f"{role}{counter['n']}@example.com",
            phone="555-0100",
            role=role,
            is_active=is_active,
        )
        db.session.add(user)
        db.session.commit()
        return user

    return _make_user


@pytest.fixture
def make_property():
    counter = {"n": 0}

    def _make_property(rent_amount=1000.0, security_deposit=1500.0, **kwargs):
        counter["n"] += 1
        property_ = Property(
            title=kwargs.pop("title", f"Unit {counter['n']}"),
            address=kwargs.pop("address", f"{counter['n']} Main St"),
            rent_amount=rent_amount,
            security_deposit=security_deposit,
            **kwargs,
        )
        db.session.add(property_)
        db.session.commit()
        return property_

    return _make_property


@pytest.fixture
def manager(make_user) -> User:
    return make_user(UserRole.property_manager.value)


@pytest.fixture
def admin(make_user) -> User:
    return make_user(UserRole.admin.value)


@pytest.fixture
def tenant(make_user) -> User:
    return make_user(UserRole.tenant.value)


@pytest.fixture
def rental(make_property) -> Property:
    return make_property()


@pytest.fixture
def lifecycle() -> LeaseLifecycle:
    return LeaseLifecycle(actor="test")


@pytest.fixture
def make_lease(lifecycle, rental, tenant):
    """Create a lease on the default rental for the default tenant."""

    def _make_lease(start_date=date(2024, 1, 15), end_date=date(2024, 6, 15), **kwargs):
        kwargs.setdefault("lease_terms", "Standard residential lease")
        return lifecycle.create_lease(
            property_id=kwargs.pop("property_id", rental.id),
            tenant_id=kwargs.pop("tenant_id", tenant.id),
            start_date=start_date,
            end_date=end_date,
            **kwargs,
        )

    return _make_lease


def auth_headers(user):
    token = create_access_token(identity=str(user.id), additional_claims={"role": user.role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def headers_for():
    return auth_headers


@pytest.fixture
def manager_headers(manager):
    return auth_headers(manager)


@pytest.fixture
def admin_headers(admin):
    return auth_headers(admin)


@pytest.fixture
def tenant_headers(tenant):
    return auth_headers(tenant)
