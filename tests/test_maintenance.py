"""Tests for maintenance requests: filing, visibility, notes, assignment and status."""

import uuid
from datetime import datetime, timedelta

import pytest

from propdesk import db
from propdesk.models import MaintenanceRequest, UserRole


@pytest.fixture
def unit(make_property, make_lease, manager, tenant):
    """A property managed by `manager` and occupied by `tenant`."""
    property_ = make_property(managed_by_id=manager.id)
    make_lease(property_id=property_.id)
    return property_


def request_payload(property_, **overrides):
    payload = {
        "propertyId": str(property_.id),
        "title": "Leaking kitchen tap",
        "description": "Drips constantly even when fully closed",
        "category": "plumbing",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def filed(client, unit, tenant, headers_for):
    """A request filed by the occupying tenant; returns its JSON."""
    response = client.post("/maintenance", json=request_payload(unit), headers=headers_for(tenant))
    assert response.status_code == 201
    return response.get_json()["maintenance"]


class TestCreateRequest:

    def test_tenant_files_for_own_unit(self, client, unit, tenant, headers_for) -> None:
        response = client.post(
            "/maintenance", json=request_payload(unit, isUrgent=True), headers=headers_for(tenant)
        )

        assert response.status_code == 201
        body = response.get_json()["maintenance"]
        assert body["status"] == "pending"
        assert body["priority"] == "medium"
        assert body["isUrgent"] is True
        assert body["tenant"]["id"] == str(tenant.id)
        assert body["requestedBy"]["id"] == str(tenant.id)
        assert body["property"]["id"] == str(unit.id)
        assert body["tenantAccess"] == {"required": True, "scheduledTime": None, "confirmed": False}

    def test_tenant_cannot_file_for_another_unit(self, client, unit, make_property, tenant, headers_for) -> None:
        elsewhere = make_property()

        response = client.post("/maintenance", json=request_payload(elsewhere), headers=headers_for(tenant))

        assert response.status_code == 403
        assert response.get_json()["message"] == "You can only create requests for your assigned property"
        assert MaintenanceRequest.query.count() == 0

    def test_manager_files_without_tenant(self, client, unit, manager_headers, manager) -> None:
        response = client.post("/maintenance", json=request_payload(unit, priority="high"), headers=manager_headers)

        assert response.status_code == 201
        body = response.get_json()["maintenance"]
        assert body["tenant"] is None
        assert body["requestedBy"]["id"] == str(manager.id)
        assert body["priority"] == "high"

    @pytest.mark.parametrize(
        "overrides, message",
        [
            ({"category": None}, "category is required"),
            ({"category": "gardening"}, "Invalid category"),
            ({"title": "   "}, "title is required"),
            ({"description": 12}, "description must be a string"),
            ({"isUrgent": "maybe"}, "isUrgent must be true or false"),
            ({"propertyId": str(uuid.uuid4())}, "Property not found"),
        ],
    )
    def test_invalid_input(self, client, unit, manager_headers, overrides, message) -> None:
        response = client.post("/maintenance", json=request_payload(unit, **overrides), headers=manager_headers)

        assert response.status_code == 400
        assert response.get_json()["message"].startswith(message)
        assert MaintenanceRequest.query.count() == 0

    def test_requires_token(self, client, unit) -> None:
        response = client.post("/maintenance", json=request_payload(unit))
        assert response.status_code == 401


class TestVisibility:

    def test_list_is_scoped_by_role(
        self, client, filed, tenant, manager, admin, make_user, headers_for
    ) -> None:
        other_tenant = make_user(UserRole.tenant.value)
        other_manager = make_user(UserRole.property_manager.value)

        def total(user):
            response = client.get("/maintenance", headers=headers_for(user))
            assert response.status_code == 200
            return response.get_json()["total"]

        assert total(tenant) == 1
        assert total(other_tenant) == 0
        assert total(manager) == 1
        assert total(other_manager) == 0
        assert total(admin) == 1

    def test_list_filters(self, client, filed, admin_headers) -> None:
        response = client.get("/maintenance?category=plumbing&status=pending", headers=admin_headers)
        assert response.get_json()["total"] == 1

        response = client.get("/maintenance?priority=emergency", headers=admin_headers)
        assert response.get_json()["total"] == 0

        response = client.get("/maintenance?status=done", headers=admin_headers)
        assert response.status_code == 400

    def test_detail_for_owner_and_manager(self, client, filed, tenant, manager, make_user, headers_for) -> None:
        stranger = make_user(UserRole.tenant.value)
        url = f"/maintenance/{filed['id']}"

        assert client.get(url, headers=headers_for(tenant)).status_code == 200
        assert client.get(url, headers=headers_for(manager)).status_code == 200
        assert client.get(url, headers=headers_for(stranger)).status_code == 403

    def test_unknown_request(self, client, manager_headers) -> None:
        response = client.get(f"/maintenance/{uuid.uuid4()}", headers=manager_headers)
        assert response.status_code == 404
        assert response.get_json() == {"message": "Maintenance request not found"}


class TestUpdateRequest:

    def test_tenant_edits_description_fields(self, client, filed, tenant, headers_for) -> None:
        response = client.put(
            f"/maintenance/{filed['id']}",
            json={"title": "Tap replaced, still leaking", "tenantAccess": {"confirmed": True}},
            headers=headers_for(tenant),
        )

        assert response.status_code == 200
        body = response.get_json()["maintenance"]
        assert body["title"] == "Tap replaced, still leaking"
        assert body["tenantAccess"] == {"required": True, "scheduledTime": None, "confirmed": True}

    def test_tenant_cannot_set_costs(self, client, filed, tenant, headers_for) -> None:
        response = client.put(f"/maintenance/{filed['id']}", json={"actualCost": 10}, headers=headers_for(tenant))

        assert response.status_code == 403
        assert response.get_json()["message"] == "Tenants cannot change actualCost"

    def test_manager_sets_costs_and_schedule(self, client, filed, manager_headers) -> None:
        response = client.put(
            f"/maintenance/{filed['id']}",
            json={
                "estimatedCost": 120,
                "scheduledDate": "2024-05-02T09:30:00Z",
                "vendorInfo": {"name": "Ace Plumbing", "phone": "555-0199"},
            },
            headers=manager_headers,
        )

        assert response.status_code == 200
        body = response.get_json()["maintenance"]
        assert body["estimatedCost"] == 120.0
        assert body["scheduledDate"] == "2024-05-02T09:30:00"
        assert body["vendorInfo"]["name"] == "Ace Plumbing"

    @pytest.mark.parametrize("field", ["status", "assignedTo"])
    def test_status_and_assignment_have_own_endpoints(self, client, filed, manager_headers, field) -> None:
        response = client.put(f"/maintenance/{filed['id']}", json={field: "completed"}, headers=manager_headers)

        assert response.status_code == 400
        assert response.get_json()["message"] == f"{field} is changed through its own endpoint"

    def test_bad_schedule_date(self, client, filed, manager_headers) -> None:
        response = client.put(f"/maintenance/{filed['id']}", json={"scheduledDate": "soon"}, headers=manager_headers)
        assert response.status_code == 400


class TestNotes:

    def test_tenant_adds_note(self, client, filed, tenant, headers_for) -> None:
        response = client.post(
            f"/maintenance/{filed['id']}/notes", json={"content": "Available after 5pm"}, headers=headers_for(tenant)
        )

        assert response.status_code == 200
        notes = response.get_json()["maintenance"]["notes"]
        assert [n["content"] for n in notes] == ["Available after 5pm"]
        assert notes[0]["author"]["id"] == str(tenant.id)

    def test_empty_note(self, client, filed, manager_headers) -> None:
        response = client.post(f"/maintenance/{filed['id']}/notes", json={"content": "  "}, headers=manager_headers)

        assert response.status_code == 400
        assert response.get_json()["message"] == "Note content is required"

    def test_stranger_cannot_add_note(self, client, filed, make_user, headers_for) -> None:
        stranger = make_user(UserRole.tenant.value)
        response = client.post(
            f"/maintenance/{filed['id']}/notes", json={"content": "hello"}, headers=headers_for(stranger)
        )
        assert response.status_code == 403


class TestAssignAndStatus:

    def test_assign_and_complete(self, client, filed, manager_headers, make_user, headers_for) -> None:
        technician = make_user(UserRole.property_manager.value)

        response = client.put(
            f"/maintenance/{filed['id']}/assign", json={"assignedTo": str(technician.id)}, headers=manager_headers
        )
        assert response.status_code == 200
        assert response.get_json()["maintenance"]["assignedTo"]["id"] == str(technician.id)

        response = client.put(
            f"/maintenance/{filed['id']}/status", json={"status": "completed"}, headers=headers_for(technician)
        )
        assert response.status_code == 200
        body = response.get_json()["maintenance"]
        assert body["status"] == "completed"
        assert body["completedDate"] is not None

    def test_reopening_clears_completion(self, client, filed, manager_headers) -> None:
        url = f"/maintenance/{filed['id']}/status"
        client.put(url, json={"status": "completed"}, headers=manager_headers)

        response = client.put(url, json={"status": "in_progress"}, headers=manager_headers)

        assert response.status_code == 200
        assert response.get_json()["maintenance"]["completedDate"] is None

    def test_unassign(self, client, filed, manager_headers, manager) -> None:
        url = f"/maintenance/{filed['id']}/assign"
        client.put(url, json={"assignedTo": str(manager.id)}, headers=manager_headers)

        response = client.put(url, json={}, headers=manager_headers)

        assert response.get_json()["message"] == "Assignment removed successfully"
        assert response.get_json()["maintenance"]["assignedTo"] is None

    def test_unknown_assignee(self, client, filed, manager_headers) -> None:
        response = client.put(
            f"/maintenance/{filed['id']}/assign", json={"assignedTo": str(uuid.uuid4())}, headers=manager_headers
        )
        assert response.status_code == 400
        assert response.get_json()["message"] == "Invalid assignee"

    def test_tenant_cannot_assign_or_change_status(self, client, filed, tenant, headers_for) -> None:
        headers = headers_for(tenant)

        response = client.put(f"/maintenance/{filed['id']}/assign", json={"assignedTo": str(tenant.id)}, headers=headers)
        assert response.status_code == 403

        response = client.put(f"/maintenance/{filed['id']}/status", json={"status": "cancelled"}, headers=headers)
        assert response.status_code == 403

        db.session.expire_all()
        stored = db.session.get(MaintenanceRequest, uuid.UUID(filed["id"]))
        assert stored.status == "pending"
        assert stored.assigned_to_id is None

    def test_unknown_status(self, client, filed, manager_headers) -> None:
        response = client.put(f"/maintenance/{filed['id']}/status", json={"status": "done"}, headers=manager_headers)
        assert response.status_code == 400


class TestDaysSinceRequest:

    def test_counts_started_days(self) -> None:
        maintenance = MaintenanceRequest(created_date=datetime.now() - timedelta(days=2, hours=1))
        assert maintenance.days_since_request == 3

    def test_unsaved_request(self) -> None:
        assert MaintenanceRequest().days_since_request == 0
