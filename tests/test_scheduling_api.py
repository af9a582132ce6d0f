"""
HTTP tests for the scheduling router, module gating and the error envelope.

Authentication, module lookup and the service are replaced through FastAPI
dependency overrides; the client is not entered as a context manager, so the
startup hook (migrations, seeding) never runs.
"""

from datetime import timedelta
from types import SimpleNamespace
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from conftest import NOW, TENANT_ID, FakeModuleRepository, make_user
from workforce_api.api.main import app
from workforce_api.core.deps import (
    get_current_active_user,
    get_module_repository,
    get_scheduling_service,
)
from workforce_api.core.enums import ScheduleStatus, ShiftStatus

HEADERS = {"X-Tenant-ID": str(TENANT_ID)}
TOMORROW = NOW + timedelta(days=1)


@pytest.fixture
def modules():
    return FakeModuleRepository(installed=True)


@pytest.fixture
def current_user():
    return make_user()


@pytest.fixture
def client(service, modules, current_user):
    app.dependency_overrides[get_current_active_user] = lambda: current_user
    app.dependency_overrides[get_module_repository] = lambda: modules
    app.dependency_overrides[get_scheduling_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestModuleGate:
    def test_missing_module_returns_error_envelope(self, client, modules):
        modules.installed = False
        response = client.get(
            "/api/v1/scheduling/me/schedule",
            headers={**HEADERS, "X-Correlation-ID": "corr-123"},
        )

        assert response.status_code == 403
        body = response.json()
        assert body["status"] == 403
        assert body["error"]["type"] == "MODULE_NOT_INSTALLED"
        assert body["error"]["details"]["module"] == "scheduling"
        assert body["correlation_id"] == "corr-123"
        assert body["tenant_id"] == str(TENANT_ID)
        assert body["path"] == "/api/v1/scheduling/me/schedule"
        assert body["method"] == "GET"
        assert response.headers["X-Correlation-ID"] == "corr-123"

    def test_installed_module_passes(self, client, store, current_user):
        store.add_employee(user_id=current_user.id)
        response = client.get("/api/v1/scheduling/me/schedule", headers=HEADERS)
        assert response.status_code == 200
        assert response.json() == []


class TestRoleGates:
    def test_employee_cannot_use_admin_routes(self, client):
        response = client.get("/api/v1/scheduling/admin/schedules", headers=HEADERS)
        assert response.status_code == 403
        assert response.json()["error"]["type"] == "http_error"

    def test_employee_cannot_use_team_routes(self, client):
        response = client.get("/api/v1/scheduling/team/swaps", headers=HEADERS)
        assert response.status_code == 403

    def test_manager_can_use_team_routes(self, client, current_user):
        current_user.role_names = ["manager"]
        response = client.get("/api/v1/scheduling/team/swaps", headers=HEADERS)
        assert response.status_code == 200

    def test_permission_code_grants_admin_routes(self, client, current_user):
        current_user.roles = [
            SimpleNamespace(name="planner", permissions=[SimpleNamespace(code="scheduling:admin")])
        ]
        response = client.get("/api/v1/scheduling/admin/schedules", headers=HEADERS)
        assert response.status_code == 200


class TestAdminSchedules:
    @pytest.fixture(autouse=True)
    def _admin(self, current_user):
        current_user.role_names = ["admin"]

    def test_create_and_publish(self, client, store):
        created = client.post(
            "/api/v1/scheduling/admin/schedules",
            json={"name": "Week 11", "start_date": "2026-03-09", "end_date": "2026-03-15"},
            headers=HEADERS,
        )
        assert created.status_code == 201
        schedule_id = created.json()["id"]
        assert created.json()["status"] == ScheduleStatus.DRAFT.value

        empty = client.post(f"/api/v1/scheduling/admin/schedules/{schedule_id}/publish", headers=HEADERS)
        assert empty.status_code == 400
        assert empty.json()["error"]["message"] == "Cannot publish empty schedule"

        shift = client.post(
            "/api/v1/scheduling/admin/shifts",
            json={
                "schedule_id": schedule_id,
                "title": "Open",
                "start_time": "2026-03-09T09:00:00Z",
                "end_time": "2026-03-09T17:00:00Z",
            },
            headers=HEADERS,
        )
        assert shift.status_code == 201
        assert shift.json()["is_open_shift"] is True

        published = client.post(f"/api/v1/scheduling/admin/schedules/{schedule_id}/publish", headers=HEADERS)
        assert published.status_code == 200
        assert published.json()["status"] == ScheduleStatus.PUBLISHED.value

    def test_reversed_dates_are_unprocessable(self, client):
        response = client.post(
            "/api/v1/scheduling/admin/schedules",
            json={"name": "Bad", "start_date": "2026-03-15", "end_date": "2026-03-09"},
            headers=HEADERS,
        )
        assert response.status_code == 422
        assert response.json()["error"]["type"] == "validation_error"

    def test_unknown_schedule_is_not_found(self, client):
        response = client.get(f"/api/v1/scheduling/admin/schedules/{uuid4()}", headers=HEADERS)
        assert response.status_code == 404
        assert response.json()["error"]["type"] == "not_found"

    def test_delete_schedule(self, client, store):
        schedule = store.add_schedule(status=ScheduleStatus.DRAFT.value)
        response = client.delete(f"/api/v1/scheduling/admin/schedules/{schedule.id}", headers=HEADERS)
        assert response.status_code == 204
        assert schedule.id not in store.schedules


    def test_clone_schedule(self, client, store):
        source = store.add_schedule()
        store.add_shift(source, TOMORROW)

        response = client.post(
            f"/api/v1/scheduling/admin/schedules/{source.id}/clone",
            json={"name": "Week 11", "start_date": "2026-03-09", "end_date": "2026-03-15"},
            headers=HEADERS,
        )
        assert response.status_code == 201
        body = response.json()
        assert body["status"] == ScheduleStatus.DRAFT.value
        assert body["start_date"] == "2026-03-09"
        clone_shifts = client.get(
            "/api/v1/scheduling/admin/shifts", params={"schedule_id": body["id"]}, headers=HEADERS
        )
        assert len(clone_shifts.json()) == 1

    def test_patching_assigned_shift_to_open_is_rejected(self, client, store):
        schedule = store.add_schedule()
        shift = store.add_shift(schedule, TOMORROW, employee=store.add_employee())

        response = client.patch(
            f"/api/v1/scheduling/admin/shifts/{shift.id}", json={"status": "OPEN"}, headers=HEADERS
        )
        assert response.status_code == 400
        assert response.json()["error"]["details"]["field"] == "status"


class TestStationEndpoints:
    @pytest.fixture(autouse=True)
    def _admin(self, current_user):
        current_user.role_names = ["admin"]

    def test_station_crud(self, client, store):
        created = client.post(
            "/api/v1/scheduling/admin/stations",
            json={"name": "Grill", "station_type": "BOH", "default_start_time": "6:00"},
            headers=HEADERS,
        )
        assert created.status_code == 201
        station_id = created.json()["id"]
        assert created.json()["default_start_time"] == "06:00"

        duplicate = client.post(
            "/api/v1/scheduling/admin/stations", json={"name": "Grill", "station_type": "BOH"}, headers=HEADERS
        )
        assert duplicate.status_code == 409

        patched = client.patch(
            f"/api/v1/scheduling/admin/stations/{station_id}", json={"priority": 5}, headers=HEADERS
        )
        assert patched.status_code == 200
        assert patched.json()["priority"] == 5

        listed = client.get("/api/v1/scheduling/admin/stations", headers=HEADERS)
        assert [s["name"] for s in listed.json()] == ["Grill"]

        deleted = client.delete(f"/api/v1/scheduling/admin/stations/{station_id}", headers=HEADERS)
        assert deleted.status_code == 204
        assert store.stations == {}

    def test_station_in_use_cannot_be_deleted(self, client, store):
        station = store.add_station("Grill")
        store.add_shift(store.add_schedule(), TOMORROW, station=station)

        response = client.delete(f"/api/v1/scheduling/admin/stations/{station.id}", headers=HEADERS)
        assert response.status_code == 409
        assert response.json()["error"]["details"]["shift_count"] == 1

    def test_employee_cannot_manage_stations(self, client, current_user):
        current_user.role_names = []
        response = client.get("/api/v1/scheduling/admin/stations", headers=HEADERS)
        assert response.status_code == 403


class TestTeamAvailabilityEndpoint:
    def test_manager_sees_active_team_availability(self, client, store, current_user):
        current_user.role_names = ["manager"]
        employee = store.add_employee()
        entry = store.add_availability(employee, "WEDNESDAY")
        store.add_availability(store.add_employee(active=False), "WEDNESDAY")

        response = client.get(
            "/api/v1/scheduling/team/availability", params={"day_of_week": "wednesday"}, headers=HEADERS
        )
        assert response.status_code == 200
        assert [a["id"] for a in response.json()] == [str(entry.id)]

    def test_employee_cannot_view_team_availability(self, client):
        response = client.get("/api/v1/scheduling/team/availability", headers=HEADERS)
        assert response.status_code == 403


class TestClaimEndpoint:
    def test_claim_open_shift(self, client, store, current_user, broadcaster):
        schedule = store.add_schedule()
        employee = store.add_employee(user_id=current_user.id)
        shift = store.add_shift(schedule, TOMORROW)

        response = client.post(f"/api/v1/scheduling/me/shifts/{shift.id}/claim", headers=HEADERS)

        assert response.status_code == 200
        body = response.json()
        assert body["employee_position_id"] == str(employee.id)
        assert body["status"] == ShiftStatus.SCHEDULED.value
        assert body["is_open_shift"] is False
        assert broadcaster.names == ["shift.claimed"]

    def test_claim_twice_conflicts(self, client, store, current_user):
        schedule = store.add_schedule()
        store.add_employee(user_id=current_user.id)
        shift = store.add_shift(schedule, TOMORROW, employee=store.add_employee())

        response = client.post(f"/api/v1/scheduling/me/shifts/{shift.id}/claim", headers=HEADERS)
        assert response.status_code == 409
        assert response.json()["error"]["type"] == "conflict"

    def test_claim_without_position(self, client, store):
        schedule = store.add_schedule()
        shift = store.add_shift(schedule, TOMORROW)

        response = client.post(f"/api/v1/scheduling/me/shifts/{shift.id}/claim", headers=HEADERS)
        assert response.status_code == 404

    def test_open_shift_listing(self, client, store, current_user):
        schedule = store.add_schedule()
        store.add_employee(user_id=current_user.id)
        shift = store.add_shift(schedule, TOMORROW)

        response = client.get("/api/v1/scheduling/me/open-shifts", headers=HEADERS)
        assert response.status_code == 200
        assert [s["id"] for s in response.json()] == [str(shift.id)]


class TestAvailabilityEndpoint:
    def test_bad_day_is_a_400_naming_the_field(self, client, store, current_user):
        store.add_employee(user_id=current_user.id)
        response = client.post(
            "/api/v1/scheduling/me/availability",
            json={"day_of_week": "FUNDAY", "start_time": "09:00", "end_time": "17:00"},
            headers=HEADERS,
        )
        assert response.status_code == 400
        assert response.json()["error"]["details"]["field"] == "day_of_week"

    def test_create_availability(self, client, store, current_user):
        store.add_employee(user_id=current_user.id)
        response = client.post(
            "/api/v1/scheduling/me/availability",
            json={"day_of_week": "tuesday", "start_time": "7:30", "end_time": "15:00"},
            headers=HEADERS,
        )
        assert response.status_code == 201
        body = response.json()
        assert body["day_of_week"] == "TUESDAY"
        assert body["start_time"] == "07:30"


class TestSystemEndpoints:
    def test_health(self):
        response = TestClient(app).get("/api/v1/health")
        assert response.status_code == 200
        assert response.json()["message"] == "Healthy"
        assert response.headers["X-Correlation-ID"]

    def test_missing_tenant_header(self):
        response = TestClient(app).get("/api/v1/health/tenant")
        assert response.status_code == 400
        assert response.json()["error"]["message"] == "X-Tenant-ID header is required."

    def test_invalid_tenant_header(self):
        response = TestClient(app).get("/api/v1/health/tenant", headers={"X-Tenant-ID": "not-a-uuid"})
        assert response.status_code == 400

    def test_websocket_info_lists_scheduling_socket(self):
        response = TestClient(app).get("/api/v1/websocket-info")
        assert response.status_code == 200
        paths = [e["path"] for e in response.json()["endpoints"]]
        assert paths == ["/ws/scheduling"]
