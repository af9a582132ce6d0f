"""
Tests for the employee, module and settings layers used by business administration.
"""

from datetime import date
from types import SimpleNamespace
from uuid import uuid4

import pytest

from conftest import InMemoryStore, stamp
from workforce_api.core.errors import ConflictError, NotFoundError
from workforce_api.core.settings import AppSettings
from workforce_api.db.models.employees import EmployeePosition, Position
from workforce_api.db.models.tenancy import Module, ModuleInstallation
from workforce_api.schemas.employees import EmployeeAssign, PositionCreate
from workforce_api.services.employees import EmployeeService
from workforce_api.services.modules import BUILTIN_MODULES, ModuleService


class FakePositions:
    def __init__(self) -> None:
        self.items: dict = {}

    async def list(self, limit=200, offset=0):
        return list(self.items.values())[offset: offset + limit]

    async def get(self, position_id):
        return self.items.get(position_id)

    async def get_by_title(self, title):
        return next((p for p in self.items.values() if p.title == title), None)

    async def create(self, *, title, department=None, description=None):
        position = stamp(Position(title=title, department=department, description=description))
        self.items[position.id] = position
        return position


class FakeEmployees:
    def __init__(self, store: InMemoryStore) -> None:
        self.store = store

    async def list(self, active_only=True, limit=200, offset=0):
        return [e for e in self.store.employees.values() if e.active or not active_only]

    async def get(self, employee_position_id):
        return self.store.employees.get(employee_position_id)

    async def find_active(self, user_id, position_id):
        return next(
            (
                e for e in self.store.employees.values()
                if e.user_id == user_id and e.position_id == position_id and e.active
            ),
            None,
        )

    async def create(self, *, user_id, position_id, start_date=None):
        employee = stamp(EmployeePosition(user_id=user_id, position_id=position_id, active=True, start_date=start_date))
        self.store.employees[employee.id] = employee
        return employee

    async def deactivate(self, entity, end_date):
        entity.active = False
        entity.end_date = end_date
        return entity


class FakeUsers:
    def __init__(self, *user_ids) -> None:
        self.user_ids = set(user_ids)

    async def get_user_by_id(self, user_id):
        return SimpleNamespace(id=user_id) if user_id in self.user_ids else None


class FakeModules:
    def __init__(self) -> None:
        self.catalog: dict = {}
        self.installations: dict = {}

    async def get_by_key(self, key):
        return self.catalog.get(key)

    async def upsert_module(self, *, key, name, description=None, permissions=None, manifest=None):
        module = self.catalog.get(key) or stamp(Module(key=key, name=name))
        module.name = name
        module.description = description
        module.permissions = list(permissions or [])
        module.manifest = dict(manifest or {})
        self.catalog[key] = module
        return module

    async def list_catalog(self):
        return list(self.catalog.values())

    async def list_installations(self):
        return list(self.installations.values())

    async def get_installation(self, module_id):
        return self.installations.get(module_id)

    async def install(self, module):
        installation = self.installations.get(module.id) or stamp(ModuleInstallation(module_id=module.id))
        installation.enabled = True
        self.installations[module.id] = installation
        return installation

    async def set_enabled(self, installation, enabled):
        installation.enabled = enabled
        return installation


class TestEmployeeService:
    @pytest.fixture
    def user_id(self):
        return uuid4()

    @pytest.fixture
    def employee_service(self, store, user_id):
        return EmployeeService(None, positions=FakePositions(), employees=FakeEmployees(store), users=FakeUsers(user_id))

    async def test_position_titles_are_unique(self, employee_service):
        await employee_service.create_position(PositionCreate(title="Cashier"))
        with pytest.raises(ConflictError):
            await employee_service.create_position(PositionCreate(title="Cashier"))

    async def test_assign_and_reassign(self, employee_service, user_id):
        position = await employee_service.create_position(PositionCreate(title="Line Cook", department="Kitchen"))

        employee = await employee_service.assign(EmployeeAssign(user_id=user_id, position_id=position.id))
        assert employee.active is True

        with pytest.raises(ConflictError):
            await employee_service.assign(EmployeeAssign(user_id=user_id, position_id=position.id))

    async def test_assign_unknown_user_or_position(self, employee_service, user_id):
        position = await employee_service.create_position(PositionCreate(title="Host"))
        with pytest.raises(NotFoundError) as exc:
            await employee_service.assign(EmployeeAssign(user_id=uuid4(), position_id=position.id))
        assert exc.value.details["entity"] == "User"

        with pytest.raises(NotFoundError) as exc:
            await employee_service.assign(EmployeeAssign(user_id=user_id, position_id=uuid4()))
        assert exc.value.details["entity"] == "Position"

    async def test_deactivate_keeps_history(self, employee_service, store, user_id):
        employee = store.add_employee(user_id=user_id)

        result = await employee_service.deactivate(employee.id, date(2026, 3, 1))
        assert result.active is False
        assert result.end_date == date(2026, 3, 1)
        assert await employee_service.list_employees() == []
        assert await employee_service.list_employees(active_only=False) == [employee]

        again = await employee_service.deactivate(employee.id, date(2026, 4, 1))
        assert again.end_date == date(2026, 3, 1)

    async def test_deactivate_unknown(self, employee_service):
        with pytest.raises(NotFoundError):
            await employee_service.deactivate(uuid4())


class TestModuleService:
    @pytest.fixture
    def module_service(self):
        return ModuleService(None, modules=FakeModules())

    async def test_catalog_upsert_is_idempotent(self, module_service):
        first = await module_service.ensure_catalog()
        second = await module_service.ensure_catalog()
        assert [m.key for m in first] == [spec["key"] for spec in BUILTIN_MODULES]
        assert len(await module_service.list_catalog()) == len(second) == len(BUILTIN_MODULES)

    async def test_install_disable_and_reinstall(self, module_service):
        await module_service.ensure_catalog()

        installation = await module_service.install("scheduling")
        assert installation.enabled is True

        disabled = await module_service.set_enabled("scheduling", False)
        assert disabled.enabled is False

        reinstalled = await module_service.install("scheduling")
        assert reinstalled.enabled is True
        assert len(await module_service.list_installations()) == 1

    async def test_unknown_module(self, module_service):
        with pytest.raises(NotFoundError):
            await module_service.install("payroll")

    async def test_toggle_requires_installation(self, module_service):
        await module_service.ensure_catalog()
        with pytest.raises(NotFoundError) as exc:
            await module_service.set_enabled("chat", True)
        assert exc.value.details["entity"] == "Module installation"


class TestSettings:
    def test_cors_origins_accept_comma_separated(self):
        settings = AppSettings(CORS_ORIGINS="https://a.example.com, https://b.example.com")
        assert settings.CORS_ORIGINS == ["https://a.example.com", "https://b.example.com"]

    def test_empty_cors_origins_fall_back_to_wildcard(self):
        assert AppSettings(CORS_ORIGINS="").CORS_ORIGINS == ["*"]

    def test_scheduling_defaults(self):
        settings = AppSettings()
        assert settings.SWAP_REQUEST_TTL_DAYS == 7
        assert settings.RUN_MIGRATIONS_ON_STARTUP is False
