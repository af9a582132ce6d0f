"""
Tests for SchedulingService business rules.

Repositories are in-memory fakes holding real ORM instances (see conftest.py), so
these tests exercise the claim, publish, availability and swap rules without a
database.
"""

from datetime import date, timedelta
from uuid import uuid4

import pytest

from conftest import (
    NOW,
    TENANT_ID,
    FakeAvailabilityRepository,
    FakeEmployeePositionRepository,
    FakeScheduleRepository,
    FakeShiftRepository,
    FakeSwapRequestRepository,
)
from workforce_api.core.enums import ScheduleStatus, ShiftStatus, SwapStatus
from workforce_api.core.errors import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    UnprocessableError,
    ValidationFailedError,
)
from workforce_api.schemas.scheduling import (
    AvailabilityCreate,
    AvailabilityUpdate,
    ScheduleClone,
    ScheduleCreate,
    ScheduleUpdate,
    ShiftCreate,
    ShiftUpdate,
    StationCreate,
    StationUpdate,
    SwapRequestCreate,
)
from workforce_api.services.scheduling import SchedulingService, normalize_availability

TOMORROW = NOW + timedelta(days=1)


class TestClaimShift:
    """Open-shift claim rules and their order."""

    async def test_claim_assigns_shift_and_broadcasts(self, service, store, broadcaster):
        schedule = store.add_schedule()
        employee = store.add_employee()
        shift = store.add_shift(schedule, TOMORROW)

        claimed = await service.claim_shift(employee.user_id, shift.id)

        assert claimed.employee_position_id == employee.id
        assert claimed.status == ShiftStatus.SCHEDULED.value
        assert claimed.is_open_shift is False
        assert broadcaster.names == ["shift.claimed"]
        tenant_id, event = broadcaster.events[0]
        assert tenant_id == TENANT_ID
        assert event.shift_id == shift.id
        assert event.details["employee_position_id"] == str(employee.id)

    async def test_unknown_shift_is_not_found(self, service, store):
        employee = store.add_employee()
        with pytest.raises(NotFoundError):
            await service.claim_shift(employee.user_id, uuid4())

    async def test_claimed_shift_conflicts(self, service, store):
        schedule = store.add_schedule()
        owner = store.add_employee()
        other = store.add_employee()
        shift = store.add_shift(schedule, TOMORROW, employee=owner)

        with pytest.raises(ConflictError) as exc:
            await service.claim_shift(other.user_id, shift.id)
        assert exc.value.status_code == 409

    async def test_started_shift_is_rejected(self, service, store):
        schedule = store.add_schedule()
        employee = store.add_employee()
        shift = store.add_shift(schedule, NOW - timedelta(hours=1))

        with pytest.raises(ValidationFailedError) as exc:
            await service.claim_shift(employee.user_id, shift.id)
        assert exc.value.status_code == 400

    async def test_shift_starting_now_can_still_be_claimed(self, service, store):
        schedule = store.add_schedule()
        employee = store.add_employee()
        shift = store.add_shift(schedule, NOW)

        claimed = await service.claim_shift(employee.user_id, shift.id)
        assert claimed.employee_position_id == employee.id

    async def test_shift_started_a_second_ago_is_rejected(self, service, store):
        schedule = store.add_schedule()
        employee = store.add_employee()
        shift = store.add_shift(schedule, NOW - timedelta(seconds=1))

        with pytest.raises(ValidationFailedError):
            await service.claim_shift(employee.user_id, shift.id)

    async def test_caller_without_active_position(self, service, store):
        schedule = store.add_schedule()
        former = store.add_employee(active=False)
        shift = store.add_shift(schedule, TOMORROW)

        with pytest.raises(NotFoundError):
            await service.claim_shift(former.user_id, shift.id)
        assert shift.is_open_shift is True

    async def test_position_mismatch_is_forbidden(self, service, store):
        schedule = store.add_schedule()
        employee = store.add_employee()
        shift = store.add_shift(schedule, TOMORROW, position_id=uuid4())

        with pytest.raises(PermissionDeniedError) as exc:
            await service.claim_shift(employee.user_id, shift.id)
        assert exc.value.status_code == 403

    async def test_matching_position_can_claim(self, service, store):
        schedule = store.add_schedule()
        employee = store.add_employee()
        shift = store.add_shift(schedule, TOMORROW, position_id=employee.position_id)

        claimed = await service.claim_shift(employee.user_id, shift.id)
        assert claimed.employee_position_id == employee.id

    async def test_overlapping_shift_conflicts(self, service, store, broadcaster):
        schedule = store.add_schedule()
        employee = store.add_employee()
        busy = store.add_shift(schedule, TOMORROW, employee=employee)
        shift = store.add_shift(schedule, TOMORROW + timedelta(hours=4))

        with pytest.raises(ConflictError) as exc:
            await service.claim_shift(employee.user_id, shift.id)
        assert exc.value.details["conflicting_shift_id"] == str(busy.id)
        assert shift.employee_position_id is None
        assert broadcaster.events == []

    async def test_touching_shifts_do_not_overlap(self, service, store):
        schedule = store.add_schedule()
        employee = store.add_employee()
        store.add_shift(schedule, TOMORROW, hours=4, employee=employee)
        shift = store.add_shift(schedule, TOMORROW + timedelta(hours=4))

        claimed = await service.claim_shift(employee.user_id, shift.id)
        assert claimed.employee_position_id == employee.id

    async def test_cancelled_shift_does_not_block_claim(self, service, store):
        schedule = store.add_schedule()
        employee = store.add_employee()
        store.add_shift(schedule, TOMORROW, employee=employee, status=ShiftStatus.CANCELLED.value)
        shift = store.add_shift(schedule, TOMORROW + timedelta(hours=2))

        claimed = await service.claim_shift(employee.user_id, shift.id)
        assert claimed.employee_position_id == employee.id

    async def test_lost_race_is_a_conflict(self, service, store, shift_repo, broadcaster):
        schedule = store.add_schedule()
        employee = store.add_employee()
        shift = store.add_shift(schedule, TOMORROW)
        shift_repo.lose_next_claim = True

        with pytest.raises(ConflictError):
            await service.claim_shift(employee.user_id, shift.id)
        assert broadcaster.events == []

    async def test_second_claim_conflicts(self, service, store):
        schedule = store.add_schedule()
        first = store.add_employee()
        second = store.add_employee()
        shift = store.add_shift(schedule, TOMORROW)

        await service.claim_shift(first.user_id, shift.id)
        with pytest.raises(ConflictError):
            await service.claim_shift(second.user_id, shift.id)
        assert shift.employee_position_id == first.id

    async def test_broadcast_failure_does_not_fail_claim(self, store):
        class BrokenBroadcaster:
            async def publish_scheduling_event(self, tenant_id, event):
                raise RuntimeError("socket gone")

        service = SchedulingService(
            None,
            TENANT_ID,
            schedules=FakeScheduleRepository(store),
            shifts=FakeShiftRepository(store),
            availability=FakeAvailabilityRepository(store),
            swaps=FakeSwapRequestRepository(store),
            employees=FakeEmployeePositionRepository(store),
            broadcaster=BrokenBroadcaster(),
            clock=lambda: NOW,
        )
        schedule = store.add_schedule()
        employee = store.add_employee()
        shift = store.add_shift(schedule, TOMORROW)

        claimed = await service.claim_shift(employee.user_id, shift.id)
        assert claimed.employee_position_id == employee.id


class TestOpenShiftListing:
    async def test_lists_only_claimable_shifts(self, service, store):
        published = store.add_schedule()
        draft = store.add_schedule(status=ScheduleStatus.DRAFT.value)
        employee = store.add_employee()

        visible = store.add_shift(published, TOMORROW)
        same_position = store.add_shift(published, TOMORROW + timedelta(days=1), position_id=employee.position_id)
        store.add_shift(published, TOMORROW + timedelta(days=2), position_id=uuid4())
        store.add_shift(draft, TOMORROW)
        store.add_shift(published, NOW - timedelta(hours=2))
        store.add_shift(published, TOMORROW + timedelta(days=3), employee=store.add_employee())

        result = await service.list_open_shifts(employee.user_id)
        assert [s.id for s in result] == [visible.id, same_position.id]

    async def test_excludes_shifts_overlapping_own(self, service, store):
        schedule = store.add_schedule()
        employee = store.add_employee()
        store.add_shift(schedule, TOMORROW, employee=employee)
        clashing = store.add_shift(schedule, TOMORROW + timedelta(hours=2))
        free = store.add_shift(schedule, TOMORROW + timedelta(hours=8))

        result = await service.list_open_shifts(employee.user_id)
        ids = [s.id for s in result]
        assert clashing.id not in ids
        assert free.id in ids

    async def test_position_filter_narrows_results(self, service, store):
        schedule = store.add_schedule()
        employee = store.add_employee()
        store.add_shift(schedule, TOMORROW)
        mine = store.add_shift(schedule, TOMORROW + timedelta(days=1), position_id=employee.position_id)

        result = await service.list_open_shifts(employee.user_id, position_id=employee.position_id)
        assert [s.id for s in result] == [mine.id]

    async def test_caller_without_position_sees_unrestricted_shifts(self, service, store):
        schedule = store.add_schedule()
        open_to_all = store.add_shift(schedule, TOMORROW)
        store.add_shift(schedule, TOMORROW, position_id=uuid4())

        result = await service.list_open_shifts(uuid4())
        assert [s.id for s in result] == [open_to_all.id]

    async def test_team_open_shifts_include_drafts(self, service, store):
        draft = store.add_schedule(status=ScheduleStatus.DRAFT.value)
        shift = store.add_shift(draft, TOMORROW)

        result = await service.list_team_open_shifts()
        assert [s.id for s in result] == [shift.id]


class TestMySchedule:
    async def test_only_published_shifts_in_window(self, service, store):
        published = store.add_schedule()
        draft = store.add_schedule(status=ScheduleStatus.DRAFT.value)
        employee = store.add_employee()
        mine = store.add_shift(published, TOMORROW, employee=employee)
        store.add_shift(draft, TOMORROW + timedelta(days=1), employee=employee)
        store.add_shift(published, NOW + timedelta(days=20), employee=employee)

        result = await service.my_schedule(employee.user_id)
        assert [s.id for s in result] == [mine.id]

    async def test_requires_active_position(self, service):
        with pytest.raises(NotFoundError):
            await service.my_schedule(uuid4())


class TestSchedules:
    async def test_create_schedule_starts_as_draft(self, service):
        schedule = await service.create_schedule(
            ScheduleCreate(name="Week 11", start_date=date(2026, 3, 9), end_date=date(2026, 3, 15))
        )
        assert schedule.status == ScheduleStatus.DRAFT.value
        assert schedule.timezone == "America/New_York"

    async def test_end_before_start_is_unprocessable(self, service):
        with pytest.raises(UnprocessableError) as exc:
            await service.create_schedule(
                ScheduleCreate(name="Bad", start_date=date(2026, 3, 9), end_date=date(2026, 3, 1))
            )
        assert exc.value.status_code == 422

    async def test_single_day_schedule_is_allowed(self, service):
        schedule = await service.create_schedule(
            ScheduleCreate(name="Event day", start_date=date(2026, 3, 9), end_date=date(2026, 3, 9))
        )
        assert schedule.start_date == schedule.end_date

    async def test_update_checks_merged_dates(self, service, store):
        schedule = store.add_schedule(status=ScheduleStatus.DRAFT.value)
        with pytest.raises(UnprocessableError):
            await service.update_schedule(schedule.id, ScheduleUpdate(end_date=date(2026, 2, 1)))

    async def test_update_cannot_publish(self, service, store):
        schedule = store.add_schedule(status=ScheduleStatus.DRAFT.value)
        with pytest.raises(ValidationFailedError):
            await service.update_schedule(schedule.id, ScheduleUpdate(status=ScheduleStatus.PUBLISHED))

    async def test_publish_empty_schedule_fails(self, service, store):
        schedule = store.add_schedule(status=ScheduleStatus.DRAFT.value)
        with pytest.raises(ValidationFailedError) as exc:
            await service.publish_schedule(schedule.id, uuid4())
        assert exc.value.message == "Cannot publish empty schedule"
        assert schedule.status == ScheduleStatus.DRAFT.value

    async def test_publish_and_republish(self, service, store, broadcaster):
        schedule = store.add_schedule(status=ScheduleStatus.DRAFT.value)
        store.add_shift(schedule, TOMORROW)
        first_admin, second_admin = uuid4(), uuid4()

        published = await service.publish_schedule(schedule.id, first_admin)
        assert published.status == ScheduleStatus.PUBLISHED.value
        assert published.published_at == NOW
        assert published.published_by_id == first_admin

        republished = await service.publish_schedule(schedule.id, second_admin)
        assert republished.published_by_id == second_admin
        assert broadcaster.names == ["schedule.published", "schedule.published"]

    async def test_unknown_schedule(self, service):
        with pytest.raises(NotFoundError):
            await service.get_schedule(uuid4())


class TestCloneSchedule:
    """Copying a schedule into the following period."""

    async def test_clone_moves_shifts_by_start_delta(self, service, store):
        source = store.add_schedule(start_date=date(2026, 3, 2), end_date=date(2026, 3, 8))
        employee = store.add_employee()
        assigned = store.add_shift(source, TOMORROW, employee=employee)
        open_shift = store.add_shift(source, TOMORROW + timedelta(days=2), position_id=employee.position_id)
        admin_id = uuid4()

        clone = await service.clone_schedule(
            source.id,
            ScheduleClone(name="Week 11", start_date=date(2026, 3, 9), end_date=date(2026, 3, 15)),
            created_by_id=admin_id,
        )

        assert clone.id != source.id
        assert clone.status == ScheduleStatus.DRAFT.value
        assert clone.created_by_id == admin_id
        assert clone.metadata_ == {"cloned_from": str(source.id)}
        copies = sorted(
            (s for s in store.shifts.values() if s.schedule_id == clone.id), key=lambda s: s.start_time
        )
        assert [s.start_time for s in copies] == [
            assigned.start_time + timedelta(days=7),
            open_shift.start_time + timedelta(days=7),
        ]
        assert copies[0].employee_position_id == employee.id
        assert copies[0].status == ShiftStatus.SCHEDULED.value
        assert copies[0].is_open_shift is False
        assert copies[1].employee_position_id is None
        assert copies[1].status == ShiftStatus.OPEN.value
        assert copies[1].is_open_shift is True
        assert copies[1].position_id == employee.position_id

    async def test_clone_skips_cancelled_shifts(self, service, store):
        source = store.add_schedule()
        store.add_shift(source, TOMORROW, status=ShiftStatus.CANCELLED.value)
        kept = store.add_shift(source, TOMORROW + timedelta(days=1))

        clone = await service.clone_schedule(
            source.id, ScheduleClone(name="Next", start_date=date(2026, 3, 9), end_date=date(2026, 3, 15))
        )
        copies = [s for s in store.shifts.values() if s.schedule_id == clone.id]
        assert len(copies) == 1
        assert copies[0].start_time == kept.start_time + timedelta(days=7)

    async def test_clone_reopens_assignments_that_cannot_carry_over(self, service, store):
        source = store.add_schedule()
        busy = store.add_employee()
        former = store.add_employee()
        busy_shift = store.add_shift(source, TOMORROW, employee=busy)
        store.add_shift(source, TOMORROW + timedelta(days=1), employee=former)
        former.active = False
        # busy already works the slot the copy would land on
        other = store.add_schedule(start_date=date(2026, 3, 9), end_date=date(2026, 3, 15))
        store.add_shift(other, busy_shift.start_time + timedelta(days=7), employee=busy)

        clone = await service.clone_schedule(
            source.id, ScheduleClone(name="Next", start_date=date(2026, 3, 9), end_date=date(2026, 3, 15))
        )
        copies = [s for s in store.shifts.values() if s.schedule_id == clone.id]
        assert len(copies) == 2
        for copy in copies:
            assert copy.employee_position_id is None
            assert copy.status == ShiftStatus.OPEN.value
            assert copy.is_open_shift is True

    async def test_clone_checks_new_dates(self, service, store):
        source = store.add_schedule()
        with pytest.raises(UnprocessableError):
            await service.clone_schedule(
                source.id, ScheduleClone(name="Bad", start_date=date(2026, 3, 15), end_date=date(2026, 3, 9))
            )
        assert len(store.schedules) == 1

    async def test_clone_unknown_schedule(self, service):
        with pytest.raises(NotFoundError):
            await service.clone_schedule(
                uuid4(), ScheduleClone(name="Next", start_date=date(2026, 3, 9), end_date=date(2026, 3, 15))
            )


class TestStations:
    async def test_create_station_normalizes_times(self, service):
        station = await service.create_station(
            StationCreate(name=" Grill ", station_type="BOH", default_start_time="6:00", default_end_time="14:30")
        )
        assert station.name == "Grill"
        assert station.is_active is True
        assert station.default_start_time == "06:00"
        assert station.default_end_time == "14:30"

    async def test_duplicate_name_conflicts(self, service, store):
        store.add_station("Grill")
        with pytest.raises(ConflictError) as exc:
            await service.create_station(StationCreate(name="Grill", station_type="BOH"))
        assert exc.value.status_code == 409

    async def test_bad_default_time_is_rejected(self, service):
        with pytest.raises(ValidationFailedError) as exc:
            await service.create_station(StationCreate(name="Bar", station_type="FOH", default_start_time="25:00"))
        assert exc.value.details["field"] == "default_start_time"

    async def test_rename_to_existing_name_conflicts(self, service, store):
        store.add_station("Grill")
        bar = store.add_station("Bar")
        with pytest.raises(ConflictError):
            await service.update_station(bar.id, StationUpdate(name="Grill"))

    async def test_update_can_deactivate_and_clear_times(self, service, store):
        station = store.add_station("Bar", default_start_time="17:00")
        updated = await service.update_station(station.id, StationUpdate(is_active=False, default_start_time=""))
        assert updated.is_active is False
        assert updated.default_start_time is None

    async def test_active_only_listing(self, service, store):
        store.add_station("Grill")
        store.add_station("Old bar", is_active=False)
        assert [s.name for s in await service.list_stations(active_only=True)] == ["Grill"]
        assert len(await service.list_stations()) == 2

    async def test_station_in_use_cannot_be_deleted(self, service, store):
        station = store.add_station("Grill")
        store.add_shift(store.add_schedule(), TOMORROW, station=station)
        with pytest.raises(ConflictError) as exc:
            await service.delete_station(station.id)
        assert exc.value.details["shift_count"] == 1
        assert station.id in store.stations

    async def test_delete_unused_station(self, service, store):
        station = store.add_station("Grill")
        await service.delete_station(station.id)
        assert station.id not in store.stations

    async def test_unknown_station(self, service):
        with pytest.raises(NotFoundError):
            await service.get_station(uuid4())


class TestShifts:
    async def test_unassigned_shift_is_open(self, service, store, broadcaster):
        schedule = store.add_schedule()
        shift = await service.create_shift(
            ShiftCreate(schedule_id=schedule.id, title="Close", start_time=TOMORROW, end_time=TOMORROW + timedelta(hours=6))
        )
        assert shift.is_open_shift is True
        assert shift.status == ShiftStatus.OPEN.value
        assert broadcaster.names == ["shift.created"]

    async def test_assigned_shift_is_scheduled(self, service, store):
        schedule = store.add_schedule()
        employee = store.add_employee()
        shift = await service.create_shift(
            ShiftCreate(
                schedule_id=schedule.id,
                title="Open",
                start_time=TOMORROW,
                end_time=TOMORROW + timedelta(hours=6),
                employee_position_id=employee.id,
            )
        )
        assert shift.is_open_shift is False
        assert shift.status == ShiftStatus.SCHEDULED.value

    async def test_assigned_shift_must_not_overlap(self, service, store):
        schedule = store.add_schedule()
        employee = store.add_employee()
        store.add_shift(schedule, TOMORROW, employee=employee)
        with pytest.raises(ConflictError):
            await service.create_shift(
                ShiftCreate(
                    schedule_id=schedule.id,
                    title="Double",
                    start_time=TOMORROW + timedelta(hours=1),
                    end_time=TOMORROW + timedelta(hours=3),
                    employee_position_id=employee.id,
                )
            )

    async def test_end_must_follow_start(self, service, store):
        schedule = store.add_schedule()
        with pytest.raises(ValidationFailedError):
            await service.create_shift(
                ShiftCreate(schedule_id=schedule.id, title="Zero", start_time=TOMORROW, end_time=TOMORROW)
            )

    async def test_unknown_schedule_is_not_found(self, service):
        with pytest.raises(NotFoundError):
            await service.create_shift(
                ShiftCreate(schedule_id=uuid4(), title="Orphan", start_time=TOMORROW, end_time=TOMORROW + timedelta(hours=1))
            )

    async def test_clearing_assignee_reopens_shift(self, service, store):
        schedule = store.add_schedule()
        employee = store.add_employee()
        shift = store.add_shift(schedule, TOMORROW, employee=employee)

        updated = await service.update_shift(shift.id, ShiftUpdate(employee_position_id=None))
        assert updated.employee_position_id is None
        assert updated.is_open_shift is True
        assert updated.status == ShiftStatus.OPEN.value

    async def test_assigned_shift_cannot_be_set_open(self, service, store):
        schedule = store.add_schedule()
        employee = store.add_employee()
        shift = store.add_shift(schedule, TOMORROW, employee=employee)

        with pytest.raises(ValidationFailedError) as exc:
            await service.update_shift(shift.id, ShiftUpdate(status=ShiftStatus.OPEN))
        assert exc.value.details["field"] == "status"
        assert shift.status == ShiftStatus.SCHEDULED.value
        assert shift.is_open_shift is False

    async def test_clearing_assignee_while_cancelling_keeps_cancelled(self, service, store):
        schedule = store.add_schedule()
        employee = store.add_employee()
        shift = store.add_shift(schedule, TOMORROW, employee=employee)

        updated = await service.update_shift(
            shift.id, ShiftUpdate(employee_position_id=None, status=ShiftStatus.CANCELLED)
        )
        assert updated.employee_position_id is None
        assert updated.status == ShiftStatus.CANCELLED.value
        assert updated.is_open_shift is False

    async def test_cancelling_assigned_shift_keeps_assignee(self, service, store):
        schedule = store.add_schedule()
        employee = store.add_employee()
        shift = store.add_shift(schedule, TOMORROW, employee=employee)

        updated = await service.update_shift(shift.id, ShiftUpdate(status=ShiftStatus.CANCELLED))
        assert updated.employee_position_id == employee.id
        assert updated.status == ShiftStatus.CANCELLED.value
        assert updated.is_open_shift is False

    async def test_unassigned_shift_cannot_be_scheduled(self, service, store):
        schedule = store.add_schedule()
        shift = store.add_shift(schedule, TOMORROW)

        with pytest.raises(ValidationFailedError):
            await service.update_shift(shift.id, ShiftUpdate(status=ShiftStatus.SCHEDULED))
        assert shift.status == ShiftStatus.OPEN.value

    async def test_assigning_open_shift_by_update_schedules_it(self, service, store):
        schedule = store.add_schedule()
        employee = store.add_employee()
        shift = store.add_shift(schedule, TOMORROW)

        updated = await service.update_shift(shift.id, ShiftUpdate(employee_position_id=employee.id))
        assert updated.status == ShiftStatus.SCHEDULED.value
        assert updated.is_open_shift is False

    async def test_station_name_defaults_to_station(self, service, store):
        schedule = store.add_schedule()
        station = store.add_station("Register 1")
        shift = await service.create_shift(
            ShiftCreate(
                schedule_id=schedule.id,
                title="Till",
                start_time=TOMORROW,
                end_time=TOMORROW + timedelta(hours=4),
                station_id=station.id,
            )
        )
        assert shift.station_id == station.id
        assert shift.station_name == "Register 1"

    async def test_inactive_station_is_not_found(self, service, store):
        schedule = store.add_schedule()
        shift = store.add_shift(schedule, TOMORROW)
        station = store.add_station("Old bar", is_active=False)

        with pytest.raises(NotFoundError):
            await service.update_shift(shift.id, ShiftUpdate(station_id=station.id))

    async def test_manager_assignment(self, service, store, broadcaster):
        schedule = store.add_schedule()
        employee = store.add_employee()
        shift = store.add_shift(schedule, TOMORROW)

        assigned = await service.assign_shift(shift.id, employee.id, uuid4())
        assert assigned.employee_position_id == employee.id
        assert assigned.status == ShiftStatus.SCHEDULED.value
        assert assigned.is_open_shift is False
        assert broadcaster.names == ["shift.assigned"]

    async def test_cannot_assign_cancelled_shift(self, service, store):
        schedule = store.add_schedule()
        shift = store.add_shift(schedule, TOMORROW, status=ShiftStatus.CANCELLED.value)
        with pytest.raises(ValidationFailedError):
            await service.assign_shift(shift.id, store.add_employee().id)

    async def test_delete_shift(self, service, store, broadcaster):
        schedule = store.add_schedule()
        shift = store.add_shift(schedule, TOMORROW)
        await service.delete_shift(shift.id)
        assert shift.id not in store.shifts
        assert broadcaster.names == ["shift.deleted"]


class TestAvailability:
    def test_normalizes_case_and_padding(self):
        assert normalize_availability("monday", "9:00", "17:30", "preferred") == (
            "MONDAY",
            "09:00",
            "17:30",
            "PREFERRED",
        )

    @pytest.mark.parametrize(
        "args, field",
        [
            (("FUNDAY", "09:00", "17:00", "AVAILABLE"), "day_of_week"),
            (("MONDAY", "9am", "17:00", "AVAILABLE"), "start_time"),
            (("MONDAY", "09:00", "24:00", "AVAILABLE"), "end_time"),
            (("MONDAY", "17:00", "09:00", "AVAILABLE"), "end_time"),
            (("MONDAY", "09:00", "09:00", "AVAILABLE"), "end_time"),
            (("MONDAY", "09:00", "17:00", "MAYBE"), "availability_type"),
        ],
    )
    def test_rejects_bad_values_naming_the_field(self, args, field):
        with pytest.raises(ValidationFailedError) as exc:
            normalize_availability(*args)
        assert exc.value.status_code == 400
        assert exc.value.details["field"] == field

    async def test_create_defaults_effective_from_to_today(self, service, store):
        employee = store.add_employee()
        entity = await service.create_availability(
            employee.user_id,
            AvailabilityCreate(day_of_week="friday", start_time="8:00", end_time="12:00"),
        )
        assert entity.employee_position_id == employee.id
        assert entity.day_of_week == "FRIDAY"
        assert entity.start_time == "08:00"
        assert entity.effective_from == NOW.date()

    async def test_effective_to_before_from(self, service, store):
        employee = store.add_employee()
        with pytest.raises(ValidationFailedError):
            await service.create_availability(
                employee.user_id,
                AvailabilityCreate(
                    day_of_week="MONDAY",
                    start_time="09:00",
                    end_time="17:00",
                    effective_from=date(2026, 3, 10),
                    effective_to=date(2026, 3, 1),
                ),
            )

    async def test_update_revalidates_merged_window(self, service, store):
        employee = store.add_employee()
        entity = await service.create_availability(
            employee.user_id, AvailabilityCreate(day_of_week="MONDAY", start_time="09:00", end_time="12:00")
        )
        with pytest.raises(ValidationFailedError):
            await service.update_availability(employee.user_id, entity.id, AvailabilityUpdate(start_time="13:00"))

        updated = await service.update_availability(
            employee.user_id, entity.id, AvailabilityUpdate(end_time="18:00", availability_type="unavailable")
        )
        assert updated.end_time == "18:00"
        assert updated.availability_type == "UNAVAILABLE"

    async def test_cannot_touch_someone_elses_availability(self, service, store):
        owner = store.add_employee()
        other = store.add_employee()
        entity = await service.create_availability(
            owner.user_id, AvailabilityCreate(day_of_week="MONDAY", start_time="09:00", end_time="12:00")
        )
        with pytest.raises(PermissionDeniedError):
            await service.delete_availability(other.user_id, entity.id)
        assert entity.id in store.availability

    async def test_list_my_availability(self, service, store):
        employee = store.add_employee()
        await service.create_availability(
            employee.user_id, AvailabilityCreate(day_of_week="MONDAY", start_time="09:00", end_time="12:00")
        )
        other = store.add_employee()
        await service.create_availability(
            other.user_id, AvailabilityCreate(day_of_week="TUESDAY", start_time="09:00", end_time="12:00")
        )
        mine = await service.list_my_availability(employee.user_id)
        assert [a.day_of_week for a in mine] == ["MONDAY"]
        assert len(await service.list_availability()) == 2


class TestTeamAvailability:
    async def test_only_active_employees_are_listed(self, service, store):
        current = store.add_employee()
        former = store.add_employee(active=False)
        mine = store.add_availability(current)
        store.add_availability(former)

        result = await service.list_team_availability()
        assert [a.id for a in result] == [mine.id]

    async def test_day_filter_is_case_insensitive(self, service, store):
        employee = store.add_employee()
        store.add_availability(employee, "MONDAY")
        friday = store.add_availability(employee, "FRIDAY")

        result = await service.list_team_availability(day_of_week="friday")
        assert [a.id for a in result] == [friday.id]

    async def test_entries_must_be_in_effect(self, service, store):
        employee = store.add_employee()
        store.add_availability(employee, effective_from=date(2026, 4, 1))
        store.add_availability(employee, effective_to=date(2026, 2, 28))
        current = store.add_availability(employee, effective_to=date(2026, 3, 2))

        result = await service.list_team_availability()
        assert [a.id for a in result] == [current.id]

        later = await service.list_team_availability(on=date(2026, 4, 2))
        assert len(later) == 1
        assert later[0].effective_from == date(2026, 4, 1)

    async def test_bad_day_is_rejected(self, service):
        with pytest.raises(ValidationFailedError) as exc:
            await service.list_team_availability(day_of_week="someday")
        assert exc.value.details["field"] == "day_of_week"


class TestSwaps:
    async def test_request_swap_for_own_shift(self, service, store, broadcaster):
        schedule = store.add_schedule()
        employee = store.add_employee()
        shift = store.add_shift(schedule, TOMORROW, employee=employee)

        swap = await service.request_swap(
            employee.user_id, SwapRequestCreate(original_shift_id=shift.id, reason="Exam")
        )
        assert swap.status == SwapStatus.PENDING.value
        assert swap.requested_by_id == employee.user_id
        assert swap.expires_at == NOW + timedelta(days=7)
        assert broadcaster.names == ["swap.requested"]

    async def test_covered_shift_fills_reason(self, service, store):
        schedule = store.add_schedule()
        employee = store.add_employee()
        shift = store.add_shift(schedule, TOMORROW, employee=employee)
        covered = uuid4()

        swap = await service.request_swap(
            employee.user_id, SwapRequestCreate(original_shift_id=shift.id, covered_shift_id=covered)
        )
        assert swap.reason == f"Willing to cover shift {covered}"

    async def test_cannot_swap_someone_elses_shift(self, service, store):
        schedule = store.add_schedule()
        owner = store.add_employee()
        other = store.add_employee()
        shift = store.add_shift(schedule, TOMORROW, employee=owner)

        with pytest.raises(PermissionDeniedError):
            await service.request_swap(other.user_id, SwapRequestCreate(original_shift_id=shift.id))

    async def test_cannot_swap_with_yourself(self, service, store):
        schedule = store.add_schedule()
        employee = store.add_employee()
        shift = store.add_shift(schedule, TOMORROW, employee=employee)

        with pytest.raises(ValidationFailedError):
            await service.request_swap(
                employee.user_id,
                SwapRequestCreate(original_shift_id=shift.id, requested_to_id=employee.user_id),
            )

    async def test_approve_reassigns_shift_to_target(self, service, store, broadcaster):
        schedule = store.add_schedule()
        owner = store.add_employee()
        target = store.add_employee()
        shift = store.add_shift(schedule, TOMORROW, employee=owner)
        swap = store.add_swap(shift, owner.user_id, requested_to_id=target.user_id, reason="Family event")
        manager_id = uuid4()

        approved = await service.approve_swap(swap.id, manager_id, notes="Fine by me")

        assert approved.status == SwapStatus.APPROVED.value
        assert approved.approved_by_id == manager_id
        assert approved.approved_at == NOW
        assert approved.reason == "Family event\n\nManager notes: Fine by me"
        assert shift.employee_position_id == target.id
        assert shift.status == ShiftStatus.FILLED.value
        assert broadcaster.names == ["shift.updated", "swap.approved"]

    async def test_approve_without_target_keeps_shift(self, service, store):
        schedule = store.add_schedule()
        owner = store.add_employee()
        shift = store.add_shift(schedule, TOMORROW, employee=owner)
        swap = store.add_swap(shift, owner.user_id)

        approved = await service.approve_swap(swap.id, uuid4())
        assert approved.status == SwapStatus.APPROVED.value
        assert shift.employee_position_id == owner.id

    async def test_deny_records_decision(self, service, store):
        schedule = store.add_schedule()
        owner = store.add_employee()
        shift = store.add_shift(schedule, TOMORROW, employee=owner)
        swap = store.add_swap(shift, owner.user_id)
        manager_id = uuid4()

        denied = await service.deny_swap(swap.id, manager_id, notes="Short staffed")
        assert denied.status == SwapStatus.DENIED.value
        assert denied.approved_by_id == manager_id
        assert denied.reason == "\n\nManager notes: Short staffed"
        assert shift.employee_position_id == owner.id

    async def test_expired_request_cannot_be_approved(self, service, store):
        schedule = store.add_schedule()
        owner = store.add_employee()
        shift = store.add_shift(schedule, TOMORROW, employee=owner)
        swap = store.add_swap(shift, owner.user_id, expires_at=NOW - timedelta(minutes=1))

        with pytest.raises(ValidationFailedError):
            await service.approve_swap(swap.id, uuid4())
        assert swap.status == SwapStatus.EXPIRED.value

    async def test_only_pending_requests_move(self, service, store):
        schedule = store.add_schedule()
        owner = store.add_employee()
        shift = store.add_shift(schedule, TOMORROW, employee=owner)
        swap = store.add_swap(shift, owner.user_id, status=SwapStatus.DENIED.value)

        with pytest.raises(ValidationFailedError):
            await service.approve_swap(swap.id, uuid4())
        with pytest.raises(ValidationFailedError):
            await service.cancel_swap(owner.user_id, swap.id)

    async def test_cancel_own_request_only(self, service, store, broadcaster):
        schedule = store.add_schedule()
        owner = store.add_employee()
        shift = store.add_shift(schedule, TOMORROW, employee=owner)
        swap = store.add_swap(shift, owner.user_id)

        with pytest.raises(PermissionDeniedError):
            await service.cancel_swap(uuid4(), swap.id)

        cancelled = await service.cancel_swap(owner.user_id, swap.id)
        assert cancelled.status == SwapStatus.CANCELLED.value
        assert broadcaster.names == ["swap.cancelled"]

    async def test_list_my_swaps_includes_incoming(self, service, store):
        schedule = store.add_schedule()
        owner = store.add_employee()
        target = store.add_employee()
        shift = store.add_shift(schedule, TOMORROW, employee=owner)
        swap = store.add_swap(shift, owner.user_id, requested_to_id=target.user_id)

        assert [s.id for s in await service.list_my_swaps(target.user_id)] == [swap.id]
        assert [s.id for s in await service.list_swaps(status=SwapStatus.PENDING.value)] == [swap.id]
