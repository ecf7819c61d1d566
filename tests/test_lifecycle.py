#!/usr/bin/env python3
"""Tests for the pure lifecycle plans."""

import pytest

from fleet import (
    AssignmentKind,
    AssignmentStatus,
    Condition,
    DamageReport,
    DamageSeverity,
    InspectionType,
    PreconditionError,
    ServiceOverdueError,
    ServiceRecord,
    ValidationError,
    VehicleStatus,
    build_inspection,
    plan_checkin,
    plan_checkout,
)
from fleet.assignment import CheckinRequest, CheckoutRequest
from fleet.lifecycle import (
    ASSIGNMENTS,
    INSPECTIONS,
    SERVICE_RECORDS,
    VEHICLES,
    Create,
    Update,
    plan_service_completion,
    plan_status_change,
)

from conftest import NOW, SequentialIds, make_vehicle


def checkout_request(**overrides) -> CheckoutRequest:
    fields = dict(
        vehicle_id="VAN-01",
        driver_id="D1",
        starting_odometer=45000,
        fuel_level=70,
        destination="Depot",
        trip_purpose="Delivery",
        signature="D1",
    )
    fields.update(overrides)
    return CheckoutRequest(**fields)


def checkin_request(**overrides) -> CheckinRequest:
    fields = dict(
        assignment_id="assignment_1",
        ending_odometer=45120,
        fuel_level=55,
        signature="D1",
    )
    fields.update(overrides)
    return CheckinRequest(**fields)


@pytest.fixture
def checked_out():
    """(vehicle, assignment) right after a checkout."""
    transition = plan_checkout(make_vehicle(), checkout_request(), NOW, "assignment_1")
    return transition.vehicle, transition.assignment


class TestPlanCheckout:
    """Tests for plan_checkout."""

    def test_hands_vehicle_to_driver(self):
        vehicle = make_vehicle()
        transition = plan_checkout(vehicle, checkout_request(), NOW, "assignment_1")

        assert transition.vehicle.status == VehicleStatus.IN_USE
        assert transition.vehicle.current_driver_id == "D1"
        assert transition.vehicle.version == vehicle.version + 1
        assert transition.assignment.status == AssignmentStatus.ACTIVE
        assert transition.assignment.kind == AssignmentKind.CHECKOUT
        assert transition.assignment.checked_out_at == NOW.isoformat()
        transition.vehicle.check_invariants()

    def test_snapshot_not_modified(self):
        vehicle = make_vehicle()
        plan_checkout(vehicle, checkout_request(), NOW, "assignment_1")
        assert vehicle.status == VehicleStatus.AVAILABLE
        assert vehicle.current_driver_id is None

    def test_effects_create_assignment_then_update_vehicle(self):
        transition = plan_checkout(make_vehicle(), checkout_request(), NOW, "assignment_1")
        create, update = transition.effects
        assert isinstance(create, Create)
        assert (create.collection, create.record_id) == (ASSIGNMENTS, "assignment_1")
        assert isinstance(update, Update)
        assert update.collection == VEHICLES
        assert update.expect == {"version": 0}
        assert transition.events[0][0] == "vehicle.checked_out"

    @pytest.mark.parametrize(
        "status",
        [
            VehicleStatus.IN_USE,
            VehicleStatus.MAINTENANCE,
            VehicleStatus.OUT_OF_SERVICE,
            VehicleStatus.REQUIRES_ATTENTION,
        ],
    )
    def test_unavailable_vehicle_refused(self, status):
        vehicle = make_vehicle(status=status, current_driver_id="D0")
        with pytest.raises(PreconditionError):
            plan_checkout(vehicle, checkout_request(), NOW, "assignment_1")

    def test_overdue_service_refused(self):
        vehicle = make_vehicle(current_odometer=50000)
        with pytest.raises(ServiceOverdueError) as exc:
            plan_checkout(
                vehicle, checkout_request(starting_odometer=50000), NOW, "assignment_1"
            )
        assert exc.value.kind == "service_overdue"

    def test_reported_reading_past_service_point_refused(self):
        """Stored reading is fine, but the driver's reading passes the due odometer."""
        vehicle = make_vehicle()
        with pytest.raises(ServiceOverdueError) as exc:
            plan_checkout(
                vehicle, checkout_request(starting_odometer=50500), NOW, "assignment_1"
            )
        assert "50500" in exc.value.message

    def test_reported_reading_just_before_service_point(self):
        out = plan_checkout(
            make_vehicle(), checkout_request(starting_odometer=49999), NOW, "assignment_1"
        )
        assert out.vehicle.status == VehicleStatus.IN_USE

    def test_odometer_below_vehicle_reading(self):
        with pytest.raises(ValidationError) as exc:
            plan_checkout(
                make_vehicle(), checkout_request(starting_odometer=44999), NOW, "assignment_1"
            )
        assert [f.field for f in exc.value.fields] == ["startingOdometer"]

    def test_large_jump_is_warning(self):
        transition = plan_checkout(
            make_vehicle(), checkout_request(starting_odometer=46500), NOW, "assignment_1"
        )
        assert transition.warnings == ["Unusually high mileage increase detected (1500 km)"]
        assert transition.vehicle.current_odometer == 46500


class TestPlanCheckin:
    """Tests for plan_checkin."""

    def test_returns_vehicle(self, checked_out):
        vehicle, assignment = checked_out
        transition = plan_checkin(vehicle, assignment, checkin_request(), NOW)

        assert transition.vehicle.status == VehicleStatus.AVAILABLE
        assert transition.vehicle.current_odometer == 45120
        assert transition.vehicle.current_driver_id is None
        assert transition.vehicle.fuel_level == 55
        assert transition.assignment.status == AssignmentStatus.COMPLETED
        assert transition.assignment.kind == AssignmentKind.CHECKIN
        assert transition.assignment.total_distance == 120
        assert transition.assignment.return_signature == "D1"
        transition.vehicle.check_invariants()

    def test_declared_damage_without_inspection(self, checked_out):
        vehicle, assignment = checked_out
        request = checkin_request(
            condition=Condition.DAMAGED,
            damage_reported=True,
            damage_description="Front axle cracked",
        )
        transition = plan_checkin(vehicle, assignment, request, NOW)
        assert transition.vehicle.status == VehicleStatus.REQUIRES_ATTENTION
        event, payload = transition.events[-1]
        assert event == "vehicle.requires_attention"
        assert payload["inspectionId"] is None

    def test_zero_distance_trip(self, checked_out):
        vehicle, assignment = checked_out
        transition = plan_checkin(
            vehicle, assignment, checkin_request(ending_odometer=45000), NOW
        )
        assert transition.assignment.total_distance == 0

    def test_ending_below_start_fails(self, checked_out):
        vehicle, assignment = checked_out
        with pytest.raises(ValidationError) as exc:
            plan_checkin(vehicle, assignment, checkin_request(ending_odometer=44999), NOW)
        assert exc.value.fields[0].field == "endingOdometer"
        assert "starting odometer (45000 km)" in exc.value.fields[0].message

    def test_completed_assignment_refused(self, checked_out):
        vehicle, assignment = checked_out
        done = plan_checkin(vehicle, assignment, checkin_request(), NOW)
        with pytest.raises(PreconditionError):
            plan_checkin(vehicle, done.assignment, checkin_request(), NOW)

    def test_assignment_of_other_vehicle_refused(self, checked_out):
        vehicle, assignment = checked_out
        other = make_vehicle(
            vehicle_id="VAN-02", status=VehicleStatus.IN_USE, current_driver_id="D1"
        )
        with pytest.raises(PreconditionError):
            plan_checkin(other, assignment, checkin_request(), NOW)

    def test_effects_order(self, checked_out):
        vehicle, assignment = checked_out
        transition = plan_checkin(vehicle, assignment, checkin_request(), NOW)
        assert [type(e) for e in transition.effects] == [Update, Update]
        assert transition.effects[0].collection == ASSIGNMENTS
        assert transition.effects[0].expect == {"status": "active"}
        assert transition.effects[1].expect == {"version": vehicle.version}

    def test_critical_damage_requires_attention(self, checked_out):
        vehicle, assignment = checked_out
        inspection = build_inspection(
            "VAN-01",
            "D1",
            InspectionType.POST_TRIP,
            45120,
            55,
            damage_reports=[DamageReport("axle", True, DamageSeverity.CRITICAL)],
            clock=lambda: NOW,
            id_factory=SequentialIds(),
        )
        request = checkin_request(damage_reported=True, damage_description="Bent axle")
        transition = plan_checkin(vehicle, assignment, request, NOW, inspection=inspection)

        assert transition.vehicle.status == VehicleStatus.REQUIRES_ATTENTION
        assert isinstance(transition.effects[0], Create)
        assert transition.effects[0].collection == INSPECTIONS
        events = [name for name, _ in transition.events]
        assert events == ["vehicle.checked_in", "vehicle.requires_attention"]

    def test_overdue_after_trip_goes_to_maintenance(self, checked_out):
        vehicle, assignment = checked_out
        transition = plan_checkin(
            vehicle, assignment, checkin_request(ending_odometer=50010), NOW
        )
        assert transition.vehicle.status == VehicleStatus.MAINTENANCE
        assert transition.events[-1][0] == "vehicle.maintenance_required"
        assert transition.warnings


class TestPlanServiceCompletion:
    """Tests for plan_service_completion."""

    def test_resets_interval_and_releases_vehicle(self):
        vehicle = make_vehicle(status=VehicleStatus.MAINTENANCE, current_odometer=50010)
        record = ServiceRecord("VAN-01", "routine_maintenance", "2026-10-18", 50010)
        transition = plan_service_completion(vehicle, record, "service_1")

        updated = transition.vehicle
        assert updated.status == VehicleStatus.AVAILABLE
        assert updated.last_service_odometer == 50010
        assert updated.next_service_odometer == 60010
        assert updated.next_service_date == "2027-10-18"
        assert transition.service_record.record_id == "service_1"
        assert record.record_id is None
        assert transition.effects[0].collection == SERVICE_RECORDS

    def test_repair_keeps_interval(self):
        vehicle = make_vehicle(status=VehicleStatus.REQUIRES_ATTENTION)
        record = ServiceRecord("VAN-01", "repair", "2026-10-18", 45000)
        updated = plan_service_completion(vehicle, record, "service_1").vehicle
        assert updated.status == VehicleStatus.AVAILABLE
        assert updated.last_service_odometer == 40000

    def test_refused_while_in_use(self, checked_out):
        vehicle, _ = checked_out
        record = ServiceRecord("VAN-01", "oil_change", "2026-10-18", 45000)
        with pytest.raises(PreconditionError):
            plan_service_completion(vehicle, record, "service_1")


class TestPlanStatusChange:
    """Tests for plan_status_change."""

    def test_manual_move(self):
        transition = plan_status_change(make_vehicle(), VehicleStatus.OUT_OF_SERVICE)
        assert transition.vehicle.status == VehicleStatus.OUT_OF_SERVICE

    def test_cannot_set_in_use(self):
        with pytest.raises(PreconditionError):
            plan_status_change(make_vehicle(), VehicleStatus.IN_USE)

    def test_cannot_leave_in_use(self, checked_out):
        vehicle, _ = checked_out
        with pytest.raises(PreconditionError):
            plan_status_change(vehicle, VehicleStatus.AVAILABLE)
