"""Vehicle lifecycle state machine.

Plans are pure: each ``plan_*`` function takes the current snapshots and
returns a Transition holding the new snapshots and the ordered persistence
effects that produce them. Nothing here touches the store.

    AVAILABLE --checkout--> IN_USE --checkin--> AVAILABLE
                                           \\--> MAINTENANCE (service overdue)
                                           \\--> REQUIRES_ATTENTION (critical damage)
"""

import copy
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from .assignment import Assignment, CheckinRequest, CheckoutRequest
from .calculations import calc_due_date, calc_due_odometer
from .errors import FieldError, PreconditionError, ServiceOverdueError, ValidationError
from .inspection import Inspection
from .service_due import next_service_status
from .service_record import ServiceRecord
from .status import AssignmentKind, AssignmentStatus, Condition, VehicleStatus
from .validation import DEFAULT_ODOMETER_WARNING_THRESHOLD, validate_odometer
from .vehicle import Vehicle

VEHICLES = "vehicles"
ASSIGNMENTS = "assignments"
INSPECTIONS = "inspections"
SERVICE_RECORDS = "service_records"

# Statuses an operator may set by hand. IN_USE is reserved for checkout.
MANUAL_STATUSES = (
    VehicleStatus.AVAILABLE,
    VehicleStatus.MAINTENANCE,
    VehicleStatus.OUT_OF_SERVICE,
    VehicleStatus.REQUIRES_ATTENTION,
)


@dataclass(frozen=True)
class Create:
    """Persist a new record."""

    collection: str
    record_id: str
    entity: Any


@dataclass(frozen=True)
class Update:
    """Replace a record, only if its stored fields still match expect."""

    collection: str
    record_id: str
    entity: Any
    previous: Any
    expect: Optional[Dict[str, Any]] = None


@dataclass
class Transition:
    """Result of a lifecycle plan."""

    vehicle: Vehicle
    assignment: Optional[Assignment] = None
    inspection: Optional[Inspection] = None
    service_record: Optional[ServiceRecord] = None
    effects: List[Any] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    events: List[Tuple[str, Dict[str, Any]]] = field(default_factory=list)


def _bump(vehicle: Vehicle, **changes) -> Vehicle:
    """Copy a vehicle snapshot with changes and the next version number."""
    return replace(vehicle, version=vehicle.version + 1, **changes)


def _vehicle_update(before: Vehicle, after: Vehicle) -> Update:
    return Update(VEHICLES, before.vehicle_id, after, before, expect={"version": before.version})


# =============================================================================
# Checkout
# =============================================================================


def require_checkout_allowed(vehicle: Vehicle, now: datetime) -> None:
    """
    Raise unless the vehicle may be checked out right now.

    Checked before any field validation: an unavailable vehicle is refused
    whatever the form contains.
    """
    if vehicle.status != VehicleStatus.AVAILABLE:
        raise PreconditionError(
            f"Vehicle {vehicle.vehicle_id} is {vehicle.status.value} and cannot be checked out"
        )
    service = next_service_status(vehicle, as_of=now.date())
    if service.is_overdue:
        raise ServiceOverdueError(
            f"Vehicle {vehicle.vehicle_id} is overdue for service"
            f" (due at {service.due_odometer or service.due_date})"
        )


def plan_checkout(
    vehicle: Vehicle,
    request: CheckoutRequest,
    now: datetime,
    assignment_id: str,
    warning_threshold: int = DEFAULT_ODOMETER_WARNING_THRESHOLD,
) -> Transition:
    """Open an assignment and hand the vehicle to the driver."""
    if request.vehicle_id != vehicle.vehicle_id:
        raise PreconditionError(
            f"Checkout for {request.vehicle_id} applied to vehicle {vehicle.vehicle_id}"
        )
    require_checkout_allowed(vehicle, now)

    odometer = validate_odometer(
        request.starting_odometer, vehicle.current_odometer, warning_threshold
    )
    if not odometer.is_valid:
        raise ValidationError([FieldError("startingOdometer", e) for e in odometer.errors])

    # The reported reading may already be past the service point
    service = next_service_status(
        replace(vehicle, current_odometer=request.starting_odometer), as_of=now.date()
    )
    if service.is_overdue:
        raise ServiceOverdueError(
            f"Vehicle {vehicle.vehicle_id} is overdue for service at"
            f" {request.starting_odometer} km (due at {service.due_odometer})"
        )

    timestamp = now.isoformat()
    assignment = Assignment(
        assignment_id=assignment_id,
        vehicle_id=vehicle.vehicle_id,
        driver_id=request.driver_id,
        starting_odometer=request.starting_odometer,
        starting_fuel=request.fuel_level,
        destination=request.destination,
        trip_purpose=request.trip_purpose,
        signature=request.signature,
        checked_out_at=timestamp,
        estimated_return=request.estimated_return,
        idempotency_key=request.idempotency_key,
    )
    updated = _bump(
        vehicle,
        status=VehicleStatus.IN_USE,
        current_driver_id=request.driver_id,
        current_odometer=request.starting_odometer,
        fuel_level=request.fuel_level,
    )

    transition = Transition(
        vehicle=updated,
        assignment=assignment,
        # Assignment first: a vehicle never shows IN_USE without its record
        effects=[
            Create(ASSIGNMENTS, assignment_id, assignment),
            _vehicle_update(vehicle, updated),
        ],
        warnings=list(odometer.warnings),
    )
    transition.events.append(
        (
            "vehicle.checked_out",
            {
                "vehicleId": vehicle.vehicle_id,
                "driverId": request.driver_id,
                "assignmentId": assignment_id,
                "destination": request.destination,
            },
        )
    )
    return transition


# =============================================================================
# Checkin
# =============================================================================


def plan_checkin(
    vehicle: Vehicle,
    assignment: Assignment,
    request: CheckinRequest,
    now: datetime,
    inspection: Optional[Inspection] = None,
    warning_threshold: int = DEFAULT_ODOMETER_WARNING_THRESHOLD,
) -> Transition:
    """
    Close an active assignment and return the vehicle to the pool.

    The ending odometer must reach both the assignment's starting reading and
    the vehicle's all-time reading. The vehicle ends REQUIRES_ATTENTION when the
    inspection found critical damage or the driver declared it damaged,
    MAINTENANCE when service is now overdue, and AVAILABLE otherwise.
    """
    if request.assignment_id != assignment.assignment_id:
        raise PreconditionError(
            f"Checkin for {request.assignment_id} applied to assignment {assignment.assignment_id}"
        )
    if assignment.vehicle_id != vehicle.vehicle_id:
        raise PreconditionError(
            f"Assignment {assignment.assignment_id} belongs to vehicle {assignment.vehicle_id}"
        )
    if not assignment.is_active:
        raise PreconditionError(f"Assignment {assignment.assignment_id} is already completed")
    if vehicle.status != VehicleStatus.IN_USE:
        raise PreconditionError(
            f"Vehicle {vehicle.vehicle_id} is {vehicle.status.value}, not in use"
        )
    if inspection is not None and inspection.vehicle_id != vehicle.vehicle_id:
        raise PreconditionError(f"Inspection is for vehicle {inspection.vehicle_id}")

    errors = []
    if request.ending_odometer < assignment.starting_odometer:
        errors.append(
            FieldError(
                "endingOdometer",
                "Ending odometer cannot be less than starting odometer"
                f" ({assignment.starting_odometer} km)",
            )
        )
    odometer = validate_odometer(
        request.ending_odometer, vehicle.current_odometer, warning_threshold
    )
    errors.extend(FieldError("endingOdometer", e) for e in odometer.errors)
    if errors:
        raise ValidationError(errors)

    timestamp = now.isoformat()
    closed = replace(
        assignment,
        kind=AssignmentKind.CHECKIN,
        status=AssignmentStatus.COMPLETED,
        ending_odometer=request.ending_odometer,
        ending_fuel=request.fuel_level,
        total_distance=request.ending_odometer - assignment.starting_odometer,
        vehicle_condition=request.condition,
        damage_reported=request.damage_reported,
        damage_description=request.damage_description,
        trip_notes=request.trip_notes,
        return_signature=request.signature,
        checked_in_at=timestamp,
    )

    returned = replace(
        vehicle,
        current_driver_id=None,
        current_odometer=request.ending_odometer,
        fuel_level=request.fuel_level,
    )
    service = next_service_status(returned, as_of=now.date())
    declared_damaged = request.damage_reported and request.condition == Condition.DAMAGED
    if declared_damaged or (inspection is not None and inspection.has_critical_damage):
        new_status = VehicleStatus.REQUIRES_ATTENTION
    elif service.is_overdue:
        new_status = VehicleStatus.MAINTENANCE
    else:
        new_status = VehicleStatus.AVAILABLE
    updated = _bump(returned, status=new_status)

    effects = []
    if inspection is not None:
        effects.append(Create(INSPECTIONS, inspection.inspection_id, inspection))
    effects.append(
        Update(
            ASSIGNMENTS,
            assignment.assignment_id,
            closed,
            assignment,
            expect={"status": AssignmentStatus.ACTIVE.value},
        )
    )
    effects.append(_vehicle_update(vehicle, updated))

    transition = Transition(
        vehicle=updated,
        assignment=closed,
        inspection=inspection,
        effects=effects,
        warnings=list(odometer.warnings),
    )
    transition.events.append(
        (
            "vehicle.checked_in",
            {
                "vehicleId": vehicle.vehicle_id,
                "assignmentId": assignment.assignment_id,
                "totalDistance": closed.total_distance,
                "status": new_status.value,
            },
        )
    )
    if new_status == VehicleStatus.REQUIRES_ATTENTION:
        transition.events.append(
            (
                "vehicle.requires_attention",
                {
                    "vehicleId": vehicle.vehicle_id,
                    "inspectionId": inspection.inspection_id if inspection else None,
                    "description": request.damage_description,
                },
            )
        )
    elif new_status == VehicleStatus.MAINTENANCE:
        transition.events.append(
            (
                "vehicle.maintenance_required",
                {
                    "vehicleId": vehicle.vehicle_id,
                    "distanceRemaining": service.distance_remaining,
                    "dueDate": service.due_date,
                },
            )
        )
    return transition


# =============================================================================
# Service and manual status changes
# =============================================================================


def plan_service_completion(
    vehicle: Vehicle, record: ServiceRecord, record_id: str
) -> Transition:
    """
    Log maintenance and, for scheduled work, restart the service interval.

    A vehicle held in MAINTENANCE or REQUIRES_ATTENTION is released to
    AVAILABLE. Not allowed while the vehicle is out on a trip.
    """
    if record.vehicle_id != vehicle.vehicle_id:
        raise PreconditionError(f"Service record is for vehicle {record.vehicle_id}")
    if vehicle.status == VehicleStatus.IN_USE:
        raise PreconditionError(
            f"Vehicle {vehicle.vehicle_id} is in use; check it in before logging service"
        )
    errors = []
    if record.odometer < 0:
        errors.append(FieldError("odometer", "Odometer cannot be negative"))
    try:
        service_date = datetime.strptime(record.service_date, "%Y-%m-%d").date()
    except (TypeError, ValueError):
        service_date = None
        errors.append(
            FieldError("serviceDate", f"Not a valid date (YYYY-MM-DD): {record.service_date}")
        )
    if errors:
        raise ValidationError(errors)

    changes: Dict[str, Any] = {
        "current_odometer": max(vehicle.current_odometer, record.odometer),
    }
    if record.resets_interval:
        due_date = calc_due_date(service_date, vehicle.service_interval_months)
        changes.update(
            last_service_odometer=record.odometer,
            last_service_date=record.service_date,
            next_service_odometer=calc_due_odometer(record.odometer, vehicle.service_interval_km),
            next_service_date=due_date.isoformat() if due_date else None,
        )
    if vehicle.status in (VehicleStatus.MAINTENANCE, VehicleStatus.REQUIRES_ATTENTION):
        changes["status"] = VehicleStatus.AVAILABLE

    record = copy.copy(record)
    record.record_id = record_id
    updated = _bump(vehicle, **changes)
    transition = Transition(
        vehicle=updated,
        service_record=record,
        effects=[
            Create(SERVICE_RECORDS, record_id, record),
            _vehicle_update(vehicle, updated),
        ],
    )
    transition.events.append(
        (
            "service.logged",
            {
                "vehicleId": vehicle.vehicle_id,
                "serviceType": record.service_type,
                "odometer": record.odometer,
            },
        )
    )
    return transition


def plan_status_change(vehicle: Vehicle, status: VehicleStatus) -> Transition:
    """Move a parked vehicle between the manual statuses."""
    if status not in MANUAL_STATUSES:
        raise PreconditionError(f"Status {status.value} can only be set by checkout")
    if vehicle.status == VehicleStatus.IN_USE:
        raise PreconditionError(
            f"Vehicle {vehicle.vehicle_id} is in use; check it in first"
        )
    updated = _bump(vehicle, status=status)
    return Transition(vehicle=updated, effects=[_vehicle_update(vehicle, updated)])
