"""Assignment records plus the draft and request types for checkout/checkin.

Form input arrives as a draft where anything may be missing. Only the
``*_request_from_draft`` functions produce the complete request types that
the lifecycle accepts, so the lifecycle never checks for missing fields.
"""

from dataclasses import dataclass
from typing import Optional

from .errors import FieldError, ValidationError
from .status import AssignmentKind, AssignmentStatus, Condition
from .validation import (
    validate_readings,
    validate_required_checkin,
    validate_required_checkout,
)


@dataclass
class Assignment:
    """One checkout/checkin trip of a vehicle by a driver."""

    assignment_id: str
    vehicle_id: str
    driver_id: str
    starting_odometer: int
    starting_fuel: float
    destination: str
    trip_purpose: str
    signature: str
    checked_out_at: str
    kind: AssignmentKind = AssignmentKind.CHECKOUT
    status: AssignmentStatus = AssignmentStatus.ACTIVE
    estimated_return: Optional[str] = None
    idempotency_key: Optional[str] = None
    ending_odometer: Optional[int] = None
    ending_fuel: Optional[float] = None
    total_distance: Optional[int] = None
    vehicle_condition: Optional[Condition] = None
    damage_reported: bool = False
    damage_description: Optional[str] = None
    trip_notes: Optional[str] = None
    return_signature: Optional[str] = None
    checked_in_at: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.status == AssignmentStatus.ACTIVE


# =============================================================================
# Drafts (raw input)
# =============================================================================


@dataclass
class CheckoutDraft:
    vehicle_id: Optional[str] = None
    driver_id: Optional[str] = None
    starting_odometer: Optional[int] = None
    fuel_level: Optional[float] = None
    destination: Optional[str] = None
    trip_purpose: Optional[str] = None
    signature: Optional[str] = None
    estimated_return: Optional[str] = None
    idempotency_key: Optional[str] = None


@dataclass
class CheckinDraft:
    assignment_id: Optional[str] = None
    ending_odometer: Optional[int] = None
    fuel_level: Optional[float] = None
    condition: Optional[Condition] = None
    damage_reported: bool = False
    damage_description: Optional[str] = None
    trip_notes: Optional[str] = None
    signature: Optional[str] = None


# =============================================================================
# Requests (complete)
# =============================================================================


@dataclass(frozen=True)
class CheckoutRequest:
    vehicle_id: str
    driver_id: str
    starting_odometer: int
    fuel_level: float
    destination: str
    trip_purpose: str
    signature: str
    estimated_return: Optional[str] = None
    idempotency_key: Optional[str] = None


@dataclass(frozen=True)
class CheckinRequest:
    assignment_id: str
    ending_odometer: int
    fuel_level: float
    signature: str
    condition: Optional[Condition] = None
    damage_reported: bool = False
    damage_description: Optional[str] = None
    trip_notes: Optional[str] = None


def checkout_request_from_draft(
    draft: CheckoutDraft, current_fuel: Optional[float] = None
) -> CheckoutRequest:
    """
    Validate a checkout draft and return the complete request.

    Fuel defaults to current_fuel (the vehicle's last known level) when the
    form leaves it empty. Raises ValidationError listing every bad field.
    """
    fuel = draft.fuel_level if draft.fuel_level is not None else current_fuel
    errors = validate_required_checkout(draft)
    if draft.vehicle_id is None:
        errors.insert(0, FieldError("vehicleId", "Vehicle is required"))
    if fuel is None:
        errors.append(FieldError("fuelLevel", "Fuel level is required"))
    errors.extend(validate_readings(draft.starting_odometer, fuel, "startingOdometer"))
    if errors:
        raise ValidationError(errors)

    return CheckoutRequest(
        vehicle_id=draft.vehicle_id,
        driver_id=draft.driver_id.strip(),
        starting_odometer=int(draft.starting_odometer),
        fuel_level=fuel,
        destination=draft.destination.strip(),
        trip_purpose=draft.trip_purpose.strip(),
        signature=draft.signature.strip(),
        estimated_return=draft.estimated_return,
        idempotency_key=draft.idempotency_key,
    )


def checkin_request_from_draft(
    draft: CheckinDraft, current_fuel: Optional[float] = None
) -> CheckinRequest:
    """Validate a checkin draft and return the complete request."""
    fuel = draft.fuel_level if draft.fuel_level is not None else current_fuel
    errors = validate_required_checkin(draft)
    if draft.assignment_id is None:
        errors.insert(0, FieldError("assignmentId", "Assignment is required"))
    if fuel is None:
        errors.append(FieldError("fuelLevel", "Fuel level is required"))
    errors.extend(validate_readings(draft.ending_odometer, fuel, "endingOdometer"))
    if errors:
        raise ValidationError(errors)

    return CheckinRequest(
        assignment_id=draft.assignment_id,
        ending_odometer=int(draft.ending_odometer),
        fuel_level=fuel,
        signature=draft.signature.strip(),
        condition=draft.condition,
        damage_reported=bool(draft.damage_reported),
        damage_description=draft.damage_description,
        trip_notes=draft.trip_notes,
    )
