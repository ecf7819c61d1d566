"""Validation rules applied at checkout and checkin.

These are pure functions. ``validate_odometer`` distinguishes errors, which
block a transition, from warnings, which are only reported.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from .errors import FieldError

DEFAULT_ODOMETER_WARNING_THRESHOLD = 1000


@dataclass
class OdometerCheck:
    """Result of an odometer validation."""

    is_valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


def validate_odometer(
    new_reading: int,
    previous_reading: int,
    warning_threshold: int = DEFAULT_ODOMETER_WARNING_THRESHOLD,
) -> OdometerCheck:
    """
    Check a new odometer reading against the previous one.

    A reading lower than the previous one is an error. An increase of
    warning_threshold or more is a warning and leaves is_valid untouched.
    """
    errors = []
    warnings = []

    if new_reading < previous_reading:
        errors.append(
            f"Reading cannot be lower than current reading ({previous_reading} km)"
        )

    difference = new_reading - previous_reading
    if difference >= warning_threshold:
        warnings.append(f"Unusually high mileage increase detected ({difference} km)")

    return OdometerCheck(is_valid=not errors, errors=errors, warnings=warnings)


def validate_fuel_level(pct: Optional[float]) -> bool:
    """Fuel is a percentage of tank capacity."""
    return pct is not None and 0 <= pct <= 100


def _is_blank(value) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def validate_required_checkout(draft) -> List[FieldError]:
    """Report every missing checkout field. A missing signature always fails."""
    errors = []
    if _is_blank(draft.driver_id):
        errors.append(FieldError("driverId", "Driver is required"))
    if _is_blank(draft.starting_odometer):
        errors.append(FieldError("startingOdometer", "Starting odometer is required"))
    if _is_blank(draft.destination):
        errors.append(FieldError("destination", "Destination is required"))
    if _is_blank(draft.trip_purpose):
        errors.append(FieldError("tripPurpose", "Trip purpose is required"))
    if _is_blank(draft.signature):
        errors.append(FieldError("signature", "Digital signature is required"))
    return errors


def validate_required_checkin(draft) -> List[FieldError]:
    """Ending odometer and signature; a damage description when damage is reported."""
    errors = []
    if _is_blank(draft.ending_odometer):
        errors.append(FieldError("endingOdometer", "Ending odometer is required"))
    if _is_blank(draft.signature):
        errors.append(FieldError("signature", "Digital signature is required"))
    if draft.damage_reported and _is_blank(draft.damage_description):
        errors.append(
            FieldError("damageDescription", "Describe the damage being reported")
        )
    return errors


def validate_readings(
    odometer: Optional[int], fuel: Optional[float], odometer_field: str
) -> List[FieldError]:
    """Range checks shared by checkout and checkin drafts."""
    errors = []
    if odometer is not None and odometer < 0:
        errors.append(FieldError(odometer_field, "Odometer cannot be negative"))
    if fuel is not None and not validate_fuel_level(fuel):
        errors.append(FieldError("fuelLevel", "Fuel level must be between 0 and 100"))
    return errors
