"""
Fleet vehicle checkout/checkin tracking.

This package provides the lifecycle and inspection engine for a fleet:
- Status: Vehicle, assignment, inspection and urgency enums
- Validation: Odometer, fuel and required-field checks
- Condition: Overall condition from damages and checklist results
- Lifecycle: Pure checkout/checkin/service state transitions
- Inspection: Immutable inspection records
- ServiceIntervalStatus: Calculated service status
- FleetService: Applies transitions to a record store
"""

from .status import (
    AssignmentKind,
    AssignmentStatus,
    ChecklistStatus,
    Condition,
    DamageSeverity,
    InspectionStatus,
    InspectionType,
    ItemSeverity,
    ServiceStatus,
    VehicleStatus,
)
from .errors import (
    ConflictError,
    FieldError,
    FleetError,
    NotFoundError,
    PreconditionError,
    ServiceOverdueError,
    StorageError,
    StorageTimeoutError,
    ValidationError,
)
from .vehicle import Vehicle
from .assignment import Assignment, CheckinDraft, CheckoutDraft
from .inspection import (
    ChecklistItem,
    DamageReport,
    Inspection,
    VoiceNote,
    build_inspection,
    review_inspection,
)
from .service_record import ServiceRecord
from .condition import assess_condition
from .validation import validate_fuel_level, validate_odometer
from .service_due import ServiceIntervalStatus, next_service_status
from .lifecycle import Transition, plan_checkin, plan_checkout
from .store import MemoryStore, YamlStore
from .loader import load_fleet, seed_store
from .config import Settings, load_settings
from .service import FleetService

__all__ = [
    "AssignmentKind",
    "AssignmentStatus",
    "ChecklistStatus",
    "Condition",
    "DamageSeverity",
    "InspectionStatus",
    "InspectionType",
    "ItemSeverity",
    "ServiceStatus",
    "VehicleStatus",
    "ConflictError",
    "FieldError",
    "FleetError",
    "NotFoundError",
    "PreconditionError",
    "ServiceOverdueError",
    "StorageError",
    "StorageTimeoutError",
    "ValidationError",
    "Vehicle",
    "Assignment",
    "CheckinDraft",
    "CheckoutDraft",
    "ChecklistItem",
    "DamageReport",
    "Inspection",
    "VoiceNote",
    "build_inspection",
    "review_inspection",
    "ServiceRecord",
    "assess_condition",
    "validate_fuel_level",
    "validate_odometer",
    "ServiceIntervalStatus",
    "next_service_status",
    "Transition",
    "plan_checkin",
    "plan_checkout",
    "MemoryStore",
    "YamlStore",
    "load_fleet",
    "seed_store",
    "Settings",
    "load_settings",
    "FleetService",
]
