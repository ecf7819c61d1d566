"""Status enums for vehicles, assignments, inspections and service urgency."""

from enum import Enum


class VehicleStatus(Enum):
    """Where a vehicle is in its checkout lifecycle."""

    AVAILABLE = "available"
    IN_USE = "in_use"
    MAINTENANCE = "maintenance"
    OUT_OF_SERVICE = "out_of_service"
    REQUIRES_ATTENTION = "requires_attention"


class AssignmentStatus(Enum):
    ACTIVE = "active"
    COMPLETED = "completed"


class AssignmentKind(Enum):
    CHECKOUT = "checkout"
    CHECKIN = "checkin"


class InspectionType(Enum):
    PRE_TRIP = "pre_trip"
    POST_TRIP = "post_trip"
    PERIODIC = "periodic"
    DAMAGE_REPORT = "damage_report"


class InspectionStatus(Enum):
    COMPLETED = "completed"
    REVIEWED = "reviewed"
    REQUIRES_ACTION = "requires_action"


class ChecklistStatus(Enum):
    PASS = "pass"
    FAIL = "fail"
    NEEDS_ATTENTION = "needs_attention"


class DamageSeverity(Enum):
    MINOR = "minor"
    MODERATE = "moderate"
    MAJOR = "major"
    CRITICAL = "critical"


class Condition(Enum):
    """Overall vehicle condition, best first."""

    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"
    DAMAGED = "damaged"


class ServiceStatus(Enum):
    """Maintenance urgency categories. Lower value = more urgent."""

    OVERDUE = 1
    DUE_SOON = 2
    OK = 3
    UNKNOWN = 4  # No interval configured


class ItemSeverity(Enum):
    """Severity attached to a failed checklist item."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"
