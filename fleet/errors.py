"""Structured errors raised by the lifecycle engine and its collaborators.

Every error carries a ``kind`` and a message, and validation errors carry the
offending fields, so callers can render field-specific feedback.
"""

from typing import Any, Dict, Iterable, List, Optional


class FieldError:
    """A single field-level validation failure."""

    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message

    def to_dict(self) -> Dict[str, str]:
        return {"field": self.field, "message": self.message}

    def __eq__(self, other):
        if not isinstance(other, FieldError):
            return NotImplemented
        return (self.field, self.message) == (other.field, other.message)

    def __repr__(self):
        return f"FieldError({self.field!r}, {self.message!r})"


class FleetError(Exception):
    """Base class for all errors surfaced to callers."""

    kind = "error"
    retryable = False

    def __init__(self, message: str, fields: Optional[Iterable[FieldError]] = None):
        super().__init__(message)
        self.message = message
        self.fields: List[FieldError] = list(fields or [])

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"kind": self.kind, "message": self.message}
        if self.fields:
            d["fields"] = [f.to_dict() for f in self.fields]
        if self.retryable:
            d["retryable"] = True
        return d


class ValidationError(FleetError):
    """Input failed field validation; the caller can correct and resubmit."""

    kind = "validation"

    def __init__(self, fields: Iterable[FieldError], message: Optional[str] = None):
        fields = list(fields)
        if message is None:
            message = "; ".join(f"{f.field}: {f.message}" for f in fields) or "Invalid input"
        super().__init__(message, fields)


class PreconditionError(FleetError):
    """The vehicle or assignment is not in the state the operation requires."""

    kind = "precondition"


class ConflictError(FleetError):
    """Another operation changed the vehicle first."""

    kind = "conflict"


class ServiceOverdueError(FleetError):
    """Checkout refused because scheduled maintenance is overdue."""

    kind = "service_overdue"


class NotFoundError(FleetError):
    kind = "not_found"


class StorageError(FleetError):
    """The record store failed."""

    kind = "storage"


class StorageTimeoutError(StorageError):
    """A store call did not complete within its timeout. Safe to retry."""

    kind = "storage_timeout"
    retryable = True
