"""Fleet service: runs lifecycle operations against a record store.

The service reads snapshots, asks the pure lifecycle for a Transition, and
applies its effects while holding the vehicle's lock. Writes to a vehicle
are conditional on its version, so an operation planned from a stale
snapshot fails with ConflictError instead of overwriting newer state. If an
effect fails, the effects already applied are undone before the error
propagates.
"""

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Optional, Sequence

from .assignment import (
    Assignment,
    CheckinDraft,
    CheckoutDraft,
    checkin_request_from_draft,
    checkout_request_from_draft,
)
from .config import Settings
from .errors import (
    ConflictError,
    FieldError,
    NotFoundError,
    StorageTimeoutError,
    ValidationError,
)
from .inspection import (
    ChecklistItem,
    Clock,
    DamageReport,
    IdFactory,
    Inspection,
    VoiceNote,
    build_inspection,
    new_id,
    review_inspection,
    utc_now,
)
from .lifecycle import (
    ASSIGNMENTS,
    INSPECTIONS,
    SERVICE_RECORDS,
    VEHICLES,
    Create,
    Transition,
    Update,
    plan_checkin,
    plan_checkout,
    plan_service_completion,
    plan_status_change,
    require_checkout_allowed,
)
from .loader import FROM_RECORD, TO_RECORD, inspection_to_record
from .notify import LoggingNotifier
from .service_due import ServiceIntervalStatus, next_service_status
from .service_record import ServiceRecord
from .status import (
    AssignmentStatus,
    InspectionStatus,
    InspectionType,
    VehicleStatus,
)
from .validation import validate_fuel_level, validate_odometer
from .vehicle import Vehicle

logger = logging.getLogger(__name__)

READ_RETRIES = 2


@dataclass
class VehicleHistory:
    """Summary of a vehicle's recent use."""

    vehicle: Vehicle
    last_service: Optional[ServiceRecord]
    recent_trips: List[Assignment]
    previous_driver_id: Optional[str]
    total_trips: int
    total_distance: int


class FleetService:
    """Checkout, checkin, inspection and service operations for a fleet."""

    def __init__(
        self,
        store,
        settings: Optional[Settings] = None,
        clock: Clock = utc_now,
        id_factory: IdFactory = new_id,
        notifier=None,
    ):
        self.store = store
        self.settings = settings or Settings()
        self.clock = clock
        self.id_factory = id_factory
        self.notifier = notifier or LoggingNotifier()
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    # =========================================================================
    # Store access
    # =========================================================================

    def _read(self, method: str, *args, **kwargs):
        """Call a read-only store method, retrying timeouts."""
        kwargs.setdefault("timeout", self.settings.store_timeout)
        for attempt in range(READ_RETRIES + 1):
            try:
                return getattr(self.store, method)(*args, **kwargs)
            except StorageTimeoutError:
                if attempt == READ_RETRIES:
                    raise
                logger.warning("Store %s timed out, retrying (%d)", method, attempt + 1)

    def _load(self, collection: str, record_id: str):
        return FROM_RECORD[collection](self._read("get", collection, record_id))

    def _query(self, collection: str, filters: Dict[str, Any], order_by: str, limit=None):
        records = self._read("query", collection, filters, order_by=order_by, limit=limit)
        return [FROM_RECORD[collection](r) for r in records]

    @contextmanager
    def _vehicle_lock(self, vehicle_id: str):
        with self._locks_guard:
            lock = self._locks.setdefault(vehicle_id, threading.Lock())
        if not lock.acquire(timeout=self.settings.store_timeout):
            raise StorageTimeoutError(f"Vehicle {vehicle_id} is busy; try again")
        try:
            yield
        finally:
            lock.release()

    def _apply(self, effects: Sequence[Any]) -> None:
        """Apply effects in order; undo the applied ones if any fails."""
        timeout = self.settings.store_timeout
        applied = []
        try:
            for effect in effects:
                record = TO_RECORD[effect.collection](effect.entity)
                if isinstance(effect, Create):
                    self.store.create(
                        effect.collection, record, record_id=effect.record_id, timeout=timeout
                    )
                elif isinstance(effect, Update):
                    self.store.replace(
                        effect.collection,
                        effect.record_id,
                        record,
                        expect=effect.expect,
                        timeout=timeout,
                    )
                else:
                    raise TypeError(f"Unknown effect {effect!r}")
                applied.append(effect)
        except Exception:
            self._compensate(applied)
            raise

    def _compensate(self, applied: List[Any]) -> None:
        timeout = self.settings.store_timeout
        for effect in reversed(applied):
            logger.warning("Undoing %s/%s", effect.collection, effect.record_id)
            try:
                if isinstance(effect, Create):
                    self.store.delete(effect.collection, effect.record_id, timeout=timeout)
                else:
                    previous = TO_RECORD[effect.collection](effect.previous)
                    self.store.replace(
                        effect.collection, effect.record_id, previous, timeout=timeout
                    )
            except Exception:
                logger.exception(
                    "Could not undo %s/%s; record needs manual repair",
                    effect.collection,
                    effect.record_id,
                )

    def _notify(self, event: str, payload: Dict[str, Any]) -> None:
        """Fire-and-forget: a failing notifier never affects the operation."""
        try:
            self.notifier.notify(event, payload)
        except Exception:
            logger.exception("Notifier failed for %s", event)

    def _commit(self, transition: Transition) -> Transition:
        vehicle_id = transition.vehicle.vehicle_id
        with self._vehicle_lock(vehicle_id):
            if transition.assignment is not None and transition.assignment.is_active:
                if self._active_assignment_records(vehicle_id):
                    raise ConflictError(f"Vehicle {vehicle_id} already has an active assignment")
            self._apply(transition.effects)

        for warning in transition.warnings:
            logger.warning("Vehicle %s: %s", vehicle_id, warning)
            self._notify("odometer.warning", {"vehicleId": vehicle_id, "message": warning})
        for event, payload in transition.events:
            self._notify(event, payload)
        return transition

    def _active_assignment_records(self, vehicle_id: str) -> List[Dict[str, Any]]:
        return self._read(
            "query",
            ASSIGNMENTS,
            {"vehicleId": vehicle_id, "status": AssignmentStatus.ACTIVE.value},
        )

    # =========================================================================
    # Vehicles
    # =========================================================================

    def add_vehicle(self, vehicle: Vehicle) -> Vehicle:
        vehicle.check_invariants()
        self.store.create(
            VEHICLES,
            TO_RECORD[VEHICLES](vehicle),
            record_id=vehicle.vehicle_id,
            timeout=self.settings.store_timeout,
        )
        logger.info("Added vehicle %s", vehicle.vehicle_id)
        return vehicle

    def get_vehicle(self, vehicle_id: str) -> Vehicle:
        return self._load(VEHICLES, vehicle_id)

    def list_vehicles(self, status: Optional[VehicleStatus] = None) -> List[Vehicle]:
        filters = {"status": status.value} if status else {}
        vehicles = self._query(VEHICLES, filters, order_by="vehicleId")
        return sorted(vehicles, key=lambda v: v.vehicle_id)

    def service_status(
        self, vehicle_id: str, as_of: Optional[date] = None
    ) -> ServiceIntervalStatus:
        vehicle = self.get_vehicle(vehicle_id)
        return next_service_status(
            vehicle,
            avg_daily_distance=self.settings.avg_daily_distance,
            as_of=as_of or self.clock().date(),
            due_soon_distance=self.settings.due_soon_distance,
            due_soon_days=self.settings.due_soon_days,
        )

    def set_status(self, vehicle_id: str, status: VehicleStatus) -> Vehicle:
        """Manually park a vehicle in maintenance, out of service, etc."""
        vehicle = self.get_vehicle(vehicle_id)
        transition = self._commit(plan_status_change(vehicle, status))
        logger.info("Vehicle %s set to %s", vehicle_id, status.value)
        return transition.vehicle

    # =========================================================================
    # Checkout / checkin
    # =========================================================================

    def checkout(self, draft: CheckoutDraft) -> Transition:
        """
        Check a vehicle out to a driver.

        Raises PreconditionError if the vehicle is not available,
        ServiceOverdueError if its service is overdue, ValidationError for bad
        fields and ConflictError if another checkout won the race. Retrying
        with the same idempotency key returns the original assignment.
        """
        if not draft.vehicle_id:
            raise ValidationError([FieldError("vehicleId", "Vehicle is required")])

        if draft.idempotency_key:
            previous = self._query(
                ASSIGNMENTS,
                {"vehicleId": draft.vehicle_id, "idempotencyKey": draft.idempotency_key},
                order_by="checkedOutAt",
            )
            if previous:
                logger.info(
                    "Checkout %s already applied as %s",
                    draft.idempotency_key,
                    previous[0].assignment_id,
                )
                return Transition(
                    vehicle=self.get_vehicle(draft.vehicle_id), assignment=previous[0]
                )

        vehicle = self.get_vehicle(draft.vehicle_id)
        now = self.clock()
        require_checkout_allowed(vehicle, now)
        request = checkout_request_from_draft(draft, current_fuel=vehicle.fuel_level)
        transition = plan_checkout(
            vehicle,
            request,
            now,
            assignment_id=self.id_factory("assignment"),
            warning_threshold=self.settings.odometer_warning_threshold,
        )
        self._commit(transition)
        logger.info(
            "Vehicle %s checked out to %s (assignment %s)",
            vehicle.vehicle_id,
            request.driver_id,
            transition.assignment.assignment_id,
        )
        return transition

    def checkin(
        self,
        draft: CheckinDraft,
        checklist_items: Sequence[ChecklistItem] = (),
        damage_reports: Sequence[DamageReport] = (),
        voice_notes: Sequence[VoiceNote] = (),
        inspector_id: Optional[str] = None,
    ) -> Transition:
        """
        Return a vehicle and close its assignment.

        A post-trip inspection is recorded when damage is reported or any
        checklist/damage input is supplied.
        """
        if not draft.assignment_id:
            raise ValidationError([FieldError("assignmentId", "Assignment is required")])

        assignment = self._load(ASSIGNMENTS, draft.assignment_id)
        vehicle = self.get_vehicle(assignment.vehicle_id)
        request = checkin_request_from_draft(draft, current_fuel=vehicle.fuel_level)
        now = self.clock()

        inspection = None
        if request.damage_reported or checklist_items or damage_reports:
            inspection = build_inspection(
                vehicle.vehicle_id,
                inspector_id or assignment.driver_id,
                InspectionType.POST_TRIP,
                request.ending_odometer,
                request.fuel_level,
                checklist_items,
                damage_reports,
                voice_notes,
                notes=request.damage_description,
                clock=lambda: now,
                id_factory=self.id_factory,
                declared_condition=request.condition if request.damage_reported else None,
            )

        transition = plan_checkin(
            vehicle,
            assignment,
            request,
            now,
            inspection=inspection,
            warning_threshold=self.settings.odometer_warning_threshold,
        )
        self._commit(transition)
        logger.info(
            "Vehicle %s checked in after %s km, now %s",
            vehicle.vehicle_id,
            transition.assignment.total_distance,
            transition.vehicle.status.value,
        )
        return transition

    # =========================================================================
    # Inspections
    # =========================================================================

    def record_inspection(
        self,
        vehicle_id: str,
        inspector_id: str,
        inspection_type: InspectionType,
        checklist_items: Sequence[ChecklistItem] = (),
        damage_reports: Sequence[DamageReport] = (),
        voice_notes: Sequence[VoiceNote] = (),
        notes: Optional[str] = None,
        odometer: Optional[int] = None,
        fuel_level: Optional[float] = None,
    ) -> Inspection:
        """
        Record a standalone (periodic, pre-trip, damage) inspection.

        Readings default to the vehicle's current ones. Critical damage on a
        parked, available vehicle moves it to REQUIRES_ATTENTION.
        """
        vehicle = self.get_vehicle(vehicle_id)
        odometer = vehicle.current_odometer if odometer is None else odometer
        fuel_level = vehicle.fuel_level if fuel_level is None else fuel_level

        errors = [
            FieldError("odometer", e)
            for e in validate_odometer(odometer, vehicle.current_odometer).errors
        ]
        if not validate_fuel_level(fuel_level):
            errors.append(FieldError("fuelLevel", "Fuel level must be between 0 and 100"))
        if not inspector_id:
            errors.append(FieldError("inspectorId", "Inspector is required"))
        if errors:
            raise ValidationError(errors)

        inspection = build_inspection(
            vehicle_id,
            inspector_id,
            inspection_type,
            odometer,
            fuel_level,
            checklist_items,
            damage_reports,
            voice_notes,
            notes=notes,
            clock=self.clock,
            id_factory=self.id_factory,
        )

        effects: List[Any] = [Create(INSPECTIONS, inspection.inspection_id, inspection)]
        transition = Transition(vehicle=vehicle, inspection=inspection, effects=effects)
        if inspection.has_critical_damage and vehicle.status == VehicleStatus.AVAILABLE:
            flagged = plan_status_change(vehicle, VehicleStatus.REQUIRES_ATTENTION)
            transition.vehicle = flagged.vehicle
            effects.extend(flagged.effects)
            transition.events.append(
                (
                    "vehicle.requires_attention",
                    {
                        "vehicleId": vehicle_id,
                        "inspectionId": inspection.inspection_id,
                        "description": notes,
                    },
                )
            )
        self._commit(transition)
        logger.info(
            "Inspection %s of %s: %s",
            inspection.inspection_id,
            vehicle_id,
            inspection.overall_condition.value,
        )
        return inspection

    def get_inspection(self, inspection_id: str) -> Inspection:
        return self._load(INSPECTIONS, inspection_id)

    def review_inspection(
        self,
        inspection_id: str,
        status: InspectionStatus,
        review_notes: Optional[str] = None,
    ) -> Inspection:
        """Set the reviewer status and notes; the findings stay untouched."""
        inspection = self.get_inspection(inspection_id)
        reviewed = review_inspection(inspection, status, review_notes, clock=self.clock)
        self.store.replace(
            INSPECTIONS,
            inspection_id,
            inspection_to_record(reviewed),
            timeout=self.settings.store_timeout,
        )
        return reviewed

    # =========================================================================
    # Service
    # =========================================================================

    def log_service(
        self,
        vehicle_id: str,
        service_type: str,
        odometer: Optional[int] = None,
        service_date: Optional[str] = None,
        performed_by: Optional[str] = None,
        cost: Optional[float] = None,
        notes: Optional[str] = None,
    ) -> Transition:
        """Record maintenance on a parked vehicle and restart its interval."""
        vehicle = self.get_vehicle(vehicle_id)
        try:
            record = ServiceRecord(
                vehicle_id,
                service_type,
                service_date or self.clock().date().isoformat(),
                vehicle.current_odometer if odometer is None else odometer,
                performed_by,
                cost,
                notes,
            )
        except ValueError as e:
            raise ValidationError([FieldError("serviceType", str(e))]) from e
        transition = plan_service_completion(vehicle, record, self.id_factory("service"))
        self._commit(transition)
        logger.info("Logged %s on %s", service_type, vehicle_id)
        return transition

    # =========================================================================
    # History and reporting
    # =========================================================================

    def get_assignment(self, assignment_id: str) -> Assignment:
        return self._load(ASSIGNMENTS, assignment_id)

    def active_assignment(self, vehicle_id: str) -> Optional[Assignment]:
        records = self._active_assignment_records(vehicle_id)
        if not records:
            return None
        return FROM_RECORD[ASSIGNMENTS](records[0])

    def list_assignments(
        self,
        vehicle_id: Optional[str] = None,
        driver_id: Optional[str] = None,
        status: Optional[AssignmentStatus] = None,
        limit: Optional[int] = None,
    ) -> List[Assignment]:
        """Assignments newest first."""
        filters: Dict[str, Any] = {}
        if vehicle_id:
            filters["vehicleId"] = vehicle_id
        if driver_id:
            filters["driverId"] = driver_id
        if status:
            filters["status"] = status.value
        return self._query(ASSIGNMENTS, filters, order_by="checkedOutAt", limit=limit)

    def list_inspections(
        self,
        vehicle_id: Optional[str] = None,
        inspector_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Inspection]:
        """Inspections newest first."""
        filters: Dict[str, Any] = {}
        if vehicle_id:
            filters["vehicleId"] = vehicle_id
        if inspector_id:
            filters["inspectorId"] = inspector_id
        return self._query(INSPECTIONS, filters, order_by="timestamp", limit=limit)

    def list_service_records(
        self, vehicle_id: str, limit: Optional[int] = None
    ) -> List[ServiceRecord]:
        return self._query(
            SERVICE_RECORDS, {"vehicleId": vehicle_id}, order_by="serviceDate", limit=limit
        )

    def vehicle_history(self, vehicle_id: str, limit: int = 10) -> VehicleHistory:
        vehicle = self.get_vehicle(vehicle_id)
        services = self.list_service_records(vehicle_id, limit=1)
        trips = self.list_assignments(vehicle_id=vehicle_id)
        completed = [t for t in trips if t.status == AssignmentStatus.COMPLETED]
        return VehicleHistory(
            vehicle=vehicle,
            last_service=services[0] if services else None,
            recent_trips=trips[:limit],
            previous_driver_id=completed[0].driver_id if completed else None,
            total_trips=len(trips),
            total_distance=sum(t.total_distance or 0 for t in completed),
        )

    def fleet_summary(self) -> Dict[str, Any]:
        """Dashboard counts for the whole fleet."""
        vehicles = self.list_vehicles()
        today = self.clock().date()
        by_status = {s.value: 0 for s in VehicleStatus}
        for v in vehicles:
            by_status[v.status.value] += 1

        overdue = [
            v.vehicle_id
            for v in vehicles
            if next_service_status(
                v,
                as_of=today,
                due_soon_distance=self.settings.due_soon_distance,
                due_soon_days=self.settings.due_soon_days,
            ).is_overdue
        ]
        low_fuel = [
            v.vehicle_id for v in vehicles if v.fuel_level < self.settings.low_fuel_threshold
        ]
        active = self._read(
            "query", ASSIGNMENTS, {"status": AssignmentStatus.ACTIVE.value}
        )
        return {
            "totalVehicles": len(vehicles),
            "byStatus": by_status,
            "lowFuel": low_fuel,
            "overdueService": overdue,
            "activeAssignments": len(active),
        }
