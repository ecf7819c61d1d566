"""Conversion between entities and store records, and fleet file loading.

Records use camelCase keys and omit None values. Parsing is closed: only
the fields listed here are read, unknown keys are ignored and never copied
into an entity.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Union

import yaml

from .assignment import Assignment
from .inspection import ChecklistItem, DamageReport, Inspection, VoiceNote
from .lifecycle import ASSIGNMENTS, INSPECTIONS, SERVICE_RECORDS, VEHICLES
from .service_record import ServiceRecord
from .status import (
    AssignmentKind,
    AssignmentStatus,
    ChecklistStatus,
    Condition,
    DamageSeverity,
    InspectionStatus,
    InspectionType,
    ItemSeverity,
    VehicleStatus,
)
from .vehicle import Vehicle


def _compact(d: Dict[str, Any]) -> Dict[str, Any]:
    """Drop None values for cleaner records."""
    return {k: v for k, v in d.items() if v is not None}


def _enum(cls, value):
    return cls(value) if value is not None else None


def _value(member):
    return member.value if member is not None else None


# =============================================================================
# Vehicle
# =============================================================================


def vehicle_to_record(vehicle: Vehicle) -> Dict[str, Any]:
    return _compact(
        {
            "vehicleId": vehicle.vehicle_id,
            "make": vehicle.make,
            "model": vehicle.model,
            "year": vehicle.year,
            "licensePlate": vehicle.license_plate,
            "status": vehicle.status.value,
            "currentOdometer": vehicle.current_odometer,
            "fuelLevel": vehicle.fuel_level,
            "currentDriverId": vehicle.current_driver_id,
            "lastServiceOdometer": vehicle.last_service_odometer,
            "lastServiceDate": vehicle.last_service_date,
            "nextServiceOdometer": vehicle.next_service_odometer,
            "nextServiceDate": vehicle.next_service_date,
            "serviceIntervalKm": vehicle.service_interval_km,
            "serviceIntervalMonths": vehicle.service_interval_months,
            "version": vehicle.version,
        }
    )


def vehicle_from_record(dct: Dict[str, Any]) -> Vehicle:
    return Vehicle(
        vehicle_id=dct["vehicleId"],
        make=dct["make"],
        model=dct["model"],
        year=dct["year"],
        license_plate=dct["licensePlate"],
        status=VehicleStatus(dct.get("status", "available")),
        current_odometer=dct.get("currentOdometer", 0),
        fuel_level=dct.get("fuelLevel", 100),
        current_driver_id=dct.get("currentDriverId"),
        last_service_odometer=dct.get("lastServiceOdometer"),
        last_service_date=dct.get("lastServiceDate"),
        next_service_odometer=dct.get("nextServiceOdometer"),
        next_service_date=dct.get("nextServiceDate"),
        service_interval_km=dct.get("serviceIntervalKm"),
        service_interval_months=dct.get("serviceIntervalMonths"),
        version=dct.get("version", 0),
    )


# =============================================================================
# Assignment
# =============================================================================


def assignment_to_record(a: Assignment) -> Dict[str, Any]:
    record = _compact(
        {
            "assignmentId": a.assignment_id,
            "vehicleId": a.vehicle_id,
            "driverId": a.driver_id,
            "kind": a.kind.value,
            "status": a.status.value,
            "startingOdometer": a.starting_odometer,
            "startingFuel": a.starting_fuel,
            "destination": a.destination,
            "tripPurpose": a.trip_purpose,
            "signature": a.signature,
            "checkedOutAt": a.checked_out_at,
            "estimatedReturn": a.estimated_return,
            "idempotencyKey": a.idempotency_key,
            "endingOdometer": a.ending_odometer,
            "endingFuel": a.ending_fuel,
            "totalDistance": a.total_distance,
            "vehicleCondition": _value(a.vehicle_condition),
            "damageDescription": a.damage_description,
            "tripNotes": a.trip_notes,
            "returnSignature": a.return_signature,
            "checkedInAt": a.checked_in_at,
        }
    )
    if a.damage_reported:
        record["damageReported"] = True
    return record


def assignment_from_record(dct: Dict[str, Any]) -> Assignment:
    return Assignment(
        assignment_id=dct["assignmentId"],
        vehicle_id=dct["vehicleId"],
        driver_id=dct["driverId"],
        starting_odometer=dct["startingOdometer"],
        starting_fuel=dct["startingFuel"],
        destination=dct["destination"],
        trip_purpose=dct["tripPurpose"],
        signature=dct["signature"],
        checked_out_at=dct["checkedOutAt"],
        kind=AssignmentKind(dct.get("kind", "checkout")),
        status=AssignmentStatus(dct.get("status", "active")),
        estimated_return=dct.get("estimatedReturn"),
        idempotency_key=dct.get("idempotencyKey"),
        ending_odometer=dct.get("endingOdometer"),
        ending_fuel=dct.get("endingFuel"),
        total_distance=dct.get("totalDistance"),
        vehicle_condition=_enum(Condition, dct.get("vehicleCondition")),
        damage_reported=dct.get("damageReported", False),
        damage_description=dct.get("damageDescription"),
        trip_notes=dct.get("tripNotes"),
        return_signature=dct.get("returnSignature"),
        checked_in_at=dct.get("checkedInAt"),
    )


# =============================================================================
# Inspection
# =============================================================================


def checklist_item_to_record(item: ChecklistItem) -> Dict[str, Any]:
    return _compact(
        {
            "item": item.item,
            "status": item.status.value,
            "severity": _value(item.severity),
            "notes": item.notes,
        }
    )


def checklist_item_from_record(dct: Dict[str, Any]) -> ChecklistItem:
    return ChecklistItem(
        dct["item"],
        ChecklistStatus(dct["status"]),
        _enum(ItemSeverity, dct.get("severity")),
        dct.get("notes"),
    )


def damage_report_to_record(d: DamageReport) -> Dict[str, Any]:
    return _compact(
        {
            "damageId": d.damage_id,
            "component": d.component,
            "hasDamage": d.has_damage,
            "severity": _value(d.severity),
            "description": d.description,
            "repairRequired": d.repair_required,
        }
    )


def damage_report_from_record(dct: Dict[str, Any]) -> DamageReport:
    # repairRequired is derived and never read back
    return DamageReport(
        dct["component"],
        dct.get("hasDamage", True),
        _enum(DamageSeverity, dct.get("severity")),
        dct.get("description", ""),
        damage_id=dct.get("damageId"),
    )


def voice_note_from_record(dct: Dict[str, Any]) -> VoiceNote:
    return VoiceNote(dct["audioFile"], dct.get("duration", 0), note_id=dct.get("noteId"))


def inspection_to_record(i: Inspection) -> Dict[str, Any]:
    return _compact(
        {
            "inspectionId": i.inspection_id,
            "vehicleId": i.vehicle_id,
            "inspectorId": i.inspector_id,
            "inspectionType": i.inspection_type.value,
            "odometer": i.odometer,
            "fuelLevel": i.fuel_level,
            "overallCondition": i.overall_condition.value,
            "timestamp": i.timestamp,
            "checklistItems": [checklist_item_to_record(c) for c in i.checklist_items],
            "damageReports": [damage_report_to_record(d) for d in i.damage_reports],
            "voiceNotes": [
                _compact({"noteId": v.note_id, "audioFile": v.audio_file, "duration": v.duration})
                for v in i.voice_notes
            ],
            "notes": i.notes,
            "status": i.status.value,
            "reviewNotes": i.review_notes,
            "reviewedAt": i.reviewed_at,
        }
    )


def inspection_from_record(dct: Dict[str, Any]) -> Inspection:
    return Inspection(
        inspection_id=dct["inspectionId"],
        vehicle_id=dct["vehicleId"],
        inspector_id=dct["inspectorId"],
        inspection_type=InspectionType(dct["inspectionType"]),
        odometer=dct["odometer"],
        fuel_level=dct["fuelLevel"],
        overall_condition=Condition(dct["overallCondition"]),
        timestamp=dct["timestamp"],
        checklist_items=tuple(
            checklist_item_from_record(c) for c in dct.get("checklistItems", [])
        ),
        damage_reports=tuple(
            damage_report_from_record(d) for d in dct.get("damageReports", [])
        ),
        voice_notes=tuple(voice_note_from_record(v) for v in dct.get("voiceNotes", [])),
        notes=dct.get("notes"),
        status=InspectionStatus(dct.get("status", "completed")),
        review_notes=dct.get("reviewNotes"),
        reviewed_at=dct.get("reviewedAt"),
    )


# =============================================================================
# Service record
# =============================================================================


def service_record_to_record(r: ServiceRecord) -> Dict[str, Any]:
    return _compact(
        {
            "recordId": r.record_id,
            "vehicleId": r.vehicle_id,
            "serviceType": r.service_type,
            "serviceDate": r.service_date,
            "odometer": r.odometer,
            "performedBy": r.performed_by,
            "cost": r.cost,
            "notes": r.notes,
        }
    )


def service_record_from_record(dct: Dict[str, Any]) -> ServiceRecord:
    return ServiceRecord(
        dct["vehicleId"],
        dct["serviceType"],
        dct["serviceDate"],
        dct["odometer"],
        dct.get("performedBy"),
        dct.get("cost"),
        dct.get("notes"),
        record_id=dct.get("recordId"),
    )


TO_RECORD = {
    VEHICLES: vehicle_to_record,
    ASSIGNMENTS: assignment_to_record,
    INSPECTIONS: inspection_to_record,
    SERVICE_RECORDS: service_record_to_record,
}

FROM_RECORD = {
    VEHICLES: vehicle_from_record,
    ASSIGNMENTS: assignment_from_record,
    INSPECTIONS: inspection_from_record,
    SERVICE_RECORDS: service_record_from_record,
}


# =============================================================================
# Fleet files
# =============================================================================


def _parse_object(dct: Dict[str, Any]) -> Union[Vehicle, ServiceRecord, dict]:
    """Parse dictionary into appropriate object type."""
    # Vehicle object
    if "vehicleId" in dct and "licensePlate" in dct:
        return vehicle_from_record(dct)
    # Service record
    elif "serviceType" in dct and "serviceDate" in dct:
        return service_record_from_record(dct)
    else:
        # Return dict as-is for unknown structures
        return dct


def load_fleet(filename: Union[str, Path]) -> Dict[str, List[Any]]:
    """
    Load a fleet seed file.

    The file has a ``vehicles`` list and an optional ``serviceRecords`` list.
    Returns {"vehicles": [Vehicle], "serviceRecords": [ServiceRecord]}.
    """
    with open(filename, "rb") as fp:
        json_data = json.dumps(yaml.load(fp, Loader=yaml.SafeLoader), indent=4, default=str)
        data = json.loads(json_data, object_hook=_parse_object)
    return {
        "vehicles": data.get("vehicles") or [],
        "serviceRecords": data.get("serviceRecords") or [],
    }


def seed_store(store, filename: Union[str, Path]) -> int:
    """Copy the vehicles and service records of a fleet file into a store."""
    fleet = load_fleet(filename)
    for vehicle in fleet["vehicles"]:
        vehicle.check_invariants()
        store.create(VEHICLES, vehicle_to_record(vehicle), record_id=vehicle.vehicle_id)
    for i, record in enumerate(fleet["serviceRecords"]):
        record_id = record.record_id or f"{record.vehicle_id}-service-{i}"
        record.record_id = record_id
        store.create(SERVICE_RECORDS, service_record_to_record(record), record_id=record_id)
    return len(fleet["vehicles"])
