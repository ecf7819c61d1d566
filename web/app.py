"""Flask JSON API for fleet checkout and checkin."""

import logging
import os
from typing import Any, Dict, Optional

from flask import Flask, jsonify, request
from jsonschema import Draft202012Validator

from fleet import (
    ChecklistItem,
    ChecklistStatus,
    CheckinDraft,
    CheckoutDraft,
    Condition,
    DamageReport,
    DamageSeverity,
    FieldError,
    FleetError,
    FleetService,
    InspectionStatus,
    InspectionType,
    ItemSeverity,
    ValidationError,
    VehicleStatus,
    VoiceNote,
    YamlStore,
    load_settings,
)
from fleet.config import Settings
from fleet.loader import (
    assignment_to_record,
    inspection_to_record,
    service_record_to_record,
    vehicle_to_record,
)
from validate_yaml import load_schema

logger = logging.getLogger(__name__)

HTTP_STATUS = {
    "validation": 400,
    "precondition": 409,
    "conflict": 409,
    "service_overdue": 409,
    "not_found": 404,
    "storage": 503,
    "storage_timeout": 503,
}


def error_response(error: FleetError):
    """Render a structured error as {"error": {...}} with its HTTP status."""
    return jsonify({"error": error.to_dict()}), HTTP_STATUS.get(error.kind, 500)


def body_validators() -> Dict[str, Draft202012Validator]:
    """Build one validator per request body definition in schema.yaml."""
    schema = load_schema()
    defs = schema["$defs"]
    return {
        name: Draft202012Validator({"$ref": f"#/$defs/{name}", "$defs": defs})
        for name in defs
        if name.endswith("Body")
    }


def read_body(validators, name: str) -> Dict[str, Any]:
    """Return the JSON body, raising ValidationError if it breaks the schema."""
    body = request.get_json(silent=True)
    if body is None:
        body = {}
    errors = sorted(validators[name].iter_errors(body), key=lambda e: list(e.path))
    if errors:
        raise ValidationError(
            [
                FieldError(".".join(str(p) for p in e.path) or "body", e.message)
                for e in errors
            ]
        )
    return body


def parse_checklist(items) -> list:
    return [
        ChecklistItem(
            i["item"],
            ChecklistStatus(i["status"]),
            ItemSeverity(i["severity"]) if "severity" in i else None,
            i.get("notes"),
        )
        for i in items or []
    ]


def parse_damages(reports) -> list:
    damages = []
    for n, d in enumerate(reports or []):
        try:
            damages.append(
                DamageReport(
                    d["component"],
                    d.get("hasDamage", True),
                    DamageSeverity(d["severity"]) if "severity" in d else None,
                    d.get("description", ""),
                )
            )
        except ValueError as e:
            raise ValidationError([FieldError(f"damageReports.{n}", str(e))]) from e
    return damages


def parse_voice_notes(notes) -> list:
    return [VoiceNote(v["audioFile"], v.get("duration", 0)) for v in notes or []]


def transition_to_dict(transition) -> Dict[str, Any]:
    result: Dict[str, Any] = {"vehicle": vehicle_to_record(transition.vehicle)}
    if transition.assignment is not None:
        result["assignment"] = assignment_to_record(transition.assignment)
    if transition.inspection is not None:
        result["inspection"] = inspection_to_record(transition.inspection)
    if transition.service_record is not None:
        result["serviceRecord"] = service_record_to_record(transition.service_record)
    if transition.warnings:
        result["warnings"] = list(transition.warnings)
    return result


def create_app(store=None, settings: Optional[Settings] = None, **service_kwargs) -> Flask:
    """
    Build the API app.

    Without a store, the app serves the YAML file named by FLEET_DATA_FILE
    (default: settings.data_file). service_kwargs (clock, id_factory,
    notifier) are passed to FleetService.
    """
    app = Flask(__name__)
    app.secret_key = os.environ.get("SECRET_KEY", "dev-secret-key-change-in-prod")

    settings = settings or load_settings()
    if store is None:
        data_file = os.environ.get("FLEET_DATA_FILE", settings.data_file)
        store = YamlStore(data_file, default_timeout=settings.store_timeout)
    service = FleetService(store, settings, **service_kwargs)
    validators = body_validators()
    app.config["FLEET_SERVICE"] = service

    @app.errorhandler(FleetError)
    def handle_fleet_error(error: FleetError):
        if error.kind.startswith("storage"):
            logger.error("%s %s failed: %s", request.method, request.path, error.message)
        return error_response(error)

    # =========================================================================
    # Vehicles
    # =========================================================================

    @app.route("/vehicles")
    def list_vehicles():
        status = request.args.get("status")
        try:
            status_filter = VehicleStatus(status) if status else None
        except ValueError:
            raise ValidationError([FieldError("status", f"Unknown status '{status}'")]) from None
        vehicles = service.list_vehicles(status_filter)
        return jsonify({"vehicles": [vehicle_to_record(v) for v in vehicles]})

    @app.route("/vehicles/<vehicle_id>")
    def get_vehicle(vehicle_id: str):
        vehicle = service.get_vehicle(vehicle_id)
        active = service.active_assignment(vehicle_id)
        return jsonify(
            {
                "vehicle": vehicle_to_record(vehicle),
                "activeAssignment": assignment_to_record(active) if active else None,
            }
        )

    @app.route("/vehicles/<vehicle_id>/status", methods=["PUT"])
    def set_status(vehicle_id: str):
        body = read_body(validators, "statusBody")
        vehicle = service.set_status(vehicle_id, VehicleStatus(body["status"]))
        return jsonify({"vehicle": vehicle_to_record(vehicle)})

    @app.route("/vehicles/<vehicle_id>/service-status")
    def service_status(vehicle_id: str):
        svc = service.service_status(vehicle_id)
        return jsonify(
            {
                "status": svc.status.name,
                "isOverdue": svc.is_overdue,
                "distanceRemaining": svc.distance_remaining,
                "estimatedDaysRemaining": svc.estimated_days_remaining,
                "dueOdometer": svc.due_odometer,
                "dueDate": svc.due_date,
                "daysUntilDueDate": svc.days_until_due_date,
            }
        )

    @app.route("/vehicles/<vehicle_id>/history")
    def vehicle_history(vehicle_id: str):
        limit = request.args.get("limit", 10, type=int)
        history = service.vehicle_history(vehicle_id, limit=limit)
        return jsonify(
            {
                "vehicle": vehicle_to_record(history.vehicle),
                "lastService": (
                    service_record_to_record(history.last_service)
                    if history.last_service
                    else None
                ),
                "recentTrips": [assignment_to_record(a) for a in history.recent_trips],
                "previousDriverId": history.previous_driver_id,
                "totalTrips": history.total_trips,
                "totalDistance": history.total_distance,
            }
        )

    # =========================================================================
    # Checkout / checkin
    # =========================================================================

    @app.route("/vehicles/<vehicle_id>/checkout", methods=["POST"])
    def checkout(vehicle_id: str):
        body = read_body(validators, "checkoutBody")
        draft = CheckoutDraft(
            vehicle_id=vehicle_id,
            driver_id=body.get("driverId"),
            starting_odometer=body.get("startingOdometer"),
            fuel_level=body.get("fuelLevel"),
            destination=body.get("destination"),
            trip_purpose=body.get("tripPurpose"),
            signature=body.get("signature"),
            estimated_return=body.get("estimatedReturn"),
            idempotency_key=body.get("idempotencyKey") or request.headers.get("Idempotency-Key"),
        )
        transition = service.checkout(draft)
        return jsonify(transition_to_dict(transition)), 201

    @app.route("/assignments/<assignment_id>/checkin", methods=["POST"])
    def checkin(assignment_id: str):
        body = read_body(validators, "checkinBody")
        condition = body.get("condition")
        draft = CheckinDraft(
            assignment_id=assignment_id,
            ending_odometer=body.get("endingOdometer"),
            fuel_level=body.get("fuelLevel"),
            condition=Condition(condition) if condition else None,
            damage_reported=body.get("damageReported", False),
            damage_description=body.get("damageDescription"),
            trip_notes=body.get("tripNotes"),
            signature=body.get("signature"),
        )
        transition = service.checkin(
            draft,
            checklist_items=parse_checklist(body.get("checklistItems")),
            damage_reports=parse_damages(body.get("damageReports")),
            voice_notes=parse_voice_notes(body.get("voiceNotes")),
            inspector_id=body.get("inspectorId"),
        )
        return jsonify(transition_to_dict(transition))

    @app.route("/assignments")
    def list_assignments():
        assignments = service.list_assignments(
            vehicle_id=request.args.get("vehicleId"),
            driver_id=request.args.get("driverId"),
            limit=request.args.get("limit", type=int),
        )
        return jsonify({"assignments": [assignment_to_record(a) for a in assignments]})

    # =========================================================================
    # Inspections
    # =========================================================================

    @app.route("/vehicles/<vehicle_id>/inspections", methods=["POST"])
    def create_inspection(vehicle_id: str):
        body = read_body(validators, "inspectionBody")
        inspection = service.record_inspection(
            vehicle_id,
            body["inspectorId"],
            InspectionType(body["inspectionType"]),
            checklist_items=parse_checklist(body.get("checklistItems")),
            damage_reports=parse_damages(body.get("damageReports")),
            voice_notes=parse_voice_notes(body.get("voiceNotes")),
            notes=body.get("notes"),
            odometer=body.get("odometer"),
            fuel_level=body.get("fuelLevel"),
        )
        return jsonify({"inspection": inspection_to_record(inspection)}), 201

    @app.route("/vehicles/<vehicle_id>/inspections")
    def list_inspections(vehicle_id: str):
        inspections = service.list_inspections(
            vehicle_id=vehicle_id, limit=request.args.get("limit", type=int)
        )
        return jsonify({"inspections": [inspection_to_record(i) for i in inspections]})

    @app.route("/inspections/<inspection_id>/review", methods=["POST"])
    def review_inspection(inspection_id: str):
        body = read_body(validators, "reviewBody")
        inspection = service.review_inspection(
            inspection_id, InspectionStatus(body["status"]), body.get("reviewNotes")
        )
        return jsonify({"inspection": inspection_to_record(inspection)})

    # =========================================================================
    # Service and summary
    # =========================================================================

    @app.route("/vehicles/<vehicle_id>/service", methods=["POST"])
    def log_service(vehicle_id: str):
        body = read_body(validators, "serviceBody")
        transition = service.log_service(
            vehicle_id,
            body["serviceType"],
            odometer=body.get("odometer"),
            service_date=body.get("serviceDate"),
            performed_by=body.get("performedBy"),
            cost=body.get("cost"),
            notes=body.get("notes"),
        )
        return jsonify(transition_to_dict(transition)), 201

    @app.route("/summary")
    def summary():
        return jsonify(service.fleet_summary())

    return app


if __name__ == "__main__":
    # Run with debug mode for development
    # Using 5001 to avoid conflict with macOS AirPlay Receiver on 5000
    create_app().run(debug=True, host="0.0.0.0", port=5001)
