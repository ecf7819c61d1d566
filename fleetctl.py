#!/usr/bin/env python3
"""
Unified CLI for fleet checkout and checkin.

Commands:
  seed         - Load vehicles and service records from a fleet file
  status       - Show every vehicle with its status and service due
  history      - View trips and service history of a vehicle
  inspections  - List inspections of a vehicle
  checkout     - Check a vehicle out to a driver
  checkin      - Return a vehicle and close its assignment
  log-service  - Record maintenance on a vehicle
  summary      - Fleet dashboard counts
"""

import argparse
import logging
import sys
from pathlib import Path
import yaml
from tabulate import tabulate
from typing import List, Optional

from fleet import (
    ChecklistItem,
    ChecklistStatus,
    CheckinDraft,
    CheckoutDraft,
    Condition,
    DamageReport,
    DamageSeverity,
    FleetError,
    FleetService,
    ItemSeverity,
    MemoryStore,
    ServiceIntervalStatus,
    ServiceStatus,
    YamlStore,
    load_settings,
    seed_store,
)
from fleet.service_record import SERVICE_TYPES

logger = logging.getLogger("fleetctl")

# =============================================================================
# Formatting helpers
# =============================================================================


def format_km(km: Optional[float]) -> str:
    """Format a distance or odometer reading for display."""
    return f"{km:,.0f}" if km is not None else "-"


def format_cost(cost: Optional[float]) -> str:
    """Format cost for display."""
    return f"${cost:,.2f}" if cost is not None else "-"


def format_fuel(pct: Optional[float]) -> str:
    return f"{pct:.0f}%" if pct is not None else "-"


def format_service(svc: ServiceIntervalStatus) -> str:
    """Format service urgency with remaining distance (e.g., 'DUE SOON 420 km')."""
    if svc.status == ServiceStatus.UNKNOWN:
        return "-"
    label = svc.status.name.replace("_", " ")
    if svc.distance_remaining is None:
        return label
    return f"{label} {format_km(svc.distance_remaining)} km"


def format_days(days: Optional[int]) -> str:
    """Format a day count for display (e.g., '3mo 15d')."""
    if days is None:
        return "-"
    months = days // 30
    remaining_days = days % 30
    if months > 0:
        return f"{months}mo {remaining_days}d"
    return f"{days}d"


def truncate(text: Optional[str], max_len: int = 30) -> str:
    """Truncate text with ellipsis if too long."""
    if text is None:
        return "-"
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."


def print_error(error: FleetError) -> None:
    """Print a structured error and its field list."""
    print(f"Error: {error.message}")
    for field in error.fields:
        print(f"  {field.field}: {field.message}")


def parse_damage(value: str) -> DamageReport:
    """Parse 'component:severity[:description]' into a damage report."""
    parts = value.split(":", 2)
    if len(parts) < 2:
        raise argparse.ArgumentTypeError(
            f"expected component:severity[:description], got '{value}'"
        )
    try:
        severity = DamageSeverity(parts[1].lower())
    except ValueError:
        choices = ", ".join(s.value for s in DamageSeverity)
        raise argparse.ArgumentTypeError(f"severity must be one of {choices}") from None
    description = parts[2] if len(parts) > 2 else ""
    return DamageReport(parts[0], True, severity, description)


def parse_failed_item(value: str) -> ChecklistItem:
    """Parse 'item[:severity]' into a failed checklist item."""
    item, _, severity = value.partition(":")
    try:
        level = ItemSeverity(severity.lower()) if severity else None
    except ValueError:
        choices = ", ".join(s.value for s in ItemSeverity)
        raise argparse.ArgumentTypeError(f"severity must be one of {choices}") from None
    return ChecklistItem(item, ChecklistStatus.FAIL, level)


# =============================================================================
# Status command
# =============================================================================


def make_status_table(service: FleetService, vehicles) -> List[List[str]]:
    """Convert vehicles to table rows."""
    rows = []
    for v in vehicles:
        svc = service.service_status(v.vehicle_id)
        rows.append(
            [
                v.vehicle_id,
                v.name,
                v.status.value,
                format_km(v.current_odometer),
                format_fuel(v.fuel_level),
                v.current_driver_id or "-",
                format_service(svc),
                format_days(svc.estimated_days_remaining),
            ]
        )
    return rows


def cmd_status(service: FleetService, args) -> int:
    """Show every vehicle with its status and service due."""
    vehicles = service.list_vehicles()
    if args.vehicle:
        vehicles = [v for v in vehicles if v.vehicle_id == args.vehicle]

    if not vehicles:
        print("No vehicles found.")
        return 0

    headers = ["ID", "Vehicle", "Status", "Odometer", "Fuel", "Driver", "Service", "Est. days"]
    print(tabulate(make_status_table(service, vehicles), headers=headers, tablefmt="simple"))
    return 0


# =============================================================================
# History command
# =============================================================================


def make_trip_table(trips) -> List[List[str]]:
    """Convert assignments to table rows."""
    rows = []
    for t in trips:
        rows.append(
            [
                t.checked_out_at[:16],
                t.driver_id,
                truncate(t.destination, 20),
                format_km(t.starting_odometer),
                format_km(t.ending_odometer),
                format_km(t.total_distance),
                t.status.value,
            ]
        )
    return rows


def make_service_table(records) -> List[List[str]]:
    """Convert service records to table rows."""
    return [
        [
            r.service_date,
            format_km(r.odometer),
            r.service_type,
            r.performed_by or "-",
            format_cost(r.cost),
            truncate(r.notes),
        ]
        for r in records
    ]


def cmd_history(service: FleetService, args) -> int:
    """View trips and service history of a vehicle."""
    history = service.vehicle_history(args.vehicle, limit=args.limit)
    vehicle = history.vehicle

    print(f"Vehicle: {vehicle.name}")
    print(f"Current odometer: {format_km(vehicle.current_odometer)} km")
    if history.last_service:
        print(
            f"Last service: {history.last_service.service_date}"
            f" @ {format_km(history.last_service.odometer)} km"
        )
    if history.previous_driver_id:
        print(f"Previous driver: {history.previous_driver_id}")
    print(f"Total trips: {history.total_trips} ({format_km(history.total_distance)} km)")
    print()

    if history.recent_trips:
        print("TRIPS:")
        headers = ["Out", "Driver", "Destination", "Start", "End", "Distance", "Status"]
        print(tabulate(make_trip_table(history.recent_trips), headers=headers, tablefmt="simple"))
        print()

    records = service.list_service_records(args.vehicle, limit=args.limit)
    if records:
        print("SERVICE:")
        headers = ["Date", "Odometer", "Type", "Performed By", "Cost", "Notes"]
        print(tabulate(make_service_table(records), headers=headers, tablefmt="simple"))

    return 0


# =============================================================================
# Inspections command
# =============================================================================


def cmd_inspections(service: FleetService, args) -> int:
    """List inspections of a vehicle."""
    inspections = service.list_inspections(vehicle_id=args.vehicle, limit=args.limit)
    if not inspections:
        print("No inspections found.")
        return 0

    rows = []
    for i in inspections:
        rows.append(
            [
                i.timestamp[:16],
                i.inspection_type.value,
                i.inspector_id,
                i.overall_condition.value,
                len(i.repairs_required),
                i.status.value,
                truncate(i.notes),
            ]
        )
    headers = ["When", "Type", "Inspector", "Condition", "Repairs", "Status", "Notes"]
    print(tabulate(rows, headers=headers, tablefmt="simple"))
    return 0


# =============================================================================
# Checkout / checkin commands
# =============================================================================


def cmd_checkout(service: FleetService, args) -> int:
    """Check a vehicle out to a driver."""
    draft = CheckoutDraft(
        vehicle_id=args.vehicle,
        driver_id=args.driver,
        starting_odometer=args.odometer,
        fuel_level=args.fuel,
        destination=args.destination,
        trip_purpose=args.purpose,
        signature=args.signature,
        estimated_return=args.estimated_return,
        idempotency_key=args.key,
    )
    transition = service.checkout(draft)
    assignment = transition.assignment

    print(f"Checked out {transition.vehicle.name} to {assignment.driver_id}")
    print(f"  Assignment: {assignment.assignment_id}")
    print(f"  Odometer:   {format_km(assignment.starting_odometer)} km")
    print(f"  Fuel:       {format_fuel(assignment.starting_fuel)}")
    for warning in transition.warnings:
        print(f"  Warning:    {warning}")
    return 0


def cmd_checkin(service: FleetService, args) -> int:
    """Return a vehicle and close its assignment."""
    damages = args.damage or []
    draft = CheckinDraft(
        assignment_id=args.assignment,
        ending_odometer=args.odometer,
        fuel_level=args.fuel,
        condition=Condition(args.condition) if args.condition else None,
        damage_reported=bool(damages or args.damage_description),
        damage_description=args.damage_description,
        trip_notes=args.notes,
        signature=args.signature,
    )
    transition = service.checkin(
        draft,
        checklist_items=args.fail or [],
        damage_reports=damages,
        inspector_id=args.inspector,
    )
    assignment = transition.assignment

    print(f"Checked in {transition.vehicle.name}")
    print(f"  Distance: {format_km(assignment.total_distance)} km")
    print(f"  Status:   {transition.vehicle.status.value}")
    if transition.inspection:
        print(f"  Condition: {transition.inspection.overall_condition.value}")
    for warning in transition.warnings:
        print(f"  Warning:  {warning}")
    return 0


# =============================================================================
# Log service command
# =============================================================================


def cmd_log_service(service: FleetService, args) -> int:
    """Record maintenance on a vehicle."""
    transition = service.log_service(
        args.vehicle,
        args.service_type,
        odometer=args.odometer,
        service_date=args.date,
        performed_by=args.by,
        cost=args.cost,
        notes=args.notes,
    )
    record = transition.service_record
    vehicle = transition.vehicle

    print(f"Logged {record.service_type} on {vehicle.name}")
    print(f"  Date:     {record.service_date}")
    print(f"  Odometer: {format_km(record.odometer)} km")
    if record.performed_by:
        print(f"  By:       {record.performed_by}")
    if record.cost is not None:
        print(f"  Cost:     {format_cost(record.cost)}")
    if vehicle.next_service_odometer is not None:
        print(f"  Next due: {format_km(vehicle.next_service_odometer)} km")
    return 0


# =============================================================================
# Summary / seed commands
# =============================================================================


def cmd_summary(service: FleetService, args) -> int:
    """Fleet dashboard counts."""
    summary = service.fleet_summary()
    print(f"Vehicles: {summary['totalVehicles']}")
    print(f"Active assignments: {summary['activeAssignments']}")
    print()
    rows = [[status, count] for status, count in summary["byStatus"].items()]
    print(tabulate(rows, headers=["Status", "Count"], tablefmt="simple"))
    print()
    if summary["overdueService"]:
        print(f"OVERDUE SERVICE: {', '.join(summary['overdueService'])}")
    if summary["lowFuel"]:
        print(f"LOW FUEL: {', '.join(summary['lowFuel'])}")
    return 0


def cmd_seed(service: FleetService, args) -> int:
    """Load vehicles and service records from a fleet file."""
    try:
        count = seed_store(service.store, args.fleet_file)
    except (OSError, ValueError, yaml.YAMLError) as e:
        print(f"Error: Cannot load {args.fleet_file}: {e}")
        return 1
    print(f"Loaded {count} vehicles from {args.fleet_file}")
    return 0


COMMANDS = {
    "seed": cmd_seed,
    "status": cmd_status,
    "history": cmd_history,
    "inspections": cmd_inspections,
    "checkout": cmd_checkout,
    "checkin": cmd_checkin,
    "log-service": cmd_log_service,
    "summary": cmd_summary,
}

MUTATING = ("seed", "checkout", "checkin", "log-service")


# =============================================================================
# Main
# =============================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Fleet checkout and checkin",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s data.yaml seed fleets/depot.yaml
  %(prog)s data.yaml status
  %(prog)s data.yaml checkout VAN-01 --driver d-42 --odometer 45000 \\
      --destination "North depot" --purpose delivery --signature "J. Doe"
  %(prog)s data.yaml checkin assignment_3f2c --odometer 45120 --signature "J. Doe" \\
      --damage "front bumper:moderate:scraped on a post"
  %(prog)s data.yaml log-service VAN-01 oil_change --by Dealer --cost 89.50
  %(prog)s data.yaml history VAN-01
""",
    )
    parser.add_argument("data_file", type=Path, help="Path to fleet data YAML file")
    parser.add_argument("--config", type=Path, help="Settings YAML file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    # Seed subcommand
    seed_parser = subparsers.add_parser("seed", help="Load vehicles from a fleet file")
    seed_parser.add_argument("fleet_file", type=Path, help="Fleet YAML file")

    # Status subcommand
    status_parser = subparsers.add_parser("status", help="Show vehicles and service due")
    status_parser.add_argument("--vehicle", type=str, help="Only show this vehicle")

    # History subcommand
    history_parser = subparsers.add_parser("history", help="View trips and service history")
    history_parser.add_argument("vehicle", type=str, help="Vehicle ID")
    history_parser.add_argument("--limit", type=int, default=10, help="Rows per table")

    # Inspections subcommand
    insp_parser = subparsers.add_parser("inspections", help="List inspections of a vehicle")
    insp_parser.add_argument("vehicle", type=str, help="Vehicle ID")
    insp_parser.add_argument("--limit", type=int, default=20, help="Maximum rows")

    # Checkout subcommand
    out_parser = subparsers.add_parser("checkout", help="Check a vehicle out to a driver")
    out_parser.add_argument("vehicle", type=str, help="Vehicle ID")
    out_parser.add_argument("--driver", type=str, help="Driver ID")
    out_parser.add_argument("--odometer", type=int, help="Starting odometer (km)")
    out_parser.add_argument("--fuel", type=float, help="Fuel level %% (default: last known)")
    out_parser.add_argument("--destination", type=str, help="Trip destination")
    out_parser.add_argument("--purpose", type=str, help="Trip purpose")
    out_parser.add_argument("--signature", type=str, help="Driver signature")
    out_parser.add_argument("--estimated-return", type=str, help="Expected return time")
    out_parser.add_argument("--key", type=str, help="Idempotency key for safe retries")

    # Checkin subcommand
    in_parser = subparsers.add_parser("checkin", help="Return a vehicle")
    in_parser.add_argument("assignment", type=str, help="Assignment ID")
    in_parser.add_argument("--odometer", type=int, help="Ending odometer (km)")
    in_parser.add_argument("--fuel", type=float, help="Fuel level %% (default: last known)")
    in_parser.add_argument(
        "--condition",
        choices=[c.value for c in Condition],
        help="Condition declared by the driver",
    )
    in_parser.add_argument(
        "--damage",
        type=parse_damage,
        action="append",
        help="Damage as component:severity[:description]; may repeat",
    )
    in_parser.add_argument("--damage-description", type=str, help="Damage summary")
    in_parser.add_argument(
        "--fail",
        type=parse_failed_item,
        action="append",
        help="Failed checklist item as item[:severity]; may repeat",
    )
    in_parser.add_argument("--inspector", type=str, help="Inspector ID (default: driver)")
    in_parser.add_argument("--notes", type=str, help="Trip notes")
    in_parser.add_argument("--signature", type=str, help="Return signature")

    # Log service subcommand
    log_parser = subparsers.add_parser("log-service", help="Record maintenance")
    log_parser.add_argument("vehicle", type=str, help="Vehicle ID")
    log_parser.add_argument("service_type", choices=SERVICE_TYPES, help="Kind of service")
    log_parser.add_argument("--odometer", type=int, help="Odometer at service (default: current)")
    log_parser.add_argument(
        "--date", type=str, help="Service date in YYYY-MM-DD format (default: today)"
    )
    log_parser.add_argument("--by", type=str, help="Who performed the service")
    log_parser.add_argument("--cost", type=float, help="Cost of service")
    log_parser.add_argument("--notes", type=str, help="Notes about the service")

    for name in MUTATING:
        subparsers.choices[name].add_argument(
            "--dry-run",
            action="store_true",
            help="Show what would happen without saving",
        )

    # Summary subcommand
    subparsers.add_parser("summary", help="Fleet dashboard counts")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        settings = load_settings(args.config)
    except (OSError, ValueError) as e:
        print(f"Error: Invalid settings: {e}")
        return 1

    if args.command != "seed" and not args.data_file.exists():
        print(f"Error: File not found: {args.data_file}")
        return 1

    store = YamlStore(args.data_file, default_timeout=settings.store_timeout)
    dry_run = getattr(args, "dry_run", False)
    if dry_run:
        store = MemoryStore(store.export(), default_timeout=settings.store_timeout)
    service = FleetService(store, settings)

    try:
        result = COMMANDS[args.command](service, args)
    except FleetError as e:
        logger.debug("%s failed: %s", args.command, e.to_dict())
        print_error(e)
        return 1

    if dry_run:
        print("(dry run - no changes made)")
    return result


if __name__ == "__main__":
    sys.exit(main() or 0)
