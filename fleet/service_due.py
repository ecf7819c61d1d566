"""Service interval status for a vehicle."""

from dataclasses import dataclass
from datetime import date
from typing import Optional

from .calculations import check_status, estimate_days
from .status import ServiceStatus
from .vehicle import Vehicle

DEFAULT_AVG_DAILY_DISTANCE = 50


@dataclass
class ServiceIntervalStatus:
    """Calculated distance and time left until the next service."""

    status: ServiceStatus
    distance_remaining: Optional[int] = None
    is_overdue: bool = False
    estimated_days_remaining: Optional[int] = None
    due_odometer: Optional[int] = None
    due_date: Optional[str] = None
    days_until_due_date: Optional[int] = None

    @property
    def is_due(self) -> bool:
        return self.status in (ServiceStatus.OVERDUE, ServiceStatus.DUE_SOON)


def next_service_status(
    vehicle: Vehicle,
    avg_daily_distance: float = DEFAULT_AVG_DAILY_DISTANCE,
    as_of: Optional[date] = None,
    due_soon_distance: float = 1000,
    due_soon_days: int = 30,
) -> ServiceIntervalStatus:
    """
    Calculate when the vehicle next needs service.

    Logic:
    - distance_remaining = due odometer - current odometer
    - overdue when distance_remaining <= 0, or the due date has been reached
    - estimated_days_remaining = 0 when overdue, else
      ceil(distance_remaining / avg_daily_distance)
    - whichever of distance and date is more urgent decides the status
    """
    as_of = as_of or date.today()
    due_odometer = vehicle.due_odometer
    due_date = vehicle.due_date

    if due_odometer is None and due_date is None:
        return ServiceIntervalStatus(status=ServiceStatus.UNKNOWN)

    status = ServiceStatus.OK
    distance_remaining = None
    days_until_due_date = None

    if due_odometer is not None:
        distance_remaining = due_odometer - vehicle.current_odometer
        status = check_status(vehicle.current_odometer, due_odometer, due_soon_distance)

    if due_date is not None:
        days_until_due_date = (due_date - as_of).days
        date_status = check_status(as_of.toordinal(), due_date.toordinal(), due_soon_days)
        # Escalate status if date check is worse
        if date_status.value < status.value:
            status = date_status

    is_overdue = status == ServiceStatus.OVERDUE
    estimated_days = None
    if distance_remaining is not None:
        estimated_days = 0 if is_overdue else estimate_days(distance_remaining, avg_daily_distance)
    elif days_until_due_date is not None:
        estimated_days = max(days_until_due_date, 0)

    return ServiceIntervalStatus(
        status=status,
        distance_remaining=distance_remaining,
        is_overdue=is_overdue,
        estimated_days_remaining=estimated_days,
        due_odometer=due_odometer,
        due_date=due_date.isoformat() if due_date else None,
        days_until_due_date=days_until_due_date,
    )
