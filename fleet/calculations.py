"""Helper functions for service interval calculations."""

import math
from datetime import date
from dateutil.relativedelta import relativedelta
from typing import Optional

from .status import ServiceStatus


def calc_due_odometer(
    last_odometer: Optional[int], interval: Optional[int], start_odometer: int = 0
) -> Optional[int]:
    """
    Calculate the odometer reading at which the next service is due.

    - With a logged service: last_odometer + interval
    - Without one: start_odometer + interval (first service from new)
    """
    if interval is None:
        return None
    if last_odometer is not None:
        return last_odometer + interval
    return start_odometer + interval


def calc_due_date(
    last_date: Optional[date], interval_months: Optional[float]
) -> Optional[date]:
    """Calculate next due date: last + interval months."""
    if interval_months is None or last_date is None:
        return None
    months = int(interval_months)
    days = int((interval_months - months) * 30)
    return last_date + relativedelta(months=months, days=days)


def check_status(current: float, due: float, soon_threshold: float) -> ServiceStatus:
    """Determine status by comparing current value to due threshold."""
    if current >= due:
        return ServiceStatus.OVERDUE
    if current >= due - soon_threshold:
        return ServiceStatus.DUE_SOON
    return ServiceStatus.OK


def estimate_days(distance_remaining: int, avg_daily_distance: float) -> int:
    """Days of average driving left before distance_remaining is used up."""
    if distance_remaining <= 0:
        return 0
    if avg_daily_distance <= 0:
        raise ValueError("avg_daily_distance must be positive")
    return math.ceil(distance_remaining / avg_daily_distance)
