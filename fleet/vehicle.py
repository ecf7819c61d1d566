"""Vehicle record - the long-lived root entity of the fleet."""

from dataclasses import dataclass
from datetime import date
from typing import Optional

from .calculations import calc_due_date, calc_due_odometer
from .status import VehicleStatus


@dataclass
class Vehicle:
    """A fleet vehicle and its current state."""

    vehicle_id: str
    make: str
    model: str
    year: int
    license_plate: str
    status: VehicleStatus = VehicleStatus.AVAILABLE
    current_odometer: int = 0
    fuel_level: float = 100
    current_driver_id: Optional[str] = None
    last_service_odometer: Optional[int] = None
    last_service_date: Optional[str] = None
    next_service_odometer: Optional[int] = None
    next_service_date: Optional[str] = None
    service_interval_km: Optional[int] = None
    service_interval_months: Optional[float] = None
    version: int = 0

    @property
    def name(self) -> str:
        """Human-readable vehicle name."""
        return f"{self.year} {self.make} {self.model} ({self.license_plate})"

    @property
    def due_odometer(self) -> Optional[int]:
        """Odometer reading at which the next service is due, if known."""
        if self.next_service_odometer is not None:
            return self.next_service_odometer
        return calc_due_odometer(self.last_service_odometer, self.service_interval_km)

    @property
    def due_date(self) -> Optional[date]:
        """Date by which the next service is due, if known."""
        if self.next_service_date:
            return date.fromisoformat(self.next_service_date)
        last = date.fromisoformat(self.last_service_date) if self.last_service_date else None
        return calc_due_date(last, self.service_interval_months)

    def check_invariants(self) -> None:
        """Raise ValueError if the snapshot is internally inconsistent."""
        if self.current_odometer < 0:
            raise ValueError(f"{self.vehicle_id}: odometer cannot be negative")
        if not 0 <= self.fuel_level <= 100:
            raise ValueError(f"{self.vehicle_id}: fuel level out of range")
        in_use = self.status == VehicleStatus.IN_USE
        if in_use != (self.current_driver_id is not None):
            raise ValueError(
                f"{self.vehicle_id}: status {self.status.value} does not match "
                f"driver {self.current_driver_id!r}"
            )
