"""ServiceRecord class for maintenance performed on a vehicle."""
from typing import Optional

SERVICE_TYPES = (
    "routine_maintenance",
    "repair",
    "inspection",
    "tire_change",
    "oil_change",
    "brake_service",
    "transmission_service",
    "emergency_repair",
)


class ServiceRecord:
    """A record of maintenance performed."""

    def __init__(
            self,
            vehicle_id: str,
            service_type: str,
            service_date: str,
            odometer: int,
            performed_by: Optional[str] = None,
            cost: Optional[float] = None,
            notes: Optional[str] = None,
            record_id: Optional[str] = None,
    ):
        if service_type not in SERVICE_TYPES:
            raise ValueError(f"Unknown service type: {service_type}")
        self.vehicle_id = vehicle_id
        self.service_type = service_type
        self.service_date = service_date
        self.odometer = odometer
        self.performed_by = performed_by
        self.cost = cost
        self.notes = notes
        self.record_id = record_id

    @property
    def resets_interval(self) -> bool:
        """Scheduled work restarts the service interval; repairs do not."""
        return self.service_type in ("routine_maintenance", "oil_change", "inspection")
