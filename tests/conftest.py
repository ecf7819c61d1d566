"""Shared fixtures: a fixed clock, sequential ids and a seeded service."""

import itertools
from datetime import datetime, timezone

import pytest

from fleet import FleetService, MemoryStore, Settings, Vehicle
from fleet.notify import RecordingNotifier

NOW = datetime(2026, 10, 18, 9, 30, tzinfo=timezone.utc)


class SequentialIds:
    """id_factory producing prefix_1, prefix_2, ... per prefix."""

    def __init__(self):
        self.counters = {}

    def __call__(self, prefix: str) -> str:
        counter = self.counters.setdefault(prefix, itertools.count(1))
        return f"{prefix}_{next(counter)}"


def make_vehicle(**overrides) -> Vehicle:
    fields = dict(
        vehicle_id="VAN-01",
        make="Ford",
        model="Transit",
        year=2021,
        license_plate="AB-123-CD",
        current_odometer=45000,
        fuel_level=70,
        last_service_odometer=40000,
        last_service_date="2026-06-01",
        service_interval_km=10000,
        service_interval_months=12,
    )
    fields.update(overrides)
    return Vehicle(**fields)


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def ids():
    return SequentialIds()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def service(store, clock, ids, notifier):
    svc = FleetService(
        store, Settings(store_timeout=1.0), clock=clock, id_factory=ids, notifier=notifier
    )
    svc.add_vehicle(make_vehicle())
    return svc
