#!/usr/bin/env python3
"""Tests for status enums."""

from fleet import Condition, ServiceStatus, VehicleStatus


class TestServiceStatus:
    """Tests for ServiceStatus enum ordering."""

    def test_urgency_ordering(self):
        """Lower value = more urgent."""
        assert ServiceStatus.OVERDUE.value < ServiceStatus.DUE_SOON.value
        assert ServiceStatus.DUE_SOON.value < ServiceStatus.OK.value
        assert ServiceStatus.OK.value < ServiceStatus.UNKNOWN.value


class TestVehicleStatus:
    """Tests for VehicleStatus values as stored in records."""

    def test_values_round_trip(self):
        for status in VehicleStatus:
            assert VehicleStatus(status.value) is status

    def test_requires_attention_value(self):
        assert VehicleStatus.REQUIRES_ATTENTION.value == "requires_attention"


class TestCondition:
    def test_best_first(self):
        assert [c.value for c in Condition] == [
            "excellent",
            "good",
            "fair",
            "poor",
            "damaged",
        ]
