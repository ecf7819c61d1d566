#!/usr/bin/env python3
"""Tests for calculation helper functions."""
import pytest
from datetime import date
from fleet.calculations import calc_due_odometer, calc_due_date, check_status, estimate_days
from fleet import ServiceStatus


class TestCalcDueOdometer:
    """Tests for calc_due_odometer helper function."""

    def test_with_last_service(self):
        """last_odometer + interval when a service was logged."""
        assert calc_due_odometer(40000, 10000) == 50000

    def test_without_last_service_default_start(self):
        """start_odometer + interval when never serviced (default start=0)."""
        assert calc_due_odometer(None, 10000) == 10000

    def test_without_last_service_custom_start(self):
        assert calc_due_odometer(None, 10000, start_odometer=60000) == 70000

    def test_last_service_ignores_start(self):
        assert calc_due_odometer(65000, 10000, start_odometer=60000) == 75000

    def test_no_interval(self):
        """None when no interval defined."""
        assert calc_due_odometer(50000, None) is None
        assert calc_due_odometer(None, None) is None


class TestCalcDueDate:
    """Tests for calc_due_date helper function."""

    def test_with_last_service(self):
        """last_date + interval_months."""
        assert calc_due_date(date(2025, 1, 15), 6) == date(2025, 7, 15)

    def test_fractional_months(self):
        """Handles fractional months (converted to days)."""
        assert calc_due_date(date(2025, 1, 15), 7.5) == date(2025, 8, 30)

    def test_month_end_clamps(self):
        assert calc_due_date(date(2025, 8, 31), 6) == date(2026, 2, 28)

    def test_without_last_service(self):
        assert calc_due_date(None, 6) is None

    def test_no_interval(self):
        assert calc_due_date(date(2025, 1, 15), None) is None


class TestCheckStatus:
    """Tests for check_status helper function."""

    def test_overdue(self):
        """OVERDUE when current >= due."""
        assert check_status(100, 90, 10) == ServiceStatus.OVERDUE
        assert check_status(100, 100, 10) == ServiceStatus.OVERDUE

    def test_due_soon(self):
        """DUE_SOON when current >= due - threshold."""
        assert check_status(95, 100, 10) == ServiceStatus.DUE_SOON
        assert check_status(90, 100, 10) == ServiceStatus.DUE_SOON

    def test_ok(self):
        assert check_status(80, 100, 10) == ServiceStatus.OK
        assert check_status(0, 100, 10) == ServiceStatus.OK


class TestEstimateDays:
    """Tests for estimate_days helper function."""

    def test_rounds_up(self):
        assert estimate_days(120, 50) == 3
        assert estimate_days(100, 50) == 2

    def test_nothing_left(self):
        assert estimate_days(0, 50) == 0
        assert estimate_days(-300, 50) == 0

    def test_non_positive_average_rejected(self):
        with pytest.raises(ValueError):
            estimate_days(100, 0)
