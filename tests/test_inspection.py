#!/usr/bin/env python3
"""Tests for inspection records and the aggregator."""

import dataclasses

import pytest

from fleet import (
    ChecklistItem,
    ChecklistStatus,
    Condition,
    DamageReport,
    DamageSeverity,
    InspectionStatus,
    InspectionType,
    VoiceNote,
    build_inspection,
    review_inspection,
)

from conftest import NOW, SequentialIds


@pytest.fixture
def inspection():
    return build_inspection(
        "VAN-01",
        "inspector-7",
        InspectionType.PERIODIC,
        45000,
        70,
        checklist_items=[ChecklistItem("tires", ChecklistStatus.PASS)],
        damage_reports=[
            DamageReport("bumper", True, DamageSeverity.MAJOR, "cracked"),
            DamageReport("door", False),
        ],
        voice_notes=[VoiceNote("note.m4a", 12.5)],
        notes="Yearly check",
        clock=lambda: NOW,
        id_factory=SequentialIds(),
    )


class TestDamageReport:
    """Tests for DamageReport."""

    def test_damage_needs_severity(self):
        with pytest.raises(ValueError):
            DamageReport("bumper", True)

    def test_value_equality(self):
        assert DamageReport("bumper", True, DamageSeverity.MINOR, None) == DamageReport(
            "bumper", True, DamageSeverity.MINOR, ""
        )
        assert DamageReport("bumper", True, DamageSeverity.MINOR) != DamageReport(
            "bumper", True, DamageSeverity.MAJOR
        )
        assert dataclasses.is_dataclass(DamageReport)
        assert ChecklistItem("tires", ChecklistStatus.PASS) == ChecklistItem(
            "tires", ChecklistStatus.PASS
        )
        assert VoiceNote("a.m4a", 3) == VoiceNote("a.m4a", 3)

    def test_repair_required_for_major_and_critical(self):
        assert DamageReport("a", True, DamageSeverity.MAJOR).repair_required
        assert DamageReport("a", True, DamageSeverity.CRITICAL).repair_required
        assert not DamageReport("a", True, DamageSeverity.MODERATE).repair_required
        assert not DamageReport("a", False, DamageSeverity.CRITICAL).repair_required


class TestBuildInspection:
    """Tests for build_inspection."""

    def test_assigns_ids(self, inspection):
        assert inspection.inspection_id == "inspection_1"
        assert [d.damage_id for d in inspection.damage_reports] == ["damage_1", "damage_2"]
        assert [v.note_id for v in inspection.voice_notes] == ["voice_1"]

    def test_assesses_condition(self, inspection):
        assert inspection.overall_condition == Condition.POOR
        assert inspection.has_critical_damage is False
        assert [d.component for d in inspection.repairs_required] == ["bumper"]

    def test_declared_condition_only_makes_it_worse(self):
        ids = SequentialIds()
        minor = [DamageReport("mirror", True, DamageSeverity.MINOR)]
        declared_poor = build_inspection(
            "VAN-01", "D1", InspectionType.POST_TRIP, 45120, 55, damage_reports=minor,
            id_factory=ids, declared_condition=Condition.POOR,
        )
        declared_good = build_inspection(
            "VAN-01", "D1", InspectionType.POST_TRIP, 45120, 55,
            damage_reports=[DamageReport("axle", True, DamageSeverity.MAJOR)],
            id_factory=ids, declared_condition=Condition.GOOD,
        )
        assert declared_poor.overall_condition == Condition.POOR
        assert declared_good.overall_condition == Condition.POOR

    def test_declared_damaged_counts_as_critical(self):
        inspection = build_inspection(
            "VAN-01", "D1", InspectionType.POST_TRIP, 45120, 55,
            id_factory=SequentialIds(), declared_condition=Condition.DAMAGED,
        )
        assert inspection.overall_condition == Condition.DAMAGED
        assert inspection.has_critical_damage is True

    def test_timestamp_from_clock(self, inspection):
        assert inspection.timestamp == NOW.isoformat()
        assert inspection.status == InspectionStatus.COMPLETED

    def test_inputs_not_modified(self):
        report = DamageReport("bumper", True, DamageSeverity.MINOR)
        build_inspection(
            "VAN-01", "i", InspectionType.PRE_TRIP, 1, 50, damage_reports=[report],
            id_factory=SequentialIds(),
        )
        assert report.damage_id is None

    def test_immutable(self, inspection):
        with pytest.raises(dataclasses.FrozenInstanceError):
            inspection.overall_condition = Condition.EXCELLENT


class TestReviewInspection:
    """Tests for review_inspection."""

    def test_sets_reviewer_fields_only(self, inspection):
        reviewed = review_inspection(
            inspection, InspectionStatus.REVIEWED, "Bumper booked in", clock=lambda: NOW
        )
        assert reviewed.status == InspectionStatus.REVIEWED
        assert reviewed.review_notes == "Bumper booked in"
        assert reviewed.reviewed_at == NOW.isoformat()
        assert reviewed.damage_reports == inspection.damage_reports
        assert reviewed.overall_condition == inspection.overall_condition
        assert inspection.status == InspectionStatus.COMPLETED

    def test_status_without_notes(self, inspection):
        reviewed = review_inspection(inspection, InspectionStatus.REQUIRES_ACTION)
        assert reviewed.status == InspectionStatus.REQUIRES_ACTION
        assert reviewed.reviewed_at is None
