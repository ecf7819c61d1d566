"""Inspection records and the aggregator that builds them.

An inspection is assembled once from raw checklist, damage and voice-note
input and is immutable afterwards; only a reviewer may later set its status
and notes through ``review_inspection``.
"""

import uuid
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Callable, Optional, Sequence, Tuple

from .condition import assess_condition, worse_condition
from .status import (
    ChecklistStatus,
    Condition,
    DamageSeverity,
    InspectionStatus,
    InspectionType,
    ItemSeverity,
)

Clock = Callable[[], datetime]
IdFactory = Callable[[str], str]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_id(prefix: str) -> str:
    """Random unique id such as ``damage_3f2c...``."""
    return f"{prefix}_{uuid.uuid4().hex}"


@dataclass
class ChecklistItem:
    """Outcome of one inspected aspect of a vehicle."""

    item: str
    status: ChecklistStatus
    severity: Optional[ItemSeverity] = None
    notes: Optional[str] = None


@dataclass
class DamageReport:
    """Damage found on one component."""

    component: str
    has_damage: bool
    severity: Optional[DamageSeverity] = None
    description: str = ""
    damage_id: Optional[str] = None

    def __post_init__(self):
        if self.has_damage and self.severity is None:
            raise ValueError(f"Damage on {self.component!r} needs a severity")
        self.description = self.description or ""

    @property
    def repair_required(self) -> bool:
        """Major and critical damage must be repaired before further use."""
        return self.has_damage and self.severity in (
            DamageSeverity.MAJOR,
            DamageSeverity.CRITICAL,
        )


@dataclass
class VoiceNote:
    """Reference to a recorded voice note. Transcription happens elsewhere."""

    audio_file: str
    duration: float = 0
    note_id: Optional[str] = None


@dataclass(frozen=True)
class Inspection:
    inspection_id: str
    vehicle_id: str
    inspector_id: str
    inspection_type: InspectionType
    odometer: int
    fuel_level: float
    overall_condition: Condition
    timestamp: str
    checklist_items: Tuple[ChecklistItem, ...] = ()
    damage_reports: Tuple[DamageReport, ...] = ()
    voice_notes: Tuple[VoiceNote, ...] = ()
    notes: Optional[str] = None
    status: InspectionStatus = InspectionStatus.COMPLETED
    review_notes: Optional[str] = None
    reviewed_at: Optional[str] = None

    @property
    def has_critical_damage(self) -> bool:
        """Critical damage was reported, or the vehicle was declared damaged."""
        if self.overall_condition == Condition.DAMAGED:
            return True
        return any(
            d.has_damage and d.severity == DamageSeverity.CRITICAL
            for d in self.damage_reports
        )

    @property
    def repairs_required(self) -> Tuple[DamageReport, ...]:
        return tuple(d for d in self.damage_reports if d.repair_required)


def build_inspection(
    vehicle_id: str,
    inspector_id: str,
    inspection_type: InspectionType,
    odometer: int,
    fuel_level: float,
    checklist_items: Sequence[ChecklistItem] = (),
    damage_reports: Sequence[DamageReport] = (),
    voice_notes: Sequence[VoiceNote] = (),
    notes: Optional[str] = None,
    clock: Clock = utc_now,
    id_factory: IdFactory = new_id,
    declared_condition: Optional[Condition] = None,
) -> Inspection:
    """
    Assemble an inspection record and assess the vehicle's condition.

    Every damage report and voice note gets a fresh id; the inputs are not
    modified. clock and id_factory are the only sources of non-determinism.
    A declared_condition (the driver's own verdict) can only make the
    assessed condition worse.
    """
    damages = tuple(
        DamageReport(
            d.component,
            d.has_damage,
            d.severity,
            d.description,
            damage_id=id_factory("damage"),
        )
        for d in damage_reports
    )
    voice = tuple(
        VoiceNote(v.audio_file, v.duration, note_id=id_factory("voice"))
        for v in voice_notes
    )
    items = tuple(checklist_items)
    condition = assess_condition(damages, items)
    if declared_condition is not None:
        condition = worse_condition(condition, declared_condition)

    return Inspection(
        inspection_id=id_factory("inspection"),
        vehicle_id=vehicle_id,
        inspector_id=inspector_id,
        inspection_type=inspection_type,
        odometer=odometer,
        fuel_level=fuel_level,
        overall_condition=condition,
        timestamp=clock().isoformat(),
        checklist_items=items,
        damage_reports=damages,
        voice_notes=voice,
        notes=notes,
    )


def review_inspection(
    inspection: Inspection,
    status: InspectionStatus,
    review_notes: Optional[str] = None,
    clock: Clock = utc_now,
) -> Inspection:
    """Return a copy carrying the reviewer's status and notes."""
    changes = {"status": status}
    if review_notes:
        changes["review_notes"] = review_notes
        changes["reviewed_at"] = clock().isoformat()
    return replace(inspection, **changes)
