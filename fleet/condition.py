"""Overall condition assessment from damage reports and checklist results."""

from typing import Sequence, TYPE_CHECKING

from .status import ChecklistStatus, Condition, DamageSeverity, ItemSeverity

if TYPE_CHECKING:
    from .inspection import ChecklistItem, DamageReport

# More failed items than this downgrades the vehicle to FAIR
FAILED_ITEM_LIMIT = 3


def assess_condition(
    damages: Sequence["DamageReport"], checklist_items: Sequence["ChecklistItem"]
) -> Condition:
    """
    Derive the overall condition of a vehicle.

    Rules are checked in order and the first match wins:
    1. any critical damage                          -> DAMAGED
    2. any major damage                             -> POOR
    3. any failed item of critical severity         -> POOR
    4. more than 3 failed items                     -> FAIR
    5. moderate damage, or an item needing attention -> FAIR
    6. minor damage, or any failed item             -> GOOD
    7. otherwise                                    -> EXCELLENT

    Damage reports with has_damage unset are ignored.
    """
    severities = {d.severity for d in damages if d.has_damage}
    failed = [i for i in checklist_items if i.status == ChecklistStatus.FAIL]

    if DamageSeverity.CRITICAL in severities:
        return Condition.DAMAGED
    if DamageSeverity.MAJOR in severities:
        return Condition.POOR
    if any(i.severity == ItemSeverity.CRITICAL for i in failed):
        return Condition.POOR
    if len(failed) > FAILED_ITEM_LIMIT:
        return Condition.FAIR
    if DamageSeverity.MODERATE in severities or any(
        i.status == ChecklistStatus.NEEDS_ATTENTION for i in checklist_items
    ):
        return Condition.FAIR
    if DamageSeverity.MINOR in severities or failed:
        return Condition.GOOD
    return Condition.EXCELLENT


def worse_condition(first: Condition, second: Condition) -> Condition:
    """Return whichever of two conditions is worse."""
    order = list(Condition)
    return max(first, second, key=order.index)
