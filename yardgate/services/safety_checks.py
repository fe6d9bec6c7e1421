"""
Safety Checks

Fixed six-item checklist asked of every driver at the gate. An item passes
only when answered "Yes". Failing items can only be overridden all at once,
through a single safety exceptional approval.
"""

from typing import List

from yardgate.schemas.processing import (
    ProcessingDraft,
    SafetyCheckItem,
    SafetyCheckStatus,
    SafetyResponse,
)


DEFAULT_SAFETY_CHECKS = (
    ("Alcohol Check", "Driver must not be under the influence of alcohol"),
    ("Remove all flammable items", "No matches, lighters or other flammable items inside the yard"),
    ("Ensure Spark arrestor for Hazardous goods", "Spark arrestor fitted on vehicles carrying hazardous goods"),
    ("Respect & Ensure speed limit", "Driver acknowledges the yard speed limit"),
    ("Do not overload check", "Vehicle is not loaded beyond its permitted capacity"),
    ("Ensure vehicle tyres, head lights, indicators, etc.", "Tyres, head lights and indicators are in working order"),
)


def default_checklist() -> List[SafetyCheckItem]:
    """Fresh checklist with every item unanswered (No / FAIL)."""
    return [
        SafetyCheckItem(name=name, description=description)
        for name, description in DEFAULT_SAFETY_CHECKS
    ]


def status_for(response: SafetyResponse) -> SafetyCheckStatus:
    return SafetyCheckStatus.PASS if response == SafetyResponse.YES else SafetyCheckStatus.FAIL


def all_passed(items: List[SafetyCheckItem]) -> bool:
    # An empty checklist never passes
    return bool(items) and all(item.status == SafetyCheckStatus.PASS for item in items)


def failing_items(items: List[SafetyCheckItem]) -> List[SafetyCheckItem]:
    return [item for item in items if item.status != SafetyCheckStatus.PASS]


def set_response(draft: ProcessingDraft, index: int, response: SafetyResponse) -> ProcessingDraft:
    """Answer one item and recompute the aggregate."""
    if index < 0 or index >= len(draft.safety_checks):
        raise IndexError(index)
    item = draft.safety_checks[index]
    item.response = response
    item.status = status_for(response)
    draft.all_safety_checks_passed = all_passed(draft.safety_checks)
    return draft


def safety_gate_open(draft: ProcessingDraft) -> bool:
    """All items passed, or the failures were exceptionally approved."""
    return draft.all_safety_checks_passed or draft.safety_checks_exceptionally_approved
