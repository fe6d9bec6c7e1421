"""
Truck Lifecycle State Machine

This module is the SINGLE SOURCE OF TRUTH for truck status transitions and
for the gates that block gate processing. Services call these checks at the
point of persistence; a disabled button in a client is never relied upon.
"""

from typing import Dict, List, Optional

from yardgate.core.exceptions import PreconditionFailedError
from yardgate.models.truck import DockStatus, EntryStatus, TruckStatus
from yardgate.schemas.processing import ProcessingDraft, ProcessingStep
from yardgate.services import safety_checks


# =============================================================================
# TRANSITION RULES
# =============================================================================

# Format: current_status -> [list of allowed next statuses]
TRUCK_TRANSITIONS: Dict[str, List[str]] = {
    TruckStatus.UPCOMING.value: [
        TruckStatus.AT_GATE.value,      # Truck reports at the gate
        TruckStatus.DELETED.value,
    ],
    TruckStatus.AT_GATE.value: [
        TruckStatus.UPCOMING.value,     # Move back
        TruckStatus.INSIDE.value,       # Gate processing completed
        TruckStatus.DELETED.value,
    ],
    TruckStatus.INSIDE.value: [
        TruckStatus.EXITED.value,       # Leaves after the weighbridge
        TruckStatus.DELETED.value,
    ],
    TruckStatus.EXITED.value: [
        TruckStatus.DELETED.value,
    ],
    TruckStatus.DELETED.value: [],      # Only restore leaves this state
}

TRANSITION_ACTIONS: Dict[tuple, str] = {
    (TruckStatus.UPCOMING.value, TruckStatus.AT_GATE.value): "Move to Gate",
    (TruckStatus.AT_GATE.value, TruckStatus.UPCOMING.value): "Move Back",
    (TruckStatus.AT_GATE.value, TruckStatus.INSIDE.value): "Complete Processing",
    (TruckStatus.INSIDE.value, TruckStatus.EXITED.value): "Exit",
}

DOCK_STATUS_TRANSITIONS: Dict[str, List[str]] = {
    DockStatus.PENDING.value: [DockStatus.LOADING.value, DockStatus.UNLOADING.value],
    DockStatus.LOADING.value: [DockStatus.COMPLETE.value],
    DockStatus.UNLOADING.value: [DockStatus.COMPLETE.value],
    DockStatus.COMPLETE.value: [],
}


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def can_transition(current_status: str, new_status: str) -> bool:
    """Check if a transition is allowed."""
    return new_status in TRUCK_TRANSITIONS.get(current_status, [])


def get_allowed_transitions(current_status: str) -> List[str]:
    return TRUCK_TRANSITIONS.get(current_status, [])


def get_transition_action(current_status: str, new_status: str) -> str:
    """Human-readable label of a status change, used in transition logs."""
    if new_status == TruckStatus.DELETED.value:
        return "Delete"
    return TRANSITION_ACTIONS.get((current_status, new_status), f"{current_status} -> {new_status}")


def validate_transition(current_status: str, new_status: str, truck_id: Optional[str] = None) -> None:
    """Raises PreconditionFailedError if the status change is not allowed."""
    if current_status == new_status:
        return

    if not can_transition(current_status, new_status):
        allowed = get_allowed_transitions(current_status)
        if not allowed:
            raise PreconditionFailedError(
                f"Truck in '{current_status}' status cannot be moved. This is a terminal state.",
                truck_id=truck_id,
            )
        raise PreconditionFailedError(
            f"Cannot move truck from '{current_status}' to '{new_status}'. "
            f"Allowed transitions: {', '.join(allowed)}",
            truck_id=truck_id,
        )


def validate_dock_status(current: Optional[str], new: str, truck_id: Optional[str] = None) -> None:
    allowed = DOCK_STATUS_TRANSITIONS.get(current or DockStatus.PENDING.value, [])
    if new not in allowed:
        raise PreconditionFailedError(
            f"Cannot change dock status from '{current}' to '{new}'",
            truck_id=truck_id,
        )


# =============================================================================
# PROCESSING GATES
# =============================================================================

def can_process(status: str, entry_status: Optional[str]) -> bool:
    """Gate processing is only for trucks at the gate whose entry was allowed."""
    return status == TruckStatus.AT_GATE.value and entry_status == EntryStatus.ALLOWED.value


def vehicle_gate_open(draft: ProcessingDraft) -> bool:
    return draft.vehicle_condition.checked and safety_checks.safety_gate_open(draft)


def confirmation_allowed(draft: ProcessingDraft) -> bool:
    """The "confirm and complete" box may only be ticked once every gate is open."""
    return draft.documents_verified and vehicle_gate_open(draft)


def step_gate_failure(step: int, draft: ProcessingDraft) -> Optional[str]:
    """Why the form cannot move past ``step``, or None if it can."""
    if step == ProcessingStep.DOCUMENT_CHECK:
        if not draft.documents_verified:
            return "All mandatory documents must be valid or exceptionally approved"
    elif step == ProcessingStep.VEHICLE_AND_RISK_CHECK:
        if not draft.vehicle_condition.checked:
            return "Vehicle condition must be checked"
        if not safety_checks.safety_gate_open(draft):
            return "All safety checks must pass or be exceptionally approved"
    elif step == ProcessingStep.DOCUMENT_UPLOAD:
        return None
    elif step == ProcessingStep.SUMMARY:
        return "Summary is the last step; complete processing instead"
    return None


def completion_failures(draft: ProcessingDraft) -> List[str]:
    """Every reason the draft cannot be finalized."""
    failures = []
    for step in (ProcessingStep.DOCUMENT_CHECK, ProcessingStep.VEHICLE_AND_RISK_CHECK):
        reason = step_gate_failure(step, draft)
        if reason:
            failures.append(reason)
    if not draft.processing_completed:
        failures.append("Processing must be confirmed as completed")
    if not draft.next_milestone:
        failures.append("Next milestone must be selected")
    return failures
