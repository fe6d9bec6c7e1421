"""
Gate Processing Service.

Drives the four-step processing form for a truck whose entry was allowed:

  1. Document Check       - documents verified (valid or exceptionally approved)
  2. Vehicle & Risk Check - vehicle checked and safety checks passed / approved
  3. Document Upload      - optional
  4. Summary              - confirmation and next milestone, then complete

The draft is persisted at explicit checkpoints: every document date or
safety answer change, explicit saves and every step navigation. Completion
re-checks every gate against the stored draft before the truck goes Inside.
"""

import logging
from datetime import datetime, timezone
from typing import Optional, Union
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from yardgate.core.context import ActorContext
from yardgate.core.exceptions import (
    ConflictError,
    PersistenceError,
    PreconditionFailedError,
    ValidationFailedError,
)
from yardgate.models.approval import ApprovalRequest
from yardgate.models.truck import (
    INTERNAL_PARKING_LABEL,
    NextMilestone,
    Truck,
    TruckStatus,
)
from yardgate.schemas.processing import (
    DocumentType,
    ProcessingDraft,
    ProcessingDraftUpdate,
    ProcessingStep,
    SafetyResponse,
    VehicleConditionUpdate,
)
from yardgate.services import document_verification, safety_checks
from yardgate.services import truck_state_machine as sm
from yardgate.services.approval_payloads import (
    DocumentExceptionPayload,
    SafetyExceptionPayload,
)
from yardgate.services.approval_service import ApprovalService
from yardgate.services.truck_store import (
    SERVER_TIMESTAMP,
    TruckStore,
    check_version,
    require_not_deleted,
)

logger = logging.getLogger(__name__)


def initial_milestone(planned_destination: Optional[str]) -> str:
    """Internal parking trucks stay parked; everyone else heads for the weighbridge."""
    if planned_destination == INTERNAL_PARKING_LABEL:
        return NextMilestone.INTERNAL_PARKING.value
    return NextMilestone.WEIGH_BRIDGE.value


class ProcessingService:
    """Gate processing of a single truck."""

    def __init__(self, db: AsyncSession, now: Optional[datetime] = None):
        self.db = db
        self.store = TruckStore(db)
        self._now = now

    @property
    def now(self) -> datetime:
        return self._now or datetime.now(timezone.utc)

    async def _load(self, truck_id: Union[str, uuid.UUID], expected_version: Optional[int] = None) -> Truck:
        truck = await self.store.get(truck_id)
        require_not_deleted(truck)
        check_version(truck, expected_version)
        return truck

    def _draft(self, truck: Truck) -> ProcessingDraft:
        if truck.processing_data is not None:
            raise PreconditionFailedError("Processing is already complete", truck_id=str(truck.id))
        if not sm.can_process(truck.status, truck.entry_status):
            raise PreconditionFailedError(
                "Processing needs a truck at the gate with entry allowed", truck_id=str(truck.id)
            )
        if truck.processing_draft is None:
            raise PreconditionFailedError("Processing has not been started", truck_id=str(truck.id))
        draft = ProcessingDraft.model_validate(truck.processing_draft)
        return document_verification.recompute(draft, self.now)

    async def _save(self, truck: Truck, draft: ProcessingDraft, actor: ActorContext, *instances) -> Truck:
        """Persist the whole draft. Failures are logged and reported, never retried."""
        self.store.patch(truck, {"processing_draft": draft.to_json()}, actor)
        try:
            await self.store.commit(truck, *instances)
        except (ConflictError, PersistenceError):
            logger.error(f"Draft save failed for truck {truck.id}")
            raise
        return truck

    # ==================== Draft ====================

    async def start_processing(
        self,
        truck_id: Union[str, uuid.UUID],
        actor: ActorContext,
        expected_version: Optional[int] = None,
    ) -> Truck:
        """Open the processing form. Returns the existing draft if one is in progress."""
        truck = await self._load(truck_id, expected_version)
        if truck.processing_data is not None:
            raise PreconditionFailedError("Processing is already complete", truck_id=str(truck.id))
        if not sm.can_process(truck.status, truck.entry_status):
            logger.warning(f"Rejected processing start for truck {truck.id}: entry not allowed")
            raise PreconditionFailedError(
                "Processing needs a truck at the gate with entry allowed", truck_id=str(truck.id)
            )
        if truck.processing_draft is not None:
            return truck

        draft = ProcessingDraft(
            started_at=self.now.isoformat(),
            started_by=actor.actor_id,
            safety_checks=safety_checks.default_checklist(),
            next_milestone=initial_milestone(truck.planned_destination),
        )
        for doc_type in DocumentType:
            draft.document(doc_type)
        document_verification.recompute(draft, self.now)
        await self._save(truck, draft, actor)
        logger.info(f"Processing started for truck {truck.id} by {actor.actor_id}")
        return truck

    async def save_draft(
        self,
        truck_id: Union[str, uuid.UUID],
        update: ProcessingDraftUpdate,
        actor: ActorContext,
    ) -> Truck:
        """Explicit save of the free-form fields; gating aggregates are recomputed."""
        truck = await self._load(truck_id, update.expected_version)
        draft = self._draft(truck)
        if update.uploaded_documents is not None:
            draft.uploaded_documents = list(update.uploaded_documents)
        if update.next_milestone is not None:
            draft.next_milestone = NextMilestone(update.next_milestone).value
        if update.final_remarks is not None:
            draft.final_remarks = update.final_remarks
        return await self._save(truck, draft, actor)

    # ==================== Step 1: Documents ====================

    async def set_document_validity(
        self,
        truck_id: Union[str, uuid.UUID],
        document_type: DocumentType,
        valid_until: Optional[str],
        actor: ActorContext,
        expected_version: Optional[int] = None,
    ) -> Truck:
        """Record a document's validity date; aggregates are recomputed and saved immediately."""
        truck = await self._load(truck_id, expected_version)
        draft = self._draft(truck)
        draft.document(DocumentType(document_type)).valid_until = valid_until or None
        document_verification.recompute(draft, self.now)
        return await self._save(truck, draft, actor)

    async def request_document_approval(
        self,
        truck_id: Union[str, uuid.UUID],
        reason: str,
        actor: ActorContext,
        expected_version: Optional[int] = None,
    ) -> ApprovalRequest:
        """Send the invalid mandatory documents for exceptional approval."""
        truck = await self._load(truck_id, expected_version)
        draft = self._draft(truck)
        blocking = document_verification.blocking_documents(draft.documents, self.now)
        if not blocking:
            raise PreconditionFailedError("All mandatory documents are already verified", truck_id=str(truck.id))
        if not reason or not reason.strip():
            raise ValidationFailedError("A reason is required", truck_id=str(truck.id))

        payload = DocumentExceptionPayload(
            documents={doc.value: draft.document(doc).valid_until for doc in blocking}
        )
        request = await ApprovalService(self.db).create_request(truck, payload, reason.strip(), actor)
        draft.pending_approval = True
        await self._save(truck, draft, actor, request)
        return request

    # ==================== Step 2: Vehicle & Safety ====================

    async def set_safety_response(
        self,
        truck_id: Union[str, uuid.UUID],
        item_index: int,
        response: SafetyResponse,
        actor: ActorContext,
        expected_version: Optional[int] = None,
    ) -> Truck:
        """Answer one checklist item; the aggregate is recomputed and saved immediately."""
        truck = await self._load(truck_id, expected_version)
        draft = self._draft(truck)
        try:
            safety_checks.set_response(draft, item_index, SafetyResponse(response))
        except IndexError:
            raise ValidationFailedError(f"Unknown safety check #{item_index}", truck_id=str(truck.id))
        return await self._save(truck, draft, actor)

    async def request_safety_approval(
        self,
        truck_id: Union[str, uuid.UUID],
        reason: str,
        actor: ActorContext,
        expected_version: Optional[int] = None,
    ) -> ApprovalRequest:
        """Send the failing checklist for a single aggregate exceptional approval."""
        truck = await self._load(truck_id, expected_version)
        draft = self._draft(truck)
        if draft.all_safety_checks_passed or draft.safety_checks_exceptionally_approved:
            raise PreconditionFailedError("Safety checks do not need approval", truck_id=str(truck.id))
        if not reason or not reason.strip():
            raise ValidationFailedError("A reason is required", truck_id=str(truck.id))

        payload = SafetyExceptionPayload(checklist=draft.safety_checks)
        request = await ApprovalService(self.db).create_request(truck, payload, reason.strip(), actor)
        draft.safety_checks_pending_approval = True
        await self._save(truck, draft, actor, request)
        return request

    async def set_vehicle_condition(
        self,
        truck_id: Union[str, uuid.UUID],
        update: VehicleConditionUpdate,
        actor: ActorContext,
    ) -> Truck:
        truck = await self._load(truck_id, update.expected_version)
        draft = self._draft(truck)
        draft.vehicle_condition.checked = update.checked
        draft.vehicle_condition.risk_level = update.risk_level
        draft.vehicle_condition.tire_condition = update.tire_condition
        draft.vehicle_condition.remarks = update.remarks
        return await self._save(truck, draft, actor)

    # ==================== Step 4: Summary ====================

    async def set_processing_confirmation(
        self,
        truck_id: Union[str, uuid.UUID],
        confirmed: bool,
        actor: ActorContext,
        expected_version: Optional[int] = None,
    ) -> Truck:
        """Tick or untick "confirm and complete". Ticking needs every gate open."""
        truck = await self._load(truck_id, expected_version)
        draft = self._draft(truck)
        if confirmed and not sm.confirmation_allowed(draft):
            logger.warning(f"Rejected processing confirmation for truck {truck.id}")
            raise PreconditionFailedError(
                "Documents, vehicle condition and safety checks must all be cleared first",
                truck_id=str(truck.id),
            )
        draft.processing_completed = confirmed
        return await self._save(truck, draft, actor)

    # ==================== Navigation ====================

    async def advance_step(
        self,
        truck_id: Union[str, uuid.UUID],
        actor: ActorContext,
        expected_version: Optional[int] = None,
    ) -> Truck:
        """Move to the next step if the current step's gate is open. Saves the draft."""
        truck = await self._load(truck_id, expected_version)
        draft = self._draft(truck)
        reason = sm.step_gate_failure(draft.current_step, draft)
        if reason:
            logger.warning(f"Rejected step {draft.current_step} advance for truck {truck.id}: {reason}")
            raise PreconditionFailedError(reason, truck_id=str(truck.id))
        draft.current_step = draft.current_step + 1
        return await self._save(truck, draft, actor)

    async def return_to_step(
        self,
        truck_id: Union[str, uuid.UUID],
        step: Optional[int],
        actor: ActorContext,
        expected_version: Optional[int] = None,
    ) -> Truck:
        """Go back to an earlier step (the previous one by default). Saves the draft."""
        truck = await self._load(truck_id, expected_version)
        draft = self._draft(truck)
        if step is None:
            step = max(ProcessingStep.DOCUMENT_CHECK.value, draft.current_step - 1)
        if step < ProcessingStep.DOCUMENT_CHECK or step > draft.current_step:
            raise ValidationFailedError(f"Cannot go back to step {step}", truck_id=str(truck.id))
        draft.current_step = step
        return await self._save(truck, draft, actor)

    async def complete_processing(
        self,
        truck_id: Union[str, uuid.UUID],
        actor: ActorContext,
        expected_version: Optional[int] = None,
    ) -> Truck:
        """
        Finalize processing: status Inside, processing data snapshot saved,
        draft cleared and next milestone copied to the truck.
        """
        truck = await self._load(truck_id, expected_version)
        draft = self._draft(truck)
        failures = sm.completion_failures(draft)
        if failures:
            logger.warning(f"Rejected processing completion for truck {truck.id}: {failures}")
            raise PreconditionFailedError("; ".join(failures), truck_id=str(truck.id))
        sm.validate_transition(truck.status, TruckStatus.INSIDE.value, truck_id=str(truck.id))
        action = sm.get_transition_action(truck.status, TruckStatus.INSIDE.value)

        data = draft.to_json()
        data.pop("current_step", None)
        data["processed_at"] = SERVER_TIMESTAMP
        data["processed_by"] = actor.actor_id

        self.store.patch(
            truck,
            {
                "processing_data": data,
                "processing_draft": None,
                "status": TruckStatus.INSIDE.value,
                "next_milestone": draft.next_milestone,
            },
            actor,
        )
        await self.store.commit(truck)
        logger.info(
            f"{action}: truck {truck.id} by {actor.actor_id}; "
            f"next milestone {truck.next_milestone}"
        )
        return truck
