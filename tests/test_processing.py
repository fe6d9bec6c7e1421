import pytest

from yardgate.core.exceptions import (
    ConflictError,
    PreconditionFailedError,
    ValidationFailedError,
)
from yardgate.models.approval import ApprovalDecision, ApprovalRequestType, ApprovalStatus
from yardgate.models.truck import NextMilestone, TruckStatus
from yardgate.schemas.processing import (
    DocumentType,
    ProcessingDraftUpdate,
    SafetyResponse,
    VehicleConditionUpdate,
)
from yardgate.services.approval_service import ApprovalService
from yardgate.services.processing_service import initial_milestone

VALID_DATE = "2099-12-31"
EXPIRED_DATE = "2020-01-01"


def test_initial_milestone():
    assert initial_milestone("Internal Parking") == NextMilestone.INTERNAL_PARKING.value
    assert initial_milestone("Dock 1") == NextMilestone.WEIGH_BRIDGE.value


async def test_processing_needs_allowed_entry(flow):
    truck = await flow.at_gate()
    with pytest.raises(PreconditionFailedError):
        await flow.processing.start_processing(truck.id, flow.operator)


async def test_start_creates_a_blank_draft(flow):
    truck = await flow.processing_started()
    draft = truck.processing_draft

    assert draft["current_step"] == 1
    assert draft["started_by"] == flow.operator.actor_id
    assert set(draft["documents"]) == {d.value for d in DocumentType}
    assert draft["documents_verified"] is False
    assert len(draft["safety_checks"]) == 6
    assert draft["all_safety_checks_passed"] is False
    assert draft["next_milestone"] == NextMilestone.WEIGH_BRIDGE.value


async def test_start_is_idempotent(flow):
    truck = await flow.processing_started()
    truck = await flow.processing.set_document_validity(
        truck.id, DocumentType.PERMIT, VALID_DATE, flow.operator
    )
    again = await flow.processing.start_processing(truck.id, flow.operator)
    assert again.processing_draft["documents"]["permit"]["valid_until"] == VALID_DATE


async def test_step_one_gate(flow):
    truck = await flow.processing_started()
    with pytest.raises(PreconditionFailedError):
        await flow.processing.advance_step(truck.id, flow.operator)
    truck = await flow.lifecycle.get_truck(truck.id)
    assert truck.processing_draft["current_step"] == 1

    truck = await flow.set_documents(truck)
    assert truck.processing_draft["documents_verified"] is True
    truck = await flow.processing.advance_step(truck.id, flow.operator)
    assert truck.processing_draft["current_step"] == 2


async def test_pollution_is_not_required(flow):
    truck = await flow.processing_started()
    for doc_type in (DocumentType.DRIVING_LICENSE, DocumentType.PERMIT, DocumentType.INSURANCE):
        truck = await flow.processing.set_document_validity(truck.id, doc_type, VALID_DATE, flow.operator)
    assert truck.processing_draft["documents_verified"] is True
    assert truck.processing_draft["documents"]["pollution"]["verified"] is False


async def test_step_two_gate(flow):
    truck = await flow.processing_started()
    truck = await flow.set_documents(truck)
    truck = await flow.processing.advance_step(truck.id, flow.operator)

    with pytest.raises(PreconditionFailedError, match="Vehicle condition"):
        await flow.processing.advance_step(truck.id, flow.operator)

    truck = await flow.processing.set_vehicle_condition(
        truck.id, VehicleConditionUpdate(checked=True, tire_condition="good"), flow.operator
    )
    with pytest.raises(PreconditionFailedError, match="safety"):
        await flow.processing.advance_step(truck.id, flow.operator)

    truck = await flow.pass_vehicle_checks(truck)
    truck = await flow.processing.advance_step(truck.id, flow.operator)
    truck = await flow.processing.advance_step(truck.id, flow.operator)
    assert truck.processing_draft["current_step"] == 4

    with pytest.raises(PreconditionFailedError):
        await flow.processing.advance_step(truck.id, flow.operator)


async def test_going_back(flow):
    truck = await flow.cleared()
    truck = await flow.processing.advance_step(truck.id, flow.operator)
    truck = await flow.processing.advance_step(truck.id, flow.operator)
    assert truck.processing_draft["current_step"] == 3

    truck = await flow.processing.return_to_step(truck.id, None, flow.operator)
    assert truck.processing_draft["current_step"] == 2
    truck = await flow.processing.return_to_step(truck.id, 1, flow.operator)
    assert truck.processing_draft["current_step"] == 1

    with pytest.raises(ValidationFailedError):
        await flow.processing.return_to_step(truck.id, 3, flow.operator)


async def test_unknown_safety_item(flow):
    truck = await flow.processing_started()
    with pytest.raises(ValidationFailedError):
        await flow.processing.set_safety_response(truck.id, 6, SafetyResponse.YES, flow.operator)


async def test_confirmation_needs_every_gate(flow):
    truck = await flow.processing_started()
    truck = await flow.set_documents(truck)
    with pytest.raises(PreconditionFailedError):
        await flow.processing.set_processing_confirmation(truck.id, True, flow.operator)

    truck = await flow.pass_vehicle_checks(truck)
    truck = await flow.processing.set_processing_confirmation(truck.id, True, flow.operator)
    assert truck.processing_draft["processing_completed"] is True

    truck = await flow.processing.set_processing_confirmation(truck.id, False, flow.operator)
    assert truck.processing_draft["processing_completed"] is False


async def test_completion_rechecks_stored_draft(flow):
    truck = await flow.cleared()
    with pytest.raises(PreconditionFailedError, match="confirmed"):
        await flow.processing.complete_processing(truck.id, flow.operator)

    await flow.processing.set_processing_confirmation(truck.id, True, flow.operator)
    # A failed answer after confirmation closes the gate again
    await flow.processing.set_safety_response(truck.id, 0, SafetyResponse.NO, flow.operator)
    with pytest.raises(PreconditionFailedError, match="safety"):
        await flow.processing.complete_processing(truck.id, flow.operator)

    truck = await flow.lifecycle.get_truck(truck.id)
    assert truck.status == TruckStatus.AT_GATE.value


async def test_complete_processing(flow):
    truck = await flow.cleared()
    await flow.processing.save_draft(
        truck.id,
        ProcessingDraftUpdate(uploaded_documents=["lr-copy.pdf"], final_remarks="All good"),
        flow.operator,
    )
    await flow.processing.set_processing_confirmation(truck.id, True, flow.operator)
    truck = await flow.processing.complete_processing(truck.id, flow.operator)

    assert truck.status == TruckStatus.INSIDE.value
    assert truck.processing_draft is None
    assert truck.next_milestone == NextMilestone.WEIGH_BRIDGE.value
    data = truck.processing_data
    assert data["processed_by"] == flow.operator.actor_id
    assert data["processed_at"]
    assert data["uploaded_documents"] == ["lr-copy.pdf"]
    assert data["final_remarks"] == "All good"
    assert "current_step" not in data
    assert truck.is_processed

    with pytest.raises(PreconditionFailedError):
        await flow.processing.start_processing(truck.id, flow.operator)


async def test_next_milestone_can_be_changed_before_completion(flow):
    truck = await flow.cleared()
    await flow.processing.save_draft(
        truck.id, ProcessingDraftUpdate(next_milestone=NextMilestone.INTERNAL_PARKING), flow.operator
    )
    await flow.processing.set_processing_confirmation(truck.id, True, flow.operator)
    truck = await flow.processing.complete_processing(truck.id, flow.operator)
    assert truck.next_milestone == NextMilestone.INTERNAL_PARKING.value


async def test_stale_version_is_rejected(flow):
    truck = await flow.processing_started()
    stale = truck.version
    await flow.processing.set_document_validity(truck.id, DocumentType.PERMIT, VALID_DATE, flow.operator)
    with pytest.raises(ConflictError):
        await flow.processing.set_document_validity(
            truck.id, DocumentType.INSURANCE, VALID_DATE, flow.operator, expected_version=stale
        )


# ==================== Exceptional approvals ====================

async def test_document_exception_approval(db, flow):
    truck = await flow.processing_started()
    truck = await flow.processing.set_document_validity(truck.id, DocumentType.DRIVING_LICENSE, VALID_DATE, flow.operator)
    truck = await flow.processing.set_document_validity(truck.id, DocumentType.PERMIT, VALID_DATE, flow.operator)
    truck = await flow.processing.set_document_validity(truck.id, DocumentType.INSURANCE, EXPIRED_DATE, flow.operator)
    assert truck.processing_draft["documents_verified"] is False

    with pytest.raises(ValidationFailedError):
        await flow.processing.request_document_approval(truck.id, "  ", flow.operator)

    request = await flow.processing.request_document_approval(truck.id, "Renewal in progress", flow.operator)
    assert request.request_type == ApprovalRequestType.DOCUMENTS_INCOMPLETE.value
    assert request.status == ApprovalStatus.PENDING.value
    assert request.payload["documents"] == {"insurance": EXPIRED_DATE}
    assert request.request_number.startswith("APR-")

    truck = await flow.processing.start_processing(truck.id, flow.operator)
    assert truck.processing_draft["pending_approval"] is True

    await ApprovalService(db).decide(request.id, ApprovalDecision.APPROVED, flow.admin, comments="ok")
    truck = await flow.lifecycle.get_truck(truck.id)
    draft = truck.processing_draft
    assert draft["documents"]["insurance"]["exceptionally_approved"] is True
    assert draft["documents"]["permit"]["exceptionally_approved"] is False
    assert draft["documents_verified"] is True
    assert draft["all_documents_are_valid"] is False
    assert draft["pending_approval"] is False
    assert draft["exceptionally_approved"] is True

    truck = await flow.processing.advance_step(truck.id, flow.operator)
    assert truck.processing_draft["current_step"] == 2


async def test_document_approval_not_needed_when_valid(flow):
    truck = await flow.processing_started()
    truck = await flow.set_documents(truck)
    with pytest.raises(PreconditionFailedError):
        await flow.processing.request_document_approval(truck.id, "just in case", flow.operator)


async def test_rejected_document_approval_keeps_gate_closed(db, flow):
    truck = await flow.processing_started()
    truck = await flow.set_documents(truck, valid_until=EXPIRED_DATE)
    request = await flow.processing.request_document_approval(truck.id, "Driver forgot", flow.operator)

    await ApprovalService(db).decide(request.id, ApprovalDecision.REJECTED, flow.admin)
    truck = await flow.lifecycle.get_truck(truck.id)
    assert truck.processing_draft["pending_approval"] is False
    assert truck.processing_draft["documents_verified"] is False

    # A fresh request may be raised after a rejection
    second = await flow.processing.request_document_approval(truck.id, "Copy arrived by mail", flow.operator)
    assert second.request_number != request.request_number


async def test_only_one_pending_request_per_type(flow):
    truck = await flow.processing_started()
    truck = await flow.set_documents(truck, valid_until=EXPIRED_DATE)
    await flow.processing.request_document_approval(truck.id, "first", flow.operator)
    with pytest.raises(ConflictError):
        await flow.processing.request_document_approval(truck.id, "second", flow.operator)


async def test_safety_exception_approval(db, flow):
    truck = await flow.processing_started()
    truck = await flow.set_documents(truck)
    truck = await flow.processing.set_vehicle_condition(truck.id, VehicleConditionUpdate(checked=True), flow.operator)
    for index in range(5):
        truck = await flow.processing.set_safety_response(truck.id, index, SafetyResponse.YES, flow.operator)

    request = await flow.processing.request_safety_approval(truck.id, "Spark arrestor on order", flow.operator)
    assert request.request_type == ApprovalRequestType.SAFETY_CHECKS.value
    assert len(request.payload["checklist"]) == 6

    with pytest.raises(PreconditionFailedError):
        await flow.processing.set_processing_confirmation(truck.id, True, flow.operator)

    await ApprovalService(db).decide(request.id, ApprovalDecision.APPROVED, flow.admin)
    truck = await flow.lifecycle.get_truck(truck.id)
    assert truck.processing_draft["safety_checks_exceptionally_approved"] is True
    assert truck.processing_draft["safety_checks_pending_approval"] is False
    assert truck.processing_draft["all_safety_checks_passed"] is False

    await flow.processing.set_processing_confirmation(truck.id, True, flow.operator)
    truck = await flow.processing.complete_processing(truck.id, flow.operator)
    assert truck.status == TruckStatus.INSIDE.value


async def test_safety_approval_not_needed_when_all_pass(flow):
    truck = await flow.cleared()
    with pytest.raises(PreconditionFailedError):
        await flow.processing.request_safety_approval(truck.id, "why not", flow.operator)
