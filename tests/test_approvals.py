import pytest

from yardgate.core.exceptions import (
    ApprovalAlreadyDecidedError,
    AuthorizationError,
    NotFoundError,
)
from yardgate.models.approval import ApprovalDecision, ApprovalRequestType, ApprovalStatus
from yardgate.schemas.processing import SafetyCheckItem
from yardgate.services.approval_payloads import (
    DocumentExceptionPayload,
    SafetyExceptionPayload,
    WeightDiscrepancyPayload,
    parse_payload,
)
from yardgate.services.approval_service import ApprovalService

EXPIRED_DATE = "2020-01-01"


async def _pending_document_request(flow):
    truck = await flow.processing_started()
    truck = await flow.set_documents(truck, valid_until=EXPIRED_DATE)
    return await flow.processing.request_document_approval(truck.id, "Documents at head office", flow.operator)


def test_payloads_are_dispatched_by_request_type():
    assert isinstance(parse_payload({"request_type": "documentsIncomplete", "documents": {}}), DocumentExceptionPayload)
    assert isinstance(parse_payload({"request_type": "safetyChecks", "checklist": []}), SafetyExceptionPayload)
    weight = parse_payload({
        "request_type": "weightDiscrepancy",
        "invoice_weight": 112,
        "actual_weight": 100,
        "average_weight": 100,
        "total_weight": 300,
        "weight_count": 3,
        "difference": 12,
        "percentage_diff": 10.71,
        "threshold": 5,
    })
    assert isinstance(weight, WeightDiscrepancyPayload)


def test_unknown_request_type_is_rejected():
    with pytest.raises(ValueError):
        parse_payload({"request_type": "gatePass"})


def test_safety_payload_keeps_the_checklist():
    payload = SafetyExceptionPayload(checklist=[SafetyCheckItem(name="Alcohol Check")])
    dumped = payload.model_dump(mode="json")
    assert dumped["request_type"] == ApprovalRequestType.SAFETY_CHECKS.value
    assert dumped["checklist"][0]["status"] == "FAIL"


async def test_only_admins_decide(db, flow):
    request = await _pending_document_request(flow)
    with pytest.raises(AuthorizationError):
        await ApprovalService(db).decide(request.id, ApprovalDecision.APPROVED, flow.operator)

    request = await ApprovalService(db).get_approval(request.id)
    assert request.status == ApprovalStatus.PENDING.value


async def test_decision_is_recorded(db, flow):
    request = await _pending_document_request(flow)
    decided = await ApprovalService(db).decide(
        request.id, ApprovalDecision.REJECTED, flow.admin, comments="Bring originals"
    )
    assert decided.status == ApprovalStatus.REJECTED.value
    assert decided.decided_by == flow.admin.actor_id
    assert decided.decided_at is not None
    assert decided.decision_comments == "Bring originals"


async def test_request_is_decided_exactly_once(db, flow):
    request = await _pending_document_request(flow)
    service = ApprovalService(db)
    await service.decide(request.id, ApprovalDecision.APPROVED, flow.admin)
    truck = await flow.lifecycle.get_truck(request.truck_id)
    version = truck.version

    with pytest.raises(ApprovalAlreadyDecidedError):
        await service.decide(request.id, ApprovalDecision.REJECTED, flow.admin)
    with pytest.raises(ApprovalAlreadyDecidedError):
        await service.decide(request.id, ApprovalDecision.APPROVED, flow.admin)

    request = await service.get_approval(request.id)
    assert request.status == ApprovalStatus.APPROVED.value
    truck = await flow.lifecycle.get_truck(request.truck_id)
    assert truck.version == version


async def test_concurrent_second_decision_is_rejected(session_factory, db, flow):
    request = await _pending_document_request(flow)

    async with session_factory() as first, session_factory() as second:
        # Both admins load the request while it is still pending
        await ApprovalService(first).get_approval(request.id)
        await ApprovalService(second).get_approval(request.id)

        await ApprovalService(first).decide(request.id, ApprovalDecision.APPROVED, flow.admin)
        with pytest.raises(ApprovalAlreadyDecidedError):
            await ApprovalService(second).decide(request.id, ApprovalDecision.REJECTED, flow.admin)


async def test_decision_after_processing_finished_is_recorded_without_effect(db, flow):
    request = await _pending_document_request(flow)
    await flow.lifecycle.move_back(request.truck_id, flow.operator)

    decided = await ApprovalService(db).decide(request.id, ApprovalDecision.APPROVED, flow.admin)
    assert decided.status == ApprovalStatus.APPROVED.value
    truck = await flow.lifecycle.get_truck(request.truck_id)
    assert truck.processing_draft is None


async def test_unknown_request(db, admin):
    with pytest.raises(NotFoundError):
        await ApprovalService(db).decide("00000000-0000-0000-0000-000000000000", ApprovalDecision.APPROVED, admin)
    with pytest.raises(NotFoundError):
        await ApprovalService(db).get_approval("bad-id")


async def test_list_approvals_filters(db, flow):
    first = await _pending_document_request(flow)
    second_truck = await flow.processing_started(vehicle_number="GJ05BB4321")
    second_truck = await flow.set_documents(second_truck, valid_until=EXPIRED_DATE)
    second = await flow.processing.request_document_approval(second_truck.id, "Permit lapsed", flow.operator)
    service = ApprovalService(db)
    await service.decide(first.id, ApprovalDecision.APPROVED, flow.admin)

    pending, total = await service.list_approvals(status=ApprovalStatus.PENDING.value)
    assert total == 1
    assert [r.id for r in pending] == [second.id]

    by_truck, total = await service.list_approvals(truck_id=first.truck_id)
    assert total == 1
    assert by_truck[0].id == first.id

    everything, total = await service.list_approvals(request_type=ApprovalRequestType.DOCUMENTS_INCOMPLETE.value)
    assert total == 2
    assert len(everything) == 2
