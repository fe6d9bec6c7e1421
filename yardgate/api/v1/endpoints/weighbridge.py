"""
Weighbridge API Endpoints.
"""
from uuid import UUID

from fastapi import APIRouter, status

from yardgate.api.deps import DB, CurrentActor
from yardgate.models.weight import WEIGHT_SLOTS
from yardgate.schemas.approval import ApprovalRequestResponse
from yardgate.schemas.weighbridge import (
    WeighbridgeCompletion,
    WeighbridgeOutcomeResponse,
    WeightDiscrepancyResponse,
    WeightRecordCreate,
    WeightRecordListResponse,
    WeightRecordResponse,
    WeightSummaryResponse,
)
from yardgate.services.weighbridge_service import WeighbridgeService

router = APIRouter(prefix="/trucks/{truck_id}/weighbridge", tags=["Weighbridge"])


@router.get("/weights", response_model=WeightRecordListResponse)
async def list_weights(truck_id: UUID, db: DB, actor: CurrentActor):
    service = WeighbridgeService(db)
    records = await service.list_weights(truck_id)
    used = {record.weight_number for record in records}
    return WeightRecordListResponse(
        items=[WeightRecordResponse.model_validate(record) for record in records],
        available_slots=[slot for slot in WEIGHT_SLOTS if slot not in used],
    )


@router.post("/weights", response_model=WeightRecordResponse, status_code=status.HTTP_201_CREATED)
async def record_weight(truck_id: UUID, data: WeightRecordCreate, db: DB, actor: CurrentActor):
    return await WeighbridgeService(db).record_weight(
        truck_id,
        data.weight_number,
        data.material_type,
        data.weight,
        actor,
        expected_version=data.expected_version,
    )


@router.post("/complete", response_model=WeighbridgeOutcomeResponse)
async def complete_weighbridge(truck_id: UUID, data: WeighbridgeCompletion, db: DB, actor: CurrentActor):
    """
    Complete the weighbridge stage.

    Beyond the configured threshold a weight-discrepancy approval request is
    raised instead and ``completed`` is false.
    """
    outcome = await WeighbridgeService(db).complete_weighbridge(
        truck_id,
        actor,
        invoice_weight=data.invoice_weight,
        invoice_number=data.invoice_number,
        reason=data.reason,
        expected_version=data.expected_version,
    )
    discrepancy = None
    if outcome.discrepancy is not None:
        d = outcome.discrepancy
        discrepancy = WeightDiscrepancyResponse(
            invoice_weight=d.invoice_weight,
            actual_weight=d.actual_weight,
            difference=d.difference,
            percentage_diff=d.percentage_diff,
            threshold=d.threshold,
            exceeds_threshold=d.exceeds_threshold,
        )
    return WeighbridgeOutcomeResponse(
        truck_id=outcome.truck.id,
        completed=outcome.completed,
        approval_status=outcome.approval_status,
        summary=WeightSummaryResponse(
            weight_count=outcome.summary.weight_count,
            total_weight=outcome.summary.total_weight,
            average_weight=outcome.summary.average_weight,
        ),
        discrepancy=discrepancy,
        approval_request=(
            ApprovalRequestResponse.model_validate(outcome.approval_request)
            if outcome.approval_request else None
        ),
    )
