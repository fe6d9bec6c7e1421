"""
Approval API Endpoints.

Provides:
- Approvals list for the admin screen
- Approve/Reject (administrators only, exactly once per request)
"""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Query

from yardgate.api.deps import DB, AdminActor, CurrentActor
from yardgate.models.approval import ApprovalRequestType, ApprovalStatus
from yardgate.schemas.approval import (
    ApprovalDecisionRequest,
    ApprovalListResponse,
    ApprovalRequestResponse,
)
from yardgate.services.approval_service import ApprovalService

router = APIRouter(prefix="/approvals", tags=["Approvals"])


@router.get("", response_model=ApprovalListResponse)
async def list_approvals(
    db: DB,
    actor: CurrentActor,
    approval_status: Optional[ApprovalStatus] = Query(None, alias="status"),
    request_type: Optional[ApprovalRequestType] = None,
    truck_id: Optional[UUID] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
):
    """List approval requests, newest first."""
    items, total = await ApprovalService(db).list_approvals(
        status=approval_status.value if approval_status else None,
        request_type=request_type.value if request_type else None,
        truck_id=truck_id,
        skip=skip,
        limit=limit,
    )
    return ApprovalListResponse(
        items=[ApprovalRequestResponse.model_validate(item) for item in items],
        total=total,
    )


@router.get("/{request_id}", response_model=ApprovalRequestResponse)
async def get_approval(request_id: UUID, db: DB, actor: CurrentActor):
    return await ApprovalService(db).get_approval(request_id)


@router.post("/{request_id}/decision", response_model=ApprovalRequestResponse)
async def decide_approval(request_id: UUID, data: ApprovalDecisionRequest, db: DB, actor: AdminActor):
    """Approve or reject a pending request. A decided request cannot be decided again."""
    return await ApprovalService(db).decide(request_id, data.decision, actor, comments=data.comments)
