"""
Approval Request Schemas.
"""
from datetime import datetime
from typing import Optional, List, Dict, Any
from uuid import UUID

from pydantic import BaseModel, Field

from yardgate.models.approval import ApprovalDecision
from yardgate.schemas.base import BaseResponseSchema


class ApprovalDecisionRequest(BaseModel):
    """Administrator decision on a pending request."""
    decision: ApprovalDecision
    comments: Optional[str] = Field(None, description="Decision comments")


class ApprovalRequestResponse(BaseResponseSchema):
    """Response schema for approval request."""
    id: UUID
    request_number: str
    truck_id: UUID
    vehicle_number: Optional[str] = None
    driver_name: Optional[str] = None
    request_type: str
    status: str
    reason: Optional[str] = None
    payload: Dict[str, Any]
    requested_by: str
    requested_at: datetime
    decided_by: Optional[str] = None
    decided_at: Optional[datetime] = None
    decision_comments: Optional[str] = None


class ApprovalListResponse(BaseModel):
    items: List[ApprovalRequestResponse]
    total: int
