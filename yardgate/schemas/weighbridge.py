"""
Weighbridge Schemas.
"""
from datetime import datetime
from decimal import Decimal
from typing import Optional, List
from uuid import UUID

from pydantic import BaseModel, Field

from yardgate.models.weight import WeighbridgeMaterialType
from yardgate.schemas.approval import ApprovalRequestResponse
from yardgate.schemas.base import BaseResponseSchema, VersionedRequest


class WeightRecordCreate(VersionedRequest):
    weight_number: str = Field(..., description="Slot 1..4")
    material_type: WeighbridgeMaterialType
    weight: Decimal


class WeighbridgeCompletion(VersionedRequest):
    invoice_weight: Optional[Decimal] = None
    invoice_number: Optional[str] = None
    reason: Optional[str] = Field(None, description="Required when the discrepancy exceeds the threshold")


class WeightRecordResponse(BaseResponseSchema):
    id: UUID
    truck_id: UUID
    weight_number: str
    material_type: str
    weight: Decimal
    recorded_by: str
    recorded_at: datetime


class WeightSummaryResponse(BaseModel):
    weight_count: int
    total_weight: Decimal
    average_weight: Decimal


class WeightDiscrepancyResponse(BaseModel):
    invoice_weight: Decimal
    actual_weight: Decimal
    difference: Decimal
    percentage_diff: Decimal
    threshold: Decimal
    exceeds_threshold: bool


class WeighbridgeOutcomeResponse(BaseModel):
    """Result of a weighbridge completion attempt."""
    truck_id: UUID
    completed: bool
    approval_status: str
    summary: WeightSummaryResponse
    discrepancy: Optional[WeightDiscrepancyResponse] = None
    approval_request: Optional[ApprovalRequestResponse] = None


class WeightRecordListResponse(BaseModel):
    items: List[WeightRecordResponse]
    available_slots: List[str]
