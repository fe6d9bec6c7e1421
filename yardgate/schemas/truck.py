"""
Truck Schemas.

Pydantic schemas for truck registration, gate decisions and the
post-processing stages (dock, weighbridge dispatch, exit).
"""
from datetime import datetime
from typing import Optional, List, Dict, Any
from uuid import UUID

from pydantic import BaseModel, Field

from yardgate.models.truck import (
    ChannelType,
    DockStatus,
    EntryStatus,
    MaterialType,
)
from yardgate.schemas.base import BaseCreateSchema, BaseResponseSchema, VersionedRequest


# ============== Create Schemas ==============

class TruckCreate(BaseCreateSchema):
    """Registration of a truck, either pre-announced (Upcoming) or at the gate."""
    vehicle_number: str = Field(..., max_length=30)
    truck_number: Optional[str] = Field(None, max_length=30)
    driver_name: Optional[str] = Field(None, max_length=100)
    driver_mobile: Optional[str] = Field(None, max_length=20)
    driver_license: Optional[str] = Field(None, max_length=50)
    transporter: Optional[str] = None
    depot_name: Optional[str] = None
    material_type: Optional[MaterialType] = None
    supplier_name: Optional[str] = None
    lr_number: Optional[str] = None
    rto_capacity: Optional[str] = None
    loading_capacity: Optional[str] = None
    gate: Optional[str] = None


# ============== Action Schemas ==============

class GateDecisionRequest(VersionedRequest):
    """Gate-keeper decision for a truck standing at the gate."""
    decision: EntryStatus
    destination: Optional[str] = Field(
        None,
        description="Serviceable dock name or InternalParking (required when allowing entry)"
    )
    reason_for_hold: Optional[str] = None


class MoveToGateRequest(VersionedRequest):
    gate: Optional[str] = None


class DockStatusUpdate(VersionedRequest):
    dock_status: DockStatus


class ChannelAssignment(VersionedRequest):
    channel_type: ChannelType


class OutgoingItem(BaseModel):
    description: str = Field(..., min_length=1)
    quantity: float = Field(..., gt=0)
    unit: str = Field(..., min_length=1)


class OutgoingRegisterCreate(VersionedRequest):
    """Non-returnable material leaving the yard with the truck."""
    from_location: str
    to_location: str
    invoice_number: str
    gate_pass_number: str
    taken_by: str
    authorize_by: str
    items: List[OutgoingItem] = Field(default_factory=list)
    remarks: Optional[str] = None


# ============== Response Schemas ==============

class TruckBrief(BaseResponseSchema):
    """Row of a truck list."""
    id: UUID
    version: int
    truck_number: str
    vehicle_number: str
    driver_name: str
    transporter: Optional[str] = None
    material_type: str
    gate: Optional[str] = None
    status: str
    entry_status: Optional[str] = None
    channel_type: Optional[str] = None
    dock_assigned: Optional[str] = None
    planned_destination: Optional[str] = None
    next_milestone: Optional[str] = None
    weighbridge_processing_complete: bool
    arrival_date_time: datetime


class TruckResponse(TruckBrief):
    """Full truck record."""
    driver_mobile: Optional[str] = None
    driver_license: Optional[str] = None
    depot_name: Optional[str] = None
    supplier_name: Optional[str] = None
    lr_number: Optional[str] = None
    rto_capacity: Optional[str] = None
    loading_capacity: Optional[str] = None

    entry_approved_at: Optional[datetime] = None
    entry_approved_by: Optional[str] = None
    reason_for_hold: Optional[str] = None
    held_at: Optional[datetime] = None
    held_by: Optional[str] = None
    external_parking_at: Optional[datetime] = None
    external_parking_by: Optional[str] = None
    dock_status: Optional[str] = None
    sent_to_weighbridge_at: Optional[datetime] = None
    sent_to_weighbridge_by: Optional[str] = None

    processing_draft: Optional[Dict[str, Any]] = None
    processing_data: Optional[Dict[str, Any]] = None
    weight_data: Optional[Dict[str, Any]] = None
    weighbridge_processed_at: Optional[datetime] = None
    weighbridge_processed_by: Optional[str] = None
    issued_wheel_choke: Optional[Dict[str, Any]] = None
    issued_safety_shoe: Optional[Dict[str, Any]] = None
    outgoing_registers: List[Dict[str, Any]] = []

    exited_at: Optional[datetime] = None
    exited_by: Optional[str] = None
    is_deleted: bool
    deleted_at: Optional[datetime] = None
    deleted_by: Optional[str] = None

    created_at: datetime
    created_by: Optional[str] = None
    last_updated_at: datetime
    last_updated_by: Optional[str] = None


class TruckListResponse(BaseModel):
    items: List[TruckBrief]
    total: int


class TATEvaluationResponse(BaseModel):
    """Turnaround classification of an exited truck."""
    truck_id: UUID
    material_type: str
    actual_minutes: float
    ideal_minutes: int
    percentage_over: float
    status: str
