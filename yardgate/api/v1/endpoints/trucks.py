"""
Truck API Endpoints.

Registration, gate queue, gate decisions and the post-processing stages
(weighbridge dispatch, dock progress, exit), plus housekeeping.
"""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Query, status

from yardgate.api.deps import DB, CurrentActor
from yardgate.models.truck import NextMilestone, TruckStatus
from yardgate.schemas.base import VersionedRequest
from yardgate.schemas.truck import (
    ChannelAssignment,
    DockStatusUpdate,
    GateDecisionRequest,
    MoveToGateRequest,
    OutgoingRegisterCreate,
    TATEvaluationResponse,
    TruckBrief,
    TruckCreate,
    TruckListResponse,
    TruckResponse,
)
from yardgate.services.truck_lifecycle_service import TruckLifecycleService

router = APIRouter(prefix="/trucks", tags=["Trucks"])


@router.post("", response_model=TruckResponse, status_code=status.HTTP_201_CREATED)
async def register_truck(
    data: TruckCreate,
    db: DB,
    actor: CurrentActor,
    at_gate: bool = Query(False, description="Register directly at the gate"),
):
    """Register a truck as upcoming, or directly at the gate."""
    service = TruckLifecycleService(db)
    return await service.register_truck(data, actor, at_gate=at_gate)


@router.get("", response_model=TruckListResponse)
async def list_trucks(
    db: DB,
    actor: CurrentActor,
    truck_status: Optional[TruckStatus] = Query(None, alias="status"),
    next_milestone: Optional[NextMilestone] = None,
    include_deleted: bool = False,
):
    """List trucks in arrival order (oldest first)."""
    service = TruckLifecycleService(db)
    trucks = await service.list_trucks(
        status=truck_status.value if truck_status else None,
        next_milestone=next_milestone.value if next_milestone else None,
        include_deleted=include_deleted,
    )
    return TruckListResponse(
        items=[TruckBrief.model_validate(truck) for truck in trucks],
        total=len(trucks),
    )


@router.get("/{truck_id}", response_model=TruckResponse)
async def get_truck(truck_id: UUID, db: DB, actor: CurrentActor):
    return await TruckLifecycleService(db).get_truck(truck_id)


@router.post("/{truck_id}/move-to-gate", response_model=TruckResponse)
async def move_to_gate(truck_id: UUID, data: MoveToGateRequest, db: DB, actor: CurrentActor):
    return await TruckLifecycleService(db).move_to_gate(
        truck_id, actor, gate=data.gate, expected_version=data.expected_version
    )


@router.post("/{truck_id}/move-back", response_model=TruckResponse)
async def move_back(truck_id: UUID, data: VersionedRequest, db: DB, actor: CurrentActor):
    return await TruckLifecycleService(db).move_back(truck_id, actor, expected_version=data.expected_version)


@router.post("/{truck_id}/gate-decision", response_model=TruckResponse)
async def gate_decision(truck_id: UUID, data: GateDecisionRequest, db: DB, actor: CurrentActor):
    """Allow entry (with destination), hold (with reason) or send to external parking."""
    return await TruckLifecycleService(db).gate_decision(
        truck_id,
        data.decision,
        actor,
        destination=data.destination,
        reason_for_hold=data.reason_for_hold,
        expected_version=data.expected_version,
    )


@router.post("/{truck_id}/dispatch-to-weighbridge", response_model=TruckResponse)
async def dispatch_to_weighbridge(truck_id: UUID, data: VersionedRequest, db: DB, actor: CurrentActor):
    return await TruckLifecycleService(db).dispatch_to_weighbridge(
        truck_id, actor, expected_version=data.expected_version
    )


@router.post("/{truck_id}/dock-status", response_model=TruckResponse)
async def update_dock_status(truck_id: UUID, data: DockStatusUpdate, db: DB, actor: CurrentActor):
    return await TruckLifecycleService(db).update_dock_status(
        truck_id, data.dock_status, actor, expected_version=data.expected_version
    )


@router.post("/{truck_id}/exit", response_model=TruckResponse)
async def exit_truck(truck_id: UUID, data: VersionedRequest, db: DB, actor: CurrentActor):
    return await TruckLifecycleService(db).exit_truck(truck_id, actor, expected_version=data.expected_version)


@router.get("/{truck_id}/tat", response_model=TATEvaluationResponse)
async def get_truck_tat(truck_id: UUID, db: DB, actor: CurrentActor):
    """Turnaround time of an exited truck (reporting only)."""
    service = TruckLifecycleService(db)
    truck = await service.get_truck(truck_id)
    evaluation = await service.evaluate_tat(truck_id)
    return TATEvaluationResponse(
        truck_id=truck.id,
        material_type=truck.material_type,
        actual_minutes=evaluation.actual_minutes,
        ideal_minutes=evaluation.ideal_minutes,
        percentage_over=evaluation.percentage_over,
        status=evaluation.status.value,
    )


@router.post("/{truck_id}/delete", response_model=TruckResponse)
async def soft_delete_truck(truck_id: UUID, data: VersionedRequest, db: DB, actor: CurrentActor):
    return await TruckLifecycleService(db).soft_delete(truck_id, actor, expected_version=data.expected_version)


@router.post("/{truck_id}/restore", response_model=TruckResponse)
async def restore_truck(truck_id: UUID, data: VersionedRequest, db: DB, actor: CurrentActor):
    return await TruckLifecycleService(db).restore(truck_id, actor, expected_version=data.expected_version)


@router.post("/{truck_id}/channel", response_model=TruckResponse)
async def assign_channel(truck_id: UUID, data: ChannelAssignment, db: DB, actor: CurrentActor):
    return await TruckLifecycleService(db).assign_channel(
        truck_id, data.channel_type, actor, expected_version=data.expected_version
    )


@router.post("/{truck_id}/outgoing-registers", response_model=TruckResponse)
async def add_outgoing_register(truck_id: UUID, data: OutgoingRegisterCreate, db: DB, actor: CurrentActor):
    return await TruckLifecycleService(db).add_outgoing_register(truck_id, data, actor)
