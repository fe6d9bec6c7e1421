"""
Gate Processing API Endpoints.

The four-step processing form: documents, vehicle & safety checks,
uploads and summary. Every gate is re-checked server-side.
"""
from uuid import UUID

from fastapi import APIRouter, Path, status

from yardgate.api.deps import DB, CurrentActor
from yardgate.models.equipment import EquipmentType
from yardgate.schemas.approval import ApprovalRequestResponse
from yardgate.schemas.base import VersionedRequest
from yardgate.schemas.processing import (
    ApprovalRequestCreate,
    DocumentType,
    DocumentValidityUpdate,
    EquipmentIssue,
    ProcessingConfirmation,
    ProcessingDraftUpdate,
    SafetyResponseUpdate,
    StepChange,
    VehicleConditionUpdate,
)
from yardgate.schemas.truck import TruckResponse
from yardgate.services.equipment_service import EquipmentService
from yardgate.services.processing_service import ProcessingService

router = APIRouter(prefix="/trucks/{truck_id}/processing", tags=["Gate Processing"])


@router.post("/start", response_model=TruckResponse)
async def start_processing(truck_id: UUID, data: VersionedRequest, db: DB, actor: CurrentActor):
    return await ProcessingService(db).start_processing(truck_id, actor, expected_version=data.expected_version)


@router.put("/draft", response_model=TruckResponse)
async def save_draft(truck_id: UUID, data: ProcessingDraftUpdate, db: DB, actor: CurrentActor):
    return await ProcessingService(db).save_draft(truck_id, data, actor)


@router.put("/documents/{document_type}", response_model=TruckResponse)
async def set_document_validity(
    truck_id: UUID,
    document_type: DocumentType,
    data: DocumentValidityUpdate,
    db: DB,
    actor: CurrentActor,
):
    return await ProcessingService(db).set_document_validity(
        truck_id, document_type, data.valid_until, actor, expected_version=data.expected_version
    )


@router.post(
    "/documents/request-approval",
    response_model=ApprovalRequestResponse,
    status_code=status.HTTP_201_CREATED,
)
async def request_document_approval(truck_id: UUID, data: ApprovalRequestCreate, db: DB, actor: CurrentActor):
    return await ProcessingService(db).request_document_approval(
        truck_id, data.reason, actor, expected_version=data.expected_version
    )


@router.put("/safety-checks/{item_index}", response_model=TruckResponse)
async def set_safety_response(
    truck_id: UUID,
    data: SafetyResponseUpdate,
    db: DB,
    actor: CurrentActor,
    item_index: int = Path(..., ge=0),
):
    return await ProcessingService(db).set_safety_response(
        truck_id, item_index, data.response, actor, expected_version=data.expected_version
    )


@router.post(
    "/safety-checks/request-approval",
    response_model=ApprovalRequestResponse,
    status_code=status.HTTP_201_CREATED,
)
async def request_safety_approval(truck_id: UUID, data: ApprovalRequestCreate, db: DB, actor: CurrentActor):
    return await ProcessingService(db).request_safety_approval(
        truck_id, data.reason, actor, expected_version=data.expected_version
    )


@router.put("/vehicle-condition", response_model=TruckResponse)
async def set_vehicle_condition(truck_id: UUID, data: VehicleConditionUpdate, db: DB, actor: CurrentActor):
    return await ProcessingService(db).set_vehicle_condition(truck_id, data, actor)


@router.put("/equipment/{equipment_type}", response_model=TruckResponse)
async def issue_equipment(
    truck_id: UUID,
    equipment_type: EquipmentType,
    data: EquipmentIssue,
    db: DB,
    actor: CurrentActor,
):
    """Set the quantity of safety equipment issued to the truck."""
    return await EquipmentService(db).issue_equipment(
        truck_id,
        equipment_type,
        data.quantity,
        actor,
        remarks=data.remarks,
        expected_version=data.expected_version,
    )


@router.put("/confirmation", response_model=TruckResponse)
async def set_processing_confirmation(truck_id: UUID, data: ProcessingConfirmation, db: DB, actor: CurrentActor):
    return await ProcessingService(db).set_processing_confirmation(
        truck_id, data.processing_completed, actor, expected_version=data.expected_version
    )


@router.post("/next-step", response_model=TruckResponse)
async def advance_step(truck_id: UUID, data: VersionedRequest, db: DB, actor: CurrentActor):
    return await ProcessingService(db).advance_step(truck_id, actor, expected_version=data.expected_version)


@router.post("/previous-step", response_model=TruckResponse)
async def return_to_step(truck_id: UUID, data: StepChange, db: DB, actor: CurrentActor):
    return await ProcessingService(db).return_to_step(
        truck_id, data.step, actor, expected_version=data.expected_version
    )


@router.post("/complete", response_model=TruckResponse)
async def complete_processing(truck_id: UUID, data: VersionedRequest, db: DB, actor: CurrentActor):
    """Finalize processing; the truck moves Inside."""
    return await ProcessingService(db).complete_processing(truck_id, actor, expected_version=data.expected_version)
