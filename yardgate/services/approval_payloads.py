"""
Approval request payloads.

Each request type carries its own snapshot and knows which truck fields its
decision changes. ``apply`` returns a truck patch (column names and dotted
JSON paths) or None when there is nothing left to change on the truck.
"""

from datetime import datetime
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter

from yardgate.models.approval import ApprovalDecision, ApprovalRequestType
from yardgate.models.truck import Truck, WeightApprovalStatus
from yardgate.schemas.processing import DocumentType, ProcessingDraft, SafetyCheckItem
from yardgate.services import document_verification
from yardgate.services.truck_store import SERVER_TIMESTAMP

TruckPatch = Dict[str, Any]


class DocumentExceptionPayload(BaseModel):
    """Mandatory documents that were invalid when approval was requested."""
    request_type: Literal["documentsIncomplete"] = ApprovalRequestType.DOCUMENTS_INCOMPLETE.value
    documents: Dict[str, Optional[str]] = Field(
        default_factory=dict,
        description="Document type -> validity date at request time",
    )

    def apply(self, truck: Truck, decision: ApprovalDecision, actor_id: str, now: datetime) -> Optional[TruckPatch]:
        if truck.processing_draft is None:
            return None
        if decision == ApprovalDecision.REJECTED:
            return {"processing_draft.pending_approval": False}

        draft = ProcessingDraft.model_validate(truck.processing_draft)
        patch: TruckPatch = {}
        for document in self.documents:
            draft.document(DocumentType(document)).exceptionally_approved = True
            patch[f"processing_draft.documents.{document}.exceptionally_approved"] = True
        document_verification.recompute(draft, now)
        patch.update({
            "processing_draft.exceptionally_approved": True,
            "processing_draft.pending_approval": False,
            "processing_draft.documents_verified": draft.documents_verified,
            "processing_draft.all_documents_are_valid": draft.all_documents_are_valid,
        })
        return patch


class SafetyExceptionPayload(BaseModel):
    """Checklist as answered when approval was requested."""
    request_type: Literal["safetyChecks"] = ApprovalRequestType.SAFETY_CHECKS.value
    checklist: List[SafetyCheckItem] = Field(default_factory=list)

    def apply(self, truck: Truck, decision: ApprovalDecision, actor_id: str, now: datetime) -> Optional[TruckPatch]:
        if truck.processing_draft is None:
            return None
        if decision == ApprovalDecision.REJECTED:
            return {"processing_draft.safety_checks_pending_approval": False}
        return {
            "processing_draft.safety_checks_exceptionally_approved": True,
            "processing_draft.safety_checks_pending_approval": False,
        }


class WeightDiscrepancyPayload(BaseModel):
    """Weighbridge figures the requester saw."""
    request_type: Literal["weightDiscrepancy"] = ApprovalRequestType.WEIGHT_DISCREPANCY.value
    invoice_weight: float
    actual_weight: float
    average_weight: float
    total_weight: float
    weight_count: int
    difference: float
    percentage_diff: float
    threshold: float

    def apply(self, truck: Truck, decision: ApprovalDecision, actor_id: str, now: datetime) -> Optional[TruckPatch]:
        if decision == ApprovalDecision.REJECTED:
            return {
                "weight_data.approval_status": WeightApprovalStatus.REJECTED.value,
                "weight_data.rejected_at": SERVER_TIMESTAMP,
                "weight_data.rejected_by": actor_id,
            }
        # The one path where a decision finalizes a stage
        return {
            "weight_data.approval_status": WeightApprovalStatus.APPROVED.value,
            "weight_data.approved_at": SERVER_TIMESTAMP,
            "weight_data.approved_by": actor_id,
            "weight_data.within_threshold": False,
            "weighbridge_processing_complete": True,
            "weighbridge_processed_at": SERVER_TIMESTAMP,
            "weighbridge_processed_by": actor_id,
        }


ApprovalPayload = Annotated[
    Union[DocumentExceptionPayload, SafetyExceptionPayload, WeightDiscrepancyPayload],
    Field(discriminator="request_type"),
]

_payload_adapter = TypeAdapter(ApprovalPayload)


def parse_payload(data: Dict[str, Any]) -> Union[DocumentExceptionPayload, SafetyExceptionPayload, WeightDiscrepancyPayload]:
    return _payload_adapter.validate_python(data)
