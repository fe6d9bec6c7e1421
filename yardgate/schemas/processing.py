"""
Processing Draft Schemas.

The processing form filled at the gate is stored as JSON on the truck record
(``processing_draft`` while in progress, ``processing_data`` once final).
These models give that JSON a fixed shape; aggregates are always recomputed
server-side and never taken from client input.
"""
from enum import Enum
from typing import Optional, List, Dict, Any

from pydantic import BaseModel, ConfigDict, Field

from yardgate.models.truck import NextMilestone
from yardgate.schemas.base import BaseUpdateSchema, VersionedRequest


class DocumentType(str, Enum):
    """Documents inspected at the gate."""
    DRIVING_LICENSE = "driving_license"
    PERMIT = "permit"
    INSURANCE = "insurance"
    POLLUTION = "pollution"


# Pollution certificate is recorded but never blocks entry
MANDATORY_DOCUMENTS = (
    DocumentType.DRIVING_LICENSE,
    DocumentType.PERMIT,
    DocumentType.INSURANCE,
)


class SafetyResponse(str, Enum):
    YES = "Yes"
    NO = "No"


class SafetyCheckStatus(str, Enum):
    PASS = "PASS"
    FAIL = "FAIL"


class ProcessingStep(int, Enum):
    """The four steps of the gate processing form."""
    DOCUMENT_CHECK = 1
    VEHICLE_AND_RISK_CHECK = 2
    DOCUMENT_UPLOAD = 3
    SUMMARY = 4


class DocumentCheck(BaseModel):
    """Validity of one document."""
    valid_until: Optional[str] = None
    verified: bool = False
    exceptionally_approved: bool = False


class SafetyCheckItem(BaseModel):
    """One fixed yes/no safety question."""
    name: str
    description: Optional[str] = None
    response: SafetyResponse = SafetyResponse.NO
    status: SafetyCheckStatus = SafetyCheckStatus.FAIL


class VehicleCondition(BaseModel):
    """Informational vehicle inspection; only ``checked`` gates step 2."""
    checked: bool = False
    risk_level: Optional[str] = None
    tire_condition: Optional[str] = None
    remarks: Optional[str] = None


class IssuedEquipment(BaseModel):
    """Safety equipment handed to the driver of one truck."""
    quantity: int
    remarks: Optional[str] = None
    issued_by: str
    issued_at: str


class ProcessingDraft(BaseModel):
    """Gate processing form."""
    model_config = ConfigDict(extra="ignore", use_enum_values=True)

    current_step: int = ProcessingStep.DOCUMENT_CHECK.value
    started_at: Optional[str] = None
    started_by: Optional[str] = None

    # Step 1 - documents
    documents: Dict[str, DocumentCheck] = Field(default_factory=dict)
    all_documents_are_valid: bool = False
    documents_verified: bool = False
    pending_approval: bool = False
    exceptionally_approved: bool = False

    # Step 2 - vehicle and safety
    vehicle_condition: VehicleCondition = Field(default_factory=VehicleCondition)
    safety_checks: List[SafetyCheckItem] = Field(default_factory=list)
    all_safety_checks_passed: bool = False
    safety_checks_pending_approval: bool = False
    safety_checks_exceptionally_approved: bool = False
    issued_wheel_choke: Optional[IssuedEquipment] = None
    issued_safety_shoe: Optional[IssuedEquipment] = None

    # Step 3 - uploads (optional)
    uploaded_documents: List[str] = Field(default_factory=list)

    # Step 4 - summary
    next_milestone: Optional[NextMilestone] = None
    processing_completed: bool = False
    final_remarks: Optional[str] = None

    def document(self, document_type: DocumentType) -> DocumentCheck:
        return self.documents.setdefault(document_type.value, DocumentCheck())

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


# ============== Request Schemas ==============

class ProcessingDraftUpdate(BaseUpdateSchema):
    """Explicit "save draft" for the free-form parts of the form."""
    expected_version: Optional[int] = None
    uploaded_documents: Optional[List[str]] = None
    next_milestone: Optional[NextMilestone] = None
    final_remarks: Optional[str] = None


class DocumentValidityUpdate(VersionedRequest):
    valid_until: Optional[str] = Field(None, description="ISO date; empty means missing")


class SafetyResponseUpdate(VersionedRequest):
    response: SafetyResponse


class VehicleConditionUpdate(VersionedRequest):
    checked: bool
    risk_level: Optional[str] = None
    tire_condition: Optional[str] = None
    remarks: Optional[str] = None


class ProcessingConfirmation(VersionedRequest):
    processing_completed: bool


class StepChange(VersionedRequest):
    step: Optional[int] = Field(None, ge=1, le=4, description="Target step when going back")


class ApprovalRequestCreate(VersionedRequest):
    reason: str = Field(..., min_length=1)


class EquipmentIssue(VersionedRequest):
    quantity: int
    remarks: Optional[str] = None
