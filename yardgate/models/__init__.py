# Models module
from yardgate.models.truck import (
    Truck,
    TruckStatus,
    EntryStatus,
    ChannelType,
    NextMilestone,
    MaterialType,
    DockStatus,
    WeightApprovalStatus,
)
from yardgate.models.approval import (
    ApprovalRequest,
    ApprovalStatus,
    ApprovalDecision,
    ApprovalRequestType,
)
from yardgate.models.weight import WeightRecord, WeighbridgeMaterialType
from yardgate.models.settings import (
    SettingsDocument,
    SettingsDocumentName,
    SafetyEquipmentInventory,
)
from yardgate.models.equipment import EquipmentIssuanceLog, EquipmentType

__all__ = [
    # Truck
    "Truck",
    "TruckStatus",
    "EntryStatus",
    "ChannelType",
    "NextMilestone",
    "MaterialType",
    "DockStatus",
    "WeightApprovalStatus",
    # Approval
    "ApprovalRequest",
    "ApprovalStatus",
    "ApprovalDecision",
    "ApprovalRequestType",
    # Weighbridge
    "WeightRecord",
    "WeighbridgeMaterialType",
    # Settings
    "SettingsDocument",
    "SettingsDocumentName",
    "SafetyEquipmentInventory",
    # Equipment
    "EquipmentIssuanceLog",
    "EquipmentType",
]
