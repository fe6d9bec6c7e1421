# Services module
from yardgate.services.settings_service import SettingsService
from yardgate.services.truck_store import TruckStore
from yardgate.services.approval_service import ApprovalService
from yardgate.services.truck_lifecycle_service import TruckLifecycleService
from yardgate.services.processing_service import ProcessingService
from yardgate.services.weighbridge_service import WeighbridgeService
from yardgate.services.equipment_service import EquipmentService

__all__ = [
    "SettingsService",
    "TruckStore",
    "ApprovalService",
    "TruckLifecycleService",
    "ProcessingService",
    "WeighbridgeService",
    "EquipmentService",
]
