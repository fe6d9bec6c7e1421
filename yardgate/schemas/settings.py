"""
Organization Settings Schemas.

``YardSettings`` is the read-only snapshot handed to the lifecycle services;
the other models mirror the stored settings documents.
"""
from typing import Optional, List

from pydantic import BaseModel, ConfigDict, Field

from yardgate.models.truck import INTERNAL_PARKING_DESTINATION


class DockConfig(BaseModel):
    """Loading/unloading bay."""
    id: str
    name: str
    is_serviceable: bool = True


class TATSettingsData(BaseModel):
    """Ideal turnaround time per material type (minutes) and alert thresholds (% over ideal)."""
    fg_tat: int = 180
    rm_tat: int = 180
    pm_tat: int = 180
    default_tat: int = 180
    warning_threshold: int = 20
    critical_threshold: int = 50


class YardSettings(BaseModel):
    """Snapshot of organization settings at the time of an operation."""
    model_config = ConfigDict(frozen=True)

    docks: List[DockConfig] = Field(default_factory=list)
    weight_threshold_percentage: float = 5.0
    tat: TATSettingsData = Field(default_factory=TATSettingsData)

    def find_dock(self, name: str) -> Optional[DockConfig]:
        for dock in self.docks:
            if dock.name == name:
                return dock
        return None

    @property
    def serviceable_docks(self) -> List[DockConfig]:
        return [dock for dock in self.docks if dock.is_serviceable]

    def selectable_destinations(self) -> List[str]:
        """Destinations offered when allowing gate entry."""
        return [dock.name for dock in self.serviceable_docks] + [INTERNAL_PARKING_DESTINATION]


# ============== Request Schemas ==============

class DockCreate(BaseModel):
    name: str
    is_serviceable: bool = True


class DockServiceabilityUpdate(BaseModel):
    is_serviceable: bool


class WeighbridgeSettingsUpdate(BaseModel):
    weight_threshold_percentage: float = Field(..., ge=0)


class TATSettingsUpdate(BaseModel):
    fg_tat: Optional[int] = None
    rm_tat: Optional[int] = None
    pm_tat: Optional[int] = None
    default_tat: Optional[int] = None
    warning_threshold: Optional[int] = None
    critical_threshold: Optional[int] = None


class InventoryUpdate(BaseModel):
    wheel_choke_count: Optional[int] = Field(None, ge=0)
    safety_shoe_count: Optional[int] = Field(None, ge=0)


# ============== Response Schemas ==============

class InventoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    wheel_choke_count: int
    safety_shoe_count: int
    issued_wheel_chokes: int
    issued_safety_shoes: int
    available_wheel_chokes: int
    available_safety_shoes: int


class DestinationsResponse(BaseModel):
    destinations: List[str]
