"""
Organization Settings API Endpoints.

Reads are open to every operator; writes are administrator-only.
"""
from fastapi import APIRouter, status

from yardgate.api.deps import DB, AdminActor, CurrentActor
from yardgate.schemas.settings import (
    DestinationsResponse,
    DockConfig,
    DockCreate,
    DockServiceabilityUpdate,
    InventoryResponse,
    InventoryUpdate,
    TATSettingsData,
    TATSettingsUpdate,
    WeighbridgeSettingsUpdate,
    YardSettings,
)
from yardgate.services.settings_service import SettingsService

router = APIRouter(prefix="/settings", tags=["Settings"])


@router.get("", response_model=YardSettings)
async def get_settings(db: DB, actor: CurrentActor):
    return await SettingsService(db).get_yard_settings()


@router.get("/destinations", response_model=DestinationsResponse)
async def get_destinations(db: DB, actor: CurrentActor):
    """Destinations selectable when allowing gate entry (serviceable docks + internal parking)."""
    yard = await SettingsService(db).get_yard_settings()
    return DestinationsResponse(destinations=yard.selectable_destinations())


@router.get("/docks", response_model=list[DockConfig])
async def list_docks(db: DB, actor: CurrentActor):
    return await SettingsService(db).list_docks()


@router.post("/docks", response_model=DockConfig, status_code=status.HTTP_201_CREATED)
async def add_dock(data: DockCreate, db: DB, actor: AdminActor):
    return await SettingsService(db).add_dock(data.name, actor, is_serviceable=data.is_serviceable)


@router.patch("/docks/{dock_id}", response_model=DockConfig)
async def set_dock_serviceability(dock_id: str, data: DockServiceabilityUpdate, db: DB, actor: AdminActor):
    return await SettingsService(db).set_dock_serviceability(dock_id, data.is_serviceable, actor)


@router.delete("/docks/{dock_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_dock(dock_id: str, db: DB, actor: AdminActor):
    await SettingsService(db).remove_dock(dock_id, actor)


@router.put("/weighbridge", response_model=YardSettings)
async def update_weighbridge_settings(data: WeighbridgeSettingsUpdate, db: DB, actor: AdminActor):
    service = SettingsService(db)
    await service.update_weight_threshold(data.weight_threshold_percentage, actor)
    return await service.get_yard_settings()


@router.put("/tat", response_model=TATSettingsData)
async def update_tat_settings(data: TATSettingsUpdate, db: DB, actor: AdminActor):
    return await SettingsService(db).update_tat_settings(data, actor)


@router.get("/equipment-inventory", response_model=InventoryResponse)
async def get_inventory(db: DB, actor: CurrentActor):
    service = SettingsService(db)
    inventory = await service.get_inventory()
    await db.commit()
    return inventory


@router.put("/equipment-inventory", response_model=InventoryResponse)
async def update_inventory(data: InventoryUpdate, db: DB, actor: AdminActor):
    return await SettingsService(db).update_inventory(data, actor)
