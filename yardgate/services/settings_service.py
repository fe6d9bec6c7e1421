"""
Settings Service - organization configuration.

Reads the named settings documents (docks, weighbridge threshold, TAT) into
a ``YardSettings`` snapshot, falling back to the configured defaults for
documents that were never saved. Writes merge into the stored document and
are restricted to administrators.
"""

import logging
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import flag_modified

from yardgate.config import settings as app_settings
from yardgate.core.context import ActorContext
from yardgate.core.exceptions import (
    ConflictError,
    NotFoundError,
    PersistenceError,
    ValidationFailedError,
)
from yardgate.models.settings import (
    INVENTORY_ROW_ID,
    SafetyEquipmentInventory,
    SettingsDocument,
    SettingsDocumentName,
)
from yardgate.models.truck import Truck
from yardgate.schemas.settings import (
    DockConfig,
    InventoryUpdate,
    TATSettingsData,
    TATSettingsUpdate,
    YardSettings,
)

logger = logging.getLogger(__name__)


def default_docks() -> List[Dict[str, Any]]:
    return [
        {"id": str(uuid.uuid5(uuid.NAMESPACE_URL, f"yardgate:dock:{name}")), "name": name, "is_serviceable": True}
        for name in app_settings.default_dock_names
    ]


def default_tat() -> TATSettingsData:
    return TATSettingsData(
        fg_tat=app_settings.DEFAULT_TAT_MINUTES,
        rm_tat=app_settings.DEFAULT_TAT_MINUTES,
        pm_tat=app_settings.DEFAULT_TAT_MINUTES,
        default_tat=app_settings.DEFAULT_TAT_MINUTES,
        warning_threshold=app_settings.DEFAULT_TAT_WARNING_THRESHOLD,
        critical_threshold=app_settings.DEFAULT_TAT_CRITICAL_THRESHOLD,
    )


class SettingsService:
    """Configuration provider backed by the settings tables."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ==================== Documents ====================

    async def _load(self, name: SettingsDocumentName) -> Optional[SettingsDocument]:
        try:
            return await self.db.get(SettingsDocument, name.value)
        except SQLAlchemyError as e:
            logger.error(f"Database error loading settings {name.value}: {e}")
            raise PersistenceError(f"Could not load {name.value}")

    async def _merge(self, name: SettingsDocumentName, values: Dict[str, Any], actor: ActorContext) -> Dict[str, Any]:
        """Merge ``values`` into the stored document (creating it) and commit."""
        document = await self._load(name)
        if document is None:
            document = SettingsDocument(name=name.value, data={})
            self.db.add(document)
        document.data = {**(document.data or {}), **values}
        flag_modified(document, "data")
        document.updated_by = actor.actor_id
        await self._commit()
        logger.info(f"Settings {name.value} updated by {actor.actor_id}: {sorted(values)}")
        return document.data

    async def _commit(self) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Database error saving settings: {e}")
            raise PersistenceError("Could not save settings")

    async def get_yard_settings(self) -> YardSettings:
        """Snapshot of the settings the lifecycle services depend on."""
        transporter = await self._load(SettingsDocumentName.TRANSPORTER)
        weighbridge = await self._load(SettingsDocumentName.WEIGHBRIDGE)
        tat = await self._load(SettingsDocumentName.TAT)

        docks = (transporter.data or {}).get("docks") if transporter else None
        if docks is None:
            docks = default_docks()

        threshold = app_settings.DEFAULT_WEIGHT_THRESHOLD_PERCENTAGE
        if weighbridge and weighbridge.data.get("weight_threshold_percentage") is not None:
            threshold = float(weighbridge.data["weight_threshold_percentage"])

        tat_data = default_tat().model_dump()
        if tat:
            tat_data.update({k: v for k, v in tat.data.items() if k in tat_data and v is not None})

        return YardSettings(
            docks=[DockConfig(**dock) for dock in docks],
            weight_threshold_percentage=threshold,
            tat=TATSettingsData(**tat_data),
        )

    # ==================== Docks ====================

    async def _docks(self) -> List[Dict[str, Any]]:
        document = await self._load(SettingsDocumentName.TRANSPORTER)
        if document is None or document.data.get("docks") is None:
            return default_docks()
        return [dict(dock) for dock in document.data["docks"]]

    async def list_docks(self) -> List[DockConfig]:
        return [DockConfig(**dock) for dock in await self._docks()]

    async def add_dock(self, name: str, actor: ActorContext, is_serviceable: bool = True) -> DockConfig:
        actor.require_admin("change dock settings")
        name = (name or "").strip()
        if not name:
            raise ValidationFailedError("Dock name is required")
        docks = await self._docks()
        if any(dock["name"].lower() == name.lower() for dock in docks):
            raise ConflictError(f"Dock '{name}' already exists")

        dock = {"id": str(uuid.uuid4()), "name": name, "is_serviceable": is_serviceable}
        docks.append(dock)
        await self._merge(SettingsDocumentName.TRANSPORTER, {"docks": docks}, actor)
        return DockConfig(**dock)

    async def set_dock_serviceability(self, dock_id: str, is_serviceable: bool, actor: ActorContext) -> DockConfig:
        actor.require_admin("change dock settings")
        docks = await self._docks()
        for dock in docks:
            if dock["id"] == dock_id:
                dock["is_serviceable"] = is_serviceable
                await self._merge(SettingsDocumentName.TRANSPORTER, {"docks": docks}, actor)
                return DockConfig(**dock)
        raise NotFoundError(f"Dock {dock_id} not found")

    async def remove_dock(self, dock_id: str, actor: ActorContext) -> None:
        """Remove a dock. Rejected while any truck, deleted or exited included, has it assigned."""
        actor.require_admin("change dock settings")
        docks = await self._docks()
        target = next((dock for dock in docks if dock["id"] == dock_id), None)
        if target is None:
            raise NotFoundError(f"Dock {dock_id} not found")

        try:
            result = await self.db.execute(
                select(func.count(Truck.id)).where(Truck.dock_assigned == target["name"])
            )
        except SQLAlchemyError as e:
            logger.error(f"Database error checking dock usage: {e}")
            raise PersistenceError("Could not check dock usage")
        in_use = result.scalar() or 0
        if in_use:
            raise ConflictError(f"Dock '{target['name']}' is assigned to {in_use} truck(s) and cannot be removed")

        remaining = [dock for dock in docks if dock["id"] != dock_id]
        await self._merge(SettingsDocumentName.TRANSPORTER, {"docks": remaining}, actor)

    # ==================== Thresholds ====================

    async def update_weight_threshold(self, percentage: float, actor: ActorContext) -> float:
        actor.require_admin("change weighbridge settings")
        if percentage is None or percentage < 0:
            raise ValidationFailedError("Weight threshold must be zero or more")
        data = await self._merge(
            SettingsDocumentName.WEIGHBRIDGE,
            {"weight_threshold_percentage": percentage},
            actor,
        )
        return float(data["weight_threshold_percentage"])

    async def update_tat_settings(self, update: TATSettingsUpdate, actor: ActorContext) -> TATSettingsData:
        actor.require_admin("change TAT settings")
        current = (await self.get_yard_settings()).tat.model_dump()
        changes = update.model_dump(exclude_none=True)
        merged = TATSettingsData(**{**current, **changes})

        for field in ("fg_tat", "rm_tat", "pm_tat", "default_tat"):
            if getattr(merged, field) <= 0:
                raise ValidationFailedError(f"{field} must be greater than zero")
        if merged.warning_threshold >= merged.critical_threshold:
            raise ValidationFailedError("Warning threshold must be lower than critical threshold")

        await self._merge(SettingsDocumentName.TAT, merged.model_dump(), actor)
        return merged

    # ==================== Safety Equipment Inventory ====================

    async def get_inventory(self) -> SafetyEquipmentInventory:
        """The single inventory row, created empty on first use."""
        try:
            inventory = await self.db.get(SafetyEquipmentInventory, INVENTORY_ROW_ID)
            if inventory is None:
                inventory = SafetyEquipmentInventory(
                    id=INVENTORY_ROW_ID,
                    wheel_choke_count=0,
                    safety_shoe_count=0,
                    issued_wheel_chokes=0,
                    issued_safety_shoes=0,
                )
                self.db.add(inventory)
                await self.db.flush()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Database error loading equipment inventory: {e}")
            raise PersistenceError("Could not load equipment inventory")
        return inventory

    async def update_inventory(self, update: InventoryUpdate, actor: ActorContext) -> SafetyEquipmentInventory:
        actor.require_admin("change equipment inventory")
        inventory = await self.get_inventory()
        if update.wheel_choke_count is not None:
            if update.wheel_choke_count < inventory.issued_wheel_chokes:
                raise ValidationFailedError(
                    f"Wheel choke count cannot be below the {inventory.issued_wheel_chokes} already issued"
                )
            inventory.wheel_choke_count = update.wheel_choke_count
        if update.safety_shoe_count is not None:
            if update.safety_shoe_count < inventory.issued_safety_shoes:
                raise ValidationFailedError(
                    f"Safety shoe count cannot be below the {inventory.issued_safety_shoes} already issued"
                )
            inventory.safety_shoe_count = update.safety_shoe_count
        inventory.updated_by = actor.actor_id
        await self._commit()
        await self.db.refresh(inventory)
        logger.info(
            f"Inventory updated by {actor.actor_id}: "
            f"chokes={inventory.wheel_choke_count} shoes={inventory.safety_shoe_count}"
        )
        return inventory
