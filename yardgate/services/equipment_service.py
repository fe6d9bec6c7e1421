"""
Safety Equipment Service - wheel chokes and safety shoes issued at the gate.

The inventory is shared by every truck in processing. A truck keeps one
issuance record per equipment type; re-issuing applies only the difference
to the inventory, as an atomic conditional increment.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional, Union

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from yardgate.core.context import ActorContext
from yardgate.core.exceptions import (
    PersistenceError,
    PreconditionFailedError,
    ValidationFailedError,
)
from yardgate.models.equipment import EquipmentIssuanceLog, EquipmentType
from yardgate.models.settings import INVENTORY_ROW_ID, SafetyEquipmentInventory
from yardgate.models.truck import Truck
from yardgate.services import truck_state_machine as sm
from yardgate.services.settings_service import SettingsService
from yardgate.services.truck_store import TruckStore, check_version, require_not_deleted

logger = logging.getLogger(__name__)

# equipment type -> (truck column, inventory total column, inventory issued column)
EQUIPMENT_COLUMNS = {
    EquipmentType.WHEEL_CHOKE: ("issued_wheel_choke", "wheel_choke_count", "issued_wheel_chokes"),
    EquipmentType.SAFETY_SHOE: ("issued_safety_shoe", "safety_shoe_count", "issued_safety_shoes"),
}


class EquipmentService:
    """Issue safety equipment to trucks in processing."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.store = TruckStore(db)

    async def issue_equipment(
        self,
        truck_id: Union[str, uuid.UUID],
        equipment_type: EquipmentType,
        quantity: int,
        actor: ActorContext,
        remarks: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Truck:
        """
        Set the quantity of one equipment type issued to a truck.

        Only the delta against the previously issued quantity touches the
        inventory. Rejected when the delta exceeds what is available.
        """
        equipment_type = EquipmentType(equipment_type)
        truck_column, total_column, issued_column = EQUIPMENT_COLUMNS[equipment_type]

        truck = await self.store.get(truck_id)
        require_not_deleted(truck)
        check_version(truck, expected_version)
        if truck.processing_data is not None or truck.processing_draft is None \
                or not sm.can_process(truck.status, truck.entry_status):
            raise PreconditionFailedError(
                "Equipment is issued during gate processing", truck_id=str(truck.id)
            )
        if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity <= 0:
            raise ValidationFailedError("Quantity must be a positive whole number", truck_id=str(truck.id))

        previous = (getattr(truck, truck_column) or {}).get("quantity", 0)
        delta = quantity - previous

        inventory = await SettingsService(self.db).get_inventory()
        available = getattr(inventory, total_column) - getattr(inventory, issued_column)
        if delta > available:
            raise ValidationFailedError(
                f"Only {available} {equipment_type.value.replace('_', ' ')}(s) available",
                truck_id=str(truck.id),
            )

        if delta:
            total_col = getattr(SafetyEquipmentInventory, total_column)
            issued_col = getattr(SafetyEquipmentInventory, issued_column)
            try:
                result = await self.db.execute(
                    update(SafetyEquipmentInventory)
                    .where(
                        SafetyEquipmentInventory.id == INVENTORY_ROW_ID,
                        total_col - issued_col >= delta,
                        issued_col + delta >= 0,
                    )
                    .values({issued_column: issued_col + delta, "updated_by": actor.actor_id})
                    .execution_options(synchronize_session=False)
                )
            except SQLAlchemyError as e:
                await self.db.rollback()
                logger.error(f"Database error updating equipment inventory: {e}")
                raise PersistenceError("Could not update equipment inventory", truck_id=str(truck.id))
            if result.rowcount != 1:
                await self.db.rollback()
                raise ValidationFailedError(
                    "Not enough equipment available; inventory changed meanwhile",
                    truck_id=str(truck.id),
                )
            self.db.add(EquipmentIssuanceLog(
                truck_id=truck.id,
                vehicle_number=truck.vehicle_number,
                equipment_type=equipment_type.value,
                quantity=quantity,
                delta=delta,
                remarks=remarks,
                issued_by=actor.actor_id,
                issued_at=datetime.now(timezone.utc),
            ))

        record = {
            "quantity": quantity,
            "remarks": remarks,
            "issued_by": actor.actor_id,
            "issued_at": datetime.now(timezone.utc).isoformat(),
        }
        self.store.patch(
            truck,
            {truck_column: record, f"processing_draft.{truck_column}": record},
            actor,
        )
        await self.store.commit(truck)
        await self.db.refresh(inventory)
        logger.info(
            f"Issued {quantity} {equipment_type.value} to truck {truck.id} "
            f"(delta {delta:+d}) by {actor.actor_id}"
        )
        return truck
