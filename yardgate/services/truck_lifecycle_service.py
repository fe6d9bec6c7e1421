"""
Truck Lifecycle Service.

Moves trucks through the yard outside of the gate processing form:
- Registration (upcoming or directly at the gate) and the FIFO gate queue
- Gate-keeper decision (allow to a dock / internal parking, hold, external parking)
- Internal parking -> weighbridge dispatch, dock progress, exit
- Soft delete / restore, channel assignment, outgoing registers
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession

from yardgate.core.context import ActorContext
from yardgate.core.exceptions import (
    NotFoundError,
    PreconditionFailedError,
    ValidationFailedError,
)
from yardgate.models.truck import (
    ChannelType,
    DockStatus,
    EntryStatus,
    INTERNAL_PARKING_DESTINATION,
    INTERNAL_PARKING_LABEL,
    MaterialType,
    NextMilestone,
    Truck,
    TruckStatus,
)
from yardgate.schemas.settings import YardSettings
from yardgate.schemas.truck import OutgoingRegisterCreate, TruckCreate
from yardgate.services import truck_state_machine as sm
from yardgate.services.settings_service import SettingsService
from yardgate.services.truck_store import (
    SERVER_TIMESTAMP,
    ArrayAppend,
    TruckStore,
    check_version,
    require_not_deleted,
)
from yardgate.services.turnaround import TATEvaluation, evaluate_tat

logger = logging.getLogger(__name__)


def material_type_for_gate(gate: str) -> str:
    """Gates are named after what they receive: FG..., PM..., everything else RM."""
    name = gate.strip().upper()
    if name.startswith(MaterialType.FG.value):
        return MaterialType.FG.value
    if name.startswith(MaterialType.PM.value):
        return MaterialType.PM.value
    return MaterialType.RM.value


def _require_text(value: Optional[str], label: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationFailedError(f"{label} is required")
    return str(value).strip()


class TruckLifecycleService:
    """Status transitions of a truck record."""

    def __init__(self, db: AsyncSession, yard_settings: Optional[YardSettings] = None):
        self.db = db
        self.store = TruckStore(db)
        self._yard_settings = yard_settings

    async def yard_settings(self) -> YardSettings:
        if self._yard_settings is None:
            self._yard_settings = await SettingsService(self.db).get_yard_settings()
        return self._yard_settings

    def _transition(self, truck: Truck, new_status: str) -> str:
        """Validate a status change and return its action label for logging."""
        action = sm.get_transition_action(truck.status, new_status)
        try:
            sm.validate_transition(truck.status, new_status, truck_id=str(truck.id))
        except PreconditionFailedError as e:
            logger.warning(f"Rejected '{action}' for truck {truck.id}: {e.message}")
            raise
        return action

    def _reject(self, truck: Truck, message: str) -> PreconditionFailedError:
        logger.warning(f"Rejected action for truck {truck.id}: {message}")
        return PreconditionFailedError(message, truck_id=str(truck.id))

    # ==================== Registration & Queries ====================

    async def register_truck(self, data: TruckCreate, actor: ActorContext, at_gate: bool = False) -> Truck:
        """Register a truck as Upcoming, or directly At Gate for a gate entry."""
        vehicle_number = _require_text(data.vehicle_number, "Vehicle number").upper()
        values = data.model_dump(exclude_none=True, exclude={"vehicle_number"})

        if at_gate:
            values["driver_name"] = _require_text(data.driver_name, "Driver name")
            values["driver_mobile"] = _require_text(data.driver_mobile, "Driver mobile")
            values["gate"] = _require_text(data.gate, "Gate")
            values["material_type"] = material_type_for_gate(values["gate"])
            status = TruckStatus.AT_GATE.value
        else:
            values["driver_name"] = (data.driver_name or "").strip()
            status = TruckStatus.UPCOMING.value

        if isinstance(values.get("material_type"), MaterialType):
            values["material_type"] = values["material_type"].value

        truck = self.store.create(
            {
                **values,
                "id": uuid.uuid4(),
                "vehicle_number": vehicle_number,
                "truck_number": (data.truck_number or vehicle_number).upper(),
                "status": status,
                "arrival_date_time": datetime.now(timezone.utc),
                "is_deleted": False,
                "weighbridge_processing_complete": False,
                "outgoing_registers": [],
            },
            actor,
        )
        await self.store.commit(truck)
        logger.info(f"Truck {truck.id} ({vehicle_number}) registered as {status} by {actor.actor_id}")
        return truck

    async def get_truck(self, truck_id: Union[str, uuid.UUID]) -> Truck:
        return await self.store.get(truck_id)

    async def list_trucks(
        self,
        status: Optional[str] = None,
        next_milestone: Optional[str] = None,
        include_deleted: bool = False,
    ) -> List[Truck]:
        """Trucks in arrival order (the gate queue is FIFO)."""
        return await self.store.query(
            status=status,
            next_milestone=next_milestone,
            include_deleted=include_deleted or status == TruckStatus.DELETED.value,
        )

    # ==================== Gate ====================

    async def move_to_gate(
        self,
        truck_id: Union[str, uuid.UUID],
        actor: ActorContext,
        gate: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Truck:
        truck = await self.store.get(truck_id)
        require_not_deleted(truck)
        check_version(truck, expected_version)
        action = self._transition(truck, TruckStatus.AT_GATE.value)

        changes = {
            "status": TruckStatus.AT_GATE.value,
            "arrival_date_time": SERVER_TIMESTAMP,
        }
        if gate:
            changes["gate"] = gate.strip()
            changes["material_type"] = material_type_for_gate(gate)
        self.store.patch(truck, changes, actor)
        await self.store.commit(truck)
        logger.info(f"{action}: truck {truck.id} by {actor.actor_id}")
        return truck

    async def move_back(
        self,
        truck_id: Union[str, uuid.UUID],
        actor: ActorContext,
        expected_version: Optional[int] = None,
    ) -> Truck:
        """At Gate -> Upcoming. The gate decision belongs to the visit and is cleared."""
        truck = await self.store.get(truck_id)
        require_not_deleted(truck)
        check_version(truck, expected_version)
        action = self._transition(truck, TruckStatus.UPCOMING.value)

        self.store.patch(
            truck,
            {
                "status": TruckStatus.UPCOMING.value,
                "entry_status": None,
                "reason_for_hold": None,
                "dock_assigned": None,
                "dock_status": None,
                "planned_destination": None,
                "next_milestone": None,
                "processing_draft": None,
            },
            actor,
        )
        await self.store.commit(truck)
        logger.info(f"{action}: truck {truck.id} back to upcoming by {actor.actor_id}")
        return truck

    async def gate_decision(
        self,
        truck_id: Union[str, uuid.UUID],
        decision: EntryStatus,
        actor: ActorContext,
        destination: Optional[str] = None,
        reason_for_hold: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Truck:
        """
        Record the gate-keeper decision for a truck at the gate.

        Allowing entry needs a destination: a serviceable dock or
        InternalParking. Holding needs a reason. Once allowed, the decision is
        final for this visit; held and external-parking trucks can be
        re-decided.
        """
        truck = await self.store.get(truck_id)
        require_not_deleted(truck)
        check_version(truck, expected_version)
        if truck.status != TruckStatus.AT_GATE.value:
            raise self._reject(truck, f"Gate decisions need a truck at the gate (status '{truck.status}')")
        if truck.entry_status == EntryStatus.ALLOWED.value:
            raise self._reject(truck, "Entry has already been allowed for this visit")

        decision = EntryStatus(decision)
        if decision == EntryStatus.ALLOWED:
            changes = await self._allow_changes(truck, destination)
            changes.update({
                "entry_approved_at": SERVER_TIMESTAMP,
                "entry_approved_by": actor.actor_id,
                "reason_for_hold": None,
            })
        elif decision == EntryStatus.HELD:
            changes = {
                "reason_for_hold": _require_text(reason_for_hold, "Reason for hold"),
                "held_at": SERVER_TIMESTAMP,
                "held_by": actor.actor_id,
            }
        else:
            changes = {
                "external_parking_at": SERVER_TIMESTAMP,
                "external_parking_by": actor.actor_id,
            }
        changes["entry_status"] = decision.value

        self.store.patch(truck, changes, actor)
        await self.store.commit(truck)
        logger.info(
            f"Truck {truck.id} gate decision {decision.value} "
            f"(destination={truck.planned_destination}) by {actor.actor_id}"
        )
        return truck

    async def _allow_changes(self, truck: Truck, destination: Optional[str]) -> dict:
        destination = _require_text(destination, "Destination")
        if destination == INTERNAL_PARKING_DESTINATION:
            return {
                "next_milestone": NextMilestone.INTERNAL_PARKING.value,
                "planned_destination": INTERNAL_PARKING_LABEL,
                "dock_assigned": None,
                "dock_status": None,
            }

        yard = await self.yard_settings()
        dock = yard.find_dock(destination)
        if dock is None:
            raise NotFoundError(f"Dock '{destination}' does not exist", truck_id=str(truck.id))
        if not dock.is_serviceable:
            raise ValidationFailedError(f"Dock '{destination}' is not serviceable", truck_id=str(truck.id))
        return {
            "dock_assigned": dock.name,
            "dock_status": DockStatus.PENDING.value,
            "planned_destination": dock.name,
        }

    # ==================== Inside ====================

    async def dispatch_to_weighbridge(
        self,
        truck_id: Union[str, uuid.UUID],
        actor: ActorContext,
        expected_version: Optional[int] = None,
    ) -> Truck:
        """Manual re-route of an internally parked truck to the weighbridge. Status is unchanged."""
        truck = await self.store.get(truck_id)
        require_not_deleted(truck)
        check_version(truck, expected_version)
        if truck.status != TruckStatus.INSIDE.value:
            raise self._reject(truck, "Only trucks inside the yard can be sent to the weighbridge")
        if truck.next_milestone != NextMilestone.INTERNAL_PARKING.value:
            raise self._reject(truck, "Truck is not in internal parking")

        self.store.patch(
            truck,
            {
                "next_milestone": NextMilestone.WEIGH_BRIDGE.value,
                "sent_to_weighbridge_at": SERVER_TIMESTAMP,
                "sent_to_weighbridge_by": actor.actor_id,
            },
            actor,
        )
        await self.store.commit(truck)
        logger.info(f"Truck {truck.id} sent to weighbridge by {actor.actor_id}")
        return truck

    async def update_dock_status(
        self,
        truck_id: Union[str, uuid.UUID],
        dock_status: DockStatus,
        actor: ActorContext,
        expected_version: Optional[int] = None,
    ) -> Truck:
        """pending -> loading | unloading -> complete, for trucks inside at a dock."""
        truck = await self.store.get(truck_id)
        require_not_deleted(truck)
        check_version(truck, expected_version)
        if truck.status != TruckStatus.INSIDE.value or not truck.dock_assigned:
            raise self._reject(truck, "Dock status applies to dock-assigned trucks inside the yard")
        new_status = DockStatus(dock_status).value
        sm.validate_dock_status(truck.dock_status, new_status, truck_id=str(truck.id))

        self.store.patch(truck, {"dock_status": new_status}, actor)
        await self.store.commit(truck)
        logger.info(f"Truck {truck.id} at {truck.dock_assigned} is now {new_status}")
        return truck

    async def exit_truck(
        self,
        truck_id: Union[str, uuid.UUID],
        actor: ActorContext,
        expected_version: Optional[int] = None,
    ) -> Truck:
        """Inside -> Exited, once the weighbridge stage is complete."""
        truck = await self.store.get(truck_id)
        require_not_deleted(truck)
        check_version(truck, expected_version)
        action = self._transition(truck, TruckStatus.EXITED.value)
        if truck.next_milestone != NextMilestone.WEIGH_BRIDGE.value:
            raise self._reject(truck, "Truck must pass the weighbridge before exit")
        if not truck.weighbridge_processing_complete:
            raise self._reject(truck, "Weighbridge processing is not complete")

        self.store.patch(
            truck,
            {
                "status": TruckStatus.EXITED.value,
                "exited_at": SERVER_TIMESTAMP,
                "exited_by": actor.actor_id,
            },
            actor,
        )
        await self.store.commit(truck)
        logger.info(f"{action}: truck {truck.id} exited, recorded by {actor.actor_id}")
        return truck

    async def evaluate_tat(self, truck_id: Union[str, uuid.UUID]) -> TATEvaluation:
        truck = await self.store.get(truck_id)
        if truck.status != TruckStatus.EXITED.value or truck.exited_at is None:
            raise PreconditionFailedError("Turnaround time is only known after exit", truck_id=str(truck.id))
        yard = await self.yard_settings()
        return evaluate_tat(truck.arrival_date_time, truck.exited_at, truck.material_type, yard.tat)

    # ==================== Housekeeping ====================

    async def soft_delete(
        self,
        truck_id: Union[str, uuid.UUID],
        actor: ActorContext,
        expected_version: Optional[int] = None,
    ) -> Truck:
        truck = await self.store.get(truck_id)
        require_not_deleted(truck)
        check_version(truck, expected_version)
        action = self._transition(truck, TruckStatus.DELETED.value)

        self.store.patch(
            truck,
            {
                "status_before_delete": truck.status,
                "status": TruckStatus.DELETED.value,
                "is_deleted": True,
                "deleted_at": SERVER_TIMESTAMP,
                "deleted_by": actor.actor_id,
            },
            actor,
        )
        await self.store.commit(truck)
        logger.info(f"{action}: truck {truck.id} deleted by {actor.actor_id}")
        return truck

    async def restore(
        self,
        truck_id: Union[str, uuid.UUID],
        actor: ActorContext,
        expected_version: Optional[int] = None,
    ) -> Truck:
        """Undo a soft delete, returning the truck to the status it had before."""
        truck = await self.store.get(truck_id)
        check_version(truck, expected_version)
        if not truck.is_deleted:
            raise self._reject(truck, "Truck is not deleted")

        self.store.patch(
            truck,
            {
                "status": truck.status_before_delete or TruckStatus.UPCOMING.value,
                "status_before_delete": None,
                "is_deleted": False,
                "deleted_at": None,
                "deleted_by": None,
                "restored_at": SERVER_TIMESTAMP,
                "restored_by": actor.actor_id,
            },
            actor,
        )
        await self.store.commit(truck)
        logger.info(f"Truck {truck.id} restored to {truck.status} by {actor.actor_id}")
        return truck

    async def assign_channel(
        self,
        truck_id: Union[str, uuid.UUID],
        channel_type: ChannelType,
        actor: ActorContext,
        expected_version: Optional[int] = None,
    ) -> Truck:
        truck = await self.store.get(truck_id)
        require_not_deleted(truck)
        check_version(truck, expected_version)
        self.store.patch(truck, {"channel_type": ChannelType(channel_type).value}, actor)
        await self.store.commit(truck)
        logger.info(f"Truck {truck.id} assigned to {truck.channel_type} channel by {actor.actor_id}")
        return truck

    async def add_outgoing_register(
        self,
        truck_id: Union[str, uuid.UUID],
        entry: OutgoingRegisterCreate,
        actor: ActorContext,
    ) -> Truck:
        """Append a non-returnable outgoing register entry to the truck."""
        truck = await self.store.get(truck_id)
        require_not_deleted(truck)
        check_version(truck, entry.expected_version)

        record = {
            "id": str(uuid.uuid4()),
            "from_location": _require_text(entry.from_location, "From location"),
            "to_location": _require_text(entry.to_location, "To location"),
            "invoice_number": _require_text(entry.invoice_number, "Invoice number"),
            "gate_pass_number": _require_text(entry.gate_pass_number, "Gate pass number"),
            "taken_by": _require_text(entry.taken_by, "Taken by"),
            "authorize_by": _require_text(entry.authorize_by, "Authorized by"),
            "items": [item.model_dump() for item in entry.items],
            "remarks": entry.remarks,
            "type": "NonReturnable",
            "status": "Completed",
            "created_at": SERVER_TIMESTAMP,
            "created_by": actor.actor_id,
        }
        if not record["items"]:
            raise ValidationFailedError("At least one material item is required", truck_id=str(truck.id))

        self.store.patch(truck, {"outgoing_registers": ArrayAppend(record)}, actor)
        await self.store.commit(truck)
        logger.info(f"Outgoing register {record['gate_pass_number']} added to truck {truck.id}")
        return truck
