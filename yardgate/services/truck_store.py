"""
Truck Record Store

Get / create / patch / query access to truck records for the lifecycle
services. Patches accept column names and dotted paths into the JSON
columns (``"processing_draft.pending_approval"``), an ``ArrayAppend`` value
for append-only list columns, and the ``SERVER_TIMESTAMP`` sentinel which is
resolved to the write time.

Patches are staged on the session; ``commit`` ends the unit of work and maps
database failures to domain errors.
"""

import copy
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Union

from pydantic_core import to_jsonable_python
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import flag_modified
from sqlalchemy.orm.exc import StaleDataError

from yardgate.core.context import ActorContext
from yardgate.core.exceptions import (
    ConflictError,
    NotFoundError,
    PersistenceError,
    ValidationFailedError,
)
from yardgate.models.truck import Truck, TruckStatus

logger = logging.getLogger(__name__)


class _ServerTimestamp:
    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()


@dataclass(frozen=True)
class ArrayAppend:
    """Append ``values`` to a list column without replacing existing entries."""
    values: tuple

    def __init__(self, *values: Any):
        object.__setattr__(self, "values", tuple(values))


JSON_COLUMNS = frozenset({
    "processing_draft",
    "processing_data",
    "weight_data",
    "issued_wheel_choke",
    "issued_safety_shoe",
    "outgoing_registers",
})

# Columns a patch may never touch
PROTECTED_COLUMNS = frozenset({"id", "version", "created_at", "created_by"})


def _coerce_id(truck_id: Union[str, uuid.UUID]) -> uuid.UUID:
    if isinstance(truck_id, uuid.UUID):
        return truck_id
    try:
        return uuid.UUID(str(truck_id))
    except ValueError:
        raise NotFoundError(f"Truck {truck_id} not found", truck_id=str(truck_id))


def _resolve(value: Any, now: datetime, *, json_target: bool) -> Any:
    if value is SERVER_TIMESTAMP:
        return now.isoformat() if json_target else now
    if isinstance(value, dict):
        return {k: _resolve(v, now, json_target=json_target) for k, v in value.items()}
    if isinstance(value, list):
        return [_resolve(v, now, json_target=json_target) for v in value]
    if json_target and isinstance(value, Decimal):
        return float(value)
    if json_target:
        return to_jsonable_python(value)
    return value


class TruckStore:
    """Persistence collaborator for truck records."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, truck_id: Union[str, uuid.UUID]) -> Truck:
        """Get a truck by id. Raises NotFoundError."""
        key = _coerce_id(truck_id)
        try:
            truck = await self.db.get(Truck, key)
        except SQLAlchemyError as e:
            logger.error(f"Database error loading truck {key}: {e}")
            raise PersistenceError("Could not load truck", truck_id=str(key))
        if truck is None:
            raise NotFoundError(f"Truck {key} not found", truck_id=str(key))
        return truck

    def create(self, data: Dict[str, Any], actor: ActorContext) -> Truck:
        """Stage a new truck record; written on the next commit."""
        now = datetime.now(timezone.utc)
        truck = Truck(
            **data,
            created_at=now,
            created_by=actor.actor_id,
            last_updated_at=now,
            last_updated_by=actor.actor_id,
        )
        self.db.add(truck)
        return truck

    def patch(
        self,
        truck: Truck,
        changes: Dict[str, Any],
        actor: ActorContext,
        *,
        expected_version: Optional[int] = None,
    ) -> Truck:
        """
        Apply a partial-field update to a loaded truck.

        Raises ConflictError when ``expected_version`` is given and the stored
        version has moved since the caller read it.
        """
        check_version(truck, expected_version)
        now = datetime.now(timezone.utc)

        # Group dotted paths per JSON column so each column is copied once
        staged: Dict[str, Any] = {}
        for key, value in changes.items():
            column, _, path = key.partition(".")
            if column in PROTECTED_COLUMNS or not hasattr(Truck, column):
                raise ValidationFailedError(f"Unknown truck field '{key}'", truck_id=str(truck.id))
            json_target = column in JSON_COLUMNS

            if isinstance(value, ArrayAppend):
                if path:
                    raise ValidationFailedError(f"Cannot append into '{key}'", truck_id=str(truck.id))
                current = staged.get(column, copy.deepcopy(getattr(truck, column)) or [])
                current.extend(_resolve(list(value.values), now, json_target=True))
                staged[column] = current
                continue

            if not path:
                staged[column] = _resolve(value, now, json_target=json_target)
                continue

            if not json_target:
                raise ValidationFailedError(f"'{column}' has no nested fields", truck_id=str(truck.id))
            document = staged.get(column)
            if document is None:
                document = copy.deepcopy(getattr(truck, column)) or {}
            _set_path(document, path.split("."), _resolve(value, now, json_target=True))
            staged[column] = document

        for column, value in staged.items():
            setattr(truck, column, value)
            if column in JSON_COLUMNS:
                flag_modified(truck, column)
        truck.last_updated_at = now
        truck.last_updated_by = actor.actor_id
        return truck

    async def query(
        self,
        *,
        status: Optional[str] = None,
        statuses: Optional[Iterable[str]] = None,
        next_milestone: Optional[str] = None,
        dock_assigned: Optional[str] = None,
        include_deleted: bool = False,
        limit: Optional[int] = None,
    ) -> List[Truck]:
        """Query trucks, oldest arrival first (gate queue order)."""
        stmt = select(Truck)
        if status:
            stmt = stmt.where(Truck.status == status)
        if statuses is not None:
            stmt = stmt.where(Truck.status.in_(list(statuses)))
        if next_milestone:
            stmt = stmt.where(Truck.next_milestone == next_milestone)
        if dock_assigned:
            stmt = stmt.where(Truck.dock_assigned == dock_assigned)
        if not include_deleted:
            stmt = stmt.where(Truck.is_deleted == False)  # noqa: E712
        stmt = stmt.order_by(Truck.arrival_date_time.asc(), Truck.created_at.asc())
        if limit:
            stmt = stmt.limit(limit)
        try:
            result = await self.db.execute(stmt)
        except SQLAlchemyError as e:
            logger.error(f"Database error querying trucks: {e}")
            raise PersistenceError("Could not query trucks")
        return list(result.scalars().all())

    async def commit(self, *instances: Any) -> None:
        """
        Commit the unit of work.

        On failure the session is rolled back and the operation is treated as
        not having happened.
        """
        try:
            await self.db.commit()
        except StaleDataError as e:
            await self.db.rollback()
            logger.warning(f"Concurrent update detected: {e}")
            raise ConflictError("The truck was modified by someone else; reload and retry")
        except IntegrityError as e:
            await self.db.rollback()
            logger.warning(f"Integrity error on commit: {e.orig}")
            raise ConflictError("The change conflicts with existing data")
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Database error on commit: {e}")
            raise PersistenceError("Could not save changes")
        for instance in instances:
            await self.db.refresh(instance)


def check_version(truck: Truck, expected_version: Optional[int]) -> None:
    if expected_version is not None and truck.version != expected_version:
        raise ConflictError(
            f"Truck {truck.vehicle_number} changed since it was read "
            f"(version {expected_version}, now {truck.version})",
            truck_id=str(truck.id),
        )


def require_not_deleted(truck: Truck) -> None:
    if truck.is_deleted or truck.status == TruckStatus.DELETED.value:
        raise NotFoundError(f"Truck {truck.vehicle_number} has been deleted", truck_id=str(truck.id))


def _set_path(document: Dict[str, Any], parts: List[str], value: Any) -> None:
    node = document
    for part in parts[:-1]:
        child = node.get(part)
        if not isinstance(child, dict):
            child = {}
            node[part] = child
        node = child
    node[parts[-1]] = value
