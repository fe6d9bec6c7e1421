"""
Approval Service - exceptional approvals for blocked gates.

Handles:
- Creating approval requests (documents, safety checks, weight discrepancy)
- Listing and fetching requests for the admin approvals screen
- Deciding a request exactly once and applying its effect to the truck
"""

import logging
import uuid
from datetime import date, datetime, timezone
from typing import List, Optional, Tuple, Union

from sqlalchemy import select, func, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from yardgate.core.context import ActorContext
from yardgate.core.exceptions import (
    ApprovalAlreadyDecidedError,
    ConflictError,
    NotFoundError,
    PersistenceError,
)
from yardgate.models.approval import (
    ApprovalDecision,
    ApprovalRequest,
    ApprovalStatus,
)
from yardgate.models.truck import Truck
from yardgate.services.approval_payloads import (
    DocumentExceptionPayload,
    SafetyExceptionPayload,
    WeightDiscrepancyPayload,
    parse_payload,
)
from yardgate.services.truck_store import TruckStore

logger = logging.getLogger(__name__)

Payload = Union[DocumentExceptionPayload, SafetyExceptionPayload, WeightDiscrepancyPayload]


class ApprovalService:
    """Request / decide workflow shared by the document, safety and weighbridge gates."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.store = TruckStore(db)

    async def _generate_request_number(self) -> str:
        """Generate unique approval request number: APR-YYYYMMDD-XXXX."""
        today = date.today()
        prefix = f"APR-{today.strftime('%Y%m%d')}"

        result = await self.db.execute(
            select(func.max(ApprovalRequest.request_number))
            .where(ApprovalRequest.request_number.like(f"{prefix}%"))
        )
        max_number = result.scalar()

        if max_number:
            seq = int(max_number.split("-")[-1]) + 1
        else:
            seq = 1

        return f"{prefix}-{seq:04d}"

    async def get_pending_for_truck(self, truck_id: uuid.UUID, request_type: str) -> Optional[ApprovalRequest]:
        result = await self.db.execute(
            select(ApprovalRequest).where(
                ApprovalRequest.truck_id == truck_id,
                ApprovalRequest.request_type == request_type,
                ApprovalRequest.status == ApprovalStatus.PENDING.value,
            )
        )
        return result.scalars().first()

    async def create_request(
        self,
        truck: Truck,
        payload: Payload,
        reason: Optional[str],
        actor: ActorContext,
    ) -> ApprovalRequest:
        """
        Stage a pending approval request for a truck.

        The caller commits together with its own truck patch. At most one
        pending request of a given type exists per truck.
        """
        try:
            existing = await self.get_pending_for_truck(truck.id, payload.request_type)
            if existing:
                raise ConflictError(
                    f"Approval {existing.request_number} is already pending for this truck",
                    truck_id=str(truck.id),
                )

            request = ApprovalRequest(
                request_number=await self._generate_request_number(),
                truck_id=truck.id,
                vehicle_number=truck.vehicle_number,
                driver_name=truck.driver_name,
                request_type=payload.request_type,
                status=ApprovalStatus.PENDING.value,
                reason=reason,
                payload=payload.model_dump(mode="json"),
                requested_by=actor.actor_id,
                requested_at=datetime.now(timezone.utc),
            )
            self.db.add(request)
            await self.db.flush()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Database error creating approval request for truck {truck.id}: {e}")
            raise PersistenceError("Could not create approval request", truck_id=str(truck.id))

        logger.info(
            f"Approval {request.request_number} ({request.request_type}) requested "
            f"for truck {truck.id} by {actor.actor_id}"
        )
        return request

    async def get_approval(self, request_id: Union[str, uuid.UUID]) -> ApprovalRequest:
        try:
            key = request_id if isinstance(request_id, uuid.UUID) else uuid.UUID(str(request_id))
        except ValueError:
            raise NotFoundError(f"Approval request {request_id} not found")
        request = await self.db.get(ApprovalRequest, key)
        if request is None:
            raise NotFoundError(f"Approval request {request_id} not found")
        return request

    async def list_approvals(
        self,
        status: Optional[str] = None,
        request_type: Optional[str] = None,
        truck_id: Optional[uuid.UUID] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> Tuple[List[ApprovalRequest], int]:
        """Approval requests, newest first."""
        query = select(ApprovalRequest)
        count_query = select(func.count(ApprovalRequest.id))
        if status:
            query = query.where(ApprovalRequest.status == status)
            count_query = count_query.where(ApprovalRequest.status == status)
        if request_type:
            query = query.where(ApprovalRequest.request_type == request_type)
            count_query = count_query.where(ApprovalRequest.request_type == request_type)
        if truck_id:
            query = query.where(ApprovalRequest.truck_id == truck_id)
            count_query = count_query.where(ApprovalRequest.truck_id == truck_id)

        query = query.order_by(ApprovalRequest.requested_at.desc()).offset(skip).limit(limit)
        try:
            total = (await self.db.execute(count_query)).scalar() or 0
            items = list((await self.db.execute(query)).scalars().all())
        except SQLAlchemyError as e:
            logger.error(f"Database error listing approvals: {e}")
            raise PersistenceError("Could not list approval requests")
        return items, total

    async def decide(
        self,
        request_id: Union[str, uuid.UUID],
        decision: ApprovalDecision,
        actor: ActorContext,
        comments: Optional[str] = None,
    ) -> ApprovalRequest:
        """
        Approve or reject a pending request and apply its effect to the truck.

        A request is decided exactly once: the status flip is a conditional
        update on ``status = pending``, so a second decision (or a concurrent
        one) raises ApprovalAlreadyDecidedError and changes nothing.
        """
        actor.require_admin("decide approval requests")
        request = await self.get_approval(request_id)
        if request.is_decided:
            raise ApprovalAlreadyDecidedError(
                f"Approval {request.request_number} was already {request.status}",
                truck_id=str(request.truck_id),
            )

        now = datetime.now(timezone.utc)
        decision = ApprovalDecision(decision)
        result = await self.db.execute(
            update(ApprovalRequest)
            .where(
                ApprovalRequest.id == request.id,
                ApprovalRequest.status == ApprovalStatus.PENDING.value,
            )
            .values(
                status=decision.value,
                decided_by=actor.actor_id,
                decided_at=now,
                decision_comments=comments,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            await self.db.rollback()
            raise ApprovalAlreadyDecidedError(
                f"Approval {request.request_number} was decided concurrently",
                truck_id=str(request.truck_id),
            )

        truck = await self.store.get(request.truck_id)
        payload = parse_payload(request.payload)
        patch = payload.apply(truck, decision, actor.actor_id, now)
        if patch is None:
            logger.warning(
                f"Approval {request.request_number} decided but truck {truck.id} "
                f"has no processing draft any more; nothing applied"
            )
        else:
            self.store.patch(truck, patch, actor)

        await self.store.commit(request)
        logger.info(
            f"Approval {request.request_number} ({request.request_type}) {decision.value} "
            f"by {actor.actor_id} for truck {truck.id}"
        )
        return request
