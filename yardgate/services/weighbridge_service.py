"""
Weighbridge Service.

Records up to four scale readings per truck and completes the weighbridge
stage. When an invoice weight is given and the average reading differs from
it by more than the configured threshold, completion is blocked behind a
weight-discrepancy approval request.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import List, Optional, Union

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from yardgate.core.context import ActorContext
from yardgate.core.exceptions import (
    ConflictError,
    PersistenceError,
    PreconditionFailedError,
    ValidationFailedError,
)
from yardgate.models.approval import ApprovalRequest
from yardgate.models.truck import (
    NextMilestone,
    Truck,
    TruckStatus,
    WeightApprovalStatus,
)
from yardgate.models.weight import (
    MAX_WEIGHTS_PER_TRUCK,
    WEIGHT_SLOTS,
    WeighbridgeMaterialType,
    WeightRecord,
)
from yardgate.schemas.settings import YardSettings
from yardgate.services.approval_payloads import WeightDiscrepancyPayload
from yardgate.services.approval_service import ApprovalService
from yardgate.services.settings_service import SettingsService
from yardgate.services.truck_store import (
    SERVER_TIMESTAMP,
    TruckStore,
    check_version,
    require_not_deleted,
)
from yardgate.services.weight_discrepancy import (
    WeightDiscrepancy,
    WeightSummary,
    compute_discrepancy,
    summarize,
)

logger = logging.getLogger(__name__)

# Figures of the last invoice comparison, rewritten on every completion attempt
INVOICE_FIELDS = (
    "weight_data.invoice_weight",
    "weight_data.invoice_number",
    "weight_data.difference",
    "weight_data.difference_percentage",
    "weight_data.within_threshold",
)


@dataclass
class WeighbridgeOutcome:
    truck: Truck
    completed: bool
    approval_status: str
    summary: WeightSummary
    discrepancy: Optional[WeightDiscrepancy] = None
    approval_request: Optional[ApprovalRequest] = None


def _positive_decimal(value, label: str) -> Decimal:
    try:
        number = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationFailedError(f"{label} must be a number")
    if not number.is_finite() or number <= 0:
        raise ValidationFailedError(f"{label} must be greater than zero")
    return number


class WeighbridgeService:
    """Weighbridge stage of trucks routed to the weighbridge."""

    def __init__(self, db: AsyncSession, yard_settings: Optional[YardSettings] = None):
        self.db = db
        self.store = TruckStore(db)
        self._yard_settings = yard_settings

    async def yard_settings(self) -> YardSettings:
        if self._yard_settings is None:
            self._yard_settings = await SettingsService(self.db).get_yard_settings()
        return self._yard_settings

    async def _load(self, truck_id: Union[str, uuid.UUID], expected_version: Optional[int]) -> Truck:
        truck = await self.store.get(truck_id)
        require_not_deleted(truck)
        check_version(truck, expected_version)
        if truck.status != TruckStatus.INSIDE.value or truck.next_milestone != NextMilestone.WEIGH_BRIDGE.value:
            raise PreconditionFailedError("Truck is not at the weighbridge stage", truck_id=str(truck.id))
        if truck.weighbridge_processing_complete:
            raise PreconditionFailedError("Weighbridge processing is already complete", truck_id=str(truck.id))
        if (truck.weight_data or {}).get("approval_status") == WeightApprovalStatus.PENDING.value:
            raise PreconditionFailedError(
                "A weight discrepancy approval is pending for this truck", truck_id=str(truck.id)
            )
        return truck

    async def list_weights(self, truck_id: Union[str, uuid.UUID]) -> List[WeightRecord]:
        truck = await self.store.get(truck_id)
        try:
            result = await self.db.execute(
                select(WeightRecord)
                .where(WeightRecord.truck_id == truck.id)
                .order_by(WeightRecord.weight_number)
            )
        except SQLAlchemyError as e:
            logger.error(f"Database error loading weights for truck {truck.id}: {e}")
            raise PersistenceError("Could not load weight records", truck_id=str(truck.id))
        return list(result.scalars().all())

    async def record_weight(
        self,
        truck_id: Union[str, uuid.UUID],
        weight_number: str,
        material_type: WeighbridgeMaterialType,
        weight,
        actor: ActorContext,
        expected_version: Optional[int] = None,
    ) -> WeightRecord:
        """Record one scale reading in an unused slot (1..4)."""
        truck = await self._load(truck_id, expected_version)
        slot = str(weight_number).strip()
        if slot not in WEIGHT_SLOTS:
            raise ValidationFailedError(f"Weight slot must be one of {', '.join(WEIGHT_SLOTS)}", truck_id=str(truck.id))
        try:
            material = WeighbridgeMaterialType(material_type)
        except ValueError:
            raise ValidationFailedError("Material type must be FG, PM or RM", truck_id=str(truck.id))
        value = _positive_decimal(weight, "Weight")

        existing = await self.list_weights(truck.id)
        if len(existing) >= MAX_WEIGHTS_PER_TRUCK:
            raise ConflictError(f"All {MAX_WEIGHTS_PER_TRUCK} weights are already recorded", truck_id=str(truck.id))
        if any(record.weight_number == slot for record in existing):
            raise ConflictError(f"Weight {slot} is already recorded", truck_id=str(truck.id))

        now = datetime.now(timezone.utc)
        record = WeightRecord(
            truck_id=truck.id,
            weight_number=slot,
            material_type=material.value,
            weight=value,
            recorded_by=actor.actor_id,
            recorded_at=now,
        )
        self.db.add(record)
        self.store.patch(
            truck,
            {
                f"weight_data.weight{slot}": {
                    "weight": value,
                    "material_type": material.value,
                    "recorded_at": now.isoformat(),
                    "recorded_by": actor.actor_id,
                }
            },
            actor,
        )
        await self.store.commit(truck, record)
        logger.info(f"Weight {slot} = {value} ({material.value}) recorded for truck {truck.id} by {actor.actor_id}")
        return record

    async def complete_weighbridge(
        self,
        truck_id: Union[str, uuid.UUID],
        actor: ActorContext,
        invoice_weight=None,
        invoice_number: Optional[str] = None,
        reason: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> WeighbridgeOutcome:
        """
        Complete the weighbridge stage.

        - No invoice weight: completes immediately.
        - Invoice weight within threshold: completes, approval not required.
        - Invoice weight beyond threshold: a weight-discrepancy approval
          request is raised and the stage stays open until it is approved.

        After a rejected discrepancy the stage only reopens through a new,
        non-zero invoice comparison.
        """
        truck = await self._load(truck_id, expected_version)
        if (truck.weight_data or {}).get("approval_status") == WeightApprovalStatus.REJECTED.value:
            if invoice_weight is None or Decimal(str(invoice_weight)) == 0:
                logger.warning(f"Weighbridge completion without invoice refused for rejected truck {truck.id}")
                raise PreconditionFailedError(
                    "The weight discrepancy was rejected; complete again with a corrected invoice weight",
                    truck_id=str(truck.id),
                )
        records = await self.list_weights(truck.id)
        if not records:
            raise PreconditionFailedError("Record at least one weight first", truck_id=str(truck.id))
        summary = summarize(record.weight for record in records)

        base = {
            "weight_data.average_weight": summary.average_weight,
            "weight_data.total_weight": summary.total_weight,
            "weight_data.weight_count": summary.weight_count,
        }

        discrepancy = None
        if invoice_weight is not None:
            invoice = Decimal(str(invoice_weight))
            if invoice < 0:
                raise ValidationFailedError("Invoice weight cannot be negative", truck_id=str(truck.id))
            yard = await self.yard_settings()
            discrepancy = compute_discrepancy(invoice, summary.average_weight, yard.weight_threshold_percentage)

        if discrepancy is None:
            base.update({field: None for field in INVOICE_FIELDS})
        else:
            if not invoice_number or not invoice_number.strip():
                raise ValidationFailedError("Invoice number is required with an invoice weight", truck_id=str(truck.id))
            base.update({
                "weight_data.invoice_weight": discrepancy.invoice_weight,
                "weight_data.invoice_number": invoice_number.strip(),
                "weight_data.difference": discrepancy.difference,
                "weight_data.difference_percentage": discrepancy.percentage_diff,
                "weight_data.within_threshold": not discrepancy.exceeds_threshold,
            })

        if discrepancy is not None and discrepancy.exceeds_threshold:
            return await self._request_discrepancy_approval(truck, summary, discrepancy, base, reason, actor)

        base.update({
            "weight_data.approval_status": WeightApprovalStatus.NOT_REQUIRED.value,
            "weighbridge_processing_complete": True,
            "weighbridge_processed_at": SERVER_TIMESTAMP,
            "weighbridge_processed_by": actor.actor_id,
        })
        self.store.patch(truck, base, actor)
        await self.store.commit(truck)
        logger.info(
            f"Weighbridge completed for truck {truck.id} by {actor.actor_id} "
            f"(average {summary.average_weight}, diff "
            f"{discrepancy.percentage_diff if discrepancy else 'n/a'}%)"
        )
        return WeighbridgeOutcome(
            truck=truck,
            completed=True,
            approval_status=WeightApprovalStatus.NOT_REQUIRED.value,
            summary=summary,
            discrepancy=discrepancy,
        )

    async def _request_discrepancy_approval(
        self,
        truck: Truck,
        summary: WeightSummary,
        discrepancy: WeightDiscrepancy,
        base: dict,
        reason: Optional[str],
        actor: ActorContext,
    ) -> WeighbridgeOutcome:
        if not reason or not reason.strip():
            raise ValidationFailedError(
                f"Weight differs by {discrepancy.percentage_diff}% (threshold {discrepancy.threshold}%); "
                f"a reason is required to request approval",
                truck_id=str(truck.id),
            )
        payload = WeightDiscrepancyPayload(
            invoice_weight=float(discrepancy.invoice_weight),
            actual_weight=float(discrepancy.actual_weight),
            average_weight=float(summary.average_weight),
            total_weight=float(summary.total_weight),
            weight_count=summary.weight_count,
            difference=float(discrepancy.difference),
            percentage_diff=float(discrepancy.percentage_diff),
            threshold=float(discrepancy.threshold),
        )
        request = await ApprovalService(self.db).create_request(truck, payload, reason.strip(), actor)
        base.update({
            "weight_data.approval_status": WeightApprovalStatus.PENDING.value,
            "weight_data.approval_request_id": str(request.id),
            "weight_data.approval_requested_at": SERVER_TIMESTAMP,
            "weight_data.approval_requested_by": actor.actor_id,
        })
        self.store.patch(truck, base, actor)
        await self.store.commit(truck, request)
        logger.info(
            f"Weighbridge blocked for truck {truck.id}: {discrepancy.percentage_diff}% "
            f"over threshold {discrepancy.threshold}%, approval {request.request_number} requested"
        )
        return WeighbridgeOutcome(
            truck=truck,
            completed=False,
            approval_status=WeightApprovalStatus.PENDING.value,
            summary=summary,
            discrepancy=discrepancy,
            approval_request=request,
        )
