"""
Truck Record Model - one row per physical truck visit.

The truck record is the single mutable document the yard works on:
- Coarse lifecycle status (Upcoming, At Gate, Inside, Exited, Deleted)
- Gate-keeper decision and destination
- Processing draft / finalized processing snapshot (JSON documents)
- Weighbridge data and safety-equipment issuance
- Soft-delete and audit fields

Rows are never physically deleted.
"""
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, List, Dict, Any

from sqlalchemy import String, Boolean, DateTime, Integer, Text, Index
from sqlalchemy.orm import Mapped, mapped_column

from yardgate.database import Base
from yardgate.db_types import JSONType, UUIDType


# ============================================================================
# ENUMS
# ============================================================================

class TruckStatus(str, Enum):
    """Coarse lifecycle stage of a truck."""
    UPCOMING = "Upcoming"
    AT_GATE = "At Gate"
    INSIDE = "Inside"
    EXITED = "Exited"
    DELETED = "Deleted"


class EntryStatus(str, Enum):
    """Gate-keeper decision for the current gate visit."""
    ALLOWED = "allowed"
    HELD = "held"
    EXTERNAL_PARKING = "external_parking"


class ChannelType(str, Enum):
    """Fast-track classification, independent of lifecycle."""
    GREEN = "green"
    ORANGE = "orange"


class NextMilestone(str, Enum):
    """Where the truck goes after gate processing."""
    WEIGH_BRIDGE = "WeighBridge"
    INTERNAL_PARKING = "InternalParking"


class MaterialType(str, Enum):
    """Material carried by the truck."""
    FG = "FG"  # Finished goods
    RM = "RM"  # Raw material
    PM = "PM"  # Packing material
    OTHER = "other"


class DockStatus(str, Enum):
    """Progress of a dock-assigned truck at its dock."""
    PENDING = "pending"
    LOADING = "loading"
    UNLOADING = "unloading"
    COMPLETE = "complete"


class WeightApprovalStatus(str, Enum):
    """Weighbridge discrepancy approval state stored in weight_data."""
    NOT_REQUIRED = "notRequired"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


INTERNAL_PARKING_DESTINATION = "InternalParking"
INTERNAL_PARKING_LABEL = "Internal Parking"


# ============================================================================
# MODELS
# ============================================================================

class Truck(Base):
    """
    Truck visit record.

    ``version`` is SQLAlchemy's version counter: every UPDATE is issued as
    ``... WHERE version = <read version>`` and bumps it, so a writer holding a
    stale copy fails instead of silently overwriting.
    """
    __tablename__ = "trucks"
    __table_args__ = (
        Index("ix_trucks_status_arrival", "status", "arrival_date_time"),
        Index("ix_trucks_status_milestone", "status", "next_milestone"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    # Identity
    truck_number: Mapped[str] = mapped_column(String(30), nullable=False, index=True)
    vehicle_number: Mapped[str] = mapped_column(String(30), nullable=False, index=True)
    driver_name: Mapped[str] = mapped_column(String(100), nullable=False)
    driver_mobile: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    driver_license: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    # Logistics attributes
    transporter: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    depot_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    material_type: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        default=MaterialType.RM.value,
        comment="FG, RM, PM, other"
    )
    supplier_name: Mapped[Optional[str]] = mapped_column(String(150), nullable=True)
    lr_number: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    rto_capacity: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    loading_capacity: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    gate: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    arrival_date_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    # Lifecycle
    status: Mapped[str] = mapped_column(
        String(20),
        default=TruckStatus.UPCOMING.value,
        nullable=False,
        index=True,
        comment="Upcoming, At Gate, Inside, Exited, Deleted"
    )
    entry_status: Mapped[Optional[str]] = mapped_column(
        String(20),
        nullable=True,
        comment="allowed, held, external_parking"
    )
    entry_approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    entry_approved_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    reason_for_hold: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    held_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    held_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    external_parking_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    external_parking_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    channel_type: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)

    # Destination
    dock_assigned: Mapped[Optional[str]] = mapped_column(String(50), nullable=True, index=True)
    dock_status: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    planned_destination: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    next_milestone: Mapped[Optional[str]] = mapped_column(
        String(20),
        nullable=True,
        comment="WeighBridge, InternalParking"
    )
    sent_to_weighbridge_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    sent_to_weighbridge_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    # Gate processing
    processing_draft: Mapped[Optional[Dict[str, Any]]] = mapped_column(
        JSONType,
        nullable=True,
        comment="In-progress processing form, cleared on completion"
    )
    processing_data: Mapped[Optional[Dict[str, Any]]] = mapped_column(
        JSONType,
        nullable=True,
        comment="Finalized processing snapshot; presence means processing is complete"
    )

    # Weighbridge
    weight_data: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSONType, nullable=True)
    weighbridge_processing_complete: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    weighbridge_processed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    weighbridge_processed_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    # Safety equipment issued to this truck (at most one record per type)
    issued_wheel_choke: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSONType, nullable=True)
    issued_safety_shoe: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSONType, nullable=True)

    # Outgoing non-returnable registers (append-only)
    outgoing_registers: Mapped[List[Dict[str, Any]]] = mapped_column(
        JSONType,
        nullable=False,
        default=list
    )

    # Exit
    exited_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    exited_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    # Soft delete
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False, index=True)
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    deleted_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    status_before_delete: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    restored_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    restored_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    # Audit
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc)
    )
    created_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    last_updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc)
    )
    last_updated_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    __mapper_args__ = {"version_id_col": version}

    @property
    def is_processed(self) -> bool:
        return self.processing_data is not None
