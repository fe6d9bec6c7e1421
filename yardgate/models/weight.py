"""
Weight Record Model - one scale reading at the weighbridge.

A truck has at most four readings, in slots "1".."4"; a slot is never reused.
"""
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum

from sqlalchemy import String, DateTime, ForeignKey, Numeric, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from yardgate.database import Base
from yardgate.db_types import UUIDType


WEIGHT_SLOTS = ("1", "2", "3", "4")
MAX_WEIGHTS_PER_TRUCK = len(WEIGHT_SLOTS)


class WeighbridgeMaterialType(str, Enum):
    """Material declared for a scale reading."""
    FG = "FG"
    PM = "PM"
    RM = "RM"


class WeightRecord(Base):
    """Single weighbridge reading."""
    __tablename__ = "weight_records"
    __table_args__ = (
        UniqueConstraint("truck_id", "weight_number", name="uq_weight_record_truck_slot"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )
    truck_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("trucks.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )
    weight_number: Mapped[str] = mapped_column(
        String(1),
        nullable=False,
        comment="1, 2, 3, 4"
    )
    material_type: Mapped[str] = mapped_column(String(5), nullable=False)
    weight: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    recorded_by: Mapped[str] = mapped_column(String(64), nullable=False)
    recorded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )
