"""Safety-equipment issuance log."""
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import String, DateTime, ForeignKey, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from yardgate.database import Base
from yardgate.db_types import UUIDType


class EquipmentType(str, Enum):
    """Safety equipment handed to drivers."""
    WHEEL_CHOKE = "wheel_choke"
    SAFETY_SHOE = "safety_shoe"


class EquipmentIssuanceLog(Base):
    """One row per non-zero change of a truck's issued quantity."""
    __tablename__ = "equipment_issuance_logs"

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
    vehicle_number: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    equipment_type: Mapped[str] = mapped_column(String(20), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, comment="Issued quantity after this change")
    delta: Mapped[int] = mapped_column(Integer, nullable=False, comment="Change applied to the inventory")
    remarks: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    issued_by: Mapped[str] = mapped_column(String(64), nullable=False)
    issued_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )
