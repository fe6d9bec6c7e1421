"""
Organization settings storage.

Settings are named JSON documents, one per concern, merge-written by
administrators. The safety-equipment inventory is a single-row table so that
issuance deltas can be applied with an atomic ``UPDATE ... SET x = x + n``.
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Dict, Any

from sqlalchemy import String, DateTime, Integer, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column

from yardgate.database import Base
from yardgate.db_types import JSONType


class SettingsDocumentName(str, Enum):
    """Known settings documents."""
    TRANSPORTER = "transporterSettings"
    WEIGHBRIDGE = "weighbridgeSettings"
    TAT = "tatSettings"


INVENTORY_ROW_ID = 1


class SettingsDocument(Base):
    """Named settings document."""
    __tablename__ = "settings_documents"

    name: Mapped[str] = mapped_column(String(50), primary_key=True)
    data: Mapped[Dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc)
    )
    updated_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)


class SafetyEquipmentInventory(Base):
    """Shared counters of safety equipment (single row, id=1)."""
    __tablename__ = "safety_equipment_inventory"
    __table_args__ = (
        CheckConstraint("issued_wheel_chokes >= 0", name="ck_inventory_issued_chokes"),
        CheckConstraint("issued_safety_shoes >= 0", name="ck_inventory_issued_shoes"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=INVENTORY_ROW_ID)
    wheel_choke_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    safety_shoe_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    issued_wheel_chokes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    issued_safety_shoes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc)
    )
    updated_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    @property
    def available_wheel_chokes(self) -> int:
        return self.wheel_choke_count - self.issued_wheel_chokes

    @property
    def available_safety_shoes(self) -> int:
        return self.safety_shoe_count - self.issued_safety_shoes
