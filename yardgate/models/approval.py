"""
Approval Request Model.

An approval request unblocks a gate that failed its normal check:
- Document exceptions (mandatory document expired or missing)
- Safety exceptions (one or more checklist items failed)
- Weight discrepancy (scale average too far from invoice weight)

A request is created pending and decided exactly once by an administrator.
"""
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Dict, Any

from sqlalchemy import String, DateTime, ForeignKey, Text, Index
from sqlalchemy.orm import Mapped, mapped_column

from yardgate.database import Base
from yardgate.db_types import JSONType, UUIDType


class ApprovalStatus(str, Enum):
    """Status of an approval request."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ApprovalDecision(str, Enum):
    """Decision an administrator takes on a pending request."""
    APPROVED = "approved"
    REJECTED = "rejected"


class ApprovalRequestType(str, Enum):
    """Which gate the request unblocks."""
    DOCUMENTS_INCOMPLETE = "documentsIncomplete"
    SAFETY_CHECKS = "safetyChecks"
    WEIGHT_DISCREPANCY = "weightDiscrepancy"


class ApprovalRequest(Base):
    """
    Approval request raised against a truck.

    ``payload`` is a snapshot of the numbers or checklist the requester saw,
    shaped by ``request_type``.
    """
    __tablename__ = "approval_requests"
    __table_args__ = (
        Index("ix_approval_truck_type_status", "truck_id", "request_type", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )

    # Request Number (auto-generated)
    request_number: Mapped[str] = mapped_column(
        String(30),
        unique=True,
        nullable=False,
        index=True,
        comment="Auto-generated: APR-YYYYMMDD-XXXX"
    )

    truck_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("trucks.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )
    vehicle_number: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    driver_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    request_type: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
        index=True,
        comment="documentsIncomplete, safetyChecks, weightDiscrepancy"
    )
    status: Mapped[str] = mapped_column(
        String(20),
        default=ApprovalStatus.PENDING.value,
        nullable=False,
        index=True,
        comment="pending, approved, rejected"
    )
    reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    payload: Mapped[Dict[str, Any]] = mapped_column(
        JSONType,
        nullable=False,
        default=dict,
        comment="Type-specific snapshot (documents, checklist or weights)"
    )

    # Requester
    requested_by: Mapped[str] = mapped_column(String(64), nullable=False)
    requested_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    # Decision
    decided_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    decided_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    decision_comments: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc)
    )

    @property
    def is_decided(self) -> bool:
        return self.status != ApprovalStatus.PENDING.value

    def __repr__(self) -> str:
        return f"<ApprovalRequest {self.request_number} {self.request_type} {self.status}>"
