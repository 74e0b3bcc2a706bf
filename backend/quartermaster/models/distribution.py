"""Daily distribution allocations of a provision item across recipient units."""

from __future__ import annotations

import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from sqlalchemy import (
    Boolean, Date, DateTime, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint, func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from quartermaster.db.base import AuditMixin, Base, TimestampMixin, VersionMixin


class AllocationStatus(str, Enum):
    """Overall allocation workflow status."""

    DRAFT = "draft"
    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class SlotStatus(str, Enum):
    """Per-recipient handoff status."""

    PENDING = "pending"
    APPROVED = "approved"
    DISTRIBUTED = "distributed"
    COMPLETED = "completed"


class IssueType(str, Enum):
    SHORTAGE = "shortage"
    QUALITY = "quality"
    LOGISTICS = "logistics"
    OTHER = "other"


class BudgetPeriod(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class DistributionAllocation(Base, TimestampMixin, AuditMixin, VersionMixin):
    """Plan for handing one item's daily quantity to the recipient units."""

    __tablename__ = "lttp_distributions"
    __table_args__ = (
        UniqueConstraint("date", "lttp_item_id", name="uq_lttp_distribution_date_item"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False, index=True)
    lttp_item_id: Mapped[int] = mapped_column(
        ForeignKey("lttp_items.id", ondelete="RESTRICT"), nullable=False, index=True
    )

    total_suggested_quantity: Mapped[Decimal] = mapped_column(Numeric(14, 3), default=0, nullable=False)
    total_actual_quantity: Mapped[Decimal] = mapped_column(Numeric(14, 3), default=0, nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(16, 2), default=0, nullable=False)

    overall_status: Mapped[str] = mapped_column(
        String(30), default=AllocationStatus.DRAFT.value, nullable=False, index=True
    )

    # Approval workflow
    requested_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    requested_at: Mapped[Optional[dt.datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    approved_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    approved_at: Mapped[Optional[dt.datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    rejected_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    rejected_at: Mapped[Optional[dt.datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    rejection_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    approval_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Distribution tracking
    started_at: Mapped[Optional[dt.datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[Optional[dt.datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    distribution_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Budget
    budget_allocated_amount: Mapped[Decimal] = mapped_column(Numeric(16, 2), default=0, nullable=False)
    budget_actual_amount: Mapped[Decimal] = mapped_column(Numeric(16, 2), default=0, nullable=False)
    budget_variance: Mapped[Decimal] = mapped_column(Numeric(16, 2), default=0, nullable=False)
    budget_period: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    # Quality assurance
    quality_checked: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    quality_checked_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    quality_checked_at: Mapped[Optional[dt.datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    quality_rating: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    quality_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    item: Mapped["LttpItem"] = relationship("LttpItem", lazy="joined")
    slots: Mapped[List["DistributionSlot"]] = relationship(
        "DistributionSlot",
        back_populates="allocation",
        cascade="all, delete-orphan",
        order_by="DistributionSlot.position",
    )
    issues: Mapped[List["DistributionIssue"]] = relationship(
        "DistributionIssue",
        back_populates="allocation",
        cascade="all, delete-orphan",
        order_by="DistributionIssue.id",
    )

    def slot(self, slot_key: str) -> Optional["DistributionSlot"]:
        for s in self.slots:
            if s.slot_key == slot_key:
                return s
        return None


class DistributionSlot(Base):
    """One recipient's share of an allocation."""

    __tablename__ = "lttp_distribution_slots"
    __table_args__ = (
        UniqueConstraint("allocation_id", "slot_key", name="uq_distribution_slot_key"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    allocation_id: Mapped[int] = mapped_column(
        ForeignKey("lttp_distributions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    slot_key: Mapped[str] = mapped_column(String(30), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("units.id", ondelete="SET NULL"), nullable=True
    )
    suggested_quantity: Mapped[Decimal] = mapped_column(Numeric(14, 3), default=0, nullable=False)
    actual_quantity: Mapped[Decimal] = mapped_column(Numeric(14, 3), default=0, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(16, 2), default=0, nullable=False)
    personnel_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(20), default=SlotStatus.PENDING.value, nullable=False)
    distributed_at: Mapped[Optional[dt.datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    distributed_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    received_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    allocation: Mapped["DistributionAllocation"] = relationship(
        "DistributionAllocation", back_populates="slots"
    )
    unit: Mapped[Optional["Unit"]] = relationship("Unit", lazy="joined")


class DistributionIssue(Base):
    """Problem reported while handing out an allocation."""

    __tablename__ = "lttp_distribution_issues"

    id: Mapped[int] = mapped_column(primary_key=True)
    allocation_id: Mapped[int] = mapped_column(
        ForeignKey("lttp_distributions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    reported_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    reported_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    resolved: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    resolution: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    allocation: Mapped["DistributionAllocation"] = relationship(
        "DistributionAllocation", back_populates="issues"
    )


# Forward references
from quartermaster.models.item import LttpItem  # noqa: E402
from quartermaster.models.unit import Unit  # noqa: E402
