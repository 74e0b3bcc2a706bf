"""Daily provisions ledger: one row per item per day."""

from __future__ import annotations

import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from sqlalchemy import (
    Boolean, Date, DateTime, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint, func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from quartermaster.db.base import AuditMixin, Base, TimestampMixin


class FreshnessStatus(str, Enum):
    """Stock freshness, derived from days until expiry."""

    GOOD = "Tốt"
    NORMAL = "Bình thường"
    NEAR_EXPIRY = "Sắp hết hạn"
    EXPIRED = "Hết hạn"
    DAMAGED = "Hỏng"


class QualityCondition(str, Enum):
    GOOD = "Tốt"
    FAIR = "Khá"
    AVERAGE = "Trung bình"
    POOR = "Kém"


class OutputPurpose(str, Enum):
    MEAL = "meal"
    PROCESSING = "processing"
    BACKUP = "backup"


class AlertType(str, Enum):
    EXPIRY_WARNING = "expiry_warning"
    LOW_STOCK = "low_stock"
    QUALITY_ISSUE = "quality_issue"


class AlertSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class DailyInventoryRecord(Base, TimestampMixin, AuditMixin):
    """Balance of one item on one day.

    ``end_*`` columns are derived (see ``services.ledger.derive_end_of_day``)
    and must never be written directly by request handlers.
    """

    __tablename__ = "lttp_inventory"
    __table_args__ = (
        UniqueConstraint("date", "lttp_item_id", name="uq_lttp_inventory_date_item"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False, index=True)
    lttp_item_id: Mapped[int] = mapped_column(
        ForeignKey("lttp_items.id", ondelete="RESTRICT"), nullable=False, index=True
    )

    # Carried over from the previous day
    previous_quantity: Mapped[Decimal] = mapped_column(Numeric(14, 3), default=0, nullable=False)
    previous_amount: Mapped[Decimal] = mapped_column(Numeric(16, 2), default=0, nullable=False)
    previous_expiry_date: Mapped[Optional[dt.date]] = mapped_column(Date, nullable=True)

    # Received today
    input_quantity: Mapped[Decimal] = mapped_column(Numeric(14, 3), default=0, nullable=False)
    input_amount: Mapped[Decimal] = mapped_column(Numeric(16, 2), default=0, nullable=False)
    input_invoice_number: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    input_supplier: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    input_received_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    input_expiry_date: Mapped[Optional[dt.date]] = mapped_column(Date, nullable=True)
    input_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Issued today
    output_quantity: Mapped[Decimal] = mapped_column(Numeric(14, 3), default=0, nullable=False)
    output_amount: Mapped[Decimal] = mapped_column(Numeric(16, 2), default=0, nullable=False)
    output_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Closing balance (derived)
    end_quantity: Mapped[Decimal] = mapped_column(Numeric(14, 3), default=0, nullable=False)
    end_amount: Mapped[Decimal] = mapped_column(Numeric(16, 2), default=0, nullable=False)
    end_expiry_date: Mapped[Optional[dt.date]] = mapped_column(Date, nullable=True, index=True)

    status: Mapped[str] = mapped_column(
        String(30), default=FreshnessStatus.GOOD.value, nullable=False, index=True
    )

    quality_checked: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    quality_checked_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    quality_checked_at: Mapped[Optional[dt.datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    quality_condition: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    quality_rating: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    quality_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    item: Mapped["LttpItem"] = relationship("LttpItem", lazy="joined")
    distributed_to: Mapped[List["InventoryOutputLine"]] = relationship(
        "InventoryOutputLine",
        back_populates="record",
        cascade="all, delete-orphan",
        order_by="InventoryOutputLine.id",
    )
    alerts: Mapped[List["InventoryAlert"]] = relationship(
        "InventoryAlert",
        back_populates="record",
        cascade="all, delete-orphan",
        order_by="InventoryAlert.id",
    )


class InventoryOutputLine(Base):
    """Part of a day's output issued to one unit."""

    __tablename__ = "lttp_inventory_output_lines"

    id: Mapped[int] = mapped_column(primary_key=True)
    record_id: Mapped[int] = mapped_column(
        ForeignKey("lttp_inventory.id", ondelete="CASCADE"), nullable=False, index=True
    )
    unit_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("units.id", ondelete="SET NULL"), nullable=True
    )
    quantity: Mapped[Decimal] = mapped_column(Numeric(14, 3), default=0, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(16, 2), default=0, nullable=False)
    purpose: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    requested_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    approved_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    record: Mapped["DailyInventoryRecord"] = relationship(
        "DailyInventoryRecord", back_populates="distributed_to"
    )


class InventoryAlert(Base):
    """Alert raised against a ledger row (expiry, low stock, quality)."""

    __tablename__ = "lttp_inventory_alerts"

    id: Mapped[int] = mapped_column(primary_key=True)
    record_id: Mapped[int] = mapped_column(
        ForeignKey("lttp_inventory.id", ondelete="CASCADE"), nullable=False, index=True
    )
    type: Mapped[str] = mapped_column(String(30), nullable=False)
    message: Mapped[str] = mapped_column(String(500), nullable=False)
    severity: Mapped[str] = mapped_column(String(20), nullable=False)
    acknowledged: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    record: Mapped["DailyInventoryRecord"] = relationship(
        "DailyInventoryRecord", back_populates="alerts"
    )


# Forward references
from quartermaster.models.item import LttpItem  # noqa: E402
