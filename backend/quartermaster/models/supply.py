"""Supply intake: produce a unit offers to the station, pending brigade approval."""

from __future__ import annotations

import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import Date, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from quartermaster.db.base import AuditMixin, Base, TimestampMixin


class SupplyStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    DELETED = "deleted"


class SupplyIntake(Base, TimestampMixin, AuditMixin):
    """One unit's declared harvest of an item and, once approved, what the station received."""

    __tablename__ = "supplies"

    id: Mapped[int] = mapped_column(primary_key=True)
    unit_id: Mapped[int] = mapped_column(
        ForeignKey("units.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    lttp_item_id: Mapped[int] = mapped_column(
        ForeignKey("lttp_items.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    # Copied from the item so listings can filter without a join
    category: Mapped[str] = mapped_column(String(50), nullable=False, index=True)

    supply_quantity: Mapped[Decimal] = mapped_column(Numeric(14, 3), nullable=False)
    expected_harvest_date: Mapped[dt.date] = mapped_column(Date, nullable=False, index=True)
    requested_quantity: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 3), nullable=True)

    # Filled in on approval
    station_entry_date: Mapped[Optional[dt.date]] = mapped_column(Date, nullable=True)
    received_quantity: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 3), nullable=True)
    unit_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 2), nullable=True)
    total_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(16, 2), nullable=True)
    expiry_date: Mapped[Optional[dt.date]] = mapped_column(Date, nullable=True)

    status: Mapped[str] = mapped_column(
        String(20), default=SupplyStatus.PENDING.value, nullable=False, index=True
    )
    note: Mapped[str] = mapped_column(Text, default="", nullable=False)

    approved_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    approved_at: Mapped[Optional[dt.datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    rejected_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    rejected_at: Mapped[Optional[dt.datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    rejection_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    unit: Mapped["Unit"] = relationship("Unit", lazy="joined")
    item: Mapped["LttpItem"] = relationship("LttpItem", lazy="joined")
