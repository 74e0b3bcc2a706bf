"""Processing station ledger: one generic row shape for every station type."""

from __future__ import annotations

import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from sqlalchemy import Date, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from quartermaster.db.base import AuditMixin, Base, TimestampMixin


class StationType(str, Enum):
    TOFU = "tofu"
    SALT = "salt"
    BEAN_SPROUTS = "bean_sprouts"
    LIVESTOCK = "livestock"
    POULTRY = "poultry"
    SAUSAGE = "sausage"


class QualityGrade(str, Enum):
    GOOD = "Tốt"
    FAIR = "Khá"
    AVERAGE = "Trung bình"


class ProcessingRecord(Base, TimestampMixin, AuditMixin):
    """A station's production day for one unit.

    The ``total_*``/``profit*`` columns are derived by
    ``services.processing_stations.compute_station_day`` on every save.
    """

    __tablename__ = "processing_records"
    __table_args__ = (
        UniqueConstraint("station_type", "date", "unit_id", name="uq_processing_station_date_unit"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    station_type: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False, index=True)
    unit_id: Mapped[int] = mapped_column(
        ForeignKey("units.id", ondelete="RESTRICT"), nullable=False, index=True
    )

    other_costs: Mapped[Decimal] = mapped_column(Numeric(16, 2), default=0, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    quality_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    processed_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    supervised_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    total_input_cost: Mapped[Decimal] = mapped_column(Numeric(16, 2), default=0, nullable=False)
    total_output_value: Mapped[Decimal] = mapped_column(Numeric(16, 2), default=0, nullable=False)
    profit: Mapped[Decimal] = mapped_column(Numeric(16, 2), default=0, nullable=False)
    profit_margin: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=0, nullable=False)

    inputs: Mapped[List["ProcessingInput"]] = relationship(
        "ProcessingInput",
        back_populates="record",
        cascade="all, delete-orphan",
        order_by="ProcessingInput.position",
    )
    outputs: Mapped[List["ProcessingOutput"]] = relationship(
        "ProcessingOutput",
        back_populates="record",
        cascade="all, delete-orphan",
        order_by="ProcessingOutput.position",
    )

    def output(self, product: str) -> Optional["ProcessingOutput"]:
        for line in self.outputs:
            if line.product == product:
                return line
        return None


class ProcessingInput(Base):
    """Raw material consumed by a station on a day."""

    __tablename__ = "processing_inputs"
    __table_args__ = (
        UniqueConstraint("record_id", "material", name="uq_processing_input_material"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    record_id: Mapped[int] = mapped_column(
        ForeignKey("processing_records.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    material: Mapped[str] = mapped_column(String(50), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(Numeric(14, 3), default=0, nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=0, nullable=False)
    quality: Mapped[str] = mapped_column(String(20), default=QualityGrade.GOOD.value, nullable=False)
    carry_over_from_previous_day: Mapped[Decimal] = mapped_column(
        Numeric(14, 3), default=0, nullable=False
    )

    record: Mapped["ProcessingRecord"] = relationship("ProcessingRecord", back_populates="inputs")


class ProcessingOutput(Base):
    """Finished product made by a station on a day.

    ``collected = carried_over + produced`` and
    ``remaining = max(0, collected - actual_output)``; only ``produced`` is
    valued as revenue.
    """

    __tablename__ = "processing_outputs"
    __table_args__ = (
        UniqueConstraint("record_id", "product", name="uq_processing_output_product"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    record_id: Mapped[int] = mapped_column(
        ForeignKey("processing_records.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    product: Mapped[str] = mapped_column(String(50), nullable=False)
    produced: Mapped[Decimal] = mapped_column(Numeric(14, 3), default=0, nullable=False)
    carried_over: Mapped[Decimal] = mapped_column(Numeric(14, 3), default=0, nullable=False)
    collected: Mapped[Decimal] = mapped_column(Numeric(14, 3), default=0, nullable=False)
    actual_output: Mapped[Decimal] = mapped_column(Numeric(14, 3), default=0, nullable=False)
    remaining: Mapped[Decimal] = mapped_column(Numeric(14, 3), default=0, nullable=False)
    price_per_unit: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=0, nullable=False)
    quality: Mapped[str] = mapped_column(String(20), default=QualityGrade.GOOD.value, nullable=False)

    record: Mapped["ProcessingRecord"] = relationship("ProcessingRecord", back_populates="outputs")
