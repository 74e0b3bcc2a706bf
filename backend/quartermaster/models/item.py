"""Provision (LTTP) item catalog."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import Boolean, DateTime, Index, Integer, Numeric, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from quartermaster.db.base import AuditMixin, Base, TimestampMixin


class ItemCategory(str, Enum):
    """Provision categories."""

    FOOD = "Thực phẩm"
    PRODUCE = "Rau củ quả"
    SPICE = "Gia vị"
    FUEL = "Chất đốt"
    UTENSIL = "Dụng cụ"
    OTHER = "Khác"


class UnitOfMeasure(str, Enum):
    KG = "Kg"
    LITRE = "Lít"
    PACK = "Gói"
    BOX = "Hộp"
    BOTTLE = "Chai"
    CRATE = "Thùng"
    PIECE = "Cái"


class StorageTemperature(str, Enum):
    AMBIENT = "Thường"
    COOL = "Mát"
    CHILLED = "Lạnh"
    FROZEN = "Đông"


class StorageHumidity(str, Enum):
    DRY = "Khô"
    NORMAL = "Bình thường"
    HUMID = "Ẩm"


class LttpItem(Base, TimestampMixin, AuditMixin):
    """A provision item with its current unit price and storage data."""

    __tablename__ = "lttp_items"
    __table_args__ = (
        Index("ix_lttp_items_name_category", "name", "category"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    category: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    unit: Mapped[str] = mapped_column(String(20), nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=0)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Nutrition per 100g
    calories: Mapped[Decimal] = mapped_column(Numeric(8, 2), default=0, nullable=False)
    protein: Mapped[Decimal] = mapped_column(Numeric(8, 2), default=0, nullable=False)
    fat: Mapped[Decimal] = mapped_column(Numeric(8, 2), default=0, nullable=False)
    carbs: Mapped[Decimal] = mapped_column(Numeric(8, 2), default=0, nullable=False)
    fiber: Mapped[Decimal] = mapped_column(Numeric(8, 2), default=0, nullable=False)

    storage_temperature: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    storage_humidity: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    shelf_life_days: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    supplier_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    supplier_contact: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    supplier_address: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)
    last_updated_price: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
