"""Recipient unit registry."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import Boolean, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from quartermaster.db.base import Base, TimestampMixin


class Unit(Base, TimestampMixin):
    """A military unit that receives provisions or runs a processing station."""

    __tablename__ = "units"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    code: Mapped[str] = mapped_column(String(20), nullable=False, unique=True, index=True)
    personnel: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    commander: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    parent_unit_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("units.id", ondelete="SET NULL"), nullable=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)
