"""Supply intake schemas."""

import datetime as dt
from decimal import Decimal
from typing import Optional

from pydantic import Field, field_validator

from quartermaster.schemas.base import CamelModel, reject_null
from quartermaster.schemas.item import ItemBrief


class SupplyCreate(CamelModel):
    """A unit's declared harvest. ``unit_id`` is only read for admins."""

    unit_id: Optional[int] = None
    lttp_item_id: int
    supply_quantity: Decimal = Field(..., gt=0)
    expected_harvest_date: dt.date
    requested_quantity: Optional[Decimal] = Field(default=None, ge=0)
    note: Optional[str] = None


class SupplyUpdate(CamelModel):
    lttp_item_id: Optional[int] = None
    supply_quantity: Optional[Decimal] = Field(default=None, gt=0)
    expected_harvest_date: Optional[dt.date] = None
    requested_quantity: Optional[Decimal] = Field(default=None, ge=0)
    note: Optional[str] = None

    @field_validator("lttp_item_id", "supply_quantity", "expected_harvest_date")
    @classmethod
    def required_not_null(cls, v):
        return reject_null(v)


class SupplyApprove(CamelModel):
    # Both checked by the service so the caller gets one specific message.
    station_entry_date: Optional[dt.date] = None
    received_quantity: Optional[Decimal] = Field(default=None, ge=0)
    unit_price: Optional[Decimal] = Field(default=None, ge=0)
    expiry_date: Optional[dt.date] = None
    note: Optional[str] = None


class SupplyReject(CamelModel):
    rejection_reason: Optional[str] = None


class SupplyUnitBrief(CamelModel):
    id: int
    name: str
    code: str


class SupplyResponse(CamelModel):
    id: int
    unit: SupplyUnitBrief
    lttp_item_id: int
    item: ItemBrief
    category: str
    supply_quantity: float
    expected_harvest_date: dt.date
    requested_quantity: Optional[float] = None
    station_entry_date: Optional[dt.date] = None
    received_quantity: Optional[float] = None
    unit_price: Optional[float] = None
    total_price: Optional[float] = None
    expiry_date: Optional[dt.date] = None
    status: str
    note: str = ""
    approved_by: Optional[int] = None
    approved_at: Optional[dt.datetime] = None
    rejected_by: Optional[int] = None
    rejected_at: Optional[dt.datetime] = None
    rejection_reason: Optional[str] = None
    created_by: Optional[int] = None
    updated_by: Optional[int] = None
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None
