"""Daily provisions ledger schemas."""

import datetime as dt
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator

from quartermaster.models.inventory import FreshnessStatus, OutputPurpose, QualityCondition
from quartermaster.schemas.base import CamelModel, reject_null
from quartermaster.schemas.item import ItemBrief
from quartermaster.services.ledger import turnover_rate


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

class PreviousDayPatch(CamelModel):
    quantity: Optional[Decimal] = Field(default=None, ge=0)
    amount: Optional[Decimal] = Field(default=None, ge=0)
    expiry_date: Optional[dt.date] = None

    @field_validator("quantity", "amount")
    @classmethod
    def quantities_not_null(cls, v):
        return reject_null(v)


class InputPatch(CamelModel):
    quantity: Optional[Decimal] = Field(default=None, ge=0)
    amount: Optional[Decimal] = Field(default=None, ge=0)
    invoice_number: Optional[str] = Field(default=None, max_length=100)
    supplier: Optional[str] = Field(default=None, max_length=200)
    received_by: Optional[int] = None
    expiry_date: Optional[dt.date] = None
    notes: Optional[str] = None

    @field_validator("quantity", "amount")
    @classmethod
    def quantities_not_null(cls, v):
        return reject_null(v)


class OutputLinePayload(CamelModel):
    unit_id: Optional[int] = None
    quantity: Decimal = Field(default=Decimal("0"), ge=0)
    amount: Optional[Decimal] = Field(default=None, ge=0)
    purpose: Optional[OutputPurpose] = None
    requested_by: Optional[int] = None
    approved_by: Optional[int] = None


class OutputPatch(CamelModel):
    quantity: Optional[Decimal] = Field(default=None, ge=0)
    amount: Optional[Decimal] = Field(default=None, ge=0)
    distributed_to: Optional[List[OutputLinePayload]] = None
    notes: Optional[str] = None

    @field_validator("quantity", "amount")
    @classmethod
    def quantities_not_null(cls, v):
        return reject_null(v)


class InventoryQualityCheckPayload(CamelModel):
    checked: bool = True
    checked_by: Optional[int] = None
    condition: Optional[QualityCondition] = None
    rating: Optional[int] = Field(default=None, ge=1, le=5)
    notes: Optional[str] = None


class InventoryUpsert(CamelModel):
    """Body of POST /lttp/inventory.

    Blocks are partial: only the provided sub-fields are merged into an
    existing record.
    """

    date: dt.date
    lttp_item_id: int
    previous_day: Optional[PreviousDayPatch] = None
    input: Optional[InputPatch] = None
    output: Optional[OutputPatch] = None
    status: Optional[FreshnessStatus] = None
    quality_check: Optional[InventoryQualityCheckPayload] = None


class InitializeRequest(CamelModel):
    date: Optional[dt.date] = None


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------

class StockBlock(CamelModel):
    quantity: float = 0
    amount: float = 0
    expiry_date: Optional[dt.date] = None


class InputBlock(StockBlock):
    invoice_number: Optional[str] = None
    supplier: Optional[str] = None
    received_by: Optional[int] = None
    notes: Optional[str] = None


class OutputLineResponse(CamelModel):
    id: int
    unit_id: Optional[int] = None
    quantity: float
    amount: float
    purpose: Optional[str] = None
    requested_by: Optional[int] = None
    approved_by: Optional[int] = None


class OutputBlock(CamelModel):
    quantity: float = 0
    amount: float = 0
    distributed_to: List[OutputLineResponse] = []
    notes: Optional[str] = None


class InventoryQualityCheck(CamelModel):
    checked: bool = False
    checked_by: Optional[int] = None
    checked_at: Optional[dt.datetime] = None
    condition: Optional[str] = None
    rating: Optional[int] = None
    notes: Optional[str] = None


class AlertResponse(CamelModel):
    id: int
    type: str
    message: str
    severity: str
    acknowledged: bool
    created_at: Optional[dt.datetime] = None


class InventoryRecordResponse(CamelModel):
    """One item's ledger row for one day."""

    id: int
    date: dt.date
    lttp_item_id: int
    item: Optional[ItemBrief] = None
    previous_day: StockBlock
    input: InputBlock
    output: OutputBlock
    end_of_day: StockBlock
    status: str
    quality_check: InventoryQualityCheck
    alerts: List[AlertResponse] = []
    turnover_rate: float
    created_by: Optional[int] = None
    updated_by: Optional[int] = None
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None

    @classmethod
    def from_record(cls, record) -> "InventoryRecordResponse":
        return cls(
            id=record.id,
            date=record.date,
            lttp_item_id=record.lttp_item_id,
            item=ItemBrief.model_validate(record.item) if record.item is not None else None,
            previous_day=StockBlock(
                quantity=record.previous_quantity,
                amount=record.previous_amount,
                expiry_date=record.previous_expiry_date,
            ),
            input=InputBlock(
                quantity=record.input_quantity,
                amount=record.input_amount,
                expiry_date=record.input_expiry_date,
                invoice_number=record.input_invoice_number,
                supplier=record.input_supplier,
                received_by=record.input_received_by,
                notes=record.input_notes,
            ),
            output=OutputBlock(
                quantity=record.output_quantity,
                amount=record.output_amount,
                distributed_to=[OutputLineResponse.model_validate(line) for line in record.distributed_to],
                notes=record.output_notes,
            ),
            end_of_day=StockBlock(
                quantity=record.end_quantity,
                amount=record.end_amount,
                expiry_date=record.end_expiry_date,
            ),
            status=record.status,
            quality_check=InventoryQualityCheck(
                checked=record.quality_checked,
                checked_by=record.quality_checked_by,
                checked_at=record.quality_checked_at,
                condition=record.quality_condition,
                rating=record.quality_rating,
                notes=record.quality_notes,
            ),
            alerts=[AlertResponse.model_validate(alert) for alert in record.alerts],
            turnover_rate=turnover_rate(
                record.previous_quantity, record.input_quantity, record.output_quantity
            ),
            created_by=record.created_by,
            updated_by=record.updated_by,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )


class ExpiryAlertEntry(CamelModel):
    record_id: int
    date: dt.date
    lttp_item_id: int
    item_name: str
    category: str
    unit: str
    quantity: float
    expiry_date: dt.date
    days_until_expiry: int
    status: str


class CategorySummary(CamelModel):
    category: str
    item_count: int = 0
    input_amount: float = 0
    output_amount: float = 0
    end_amount: float = 0
    near_expiry_count: int = 0


class InventorySummaryResponse(CamelModel):
    date: dt.date
    category_count: int
    categories: List[CategorySummary]
    totals: CategorySummary


class QualityReportGroup(CamelModel):
    category: str
    condition: Optional[str] = None
    count: int
    items: List[Dict[str, Any]]
