"""Distribution allocation schemas."""

import datetime as dt
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import Field, field_validator

from quartermaster.models.distribution import AllocationStatus, BudgetPeriod, IssueType
from quartermaster.schemas.base import CamelModel, reject_null
from quartermaster.schemas.item import ItemBrief


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

class SlotPayload(CamelModel):
    suggested_quantity: Optional[Decimal] = Field(default=None, ge=0)
    personnel_count: Optional[int] = Field(default=None, ge=0)
    notes: Optional[str] = None

    @field_validator("suggested_quantity", "personnel_count")
    @classmethod
    def counts_not_null(cls, v):
        return reject_null(v)


class BudgetPayload(CamelModel):
    allocated_amount: Optional[Decimal] = Field(default=None, ge=0)
    actual_amount: Optional[Decimal] = Field(default=None, ge=0)
    budget_period: Optional[BudgetPeriod] = None


class DistributionQualityCheckPayload(CamelModel):
    checked: bool = True
    checked_by: Optional[int] = None
    rating: Optional[int] = Field(default=None, ge=1, le=5)
    notes: Optional[str] = None


class DistributionCreate(CamelModel):
    """Body of POST /lttp-distribution.

    ``units`` is keyed by slot name (``unit1``...``ceremonyUnit`` or an alias).
    """

    date: dt.date
    lttp_item_id: int
    total_suggested_quantity: Decimal = Field(default=Decimal("0"), ge=0)
    units: Dict[str, SlotPayload] = {}
    budget: Optional[BudgetPayload] = None
    notes: Optional[str] = None


class DistributionUpdate(CamelModel):
    total_suggested_quantity: Optional[Decimal] = Field(default=None, ge=0)
    units: Optional[Dict[str, SlotPayload]] = None
    budget: Optional[BudgetPayload] = None
    quality_check: Optional[DistributionQualityCheckPayload] = None
    notes: Optional[str] = None
    overall_status: Optional[AllocationStatus] = None
    version: Optional[int] = None


class ApproveRequest(CamelModel):
    approval_notes: Optional[str] = None


class RejectRequest(CamelModel):
    rejection_reason: Optional[str] = None


class DistributeRequest(CamelModel):
    actual_quantity: Decimal = Field(..., ge=0)
    received_by: Optional[int] = None
    notes: Optional[str] = None


class IssueCreate(CamelModel):
    type: IssueType
    description: str = Field(..., min_length=1)


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------

class SlotResponse(CamelModel):
    slot_key: str
    position: int
    unit_id: Optional[int] = None
    unit_name: Optional[str] = None
    unit_code: Optional[str] = None
    suggested_quantity: float
    actual_quantity: float
    amount: float
    personnel_count: int
    notes: Optional[str] = None
    status: str
    distributed_at: Optional[dt.datetime] = None
    distributed_by: Optional[int] = None
    received_by: Optional[int] = None

    @classmethod
    def from_record(cls, slot) -> "SlotResponse":
        return cls(
            slot_key=slot.slot_key,
            position=slot.position,
            unit_id=slot.unit_id,
            unit_name=slot.unit.name if slot.unit is not None else None,
            unit_code=slot.unit.code if slot.unit is not None else None,
            suggested_quantity=slot.suggested_quantity,
            actual_quantity=slot.actual_quantity,
            amount=slot.amount,
            personnel_count=slot.personnel_count,
            notes=slot.notes,
            status=slot.status,
            distributed_at=slot.distributed_at,
            distributed_by=slot.distributed_by,
            received_by=slot.received_by,
        )


class ApprovalFlow(CamelModel):
    requested_by: Optional[int] = None
    requested_at: Optional[dt.datetime] = None
    approved_by: Optional[int] = None
    approved_at: Optional[dt.datetime] = None
    rejected_by: Optional[int] = None
    rejected_at: Optional[dt.datetime] = None
    rejection_reason: Optional[str] = None
    approval_notes: Optional[str] = None


class IssueResponse(CamelModel):
    id: int
    type: str
    description: str
    reported_by: Optional[int] = None
    reported_at: Optional[dt.datetime] = None
    resolved: bool
    resolution: Optional[str] = None


class DistributionTracking(CamelModel):
    started_at: Optional[dt.datetime] = None
    completed_at: Optional[dt.datetime] = None
    notes: Optional[str] = None
    issues: List[IssueResponse] = []


class BudgetBlock(CamelModel):
    allocated_amount: float = 0
    actual_amount: float = 0
    variance: float = 0
    budget_period: Optional[str] = None


class DistributionQualityCheck(CamelModel):
    checked: bool = False
    checked_by: Optional[int] = None
    checked_at: Optional[dt.datetime] = None
    rating: Optional[int] = None
    notes: Optional[str] = None


class DistributionResponse(CamelModel):
    id: int
    date: dt.date
    lttp_item_id: int
    item: Optional[ItemBrief] = None
    total_suggested_quantity: float
    total_actual_quantity: float
    total_amount: float
    units: List[SlotResponse]
    overall_status: str
    approval_flow: ApprovalFlow
    distribution: DistributionTracking
    budget: BudgetBlock
    quality_check: DistributionQualityCheck
    created_by: Optional[int] = None
    updated_by: Optional[int] = None
    version: int
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None

    @classmethod
    def from_record(cls, allocation) -> "DistributionResponse":
        return cls(
            id=allocation.id,
            date=allocation.date,
            lttp_item_id=allocation.lttp_item_id,
            item=ItemBrief.model_validate(allocation.item) if allocation.item is not None else None,
            total_suggested_quantity=allocation.total_suggested_quantity,
            total_actual_quantity=allocation.total_actual_quantity,
            total_amount=allocation.total_amount,
            units=[SlotResponse.from_record(slot) for slot in allocation.slots],
            overall_status=allocation.overall_status,
            approval_flow=ApprovalFlow(
                requested_by=allocation.requested_by,
                requested_at=allocation.requested_at,
                approved_by=allocation.approved_by,
                approved_at=allocation.approved_at,
                rejected_by=allocation.rejected_by,
                rejected_at=allocation.rejected_at,
                rejection_reason=allocation.rejection_reason,
                approval_notes=allocation.approval_notes,
            ),
            distribution=DistributionTracking(
                started_at=allocation.started_at,
                completed_at=allocation.completed_at,
                notes=allocation.distribution_notes,
                issues=[IssueResponse.model_validate(issue) for issue in allocation.issues],
            ),
            budget=BudgetBlock(
                allocated_amount=allocation.budget_allocated_amount,
                actual_amount=allocation.budget_actual_amount,
                variance=allocation.budget_variance,
                budget_period=allocation.budget_period,
            ),
            quality_check=DistributionQualityCheck(
                checked=allocation.quality_checked,
                checked_by=allocation.quality_checked_by,
                checked_at=allocation.quality_checked_at,
                rating=allocation.quality_rating,
                notes=allocation.quality_notes,
            ),
            created_by=allocation.created_by,
            updated_by=allocation.updated_by,
            version=allocation.version,
            created_at=allocation.created_at,
            updated_at=allocation.updated_at,
        )


class CategoryDistributionSummary(CamelModel):
    category: str
    allocation_count: int = 0
    completed_count: int = 0
    suggested_quantity: float = 0
    actual_quantity: float = 0
    amount: float = 0


class DistributionDailySummary(CamelModel):
    date: dt.date
    categories: List[CategoryDistributionSummary]
    totals: CategoryDistributionSummary
    efficiency: float
