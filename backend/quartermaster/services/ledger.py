"""Derived-field rules for the provisions ledger and distribution allocations.

Everything here is a pure function over small value objects so the rules can
be exercised without a database. The ``apply_*`` helpers copy a derivation
onto an ORM row; services call them explicitly right before flushing.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, Optional, Sequence, Tuple

from quartermaster.models.distribution import AllocationStatus, SlotStatus
from quartermaster.models.inventory import AlertSeverity, FreshnessStatus

ZERO = Decimal("0")

NEAR_EXPIRY_DAYS = 3
NORMAL_DAYS = 7


@dataclass(frozen=True)
class StockSnapshot:
    """Quantity, value and earliest expiry of a block of stock."""

    quantity: Decimal = ZERO
    amount: Decimal = ZERO
    expiry_date: Optional[date] = None


@dataclass(frozen=True)
class LedgerDay:
    """The four balance blocks of one item on one day plus its status."""

    previous: StockSnapshot
    inflow: StockSnapshot
    outflow: StockSnapshot
    end: StockSnapshot = StockSnapshot()
    status: FreshnessStatus = FreshnessStatus.GOOD


def earliest_expiry(*dates: Optional[date]) -> Optional[date]:
    present = [d for d in dates if d is not None]
    return min(present) if present else None


def days_until(expiry: date, today: date) -> int:
    return (expiry - today).days


def classify_freshness(expiry: date, today: date) -> FreshnessStatus:
    """Bucket stock by days until expiry: <0 expired, <=3 near, <=7 normal."""
    days = days_until(expiry, today)
    if days < 0:
        return FreshnessStatus.EXPIRED
    if days <= NEAR_EXPIRY_DAYS:
        return FreshnessStatus.NEAR_EXPIRY
    if days <= NORMAL_DAYS:
        return FreshnessStatus.NORMAL
    return FreshnessStatus.GOOD


def derive_end_of_day(day: LedgerDay, today: date) -> LedgerDay:
    """Return ``day`` with its closing balance and status recomputed.

    The closing expiry is the earliest of the carried-over and received
    expiry dates. When a closing expiry exists the status is re-derived from
    it and any manual status is discarded; without one the status is kept.
    """
    expiry = earliest_expiry(day.previous.expiry_date, day.inflow.expiry_date)
    end = StockSnapshot(
        quantity=day.previous.quantity + day.inflow.quantity - day.outflow.quantity,
        amount=day.previous.amount + day.inflow.amount - day.outflow.amount,
        expiry_date=expiry,
    )
    status = classify_freshness(expiry, today) if expiry is not None else day.status
    return replace(day, end=end, status=status)


def ledger_day_from_record(record) -> LedgerDay:
    try:
        status = FreshnessStatus(record.status)
    except ValueError:
        status = FreshnessStatus.GOOD
    return LedgerDay(
        previous=StockSnapshot(
            to_decimal(record.previous_quantity), to_decimal(record.previous_amount), record.previous_expiry_date
        ),
        inflow=StockSnapshot(
            to_decimal(record.input_quantity), to_decimal(record.input_amount), record.input_expiry_date
        ),
        outflow=StockSnapshot(to_decimal(record.output_quantity), to_decimal(record.output_amount)),
        end=StockSnapshot(to_decimal(record.end_quantity), to_decimal(record.end_amount), record.end_expiry_date),
        status=status,
    )


def apply_end_of_day(record, today: date):
    """Recompute and store the derived closing block of a ledger row."""
    derived = derive_end_of_day(ledger_day_from_record(record), today)
    record.end_quantity = derived.end.quantity
    record.end_amount = derived.end.amount
    record.end_expiry_date = derived.end.expiry_date
    record.status = derived.status.value
    return record


def turnover_rate(previous_quantity: Decimal, input_quantity: Decimal, output_quantity: Decimal) -> Decimal:
    """Output as a percentage of the stock available during the day."""
    available = to_decimal(previous_quantity) + to_decimal(input_quantity)
    if available <= 0:
        return ZERO
    return to_decimal(output_quantity) / available * 100


def expiry_alert_for(expiry: Optional[date], today: date) -> Optional[Tuple[AlertSeverity, str]]:
    """Severity and message for stock close to expiry, or None."""
    if expiry is None:
        return None
    days = days_until(expiry, today)
    if 0 <= days <= 1:
        return AlertSeverity.CRITICAL, f"Sản phẩm sẽ hết hạn trong {days} ngày"
    if days <= NEAR_EXPIRY_DAYS:
        return AlertSeverity.HIGH, f"Sản phẩm sẽ hết hạn trong {days} ngày"
    return None


# ---------------------------------------------------------------------------
# Distribution allocations
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SlotState:
    actual_quantity: Decimal
    amount: Decimal
    status: SlotStatus


@dataclass(frozen=True)
class AllocationRollup:
    total_actual_quantity: Decimal
    total_amount: Decimal
    budget_variance: Decimal
    overall_status: AllocationStatus
    started_at: Optional[datetime]
    completed_at: Optional[datetime]


def derive_overall_status(
    slot_statuses: Sequence[SlotStatus], current: AllocationStatus
) -> AllocationStatus:
    """Overall status implied by the slot statuses.

    All slots completed means completed; any slot handed out means in
    progress; otherwise the workflow status is left alone.
    """
    if slot_statuses and all(s == SlotStatus.COMPLETED for s in slot_statuses):
        return AllocationStatus.COMPLETED
    if any(s in (SlotStatus.DISTRIBUTED, SlotStatus.COMPLETED) for s in slot_statuses):
        return AllocationStatus.IN_PROGRESS
    return current


def roll_up_allocation(
    slots: Iterable[SlotState],
    budget_allocated: Decimal,
    budget_actual: Decimal,
    current_status: AllocationStatus,
    started_at: Optional[datetime],
    completed_at: Optional[datetime],
    now: datetime,
) -> AllocationRollup:
    """Totals, budget variance and status for an allocation.

    ``started_at`` and ``completed_at`` are stamped once and never moved.
    """
    slots = list(slots)
    status = derive_overall_status([s.status for s in slots], current_status)
    if status in (AllocationStatus.IN_PROGRESS, AllocationStatus.COMPLETED) and started_at is None:
        started_at = now
    if status == AllocationStatus.COMPLETED and completed_at is None:
        completed_at = now
    return AllocationRollup(
        total_actual_quantity=sum((to_decimal(s.actual_quantity) for s in slots), ZERO),
        total_amount=sum((to_decimal(s.amount) for s in slots), ZERO),
        budget_variance=to_decimal(budget_actual) - to_decimal(budget_allocated),
        overall_status=status,
        started_at=started_at,
        completed_at=completed_at,
    )


def apply_allocation_rollup(allocation, now: datetime):
    """Recompute and store the derived fields of an allocation row."""
    rollup = roll_up_allocation(
        (
            SlotState(s.actual_quantity, s.amount, SlotStatus(s.status))
            for s in allocation.slots
        ),
        allocation.budget_allocated_amount,
        allocation.budget_actual_amount,
        AllocationStatus(allocation.overall_status),
        allocation.started_at,
        allocation.completed_at,
        now,
    )
    allocation.total_actual_quantity = rollup.total_actual_quantity
    allocation.total_amount = rollup.total_amount
    allocation.budget_variance = rollup.budget_variance
    allocation.overall_status = rollup.overall_status.value
    allocation.started_at = rollup.started_at
    allocation.completed_at = rollup.completed_at
    return allocation


def efficiency(suggested: Decimal, actual: Decimal) -> Decimal:
    """Actual as a percentage of suggested, 0 when nothing was suggested."""
    suggested = to_decimal(suggested)
    if suggested <= 0:
        return ZERO
    return to_decimal(actual) / suggested * 100


def to_decimal(value) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))
