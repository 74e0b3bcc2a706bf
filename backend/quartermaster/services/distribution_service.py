"""Distribution allocation service.

Workflow: draft -> pending_approval -> approved -> in_progress -> completed,
with cancelled reachable from draft/pending_approval by rejection. Once
approved, the overall status is driven by the slot statuses through
``ledger.apply_allocation_rollup``, which every write calls before commit.
"""

import logging
from collections import OrderedDict
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from quartermaster.core.config import settings
from quartermaster.core.exceptions import (
    ConflictError,
    IllegalStateError,
    InsufficientUnitsError,
    NotFoundError,
    ValidationFailedError,
)
from quartermaster.models.distribution import (
    AllocationStatus,
    DistributionAllocation,
    DistributionIssue,
    DistributionSlot,
    SlotStatus,
)
from quartermaster.models.item import LttpItem
from quartermaster.models.unit import Unit
from quartermaster.schemas.distribution import (
    DistributionCreate,
    DistributionUpdate,
    IssueCreate,
    SlotPayload,
)
from quartermaster.services import ledger

logger = logging.getLogger(__name__)

NOT_FOUND_MESSAGE = "Không tìm thấy phân bổ"
INVALID_SLOT_MESSAGE = "Đơn vị không hợp lệ"

# Vietnamese and short names accepted in place of slot keys.
SLOT_ALIASES = {
    "thứ đoàn 1": "unit1",
    "thứ đoàn 2": "unit2",
    "thứ đoàn 3": "unit3",
    "ceremony": "ceremonyUnit",
    "lễ đoàn hộ": "ceremonyUnit",
}

APPROVABLE = (AllocationStatus.DRAFT.value, AllocationStatus.PENDING_APPROVAL.value)
DISTRIBUTABLE = (AllocationStatus.APPROVED.value, AllocationStatus.IN_PROGRESS.value)
LOCKED = (AllocationStatus.IN_PROGRESS.value, AllocationStatus.COMPLETED.value)
CLOSED = (AllocationStatus.COMPLETED.value, AllocationStatus.CANCELLED.value)


def recipient_slots() -> List[str]:
    """Configured slot keys in order."""
    return list(settings.distribution_recipient_codes.keys())


def resolve_slot_key(name: str) -> str:
    """Map a slot name or alias to its configured key."""
    wanted = name.strip().lower()
    for key in recipient_slots():
        if key.lower() == wanted:
            return key
    alias = SLOT_ALIASES.get(wanted)
    if alias is not None and alias in settings.distribution_recipient_codes:
        return alias
    raise ValidationFailedError(INVALID_SLOT_MESSAGE)


class DistributionService:
    def __init__(self, db: Session):
        self.db = db

    # ===== READS =====

    def list_by_date(self, day: date, status: Optional[str] = None) -> List[DistributionAllocation]:
        query = self.db.query(DistributionAllocation).filter(DistributionAllocation.date == day)
        if status:
            query = query.filter(DistributionAllocation.overall_status == status)
        return query.order_by(DistributionAllocation.created_at.desc(), DistributionAllocation.id.desc()).all()

    def get(self, allocation_id: int) -> DistributionAllocation:
        allocation = (
            self.db.query(DistributionAllocation)
            .filter(DistributionAllocation.id == allocation_id)
            .first()
        )
        if allocation is None:
            raise NotFoundError(NOT_FOUND_MESSAGE)
        return allocation

    # ===== WRITES =====

    def create(self, data: DistributionCreate, user_id: Optional[int] = None) -> DistributionAllocation:
        item = self.db.query(LttpItem).filter(LttpItem.id == data.lttp_item_id).first()
        if item is None:
            raise NotFoundError("Không tìm thấy mặt hàng LTTP")

        existing = (
            self.db.query(DistributionAllocation)
            .filter(
                DistributionAllocation.date == data.date,
                DistributionAllocation.lttp_item_id == item.id,
            )
            .first()
        )
        if existing is not None:
            raise ConflictError("Đã có phân bổ cho mặt hàng này trong ngày")

        payloads = self._slot_payloads(data.units)
        bindings = self._bind_recipients()
        now = _now()

        allocation = DistributionAllocation(
            date=data.date,
            lttp_item_id=item.id,
            total_suggested_quantity=data.total_suggested_quantity,
            total_actual_quantity=Decimal("0"),
            total_amount=Decimal("0"),
            overall_status=AllocationStatus.DRAFT.value,
            requested_by=user_id,
            requested_at=now,
            distribution_notes=data.notes,
            budget_allocated_amount=Decimal("0"),
            budget_actual_amount=Decimal("0"),
            budget_variance=Decimal("0"),
            quality_checked=False,
            version=1,
            created_by=user_id,
            updated_by=user_id,
        )
        allocation.item = item
        for position, (slot_key, unit) in enumerate(bindings):
            payload = payloads.get(slot_key) or SlotPayload()
            allocation.slots.append(
                DistributionSlot(
                    slot_key=slot_key,
                    position=position,
                    unit_id=unit.id,
                    unit=unit,
                    suggested_quantity=payload.suggested_quantity or Decimal("0"),
                    actual_quantity=Decimal("0"),
                    amount=Decimal("0"),
                    personnel_count=(
                        payload.personnel_count if payload.personnel_count is not None else unit.personnel
                    ),
                    notes=payload.notes,
                    status=SlotStatus.PENDING.value,
                )
            )
        if data.budget is not None:
            self._apply_budget(allocation, data.budget)

        ledger.apply_allocation_rollup(allocation, now)
        self.db.add(allocation)
        self.db.commit()
        self.db.refresh(allocation)
        logger.info(f"Created distribution {allocation.id} for item {item.id} on {data.date}")
        return allocation

    def update(
        self, allocation_id: int, data: DistributionUpdate, user_id: Optional[int] = None
    ) -> DistributionAllocation:
        allocation = self.get(allocation_id)
        try:
            allocation.check_version(data.version)
        except ValueError:
            raise ConflictError("Phân bổ đã được người khác cập nhật, vui lòng tải lại")
        if allocation.overall_status in CLOSED:
            raise IllegalStateError("Không thể cập nhật phân bổ đã hoàn thành hoặc đã hủy")

        now = _now()
        if data.total_suggested_quantity is not None:
            allocation.total_suggested_quantity = data.total_suggested_quantity
        if data.units:
            for slot_key, payload in self._slot_payloads(data.units).items():
                slot = allocation.slot(slot_key)
                if slot is None:
                    raise ValidationFailedError(INVALID_SLOT_MESSAGE)
                fields = payload.model_dump(exclude_unset=True)
                for key, value in fields.items():
                    setattr(slot, key, value)
        if data.budget is not None:
            self._apply_budget(allocation, data.budget)
        if data.quality_check is not None:
            qc = data.quality_check
            allocation.quality_checked = qc.checked
            allocation.quality_checked_by = qc.checked_by if qc.checked_by is not None else user_id
            allocation.quality_checked_at = now
            allocation.quality_rating = qc.rating
            allocation.quality_notes = qc.notes
        if data.notes is not None:
            allocation.distribution_notes = data.notes
        if data.overall_status is not None and data.overall_status.value != allocation.overall_status:
            self._submit(allocation, data.overall_status, user_id, now)

        self._save(allocation, user_id, now)
        return allocation

    def approve(
        self, allocation_id: int, notes: Optional[str] = None, user_id: Optional[int] = None
    ) -> DistributionAllocation:
        allocation = self.get(allocation_id)
        if allocation.overall_status not in APPROVABLE:
            raise IllegalStateError("Phân bổ không thể phê duyệt ở trạng thái hiện tại")

        now = _now()
        allocation.overall_status = AllocationStatus.APPROVED.value
        allocation.approved_by = user_id
        allocation.approved_at = now
        allocation.approval_notes = notes or ""
        for slot in allocation.slots:
            if slot.status == SlotStatus.PENDING.value:
                slot.status = SlotStatus.APPROVED.value

        self._save(allocation, user_id, now)
        logger.info(f"Distribution {allocation_id} approved by {user_id}")
        return allocation

    def reject(
        self, allocation_id: int, reason: Optional[str], user_id: Optional[int] = None
    ) -> DistributionAllocation:
        allocation = self.get(allocation_id)
        if not reason or not reason.strip():
            raise ValidationFailedError("Cần cung cấp lý do từ chối")
        if allocation.overall_status not in APPROVABLE:
            raise IllegalStateError("Phân bổ không thể từ chối ở trạng thái hiện tại")

        now = _now()
        allocation.overall_status = AllocationStatus.CANCELLED.value
        allocation.rejected_by = user_id
        allocation.rejected_at = now
        allocation.rejection_reason = reason.strip()

        self._save(allocation, user_id, now)
        logger.info(f"Distribution {allocation_id} rejected by {user_id}")
        return allocation

    def distribute_unit(
        self,
        allocation_id: int,
        slot_name: str,
        actual_quantity: Decimal,
        received_by: Optional[int] = None,
        notes: Optional[str] = None,
        user_id: Optional[int] = None,
    ) -> DistributionAllocation:
        """Hand a slot its actual quantity, priced at the item's current unit price."""
        allocation = self.get(allocation_id)
        if allocation.overall_status not in DISTRIBUTABLE:
            raise IllegalStateError("Phân bổ chưa được phê duyệt")

        slot = allocation.slot(resolve_slot_key(slot_name))
        if slot is None:
            raise ValidationFailedError(INVALID_SLOT_MESSAGE)
        if slot.status == SlotStatus.COMPLETED.value:
            raise IllegalStateError("Đơn vị đã hoàn thành nhận hàng")

        unit_price = ledger.to_decimal(allocation.item.unit_price) if allocation.item else Decimal("0")
        now = _now()
        slot.actual_quantity = actual_quantity
        slot.amount = actual_quantity * unit_price
        slot.status = SlotStatus.DISTRIBUTED.value
        slot.distributed_at = now
        slot.distributed_by = user_id
        slot.received_by = received_by if received_by is not None else user_id
        if notes is not None:
            slot.notes = notes

        self._save(allocation, user_id, now)
        logger.info(
            f"Distribution {allocation_id}: {slot.slot_key} received {actual_quantity} "
            f"(status now {allocation.overall_status})"
        )
        return allocation

    def complete_unit(
        self, allocation_id: int, slot_name: str, user_id: Optional[int] = None
    ) -> DistributionAllocation:
        allocation = self.get(allocation_id)
        slot = allocation.slot(resolve_slot_key(slot_name))
        if slot is None:
            raise ValidationFailedError(INVALID_SLOT_MESSAGE)
        if slot.status != SlotStatus.DISTRIBUTED.value:
            raise IllegalStateError("Đơn vị chưa được phân phối")

        slot.status = SlotStatus.COMPLETED.value
        self._save(allocation, user_id, _now())
        return allocation

    def report_issue(
        self, allocation_id: int, data: IssueCreate, user_id: Optional[int] = None
    ) -> DistributionAllocation:
        allocation = self.get(allocation_id)
        now = _now()
        allocation.issues.append(
            DistributionIssue(
                type=data.type.value,
                description=data.description,
                reported_by=user_id,
                reported_at=now,
                resolved=False,
            )
        )
        self._save(allocation, user_id, now)
        logger.warning(f"Issue reported on distribution {allocation_id}: {data.type.value}")
        return allocation

    def delete(self, allocation_id: int) -> None:
        allocation = self.get(allocation_id)
        if allocation.overall_status in LOCKED:
            raise IllegalStateError("Không thể xóa phân bổ đã bắt đầu hoặc hoàn thành")
        self.db.delete(allocation)
        self.db.commit()
        logger.info(f"Deleted distribution {allocation_id}")

    # ===== REPORTS =====

    def daily_summary(self, day: date) -> Dict[str, Any]:
        categories: "OrderedDict[str, Dict[str, Any]]" = OrderedDict()
        allocations = (
            self.db.query(DistributionAllocation)
            .join(LttpItem, DistributionAllocation.lttp_item_id == LttpItem.id)
            .filter(DistributionAllocation.date == day)
            .order_by(LttpItem.category)
            .all()
        )
        for allocation in allocations:
            category = allocation.item.category
            row = categories.setdefault(category, _empty_summary(category))
            row["allocation_count"] += 1
            row["suggested_quantity"] += ledger.to_decimal(allocation.total_suggested_quantity)
            row["actual_quantity"] += ledger.to_decimal(allocation.total_actual_quantity)
            row["amount"] += ledger.to_decimal(allocation.total_amount)
            if allocation.overall_status == AllocationStatus.COMPLETED.value:
                row["completed_count"] += 1

        totals = _empty_summary("Tổng cộng")
        for row in categories.values():
            for key in ("allocation_count", "completed_count", "suggested_quantity", "actual_quantity", "amount"):
                totals[key] += row[key]

        return {
            "date": day,
            "categories": list(categories.values()),
            "totals": totals,
            "efficiency": ledger.efficiency(totals["suggested_quantity"], totals["actual_quantity"]),
        }

    # ===== HELPERS =====

    def _bind_recipients(self) -> List[tuple]:
        """Pair each slot with an active unit: by configured code, else by position."""
        codes = settings.distribution_recipient_codes
        units = (
            self.db.query(Unit)
            .filter(Unit.is_active.is_(True))
            .order_by(Unit.id)
            .all()
        )
        if len(units) < len(codes):
            raise InsufficientUnitsError(required=len(codes), available=len(units))

        by_code = {u.code: u for u in units}
        spare = iter([u for u in units if u.code not in set(codes.values())])
        bindings = []
        for slot_key, code in codes.items():
            unit = by_code.get(code) or next(spare)
            bindings.append((slot_key, unit))
        return bindings

    @staticmethod
    def _slot_payloads(units: Optional[Dict[str, SlotPayload]]) -> Dict[str, SlotPayload]:
        return {resolve_slot_key(name): payload for name, payload in (units or {}).items()}

    @staticmethod
    def _apply_budget(allocation: DistributionAllocation, budget) -> None:
        if budget.allocated_amount is not None:
            allocation.budget_allocated_amount = budget.allocated_amount
        if budget.actual_amount is not None:
            allocation.budget_actual_amount = budget.actual_amount
        if budget.budget_period is not None:
            allocation.budget_period = budget.budget_period.value

    @staticmethod
    def _submit(
        allocation: DistributionAllocation,
        target: AllocationStatus,
        user_id: Optional[int],
        now: datetime,
    ) -> None:
        # Only submission is a manual transition; the rest have dedicated actions.
        if (
            target != AllocationStatus.PENDING_APPROVAL
            or allocation.overall_status != AllocationStatus.DRAFT.value
        ):
            raise IllegalStateError("Chuyển trạng thái không hợp lệ")
        allocation.overall_status = target.value
        allocation.requested_by = user_id
        allocation.requested_at = now

    def _save(self, allocation: DistributionAllocation, user_id: Optional[int], now: datetime) -> None:
        ledger.apply_allocation_rollup(allocation, now)
        allocation.updated_by = user_id
        allocation.increment_version()
        self.db.commit()
        self.db.refresh(allocation)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _empty_summary(category: str) -> Dict[str, Any]:
    return {
        "category": category,
        "allocation_count": 0,
        "completed_count": 0,
        "suggested_quantity": Decimal("0"),
        "actual_quantity": Decimal("0"),
        "amount": Decimal("0"),
    }
