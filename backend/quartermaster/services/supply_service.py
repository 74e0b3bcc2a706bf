"""Supply intake service.

A unit assistant declares produce for the station (``pending``); a brigade
assistant approves it with what actually arrived, or rejects it. Deletion is
soft. Unit assistants only see and edit their own unit's pending records,
which callers express by passing ``restrict_unit_id``.
"""

import logging
from datetime import date, datetime, timedelta, timezone
from typing import List, Optional

from sqlalchemy.orm import Session

from quartermaster.core.exceptions import (
    ForbiddenError,
    IllegalStateError,
    NotFoundError,
    ValidationFailedError,
)
from quartermaster.models.item import LttpItem
from quartermaster.models.supply import SupplyIntake, SupplyStatus
from quartermaster.models.unit import Unit
from quartermaster.schemas.supply import SupplyApprove, SupplyCreate, SupplyUpdate
from quartermaster.services.ledger import to_decimal

logger = logging.getLogger(__name__)

NOT_FOUND_MESSAGE = "Không tìm thấy nguồn nhập"
PENDING = SupplyStatus.PENDING.value


class SupplyService:
    def __init__(self, db: Session):
        self.db = db

    # ===== READS =====

    def list_supplies(
        self,
        unit_id: Optional[int] = None,
        category: Optional[str] = None,
        status: Optional[SupplyStatus] = None,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
    ) -> List[SupplyIntake]:
        """Filtered by expected harvest date; deleted rows only when asked for."""
        if from_date and to_date and from_date > to_date:
            raise ValidationFailedError("Ngày bắt đầu phải trước ngày kết thúc")
        query = self.db.query(SupplyIntake)
        if unit_id is not None:
            query = query.filter(SupplyIntake.unit_id == unit_id)
        if category:
            query = query.filter(SupplyIntake.category == category)
        if status is not None:
            query = query.filter(SupplyIntake.status == SupplyStatus(status).value)
        else:
            query = query.filter(SupplyIntake.status != SupplyStatus.DELETED.value)
        if from_date:
            query = query.filter(SupplyIntake.expected_harvest_date >= from_date)
        if to_date:
            query = query.filter(SupplyIntake.expected_harvest_date <= to_date)
        return query.order_by(
            SupplyIntake.expected_harvest_date.desc(), SupplyIntake.id.desc()
        ).all()

    def get(self, supply_id: int, restrict_unit_id: Optional[int] = None) -> SupplyIntake:
        supply = self._load(supply_id)
        if restrict_unit_id is not None and supply.unit_id != restrict_unit_id:
            raise ForbiddenError("Bạn không có quyền xem nguồn nhập này")
        return supply

    # ===== WRITES =====

    def create(self, data: SupplyCreate, unit_id: int, user_id: Optional[int] = None) -> SupplyIntake:
        if self.db.query(Unit).filter(Unit.id == unit_id).first() is None:
            raise NotFoundError("Không tìm thấy đơn vị")
        item = self._active_item(data.lttp_item_id)

        supply = SupplyIntake(
            unit_id=unit_id,
            lttp_item_id=item.id,
            category=item.category,
            supply_quantity=data.supply_quantity,
            expected_harvest_date=data.expected_harvest_date,
            requested_quantity=data.requested_quantity,
            status=PENDING,
            note=data.note or "",
            created_by=user_id,
            updated_by=user_id,
        )
        self.db.add(supply)
        self.db.commit()
        self.db.refresh(supply)
        logger.info(f"Supply {supply.id} declared by unit {unit_id}: {item.name} x {data.supply_quantity}")
        return supply

    def update(
        self,
        supply_id: int,
        data: SupplyUpdate,
        user_id: Optional[int] = None,
        restrict_unit_id: Optional[int] = None,
    ) -> SupplyIntake:
        supply = self._load(supply_id)
        if restrict_unit_id is not None:
            if supply.unit_id != restrict_unit_id:
                raise ForbiddenError("Bạn không có quyền cập nhật nguồn nhập này")
            if supply.status != PENDING:
                raise IllegalStateError("Chỉ có thể chỉnh sửa nguồn nhập ở trạng thái chờ phê duyệt")
        elif supply.status == SupplyStatus.DELETED.value:
            raise IllegalStateError("Nguồn nhập đã bị xóa")

        fields = data.model_dump(exclude_unset=True)
        if "lttp_item_id" in fields:
            item = self._active_item(fields["lttp_item_id"])
            fields["category"] = item.category
        if "note" in fields:
            fields["note"] = fields["note"] or ""
        for key, value in fields.items():
            setattr(supply, key, value)
        supply.updated_by = user_id

        self.db.commit()
        self.db.refresh(supply)
        return supply

    def approve(self, supply_id: int, data: SupplyApprove, user_id: Optional[int] = None) -> SupplyIntake:
        """Record what reached the station and price it.

        The unit price defaults to the catalog price; the expiry date
        defaults to the entry date plus the item's shelf life.
        """
        supply = self._load(supply_id)
        if data.station_entry_date is None or data.received_quantity is None:
            raise ValidationFailedError(
                "Vui lòng điền đầy đủ thông tin ngày nhập trạm và số lượng nhận"
            )
        if supply.status != PENDING:
            raise IllegalStateError("Chỉ có thể phê duyệt nguồn nhập ở trạng thái chờ phê duyệt")

        unit_price = data.unit_price if data.unit_price is not None else to_decimal(supply.item.unit_price)
        expiry = data.expiry_date
        if expiry is None and supply.item.shelf_life_days:
            expiry = data.station_entry_date + timedelta(days=supply.item.shelf_life_days)

        supply.station_entry_date = data.station_entry_date
        supply.received_quantity = data.received_quantity
        supply.unit_price = unit_price
        supply.total_price = data.received_quantity * unit_price
        supply.expiry_date = expiry
        if data.note:
            supply.note = data.note
        supply.status = SupplyStatus.APPROVED.value
        supply.approved_by = user_id
        supply.approved_at = datetime.now(timezone.utc)
        supply.updated_by = user_id

        self.db.commit()
        self.db.refresh(supply)
        logger.info(f"Supply {supply_id} approved by {user_id}: received {data.received_quantity}")
        return supply

    def reject(self, supply_id: int, reason: Optional[str], user_id: Optional[int] = None) -> SupplyIntake:
        supply = self._load(supply_id)
        if not reason or not reason.strip():
            raise ValidationFailedError("Cần cung cấp lý do từ chối")
        if supply.status != PENDING:
            raise IllegalStateError("Chỉ có thể từ chối nguồn nhập ở trạng thái chờ phê duyệt")

        supply.status = SupplyStatus.REJECTED.value
        supply.rejected_by = user_id
        supply.rejected_at = datetime.now(timezone.utc)
        supply.rejection_reason = reason.strip()
        supply.updated_by = user_id

        self.db.commit()
        self.db.refresh(supply)
        logger.info(f"Supply {supply_id} rejected by {user_id}")
        return supply

    def delete(
        self,
        supply_id: int,
        user_id: Optional[int] = None,
        restrict_unit_id: Optional[int] = None,
    ) -> SupplyIntake:
        supply = self._load(supply_id)
        if restrict_unit_id is not None:
            if supply.unit_id != restrict_unit_id:
                raise ForbiddenError("Bạn không có quyền xóa nguồn nhập này")
            if supply.status != PENDING:
                raise IllegalStateError("Chỉ có thể xóa nguồn nhập ở trạng thái chờ phê duyệt")
        if supply.status == SupplyStatus.DELETED.value:
            raise IllegalStateError("Nguồn nhập đã bị xóa")

        supply.status = SupplyStatus.DELETED.value
        supply.updated_by = user_id
        self.db.commit()
        logger.info(f"Supply {supply_id} deleted by {user_id}")
        return supply

    # ===== HELPERS =====

    def _load(self, supply_id: int) -> SupplyIntake:
        supply = self.db.query(SupplyIntake).filter(SupplyIntake.id == supply_id).first()
        if supply is None:
            raise NotFoundError(NOT_FOUND_MESSAGE)
        return supply

    def _active_item(self, item_id: int) -> LttpItem:
        item = (
            self.db.query(LttpItem)
            .filter(LttpItem.id == item_id, LttpItem.is_active.is_(True))
            .first()
        )
        if item is None:
            raise NotFoundError("Không tìm thấy mặt hàng LTTP")
        return item
