"""Daily provisions ledger service.

Every write follows the same two steps:

1. Merge the patch into the (date, item) row, re-derive its closing block
   with ``ledger.apply_end_of_day`` and refresh its expiry alert.
2. Carry the new closing balance into the next day's opening balance, if
   that day's row already exists. This step runs in a savepoint and is
   best-effort: a failure is logged and the primary write still commits.
"""

import logging
from collections import OrderedDict
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from quartermaster.core.config import settings
from quartermaster.core.exceptions import NotFoundError, ValidationFailedError
from quartermaster.models.inventory import (
    AlertType,
    DailyInventoryRecord,
    FreshnessStatus,
    InventoryAlert,
    InventoryOutputLine,
)
from quartermaster.models.item import LttpItem
from quartermaster.schemas.inventory import InventoryUpsert
from quartermaster.services import ledger

logger = logging.getLogger(__name__)

ITEM_NOT_FOUND = "Không tìm thấy mặt hàng LTTP"
EXPIRING_STATUSES = (FreshnessStatus.NEAR_EXPIRY.value, FreshnessStatus.EXPIRED.value)


class InventoryService:
    def __init__(self, db: Session, today: Optional[date] = None):
        self.db = db
        self._today = today

    @property
    def today(self) -> date:
        return self._today or date.today()

    # ===== READS =====

    def get_by_date(self, day: date) -> List[DailyInventoryRecord]:
        return (
            self.db.query(DailyInventoryRecord)
            .join(LttpItem, DailyInventoryRecord.lttp_item_id == LttpItem.id)
            .filter(DailyInventoryRecord.date == day)
            .order_by(LttpItem.category, LttpItem.name)
            .all()
        )

    def get_by_date_range(
        self, start: date, end: date, item_id: Optional[int] = None
    ) -> List[DailyInventoryRecord]:
        if start > end:
            raise ValidationFailedError("Ngày bắt đầu phải trước ngày kết thúc")
        query = (
            self.db.query(DailyInventoryRecord)
            .join(LttpItem, DailyInventoryRecord.lttp_item_id == LttpItem.id)
            .filter(DailyInventoryRecord.date >= start, DailyInventoryRecord.date <= end)
        )
        if item_id is not None:
            query = query.filter(DailyInventoryRecord.lttp_item_id == item_id)
        return query.order_by(DailyInventoryRecord.date, LttpItem.name).all()

    def find(self, day: date, item_id: int) -> Optional[DailyInventoryRecord]:
        return (
            self.db.query(DailyInventoryRecord)
            .filter(
                DailyInventoryRecord.date == day,
                DailyInventoryRecord.lttp_item_id == item_id,
            )
            .first()
        )

    # ===== WRITES =====

    def create_or_update(
        self, data: InventoryUpsert, user_id: Optional[int] = None
    ) -> Tuple[DailyInventoryRecord, bool]:
        """Merge ``data`` into the (date, item) row. Returns (record, created)."""
        item = self.db.query(LttpItem).filter(LttpItem.id == data.lttp_item_id).first()
        if item is None:
            raise NotFoundError(ITEM_NOT_FOUND)

        record = self.find(data.date, item.id)
        created = record is None
        if created:
            record = DailyInventoryRecord(
                date=data.date,
                lttp_item_id=item.id,
                previous_quantity=Decimal("0"),
                previous_amount=Decimal("0"),
                input_quantity=Decimal("0"),
                input_amount=Decimal("0"),
                output_quantity=Decimal("0"),
                output_amount=Decimal("0"),
                status=FreshnessStatus.GOOD.value,
                created_by=user_id,
            )
            record.item = item
            self.db.add(record)

        self._merge_patch(record, item, data, user_id)
        record.updated_by = user_id
        ledger.apply_end_of_day(record, self.today)
        self._refresh_expiry_alert(record)
        self.db.flush()

        self.propagate_carry_over(record)

        self.db.commit()
        self.db.refresh(record)
        logger.info(
            f"{'Created' if created else 'Updated'} inventory {record.date} item={item.id}: "
            f"end={record.end_quantity} status={record.status}"
        )
        return record, created

    def propagate_carry_over(self, record: DailyInventoryRecord) -> bool:
        """Push ``record``'s closing balance into the next day's opening balance.

        Returns True when a next-day row existed and was updated.
        """
        next_day = record.date + timedelta(days=1)
        try:
            with self.db.begin_nested():
                next_record = self.find(next_day, record.lttp_item_id)
                if next_record is None:
                    return False
                self._carry_into(next_record, record)
                self.db.flush()
            return True
        except Exception as e:
            logger.warning(
                f"Carry-over from {record.date} to {next_day} for item "
                f"{record.lttp_item_id} failed: {e}"
            )
            return False

    def _carry_into(self, next_record: DailyInventoryRecord, record: DailyInventoryRecord) -> None:
        item = record.item or self.db.query(LttpItem).filter(LttpItem.id == record.lttp_item_id).first()
        unit_price = ledger.to_decimal(item.unit_price) if item is not None else Decimal("0")
        quantity = ledger.to_decimal(record.end_quantity)
        next_record.previous_quantity = quantity
        next_record.previous_amount = quantity * unit_price
        next_record.previous_expiry_date = record.end_expiry_date
        ledger.apply_end_of_day(next_record, self.today)
        self._refresh_expiry_alert(next_record)

    def initialize_for_date(self, day: Optional[date] = None, user_id: Optional[int] = None) -> int:
        """Create missing rows for every active item, seeded from the day before."""
        day = day or self.today
        previous_day = day - timedelta(days=1)

        items = self.db.query(LttpItem).filter(LttpItem.is_active.is_(True)).all()
        existing_ids = {
            r.lttp_item_id
            for r in self.db.query(DailyInventoryRecord.lttp_item_id)
            .filter(DailyInventoryRecord.date == day)
            .all()
        }
        previous_rows = {
            r.lttp_item_id: r
            for r in self.db.query(DailyInventoryRecord)
            .filter(DailyInventoryRecord.date == previous_day)
            .all()
        }

        created = 0
        for item in items:
            if item.id in existing_ids:
                continue
            prev = previous_rows.get(item.id)
            record = DailyInventoryRecord(
                date=day,
                lttp_item_id=item.id,
                previous_quantity=prev.end_quantity if prev else Decimal("0"),
                previous_amount=prev.end_amount if prev else Decimal("0"),
                previous_expiry_date=prev.end_expiry_date if prev else None,
                input_quantity=Decimal("0"),
                input_amount=Decimal("0"),
                output_quantity=Decimal("0"),
                output_amount=Decimal("0"),
                status=FreshnessStatus.GOOD.value,
                created_by=user_id,
            )
            ledger.apply_end_of_day(record, self.today)
            self.db.add(record)
            created += 1

        self.db.commit()
        logger.info(f"Initialized {created} inventory rows for {day}")
        return created

    def acknowledge_alert(self, alert_id: int) -> InventoryAlert:
        alert = self.db.query(InventoryAlert).filter(InventoryAlert.id == alert_id).first()
        if alert is None:
            raise NotFoundError("Không tìm thấy cảnh báo")
        alert.acknowledged = True
        self.db.commit()
        self.db.refresh(alert)
        return alert

    # ===== REPORTS =====

    def expiry_alerts(self, days: Optional[int] = None) -> Tuple[List[Dict[str, Any]], date]:
        """Rows with stock that expires within ``days``. Returns (entries, alert_date)."""
        if days is None:
            days = settings.expiry_alert_days
        alert_date = self.today + timedelta(days=days)
        records = (
            self.db.query(DailyInventoryRecord)
            .filter(
                DailyInventoryRecord.end_expiry_date.isnot(None),
                DailyInventoryRecord.end_expiry_date <= alert_date,
                DailyInventoryRecord.end_quantity > 0,
                DailyInventoryRecord.status.in_(EXPIRING_STATUSES),
            )
            .order_by(DailyInventoryRecord.end_expiry_date)
            .all()
        )
        entries = [
            {
                "record_id": r.id,
                "date": r.date,
                "lttp_item_id": r.lttp_item_id,
                "item_name": r.item.name,
                "category": r.item.category,
                "unit": r.item.unit,
                "quantity": r.end_quantity,
                "expiry_date": r.end_expiry_date,
                "days_until_expiry": ledger.days_until(r.end_expiry_date, self.today),
                "status": r.status,
            }
            for r in records
        ]
        return entries, alert_date

    def summary(self, day: date) -> Dict[str, Any]:
        """Per-category amounts for ``day`` plus grand totals."""
        categories: "OrderedDict[str, Dict[str, Any]]" = OrderedDict()
        for record in self.get_by_date(day):
            row = categories.setdefault(record.item.category, _empty_category(record.item.category))
            row["item_count"] += 1
            row["input_amount"] += ledger.to_decimal(record.input_amount)
            row["output_amount"] += ledger.to_decimal(record.output_amount)
            row["end_amount"] += ledger.to_decimal(record.end_amount)
            if record.status in EXPIRING_STATUSES:
                row["near_expiry_count"] += 1

        totals = _empty_category("Tổng cộng")
        for row in categories.values():
            for key in ("item_count", "input_amount", "output_amount", "end_amount", "near_expiry_count"):
                totals[key] += row[key]

        return {
            "date": day,
            "category_count": len(categories),
            "categories": list(categories.values()),
            "totals": totals,
        }

    def quality_report(self, start: date, end: date) -> List[Dict[str, Any]]:
        """Quality-checked rows in the range grouped by (category, condition)."""
        if start > end:
            raise ValidationFailedError("Ngày bắt đầu phải trước ngày kết thúc")
        records = (
            self.db.query(DailyInventoryRecord)
            .join(LttpItem, DailyInventoryRecord.lttp_item_id == LttpItem.id)
            .filter(
                DailyInventoryRecord.date >= start,
                DailyInventoryRecord.date <= end,
                DailyInventoryRecord.quality_checked.is_(True),
            )
            .order_by(LttpItem.category, DailyInventoryRecord.quality_condition, DailyInventoryRecord.date)
            .all()
        )
        groups: "OrderedDict[Tuple[str, Optional[str]], Dict[str, Any]]" = OrderedDict()
        for r in records:
            key = (r.item.category, r.quality_condition)
            group = groups.setdefault(
                key, {"category": key[0], "condition": key[1], "count": 0, "items": []}
            )
            group["count"] += 1
            group["items"].append({
                "name": r.item.name,
                "date": r.date.isoformat(),
                "rating": r.quality_rating,
                "notes": r.quality_notes,
            })
        return list(groups.values())

    # ===== HELPERS =====

    def _merge_patch(
        self,
        record: DailyInventoryRecord,
        item: LttpItem,
        data: InventoryUpsert,
        user_id: Optional[int],
    ) -> None:
        unit_price = ledger.to_decimal(item.unit_price)

        if data.previous_day is not None:
            prev = data.previous_day.model_dump(exclude_unset=True)
            if "quantity" in prev:
                record.previous_quantity = prev["quantity"]
                if "amount" not in prev:
                    record.previous_amount = prev["quantity"] * unit_price
            if "amount" in prev:
                record.previous_amount = prev["amount"]
            if "expiry_date" in prev:
                record.previous_expiry_date = prev["expiry_date"]

        if data.input is not None:
            inp = data.input.model_dump(exclude_unset=True)
            if "quantity" in inp:
                record.input_quantity = inp["quantity"]
                if "amount" not in inp:
                    record.input_amount = inp["quantity"] * unit_price
            for key in ("amount", "invoice_number", "supplier", "received_by", "expiry_date", "notes"):
                if key in inp:
                    setattr(record, f"input_{key}", inp[key])
            if (
                record.input_expiry_date is None
                and ledger.to_decimal(record.input_quantity) > 0
                and item.shelf_life_days
            ):
                record.input_expiry_date = record.date + timedelta(days=item.shelf_life_days)

        if data.output is not None:
            out = data.output.model_dump(exclude_unset=True)
            if data.output.distributed_to is not None:
                record.distributed_to = [
                    InventoryOutputLine(
                        unit_id=line.unit_id,
                        quantity=line.quantity,
                        amount=line.amount if line.amount is not None else line.quantity * unit_price,
                        purpose=line.purpose.value if line.purpose else None,
                        requested_by=line.requested_by,
                        approved_by=line.approved_by,
                    )
                    for line in data.output.distributed_to
                ]
                if "quantity" not in out:
                    out["quantity"] = sum((line.quantity for line in data.output.distributed_to), Decimal("0"))
            if "quantity" in out:
                record.output_quantity = out["quantity"]
                if "amount" not in out:
                    record.output_amount = out["quantity"] * unit_price
            if "amount" in out:
                record.output_amount = out["amount"]
            if "notes" in out:
                record.output_notes = out["notes"]

        if data.status is not None:
            record.status = data.status.value

        if data.quality_check is not None:
            qc = data.quality_check
            record.quality_checked = qc.checked
            record.quality_checked_by = qc.checked_by if qc.checked_by is not None else user_id
            record.quality_checked_at = datetime.now(timezone.utc)
            record.quality_condition = qc.condition.value if qc.condition else None
            record.quality_rating = qc.rating
            record.quality_notes = qc.notes

    def _refresh_expiry_alert(self, record: DailyInventoryRecord) -> None:
        alert = ledger.expiry_alert_for(record.end_expiry_date, self.today)
        if alert is None:
            return
        severity, message = alert
        for existing in record.alerts:
            if (
                not existing.acknowledged
                and existing.type == AlertType.EXPIRY_WARNING.value
                and existing.severity == severity.value
                and existing.message == message
            ):
                return
        record.alerts.append(
            InventoryAlert(
                type=AlertType.EXPIRY_WARNING.value,
                message=message,
                severity=severity.value,
            )
        )


def _empty_category(category: str) -> Dict[str, Any]:
    return {
        "category": category,
        "item_count": 0,
        "input_amount": Decimal("0"),
        "output_amount": Decimal("0"),
        "end_amount": Decimal("0"),
        "near_expiry_count": 0,
    }
