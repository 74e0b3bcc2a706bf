"""Provision item catalog service."""

import logging
import math
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError
from sqlalchemy import or_
from sqlalchemy.orm import Session

from quartermaster.core.exceptions import NotFoundError, ValidationFailedError
from quartermaster.models.item import LttpItem
from quartermaster.schemas.item import LttpItemCreate, LttpItemUpdate

logger = logging.getLogger(__name__)

NOT_FOUND_MESSAGE = "Không tìm thấy mặt hàng LTTP"


class ItemService:
    """CRUD and pricing for provision items. Items are never hard-deleted."""

    def __init__(self, db: Session):
        self.db = db

    def list_items(
        self,
        category: Optional[str] = None,
        is_active: Optional[bool] = True,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 50,
    ) -> Tuple[List[LttpItem], Dict[str, int]]:
        query = self.db.query(LttpItem)
        if category:
            query = query.filter(LttpItem.category == category)
        if is_active is not None:
            query = query.filter(LttpItem.is_active == is_active)
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(
                or_(LttpItem.name.ilike(pattern), LttpItem.description.ilike(pattern))
            )

        total = query.count()
        items = (
            query.order_by(LttpItem.category, LttpItem.name)
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        pagination = {
            "current": page,
            "pages": math.ceil(total / limit) if total else 0,
            "total": total,
        }
        return items, pagination

    def get_item(self, item_id: int) -> LttpItem:
        item = self.db.query(LttpItem).filter(LttpItem.id == item_id).first()
        if item is None:
            raise NotFoundError(NOT_FOUND_MESSAGE)
        return item

    def create_item(self, data: LttpItemCreate, user_id: Optional[int] = None) -> LttpItem:
        item = LttpItem(created_by=user_id, updated_by=user_id)
        self._apply_fields(item, data.model_dump(exclude_unset=True))
        self.db.add(item)
        self.db.commit()
        self.db.refresh(item)
        logger.info(f"Created LTTP item {item.id} '{item.name}'")
        return item

    def update_item(self, item_id: int, data: LttpItemUpdate, user_id: Optional[int] = None) -> LttpItem:
        item = self.get_item(item_id)
        fields = data.model_dump(exclude_unset=True)
        if "unit_price" in fields and fields["unit_price"] != item.unit_price:
            item.last_updated_price = datetime.now(timezone.utc)
        self._apply_fields(item, fields)
        item.updated_by = user_id
        self.db.commit()
        self.db.refresh(item)
        return item

    def delete_item(self, item_id: int, user_id: Optional[int] = None) -> LttpItem:
        item = self.get_item(item_id)
        item.is_active = False
        item.updated_by = user_id
        self.db.commit()
        logger.info(f"Deactivated LTTP item {item_id}")
        return item

    def categories(self) -> List[str]:
        rows = (
            self.db.query(LttpItem.category)
            .filter(LttpItem.is_active.is_(True))
            .distinct()
            .order_by(LttpItem.category)
            .all()
        )
        return [r[0] for r in rows]

    def units(self) -> List[str]:
        rows = (
            self.db.query(LttpItem.unit)
            .filter(LttpItem.is_active.is_(True))
            .distinct()
            .order_by(LttpItem.unit)
            .all()
        )
        return [r[0] for r in rows]

    def update_price(self, item_id: int, unit_price: Decimal, user_id: Optional[int] = None) -> LttpItem:
        if unit_price is None or unit_price <= 0:
            raise ValidationFailedError("Giá phải lớn hơn 0")
        item = self.get_item(item_id)
        old_price = item.unit_price
        item.unit_price = unit_price
        item.last_updated_price = datetime.now(timezone.utc)
        item.updated_by = user_id
        self.db.commit()
        self.db.refresh(item)
        logger.info(f"Price of LTTP item {item_id} changed {old_price} -> {unit_price}")
        return item

    def bulk_import(self, rows: List[Dict[str, Any]], user_id: Optional[int] = None) -> Dict[str, Any]:
        """Create items row by row, reporting failures per row."""
        if not rows:
            raise ValidationFailedError("Danh sách LTTP trống")

        created = 0
        errors = []
        for index, row in enumerate(rows):
            try:
                data = LttpItemCreate.model_validate(row)
            except ValidationError as e:
                errors.append({"index": index, "data": row, "error": _first_error(e)})
                continue
            item = LttpItem(created_by=user_id, updated_by=user_id)
            self._apply_fields(item, data.model_dump(exclude_unset=True))
            self.db.add(item)
            created += 1

        self.db.commit()
        logger.info(f"Bulk import: {created}/{len(rows)} LTTP items created")
        return {"created": created, "total": len(rows), "errors": errors}

    @staticmethod
    def _apply_fields(item: LttpItem, fields: Dict[str, Any]) -> None:
        nutrition = fields.pop("nutritional_info", None)
        storage = fields.pop("storage_requirements", None)
        supplier = fields.pop("supplier", None)

        for key, value in fields.items():
            setattr(item, key, _enum_value(value))

        if nutrition:
            for key in ("calories", "protein", "fat", "carbs", "fiber"):
                if key in nutrition:
                    setattr(item, key, nutrition[key])
        if storage:
            if "temperature" in storage:
                item.storage_temperature = _enum_value(storage["temperature"])
            if "humidity" in storage:
                item.storage_humidity = _enum_value(storage["humidity"])
            if "shelf_life" in storage:
                item.shelf_life_days = storage["shelf_life"]
        if supplier:
            if "name" in supplier:
                item.supplier_name = supplier["name"]
            if "contact" in supplier:
                item.supplier_contact = supplier["contact"]
            if "address" in supplier:
                item.supplier_address = supplier["address"]


def _enum_value(value):
    return value.value if hasattr(value, "value") else value


def _first_error(exc: ValidationError) -> str:
    err = exc.errors()[0]
    field = ".".join(str(part) for part in err.get("loc", ()))
    return f"{field}: {err.get('msg', 'invalid')}" if field else err.get("msg", "invalid")


