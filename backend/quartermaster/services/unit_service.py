"""Recipient unit registry."""

import logging
from typing import List

from sqlalchemy.orm import Session

from quartermaster.core.exceptions import ConflictError, NotFoundError
from quartermaster.models.unit import Unit
from quartermaster.schemas.unit import UnitCreate, UnitUpdate

logger = logging.getLogger(__name__)


class UnitService:
    def __init__(self, db: Session):
        self.db = db

    def list_units(self, active_only: bool = True) -> List[Unit]:
        query = self.db.query(Unit)
        if active_only:
            query = query.filter(Unit.is_active.is_(True))
        return query.order_by(Unit.code).all()

    def get_unit(self, unit_id: int) -> Unit:
        unit = self.db.query(Unit).filter(Unit.id == unit_id).first()
        if unit is None:
            raise NotFoundError("Không tìm thấy đơn vị")
        return unit

    def create_unit(self, data: UnitCreate) -> Unit:
        code = data.code.strip().upper()
        self._ensure_code_free(code)
        unit = Unit(**data.model_dump(exclude={"code"}), code=code)
        self.db.add(unit)
        self.db.commit()
        self.db.refresh(unit)
        logger.info(f"Created unit {unit.code} ({unit.name})")
        return unit

    def update_unit(self, unit_id: int, data: UnitUpdate) -> Unit:
        unit = self.get_unit(unit_id)
        fields = data.model_dump(exclude_unset=True)
        if "code" in fields:
            fields["code"] = fields["code"].strip().upper()
            if fields["code"] != unit.code:
                self._ensure_code_free(fields["code"])
        for key, value in fields.items():
            setattr(unit, key, value)
        self.db.commit()
        self.db.refresh(unit)
        return unit

    def deactivate_unit(self, unit_id: int) -> Unit:
        unit = self.get_unit(unit_id)
        unit.is_active = False
        self.db.commit()
        logger.info(f"Deactivated unit {unit.code}")
        return unit

    def _ensure_code_free(self, code: str) -> None:
        if self.db.query(Unit).filter(Unit.code == code).first() is not None:
            raise ConflictError(f"Mã đơn vị {code} đã tồn tại")
