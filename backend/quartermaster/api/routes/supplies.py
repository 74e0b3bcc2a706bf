"""
Supply intake endpoints.
Units declare produce (pending); brigade assistants approve or reject it.
Unit assistants are confined to their own unit's records.
"""
import datetime as dt
from typing import Optional

from fastapi import APIRouter, Query, Request, status
from fastapi.responses import JSONResponse

from quartermaster.core.exceptions import ForbiddenError, ValidationFailedError
from quartermaster.core.rate_limit import limiter
from quartermaster.core.rbac import (
    CurrentUser,
    RequireBrigadeAssistant,
    RequireSupplyEditor,
    TokenData,
    UserRole,
)
from quartermaster.core.responses import success_response
from quartermaster.db.session import DbSession
from quartermaster.models.supply import SupplyStatus
from quartermaster.schemas.base import dump_many
from quartermaster.schemas.supply import (
    SupplyApprove,
    SupplyCreate,
    SupplyReject,
    SupplyResponse,
    SupplyUpdate,
)
from quartermaster.services.supply_service import SupplyService

router = APIRouter()


def _own_unit(current_user: TokenData) -> Optional[int]:
    """The unit a unit assistant is confined to; None for everyone else."""
    if current_user.role != UserRole.UNIT_ASSISTANT:
        return None
    if current_user.unit_id is None:
        raise ForbiddenError("Tài khoản chưa được gán đơn vị")
    return current_user.unit_id


def _wire(supply) -> dict:
    return SupplyResponse.model_validate(supply).to_wire()


@router.get("")
@limiter.limit("60/minute")
async def list_supplies(
    request: Request,
    db: DbSession,
    current_user: CurrentUser,
    unit_id: Optional[int] = Query(None, alias="unitId"),
    category: Optional[str] = None,
    supply_status: Optional[SupplyStatus] = Query(None, alias="status"),
    from_date: Optional[dt.date] = Query(None, alias="fromDate"),
    to_date: Optional[dt.date] = Query(None, alias="toDate"),
):
    """Newest harvest first. Unit assistants always get their own unit."""
    own = _own_unit(current_user)
    supplies = SupplyService(db).list_supplies(
        unit_id=own if own is not None else unit_id,
        category=category,
        status=supply_status,
        from_date=from_date,
        to_date=to_date,
    )
    return success_response(
        data=dump_many(SupplyResponse.model_validate(s) for s in supplies),
        count=len(supplies),
    )


@router.get("/{supply_id}")
@limiter.limit("60/minute")
async def get_supply(request: Request, supply_id: int, db: DbSession, current_user: CurrentUser):
    supply = SupplyService(db).get(supply_id, restrict_unit_id=_own_unit(current_user))
    return success_response(data=_wire(supply))


@router.post("", status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
async def create_supply(
    request: Request,
    data: SupplyCreate,
    db: DbSession,
    current_user: RequireSupplyEditor,
):
    unit_id = _own_unit(current_user)
    if unit_id is None:
        unit_id = data.unit_id
    if unit_id is None:
        raise ValidationFailedError("Vui lòng chọn đơn vị")
    supply = SupplyService(db).create(data, unit_id, current_user.id)
    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content=success_response(data=_wire(supply), message="Thêm nguồn nhập thành công"),
    )


@router.patch("/{supply_id}")
@limiter.limit("30/minute")
async def update_supply(
    request: Request,
    supply_id: int,
    data: SupplyUpdate,
    db: DbSession,
    current_user: RequireSupplyEditor,
):
    supply = SupplyService(db).update(
        supply_id, data, current_user.id, restrict_unit_id=_own_unit(current_user)
    )
    return success_response(data=_wire(supply), message="Cập nhật nguồn nhập thành công")


@router.patch("/{supply_id}/approve")
@limiter.limit("30/minute")
async def approve_supply(
    request: Request,
    supply_id: int,
    db: DbSession,
    current_user: RequireBrigadeAssistant,
    data: Optional[SupplyApprove] = None,
):
    supply = SupplyService(db).approve(supply_id, data or SupplyApprove(), current_user.id)
    return success_response(data=_wire(supply), message="Phê duyệt nguồn nhập thành công")


@router.patch("/{supply_id}/reject")
@limiter.limit("30/minute")
async def reject_supply(
    request: Request,
    supply_id: int,
    db: DbSession,
    current_user: RequireBrigadeAssistant,
    data: Optional[SupplyReject] = None,
):
    supply = SupplyService(db).reject(
        supply_id, data.rejection_reason if data else None, current_user.id
    )
    return success_response(data=_wire(supply), message="Từ chối nguồn nhập thành công")


@router.delete("/{supply_id}")
@limiter.limit("30/minute")
async def delete_supply(
    request: Request,
    supply_id: int,
    db: DbSession,
    current_user: RequireSupplyEditor,
):
    SupplyService(db).delete(supply_id, current_user.id, restrict_unit_id=_own_unit(current_user))
    return success_response(message="Xóa nguồn nhập thành công")
