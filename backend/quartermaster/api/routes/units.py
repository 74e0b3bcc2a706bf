"""Recipient unit registry endpoints."""

from fastapi import APIRouter, Query, Request, status
from fastapi.responses import JSONResponse

from quartermaster.core.rate_limit import limiter
from quartermaster.core.rbac import CurrentUser, RequireAdmin
from quartermaster.core.responses import success_response
from quartermaster.db.session import DbSession
from quartermaster.schemas.base import dump_many
from quartermaster.schemas.unit import UnitCreate, UnitResponse, UnitUpdate
from quartermaster.services.unit_service import UnitService

router = APIRouter()


@router.get("")
@limiter.limit("60/minute")
async def list_units(
    request: Request,
    db: DbSession,
    current_user: CurrentUser,
    active_only: bool = Query(True, alias="activeOnly"),
):
    units = UnitService(db).list_units(active_only)
    return success_response(data=dump_many(UnitResponse.model_validate(u) for u in units))


@router.get("/{unit_id}")
@limiter.limit("60/minute")
async def get_unit(request: Request, unit_id: int, db: DbSession, current_user: CurrentUser):
    return success_response(data=UnitResponse.model_validate(UnitService(db).get_unit(unit_id)).to_wire())


@router.post("", status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
async def create_unit(request: Request, data: UnitCreate, db: DbSession, current_user: RequireAdmin):
    unit = UnitService(db).create_unit(data)
    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content=success_response(
            data=UnitResponse.model_validate(unit).to_wire(),
            message="Tạo đơn vị thành công",
        ),
    )


@router.put("/{unit_id}")
@limiter.limit("30/minute")
async def update_unit(
    request: Request, unit_id: int, data: UnitUpdate, db: DbSession, current_user: RequireAdmin
):
    unit = UnitService(db).update_unit(unit_id, data)
    return success_response(
        data=UnitResponse.model_validate(unit).to_wire(),
        message="Cập nhật đơn vị thành công",
    )


@router.delete("/{unit_id}")
@limiter.limit("30/minute")
async def deactivate_unit(request: Request, unit_id: int, db: DbSession, current_user: RequireAdmin):
    UnitService(db).deactivate_unit(unit_id)
    return success_response(message="Ngừng hoạt động đơn vị thành công")
