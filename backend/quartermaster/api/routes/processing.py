"""
Processing station endpoints (tofu, sprouts, salted vegetables, livestock,
poultry, sausage). One generic ledger parameterized by station type.
"""
import datetime as dt
from typing import Optional

from fastapi import APIRouter, Query, Request

from quartermaster.core.exceptions import ValidationFailedError
from quartermaster.core.rate_limit import limiter
from quartermaster.core.rbac import CurrentUser, RequireStationManager, TokenData
from quartermaster.core.responses import success_response
from quartermaster.db.session import DbSession
from quartermaster.models.processing import StationType
from quartermaster.schemas.base import dump_many
from quartermaster.schemas.processing import (
    MonthlySummaryResponse,
    ProcessingDailyUpsert,
    ProcessingDayResponse,
    StationConfigResponse,
    WeeklyTrackingResponse,
)
from quartermaster.services.processing_service import ProcessingService

router = APIRouter()


def _resolve_unit(unit_id: Optional[int], current_user: TokenData) -> int:
    """Explicit ?unitId= wins, else the caller's own unit."""
    resolved = unit_id if unit_id is not None else current_user.unit_id
    if resolved is None:
        raise ValidationFailedError("Cần cung cấp unitId")
    return resolved


@router.get("/stations")
@limiter.limit("60/minute")
async def list_stations(request: Request, db: DbSession, current_user: CurrentUser):
    stations = ProcessingService(db).stations()
    return success_response(data=dump_many(StationConfigResponse.from_config(s) for s in stations))


@router.get("/{station}/daily/{day}")
@limiter.limit("60/minute")
async def get_daily(
    request: Request,
    station: StationType,
    day: dt.date,
    db: DbSession,
    current_user: CurrentUser,
    unit_id: Optional[int] = Query(None, alias="unitId"),
):
    view = ProcessingService(db).get_daily(station, day, _resolve_unit(unit_id, current_user))
    return success_response(data=ProcessingDayResponse.model_validate(view).to_wire())


@router.put("/{station}/daily/{day}")
@limiter.limit("30/minute")
async def upsert_daily(
    request: Request,
    station: StationType,
    day: dt.date,
    data: ProcessingDailyUpsert,
    db: DbSession,
    current_user: RequireStationManager,
    unit_id: Optional[int] = Query(None, alias="unitId"),
):
    """Create or replace a station's day; refreshes the next day's carry-over."""
    view = ProcessingService(db).upsert_daily(
        station, day, _resolve_unit(unit_id, current_user), data, current_user.id
    )
    return success_response(
        data=ProcessingDayResponse.model_validate(view).to_wire(),
        message="Cập nhật dữ liệu trạm chế biến thành công",
    )


@router.get("/{station}/weekly")
@limiter.limit("60/minute")
async def get_weekly(
    request: Request,
    station: StationType,
    db: DbSession,
    current_user: CurrentUser,
    week: int = Query(...),
    year: int = Query(...),
    unit_id: Optional[int] = Query(None, alias="unitId"),
):
    tracking = ProcessingService(db).weekly_tracking(
        station, week, year, _resolve_unit(unit_id, current_user)
    )
    return success_response(data=WeeklyTrackingResponse.model_validate(tracking).to_wire())


@router.get("/{station}/monthly")
@limiter.limit("60/minute")
async def get_monthly(
    request: Request,
    station: StationType,
    db: DbSession,
    current_user: CurrentUser,
    month: int = Query(...),
    year: int = Query(...),
    month_count: Optional[int] = Query(None, alias="monthCount"),
    unit_id: Optional[int] = Query(None, alias="unitId"),
):
    summary = ProcessingService(db).monthly_summary(
        station, month, year, _resolve_unit(unit_id, current_user), month_count
    )
    return success_response(data=MonthlySummaryResponse.model_validate(summary).to_wire())
