"""
Daily provision inventory ledger endpoints.
One row per (date, item); writes recompute the end-of-day block and push it
into the next day's opening balance.
"""
import datetime as dt
from typing import Optional

from fastapi import APIRouter, Query, Request, status
from fastapi.responses import JSONResponse

from quartermaster.core.exceptions import ValidationFailedError
from quartermaster.core.rate_limit import limiter
from quartermaster.core.rbac import CurrentUser
from quartermaster.core.responses import success_response
from quartermaster.db.session import DbSession
from quartermaster.schemas.base import dump_many
from quartermaster.schemas.inventory import (
    AlertResponse,
    ExpiryAlertEntry,
    InitializeRequest,
    InventoryRecordResponse,
    InventorySummaryResponse,
    InventoryUpsert,
    QualityReportGroup,
)
from quartermaster.services.inventory_service import InventoryService

router = APIRouter()


@router.get("")
@limiter.limit("60/minute")
async def get_inventory_by_date(
    request: Request,
    db: DbSession,
    current_user: CurrentUser,
    day: Optional[dt.date] = Query(None, alias="date"),
):
    """All ledger rows for a day (defaults to today), sorted by category and name."""
    service = InventoryService(db)
    day = day or service.today
    records = service.get_by_date(day)
    return success_response(
        data=dump_many(InventoryRecordResponse.from_record(r) for r in records),
        date=day.isoformat(),
    )


@router.get("/range")
@limiter.limit("60/minute")
async def get_inventory_by_range(
    request: Request,
    db: DbSession,
    current_user: CurrentUser,
    start_date: Optional[dt.date] = Query(None, alias="startDate"),
    end_date: Optional[dt.date] = Query(None, alias="endDate"),
    item_id: Optional[int] = Query(None, alias="lttpItemId"),
):
    if start_date is None or end_date is None:
        raise ValidationFailedError("Cần cung cấp startDate và endDate")
    records = InventoryService(db).get_by_date_range(start_date, end_date, item_id)
    return success_response(
        data=dump_many(InventoryRecordResponse.from_record(r) for r in records),
    )


@router.post("")
@limiter.limit("30/minute")
async def upsert_inventory(
    request: Request,
    data: InventoryUpsert,
    db: DbSession,
    current_user: CurrentUser,
):
    """Create or patch the (date, item) row."""
    record, created = InventoryService(db).create_or_update(data, current_user.id)
    body = success_response(
        data=InventoryRecordResponse.from_record(record).to_wire(),
        message=(
            "Tạo dữ liệu tồn kho thành công" if created else "Cập nhật dữ liệu tồn kho thành công"
        ),
    )
    if created:
        return JSONResponse(status_code=status.HTTP_201_CREATED, content=body)
    return body


@router.post("/initialize")
@limiter.limit("30/minute")
async def initialize_inventory(
    request: Request,
    db: DbSession,
    current_user: CurrentUser,
    data: Optional[InitializeRequest] = None,
):
    """Seed rows for every active item that has none on the given day."""
    service = InventoryService(db)
    day = (data.date if data else None) or service.today
    count = service.initialize_for_date(day, current_user.id)
    return success_response(
        data={"date": day.isoformat(), "initializedCount": count},
        message=f"Khởi tạo thành công {count} mặt hàng cho ngày {day.isoformat()}",
    )


@router.get("/expiry-alerts")
@limiter.limit("60/minute")
async def get_expiry_alerts(
    request: Request,
    db: DbSession,
    current_user: CurrentUser,
    days: Optional[int] = Query(None, ge=0, le=365),
):
    entries, alert_date = InventoryService(db).expiry_alerts(days)
    return success_response(
        data=dump_many(ExpiryAlertEntry.model_validate(e) for e in entries),
        alertDate=alert_date.isoformat(),
    )


@router.get("/summary")
@limiter.limit("60/minute")
async def get_inventory_summary(
    request: Request,
    db: DbSession,
    current_user: CurrentUser,
    day: Optional[dt.date] = Query(None, alias="date"),
):
    service = InventoryService(db)
    summary = service.summary(day or service.today)
    return success_response(data=InventorySummaryResponse.model_validate(summary).to_wire())


@router.get("/quality-report")
@limiter.limit("60/minute")
async def get_quality_report(
    request: Request,
    db: DbSession,
    current_user: CurrentUser,
    start_date: Optional[dt.date] = Query(None, alias="startDate"),
    end_date: Optional[dt.date] = Query(None, alias="endDate"),
):
    """Quality-checked rows grouped by category and condition (defaults to the last 7 days)."""
    service = InventoryService(db)
    end_date = end_date or service.today
    start_date = start_date or end_date - dt.timedelta(days=7)
    groups = service.quality_report(start_date, end_date)
    return success_response(
        data=dump_many(QualityReportGroup.model_validate(g) for g in groups),
    )


@router.patch("/alerts/{alert_id}/acknowledge")
@limiter.limit("30/minute")
async def acknowledge_alert(
    request: Request,
    alert_id: int,
    db: DbSession,
    current_user: CurrentUser,
):
    alert = InventoryService(db).acknowledge_alert(alert_id)
    return success_response(
        data=AlertResponse.model_validate(alert).to_wire(),
        message="Đã xác nhận cảnh báo",
    )
