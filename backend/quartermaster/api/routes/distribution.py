"""
Provision distribution allocation endpoints.
draft -> pending_approval -> approved -> in_progress -> completed; rejection
cancels. Per-unit handover goes through /{id}/units/{unit_name}/...
"""
import datetime as dt
from typing import Optional

from fastapi import APIRouter, Query, Request, status
from fastapi.responses import JSONResponse

from quartermaster.core.rate_limit import limiter
from quartermaster.core.rbac import CurrentUser
from quartermaster.core.responses import success_response
from quartermaster.db.session import DbSession
from quartermaster.models.distribution import AllocationStatus
from quartermaster.schemas.base import dump_many
from quartermaster.schemas.distribution import (
    ApproveRequest,
    DistributeRequest,
    DistributionCreate,
    DistributionDailySummary,
    DistributionResponse,
    DistributionUpdate,
    IssueCreate,
    RejectRequest,
)
from quartermaster.services.distribution_service import DistributionService

router = APIRouter()


def _wire(allocation) -> dict:
    return DistributionResponse.from_record(allocation).to_wire()


@router.get("")
@limiter.limit("60/minute")
async def list_distributions(
    request: Request,
    db: DbSession,
    current_user: CurrentUser,
    day: Optional[dt.date] = Query(None, alias="date"),
    overall_status: Optional[AllocationStatus] = Query(None, alias="status"),
):
    """Allocations for a day (defaults to today), newest first."""
    day = day or dt.date.today()
    allocations = DistributionService(db).list_by_date(
        day, overall_status.value if overall_status else None
    )
    return success_response(
        data=dump_many(DistributionResponse.from_record(a) for a in allocations),
        date=day.isoformat(),
    )


@router.get("/summary/daily")
@limiter.limit("60/minute")
async def get_daily_summary(
    request: Request,
    db: DbSession,
    current_user: CurrentUser,
    day: Optional[dt.date] = Query(None, alias="date"),
):
    summary = DistributionService(db).daily_summary(day or dt.date.today())
    return success_response(data=DistributionDailySummary.model_validate(summary).to_wire())


@router.get("/{allocation_id}")
@limiter.limit("60/minute")
async def get_distribution(
    request: Request, allocation_id: int, db: DbSession, current_user: CurrentUser
):
    return success_response(data=_wire(DistributionService(db).get(allocation_id)))


@router.post("", status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
async def create_distribution(
    request: Request,
    data: DistributionCreate,
    db: DbSession,
    current_user: CurrentUser,
):
    allocation = DistributionService(db).create(data, current_user.id)
    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content=success_response(data=_wire(allocation), message="Tạo phân bổ thành công"),
    )


@router.put("/{allocation_id}")
@limiter.limit("30/minute")
async def update_distribution(
    request: Request,
    allocation_id: int,
    data: DistributionUpdate,
    db: DbSession,
    current_user: CurrentUser,
):
    allocation = DistributionService(db).update(allocation_id, data, current_user.id)
    return success_response(data=_wire(allocation), message="Cập nhật phân bổ thành công")


@router.patch("/{allocation_id}/approve")
@limiter.limit("30/minute")
async def approve_distribution(
    request: Request,
    allocation_id: int,
    db: DbSession,
    current_user: CurrentUser,
    data: Optional[ApproveRequest] = None,
):
    allocation = DistributionService(db).approve(
        allocation_id,
        notes=data.approval_notes if data else None,
        user_id=current_user.id,
    )
    return success_response(data=_wire(allocation), message="Phê duyệt phân bổ thành công")


@router.patch("/{allocation_id}/reject")
@limiter.limit("30/minute")
async def reject_distribution(
    request: Request,
    allocation_id: int,
    db: DbSession,
    current_user: CurrentUser,
    data: Optional[RejectRequest] = None,
):
    allocation = DistributionService(db).reject(
        allocation_id,
        data.rejection_reason if data else None,
        user_id=current_user.id,
    )
    return success_response(data=_wire(allocation), message="Từ chối phân bổ thành công")


@router.patch("/{allocation_id}/units/{unit_name}/distribute")
@limiter.limit("30/minute")
async def distribute_to_unit(
    request: Request,
    allocation_id: int,
    unit_name: str,
    data: DistributeRequest,
    db: DbSession,
    current_user: CurrentUser,
):
    """Record the quantity actually handed to one recipient unit."""
    allocation = DistributionService(db).distribute_unit(
        allocation_id,
        unit_name,
        data.actual_quantity,
        received_by=data.received_by,
        notes=data.notes,
        user_id=current_user.id,
    )
    return success_response(data=_wire(allocation), message="Cập nhật phân phối thành công")


@router.patch("/{allocation_id}/units/{unit_name}/complete")
@limiter.limit("30/minute")
async def complete_unit(
    request: Request,
    allocation_id: int,
    unit_name: str,
    db: DbSession,
    current_user: CurrentUser,
):
    allocation = DistributionService(db).complete_unit(allocation_id, unit_name, current_user.id)
    return success_response(data=_wire(allocation), message="Xác nhận hoàn thành nhận hàng")


@router.post("/{allocation_id}/issues")
@limiter.limit("30/minute")
async def report_issue(
    request: Request,
    allocation_id: int,
    data: IssueCreate,
    db: DbSession,
    current_user: CurrentUser,
):
    allocation = DistributionService(db).report_issue(allocation_id, data, current_user.id)
    return success_response(data=_wire(allocation), message="Đã ghi nhận sự cố")


@router.delete("/{allocation_id}")
@limiter.limit("30/minute")
async def delete_distribution(
    request: Request, allocation_id: int, db: DbSession, current_user: CurrentUser
):
    DistributionService(db).delete(allocation_id)
    return success_response(message="Xóa phân bổ thành công")
