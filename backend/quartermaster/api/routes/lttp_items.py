"""
Provision (LTTP) item catalog endpoints.
Items are soft-deleted; price changes go through PATCH /{id}/price.
"""
from typing import Optional

from fastapi import APIRouter, Query, Request, status
from fastapi.responses import JSONResponse

from quartermaster.core.rate_limit import limiter
from quartermaster.core.rbac import CurrentUser, RequireAdmin
from quartermaster.core.responses import success_response
from quartermaster.db.session import DbSession
from quartermaster.schemas.base import Pagination, dump_many
from quartermaster.schemas.item import (
    BulkImportRequest,
    BulkImportResult,
    LttpItemCreate,
    LttpItemResponse,
    LttpItemUpdate,
    PriceUpdate,
)
from quartermaster.services.item_service import ItemService

router = APIRouter()


@router.get("")
@limiter.limit("60/minute")
async def list_items(
    request: Request,
    db: DbSession,
    current_user: CurrentUser,
    category: Optional[str] = None,
    is_active: Optional[bool] = Query(True, alias="isActive"),
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
):
    """List items sorted by category then name."""
    items, pagination = ItemService(db).list_items(
        category=category, is_active=is_active, search=search, page=page, limit=limit
    )
    return success_response(
        data=dump_many(LttpItemResponse.from_record(i) for i in items),
        pagination=Pagination(**pagination).to_wire(),
    )


@router.get("/categories")
@limiter.limit("60/minute")
async def list_categories(request: Request, db: DbSession, current_user: CurrentUser):
    return success_response(data=ItemService(db).categories())


@router.get("/units")
@limiter.limit("60/minute")
async def list_units_of_measure(request: Request, db: DbSession, current_user: CurrentUser):
    return success_response(data=ItemService(db).units())


@router.post("/bulk-import")
@limiter.limit("30/minute")
async def bulk_import_items(
    request: Request,
    data: BulkImportRequest,
    db: DbSession,
    current_user: CurrentUser,
):
    """Create many items at once; invalid rows are reported, not fatal."""
    result = BulkImportResult.model_validate(ItemService(db).bulk_import(data.items, current_user.id))
    return success_response(
        data=result.to_wire(),
        message=f"Đã nhập {result.created}/{result.total} mặt hàng LTTP",
    )


@router.get("/{item_id}")
@limiter.limit("60/minute")
async def get_item(request: Request, item_id: int, db: DbSession, current_user: CurrentUser):
    item = ItemService(db).get_item(item_id)
    return success_response(data=LttpItemResponse.from_record(item).to_wire())


@router.post("", status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
async def create_item(
    request: Request,
    data: LttpItemCreate,
    db: DbSession,
    current_user: CurrentUser,
):
    item = ItemService(db).create_item(data, current_user.id)
    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content=success_response(
            data=LttpItemResponse.from_record(item).to_wire(),
            message="Tạo mặt hàng LTTP thành công",
        ),
    )


@router.put("/{item_id}")
@limiter.limit("30/minute")
async def update_item(
    request: Request,
    item_id: int,
    data: LttpItemUpdate,
    db: DbSession,
    current_user: CurrentUser,
):
    item = ItemService(db).update_item(item_id, data, current_user.id)
    return success_response(
        data=LttpItemResponse.from_record(item).to_wire(),
        message="Cập nhật mặt hàng LTTP thành công",
    )


@router.delete("/{item_id}")
@limiter.limit("30/minute")
async def delete_item(request: Request, item_id: int, db: DbSession, current_user: RequireAdmin):
    ItemService(db).delete_item(item_id, current_user.id)
    return success_response(message="Xóa mặt hàng LTTP thành công")


@router.patch("/{item_id}/price")
@limiter.limit("30/minute")
async def update_item_price(
    request: Request,
    item_id: int,
    data: PriceUpdate,
    db: DbSession,
    current_user: CurrentUser,
):
    item = ItemService(db).update_price(item_id, data.unit_price, current_user.id)
    return success_response(
        data=LttpItemResponse.from_record(item).to_wire(),
        message="Cập nhật giá thành công",
    )
