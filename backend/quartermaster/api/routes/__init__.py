"""API routes."""

from fastapi import APIRouter

from quartermaster.api.routes import (
    distribution,
    lttp_inventory,
    lttp_items,
    processing,
    supplies,
    units,
)

api_router = APIRouter()

api_router.include_router(lttp_items.router, prefix="/lttp/items", tags=["lttp-items"])
api_router.include_router(lttp_inventory.router, prefix="/lttp/inventory", tags=["lttp-inventory"])
api_router.include_router(distribution.router, prefix="/lttp-distribution", tags=["lttp-distribution"])
api_router.include_router(processing.router, prefix="/processing-station", tags=["processing-station"])
api_router.include_router(units.router, prefix="/units", tags=["units"])
api_router.include_router(supplies.router, prefix="/supplies", tags=["supplies"])
