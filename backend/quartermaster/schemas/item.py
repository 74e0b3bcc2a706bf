"""Provision item schemas."""

import datetime as dt
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator

from quartermaster.models.item import (
    ItemCategory,
    StorageHumidity,
    StorageTemperature,
    UnitOfMeasure,
)
from quartermaster.schemas.base import CamelModel, reject_null


class NutritionalInfo(CamelModel):
    """Nutrition per 100g."""

    calories: Decimal = Field(default=Decimal("0"), ge=0)
    protein: Decimal = Field(default=Decimal("0"), ge=0)
    fat: Decimal = Field(default=Decimal("0"), ge=0)
    carbs: Decimal = Field(default=Decimal("0"), ge=0)
    fiber: Decimal = Field(default=Decimal("0"), ge=0)


class StorageRequirements(CamelModel):
    temperature: Optional[StorageTemperature] = None
    humidity: Optional[StorageHumidity] = None
    shelf_life: Optional[int] = Field(default=None, ge=0)


class SupplierInfo(CamelModel):
    name: Optional[str] = Field(default=None, max_length=200)
    contact: Optional[str] = Field(default=None, max_length=200)
    address: Optional[str] = Field(default=None, max_length=500)


class LttpItemCreate(CamelModel):
    """Item creation schema."""

    name: str = Field(..., min_length=1, max_length=200)
    category: ItemCategory
    unit: UnitOfMeasure
    unit_price: Decimal = Field(..., ge=0)
    description: Optional[str] = None
    nutritional_info: Optional[NutritionalInfo] = None
    storage_requirements: Optional[StorageRequirements] = None
    supplier: Optional[SupplierInfo] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Tên LTTP không được để trống")
        return v


class LttpItemUpdate(CamelModel):
    """Item update schema. Price changes go through the price endpoint too."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    category: Optional[ItemCategory] = None
    unit: Optional[UnitOfMeasure] = None
    unit_price: Optional[Decimal] = Field(default=None, ge=0)
    description: Optional[str] = None
    nutritional_info: Optional[NutritionalInfo] = None
    storage_requirements: Optional[StorageRequirements] = None
    supplier: Optional[SupplierInfo] = None
    is_active: Optional[bool] = None

    @field_validator("name", "category", "unit", "unit_price", "is_active")
    @classmethod
    def required_not_null(cls, v):
        return reject_null(v)


class PriceUpdate(CamelModel):
    unit_price: Decimal = Field(..., gt=0)


class BulkImportRequest(CamelModel):
    # Rows are validated one by one so a bad row doesn't sink the batch.
    items: List[Dict[str, Any]]


class BulkImportError(CamelModel):
    index: int
    data: Dict[str, Any]
    error: str


class BulkImportResult(CamelModel):
    created: int
    total: int
    errors: List[BulkImportError] = []


class NutritionalInfoResponse(CamelModel):
    calories: float = 0
    protein: float = 0
    fat: float = 0
    carbs: float = 0
    fiber: float = 0


class LttpItemResponse(CamelModel):
    """Item as returned by the API."""

    id: int
    name: str
    category: str
    unit: str
    unit_price: float
    description: Optional[str] = None
    nutritional_info: NutritionalInfoResponse
    storage_requirements: StorageRequirements
    supplier: SupplierInfo
    is_active: bool
    last_updated_price: Optional[dt.datetime] = None
    created_by: Optional[int] = None
    updated_by: Optional[int] = None
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None

    @classmethod
    def from_record(cls, item) -> "LttpItemResponse":
        return cls(
            id=item.id,
            name=item.name,
            category=item.category,
            unit=item.unit,
            unit_price=item.unit_price,
            description=item.description,
            nutritional_info=NutritionalInfoResponse(
                calories=item.calories or 0,
                protein=item.protein or 0,
                fat=item.fat or 0,
                carbs=item.carbs or 0,
                fiber=item.fiber or 0,
            ),
            storage_requirements=StorageRequirements(
                temperature=item.storage_temperature,
                humidity=item.storage_humidity,
                shelf_life=item.shelf_life_days,
            ),
            supplier=SupplierInfo(
                name=item.supplier_name,
                contact=item.supplier_contact,
                address=item.supplier_address,
            ),
            is_active=item.is_active,
            last_updated_price=item.last_updated_price,
            created_by=item.created_by,
            updated_by=item.updated_by,
            created_at=item.created_at,
            updated_at=item.updated_at,
        )


class ItemBrief(CamelModel):
    """Item fields embedded in ledger and distribution responses."""

    id: int
    name: str
    category: str
    unit: str
    unit_price: float

    @field_validator("name", "category", "unit", "unit_price")
    @classmethod
    def required_not_null(cls, v):
        return reject_null(v)

