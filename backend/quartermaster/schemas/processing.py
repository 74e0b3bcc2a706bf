"""Processing station schemas."""

import datetime as dt
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import Field

from quartermaster.models.processing import QualityGrade
from quartermaster.schemas.base import CamelModel


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

class MaterialInput(CamelModel):
    material: str = Field(..., min_length=1, max_length=50)
    quantity: Decimal = Field(default=Decimal("0"), ge=0)
    price: Optional[Decimal] = Field(default=None, ge=0)
    quality: QualityGrade = QualityGrade.GOOD
    carry_over_from_previous_day: Decimal = Field(default=Decimal("0"), ge=0)


class ProductOutput(CamelModel):
    product: str = Field(..., min_length=1, max_length=50)
    produced: Decimal = Field(default=Decimal("0"), ge=0)
    actual_output: Decimal = Field(default=Decimal("0"), ge=0)
    price_per_unit: Optional[Decimal] = Field(default=None, ge=0)
    quality: QualityGrade = QualityGrade.GOOD


class ProcessingDailyUpsert(CamelModel):
    """Body of PUT /processing-station/{station}/daily/{date}."""

    inputs: List[MaterialInput] = []
    outputs: List[ProductOutput] = []
    other_costs: Decimal = Field(default=Decimal("0"), ge=0)
    notes: Optional[str] = None
    quality_notes: Optional[str] = None
    supervised_by: Optional[int] = None


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------

class MaterialConfig(CamelModel):
    code: str
    label: str
    default_price: float
    unit: str


class StationConfigResponse(CamelModel):
    station_type: str
    label: str
    materials: List[MaterialConfig]
    products: List[MaterialConfig]

    @classmethod
    def from_config(cls, config) -> "StationConfigResponse":
        return cls(
            station_type=config.station_type.value,
            label=config.label,
            materials=[MaterialConfig.model_validate(m) for m in config.materials],
            products=[MaterialConfig.model_validate(p) for p in config.products],
        )


class MaterialLine(CamelModel):
    material: str
    quantity: float
    price: float
    cost: float
    quality: str
    carry_over_from_previous_day: float = 0


class ProductLine(CamelModel):
    product: str
    produced: float
    carried_over: float
    collected: float
    actual_output: float
    remaining: float
    price_per_unit: float
    value: float
    quality: str


class Financial(CamelModel):
    total_input_cost: float = 0
    total_output_value: float = 0
    profit: float = 0
    profit_margin: float = 0


class ProcessingDayResponse(CamelModel):
    id: Optional[int] = None
    station_type: str
    date: dt.date
    day_name: str
    unit_id: int
    is_recorded: bool
    inputs: List[MaterialLine]
    outputs: List[ProductLine]
    other_costs: float = 0
    notes: Optional[str] = None
    quality_notes: Optional[str] = None
    processed_by: Optional[int] = None
    supervised_by: Optional[int] = None
    financial: Financial
    updated_at: Optional[dt.datetime] = None


class ProductTotalsResponse(CamelModel):
    produced: float = 0
    actual_output: float = 0
    value: float = 0
    remaining: float = 0


class PeriodTotalsResponse(CamelModel):
    products: Dict[str, ProductTotalsResponse] = {}
    input_quantity: float = 0
    total_input_cost: float = 0
    total_output_value: float = 0
    profit: float = 0
    profit_margin: float = 0
    days_recorded: int = 0


class WeeklyTrackingResponse(CamelModel):
    station_type: str
    week: int
    year: int
    unit_id: int
    start_date: dt.date
    end_date: dt.date
    days: List[ProcessingDayResponse]
    totals: PeriodTotalsResponse


class MonthlyRow(PeriodTotalsResponse):
    month: int
    year: int
    label: str


class MonthlySummaryResponse(CamelModel):
    station_type: str
    unit_id: int
    months: List[MonthlyRow]
    totals: PeriodTotalsResponse
