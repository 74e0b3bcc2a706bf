"""Processing station configuration and production-day arithmetic.

All six stations share one ledger shape; what differs is which raw
materials they consume, which products they make and the default prices.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from typing import Dict, List, Optional, Sequence, Tuple

from quartermaster.models.processing import StationType

ZERO = Decimal("0")

DAY_NAMES_VI = ["Chủ nhật", "Thứ 2", "Thứ 3", "Thứ 4", "Thứ 5", "Thứ 6", "Thứ 7"]


@dataclass(frozen=True)
class MaterialSpec:
    code: str
    label: str
    default_price: Decimal = ZERO
    unit: str = "kg"


@dataclass(frozen=True)
class ProductSpec:
    code: str
    label: str
    default_price: Decimal
    unit: str = "kg"


@dataclass(frozen=True)
class StationConfig:
    station_type: StationType
    label: str
    materials: Tuple[MaterialSpec, ...]
    products: Tuple[ProductSpec, ...]

    def material(self, code: str) -> Optional[MaterialSpec]:
        return next((m for m in self.materials if m.code == code), None)

    def product(self, code: str) -> Optional[ProductSpec]:
        return next((p for p in self.products if p.code == code), None)


STATIONS: Dict[StationType, StationConfig] = {
    StationType.TOFU: StationConfig(
        StationType.TOFU,
        "Chế biến đậu phụ",
        materials=(MaterialSpec("soybeans", "Đậu tương"),),
        products=(
            ProductSpec("tofu", "Đậu phụ", Decimal("35000")),
            ProductSpec("by_product", "Sản phẩm phụ", Decimal("5000")),
        ),
    ),
    StationType.SALT: StationConfig(
        StationType.SALT,
        "Muối dưa",
        materials=(MaterialSpec("cabbage", "Rau cải"),),
        products=(ProductSpec("pickled_cabbage", "Dưa muối", Decimal("15000")),),
    ),
    StationType.BEAN_SPROUTS: StationConfig(
        StationType.BEAN_SPROUTS,
        "Làm giá đỗ",
        materials=(MaterialSpec("soybeans", "Đậu tương"),),
        products=(ProductSpec("bean_sprouts", "Giá đỗ", Decimal("20000")),),
    ),
    StationType.SAUSAGE: StationConfig(
        StationType.SAUSAGE,
        "Làm giò chả",
        materials=(
            MaterialSpec("lean_meat", "Thịt nạc", Decimal("120000")),
            MaterialSpec("fat_meat", "Thịt mỡ", Decimal("80000")),
        ),
        products=(
            ProductSpec("sausage", "Giò lụa", Decimal("150000")),
            ProductSpec("cha_que", "Chả quế", Decimal("140000")),
        ),
    ),
    StationType.LIVESTOCK: StationConfig(
        StationType.LIVESTOCK,
        "Giết mổ lợn",
        materials=(MaterialSpec("live_pigs", "Lợn hơi"),),
        products=(
            ProductSpec("lean_meat", "Thịt nạc", Decimal("200000")),
            ProductSpec("bones", "Xương", Decimal("30000")),
            ProductSpec("ground_meat", "Thịt xay", Decimal("150000")),
            ProductSpec("organs", "Lòng", Decimal("80000")),
        ),
    ),
    StationType.POULTRY: StationConfig(
        StationType.POULTRY,
        "Giết mổ gia cầm",
        materials=(MaterialSpec("live_poultry", "Gia cầm sống"),),
        products=(ProductSpec("processed_meat", "Thịt gia cầm", Decimal("150000")),),
    ),
}


def get_station(station_type: StationType) -> StationConfig:
    return STATIONS[StationType(station_type)]


# ---------------------------------------------------------------------------
# Production-day arithmetic
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class InputLine:
    material: str
    quantity: Decimal
    price: Decimal


@dataclass(frozen=True)
class OutputLine:
    product: str
    produced: Decimal
    actual_output: Decimal
    price_per_unit: Decimal
    carried_over: Decimal = ZERO


@dataclass(frozen=True)
class OutputBalance:
    product: str
    carried_over: Decimal
    collected: Decimal
    remaining: Decimal
    value: Decimal


@dataclass(frozen=True)
class StationDay:
    outputs: Tuple[OutputBalance, ...]
    total_input_cost: Decimal
    total_output_value: Decimal
    profit: Decimal
    profit_margin: Decimal

    def remaining_by_product(self) -> Dict[str, Decimal]:
        return {o.product: o.remaining for o in self.outputs}


def output_balance(line: OutputLine) -> OutputBalance:
    collected = line.carried_over + line.produced
    return OutputBalance(
        product=line.product,
        carried_over=line.carried_over,
        collected=collected,
        remaining=max(ZERO, collected - line.actual_output),
        value=line.produced * line.price_per_unit,
    )


def profit_margin(profit: Decimal, input_cost: Decimal) -> Decimal:
    if input_cost <= 0:
        return ZERO
    return profit / input_cost * 100


def compute_station_day(
    inputs: Sequence[InputLine],
    outputs: Sequence[OutputLine],
    other_costs: Decimal = ZERO,
) -> StationDay:
    """Balances and financials of one production day.

    Carried-over product counts toward what is on hand but not toward the
    day's output value.
    """
    balances = tuple(output_balance(line) for line in outputs)
    input_cost = sum((i.quantity * i.price for i in inputs), ZERO) + other_costs
    output_value = sum((b.value for b in balances), ZERO)
    profit = output_value - input_cost
    return StationDay(
        outputs=balances,
        total_input_cost=input_cost,
        total_output_value=output_value,
        profit=profit,
        profit_margin=profit_margin(profit, input_cost),
    )


# ---------------------------------------------------------------------------
# Calendar helpers for weekly and monthly views
# ---------------------------------------------------------------------------

def week_dates(week: int, year: int) -> List[date]:
    """The seven dates of ``week``, where week 1 starts on the year's first Monday."""
    jan_first = date(year, 1, 1)
    days_to_monday = (7 - jan_first.weekday()) % 7
    first_monday = jan_first + timedelta(days=days_to_monday)
    start = first_monday + timedelta(weeks=week - 1)
    return [start + timedelta(days=i) for i in range(7)]


def day_name_vi(d: date) -> str:
    return DAY_NAMES_VI[(d.weekday() + 1) % 7]


def month_bounds(year: int, month: int) -> Tuple[date, date]:
    first = date(year, month, 1)
    if month == 12:
        next_first = date(year + 1, 1, 1)
    else:
        next_first = date(year, month + 1, 1)
    return first, next_first - timedelta(days=1)


def previous_months(year: int, month: int, count: int) -> List[Tuple[int, int]]:
    """``count`` (year, month) pairs ending at the given month, oldest first."""
    months = []
    y, m = year, month
    for _ in range(count):
        months.append((y, m))
        m -= 1
        if m == 0:
            y, m = y - 1, 12
    return list(reversed(months))


@dataclass
class ProductTotals:
    produced: Decimal = ZERO
    actual_output: Decimal = ZERO
    value: Decimal = ZERO
    remaining: Decimal = ZERO


@dataclass
class PeriodTotals:
    """Accumulator for weekly and monthly rollups."""

    products: Dict[str, ProductTotals] = field(default_factory=dict)
    input_quantity: Decimal = ZERO
    total_input_cost: Decimal = ZERO
    total_output_value: Decimal = ZERO
    profit: Decimal = ZERO
    days_recorded: int = 0

    @property
    def profit_margin(self) -> Decimal:
        return profit_margin(self.profit, self.total_input_cost)
