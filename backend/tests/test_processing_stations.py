"""Tests for station configuration and production-day arithmetic."""

from datetime import date
from decimal import Decimal

from quartermaster.models.processing import StationType
from quartermaster.services.processing_stations import (
    STATIONS,
    InputLine,
    OutputLine,
    compute_station_day,
    day_name_vi,
    get_station,
    month_bounds,
    output_balance,
    previous_months,
    week_dates,
)


class TestStationConfig:
    def test_all_station_types_configured(self):
        assert set(STATIONS) == set(StationType)

    def test_get_station_accepts_value(self):
        config = get_station("tofu")
        assert config.station_type == StationType.TOFU
        assert config.material("soybeans") is not None
        assert config.product("tofu").default_price == Decimal("35000")
        assert config.product("sausage") is None

    def test_sausage_has_priced_materials(self):
        config = get_station(StationType.SAUSAGE)
        assert config.material("lean_meat").default_price == Decimal("120000")
        assert [p.code for p in config.products] == ["sausage", "cha_que"]


class TestOutputBalance:
    def test_carry_over_adds_to_collected(self):
        balance = output_balance(
            OutputLine("tofu", Decimal("20"), Decimal("18"), Decimal("35000"), carried_over=Decimal("5"))
        )
        assert balance.collected == Decimal("25")
        assert balance.remaining == Decimal("7")
        # Only today's production is valued
        assert balance.value == Decimal("700000")

    def test_remaining_never_negative(self):
        balance = output_balance(OutputLine("tofu", Decimal("5"), Decimal("8"), Decimal("35000")))
        assert balance.remaining == Decimal("0")


class TestComputeStationDay:
    def test_financials(self):
        day = compute_station_day(
            [InputLine("soybeans", Decimal("10"), Decimal("12000"))],
            [
                OutputLine("tofu", Decimal("20"), Decimal("20"), Decimal("35000")),
                OutputLine("by_product", Decimal("4"), Decimal("4"), Decimal("5000")),
            ],
            other_costs=Decimal("30000"),
        )
        assert day.total_input_cost == Decimal("150000")
        assert day.total_output_value == Decimal("720000")
        assert day.profit == Decimal("570000")
        assert day.profit_margin == Decimal("380")
        assert day.remaining_by_product() == {"tofu": Decimal("0"), "by_product": Decimal("0")}

    def test_zero_cost_has_zero_margin(self):
        day = compute_station_day([], [OutputLine("tofu", Decimal("1"), Decimal("0"), Decimal("35000"))])
        assert day.total_input_cost == Decimal("0")
        assert day.profit == Decimal("35000")
        assert day.profit_margin == Decimal("0")


class TestCalendar:
    def test_week_one_starts_on_first_monday(self):
        # 2024-01-01 is a Monday, 2023-01-01 a Sunday
        assert week_dates(1, 2024)[0] == date(2024, 1, 1)
        assert week_dates(1, 2023)[0] == date(2023, 1, 2)

    def test_week_has_seven_consecutive_days(self):
        dates = week_dates(2, 2024)
        assert dates[0] == date(2024, 1, 8)
        assert dates[-1] == date(2024, 1, 14)
        assert len(dates) == 7

    def test_day_names(self):
        assert day_name_vi(date(2024, 1, 1)) == "Thứ 2"
        assert day_name_vi(date(2024, 1, 7)) == "Chủ nhật"

    def test_month_bounds(self):
        assert month_bounds(2024, 2) == (date(2024, 2, 1), date(2024, 2, 29))
        assert month_bounds(2023, 12) == (date(2023, 12, 1), date(2023, 12, 31))

    def test_previous_months_cross_year(self):
        assert previous_months(2024, 2, 3) == [(2023, 12), (2024, 1), (2024, 2)]
