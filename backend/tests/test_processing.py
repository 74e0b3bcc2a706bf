"""Tests for processing station ledgers and their rollups."""

from datetime import date
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from quartermaster.core.exceptions import NotFoundError, ValidationFailedError
from quartermaster.models.processing import ProcessingRecord, StationType
from quartermaster.schemas.processing import ProcessingDailyUpsert
from quartermaster.services.processing_service import ProcessingService

MONDAY = date(2024, 1, 8)
TUESDAY = date(2024, 1, 9)
WEDNESDAY = date(2024, 1, 10)


def _tofu_day(soybeans=10, tofu=(20, 15), by_product=(4, 4), other_costs=30000):
    return ProcessingDailyUpsert.model_validate(
        {
            "inputs": [{"material": "soybeans", "quantity": soybeans, "price": 12000}],
            "outputs": [
                {"product": "tofu", "produced": tofu[0], "actualOutput": tofu[1]},
                {"product": "by_product", "produced": by_product[0], "actualOutput": by_product[1]},
            ],
            "otherCosts": other_costs,
        }
    )


def _output(view, product):
    return next(o for o in view["outputs"] if o["product"] == product)


class TestDailyLedger:
    def test_upsert_computes_financials(self, db_session, sample_units):
        unit = sample_units[0]
        view = ProcessingService(db_session).upsert_daily(
            StationType.TOFU, MONDAY, unit.id, _tofu_day(), user_id=5
        )

        assert view["is_recorded"] is True
        assert view["day_name"] == "Thứ 2"
        assert view["processed_by"] == 5
        assert view["financial"]["total_input_cost"] == Decimal("150000")
        assert view["financial"]["total_output_value"] == Decimal("720000")
        assert view["financial"]["profit"] == Decimal("570000")
        assert view["financial"]["profit_margin"] == Decimal("380")
        assert _output(view, "tofu")["remaining"] == Decimal("5")

    def test_next_day_carries_unsold_product(self, db_session, sample_units):
        service = ProcessingService(db_session)
        unit = sample_units[0]
        service.upsert_daily(StationType.TOFU, MONDAY, unit.id, _tofu_day())

        view = service.upsert_daily(
            StationType.TOFU, TUESDAY, unit.id, _tofu_day(soybeans=0, tofu=(10, 12), other_costs=0)
        )
        tofu = _output(view, "tofu")
        assert tofu["carried_over"] == Decimal("5")
        assert tofu["collected"] == Decimal("15")
        assert tofu["remaining"] == Decimal("3")
        # Carried product is not revenue
        assert tofu["value"] == Decimal("350000")

    def test_rewriting_a_day_refreshes_the_next(self, db_session, sample_units):
        service = ProcessingService(db_session)
        unit = sample_units[0]
        service.upsert_daily(StationType.TOFU, TUESDAY, unit.id, _tofu_day(other_costs=0))
        service.upsert_daily(StationType.TOFU, MONDAY, unit.id, _tofu_day(tofu=(20, 12)))

        tuesday = service.get_daily(StationType.TOFU, TUESDAY, unit.id)
        assert _output(tuesday, "tofu")["carried_over"] == Decimal("8")
        assert _output(tuesday, "tofu")["remaining"] == Decimal("13")

    def test_upsert_replaces_existing_day(self, db_session, sample_units):
        service = ProcessingService(db_session)
        unit = sample_units[0]
        service.upsert_daily(StationType.TOFU, MONDAY, unit.id, _tofu_day())
        view = service.upsert_daily(StationType.TOFU, MONDAY, unit.id, _tofu_day(soybeans=20))

        assert db_session.query(ProcessingRecord).count() == 1
        assert len(view["inputs"]) == 1
        assert view["inputs"][0]["quantity"] == Decimal("20")
        assert view["financial"]["total_input_cost"] == Decimal("270000")

    def test_default_material_prices(self, db_session, sample_units):
        data = ProcessingDailyUpsert.model_validate(
            {"inputs": [{"material": "lean_meat", "quantity": 2}]}
        )
        view = ProcessingService(db_session).upsert_daily(
            StationType.SAUSAGE, MONDAY, sample_units[0].id, data
        )
        lean = next(i for i in view["inputs"] if i["material"] == "lean_meat")
        assert lean["price"] == Decimal("120000")
        assert lean["cost"] == Decimal("240000")
        assert [o["product"] for o in view["outputs"]] == ["sausage", "cha_que"]

    def test_unrecorded_day(self, db_session, sample_units):
        service = ProcessingService(db_session)
        unit = sample_units[0]
        service.upsert_daily(StationType.TOFU, MONDAY, unit.id, _tofu_day())

        view = service.get_daily(StationType.TOFU, TUESDAY, unit.id)
        assert view["is_recorded"] is False
        assert view["inputs"][0]["price"] == Decimal("0")
        assert _output(view, "tofu")["price_per_unit"] == Decimal("35000")
        assert _output(view, "tofu")["carried_over"] == Decimal("5")
        assert view["financial"]["profit"] == Decimal("0")

    def test_units_are_separate_ledgers(self, db_session, sample_units):
        service = ProcessingService(db_session)
        service.upsert_daily(StationType.TOFU, MONDAY, sample_units[0].id, _tofu_day())
        view = service.get_daily(StationType.TOFU, TUESDAY, sample_units[1].id)
        assert _output(view, "tofu")["carried_over"] == Decimal("0")

    def test_unknown_material(self, db_session, sample_units):
        data = ProcessingDailyUpsert.model_validate({"inputs": [{"material": "live_pigs", "quantity": 1}]})
        with pytest.raises(ValidationFailedError):
            ProcessingService(db_session).upsert_daily(StationType.TOFU, MONDAY, sample_units[0].id, data)

    def test_duplicate_product(self, db_session, sample_units):
        data = ProcessingDailyUpsert.model_validate(
            {"outputs": [{"product": "tofu", "produced": 1}, {"product": "tofu", "produced": 2}]}
        )
        with pytest.raises(ValidationFailedError):
            ProcessingService(db_session).upsert_daily(StationType.TOFU, MONDAY, sample_units[0].id, data)

    def test_unknown_unit(self, db_session):
        with pytest.raises(NotFoundError):
            ProcessingService(db_session).upsert_daily(StationType.TOFU, MONDAY, 999, _tofu_day())


class TestWeeklyTracking:
    def test_week_matches_daily_views(self, db_session, sample_units):
        service = ProcessingService(db_session)
        unit = sample_units[0]
        service.upsert_daily(
            StationType.TOFU, WEDNESDAY, unit.id,
            _tofu_day(soybeans=5, tofu=(10, 10), by_product=(0, 0), other_costs=0),
        )
        service.upsert_daily(StationType.TOFU, MONDAY, unit.id, _tofu_day())

        tracking = service.weekly_tracking(StationType.TOFU, 2, 2024, unit.id)
        assert tracking["start_date"] == MONDAY
        assert tracking["end_date"] == date(2024, 1, 14)
        assert len(tracking["days"]) == 7
        assert [d["is_recorded"] for d in tracking["days"]] == [True, False, True, False, False, False, False]

        # Tuesday has no record, so Monday's leftovers stop there
        tuesday, wednesday = tracking["days"][1], tracking["days"][2]
        assert _output(tuesday, "tofu")["carried_over"] == Decimal("5")
        assert _output(wednesday, "tofu")["carried_over"] == Decimal("0")
        assert _output(wednesday, "tofu")["remaining"] == Decimal("0")

        for day, view in zip((MONDAY, TUESDAY, WEDNESDAY), tracking["days"]):
            daily = service.get_daily(StationType.TOFU, day, unit.id)
            assert view["outputs"] == daily["outputs"]
            assert view["financial"] == daily["financial"]

        totals = tracking["totals"]
        assert totals["days_recorded"] == 2
        assert totals["input_quantity"] == Decimal("15")
        assert totals["total_input_cost"] == Decimal("210000")
        assert totals["total_output_value"] == Decimal("1070000")
        assert totals["profit"] == Decimal("860000")
        assert totals["products"]["tofu"]["produced"] == Decimal("30")
        assert totals["products"]["tofu"]["remaining"] == Decimal("0")

    def test_closing_remaining_is_last_day(self, db_session, sample_units):
        service = ProcessingService(db_session)
        unit = sample_units[0]
        service.upsert_daily(StationType.TOFU, date(2024, 1, 13), unit.id, _tofu_day())

        tracking = service.weekly_tracking(StationType.TOFU, 2, 2024, unit.id)
        sunday = tracking["days"][-1]
        assert _output(sunday, "tofu")["carried_over"] == Decimal("5")
        assert tracking["totals"]["products"]["tofu"]["remaining"] == Decimal("5")

    def test_empty_week(self, db_session, sample_units):
        tracking = ProcessingService(db_session).weekly_tracking(
            StationType.POULTRY, 1, 2024, sample_units[0].id
        )
        assert tracking["totals"]["days_recorded"] == 0
        assert tracking["totals"]["profit_margin"] == Decimal("0")

    @pytest.mark.parametrize("week,year", [(0, 2024), (54, 2024), (10, 1999), (10, 2101)])
    def test_bounds(self, db_session, sample_units, week, year):
        with pytest.raises(ValidationFailedError):
            ProcessingService(db_session).weekly_tracking(StationType.TOFU, week, year, sample_units[0].id)


class TestMonthlySummary:
    def test_months_oldest_first(self, db_session, sample_units):
        service = ProcessingService(db_session)
        unit = sample_units[0]
        service.upsert_daily(StationType.TOFU, MONDAY, unit.id, _tofu_day())
        service.upsert_daily(StationType.TOFU, date(2024, 2, 5), unit.id, _tofu_day(other_costs=0))

        summary = service.monthly_summary(StationType.TOFU, 2, 2024, unit.id, month_count=3)
        assert [m["label"] for m in summary["months"]] == ["12/2023", "01/2024", "02/2024"]
        december, january, february = summary["months"]
        assert december["days_recorded"] == 0
        assert january["profit"] == Decimal("570000")
        assert january["products"]["tofu"]["remaining"] == Decimal("5")
        assert february["profit"] == Decimal("600000")
        assert summary["totals"]["days_recorded"] == 2
        assert summary["totals"]["profit"] == Decimal("1170000")

    def test_month_count_defaults_and_clamps(self, db_session, sample_units):
        service = ProcessingService(db_session)
        unit_id = sample_units[0].id
        assert len(service.monthly_summary(StationType.SALT, 6, 2024, unit_id)["months"]) == 6
        assert len(service.monthly_summary(StationType.SALT, 6, 2024, unit_id, month_count=40)["months"]) == 12
        assert len(service.monthly_summary(StationType.SALT, 6, 2024, unit_id, month_count=-3)["months"]) == 1

    def test_invalid_month(self, db_session, sample_units):
        with pytest.raises(ValidationFailedError):
            ProcessingService(db_session).monthly_summary(StationType.SALT, 13, 2024, sample_units[0].id)


# ============== API ==============

class TestProcessingApi:
    def test_stations(self, client: TestClient, auth_headers):
        response = client.get("/api/processing-station/stations", headers=auth_headers)
        assert response.status_code == 200
        stations = {s["stationType"]: s for s in response.json()["data"]}
        assert set(stations) == {t.value for t in StationType}
        assert stations["tofu"]["products"][0]["defaultPrice"] == 35000

    def test_manager_writes_own_unit(self, client: TestClient, station_manager_headers, sample_units):
        response = client.put(
            "/api/processing-station/tofu/daily/2024-01-08",
            json=_tofu_day().model_dump(mode="json", by_alias=True),
            headers=station_manager_headers,
        )
        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Cập nhật dữ liệu trạm chế biến thành công"
        assert body["data"]["unitId"] == sample_units[0].id
        assert body["data"]["financial"]["profit"] == 570000
        assert body["data"]["dayName"] == "Thứ 2"

    def test_unit_assistant_cannot_write(self, client: TestClient, unit_assistant_headers):
        response = client.put(
            "/api/processing-station/tofu/daily/2024-01-08",
            json={},
            headers=unit_assistant_headers,
        )
        assert response.status_code == 403
        assert response.json() == {"success": False, "message": "Không có quyền thực hiện thao tác này"}

    def test_unit_required_without_token_unit(self, client: TestClient, auth_headers):
        response = client.get("/api/processing-station/tofu/daily/2024-01-08", headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["message"] == "Cần cung cấp unitId"

    def test_explicit_unit(self, client: TestClient, auth_headers, sample_units):
        response = client.get(
            f"/api/processing-station/salt/daily/2024-01-08?unitId={sample_units[1].id}",
            headers=auth_headers,
        )
        assert response.status_code == 200
        assert response.json()["data"]["isRecorded"] is False
        assert response.json()["data"]["outputs"][0]["product"] == "pickled_cabbage"

    def test_unknown_station(self, client: TestClient, station_manager_headers):
        response = client.get("/api/processing-station/bakery/daily/2024-01-08", headers=station_manager_headers)
        assert response.status_code == 400
        assert response.json()["message"] == "Dữ liệu không hợp lệ"

    def test_weekly_bounds(self, client: TestClient, station_manager_headers):
        response = client.get(
            "/api/processing-station/tofu/weekly?week=60&year=2024", headers=station_manager_headers
        )
        assert response.status_code == 400

    def test_monthly(self, client: TestClient, station_manager_headers):
        response = client.get(
            "/api/processing-station/livestock/monthly?month=3&year=2024&monthCount=2",
            headers=station_manager_headers,
        )
        assert response.status_code == 200
        months = response.json()["data"]["months"]
        assert [m["label"] for m in months] == ["02/2024", "03/2024"]
        assert set(months[0]["products"]) == {"lean_meat", "bones", "ground_meat", "organs"}
