"""Tests for the daily inventory ledger (service and API)."""

from datetime import date, timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from quartermaster.core.exceptions import NotFoundError, ValidationFailedError
from quartermaster.models.inventory import DailyInventoryRecord, FreshnessStatus
from quartermaster.models.item import LttpItem
from quartermaster.schemas.inventory import InventoryUpsert
from quartermaster.services.inventory_service import InventoryService

TODAY = date(2024, 3, 10)


def _upsert(service, item, day=TODAY, **blocks):
    return service.create_or_update(
        InventoryUpsert.model_validate({"date": day, "lttpItemId": item.id, **blocks}),
        user_id=1,
    )


# ============== create_or_update ==============

class TestCreateOrUpdate:
    def test_creates_record_with_priced_blocks(self, db_session, sample_item):
        service = InventoryService(db_session, today=TODAY)
        record, created = _upsert(
            service, sample_item,
            previousDay={"quantity": 10},
            input={"quantity": 5},
            output={"quantity": 3},
        )

        assert created is True
        assert record.previous_amount == Decimal("200000")
        assert record.input_amount == Decimal("100000")
        assert record.output_amount == Decimal("60000")
        assert record.end_quantity == Decimal("12")
        assert record.end_amount == Decimal("240000")
        assert record.created_by == 1

    def test_input_expiry_defaults_to_shelf_life(self, db_session, sample_item):
        service = InventoryService(db_session, today=TODAY)
        record, _ = _upsert(service, sample_item, input={"quantity": 5})

        assert record.input_expiry_date == TODAY + timedelta(days=30)
        assert record.end_expiry_date == TODAY + timedelta(days=30)
        assert record.status == FreshnessStatus.GOOD.value

    def test_near_expiry_status_and_alert(self, db_session, sample_item):
        service = InventoryService(db_session, today=TODAY)
        record, _ = _upsert(
            service, sample_item,
            previousDay={"quantity": 10, "expiryDate": (TODAY + timedelta(days=2)).isoformat()},
            input={"quantity": 5},
            output={"quantity": 3},
        )

        assert record.end_quantity == Decimal("12")
        assert record.end_expiry_date == TODAY + timedelta(days=2)
        assert record.status == "Sắp hết hạn"
        assert len(record.alerts) == 1
        assert record.alerts[0].severity == "high"

    def test_repeat_write_does_not_duplicate_alert(self, db_session, perishable_item):
        service = InventoryService(db_session, today=TODAY)
        _upsert(service, perishable_item, input={"quantity": 5})
        record, created = _upsert(service, perishable_item, output={"quantity": 1})

        assert created is False
        assert record.end_quantity == Decimal("4")
        assert len(record.alerts) == 1

    def test_partial_patch_keeps_other_blocks(self, db_session, sample_item):
        service = InventoryService(db_session, today=TODAY)
        _upsert(service, sample_item, previousDay={"quantity": 10}, input={"quantity": 5})
        record, _ = _upsert(service, sample_item, output={"quantity": 2})

        assert record.previous_quantity == Decimal("10")
        assert record.input_quantity == Decimal("5")
        assert record.end_quantity == Decimal("13")

    def test_distributed_lines_set_output_quantity(self, db_session, sample_item, sample_units):
        service = InventoryService(db_session, today=TODAY)
        record, _ = _upsert(
            service, sample_item,
            previousDay={"quantity": 20},
            output={"distributedTo": [
                {"unitId": sample_units[0].id, "quantity": 4, "purpose": "meal"},
                {"unitId": sample_units[1].id, "quantity": 6},
            ]},
        )

        assert record.output_quantity == Decimal("10")
        assert record.output_amount == Decimal("200000")
        assert len(record.distributed_to) == 2
        assert record.distributed_to[0].amount == Decimal("80000")
        assert record.end_quantity == Decimal("10")

    def test_unknown_item(self, db_session):
        service = InventoryService(db_session, today=TODAY)
        with pytest.raises(NotFoundError):
            service.create_or_update(InventoryUpsert(date=TODAY, lttp_item_id=999))


# ============== Carry-over ==============

class TestCarryOver:
    def test_closing_balance_flows_into_next_day(self, db_session, sample_item):
        service = InventoryService(db_session, today=TODAY)
        _upsert(service, sample_item, day=TODAY + timedelta(days=1), input={"quantity": 2})
        _upsert(
            service, sample_item,
            previousDay={"quantity": 10},
            input={"quantity": 5},
            output={"quantity": 3},
        )

        next_day = service.find(TODAY + timedelta(days=1), sample_item.id)
        assert next_day.previous_quantity == Decimal("12")
        assert next_day.previous_amount == Decimal("240000")
        assert next_day.previous_expiry_date == TODAY + timedelta(days=30)
        assert next_day.end_quantity == Decimal("14")

    def test_only_one_hop(self, db_session, sample_item):
        service = InventoryService(db_session, today=TODAY)
        _upsert(service, sample_item, day=TODAY + timedelta(days=1))
        _upsert(service, sample_item, day=TODAY + timedelta(days=2))
        _upsert(service, sample_item, previousDay={"quantity": 10})

        assert service.find(TODAY + timedelta(days=1), sample_item.id).previous_quantity == Decimal("10")
        assert service.find(TODAY + timedelta(days=2), sample_item.id).previous_quantity == Decimal("0")

    def test_failed_propagation_keeps_primary_write(self, db_session, sample_item, monkeypatch):
        service = InventoryService(db_session, today=TODAY)
        _upsert(service, sample_item, day=TODAY + timedelta(days=1))

        def broken(self, next_record, record):
            raise RuntimeError("boom")

        monkeypatch.setattr(InventoryService, "_carry_into", broken)
        record, _ = _upsert(service, sample_item, previousDay={"quantity": 10})

        assert record.end_quantity == Decimal("10")
        stored = db_session.query(DailyInventoryRecord).filter(DailyInventoryRecord.date == TODAY).one()
        assert stored.end_quantity == Decimal("10")
        assert service.find(TODAY + timedelta(days=1), sample_item.id).previous_quantity == Decimal("0")


# ============== initialize / reports ==============

class TestInitialize:
    def test_seeds_from_previous_day(self, db_session, sample_item, perishable_item):
        service = InventoryService(db_session, today=TODAY)
        _upsert(service, sample_item, day=TODAY - timedelta(days=1), previousDay={"quantity": 12})

        inactive = LttpItem(name="Muối", category="Gia vị", unit="Kg", unit_price=Decimal("5000"), is_active=False)
        db_session.add(inactive)
        db_session.commit()

        assert service.initialize_for_date(TODAY) == 2
        seeded = service.find(TODAY, sample_item.id)
        assert seeded.previous_quantity == Decimal("12")
        assert seeded.end_quantity == Decimal("12")
        assert service.find(TODAY, perishable_item.id).previous_quantity == Decimal("0")
        assert service.find(TODAY, inactive.id) is None

    def test_is_idempotent(self, db_session, sample_item):
        service = InventoryService(db_session, today=TODAY)
        assert service.initialize_for_date(TODAY) == 1
        assert service.initialize_for_date(TODAY) == 0


class TestReports:
    def test_expiry_alerts(self, db_session, sample_item, perishable_item):
        service = InventoryService(db_session, today=TODAY)
        _upsert(service, sample_item, input={"quantity": 5})
        _upsert(service, perishable_item, input={"quantity": 5})

        entries, alert_date = service.expiry_alerts()
        assert alert_date == TODAY + timedelta(days=7)
        assert [e["lttp_item_id"] for e in entries] == [perishable_item.id]
        assert entries[0]["days_until_expiry"] == 2
        assert entries[0]["status"] == FreshnessStatus.NEAR_EXPIRY.value

    def test_expiry_alerts_skip_empty_stock(self, db_session, perishable_item):
        service = InventoryService(db_session, today=TODAY)
        _upsert(service, perishable_item, input={"quantity": 5}, output={"quantity": 5})
        entries, _ = service.expiry_alerts(days=7)
        assert entries == []

    def test_summary_by_category(self, db_session, sample_item, perishable_item):
        service = InventoryService(db_session, today=TODAY)
        _upsert(service, sample_item, input={"quantity": 5})
        _upsert(service, perishable_item, input={"quantity": 2})

        summary = service.summary(TODAY)
        assert summary["category_count"] == 2
        by_category = {row["category"]: row for row in summary["categories"]}
        assert by_category["Thực phẩm"]["input_amount"] == Decimal("100000")
        assert by_category["Rau củ quả"]["near_expiry_count"] == 1
        assert summary["totals"]["item_count"] == 2
        assert summary["totals"]["end_amount"] == Decimal("120000")

    def test_quality_report_groups(self, db_session, sample_item, perishable_item):
        service = InventoryService(db_session, today=TODAY)
        _upsert(service, sample_item, qualityCheck={"condition": "Tốt", "rating": 5})
        _upsert(service, perishable_item, qualityCheck={"condition": "Kém", "notes": "Dập lá"})

        groups = service.quality_report(TODAY - timedelta(days=7), TODAY)
        assert len(groups) == 2
        assert {(g["category"], g["condition"]) for g in groups} == {
            ("Thực phẩm", "Tốt"),
            ("Rau củ quả", "Kém"),
        }

    def test_range_rejects_inverted_dates(self, db_session):
        service = InventoryService(db_session, today=TODAY)
        with pytest.raises(ValidationFailedError):
            service.get_by_date_range(TODAY, TODAY - timedelta(days=1))

    def test_acknowledge_unknown_alert(self, db_session):
        with pytest.raises(NotFoundError):
            InventoryService(db_session).acknowledge_alert(42)


# ============== API ==============

class TestInventoryApi:
    def test_requires_auth(self, client: TestClient):
        response = client.get("/api/lttp/inventory")
        assert response.status_code == 401
        assert response.json()["success"] is False

    def test_create_then_update(self, client: TestClient, auth_headers, sample_item):
        payload = {
            "date": "2024-03-10",
            "lttpItemId": sample_item.id,
            "previousDay": {"quantity": 10},
            "input": {"quantity": 5},
            "output": {"quantity": 3},
        }
        response = client.post("/api/lttp/inventory", json=payload, headers=auth_headers)
        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Tạo dữ liệu tồn kho thành công"
        assert body["data"]["endOfDay"]["quantity"] == 12
        assert body["data"]["item"]["name"] == "Gạo tẻ"

        response = client.post(
            "/api/lttp/inventory",
            json={"date": "2024-03-10", "lttpItemId": sample_item.id, "output": {"quantity": 4}},
            headers=auth_headers,
        )
        assert response.status_code == 200
        assert response.json()["message"] == "Cập nhật dữ liệu tồn kho thành công"
        assert response.json()["data"]["endOfDay"]["quantity"] == 11

    def test_null_quantities_rejected(self, client: TestClient, auth_headers, sample_item):
        base = {"date": "2024-03-10", "lttpItemId": sample_item.id}
        client.post(
            "/api/lttp/inventory",
            json={**base, "previousDay": {"quantity": 10}, "input": {"quantity": 5}},
            headers=auth_headers,
        )

        response = client.post(
            "/api/lttp/inventory",
            json={**base, "input": {"quantity": None}, "output": {"amount": None}},
            headers=auth_headers,
        )
        assert response.status_code == 400
        body = response.json()
        assert body["message"] == "Dữ liệu không hợp lệ"
        assert {e["field"] for e in body["errors"]} == {"input.quantity", "output.amount"}

        response = client.get("/api/lttp/inventory?date=2024-03-10", headers=auth_headers)
        assert response.json()["data"][0]["endOfDay"]["quantity"] == 15

    def test_get_by_date(self, client: TestClient, auth_headers, sample_item):
        client.post(
            "/api/lttp/inventory",
            json={"date": "2024-03-10", "lttpItemId": sample_item.id, "input": {"quantity": 1}},
            headers=auth_headers,
        )
        response = client.get("/api/lttp/inventory?date=2024-03-10", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["date"] == "2024-03-10"
        assert len(response.json()["data"]) == 1

    def test_range_requires_both_dates(self, client: TestClient, auth_headers):
        response = client.get("/api/lttp/inventory/range?startDate=2024-03-01", headers=auth_headers)
        assert response.status_code == 400

    def test_initialize(self, client: TestClient, auth_headers, sample_item, perishable_item):
        response = client.post(
            "/api/lttp/inventory/initialize", json={"date": "2024-03-10"}, headers=auth_headers
        )
        assert response.status_code == 200
        assert response.json()["data"]["initializedCount"] == 2
        assert response.json()["message"].startswith("Khởi tạo thành công 2")

    def test_expiry_alerts_endpoint(self, client: TestClient, auth_headers, perishable_item):
        today = date.today()
        client.post(
            "/api/lttp/inventory",
            json={"date": today.isoformat(), "lttpItemId": perishable_item.id, "input": {"quantity": 3}},
            headers=auth_headers,
        )
        response = client.get("/api/lttp/inventory/expiry-alerts?days=7", headers=auth_headers)
        assert response.status_code == 200
        body = response.json()
        assert body["alertDate"] == (today + timedelta(days=7)).isoformat()
        assert body["data"][0]["itemName"] == "Rau cải"
        assert body["data"][0]["daysUntilExpiry"] == 2

    def test_acknowledge_alert(self, client: TestClient, auth_headers, perishable_item):
        created = client.post(
            "/api/lttp/inventory",
            json={"date": date.today().isoformat(), "lttpItemId": perishable_item.id, "input": {"quantity": 3}},
            headers=auth_headers,
        ).json()
        alert_id = created["data"]["alerts"][0]["id"]

        response = client.patch(f"/api/lttp/inventory/alerts/{alert_id}/acknowledge", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["data"]["acknowledged"] is True

    def test_summary_endpoint(self, client: TestClient, auth_headers, sample_item):
        client.post(
            "/api/lttp/inventory",
            json={"date": "2024-03-10", "lttpItemId": sample_item.id, "input": {"quantity": 5}},
            headers=auth_headers,
        )
        response = client.get("/api/lttp/inventory/summary?date=2024-03-10", headers=auth_headers)
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["categoryCount"] == 1
        assert data["totals"]["inputAmount"] == 100000

    def test_unknown_item_is_404(self, client: TestClient, auth_headers):
        response = client.post(
            "/api/lttp/inventory",
            json={"date": "2024-03-10", "lttpItemId": 999},
            headers=auth_headers,
        )
        assert response.status_code == 404
        assert response.json() == {"success": False, "message": "Không tìm thấy mặt hàng LTTP"}
