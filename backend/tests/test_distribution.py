"""Tests for distribution allocations and their approval workflow."""

from datetime import date
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from quartermaster.core.exceptions import (
    ConflictError,
    IllegalStateError,
    InsufficientUnitsError,
    NotFoundError,
    ValidationFailedError,
)
from quartermaster.models.distribution import (
    AllocationStatus,
    DistributionAllocation,
    IssueType,
    SlotStatus,
)
from quartermaster.models.unit import Unit
from quartermaster.schemas.distribution import (
    DistributionCreate,
    DistributionUpdate,
    IssueCreate,
    SlotPayload,
)
from quartermaster.services.distribution_service import (
    DistributionService,
    recipient_slots,
    resolve_slot_key,
)

DAY = date(2024, 3, 10)
SLOTS = ["unit1", "unit2", "unit3", "ceremonyUnit"]


def _create(service, item, **kwargs):
    data = DistributionCreate(
        date=kwargs.pop("day", DAY),
        lttp_item_id=item.id,
        total_suggested_quantity=kwargs.pop("total", Decimal("200")),
        **kwargs,
    )
    return service.create(data, user_id=1)


def _distribute_all(service, allocation_id, quantity=Decimal("10")):
    for slot in SLOTS:
        service.distribute_unit(allocation_id, slot, quantity, user_id=2)


# ============== Slot names ==============

class TestSlotKeys:
    def test_configured_order(self):
        assert recipient_slots() == SLOTS

    @pytest.mark.parametrize(
        "name,key",
        [
            ("unit1", "unit1"),
            ("UNIT2", "unit2"),
            ("thứ đoàn 3", "unit3"),
            ("ceremony", "ceremonyUnit"),
            ("Lễ đoàn hộ", "ceremonyUnit"),
        ],
    )
    def test_aliases(self, name, key):
        assert resolve_slot_key(name) == key

    def test_unknown_slot(self):
        with pytest.raises(ValidationFailedError):
            resolve_slot_key("unit9")


# ============== create ==============

class TestCreate:
    def test_binds_slots_by_code(self, db_session, sample_item, sample_units):
        allocation = _create(DistributionService(db_session), sample_item)

        assert allocation.overall_status == AllocationStatus.DRAFT.value
        assert allocation.version == 1
        assert allocation.requested_by == 1
        assert [s.slot_key for s in allocation.slots] == SLOTS
        assert [s.unit.code for s in allocation.slots] == ["TD1", "TD2", "TD3", "LDH"]
        assert [s.personnel_count for s in allocation.slots] == [120, 110, 100, 60]
        assert all(s.status == SlotStatus.PENDING.value for s in allocation.slots)

    def test_slot_payload_by_alias(self, db_session, sample_item, sample_units):
        allocation = _create(
            DistributionService(db_session), sample_item,
            units={"thứ đoàn 1": SlotPayload(suggested_quantity=Decimal("50"), personnel_count=90)},
        )
        slot = allocation.slot("unit1")
        assert slot.suggested_quantity == Decimal("50")
        assert slot.personnel_count == 90

    def test_falls_back_to_position(self, db_session, sample_item):
        units = [Unit(name=f"Đơn vị {i}", code=f"DV{i}", personnel=10 * i) for i in range(1, 5)]
        db_session.add_all(units)
        db_session.commit()

        allocation = _create(DistributionService(db_session), sample_item)
        assert [s.unit.code for s in allocation.slots] == ["DV1", "DV2", "DV3", "DV4"]

    def test_insufficient_units(self, db_session, sample_item, sample_units):
        sample_units[3].is_active = False
        db_session.commit()

        with pytest.raises(InsufficientUnitsError) as exc:
            _create(DistributionService(db_session), sample_item)
        assert exc.value.required == 4
        assert exc.value.available == 3

    def test_duplicate_item_and_date(self, db_session, sample_item, sample_units):
        service = DistributionService(db_session)
        _create(service, sample_item)
        with pytest.raises(ConflictError):
            _create(service, sample_item)
        assert db_session.query(DistributionAllocation).count() == 1

        other_day = _create(service, sample_item, day=date(2024, 3, 11))
        assert other_day.date == date(2024, 3, 11)

    def test_unknown_item(self, db_session, sample_units):
        with pytest.raises(NotFoundError):
            DistributionService(db_session).create(DistributionCreate(date=DAY, lttp_item_id=999))


# ============== Workflow ==============

class TestWorkflow:
    def test_distribute_requires_approval(self, db_session, sample_item, sample_units):
        service = DistributionService(db_session)
        allocation = _create(service, sample_item)
        with pytest.raises(IllegalStateError):
            service.distribute_unit(allocation.id, "unit1", Decimal("10"))

    def test_approve_moves_pending_slots(self, db_session, sample_item, sample_units):
        service = DistributionService(db_session)
        allocation = _create(service, sample_item)
        approved = service.approve(allocation.id, notes="Đồng ý", user_id=3)

        assert approved.overall_status == AllocationStatus.APPROVED.value
        assert approved.approved_by == 3
        assert approved.approval_notes == "Đồng ý"
        assert all(s.status == SlotStatus.APPROVED.value for s in approved.slots)
        assert approved.version == 2

    def test_distribute_prices_slot_and_starts(self, db_session, sample_item, sample_units):
        service = DistributionService(db_session)
        allocation = _create(service, sample_item)
        service.approve(allocation.id, user_id=3)

        allocation = service.distribute_unit(allocation.id, "unit1", Decimal("40"), user_id=2)
        slot = allocation.slot("unit1")
        assert slot.status == SlotStatus.DISTRIBUTED.value
        assert slot.amount == Decimal("800000")
        assert slot.received_by == 2
        assert allocation.overall_status == AllocationStatus.IN_PROGRESS.value
        assert allocation.started_at is not None
        assert allocation.total_actual_quantity == Decimal("40")
        assert allocation.total_amount == Decimal("800000")

    def test_full_completion(self, db_session, sample_item, sample_units):
        service = DistributionService(db_session)
        allocation = _create(service, sample_item)
        service.approve(allocation.id)
        _distribute_all(service, allocation.id)
        for slot in SLOTS[:-1]:
            allocation = service.complete_unit(allocation.id, slot)
            assert allocation.overall_status == AllocationStatus.IN_PROGRESS.value

        allocation = service.complete_unit(allocation.id, "ceremonyUnit")
        assert allocation.overall_status == AllocationStatus.COMPLETED.value
        assert allocation.total_actual_quantity == Decimal("40")
        completed_at = allocation.completed_at
        assert completed_at is not None

        allocation = service.report_issue(
            allocation.id, IssueCreate(type=IssueType.QUALITY, description="Bao bì rách")
        )
        assert allocation.completed_at == completed_at
        assert allocation.issues[0].type == "quality"

    def test_complete_requires_distributed_slot(self, db_session, sample_item, sample_units):
        service = DistributionService(db_session)
        allocation = _create(service, sample_item)
        service.approve(allocation.id)
        with pytest.raises(IllegalStateError):
            service.complete_unit(allocation.id, "unit1")

    def test_completed_slot_cannot_be_redistributed(self, db_session, sample_item, sample_units):
        service = DistributionService(db_session)
        allocation = _create(service, sample_item)
        service.approve(allocation.id)
        service.distribute_unit(allocation.id, "unit2", Decimal("5"))
        service.complete_unit(allocation.id, "unit2")
        with pytest.raises(IllegalStateError):
            service.distribute_unit(allocation.id, "unit2", Decimal("6"))

    def test_reject_needs_reason(self, db_session, sample_item, sample_units):
        service = DistributionService(db_session)
        allocation = _create(service, sample_item)
        with pytest.raises(ValidationFailedError):
            service.reject(allocation.id, "  ")

        rejected = service.reject(allocation.id, "Vượt định mức", user_id=3)
        assert rejected.overall_status == AllocationStatus.CANCELLED.value
        assert rejected.rejection_reason == "Vượt định mức"
        with pytest.raises(IllegalStateError):
            service.approve(allocation.id)

    def test_cannot_reject_after_approval(self, db_session, sample_item, sample_units):
        service = DistributionService(db_session)
        allocation = _create(service, sample_item)
        service.approve(allocation.id)
        with pytest.raises(IllegalStateError):
            service.reject(allocation.id, "Muộn")

    def test_reject_unknown_allocation_before_reason(self, db_session):
        with pytest.raises(NotFoundError):
            DistributionService(db_session).reject(999, "")


class TestUpdateAndDelete:
    def test_submit_for_approval(self, db_session, sample_item, sample_units):
        service = DistributionService(db_session)
        allocation = _create(service, sample_item)
        updated = service.update(
            allocation.id,
            DistributionUpdate(overall_status=AllocationStatus.PENDING_APPROVAL, notes="Gửi duyệt"),
            user_id=4,
        )
        assert updated.overall_status == AllocationStatus.PENDING_APPROVAL.value
        assert updated.distribution_notes == "Gửi duyệt"
        assert updated.version == 2

    def test_status_shortcut_rejected(self, db_session, sample_item, sample_units):
        service = DistributionService(db_session)
        allocation = _create(service, sample_item)
        with pytest.raises(IllegalStateError):
            service.update(allocation.id, DistributionUpdate(overall_status=AllocationStatus.APPROVED))

    def test_stale_version(self, db_session, sample_item, sample_units):
        service = DistributionService(db_session)
        allocation = _create(service, sample_item)
        service.update(allocation.id, DistributionUpdate(notes="v2", version=1))
        with pytest.raises(ConflictError):
            service.update(allocation.id, DistributionUpdate(notes="v3", version=1))

    def test_budget_variance(self, db_session, sample_item, sample_units):
        service = DistributionService(db_session)
        allocation = _create(service, sample_item)
        updated = service.update(
            allocation.id,
            DistributionUpdate.model_validate(
                {"budget": {"allocatedAmount": 4000000, "actualAmount": 3500000, "budgetPeriod": "daily"}}
            ),
        )
        assert updated.budget_variance == Decimal("-500000")
        assert updated.budget_period == "daily"

    def test_delete_draft(self, db_session, sample_item, sample_units):
        service = DistributionService(db_session)
        allocation = _create(service, sample_item)
        service.delete(allocation.id)
        with pytest.raises(NotFoundError):
            service.get(allocation.id)

    def test_delete_blocked_once_started(self, db_session, sample_item, sample_units):
        service = DistributionService(db_session)
        allocation = _create(service, sample_item)
        service.approve(allocation.id)
        service.distribute_unit(allocation.id, "unit1", Decimal("1"))
        before = service.get(allocation.id).version
        with pytest.raises(IllegalStateError):
            service.delete(allocation.id)

        db_session.expire_all()
        kept = service.get(allocation.id)
        assert kept.overall_status == AllocationStatus.IN_PROGRESS.value
        assert kept.version == before
        assert kept.slot("unit1").actual_quantity == Decimal("1")

    def test_delete_blocked_once_completed(self, db_session, sample_item, sample_units):
        service = DistributionService(db_session)
        allocation = _create(service, sample_item)
        service.approve(allocation.id)
        _distribute_all(service, allocation.id)
        for slot in SLOTS:
            service.complete_unit(allocation.id, slot)
        before = service.get(allocation.id).version

        with pytest.raises(IllegalStateError):
            service.delete(allocation.id)

        db_session.expire_all()
        kept = service.get(allocation.id)
        assert kept.overall_status == AllocationStatus.COMPLETED.value
        assert kept.version == before
        assert db_session.query(DistributionAllocation).count() == 1


class TestDailySummary:
    def test_efficiency(self, db_session, sample_item, perishable_item, sample_units):
        service = DistributionService(db_session)
        rice = _create(service, sample_item, total=Decimal("150"))
        greens = _create(service, perishable_item, total=Decimal("50"))
        for allocation in (rice, greens):
            service.approve(allocation.id)
        service.distribute_unit(rice.id, "unit1", Decimal("100"))
        service.distribute_unit(greens.id, "unit1", Decimal("50"))

        summary = service.daily_summary(DAY)
        assert len(summary["categories"]) == 2
        assert summary["totals"]["allocation_count"] == 2
        assert summary["totals"]["suggested_quantity"] == Decimal("200")
        assert summary["totals"]["actual_quantity"] == Decimal("150")
        assert summary["efficiency"] == Decimal("75")

    def test_empty_day(self, db_session):
        summary = DistributionService(db_session).daily_summary(DAY)
        assert summary["categories"] == []
        assert summary["efficiency"] == Decimal("0")


# ============== API ==============

class TestDistributionApi:
    def _create(self, client, headers, item):
        return client.post(
            "/api/lttp-distribution",
            json={
                "date": "2024-03-10",
                "lttpItemId": item.id,
                "totalSuggestedQuantity": 200,
                "units": {"unit1": {"suggestedQuantity": 50}},
            },
            headers=headers,
        )

    def test_create(self, client: TestClient, auth_headers, sample_item, sample_units):
        response = self._create(client, auth_headers, sample_item)
        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "Tạo phân bổ thành công"
        assert body["data"]["overallStatus"] == "draft"
        assert body["data"]["units"][0]["slotKey"] == "unit1"
        assert body["data"]["units"][0]["suggestedQuantity"] == 50
        assert body["data"]["units"][0]["unitCode"] == "TD1"

    def test_duplicate_is_409(self, client: TestClient, auth_headers, sample_item, sample_units):
        self._create(client, auth_headers, sample_item)
        response = self._create(client, auth_headers, sample_item)
        assert response.status_code == 409

    def test_approve_distribute_flow(self, client: TestClient, auth_headers, sample_item, sample_units):
        allocation_id = self._create(client, auth_headers, sample_item).json()["data"]["id"]

        response = client.patch(
            f"/api/lttp-distribution/{allocation_id}/approve",
            json={"approvalNotes": "OK"},
            headers=auth_headers,
        )
        assert response.status_code == 200
        assert response.json()["message"] == "Phê duyệt phân bổ thành công"
        assert response.json()["data"]["approvalFlow"]["approvalNotes"] == "OK"

        response = client.patch(
            f"/api/lttp-distribution/{allocation_id}/units/thứ đoàn 1/distribute",
            json={"actualQuantity": 45},
            headers=auth_headers,
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["overallStatus"] == "in_progress"
        assert data["totalAmount"] == 900000

    def test_reject_without_reason(self, client: TestClient, auth_headers, sample_item, sample_units):
        allocation_id = self._create(client, auth_headers, sample_item).json()["data"]["id"]
        response = client.patch(f"/api/lttp-distribution/{allocation_id}/reject", headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["message"] == "Cần cung cấp lý do từ chối"

    def test_reject_unknown_allocation_is_404(self, client: TestClient, auth_headers):
        response = client.patch("/api/lttp-distribution/999/reject", json={"rejectionReason": ""}, headers=auth_headers)
        assert response.status_code == 404

    def test_null_slot_fields_rejected(self, client: TestClient, auth_headers, sample_item, sample_units):
        allocation_id = self._create(client, auth_headers, sample_item).json()["data"]["id"]
        response = client.put(
            f"/api/lttp-distribution/{allocation_id}",
            json={"units": {"unit1": {"suggestedQuantity": None, "personnelCount": None}}},
            headers=auth_headers,
        )
        assert response.status_code == 400
        fields = {e["field"] for e in response.json()["errors"]}
        assert fields == {"units.unit1.suggestedQuantity", "units.unit1.personnelCount"}

        slot = client.get(f"/api/lttp-distribution/{allocation_id}", headers=auth_headers).json()["data"]["units"][0]
        assert slot["suggestedQuantity"] == 50
        assert slot["personnelCount"] == 120

    def test_invalid_unit_name(self, client: TestClient, auth_headers, sample_item, sample_units):
        allocation_id = self._create(client, auth_headers, sample_item).json()["data"]["id"]
        client.patch(f"/api/lttp-distribution/{allocation_id}/approve", headers=auth_headers)
        response = client.patch(
            f"/api/lttp-distribution/{allocation_id}/units/unit9/distribute",
            json={"actualQuantity": 1},
            headers=auth_headers,
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Đơn vị không hợp lệ"

    def test_list_and_summary(self, client: TestClient, auth_headers, sample_item, sample_units):
        self._create(client, auth_headers, sample_item)
        response = client.get("/api/lttp-distribution?date=2024-03-10", headers=auth_headers)
        assert response.status_code == 200
        assert len(response.json()["data"]) == 1

        response = client.get("/api/lttp-distribution/summary/daily?date=2024-03-10", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["data"]["totals"]["allocationCount"] == 1

    def test_delete(self, client: TestClient, auth_headers, sample_item, sample_units):
        allocation_id = self._create(client, auth_headers, sample_item).json()["data"]["id"]
        response = client.delete(f"/api/lttp-distribution/{allocation_id}", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["message"] == "Xóa phân bổ thành công"
        assert client.get(f"/api/lttp-distribution/{allocation_id}", headers=auth_headers).status_code == 404
