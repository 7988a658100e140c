from datetime import date, timedelta
from decimal import Decimal

import pytest

from tutorix.core.exceptions import (
    ForbiddenError,
    GatewayError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from tutorix.models.base.enums import FeeRecordStatus, GatewayOrderStatus
from tutorix.models.payment import GatewayOrder
from tutorix.services.payment import OrderService

from tests.support import KEY_ID, make_assignment, make_member, make_record, make_structure


@pytest.fixture
def service(db, gateway):
    return OrderService(db, gateway)


class TestCreateOrder:
    def test_creates_gateway_order_for_full_balance(self, service, db, coaching, record, razorpay_client):
        result = service.create_order(coaching.id, record.id, "student-1")

        assert result["amount_paise"] == 100000
        assert result["key"] == KEY_ID
        assert result["record"]["pay_amount"] == Decimal("1000.00")

        order = db.get(GatewayOrder, result["internal_order_id"])
        assert order.razorpay_order_id == result["order_id"]
        assert order.status is GatewayOrderStatus.CREATED
        assert order.record_ids == [record.id]
        assert razorpay_client.orders[result["order_id"]]["notes"]["record_id"] == record.id

    def test_reuses_open_order_with_same_amount(self, service, coaching, record, razorpay_client):
        first = service.create_order(coaching.id, record.id, "student-1")
        second = service.create_order(coaching.id, record.id, "student-1")

        assert second["order_id"] == first["order_id"]
        assert razorpay_client.calls.count("order.create") == 1

    def test_partial_amount_within_balance(self, service, coaching, record):
        result = service.create_order(coaching.id, record.id, "student-1", Decimal("600"))
        assert result["amount_paise"] == 60000

    def test_partial_amount_rejected_without_installments(self, service, db, coaching, student):
        structure = make_structure(db, coaching, name="Exam fee", allow_installments=False)
        record = make_record(db, make_assignment(db, coaching, student, structure))

        with pytest.raises(ValidationError):
            service.create_order(coaching.id, record.id, "student-1", Decimal("600"))

    def test_installment_amount_must_match(self, service, db, coaching, student):
        structure = make_structure(
            db, coaching, name="Course", allow_installments=True, installment_amounts=["400.00", "600.00"]
        )
        record = make_record(db, make_assignment(db, coaching, student, structure))

        assert service.create_order(coaching.id, record.id, "student-1", Decimal("400"))["amount_paise"] == 40000
        with pytest.raises(ValidationError):
            service.create_order(coaching.id, record.id, "student-1", Decimal("450"))

    def test_amount_above_balance_rejected(self, service, coaching, record):
        with pytest.raises(ValidationError):
            service.create_order(coaching.id, record.id, "student-1", Decimal("1000.01"))

    def test_paid_record_rejected(self, service, db, coaching, assignment):
        paid = make_record(db, assignment, paid_amount="1000.00", status=FeeRecordStatus.PAID)

        with pytest.raises(InvalidStateError):
            service.create_order(coaching.id, paid.id, "student-1")

    def test_waived_record_rejected(self, service, db, coaching, assignment):
        waived = make_record(db, assignment, status=FeeRecordStatus.WAIVED)

        with pytest.raises(InvalidStateError):
            service.create_order(coaching.id, waived.id, "student-1")

    def test_other_member_cannot_pay(self, service, db, coaching, record):
        make_member(db, coaching, "student-2", name="Ravi")

        with pytest.raises(ForbiddenError):
            service.create_order(coaching.id, record.id, "student-2")

    def test_missing_record(self, service, coaching):
        with pytest.raises(NotFoundError):
            service.create_order(coaching.id, "missing", "student-1")

    def test_gateway_failure_leaves_no_local_order(self, service, db, coaching, record, razorpay_client):
        razorpay_client.fail.add("order.create")

        with pytest.raises(GatewayError):
            service.create_order(coaching.id, record.id, "student-1")

        assert db.query(GatewayOrder).count() == 0

    def test_requires_activated_gateway(self, service, db, coaching, record):
        coaching.razorpay_activated = False
        db.commit()

        with pytest.raises(ForbiddenError):
            service.create_order(coaching.id, record.id, "student-1")


class TestCreateMultiOrder:
    def test_bundles_balances_in_due_date_order(self, service, db, coaching, assignment):
        feb = make_record(db, assignment, "500.00", due_date=date(2025, 2, 1), title="Feb")
        jan = make_record(db, assignment, "300.00", due_date=date(2025, 1, 1), title="Jan")

        result = service.create_multi_order(coaching.id, "student-1", [feb.id, jan.id])

        assert result["amount_paise"] == 80000
        assert [r["id"] for r in result["records"]] == [jan.id, feb.id]
        order = db.get(GatewayOrder, result["internal_order_id"])
        assert order.is_multi
        assert [(i.record_id, i.amount_paise) for i in order.items] == [(jan.id, 30000), (feb.id, 50000)]

    def test_unpayable_record_rejected(self, service, db, coaching, assignment, record):
        paid = make_record(db, assignment, paid_amount="1000.00", status=FeeRecordStatus.PAID)

        with pytest.raises(InvalidStateError):
            service.create_multi_order(coaching.id, "student-1", [record.id, paid.id])

    def test_unknown_record_rejected(self, service, coaching, record):
        with pytest.raises(NotFoundError):
            service.create_multi_order(coaching.id, "student-1", [record.id, "missing"])

    def test_too_many_records(self, service, coaching):
        with pytest.raises(ValidationError):
            service.create_multi_order(coaching.id, "student-1", [f"r{i}" for i in range(21)])


class TestMarkOrderFailed:
    def test_created_order_becomes_failed(self, service, db, coaching, record):
        created = service.create_order(coaching.id, record.id, "student-1")

        result = service.mark_order_failed(coaching.id, created["internal_order_id"], "Card declined", "student-1")

        assert result == {"ok": True, "status": "FAILED"}
        order = db.get(GatewayOrder, created["internal_order_id"])
        assert order.status is GatewayOrderStatus.FAILED
        assert order.failure_reason == "Card declined"

    def test_accepts_gateway_order_id(self, service, coaching, record):
        created = service.create_order(coaching.id, record.id, "student-1")

        assert service.mark_order_failed(coaching.id, created["order_id"], None, "student-1")["ok"]

    def test_never_raises(self, service, coaching, record):
        assert service.mark_order_failed(coaching.id, "missing", None, "student-1") == {"ok": False}
        assert service.mark_order_failed("no-such-coaching", "missing", None, "student-1") == {"ok": False}

    def test_other_users_order_untouched(self, service, db, coaching, record):
        created = service.create_order(coaching.id, record.id, "student-1")

        assert service.mark_order_failed(coaching.id, created["internal_order_id"], None, "intruder")["ok"] is False
        assert db.get(GatewayOrder, created["internal_order_id"]).status is GatewayOrderStatus.CREATED

    def test_failed_orders_listed_for_record(self, service, coaching, record):
        created = service.create_order(coaching.id, record.id, "student-1")
        service.mark_order_failed(coaching.id, created["internal_order_id"], "Dismissed", "student-1")

        failed = service.get_failed_orders(coaching.id, record.id, "student-1")

        assert [f["order_id"] for f in failed] == [created["order_id"]]
        assert failed[0]["amount"] == Decimal("1000.00")

    def test_failed_order_allows_new_order(self, service, coaching, record):
        first = service.create_order(coaching.id, record.id, "student-1")
        service.mark_order_failed(coaching.id, first["internal_order_id"], None, "student-1")

        second = service.create_order(coaching.id, record.id, "student-1")

        assert second["order_id"] != first["order_id"]


def test_config_exposes_public_key(service):
    assert service.get_config() == {"key_id": KEY_ID, "enabled": True}
