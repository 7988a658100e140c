import json
from datetime import date, datetime
from decimal import Decimal

import pytest

from tutorix.models.base.enums import GatewayOrderStatus, PaymentMode, TransferStatus
from tutorix.models.fee import FeePayment
from tutorix.models.payment import GatewayOrder, GatewayTransfer
from tutorix.services.payment import reconciliation_service
from tutorix.services.payment.reconciliation_service import ReconciliationService

from tests.support import make_record

DAY = date(2025, 7, 1)
DAY_START = 1751308200  # 2025-07-01 00:00 IST


@pytest.fixture
def recon(db, gateway):
    return ReconciliationService(db, gateway)


def ledger_row(db, record, payment_id, amount, paid_at=datetime(2025, 7, 1, 6, 0)):
    row = FeePayment(
        coaching_id=record.coaching_id,
        record_id=record.id,
        amount=Decimal(amount),
        mode=PaymentMode.RAZORPAY,
        razorpay_payment_id=payment_id,
        receipt_no=f"TXR/2025-26/{payment_id[-4:]}",
        paid_at=paid_at,
    )
    db.add(row)
    db.commit()
    return row


def gateway_payment(razorpay_client, amount, offset=3600, status="captured"):
    return razorpay_client.capture(None, amount=amount, status=status, created_at=DAY_START + offset)


def test_clean_day(recon, db, razorpay_client, record):
    pid = gateway_payment(razorpay_client, 50000)
    ledger_row(db, record, pid, "500.00")

    report = recon.reconcile_day(DAY)

    assert report["missing_in_db"] == []
    assert report["missing_in_gateway"] == []
    assert report["amount_mismatches"] == []
    assert report["summary"] == {
        "gateway_count": 1,
        "db_count": 1,
        "gateway_total_paise": 50000,
        "db_total_paise": 50000,
    }


def test_multi_pay_rows_summed(recon, db, razorpay_client, assignment, record):
    other = make_record(db, assignment, "300.00", title="Tuition - Feb", due_date=date(2030, 2, 1))
    pid = gateway_payment(razorpay_client, 80000)
    ledger_row(db, record, pid, "500.00")
    ledger_row(db, other, pid, "300.00")

    assert recon.reconcile_day(DAY)["amount_mismatches"] == []


def test_discrepancies_reported(recon, db, razorpay_client, record):
    unrecorded = gateway_payment(razorpay_client, 20000)
    short = gateway_payment(razorpay_client, 30000, offset=7200)
    gateway_payment(razorpay_client, 10000, status="failed")
    ledger_row(db, record, short, "290.00")
    ledger_row(db, record, "pay_local_only", "100.00")

    report = recon.reconcile_day(DAY)

    assert report["missing_in_db"] == [unrecorded]
    assert report["missing_in_gateway"] == ["pay_local_only"]
    assert report["amount_mismatches"] == [{
        "razorpay_payment_id": short,
        "gateway_paise": 30000,
        "db_paise": 29000,
        "difference_paise": 1000,
    }]


def test_rounding_within_tolerance(recon, db, razorpay_client, record):
    pid = gateway_payment(razorpay_client, 50001)
    ledger_row(db, record, pid, "500.00")

    assert recon.reconcile_day(DAY)["amount_mismatches"] == []


def test_capture_recorded_after_midnight_still_matches(recon, db, razorpay_client, record):
    pid = gateway_payment(razorpay_client, 50000, offset=86399)
    ledger_row(db, record, pid, "500.00", paid_at=datetime(2025, 7, 1, 18, 31))

    report = recon.reconcile_day(DAY)

    assert report["missing_in_db"] == []
    assert report["missing_in_gateway"] == []


def test_other_days_excluded(recon, db, razorpay_client, record):
    gateway_payment(razorpay_client, 50000, offset=-60)
    ledger_row(db, record, "pay_yesterday", "500.00", paid_at=datetime(2025, 6, 30, 18, 0))

    report = recon.reconcile_day(DAY)

    assert report["summary"]["gateway_count"] == 0
    assert report["summary"]["db_count"] == 0


def test_surplus_capture_reported_once(recon, db, razorpay_client, coaching, record):
    pid = gateway_payment(razorpay_client, 80000)
    ledger_row(db, record, pid, "700.00")
    db.add(GatewayOrder(
        coaching_id=coaching.id,
        user_id="student-1",
        razorpay_order_id="order_surplus",
        amount_paise=80000,
        receipt="multi_surplus",
        is_multi=True,
        status=GatewayOrderStatus.PAID,
        payment_recorded=True,
        razorpay_payment_id=pid,
        paid_at=datetime(2025, 7, 1, 6, 0),
        unallocated_paise=10000,
    ))
    db.commit()

    report = recon.reconcile_day(DAY)

    assert report["unallocated_captures"] == [{
        "razorpay_order_id": "order_surplus",
        "razorpay_payment_id": pid,
        "unallocated_paise": 10000,
    }]
    assert report["amount_mismatches"] == []
    assert report["missing_in_db"] == []

def test_retry_failed_transfers(recon, db, razorpay_client, coaching):
    for n in range(2):
        db.add(GatewayTransfer(
            coaching_id=coaching.id,
            payment_id=f"fee-payment-{n}",
            razorpay_payment_id=f"pay_{n}",
            account_id="acc_linked",
            amount_paise=9900,
            platform_fee_paise=100,
            status=TransferStatus.FAILED,
            error="insufficient balance",
        ))
    db.commit()

    assert recon.retry_failed_transfers() == {"retried": 2, "succeeded": 2, "still_failed": 0}
    assert recon.retry_failed_transfers() == {"retried": 0, "succeeded": 0, "still_failed": 0}


def test_main_exit_code(monkeypatch, capsys, db, gateway, razorpay_client, record):
    gateway_payment(razorpay_client, 50000)
    monkeypatch.setattr(reconciliation_service, "SessionLocal", lambda: db)
    monkeypatch.setattr(reconciliation_service, "get_gateway", lambda: gateway)
    monkeypatch.setattr(reconciliation_service, "configure_logging", lambda: None)

    code = reconciliation_service.main(["--date", DAY.isoformat()])

    assert code == 1
    output = json.loads(capsys.readouterr().out)
    assert len(output["reconciliation"]["missing_in_db"]) == 1
