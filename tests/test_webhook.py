from decimal import Decimal

import pytest

from tutorix.core.exceptions import SignatureInvalidError
from tutorix.models.base.enums import FeeRecordStatus, GatewayOrderStatus, GatewayRefundStatus, TransferStatus
from tutorix.models.fee import FeePayment
from tutorix.models.payment import GatewayOrder, GatewayRefund, GatewayTransfer, WebhookLog
from tutorix.services.payment import OrderService, RefundService, VerificationService, WebhookService

from tests.support import sign_payment, sign_webhook, webhook_body


@pytest.fixture
def webhooks(db, gateway):
    return WebhookService(db, gateway)


@pytest.fixture
def order(db, gateway, coaching, record):
    return OrderService(db, gateway).create_order(coaching.id, record.id, "student-1")


def deliver(webhooks, body, event_id="evt_1"):
    return webhooks.handle(body, sign_webhook(body), event_id)


def captured(order_id, payment_id="pay_hook_1", amount=100000, status="captured"):
    return {"id": payment_id, "order_id": order_id, "amount": amount, "status": status}


def test_bad_signature_rejected_and_logged(webhooks, db, order, record):
    body = webhook_body("payment.captured", payment=captured(order["order_id"]))

    with pytest.raises(SignatureInvalidError):
        webhooks.handle(body, "forged", "evt_bad")

    log = db.query(WebhookLog).one()
    assert log.signature_valid is False
    assert log.event_type == "payment.captured"
    assert record.paid_amount == Decimal("0.00")


def test_captured_payment_recorded_once(webhooks, db, order, record):
    body = webhook_body("payment.captured", payment=captured(order["order_id"]))

    assert deliver(webhooks, body) == {"status": "recorded", "event": "payment.captured"}
    assert deliver(webhooks, body, "evt_2") == {"status": "duplicate", "event": "payment.captured"}

    assert record.status is FeeRecordStatus.PAID
    assert db.query(FeePayment).count() == 1
    assert all(log.processed for log in db.query(WebhookLog))


def test_webhook_after_client_verification_is_duplicate(webhooks, db, gateway, razorpay_client, coaching, order, record):
    payment_id = razorpay_client.capture(order["order_id"])
    VerificationService(db, gateway).verify_payment(
        coaching.id, record.id, order["order_id"], payment_id,
        sign_payment(order["order_id"], payment_id), "student-1",
    )

    body = webhook_body("payment.captured", payment=captured(order["order_id"], payment_id))

    assert deliver(webhooks, body)["status"] == "duplicate"
    assert db.query(FeePayment).count() == 1


def test_amount_mismatch_reported_as_error(webhooks, db, order, record):
    body = webhook_body("payment.captured", payment=captured(order["order_id"], amount=100))

    assert deliver(webhooks, body)["status"] == "error"

    log = db.query(WebhookLog).one()
    assert log.processed is False
    assert "does not fit" in log.error
    assert record.paid_amount == Decimal("0.00")


def test_unknown_order_ignored(webhooks):
    body = webhook_body("payment.captured", payment=captured("order_elsewhere"))

    assert deliver(webhooks, body)["status"] == "ignored"


def test_failed_payment_marks_order(webhooks, db, order):
    body = webhook_body("payment.failed", payment={
        "id": "pay_f", "order_id": order["order_id"], "status": "failed", "error_description": "Bank declined",
    })

    assert deliver(webhooks, body)["status"] == "failed"

    stored = db.get(GatewayOrder, order["internal_order_id"])
    assert stored.status is GatewayOrderStatus.FAILED
    assert stored.failure_reason == "Bank declined"


def test_unhandled_event_ignored(webhooks, db):
    body = webhook_body("settlement.processed", settlement={"id": "setl_1"})

    assert deliver(webhooks, body) == {"status": "ignored", "event": "settlement.processed"}
    assert db.query(WebhookLog).one().signature_valid is True


def test_refund_status_updates(webhooks, db, gateway, razorpay_client, coaching, order, record, admin):
    razorpay_client.refund_status = "pending"
    payment_id = razorpay_client.capture(order["order_id"])
    payment = VerificationService(db, gateway).verify_payment(
        coaching.id, record.id, order["order_id"], payment_id,
        sign_payment(order["order_id"], payment_id), "student-1",
    )["payment"]
    RefundService(db, gateway).initiate_online_refund(coaching.id, record.id, payment.id, Decimal("100"), None, "admin-1")
    mirror = db.query(GatewayRefund).one()
    assert mirror.status is GatewayRefundStatus.INITIATED

    body = webhook_body("refund.processed", refund={"id": mirror.razorpay_refund_id, "payment_id": payment_id})

    assert deliver(webhooks, body)["status"] == "processed"
    assert mirror.status is GatewayRefundStatus.PROCESSED


def test_malformed_body_still_needs_signature(webhooks):
    with pytest.raises(SignatureInvalidError):
        webhooks.handle(b"not json", None)


def test_redelivered_event_id_not_handled_again(webhooks, db, order, record):
    body = webhook_body("payment.captured", payment=captured(order["order_id"]))

    assert deliver(webhooks, body, "evt_same")["status"] == "recorded"
    assert deliver(webhooks, body, "evt_same") == {"status": "duplicate", "event": "payment.captured"}

    assert db.query(WebhookLog).count() == 1
    assert db.query(FeePayment).count() == 1


def test_failed_delivery_is_handled_again_on_redelivery(webhooks, db, order):
    body = webhook_body("payment.captured", payment=captured(order["order_id"], amount=100))

    assert deliver(webhooks, body, "evt_retry")["status"] == "error"
    assert deliver(webhooks, body, "evt_retry")["status"] == "error"

    assert db.query(WebhookLog).count() == 2


class TestTransferEvents:

    @pytest.fixture
    def transfer(self, db, coaching):
        transfer = GatewayTransfer(
            coaching_id=coaching.id,
            payment_id="fee-payment-1",
            razorpay_payment_id="pay_routed",
            razorpay_transfer_id="trf_1",
            account_id="acc_linked",
            amount_paise=9900,
            platform_fee_paise=100,
            status=TransferStatus.CREATED,
        )
        db.add(transfer)
        db.commit()
        return transfer

    def test_failed_transfer_marked_for_retry(self, webhooks, db, transfer):
        body = webhook_body("transfer.failed", transfer={
            "id": "trf_1", "source": "pay_routed", "error": {"description": "Linked account suspended"},
        })

        assert deliver(webhooks, body)["status"] == "failed"

        assert transfer.status is TransferStatus.FAILED
        assert transfer.error == "Linked account suspended"

    def test_processed_transfer_acknowledged(self, webhooks, transfer):
        body = webhook_body("transfer.processed", transfer={"id": "trf_1", "source": "pay_routed"})

        assert deliver(webhooks, body)["status"] == "processed"
        assert transfer.status is TransferStatus.CREATED

    def test_untracked_transfer_ignored(self, webhooks, db, transfer):
        body = webhook_body("transfer.failed", transfer={"id": "trf_other"})

        assert deliver(webhooks, body)["status"] == "ignored"
        assert transfer.status is TransferStatus.CREATED
