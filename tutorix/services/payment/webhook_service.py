"""
Gateway webhook processing.

Webhooks are the safety net for checkouts whose client never came back to
verify: a captured payment on a known, unrecorded order is credited through
the same path as an explicit verification.
"""

import json
from typing import Any, Callable, Dict, Optional

from sqlalchemy.orm import Session

from tutorix.core.exceptions import InvalidStateError, SignatureInvalidError
from tutorix.core.logging import get_logger, log_security_event
from tutorix.models.base.enums import GatewayOrderStatus, GatewayRefundStatus, TransferStatus
from tutorix.models.payment import WebhookLog
from tutorix.repositories.payment import (
    GatewayOrderRepository,
    GatewayRefundRepository,
    GatewayTransferRepository,
    WebhookLogRepository,
)
from tutorix.services.common import UnitOfWork
from tutorix.services.gateway import RazorpayGateway
from tutorix.services.notification import NotificationService, NotificationType
from tutorix.services.payment.verification_service import VerificationService
from tutorix.utils.datetime_utils import utc_now

logger = get_logger(__name__)


def _entity(payload: Dict[str, Any], name: str) -> Dict[str, Any]:
    return ((payload.get("payload") or {}).get(name) or {}).get("entity") or {}


class WebhookService:
    """Verifies, logs and dispatches gateway webhook events."""

    def __init__(
        self,
        db: Session,
        gateway: RazorpayGateway,
        verification: Optional[VerificationService] = None,
    ):
        self.db = db
        self.gateway = gateway
        self.verification = verification or VerificationService(db, gateway)
        self.orders = GatewayOrderRepository(db)
        self.gateway_refunds = GatewayRefundRepository(db)
        self.transfers = GatewayTransferRepository(db)
        self.logs = WebhookLogRepository(db)
        self.notifications = NotificationService(db)
        self._handlers: Dict[str, Callable[[Dict[str, Any]], str]] = {
            "payment.captured": self._on_payment_captured,
            "order.paid": self._on_payment_captured,
            "payment.failed": self._on_payment_failed,
            "refund.processed": self._on_refund_status,
            "refund.failed": self._on_refund_status,
            "transfer.processed": self._on_transfer_status,
            "transfer.failed": self._on_transfer_status,
        }

    def _store(self, **fields: Any) -> WebhookLog:
        with UnitOfWork(self.db) as uow:
            entry = uow.get_repo(WebhookLogRepository).add(WebhookLog(**fields))
        return entry

    def handle(self, body: bytes, signature: Optional[str], event_id: Optional[str] = None) -> Dict[str, Any]:
        """
        Process one webhook delivery.

        Raises ``SignatureInvalidError`` for a bad signature; every other
        outcome, including handler failures, is reported as handled so the
        gateway stops retrying.
        """
        try:
            payload = json.loads(body or b"{}")
        except ValueError:
            payload = {}
        if not isinstance(payload, dict):
            payload = {}
        event_type = str(payload.get("event") or "unknown")

        if not self.gateway.verify_webhook_signature(body, signature):
            log_security_event("webhook_signature_invalid", event_type=event_type, event_id=event_id)
            self._store(event_id=event_id, event_type=event_type, payload=payload, signature_valid=False)
            raise SignatureInvalidError("Invalid webhook signature")

        if event_id and self.logs.was_processed(event_id):
            logger.info("Ignoring redelivered webhook", extra={"event_type": event_type, "event_id": event_id})
            return {"status": "duplicate", "event": event_type}

        entry = self._store(event_id=event_id, event_type=event_type, payload=payload, signature_valid=True)

        handler = self._handlers.get(event_type)
        if handler is None:
            logger.info("Ignoring unhandled webhook event", extra={"event_type": event_type, "event_id": event_id})
            return {"status": "ignored", "event": event_type}

        try:
            outcome = handler(payload)
            error = None
        except Exception as exc:
            self.db.rollback()
            outcome = "error"
            error = str(exc) or type(exc).__name__
            logger.error("Webhook handler failed", extra={
                "event_type": event_type,
                "event_id": event_id,
                "error": error,
            })

        with UnitOfWork(self.db):
            entry.processed = error is None
            entry.error = error
        return {"status": outcome, "event": event_type}

    # ==================== Handlers ====================

    def _on_payment_captured(self, payload: Dict[str, Any]) -> str:
        payment = _entity(payload, "payment")
        order_id = payment.get("order_id") or _entity(payload, "order").get("id")
        if not order_id or not payment.get("id"):
            return "ignored"

        order = self.orders.get_by_gateway_id(order_id)
        if order is None:
            logger.info("Webhook for unknown order", extra={"order_id": order_id})
            return "ignored"
        if order.payment_recorded:
            return "duplicate"
        if payment.get("status") not in (None, "captured"):
            return "ignored"

        captured = int(payment.get("amount") or 0)
        if order.is_multi:
            valid = 0 < captured <= order.amount_paise
        else:
            valid = captured == order.amount_paise
        if not valid:
            raise InvalidStateError(
                f"Captured {captured} paise does not fit order amount {order.amount_paise} paise"
            )

        outcome = self.verification.record_captured_payment(order, payment["id"], captured)
        if outcome.already_processed:
            return "duplicate"
        logger.info("Payment recorded from webhook", extra={
            "order_id": order_id,
            "payment_id": payment["id"],
            "amount_paise": captured,
        })
        return "recorded"

    def _on_payment_failed(self, payload: Dict[str, Any]) -> str:
        payment = _entity(payload, "payment")
        order = self.orders.get_by_gateway_id(payment.get("order_id") or "")
        if order is None or order.status is not GatewayOrderStatus.CREATED:
            return "ignored"

        with UnitOfWork(self.db):
            order.status = GatewayOrderStatus.FAILED
            order.failure_reason = (payment.get("error_description") or "Payment failed")[:500]
            order.failed_at = utc_now()

        self.notifications.notify(
            order.coaching_id,
            order.user_id,
            NotificationType.PAYMENT_FAILED,
            "Payment failed",
            f"Your payment could not be completed: {order.failure_reason}",
        )
        return "failed"

    def _on_refund_status(self, payload: Dict[str, Any]) -> str:
        refund = _entity(payload, "refund")
        tracked = self.gateway_refunds.get_by_gateway_id(refund.get("id") or "")
        if tracked is None:
            logger.warning("Webhook for untracked refund", extra={"razorpay_refund_id": refund.get("id")})
            return "ignored"

        status = GatewayRefundStatus.PROCESSED if payload.get("event") == "refund.processed" \
            else GatewayRefundStatus.FAILED
        with UnitOfWork(self.db):
            tracked.status = status
            if status is GatewayRefundStatus.FAILED:
                tracked.failure_reason = (refund.get("error_description") or "Refund failed")[:500]

        if status is GatewayRefundStatus.FAILED:
            logger.error("Gateway refund failed", extra={
                "razorpay_refund_id": tracked.razorpay_refund_id,
                "record_id": tracked.record_id,
                "amount_paise": tracked.amount_paise,
            })
        return status.value.lower()

    def _on_transfer_status(self, payload: Dict[str, Any]) -> str:
        entity = _entity(payload, "transfer")
        transfer = self.transfers.get_by_gateway_id(entity.get("id") or "")
        if transfer is None:
            logger.warning("Webhook for untracked transfer", extra={"razorpay_transfer_id": entity.get("id")})
            return "ignored"

        if payload.get("event") == "transfer.processed":
            return "processed"

        error = entity.get("error") or {}
        with UnitOfWork(self.db):
            transfer.status = TransferStatus.FAILED
            transfer.error = (error.get("description") or "Transfer failed")[:500]
        logger.error("Route transfer failed after creation", extra={
            "razorpay_transfer_id": transfer.razorpay_transfer_id,
            "payment_id": transfer.razorpay_payment_id,
            "amount_paise": transfer.amount_paise,
        })
        return "failed"
