"""Online payment services: orders, verification, refunds, settlement and reconciliation."""

from tutorix.services.payment.order_service import OrderService
from tutorix.services.payment.reconciliation_service import ReconciliationService
from tutorix.services.payment.refund_service import RefundService
from tutorix.services.payment.settlement_service import SettlementService
from tutorix.services.payment.verification_service import VerificationService
from tutorix.services.payment.webhook_service import WebhookService

__all__ = [
    "OrderService",
    "VerificationService",
    "RefundService",
    "SettlementService",
    "WebhookService",
    "ReconciliationService",
]
