from tutorix.repositories.payment.gateway_order_repository import GatewayOrderRepository
from tutorix.repositories.payment.gateway_refund_repository import (
    GatewayRefundRepository,
    GatewayTransferRepository,
)
from tutorix.repositories.payment.receipt_sequence_repository import ReceiptSequenceRepository
from tutorix.repositories.payment.webhook_log_repository import WebhookLogRepository

__all__ = [
    "GatewayOrderRepository",
    "GatewayRefundRepository",
    "GatewayTransferRepository",
    "ReceiptSequenceRepository",
    "WebhookLogRepository",
]
