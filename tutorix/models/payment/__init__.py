from tutorix.models.payment.gateway_order import GatewayOrder, GatewayOrderItem
from tutorix.models.payment.gateway_refund import GatewayRefund, GatewayTransfer
from tutorix.models.payment.receipt_sequence import ReceiptSequence
from tutorix.models.payment.webhook_log import WebhookLog

__all__ = [
    "GatewayOrder",
    "GatewayOrderItem",
    "GatewayRefund",
    "GatewayTransfer",
    "ReceiptSequence",
    "WebhookLog",
]
