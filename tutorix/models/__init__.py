"""
ORM models.

Importing this package registers every table with ``Base.metadata``.
"""

from tutorix.models.base import Base, BaseModel
from tutorix.models.coaching import Coaching, CoachingMember, Ward
from tutorix.models.fee import FeeAssignment, FeePayment, FeeRecord, FeeRefund, FeeStructure
from tutorix.models.notification import Notification
from tutorix.models.payment import (
    GatewayOrder,
    GatewayOrderItem,
    GatewayRefund,
    GatewayTransfer,
    ReceiptSequence,
    WebhookLog,
)

__all__ = [
    "Base",
    "BaseModel",
    "Coaching",
    "CoachingMember",
    "Ward",
    "FeeStructure",
    "FeeAssignment",
    "FeeRecord",
    "FeePayment",
    "FeeRefund",
    "GatewayOrder",
    "GatewayOrderItem",
    "GatewayRefund",
    "GatewayTransfer",
    "ReceiptSequence",
    "WebhookLog",
    "Notification",
]
