"""Enumerations shared by the fee and payment models."""

from enum import Enum


class FeeCycle(str, Enum):
    ONCE = "ONCE"
    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"
    HALF_YEARLY = "HALF_YEARLY"
    YEARLY = "YEARLY"


class TaxType(str, Enum):
    NONE = "NONE"
    GST_INCLUSIVE = "GST_INCLUSIVE"
    GST_EXCLUSIVE = "GST_EXCLUSIVE"


class SupplyType(str, Enum):
    INTRA_STATE = "INTRA_STATE"
    INTER_STATE = "INTER_STATE"


class FeeRecordStatus(str, Enum):
    PENDING = "PENDING"
    PARTIALLY_PAID = "PARTIALLY_PAID"
    PAID = "PAID"
    OVERDUE = "OVERDUE"
    WAIVED = "WAIVED"


PAYABLE_STATUSES = frozenset({
    FeeRecordStatus.PENDING,
    FeeRecordStatus.PARTIALLY_PAID,
    FeeRecordStatus.OVERDUE,
})


class PaymentMode(str, Enum):
    CASH = "CASH"
    UPI = "UPI"
    BANK_TRANSFER = "BANK_TRANSFER"
    CHEQUE = "CHEQUE"
    RAZORPAY = "RAZORPAY"
    OTHER = "OTHER"


class GatewayOrderStatus(str, Enum):
    CREATED = "CREATED"
    PAID = "PAID"
    FAILED = "FAILED"


class GatewayRefundStatus(str, Enum):
    INITIATED = "INITIATED"
    PROCESSED = "PROCESSED"
    FAILED = "FAILED"


class TransferStatus(str, Enum):
    CREATED = "CREATED"
    FAILED = "FAILED"
    REVERSED = "REVERSED"
