"""
Payment verification and refund schemas.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import Field, field_validator

from tutorix.models.base.enums import PaymentMode
from tutorix.schemas.common.base import BaseCreateSchema, BaseSchema
from tutorix.schemas.fee.fee_record import FeePaymentResponse, FeeRecordResponse

__all__ = [
    "VerifyPaymentRequest",
    "VerifyPaymentResponse",
    "AllocationResponse",
    "MultiVerifyResponse",
    "OnlineRefundRequest",
    "FeeRefundResponse",
    "OnlineRefundResponse",
    "OnlinePaymentResponse",
]


class VerifyPaymentRequest(BaseCreateSchema):
    order_id: str = Field(..., min_length=1, alias="razorpay_order_id")
    payment_id: str = Field(..., min_length=1, alias="razorpay_payment_id")
    signature: str = Field(..., min_length=1, alias="razorpay_signature")


class VerifyPaymentResponse(BaseSchema):
    already_processed: bool
    record: FeeRecordResponse
    payment: Optional[FeePaymentResponse] = None


class AllocationResponse(BaseSchema):
    record_id: str
    amount: Decimal


class MultiVerifyResponse(BaseSchema):
    already_processed: bool
    allocations: List[AllocationResponse]
    records: List[FeeRecordResponse]
    unallocated_amount: Decimal = Decimal("0")


class OnlineRefundRequest(BaseCreateSchema):
    payment_id: str = Field(..., min_length=1, description="Local payment id")
    amount: Optional[Decimal] = Field(default=None, description="Defaults to the refundable remainder")
    reason: Optional[str] = Field(default=None, max_length=500)

    @field_validator("amount")
    @classmethod
    def quantize_amount(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        return v.quantize(Decimal("0.01")) if v is not None else v


class FeeRefundResponse(BaseSchema):
    id: str
    record_id: str
    payment_id: str
    amount: Decimal
    reason: Optional[str] = None
    mode: PaymentMode
    refunded_at: datetime


class OnlineRefundResponse(BaseSchema):
    refund: FeeRefundResponse
    record: FeeRecordResponse


class OnlinePaymentResponse(BaseSchema):
    id: str
    amount: Decimal
    mode: PaymentMode
    razorpay_payment_id: Optional[str] = None
    razorpay_order_id: Optional[str] = None
    receipt_no: str
    paid_at: datetime
    refunded_amount: Decimal
    refundable_amount: Decimal
