"""
Fee assignment, record and offline payment schemas.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import Field, field_validator, model_validator

from tutorix.models.base.enums import FeeRecordStatus, PaymentMode
from tutorix.schemas.common.base import BaseCreateSchema, BaseResponseSchema, BaseSchema

__all__ = [
    "FeeAssignmentCreate",
    "FeeAssignmentResponse",
    "FeeRecordResponse",
    "FeePaymentResponse",
    "FeeRecordDetail",
    "OfflinePaymentRequest",
    "OfflineRefundRequest",
    "WaiveRequest",
    "LedgerEntry",
    "MemberLedgerResponse",
    "StatusTotals",
    "ModeTotals",
    "MonthlyCollection",
    "FeeSummaryResponse",
]


class FeeAssignmentCreate(BaseCreateSchema):
    member_id: str = Field(..., min_length=1)
    fee_structure_id: str = Field(..., min_length=1)
    custom_amount: Optional[Decimal] = Field(default=None, gt=Decimal("0"))
    discount_amount: Decimal = Field(default=Decimal("0"), ge=Decimal("0"))
    start_date: date
    end_date: Optional[date] = None

    @field_validator("custom_amount", "discount_amount")
    @classmethod
    def quantize_amounts(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        return v.quantize(Decimal("0.01")) if v is not None else v

    @model_validator(mode="after")
    def validate_dates(self) -> "FeeAssignmentCreate":
        if self.end_date is not None and self.end_date < self.start_date:
            raise ValueError("end_date cannot be before start_date")
        return self


class FeeAssignmentResponse(BaseResponseSchema):
    coaching_id: str
    member_id: str
    fee_structure_id: str
    custom_amount: Optional[Decimal] = None
    discount_amount: Decimal
    start_date: date
    end_date: Optional[date] = None
    is_active: bool


class FeeRecordResponse(BaseResponseSchema):
    coaching_id: str
    assignment_id: str
    member_id: str
    title: str
    base_amount: Decimal
    discount_amount: Decimal
    fine_amount: Decimal
    tax_amount: Decimal
    cgst: Decimal
    sgst: Decimal
    igst: Decimal
    final_amount: Decimal
    paid_amount: Decimal
    balance: Decimal
    status: FeeRecordStatus
    due_date: date
    paid_at: Optional[datetime] = None
    waived_reason: Optional[str] = None


class FeePaymentResponse(BaseSchema):
    id: str
    record_id: str
    amount: Decimal
    mode: PaymentMode
    razorpay_payment_id: Optional[str] = None
    razorpay_order_id: Optional[str] = None
    receipt_no: str
    paid_at: datetime
    notes: Optional[str] = None
    refunded_amount: Decimal = Decimal("0")


class FeeRecordDetail(FeeRecordResponse):
    payments: List[FeePaymentResponse] = Field(default_factory=list)


class OfflinePaymentRequest(BaseCreateSchema):
    amount: Decimal = Field(..., gt=Decimal("0"))
    mode: PaymentMode = Field(default=PaymentMode.CASH)
    notes: Optional[str] = Field(default=None, max_length=1000)

    @field_validator("amount")
    @classmethod
    def quantize_amount(cls, v: Decimal) -> Decimal:
        return v.quantize(Decimal("0.01"))

    @field_validator("mode")
    @classmethod
    def validate_mode(cls, v: PaymentMode) -> PaymentMode:
        if v is PaymentMode.RAZORPAY:
            raise ValueError("Online payments are recorded through checkout verification")
        return v


class WaiveRequest(BaseCreateSchema):
    reason: str = Field(..., min_length=1, max_length=500)


class OfflineRefundRequest(BaseCreateSchema):
    payment_id: str = Field(..., min_length=1, description="Counter payment being refunded")
    amount: Optional[Decimal] = Field(default=None, gt=Decimal("0"), description="Defaults to the refundable remainder")
    mode: PaymentMode = Field(default=PaymentMode.CASH)
    reason: Optional[str] = Field(default=None, max_length=500)

    @field_validator("amount")
    @classmethod
    def quantize_amount(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        return v.quantize(Decimal("0.01")) if v is not None else v

    @field_validator("mode")
    @classmethod
    def validate_mode(cls, v: PaymentMode) -> PaymentMode:
        if v is PaymentMode.RAZORPAY:
            raise ValueError("Online refunds go through the gateway refund endpoint")
        return v


# ==================== Ledger & Summary ====================

class LedgerEntry(BaseSchema):
    """One line of a member's statement; ``balance`` is the running amount owed."""

    entry_type: str
    occurred_at: datetime
    record_id: str
    title: str
    reference: Optional[str] = None
    mode: Optional[PaymentMode] = None
    debit: Decimal = Decimal("0")
    credit: Decimal = Decimal("0")
    balance: Decimal


class MemberLedgerResponse(BaseSchema):
    member_id: str
    member_name: str
    entries: List[LedgerEntry]
    total_charged: Decimal
    total_paid: Decimal
    total_refunded: Decimal
    total_waived: Decimal
    balance: Decimal


class StatusTotals(BaseSchema):
    count: int
    billed: Decimal
    paid: Decimal


class ModeTotals(BaseSchema):
    count: int
    amount: Decimal


class MonthlyCollection(BaseSchema):
    month: str
    amount: Decimal


class FeeSummaryResponse(BaseSchema):
    status_breakdown: Dict[FeeRecordStatus, StatusTotals]
    total_collected: Decimal
    total_refunded: Decimal
    net_collected: Decimal
    total_pending: Decimal
    total_overdue: Decimal
    payment_modes: Dict[PaymentMode, ModeTotals]
    monthly_collection: List[MonthlyCollection]
