"""
Checkout order schemas.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import Field, field_validator

from tutorix.schemas.common.base import BaseCreateSchema, BaseSchema

__all__ = [
    "CreateOrderRequest",
    "RecordSummary",
    "CheckoutOrderResponse",
    "CreateOrderResponse",
    "MultiOrderRequest",
    "MultiOrderResponse",
    "MarkOrderFailedRequest",
    "MarkOrderFailedResponse",
    "FailedOrderResponse",
]


class CreateOrderRequest(BaseCreateSchema):
    amount: Optional[Decimal] = Field(
        default=None,
        description="Partial amount in rupees; the full balance when omitted",
    )

    @field_validator("amount")
    @classmethod
    def quantize_amount(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        return v.quantize(Decimal("0.01")) if v is not None else v


class RecordSummary(BaseSchema):
    id: str
    title: str
    due_date: date
    balance: Decimal
    pay_amount: Decimal


class CheckoutOrderResponse(BaseSchema):
    order_id: str = Field(..., description="Gateway order id handed to the checkout")
    internal_order_id: str
    amount_paise: int
    currency: str
    key: str = Field(..., description="Public gateway key id")


class CreateOrderResponse(CheckoutOrderResponse):
    record: RecordSummary


class MultiOrderRequest(BaseCreateSchema):
    record_ids: List[str] = Field(..., min_length=1, max_length=20)


class MultiOrderResponse(CheckoutOrderResponse):
    records: List[RecordSummary]


class MarkOrderFailedRequest(BaseCreateSchema):
    reason: Optional[str] = Field(default=None, max_length=500)


class MarkOrderFailedResponse(BaseSchema):
    ok: bool
    status: Optional[str] = None


class FailedOrderResponse(BaseSchema):
    internal_order_id: str
    order_id: str
    amount: Decimal
    is_multi: bool
    failure_reason: Optional[str] = None
    failed_at: Optional[datetime] = None
    created_at: datetime
