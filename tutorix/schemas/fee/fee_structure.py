"""
Fee structure schemas.
"""

from __future__ import annotations

from decimal import Decimal
from typing import List, Optional

from pydantic import Field, field_validator, model_validator

from tutorix.models.base.enums import FeeCycle, SupplyType, TaxType
from tutorix.schemas.common.base import (
    BaseCreateSchema,
    BaseResponseSchema,
    BaseSchema,
    BaseUpdateSchema,
)

__all__ = [
    "LineItem",
    "FeeStructureCreate",
    "FeeStructureUpdate",
    "FeeStructureResponse",
]

MAX_GST_RATE = Decimal("28")


def _quantize(v: Optional[Decimal]) -> Optional[Decimal]:
    return v.quantize(Decimal("0.01")) if v is not None else v


class LineItem(BaseSchema):
    label: str = Field(..., min_length=1, max_length=100)
    amount: Decimal = Field(..., ge=Decimal("0"))

    @field_validator("amount")
    @classmethod
    def quantize_amount(cls, v: Decimal) -> Decimal:
        return _quantize(v)


class FeeStructureCreate(BaseCreateSchema):
    """
    Payload for a new fee structure.

    ``line_items`` is an optional breakdown; when present its total must
    equal ``amount``.
    """

    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    amount: Decimal = Field(..., gt=Decimal("0"), description="Amount per cycle")
    cycle: FeeCycle = Field(default=FeeCycle.MONTHLY)
    tax_type: TaxType = Field(default=TaxType.NONE)
    gst_rate: Decimal = Field(default=Decimal("0"), ge=Decimal("0"), le=MAX_GST_RATE)
    supply_type: SupplyType = Field(default=SupplyType.INTRA_STATE)
    line_items: List[LineItem] = Field(default_factory=list)
    allow_installments: bool = Field(default=False)
    installment_amounts: List[Decimal] = Field(default_factory=list)
    late_fee_per_day: Decimal = Field(default=Decimal("0"), ge=Decimal("0"))

    @field_validator("amount", "gst_rate", "late_fee_per_day")
    @classmethod
    def quantize_amounts(cls, v: Decimal) -> Decimal:
        return _quantize(v)

    @field_validator("installment_amounts")
    @classmethod
    def validate_installments(cls, v: List[Decimal]) -> List[Decimal]:
        if any(amount <= 0 for amount in v):
            raise ValueError("Installment amounts must be greater than zero")
        return [_quantize(amount) for amount in v]

    @model_validator(mode="after")
    def validate_structure(self) -> "FeeStructureCreate":
        if self.tax_type is not TaxType.NONE and self.gst_rate <= 0:
            raise ValueError("gst_rate is required when GST applies")
        if self.line_items and sum(i.amount for i in self.line_items) != self.amount:
            raise ValueError("Line items must add up to the structure amount")
        if self.installment_amounts and not self.allow_installments:
            raise ValueError("installment_amounts requires allow_installments")
        return self


class FeeStructureUpdate(BaseUpdateSchema):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    amount: Optional[Decimal] = Field(default=None, gt=Decimal("0"))
    cycle: Optional[FeeCycle] = None
    tax_type: Optional[TaxType] = None
    gst_rate: Optional[Decimal] = Field(default=None, ge=Decimal("0"), le=MAX_GST_RATE)
    supply_type: Optional[SupplyType] = None
    line_items: Optional[List[LineItem]] = None
    allow_installments: Optional[bool] = None
    installment_amounts: Optional[List[Decimal]] = None
    late_fee_per_day: Optional[Decimal] = Field(default=None, ge=Decimal("0"))
    is_active: Optional[bool] = None

    @field_validator("amount", "gst_rate", "late_fee_per_day")
    @classmethod
    def quantize_amounts(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        return _quantize(v)


class FeeStructureResponse(BaseResponseSchema):
    coaching_id: str
    name: str
    description: Optional[str] = None
    amount: Decimal
    cycle: FeeCycle
    tax_type: TaxType
    gst_rate: Decimal
    supply_type: SupplyType
    line_items: List[LineItem] = Field(default_factory=list)
    allow_installments: bool
    installment_amounts: List[Decimal] = Field(default_factory=list)
    late_fee_per_day: Decimal
    is_active: bool
