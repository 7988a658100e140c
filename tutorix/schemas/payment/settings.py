"""
Payment settings, linked account and public config schemas.
"""

from __future__ import annotations

import re
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import Field, field_validator

from tutorix.schemas.common.base import BaseCreateSchema, BaseSchema, BaseUpdateSchema

__all__ = [
    "PaymentSettingsResponse",
    "PaymentSettingsUpdate",
    "LinkedAccountCreate",
    "BankVerificationResponse",
    "PaymentConfigResponse",
]

IFSC_PATTERN = re.compile(r"^[A-Z]{4}0[A-Z0-9]{6}$")
BUSINESS_TYPES = {
    "individual",
    "proprietorship",
    "partnership",
    "private_limited",
    "public_limited",
    "llp",
    "trust",
    "society",
    "educational_institutes",
    "not_yet_registered",
}


class PaymentSettingsResponse(BaseSchema):
    coaching_id: str
    gst_number: Optional[str] = None
    pan_number: Optional[str] = None
    state_code: Optional[str] = None
    bank_account_name: Optional[str] = None
    bank_account_number: Optional[str] = Field(default=None, description="Masked to the last 4 digits")
    bank_ifsc_code: Optional[str] = None
    bank_name: Optional[str] = None
    bank_verified: bool
    bank_verified_at: Optional[datetime] = None
    platform_fee_percent: Decimal
    razorpay_account_id: Optional[str] = None
    razorpay_account_status: Optional[str] = None
    razorpay_activated: bool


class PaymentSettingsUpdate(BaseUpdateSchema):
    gst_number: Optional[str] = Field(default=None, max_length=20)
    pan_number: Optional[str] = Field(default=None, max_length=20)
    state_code: Optional[str] = Field(default=None, max_length=4)
    bank_account_name: Optional[str] = Field(default=None, max_length=200)
    bank_account_number: Optional[str] = Field(default=None, min_length=6, max_length=40)
    bank_ifsc_code: Optional[str] = None
    bank_name: Optional[str] = Field(default=None, max_length=200)

    @field_validator("bank_ifsc_code")
    @classmethod
    def validate_ifsc(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.upper()
        if not IFSC_PATTERN.match(v):
            raise ValueError("Invalid IFSC code format")
        return v

    @field_validator("bank_account_number")
    @classmethod
    def validate_account_number(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.isdigit():
            raise ValueError("Account number must contain digits only")
        return v

    @field_validator("gst_number", "pan_number")
    @classmethod
    def upper(cls, v: Optional[str]) -> Optional[str]:
        return v.upper() if v else v


class LinkedAccountCreate(BaseCreateSchema):
    business_type: str = Field(default="educational_institutes")
    contact_name: str = Field(..., min_length=1, max_length=200)
    email: str = Field(..., min_length=3, max_length=200)
    phone: str = Field(..., min_length=8, max_length=15)

    @field_validator("business_type")
    @classmethod
    def validate_business_type(cls, v: str) -> str:
        if v not in BUSINESS_TYPES:
            raise ValueError(f"business_type must be one of: {', '.join(sorted(BUSINESS_TYPES))}")
        return v

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        if "@" not in v:
            raise ValueError("Invalid email address")
        return v.lower()


class BankVerificationResponse(BaseSchema):
    verified: bool
    skipped: bool
    verified_at: Optional[datetime] = None
    validation_status: Optional[str] = None
    registered_name: Optional[str] = None


class PaymentConfigResponse(BaseSchema):
    key_id: Optional[str] = None
    enabled: bool
