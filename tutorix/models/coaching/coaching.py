"""
Coaching model.

A coaching is the tenant; its row also carries the payment settings used by
online collection and settlement.
"""

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, List

from sqlalchemy import Boolean, DateTime, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tutorix.models.base.base_model import BaseModel

if TYPE_CHECKING:
    from tutorix.models.coaching.member import CoachingMember


class Coaching(BaseModel):
    """Coaching institute and its payment settings."""

    __tablename__ = "coachings"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    owner_user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)

    # ==================== Tax Identity ====================
    gst_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    pan_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    state_code: Mapped[str | None] = mapped_column(String(4), nullable=True)

    # ==================== Bank Details ====================
    bank_account_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    bank_account_number: Mapped[str | None] = mapped_column(String(40), nullable=True)
    bank_ifsc_code: Mapped[str | None] = mapped_column(String(20), nullable=True)
    bank_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    bank_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    bank_verified_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    fund_account_id: Mapped[str | None] = mapped_column(
        String(64), nullable=True, comment="Gateway fund account used for penny-drop validation"
    )

    # ==================== Gateway Routing ====================
    platform_fee_percent: Mapped[Decimal] = mapped_column(
        Numeric(5, 2), nullable=False, default=Decimal("1.00"),
        comment="Platform share deducted before routing to the linked account",
    )
    razorpay_account_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    razorpay_account_status: Mapped[str | None] = mapped_column(String(40), nullable=True)
    razorpay_stakeholder_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    razorpay_product_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    razorpay_activated: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    members: Mapped[List["CoachingMember"]] = relationship(back_populates="coaching")

    @property
    def has_bank_details(self) -> bool:
        return bool(self.bank_account_number and self.bank_ifsc_code and self.bank_account_name)
