"""
Fee payment ledger: payments and the refunds that offset them.
"""

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, List

from sqlalchemy import DateTime, Enum, ForeignKey, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tutorix.models.base.base_model import BaseModel
from tutorix.models.base.enums import PaymentMode
from tutorix.utils.datetime_utils import utc_now

if TYPE_CHECKING:
    from tutorix.models.fee.fee_record import FeeRecord


class FeePayment(BaseModel):
    """
    Append-only payment entry.

    ``(record_id, razorpay_payment_id)`` is unique, so the same gateway
    payment can credit a record at most once while still fanning out across
    the records of a multi-pay order.
    """

    __tablename__ = "fee_payments"
    __table_args__ = (
        UniqueConstraint("record_id", "razorpay_payment_id", name="uq_fee_payment_record_gateway_payment"),
    )

    coaching_id: Mapped[str] = mapped_column(
        ForeignKey("coachings.id", ondelete="CASCADE"), nullable=False, index=True
    )
    record_id: Mapped[str] = mapped_column(
        ForeignKey("fee_records.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    mode: Mapped[PaymentMode] = mapped_column(Enum(PaymentMode, name="payment_mode_enum"), nullable=False)

    # ==================== Gateway References ====================
    razorpay_payment_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    razorpay_order_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)

    receipt_no: Mapped[str] = mapped_column(String(40), nullable=False, index=True)
    paid_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utc_now)
    recorded_by_user_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    record: Mapped["FeeRecord"] = relationship(back_populates="payments")
    refunds: Mapped[List["FeeRefund"]] = relationship(back_populates="payment")

    @property
    def refunded_amount(self) -> Decimal:
        return sum((Decimal(r.amount) for r in self.refunds), Decimal("0"))

    @property
    def refundable_amount(self) -> Decimal:
        return Decimal(self.amount) - self.refunded_amount


class FeeRefund(BaseModel):
    """Refund offsetting part or all of one payment."""

    __tablename__ = "fee_refunds"

    coaching_id: Mapped[str] = mapped_column(
        ForeignKey("coachings.id", ondelete="CASCADE"), nullable=False, index=True
    )
    record_id: Mapped[str] = mapped_column(
        ForeignKey("fee_records.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    payment_id: Mapped[str] = mapped_column(
        ForeignKey("fee_payments.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    reason: Mapped[str | None] = mapped_column(String(500), nullable=True)
    mode: Mapped[PaymentMode] = mapped_column(Enum(PaymentMode, name="payment_mode_enum"), nullable=False)
    refunded_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utc_now)
    processed_by_user_id: Mapped[str | None] = mapped_column(String(36), nullable=True)

    payment: Mapped["FeePayment"] = relationship(back_populates="refunds")
