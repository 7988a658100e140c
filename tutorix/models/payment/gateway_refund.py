"""
Gateway-side refund and route transfer tracking.
"""

from sqlalchemy import Enum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from tutorix.models.base.base_model import BaseModel
from tutorix.models.base.enums import GatewayRefundStatus, TransferStatus


class GatewayRefund(BaseModel):
    """Refund as known to the gateway, updated by webhooks."""

    __tablename__ = "gateway_refunds"

    coaching_id: Mapped[str] = mapped_column(
        ForeignKey("coachings.id", ondelete="CASCADE"), nullable=False, index=True
    )
    record_id: Mapped[str] = mapped_column(ForeignKey("fee_records.id"), nullable=False, index=True)
    payment_id: Mapped[str] = mapped_column(ForeignKey("fee_payments.id"), nullable=False, index=True)
    fee_refund_id: Mapped[str] = mapped_column(ForeignKey("fee_refunds.id"), nullable=False, unique=True)
    razorpay_refund_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True, index=True)
    amount_paise: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[GatewayRefundStatus] = mapped_column(
        Enum(GatewayRefundStatus, name="gateway_refund_status_enum"),
        nullable=False,
        default=GatewayRefundStatus.INITIATED,
    )
    failure_reason: Mapped[str | None] = mapped_column(String(500), nullable=True)


class GatewayTransfer(BaseModel):
    """Route transfer of a captured payment to the coaching's linked account."""

    __tablename__ = "gateway_transfers"

    coaching_id: Mapped[str] = mapped_column(
        ForeignKey("coachings.id", ondelete="CASCADE"), nullable=False, index=True
    )
    payment_id: Mapped[str] = mapped_column(ForeignKey("fee_payments.id"), nullable=False, index=True)
    razorpay_payment_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    account_id: Mapped[str] = mapped_column(String(64), nullable=False)
    razorpay_transfer_id: Mapped[str | None] = mapped_column(String(64), nullable=True, unique=True)
    amount_paise: Mapped[int] = mapped_column(Integer, nullable=False)
    platform_fee_paise: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    reversed_paise: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[TransferStatus] = mapped_column(
        Enum(TransferStatus, name="transfer_status_enum"), nullable=False, default=TransferStatus.CREATED
    )
    error: Mapped[str | None] = mapped_column(Text, nullable=True)
