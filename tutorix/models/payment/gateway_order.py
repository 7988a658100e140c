"""
Local mirror of gateway orders.

Each order row maps one gateway order id to the fee records it pays for;
single-record checkouts have one item, multi-pay bundles several.
"""

from datetime import datetime
from decimal import Decimal
from typing import List

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tutorix.models.base.base_model import BaseModel
from tutorix.models.base.enums import GatewayOrderStatus


class GatewayOrder(BaseModel):
    """Checkout attempt tracked locally to reconcile abandoned payments."""

    __tablename__ = "gateway_orders"

    coaching_id: Mapped[str] = mapped_column(
        ForeignKey("coachings.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)

    # ==================== Gateway Order ====================
    razorpay_order_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True, index=True)
    amount_paise: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="INR")
    receipt: Mapped[str] = mapped_column(String(40), nullable=False)
    is_multi: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    platform_fee_percent: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False, default=Decimal("0"))

    # ==================== Lifecycle ====================
    status: Mapped[GatewayOrderStatus] = mapped_column(
        Enum(GatewayOrderStatus, name="gateway_order_status_enum"),
        nullable=False,
        default=GatewayOrderStatus.CREATED,
        index=True,
    )
    payment_recorded: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    razorpay_payment_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    razorpay_signature: Mapped[str | None] = mapped_column(String(128), nullable=True)
    paid_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    failure_reason: Mapped[str | None] = mapped_column(String(500), nullable=True)
    failed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    # Captured paise that no record could absorb; held for a manual refund.
    unallocated_paise: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    items: Mapped[List["GatewayOrderItem"]] = relationship(
        back_populates="order", cascade="all, delete-orphan", order_by="GatewayOrderItem.position"
    )

    @property
    def record_ids(self) -> List[str]:
        return [item.record_id for item in self.items]


class GatewayOrderItem(BaseModel):
    """Record covered by a gateway order, with the amount planned for it."""

    __tablename__ = "gateway_order_items"

    order_id: Mapped[str] = mapped_column(
        ForeignKey("gateway_orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    record_id: Mapped[str] = mapped_column(
        ForeignKey("fee_records.id", ondelete="CASCADE"), nullable=False, index=True
    )
    amount_paise: Mapped[int] = mapped_column(Integer, nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    order: Mapped["GatewayOrder"] = relationship(back_populates="items")
