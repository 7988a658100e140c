"""
Fee record model: one payable instance with its own due date and balance.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, List

from sqlalchemy import Date, DateTime, Enum, ForeignKey, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tutorix.models.base.base_model import BaseModel
from tutorix.models.base.enums import PAYABLE_STATUSES, FeeRecordStatus

if TYPE_CHECKING:
    from tutorix.models.coaching.member import CoachingMember
    from tutorix.models.fee.fee_payment import FeePayment
    from tutorix.models.fee.fee_structure import FeeAssignment


class FeeRecord(BaseModel):
    """
    Payable fee instance.

    ``paid_amount`` only moves through payment credits and refund debits,
    always together with the ledger row that explains the change.
    """

    __tablename__ = "fee_records"
    __table_args__ = (
        Index("ix_fee_records_coaching_status", "coaching_id", "status"),
    )

    coaching_id: Mapped[str] = mapped_column(
        ForeignKey("coachings.id", ondelete="CASCADE"), nullable=False, index=True
    )
    assignment_id: Mapped[str] = mapped_column(
        ForeignKey("fee_assignments.id", ondelete="CASCADE"), nullable=False, index=True
    )
    member_id: Mapped[str] = mapped_column(
        ForeignKey("coaching_members.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)

    # ==================== Amounts ====================
    base_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    discount_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    fine_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    tax_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    cgst: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    sgst: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    igst: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    final_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    paid_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))

    # ==================== Status ====================
    status: Mapped[FeeRecordStatus] = mapped_column(
        Enum(FeeRecordStatus, name="fee_record_status_enum"),
        nullable=False,
        default=FeeRecordStatus.PENDING,
        index=True,
    )
    due_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    paid_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    waived_reason: Mapped[str | None] = mapped_column(String(500), nullable=True)

    assignment: Mapped["FeeAssignment"] = relationship()
    member: Mapped["CoachingMember"] = relationship()
    payments: Mapped[List["FeePayment"]] = relationship(
        back_populates="record", order_by="FeePayment.paid_at"
    )

    @property
    def balance(self) -> Decimal:
        return Decimal(self.final_amount) - Decimal(self.paid_amount)

    @property
    def is_payable(self) -> bool:
        return self.status in PAYABLE_STATUSES and self.balance > 0
