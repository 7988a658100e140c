"""
Fee structure and fee assignment models.
"""

from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, List

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    Enum,
    ForeignKey,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tutorix.models.base.base_model import BaseModel
from tutorix.models.base.enums import FeeCycle, SupplyType, TaxType

if TYPE_CHECKING:
    from tutorix.models.coaching.member import CoachingMember


class FeeStructure(BaseModel):
    """
    Reusable billing template.

    Billing fields are frozen once an assignment references the structure;
    descriptive fields stay editable.
    """

    __tablename__ = "fee_structures"

    BILLING_FIELDS = ("amount", "cycle", "tax_type", "gst_rate", "supply_type", "line_items")

    coaching_id: Mapped[str] = mapped_column(
        ForeignKey("coachings.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    # ==================== Billing ====================
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    cycle: Mapped[FeeCycle] = mapped_column(
        Enum(FeeCycle, name="fee_cycle_enum"), nullable=False, default=FeeCycle.MONTHLY
    )
    tax_type: Mapped[TaxType] = mapped_column(
        Enum(TaxType, name="tax_type_enum"), nullable=False, default=TaxType.NONE
    )
    gst_rate: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False, default=Decimal("0"))
    supply_type: Mapped[SupplyType] = mapped_column(
        Enum(SupplyType, name="supply_type_enum"), nullable=False, default=SupplyType.INTRA_STATE
    )
    line_items: Mapped[list] = mapped_column(
        JSON, nullable=False, default=list, comment="[{label, amount}] breakdown shown on receipts"
    )

    # ==================== Collection Rules ====================
    allow_installments: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    installment_amounts: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    late_fee_per_day: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    assignments: Mapped[List["FeeAssignment"]] = relationship(back_populates="fee_structure")


class FeeAssignment(BaseModel):
    """Binding of a fee structure to one member."""

    __tablename__ = "fee_assignments"
    __table_args__ = (
        UniqueConstraint("fee_structure_id", "member_id", name="uq_fee_assignment_structure_member"),
    )

    coaching_id: Mapped[str] = mapped_column(
        ForeignKey("coachings.id", ondelete="CASCADE"), nullable=False, index=True
    )
    member_id: Mapped[str] = mapped_column(
        ForeignKey("coaching_members.id", ondelete="CASCADE"), nullable=False, index=True
    )
    fee_structure_id: Mapped[str] = mapped_column(
        ForeignKey("fee_structures.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    custom_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    discount_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    fee_structure: Mapped["FeeStructure"] = relationship(back_populates="assignments")
    member: Mapped["CoachingMember"] = relationship()

    @property
    def base_amount(self) -> Decimal:
        return self.custom_amount if self.custom_amount is not None else self.fee_structure.amount
