"""Per-coaching, per-financial-year receipt counter."""

from sqlalchemy import ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from tutorix.models.base.base_model import BaseModel


class ReceiptSequence(BaseModel):
    __tablename__ = "receipt_sequences"
    __table_args__ = (
        UniqueConstraint("coaching_id", "financial_year", name="uq_receipt_sequence_coaching_fy"),
    )

    coaching_id: Mapped[str] = mapped_column(
        ForeignKey("coachings.id", ondelete="CASCADE"), nullable=False, index=True
    )
    financial_year: Mapped[str] = mapped_column(String(7), nullable=False)
    last_number: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
