"""
Coaching membership and wards.
"""

from typing import TYPE_CHECKING

from sqlalchemy import Enum, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tutorix.core.permissions import CoachingRole
from tutorix.models.base.base_model import BaseModel

if TYPE_CHECKING:
    from tutorix.models.coaching.coaching import Coaching


class Ward(BaseModel):
    """A dependent (usually a child) managed by a parent user."""

    __tablename__ = "wards"

    parent_user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)


class CoachingMember(BaseModel):
    """
    Membership of a user (or of a ward) in a coaching.

    Exactly one of ``user_id`` / ``ward_id`` identifies who the member is.
    Fee records hang off member rows.
    """

    __tablename__ = "coaching_members"

    coaching_id: Mapped[str] = mapped_column(
        ForeignKey("coachings.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
    ward_id: Mapped[str | None] = mapped_column(
        ForeignKey("wards.id", ondelete="CASCADE"), nullable=True, index=True
    )
    role: Mapped[CoachingRole] = mapped_column(
        Enum(CoachingRole, name="coaching_role_enum"), nullable=False, default=CoachingRole.STUDENT
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str | None] = mapped_column(String(200), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(20), nullable=True)

    coaching: Mapped["Coaching"] = relationship(back_populates="members")
    ward: Mapped["Ward | None"] = relationship()
