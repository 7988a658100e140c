"""Coaching and membership queries."""

from typing import FrozenSet, Optional

from sqlalchemy import or_, select

from tutorix.models.coaching import Coaching, CoachingMember, Ward
from tutorix.repositories.base import BaseRepository


class CoachingRepository(BaseRepository[Coaching]):
    model = Coaching


class CoachingMemberRepository(BaseRepository[CoachingMember]):
    model = CoachingMember

    def get_for_coaching(self, member_id: str, coaching_id: str) -> Optional[CoachingMember]:
        return self.find_one(id=member_id, coaching_id=coaching_id)

    def get_user_membership(self, coaching_id: str, user_id: str) -> Optional[CoachingMember]:
        """The user's own (non-ward) membership row."""
        stmt = (
            select(CoachingMember)
            .where(CoachingMember.coaching_id == coaching_id)
            .where(CoachingMember.user_id == user_id)
            .where(CoachingMember.ward_id.is_(None))
            .limit(1)
        )
        return self.db.scalars(stmt).first()

    def payable_member_ids(self, coaching_id: str, user_id: str) -> FrozenSet[str]:
        """Member rows whose fees ``user_id`` may pay: their own and their wards'."""
        ward_ids = select(Ward.id).where(Ward.parent_user_id == user_id)
        stmt = (
            select(CoachingMember.id)
            .where(CoachingMember.coaching_id == coaching_id)
            .where(
                or_(
                    CoachingMember.user_id == user_id,
                    CoachingMember.ward_id.in_(ward_ids),
                )
            )
        )
        return frozenset(self.db.scalars(stmt))

    def has_ward_membership(self, coaching_id: str, user_id: str) -> bool:
        ward_ids = select(Ward.id).where(Ward.parent_user_id == user_id)
        stmt = (
            select(CoachingMember.id)
            .where(CoachingMember.coaching_id == coaching_id)
            .where(CoachingMember.ward_id.in_(ward_ids))
            .limit(1)
        )
        return self.db.scalars(stmt).first() is not None

    def payer_user_id(self, member: CoachingMember) -> Optional[str]:
        """User who receives payment notifications for a member row."""
        if member.user_id:
            return member.user_id
        if member.ward_id:
            ward = self.db.get(Ward, member.ward_id)
            return ward.parent_user_id if ward else None
        return None
