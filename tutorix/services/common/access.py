"""
Resolution of the caller's role inside a coaching.
"""

from typing import Iterable, Optional

from sqlalchemy.orm import Session

from tutorix.core.exceptions import ForbiddenError, NotFoundError
from tutorix.core.logging import log_security_event
from tutorix.core.permissions import CoachingRole, Principal, require_roles
from tutorix.models.coaching import Coaching
from tutorix.models.fee import FeeRecord
from tutorix.repositories.coaching import CoachingMemberRepository, CoachingRepository


class AccessService:
    """Builds ``Principal`` objects and enforces record-level access."""

    def __init__(self, db: Session):
        self.db = db
        self.coachings = CoachingRepository(db)
        self.members = CoachingMemberRepository(db)

    def get_coaching(self, coaching_id: str) -> Coaching:
        return self.coachings.get_or_raise(coaching_id, "Coaching")

    def resolve(self, coaching_id: str, user_id: str, coaching: Optional[Coaching] = None) -> Principal:
        coaching = coaching or self.get_coaching(coaching_id)

        role: Optional[CoachingRole]
        if coaching.owner_user_id == user_id:
            role = CoachingRole.OWNER
        else:
            membership = self.members.get_user_membership(coaching_id, user_id)
            if membership is not None:
                role = membership.role
            elif self.members.has_ward_membership(coaching_id, user_id):
                role = CoachingRole.PARENT
            else:
                role = None

        return Principal(
            user_id=user_id,
            coaching_id=coaching_id,
            role=role,
            member_ids=self.members.payable_member_ids(coaching_id, user_id),
        )

    def require(self, coaching_id: str, user_id: str, roles: Iterable[CoachingRole]) -> Principal:
        principal = self.resolve(coaching_id, user_id)
        require_roles(principal, roles)
        return principal

    @staticmethod
    def require_payer(principal: Principal, record: FeeRecord) -> None:
        """Only the member (or their parent) pays a record online."""
        if not principal.can_pay_for(record.member_id):
            log_security_event(
                "record_access_denied",
                user_id=principal.user_id,
                coaching_id=principal.coaching_id,
                record_id=record.id,
            )
            raise ForbiddenError("You can only pay your own or your ward's fees")

    @staticmethod
    def require_viewer(principal: Principal, record: FeeRecord) -> None:
        """Admins see every record; payers see their own."""
        if principal.is_admin or principal.can_pay_for(record.member_id):
            return
        raise ForbiddenError("You do not have access to this fee record")
