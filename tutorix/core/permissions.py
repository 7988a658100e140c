"""
Coaching role model and authorization decisions.

Roles form a closed enum; every access decision goes through the pure
``is_role_allowed`` function so it can be tested without HTTP.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, Iterable, Optional

from tutorix.core.exceptions import ForbiddenError


class CoachingRole(str, Enum):
    """Role of a user inside one coaching."""

    OWNER = "OWNER"
    ADMIN = "ADMIN"
    TEACHER = "TEACHER"
    STUDENT = "STUDENT"
    PARENT = "PARENT"


ADMIN_ROLES = frozenset({CoachingRole.OWNER, CoachingRole.ADMIN})
OWNER_ONLY = frozenset({CoachingRole.OWNER})


def is_role_allowed(role: Optional[CoachingRole], required_roles: Iterable[CoachingRole]) -> bool:
    """
    Decide whether ``role`` satisfies ``required_roles``.

    Rules:
    - a missing role (not a member of the coaching) is never allowed
    - OWNER is allowed everywhere
    - an empty requirement allows any member
    - PARENT acts on behalf of a ward and satisfies STUDENT

    Example:
        >>> is_role_allowed(CoachingRole.ADMIN, [CoachingRole.ADMIN])
        True
        >>> is_role_allowed(CoachingRole.PARENT, [CoachingRole.STUDENT])
        True
        >>> is_role_allowed(CoachingRole.TEACHER, [CoachingRole.ADMIN])
        False
    """
    if role is None:
        return False
    if role is CoachingRole.OWNER:
        return True

    required = frozenset(required_roles)
    if not required:
        return True
    if role in required:
        return True
    return role is CoachingRole.PARENT and CoachingRole.STUDENT in required


@dataclass(frozen=True)
class Principal:
    """
    Represents an authenticated user inside one coaching.

    Attributes:
        user_id: Authenticated user id
        coaching_id: Coaching the request targets
        role: Resolved role, ``None`` when the user is not a member
        member_ids: Member rows the user may pay for (own row and wards' rows)
    """
    user_id: str
    coaching_id: str
    role: Optional[CoachingRole]
    member_ids: FrozenSet[str] = field(default_factory=frozenset)

    @property
    def is_admin(self) -> bool:
        return is_role_allowed(self.role, ADMIN_ROLES)

    def can_pay_for(self, member_id: str) -> bool:
        return member_id in self.member_ids


def require_roles(
    principal: Principal,
    required_roles: Iterable[CoachingRole],
    *,
    error_message: Optional[str] = None,
) -> None:
    """
    Assert that principal has one of the allowed roles.

    Raises:
        ForbiddenError: If principal lacks required role
    """
    required = list(required_roles)
    if not is_role_allowed(principal.role, required):
        from tutorix.core.logging import log_security_event

        log_security_event(
            "access_denied",
            user_id=principal.user_id,
            coaching_id=principal.coaching_id,
            role=principal.role.value if principal.role else None,
        )
        raise ForbiddenError(
            error_message or "You do not have permission to perform this action",
            required_roles=[r.value for r in required],
        )


__all__ = [
    "CoachingRole",
    "ADMIN_ROLES",
    "OWNER_ONLY",
    "Principal",
    "is_role_allowed",
    "require_roles",
]
