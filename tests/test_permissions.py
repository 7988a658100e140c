import pytest

from tutorix.core.exceptions import ForbiddenError
from tutorix.core.permissions import (
    ADMIN_ROLES,
    OWNER_ONLY,
    CoachingRole,
    Principal,
    is_role_allowed,
    require_roles,
)
from tutorix.services.common.access import AccessService

from tests.support import make_member, make_ward


@pytest.mark.parametrize("role, required, expected", [
    (CoachingRole.OWNER, OWNER_ONLY, True),
    (CoachingRole.OWNER, [CoachingRole.TEACHER], True),
    (CoachingRole.ADMIN, ADMIN_ROLES, True),
    (CoachingRole.ADMIN, OWNER_ONLY, False),
    (CoachingRole.TEACHER, ADMIN_ROLES, False),
    (CoachingRole.STUDENT, [], True),
    (CoachingRole.PARENT, [CoachingRole.STUDENT], True),
    (CoachingRole.STUDENT, [CoachingRole.PARENT], False),
    (None, [], False),
    (None, ADMIN_ROLES, False),
])
def test_is_role_allowed(role, required, expected):
    assert is_role_allowed(role, required) is expected


def test_require_roles_raises_forbidden_with_required_roles():
    principal = Principal(user_id="u1", coaching_id="c1", role=CoachingRole.TEACHER)

    with pytest.raises(ForbiddenError) as exc_info:
        require_roles(principal, ADMIN_ROLES)

    assert exc_info.value.status_code == 403
    assert set(exc_info.value.details["required_roles"]) == {"OWNER", "ADMIN"}


def test_principal_can_pay_only_for_listed_members():
    principal = Principal("u1", "c1", CoachingRole.STUDENT, frozenset({"m1"}))

    assert principal.can_pay_for("m1")
    assert not principal.can_pay_for("m2")
    assert not principal.is_admin


class TestAccessService:
    def test_owner_resolved_from_coaching(self, db, coaching):
        principal = AccessService(db).resolve(coaching.id, "owner-1")
        assert principal.role is CoachingRole.OWNER

    def test_member_role_and_payable_rows(self, db, coaching, student):
        principal = AccessService(db).resolve(coaching.id, "student-1")

        assert principal.role is CoachingRole.STUDENT
        assert principal.member_ids == frozenset({student.id})

    def test_parent_resolved_through_ward(self, db, coaching):
        ward = make_ward(db, parent_user_id="parent-1")
        child = make_member(db, coaching, None, name="Kabir", ward=ward)

        principal = AccessService(db).resolve(coaching.id, "parent-1")

        assert principal.role is CoachingRole.PARENT
        assert principal.can_pay_for(child.id)

    def test_stranger_has_no_role(self, db, coaching):
        principal = AccessService(db).resolve(coaching.id, "stranger")

        assert principal.role is None
        assert principal.member_ids == frozenset()
