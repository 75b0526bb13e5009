import pytest

from app.errors import AuthorizationError
from app.models import UserRole
from app.services.authorization_service import (
    Permissions, has_permission, is_admin, can_view_user_records, can_view_user_loans,
    can_change_role, require_authorization
)


@pytest.mark.parametrize('role, permission, allowed', [
    (UserRole.MEMBER.value, Permissions.MANAGE_PAYMENTS, False),
    (UserRole.ADMIN.value, Permissions.MANAGE_PAYMENTS, True),
    (UserRole.ADMIN_LEVEL_1.value, Permissions.MANAGE_DUES, True),
    (UserRole.ADMIN_LEVEL_1.value, Permissions.MANAGE_LOANS, False),
    (UserRole.ADMIN_LEVEL_2.value, Permissions.MANAGE_LOANS, True),
    (UserRole.ADMIN_LEVEL_2.value, Permissions.MANAGE_ROLES, False),
    (UserRole.SUPER_ADMIN.value, Permissions.MANAGE_ROLES, True),
    (UserRole.SUPER_ADMIN.value, Permissions.VIEW_REPORTS, True),
])
def test_permission_table(make_user, role, permission, allowed):
    assert has_permission(make_user(role=role), permission) is allowed


def test_unknown_role_has_no_permissions(make_user):
    user = make_user(role='treasurer')
    assert has_permission(user, Permissions.VIEW_REPORTS) is False
    assert is_admin(user) is False


def test_members_only_see_their_own_records(make_user, member, admin):
    other = make_user()
    assert can_view_user_records(member, member.id) == (True, None)
    assert can_view_user_records(member, other.id)[0] is False
    assert can_view_user_records(admin, other.id) == (True, None)

    with pytest.raises(AuthorizationError):
        require_authorization(can_view_user_records, member, other.id)


def test_loan_records_need_loan_administrator(make_user, member, admin, loan_admin):
    other = make_user()
    assert can_view_user_loans(member, member.id) == (True, None)
    assert can_view_user_loans(admin, other.id)[0] is False
    assert can_view_user_loans(loan_admin, other.id) == (True, None)


def test_role_change_rules(super_admin, member):
    assert can_change_role(super_admin, member, 'admin_level_2') == (True, None)
    assert can_change_role(super_admin, member, 'owner')[0] is False
    assert can_change_role(super_admin, super_admin, 'member')[0] is False
