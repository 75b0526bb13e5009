"""
CENTRALIZED AUTHORIZATION SERVICE
==================================

All permission checks live here.
Routes and other services call these functions.

Roles (lowest -> highest):
    member -> admin / admin_level_1 -> admin_level_2 -> super_admin

A role satisfies a permission when its level is at least the
permission's minimum level. NEVER hard-code role lists in routes!
"""

from functools import wraps

from flask_login import current_user

from app.errors import AuthorizationError, error_response
from app.models import UserRole


ROLE_LEVELS = {
    UserRole.MEMBER.value: 0,
    UserRole.ADMIN.value: 1,
    UserRole.ADMIN_LEVEL_1.value: 1,
    UserRole.ADMIN_LEVEL_2.value: 2,
    UserRole.SUPER_ADMIN.value: 3,
}


class Permissions:
    """Single source of truth: minimum role for each capability."""

    # Settlement and ledger
    MANAGE_PAYMENTS = UserRole.ADMIN_LEVEL_1.value
    MANAGE_DUES = UserRole.ADMIN_LEVEL_1.value
    MANAGE_LEVIES = UserRole.ADMIN_LEVEL_1.value
    MANAGE_PLEDGES = UserRole.ADMIN_LEVEL_1.value
    MANAGE_DONATIONS = UserRole.ADMIN_LEVEL_1.value
    MANAGE_TRANSACTIONS = UserRole.ADMIN_LEVEL_1.value
    VIEW_REPORTS = UserRole.ADMIN_LEVEL_1.value

    # Members
    VIEW_MEMBERS = UserRole.ADMIN_LEVEL_1.value
    REGISTER_USERS = UserRole.ADMIN_LEVEL_1.value

    # Loans
    MANAGE_LOANS = UserRole.ADMIN_LEVEL_2.value

    # Accounts
    MANAGE_ROLES = UserRole.SUPER_ADMIN.value
    MANAGE_ACCOUNT_STATUS = UserRole.SUPER_ADMIN.value


def role_level(role):
    return ROLE_LEVELS.get(role, -1)


def is_admin(user):
    """Any admin role, regardless of level"""
    return user is not None and role_level(user.role) >= ROLE_LEVELS[UserRole.ADMIN.value]


def has_permission(user, permission):
    """Check the user's role against the permission's minimum role"""
    if user is None or not getattr(user, 'is_authenticated', False):
        return False
    return role_level(user.role) >= role_level(permission)


# ============================================================
# ROUTE DECORATOR
# ============================================================

def permission_required(permission):
    """
    Reject the request unless current_user holds the permission.

    Usage:
        @login_required
        @permission_required(Permissions.MANAGE_LOANS)
        def approve(loan_id): ...
    """
    def decorator(view_func):
        @wraps(view_func)
        def wrapper(*args, **kwargs):
            if not current_user.is_authenticated:
                return error_response('Not authorized, please log in', 401)
            if not has_permission(current_user, permission):
                return error_response(
                    f"User role {current_user.role} is not authorized to access this resource", 403
                )
            return view_func(*args, **kwargs)
        return wrapper
    return decorator


# ============================================================
# OWNERSHIP CHECKS
# ============================================================

def can_view_user_records(actor, user_id):
    """
    Check if actor can read records belonging to user_id.

    Requirements:
    - Actor is that user, OR
    - Actor holds any admin role
    """
    if actor.id == user_id:
        return True, None
    if is_admin(actor):
        return True, None
    return False, "You can only view your own records"


def can_view_record(actor, record):
    """Same rule as can_view_user_records, applied to a record with a user_id"""
    if record is None:
        return False, "Record not found"
    return can_view_user_records(actor, record.user_id)


def can_view_user_loans(actor, user_id):
    """
    Check if actor can read loans belonging to user_id.

    Requirements:
    - Actor is that user, OR
    - Actor holds MANAGE_LOANS (admin_level_2 and above)
    """
    if actor.id == user_id:
        return True, None
    if has_permission(actor, Permissions.MANAGE_LOANS):
        return True, None
    return False, "Only loan administrators can view other members' loans"


def can_view_loan(actor, loan):
    if loan is None:
        return False, "Loan not found"
    return can_view_user_loans(actor, loan.user_id)


def can_change_role(actor, target, new_role):
    """
    Requirements:
    - New role must be a known role
    - Super admin cannot demote themselves
    """
    if new_role not in ROLE_LEVELS:
        return False, f"Invalid role: {new_role}"
    if actor.id == target.id and new_role != actor.role:
        return False, "You cannot change your own role"
    return True, None


def can_change_status(actor, target):
    if actor.id == target.id:
        return False, "You cannot change your own account status"
    return True, None


# ============================================================
# HELPER FUNCTION: REQUIRE AUTHORIZATION
# ============================================================

def require_authorization(check_func, *args, error_class=AuthorizationError):
    """
    Wrapper to raise exception if authorization fails.

    Usage:
        require_authorization(can_view_record, current_user, loan)
    """
    allowed, reason = check_func(*args)
    if not allowed:
        raise error_class(reason)
    return True
