"""
USER SERVICE
============

Handles:
- Registration and login
- Profile and password changes
- Role and account status (super admin only)
- Member directory and notification settings
"""

import logging
import math

from sqlalchemy import or_

from app.errors import AppError, AuthorizationError, ConflictError, ValidationError
from app.extensions import db
from app.models import User, UserRole, DEFAULT_NOTIFICATION_SETTINGS
from app.services.authorization_service import ROLE_LEVELS
from app.services.helpers import get_or_raise, require_fields

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6

# Fields a user may change on their own profile
PROFILE_FIELDS = ['first_name', 'last_name', 'phone_number', 'address']

# Fields an admin may change on any user (role, password and status have their own paths)
ADMIN_EDITABLE_FIELDS = PROFILE_FIELDS + ['email', 'membership_id', 'is_email_verified']


def _fail(action, error):
    db.session.rollback()
    logger.exception("Failed to %s", action)
    return AppError(f"Failed to {action}: {str(error)}", 500)


def _normalize_email(email):
    return (email or '').strip().lower()


def _check_password_length(password):
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")


def generate_membership_id():
    """Next MEM0001-style id after the highest one issued"""
    last = User.query.filter(User.membership_id.like('MEM%')) \
        .order_by(User.membership_id.desc()).first()
    next_number = 1
    if last:
        try:
            next_number = int(last.membership_id[3:]) + 1
        except ValueError:
            next_number = User.query.count() + 1
    return f"MEM{next_number:04d}"


# ============================================================
# REGISTRATION / LOGIN
# ============================================================

def register_user(data):
    try:
        require_fields(
            data, ['first_name', 'last_name', 'email', 'password', 'phone_number'],
            "First name, last name, email, password and phone number are required"
        )
        _check_password_length(data['password'])

        email = _normalize_email(data['email'])
        if User.query.filter_by(email=email).first():
            raise ConflictError("User with this email already exists")

        role = data.get('role') or UserRole.MEMBER.value
        if role not in ROLE_LEVELS:
            raise ValidationError(f"Invalid role: {role}")

        membership_id = data.get('membership_id') or generate_membership_id()
        if User.query.filter_by(membership_id=membership_id).first():
            raise ConflictError("Membership ID already in use")

        user = User(
            first_name=data['first_name'],
            last_name=data['last_name'],
            email=email,
            phone_number=data['phone_number'],
            address=data.get('address'),
            role=role,
            membership_id=membership_id,
            notification_settings=dict(DEFAULT_NOTIFICATION_SETTINGS)
        )
        user.set_password(data['password'])

        db.session.add(user)
        db.session.commit()
        logger.info("User %s registered as %s (%s)", user.id, user.role, user.membership_id)
        return user

    except AppError:
        db.session.rollback()
        raise
    except Exception as e:
        raise _fail('register user', e)


def authenticate_user(email, password):
    if not email or not password:
        raise ValidationError("Email and password are required")

    user = User.query.filter_by(email=_normalize_email(email)).first()
    if not user or not user.check_password(password):
        raise AppError("Invalid email or password", 401)
    if not user.is_active:
        raise AuthorizationError("Your account has been deactivated. Please contact an administrator.")
    return user


# ============================================================
# PROFILE
# ============================================================

def get_all_users():
    return User.query.order_by(User.created_at.desc()).all()


def get_user_by_id(user_id):
    return get_or_raise(User, user_id, 'User')


def _apply_fields(user, data, fields):
    for field in fields:
        if field not in data:
            continue
        value = data[field]
        if field == 'email':
            value = _normalize_email(value)
            if not value:
                raise ValidationError("Email is required")
            clash = User.query.filter(User.email == value, User.id != user.id).first()
            if clash:
                raise ConflictError("User with this email already exists")
        elif field in ('first_name', 'last_name', 'phone_number') and not value:
            raise ValidationError(f"{field.replace('_', ' ').capitalize()} is required")
        setattr(user, field, value)


def update_profile(user_id, data):
    """Self-service profile update. Role, password and email are ignored."""
    try:
        user = get_or_raise(User, user_id, 'User')
        _apply_fields(user, data, PROFILE_FIELDS)
        db.session.commit()
        return user

    except AppError:
        db.session.rollback()
        raise
    except Exception as e:
        raise _fail('update profile', e)


def update_user(user_id, data):
    """Admin update of another user's details"""
    try:
        user = get_or_raise(User, user_id, 'User')
        _apply_fields(user, data, ADMIN_EDITABLE_FIELDS)
        db.session.commit()
        logger.info("User %s updated by admin", user_id)
        return user

    except AppError:
        db.session.rollback()
        raise
    except Exception as e:
        raise _fail('update user', e)


def change_password(user_id, current_password, new_password):
    try:
        if not current_password or not new_password:
            raise ValidationError("Current password and new password are required")
        _check_password_length(new_password)

        user = get_or_raise(User, user_id, 'User')
        if not user.check_password(current_password):
            raise AppError("Current password is incorrect", 401)

        user.set_password(new_password)
        db.session.commit()
        logger.info("Password changed for user %s", user_id)

    except AppError:
        db.session.rollback()
        raise
    except Exception as e:
        raise _fail('change password', e)


# ============================================================
# ROLE / STATUS
# ============================================================

def update_user_role(user_id, role):
    try:
        if role not in ROLE_LEVELS:
            raise ValidationError(f"Invalid role: {role}")
        user = get_or_raise(User, user_id, 'User')
        user.role = role
        db.session.commit()
        logger.info("User %s role set to %s", user_id, role)
        return user

    except AppError:
        db.session.rollback()
        raise
    except Exception as e:
        raise _fail('update user role', e)


def set_user_active_status(user_id, is_active):
    try:
        if not isinstance(is_active, bool):
            raise ValidationError("is_active must be true or false")
        user = get_or_raise(User, user_id, 'User')
        user.is_active = is_active
        db.session.commit()
        logger.info("User %s %s", user_id, 'activated' if is_active else 'deactivated')
        return user

    except AppError:
        db.session.rollback()
        raise
    except Exception as e:
        raise _fail('update user status', e)


# ============================================================
# MEMBER DIRECTORY
# ============================================================

def get_members(page=1, limit=10, search=None):
    """Paginated list of users with role 'member', optionally filtered by search term."""
    page = max(int(page or 1), 1)
    limit = max(int(limit or 10), 1)

    query = User.query.filter(User.role == UserRole.MEMBER.value)
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(
            User.first_name.ilike(pattern),
            User.last_name.ilike(pattern),
            User.email.ilike(pattern),
            User.phone_number.ilike(pattern),
            User.membership_id.ilike(pattern)
        ))

    total = query.count()
    members = query.order_by(User.created_at.desc()) \
        .offset((page - 1) * limit).limit(limit).all()

    return {
        'members': [m.to_dict() for m in members],
        'pagination': {
            'total': total,
            'page': page,
            'limit': limit,
            'pages': math.ceil(total / limit),
        },
    }


# ============================================================
# NOTIFICATION SETTINGS
# ============================================================

def get_notification_settings(user_id):
    user = get_or_raise(User, user_id, 'User')
    settings = dict(DEFAULT_NOTIFICATION_SETTINGS)
    settings.update(user.notification_settings or {})
    return settings


def update_notification_settings(user_id, settings):
    try:
        if not isinstance(settings, dict):
            raise ValidationError("Notification settings must be an object")
        unknown = set(settings) - set(DEFAULT_NOTIFICATION_SETTINGS)
        if unknown:
            raise ValidationError(f"Unknown notification settings: {', '.join(sorted(unknown))}")

        user = get_or_raise(User, user_id, 'User')
        merged = dict(DEFAULT_NOTIFICATION_SETTINGS)
        merged.update(user.notification_settings or {})
        merged.update({key: bool(value) for key, value in settings.items()})
        # Reassign so the JSON column is flagged dirty
        user.notification_settings = merged
        db.session.commit()
        return merged

    except AppError:
        db.session.rollback()
        raise
    except Exception as e:
        raise _fail('update notification settings', e)


# ============================================================
# BOOTSTRAP
# ============================================================

def ensure_super_admin(email, password, first_name='Super', last_name='Admin', phone_number='0000000000'):
    """Create the first super admin if none exists. Returns (user, created)."""
    existing = User.query.filter_by(role=UserRole.SUPER_ADMIN.value).first()
    if existing:
        return existing, False
    user = register_user({
        'first_name': first_name,
        'last_name': last_name,
        'email': email,
        'password': password,
        'phone_number': phone_number,
        'role': UserRole.SUPER_ADMIN.value,
    })
    return user, True
