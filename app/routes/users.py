"""
USER ROUTES
===========

Self-service profile endpoints for every logged-in user,
member directory for admins, role and status for super admins.
"""

from flask import Blueprint, current_app, request
from flask_login import login_required, current_user

from app.models import UserRole
from app.responses import send_success, get_json_body
from app.services.authorization_service import (
    Permissions, permission_required, has_permission,
    can_view_user_records, can_change_role, can_change_status, require_authorization
)
from app.services import user_service

users_bp = Blueprint('users', __name__)


@users_bp.route('/register', methods=['POST'])
@login_required
@permission_required(Permissions.REGISTER_USERS)
def register_member():
    """Admin registration. Only a super admin may hand out a role other than member."""
    data = get_json_body()
    if not has_permission(current_user, Permissions.MANAGE_ROLES):
        data['role'] = UserRole.MEMBER.value
    user = user_service.register_user(data)
    return send_success('User registered successfully', user.to_dict(), 201)


@users_bp.route('', methods=['GET'])
@login_required
@permission_required(Permissions.VIEW_MEMBERS)
def list_users():
    users = user_service.get_all_users()
    return send_success('Users retrieved', [u.to_dict() for u in users])


@users_bp.route('/members', methods=['GET'])
@login_required
@permission_required(Permissions.VIEW_MEMBERS)
def list_members():
    result = user_service.get_members(
        page=request.args.get('page', 1, type=int),
        limit=request.args.get('limit', current_app.config['MEMBERS_PAGE_SIZE'], type=int),
        search=request.args.get('search', '').strip() or None
    )
    return send_success('Members retrieved', result)


@users_bp.route('/change-password', methods=['PATCH'])
@login_required
def change_password():
    data = get_json_body()
    user_service.change_password(
        current_user.id, data.get('current_password'), data.get('new_password')
    )
    return send_success('Password updated successfully')


@users_bp.route('/profile', methods=['PUT'])
@login_required
def update_profile():
    user = user_service.update_profile(current_user.id, get_json_body())
    return send_success('Profile updated successfully', user.to_dict())


@users_bp.route('/notification-settings', methods=['GET'])
@login_required
def get_notification_settings():
    settings = user_service.get_notification_settings(current_user.id)
    return send_success('Notification settings retrieved', settings)


@users_bp.route('/notification-settings', methods=['PUT'])
@login_required
def update_notification_settings():
    data = get_json_body()
    settings = user_service.update_notification_settings(
        current_user.id, data.get('notification_settings', data)
    )
    return send_success('Notification settings updated', settings)


@users_bp.route('/<int:user_id>/role', methods=['PATCH'])
@login_required
@permission_required(Permissions.MANAGE_ROLES)
def update_role(user_id):
    role = get_json_body().get('role')
    target = user_service.get_user_by_id(user_id)
    require_authorization(can_change_role, current_user, target, role)
    user = user_service.update_user_role(user_id, role)
    return send_success('User role updated', user.to_dict())


@users_bp.route('/<int:user_id>/status', methods=['PATCH'])
@login_required
@permission_required(Permissions.MANAGE_ACCOUNT_STATUS)
def update_status(user_id):
    target = user_service.get_user_by_id(user_id)
    require_authorization(can_change_status, current_user, target)
    user = user_service.set_user_active_status(user_id, get_json_body().get('is_active'))
    return send_success('User status updated', user.to_dict())


@users_bp.route('/<int:user_id>', methods=['GET'])
@login_required
def get_user(user_id):
    require_authorization(can_view_user_records, current_user, user_id)
    user = user_service.get_user_by_id(user_id)
    return send_success('User retrieved', user.to_dict())


@users_bp.route('/<int:user_id>', methods=['PUT'])
@login_required
@permission_required(Permissions.VIEW_MEMBERS)
def update_user(user_id):
    user = user_service.update_user(user_id, get_json_body())
    return send_success('User updated successfully', user.to_dict())
