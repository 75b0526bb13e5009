"""
LEVY ROUTES
===========

Admins manage levies; every new levy goes to all active members.
Members read their own levies.
"""

from flask import Blueprint, request
from flask_login import login_required, current_user

from app.responses import send_success, get_json_body, with_dates
from app.services.authorization_service import (
    Permissions, permission_required, can_view_record,
    can_view_user_records, require_authorization
)
from app.services import obligation_service

levies_bp = Blueprint('levies', __name__)

DATE_FIELDS = ('start_date', 'end_date')


def _rows(items):
    return [row.to_dict() for row in items]


# ============== TEMPLATES ==============
@levies_bp.route('', methods=['POST'])
@login_required
@permission_required(Permissions.MANAGE_LEVIES)
def create_levy():
    levy = obligation_service.create_levy(with_dates(get_json_body(), *DATE_FIELDS))
    result = levy.to_dict()
    result['assigned_members'] = levy.members.count()
    return send_success('Levy created successfully', result, 201)


@levies_bp.route('', methods=['GET'])
@login_required
def list_levies():
    active_only = request.args.get('active', '').lower() in ('1', 'true', 'yes')
    return send_success('Levies retrieved', _rows(obligation_service.get_all_levies(active_only)))


@levies_bp.route('/unpaid', methods=['GET'])
@login_required
def unpaid_levies():
    user_id = request.args.get('user_id', current_user.id, type=int)
    require_authorization(can_view_user_records, current_user, user_id)
    rows = obligation_service.get_unpaid_obligations('levy', user_id)
    return send_success('Unpaid levies retrieved', _rows(rows))


@levies_bp.route('/<int:levy_id>', methods=['GET'])
@login_required
def get_levy(levy_id):
    return send_success('Levy retrieved', obligation_service.get_levy_by_id(levy_id).to_dict())


@levies_bp.route('/<int:levy_id>', methods=['PUT'])
@login_required
@permission_required(Permissions.MANAGE_LEVIES)
def update_levy(levy_id):
    levy = obligation_service.update_levy(levy_id, with_dates(get_json_body(), *DATE_FIELDS))
    return send_success('Levy updated successfully', levy.to_dict())


@levies_bp.route('/<int:levy_id>', methods=['DELETE'])
@login_required
@permission_required(Permissions.MANAGE_LEVIES)
def delete_levy(levy_id):
    obligation_service.delete_levy(levy_id)
    return send_success('Levy deleted successfully')


@levies_bp.route('/<int:levy_id>/assign', methods=['POST'])
@login_required
@permission_required(Permissions.MANAGE_LEVIES)
def assign_levy(levy_id):
    user_ids = get_json_body().get('user_ids') or []
    created = obligation_service.assign_obligation('levy', levy_id, user_ids)
    return send_success(f'Levy assigned to {len(created)} members', _rows(created), 201)


# ============== MEMBER LEVIES ==============
@levies_bp.route('/members', methods=['GET'])
@login_required
@permission_required(Permissions.MANAGE_LEVIES)
def list_member_levies():
    rows = obligation_service.get_member_obligations('levy', status=request.args.get('status'))
    return send_success('Member levies retrieved', _rows(rows))


@levies_bp.route('/members/my-levies', methods=['GET'])
@login_required
def my_levies():
    rows = obligation_service.get_member_obligations('levy', user_id=current_user.id)
    return send_success('Member levies retrieved', _rows(rows))


@levies_bp.route('/members/user/<int:user_id>', methods=['GET'])
@login_required
def user_levies(user_id):
    require_authorization(can_view_user_records, current_user, user_id)
    rows = obligation_service.get_member_obligations('levy', user_id=user_id)
    return send_success('Member levies retrieved', _rows(rows))


@levies_bp.route('/members/<int:member_levy_id>', methods=['GET'])
@login_required
def get_member_levy(member_levy_id):
    row = obligation_service.get_member_obligation('levy', member_levy_id)
    require_authorization(can_view_record, current_user, row)
    return send_success('Member levy retrieved', row.to_dict())


@levies_bp.route('/members/<int:member_levy_id>', methods=['PUT'])
@login_required
@permission_required(Permissions.MANAGE_LEVIES)
def update_member_levy(member_levy_id):
    row = obligation_service.update_member_obligation(
        'levy', member_levy_id, with_dates(get_json_body(), 'paid_date')
    )
    return send_success('Member levy updated successfully', row.to_dict())
