"""
DUE ROUTES
==========

Admins manage due templates and member dues.
Members read their own dues.
"""

from flask import Blueprint, request
from flask_login import login_required, current_user

from app.errors import ValidationError
from app.responses import send_success, get_json_body, with_dates
from app.services.authorization_service import (
    Permissions, permission_required, can_view_record,
    can_view_user_records, require_authorization
)
from app.services import obligation_service

dues_bp = Blueprint('dues', __name__)

DATE_FIELDS = ('due_date',)


def _rows(items):
    return [row.to_dict() for row in items]


# ============== TEMPLATES ==============
@dues_bp.route('', methods=['POST'])
@login_required
@permission_required(Permissions.MANAGE_DUES)
def create_due():
    data = with_dates(get_json_body(), *DATE_FIELDS)
    assign_to_all = data.pop('assign_to_all', None)
    selected_members = data.pop('selected_members', None)
    if assign_to_all is False and not selected_members:
        raise ValidationError("Select at least one member or assign to all members")

    due = obligation_service.create_due(
        data, assign_to_all=assign_to_all, selected_members=selected_members
    )
    result = due.to_dict()
    result['assigned_members'] = due.members.count()
    return send_success('Due created successfully', result, 201)


@dues_bp.route('', methods=['GET'])
@login_required
def list_dues():
    return send_success('Dues retrieved', _rows(obligation_service.get_all_dues()))


@dues_bp.route('/unpaid', methods=['GET'])
@login_required
def unpaid_dues():
    user_id = request.args.get('user_id', current_user.id, type=int)
    require_authorization(can_view_user_records, current_user, user_id)
    rows = obligation_service.get_unpaid_obligations('due', user_id)
    return send_success('Unpaid dues retrieved', _rows(rows))


@dues_bp.route('/<int:due_id>', methods=['GET'])
@login_required
def get_due(due_id):
    return send_success('Due retrieved', obligation_service.get_due_by_id(due_id).to_dict())


@dues_bp.route('/<int:due_id>', methods=['PUT'])
@login_required
@permission_required(Permissions.MANAGE_DUES)
def update_due(due_id):
    due = obligation_service.update_due(due_id, with_dates(get_json_body(), *DATE_FIELDS))
    return send_success('Due updated successfully', due.to_dict())


@dues_bp.route('/<int:due_id>', methods=['DELETE'])
@login_required
@permission_required(Permissions.MANAGE_DUES)
def delete_due(due_id):
    obligation_service.delete_due(due_id)
    return send_success('Due deleted successfully')


@dues_bp.route('/<int:due_id>/assign', methods=['POST'])
@login_required
@permission_required(Permissions.MANAGE_DUES)
def assign_due(due_id):
    user_ids = get_json_body().get('user_ids') or []
    created = obligation_service.assign_obligation('due', due_id, user_ids)
    return send_success(f'Due assigned to {len(created)} members', _rows(created), 201)


# ============== MEMBER DUES ==============
@dues_bp.route('/members', methods=['GET'])
@login_required
@permission_required(Permissions.MANAGE_DUES)
def list_member_dues():
    rows = obligation_service.get_member_obligations('due', status=request.args.get('status'))
    return send_success('Member dues retrieved', _rows(rows))


@dues_bp.route('/members/my-dues', methods=['GET'])
@login_required
def my_dues():
    rows = obligation_service.get_member_obligations('due', user_id=current_user.id)
    return send_success('Member dues retrieved', _rows(rows))


@dues_bp.route('/members/user/<int:user_id>', methods=['GET'])
@login_required
def user_dues(user_id):
    require_authorization(can_view_user_records, current_user, user_id)
    rows = obligation_service.get_member_obligations('due', user_id=user_id)
    return send_success('Member dues retrieved', _rows(rows))


@dues_bp.route('/members/<int:member_due_id>', methods=['GET'])
@login_required
def get_member_due(member_due_id):
    row = obligation_service.get_member_obligation('due', member_due_id)
    require_authorization(can_view_record, current_user, row)
    return send_success('Member due retrieved', row.to_dict())


@dues_bp.route('/members/<int:member_due_id>', methods=['PUT'])
@login_required
@permission_required(Permissions.MANAGE_DUES)
def update_member_due(member_due_id):
    row = obligation_service.update_member_obligation(
        'due', member_due_id, with_dates(get_json_body(), 'paid_date')
    )
    return send_success('Member due updated successfully', row.to_dict())
