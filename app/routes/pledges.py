"""
PLEDGE ROUTES
=============
"""

from flask import Blueprint, request
from flask_login import login_required, current_user

from app.responses import send_success, get_json_body, with_dates
from app.services.authorization_service import (
    Permissions, permission_required, can_view_record, can_view_user_records,
    require_authorization
)
from app.services import pledge_service

pledges_bp = Blueprint('pledges', __name__)


def _pledges(items):
    return [p.to_dict() for p in items]


@pledges_bp.route('', methods=['POST'])
@login_required
def create_pledge():
    pledge = pledge_service.create_pledge(current_user.id, with_dates(get_json_body(), 'pledge_date'))
    return send_success('Pledge created successfully', pledge.to_dict(), 201)


@pledges_bp.route('', methods=['GET'])
@login_required
@permission_required(Permissions.MANAGE_PLEDGES)
def list_pledges():
    return send_success('Pledges retrieved', _pledges(pledge_service.get_all_pledges(request.args.get('status'))))


@pledges_bp.route('/my-pledges', methods=['GET'])
@login_required
def my_pledges():
    return send_success('Pledges retrieved', _pledges(pledge_service.get_user_pledges(current_user.id)))


@pledges_bp.route('/member/<int:user_id>', methods=['GET'])
@login_required
def member_pledges(user_id):
    require_authorization(can_view_user_records, current_user, user_id)
    return send_success('Pledges retrieved', _pledges(pledge_service.get_user_pledges(user_id)))


@pledges_bp.route('/<int:pledge_id>', methods=['GET'])
@login_required
def get_pledge(pledge_id):
    pledge = pledge_service.get_pledge_by_id(pledge_id)
    require_authorization(can_view_record, current_user, pledge)
    return send_success('Pledge retrieved', pledge.to_dict())


@pledges_bp.route('/<int:pledge_id>', methods=['PUT'])
@login_required
@permission_required(Permissions.MANAGE_PLEDGES)
def update_pledge(pledge_id):
    pledge = pledge_service.update_pledge(pledge_id, with_dates(get_json_body(), 'pledge_date'))
    return send_success('Pledge updated successfully', pledge.to_dict())


@pledges_bp.route('/<int:pledge_id>', methods=['DELETE'])
@login_required
@permission_required(Permissions.MANAGE_PLEDGES)
def delete_pledge(pledge_id):
    pledge_service.delete_pledge(pledge_id)
    return send_success('Pledge deleted successfully')


@pledges_bp.route('/<int:pledge_id>/fulfill', methods=['PATCH'])
@login_required
@permission_required(Permissions.MANAGE_PLEDGES)
def fulfill_pledge(pledge_id):
    pledge = pledge_service.fulfill_pledge(pledge_id, get_json_body().get('payment_id'))
    return send_success('Pledge fulfilled successfully', pledge.to_dict())
