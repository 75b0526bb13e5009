"""
DONATION ROUTES
===============
"""

from flask import Blueprint, request
from flask_login import login_required, current_user

from app.responses import send_success, get_json_body, with_dates
from app.services.authorization_service import (
    Permissions, permission_required, can_view_record, require_authorization
)
from app.services import donation_service

donations_bp = Blueprint('donations', __name__)


@donations_bp.route('', methods=['POST'])
@login_required
def create_donation():
    donation = donation_service.create_donation(current_user.id, with_dates(get_json_body(), 'donation_date'))
    return send_success('Donation created successfully', donation.to_dict(), 201)


@donations_bp.route('', methods=['GET'])
@login_required
@permission_required(Permissions.MANAGE_DONATIONS)
def list_donations():
    donations = donation_service.get_all_donations(request.args.get('status'))
    return send_success('Donations retrieved', [d.to_dict() for d in donations])


@donations_bp.route('/my-donations', methods=['GET'])
@login_required
def my_donations():
    donations = donation_service.get_user_donations(current_user.id)
    return send_success('Donations retrieved', [d.to_dict() for d in donations])


@donations_bp.route('/<int:donation_id>', methods=['GET'])
@login_required
def get_donation(donation_id):
    donation = donation_service.get_donation_by_id(donation_id)
    require_authorization(can_view_record, current_user, donation)
    return send_success('Donation retrieved', donation.to_dict())


@donations_bp.route('/<int:donation_id>', methods=['PUT'])
@login_required
@permission_required(Permissions.MANAGE_DONATIONS)
def update_donation(donation_id):
    donation = donation_service.update_donation(donation_id, with_dates(get_json_body(), 'donation_date'))
    return send_success('Donation updated successfully', donation.to_dict())


@donations_bp.route('/<int:donation_id>', methods=['DELETE'])
@login_required
@permission_required(Permissions.MANAGE_DONATIONS)
def delete_donation(donation_id):
    donation_service.delete_donation(donation_id)
    return send_success('Donation deleted successfully')


@donations_bp.route('/<int:donation_id>/process', methods=['PATCH'])
@login_required
@permission_required(Permissions.MANAGE_DONATIONS)
def process_donation(donation_id):
    donation = donation_service.process_donation(donation_id, get_json_body().get('payment_id'))
    return send_success('Donation processed successfully', donation.to_dict())
