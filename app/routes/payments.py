"""
PAYMENT ROUTES
==============

Uses payment_service for all operations.
Members submit, admins settle or record payments directly.
"""

from flask import Blueprint, request
from flask_login import login_required, current_user

from app.errors import ValidationError
from app.models import PaymentStatus
from app.responses import send_success, get_json_body, date_range_args, with_dates, parse_date
from app.services.authorization_service import (
    Permissions, permission_required, can_view_record, can_view_user_records,
    require_authorization
)
from app.services import payment_service

payments_bp = Blueprint('payments', __name__)


def _payments(items):
    return [p.to_dict() for p in items]


# ============== MEMBER ==============
@payments_bp.route('', methods=['POST'])
@login_required
def create_payment():
    data = with_dates(get_json_body(), 'payment_date')
    payment = payment_service.create_payment(current_user.id, data)
    return send_success('Payment submitted successfully', payment.to_dict(), 201)


@payments_bp.route('/my-payments', methods=['GET'])
@login_required
def my_payments():
    payments = payment_service.get_user_payments(current_user.id)
    return send_success('Payments retrieved', _payments(payments))


@payments_bp.route('/<int:payment_id>/receipt', methods=['PATCH'])
@login_required
def update_receipt(payment_id):
    payment = payment_service.get_payment_by_id(payment_id)
    require_authorization(can_view_record, current_user, payment)
    payment = payment_service.update_payment_receipt(payment_id, get_json_body().get('receipt_url'))
    return send_success('Receipt updated', payment.to_dict())


@payments_bp.route('/<int:payment_id>', methods=['GET'])
@login_required
def get_payment(payment_id):
    payment = payment_service.get_payment_by_id(payment_id)
    require_authorization(can_view_record, current_user, payment)
    return send_success('Payment retrieved', payment.to_dict())


# ============== ADMIN ==============
@payments_bp.route('', methods=['GET'])
@login_required
@permission_required(Permissions.MANAGE_PAYMENTS)
def list_payments():
    start, end = date_range_args()
    payments = payment_service.get_payments(
        status=request.args.get('status'),
        payment_type=request.args.get('payment_type'),
        user_id=request.args.get('user_id', type=int),
        start=start,
        end=end
    )
    return send_success('Payments retrieved', _payments(payments))


@payments_bp.route('/pending', methods=['GET'])
@login_required
@permission_required(Permissions.MANAGE_PAYMENTS)
def pending_payments():
    payments = payment_service.get_payments(status=PaymentStatus.PENDING.value)
    return send_success('Pending payments retrieved', _payments(payments))


@payments_bp.route('/approved', methods=['GET'])
@login_required
@permission_required(Permissions.MANAGE_PAYMENTS)
def approved_payments():
    payments = payment_service.get_payments(status=PaymentStatus.APPROVED.value)
    return send_success('Approved payments retrieved', _payments(payments))


@payments_bp.route('/member/<int:user_id>', methods=['GET'])
@login_required
def member_payments(user_id):
    require_authorization(can_view_user_records, current_user, user_id)
    payments = payment_service.get_user_payments(user_id)
    return send_success('Payments retrieved', _payments(payments))


@payments_bp.route('/admin-payment', methods=['POST'])
@login_required
@permission_required(Permissions.MANAGE_PAYMENTS)
def admin_payment():
    data = get_json_body()
    payment, related = payment_service.record_admin_payment(
        admin_id=current_user.id,
        user_id=data.get('user_id'),
        amount=data.get('amount'),
        payment_type=data.get('payment_type'),
        related_item_id=data.get('related_item_id'),
        description=data.get('description'),
        payment_date=parse_date(data.get('payment_date'), 'payment_date'),
        payment_method=data.get('payment_method') or 'cash',
        reference_number=data.get('reference_number')
    )
    return send_success('Payment recorded successfully', {
        'payment': payment.to_dict(),
        'related_item': related.to_dict() if related is not None else None,
    }, 201)


@payments_bp.route('/<int:payment_id>/approve', methods=['PUT'])
@login_required
@permission_required(Permissions.MANAGE_PAYMENTS)
def approve(payment_id):
    payment = payment_service.approve_payment(payment_id, current_user.id)
    return send_success('Payment approved', payment.to_dict())


@payments_bp.route('/<int:payment_id>/reject', methods=['PUT'])
@login_required
@permission_required(Permissions.MANAGE_PAYMENTS)
def reject(payment_id):
    reason = get_json_body().get('rejection_reason') or get_json_body().get('reason')
    payment = payment_service.reject_payment(payment_id, current_user.id, reason)
    return send_success('Payment rejected', payment.to_dict())


@payments_bp.route('/<int:payment_id>/status', methods=['PATCH'])
@login_required
@permission_required(Permissions.MANAGE_PAYMENTS)
def update_status(payment_id):
    data = get_json_body()
    status = data.get('status')
    if not status:
        raise ValidationError("Status is required")
    payment = payment_service.settle_payment(
        payment_id, status, current_user.id, rejection_reason=data.get('rejection_reason')
    )
    return send_success(f'Payment {payment.status}', payment.to_dict())
