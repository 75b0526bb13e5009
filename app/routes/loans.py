"""
LOAN ROUTES
===========

Uses loan_service for all operations.
Implements strict state machine.
"""

from flask import Blueprint, request
from flask_login import login_required, current_user

from app.models import PaymentStatus
from app.responses import send_success, get_json_body
from app.services.authorization_service import (
    Permissions, permission_required, can_view_loan, can_view_user_loans,
    require_authorization
)
from app.services import loan_service

loans_bp = Blueprint('loans', __name__)


def _loans(items):
    return [l.to_dict() for l in items]


# ============== APPLY / MEMBER VIEWS ==============
@loans_bp.route('', methods=['POST'])
@login_required
def apply_for_loan():
    data = get_json_body()
    loan = loan_service.create_loan(
        user_id=current_user.id,
        amount=data.get('amount'),
        purpose=data.get('purpose'),
        duration_in_months=data.get('duration_in_months'),
        interest_rate=data.get('interest_rate')
    )
    return send_success('Loan application submitted', loan.to_dict(), 201)


@loans_bp.route('/my-loans', methods=['GET'])
@login_required
def my_loans():
    return send_success('Loans retrieved', _loans(loan_service.get_user_loans(current_user.id)))


@loans_bp.route('/active', methods=['GET'])
@login_required
def active_loans():
    return send_success('Active loans retrieved', _loans(loan_service.get_active_loans(current_user.id)))


@loans_bp.route('/history', methods=['GET'])
@login_required
def loan_history():
    return send_success('Loan history retrieved', _loans(loan_service.get_loan_history(current_user.id)))


@loans_bp.route('/member/<int:user_id>', methods=['GET'])
@login_required
def member_loans(user_id):
    require_authorization(can_view_user_loans, current_user, user_id)
    return send_success('Loans retrieved', _loans(loan_service.get_user_loans(user_id)))


@loans_bp.route('/detail/<int:loan_id>', methods=['GET'])
@login_required
def loan_detail(loan_id):
    loan = loan_service.get_loan_by_id(loan_id)
    require_authorization(can_view_loan, current_user, loan)
    return send_success('Loan retrieved', loan_service.get_loan_details(loan_id))


# ============== ADMIN VIEWS ==============
@loans_bp.route('', methods=['GET'])
@login_required
@permission_required(Permissions.MANAGE_LOANS)
def list_loans():
    return send_success('Loans retrieved', _loans(loan_service.get_all_loans()))


@loans_bp.route('/status/<status>', methods=['GET'])
@login_required
@permission_required(Permissions.MANAGE_LOANS)
def loans_by_status(status):
    return send_success('Loans retrieved', _loans(loan_service.get_loans_by_status(status)))


# ============== STATE MACHINE ==============
@loans_bp.route('/<int:loan_id>/approve', methods=['PUT'])
@login_required
@permission_required(Permissions.MANAGE_LOANS)
def approve(loan_id):
    loan = loan_service.approve_loan(loan_id, current_user.id)
    return send_success('Loan approved', loan.to_dict())


@loans_bp.route('/<int:loan_id>/reject', methods=['PUT'])
@login_required
@permission_required(Permissions.MANAGE_LOANS)
def reject(loan_id):
    data = get_json_body()
    loan = loan_service.reject_loan(loan_id, current_user.id, data.get('rejection_reason') or data.get('reason'))
    return send_success('Loan rejected', loan.to_dict())


@loans_bp.route('/<int:loan_id>/default', methods=['PUT'])
@login_required
@permission_required(Permissions.MANAGE_LOANS)
def mark_defaulted(loan_id):
    loan = loan_service.mark_loan_defaulted(loan_id, current_user.id)
    return send_success('Loan marked as defaulted', loan.to_dict())


@loans_bp.route('/<int:loan_id>/reconcile', methods=['GET'])
@login_required
@permission_required(Permissions.MANAGE_LOANS)
def reconcile(loan_id):
    return send_success('Loan reconciled', loan_service.reconcile_loan(loan_id))


# ============== REPAYMENTS ==============
@loans_bp.route('/<int:loan_id>/repayments', methods=['POST'])
@login_required
def submit_repayment(loan_id):
    data = get_json_body()
    repayment = loan_service.create_loan_repayment(
        loan_id, current_user.id, data.get('amount'), receipt_url=data.get('receipt_url')
    )
    return send_success('Repayment submitted', repayment.to_dict(), 201)


@loans_bp.route('/<int:loan_id>/repayments', methods=['GET'])
@login_required
def loan_repayments(loan_id):
    loan = loan_service.get_loan_by_id(loan_id)
    require_authorization(can_view_loan, current_user, loan)
    repayments = loan_service.get_loan_repayments(loan_id)
    return send_success('Repayments retrieved', [r.to_dict() for r in repayments])


@loans_bp.route('/repayments', methods=['GET'])
@login_required
@permission_required(Permissions.MANAGE_LOANS)
def all_repayments():
    repayments = loan_service.get_all_repayments(status=request.args.get('status'))
    return send_success('Repayments retrieved', [r.to_dict() for r in repayments])


@loans_bp.route('/repayments/<int:repayment_id>/approve', methods=['PUT'])
@login_required
@permission_required(Permissions.MANAGE_LOANS)
def approve_repayment(repayment_id):
    repayment = loan_service.settle_loan_repayment(repayment_id, PaymentStatus.APPROVED.value, current_user.id)
    return send_success('Repayment approved', {
        'repayment': repayment.to_dict(),
        'loan': repayment.loan.to_dict(),
    })


@loans_bp.route('/repayments/<int:repayment_id>/reject', methods=['PUT'])
@login_required
@permission_required(Permissions.MANAGE_LOANS)
def reject_repayment(repayment_id):
    data = get_json_body()
    repayment = loan_service.settle_loan_repayment(
        repayment_id, PaymentStatus.REJECTED.value, current_user.id,
        reason=data.get('rejection_reason') or data.get('reason')
    )
    return send_success('Repayment rejected', repayment.to_dict())
