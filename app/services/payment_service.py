"""
PAYMENT SERVICE - SETTLEMENT ENGINE
===================================

CRITICAL BUSINESS RULES:
1. A payment is settled exactly once: pending -> approved | rejected
2. Approval writes exactly one 'income' Transaction
3. Admin-recorded payments are born approved, settle their related
   item and write one 'credit' Transaction
4. Every operation is ATOMIC: status changes, related-item updates
   and ledger rows commit together or not at all
"""

import logging
from datetime import datetime

from app.errors import AppError, ConflictError, NotFoundError, ValidationError
from app.extensions import db
from app.models import (
    Payment, PaymentStatus, PaymentType, TransactionType, User,
    MemberDue, MemberLevy, Pledge, PledgeStatus, Loan, ObligationStatus, enum_values
)
from app.services.accounting_service import stage_transaction
from app.services.helpers import get_or_raise, parse_amount, require_fields, filter_by_date
from app.services.loan_service import stage_loan_repayment, refresh_loan_repayment_status

logger = logging.getLogger(__name__)


def _fail(action, error):
    db.session.rollback()
    logger.exception("Failed to %s", action)
    return AppError(f"Failed to {action}: {str(error)}", 500)


def _validate_payment_type(payment_type, required=False):
    if payment_type in (None, ''):
        if required:
            raise ValidationError("Payment type is required")
        return None
    if payment_type not in enum_values(PaymentType):
        raise ValidationError(f"Invalid payment type: {payment_type}")
    return payment_type


# ============================================================
# MEMBER-SUBMITTED PAYMENTS
# ============================================================

def create_payment(user_id, data):
    """Record a pending payment submitted by a member."""
    try:
        require_fields(data, ['amount', 'description'], "Amount and description are required")
        get_or_raise(User, user_id, 'User')

        payment = Payment(
            user_id=user_id,
            amount=parse_amount(data['amount']),
            description=data['description'],
            payment_date=data.get('payment_date') or datetime.utcnow(),
            payment_type=_validate_payment_type(data.get('payment_type')),
            related_item_id=data.get('related_item_id'),
            payment_method=data.get('payment_method'),
            reference_number=data.get('reference_number'),
            receipt_url=data.get('receipt_url'),
            status=PaymentStatus.PENDING.value
        )

        db.session.add(payment)
        db.session.commit()
        logger.info("Payment %s of %.2f submitted by user %s", payment.id, payment.amount, user_id)
        return payment

    except AppError:
        db.session.rollback()
        raise
    except Exception as e:
        raise _fail('create payment', e)


def update_payment_receipt(payment_id, receipt_url):
    try:
        if not receipt_url:
            raise ValidationError("Receipt URL is required")
        payment = get_or_raise(Payment, payment_id, 'Payment')
        payment.receipt_url = receipt_url
        db.session.commit()
        return payment

    except AppError:
        db.session.rollback()
        raise
    except Exception as e:
        raise _fail('update payment receipt', e)


# ============================================================
# SETTLEMENT
# ============================================================

def settle_payment(payment_id, new_status, actor_id, rejection_reason=None):
    """
    Approve or reject a pending payment.

    On approval one income Transaction is written in the same commit.
    Settling a payment that is no longer pending raises ConflictError.
    """
    try:
        if new_status not in (PaymentStatus.APPROVED.value, PaymentStatus.REJECTED.value):
            raise ValidationError(f"Invalid payment status: {new_status}")

        payment = get_or_raise(Payment, payment_id, 'Payment')
        if db.session.get(User, actor_id) is None:
            raise NotFoundError("Admin user not found")

        if payment.status != PaymentStatus.PENDING.value:
            raise ConflictError(
                f"Payment cannot be {new_status} because it is already {payment.status}"
            )

        payment.status = new_status
        payment.approved_by = actor_id
        payment.approved_at = datetime.utcnow()

        if new_status == PaymentStatus.REJECTED.value:
            payment.rejection_reason = rejection_reason
        else:
            stage_transaction(
                title=f"Payment - {payment.description}",
                amount=payment.amount,
                type=TransactionType.INCOME.value,
                category='Payment',
                description=payment.description,
                recorded_by=actor_id,
                related_payment_id=payment.id
            )

        db.session.commit()
        logger.info("Payment %s %s by user %s", payment_id, new_status, actor_id)
        return payment

    except AppError:
        db.session.rollback()
        raise
    except Exception as e:
        raise _fail('settle payment', e)


def approve_payment(payment_id, actor_id):
    return settle_payment(payment_id, PaymentStatus.APPROVED.value, actor_id)


def reject_payment(payment_id, actor_id, reason=None):
    return settle_payment(payment_id, PaymentStatus.REJECTED.value, actor_id, rejection_reason=reason)


# ============================================================
# ADMIN-RECORDED PAYMENTS
# ============================================================

def _settle_member_obligation(model, template_fk, label, payment):
    row = model.query.filter_by(
        user_id=payment.user_id, **{template_fk: payment.related_item_id}
    ).first()
    if row is None:
        raise NotFoundError(f"{label} not found for this user")

    # Overwrites amount_paid with this payment's amount
    row.amount_paid = payment.amount
    row.balance = max(row.template.amount - payment.amount, 0.0)
    row.status = ObligationStatus.PAID.value
    row.paid_date = datetime.utcnow()
    row.payment_id = payment.id
    return row


def _handle_due(payment):
    return _settle_member_obligation(MemberDue, 'due_id', 'Member due', payment)


def _handle_levy(payment):
    return _settle_member_obligation(MemberLevy, 'levy_id', 'Member levy', payment)


def _handle_pledge(payment):
    pledge = db.session.get(Pledge, payment.related_item_id)
    if pledge is None:
        raise NotFoundError("Pledge not found")
    pledge.status = PledgeStatus.FULFILLED.value
    pledge.fulfilled_amount = payment.amount
    pledge.fulfillment_date = datetime.utcnow()
    pledge.payment_id = payment.id
    return pledge


def _handle_donation(payment):
    return None


def _handle_loan_repayment(payment):
    loan = db.session.get(Loan, payment.related_item_id)
    if loan is None:
        raise NotFoundError("Loan not found")
    repayment = stage_loan_repayment(
        loan, payment.user_id, payment.amount, PaymentStatus.APPROVED.value,
        receipt_url=payment.receipt_url,
        approved_by=payment.approved_by,
        repayment_date=payment.payment_date
    )
    refresh_loan_repayment_status(loan)
    return repayment


ADMIN_PAYMENT_HANDLERS = {
    PaymentType.DUE.value: _handle_due,
    PaymentType.LEVY.value: _handle_levy,
    PaymentType.PLEDGE.value: _handle_pledge,
    PaymentType.DONATION.value: _handle_donation,
    PaymentType.LOAN_REPAYMENT.value: _handle_loan_repayment,
}


def record_admin_payment(admin_id, user_id, amount, payment_type, related_item_id=None,
                         description=None, payment_date=None, payment_method='cash',
                         reference_number=None):
    """
    Record a payment on a member's behalf.

    The payment is created approved, its related item is settled by
    the handler for payment_type and a credit Transaction is written.
    Any failure rolls back all three.

    Returns: (Payment, related item or None)
    """
    try:
        if not user_id or amount in (None, '') or not payment_type:
            raise ValidationError("User ID, amount, and payment type are required")

        payment_type = _validate_payment_type(payment_type, required=True)
        amount = parse_amount(amount)
        user = get_or_raise(User, user_id, 'User')

        if payment_type != PaymentType.DONATION.value and not related_item_id:
            raise ValidationError(f"Related item is required for {payment_type} payments")
        if related_item_id not in (None, ''):
            try:
                related_item_id = int(related_item_id)
            except (TypeError, ValueError):
                raise ValidationError("Related item id must be an integer")
        else:
            related_item_id = None

        payment = Payment(
            user_id=user.id,
            amount=amount,
            description=description or f"Admin recorded {payment_type.replace('_', ' ')} payment",
            payment_date=payment_date or datetime.utcnow(),
            payment_type=payment_type,
            related_item_id=related_item_id,
            payment_method=payment_method or 'cash',
            reference_number=reference_number,
            status=PaymentStatus.APPROVED.value,
            approved_by=admin_id,
            approved_at=datetime.utcnow(),
            paid_by_admin=True
        )
        db.session.add(payment)
        db.session.flush()

        related = ADMIN_PAYMENT_HANDLERS[payment_type](payment)

        stage_transaction(
            title=f"Admin payment - {payment.description}",
            amount=amount,
            type=TransactionType.CREDIT.value,
            category=payment_type,
            description=payment.description,
            recorded_by=admin_id,
            related_payment_id=payment.id,
            date=payment.payment_date
        )

        db.session.commit()
        logger.info("Admin %s recorded %s payment %s of %.2f for user %s",
                    admin_id, payment_type, payment.id, amount, user.id)
        return payment, related

    except AppError:
        db.session.rollback()
        raise
    except Exception as e:
        raise _fail('record admin payment', e)


# ============================================================
# QUERIES
# ============================================================

def get_payments(status=None, payment_type=None, user_id=None, start=None, end=None):
    query = Payment.query
    if status:
        query = query.filter(Payment.status == status)
    if payment_type:
        query = query.filter(Payment.payment_type == payment_type)
    if user_id is not None:
        query = query.filter(Payment.user_id == user_id)
    query = filter_by_date(query, Payment.payment_date, start, end)
    return query.order_by(Payment.payment_date.desc()).all()


def get_payment_by_id(payment_id):
    return get_or_raise(Payment, payment_id, 'Payment')


def get_user_payments(user_id):
    return get_payments(user_id=user_id)
