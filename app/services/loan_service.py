"""
LOAN SERVICE
============

Handles:
- Creating loan applications
- Approval / rejection / default state machine
- Loan repayments and their settlement
- Repayment aggregation (total_repaid, paid transition)

State machine:
    pending --approve--> approved --(repaid in full)--> paid
    pending --reject---> rejected
    approved --default-> defaulted
"""

import logging
from datetime import datetime

from flask import current_app
from sqlalchemy import func

from app.errors import AppError, ConflictError, ValidationError
from app.extensions import db
from app.models import Loan, LoanRepayment, LoanStatus, PaymentStatus, User
from app.services.helpers import get_or_raise, parse_amount

logger = logging.getLogger(__name__)

# Loans that still owe money and accept repayments
REPAYABLE_STATUSES = (LoanStatus.APPROVED.value, LoanStatus.DEFAULTED.value)

ACTIVE_STATUSES = [LoanStatus.PENDING.value, LoanStatus.APPROVED.value]
HISTORY_STATUSES = [LoanStatus.PAID.value, LoanStatus.REJECTED.value, LoanStatus.DEFAULTED.value]


def _fail(action, error):
    db.session.rollback()
    logger.exception("Failed to %s", action)
    return AppError(f"Failed to {action}: {str(error)}", 500)


# ============================================================
# CREATE LOAN
# ============================================================

def create_loan(user_id, amount, purpose, duration_in_months, interest_rate=None):
    """Create a pending loan application for user_id."""
    try:
        if amount in (None, '') or not purpose or duration_in_months in (None, ''):
            raise ValidationError("Amount, purpose and duration are required")

        get_or_raise(User, user_id, 'User')
        amount = parse_amount(amount)

        try:
            duration_in_months = int(duration_in_months)
        except (TypeError, ValueError):
            raise ValidationError("Duration must be a whole number of months")
        if duration_in_months <= 0:
            raise ValidationError("Duration must be at least one month")

        if interest_rate in (None, ''):
            interest_rate = current_app.config['DEFAULT_LOAN_INTEREST_RATE']
        interest_rate = parse_amount(interest_rate, 'Interest rate', allow_zero=True)

        loan = Loan(
            user_id=user_id,
            amount=amount,
            purpose=purpose,
            duration_in_months=duration_in_months,
            interest_rate=interest_rate,
            status=LoanStatus.PENDING.value
        )

        db.session.add(loan)
        db.session.commit()
        logger.info("Loan %s applied for by user %s: %.2f", loan.id, user_id, amount)

        return loan

    except AppError:
        db.session.rollback()
        raise
    except Exception as e:
        raise _fail('create loan', e)


# ============================================================
# APPROVE / REJECT / DEFAULT
# ============================================================

def _require_status(loan, expected, action):
    if loan.status != expected:
        raise ConflictError(f"Loan cannot be {action} because it is already {loan.status}")


def approve_loan(loan_id, admin_id):
    try:
        loan = get_or_raise(Loan, loan_id, 'Loan')
        _require_status(loan, LoanStatus.PENDING.value, 'approved')

        loan.status = LoanStatus.APPROVED.value
        loan.approved_by = admin_id
        loan.approval_date = datetime.utcnow()

        db.session.commit()
        logger.info("Loan %s approved by user %s", loan_id, admin_id)
        return loan

    except AppError:
        db.session.rollback()
        raise
    except Exception as e:
        raise _fail('approve loan', e)


def reject_loan(loan_id, admin_id, reason):
    try:
        if not reason or not str(reason).strip():
            raise ValidationError("Rejection reason is required")

        loan = get_or_raise(Loan, loan_id, 'Loan')
        _require_status(loan, LoanStatus.PENDING.value, 'rejected')

        loan.status = LoanStatus.REJECTED.value
        loan.rejection_reason = reason
        loan.approved_by = admin_id
        loan.approval_date = datetime.utcnow()

        db.session.commit()
        logger.info("Loan %s rejected by user %s", loan_id, admin_id)
        return loan

    except AppError:
        db.session.rollback()
        raise
    except Exception as e:
        raise _fail('reject loan', e)


def mark_loan_defaulted(loan_id, admin_id):
    """Manual transition approved -> defaulted."""
    try:
        loan = get_or_raise(Loan, loan_id, 'Loan')
        if loan.status != LoanStatus.APPROVED.value:
            raise ConflictError(f"Only approved loans can be marked defaulted, loan is {loan.status}")

        loan.status = LoanStatus.DEFAULTED.value
        db.session.commit()
        logger.info("Loan %s marked defaulted by user %s", loan_id, admin_id)
        return loan

    except AppError:
        db.session.rollback()
        raise
    except Exception as e:
        raise _fail('mark loan defaulted', e)


# ============================================================
# REPAYMENT AGGREGATION
# ============================================================

def sum_approved_repayments(loan_id):
    total = db.session.query(func.sum(LoanRepayment.amount)).filter(
        LoanRepayment.loan_id == loan_id,
        LoanRepayment.status == PaymentStatus.APPROVED.value
    ).scalar()
    return float(total or 0)


def refresh_loan_repayment_status(loan):
    """
    Recompute total_repaid from every approved repayment and move an
    approved or defaulted loan to 'paid' once the total reaches the principal.

    Running it twice gives the same result. Does not commit; the caller
    owns the unit of work.
    """
    db.session.flush()
    total = sum_approved_repayments(loan.id)
    loan.total_repaid = total

    if loan.status in REPAYABLE_STATUSES and total >= loan.amount:
        loan.status = LoanStatus.PAID.value
        loan.repayment_date = datetime.utcnow()
        logger.info("Loan %s fully repaid (%.2f of %.2f)", loan.id, total, loan.amount)

    return loan


def reconcile_loan(loan_id):
    """Compare the stored running total with a fresh sum of approved repayments."""
    loan = get_or_raise(Loan, loan_id, 'Loan')
    computed = sum_approved_repayments(loan.id)
    stored = loan.total_repaid or 0.0
    drift = round(computed - stored, 2)
    if drift:
        logger.warning("Loan %s total_repaid drift: stored=%.2f computed=%.2f", loan.id, stored, computed)
    return {
        'loan_id': loan.id,
        'stored_total_repaid': stored,
        'computed_total_repaid': computed,
        'drift': drift,
        'in_sync': drift == 0,
        'status': loan.status,
    }


# ============================================================
# LOAN REPAYMENTS
# ============================================================

def stage_loan_repayment(loan, user_id, amount, status, receipt_url=None,
                         approved_by=None, repayment_date=None):
    """
    Validate and add a repayment to the session without committing.
    Used by create_loan_repayment and by admin-recorded repayments.
    """
    if loan.user_id != user_id:
        raise ValidationError("User does not match loan owner")
    if loan.status not in REPAYABLE_STATUSES:
        raise ConflictError(f"Loan is {loan.status} and cannot accept repayments")

    repayment = LoanRepayment(
        loan_id=loan.id,
        user_id=user_id,
        amount=parse_amount(amount),
        repayment_date=repayment_date or datetime.utcnow(),
        receipt_url=receipt_url,
        status=status
    )
    if status == PaymentStatus.APPROVED.value:
        repayment.approved_by = approved_by
        repayment.approved_at = datetime.utcnow()

    db.session.add(repayment)
    return repayment


def create_loan_repayment(loan_id, user_id, amount, receipt_url=None):
    try:
        loan = get_or_raise(Loan, loan_id, 'Loan')
        repayment = stage_loan_repayment(
            loan, user_id, amount, PaymentStatus.PENDING.value, receipt_url=receipt_url
        )
        db.session.commit()
        logger.info("Repayment %s of %.2f submitted for loan %s", repayment.id, repayment.amount, loan_id)
        return repayment

    except AppError:
        db.session.rollback()
        raise
    except Exception as e:
        raise _fail('create loan repayment', e)


def settle_loan_repayment(repayment_id, new_status, admin_id, reason=None):
    """
    Approve or reject a pending repayment.
    Approval refreshes the loan's total and may mark it paid.
    """
    try:
        if new_status not in (PaymentStatus.APPROVED.value, PaymentStatus.REJECTED.value):
            raise ValidationError(f"Invalid repayment status: {new_status}")

        repayment = get_or_raise(LoanRepayment, repayment_id, 'Loan repayment')
        if repayment.status != PaymentStatus.PENDING.value:
            raise ConflictError(f"Repayment is already {repayment.status}")

        repayment.status = new_status
        repayment.approved_by = admin_id
        repayment.approved_at = datetime.utcnow()

        if new_status == PaymentStatus.REJECTED.value:
            repayment.rejection_reason = reason
        else:
            refresh_loan_repayment_status(repayment.loan)

        db.session.commit()
        logger.info("Repayment %s %s by user %s", repayment_id, new_status, admin_id)
        return repayment

    except AppError:
        db.session.rollback()
        raise
    except Exception as e:
        raise _fail('settle loan repayment', e)


# ============================================================
# QUERIES
# ============================================================

def get_all_loans():
    return Loan.query.order_by(Loan.application_date.desc()).all()


def get_loan_by_id(loan_id):
    return get_or_raise(Loan, loan_id, 'Loan')


def get_user_loans(user_id):
    return Loan.query.filter_by(user_id=user_id).order_by(Loan.application_date.desc()).all()


def get_loans_by_status(status):
    if status not in [s.value for s in LoanStatus]:
        raise ValidationError(f"Invalid loan status: {status}")
    return Loan.query.filter_by(status=status).order_by(Loan.application_date.desc()).all()


def get_active_loans(user_id):
    return Loan.query.filter(
        Loan.user_id == user_id,
        Loan.status.in_(ACTIVE_STATUSES)
    ).order_by(Loan.application_date.desc()).all()


def get_loan_history(user_id):
    return Loan.query.filter(
        Loan.user_id == user_id,
        Loan.status.in_(HISTORY_STATUSES)
    ).order_by(Loan.application_date.desc()).all()


def get_loan_repayments(loan_id):
    get_or_raise(Loan, loan_id, 'Loan')
    return LoanRepayment.query.filter_by(loan_id=loan_id) \
        .order_by(LoanRepayment.repayment_date.desc()).all()


def get_all_repayments(status=None):
    query = LoanRepayment.query
    if status:
        query = query.filter_by(status=status)
    return query.order_by(LoanRepayment.repayment_date.desc()).all()


def get_loan_details(loan_id):
    """Loan with its repayments and the amount still outstanding"""
    loan = get_or_raise(Loan, loan_id, 'Loan')
    data = loan.to_dict()
    data['repayments'] = [r.to_dict() for r in loan.repayments.order_by(LoanRepayment.repayment_date.desc())]
    return data
