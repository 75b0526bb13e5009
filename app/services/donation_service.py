"""
DONATION SERVICE
================
"""

import logging
from datetime import datetime

from app.errors import AppError, ConflictError, ValidationError
from app.extensions import db
from app.models import Donation, Payment, PaymentStatus, User
from app.services.helpers import get_or_raise, parse_amount, require_fields

logger = logging.getLogger(__name__)


def _fail(action, error):
    db.session.rollback()
    logger.exception("Failed to %s", action)
    return AppError(f"Failed to {action}: {str(error)}", 500)


def create_donation(user_id, data):
    try:
        require_fields(data, ['amount', 'purpose'], "Amount and purpose are required")
        get_or_raise(User, user_id, 'User')

        donation = Donation(
            user_id=user_id,
            amount=parse_amount(data['amount']),
            purpose=data['purpose'],
            description=data.get('description'),
            donation_date=data.get('donation_date') or datetime.utcnow(),
            status=PaymentStatus.PENDING.value
        )
        db.session.add(donation)
        db.session.commit()
        logger.info("Donation %s created for user %s", donation.id, user_id)
        return donation

    except AppError:
        db.session.rollback()
        raise
    except Exception as e:
        raise _fail('create donation', e)


def get_all_donations(status=None):
    query = Donation.query
    if status:
        query = query.filter_by(status=status)
    return query.order_by(Donation.donation_date.desc()).all()


def get_user_donations(user_id):
    return Donation.query.filter_by(user_id=user_id).order_by(Donation.donation_date.desc()).all()


def get_donation_by_id(donation_id):
    return get_or_raise(Donation, donation_id, 'Donation')


def update_donation(donation_id, data):
    try:
        donation = get_or_raise(Donation, donation_id, 'Donation')
        if 'amount' in data:
            donation.amount = parse_amount(data['amount'])
        if 'purpose' in data:
            if not data['purpose']:
                raise ValidationError("Purpose is required")
            donation.purpose = data['purpose']
        if 'description' in data:
            donation.description = data['description']
        if data.get('donation_date'):
            donation.donation_date = data['donation_date']
        db.session.commit()
        return donation

    except AppError:
        db.session.rollback()
        raise
    except Exception as e:
        raise _fail('update donation', e)


def delete_donation(donation_id):
    try:
        donation = get_or_raise(Donation, donation_id, 'Donation')
        db.session.delete(donation)
        db.session.commit()

    except AppError:
        db.session.rollback()
        raise
    except Exception as e:
        raise _fail('delete donation', e)


def process_donation(donation_id, payment_id):
    """Link a payment and approve the donation. One-way."""
    try:
        donation = get_or_raise(Donation, donation_id, 'Donation')
        payment = get_or_raise(Payment, payment_id, 'Payment')

        if donation.status != PaymentStatus.PENDING.value:
            raise ConflictError(f"Donation is already {donation.status}")

        donation.status = PaymentStatus.APPROVED.value
        donation.payment_id = payment.id

        db.session.commit()
        logger.info("Donation %s processed with payment %s", donation_id, payment_id)
        return donation

    except AppError:
        db.session.rollback()
        raise
    except Exception as e:
        raise _fail('process donation', e)
