"""
PLEDGE SERVICE
==============

A pledge is a member's promise to pay. Fulfilling it links
the payment that honours it. Fulfillment is one-way.
"""

import logging
from datetime import datetime

from app.errors import AppError, ConflictError, ValidationError
from app.extensions import db
from app.models import Pledge, PledgeStatus, Payment, User
from app.services.helpers import get_or_raise, parse_amount, require_fields

logger = logging.getLogger(__name__)

SETTLED_STATUSES = [PledgeStatus.APPROVED.value, PledgeStatus.FULFILLED.value]


def _fail(action, error):
    db.session.rollback()
    logger.exception("Failed to %s", action)
    return AppError(f"Failed to {action}: {str(error)}", 500)


def create_pledge(user_id, data):
    try:
        require_fields(data, ['title', 'amount'], "Title and amount are required")
        get_or_raise(User, user_id, 'User')

        pledge = Pledge(
            user_id=user_id,
            title=data['title'],
            description=data.get('description'),
            amount=parse_amount(data['amount']),
            pledge_date=data.get('pledge_date') or datetime.utcnow(),
            status=PledgeStatus.PENDING.value
        )
        db.session.add(pledge)
        db.session.commit()
        logger.info("Pledge %s created for user %s", pledge.id, user_id)
        return pledge

    except AppError:
        db.session.rollback()
        raise
    except Exception as e:
        raise _fail('create pledge', e)


def get_all_pledges(status=None):
    query = Pledge.query
    if status:
        query = query.filter_by(status=status)
    return query.order_by(Pledge.pledge_date.desc()).all()


def get_user_pledges(user_id):
    return Pledge.query.filter_by(user_id=user_id).order_by(Pledge.pledge_date.desc()).all()


def get_pledge_by_id(pledge_id):
    return get_or_raise(Pledge, pledge_id, 'Pledge')


def update_pledge(pledge_id, data):
    try:
        pledge = get_or_raise(Pledge, pledge_id, 'Pledge')
        if 'title' in data:
            pledge.title = data['title']
        if 'description' in data:
            pledge.description = data['description']
        if 'amount' in data:
            pledge.amount = parse_amount(data['amount'])
        if data.get('pledge_date'):
            pledge.pledge_date = data['pledge_date']
        if 'status' in data and data['status']:
            if data['status'] not in [s.value for s in PledgeStatus]:
                raise ValidationError(f"Invalid pledge status: {data['status']}")
            pledge.status = data['status']
        db.session.commit()
        return pledge

    except AppError:
        db.session.rollback()
        raise
    except Exception as e:
        raise _fail('update pledge', e)


def delete_pledge(pledge_id):
    try:
        pledge = get_or_raise(Pledge, pledge_id, 'Pledge')
        db.session.delete(pledge)
        db.session.commit()

    except AppError:
        db.session.rollback()
        raise
    except Exception as e:
        raise _fail('delete pledge', e)


def fulfill_pledge(pledge_id, payment_id):
    """
    Link a payment to the pledge and approve it.

    Raises NotFoundError for a missing pledge or payment and
    ConflictError when the pledge is already settled.
    """
    try:
        pledge = get_or_raise(Pledge, pledge_id, 'Pledge')
        payment = get_or_raise(Payment, payment_id, 'Payment')

        if pledge.status in SETTLED_STATUSES:
            raise ConflictError(f"Pledge is already {pledge.status}")

        pledge.status = PledgeStatus.APPROVED.value
        pledge.payment_id = payment.id
        pledge.fulfillment_date = datetime.utcnow()

        db.session.commit()
        logger.info("Pledge %s fulfilled with payment %s", pledge_id, payment_id)
        return pledge

    except AppError:
        db.session.rollback()
        raise
    except Exception as e:
        raise _fail('fulfill pledge', e)
