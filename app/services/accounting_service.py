"""
ACCOUNTING SERVICE
==================

Handles:
- Staging ledger rows for the settlement services
- Direct admin CRUD on transactions
- Financial summary and per-type balances

Ledger rows are only ever written by:
1. Payment approval        -> type='income'
2. Admin-recorded payment  -> type='credit'
3. An admin, directly
"""

import logging
from datetime import datetime

from sqlalchemy import func

from app.errors import AppError, ValidationError
from app.extensions import db
from app.models import Transaction, TransactionType, enum_values
from app.services.helpers import get_or_raise, parse_amount, require_fields, filter_by_date

logger = logging.getLogger(__name__)

INCOME_TYPES = [TransactionType.INCOME.value, TransactionType.CREDIT.value]
EXPENSE_TYPES = [TransactionType.EXPENSE.value, TransactionType.DEBIT.value]


# ============================================================
# LEDGER STAGING (NO COMMIT)
# ============================================================

def stage_transaction(title, amount, type, category, recorded_by,
                      related_payment_id=None, description=None, date=None):
    """
    Add a ledger row to the current session without committing.
    The calling operation owns the unit of work.
    """
    transaction = Transaction(
        title=title,
        amount=amount,
        type=type,
        category=category,
        description=description,
        date=date or datetime.utcnow(),
        recorded_by=recorded_by,
        related_payment_id=related_payment_id
    )
    db.session.add(transaction)
    return transaction


# ============================================================
# TRANSACTION CRUD
# ============================================================

def _validate_type(value):
    if value not in enum_values(TransactionType):
        raise ValidationError(f"Invalid transaction type: {value}")
    return value


def create_transaction(data, recorded_by):
    try:
        require_fields(data, ['title', 'amount', 'type', 'category'])
        transaction = stage_transaction(
            title=data['title'],
            amount=parse_amount(data['amount']),
            type=_validate_type(data['type']),
            category=data['category'],
            recorded_by=recorded_by,
            related_payment_id=data.get('related_payment_id'),
            description=data.get('description'),
            date=data.get('date')
        )
        db.session.commit()
        logger.info("Transaction %s recorded by user %s", transaction.id, recorded_by)
        return transaction

    except AppError:
        db.session.rollback()
        raise
    except Exception as e:
        db.session.rollback()
        logger.exception("Failed to create transaction")
        raise AppError(f"Failed to create transaction: {str(e)}", 500)


def get_transactions(type=None, category=None, start=None, end=None):
    query = Transaction.query
    if type:
        query = query.filter(Transaction.type == type)
    if category:
        query = query.filter(Transaction.category == category)
    query = filter_by_date(query, Transaction.date, start, end)
    return query.order_by(Transaction.date.desc()).all()


def get_transaction_by_id(transaction_id):
    return get_or_raise(Transaction, transaction_id, 'Transaction')


def update_transaction(transaction_id, data):
    try:
        transaction = get_or_raise(Transaction, transaction_id, 'Transaction')

        if 'title' in data:
            transaction.title = data['title']
        if 'amount' in data:
            transaction.amount = parse_amount(data['amount'])
        if 'type' in data:
            transaction.type = _validate_type(data['type'])
        if 'category' in data:
            transaction.category = data['category']
        if 'description' in data:
            transaction.description = data['description']
        if data.get('date'):
            transaction.date = data['date']

        db.session.commit()
        return transaction

    except AppError:
        db.session.rollback()
        raise
    except Exception as e:
        db.session.rollback()
        logger.exception("Failed to update transaction %s", transaction_id)
        raise AppError(f"Failed to update transaction: {str(e)}", 500)


def delete_transaction(transaction_id):
    try:
        transaction = get_or_raise(Transaction, transaction_id, 'Transaction')
        db.session.delete(transaction)
        db.session.commit()
        logger.info("Transaction %s deleted", transaction_id)

    except AppError:
        db.session.rollback()
        raise
    except Exception as e:
        db.session.rollback()
        logger.exception("Failed to delete transaction %s", transaction_id)
        raise AppError(f"Failed to delete transaction: {str(e)}", 500)


# ============================================================
# SUMMARIES
# ============================================================

def _totals_by_category(types, start, end):
    query = db.session.query(
        Transaction.category, func.sum(Transaction.amount)
    ).filter(Transaction.type.in_(types))
    query = filter_by_date(query, Transaction.date, start, end)
    rows = query.group_by(Transaction.category).all()
    totals = [{'category': category, 'total': float(total or 0)} for category, total in rows]
    return sorted(totals, key=lambda row: row['total'], reverse=True)


def get_financial_summary(start=None, end=None):
    """
    Income counts 'income' and 'credit' rows; expenses count
    'expense' and 'debit' rows.
    """
    income_by_category = _totals_by_category(INCOME_TYPES, start, end)
    expenses_by_category = _totals_by_category(EXPENSE_TYPES, start, end)

    total_income = sum(row['total'] for row in income_by_category)
    total_expenses = sum(row['total'] for row in expenses_by_category)

    return {
        'total_income': total_income,
        'total_expenses': total_expenses,
        'net_balance': total_income - total_expenses,
        'income_by_category': income_by_category,
        'expenses_by_category': expenses_by_category,
    }


def get_balance():
    """Totals per transaction type plus the net balance"""
    rows = db.session.query(
        Transaction.type, func.sum(Transaction.amount)
    ).group_by(Transaction.type).all()

    totals = {value: 0.0 for value in enum_values(TransactionType)}
    for type_, total in rows:
        totals[type_] = float(total or 0)

    income = totals[TransactionType.INCOME.value] + totals[TransactionType.CREDIT.value]
    expenses = totals[TransactionType.EXPENSE.value] + totals[TransactionType.DEBIT.value]
    return {
        'totals_by_type': totals,
        'total_income': income,
        'total_expenses': expenses,
        'balance': income - expenses,
    }
