"""
TRANSACTION ROUTES
==================

Admin-only access to the ledger.
"""

from flask import Blueprint, request
from flask_login import login_required, current_user

from app.models import TransactionType
from app.responses import send_success, get_json_body, date_range_args, with_dates
from app.services.authorization_service import Permissions, permission_required
from app.services import accounting_service

transactions_bp = Blueprint('transactions', __name__)


def _list(type=None):
    start, end = date_range_args()
    transactions = accounting_service.get_transactions(
        type=type or request.args.get('type'),
        category=request.args.get('category'),
        start=start,
        end=end
    )
    return [t.to_dict() for t in transactions]


@transactions_bp.route('', methods=['GET'])
@login_required
@permission_required(Permissions.MANAGE_TRANSACTIONS)
def list_transactions():
    return send_success('Transactions retrieved', _list())


@transactions_bp.route('', methods=['POST'])
@login_required
@permission_required(Permissions.MANAGE_TRANSACTIONS)
def create_transaction():
    transaction = accounting_service.create_transaction(
        with_dates(get_json_body(), 'date'), current_user.id
    )
    return send_success('Transaction created successfully', transaction.to_dict(), 201)


@transactions_bp.route('/summary', methods=['GET'])
@login_required
@permission_required(Permissions.MANAGE_TRANSACTIONS)
def summary():
    start, end = date_range_args()
    return send_success('Financial summary retrieved', accounting_service.get_financial_summary(start, end))


@transactions_bp.route('/income', methods=['GET'])
@login_required
@permission_required(Permissions.MANAGE_TRANSACTIONS)
def income():
    return send_success('Income transactions retrieved', _list(TransactionType.INCOME.value))


@transactions_bp.route('/expense', methods=['GET'])
@login_required
@permission_required(Permissions.MANAGE_TRANSACTIONS)
def expense():
    return send_success('Expense transactions retrieved', _list(TransactionType.EXPENSE.value))


@transactions_bp.route('/balance', methods=['GET'])
@login_required
@permission_required(Permissions.MANAGE_TRANSACTIONS)
def balance():
    return send_success('Balance retrieved', accounting_service.get_balance())


@transactions_bp.route('/<int:transaction_id>', methods=['GET'])
@login_required
@permission_required(Permissions.MANAGE_TRANSACTIONS)
def get_transaction(transaction_id):
    transaction = accounting_service.get_transaction_by_id(transaction_id)
    return send_success('Transaction retrieved', transaction.to_dict())


@transactions_bp.route('/<int:transaction_id>', methods=['PUT'])
@login_required
@permission_required(Permissions.MANAGE_TRANSACTIONS)
def update_transaction(transaction_id):
    transaction = accounting_service.update_transaction(
        transaction_id, with_dates(get_json_body(), 'date')
    )
    return send_success('Transaction updated successfully', transaction.to_dict())


@transactions_bp.route('/<int:transaction_id>', methods=['DELETE'])
@login_required
@permission_required(Permissions.MANAGE_TRANSACTIONS)
def delete_transaction(transaction_id):
    accounting_service.delete_transaction(transaction_id)
    return send_success('Transaction deleted successfully')
