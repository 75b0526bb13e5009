import pytest

from app.errors import ValidationError
from app.services import accounting_service


def _record(admin, amount, type, category):
    return accounting_service.create_transaction(
        {'title': f'{category} {type}', 'amount': amount, 'type': type, 'category': category},
        admin.id
    )


def test_financial_summary(admin):
    _record(admin, 1000, 'income', 'Payment')
    _record(admin, 500, 'credit', 'due')
    _record(admin, 2000, 'income', 'Payment')
    _record(admin, 300, 'expense', 'Maintenance')
    _record(admin, 200, 'debit', 'Bank charges')

    summary = accounting_service.get_financial_summary()

    assert summary['total_income'] == 3500.0
    assert summary['total_expenses'] == 500.0
    assert summary['net_balance'] == 3000.0
    assert summary['income_by_category'] == [
        {'category': 'Payment', 'total': 3000.0},
        {'category': 'due', 'total': 500.0},
    ]
    assert summary['expenses_by_category'][0] == {'category': 'Maintenance', 'total': 300.0}


def test_balance_by_type(admin):
    _record(admin, 1000, 'income', 'Payment')
    _record(admin, 400, 'expense', 'Rent')

    balance = accounting_service.get_balance()

    assert balance['totals_by_type']['income'] == 1000.0
    assert balance['totals_by_type']['credit'] == 0.0
    assert balance['balance'] == 600.0


def test_transaction_validation(admin):
    with pytest.raises(ValidationError):
        accounting_service.create_transaction({'title': 'x', 'amount': 10, 'type': 'gift', 'category': 'y'}, admin.id)
    with pytest.raises(ValidationError):
        accounting_service.create_transaction({'title': 'x', 'type': 'income', 'category': 'y'}, admin.id)


def test_transaction_update_and_delete(admin):
    transaction = _record(admin, 100, 'expense', 'Stationery')

    accounting_service.update_transaction(transaction.id, {'amount': 150})
    assert accounting_service.get_transaction_by_id(transaction.id).amount == 150.0

    accounting_service.delete_transaction(transaction.id)
    assert accounting_service.get_transactions() == []
