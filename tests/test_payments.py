import pytest

from app.errors import ConflictError, NotFoundError, ValidationError
from app.models import Payment, PaymentStatus, Transaction, TransactionType
from app.services import payment_service


def test_approving_payment_writes_one_income_transaction(admin, member, make_payment, reload):
    payment = make_payment(member, amount=2500.0, description='March dues')

    payment_service.approve_payment(payment.id, admin.id)

    payment = reload(payment)
    assert payment.status == PaymentStatus.APPROVED.value
    assert payment.approved_by == admin.id
    assert payment.approved_at is not None

    transactions = Transaction.query.filter_by(related_payment_id=payment.id).all()
    assert len(transactions) == 1
    assert transactions[0].type == TransactionType.INCOME.value
    assert transactions[0].amount == 2500.0
    assert transactions[0].category == 'Payment'
    assert transactions[0].title == 'Payment - March dues'


def test_rejecting_payment_stores_reason_and_writes_no_transaction(admin, member, make_payment, reload):
    payment = make_payment(member)

    payment_service.reject_payment(payment.id, admin.id, 'Receipt unreadable')

    payment = reload(payment)
    assert payment.status == PaymentStatus.REJECTED.value
    assert payment.rejection_reason == 'Receipt unreadable'
    assert payment.approved_by == admin.id
    assert Transaction.query.count() == 0


def test_payment_can_only_be_settled_once(admin, member, make_payment):
    payment = make_payment(member)
    payment_service.approve_payment(payment.id, admin.id)

    with pytest.raises(ConflictError) as exc:
        payment_service.approve_payment(payment.id, admin.id)
    assert 'already approved' in exc.value.message

    with pytest.raises(ConflictError):
        payment_service.reject_payment(payment.id, admin.id, 'Too late')

    assert Transaction.query.filter_by(related_payment_id=payment.id).count() == 1


def test_settle_rejects_unknown_status(admin, member, make_payment):
    payment = make_payment(member)
    with pytest.raises(ValidationError):
        payment_service.settle_payment(payment.id, 'pending', admin.id)


def test_settle_missing_payment_or_actor(admin, member, make_payment):
    with pytest.raises(NotFoundError) as exc:
        payment_service.settle_payment(9999, 'approved', admin.id)
    assert exc.value.message == 'Payment not found'

    payment = make_payment(member)
    with pytest.raises(NotFoundError) as exc:
        payment_service.settle_payment(payment.id, 'approved', 9999)
    assert exc.value.message == 'Admin user not found'


def test_create_payment_is_pending(member):
    payment = payment_service.create_payment(member.id, {
        'amount': '1500',
        'description': 'Levy contribution',
        'payment_type': 'levy',
        'payment_method': 'transfer',
    })
    assert payment.status == PaymentStatus.PENDING.value
    assert payment.amount == 1500.0
    assert payment.paid_by_admin is False


def test_create_payment_validates_input(member):
    with pytest.raises(ValidationError):
        payment_service.create_payment(member.id, {'amount': 100})
    with pytest.raises(ValidationError):
        payment_service.create_payment(member.id, {'amount': -5, 'description': 'x'})
    with pytest.raises(ValidationError):
        payment_service.create_payment(member.id, {'amount': 5, 'description': 'x', 'payment_type': 'gift'})
    assert Payment.query.count() == 0


def test_payment_filters(admin, member, make_user, make_payment):
    other = make_user()
    make_payment(member, amount=100.0)
    approved = make_payment(member, amount=200.0)
    make_payment(other, amount=300.0)
    payment_service.approve_payment(approved.id, admin.id)

    assert len(payment_service.get_user_payments(member.id)) == 2
    assert [p.amount for p in payment_service.get_payments(status='approved')] == [200.0]
    assert len(payment_service.get_payments(status='pending')) == 2
