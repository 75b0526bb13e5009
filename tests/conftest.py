import itertools
from datetime import datetime, timedelta

import pytest

from app import create_app
from app.extensions import db
from app.models import User, UserRole, Due, Levy, Loan, LoanStatus, Payment, PaymentStatus
from config import TestConfig

PASSWORD = 'password123'

_counter = itertools.count(1)


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(app):
    def _make_user(role=UserRole.MEMBER.value, is_active=True, email=None, **fields):
        n = next(_counter)
        user = User(
            first_name=fields.pop('first_name', 'Member'),
            last_name=fields.pop('last_name', f'No{n}'),
            email=email or f'user{n}@example.com',
            phone_number=fields.pop('phone_number', f'080000000{n:02d}'),
            membership_id=fields.pop('membership_id', f'MEM{n:04d}'),
            role=role,
            is_active=is_active,
            **fields
        )
        user.set_password(PASSWORD)
        db.session.add(user)
        db.session.commit()
        return user
    return _make_user


@pytest.fixture
def member(make_user):
    return make_user()


@pytest.fixture
def admin(make_user):
    return make_user(role=UserRole.ADMIN_LEVEL_1.value, first_name='Admin')


@pytest.fixture
def loan_admin(make_user):
    return make_user(role=UserRole.ADMIN_LEVEL_2.value, first_name='Loans')


@pytest.fixture
def super_admin(make_user):
    return make_user(role=UserRole.SUPER_ADMIN.value, first_name='Super')


@pytest.fixture
def login(client):
    def _login(user, password=PASSWORD):
        response = client.post('/api/auth/login', json={'email': user.email, 'password': password})
        assert response.status_code == 200, response.get_json()
        return client
    return _login


@pytest.fixture
def make_due(app):
    def _make_due(amount=5000.0, name='Annual Due'):
        due = Due(name=name, amount=amount, due_date=datetime.utcnow() + timedelta(days=30))
        db.session.add(due)
        db.session.commit()
        return due
    return _make_due


@pytest.fixture
def make_levy(app):
    def _make_levy(amount=2000.0, title='Building Levy'):
        levy = Levy(title=title, amount=amount, start_date=datetime.utcnow())
        db.session.add(levy)
        db.session.commit()
        return levy
    return _make_levy


@pytest.fixture
def make_loan(app):
    def _make_loan(user, amount=10000.0, status=LoanStatus.PENDING.value):
        loan = Loan(
            user_id=user.id,
            amount=amount,
            purpose='School fees',
            duration_in_months=6,
            interest_rate=5.0,
            status=status
        )
        db.session.add(loan)
        db.session.commit()
        return loan
    return _make_loan


@pytest.fixture
def make_payment(app):
    def _make_payment(user, amount=1000.0, description='Monthly dues', status=PaymentStatus.PENDING.value):
        payment = Payment(user_id=user.id, amount=amount, description=description, status=status)
        db.session.add(payment)
        db.session.commit()
        return payment
    return _make_payment


def reload(obj):
    """Drop cached state so the next read comes from the database."""
    db.session.expire_all()
    return db.session.get(type(obj), obj.id)


@pytest.fixture(name='reload')
def reload_fixture():
    return reload
