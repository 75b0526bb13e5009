from datetime import datetime
from enum import Enum

from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash

from app.extensions import db


# ============================================================
# ENUMS
# ============================================================
class UserRole(Enum):
    MEMBER = 'member'
    ADMIN = 'admin'  # Legacy admin role, same reach as ADMIN_LEVEL_1
    ADMIN_LEVEL_1 = 'admin_level_1'
    ADMIN_LEVEL_2 = 'admin_level_2'
    SUPER_ADMIN = 'super_admin'


class PaymentStatus(Enum):
    PENDING = 'pending'
    APPROVED = 'approved'
    REJECTED = 'rejected'


class LoanStatus(Enum):
    PENDING = 'pending'
    APPROVED = 'approved'
    REJECTED = 'rejected'
    PAID = 'paid'
    DEFAULTED = 'defaulted'


class ObligationStatus(Enum):
    PENDING = 'pending'
    PARTIAL = 'partial'
    PAID = 'paid'


class PledgeStatus(Enum):
    PENDING = 'pending'
    APPROVED = 'approved'
    REJECTED = 'rejected'
    FULFILLED = 'fulfilled'


class PaymentType(Enum):
    DUE = 'due'
    LEVY = 'levy'
    PLEDGE = 'pledge'
    DONATION = 'donation'
    LOAN_REPAYMENT = 'loan_repayment'


class TransactionType(Enum):
    INCOME = 'income'
    EXPENSE = 'expense'
    CREDIT = 'credit'
    DEBIT = 'debit'


def enum_values(enum_class):
    return [item.value for item in enum_class]


def isoformat(value):
    return value.isoformat() if value else None


def user_summary(user):
    """Compact user shape used when a record references a user."""
    if user is None:
        return None
    return {
        'id': user.id,
        'first_name': user.first_name,
        'last_name': user.last_name,
        'email': user.email,
        'membership_id': user.membership_id,
    }


DEFAULT_NOTIFICATION_SETTINGS = {
    'email_notifications': True,
    'sms_notifications': False,
    'due_reminders': True,
    'payment_confirmations': True,
    'loan_updates': True,
}


class TimestampMixin:
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


# ============================================================
# USER MODEL
# ============================================================
class User(UserMixin, TimestampMixin, db.Model):
    """
    A registered member or administrator.
    Every ledger record except obligation templates belongs to one user.
    """
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False)
    password_hash = db.Column(db.String(256), nullable=False)
    role = db.Column(db.String(30), default=UserRole.MEMBER.value, nullable=False)
    phone_number = db.Column(db.String(30), nullable=False)
    address = db.Column(db.String(255))
    membership_id = db.Column(db.String(30), unique=True)
    date_joined = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    is_email_verified = db.Column(db.Boolean, default=False, nullable=False)
    notification_settings = db.Column(db.JSON, default=lambda: dict(DEFAULT_NOTIFICATION_SETTINGS))

    def set_password(self, password):
        """Hash and set the user's password."""
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        """Verify password against stored hash."""
        return check_password_hash(self.password_hash, password)

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}"

    def to_dict(self):
        return {
            'id': self.id,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'email': self.email,
            'role': self.role,
            'phone_number': self.phone_number,
            'address': self.address,
            'membership_id': self.membership_id,
            'date_joined': isoformat(self.date_joined),
            'is_active': self.is_active,
            'is_email_verified': self.is_email_verified,
            'created_at': isoformat(self.created_at),
        }

    def __repr__(self):
        return f'<User {self.email}>'


# ============================================================
# OBLIGATION TEMPLATES (DUE / LEVY)
# ============================================================
class Due(TimestampMixin, db.Model):
    """
    Organization-level charge assigned to members.
    The amount is frozen once MemberDue rows exist.
    """
    __tablename__ = 'dues'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(150), nullable=False)
    amount = db.Column(db.Float, nullable=False)
    due_date = db.Column(db.DateTime, nullable=False)
    description = db.Column(db.String(500))
    is_recurring = db.Column(db.Boolean, default=False, nullable=False)
    frequency = db.Column(db.String(20))  # monthly, quarterly, yearly

    members = db.relationship('MemberDue', backref='due', lazy='dynamic')

    FREQUENCIES = ['monthly', 'quarterly', 'yearly']

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'amount': self.amount,
            'due_date': isoformat(self.due_date),
            'description': self.description,
            'is_recurring': self.is_recurring,
            'frequency': self.frequency,
            'created_at': isoformat(self.created_at),
        }

    def __repr__(self):
        return f'<Due {self.name} amount={self.amount}>'


class Levy(TimestampMixin, db.Model):
    """Special charge with an active window; always assigned to every active member."""
    __tablename__ = 'levies'

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(150), nullable=False)
    amount = db.Column(db.Float, nullable=False)
    description = db.Column(db.String(500))
    start_date = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    end_date = db.Column(db.DateTime)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    members = db.relationship('MemberLevy', backref='levy', lazy='dynamic')

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'amount': self.amount,
            'description': self.description,
            'start_date': isoformat(self.start_date),
            'end_date': isoformat(self.end_date),
            'is_active': self.is_active,
            'created_at': isoformat(self.created_at),
        }

    def __repr__(self):
        return f'<Levy {self.title} amount={self.amount}>'


# ============================================================
# MEMBER OBLIGATIONS (MEMBER DUE / MEMBER LEVY)
# ============================================================
class MemberObligationMixin(TimestampMixin):
    """
    Per-member instance of a Due or Levy.

    balance == template amount - amount_paid (never below 0)
    status == 'paid' iff balance <= 0, except the admin-payment overwrite.
    """
    id = db.Column(db.Integer, primary_key=True)
    amount_paid = db.Column(db.Float, default=0.0, nullable=False)
    balance = db.Column(db.Float, nullable=False)
    status = db.Column(db.String(20), default=ObligationStatus.PENDING.value, nullable=False)
    paid_date = db.Column(db.DateTime)

    @property
    def template(self):
        raise NotImplementedError

    def apply_amount_paid(self, amount_paid):
        """Set amount_paid and recompute balance and status from the template amount."""
        self.amount_paid = amount_paid
        self.balance = max(self.template.amount - amount_paid, 0.0)
        if self.balance <= 0:
            self.status = ObligationStatus.PAID.value
            self.paid_date = self.paid_date or datetime.utcnow()
        elif amount_paid > 0:
            self.status = ObligationStatus.PARTIAL.value
        else:
            self.status = ObligationStatus.PENDING.value

    def base_dict(self):
        return {
            'id': self.id,
            'user': user_summary(self.user),
            'amount': self.template.amount if self.template else None,
            'amount_paid': self.amount_paid,
            'balance': self.balance,
            'status': self.status,
            'payment_id': self.payment_id,
            'paid_date': isoformat(self.paid_date),
            'created_at': isoformat(self.created_at),
        }


class MemberDue(MemberObligationMixin, db.Model):
    __tablename__ = 'member_dues'

    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    due_id = db.Column(db.Integer, db.ForeignKey('dues.id'), nullable=False)
    payment_id = db.Column(db.Integer, db.ForeignKey('payments.id'))

    user = db.relationship('User', backref=db.backref('member_dues', lazy='dynamic'))
    payment = db.relationship('Payment')

    __table_args__ = (
        db.UniqueConstraint('user_id', 'due_id', name='unique_member_due'),
    )

    @property
    def template(self):
        return self.due

    def to_dict(self):
        data = self.base_dict()
        data['due'] = {
            'id': self.due.id,
            'name': self.due.name,
            'amount': self.due.amount,
            'due_date': isoformat(self.due.due_date),
            'description': self.due.description,
        }
        return data

    def __repr__(self):
        return f'<MemberDue user={self.user_id} due={self.due_id} status={self.status}>'


class MemberLevy(MemberObligationMixin, db.Model):
    __tablename__ = 'member_levies'

    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    levy_id = db.Column(db.Integer, db.ForeignKey('levies.id'), nullable=False)
    payment_id = db.Column(db.Integer, db.ForeignKey('payments.id'))

    user = db.relationship('User', backref=db.backref('member_levies', lazy='dynamic'))
    payment = db.relationship('Payment')

    __table_args__ = (
        db.UniqueConstraint('user_id', 'levy_id', name='unique_member_levy'),
    )

    @property
    def template(self):
        return self.levy

    def to_dict(self):
        data = self.base_dict()
        data['levy'] = {
            'id': self.levy.id,
            'title': self.levy.title,
            'amount': self.levy.amount,
            'description': self.levy.description,
        }
        return data

    def __repr__(self):
        return f'<MemberLevy user={self.user_id} levy={self.levy_id} status={self.status}>'


# ============================================================
# PAYMENT MODEL
# ============================================================
class Payment(TimestampMixin, db.Model):
    """
    Money received from a member.

    Lifecycle:
    1. Member submits -> status='pending'
    2. Admin approves or rejects (one-way, terminal)
    3. Approval writes one income Transaction

    Admin-recorded payments are created already approved.
    """
    __tablename__ = 'payments'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    amount = db.Column(db.Float, nullable=False)
    description = db.Column(db.String(500), nullable=False)
    payment_date = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    payment_type = db.Column(db.String(30))
    # Polymorphic reference: due, levy, pledge or loan id depending on payment_type
    related_item_id = db.Column(db.Integer)
    payment_method = db.Column(db.String(30))
    reference_number = db.Column(db.String(100))
    receipt_url = db.Column(db.String(500))
    status = db.Column(db.String(20), default=PaymentStatus.PENDING.value, nullable=False)
    approved_by = db.Column(db.Integer, db.ForeignKey('users.id'))
    approved_at = db.Column(db.DateTime)
    rejection_reason = db.Column(db.String(500))
    paid_by_admin = db.Column(db.Boolean, default=False, nullable=False)

    user = db.relationship('User', foreign_keys=[user_id],
                           backref=db.backref('payments', lazy='dynamic'))
    approver = db.relationship('User', foreign_keys=[approved_by])

    def to_dict(self):
        return {
            'id': self.id,
            'user': user_summary(self.user),
            'amount': self.amount,
            'description': self.description,
            'payment_date': isoformat(self.payment_date),
            'payment_type': self.payment_type,
            'related_item_id': self.related_item_id,
            'payment_method': self.payment_method,
            'reference_number': self.reference_number,
            'receipt_url': self.receipt_url,
            'status': self.status,
            'approved_by': user_summary(self.approver),
            'approved_at': isoformat(self.approved_at),
            'rejection_reason': self.rejection_reason,
            'paid_by_admin': self.paid_by_admin,
            'created_at': isoformat(self.created_at),
        }

    def __repr__(self):
        return f'<Payment {self.amount} by user={self.user_id} status={self.status}>'


# ============================================================
# LOAN MODEL
# ============================================================
class Loan(TimestampMixin, db.Model):
    """
    A member's loan application.

    Lifecycle:
    1. Created with status='pending'
    2. Admin approves or rejects (only from pending)
    3. Approved repayments accumulate in total_repaid
    4. When total_repaid >= amount, status='paid'
    5. Admin may mark an approved loan 'defaulted'
    """
    __tablename__ = 'loans'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    amount = db.Column(db.Float, nullable=False)
    purpose = db.Column(db.String(500), nullable=False)
    duration_in_months = db.Column(db.Integer, nullable=False)
    interest_rate = db.Column(db.Float, nullable=False)
    application_date = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    status = db.Column(db.String(20), default=LoanStatus.PENDING.value, nullable=False)
    approved_by = db.Column(db.Integer, db.ForeignKey('users.id'))
    approval_date = db.Column(db.DateTime)
    rejection_reason = db.Column(db.String(500))
    repayment_date = db.Column(db.DateTime)

    # Running total of approved repayments, recomputed on every approval
    total_repaid = db.Column(db.Float, default=0.0, nullable=False)

    user = db.relationship('User', foreign_keys=[user_id],
                           backref=db.backref('loans', lazy='dynamic'))
    approver = db.relationship('User', foreign_keys=[approved_by])
    repayments = db.relationship('LoanRepayment', backref='loan', lazy='dynamic',
                                 cascade='all, delete-orphan')

    def get_remaining_amount(self):
        return max(self.amount - (self.total_repaid or 0.0), 0.0)

    def to_dict(self):
        return {
            'id': self.id,
            'user': user_summary(self.user),
            'amount': self.amount,
            'purpose': self.purpose,
            'duration_in_months': self.duration_in_months,
            'interest_rate': self.interest_rate,
            'application_date': isoformat(self.application_date),
            'status': self.status,
            'approved_by': user_summary(self.approver),
            'approval_date': isoformat(self.approval_date),
            'rejection_reason': self.rejection_reason,
            'repayment_date': isoformat(self.repayment_date),
            'total_repaid': self.total_repaid,
            'remaining': self.get_remaining_amount(),
            'created_at': isoformat(self.created_at),
        }

    def __repr__(self):
        return f'<Loan {self.amount} by user={self.user_id} status={self.status}>'


# ============================================================
# LOAN REPAYMENT MODEL
# ============================================================
class LoanRepayment(TimestampMixin, db.Model):
    """
    One repayment installment against a loan.
    Only the borrower can submit; an admin approves or rejects.
    """
    __tablename__ = 'loan_repayments'

    id = db.Column(db.Integer, primary_key=True)
    loan_id = db.Column(db.Integer, db.ForeignKey('loans.id'), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    amount = db.Column(db.Float, nullable=False)
    repayment_date = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    receipt_url = db.Column(db.String(500))
    status = db.Column(db.String(20), default=PaymentStatus.PENDING.value, nullable=False)
    approved_by = db.Column(db.Integer, db.ForeignKey('users.id'))
    approved_at = db.Column(db.DateTime)
    rejection_reason = db.Column(db.String(500))

    user = db.relationship('User', foreign_keys=[user_id])
    approver = db.relationship('User', foreign_keys=[approved_by])

    def to_dict(self):
        return {
            'id': self.id,
            'loan_id': self.loan_id,
            'user': user_summary(self.user),
            'amount': self.amount,
            'repayment_date': isoformat(self.repayment_date),
            'receipt_url': self.receipt_url,
            'status': self.status,
            'approved_by': user_summary(self.approver),
            'approved_at': isoformat(self.approved_at),
            'rejection_reason': self.rejection_reason,
            'created_at': isoformat(self.created_at),
        }

    def __repr__(self):
        return f'<LoanRepayment loan={self.loan_id} amount={self.amount}>'


# ============================================================
# PLEDGE MODEL
# ============================================================
class Pledge(TimestampMixin, db.Model):
    __tablename__ = 'pledges'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.String(500))
    amount = db.Column(db.Float, nullable=False)
    pledge_date = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    status = db.Column(db.String(20), default=PledgeStatus.PENDING.value, nullable=False)
    payment_id = db.Column(db.Integer, db.ForeignKey('payments.id'))
    fulfillment_date = db.Column(db.DateTime)
    fulfilled_amount = db.Column(db.Float)

    user = db.relationship('User', backref=db.backref('pledges', lazy='dynamic'))
    payment = db.relationship('Payment')

    def to_dict(self):
        return {
            'id': self.id,
            'user': user_summary(self.user),
            'title': self.title,
            'description': self.description,
            'amount': self.amount,
            'pledge_date': isoformat(self.pledge_date),
            'status': self.status,
            'payment_id': self.payment_id,
            'fulfillment_date': isoformat(self.fulfillment_date),
            'fulfilled_amount': self.fulfilled_amount,
            'created_at': isoformat(self.created_at),
        }

    def __repr__(self):
        return f'<Pledge {self.title} status={self.status}>'


# ============================================================
# DONATION MODEL
# ============================================================
class Donation(TimestampMixin, db.Model):
    __tablename__ = 'donations'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    amount = db.Column(db.Float, nullable=False)
    purpose = db.Column(db.String(200), nullable=False)
    description = db.Column(db.String(500))
    donation_date = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    status = db.Column(db.String(20), default=PaymentStatus.PENDING.value, nullable=False)
    payment_id = db.Column(db.Integer, db.ForeignKey('payments.id'))

    user = db.relationship('User', backref=db.backref('donations', lazy='dynamic'))
    payment = db.relationship('Payment')

    def to_dict(self):
        return {
            'id': self.id,
            'user': user_summary(self.user),
            'amount': self.amount,
            'purpose': self.purpose,
            'description': self.description,
            'donation_date': isoformat(self.donation_date),
            'status': self.status,
            'payment_id': self.payment_id,
            'created_at': isoformat(self.created_at),
        }

    def __repr__(self):
        return f'<Donation {self.amount} status={self.status}>'


# ============================================================
# TRANSACTION MODEL (LEDGER)
# ============================================================
class Transaction(TimestampMixin, db.Model):
    """
    Append-only ledger row.

    Written automatically when a payment is approved ('income')
    or recorded by an admin ('credit'). Direct admin edits are the
    only other way rows change.
    """
    __tablename__ = 'transactions'

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    amount = db.Column(db.Float, nullable=False)
    type = db.Column(db.String(20), nullable=False)
    category = db.Column(db.String(100), nullable=False)
    description = db.Column(db.String(500))
    date = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    recorded_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    related_payment_id = db.Column(db.Integer, db.ForeignKey('payments.id'))

    recorder = db.relationship('User', foreign_keys=[recorded_by])
    related_payment = db.relationship('Payment', backref=db.backref('transactions', lazy='dynamic'))

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'amount': self.amount,
            'type': self.type,
            'category': self.category,
            'description': self.description,
            'date': isoformat(self.date),
            'recorded_by': user_summary(self.recorder),
            'related_payment_id': self.related_payment_id,
            'created_at': isoformat(self.created_at),
        }

    def __repr__(self):
        return f'<Transaction {self.type} amount={self.amount}>'
