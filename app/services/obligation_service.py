"""
OBLIGATION SERVICE
==================

Dues and levies share one lifecycle:

1. An admin creates the template (Due / Levy)
2. The template fans out one member row per assigned member
   (amount_paid=0, balance=amount, status='pending')
3. Payments settle the member rows
4. Deleting a template deletes its member rows first

Template creation and fan-out are a single unit of work.
Once member rows exist the template amount is frozen.
"""

import logging
from datetime import datetime

from app.errors import AppError, ValidationError
from app.extensions import db
from app.models import (
    Due, Levy, MemberDue, MemberLevy, User, UserRole, ObligationStatus
)
from app.services.helpers import get_or_raise, parse_amount, require_fields

logger = logging.getLogger(__name__)


class ObligationKind:
    """Binds a template model to its member-row model."""

    def __init__(self, name, template_model, member_model, template_fk, label, member_label):
        self.name = name
        self.template_model = template_model
        self.member_model = member_model
        self.template_fk = template_fk
        self.label = label
        self.member_label = member_label

    def member_filter(self, template_id):
        return {self.template_fk: template_id}


DUE = ObligationKind('due', Due, MemberDue, 'due_id', 'Due', 'Member due')
LEVY = ObligationKind('levy', Levy, MemberLevy, 'levy_id', 'Levy', 'Member levy')

KINDS = {DUE.name: DUE, LEVY.name: LEVY}


def get_kind(kind):
    if isinstance(kind, ObligationKind):
        return kind
    try:
        return KINDS[kind]
    except KeyError:
        raise ValidationError(f"Unknown obligation kind: {kind}")


def _fail(action, error):
    db.session.rollback()
    logger.exception("Failed to %s", action)
    return AppError(f"Failed to {action}: {str(error)}", 500)


def active_member_ids():
    """Ids of every active user with role 'member'"""
    rows = User.query.filter_by(role=UserRole.MEMBER.value, is_active=True) \
        .with_entities(User.id).all()
    return [row.id for row in rows]


# ============================================================
# FAN-OUT (NO COMMIT)
# ============================================================

def _stage_member_rows(kind, template, user_ids):
    """Add a pending member row per user not already assigned. Returns the new rows."""
    existing = {
        row.user_id for row in kind.member_model.query.filter_by(**kind.member_filter(template.id))
    }
    try:
        user_ids = [int(user_id) for user_id in user_ids]
    except (TypeError, ValueError):
        raise ValidationError("Member ids must be integers")

    created = []
    for user_id in dict.fromkeys(user_ids):
        if user_id in existing:
            continue
        get_or_raise(User, user_id, 'User')
        row = kind.member_model(
            user_id=user_id,
            amount_paid=0.0,
            balance=template.amount,
            status=ObligationStatus.PENDING.value,
            **kind.member_filter(template.id)
        )
        db.session.add(row)
        created.append(row)
    return created


# ============================================================
# TEMPLATE FIELDS
# ============================================================

def _apply_due_fields(due, data, creating=False):
    if creating:
        require_fields(data, ['name', 'amount', 'due_date'],
                       "Name, amount and due date are required")
    if 'name' in data:
        due.name = data['name']
    if 'amount' in data:
        due.amount = parse_amount(data['amount'])
    if 'due_date' in data:
        if not data['due_date']:
            raise ValidationError("Due date is required")
        due.due_date = data['due_date']
    if 'description' in data:
        due.description = data['description']
    if 'is_recurring' in data:
        due.is_recurring = bool(data['is_recurring'])
    if 'frequency' in data:
        due.frequency = data['frequency'] or None

    if due.is_recurring:
        if due.frequency not in Due.FREQUENCIES:
            raise ValidationError(
                f"Frequency must be one of {', '.join(Due.FREQUENCIES)} for recurring dues"
            )
    else:
        due.frequency = None


def _apply_levy_fields(levy, data, creating=False):
    if creating:
        require_fields(data, ['title', 'amount'], "Title and amount are required")
    if 'title' in data:
        levy.title = data['title']
    if 'amount' in data:
        levy.amount = parse_amount(data['amount'])
    if 'description' in data:
        levy.description = data['description']
    if data.get('start_date'):
        levy.start_date = data['start_date']
    if 'end_date' in data:
        levy.end_date = data['end_date']
    if 'is_active' in data:
        levy.is_active = bool(data['is_active'])

    if levy.start_date and levy.end_date and levy.end_date < levy.start_date:
        raise ValidationError("End date must be after start date")


# ============================================================
# CREATE
# ============================================================

def create_due(data, assign_to_all=None, selected_members=None):
    """
    Create a due and assign it.

    assign_to_all None or True -> every active member
    assign_to_all False        -> only selected_members
    """
    try:
        due = Due()
        _apply_due_fields(due, data, creating=True)
        db.session.add(due)
        db.session.flush()

        if assign_to_all is None or assign_to_all:
            user_ids = active_member_ids()
        else:
            user_ids = selected_members or []

        created = _stage_member_rows(DUE, due, user_ids)

        db.session.commit()
        logger.info("Due %s created and assigned to %d members", due.id, len(created))
        return due

    except AppError:
        db.session.rollback()
        raise
    except Exception as e:
        raise _fail('create due', e)


def create_levy(data):
    """Create a levy and assign it to every active member."""
    try:
        levy = Levy()
        levy.start_date = datetime.utcnow()
        levy.is_active = True
        _apply_levy_fields(levy, data, creating=True)
        db.session.add(levy)
        db.session.flush()

        created = _stage_member_rows(LEVY, levy, active_member_ids())

        db.session.commit()
        logger.info("Levy %s created and assigned to %d members", levy.id, len(created))
        return levy

    except AppError:
        db.session.rollback()
        raise
    except Exception as e:
        raise _fail('create levy', e)


def assign_obligation(kind, template_id, user_ids):
    """Assign an existing template to more members. Already-assigned users are skipped."""
    kind = get_kind(kind)
    try:
        if not user_ids:
            raise ValidationError("At least one member is required")
        template = get_or_raise(kind.template_model, template_id, kind.label)
        created = _stage_member_rows(kind, template, user_ids)
        db.session.commit()
        logger.info("%s %s assigned to %d more members", kind.label, template_id, len(created))
        return created

    except AppError:
        db.session.rollback()
        raise
    except Exception as e:
        raise _fail(f'assign {kind.name}', e)


# ============================================================
# UPDATE / DELETE TEMPLATES
# ============================================================

def _update_template(kind, template_id, data, apply_fields):
    try:
        template = get_or_raise(kind.template_model, template_id, kind.label)

        if 'amount' in data and data['amount'] not in (None, ''):
            new_amount = parse_amount(data['amount'])
            if new_amount != template.amount and template.members.count() > 0:
                raise ValidationError(
                    f"Cannot change the amount of a {kind.name} that is already assigned to members"
                )

        apply_fields(template, data)
        db.session.commit()
        return template

    except AppError:
        db.session.rollback()
        raise
    except Exception as e:
        raise _fail(f'update {kind.name}', e)


def update_due(due_id, data):
    return _update_template(DUE, due_id, data, _apply_due_fields)


def update_levy(levy_id, data):
    return _update_template(LEVY, levy_id, data, _apply_levy_fields)


def _delete_template(kind, template_id):
    try:
        template = get_or_raise(kind.template_model, template_id, kind.label)
        removed = kind.member_model.query.filter_by(**kind.member_filter(template.id)) \
            .delete(synchronize_session=False)
        db.session.delete(template)
        db.session.commit()
        logger.info("%s %s deleted with %d member rows", kind.label, template_id, removed)

    except AppError:
        db.session.rollback()
        raise
    except Exception as e:
        raise _fail(f'delete {kind.name}', e)


def delete_due(due_id):
    _delete_template(DUE, due_id)


def delete_levy(levy_id):
    _delete_template(LEVY, levy_id)


# ============================================================
# TEMPLATE QUERIES
# ============================================================

def get_all_dues():
    return Due.query.order_by(Due.due_date.desc()).all()


def get_due_by_id(due_id):
    return get_or_raise(Due, due_id, 'Due')


def get_all_levies(active_only=False):
    query = Levy.query
    if active_only:
        query = query.filter_by(is_active=True)
    return query.order_by(Levy.start_date.desc()).all()


def get_levy_by_id(levy_id):
    return get_or_raise(Levy, levy_id, 'Levy')


# ============================================================
# MEMBER OBLIGATIONS
# ============================================================

def get_member_obligations(kind, user_id=None, status=None):
    kind = get_kind(kind)
    query = kind.member_model.query
    if user_id is not None:
        query = query.filter_by(user_id=user_id)
    if status:
        query = query.filter_by(status=status)
    return query.order_by(kind.member_model.created_at.desc()).all()


def get_member_obligation(kind, member_obligation_id):
    kind = get_kind(kind)
    return get_or_raise(kind.member_model, member_obligation_id, kind.member_label)


def get_unpaid_obligations(kind, user_id):
    """Member rows for user_id that are not fully paid"""
    kind = get_kind(kind)
    return kind.member_model.query.filter(
        kind.member_model.user_id == user_id,
        kind.member_model.status != ObligationStatus.PAID.value
    ).order_by(kind.member_model.created_at.desc()).all()


def update_member_obligation(kind, member_obligation_id, data):
    """
    Admin edit of a member row. A new amount_paid recomputes
    balance and status (pending / partial / paid).
    """
    kind = get_kind(kind)
    try:
        row = get_or_raise(kind.member_model, member_obligation_id, kind.member_label)

        if 'amount_paid' in data:
            row.apply_amount_paid(parse_amount(data['amount_paid'], 'Amount paid', allow_zero=True))
        if 'payment_id' in data:
            row.payment_id = data['payment_id']
        if data.get('paid_date'):
            row.paid_date = data['paid_date']

        db.session.commit()
        logger.info("%s %s updated: paid=%.2f balance=%.2f status=%s",
                    kind.member_label, row.id, row.amount_paid, row.balance, row.status)
        return row

    except AppError:
        db.session.rollback()
        raise
    except Exception as e:
        raise _fail(f'update member {kind.name}', e)
