from datetime import datetime, timedelta

import pytest

from app.errors import NotFoundError, ValidationError
from app.models import Due, Levy, MemberDue, MemberLevy, ObligationStatus, UserRole
from app.services import obligation_service


def _due_fields(amount=5000):
    return {
        'name': 'Annual Due',
        'amount': amount,
        'due_date': datetime.utcnow() + timedelta(days=30),
    }


def test_due_fans_out_to_active_members(make_user):
    members = [make_user() for _ in range(3)]
    make_user(is_active=False)
    make_user(role=UserRole.ADMIN_LEVEL_1.value)

    due = obligation_service.create_due(_due_fields())

    rows = MemberDue.query.filter_by(due_id=due.id).all()
    assert sorted(r.user_id for r in rows) == sorted(m.id for m in members)
    for row in rows:
        assert row.amount_paid == 0.0
        assert row.balance == 5000.0
        assert row.status == ObligationStatus.PENDING.value


def test_due_assigned_to_selected_members(make_user):
    first, second, _ = make_user(), make_user(), make_user()

    due = obligation_service.create_due(
        _due_fields(), assign_to_all=False, selected_members=[first.id, second.id]
    )

    assert sorted(r.user_id for r in due.members) == sorted([first.id, second.id])


def test_recurring_due_needs_frequency(member):
    fields = _due_fields()
    fields['is_recurring'] = True
    with pytest.raises(ValidationError):
        obligation_service.create_due(fields)
    assert Due.query.count() == 0

    fields['frequency'] = 'monthly'
    due = obligation_service.create_due(fields)
    assert due.frequency == 'monthly'


def test_due_with_unknown_member_rolls_back(member):
    with pytest.raises(NotFoundError):
        obligation_service.create_due(_due_fields(), assign_to_all=False, selected_members=[member.id, 999])
    assert Due.query.count() == 0
    assert MemberDue.query.count() == 0


def test_levy_always_goes_to_all_members(make_user):
    members = [make_user() for _ in range(2)]

    levy = obligation_service.create_levy({'title': 'Roof levy', 'amount': 1500})

    rows = MemberLevy.query.filter_by(levy_id=levy.id).all()
    assert sorted(r.user_id for r in rows) == sorted(m.id for m in members)
    assert all(r.balance == 1500.0 for r in rows)
    assert levy.is_active is True


def test_assign_skips_members_already_assigned(make_user):
    existing = make_user()
    due = obligation_service.create_due(_due_fields())
    newcomer = make_user()

    created = obligation_service.assign_obligation('due', due.id, [existing.id, newcomer.id])

    assert [row.user_id for row in created] == [newcomer.id]
    assert due.members.count() == 2


def test_amount_frozen_once_assigned(member):
    due = obligation_service.create_due(_due_fields(5000))

    with pytest.raises(ValidationError):
        obligation_service.update_due(due.id, {'amount': 6000})

    updated = obligation_service.update_due(due.id, {'amount': 5000, 'description': 'Yearly'})
    assert updated.description == 'Yearly'


def test_amount_editable_without_members(app):
    due = obligation_service.create_due(_due_fields(5000))
    updated = obligation_service.update_due(due.id, {'amount': 7000})
    assert updated.amount == 7000.0


def test_delete_due_removes_member_rows(make_user):
    make_user()
    make_user()
    due = obligation_service.create_due(_due_fields())
    due_id = due.id
    assert MemberDue.query.filter_by(due_id=due_id).count() == 2

    obligation_service.delete_due(due_id)

    assert MemberDue.query.filter_by(due_id=due_id).count() == 0
    assert Due.query.count() == 0


def test_delete_levy_removes_member_rows(member):
    levy = obligation_service.create_levy({'title': 'Levy', 'amount': 100})
    levy_id = levy.id

    obligation_service.delete_levy(levy_id)

    assert MemberLevy.query.count() == 0
    assert Levy.query.count() == 0


def test_member_obligation_edit_recomputes_status(member):
    due = obligation_service.create_due(_due_fields(5000))
    row = MemberDue.query.filter_by(due_id=due.id).one()

    row = obligation_service.update_member_obligation('due', row.id, {'amount_paid': 2000})
    assert row.balance == 3000.0
    assert row.status == ObligationStatus.PARTIAL.value

    row = obligation_service.update_member_obligation('due', row.id, {'amount_paid': 5000})
    assert row.balance == 0.0
    assert row.status == ObligationStatus.PAID.value
    assert row.paid_date is not None


def test_unpaid_obligations_for_user(make_user):
    member = make_user()
    first = obligation_service.create_due(_due_fields(1000))
    obligation_service.create_due(_due_fields(2000))
    paid = MemberDue.query.filter_by(due_id=first.id, user_id=member.id).one()
    obligation_service.update_member_obligation('due', paid.id, {'amount_paid': 1000})

    unpaid = obligation_service.get_unpaid_obligations('due', member.id)
    assert [row.due.amount for row in unpaid] == [2000.0]


def test_unknown_kind(app):
    with pytest.raises(ValidationError):
        obligation_service.get_member_obligations('fine')
