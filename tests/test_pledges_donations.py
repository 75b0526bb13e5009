import pytest

from app.errors import ConflictError, NotFoundError, ValidationError
from app.models import PaymentStatus, PledgeStatus
from app.services import donation_service, pledge_service


def test_fulfill_pledge_links_payment(member, make_payment):
    pledge = pledge_service.create_pledge(member.id, {'title': 'New chairs', 'amount': 3000})
    payment = make_payment(member, amount=3000.0)

    pledge = pledge_service.fulfill_pledge(pledge.id, payment.id)

    assert pledge.status == PledgeStatus.APPROVED.value
    assert pledge.payment_id == payment.id
    assert pledge.fulfillment_date is not None


def test_fulfill_pledge_is_one_way(member, make_payment):
    pledge = pledge_service.create_pledge(member.id, {'title': 'Chairs', 'amount': 3000})
    payment = make_payment(member)
    pledge_service.fulfill_pledge(pledge.id, payment.id)

    with pytest.raises(ConflictError):
        pledge_service.fulfill_pledge(pledge.id, payment.id)


def test_fulfill_pledge_missing_records(member, make_payment):
    payment = make_payment(member)
    with pytest.raises(NotFoundError) as exc:
        pledge_service.fulfill_pledge(404, payment.id)
    assert exc.value.message == 'Pledge not found'

    pledge = pledge_service.create_pledge(member.id, {'title': 'Chairs', 'amount': 3000})
    with pytest.raises(NotFoundError) as exc:
        pledge_service.fulfill_pledge(pledge.id, 404)
    assert exc.value.message == 'Payment not found'


def test_create_pledge_requires_existing_user(app):
    with pytest.raises(NotFoundError):
        pledge_service.create_pledge(999, {'title': 'Chairs', 'amount': 10})


def test_pledge_crud(member):
    pledge = pledge_service.create_pledge(member.id, {'title': 'Chairs', 'amount': 10})
    pledge_service.update_pledge(pledge.id, {'amount': 25, 'description': 'Plastic chairs'})
    assert pledge_service.get_pledge_by_id(pledge.id).amount == 25.0
    assert len(pledge_service.get_user_pledges(member.id)) == 1

    with pytest.raises(ValidationError):
        pledge_service.update_pledge(pledge.id, {'status': 'cancelled'})

    pledge_service.delete_pledge(pledge.id)
    assert pledge_service.get_all_pledges() == []


def test_process_donation(member, make_payment):
    donation = donation_service.create_donation(member.id, {'amount': 500, 'purpose': 'Welfare'})
    payment = make_payment(member, amount=500.0)

    donation = donation_service.process_donation(donation.id, payment.id)

    assert donation.status == PaymentStatus.APPROVED.value
    assert donation.payment_id == payment.id

    with pytest.raises(ConflictError):
        donation_service.process_donation(donation.id, payment.id)


def test_process_donation_missing_payment(member):
    donation = donation_service.create_donation(member.id, {'amount': 500, 'purpose': 'Welfare'})
    with pytest.raises(NotFoundError):
        donation_service.process_donation(donation.id, 77)


def test_donation_requires_purpose(member):
    with pytest.raises(ValidationError):
        donation_service.create_donation(member.id, {'amount': 500})
