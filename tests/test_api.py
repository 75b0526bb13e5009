from datetime import datetime, timedelta

from app.models import LoanStatus, MemberDue, Transaction


def test_register_and_login(client):
    response = client.post('/api/auth/register', json={
        'first_name': 'Ada',
        'last_name': 'Obi',
        'email': 'Ada@Example.com',
        'password': 'secret12',
        'phone_number': '08012345678',
        'role': 'super_admin',
    })
    body = response.get_json()
    assert response.status_code == 201
    assert body['success'] is True
    assert body['data']['email'] == 'ada@example.com'
    assert body['data']['role'] == 'member'
    assert body['data']['membership_id'].startswith('MEM')

    response = client.post('/api/auth/login', json={'email': 'ada@example.com', 'password': 'secret12'})
    assert response.status_code == 200
    assert client.get('/api/auth/me').get_json()['data']['email'] == 'ada@example.com'


def test_duplicate_email_rejected(client, member):
    response = client.post('/api/auth/register', json={
        'first_name': 'A', 'last_name': 'B', 'email': member.email,
        'password': 'secret12', 'phone_number': '1',
    })
    assert response.status_code == 400
    assert response.get_json()['success'] is False


def test_wrong_password_and_inactive_account(client, make_user):
    user = make_user()
    response = client.post('/api/auth/login', json={'email': user.email, 'password': 'nope'})
    assert response.status_code == 401

    inactive = make_user(is_active=False)
    response = client.post('/api/auth/login', json={'email': inactive.email, 'password': 'password123'})
    assert response.status_code == 403


def test_unauthenticated_request_gets_json_401(client):
    response = client.get('/api/payments/my-payments')
    assert response.status_code == 401
    assert response.get_json() == {
        'success': False, 'message': 'Not authorized, please log in', 'data': None
    }


def test_member_cannot_reach_admin_routes(login, member):
    client = login(member)
    response = client.get('/api/payments/pending')
    assert response.status_code == 403
    assert response.get_json()['success'] is False


def test_admin_level_1_cannot_approve_loans(login, admin, member, make_loan):
    loan = make_loan(member)
    response = login(admin).put(f'/api/loans/{loan.id}/approve')
    assert response.status_code == 403


def test_not_found_envelope(login, admin):
    response = login(admin).put('/api/payments/999/approve')
    assert response.status_code == 404
    assert response.get_json()['message'] == 'Payment not found'


def test_member_payment_flow(client, login, member, admin):
    login(member)
    response = client.post('/api/payments', json={'amount': 1200, 'description': 'Dues for May'})
    assert response.status_code == 201
    payment_id = response.get_json()['data']['id']

    client.post('/api/auth/logout')
    login(admin)
    response = client.put(f'/api/payments/{payment_id}/approve')
    assert response.status_code == 200
    assert response.get_json()['data']['status'] == 'approved'

    response = client.put(f'/api/payments/{payment_id}/approve')
    assert response.status_code == 400
    assert Transaction.query.count() == 1


def test_member_cannot_view_another_members_payments(login, member, make_user):
    other = make_user()
    response = login(member).get(f'/api/payments/member/{other.id}')
    assert response.status_code == 403


def test_admin_payment_endpoint(client, login, admin, member):
    login(admin)
    response = client.post('/api/dues', json={
        'name': 'Development Due',
        'amount': 5000,
        'due_date': (datetime.utcnow() + timedelta(days=10)).date().isoformat(),
    })
    assert response.status_code == 201
    due = response.get_json()['data']
    assert due['assigned_members'] == 1

    response = client.post('/api/payments/admin-payment', json={
        'user_id': member.id,
        'amount': 5000,
        'payment_type': 'due',
        'related_item_id': due['id'],
    })
    body = response.get_json()
    assert response.status_code == 201
    assert body['data']['payment']['paid_by_admin'] is True
    assert body['data']['related_item']['status'] == 'paid'
    assert MemberDue.query.one().balance == 0.0


def test_loan_flow_over_http(client, login, member, loan_admin):
    login(member)
    response = client.post('/api/loans', json={'amount': 1000, 'purpose': 'Tools', 'duration_in_months': 3})
    loan_id = response.get_json()['data']['id']
    client.post('/api/auth/logout')

    login(loan_admin)
    assert client.put(f'/api/loans/{loan_id}/approve').status_code == 200
    client.post('/api/auth/logout')

    login(member)
    response = client.post(f'/api/loans/{loan_id}/repayments', json={'amount': 1000})
    assert response.status_code == 201
    repayment_id = response.get_json()['data']['id']
    client.post('/api/auth/logout')

    login(loan_admin)
    response = client.put(f'/api/loans/repayments/{repayment_id}/approve')
    assert response.get_json()['data']['loan']['status'] == LoanStatus.PAID.value

    response = client.get(f'/api/loans/{loan_id}/reconcile')
    assert response.get_json()['data']['in_sync'] is True


def test_reject_loan_requires_reason_over_http(login, loan_admin, member, make_loan):
    loan = make_loan(member)
    response = login(loan_admin).put(f'/api/loans/{loan.id}/reject', json={})
    assert response.status_code == 400
    assert response.get_json()['message'] == 'Rejection reason is required'


def test_role_change_requires_super_admin(client, login, admin, super_admin, member):
    login(admin)
    assert client.patch(f'/api/users/{member.id}/role', json={'role': 'admin'}).status_code == 403
    client.post('/api/auth/logout')

    login(super_admin)
    response = client.patch(f'/api/users/{member.id}/role', json={'role': 'admin_level_2'})
    assert response.status_code == 200
    assert response.get_json()['data']['role'] == 'admin_level_2'


def test_deactivated_user_loses_session(client, login, super_admin, member):
    login(super_admin)
    response = client.patch(f'/api/users/{member.id}/status', json={'is_active': False})
    assert response.get_json()['data']['is_active'] is False
    client.post('/api/auth/logout')

    response = client.post('/api/auth/login', json={'email': member.email, 'password': 'password123'})
    assert response.status_code == 403


def test_profile_cannot_escalate_role(login, member):
    client = login(member)
    response = client.put('/api/users/profile', json={'address': '12 Main St', 'role': 'super_admin'})
    data = response.get_json()['data']
    assert data['address'] == '12 Main St'
    assert data['role'] == 'member'


def test_notification_settings(login, member):
    client = login(member)
    settings = client.get('/api/users/notification-settings').get_json()['data']
    assert settings['email_notifications'] is True
    assert settings['sms_notifications'] is False

    response = client.put('/api/users/notification-settings', json={'sms_notifications': True})
    assert response.get_json()['data']['sms_notifications'] is True


def test_change_password(client, login, member):
    login(member)
    response = client.patch('/api/users/change-password', json={
        'current_password': 'password123', 'new_password': 'newsecret1'
    })
    assert response.status_code == 200
    client.post('/api/auth/logout')

    response = client.post('/api/auth/login', json={'email': member.email, 'password': 'newsecret1'})
    assert response.status_code == 200


def test_members_pagination(login, admin, make_user):
    for _ in range(3):
        make_user()
    make_user(first_name='Zainab')

    client = login(admin)
    body = client.get('/api/users/members?page=1&limit=2').get_json()['data']
    assert body['pagination'] == {'total': 4, 'page': 1, 'limit': 2, 'pages': 2}
    assert len(body['members']) == 2

    body = client.get('/api/users/members?search=zain').get_json()['data']
    assert [m['first_name'] for m in body['members']] == ['Zainab']


def test_transactions_summary_endpoint(login, admin):
    client = login(admin)
    client.post('/api/transactions', json={'title': 'Rent', 'amount': 300, 'type': 'expense', 'category': 'Rent'})
    client.post('/api/transactions', json={'title': 'Dues', 'amount': 900, 'type': 'income', 'category': 'Payment'})

    data = client.get('/api/accounting/summary').get_json()['data']
    assert data['net_balance'] == 600.0
    assert len(client.get('/api/transactions/expense').get_json()['data']) == 1


def test_member_loans_need_loan_administrator(client, login, admin, loan_admin, member, make_loan):
    loan = make_loan(member)

    login(admin)
    assert client.get(f'/api/loans/member/{member.id}').status_code == 403
    assert client.get(f'/api/loans/detail/{loan.id}').status_code == 403
    client.post('/api/auth/logout')

    login(loan_admin)
    response = client.get(f'/api/loans/member/{member.id}')
    assert response.status_code == 200
    assert [l['id'] for l in response.get_json()['data']] == [loan.id]
    client.post('/api/auth/logout')

    login(member)
    assert client.get(f'/api/loans/member/{member.id}').status_code == 200
