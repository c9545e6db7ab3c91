import pytest
from werkzeug.exceptions import BadRequest, NotFound
from dentpal.services import withdrawals as wd
from dentpal.utils.fsm import InvalidTransition
from tests.test_utils_seed import ensure_admin, ensure_seller
from tests.test_lifecycle_helpers import assert_transition, login_headers

RECEIVER = {
    'bankAccountName': 'Juan Dela Cruz',
    'bankAccountNumber': '001234567890',
    'bankCode': 'BPI',
    'bankName': 'Bank of the Philippine Islands',
}


def _request(store, amount=1500):
    return wd.create_request(store, 'seller-1', 'Acme Dental', 'seller@example.com', amount, RECEIVER, 'June payout')


def test_create_request_defaults(store):
    row = _request(store)
    assert row['status'] == 'pending'
    assert row['currency'] == 'PHP'
    assert row['amount'] == 1500.0
    assert len(row['referenceNumber']) == 20
    assert row['receiver']['bankId'] is None
    assert store.get('Withdrawal', row['id']).data['sellerId'] == 'seller-1'


@pytest.mark.parametrize('amount', [0, -5, 'abc', None])
def test_create_request_rejects_bad_amount(store, amount):
    with pytest.raises(BadRequest):
        _request(store, amount)


def test_create_request_requires_receiver_fields(store):
    with pytest.raises(BadRequest):
        wd.create_request(store, 'seller-1', 'Acme', 'a@b.c', 10, {'bankName': 'BPI'})


def test_happy_path(store):
    row = _request(store)
    approved = wd.approve(store, row['id'], 'admin-1')
    assert approved['status'] == 'approved'
    assert approved['approvedBy'] == 'admin-1'
    processing = wd.mark_processing(store, row['id'], 'txn_1', 'tr_1', 'paymongo')
    assert processing['paymongoTransactionId'] == 'txn_1'
    done = wd.mark_completed(store, row['id'], '1480.5')
    assert done['status'] == 'completed'
    assert store.get('Withdrawal', row['id']).data['netAmount'] == 1480.5


@pytest.mark.parametrize('setup,action', [
    ([], lambda s, i: wd.mark_completed(s, i, 10)),
    ([], lambda s, i: wd.mark_processing(s, i, 'txn')),
    (['approve'], lambda s, i: wd.approve(s, i, 'admin-1')),
    (['approve'], lambda s, i: wd.reject(s, i, 'admin-1', 'late')),
    (['reject'], lambda s, i: wd.approve(s, i, 'admin-1')),
    (['approve', 'fail'], lambda s, i: wd.mark_processing(s, i, 'txn')),
])
def test_wrong_prior_state_is_rejected(store, setup, action):
    row = _request(store)
    for step in setup:
        if step == 'approve':
            wd.approve(store, row['id'], 'admin-1')
        elif step == 'reject':
            wd.reject(store, row['id'], 'admin-1', 'duplicate')
        elif step == 'fail':
            wd.mark_failed(store, row['id'], 'bank offline', 'E01')
    before = store.get('Withdrawal', row['id']).data['status']
    with pytest.raises(InvalidTransition):
        action(store, row['id'])
    assert store.get('Withdrawal', row['id']).data['status'] == before


def test_reject_requires_reason(store):
    row = _request(store)
    with pytest.raises(BadRequest):
        wd.reject(store, row['id'], 'admin-1', '  ')
    with pytest.raises(BadRequest):
        wd.reject(store, row['id'], 'admin-1', None)
    assert wd.get(store, row['id'])['status'] == 'pending'


def test_missing_withdrawal(store):
    with pytest.raises(NotFound):
        wd.approve(store, 'nope', 'admin-1')


def test_listing_and_pending_count(store):
    a = _request(store, 100)
    b = _request(store, 200)
    wd.approve(store, a['id'], 'admin-1')
    assert wd.pending_count(store) == 1
    assert [r['id'] for r in wd.list_by_status(store, 'approved')] == [a['id']]
    assert {r['id'] for r in wd.list_for_seller(store, 'seller-1')} == {a['id'], b['id']}
    assert len(wd.list_all(store)) == 2


def test_withdrawal_api_flow(client, store):
    ensure_seller(store, permissions={'withdrawal': True})
    ensure_admin(store)
    seller = login_headers(client, 'seller@example.com')
    admin = login_headers(client, 'admin@example.com')

    resp = client.post('/withdrawals', json={'amount': 2500, 'receiver': RECEIVER}, headers=seller)
    assert resp.status_code == 201, resp.get_json()
    row = resp.get_json()
    assert row['sellerName'] == 'seller-1 shop'
    wid = row['id']

    assert client.get('/withdrawals/pending-count', headers=admin).get_json() == {'pending': 1}
    mine = client.get('/withdrawals/mine', headers=seller).get_json()
    assert [r['id'] for r in mine['data']] == [wid]

    # sellers cannot move their own request
    assert client.post(f'/withdrawals/{wid}/approve', headers=seller).status_code == 403
    assert_transition(client, f'/withdrawals/{wid}/complete', admin, 400, payload={'netAmount': 1})
    assert_transition(client, f'/withdrawals/{wid}/approve', admin, 200, expected_body_value='approved')
    assert_transition(client, f'/withdrawals/{wid}/approve', admin, 400)
    assert_transition(client, f'/withdrawals/{wid}/fail', admin, 200, payload={'error': 'bank offline', 'code': 'E01'},
                      expected_body_value='failed')

    listed = client.get('/withdrawals?status=failed', headers=admin).get_json()
    assert listed['pagination']['total'] == 1
    assert client.get('/withdrawals?status=bogus', headers=admin).status_code == 400

    actions = [e['action'] for e in client.get('/iam/audit/logs', headers=admin).get_json()['data']]
    assert 'WITHDRAWAL.APPROVE' in actions and 'WITHDRAWAL.REQUEST' in actions


def test_reject_via_api(client, store):
    ensure_admin(store)
    row = _request(store)
    admin = login_headers(client, 'admin@example.com')
    assert client.post(f"/withdrawals/{row['id']}/reject", json={}, headers=admin).status_code == 400
    resp = client.post(f"/withdrawals/{row['id']}/reject", json={'reason': 5}, headers=admin)
    assert resp.status_code == 400
    assert resp.get_json()['error']['detail'] == 'reason required'
    resp = client.post(f"/withdrawals/{row['id']}/reject", json={'reason': 'wrong account'}, headers=admin)
    assert resp.status_code == 200
    assert resp.get_json()['rejectionReason'] == 'wrong account'


def test_seller_cannot_read_other_sellers_request(client, store):
    ensure_seller(store, 'seller-2', 'other@example.com', permissions={'withdrawal': True})
    row = _request(store)
    headers = login_headers(client, 'other@example.com')
    assert client.get(f"/withdrawals/{row['id']}", headers=headers).status_code == 404


def test_process_without_functions_config_is_unavailable(client, store):
    ensure_admin(store)
    row = _request(store)
    wd.approve(store, row['id'], 'admin-1')
    admin = login_headers(client, 'admin@example.com')
    resp = client.post(f"/withdrawals/{row['id']}/process", headers=admin)
    assert resp.status_code == 503
    assert resp.get_json()['error']['title'] == 'Service Unavailable'
