import pytest
from tests.test_utils_seed import ensure_seller, ensure_sub_account
from tests.test_lifecycle_helpers import login_headers


@pytest.mark.parametrize('method,url', [
    ('get', '/users'),
    ('get', '/sellers'),
    ('get', '/iam/audit/logs'),
    ('get', '/policies'),
    ('post', '/categories'),
    ('put', '/warranty/c1'),
    ('get', '/reports/sales'),
    ('get', '/withdrawals/mine'),
])
def test_default_seller_is_denied(client, store, method, url):
    ensure_seller(store)
    headers = login_headers(client, 'seller@example.com')
    resp = getattr(client, method)(url, json={}, headers=headers)
    assert resp.status_code == 403
    assert resp.get_json()['error']['detail'] == 'Missing permission'


def test_seller_with_withdrawal_grant_is_not_admin(client, store):
    ensure_seller(store, permissions={'withdrawal': True})
    headers = login_headers(client, 'seller@example.com')
    assert client.get('/withdrawals/mine', headers=headers).status_code == 200
    resp = client.get('/withdrawals', headers=headers)
    assert resp.status_code == 403
    assert resp.get_json()['error']['detail'] == 'Admin access required'


def test_sub_account_cannot_reach_user_management_even_if_granted(client, store):
    ensure_seller(store, permissions={'users': True, 'access': True})
    ensure_sub_account(store, 'sub-1', 'seller-1', permissions={'users': True, 'access': True, 'dashboard': True})
    headers = login_headers(client, 'sub-1@example.com')
    assert client.get('/users', headers=headers).status_code == 403
    assert client.get('/iam/audit/logs', headers=headers).status_code == 403


def test_sub_account_loses_access_when_parent_is_gone(client, store):
    ensure_seller(store, permissions={'dashboard': True, 'seller-orders': True})
    ensure_sub_account(store, 'sub-1', 'seller-1', permissions={'dashboard': True, 'seller-orders': True})
    headers = login_headers(client, 'sub-1@example.com')
    assert client.get('/orders', headers=headers).status_code == 200
    store.delete('Seller', 'seller-1')
    store.delete('web_users', 'seller-1')
    assert client.get('/orders', headers=headers).status_code == 403
