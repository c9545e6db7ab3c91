from tests.test_utils_seed import ensure_admin, ensure_account, ensure_seller
from tests.test_lifecycle_helpers import login_headers


def _admin(client, store):
    ensure_admin(store)
    return login_headers(client, 'admin@example.com')


def test_create_user_returns_temporary_password(client, store):
    headers = _admin(client, store)
    resp = client.post('/users', json={'email': 'new@example.com', 'name': 'New', 'role': 'seller'}, headers=headers)
    assert resp.status_code == 201
    body = resp.get_json()
    temp = body['temporaryPassword']
    assert len(temp) == 12
    assert 'password_hash' not in body
    assert login_headers(client, 'new@example.com', temp)

    dup = client.post('/users', json={'email': 'NEW@example.com', 'role': 'seller'}, headers=headers)
    assert dup.status_code == 409


def test_create_user_validation(client, store):
    headers = _admin(client, store)
    assert client.post('/users', json={'email': 'x@example.com', 'role': 'owner'}, headers=headers).status_code == 400
    assert client.post('/users', json={'email': 'nope', 'role': 'seller'}, headers=headers).status_code == 400
    resp = client.post('/users', json={'email': 'x@example.com', 'role': 'seller', 'permissions': {'teleport': True}},
                       headers=headers)
    assert resp.status_code == 400
    assert resp.get_json()['error']['detail'] == 'Unknown capability teleport'


def test_list_filters_and_sort(client, store):
    headers = _admin(client, store)
    ensure_account(store, 'u-old', 'old@example.com', createdAt=1600000000000)
    ensure_account(store, 'u-off', 'off@example.com', isActive=False, createdAt=1650000000000)
    ensure_account(store, 'u-sub', 'sub@example.com', isSubAccount=True, parentId='u-old', createdAt=1690000000000)

    body = client.get('/users?role=seller', headers=headers).get_json()
    assert [u['uid'] for u in body['data']] == ['u-sub', 'u-off', 'u-old']
    body = client.get('/users?is_active=false', headers=headers).get_json()
    assert [u['uid'] for u in body['data']] == ['u-off']
    body = client.get('/users?sub_accounts=true', headers=headers).get_json()
    assert [u['uid'] for u in body['data']] == ['u-sub']
    body = client.get('/users?role=seller&sort=email&limit=2&offset=1', headers=headers).get_json()
    assert [u['email'] for u in body['data']] == ['old@example.com', 'sub@example.com']
    assert body['pagination'] == {'total': 3, 'limit': 2, 'offset': 1, 'returned': 2}
    assert client.get('/users?is_active=maybe', headers=headers).status_code == 400
    assert client.get('/users?role=owner', headers=headers).status_code == 400


def test_access_change_takes_effect_on_next_request(client, store):
    headers = _admin(client, store)
    ensure_seller(store)
    seller = login_headers(client, 'seller@example.com')
    assert client.get('/reports/sales', headers=seller).status_code == 403
    client.put('/users/seller-1/access', json={'role': 'seller', 'permissions': {'reports': True}}, headers=headers)
    assert client.get('/reports/sales', headers=seller).status_code == 200


def test_disable_and_reenable(client, store):
    headers = _admin(client, store)
    ensure_seller(store)
    seller = login_headers(client, 'seller@example.com')
    resp = client.put('/users/seller-1/status', json={'isActive': False}, headers=headers)
    assert resp.get_json()['isActive'] is False
    # existing token, but every request re-reads the account
    assert client.get('/orders', headers=seller).status_code == 403
    fail = client.post('/iam/auth/login', json={'email': 'seller@example.com', 'password': 'pw-123456'})
    assert fail.status_code == 403
    assert client.put('/users/seller-1/status', json={'isActive': 'no'}, headers=headers).status_code == 400
    client.put('/users/seller-1/status', json={'isActive': True}, headers=headers)
    assert client.get('/orders', headers=seller).status_code == 200


def test_profile_and_password(client, store):
    headers = _admin(client, store)
    ensure_seller(store)
    resp = client.patch('/users/seller-1/profile', json={'name': 'Dr. Santos', 'role': 'admin'}, headers=headers)
    assert resp.get_json()['name'] == 'Dr. Santos'
    assert resp.get_json()['role'] == 'seller'
    assert client.patch('/users/seller-1/profile', json={'role': 'admin'}, headers=headers).status_code == 400
    assert client.put('/users/seller-1/password', json={'password': 'short'}, headers=headers).status_code == 400
    assert client.put('/users/seller-1/password', json={'password': 'brand-new-pass'}, headers=headers).status_code == 200
    assert login_headers(client, 'seller@example.com', 'brand-new-pass')


def test_seller_cannot_manage_users(client, store):
    ensure_seller(store)
    headers = login_headers(client, 'seller@example.com')
    assert client.get('/users', headers=headers).status_code == 403
    assert client.get('/sellers', headers=headers).status_code == 403


def test_seller_admin_endpoints(client, store):
    headers = _admin(client, store)
    resp = client.post('/sellers', json={'id': 'shop-9', 'email': 'nine@example.com', 'name': 'Nine'}, headers=headers)
    assert resp.status_code == 201
    assert client.post('/sellers', json={'id': 'shop-9', 'email': 'x@example.com'}, headers=headers).status_code == 409
    patched = client.patch('/sellers/shop-9', json={'name': 'Nine Dental', 'password_hash': 'x'}, headers=headers)
    assert patched.get_json()['name'] == 'Nine Dental'
    assert 'password_hash' not in patched.get_json()
    vendor = client.put('/sellers/shop-9/vendor', json={'vendor': {'tin': '123'}}, headers=headers)
    assert vendor.get_json()['vendor'] == {'tin': '123'}
    assert vendor.get_json()['email'] == 'nine@example.com'
    listed = client.get('/sellers?q=nine', headers=headers).get_json()
    assert [s['id'] for s in listed['data']] == ['shop-9']
    assert client.delete('/sellers/shop-9', headers=headers).status_code == 200
    assert client.get('/sellers/shop-9', headers=headers).status_code == 404
