from dentpal.services import sellers as sellers_svc
from dentpal.services.access import load_parent_permissions, resolve_for_uid
from tests.test_utils_seed import ensure_admin, ensure_seller, ensure_sub_account
from tests.test_lifecycle_helpers import login_headers


def test_invite_is_masked_to_parent_ceiling(client, store):
    ensure_seller(store, permissions={'dashboard': True, 'seller-orders': True})
    headers = login_headers(client, 'seller@example.com')
    resp = client.post('/sellers/seller-1/sub-accounts', json={
        'name': 'Front Desk',
        'email': 'desk@example.com',
        'permissions': {'dashboard': True, 'reports': True, 'users': True, 'seller-orders': True},
    }, headers=headers)
    assert resp.status_code == 201, resp.get_json()
    invite = resp.get_json()
    perms = invite['permissions']
    assert perms['dashboard'] is True and perms['seller-orders'] is True
    # seller lacks reports; users is never delegated
    assert perms['reports'] is False and perms['users'] is False
    assert invite['status'] == 'pending'
    assert invite['inviteId'] == invite['id']
    stored = store.get(sellers_svc.members_collection('seller-1'), invite['id']).data
    assert stored['parentId'] == 'seller-1'


def test_invite_requires_name_and_email(client, store):
    ensure_seller(store)
    headers = login_headers(client, 'seller@example.com')
    assert client.post('/sellers/seller-1/sub-accounts', json={'name': 'X'}, headers=headers).status_code == 400
    assert client.post('/sellers/seller-1/sub-accounts', json={'email': 'x@example.com', 'name': ' '},
                       headers=headers).status_code == 400


def test_update_and_delete_member(client, store):
    ensure_seller(store, permissions={'reports': True})
    headers = login_headers(client, 'seller@example.com')
    invite = client.post('/sellers/seller-1/sub-accounts', json={'name': 'A', 'email': 'a@example.com'},
                         headers=headers).get_json()
    url = f"/sellers/seller-1/sub-accounts/{invite['id']}"
    resp = client.patch(url, json={'status': 'active', 'permissions': {'reports': True, 'withdrawal': True}}, headers=headers)
    assert resp.status_code == 200
    body = resp.get_json()
    assert body['status'] == 'active'
    assert body['permissions']['reports'] is True
    assert body['permissions']['withdrawal'] is False
    assert client.patch(url, json={'status': 'sleeping'}, headers=headers).status_code == 400
    listed = client.get('/sellers/seller-1/sub-accounts?status=active', headers=headers).get_json()
    assert [m['id'] for m in listed['data']] == [invite['id']]
    assert client.delete(url, headers=headers).status_code == 200
    assert client.delete(url, headers=headers).status_code == 404


def test_sub_account_cannot_manage_sub_accounts(client, store):
    ensure_seller(store, permissions={'dashboard': True})
    ensure_sub_account(store, 'staff-1', 'seller-1', {'dashboard': True})
    headers = login_headers(client, 'staff-1@example.com')
    resp = client.get('/sellers/seller-1/sub-accounts', headers=headers)
    assert resp.status_code == 403
    assert resp.get_json()['error']['detail'] == 'Sub-accounts cannot manage sub-accounts'
    resp = client.post('/sellers/seller-1/sub-accounts', json={'name': 'B', 'email': 'b@example.com'}, headers=headers)
    assert resp.status_code == 403


def test_seller_cannot_touch_another_sellers_members(client, store):
    ensure_seller(store)
    ensure_seller(store, 'seller-2', 'two@example.com')
    headers = login_headers(client, 'two@example.com')
    assert client.get('/sellers/seller-1/sub-accounts', headers=headers).status_code == 403
    assert client.get('/sellers/seller-1', headers=headers).status_code == 403
    assert client.get('/sellers/seller-2', headers=headers).status_code == 200


def test_admin_can_manage_any_sellers_members(client, store):
    ensure_admin(store)
    ensure_seller(store)
    headers = login_headers(client, 'admin@example.com')
    resp = client.post('/sellers/seller-1/sub-accounts', json={'name': 'C', 'email': 'c@example.com'}, headers=headers)
    assert resp.status_code == 201
    assert resp.get_json()['createdBy'] == 'admin-1'


def test_parent_ceiling_is_stored_flags_only(store):
    # no stored flags, nothing to delegate
    ensure_seller(store)
    perms = load_parent_permissions(store, 'seller-1')
    assert not any(perms.values())
    ensure_seller(store, permissions={'dashboard': True, 'reports': 'yes'})
    perms = load_parent_permissions(store, 'seller-1')
    assert perms['dashboard'] is True
    assert perms['reports'] is False
    assert perms['bookings'] is False
    assert load_parent_permissions(store, 'ghost') is None


def test_sub_account_is_capped_by_parent_stored_flags(store):
    ensure_seller(store, permissions={})
    ensure_sub_account(store, 'staff-1', 'seller-1', {'dashboard': True, 'bookings': True})
    perms = resolve_for_uid(store, 'staff-1')['permissions']
    assert perms['dashboard'] is False
    assert perms['bookings'] is False

    ensure_seller(store, permissions={'dashboard': False, 'seller-orders': True, 'bookings': True})
    ensure_sub_account(store, 'staff-1', 'seller-1', {'dashboard': True, 'seller-orders': True})
    perms = resolve_for_uid(store, 'staff-1')['permissions']
    assert perms['dashboard'] is False
    assert perms['seller-orders'] is True
    # child never asked for bookings
    assert perms['bookings'] is False


def test_invite_ceiling_ignores_role_defaults(client, store):
    ensure_seller(store)
    headers = login_headers(client, 'seller@example.com')
    resp = client.post('/sellers/seller-1/sub-accounts', json={
        'name': 'Desk', 'email': 'desk@example.com', 'permissions': {'dashboard': True},
    }, headers=headers)
    assert resp.status_code == 201
    assert not any(resp.get_json()['permissions'].values())


def test_inactive_or_missing_parent_denies_everything(store):
    ensure_seller(store, permissions={'dashboard': True})
    ensure_sub_account(store, 'staff-1', 'seller-1', {'dashboard': True})
    ensure_sub_account(store, 'orphan', 'nobody', {'dashboard': True})
    assert resolve_for_uid(store, 'staff-1')['permissions']['dashboard'] is True
    store.update('Seller', 'seller-1', {'isActive': False})
    assert not any(resolve_for_uid(store, 'staff-1')['permissions'].values())
    assert not any(resolve_for_uid(store, 'orphan')['permissions'].values())


def test_parent_read_failure_denies_everything(store, monkeypatch):
    ensure_seller(store, permissions={'dashboard': True, 'seller-orders': True})
    ensure_sub_account(store, 'staff-1', 'seller-1', {'dashboard': True, 'seller-orders': True})
    real_get = store.get

    def flaky_get(collection, doc_id):
        if collection == 'Seller':
            raise RuntimeError('backend unavailable')
        return real_get(collection, doc_id)

    monkeypatch.setattr(store, 'get', flaky_get)
    assert load_parent_permissions(store, 'seller-1') is None
    perms = resolve_for_uid(store, 'staff-1')['permissions']
    assert not any(perms.values())
