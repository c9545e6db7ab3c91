import pytest
from dentpal.store import build_store
from tests.test_utils_seed import ensure_admin
from tests.test_lifecycle_helpers import login_headers


def test_unknown_path_uses_error_shape(client):
    resp = client.get('/no/such/route')
    assert resp.status_code == 404
    assert resp.get_json()['error']['status'] == 404
    assert resp.get_json()['error']['title'] == 'Not Found'


def test_method_not_allowed(client):
    resp = client.delete('/healthz')
    assert resp.status_code == 405
    assert resp.get_json()['error']['status'] == 405


def test_unhandled_exception_is_generic_500(client, store, monkeypatch):
    from dentpal.services import categories as cat_svc

    def boom(_store):
        raise RuntimeError('db exploded with secrets')

    monkeypatch.setattr(cat_svc, 'list_categories', boom)
    ensure_admin(store)
    headers = login_headers(client, 'admin@example.com')
    resp = client.get('/categories', headers=headers)
    assert resp.status_code == 500
    assert resp.get_json() == {'error': {'status': 500, 'title': 'Internal Server Error', 'detail': 'Unexpected error'}}


def test_missing_document_update_maps_to_404(client, store):
    ensure_admin(store)
    headers = login_headers(client, 'admin@example.com')
    resp = client.put('/categories/ghost/subcategories/none', json={'name': 'X'}, headers=headers)
    assert resp.status_code == 404
    assert 'ghost' in resp.get_json()['error']['detail']


def test_bad_pagination_is_400(client, store):
    ensure_admin(store)
    headers = login_headers(client, 'admin@example.com')
    resp = client.get('/users?limit=ten', headers=headers)
    assert resp.status_code == 400
    assert resp.get_json()['error']['detail'] == 'limit/offset must be int'


def test_healthz(client):
    assert client.get('/healthz').get_json() == {'status': 'ok', 'store': 'sql'}


def test_unknown_store_backend():
    with pytest.raises(ValueError):
        build_store({'STORE_BACKEND': 'mongo'})
