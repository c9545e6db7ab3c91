from tests.test_utils_seed import ensure_admin, ensure_seller, ensure_sub_account, ensure_order
from tests.test_lifecycle_helpers import login_headers


def _seed_orders(store):
    ensure_order(store, 'o-paid', ['seller-1'], createdAt=1717200000000,
                 paymentInfo={'status': 'paid'}, shippingInfo={'fullName': 'Ana Reyes'}, summary={'total': 500})
    ensure_order(store, 'o-done', ['seller-1'], createdAt=1717300000000,
                 shippingInfo={'status': 'delivered', 'fullName': 'Ben Cruz'}, summary={'total': 120})
    ensure_order(store, 'o-other', ['seller-2'], createdAt=1717400000000, status='pending')
    ensure_order(store, 'o-shared', ['seller-1', 'seller-2'], createdAt=1717100000000, status='cancelled')


def test_seller_sees_only_own_orders_newest_first(client, store):
    ensure_seller(store)
    _seed_orders(store)
    headers = login_headers(client, 'seller@example.com')
    body = client.get('/orders', headers=headers).get_json()
    assert [o['id'] for o in body['data']] == ['o-done', 'o-paid', 'o-shared']
    assert body['pagination']['total'] == 3
    shared = body['data'][2]
    assert shared['sellerName'] == 'Multiple Sellers'


def test_admin_sees_every_order(client, store):
    ensure_admin(store)
    _seed_orders(store)
    headers = login_headers(client, 'admin@example.com')
    body = client.get('/orders?seller=seller-2', headers=headers).get_json()
    assert {o['id'] for o in body['data']} == {'o-other', 'o-shared'}


def test_status_filter_and_validation(client, store):
    ensure_seller(store)
    _seed_orders(store)
    headers = login_headers(client, 'seller@example.com')
    body = client.get('/orders?status=to-ship', headers=headers).get_json()
    assert [o['id'] for o in body['data']] == ['o-paid']
    resp = client.get('/orders?status=shipped-ish', headers=headers)
    assert resp.status_code == 400
    assert resp.get_json()['error']['detail'] == 'status invalid'


def test_search_date_range_and_sort(client, store):
    ensure_seller(store)
    _seed_orders(store)
    headers = login_headers(client, 'seller@example.com')
    body = client.get('/orders?q=ana', headers=headers).get_json()
    assert [o['id'] for o in body['data']] == ['o-paid']
    # 1717200000000 is 2024-06-01
    body = client.get('/orders?from=2024-06-01&to=2024-06-01', headers=headers).get_json()
    assert [o['id'] for o in body['data']] == ['o-paid']
    body = client.get('/orders?sort=-total', headers=headers).get_json()
    assert [o['id'] for o in body['data']] == ['o-paid', 'o-shared', 'o-done']
    assert client.get('/orders?sort=nope', headers=headers).status_code == 400


def test_list_etag_round_trip(client, store):
    ensure_seller(store)
    _seed_orders(store)
    headers = login_headers(client, 'seller@example.com')
    first = client.get('/orders', headers=headers)
    etag = first.headers['ETag']
    again = client.get('/orders', headers={**headers, 'If-None-Match': etag})
    assert again.status_code == 304
    ensure_order(store, 'o-new', ['seller-1'], createdAt=1717500000000)
    changed = client.get('/orders', headers={**headers, 'If-None-Match': etag})
    assert changed.status_code == 200


def test_summary_counts_every_status(client, store):
    ensure_seller(store)
    _seed_orders(store)
    headers = login_headers(client, 'seller@example.com')
    body = client.get('/orders/summary', headers=headers).get_json()
    assert body['total'] == 3
    assert body['byStatus']['to-ship'] == 1
    assert body['byStatus']['completed'] == 1
    assert body['byStatus']['cancelled'] == 1
    assert body['byStatus']['failed-delivery'] == 0


def test_other_sellers_order_is_not_found(client, store):
    ensure_seller(store)
    _seed_orders(store)
    headers = login_headers(client, 'seller@example.com')
    assert client.get('/orders/o-other', headers=headers).status_code == 404
    assert client.get('/orders/o-missing', headers=headers).status_code == 404
    order = client.get('/orders/o-paid', headers=headers).get_json()
    assert order['status'] == 'to-ship'
    assert order['total'] == 500


def test_sub_account_reads_parent_orders(client, store):
    ensure_seller(store, permissions={'seller-orders': True})
    ensure_sub_account(store, 'staff-1', 'seller-1', {'seller-orders': True})
    _seed_orders(store)
    headers = login_headers(client, 'staff-1@example.com')
    body = client.get('/orders', headers=headers).get_json()
    assert {o['id'] for o in body['data']} == {'o-paid', 'o-done', 'o-shared'}


def test_item_category_hydrated_from_product(client, store):
    ensure_seller(store)
    store.set('Product', 'p-1', {'category': 'Consumables', 'subcategory': 'Gloves', 'cost': 40})
    ensure_order(store, 'o-1', ['seller-1'])
    headers = login_headers(client, 'seller@example.com')
    item = client.get('/orders/o-1', headers=headers).get_json()['items'][0]
    assert item['category'] == 'Consumables'
    assert item['subcategory'] == 'Gloves'
    assert item['cost'] == 40
