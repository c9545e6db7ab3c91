from dentpal.services import compliance as compliance_svc
from dentpal.services import warranty as warranty_svc
from tests.test_utils_seed import ensure_admin, ensure_seller
from tests.test_lifecycle_helpers import login_headers


def test_list_all_rules_skips_category_subcollections(store):
    warranty_svc.save_category_rule(store, 'cat-1', 'local_supplier', '1m', 'Equipment')
    warranty_svc.save_subcategory_rule(store, 'cat-1', 'sub-1', 'none', None, 'Chairs')
    # same collection id under Category holds names, not rules
    store.set('Category/cat-1/subCategory', 'sub-1', {'subCategoryName': 'Chairs'})
    rules = warranty_svc.list_all_rules(store)
    assert [r['level'] for r in rules] == ['category', 'subcategory']
    assert rules[0]['categoryName'] == 'Equipment'
    assert rules[0]['rule']['warrantyDuration'] == '1m'
    assert rules[1]['categoryId'] == 'cat-1'
    assert rules[1]['subcategoryId'] == 'sub-1'
    assert rules[1]['rule']['warrantyType'] == 'none'


def test_rule_listener_follows_changes(store):
    seen = []
    sub = warranty_svc.listen_category_rule(store, 'cat-1', seen.append)
    warranty_svc.save_category_rule(store, 'cat-1', 'none', None)
    warranty_svc.delete_category_rule(store, 'cat-1')
    sub.unsubscribe()
    warranty_svc.save_category_rule(store, 'cat-1', 'local_supplier', '1w')
    assert seen[0] is None
    assert seen[1]['warrantyType'] == 'none'
    assert seen[-1] is None
    assert len(seen) == 3


def test_warranty_api(client, store):
    ensure_admin(store)
    ensure_seller(store)
    admin = login_headers(client, 'admin@example.com')
    seller = login_headers(client, 'seller@example.com')
    assert client.get('/warranty/cat-1', headers=seller).status_code == 404
    resp = client.put('/warranty/cat-1', json={'warrantyType': 'intl_seller', 'warrantyDuration': '3m'}, headers=admin)
    assert resp.status_code == 200
    assert client.get('/warranty/cat-1', headers=seller).get_json()['warrantyDuration'] == '3m'
    assert client.put('/warranty/cat-1', json={'warrantyType': 'none'}, headers=seller).status_code == 403
    client.put('/warranty/cat-1/subcategories/sub-9', json={'warrantyType': 'none'}, headers=admin)
    listed = client.get('/warranty', headers=seller).get_json()['data']
    assert {r['level'] for r in listed} == {'category', 'subcategory'}
    assert client.delete('/warranty/cat-1/subcategories/sub-9', headers=admin).status_code == 200
    assert client.get('/warranty/cat-1/subcategories/sub-9', headers=admin).status_code == 404


def test_options_fall_back_to_defaults(store):
    options = compliance_svc.get_options(store)
    assert options == compliance_svc.COMPLIANCE_DEFAULTS
    store.set(compliance_svc.COLLECTION, 'WarrantyDuration', {'options': ['6 months']})
    options = compliance_svc.get_options(store)
    assert options['durations'] == [{'value': '6 months', 'label': '6 months'}]
    assert options['warrantyTypes'] == compliance_svc.COMPLIANCE_DEFAULTS['warrantyTypes']


def test_options_listener_emits_defaults_then_overrides(store):
    seen = []
    sub = compliance_svc.listen(store, seen.append)
    store.set(compliance_svc.COLLECTION, 'DangerousGoods', {'options': [{'value': 'none', 'label': 'Safe'}]})
    sub.unsubscribe()
    assert seen[0]['dangerousGoods'] == compliance_svc.COMPLIANCE_DEFAULTS['dangerousGoods']
    assert seen[-1]['dangerousGoods'] == [{'value': 'none', 'label': 'Safe'}]


def test_compliance_api(client, store):
    ensure_admin(store)
    headers = login_headers(client, 'admin@example.com')
    resp = client.post('/compliance/seed', headers=headers)
    assert resp.get_json() == {'seeded': ['DangerousGoods', 'WarrantyType', 'WarrantyDuration']}
    options = client.get('/compliance/options', headers=headers).get_json()
    assert options['warrantyTypes'][0] == {'value': 'Local Manufacturer Warranty', 'label': 'Local Manufacturer Warranty'}
