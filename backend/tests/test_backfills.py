import pytest
from dentpal.services import backfills
from dentpal.services import compliance as compliance_svc
from dentpal.services import reports as reports_svc
from dentpal.services.orders import ProductCache
from dentpal.services.users import find_by_email, verify_credentials
from tests.test_utils_seed import ensure_account, ensure_order


class Echo:
    def __init__(self):
        self.lines = []

    def __call__(self, line):
        self.lines.append(line)

    def grep(self, prefix):
        return [l for l in self.lines if l.startswith(prefix)]


def test_item_categories_only_fill_missing(store):
    store.set('Product', 'p-1', {'category': 'Consumables', 'subcategory': 'Gloves'})
    items = [
        {'productId': 'p-1'},
        {'productId': 'p-1', 'category': 'Equipment'},
        {'productId': 'p-1', 'category': 'Equipment', 'subcategory': 'Chairs'},
        {'productId': 'p-missing'},
        'not-an-item',
    ]
    new_items, changed = backfills.backfill_item_categories(items, ProductCache(store))
    assert changed == 2
    assert new_items[0] == {'productId': 'p-1', 'category': 'Consumables', 'subcategory': 'Gloves'}
    assert new_items[1] == {'productId': 'p-1', 'category': 'Equipment', 'subcategory': 'Gloves'}
    assert new_items[2] is items[2]
    assert new_items[3] is items[3]
    assert new_items[4] == 'not-an-item'


def test_order_backfill_dry_run_writes_nothing(store):
    store.set('Product', 'p-1', {'category': 'Consumables'})
    ensure_order(store, 'o-1', ['seller-1'])
    ensure_order(store, 'o-2', ['seller-1'], items=[])
    echo = Echo()
    summary = backfills.backfill_order_item_categories(store, dry_run=True, echo=echo)
    assert summary == {'scanned': 2, 'orders_updated': 1, 'items_updated': 1, 'failed': 0}
    assert len(echo.grep('[DRY-RUN]')) == 1
    assert 'category' not in store.get('Order', 'o-1').data['items'][0]


def test_order_backfill_writes(store):
    store.set('Product', 'p-1', {'category': 'Consumables'})
    ensure_order(store, 'o-1', ['seller-1'])
    echo = Echo()
    summary = backfills.backfill_order_item_categories(store, echo=echo)
    assert summary['orders_updated'] == 1
    assert store.get('Order', 'o-1').data['items'][0]['category'] == 'Consumables'
    assert echo.grep('[INFO] Committed 1 writes')


def test_order_backfill_counts_product_read_errors(store, monkeypatch):
    store.set('Product', 'p-1', {'category': 'Consumables'})
    ensure_order(store, 'o-1', ['seller-1'])
    ensure_order(store, 'o-2', ['seller-1'], items=[{'productName': 'Bib', 'productId': 'p-2'}])
    real_get = store.get

    def flaky_get(collection, doc_id):
        if collection == 'Product' and doc_id == 'p-2':
            raise RuntimeError('deadline exceeded')
        return real_get(collection, doc_id)

    monkeypatch.setattr(store, 'get', flaky_get)
    echo = Echo()
    summary = backfills.backfill_order_item_categories(store, echo=echo)
    assert summary['failed'] == 1
    assert summary['orders_updated'] == 1
    assert any('deadline exceeded' in l for l in echo.grep('[WARN]'))


def test_lenient_product_cache_swallows_read_errors(store, monkeypatch):
    def broken_get(collection, doc_id):
        raise RuntimeError('down')

    monkeypatch.setattr(store, 'get', broken_get)
    assert ProductCache(store).get('p-1') is None
    with pytest.raises(RuntimeError):
        ProductCache(store, strict=True).get('p-1')


def test_batch_writer_commits_at_limit(store):
    echo = Echo()
    writer = backfills.BatchWriter(store, echo=echo, limit=2)
    for i in range(5):
        writer.set('Scratch', f'd{i}', {'n': i})
    writer.flush()
    assert writer.committed == 5
    assert echo.lines == ['[INFO] Committed 2 writes', '[INFO] Committed 2 writes', '[INFO] Committed 1 writes']
    assert len(store.query('Scratch')) == 5


def test_migrate_web_users_merges_into_seller(store):
    ensure_account(store, 'u-1', 'one@example.com')
    ensure_account(store, 'u-2', 'two@example.com')
    store.set('Seller', 'u-2', {'shopName': 'Kept'})
    dry = backfills.migrate_web_users_to_seller(store, dry_run=True, echo=Echo())
    assert dry == {'scanned': 2, 'moved': 1, 'updated': 1, 'failed': 0}
    assert store.get('Seller', 'u-1') is None

    backfills.migrate_web_users_to_seller(store, echo=Echo())
    merged = store.get('Seller', 'u-2').data
    assert merged['shopName'] == 'Kept'
    assert merged['email'] == 'two@example.com'
    assert merged['_migratedFrom'] == 'web_users'
    assert store.get('Seller', 'u-1').data['_migratedAt']


def test_sync_orders_to_reports(store):
    ensure_order(store, 'o-1', ['seller-1'])
    ensure_order(store, 'o-2', [], status='refunded')
    store.set('orders', 'legacy-1', {'sellerId': 'seller-2', 'total': 80, 'items': []})
    echo = Echo()
    summary = backfills.sync_orders_to_reports(store, echo=echo)
    assert summary == {'scanned': 3, 'synced': 2, 'skipped': 1, 'failed': 0}
    rows = reports_svc.list_seller_reports(store, 'seller-1')
    assert rows[0]['grossSales'] == 300
    assert rows[0]['itemsSold'] == 2
    assert reports_svc.list_seller_reports(store, 'seller-2')[0]['netSales'] == 80


def test_seed_warranty_compliance(store):
    assert backfills.seed_warranty_compliance(store, dry_run=True, echo=Echo()) == {'seeded': 0, 'planned': 3}
    assert store.get(compliance_svc.COLLECTION, 'WarrantyType') is None
    assert backfills.seed_warranty_compliance(store, echo=Echo()) == {'seeded': 3, 'planned': 3}
    labels = [o['label'] for o in compliance_svc.get_options(store)['durations']]
    assert labels[0] == '1 week'


def test_seed_admin_creates_then_is_idempotent(store):
    with pytest.raises(ValueError):
        backfills.seed_admin(store, None, None, echo=Echo())
    result = backfills.seed_admin(store, 'root@example.com', 'long-enough-pw', echo=Echo())
    assert result['created'] is True
    assert verify_credentials(store, 'root@example.com', 'long-enough-pw').id == result['uid']
    again = backfills.seed_admin(store, 'root@example.com', 'other-password', echo=Echo())
    assert again == {'uid': result['uid'], 'created': False, 'promoted': False}


def test_seed_admin_promotes_existing_account(store):
    ensure_account(store, 'u-1', 'boss@example.com', role='seller', isActive=False)
    result = backfills.seed_admin(store, 'Boss@Example.com', None, echo=Echo())
    assert result == {'uid': 'u-1', 'created': False, 'promoted': True}
    data = find_by_email(store, 'boss@example.com').data
    assert data['role'] == 'admin' and data['isActive'] is True
