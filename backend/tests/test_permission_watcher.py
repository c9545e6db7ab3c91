from dentpal.services.access import PermissionWatcher
from tests.test_utils_seed import ensure_seller, ensure_sub_account


def test_watcher_tracks_account_and_parent(store):
    ensure_seller(store, permissions={'reports': True, 'dashboard': True})
    ensure_sub_account(store, 'staff-1', 'seller-1', {'reports': True, 'dashboard': True})
    updates = []
    with PermissionWatcher(store, 'staff-1', updates.append) as watcher:
        assert watcher.permissions['reports'] is True
        assert watcher.permissions['dashboard'] is True

        # parent loses a capability
        store.update('Seller', 'seller-1', {'permissions.reports': False})
        assert watcher.permissions['reports'] is False

        # child loses one
        store.update('web_users', 'staff-1', {'permissions.dashboard': False})
        assert watcher.permissions['dashboard'] is False

        store.delete('web_users', 'staff-1')
        assert not any(watcher.permissions.values())
    count = len(updates)
    ensure_sub_account(store, 'staff-1', 'seller-1', {'dashboard': True})
    assert len(updates) == count


def test_watcher_moves_to_new_parent(store):
    ensure_seller(store, 'seller-1', 'one@example.com', permissions={'dashboard': False})
    ensure_seller(store, 'seller-2', 'two@example.com', permissions={'dashboard': True})
    ensure_sub_account(store, 'staff-1', 'seller-1', {'dashboard': True})
    watcher = PermissionWatcher(store, 'staff-1', lambda perms: None)
    try:
        assert watcher.permissions['dashboard'] is False
        store.update('web_users', 'staff-1', {'parentId': 'seller-2'})
        assert watcher.permissions['dashboard'] is True
        # the old parent no longer matters
        store.update('Seller', 'seller-1', {'permissions.dashboard': True, 'isActive': False})
        assert watcher.permissions['dashboard'] is True
    finally:
        watcher.close()


def test_primary_account_ignores_parent_fields(store):
    ensure_seller(store)
    watcher = PermissionWatcher(store, 'seller-1', lambda perms: None)
    assert watcher.permissions['seller-orders'] is True
    store.update('web_users', 'seller-1', {'isActive': False})
    assert watcher.permissions['seller-orders'] is False
    watcher.close()
