from __future__ import annotations
"""One-off data maintenance jobs run from ``backend/scripts``.

Every job takes a store and ``dry_run``; writes are buffered into batches of
``BATCH_LIMIT`` operations. A failing record is reported, counted and skipped.
Each job returns a dict of counters.
"""
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from dentpal.constants.permissions import ROLE_ADMIN
from dentpal.schema.orders import first_of, item_product_id
from dentpal.services import compliance as compliance_svc
from dentpal.services import reports as reports_svc
from dentpal.services import users as users_svc
from dentpal.services.orders import COLLECTION as ORDER_COLLECTION, ProductCache
from dentpal.store.base import DocumentStore

BATCH_LIMIT = 450
LEGACY_ORDER_COLLECTION = 'orders'
SELLER_COLLECTION = 'Seller'
LEGACY_USER_COLLECTION = 'web_users'

Echo = Callable[[str], None]


class BatchWriter:
    """Buffer writes and commit every ``limit`` operations; a dry run drops them."""

    def __init__(self, store: DocumentStore, dry_run: bool = False, echo: Echo = print, limit: int = BATCH_LIMIT):
        self.store = store
        self.dry_run = dry_run
        self.echo = echo
        self.limit = limit
        self.committed = 0
        self._batch = store.batch()

    def set(self, collection: str, doc_id: str, data: Dict[str, Any], merge: bool = False):
        if self.dry_run:
            return
        self._batch.set(collection, doc_id, data, merge=merge)
        self._maybe_commit()

    def update(self, collection: str, doc_id: str, data: Dict[str, Any]):
        if self.dry_run:
            return
        self._batch.update(collection, doc_id, data)
        self._maybe_commit()

    def _maybe_commit(self):
        if len(self._batch) >= self.limit:
            self.flush()

    def flush(self):
        pending = len(self._batch)
        if self.dry_run or not pending:
            return
        self._batch.commit()
        self.committed += pending
        self.echo(f"[INFO] Committed {pending} writes")
        self._batch = self.store.batch()


def _missing(value) -> bool:
    return not (isinstance(value, str) and value.strip())


def backfill_item_categories(items: List[Dict[str, Any]], products: ProductCache):
    """Return (new_items, changed_count) with category/subcategory filled from Product documents."""
    out = []
    changed = 0
    for it in items:
        if not isinstance(it, dict):
            out.append(it)
            continue
        need_cat = _missing(it.get('category'))
        need_sub = _missing(it.get('subcategory'))
        if not need_cat and not need_sub:
            out.append(it)
            continue
        product = products.get(item_product_id(it)) or {}
        category = first_of(product, 'category', 'Category')
        subcategory = first_of(product, 'subcategory', 'Subcategory')
        patch = {}
        if need_cat and category:
            patch['category'] = str(category)
        if need_sub and subcategory:
            patch['subcategory'] = str(subcategory)
        if patch:
            changed += 1
            out.append({**it, **patch})
        else:
            out.append(it)
    return out, changed


def backfill_order_item_categories(store: DocumentStore, dry_run: bool = False, echo: Echo = print) -> Dict[str, int]:
    products = ProductCache(store, strict=True)
    writer = BatchWriter(store, dry_run, echo)
    orders = store.query(ORDER_COLLECTION)
    echo(f"[INFO] Found {len(orders)} orders")
    summary = {'scanned': len(orders), 'orders_updated': 0, 'items_updated': 0, 'failed': 0}
    for snap in orders:
        try:
            items = snap.data.get('items')
            if not isinstance(items, list) or not items:
                continue
            new_items, changed = backfill_item_categories(items, products)
            if not changed:
                continue
            summary['orders_updated'] += 1
            summary['items_updated'] += changed
            if dry_run:
                echo(f"[DRY-RUN] Would update {snap.path} ({changed} items)")
            writer.update(ORDER_COLLECTION, snap.id, {'items': new_items})
        except Exception as e:
            summary['failed'] += 1
            echo(f"[WARN] {snap.path}: {e}")
    writer.flush()
    return summary


def migrate_web_users_to_seller(store: DocumentStore, dry_run: bool = False, echo: Echo = print) -> Dict[str, int]:
    """Copy every ``web_users`` document into ``Seller`` with merge, tagging provenance."""
    writer = BatchWriter(store, dry_run, echo)
    sources = store.query(LEGACY_USER_COLLECTION)
    echo(f"[INFO] Found {len(sources)} {LEGACY_USER_COLLECTION} documents")
    summary = {'scanned': len(sources), 'moved': 0, 'updated': 0, 'failed': 0}
    migrated_at = datetime.now(timezone.utc).isoformat()
    for snap in sources:
        try:
            exists = store.get(SELLER_COLLECTION, snap.id) is not None
            summary['updated' if exists else 'moved'] += 1
            if dry_run:
                echo(f"[DRY-RUN] Would {'merge into' if exists else 'create'} {SELLER_COLLECTION}/{snap.id}")
            writer.set(SELLER_COLLECTION, snap.id, {
                **snap.data,
                '_migratedFrom': LEGACY_USER_COLLECTION,
                '_migratedAt': migrated_at,
            }, merge=True)
        except Exception as e:
            summary['failed'] += 1
            echo(f"[WARN] {snap.path}: {e}")
    writer.flush()
    return summary


def sync_orders_to_reports(store: DocumentStore, dry_run: bool = False, echo: Echo = print) -> Dict[str, int]:
    writer = BatchWriter(store, dry_run, echo)
    summary = {'scanned': 0, 'synced': 0, 'skipped': 0, 'failed': 0}
    for collection in (ORDER_COLLECTION, LEGACY_ORDER_COLLECTION):
        orders = store.query(collection)
        echo(f"[INFO] Found {len(orders)} orders in {collection}")
        summary['scanned'] += len(orders)
        for snap in orders:
            try:
                seller_id = reports_svc.primary_seller(snap.data)
                if not seller_id:
                    summary['skipped'] += 1
                    echo(f"[WARN] {snap.path} has no seller id, skipped")
                    continue
                entry = reports_svc.build_report_entry(snap.id, snap.data)
                if dry_run:
                    echo(f"[DRY-RUN] Would sync {reports_svc.reports_collection(seller_id)}/{snap.id} ({entry['grossSales']:.2f})")
                writer.set(reports_svc.reports_collection(seller_id), snap.id, {
                    **entry,
                    'createdAt': datetime.now(timezone.utc).isoformat(),
                })
                summary['synced'] += 1
            except Exception as e:
                summary['failed'] += 1
                echo(f"[WARN] {snap.path}: {e}")
    writer.flush()
    return summary


def seed_warranty_compliance(store: DocumentStore, dry_run: bool = False, echo: Echo = print) -> Dict[str, int]:
    if dry_run:
        for doc_id in compliance_svc.SEED_OPTIONS:
            echo(f"[DRY-RUN] Would seed {compliance_svc.COLLECTION}/{doc_id}")
        return {'seeded': 0, 'planned': len(compliance_svc.SEED_OPTIONS)}
    seeded = compliance_svc.seed_defaults(store)
    return {'seeded': len(seeded), 'planned': len(compliance_svc.SEED_OPTIONS)}


def seed_admin(store: DocumentStore, email: Optional[str], password: Optional[str],
               dry_run: bool = False, echo: Echo = print, name: str = 'Administrator') -> Dict[str, Any]:
    """Ensure an active admin account exists for ``email``; an existing account is promoted, never overwritten."""
    if not email:
        raise ValueError('SEED_ADMIN_EMAIL is required')
    existing = users_svc.find_by_email(store, email)
    if existing is not None:
        data = existing.data
        if data.get('role') == ROLE_ADMIN and data.get('isActive') is not False:
            echo(f"[INFO] Admin {email} already present ({existing.id})")
            return {'uid': existing.id, 'created': False, 'promoted': False}
        if dry_run:
            echo(f"[DRY-RUN] Would promote {email} to active admin")
        else:
            store.update(users_svc.COLLECTION, existing.id, {'role': ROLE_ADMIN, 'isActive': True})
        return {'uid': existing.id, 'created': False, 'promoted': True}
    if dry_run:
        echo(f"[DRY-RUN] Would create admin {email}")
        return {'uid': None, 'created': False, 'promoted': False}
    profile, temp_password = users_svc.create_user(store, email, name, ROLE_ADMIN, password=password)
    if temp_password:
        echo(f"[WARN] No SEED_ADMIN_PASSWORD set; temporary password: {temp_password}")
    return {'uid': profile['uid'], 'created': True, 'promoted': False}


