from __future__ import annotations
"""Marketplace orders: the read side plus seller confirmation.

Raw documents pass through ``schema.orders.normalize_order`` and are then
hydrated from ``Product`` documents: a missing thumbnail comes from the first
item's product and missing item categories from each product, with one product
cache per call.

Sellers confirm or reject orders that are still pending or waiting to ship.
The decision is written to the raw ``status`` field; the canonical status stays
derived on read.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from flask import abort

from dentpal.schema.orders import apply_product_details, first_of, normalize_order
from dentpal.store.base import DocumentStore

log = logging.getLogger(__name__)

COLLECTION = 'Order'
PRODUCT_COLLECTION = 'Product'


class ProductCache:
    """Per-call memo of Product documents.

    Unreadable products are cached as None, unless ``strict`` is set, in which
    case the read error propagates and nothing is cached.
    """

    def __init__(self, store: DocumentStore, strict: bool = False):
        self.store = store
        self.strict = strict
        self._cache: Dict[str, Optional[Dict[str, Any]]] = {}

    def get(self, product_id: Optional[str]) -> Optional[Dict[str, Any]]:
        if not product_id:
            return None
        if product_id not in self._cache:
            try:
                snap = self.store.get(PRODUCT_COLLECTION, product_id)
                self._cache[product_id] = snap.data if snap else None
            except Exception:
                if self.strict:
                    raise
                log.warning('Product %s lookup failed', product_id, exc_info=True)
                self._cache[product_id] = None
        return self._cache[product_id]


def hydrate_image_url(order: Dict[str, Any], raw: Dict[str, Any], products: ProductCache) -> Dict[str, Any]:
    if order.get('imageUrl'):
        return order
    items = raw.get('items') if isinstance(raw.get('items'), list) else []
    first = items[0] if items and isinstance(items[0], dict) else {}
    pid = first_of(first, 'productId', 'productID', 'product.id') or first_of(raw, 'productId', 'productID')
    product = products.get(str(pid)) if pid else None
    img = first_of(product or {}, 'imageURL', 'imageUrl')
    if img:
        return {**order, 'imageUrl': str(img)}
    return order


def hydrate_item_categories(order: Dict[str, Any], products: ProductCache) -> Dict[str, Any]:
    items = order.get('items') or []
    if not any(it.get('productId') and not (it.get('category') and str(it['category']).strip()) for it in items):
        return order
    return {**order, 'items': [apply_product_details(it, products.get(it.get('productId'))) for it in items]}


def _hydrate(store: DocumentStore, snaps) -> List[Dict[str, Any]]:
    products = ProductCache(store)
    out = []
    for s in snaps:
        order = normalize_order(s.id, s.data)
        order = hydrate_image_url(order, s.data, products)
        order = hydrate_item_categories(order, products)
        out.append(order)
    out.sort(key=lambda o: o.get('createdAtMs') or 0, reverse=True)
    return out


def list_all(store: DocumentStore) -> List[Dict[str, Any]]:
    return _hydrate(store, store.query(COLLECTION))


def list_by_seller(store: DocumentStore, seller_id: str) -> List[Dict[str, Any]]:
    return _hydrate(store, store.query(COLLECTION, [('sellerIds', 'array-contains', seller_id)]))


def get(store: DocumentStore, order_id: str) -> Optional[Dict[str, Any]]:
    snap = store.get(COLLECTION, order_id)
    if snap is None:
        return None
    return _hydrate(store, [snap])[0]


def listen_all(store: DocumentStore, callback: Callable[[List[Dict[str, Any]]], None]):
    return store.listen_query(COLLECTION, lambda snaps: callback(_hydrate(store, snaps)))


def listen_by_seller(store: DocumentStore, seller_id: str, callback: Callable[[List[Dict[str, Any]]], None]):
    return store.listen_query(
        COLLECTION,
        lambda snaps: callback(_hydrate(store, snaps)),
        [('sellerIds', 'array-contains', seller_id)],
    )


def status_counts(orders: List[Dict[str, Any]]) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for o in orders:
        counts[o['status']] = counts.get(o['status'], 0) + 1
    return counts


# --- seller confirmation ---

STATUS_CONFIRMED = 'confirmed'
STATUS_REJECTED = 'rejected'
DEFAULT_REJECTION_REASON = 'No reason provided'
# Canonical statuses a seller may still accept or turn down
DECIDABLE = ('pending', 'to-ship')


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _decide(store: DocumentStore, order_id: str, seller_id: Optional[str], fields: Dict[str, Any]) -> Dict[str, Any]:
    def _apply(tx):
        snap = tx.get(COLLECTION, order_id)
        order = normalize_order(snap.id, snap.data) if snap is not None else None
        if order is None or (seller_id and seller_id not in order['sellerIds']):
            abort(404, description='Order not found')
        raw_status = str(snap.data.get('status') or '').lower()
        if raw_status in (STATUS_CONFIRMED, STATUS_REJECTED):
            abort(409, description=f'Order already {raw_status}')
        if order['status'] not in DECIDABLE:
            abort(409, description=f"Order already {order['status']}")
        patch = {**fields, 'updatedAt': _now()}
        tx.update(COLLECTION, order_id, patch)
        return snap.id

    store.run_transaction(_apply)
    log.info('Order %s -> %s', order_id, fields['status'])
    return get(store, order_id)


def confirm(store: DocumentStore, order_id: str, seller_id: Optional[str] = None) -> Dict[str, Any]:
    """Accept an order; ``seller_id`` limits the action to that seller's orders (None for admins)."""
    return _decide(store, order_id, seller_id, {'status': STATUS_CONFIRMED, 'confirmedAt': _now()})


def reject(store: DocumentStore, order_id: str, reason: Any = None, seller_id: Optional[str] = None) -> Dict[str, Any]:
    reason = reason.strip() if isinstance(reason, str) else ''
    return _decide(store, order_id, seller_id, {
        'status': STATUS_REJECTED,
        'rejectedAt': _now(),
        'rejectionReason': reason or DEFAULT_REJECTION_REASON,
    })
