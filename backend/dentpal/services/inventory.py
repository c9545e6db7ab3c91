from __future__ import annotations
"""Seller stock items (``inventory_items``) and their adjustment history (``inventory_adjustments``).

Stock on hand moves through ``adjust_stock``, which writes the item and its
history entry in one transaction. Variant items recompute stock from their
variants on edit. Toggling an item flips ``isActive`` on the linked Product.
"""
import logging
import math
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from flask import abort

from dentpal.store.base import DocumentStore
from dentpal.utils.tokens import random_alnum

log = logging.getLogger(__name__)

ITEMS_COLLECTION = 'inventory_items'
ADJUSTMENTS_COLLECTION = 'inventory_adjustments'
PRODUCT_COLLECTION = 'Product'

ITEM_STATUSES = ('active', 'inactive', 'draft', 'pending_qc', 'violation', 'deleted')
INITIAL_STOCK_REASON = 'Initial Stock'

TEXT_FIELDS = ('name', 'description', 'imageUrl', 'category', 'subcategory', 'sku', 'unit', 'productId')
NUMBER_FIELDS = ('price', 'specialPrice', 'weight')
FLAG_FIELDS = ('available', 'preOrder')
PASSTHROUGH_FIELDS = ('dimensions', 'promoStart', 'promoEnd')


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _number(value: Any, field: str, default: Optional[float] = None) -> Optional[float]:
    if value is None or value == '':
        return default
    if isinstance(value, bool):
        abort(400, description=f'{field} must be a number')
    try:
        number = float(value)
    except (TypeError, ValueError):
        abort(400, description=f'{field} must be a number')
    if not math.isfinite(number):
        abort(400, description=f'{field} must be a number')
    return number


def _whole(value: Any, field: str, default: int = 0) -> int:
    number = _number(value, field)
    if number is None:
        return default
    if number != int(number):
        abort(400, description=f'{field} must be a whole number')
    return int(number)


def _variants(raw: Any) -> List[Dict[str, Any]]:
    if not isinstance(raw, list):
        abort(400, description='variants must be a list')
    out = []
    for v in raw:
        if not isinstance(v, dict):
            abort(400, description='variants must be objects')
        out.append({
            'key': v.get('key'),
            'options': v.get('options') or {},
            'price': _number(v.get('price'), 'variants.price', 0.0),
            'stock': _whole(v.get('stock'), 'variants.stock'),
            'sku': v.get('sku') or None,
            'specialPrice': _number(v.get('specialPrice'), 'variants.specialPrice'),
            'available': v.get('available') is not False,
            'imageUrl': v.get('imageUrl') or None,
        })
    return out


def _catalog_fields(data: Dict[str, Any]) -> Dict[str, Any]:
    """Project the editable catalog fields present in ``data``."""
    out: Dict[str, Any] = {}
    for k in TEXT_FIELDS:
        if k in data:
            out[k] = data[k]
    for k in NUMBER_FIELDS:
        if k in data:
            out[k] = _number(data[k], k)
    for k in FLAG_FIELDS:
        if k in data:
            out[k] = bool(data[k])
    for k in PASSTHROUGH_FIELDS:
        if k in data:
            out[k] = data[k]
    if 'variations' in data:
        out['variations'] = list(data['variations'] or [])
    if 'suggestedThreshold' in data:
        out['suggestedThreshold'] = _whole(data['suggestedThreshold'], 'suggestedThreshold')
    if 'status' in data:
        if data['status'] not in ITEM_STATUSES:
            abort(400, description='status invalid')
        out['status'] = data['status']
    return out


def stock_state(item: Dict[str, Any]) -> str:
    """``stockout`` at zero, ``low_stock`` at or under the threshold, else ``in_stock``."""
    stock = item.get('inStock') or 0
    if stock <= 0:
        return 'stockout'
    if stock <= (item.get('suggestedThreshold') or 0):
        return 'low_stock'
    return 'in_stock'


def _row(snap) -> Dict[str, Any]:
    row = snap.to_dict()
    row['stockState'] = stock_state(row)
    return row


def list_by_seller(store: DocumentStore, seller_id: str) -> List[Dict[str, Any]]:
    rows = [_row(s) for s in store.query(ITEMS_COLLECTION, [('sellerId', '==', seller_id)])]
    return sorted(rows, key=lambda r: (r.get('name') or '').lower())


def listen_by_seller(store: DocumentStore, seller_id: str, callback: Callable[[List[Dict[str, Any]]], None]):
    return store.listen_query(
        ITEMS_COLLECTION,
        lambda snaps: callback(sorted((_row(s) for s in snaps), key=lambda r: (r.get('name') or '').lower())),
        [('sellerId', '==', seller_id)],
    )


def get(store: DocumentStore, item_id: str) -> Optional[Dict[str, Any]]:
    snap = store.get(ITEMS_COLLECTION, item_id)
    return _row(snap) if snap else None


def get_or_404(store: DocumentStore, item_id: str, seller_id: Optional[str] = None) -> Dict[str, Any]:
    """``seller_id`` set means items of other sellers are reported as missing."""
    row = get(store, item_id)
    if row is None or (seller_id and row.get('sellerId') != seller_id):
        abort(404, description='Inventory item not found')
    return row


def create_item(store: DocumentStore, seller_id: str, data: Dict[str, Any], actor: Optional[str] = None) -> Dict[str, Any]:
    name = str(data.get('name') or '').strip()
    if not name:
        abort(400, description='name required')
    now = _now()
    payload = {
        'sellerId': seller_id,
        'name': name,
        'suggestedThreshold': 0,
        'inStock': _whole(data.get('inStock'), 'inStock'),
        'unit': None,
        'description': '',
        'imageUrl': None,
        'category': None,
        'subcategory': None,
        'variations': [],
        'price': None,
        'specialPrice': None,
        'status': 'active',
        'sku': None,
        'weight': None,
        'dimensions': None,
        'available': True,
        'preOrder': False,
        'promoStart': None,
        'promoEnd': None,
        'productId': None,
        **_catalog_fields({k: v for k, v in data.items() if k != 'name'}),
        'createdAt': now,
        'updatedAt': now,
        'createdBy': actor,
    }
    if payload['inStock'] < 0:
        abort(400, description='inStock cannot be negative')
    if data.get('hasVariants'):
        payload['hasVariants'] = True
        payload['variants'] = _variants(data.get('variants') or [])
        payload['inStock'] = sum(v['stock'] for v in payload['variants'])
    item_id = store.add(ITEMS_COLLECTION, payload)
    if payload['inStock'] > 0:
        store.add(ADJUSTMENTS_COLLECTION, {
            'itemId': item_id,
            'sellerId': seller_id,
            'itemName': name,
            'delta': payload['inStock'],
            'reason': INITIAL_STOCK_REASON,
            'stockBefore': 0,
            'stockAfter': payload['inStock'],
            'userId': actor,
            'at': now,
        })
    log.info('Inventory item %s created for seller %s', item_id, seller_id)
    return {'id': item_id, **payload, 'stockState': stock_state(payload)}


def update_item(store: DocumentStore, item_id: str, data: Dict[str, Any], actor: Optional[str] = None,
                seller_id: Optional[str] = None) -> Dict[str, Any]:
    get_or_404(store, item_id, seller_id)
    patch = _catalog_fields(data)
    if 'name' in patch and not str(patch['name'] or '').strip():
        abort(400, description='name required')
    if 'hasVariants' in data:
        patch['hasVariants'] = bool(data['hasVariants'])
    if data.get('variants') is not None:
        patch['variants'] = _variants(data['variants'])
        patch['inStock'] = sum(v['stock'] for v in patch['variants'])
    patch['updatedAt'] = _now()
    patch['updatedBy'] = actor
    store.update(ITEMS_COLLECTION, item_id, patch)
    return get(store, item_id)


def adjust_stock(store: DocumentStore, item_id: str, delta: Any, reason: Any, actor: Optional[str] = None,
                 seller_id: Optional[str] = None) -> Dict[str, Any]:
    """Move stock by ``delta`` and append the history entry; stock never goes below zero."""
    delta = _whole(delta, 'delta')
    if not delta:
        abort(400, description='delta must be a non-zero whole number')
    reason = reason.strip() if isinstance(reason, str) else ''
    if not reason:
        abort(400, description='reason required')
    adjustment_id = random_alnum(20)

    def _apply(tx):
        snap = tx.get(ITEMS_COLLECTION, item_id)
        if snap is None or (seller_id and snap.data.get('sellerId') != seller_id):
            abort(404, description='Inventory item not found')
        before = int(snap.data.get('inStock') or 0)
        after = before + delta
        if after < 0:
            abort(409, description=f'Insufficient stock ({before} on hand)')
        now = _now()
        tx.update(ITEMS_COLLECTION, item_id, {
            'inStock': after,
            'updatedAt': now,
            'updatedBy': actor,
            'lastAdjustmentReason': reason,
            'lastAdjustmentDelta': delta,
        })
        entry = {
            'itemId': item_id,
            'sellerId': snap.data.get('sellerId'),
            'itemName': snap.data.get('name'),
            'delta': delta,
            'reason': reason,
            'stockBefore': before,
            'stockAfter': after,
            'userId': actor,
            'at': now,
        }
        tx.set(ADJUSTMENTS_COLLECTION, adjustment_id, entry)
        return entry

    entry = store.run_transaction(_apply)
    log.info('Inventory item %s adjusted by %+d (%s)', item_id, delta, reason)
    return {'id': adjustment_id, **entry}


def _linked_product(store: DocumentStore, item_id: str, item: Dict[str, Any]) -> Optional[str]:
    """Product id of the item, looked up by seller and name (and remembered) when not linked yet."""
    if item.get('productId'):
        return item['productId']
    if not item.get('sellerId') or not item.get('name'):
        return None
    matches = store.query(PRODUCT_COLLECTION, [('sellerId', '==', item['sellerId']), ('name', '==', item['name'])])
    if not matches:
        return None
    store.update(ITEMS_COLLECTION, item_id, {'productId': matches[0].id})
    return matches[0].id


def toggle_active(store: DocumentStore, item_id: str, active: bool, actor: Optional[str] = None,
                  seller_id: Optional[str] = None) -> Dict[str, Any]:
    item = get_or_404(store, item_id, seller_id)
    now = _now()
    store.update(ITEMS_COLLECTION, item_id, {
        'status': 'active' if active else 'inactive',
        'updatedAt': now,
        'updatedBy': actor,
    })
    product_id = _linked_product(store, item_id, item)
    if product_id:
        if store.get(PRODUCT_COLLECTION, product_id) is None:
            log.warning('Inventory item %s links to missing product %s', item_id, product_id)
        else:
            store.update(PRODUCT_COLLECTION, product_id, {'isActive': bool(active), 'updatedAt': now})
    return get(store, item_id)


def adjustment_number(adjustment_id: str) -> str:
    return f"ADJ-{adjustment_id[-4:].upper()}"


def list_adjustments(store: DocumentStore, seller_id: str) -> List[Dict[str, Any]]:
    rows = []
    for s in store.query(ADJUSTMENTS_COLLECTION, [('sellerId', '==', seller_id)]):
        row = s.to_dict()
        row['adjustmentNo'] = adjustment_number(s.id)
        row['date'] = str(row.get('at') or '')[:10]
        rows.append(row)
    return sorted(rows, key=lambda r: r.get('at') or '', reverse=True)


__all__ = [
    'adjust_stock', 'create_item', 'get', 'get_or_404', 'list_adjustments', 'list_by_seller',
    'listen_by_seller', 'stock_state', 'toggle_active', 'update_item',
]
