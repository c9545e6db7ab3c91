from __future__ import annotations
"""Order adapter.

Raw ``Order`` documents carry several generations of field names. Everything
here runs once at the storage boundary so the rest of the code only sees the
normalized shape produced by ``normalize_order``.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from dentpal.store.base import get_field
from dentpal.utils.order_status import classify_order_status

DEFAULT_CURRENCY = 'PHP'
MULTIPLE_SELLERS = 'Multiple Sellers'

# Known category ids (keep in sync with inventory)
CATEGORY_ID_TO_NAME = {
    'EsDNnmc72LZNMHk3SmeV': 'Disposables',
    'PtqCTLGduo6vay2umpMY': 'Dental Equipment',
    'iXMJ7vcFIcMjQBVfIHZp': 'Consumables',
    'z5BRrsDIy92XEK1PzdM4': 'Equipment',
}


def first_of(data: Dict[str, Any], *paths: str, default=None):
    """First truthy value among dotted ``paths``."""
    for p in paths:
        v = get_field(data, p)
        if v:
            return v
    return default


def first_present(data: Dict[str, Any], *paths: str):
    """First value that is not None (zero counts)."""
    for p in paths:
        v = get_field(data, p)
        if v is not None:
            return v
    return None


def to_number(value) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def to_millis(value) -> Optional[int]:
    """Epoch millis from numbers, datetimes, Firestore timestamps or ISO strings."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return int(value.timestamp() * 1000)
    if isinstance(value, str):
        try:
            return to_millis(datetime.fromisoformat(value.replace('Z', '+00:00')))
        except ValueError:
            return None
    to_ms = getattr(value, 'to_millis', None) or getattr(value, 'toMillis', None)
    if callable(to_ms):
        return int(to_ms())
    return None


def date_only(millis: Optional[int]) -> Optional[str]:
    if millis is None:
        return None
    return datetime.fromtimestamp(millis / 1000, tz=timezone.utc).date().isoformat()


def item_image(item: Dict[str, Any]) -> Optional[str]:
    return first_of(item, 'imageURL', 'imageUrl', 'thumbnail', 'photoUrl')


def item_product_id(item: Dict[str, Any]) -> Optional[str]:
    pid = first_of(item, 'productId', 'productID', 'product.id')
    return str(pid) if pid else None


def normalize_item(it: Dict[str, Any]) -> Dict[str, Any]:
    price = to_number(it.get('price'))
    cost = to_number(it.get('cost'))
    return {
        'name': str(first_of(it, 'productName', 'name', default='Item')),
        'quantity': int(to_number(it.get('quantity')) or 0),
        'price': price,
        'productId': item_product_id(it),
        'sku': first_of(it, 'sku', 'SKU'),
        'imageUrl': item_image(it),
        'category': first_of(it, 'category', 'Category', 'product.category'),
        'subcategory': first_of(it, 'subcategory', 'Subcategory', 'product.subcategory'),
        'categoryId': first_of(it, 'categoryID', 'categoryId', 'CategoryID', 'CategoryId'),
        'cost': cost,
    }


def items_brief(items: List[Dict[str, Any]]) -> str:
    if not items:
        return ''
    first = items[0] if isinstance(items[0], dict) else {}
    name = str(first_of(first, 'productName', 'name', default='Item'))
    qty = int(to_number(first.get('quantity')) or 0)
    more = len(items) - 1
    return f"{name} x {qty} + {more} more" if more > 0 else f"{name} x {qty}"


def _summary_amount(data: Dict[str, Any], key: str) -> Optional[float]:
    value = to_number(get_field(data, f'summary.{key}'))
    return value if value is not None else to_number(data.get(key))


def seller_ids(data: Dict[str, Any]) -> List[str]:
    ids = data.get('sellerIds')
    if isinstance(ids, list):
        return [str(s) for s in ids]
    if data.get('sellerId'):
        return [str(data['sellerId'])]
    return []


def normalize_order(order_id: str, raw: Optional[Dict[str, Any]], now_ms: Optional[int] = None) -> Dict[str, Any]:
    data = raw or {}
    items = data.get('items')
    raw_items = [it for it in items if isinstance(it, dict)] if isinstance(items, list) else []
    created_ms = to_millis(data.get('createdAt'))
    if created_ms is None:
        created_ms = now_ms if now_ms is not None else int(datetime.now(timezone.utc).timestamp() * 1000)

    total = to_number(first_present(data, 'summary.total', 'paymentInfo.amount'))
    total = total or None
    cogs = _summary_amount(data, 'cogs')
    sellers = seller_ids(data)
    seller_name = data.get('sellerName') or (
        MULTIPLE_SELLERS if len(sellers) > 1 else (raw_items[0].get('sellerName') if raw_items else '')
    )
    payment_type = first_of(
        data, 'paymentInfo.method', 'paymentInfo.type', 'paymentInfo.channel', 'paymentMethod',
        'payment_type', 'paymentType', 'paymentChannel', 'paymentGateway', 'gateway',
    )
    payment_txn = first_of(
        data, 'paymentInfo.transactionId', 'paymentInfo.txnId', 'paymentInfo.id',
        'checkoutSessionId', 'payment_reference',
    )

    return {
        'id': order_id,
        'orderCount': int(to_number(get_field(data, 'summary.totalItems')) or len(raw_items)),
        'barcode': str(first_of(
            data, 'shippingInfo.trackingNumber', 'trackingNumber', 'checkoutSessionId',
            'paymentInfo.checkoutSessionId', default=order_id,
        )),
        'timestamp': date_only(created_ms),
        'createdAtMs': created_ms,
        'customer': {
            'name': str(first_of(data, 'shippingInfo.fullName', 'customerName', default='Unknown Customer')),
            'contact': str(first_of(data, 'shippingInfo.phoneNumber', 'customerPhone', default='')),
        },
        'customerId': first_of(data, 'customerId', 'customerID', 'userId', 'userID'),
        'sellerIds': sellers,
        'sellerName': str(seller_name) if seller_name else None,
        'region': {
            'barangay': first_of(data, 'shippingInfo.barangay', 'shippingInfo.brgy'),
            'municipality': first_of(data, 'shippingInfo.municipality', 'shippingInfo.city', 'shippingInfo.town'),
            'province': first_of(data, 'shippingInfo.province'),
            'zip': first_of(data, 'shippingInfo.zip', 'shippingInfo.postalCode'),
        },
        'itemsBrief': items_brief(raw_items),
        'items': [normalize_item(it) for it in raw_items],
        'total': total,
        'currency': str(first_of(data, 'paymentInfo.currency', default=DEFAULT_CURRENCY)),
        'paymentType': str(payment_type) if payment_type else None,
        'paymentTxnId': str(payment_txn) if payment_txn else None,
        'paidAt': date_only(to_millis(get_field(data, 'paymentInfo.paidAt'))),
        'refundedAt': date_only(to_millis(get_field(data, 'paymentInfo.refundedAt'))),
        'tax': _summary_amount(data, 'tax'),
        'discount': _summary_amount(data, 'discount'),
        'shipping': _summary_amount(data, 'shipping'),
        'fees': _summary_amount(data, 'fees'),
        'cogs': cogs,
        'grossMargin': total - cogs if total is not None and cogs is not None else None,
        'imageUrl': item_image(raw_items[0]) if raw_items else None,
        'confirmedAt': data.get('confirmedAt'),
        'rejectedAt': data.get('rejectedAt'),
        'rejectionReason': data.get('rejectionReason'),
        'status': classify_order_status(
            get_field(data, 'shippingInfo.status'),
            get_field(data, 'paymentInfo.status'),
            data.get('status'),
        ),
    }


def apply_product_details(item: Dict[str, Any], product: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Fill category, subcategory, category id and cost of ``item`` from its Product document."""
    if item.get('category') and str(item['category']).strip() and item.get('categoryId'):
        return item
    if not product:
        return item
    label = str(first_of(product, 'category', 'Category', default='')).strip()
    cat_id = first_of(product, 'categoryID', 'categoryId', 'CategoryID', 'CategoryId')
    resolved = label or (CATEGORY_ID_TO_NAME.get(str(cat_id), '') if cat_id else '')
    sub = first_of(product, 'subcategory', 'Subcategory')
    cost = to_number(product.get('cost'))
    if not resolved and not sub and not cat_id and cost is None:
        return item
    out = dict(item)
    if resolved:
        out['category'] = resolved
    if sub:
        out['subcategory'] = str(sub)
    if cat_id:
        out['categoryId'] = str(cat_id)
    if cost is not None:
        out['cost'] = cost
    return out


__all__ = [
    'CATEGORY_ID_TO_NAME', 'apply_product_details', 'first_of', 'item_product_id', 'items_brief',
    'normalize_order', 'seller_ids', 'to_millis', 'to_number',
]
