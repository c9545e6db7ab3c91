from __future__ import annotations
"""Pre-aggregated per-order sales entries under ``Seller/{sellerId}/reports/{orderId}``."""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from flask import abort

from dentpal.schema.orders import to_millis, to_number
from dentpal.store.base import DocumentStore

log = logging.getLogger(__name__)

REFUNDED_STATUSES = ('refunded', 'return_refund')


def reports_collection(seller_id: str) -> str:
    return f"Seller/{seller_id}/reports"


def primary_seller(order: Dict[str, Any]) -> Optional[str]:
    ids = order.get('sellerIds') if isinstance(order.get('sellerIds'), list) else []
    seller = order.get('sellerId') or (ids[0] if ids else None)
    return str(seller) if seller else None


def _iso(value) -> Optional[str]:
    if isinstance(value, str) and value:
        return value
    ms = to_millis(value)
    if ms is None:
        return None
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc).isoformat()


def build_report_entry(order_id: str, order: Dict[str, Any]) -> Dict[str, Any]:
    """Report row for one raw order document."""
    items = order.get('items') if isinstance(order.get('items'), list) else []
    items_sold = int(sum(to_number(it.get('quantity')) or 0 for it in items if isinstance(it, dict)))
    summary = order.get('summary') if isinstance(order.get('summary'), dict) else {}
    gross = to_number(summary.get('subtotal')) or to_number(order.get('total')) or 0.0
    refunded = str(order.get('status') or '') in REFUNDED_STATUSES
    refunds = gross if refunded else 0.0
    return {
        'orderId': order_id,
        'grossSales': gross,
        'refunds': refunds,
        'netSales': gross - refunds,
        'itemsSold': items_sold,
        'itemsRefunded': items_sold if refunded else 0,
        'timestamp': _iso(order.get('timestamp')) or _iso(order.get('createdAt')) or datetime.now(timezone.utc).isoformat(),
    }


def save_order_report(store: DocumentStore, seller_id: str, entry: Dict[str, Any]) -> None:
    store.set(reports_collection(seller_id), entry['orderId'], {
        **entry,
        'createdAt': datetime.now(timezone.utc).isoformat(),
    }, merge=True)


def sync_order(store: DocumentStore, order_id: str, order: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Write the report row for an order; returns None (and writes nothing) when it has no seller."""
    seller_id = primary_seller(order)
    if not seller_id or not order_id:
        log.warning('Order %s has no seller id, report skipped', order_id)
        return None
    entry = build_report_entry(order_id, order)
    save_order_report(store, seller_id, entry)
    return {'sellerId': seller_id, **entry}


def list_seller_reports(store: DocumentStore, seller_id: str) -> List[Dict[str, Any]]:
    out = []
    for s in store.query(reports_collection(seller_id)):
        d = s.data
        out.append({
            'orderId': s.id,
            'grossSales': to_number(d.get('grossSales')) or 0.0,
            'refunds': to_number(d.get('refunds')) or 0.0,
            'netSales': to_number(d.get('netSales')) or 0.0,
            'itemsSold': int(to_number(d.get('itemsSold')) or 0),
            'itemsRefunded': int(to_number(d.get('itemsRefunded')) or 0),
            'timestamp': str(d.get('timestamp') or ''),
            'createdAt': d.get('createdAt'),
        })
    return out


def _parse_day(value: Optional[str], end_of_day: bool = False) -> Optional[int]:
    if not value:
        return None
    raw = f"{value}T23:59:59" if end_of_day and 'T' not in value else value
    ms = to_millis(raw)
    if ms is None:
        abort(400, description=f'Invalid date {value}')
    return ms


def calculate_metrics(reports: List[Dict[str, Any]], date_from: Optional[str] = None,
                      date_to: Optional[str] = None) -> Dict[str, Any]:
    """Totals over ``reports``; ``date_to`` is inclusive of the whole day."""
    start = _parse_day(date_from)
    end = _parse_day(date_to, end_of_day=True)
    totals = {
        'totalGrossSales': 0.0,
        'totalRefunds': 0.0,
        'totalNetSales': 0.0,
        'totalItemsSold': 0,
        'totalItemsRefunded': 0,
        'transactionCount': 0,
    }
    for r in reports:
        if start is not None or end is not None:
            ts = to_millis(r.get('timestamp'))
            if ts is None:
                continue
            if start is not None and ts < start:
                continue
            if end is not None and ts > end:
                continue
        totals['totalGrossSales'] += r['grossSales']
        totals['totalRefunds'] += r['refunds']
        totals['totalNetSales'] += r['netSales']
        totals['totalItemsSold'] += r['itemsSold']
        totals['totalItemsRefunded'] += r['itemsRefunded']
        totals['transactionCount'] += 1
    return totals
