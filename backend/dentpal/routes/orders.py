from __future__ import annotations
from flask import Blueprint, request, abort
from dentpal import get_store
from dentpal.decorators.auth import require_any_permission, require_permissions
from dentpal.decorators.audit import audit_log
from dentpal.services import orders as orders_svc
from dentpal.services.policy import acting_seller_id, is_admin
from dentpal.utils.filters import apply_filters
from dentpal.utils.listing import list_response
from dentpal.utils.order_status import CANONICAL_STATUSES
from dentpal.utils.sorting import apply_multi_sort

orders_bp = Blueprint('orders', __name__)

ORDER_READ = ('seller-orders', 'dashboard')


def _scoped_orders():
    store = get_store()
    if is_admin():
        return orders_svc.list_all(store)
    seller_id = acting_seller_id()
    if not seller_id:
        abort(403, description='No seller scope')
    return orders_svc.list_by_seller(store, seller_id)


def _filtered_orders():
    rows = _scoped_orders()
    filter_specs = {
        'status': {'match': lambda r, v: r['status'] == v, 'validate': lambda v: v in CANONICAL_STATUSES},
        'seller': {'match': lambda r, v: v in r['sellerIds']},
        'q': {'match': lambda r, v: v.lower() in f"{r['id']} {r['barcode']} {r['customer']['name']}".lower()},
        # timestamp is a YYYY-MM-DD string; lexical comparison is date order
        'from': {'match': lambda r, v: (r['timestamp'] or '') >= v},
        'to': {'match': lambda r, v: (r['timestamp'] or '') <= v},
    }
    return apply_filters(rows, filter_specs, request.args)


@orders_bp.get('')
@require_any_permission(*ORDER_READ)
def list_orders():
    rows = _filtered_orders()
    allowed = {
        'createdAt': 'createdAtMs',
        'total': 'total',
        'status': 'status',
        'customer': lambda r: r['customer']['name'].lower(),
    }
    rows = apply_multi_sort(rows, request.args.get('sort'), allowed, 'id', default='-createdAt')
    return list_response(rows)


@orders_bp.get('/summary')
@require_any_permission(*ORDER_READ)
def order_summary():
    rows = _filtered_orders()
    counts = {s: 0 for s in CANONICAL_STATUSES}
    counts.update(orders_svc.status_counts(rows))
    return {'total': len(rows), 'byStatus': counts}


@orders_bp.get('/<order_id>')
@require_any_permission(*ORDER_READ)
def get_order(order_id: str):
    order = orders_svc.get(get_store(), order_id)
    if order is None:
        abort(404, description='Order not found')
    if not is_admin() and acting_seller_id() not in order['sellerIds']:
        # Other sellers' orders are reported as missing
        abort(404, description='Order not found')
    return order


def _decision_scope():
    """Seller whose orders the caller may decide on; None for admins."""
    if is_admin():
        return None
    seller_id = acting_seller_id()
    if not seller_id:
        abort(403, description='No seller scope')
    return seller_id


@orders_bp.post('/<order_id>/confirm')
@require_permissions('confirmation')
@audit_log('ORDER.CONFIRM', entity='Order', entity_id_arg='order_id', meta_keys=['confirmedAt'])
def confirm_order(order_id: str):
    return orders_svc.confirm(get_store(), order_id, _decision_scope())


@orders_bp.post('/<order_id>/reject')
@require_permissions('confirmation')
@audit_log('ORDER.REJECT', entity='Order', entity_id_arg='order_id', meta_keys=['rejectionReason'])
def reject_order(order_id: str):
    data = request.json or {}
    return orders_svc.reject(get_store(), order_id, data.get('reason'), _decision_scope())
