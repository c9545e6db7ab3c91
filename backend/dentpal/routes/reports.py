from __future__ import annotations
from flask import Blueprint, request, abort
from dentpal import get_store
from dentpal.decorators.auth import require_admin, require_permissions
from dentpal.decorators.audit import audit_log
from dentpal.services import reports as reports_svc
from dentpal.services.orders import COLLECTION as ORDER_COLLECTION
from dentpal.services.policy import acting_seller_id, is_admin
from dentpal.utils.listing import list_response
from dentpal.utils.sorting import apply_multi_sort

rpt_bp = Blueprint('reports', __name__)


def _report_seller_id() -> str:
    """Admins pick a seller with ?seller=; everyone else reads their own."""
    if is_admin():
        seller_id = request.args.get('seller')
        if not seller_id:
            abort(400, description='seller required')
        return seller_id
    seller_id = acting_seller_id()
    if not seller_id:
        abort(403, description='No seller scope')
    return seller_id


@rpt_bp.get('/sales')
@require_permissions('reports')
def list_sales():
    rows = reports_svc.list_seller_reports(get_store(), _report_seller_id())
    allowed = {'timestamp': 'timestamp', 'netSales': 'netSales', 'grossSales': 'grossSales'}
    rows = apply_multi_sort(rows, request.args.get('sort'), allowed, 'orderId', default='-timestamp')
    return list_response(rows, 'timestamp')


@rpt_bp.get('/metrics')
@require_permissions('reports')
def metrics():
    rows = reports_svc.list_seller_reports(get_store(), _report_seller_id())
    return reports_svc.calculate_metrics(rows, request.args.get('from'), request.args.get('to'))


@rpt_bp.post('/sync/<order_id>')
@require_admin('reports')
@audit_log('REPORT.SYNC', entity='Order', entity_id_arg='order_id', meta_keys=['sellerId'])
def sync_order(order_id: str):
    store = get_store()
    snap = store.get(ORDER_COLLECTION, order_id)
    if snap is None:
        abort(404, description='Order not found')
    entry = reports_svc.sync_order(store, order_id, snap.data)
    if entry is None:
        abort(400, description='Order has no seller')
    return entry
