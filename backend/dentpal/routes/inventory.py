from __future__ import annotations
from flask import Blueprint, request, abort, g
from dentpal import get_store
from dentpal.decorators.auth import require_permissions
from dentpal.decorators.audit import audit_log
from dentpal.services import inventory as inventory_svc
from dentpal.services.policy import acting_seller_id, is_admin
from dentpal.utils.filters import apply_filters
from dentpal.utils.listing import list_response
from dentpal.utils.sorting import apply_multi_sort

inventory_bp = Blueprint('inventory', __name__)

STOCK_STATES = ('in_stock', 'low_stock', 'stockout')


def _list_seller_id() -> str:
    """Admins pick a seller with ?seller=; everyone else lists their own."""
    if is_admin():
        seller_id = request.args.get('seller')
        if not seller_id:
            abort(400, description='seller required')
        return seller_id
    seller_id = acting_seller_id()
    if not seller_id:
        abort(403, description='No seller scope')
    return seller_id


def _item_scope():
    """Seller whose items the caller may touch; None for admins."""
    if is_admin():
        return None
    seller_id = acting_seller_id()
    if not seller_id:
        abort(403, description='No seller scope')
    return seller_id


def _actor() -> str:
    return g.profile['uid']


@inventory_bp.get('')
@require_permissions('inventory')
def list_items():
    rows = inventory_svc.list_by_seller(get_store(), _list_seller_id())
    filter_specs = {
        'status': {'match': lambda r, v: (r.get('status') or 'active') == v,
                   'validate': lambda v: v in inventory_svc.ITEM_STATUSES},
        'stock': {'match': lambda r, v: r['stockState'] == v, 'validate': lambda v: v in STOCK_STATES},
        'category': {'match': lambda r, v: r.get('category') == v},
        'q': {'match': lambda r, v: v.lower() in f"{r.get('name') or ''} {r.get('sku') or ''}".lower()},
    }
    rows = apply_filters(rows, filter_specs, request.args)
    allowed = {
        'name': lambda r: (r.get('name') or '').lower(),
        'inStock': 'inStock',
        'price': 'price',
        'updatedAt': 'updatedAt',
    }
    rows = apply_multi_sort(rows, request.args.get('sort'), allowed, 'id', default='name')
    return list_response(rows, 'updatedAt', 'createdAt')


@inventory_bp.get('/adjustments')
@require_permissions('inventory')
def list_adjustments():
    rows = inventory_svc.list_adjustments(get_store(), _list_seller_id())
    rows = apply_filters(rows, {
        'item': {'match': lambda r, v: r.get('itemId') == v},
        'reason': {'match': lambda r, v: (r.get('reason') or '') == v},
        'from': {'match': lambda r, v: r['date'] >= v},
        'to': {'match': lambda r, v: r['date'] <= v},
    }, request.args)
    return list_response(rows, 'at')


@inventory_bp.post('')
@require_permissions('inventory')
@audit_log('INVENTORY.CREATE', entity='InventoryItem', entity_id_key='id', meta_keys=['name', 'inStock'])
def create_item():
    data = request.json or {}
    if is_admin():
        seller_id = data.get('sellerId')
        if not seller_id:
            abort(400, description='sellerId required')
    else:
        seller_id = _item_scope()
    return inventory_svc.create_item(get_store(), seller_id, data, _actor()), 201


@inventory_bp.get('/<item_id>')
@require_permissions('inventory')
def get_item(item_id: str):
    return inventory_svc.get_or_404(get_store(), item_id, _item_scope())


@inventory_bp.patch('/<item_id>')
@require_permissions('inventory')
@audit_log('INVENTORY.UPDATE', entity='InventoryItem', entity_id_arg='item_id',
           diff_keys=['name', 'price', 'status', 'suggestedThreshold'],
           pre_fetch=lambda a, kw: inventory_svc.get(get_store(), kw['item_id']) or {})
def update_item(item_id: str):
    data = request.json or {}
    return inventory_svc.update_item(get_store(), item_id, data, _actor(), _item_scope())


@inventory_bp.post('/<item_id>/adjust')
@require_permissions('inventory')
@audit_log('INVENTORY.ADJUST', entity='InventoryItem', entity_id_key='itemId',
           meta_keys=['delta', 'reason', 'stockBefore', 'stockAfter'])
def adjust_stock(item_id: str):
    data = request.json or {}
    return inventory_svc.adjust_stock(
        get_store(), item_id, data.get('delta'), data.get('reason'), _actor(), _item_scope(),
    ), 201


@inventory_bp.post('/<item_id>/active')
@require_permissions('inventory')
@audit_log('INVENTORY.ACTIVE.SET', entity='InventoryItem', entity_id_arg='item_id', meta_keys=['status', 'productId'])
def set_active(item_id: str):
    data = request.json or {}
    if not isinstance(data.get('active'), bool):
        abort(400, description='active must be a boolean')
    return inventory_svc.toggle_active(get_store(), item_id, data['active'], _actor(), _item_scope())
