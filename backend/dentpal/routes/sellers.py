from __future__ import annotations
from flask import Blueprint, request, abort, g
from dentpal import get_store
from dentpal.decorators.auth import require_permissions
from dentpal.decorators.audit import audit_log
from dentpal.services import sellers as sellers_svc
from dentpal.services.policy import acting_seller_id, is_admin
from dentpal.utils.filters import apply_filters
from dentpal.utils.listing import list_response
from dentpal.utils.sorting import apply_multi_sort
from dentpal.utils.validation import require_fields, require_name, validate_status

sellers_bp = Blueprint('sellers', __name__)

MEMBER_STATUSES = ('pending', 'active', 'disabled')


def _assert_seller_scope(seller_id: str):
    if is_admin():
        return
    if acting_seller_id() != seller_id:
        abort(403, description='Not allowed for this seller')


def _assert_can_delegate(seller_id: str):
    _assert_seller_scope(seller_id)
    if g.profile.get('isSubAccount'):
        abort(403, description='Sub-accounts cannot manage sub-accounts')


@sellers_bp.get('')
@require_permissions('users')
def list_sellers():
    rows = sellers_svc.list_sellers(get_store())
    filter_specs = {
        'q': {'match': lambda r, v: v.lower() in f"{r.get('email') or ''} {r.get('name') or ''} {r.get('shopName') or ''}".lower()},
        'email': {'match': lambda r, v: str(r.get('email') or '').lower() == v.lower()},
    }
    rows = apply_filters(rows, filter_specs, request.args)
    allowed = {
        'name': lambda r: str(r.get('name') or '').lower(),
        'email': lambda r: str(r.get('email') or '').lower(),
        'createdAt': lambda r: r.get('createdAt') or 0,
    }
    rows = apply_multi_sort(rows, request.args.get('sort'), allowed, 'id', default='name')
    return list_response(rows)


@sellers_bp.get('/<seller_id>')
@require_permissions('dashboard')
def get_seller(seller_id: str):
    _assert_seller_scope(seller_id)
    return sellers_svc.get_or_404(get_store(), seller_id)


@sellers_bp.post('')
@require_permissions('users')
@audit_log('SELLER.CREATE', entity='Seller', entity_id_key='id', meta_keys=['email', 'name'])
def create_seller():
    data = request.json or {}
    require_fields(data, 'id', 'email')
    return sellers_svc.create(get_store(), str(data['id']), data), 201


@sellers_bp.patch('/<seller_id>')
@require_permissions('users')
@audit_log('SELLER.UPDATE', entity='Seller', entity_id_arg='seller_id', diff_keys=['name', 'email', 'permissions'],
           pre_fetch=lambda a, kw: sellers_svc.get(get_store(), kw['seller_id']) or {})
def update_seller(seller_id: str):
    store = get_store()
    sellers_svc.get_or_404(store, seller_id)
    return sellers_svc.update(store, seller_id, request.json or {})


@sellers_bp.delete('/<seller_id>')
@require_permissions('users')
@audit_log('SELLER.DELETE', entity='Seller', entity_id_arg='seller_id')
def delete_seller(seller_id: str):
    store = get_store()
    sellers_svc.get_or_404(store, seller_id)
    sellers_svc.remove(store, seller_id)
    return {'id': seller_id, 'deleted': True}


@sellers_bp.put('/<seller_id>/vendor')
@require_permissions('dashboard')
@audit_log('SELLER.VENDOR.SAVE', entity='Seller', entity_id_arg='seller_id')
def save_vendor(seller_id: str):
    _assert_seller_scope(seller_id)
    data = request.json or {}
    store = get_store()
    sellers_svc.get_or_404(store, seller_id)
    return sellers_svc.save_vendor_profile(store, seller_id, data.get('vendor', data))


# --- sub-accounts ---

@sellers_bp.get('/<seller_id>/sub-accounts')
@require_permissions('dashboard')
def list_sub_accounts(seller_id: str):
    _assert_can_delegate(seller_id)
    rows = sellers_svc.list_sub_accounts(get_store(), seller_id)
    filter_specs = {
        'status': {'match': lambda r, v: r.get('status') == v, 'validate': lambda v: v in MEMBER_STATUSES},
    }
    rows = apply_filters(rows, filter_specs, request.args)
    return list_response(rows)


@sellers_bp.post('/<seller_id>/sub-accounts')
@require_permissions('dashboard')
@audit_log('SUBACCOUNT.INVITE', entity='SubAccount', entity_id_key='id', meta_keys=['email', 'permissions'])
def invite_sub_account(seller_id: str):
    _assert_can_delegate(seller_id)
    data = request.json or {}
    require_fields(data, 'email')
    name = require_name(data.get('name'))
    invite = sellers_svc.create_sub_account_invite(
        get_store(), seller_id, name, data['email'].strip(), data.get('permissions'),
        created_by=g.profile['uid'],
    )
    return invite, 201


@sellers_bp.patch('/<seller_id>/sub-accounts/<member_id>')
@require_permissions('dashboard')
@audit_log('SUBACCOUNT.UPDATE', entity='SubAccount', entity_id_arg='member_id', diff_keys=['status', 'permissions'],
           pre_fetch=lambda a, kw: _prefetch_member(kw['seller_id'], kw['member_id']))
def update_sub_account(seller_id: str, member_id: str):
    _assert_can_delegate(seller_id)
    data = request.json or {}
    if 'status' in data:
        validate_status(data['status'], MEMBER_STATUSES)
    _prefetch_member(seller_id, member_id, required=True)
    return sellers_svc.update_sub_account(get_store(), seller_id, member_id, data)


@sellers_bp.delete('/<seller_id>/sub-accounts/<member_id>')
@require_permissions('dashboard')
@audit_log('SUBACCOUNT.DELETE', entity='SubAccount', entity_id_arg='member_id')
def delete_sub_account(seller_id: str, member_id: str):
    _assert_can_delegate(seller_id)
    _prefetch_member(seller_id, member_id, required=True)
    sellers_svc.delete_sub_account(get_store(), seller_id, member_id)
    return {'id': member_id, 'deleted': True}


def _prefetch_member(seller_id: str, member_id: str, required: bool = False):
    snap = get_store().get(sellers_svc.members_collection(seller_id), member_id)
    if snap is None:
        if required:
            abort(404, description='Sub-account not found')
        return {}
    return snap.to_dict()
