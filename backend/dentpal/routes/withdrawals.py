from __future__ import annotations
from flask import Blueprint, request, abort, g
from dentpal import get_store, get_functions
from dentpal.decorators.auth import require_admin, require_permissions
from dentpal.decorators.audit import audit_log
from dentpal.services import sellers as sellers_svc
from dentpal.services import withdrawals as wd_svc
from dentpal.services.policy import acting_seller_id, is_admin
from dentpal.utils.filters import apply_filters
from dentpal.utils.listing import list_response
from dentpal.utils.sorting import apply_multi_sort
from dentpal.utils.validation import require_fields

wd_bp = Blueprint('withdrawals', __name__)

SORTABLE = {
    'createdAt': 'createdAt',
    'updatedAt': 'updatedAt',
    'amount': 'amount',
    'status': 'status',
}


def _list(rows):
    filter_specs = {
        'status': {'match': lambda r, v: r.get('status') == v, 'validate': lambda v: v in wd_svc.ALL_STATUSES},
        'seller': {'match': lambda r, v: r.get('sellerId') == v},
        'min_amount': {'coerce': float, 'match': lambda r, v: (r.get('amount') or 0) >= v},
    }
    rows = apply_filters(rows, filter_specs, request.args)
    rows = apply_multi_sort(rows, request.args.get('sort'), SORTABLE, 'id', default='-createdAt')
    return list_response(rows, 'updatedAt', 'createdAt')


def _admin_uid() -> str:
    return g.profile['uid']


@wd_bp.post('')
@require_permissions('withdrawal')
@audit_log('WITHDRAWAL.REQUEST', entity='Withdrawal', entity_id_key='id', meta_keys=['amount', 'sellerId'])
def create_withdrawal():
    seller_id = acting_seller_id()
    if not seller_id:
        abort(403, description='Only sellers can request withdrawals')
    data = request.json or {}
    require_fields(data, 'amount')
    store = get_store()
    seller = sellers_svc.get(store, seller_id) or {}
    row = wd_svc.create_request(
        store,
        seller_id,
        seller.get('shopName') or seller.get('name') or g.profile.get('name') or '',
        seller.get('email') or g.profile.get('email') or '',
        data['amount'],
        data.get('receiver'),
        data.get('description'),
    )
    return row, 201


@wd_bp.get('/mine')
@require_permissions('withdrawal')
def my_withdrawals():
    seller_id = acting_seller_id()
    if not seller_id:
        abort(403, description='No seller scope')
    return _list(wd_svc.list_for_seller(get_store(), seller_id))


@wd_bp.get('')
@require_admin('withdrawal')
def list_withdrawals():
    return _list(wd_svc.list_all(get_store()))


@wd_bp.get('/pending-count')
@require_admin('withdrawal')
def pending_count():
    return {'pending': wd_svc.pending_count(get_store())}


@wd_bp.get('/<wid>')
@require_permissions('withdrawal')
def get_withdrawal(wid: str):
    row = wd_svc.get_or_404(get_store(), wid)
    if not is_admin() and row.get('sellerId') != acting_seller_id():
        abort(404, description='Withdrawal request not found')
    return row


@wd_bp.post('/<wid>/approve')
@require_admin('withdrawal')
@audit_log('WITHDRAWAL.APPROVE', entity='Withdrawal', entity_id_arg='wid', meta_keys=['amount', 'sellerId'])
def approve(wid: str):
    return wd_svc.approve(get_store(), wid, _admin_uid())


@wd_bp.post('/<wid>/reject')
@require_admin('withdrawal')
@audit_log('WITHDRAWAL.REJECT', entity='Withdrawal', entity_id_arg='wid', meta_keys=['rejectionReason'])
def reject(wid: str):
    data = request.json or {}
    return wd_svc.reject(get_store(), wid, _admin_uid(), data.get('reason'))


@wd_bp.post('/<wid>/process')
@require_admin('withdrawal')
@audit_log('WITHDRAWAL.PROCESS', entity='Withdrawal', entity_id_arg='wid')
def process(wid: str):
    return wd_svc.process_via_provider(get_store(), get_functions(), wid)


@wd_bp.post('/<wid>/check')
@require_admin('withdrawal')
def check_status(wid: str):
    return wd_svc.check_provider_status(get_store(), get_functions(), wid)


@wd_bp.post('/<wid>/complete')
@require_admin('withdrawal')
@audit_log('WITHDRAWAL.COMPLETE', entity='Withdrawal', entity_id_arg='wid', meta_keys=['netAmount'])
def complete(wid: str):
    data = request.json or {}
    require_fields(data, 'netAmount')
    return wd_svc.mark_completed(get_store(), wid, data['netAmount'])


@wd_bp.post('/<wid>/fail')
@require_admin('withdrawal')
@audit_log('WITHDRAWAL.FAIL', entity='Withdrawal', entity_id_arg='wid', meta_keys=['providerError', 'providerErrorCode'])
def fail(wid: str):
    data = request.json or {}
    require_fields(data, 'error')
    return wd_svc.mark_failed(get_store(), wid, data['error'], data.get('code'))
