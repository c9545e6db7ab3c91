from __future__ import annotations
from flask import Blueprint, request, abort, g, make_response
from dentpal import get_store
from dentpal.decorators.auth import require_permissions
from dentpal.decorators.audit import audit_log
from dentpal.services import policies as policies_svc
from dentpal.utils.filters import apply_filters
from dentpal.utils.listing import list_response
from dentpal.utils.sorting import apply_multi_sort
from dentpal.utils.validation import require_fields, validate_status

policies_bp = Blueprint('policies', __name__)


def _summary(row):
    return {k: v for k, v in row.items() if k != 'content'}


@policies_bp.get('')
@require_permissions('access')
def list_policies():
    store = get_store()
    policy_type = request.args.get('type')
    if policy_type:
        rows = policies_svc.list_by_type(store, policy_type)
    else:
        rows = policies_svc.list_all(store)
    filter_specs = {
        'status': {'match': lambda r, v: r.get('status') == v, 'validate': lambda v: v in policies_svc.POLICY_STATUSES},
    }
    rows = apply_filters([_summary(r) for r in rows], filter_specs, request.args)
    allowed = {'uploadedAt': 'uploadedAt', 'version': lambda r: float(r.get('version') or 0), 'type': 'type'}
    rows = apply_multi_sort(rows, request.args.get('sort'), allowed, 'id', default='-uploadedAt')
    return list_response(rows, 'uploadedAt')


@policies_bp.get('/active/<policy_type>')
def get_active(policy_type: str):
    validate_status(policy_type, policies_svc.POLICY_TYPES, 'type')
    row = policies_svc.get_active(get_store(), policy_type)
    if row is None:
        abort(404, description='No published policy')
    return row


@policies_bp.get('/<policy_id>')
@require_permissions('access')
def get_policy(policy_id: str):
    return policies_svc.get_or_404(get_store(), policy_id)


@policies_bp.get('/<policy_id>/content')
@require_permissions('access')
def get_content(policy_id: str):
    resp = make_response(policies_svc.get_content(get_store(), policy_id))
    resp.headers['Content-Type'] = 'text/plain; charset=utf-8'
    return resp


@policies_bp.post('')
@require_permissions('access')
@audit_log('POLICY.UPLOAD', entity='Policy', entity_id_key='id', meta_keys=['type', 'version', 'fileName'])
def upload_policy():
    data = request.json or {}
    require_fields(data, 'type', 'content')
    row = policies_svc.upload(
        get_store(),
        data['type'],
        data['content'],
        data.get('fileName') or f"{data['type']}.txt",
        uploaded_by=g.profile['uid'],
        uploaded_by_name=g.profile.get('name') or g.profile.get('email') or 'System Admin',
    )
    return _summary(row), 201


@policies_bp.post('/<policy_id>/publish')
@require_permissions('access')
@audit_log('POLICY.PUBLISH', entity='Policy', entity_id_arg='policy_id', meta_keys=['type', 'version'])
def publish_policy(policy_id: str):
    return _summary(policies_svc.publish(get_store(), policy_id))


@policies_bp.put('/<policy_id>/status')
@require_permissions('access')
@audit_log('POLICY.STATUS.SET', entity='Policy', entity_id_arg='policy_id', diff_keys=['status'],
           pre_fetch=lambda a, kw: policies_svc.get(get_store(), kw['policy_id']) or {})
def set_policy_status(policy_id: str):
    data = request.json or {}
    require_fields(data, 'status')
    return _summary(policies_svc.update_status(get_store(), policy_id, data['status']))


@policies_bp.delete('/<policy_id>')
@require_permissions('access')
@audit_log('POLICY.DELETE', entity='Policy', entity_id_arg='policy_id')
def delete_policy(policy_id: str):
    policies_svc.delete(get_store(), policy_id)
    return {'id': policy_id, 'deleted': True}
