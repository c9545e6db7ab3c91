from __future__ import annotations
from flask import Blueprint, request, abort
from dentpal import get_store, get_functions
from dentpal.constants.permissions import CAPABILITIES, ROLES
from dentpal.decorators.auth import require_permissions
from dentpal.decorators.audit import audit_log
from dentpal.services import users as users_svc
from dentpal.utils.filters import apply_filters
from dentpal.utils.listing import list_response
from dentpal.utils.sorting import apply_multi_sort
from dentpal.utils.validation import parse_bool, require_fields, validate_permission_map, validate_status

users_bp = Blueprint('users', __name__)


def _prefetch_user(uid: str):
    return users_svc.get_user(get_store(), uid) or {}


@users_bp.get('')
@require_permissions('users')
def list_users():
    roles = [r for r in (request.args.get('role') or '').split(',') if r]
    for r in roles:
        validate_status(r, ROLES, 'role')
    rows = users_svc.list_users(get_store(), roles)
    filter_specs = {
        'q': {'match': lambda r, v: v.lower() in f"{r['email']} {r['name']}".lower()},
        'is_active': {
            'coerce': lambda v: {'true': True, 'false': False}[str(v).lower()],
            'match': lambda r, v: r['isActive'] is v,
        },
        'sub_accounts': {
            'coerce': lambda v: {'true': True, 'false': False}[str(v).lower()],
            'match': lambda r, v: r['isSubAccount'] is v,
        },
    }
    rows = apply_filters(rows, filter_specs, request.args)
    allowed = {
        'createdAt': lambda r: r.get('createdAt') or 0,
        'lastLogin': lambda r: r.get('lastLogin') or 0,
        'email': 'email',
        'name': lambda r: r['name'].lower(),
        'role': 'role',
    }
    rows = apply_multi_sort(rows, request.args.get('sort'), allowed, 'uid', default='-createdAt')
    return list_response(rows)


@users_bp.get('/<uid>')
@require_permissions('users')
def get_user(uid: str):
    return users_svc.get_user_or_404(get_store(), uid)


@users_bp.post('')
@require_permissions('users')
@audit_log('USER.CREATE', entity='User', entity_id_key='uid', meta_keys=['email', 'role'])
def create_user():
    data = request.json or {}
    require_fields(data, 'email', 'role')
    user, temp_password = users_svc.create_user(
        get_store(),
        email=data['email'],
        name=data.get('name') or '',
        role=data['role'],
        permissions=data.get('permissions'),
        password=data.get('password'),
        isSubAccount=data.get('isSubAccount') is True or None,
        parentId=data.get('parentId'),
    )
    body = dict(user)
    if temp_password:
        body['temporaryPassword'] = temp_password
    return body, 201


@users_bp.put('/<uid>/access')
@require_permissions('users')
@audit_log('USER.ACCESS.SET', entity='User', entity_id_arg='uid', diff_keys=['role', 'permissions'],
           pre_fetch=lambda a, kw: _prefetch_user(kw['uid']))
def set_access(uid: str):
    data = request.json or {}
    require_fields(data, 'role')
    return users_svc.update_access(get_store(), uid, data['role'], data.get('permissions'))


@users_bp.put('/<uid>/status')
@require_permissions('users')
@audit_log('USER.STATUS.SET', entity='User', entity_id_arg='uid', diff_keys=['isActive'],
           pre_fetch=lambda a, kw: _prefetch_user(kw['uid']))
def set_status(uid: str):
    data = request.json or {}
    is_active = parse_bool(data.get('isActive'), 'isActive')
    return users_svc.set_status(get_store(), uid, is_active)


@users_bp.patch('/<uid>/profile')
@require_permissions('users')
@audit_log('USER.PROFILE.UPDATE', entity='User', entity_id_arg='uid', diff_keys=['name'],
           pre_fetch=lambda a, kw: _prefetch_user(kw['uid']))
def update_profile(uid: str):
    return users_svc.update_profile(get_store(), uid, request.json or {})


@users_bp.put('/<uid>/password')
@require_permissions('users')
@audit_log('USER.PASSWORD.SET', entity='User', entity_id_arg='uid')
def set_password(uid: str):
    data = request.json or {}
    users_svc.set_password(get_store(), uid, data.get('password'))
    return {'uid': uid, 'updated': True}


# --- partner provisioning (auth accounts live behind the functions backend) ---

@users_bp.post('/partners')
@require_permissions('users')
@audit_log('PARTNER.CREATE', entity='User', entity_id_key='uid', meta_keys=['email', 'role'])
def create_partner():
    data = request.json or {}
    require_fields(data, 'email', 'name', 'role')
    validate_status(data['role'], ROLES, 'role')
    perms = validate_permission_map(data.get('permissions'), CAPABILITIES)
    result = get_functions().create_partner_user(data['email'], data['name'], data['role'], perms) or {}
    return {'uid': result.get('uid'), 'email': data['email'], 'role': data['role'], 'result': result}, 201


@users_bp.post('/<uid>/claims')
@require_permissions('users')
@audit_log('PARTNER.CLAIMS.SYNC', entity='User', entity_id_arg='uid')
def sync_claims(uid: str):
    user = users_svc.get_user_or_404(get_store(), uid)
    if not user['role']:
        abort(400, description='user has no role')
    result = get_functions().update_partner_claims(uid, user['role'], user['permissions'])
    return {'uid': uid, 'result': result}


@users_bp.put('/<uid>/disabled')
@require_permissions('users')
@audit_log('PARTNER.DISABLED.SET', entity='User', entity_id_arg='uid', meta_keys=['disabled'])
def set_disabled(uid: str):
    data = request.json or {}
    disabled = parse_bool(data.get('disabled'), 'disabled')
    store = get_store()
    users_svc.get_user_or_404(store, uid)
    result = get_functions().set_user_disabled(uid, disabled)
    # Keep the dashboard flag in step with the auth account
    users_svc.set_status(store, uid, not disabled)
    return {'uid': uid, 'disabled': disabled, 'result': result}


@users_bp.post('/resend-invite')
@require_permissions('users')
@audit_log('PARTNER.INVITE.RESEND', entity='User', meta_keys=['email'])
def resend_invite():
    data = request.json or {}
    require_fields(data, 'email')
    result = get_functions().resend_invite(data['email'])
    return {'email': data['email'], 'result': result}
