from __future__ import annotations
from flask import Blueprint, request, abort, g
from flask_jwt_extended import create_access_token
from dentpal import get_store
from dentpal.constants.permissions import CAPABILITIES, ROLE_DEFAULTS, SUB_ACCOUNT_DENIED
from dentpal.decorators.auth import load_current_account, require_permissions
from dentpal.schema.profiles import normalize_profile, public_profile
from dentpal.services import users as users_svc
from dentpal.services.access import effective_for_profile
from dentpal.services.audit import AUDIT_COLLECTION
from dentpal.services.policy import granted
from dentpal.utils.filters import apply_filters
from dentpal.utils.listing import list_response
from dentpal.utils.sorting import apply_multi_sort

iam_bp = Blueprint('iam', __name__)


@iam_bp.post('/auth/login')
def login():
    data = request.json or {}
    email = data.get('email'); password = data.get('password')
    if not email or not password:
        abort(400, description='email & password required')
    store = get_store()
    snap = users_svc.verify_credentials(store, email, password)
    if snap is None:
        abort(401, description='invalid credentials')
    profile = normalize_profile(snap.id, snap.data)
    if not profile['isActive']:
        abort(403, description='account disabled')
    users_svc.touch_last_login(store, snap.id)
    # Claims are informational; every request re-reads permissions from the store
    token = create_access_token(identity=snap.id, additional_claims={'role': profile['role']})
    return {
        'access_token': token,
        'permissions': effective_for_profile(store, profile),
    }


@iam_bp.get('/auth/me')
def me():
    resolved = load_current_account()
    return {
        **public_profile(resolved['profile']),
        'permissions': resolved['permissions'],
        'granted': granted(resolved['permissions']),
    }


@iam_bp.get('/permissions')
def list_permissions():
    load_current_account()
    return {
        'capabilities': list(CAPABILITIES),
        'roleDefaults': ROLE_DEFAULTS,
        'subAccountDenied': list(SUB_ACCOUNT_DENIED),
        'effective': g.permissions,
    }


@iam_bp.get('/audit/logs')
@require_permissions('access')
def list_audit_logs():
    rows = [s.to_dict() for s in get_store().query(AUDIT_COLLECTION)]
    filter_specs = {
        'actor': {'match': lambda r, v: r.get('actor') == v},
        'action': {'match': lambda r, v: str(r.get('action') or '').startswith(v)},
        'entity': {'match': lambda r, v: r.get('entity') == v},
        'entity_id': {'match': lambda r, v: r.get('entity_id') == v},
        'since': {'match': lambda r, v: (r.get('created_at') or '') >= v},
    }
    rows = apply_filters(rows, filter_specs, request.args)
    allowed = {'created_at': 'created_at', 'action': 'action', 'actor': 'actor'}
    rows = apply_multi_sort(rows, request.args.get('sort'), allowed, 'id', default='-created_at')
    return list_response(rows, 'created_at')
