from functools import wraps
from flask import abort, g
from flask_jwt_extended import verify_jwt_in_request, get_jwt_identity
from dentpal import get_store
from dentpal.services.access import resolve_for_uid
from dentpal.services.policy import has_permissions, has_any_permission, is_admin


def load_current_account():
    """Re-derive the caller's profile and effective permissions from the store (never from the token)."""
    verify_jwt_in_request()
    resolved = resolve_for_uid(get_store(), get_jwt_identity())
    if resolved is None:
        abort(401, description='Account no longer exists')
    g.profile = resolved['profile']
    g.permissions = resolved['permissions']
    return resolved


def require_permissions(*codes: str):
    def outer(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            load_current_account()
            if not has_permissions(*codes):
                abort(403, description='Missing permission')
            return fn(*args, **kwargs)
        return wrapper
    return outer


def require_any_permission(*codes: str):
    def outer(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            load_current_account()
            if not has_any_permission(codes):
                abort(403, description='Missing permission')
            return fn(*args, **kwargs)
        return wrapper
    return outer


def require_admin(*codes: str):
    """Primary admin accounts holding ``codes``; sellers and sub-accounts get 403."""
    def outer(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            load_current_account()
            if not is_admin() or not has_permissions(*codes):
                abort(403, description='Admin access required')
            return fn(*args, **kwargs)
        return wrapper
    return outer
