from __future__ import annotations
"""Dashboard accounts (``web_users``)."""
import logging
import time
from typing import Any, Dict, Iterable, List, Optional, Tuple

from flask import abort
from werkzeug.security import check_password_hash, generate_password_hash

from dentpal.constants.permissions import CAPABILITIES, ROLES
from dentpal.schema.profiles import normalize_profile
from dentpal.store.base import DocumentStore
from dentpal.utils.tokens import random_alnum
from dentpal.utils.validation import validate_permission_map, validate_status

log = logging.getLogger(__name__)

COLLECTION = 'web_users'
PROFILE_FIELDS = ('name', 'phone', 'photoUrl', 'displayName')
TEMP_PASSWORD_LENGTH = 12


def _public(snap) -> Dict[str, Any]:
    return normalize_profile(snap.id, snap.data)


def list_users(store: DocumentStore, roles: Optional[Iterable[str]] = None) -> List[Dict[str, Any]]:
    roles = set(roles or ())
    rows = [_public(s) for s in store.query(COLLECTION)]
    if roles:
        rows = [r for r in rows if r['role'] in roles]
    return sorted(rows, key=lambda r: r.get('createdAt') or 0, reverse=True)


def get_user(store: DocumentStore, uid: str) -> Optional[Dict[str, Any]]:
    snap = store.get(COLLECTION, uid)
    return _public(snap) if snap else None


def get_user_or_404(store: DocumentStore, uid: str) -> Dict[str, Any]:
    user = get_user(store, uid)
    if user is None:
        abort(404, description='User not found')
    return user


def find_by_email(store: DocumentStore, email: str):
    """Raw snapshot for ``email`` (case-insensitive), or None."""
    email = (email or '').strip()
    if not email:
        return None
    rows = store.query(COLLECTION, [('email', '==', email)])
    if not rows:
        lowered = email.lower()
        rows = [s for s in store.query(COLLECTION) if str(s.data.get('email') or '').lower() == lowered]
    return rows[0] if rows else None


def verify_credentials(store: DocumentStore, email: str, password: str):
    snap = find_by_email(store, email)
    if snap is None or not password:
        return None
    stored = snap.data.get('password_hash')
    if not stored or not check_password_hash(stored, password):
        return None
    return snap


def create_user(store: DocumentStore, email: str, name: str, role: str,
                permissions: Optional[Dict[str, Any]] = None, password: Optional[str] = None,
                uid: Optional[str] = None, **extra: Any) -> Tuple[Dict[str, Any], Optional[str]]:
    """Create an account; returns (profile, temporary_password or None when a password was given)."""
    email = (email or '').strip()
    if not email or '@' not in email:
        abort(400, description='valid email required')
    validate_status(role, ROLES, 'role')
    if find_by_email(store, email) is not None:
        abort(409, description='Email already registered')
    temp_password = None
    if not password:
        temp_password = random_alnum(TEMP_PASSWORD_LENGTH)
        password = temp_password
    data = {
        'email': email,
        'name': (name or '').strip(),
        'role': role,
        'permissions': validate_permission_map(permissions, CAPABILITIES),
        'isActive': True,
        'createdAt': int(time.time() * 1000),
        'password_hash': generate_password_hash(password),
        **{k: v for k, v in extra.items() if v is not None},
    }
    if uid:
        if store.get(COLLECTION, uid) is not None:
            abort(409, description='User id already exists')
        store.set(COLLECTION, uid, data)
    else:
        uid = store.add(COLLECTION, data)
    log.info('Created %s account %s', role, uid)
    return get_user(store, uid), temp_password


def update_access(store: DocumentStore, uid: str, role: str, permissions: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    validate_status(role, ROLES, 'role')
    get_user_or_404(store, uid)
    # Whole-map replace: capabilities left out fall back to role defaults
    store.update(COLLECTION, uid, {
        'role': role,
        'permissions': validate_permission_map(permissions, CAPABILITIES),
    })
    return get_user(store, uid)


def set_status(store: DocumentStore, uid: str, is_active: bool) -> Dict[str, Any]:
    get_user_or_404(store, uid)
    store.update(COLLECTION, uid, {'isActive': bool(is_active)})
    return get_user(store, uid)


def update_profile(store: DocumentStore, uid: str, data: Dict[str, Any]) -> Dict[str, Any]:
    patch = {k: v for k, v in (data or {}).items() if k in PROFILE_FIELDS}
    if not patch:
        abort(400, description='No updatable fields supplied')
    get_user_or_404(store, uid)
    store.update(COLLECTION, uid, patch)
    return get_user(store, uid)


def set_password(store: DocumentStore, uid: str, password: str) -> None:
    if not password or len(password) < 8:
        abort(400, description='password must be at least 8 characters')
    get_user_or_404(store, uid)
    store.update(COLLECTION, uid, {'password_hash': generate_password_hash(password)})


def touch_last_login(store: DocumentStore, uid: str) -> None:
    store.update(COLLECTION, uid, {'lastLogin': int(time.time() * 1000)})
