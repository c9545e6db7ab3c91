from __future__ import annotations
"""Profile adapter for ``web_users`` and ``Seller`` documents."""
from typing import Any, Dict, Optional

from dentpal.constants.permissions import ROLES


def _as_millis(value) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    # Firestore timestamps / datetimes
    ts = getattr(value, 'timestamp', None)
    if callable(ts):
        return int(ts() * 1000)
    return None


def normalize_profile(uid: str, raw: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    raw = raw or {}
    role = raw.get('role')
    perms = raw.get('permissions')
    return {
        'uid': uid,
        'email': raw.get('email') or '',
        'name': raw.get('name') or raw.get('displayName') or raw.get('username') or '',
        'role': role if role in ROLES else None,
        'isActive': raw.get('isActive') is not False,
        'permissions': dict(perms) if isinstance(perms, dict) else {},
        'isSubAccount': raw.get('isSubAccount') is True,
        'parentId': raw.get('parentId') or None,
        'createdAt': _as_millis(raw.get('createdAt')),
        'lastLogin': _as_millis(raw.get('lastLogin')),
    }


def public_profile(profile: Dict[str, Any]) -> Dict[str, Any]:
    """Strip credential fields before a profile leaves the service layer."""
    return {k: v for k, v in profile.items() if k != 'password_hash'}
