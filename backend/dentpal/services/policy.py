from __future__ import annotations
"""Permission ceiling resolution.

``resolve_permissions`` is pure: callers (``services.access``) fetch the stored
maps and call it again whenever the account or its parent changes.

Primary account:  effective[C] = stored[C] if set, else role_default(role)[C]
Sub-account:      effective[C] = child[C] and parent[C], missing flags are False,
                  and SUB_ACCOUNT_DENIED capabilities are always False.
"""
from typing import Any, Dict, Iterable, Mapping, Optional, Set

from flask import g

from dentpal.constants.permissions import CAPABILITIES, ROLE_ADMIN, ROLE_SELLER, SUB_ACCOUNT_DENIED, role_default


def _stored_flag(stored: Optional[Mapping[str, Any]], capability: str) -> Optional[bool]:
    if not stored:
        return None
    value = stored.get(capability)
    return value if isinstance(value, bool) else None


def resolve_permissions(
    stored: Optional[Mapping[str, Any]],
    role: Optional[str] = None,
    *,
    is_sub_account: bool = False,
    parent_stored: Optional[Mapping[str, Any]] = None,
    is_active: bool = True,
) -> Dict[str, bool]:
    """Return the effective map over every capability.

    ``parent_stored`` of None for a sub-account means the parent record could
    not be read, which denies everything.
    """
    if not is_active:
        return {c: False for c in CAPABILITIES}
    if is_sub_account:
        effective = {}
        for c in CAPABILITIES:
            child = _stored_flag(stored, c) is True
            parent = _stored_flag(parent_stored, c) is True
            effective[c] = child and parent and c not in SUB_ACCOUNT_DENIED
        return effective
    defaults = role_default(role)
    effective = {}
    for c in CAPABILITIES:
        flag = _stored_flag(stored, c)
        effective[c] = defaults[c] if flag is None else flag
    return effective


def granted(perms: Mapping[str, bool]) -> list:
    return sorted(c for c, ok in perms.items() if ok)


def mask_permissions(requested: Optional[Mapping[str, Any]], ceiling: Mapping[str, bool]) -> Dict[str, bool]:
    """Clamp a requested grant map to ``ceiling``; used when a seller delegates to a sub-account."""
    requested = requested or {}
    return {
        c: (requested.get(c) is True) and bool(ceiling.get(c)) and c not in SUB_ACCOUNT_DENIED
        for c in CAPABILITIES
    }


def current_permissions() -> Set[str]:
    """Capabilities resolved for the current request by ``require_permissions``."""
    perms = getattr(g, 'permissions', None) or {}
    return {c for c, ok in perms.items() if ok}


def has_permissions(*codes: str) -> bool:
    perms = current_permissions()
    return all(c in perms for c in codes)


def has_any_permission(codes: Iterable[str]) -> bool:
    perms = current_permissions()
    return any(c in perms for c in codes)


def is_admin() -> bool:
    profile = getattr(g, 'profile', None) or {}
    return profile.get('role') == ROLE_ADMIN and not profile.get('isSubAccount')


def acting_seller_id() -> Optional[str]:
    """Seller the caller acts for: the parent for sub-accounts, the caller itself for sellers."""
    profile = getattr(g, 'profile', None) or {}
    if profile.get('isSubAccount'):
        return profile.get('parentId')
    if profile.get('role') == ROLE_SELLER:
        return profile.get('uid')
    return None
