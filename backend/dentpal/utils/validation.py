from __future__ import annotations
"""Reusable validation helpers for request bodies.

Keeps status checks and required-field checks consistent with 400 error semantics.
"""
from typing import Any, Dict, Iterable
from flask import abort


def validate_status(new_status: str, allowed: Iterable[str], field_name: str = 'status') -> str:
    """Validate that new_status is inside allowed.

    Returns the status (to enable inline usage) or aborts with 400.
    """
    if new_status not in allowed:
        abort(400, description=f"{field_name} invalid")
    return new_status


def require_fields(data: Dict[str, Any], *fields: str) -> Dict[str, Any]:
    missing = [f for f in fields if data.get(f) in (None, '') or (isinstance(data.get(f), str) and not data[f].strip())]
    if missing:
        abort(400, description=f"{', '.join(missing)} required")
    return data


def require_name(value: Any, field_name: str = 'name') -> str:
    name = str(value or '').strip()
    if not name:
        abort(400, description=f'{field_name} is required')
    return name


def parse_bool(value: Any, field_name: str) -> bool:
    if isinstance(value, bool):
        return value
    abort(400, description=f'{field_name} must be boolean')


def validate_permission_map(value: Any, allowed: Iterable[str], field_name: str = 'permissions') -> Dict[str, bool]:
    """Accept a partial {capability: bool} map; unknown capabilities or non-bool values are rejected."""
    if value is None:
        return {}
    if not isinstance(value, dict):
        abort(400, description=f'{field_name} must be an object')
    allowed = set(allowed)
    out = {}
    for k, v in value.items():
        if k not in allowed:
            abort(400, description=f'Unknown capability {k}')
        if not isinstance(v, bool):
            abort(400, description=f'{field_name}.{k} must be boolean')
        out[k] = v
    return out

__all__ = ['validate_status', 'require_fields', 'require_name', 'parse_bool', 'validate_permission_map']
