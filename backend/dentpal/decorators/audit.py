from __future__ import annotations
"""Audit logging decorator to keep add_audit() calls out of route handlers.

Usage examples:

@audit_log('CATEGORY.CREATE', entity='Category', entity_id_key='id', meta_keys=['name'])
def create_category():
    ... return {'id': doc_id, 'name': name}, 201

@audit_log('USER.ACCESS.SET', entity='User', entity_id_arg='uid',
           diff_keys=['role', 'permissions'], pre_fetch=lambda a, kw: _prefetch_user(kw['uid']))
def set_access(uid): ...

Parameters:
  action: required audit action code (e.g. WITHDRAWAL.APPROVE)
  entity: optional entity label (Withdrawal, User, Seller)
  entity_id_key: key in the returned JSON object whose value becomes entity_id.
  entity_id_arg: name of the path parameter to use for entity_id (fallback if entity_id_key absent).
  meta_keys: keys projected from the returned JSON into the meta dict.
  meta_builder: callable returning a meta dict; receives (data, original_return_value, args, kwargs).
  diff_keys / pre_fetch: record before/after values of the named keys under meta['changes'].

Only successful responses are audited; a view that raises never reaches the audit step.
"""

import logging
from functools import wraps
from typing import Any, Callable, Iterable, Optional, Dict

from dentpal.services.audit import add_audit

log = logging.getLogger(__name__)


def _extract_payload(rv: Any):
    """Return the JSON-able dict of a view return value (dict, (dict, status) or (dict, status, headers))."""
    if isinstance(rv, tuple) and rv:
        return rv[0]
    return rv


def _diff(before: Dict[str, Any], after: Dict[str, Any], keys: Iterable[str]) -> Dict[str, Any]:
    changes = {}
    for k in keys:
        if k in before and k in after and before.get(k) != after.get(k):
            changes[k] = {'before': before.get(k), 'after': after.get(k)}
    return changes


def audit_log(
    action: str,
    *,
    entity: Optional[str] = None,
    entity_id_key: Optional[str] = None,
    entity_id_arg: Optional[str] = None,
    meta_keys: Optional[Iterable[str]] = None,
    meta_builder: Optional[Callable[[dict, Any, tuple, dict], dict]] = None,
    diff_keys: Optional[Iterable[str]] = None,
    pre_fetch: Optional[Callable[[tuple, dict], Dict[str, Any]]] = None,
):
    def outer(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            before_snapshot = None
            if diff_keys and pre_fetch:
                before_snapshot = pre_fetch(args, kwargs)
            rv = fn(*args, **kwargs)
            data = _extract_payload(rv)
            if not isinstance(data, dict):
                data = {}
            entity_id = None
            if entity_id_key and entity_id_key in data:
                entity_id = data.get(entity_id_key)
            elif entity_id_arg and entity_id_arg in kwargs:
                entity_id = kwargs.get(entity_id_arg)
            if meta_builder:
                meta = meta_builder(data, rv, args, kwargs)
            elif meta_keys:
                meta = {k: data.get(k) for k in meta_keys if k in data}
            else:
                meta = {}
            if diff_keys and isinstance(before_snapshot, dict):
                changes = _diff(before_snapshot, data, diff_keys)
                if changes:
                    meta = dict(meta or {})
                    meta['changes'] = changes
            try:
                add_audit(action, entity, entity_id, meta)
            except Exception:
                # mutation is already committed
                log.exception('Failed to record audit entry %s', action)
            return rv
        return wrapper
    return outer
