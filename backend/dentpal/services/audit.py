from __future__ import annotations
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from flask import g
from flask_jwt_extended import get_jwt_identity
from dentpal import get_store

AUDIT_COLLECTION = 'audit_logs'


def add_audit(action: str, entity: Optional[str] = None, entity_id: Optional[str] = None, meta: Optional[Dict[str, Any]] = None):
    """Persist an audit log entry in the ``audit_logs`` collection.

    Parameters:
      action: short action code e.g. WITHDRAWAL.APPROVE, USER.ACCESS.SET
      entity: optional entity name (Withdrawal, User, etc.)
      entity_id: optional document id
      meta: additional JSON-safe dictionary (will be shallow copied)
    """
    actor = None
    try:
        actor = get_jwt_identity()
    except RuntimeError:
        actor = None  # no JWT context (scripts)
    perms = getattr(g, 'permissions', None) or {}
    entry = {
        'actor': actor,
        'action': action,
        'entity': entity,
        'entity_id': str(entity_id) if entity_id is not None else None,
        'perms_snapshot': sorted(c for c, ok in perms.items() if ok),
        'meta': dict(meta or {}),
        'created_at': datetime.now(timezone.utc).isoformat(),
    }
    entry['id'] = get_store().add(AUDIT_COLLECTION, entry)
    return entry
