from __future__ import annotations
"""Platform legal documents (``platform_policies``): terms of service and privacy policy versions."""
import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from flask import abort

from dentpal.store.base import DocumentStore
from dentpal.utils.validation import validate_status

log = logging.getLogger(__name__)

COLLECTION = 'platform_policies'
POLICY_TYPES = ('terms-of-service', 'privacy-policy')
STATUS_DRAFT = 'draft'
STATUS_PUBLISHED = 'published'
POLICY_STATUSES = (STATUS_DRAFT, STATUS_PUBLISHED)
FIRST_VERSION = 1.0
VERSION_STEP = 0.1


def sanitize_file_name(name: str) -> str:
    return re.sub(r'[^a-zA-Z0-9.-]', '_', name or '')


def _version(row: Dict[str, Any]) -> float:
    try:
        return float(row.get('version'))
    except (TypeError, ValueError):
        return 0.0


def next_version(existing: List[Dict[str, Any]]) -> str:
    if not existing:
        return f"{FIRST_VERSION:.1f}"
    return f"{max(_version(r) for r in existing) + VERSION_STEP:.1f}"


def list_by_type(store: DocumentStore, policy_type: str) -> List[Dict[str, Any]]:
    validate_status(policy_type, POLICY_TYPES, 'type')
    rows = [s.to_dict() for s in store.query(COLLECTION, [('type', '==', policy_type)])]
    return sorted(rows, key=lambda r: r.get('uploadedAt') or '', reverse=True)


def list_all(store: DocumentStore) -> List[Dict[str, Any]]:
    rows = [s.to_dict() for s in store.query(COLLECTION)]
    return sorted(rows, key=lambda r: r.get('uploadedAt') or '', reverse=True)


def get(store: DocumentStore, policy_id: str) -> Optional[Dict[str, Any]]:
    snap = store.get(COLLECTION, policy_id)
    return snap.to_dict() if snap else None


def get_or_404(store: DocumentStore, policy_id: str) -> Dict[str, Any]:
    row = get(store, policy_id)
    if row is None:
        abort(404, description='Policy not found')
    return row


def upload(store: DocumentStore, policy_type: str, content: str, file_name: str,
           uploaded_by: str = 'system', uploaded_by_name: str = 'System Admin') -> Dict[str, Any]:
    validate_status(policy_type, POLICY_TYPES, 'type')
    if not isinstance(content, str) or not content.strip():
        abort(400, description='content required')
    data = {
        'type': policy_type,
        'version': next_version(list_by_type(store, policy_type)),
        'fileName': sanitize_file_name(file_name or f'{policy_type}.txt'),
        'content': content,
        'uploadedBy': uploaded_by,
        'uploadedByName': uploaded_by_name,
        'uploadedAt': datetime.now(timezone.utc).isoformat(),
        'status': STATUS_DRAFT,
        'fileSize': len(content.encode('utf-8')),
        'isActive': False,
    }
    doc_id = store.add(COLLECTION, data)
    log.info('Policy %s v%s uploaded as %s', policy_type, data['version'], doc_id)
    return {'id': doc_id, **data}


def get_active(store: DocumentStore, policy_type: str) -> Optional[Dict[str, Any]]:
    rows = store.query(COLLECTION, [
        ('type', '==', policy_type),
        ('isActive', '==', True),
        ('status', '==', STATUS_PUBLISHED),
    ])
    return rows[0].to_dict() if rows else None


def publish(store: DocumentStore, policy_id: str) -> Dict[str, Any]:
    """Publish one version and return every other active version of the same type to draft."""
    policy = get_or_404(store, policy_id)
    batch = store.batch()
    for other in list_by_type(store, policy['type']):
        if other['id'] != policy_id and other.get('isActive'):
            batch.update(COLLECTION, other['id'], {'isActive': False, 'status': STATUS_DRAFT})
    batch.update(COLLECTION, policy_id, {'status': STATUS_PUBLISHED, 'isActive': True})
    batch.commit()
    return get(store, policy_id)


def update_status(store: DocumentStore, policy_id: str, status: str) -> Dict[str, Any]:
    validate_status(status, POLICY_STATUSES)
    get_or_404(store, policy_id)
    store.update(COLLECTION, policy_id, {'status': status})
    return get(store, policy_id)


def delete(store: DocumentStore, policy_id: str) -> None:
    get_or_404(store, policy_id)
    store.delete(COLLECTION, policy_id)


def get_content(store: DocumentStore, policy_id: str) -> str:
    return get_or_404(store, policy_id).get('content') or ''
