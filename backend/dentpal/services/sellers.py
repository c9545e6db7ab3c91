from __future__ import annotations
"""Seller profiles (``Seller``, falling back to legacy ``web_users``) and their sub-account invites."""
import logging
import time
from typing import Any, Dict, List, Optional

from flask import abort

from dentpal.services.access import load_parent_permissions
from dentpal.services.policy import mask_permissions, resolve_permissions
from dentpal.store.base import DocumentStore

log = logging.getLogger(__name__)

SELLER_COLLECTION = 'Seller'
LEGACY_COLLECTION = 'web_users'
MEMBERS = 'members'
SUB_ACCOUNT_FIELDS = ('name', 'email', 'permissions', 'status')
PROTECTED_FIELDS = ('password_hash',)


def members_collection(seller_id: str) -> str:
    return f"{SELLER_COLLECTION}/{seller_id}/{MEMBERS}"


def _row(snap) -> Dict[str, Any]:
    data = {k: v for k, v in snap.data.items() if k not in PROTECTED_FIELDS}
    return {'id': snap.id, **data}


def _now_ms() -> int:
    return int(time.time() * 1000)


def list_sellers(store: DocumentStore) -> List[Dict[str, Any]]:
    rows = store.query(SELLER_COLLECTION)
    if not rows:
        rows = store.query(LEGACY_COLLECTION)
    return [_row(s) for s in rows]


def get(store: DocumentStore, seller_id: str) -> Optional[Dict[str, Any]]:
    snap = store.get(SELLER_COLLECTION, seller_id) or store.get(LEGACY_COLLECTION, seller_id)
    return _row(snap) if snap else None


def get_or_404(store: DocumentStore, seller_id: str) -> Dict[str, Any]:
    row = get(store, seller_id)
    if row is None:
        abort(404, description='Seller not found')
    return row


def create(store: DocumentStore, seller_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
    if store.get(SELLER_COLLECTION, seller_id) is not None:
        abort(409, description='Seller already exists')
    payload = {k: v for k, v in data.items() if k not in PROTECTED_FIELDS and k != 'id'}
    payload.setdefault('createdAt', _now_ms())
    store.set(SELLER_COLLECTION, seller_id, payload)
    return {'id': seller_id, **payload}


def update(store: DocumentStore, seller_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
    patch = {k: v for k, v in data.items() if k not in PROTECTED_FIELDS and k != 'id'}
    if not patch:
        abort(400, description='No updatable fields supplied')
    store.update(SELLER_COLLECTION, seller_id, patch)
    return get(store, seller_id)


def remove(store: DocumentStore, seller_id: str) -> None:
    store.delete(SELLER_COLLECTION, seller_id)


def find_by_email(store: DocumentStore, email: str) -> List[Dict[str, Any]]:
    rows = store.query(SELLER_COLLECTION, [('email', '==', email)])
    if not rows:
        rows = store.query(LEGACY_COLLECTION, [('email', '==', email)])
    return [_row(s) for s in rows]


def save_vendor_profile(store: DocumentStore, seller_id: str, vendor: Dict[str, Any]) -> Dict[str, Any]:
    if not isinstance(vendor, dict):
        abort(400, description='vendor must be an object')
    # Merge so unrelated seller fields survive
    store.set(SELLER_COLLECTION, seller_id, {'vendor': vendor}, merge=True)
    return get(store, seller_id)


# --- sub-accounts ---

def delegation_ceiling(store: DocumentStore, seller_id: str) -> Dict[str, bool]:
    """Stored grants of the parent seller; what a sub-account can be granted at most."""
    get_or_404(store, seller_id)
    return load_parent_permissions(store, seller_id) or resolve_permissions(None, None)


def create_sub_account_invite(store: DocumentStore, seller_id: str, name: str, email: str,
                              permissions: Optional[Dict[str, Any]], created_by: Optional[str] = None) -> Dict[str, Any]:
    ceiling = delegation_ceiling(store, seller_id)
    collection = members_collection(seller_id)
    now = _now_ms()
    payload = {
        'name': name,
        'email': email,
        'permissions': mask_permissions(permissions, ceiling),
        'status': 'pending',
        'isSubAccount': True,
        'parentId': seller_id,
        'invitedAt': now,
        'createdAt': now,
        'createdBy': created_by or seller_id,
    }
    member_id = store.add(collection, payload)
    store.set(collection, member_id, {'inviteId': member_id}, merge=True)
    log.info('Sub-account invite %s created under seller %s', member_id, seller_id)
    return {'id': member_id, 'inviteId': member_id, **payload}


def list_sub_accounts(store: DocumentStore, seller_id: str) -> List[Dict[str, Any]]:
    rows = [s.to_dict() for s in store.query(members_collection(seller_id))]
    return sorted(rows, key=lambda r: r.get('createdAt') or 0, reverse=True)


def update_sub_account(store: DocumentStore, seller_id: str, member_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
    patch = {k: v for k, v in data.items() if k in SUB_ACCOUNT_FIELDS}
    if not patch:
        abort(400, description='No updatable fields supplied')
    if 'permissions' in patch:
        patch['permissions'] = mask_permissions(patch['permissions'], delegation_ceiling(store, seller_id))
    store.update(members_collection(seller_id), member_id, patch)
    return store.get(members_collection(seller_id), member_id).to_dict()


def delete_sub_account(store: DocumentStore, seller_id: str, member_id: str) -> None:
    store.delete(members_collection(seller_id), member_id)
