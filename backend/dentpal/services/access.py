from __future__ import annotations
"""Store-backed permission loading.

``resolve_for_uid`` re-derives the effective map from the current documents
(used per request). ``PermissionWatcher`` keeps a map fresh by subscribing to
the account document and, for sub-accounts, the parent's documents.
"""
import logging
import threading
from typing import Any, Callable, Dict, List, Optional

from dentpal.constants.permissions import CAPABILITIES
from dentpal.schema.profiles import normalize_profile
from dentpal.services.policy import resolve_permissions
from dentpal.store.base import DocumentStore, Subscription

log = logging.getLogger(__name__)

USERS_COLLECTION = 'web_users'
SELLERS_COLLECTION = 'Seller'
# Parent records may live in the new Seller collection or the legacy one
PARENT_COLLECTIONS = (SELLERS_COLLECTION, USERS_COLLECTION)


def load_profile(store: DocumentStore, uid: str) -> Optional[Dict[str, Any]]:
    snap = store.get(USERS_COLLECTION, uid)
    if snap is None:
        return None
    return normalize_profile(snap.id, snap.data)


def load_parent_permissions(store: DocumentStore, parent_id: Optional[str]) -> Optional[Dict[str, bool]]:
    """Stored flags of the parent account (unset means False), or None when it cannot be read.

    Role defaults never flow down: a sub-account only gets what the parent
    was explicitly granted. An inactive parent grants nothing.
    """
    if not parent_id:
        return None
    for collection in PARENT_COLLECTIONS:
        try:
            snap = store.get(collection, parent_id)
        except Exception:
            log.warning('Parent %s lookup in %s failed', parent_id, collection, exc_info=True)
            return None
        if snap is not None:
            parent = normalize_profile(snap.id, snap.data)
            stored = parent['permissions'] if parent['isActive'] else {}
            return {c: stored.get(c) is True for c in CAPABILITIES}
    return None


def effective_for_profile(store: DocumentStore, profile: Dict[str, Any]) -> Dict[str, bool]:
    parent = None
    if profile['isSubAccount']:
        parent = load_parent_permissions(store, profile['parentId'])
    return resolve_permissions(
        profile['permissions'],
        profile['role'],
        is_sub_account=profile['isSubAccount'],
        parent_stored=parent,
        is_active=profile['isActive'],
    )


def resolve_for_uid(store: DocumentStore, uid: str) -> Optional[Dict[str, Any]]:
    profile = load_profile(store, uid)
    if profile is None:
        return None
    return {'profile': profile, 'permissions': effective_for_profile(store, profile)}


class PermissionWatcher:
    """Recompute an account's effective permissions whenever its own or its parent's record changes.

    ``on_change`` receives the new map (all False while the account is missing).
    Call ``close()`` (or use as a context manager) to release subscriptions.
    """

    def __init__(self, store: DocumentStore, uid: str, on_change: Callable[[Dict[str, bool]], None]):
        self.store = store
        self.uid = uid
        self.on_change = on_change
        self.permissions: Dict[str, bool] = resolve_permissions(None, None)
        self._lock = threading.RLock()
        self._parent_id: Optional[str] = None
        self._parent_subs: List[Subscription] = []
        self._profile: Optional[Dict[str, Any]] = None
        self._closed = False
        self._own_sub = store.listen_document(USERS_COLLECTION, uid, self._on_profile)

    def _on_profile(self, snap):
        with self._lock:
            if self._closed:
                return
            self._profile = normalize_profile(snap.id, snap.data) if snap is not None else None
            parent_id = self._profile['parentId'] if self._profile and self._profile['isSubAccount'] else None
            if parent_id != self._parent_id:
                self._release_parent()
                self._parent_id = parent_id
                if parent_id:
                    # Each subscription fires immediately, which recomputes
                    for collection in PARENT_COLLECTIONS:
                        self._parent_subs.append(
                            self.store.listen_document(collection, parent_id, self._on_parent)
                        )
                    return
            self._recompute()

    def _on_parent(self, _snap):
        with self._lock:
            if not self._closed:
                self._recompute()

    def _recompute(self):
        if self._profile is None:
            perms = resolve_permissions(None, None)
        else:
            perms = effective_for_profile(self.store, self._profile)
        if perms != self.permissions:
            self.permissions = perms
            self.on_change(dict(perms))

    def _release_parent(self):
        for sub in self._parent_subs:
            sub.unsubscribe()
        self._parent_subs = []

    def close(self):
        with self._lock:
            self._closed = True
            self._own_sub.unsubscribe()
            self._release_parent()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False


__all__ = [
    'PermissionWatcher', 'effective_for_profile', 'load_parent_permissions', 'load_profile',
    'resolve_for_uid',
]
