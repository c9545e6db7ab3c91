from __future__ import annotations
"""Document store factory.

``build_store(config)`` picks the backend from ``STORE_BACKEND``:
  sql        SQLAlchemy over ``DATABASE_URL`` (default)
  firestore  Firebase Admin SDK using ``FIREBASE_CREDENTIALS`` / ``FIREBASE_PROJECT_ID``
"""
from typing import Any, Mapping

from dentpal.store.base import (
    DocumentNotFound, DocumentSnapshot, DocumentStore, Subscription, Transaction, WriteBatch,
)

BACKENDS = ('sql', 'firestore')


def build_store(config: Mapping[str, Any]) -> DocumentStore:
    backend = (config.get('STORE_BACKEND') or 'sql').lower()
    if backend == 'sql':
        from dentpal.store.sql import SqlDocumentStore
        store = SqlDocumentStore(config.get('DATABASE_URL') or 'sqlite:///dev.db')
        if config.get('STORE_CREATE_SCHEMA'):
            store.create_schema()
        return store
    if backend == 'firestore':
        from dentpal.store.firestore import FirestoreDocumentStore
        return FirestoreDocumentStore(
            credentials_path=config.get('FIREBASE_CREDENTIALS'),
            project_id=config.get('FIREBASE_PROJECT_ID'),
        )
    raise ValueError(f"Unknown STORE_BACKEND {backend!r}; expected one of {BACKENDS}")


__all__ = [
    'BACKENDS', 'DocumentNotFound', 'DocumentSnapshot', 'DocumentStore', 'Subscription',
    'Transaction', 'WriteBatch', 'build_store',
]
