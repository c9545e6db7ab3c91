from __future__ import annotations
"""Cloud Firestore backend built on the Firebase Admin SDK."""
import logging
import os
from typing import Optional, Sequence

import firebase_admin
from firebase_admin import credentials, firestore
from google.api_core.exceptions import NotFound

from dentpal.store.base import (
    DocumentNotFound, DocumentSnapshot, DocumentStore, Filter, Subscription, Transaction,
    WriteBatch, validate_filters,
)

log = logging.getLogger(__name__)


def init_firebase_app(credentials_path: Optional[str] = None, project_id: Optional[str] = None):
    """Return the default Firebase app, initializing it once per process."""
    try:
        return firebase_admin.get_app()
    except ValueError:
        pass
    options = {'projectId': project_id} if project_id else None
    if credentials_path and os.path.isfile(credentials_path):
        cred = credentials.Certificate(credentials_path)
        return firebase_admin.initialize_app(cred, options)
    # Application default credentials
    return firebase_admin.initialize_app(options=options)


def _snapshot(collection: str, snap) -> Optional[DocumentSnapshot]:
    if snap is None or not snap.exists:
        return None
    return DocumentSnapshot(collection, snap.id, snap.to_dict() or {})


class _FirestoreTransaction(Transaction):
    def __init__(self, store: 'FirestoreDocumentStore', tx):
        self.store = store
        self.tx = tx

    def get(self, collection, doc_id):
        snap = self.store._doc(collection, doc_id).get(transaction=self.tx)
        return _snapshot(collection, snap)

    def set(self, collection, doc_id, data, merge=False):
        self.tx.set(self.store._doc(collection, doc_id), data, merge=merge)

    def update(self, collection, doc_id, data):
        self.tx.update(self.store._doc(collection, doc_id), data)

    def delete(self, collection, doc_id):
        self.tx.delete(self.store._doc(collection, doc_id))


class _FirestoreWriteBatch(WriteBatch):
    def __init__(self, store: 'FirestoreDocumentStore'):
        super().__init__()
        self.store = store

    def commit(self):
        batch = self.store.client.batch()
        for kind, collection, doc_id, data, merge in self.ops:
            ref = self.store._doc(collection, doc_id)
            if kind == 'set':
                batch.set(ref, data, merge=merge)
            elif kind == 'update':
                batch.update(ref, data)
            else:
                batch.delete(ref)
        try:
            batch.commit()
        except NotFound as e:
            raise DocumentNotFound('batch', str(e)) from e
        self.ops = []


class FirestoreDocumentStore(DocumentStore):
    def __init__(self, client=None, credentials_path: Optional[str] = None, project_id: Optional[str] = None):
        if client is None:
            init_firebase_app(credentials_path, project_id)
            client = firestore.client()
            log.info('Firestore client initialized')
        self.client = client

    def _doc(self, collection: str, doc_id: str):
        return self.client.collection(collection).document(doc_id)

    def _query(self, collection: str, filters: Sequence[Filter]):
        q = self.client.collection(collection)
        for fname, op, value in validate_filters(filters):
            q = q.where(filter=firestore.FieldFilter(fname, op, value))
        return q

    def get(self, collection, doc_id):
        return _snapshot(collection, self._doc(collection, doc_id).get())

    def set(self, collection, doc_id, data, merge=False):
        self._doc(collection, doc_id).set(data, merge=merge)

    def update(self, collection, doc_id, data):
        try:
            self._doc(collection, doc_id).update(data)
        except NotFound as e:
            raise DocumentNotFound(collection, doc_id) from e

    def add(self, collection, data):
        _, ref = self.client.collection(collection).add(data)
        return ref.id

    def delete(self, collection, doc_id):
        self._doc(collection, doc_id).delete()

    def query(self, collection, filters: Sequence[Filter] = ()):
        return [_snapshot(collection, s) for s in self._query(collection, filters).stream()]

    def query_group(self, collection_id):
        out = []
        for s in self.client.collection_group(collection_id).stream():
            out.append(DocumentSnapshot(s.reference.parent.path, s.id, s.to_dict() or {}))
        return out

    def listen_document(self, collection, doc_id, callback):
        def on_snapshot(docs, changes, read_time):
            callback(_snapshot(collection, docs[0]) if docs else None)
        watch = self._doc(collection, doc_id).on_snapshot(on_snapshot)
        return Subscription(watch.unsubscribe)

    def listen_query(self, collection, callback, filters: Sequence[Filter] = ()):
        def on_snapshot(docs, changes, read_time):
            callback([_snapshot(collection, d) for d in docs if d.exists])
        watch = self._query(collection, filters).on_snapshot(on_snapshot)
        return Subscription(watch.unsubscribe)

    def run_transaction(self, fn):
        @firestore.transactional
        def _run(tx):
            return fn(_FirestoreTransaction(self, tx))
        try:
            return _run(self.client.transaction())
        except NotFound as e:
            raise DocumentNotFound('transaction', str(e)) from e

    def batch(self):
        return _FirestoreWriteBatch(self)

    def close(self):
        close = getattr(self.client, 'close', None)
        if close:
            close()


__all__ = ['FirestoreDocumentStore', 'init_firebase_app']
