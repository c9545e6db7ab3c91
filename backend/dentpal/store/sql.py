from __future__ import annotations
"""SQLAlchemy backed document store.

Documents live in a single ``documents`` table keyed by (collection path, doc id)
with a JSON payload. Filtering happens in Python after loading a collection,
which is fine for development and tests. Listeners are in-process and fire
after each successful commit.
"""
import itertools
import logging
import threading
from typing import Any, Callable, Dict, List, Optional, Sequence, Set, Tuple

from sqlalchemy import create_engine, select, or_, func
from sqlalchemy.pool import StaticPool
from sqlalchemy.orm import sessionmaker

from dentpal.models.document import Base, Document
from dentpal.store.base import (
    DocumentNotFound, DocumentSnapshot, DocumentStore, Filter, Subscription, Transaction,
    WriteBatch, apply_update, deep_merge, matches, validate_filters,
)
from dentpal.utils.tokens import random_alnum

log = logging.getLogger(__name__)

Touched = Set[Tuple[str, str]]


def _row(session, collection: str, doc_id: str, for_update: bool = False) -> Optional[Document]:
    stmt = select(Document).where(Document.collection == collection, Document.doc_id == doc_id)
    if for_update:
        stmt = stmt.with_for_update()
    return session.execute(stmt).scalar_one_or_none()


def _snapshot(row: Document) -> DocumentSnapshot:
    return DocumentSnapshot(row.collection, row.doc_id, deep_merge({}, row.data or {}))


def _apply(session, kind: str, collection: str, doc_id: str, data: Optional[Dict[str, Any]], merge: bool):
    row = _row(session, collection, doc_id)
    if kind == 'set':
        if row is None:
            session.add(Document(collection=collection, doc_id=doc_id, data=deep_merge({}, data or {})))
        else:
            row.data = deep_merge(row.data or {}, data or {}) if merge else deep_merge({}, data or {})
            row.updated_at = func.now()
    elif kind == 'update':
        if row is None:
            raise DocumentNotFound(collection, doc_id)
        row.data = apply_update(row.data or {}, data or {})
        row.updated_at = func.now()
    elif kind == 'delete':
        if row is not None:
            session.delete(row)
    else:
        raise ValueError(f"Unknown write kind {kind!r}")
    session.flush()


class _SqlTransaction(Transaction):
    def __init__(self, session):
        self.session = session
        self.touched: Touched = set()

    def get(self, collection, doc_id):
        if self.touched:
            raise RuntimeError('Transaction reads must happen before writes')
        row = _row(self.session, collection, doc_id, for_update=True)
        return _snapshot(row) if row is not None else None

    def set(self, collection, doc_id, data, merge=False):
        _apply(self.session, 'set', collection, doc_id, data, merge)
        self.touched.add((collection, doc_id))

    def update(self, collection, doc_id, data):
        _apply(self.session, 'update', collection, doc_id, data, False)
        self.touched.add((collection, doc_id))

    def delete(self, collection, doc_id):
        _apply(self.session, 'delete', collection, doc_id, None, False)
        self.touched.add((collection, doc_id))


class _SqlWriteBatch(WriteBatch):
    def __init__(self, store: 'SqlDocumentStore'):
        super().__init__()
        self.store = store

    def commit(self):
        touched: Touched = set()

        def _write(session):
            for kind, collection, doc_id, data, merge in self.ops:
                _apply(session, kind, collection, doc_id, data, merge)
                touched.add((collection, doc_id))

        self.store._in_session(_write)
        self.store._notify(touched)
        self.ops = []


class SqlDocumentStore(DocumentStore):
    def __init__(self, url: str):
        if url.endswith(':memory:'):
            # Single shared in-memory SQLite database across all sessions
            self.engine = create_engine(
                url,
                echo=False,
                future=True,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        else:
            self.engine = create_engine(url, echo=False, future=True)
        self.Session = sessionmaker(bind=self.engine, expire_on_commit=False, autoflush=False)
        self._lock = threading.Lock()
        self._ids = itertools.count(1)
        self._doc_watchers: Dict[int, Tuple[str, str, Callable]] = {}
        self._query_watchers: Dict[int, Tuple[str, List[Filter], Callable]] = {}

    def create_schema(self):
        Base.metadata.create_all(self.engine)

    def close(self):
        with self._lock:
            self._doc_watchers.clear()
            self._query_watchers.clear()
        self.engine.dispose()

    def _in_session(self, fn):
        session = self.Session()
        try:
            result = fn(session)
            session.commit()
            return result
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    # --- reads ---
    def get(self, collection, doc_id):
        session = self.Session()
        try:
            row = _row(session, collection, doc_id)
            return _snapshot(row) if row is not None else None
        finally:
            session.close()

    def query(self, collection, filters: Sequence[Filter] = ()):
        filters = validate_filters(filters)
        session = self.Session()
        try:
            rows = session.execute(
                select(Document).where(Document.collection == collection).order_by(Document.id.asc())
            ).scalars().all()
            return [_snapshot(r) for r in rows if matches(r.data or {}, filters)]
        finally:
            session.close()

    def query_group(self, collection_id):
        session = self.Session()
        try:
            rows = session.execute(
                select(Document)
                .where(or_(Document.collection == collection_id, Document.collection.like(f'%/{collection_id}')))
                .order_by(Document.id.asc())
            ).scalars().all()
            # LIKE treats '_' as a wildcard, so confirm the last path segment exactly
            return [_snapshot(r) for r in rows if r.collection.split('/')[-1] == collection_id]
        finally:
            session.close()

    # --- writes ---
    def set(self, collection, doc_id, data, merge=False):
        self._in_session(lambda s: _apply(s, 'set', collection, doc_id, data, merge))
        self._notify({(collection, doc_id)})

    def update(self, collection, doc_id, data):
        self._in_session(lambda s: _apply(s, 'update', collection, doc_id, data, False))
        self._notify({(collection, doc_id)})

    def add(self, collection, data):
        doc_id = random_alnum(20)
        self.set(collection, doc_id, data)
        return doc_id

    def delete(self, collection, doc_id):
        self._in_session(lambda s: _apply(s, 'delete', collection, doc_id, None, False))
        self._notify({(collection, doc_id)})

    def batch(self):
        return _SqlWriteBatch(self)

    def run_transaction(self, fn):
        session = self.Session()
        tx = _SqlTransaction(session)
        try:
            result = fn(tx)
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()
        self._notify(tx.touched)
        return result

    # --- listeners ---
    def listen_document(self, collection, doc_id, callback):
        token = next(self._ids)
        with self._lock:
            self._doc_watchers[token] = (collection, doc_id, callback)
        self._fire(callback, self.get(collection, doc_id))
        return Subscription(lambda: self._unregister(token))

    def listen_query(self, collection, callback, filters: Sequence[Filter] = ()):
        filters = validate_filters(filters)
        token = next(self._ids)
        with self._lock:
            self._query_watchers[token] = (collection, filters, callback)
        self._fire(callback, self.query(collection, filters))
        return Subscription(lambda: self._unregister(token))

    def _unregister(self, token: int):
        with self._lock:
            self._doc_watchers.pop(token, None)
            self._query_watchers.pop(token, None)

    def _fire(self, callback, payload):
        try:
            callback(payload)
        except Exception:
            log.exception('Document listener failed')

    def _notify(self, touched: Touched):
        if not touched:
            return
        with self._lock:
            doc_watchers = list(self._doc_watchers.values())
            query_watchers = list(self._query_watchers.values())
        collections = {c for c, _ in touched}
        for collection, doc_id, callback in doc_watchers:
            if (collection, doc_id) in touched:
                self._fire(callback, self.get(collection, doc_id))
        for collection, filters, callback in query_watchers:
            if collection in collections:
                self._fire(callback, self.query(collection, filters))


__all__ = ['SqlDocumentStore']
