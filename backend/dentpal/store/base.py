from __future__ import annotations
"""Backend-neutral document store contract.

Collections are addressed by slash separated paths, e.g. ``Seller`` or
``Seller/<sellerId>/members``. Every backend returns ``DocumentSnapshot``
objects and accepts the same filter tuples ``(field, op, value)`` where op is
``==`` or ``array-contains``. Field names may be dotted (``shippingInfo.status``).

Usage:
    store.set('Category', 'abc', {'name': 'Disposables'}, merge=True)
    with store.listen_document('web_users', uid, on_change):
        ...
"""
import copy
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

Filter = Tuple[str, str, Any]
SUPPORTED_OPS = ('==', 'array-contains')

_MISSING = object()


class DocumentNotFound(LookupError):
    def __init__(self, collection: str, doc_id: str):
        super().__init__(f"{collection}/{doc_id} does not exist")
        self.collection = collection
        self.doc_id = doc_id


@dataclass
class DocumentSnapshot:
    collection: str
    id: str
    data: Dict[str, Any] = field(default_factory=dict)

    @property
    def path(self) -> str:
        return f"{self.collection}/{self.id}"

    @property
    def parent_id(self) -> Optional[str]:
        """Id of the owning document for subcollection members (``Seller/<id>/members``)."""
        parts = self.collection.split('/')
        return parts[-2] if len(parts) >= 2 else None

    def to_dict(self) -> Dict[str, Any]:
        return {'id': self.id, **self.data}


class Subscription:
    """Cancellation handle returned by every listen call.

    Consumers must release it on teardown, either explicitly or by using it
    as a context manager.
    """

    def __init__(self, cancel: Callable[[], None]):
        self._cancel = cancel
        self.active = True

    def unsubscribe(self):
        if not self.active:
            return
        self.active = False
        self._cancel()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.unsubscribe()
        return False


def get_field(data: Dict[str, Any], dotted: str, default: Any = None) -> Any:
    cur: Any = data
    for part in dotted.split('.'):
        if not isinstance(cur, dict) or part not in cur:
            return default
        cur = cur[part]
    return cur


def matches(data: Dict[str, Any], filters: Iterable[Filter]) -> bool:
    for fname, op, value in filters:
        current = get_field(data, fname, _MISSING)
        if op == '==':
            if current is _MISSING or current != value:
                return False
        elif op == 'array-contains':
            if not isinstance(current, list) or value not in current:
                return False
        else:
            raise ValueError(f"Unsupported filter operator {op!r}")
    return True


def deep_merge(base: Dict[str, Any], patch: Dict[str, Any]) -> Dict[str, Any]:
    """Merge ``patch`` into a copy of ``base``; nested maps merge, everything else replaces."""
    out = copy.deepcopy(base)
    for key, value in patch.items():
        if isinstance(value, dict) and isinstance(out.get(key), dict):
            out[key] = deep_merge(out[key], value)
        else:
            out[key] = copy.deepcopy(value)
    return out


def apply_update(base: Dict[str, Any], patch: Dict[str, Any]) -> Dict[str, Any]:
    """Field-path update: dotted keys address nested fields, plain keys replace whole values."""
    out = copy.deepcopy(base)
    for key, value in patch.items():
        parts = key.split('.')
        cur = out
        for part in parts[:-1]:
            nxt = cur.get(part)
            if not isinstance(nxt, dict):
                nxt = {}
                cur[part] = nxt
            cur = nxt
        cur[parts[-1]] = copy.deepcopy(value)
    return out


class Transaction:
    """Read-then-write unit handed to ``DocumentStore.run_transaction`` callbacks.

    All reads must happen before the first write.
    """

    def get(self, collection: str, doc_id: str) -> Optional[DocumentSnapshot]:
        raise NotImplementedError

    def set(self, collection: str, doc_id: str, data: Dict[str, Any], merge: bool = False):
        raise NotImplementedError

    def update(self, collection: str, doc_id: str, data: Dict[str, Any]):
        raise NotImplementedError

    def delete(self, collection: str, doc_id: str):
        raise NotImplementedError


class WriteBatch:
    """Buffered writes committed atomically. Backends cap a batch at 500 writes."""

    def __init__(self):
        self.ops: List[Tuple[str, str, str, Optional[Dict[str, Any]], bool]] = []

    def set(self, collection: str, doc_id: str, data: Dict[str, Any], merge: bool = False):
        self.ops.append(('set', collection, doc_id, data, merge))
        return self

    def update(self, collection: str, doc_id: str, data: Dict[str, Any]):
        self.ops.append(('update', collection, doc_id, data, False))
        return self

    def delete(self, collection: str, doc_id: str):
        self.ops.append(('delete', collection, doc_id, None, False))
        return self

    def __len__(self):
        return len(self.ops)

    def commit(self):
        raise NotImplementedError


class DocumentStore:
    """Explicitly constructed document database client (one per application)."""

    def get(self, collection: str, doc_id: str) -> Optional[DocumentSnapshot]:
        raise NotImplementedError

    def set(self, collection: str, doc_id: str, data: Dict[str, Any], merge: bool = False) -> None:
        raise NotImplementedError

    def update(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        raise NotImplementedError

    def add(self, collection: str, data: Dict[str, Any]) -> str:
        raise NotImplementedError

    def delete(self, collection: str, doc_id: str) -> None:
        raise NotImplementedError

    def query(self, collection: str, filters: Sequence[Filter] = ()) -> List[DocumentSnapshot]:
        raise NotImplementedError

    def query_group(self, collection_id: str) -> List[DocumentSnapshot]:
        raise NotImplementedError

    def listen_document(self, collection: str, doc_id: str,
                        callback: Callable[[Optional[DocumentSnapshot]], None]) -> Subscription:
        raise NotImplementedError

    def listen_query(self, collection: str, callback: Callable[[List[DocumentSnapshot]], None],
                     filters: Sequence[Filter] = ()) -> Subscription:
        raise NotImplementedError

    def run_transaction(self, fn: Callable[[Transaction], Any]) -> Any:
        raise NotImplementedError

    def batch(self) -> WriteBatch:
        raise NotImplementedError

    def close(self) -> None:
        pass


def validate_filters(filters: Sequence[Filter]) -> List[Filter]:
    out = []
    for f in filters:
        if len(f) != 3:
            raise ValueError(f"Filter must be (field, op, value), got {f!r}")
        if f[1] not in SUPPORTED_OPS:
            raise ValueError(f"Unsupported filter operator {f[1]!r}")
        out.append(tuple(f))
    return out


__all__ = [
    'DocumentNotFound', 'DocumentSnapshot', 'DocumentStore', 'Filter', 'Subscription',
    'Transaction', 'WriteBatch', 'apply_update', 'deep_merge', 'get_field', 'matches',
    'validate_filters',
]
