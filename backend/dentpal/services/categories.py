from __future__ import annotations
"""Product categories (``Category``) and their ``subCategory`` subcollections."""
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List

from dentpal.schema.catalog import category_name, subcategory_name
from dentpal.store.base import DocumentStore
from dentpal.utils.validation import require_name

log = logging.getLogger(__name__)

COLLECTION = 'Category'
SUBCOLLECTION = 'subCategory'


def subcategories_collection(category_id: str) -> str:
    return f"{COLLECTION}/{category_id}/{SUBCOLLECTION}"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _categories(snaps) -> List[Dict[str, str]]:
    rows = [{'id': s.id, 'name': category_name(s.data, s.id)} for s in snaps]
    return sorted(rows, key=lambda r: r['name'].lower())


def _subcategories(snaps) -> List[Dict[str, str]]:
    rows = [{'id': s.id, 'name': subcategory_name(s.data, s.id)} for s in snaps]
    return sorted([r for r in rows if r['name']], key=lambda r: r['name'].lower())


def list_categories(store: DocumentStore) -> List[Dict[str, str]]:
    return _categories(store.query(COLLECTION))


def listen_categories(store: DocumentStore, callback: Callable[[List[Dict[str, str]]], None]):
    return store.listen_query(COLLECTION, lambda snaps: callback(_categories(snaps)))


def list_subcategories(store: DocumentStore, category_id: str) -> List[Dict[str, str]]:
    return _subcategories(store.query(subcategories_collection(category_id)))


def listen_subcategories(store: DocumentStore, category_id: str, callback: Callable[[List[Dict[str, str]]], None]):
    return store.listen_query(subcategories_collection(category_id), lambda snaps: callback(_subcategories(snaps)))


def add_category(store: DocumentStore, name: Any) -> Dict[str, str]:
    name = require_name(name)
    doc_id = store.add(COLLECTION, {'name': name, 'categoryName': name, 'createdAt': _now()})
    return {'id': doc_id, 'name': name}


def update_category(store: DocumentStore, category_id: str, name: Any) -> Dict[str, str]:
    name = require_name(name)
    store.update(COLLECTION, category_id, {'name': name, 'categoryName': name, 'updatedAt': _now()})
    return {'id': category_id, 'name': name}


def delete_category(store: DocumentStore, category_id: str) -> int:
    """Delete a category and all of its subcategories; returns how many subcategories went with it."""
    subs = store.query(subcategories_collection(category_id))
    batch = store.batch()
    for s in subs:
        batch.delete(subcategories_collection(category_id), s.id)
    batch.delete(COLLECTION, category_id)
    batch.commit()
    log.info('Category %s deleted with %d subcategories', category_id, len(subs))
    return len(subs)


def add_subcategory(store: DocumentStore, category_id: str, name: Any) -> Dict[str, str]:
    name = require_name(name)
    doc_id = store.add(subcategories_collection(category_id), {
        'name': name, 'subCategoryName': name, 'createdAt': _now(),
    })
    return {'id': doc_id, 'name': name}


def update_subcategory(store: DocumentStore, category_id: str, sub_id: str, name: Any) -> Dict[str, str]:
    name = require_name(name)
    store.update(subcategories_collection(category_id), sub_id, {
        'name': name, 'subCategoryName': name, 'updatedAt': _now(),
    })
    return {'id': sub_id, 'name': name}


def delete_subcategory(store: DocumentStore, category_id: str, sub_id: str) -> None:
    store.delete(subcategories_collection(category_id), sub_id)
