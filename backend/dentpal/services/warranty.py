from __future__ import annotations
"""Warranty rules per category (``Warranty/{categoryId}``) and per subcategory
(``Warranty/{categoryId}/subCategory/{subId}``)."""
import time
from typing import Any, Callable, Dict, List, Optional

from dentpal.store.base import DocumentStore

ROOT = 'Warranty'
SUBCOLLECTION = 'subCategory'


def sub_rules_collection(category_id: str) -> str:
    return f"{ROOT}/{category_id}/{SUBCOLLECTION}"


def _rule(data: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if data is None:
        return None
    return {
        'warrantyType': data.get('warrantyType'),
        'warrantyDuration': data.get('warrantyDuration'),
        'updatedAt': data.get('updatedAt'),
    }


def get_category_rule(store: DocumentStore, category_id: str):
    snap = store.get(ROOT, category_id)
    return _rule(snap.data) if snap else None


def get_subcategory_rule(store: DocumentStore, category_id: str, sub_id: str):
    snap = store.get(sub_rules_collection(category_id), sub_id)
    return _rule(snap.data) if snap else None


def save_category_rule(store: DocumentStore, category_id: str, warranty_type=None,
                       warranty_duration=None, category_name=None) -> Dict[str, Any]:
    store.set(ROOT, category_id, {
        'warrantyType': warranty_type,
        'warrantyDuration': warranty_duration,
        'categoryName': category_name,
        'updatedAt': int(time.time() * 1000),
    }, merge=True)
    return get_category_rule(store, category_id)


def save_subcategory_rule(store: DocumentStore, category_id: str, sub_id: str, warranty_type=None,
                          warranty_duration=None, subcategory_name=None) -> Dict[str, Any]:
    store.set(sub_rules_collection(category_id), sub_id, {
        'warrantyType': warranty_type,
        'warrantyDuration': warranty_duration,
        'subCategoryName': subcategory_name,
        'updatedAt': int(time.time() * 1000),
    }, merge=True)
    return get_subcategory_rule(store, category_id, sub_id)


def delete_category_rule(store: DocumentStore, category_id: str) -> None:
    store.delete(ROOT, category_id)


def delete_subcategory_rule(store: DocumentStore, category_id: str, sub_id: str) -> None:
    store.delete(sub_rules_collection(category_id), sub_id)


def listen_category_rule(store: DocumentStore, category_id: str, callback: Callable[[Optional[Dict[str, Any]]], None]):
    return store.listen_document(ROOT, category_id, lambda snap: callback(_rule(snap.data) if snap else None))


def listen_subcategory_rule(store: DocumentStore, category_id: str, sub_id: str,
                            callback: Callable[[Optional[Dict[str, Any]]], None]):
    return store.listen_document(
        sub_rules_collection(category_id), sub_id,
        lambda snap: callback(_rule(snap.data) if snap else None),
    )


def list_category_rules(store: DocumentStore) -> List[Dict[str, Any]]:
    return [
        {'categoryId': s.id, 'categoryName': s.data.get('categoryName'), 'rule': _rule(s.data)}
        for s in store.query(ROOT)
    ]


def list_all_rules(store: DocumentStore) -> List[Dict[str, Any]]:
    """Category-level rules followed by every subcategory rule."""
    out = [{'level': 'category', **r} for r in list_category_rules(store)]
    for s in store.query_group(SUBCOLLECTION):
        # Category/{id}/subCategory shares the collection id; keep only rules
        if not s.collection.startswith(f'{ROOT}/'):
            continue
        out.append({
            'level': 'subcategory',
            'categoryId': s.parent_id,
            'subcategoryId': s.id,
            'subCategoryName': s.data.get('subCategoryName'),
            'rule': _rule(s.data),
        })
    return out
