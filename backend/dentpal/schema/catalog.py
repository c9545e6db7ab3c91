from __future__ import annotations
"""Display-name and option normalization for catalog documents."""
from typing import Any, Dict, List, Optional

CATEGORY_NAME_KEYS = ('name', 'categoryName', 'CategoryName', 'category', 'Category', 'title', 'displayName', 'label')
SUBCATEGORY_NAME_KEYS = ('subCategoryName', 'subcategoryName', 'name', 'title', 'displayName', 'label')


def _first_name(raw: Optional[Dict[str, Any]], keys, fallback: str) -> str:
    raw = raw or {}
    for k in keys:
        if raw.get(k):
            return str(raw[k]).strip()
    return str(fallback).strip()


def category_name(raw: Optional[Dict[str, Any]], fallback_id: str) -> str:
    return _first_name(raw, CATEGORY_NAME_KEYS, fallback_id)


def subcategory_name(raw: Optional[Dict[str, Any]], fallback_id: str) -> str:
    return _first_name(raw, SUBCATEGORY_NAME_KEYS, fallback_id)


def _to_options(values: list) -> List[Dict[str, str]]:
    if not values:
        return []
    if isinstance(values[0], str):
        return [{'value': str(v), 'label': str(v)} for v in values]
    out = []
    for v in values:
        if isinstance(v, dict) and 'value' in v:
            out.append({'value': str(v['value']), 'label': str(v.get('label', v['value']))})
    return out


def normalize_options(raw: Any) -> List[Dict[str, str]]:
    """Options stored either as a bare list or as ``{'options': [...]}``; strings become value=label."""
    if not raw:
        return []
    if isinstance(raw, list):
        return _to_options(raw)
    if isinstance(raw, dict) and isinstance(raw.get('options'), list):
        return _to_options(raw['options'])
    return []
