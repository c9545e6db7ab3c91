from __future__ import annotations
from typing import Any, Dict, List
from flask import abort


def apply_filters(rows: List[Dict[str, Any]], specs: Dict[str, Dict[str, Any]], params: Dict[str, Any]):
    """Generic filter builder over normalized rows.

    specs: { param_name: { 'match': callable(row, value)->bool, 'coerce': type/func, 'validate': callable(optional) } }
    """
    for name, meta in specs.items():
        if name not in params or params[name] in (None, ''):
            continue
        val = params[name]
        if 'coerce' in meta:
            try:
                val = meta['coerce'](val)
            except Exception:
                abort(400, description=f'{name} invalid')
        if 'validate' in meta and not meta['validate'](val):
            abort(400, description=f'{name} invalid')
        rows = [r for r in rows if meta['match'](r, val)]
    return rows
