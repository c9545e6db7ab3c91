from __future__ import annotations
from flask import abort


def _sort_key(value):
    # None sorts before any real value; mixed types compare by type name first
    if value is None:
        return (False, '', 0)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return (True, 'number', value)
    if isinstance(value, (dict, list)):
        return (True, type(value).__name__, str(value))
    return (True, type(value).__name__, value)


def apply_multi_sort(rows: list, sort_expr: str | None, allowed: dict, tie_breaker: str, default: str | None = None):
    """Apply multi-field sort to a list of dict rows.
    sort_expr: comma-separated tokens, each optionally prefixed with '-'.
    allowed: mapping of field key -> row accessor (callable) or row key.
    tie_breaker: row key appended for deterministic ordering.
    default: sort expression used when sort_expr is empty.
    """
    sort_expr = sort_expr or default
    tokens = []
    for raw in (sort_expr or '').split(','):
        token = raw.strip()
        if not token:
            continue
        desc = token.startswith('-')
        key = token[1:] if desc else token
        if key not in allowed:
            abort(400, description=f'Invalid sort field {key}')
        tokens.append((allowed[key], desc))
    out = sorted(rows, key=lambda r: _sort_key(r.get(tie_breaker)))
    # Stable sorts applied from the least significant key
    for accessor, desc in reversed(tokens):
        get = accessor if callable(accessor) else (lambda r, k=accessor: r.get(k))
        out.sort(key=lambda r: _sort_key(get(r)), reverse=desc)
    return out
