from __future__ import annotations
from typing import Any, Dict, Iterable, List, Optional, Tuple
from flask import request, abort, make_response
from dentpal.config.pagination import normalize_pagination
import hashlib
from datetime import datetime, timezone
from email.utils import format_datetime


def paginate_rows(rows: List[Dict[str, Any]]) -> Tuple[List[Dict[str, Any]], int, int, int]:
    """Slice an already filtered/sorted list using ?limit=&offset=."""
    try:
        limit, offset = normalize_pagination(request.args.get('limit'), request.args.get('offset'))
    except ValueError as e:
        abort(400, description=str(e))
    total = len(rows)
    return rows[offset:offset + limit], total, limit, offset


def compute_etag(ids: Iterable[Any], total: int, limit: int, offset: int, latest_ts: Optional[str] = '') -> str:
    seed = f"{list(ids)}|{total}|{limit}|{offset}|{latest_ts or ''}"
    return hashlib.sha256(seed.encode()).hexdigest()[:32]


def build_list_payload(rows: list, total: int, limit: int, offset: int):
    return {
        'data': rows,
        'pagination': {
            'total': total,
            'limit': limit,
            'offset': offset,
            'returned': len(rows)
        }
    }


def latest_timestamp(rows: Iterable[Dict[str, Any]], *keys: str) -> Optional[str]:
    """Newest ISO timestamp found under ``keys`` (first present key per row)."""
    latest = None
    for r in rows:
        for k in keys:
            v = r.get(k)
            if isinstance(v, str) and v:
                if latest is None or v > latest:
                    latest = v
                break
    return latest


def _http_date(iso: str) -> Optional[str]:
    try:
        dt = datetime.fromisoformat(iso.replace('Z', '+00:00'))
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return format_datetime(dt.astimezone(timezone.utc).replace(microsecond=0), usegmt=True)


def make_cached_list_response(rows: list, total: int, limit: int, offset: int, latest_ts: Optional[str] = None):
    ids = [r.get('id') or r.get('uid') or r.get('orderId') for r in rows]
    etag = compute_etag(ids, total, limit, offset, latest_ts)
    resp = make_response(build_list_payload(rows, total, limit, offset))
    resp.headers['ETag'] = etag
    if latest_ts:
        http_date = _http_date(latest_ts)
        if http_date:
            resp.headers['Last-Modified'] = http_date
    return resp, etag


def handle_conditional(etag_value: str):
    """Return a 304 response when If-None-Match carries the current ETag, else None."""
    inm = request.headers.get('If-None-Match')
    if inm and inm.strip('"') == etag_value:
        resp = make_response('', 304)
        resp.headers['ETag'] = etag_value
        return resp
    return None


def list_response(rows: List[Dict[str, Any]], *ts_keys: str):
    """Paginate, tag and conditionally short-circuit a list endpoint."""
    page, total, limit, offset = paginate_rows(rows)
    latest = latest_timestamp(page, *ts_keys) if ts_keys else None
    resp, etag = make_cached_list_response(page, total, limit, offset, latest)
    cond = handle_conditional(etag)
    if cond:
        return cond
    return resp
