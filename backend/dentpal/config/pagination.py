"""Page window for list endpoints (``?limit=&offset=``)."""
DEFAULT_LIMIT = 50
MAX_LIMIT = 200


def _as_int(raw, default: int) -> int:
    # blank query values mean "not given"
    if raw is None or str(raw).strip() == '':
        return default
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ValueError('limit/offset must be int')


def normalize_pagination(limit_raw, offset_raw):
    """Clamp limit into [1, MAX_LIMIT] and offset to >= 0; raises ValueError on non-integers."""
    limit = min(max(_as_int(limit_raw, DEFAULT_LIMIT), 1), MAX_LIMIT)
    offset = max(_as_int(offset_raw, 0), 0)
    return limit, offset
