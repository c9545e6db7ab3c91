from __future__ import annotations
import secrets
import string

ALPHANUMERIC = string.ascii_uppercase + string.ascii_lowercase + string.digits


def random_alnum(length: int = 20) -> str:
    """Random id drawn from [A-Za-z0-9]; used for document ids, references and temp passwords."""
    return ''.join(secrets.choice(ALPHANUMERIC) for _ in range(length))

__all__ = ['random_alnum', 'ALPHANUMERIC']
