"""Capability names and role defaults for the dashboard permission map.
Extend cautiously; never rename a capability silently since stored permission maps key on it.
"""
from __future__ import annotations
from typing import Dict, Tuple

ROLE_ADMIN = 'admin'
ROLE_SELLER = 'seller'
ROLES = (ROLE_ADMIN, ROLE_SELLER)

CAPABILITIES: Tuple[str, ...] = (
    'dashboard',
    'bookings',
    'confirmation',
    'withdrawal',
    'access',
    'images',
    'users',
    'inventory',
    'seller-orders',
    'add-product',
    'product-qc',
    'reports',
    'warranty',
    'categories',
)

SELLER_DEFAULT_GRANTS = ('dashboard', 'bookings', 'seller-orders', 'add-product')

ROLE_DEFAULTS: Dict[str, Dict[str, bool]] = {
    ROLE_ADMIN: {c: True for c in CAPABILITIES},
    ROLE_SELLER: {c: c in SELLER_DEFAULT_GRANTS for c in CAPABILITIES},
}

# Account and user management never delegate to sub-accounts, whatever the grants say.
SUB_ACCOUNT_DENIED = ('access', 'users')


def role_default(role) -> Dict[str, bool]:
    """Default map for ``role``; unknown or missing roles grant nothing."""
    return dict(ROLE_DEFAULTS.get(role) or {c: False for c in CAPABILITIES})
