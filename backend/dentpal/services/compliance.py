from __future__ import annotations
"""Warranty & compliance option lists (``WarrantyandCompliance``).

Built-in defaults are overridden per list by the stored documents
``DangerousGoods``, ``WarrantyType`` and ``WarrantyDuration``.
"""
import logging
import time
from typing import Callable, Dict, List

from dentpal.schema.catalog import normalize_options
from dentpal.store.base import DocumentStore, Subscription

log = logging.getLogger(__name__)

COLLECTION = 'WarrantyandCompliance'

COMPLIANCE_DEFAULTS: Dict[str, List[Dict[str, str]]] = {
    'dangerousGoods': [
        {'value': 'none', 'label': 'None'},
        {'value': 'dangerous', 'label': 'Contains Battery / Flammable / Liquid'},
    ],
    'warrantyTypes': [
        {'value': 'local_manufacturer', 'label': 'Local Manufacturer Warranty'},
        {'value': 'intl_manufacturer', 'label': 'International Manufacturer Warranty'},
        {'value': 'local_supplier', 'label': 'Local Supplier Warranty'},
        {'value': 'local_supplier_refund', 'label': 'Local Supplier Refund Warranty'},
        {'value': 'none', 'label': 'No warranty'},
        {'value': 'intl_seller', 'label': 'International Seller Warranty'},
    ],
    'durations': [
        {'value': '1w', 'label': '1 week'},
        {'value': '2w', 'label': '2 weeks'},
        {'value': '1m', 'label': '1 month'},
        {'value': '2m', 'label': '2 months'},
        {'value': '3m', 'label': '3 months'},
        {'value': '11m', 'label': '11 months'},
        {'value': '30y', 'label': '30 years'},
    ],
}

# stored document id -> options key
DOCUMENTS = {
    'DangerousGoods': 'dangerousGoods',
    'WarrantyType': 'warrantyTypes',
    'WarrantyDuration': 'durations',
}

SEED_OPTIONS = {
    'DangerousGoods': COMPLIANCE_DEFAULTS['dangerousGoods'],
    'WarrantyType': [o['label'] for o in COMPLIANCE_DEFAULTS['warrantyTypes']],
    'WarrantyDuration': [o['label'] for o in COMPLIANCE_DEFAULTS['durations']],
}


def _defaults() -> Dict[str, List[Dict[str, str]]]:
    return {k: [dict(o) for o in v] for k, v in COMPLIANCE_DEFAULTS.items()}


def get_options(store: DocumentStore) -> Dict[str, List[Dict[str, str]]]:
    options = _defaults()
    for doc_id, key in DOCUMENTS.items():
        snap = store.get(COLLECTION, doc_id)
        if snap is not None:
            options[key] = normalize_options(snap.data)
    return options


class _ComplianceListener:
    def __init__(self, store: DocumentStore, callback: Callable[[Dict[str, List[Dict[str, str]]]], None]):
        self.callback = callback
        self.current = _defaults()
        callback(self.current)
        self.subs = [
            store.listen_document(COLLECTION, doc_id, self._handler(key))
            for doc_id, key in DOCUMENTS.items()
        ]

    def _handler(self, key: str):
        def on_snapshot(snap):
            if snap is None:
                return
            self.current = {**self.current, key: normalize_options(snap.data)}
            self.callback(self.current)
        return on_snapshot

    def cancel(self):
        for sub in self.subs:
            sub.unsubscribe()


def listen(store: DocumentStore, callback: Callable[[Dict[str, List[Dict[str, str]]]], None]) -> Subscription:
    """Emit defaults immediately, then again each time a stored list appears or changes."""
    listener = _ComplianceListener(store, callback)
    return Subscription(listener.cancel)


def seed_defaults(store: DocumentStore) -> List[str]:
    now = int(time.time() * 1000)
    batch = store.batch()
    for doc_id, options in SEED_OPTIONS.items():
        batch.set(COLLECTION, doc_id, {'options': options, 'updatedAt': now}, merge=True)
    batch.commit()
    log.info('Seeded %d compliance option documents', len(SEED_OPTIONS))
    return list(SEED_OPTIONS)
