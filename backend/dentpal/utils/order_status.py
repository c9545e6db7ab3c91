from __future__ import annotations
"""Canonical order status derived from the raw status fields of several schema generations.

Inputs come from ``shippingInfo.status``, ``paymentInfo.status`` and the
top-level ``status``; any may be missing. Rules are checked in order and the
first match wins. The stored value is never trusted, it is recomputed on read.
"""
from typing import Optional

COMPLETED = 'completed'
FAILED_DELIVERY = 'failed-delivery'
PROCESSING = 'processing'
TO_SHIP = 'to-ship'
CANCELLED = 'cancelled'
PENDING = 'pending'

CANONICAL_STATUSES = (COMPLETED, FAILED_DELIVERY, PROCESSING, TO_SHIP, CANCELLED, PENDING)

DONE_VALUES = frozenset({'delivered', 'completed', 'success', 'succeeded'})
FAILED_DELIVERY_VALUES = frozenset({'failed-delivery', 'delivery_failed', 'failed_delivery'})
IN_TRANSIT_VALUES = frozenset({'shipping', 'in_transit', 'in-transit', 'dispatched', 'out_for_delivery', 'out-for-delivery'})
READY_VALUES = frozenset({'confirmed', 'to_ship', 'to-ship', 'packed', 'ready_to_ship'})
PAID_VALUES = frozenset({'paid', 'success', 'succeeded'})
CANCELLED_VALUES = frozenset({'cancelled', 'canceled'})
PAYMENT_FAILED_VALUES = frozenset({'failed', 'payment_failed', 'refused'})
UNPAID_VALUES = frozenset({'pending', 'unpaid'})


def _norm(value) -> str:
    return str(value).lower() if value is not None else ''


def classify_order_status(shipping: Optional[str] = None, payment: Optional[str] = None, top: Optional[str] = None) -> str:
    shipping, payment, top = _norm(shipping), _norm(payment), _norm(top)
    if shipping in DONE_VALUES or top in DONE_VALUES:
        return COMPLETED
    if shipping in FAILED_DELIVERY_VALUES or top in FAILED_DELIVERY_VALUES:
        return FAILED_DELIVERY
    if shipping in IN_TRANSIT_VALUES:
        return PROCESSING
    if shipping in READY_VALUES or top in READY_VALUES or payment in PAID_VALUES:
        return TO_SHIP
    if top in CANCELLED_VALUES or payment in PAYMENT_FAILED_VALUES:
        return CANCELLED
    if payment in UNPAID_VALUES or top in UNPAID_VALUES:
        return PENDING
    return PENDING


__all__ = ['CANONICAL_STATUSES', 'classify_order_status']
