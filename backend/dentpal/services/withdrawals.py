from __future__ import annotations
"""Seller payout requests (``Withdrawal`` collection).

Lifecycle:
  pending -> approved | rejected
  approved -> processing | failed
  processing -> completed | failed

Every transition reads the current status and writes the new one inside one
store transaction, so two admins acting at once cannot both succeed.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from flask import abort

from dentpal.store.base import DocumentStore
from dentpal.utils.fsm import TransitionValidator
from dentpal.utils.tokens import random_alnum

log = logging.getLogger(__name__)

COLLECTION = 'Withdrawal'
CURRENCY = 'PHP'
REFERENCE_LENGTH = 20

STATUS_PENDING = 'pending'
STATUS_APPROVED = 'approved'
STATUS_PROCESSING = 'processing'
STATUS_COMPLETED = 'completed'
STATUS_REJECTED = 'rejected'
STATUS_FAILED = 'failed'
ALL_STATUSES = (STATUS_PENDING, STATUS_APPROVED, STATUS_PROCESSING, STATUS_COMPLETED, STATUS_REJECTED, STATUS_FAILED)

WITHDRAWAL_FSM = TransitionValidator({
    STATUS_PENDING: {STATUS_APPROVED, STATUS_REJECTED},
    STATUS_APPROVED: {STATUS_PROCESSING, STATUS_FAILED},
    STATUS_PROCESSING: {STATUS_COMPLETED, STATUS_FAILED},
    STATUS_COMPLETED: set(),
    STATUS_REJECTED: set(),
    STATUS_FAILED: set(),
})

RECEIVER_REQUIRED = ('bankAccountName', 'bankAccountNumber', 'bankCode', 'bankName')


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _row(snap) -> Dict[str, Any]:
    return snap.to_dict()


def _newest_first(rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return sorted(rows, key=lambda r: r.get('createdAt') or '', reverse=True)


def create_request(store: DocumentStore, seller_id: str, seller_name: str, seller_email: str,
                   amount: Any, receiver: Optional[Dict[str, Any]], description: Optional[str] = None) -> Dict[str, Any]:
    try:
        amount = float(amount)
    except (TypeError, ValueError):
        abort(400, description='amount must be a number')
    if amount <= 0:
        abort(400, description='amount must be greater than zero')
    receiver = receiver or {}
    missing = [k for k in RECEIVER_REQUIRED if not str(receiver.get(k) or '').strip()]
    if missing:
        abort(400, description=f"receiver.{', receiver.'.join(missing)} required")
    now = _now()
    data = {
        'sellerId': seller_id,
        'sellerName': seller_name,
        'sellerEmail': seller_email,
        'amount': amount,
        'currency': CURRENCY,
        'description': description or None,
        'receiver': {
            'bankAccountName': receiver['bankAccountName'],
            'bankAccountNumber': receiver['bankAccountNumber'],
            'bankCode': receiver['bankCode'],
            'bankId': receiver.get('bankId') or None,
            'bankName': receiver['bankName'],
        },
        'status': STATUS_PENDING,
        'referenceNumber': random_alnum(REFERENCE_LENGTH),
        'createdAt': now,
        'updatedAt': now,
    }
    doc_id = store.add(COLLECTION, data)
    log.info('Withdrawal %s requested by seller %s for %.2f', doc_id, seller_id, amount)
    return {'id': doc_id, **data}


def get(store: DocumentStore, withdrawal_id: str) -> Optional[Dict[str, Any]]:
    snap = store.get(COLLECTION, withdrawal_id)
    return _row(snap) if snap else None


def get_or_404(store: DocumentStore, withdrawal_id: str) -> Dict[str, Any]:
    row = get(store, withdrawal_id)
    if row is None:
        abort(404, description='Withdrawal request not found')
    return row


def list_for_seller(store: DocumentStore, seller_id: str) -> List[Dict[str, Any]]:
    return _newest_first([_row(s) for s in store.query(COLLECTION, [('sellerId', '==', seller_id)])])


def list_all(store: DocumentStore) -> List[Dict[str, Any]]:
    return _newest_first([_row(s) for s in store.query(COLLECTION)])


def list_by_status(store: DocumentStore, status: str) -> List[Dict[str, Any]]:
    return _newest_first([_row(s) for s in store.query(COLLECTION, [('status', '==', status)])])


def pending_count(store: DocumentStore) -> int:
    return len(store.query(COLLECTION, [('status', '==', STATUS_PENDING)]))


def _transition(store: DocumentStore, withdrawal_id: str, target: str, fields: Dict[str, Any]) -> Dict[str, Any]:
    def _apply(tx):
        snap = tx.get(COLLECTION, withdrawal_id)
        if snap is None:
            abort(404, description='Withdrawal request not found')
        WITHDRAWAL_FSM.assert_can_transition(snap.data.get('status'), target)
        patch = {'status': target, **fields, 'updatedAt': _now()}
        tx.update(COLLECTION, withdrawal_id, patch)
        return {**snap.to_dict(), **patch}

    row = store.run_transaction(_apply)
    log.info('Withdrawal %s -> %s', withdrawal_id, target)
    return row


def approve(store: DocumentStore, withdrawal_id: str, admin_uid: str) -> Dict[str, Any]:
    return _transition(store, withdrawal_id, STATUS_APPROVED, {
        'approvedBy': admin_uid,
        'approvedAt': _now(),
    })


def reject(store: DocumentStore, withdrawal_id: str, admin_uid: str, reason: str) -> Dict[str, Any]:
    reason = reason.strip() if isinstance(reason, str) else ''
    if not reason:
        abort(400, description='reason required')
    return _transition(store, withdrawal_id, STATUS_REJECTED, {
        'rejectedBy': admin_uid,
        'rejectedAt': _now(),
        'rejectionReason': reason,
    })


def mark_processing(store: DocumentStore, withdrawal_id: str, transaction_id: str,
                    transfer_id: Optional[str] = None, provider: Optional[str] = None) -> Dict[str, Any]:
    return _transition(store, withdrawal_id, STATUS_PROCESSING, {
        'paymongoTransactionId': transaction_id,
        'paymongoTransferId': transfer_id,
        'provider': provider,
    })


def mark_completed(store: DocumentStore, withdrawal_id: str, net_amount: Any) -> Dict[str, Any]:
    try:
        net_amount = float(net_amount)
    except (TypeError, ValueError):
        abort(400, description='netAmount must be a number')
    return _transition(store, withdrawal_id, STATUS_COMPLETED, {
        'netAmount': net_amount,
        'completedAt': _now(),
    })


def mark_failed(store: DocumentStore, withdrawal_id: str, provider_error: str,
                provider_error_code: Optional[str] = None) -> Dict[str, Any]:
    return _transition(store, withdrawal_id, STATUS_FAILED, {
        'providerError': provider_error,
        'providerErrorCode': provider_error_code,
    })


def process_via_provider(store: DocumentStore, functions, withdrawal_id: str,
                         auth_token: Optional[str] = None) -> Dict[str, Any]:
    """Ask the payout function to send an approved withdrawal; the function records the outcome."""
    row = get_or_404(store, withdrawal_id)
    WITHDRAWAL_FSM.assert_can_transition(row.get('status'), STATUS_PROCESSING)
    result = functions.process_withdrawal(withdrawal_id, auth_token=auth_token)
    return {'withdrawal': get(store, withdrawal_id), 'transaction': result.get('transaction')}


def check_provider_status(store: DocumentStore, functions, withdrawal_id: str,
                          auth_token: Optional[str] = None) -> Dict[str, Any]:
    get_or_404(store, withdrawal_id)
    result = functions.check_withdrawal_status(withdrawal_id, auth_token=auth_token)
    return {
        'withdrawal': get(store, withdrawal_id),
        'withdrawalStatus': result.get('withdrawalStatus'),
        'transaction': result.get('transaction'),
    }
