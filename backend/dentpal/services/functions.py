from __future__ import annotations
"""HTTP client for the marketplace's serverless functions.

Two calling conventions exist:
  plain HTTPS endpoints  JSON body / query string in, JSON out
  callables              POST {"data": ...} -> {"result": ...}

Configuration comes from ``FUNCTIONS_BASE_URL`` or, when that is blank,
``https://{FUNCTIONS_REGION}-{FIREBASE_PROJECT_ID}.cloudfunctions.net``.
A missing base URL only fails when a call is attempted.
"""
import logging
from typing import Any, Dict, Mapping, Optional

import requests

log = logging.getLogger(__name__)

DEFAULT_REGION = 'asia-southeast1'
DEFAULT_TIMEOUT = 30


class FunctionsConfigError(RuntimeError):
    pass


class FunctionsError(Exception):
    """Non-2xx answer (or unusable body) from a function."""

    def __init__(self, endpoint: str, status: Optional[int], message: str, payload: Any = None):
        super().__init__(f"{endpoint} failed ({status}): {message}")
        self.endpoint = endpoint
        self.status = status
        self.message = message
        self.payload = payload


def build_base_url(base_url: Optional[str], project_id: Optional[str], region: Optional[str] = None) -> Optional[str]:
    if base_url and base_url.strip():
        return base_url.strip().rstrip('/')
    if project_id and project_id.strip():
        return f"https://{(region or DEFAULT_REGION).strip()}-{project_id.strip()}.cloudfunctions.net"
    return None


def _error_message(body: Any, fallback: str) -> str:
    if isinstance(body, dict):
        err = body.get('error')
        if isinstance(err, dict):
            return str(err.get('message') or err.get('status') or fallback)
        return str(body.get('message') or err or fallback)
    return fallback


class FunctionsClient:
    def __init__(self, base_url: Optional[str], auth_token: Optional[str] = None,
                 timeout: float = DEFAULT_TIMEOUT, session: Optional[requests.Session] = None):
        self.base_url = base_url
        self.auth_token = auth_token
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_config(cls, config: Mapping[str, Any], session: Optional[requests.Session] = None) -> 'FunctionsClient':
        base_url = build_base_url(
            config.get('FUNCTIONS_BASE_URL'),
            config.get('FIREBASE_PROJECT_ID'),
            config.get('FUNCTIONS_REGION'),
        )
        return cls(
            base_url,
            auth_token=config.get('FUNCTIONS_AUTH_TOKEN'),
            timeout=float(config.get('FUNCTIONS_TIMEOUT') or DEFAULT_TIMEOUT),
            session=session,
        )

    def _url(self, endpoint: str) -> str:
        if not self.base_url:
            raise FunctionsConfigError(
                'Functions client not configured: set FUNCTIONS_BASE_URL or FIREBASE_PROJECT_ID'
            )
        return f"{self.base_url}/{endpoint}"

    def _headers(self, auth_token: Optional[str]) -> Dict[str, str]:
        headers = {'Accept': 'application/json'}
        token = auth_token or self.auth_token
        if token:
            headers['Authorization'] = f"Bearer {token}"
        return headers

    def _request(self, method: str, endpoint: str, *, params=None, json=None, auth_token=None) -> Any:
        url = self._url(endpoint)
        try:
            resp = self.session.request(
                method, url, params=params, json=json, headers=self._headers(auth_token), timeout=self.timeout,
            )
        except requests.RequestException as e:
            log.warning('Function %s unreachable: %s', endpoint, e)
            raise FunctionsError(endpoint, None, str(e)) from e
        try:
            body = resp.json()
        except ValueError:
            body = None
        if not resp.ok:
            message = _error_message(body, f"HTTP {resp.status_code}")
            log.warning('Function %s returned %s: %s', endpoint, resp.status_code, message)
            raise FunctionsError(endpoint, resp.status_code, message, body)
        if body is None:
            raise FunctionsError(endpoint, resp.status_code, 'Response was not JSON')
        return body

    def call(self, name: str, data: Optional[Dict[str, Any]] = None, auth_token: Optional[str] = None) -> Any:
        """Invoke a callable function and return its ``result``."""
        body = self._request('POST', name, json={'data': data or {}}, auth_token=auth_token)
        if isinstance(body, dict) and 'error' in body and 'result' not in body:
            raise FunctionsError(name, 200, _error_message(body, 'Callable failed'), body)
        return body.get('result') if isinstance(body, dict) else body

    # --- payments ---
    def get_paymongo_transaction(self, transaction_id: str, auth_token: Optional[str] = None):
        body = self._request('GET', 'getPaymongoTransaction', params={'transactionId': transaction_id}, auth_token=auth_token)
        return body.get('data')

    def list_paymongo_transactions(self, limit: int = 10, auth_token: Optional[str] = None):
        body = self._request('GET', 'listPaymongoTransactions', params={'limit': limit}, auth_token=auth_token)
        return body.get('data') or []

    def process_withdrawal(self, withdrawal_id: str, auth_token: Optional[str] = None) -> Dict[str, Any]:
        return self._request('POST', 'processWithdrawal', json={'withdrawalId': withdrawal_id}, auth_token=auth_token)

    def check_withdrawal_status(self, withdrawal_id: str, auth_token: Optional[str] = None) -> Dict[str, Any]:
        return self._request('POST', 'checkWithdrawalStatus', json={'withdrawalId': withdrawal_id}, auth_token=auth_token)

    # --- shipping ---
    def create_jrs_shipping(self, request_body: Dict[str, Any], auth_token: Optional[str] = None) -> Dict[str, Any]:
        return self._request('POST', 'createJRSShipping', json=request_body, auth_token=auth_token)

    def track_jrs_shipment(self, order_id: Optional[str] = None, tracking_id: Optional[str] = None,
                           shipping_reference_no: Optional[str] = None, auth_token: Optional[str] = None):
        params = {k: v for k, v in {
            'orderId': order_id, 'trackingId': tracking_id, 'shippingReferenceNo': shipping_reference_no,
        }.items() if v}
        if not params:
            raise ValueError('orderId, trackingId or shippingReferenceNo required')
        return self._request('GET', 'trackJRSShipment', params=params, auth_token=auth_token)

    # --- partner provisioning (callables) ---
    def create_partner_user(self, email: str, name: str, role: str, permissions: Dict[str, bool]):
        return self.call('createPartnerUser', {'email': email, 'name': name, 'role': role, 'permissions': permissions})

    def update_partner_claims(self, uid: str, role: str, permissions: Dict[str, bool]):
        return self.call('updatePartnerClaims', {'uid': uid, 'role': role, 'permissions': permissions})

    def set_user_disabled(self, uid: str, disabled: bool):
        return self.call('setUserDisabled', {'uid': uid, 'disabled': disabled})

    def resend_invite(self, email: str):
        return self.call('resendInvite', {'email': email})

    def close(self):
        self.session.close()


__all__ = ['FunctionsClient', 'FunctionsConfigError', 'FunctionsError', 'build_base_url']
