"""
payments.py
===========
Client for the external payment processor (Stripe-compatible REST API).

Only the two calls the purchase workflow needs are implemented:

* ``create_intent(amount, currency, metadata)`` → ``POST /v1/payment_intents``
* ``retrieve_intent(intent_id)``                → ``GET  /v1/payment_intents/<id>``

The processor is the source of truth for "payment succeeded": the purchase
service trusts the returned ``status`` and ``metadata`` (user and app ids).

Configuration keys (``config.json``)::

    "stripe_secret_key": "sk_live_...",
    "stripe_api_base":   "https://api.stripe.com"
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import requests

from .config import is_placeholder_value
from .errors import UpstreamError

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT = 10  # seconds


@dataclass
class PaymentIntent:
    """Processor-side record of an in-progress charge."""
    id: str
    status: str
    amount: int                      # minor units (cents)
    currency: str
    client_secret: Optional[str] = None
    metadata: Dict[str, str] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.status == 'succeeded'

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> 'PaymentIntent':
        return cls(
            id=data.get('id', ''),
            status=data.get('status', ''),
            amount=int(data.get('amount') or 0),
            currency=(data.get('currency') or '').lower(),
            client_secret=data.get('client_secret'),
            metadata={str(k): str(v) for k, v in (data.get('metadata') or {}).items()},
        )


class StripePaymentClient:
    """Thin REST client for payment intents.

    Args:
        secret_key: Processor secret key, sent as a bearer token.
        api_base:   Base URL of the processor API.
        timeout:    HTTP request timeout in seconds.
    """

    def __init__(self, secret_key: str, api_base: str = 'https://api.stripe.com',
                 timeout: int = _DEFAULT_TIMEOUT) -> None:
        self._secret_key = secret_key
        self._api_base = api_base.rstrip('/')
        self._timeout = timeout
        self.session = requests.Session()

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'StripePaymentClient':
        return cls(config.get('stripe_secret_key', ''),
                   config.get('stripe_api_base', 'https://api.stripe.com'))

    @property
    def is_configured(self) -> bool:
        return not is_placeholder_value(self._secret_key)

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    def create_intent(self, amount: int, currency: str,
                      metadata: Dict[str, Any]) -> PaymentIntent:
        """Open a payment intent for *amount* minor units of *currency*."""
        form = {'amount': str(int(amount)), 'currency': currency.lower()}
        for key, value in metadata.items():
            form[f'metadata[{key}]'] = str(value)
        data = self._request('POST', '/v1/payment_intents', data=form)
        intent = PaymentIntent.from_api(data)
        logger.info("Created payment intent %s for %d %s", intent.id, intent.amount, intent.currency)
        return intent

    def retrieve_intent(self, intent_id: str) -> PaymentIntent:
        """Fetch the current state of the intent *intent_id*."""
        return PaymentIntent.from_api(self._request('GET', f'/v1/payment_intents/{intent_id}'))

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _request(self, method: str, path: str, data: Dict[str, str] = None) -> Dict[str, Any]:
        if not self.is_configured:
            raise UpstreamError('Payment processor is not configured')
        url = f'{self._api_base}{path}'
        try:
            resp = self.session.request(
                method, url, data=data, timeout=self._timeout,
                headers={'Authorization': f'Bearer {self._secret_key}'},
            )
        except requests.RequestException as e:
            logger.warning("Payment processor request failed: %s", e)
            raise UpstreamError(f'Payment processor unreachable: {e}') from e

        try:
            body = resp.json()
        except ValueError:
            body = {}
        if resp.status_code >= 400:
            message = (body.get('error') or {}).get('message') or f'HTTP {resp.status_code}'
            logger.warning("Payment processor error on %s %s: %s", method, path, message)
            raise UpstreamError(message)
        return body
