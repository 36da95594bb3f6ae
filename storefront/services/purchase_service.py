"""Business logic for the purchase workflow.

States::

    no-intent ──create_intent──▶ intent-created ──(client pays)──▶
    payment-confirmed ──confirm──▶ purchase-recorded

Free apps skip the processor: ``create_intent`` records the purchase at once
and ``download`` claims an unowned free app on the fly.
"""
from typing import Any, Dict, List

from database import App
from ..auth import Identity
from ..errors import ConflictError, ForbiddenError, NotFoundError, UpstreamError
from ..payments import StripePaymentClient
from ..repositories.app_repository import AppRepository
from ..repositories.purchase_repository import PurchaseRepository
from .base import BaseService
from .entitlement_service import EntitlementService


def to_minor_units(price: float) -> int:
    """Convert a catalog price to processor minor units (cents)."""
    return int(round(float(price) * 100))


class PurchaseService(BaseService):
    """Opens payment intents and reconciles confirmed payments into purchases.

    Rules
    -----
    * The charged amount is always computed from the stored catalog price.
    * Only ``approved`` apps can be bought, and only once per user.
    * Confirmation trusts the processor's status and metadata; the intent's
      user must be the caller.
    * Confirmation is idempotent: the purchase is inserted, and if the unique
      constraints reject it the existing row is returned instead.
    """

    def __init__(self, apps: AppRepository, purchases: PurchaseRepository,
                 entitlements: EntitlementService, processor: StripePaymentClient,
                 currency: str = 'usd') -> None:
        super().__init__()
        self._apps = apps
        self._purchases = purchases
        self._entitlements = entitlements
        self._processor = processor
        self._currency = currency

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def create_intent(self, caller: Identity, app_id: int) -> Dict[str, Any]:
        app = self._purchasable(app_id)
        if self._entitlements.owns(caller.user_id, app.id):
            raise ConflictError('You already own this app')

        if to_minor_units(app.price) == 0:
            purchase = self.claim_free(caller, app)
            return {'requiresPayment': False, 'amount': 0.0,
                    'purchase': purchase.to_dict(include_app=True)}

        intent = self._processor.create_intent(
            amount=to_minor_units(app.price),
            currency=self._currency,
            metadata={'user_id': caller.user_id, 'app_id': app.id},
        )
        return {
            'requiresPayment': True,
            'clientSecret': intent.client_secret,
            'paymentIntentId': intent.id,
            'amount': round(float(app.price), 2),
            'currency': intent.currency or self._currency,
        }

    def confirm(self, caller: Identity, intent_id: str) -> Dict[str, Any]:
        intent = self._processor.retrieve_intent(intent_id)
        if not intent.succeeded:
            raise UpstreamError(f'Payment not completed (status: {intent.status or "unknown"})')

        try:
            user_id = int(intent.metadata.get('user_id', ''))
            app_id = int(intent.metadata.get('app_id', ''))
        except ValueError as e:
            raise UpstreamError('Payment intent is missing purchase metadata') from e
        if user_id != caller.user_id:
            raise ForbiddenError('Unauthorized')
        if self._apps.get(app_id) is None:
            raise NotFoundError('App not found')

        purchase, created = self._purchases.insert_or_fetch(
            user_id=user_id,
            app_id=app_id,
            amount=intent.amount / 100,
            currency=intent.currency or self._currency,
            payment_ref=intent.id,
        )
        if created:
            self._log.info("Recorded purchase %s: user %s bought app %s via %s",
                           purchase.id, user_id, app_id, intent.id)
        return purchase.to_dict(include_app=True)

    def claim_free(self, caller: Identity, app: App):
        """Record a zero-amount purchase for a free app (idempotent)."""
        purchase, created = self._purchases.insert_or_fetch(
            user_id=caller.user_id, app_id=app.id, amount=0.0, currency=self._currency,
        )
        if created:
            self._log.info("User %s claimed free app %s", caller.user_id, app.id)
        return purchase

    def my_purchases(self, caller: Identity) -> List[Dict[str, Any]]:
        return [p.to_dict(include_app=True)
                for p in self._purchases.list_for_user(caller.user_id)]

    def check(self, caller: Identity, app_id: int) -> Dict[str, bool]:
        return {'owned': self._entitlements.owns(caller.user_id, app_id)}

    def download(self, caller: Identity, app_id: int) -> Dict[str, Any]:
        if not self._entitlements.owns(caller.user_id, app_id):
            app = self._apps.get(app_id)
            if app is not None and app.status == 'approved' and to_minor_units(app.price) == 0:
                self.claim_free(caller, app)
            else:
                raise ForbiddenError('App not purchased')

        version = self._apps.latest_version(app_id)
        if version is None:
            raise NotFoundError('No app version available')
        return {
            'downloadUrl': version.file_url,
            'version': version.version,
            'size': version.size,
            'checksum': version.checksum,
        }

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _purchasable(self, app_id: int) -> App:
        app = self._apps.get(app_id)
        if app is None or app.status != 'approved':
            raise NotFoundError('App not found')
        return app
