"""Ownership checks that gate downloads and reviews."""
from ..errors import ForbiddenError
from ..repositories.purchase_repository import PurchaseRepository
from .base import BaseService


class EntitlementService(BaseService):
    """Answers "does this user own this app?" from the purchase records.

    A user owns an app exactly when a :class:`database.Purchase` row exists
    for the pair.  Both methods are pure reads.
    """

    def __init__(self, purchases: PurchaseRepository) -> None:
        super().__init__()
        self._purchases = purchases

    def owns(self, user_id: int, app_id: int) -> bool:
        return bool(self._purchases.exists(user_id, app_id))

    def require(self, user_id: int, app_id: int,
                message: str = 'App not purchased') -> None:
        """Raise :class:`ForbiddenError` unless *user_id* owns *app_id*."""
        if not self.owns(user_id, app_id):
            raise ForbiddenError(message)
