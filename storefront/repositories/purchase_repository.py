"""Repository for purchases, the entitlement records."""
from typing import List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from database import Purchase
from .base import BaseRepository


class PurchaseRepository(BaseRepository):
    """Reads and writes :class:`database.Purchase` rows.

    The ``(user_id, app_id)`` and ``payment_ref`` unique constraints are what
    keep a user from owning an app twice; :meth:`insert_or_fetch` relies on
    them instead of checking first.
    """

    def find(self, user_id: int, app_id: int) -> Optional[Purchase]:
        return (self.db.query(Purchase)
                .filter(Purchase.user_id == user_id, Purchase.app_id == app_id)
                .first())

    def exists(self, user_id: int, app_id: int) -> bool:
        return self.db.query(
            self.db.query(Purchase.id)
            .filter(Purchase.user_id == user_id, Purchase.app_id == app_id)
            .exists()
        ).scalar()

    def find_by_ref(self, payment_ref: str) -> Optional[Purchase]:
        return self.db.query(Purchase).filter(Purchase.payment_ref == payment_ref).first()

    def insert_or_fetch(self, user_id: int, app_id: int, amount: float,
                        currency: str, payment_ref: str = None) -> Tuple[Purchase, bool]:
        """Record a purchase, or return the row that already exists.

        Returns:
            ``(purchase, created)``; *created* is ``False`` when a unique
            constraint rejected the insert and the existing row was returned.
        """
        purchase = Purchase(user_id=user_id, app_id=app_id, amount=round(float(amount), 2),
                            currency=currency, payment_ref=payment_ref)
        try:
            return self.add(purchase), True
        except IntegrityError:
            existing = self.find(user_id, app_id)
            if existing is None and payment_ref:
                existing = self.find_by_ref(payment_ref)
            if existing is None:
                raise
            self._log.info("Purchase for user %s / app %s already recorded (id=%s)",
                           user_id, app_id, existing.id)
            return existing, False

    def list_for_user(self, user_id: int) -> List[Purchase]:
        return (self.db.query(Purchase).filter(Purchase.user_id == user_id)
                .order_by(Purchase.created_at.desc(), Purchase.id.desc()).all())

    def count(self) -> int:
        return self.db.query(func.count(Purchase.id)).scalar() or 0

    def revenue(self) -> float:
        return round(float(self.db.query(func.sum(Purchase.amount)).scalar() or 0), 2)
