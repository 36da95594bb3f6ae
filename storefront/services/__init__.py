"""Services package - expose all concrete services from one import."""
from .entitlement_service import EntitlementService
from .catalog_service import CatalogService
from .app_service import AppService
from .purchase_service import PurchaseService
from .moderation_service import ModerationService
from .review_service import ReviewService
from .user_service import UserService
from .admin_service import AdminService

from ..repositories import (
    AppRepository, PurchaseRepository, ReviewRepository, UserRepository,
)

__all__ = [
    'EntitlementService',
    'CatalogService',
    'AppService',
    'PurchaseService',
    'ModerationService',
    'ReviewService',
    'UserService',
    'AdminService',
    'Services',
    'build',
]


class Services:
    """All services bound to one database session.

    Route handlers build one of these per request so that every repository
    shares the request's session.
    """

    def __init__(self, db, processor, currency: str = 'usd') -> None:
        users = UserRepository(db)
        apps = AppRepository(db)
        purchases = PurchaseRepository(db)
        reviews = ReviewRepository(db)

        self.entitlements = EntitlementService(purchases)
        self.catalog = CatalogService(apps, reviews)
        self.apps = AppService(apps)
        self.purchases = PurchaseService(apps, purchases, self.entitlements,
                                         processor, currency=currency)
        self.moderation = ModerationService(apps)
        self.reviews = ReviewService(reviews, apps, self.entitlements)
        self.users = UserService(users)
        self.admin = AdminService(users, apps, purchases)


def build(db, processor, currency: str = 'usd') -> Services:
    return Services(db, processor, currency=currency)
