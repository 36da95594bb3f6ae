"""Repository package - expose all concrete repositories from one import."""
from .user_repository import UserRepository
from .app_repository import AppRepository
from .purchase_repository import PurchaseRepository
from .review_repository import ReviewRepository

__all__ = [
    'UserRepository',
    'AppRepository',
    'PurchaseRepository',
    'ReviewRepository',
]
