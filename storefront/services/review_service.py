"""Business logic for app reviews."""
from typing import Any, Dict

from sqlalchemy.exc import IntegrityError

from database import Review
from ..auth import Identity
from ..errors import ConflictError, ForbiddenError, NotFoundError
from ..repositories.app_repository import AppRepository
from ..repositories.review_repository import ReviewRepository
from ..schemas import ReviewCreate, ReviewUpdate
from .base import BaseService, offset_for, pagination
from .entitlement_service import EntitlementService


class ReviewService(BaseService):
    """Validates and applies review operations.

    Rules
    -----
    * ``rating`` is an integer in **1–5** and ``text`` 10–500 characters
      (enforced by the request schemas).
    * Only owners of the app may review it, once.
    * Only the author edits a review; the author or an admin deletes it.
    """

    def __init__(self, reviews: ReviewRepository, apps: AppRepository,
                 entitlements: EntitlementService) -> None:
        super().__init__()
        self._reviews = reviews
        self._apps = apps
        self._entitlements = entitlements

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def create(self, caller: Identity, payload: ReviewCreate) -> Dict[str, Any]:
        if self._apps.get(payload.app_id) is None:
            raise NotFoundError('App not found')
        self._entitlements.require(caller.user_id, payload.app_id,
                                   'You can only review apps you have purchased')
        if self._reviews.find(caller.user_id, payload.app_id) is not None:
            raise ConflictError('You have already reviewed this app')
        try:
            review = self._reviews.create(caller.user_id, payload.app_id,
                                          payload.rating, payload.text)
        except IntegrityError as e:
            raise ConflictError('You have already reviewed this app') from e
        return review.to_dict()

    def update(self, caller: Identity, review_id: int, payload: ReviewUpdate) -> Dict[str, Any]:
        review = self._get(review_id)
        if review.user_id != caller.user_id:
            raise ForbiddenError('Unauthorized')
        review.rating = payload.rating
        review.text = payload.text
        return self._reviews.save(review).to_dict()

    def delete(self, caller: Identity, review_id: int) -> None:
        review = self._get(review_id)
        author_id = review.user_id
        if author_id != caller.user_id and not caller.is_admin:
            raise ForbiddenError('Unauthorized')
        self._reviews.delete(review)
        if author_id != caller.user_id:
            self._log.info("Admin %s removed review %s", caller.user_id, review_id)

    def list_for_app(self, app_id: int, page: int, limit: int) -> Dict[str, Any]:
        reviews, total = self._reviews.list_for_app(app_id, offset_for(page, limit), limit)
        return {
            'reviews': [r.to_dict() for r in reviews],
            'pagination': pagination(page, limit, total),
        }

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _get(self, review_id: int) -> Review:
        review = self._reviews.get(review_id)
        if review is None:
            raise NotFoundError('Review not found')
        return review
