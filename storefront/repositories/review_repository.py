"""Repository for app reviews."""
from typing import List, Optional, Tuple

from database import Review
from .base import BaseRepository


class ReviewRepository(BaseRepository):
    """Reads and writes :class:`database.Review` rows (one per user/app)."""

    def get(self, review_id: int) -> Optional[Review]:
        return self.db.get(Review, review_id)

    def find(self, user_id: int, app_id: int) -> Optional[Review]:
        return (self.db.query(Review)
                .filter(Review.user_id == user_id, Review.app_id == app_id)
                .first())

    def create(self, user_id: int, app_id: int, rating: int, text: str) -> Review:
        return self.add(Review(user_id=user_id, app_id=app_id, rating=rating, text=text))

    def list_for_app(self, app_id: int, offset: int = 0,
                     limit: int = 10) -> Tuple[List[Review], int]:
        """Return one page of the app's reviews, newest first, plus the total."""
        q = self.db.query(Review).filter(Review.app_id == app_id)
        total = q.count()
        reviews = (q.order_by(Review.created_at.desc(), Review.id.desc())
                   .offset(offset).limit(limit).all())
        return reviews, total
