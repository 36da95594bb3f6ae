"""Repository for user accounts."""
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func

from database import App, Purchase, Review, User
from .base import BaseRepository


class UserRepository(BaseRepository):
    """Reads and writes :class:`database.User` rows."""

    def get(self, user_id: int) -> Optional[User]:
        return self.db.get(User, user_id)

    def find_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(func.lower(User.email) == email.lower()).first()

    def create(self, email: str, name: str, password_hash: str, role: str = 'user') -> User:
        return self.add(User(email=email, name=name, password=password_hash, role=role))

    def count(self, role: str = None) -> int:
        query = self.db.query(func.count(User.id))
        if role:
            query = query.filter(User.role == role)
        return query.scalar() or 0

    def list_page(self, offset: int, limit: int) -> Tuple[List[User], int]:
        """Return one page of users, newest first, plus the total count."""
        users = (self.db.query(User)
                 .order_by(User.created_at.desc(), User.id.desc())
                 .offset(offset).limit(limit).all())
        return users, self.count()

    def activity_counts(self, user_id: int) -> Dict[str, int]:
        """Count the apps, purchases and reviews that belong to *user_id*."""
        def _count(model, column):
            return self.db.query(func.count(model.id)).filter(column == user_id).scalar() or 0

        return {
            'apps': _count(App, App.developer_id),
            'purchases': _count(Purchase, Purchase.user_id),
            'reviews': _count(Review, Review.user_id),
        }
