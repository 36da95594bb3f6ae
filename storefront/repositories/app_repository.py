"""Repository for catalog apps, their versions and screenshots."""
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy import func

from database import App, AppVersion, Purchase, Review, Screenshot
from .base import BaseRepository


def _like_pattern(text: str) -> str:
    escaped = text.replace('\\', '\\\\').replace('%', '\\%').replace('_', '\\_')
    return f'%{escaped}%'


class AppRepository(BaseRepository):
    """Reads and writes :class:`database.App` rows and their children."""

    # ------------------------------------------------------------------
    # Apps
    # ------------------------------------------------------------------

    def get(self, app_id: int) -> Optional[App]:
        return self.db.get(App, app_id)

    def find_by_slug(self, slug: str) -> Optional[App]:
        return self.db.query(App).filter(App.slug == slug).first()

    def create(self, developer_id: int, title: str, slug: str, description: str,
               category: str, price: float, status: str = 'draft') -> App:
        return self.add(App(
            developer_id=developer_id, title=title, slug=slug,
            description=description, category=category,
            price=round(float(price), 2), status=status,
        ))

    def search(self, status: str, query: str = None, category: str = None,
               min_price: float = None, max_price: float = None,
               sort_by: str = 'newest', offset: int = 0,
               limit: int = 12) -> Tuple[List[App], int]:
        """Filter, sort and page the apps in *status*.

        Returns:
            ``(apps, total)`` where *total* counts every match, not just the
            page.
        """
        q = self.db.query(App).filter(App.status == status)
        if query:
            pattern = _like_pattern(query)
            q = q.filter(App.title.ilike(pattern, escape='\\') |
                         App.description.ilike(pattern, escape='\\'))
        if category:
            q = q.filter(App.category == category)
        if min_price is not None:
            q = q.filter(App.price >= min_price)
        if max_price is not None:
            q = q.filter(App.price <= max_price)

        total = q.order_by(None).count()

        newest = (App.created_at.desc(), App.id.desc())
        if sort_by == 'oldest':
            q = q.order_by(App.created_at.asc(), App.id.asc())
        elif sort_by == 'price-low':
            q = q.order_by(App.price.asc(), *newest)
        elif sort_by == 'price-high':
            q = q.order_by(App.price.desc(), *newest)
        elif sort_by == 'rating':
            ratings = (self.db.query(Review.app_id.label('app_id'),
                                     func.avg(Review.rating).label('avg_rating'))
                       .group_by(Review.app_id).subquery())
            q = (q.outerjoin(ratings, ratings.c.app_id == App.id)
                 .order_by(ratings.c.avg_rating.is_(None),
                           ratings.c.avg_rating.desc(), *newest))
        else:
            q = q.order_by(*newest)

        return q.offset(offset).limit(limit).all(), total

    def rating_summary(self, app_ids: Iterable[int]) -> Dict[int, Tuple[Optional[float], int]]:
        """Return ``{app_id: (average_rating, review_count)}`` in one query.

        Apps without reviews map to ``(None, 0)``.
        """
        ids = list(app_ids)
        summary: Dict[int, Tuple[Optional[float], int]] = {i: (None, 0) for i in ids}
        if not ids:
            return summary
        rows = (self.db.query(Review.app_id, func.avg(Review.rating), func.count(Review.id))
                .filter(Review.app_id.in_(ids))
                .group_by(Review.app_id).all())
        for app_id, avg, count in rows:
            summary[app_id] = (round(float(avg), 2) if avg is not None else None, count)
        return summary

    def categories(self, status: str) -> List[str]:
        rows = self.db.query(App.category).filter(App.status == status).distinct().all()
        return sorted(r[0] for r in rows)

    def list_by_developer(self, developer_id: int) -> List[App]:
        return (self.db.query(App).filter(App.developer_id == developer_id)
                .order_by(App.created_at.desc(), App.id.desc()).all())

    def list_by_status(self, status: str, offset: int, limit: int) -> Tuple[List[App], int]:
        """Return apps in *status*, oldest first (moderation queue order)."""
        q = self.db.query(App).filter(App.status == status)
        total = q.count()
        apps = q.order_by(App.created_at.asc(), App.id.asc()).offset(offset).limit(limit).all()
        return apps, total

    def count(self, status: str = None) -> int:
        query = self.db.query(func.count(App.id))
        if status:
            query = query.filter(App.status == status)
        return query.scalar() or 0

    def sales_counts(self, app_ids: Iterable[int]) -> Dict[int, Dict[str, int]]:
        """Return ``{app_id: {'purchases': n, 'reviews': m}}``."""
        ids = list(app_ids)
        counts = {i: {'purchases': 0, 'reviews': 0} for i in ids}
        if not ids:
            return counts
        for key, model in (('purchases', Purchase), ('reviews', Review)):
            rows = (self.db.query(model.app_id, func.count(model.id))
                    .filter(model.app_id.in_(ids)).group_by(model.app_id).all())
            for app_id, n in rows:
                counts[app_id][key] = n
        return counts

    # ------------------------------------------------------------------
    # Versions and screenshots (append-only)
    # ------------------------------------------------------------------

    def latest_version(self, app_id: int) -> Optional[AppVersion]:
        return (self.db.query(AppVersion).filter(AppVersion.app_id == app_id)
                .order_by(AppVersion.created_at.desc(), AppVersion.id.desc()).first())

    def add_version(self, app_id: int, version: str, file_url: str,
                    changelog: str = '', size: int = 0, checksum: str = '') -> AppVersion:
        return self.add(AppVersion(app_id=app_id, version=version, file_url=file_url,
                                   changelog=changelog, size=size, checksum=checksum))

    def next_screenshot_index(self, app_id: int) -> int:
        current = (self.db.query(func.max(Screenshot.order_index))
                   .filter(Screenshot.app_id == app_id).scalar())
        return 0 if current is None else current + 1

    def add_screenshot(self, app_id: int, file_url: str, order_index: int) -> Screenshot:
        return self.add(Screenshot(app_id=app_id, file_url=file_url, order_index=order_index))
