"""Business logic for the public catalog."""
from typing import Any, Dict, List

from ..errors import NotFoundError
from ..repositories.app_repository import AppRepository
from ..repositories.review_repository import ReviewRepository
from ..schemas import CatalogQuery
from .base import BaseService, offset_for, pagination

LISTING_SCREENSHOTS = 5
DETAIL_REVIEWS = 10


class CatalogService(BaseService):
    """Search, detail and category listing over approved apps.

    Rules
    -----
    * Only ``approved`` apps are ever visible here.
    * Every result carries ``averageRating`` (``None`` without reviews) and
      ``totalReviews``; ratings for a whole page come from one grouped
      aggregate query.
    """

    def __init__(self, apps: AppRepository, reviews: ReviewRepository) -> None:
        super().__init__()
        self._apps = apps
        self._reviews = reviews

    def search(self, params: CatalogQuery) -> Dict[str, Any]:
        apps, total = self._apps.search(
            status='approved',
            query=params.query,
            category=params.category,
            min_price=params.min_price,
            max_price=params.max_price,
            sort_by=params.sort_by,
            offset=offset_for(params.page, params.limit),
            limit=params.limit,
        )
        return {
            'apps': self._with_ratings(apps, screenshot_limit=LISTING_SCREENSHOTS),
            'pagination': pagination(params.page, params.limit, total),
        }

    def detail(self, slug: str) -> Dict[str, Any]:
        app = self._apps.find_by_slug(slug)
        if app is None or app.status != 'approved':
            raise NotFoundError('App not found')

        data = self._with_ratings([app])[0]
        version = self._apps.latest_version(app.id)
        data['currentVersion'] = version.to_dict() if version else None
        reviews, _ = self._reviews.list_for_app(app.id, 0, DETAIL_REVIEWS)
        data['reviews'] = [r.to_dict() for r in reviews]
        return data

    def categories(self) -> List[str]:
        return self._apps.categories('approved')

    def _with_ratings(self, apps, screenshot_limit: int = None) -> List[Dict[str, Any]]:
        summary = self._apps.rating_summary(a.id for a in apps)
        results = []
        for app in apps:
            avg, count = summary.get(app.id, (None, 0))
            data = app.to_dict(screenshot_limit=screenshot_limit)
            data['averageRating'] = avg
            data['totalReviews'] = count
            results.append(data)
        return results
