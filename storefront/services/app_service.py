"""Business logic for developer-owned apps."""
import re
from typing import Any, Dict, List

from sqlalchemy.exc import IntegrityError

from database import App
from ..auth import Identity
from ..errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from ..repositories.app_repository import AppRepository
from ..schemas import AppCreate, AppUpdate, ScreenshotCreate, VersionCreate
from .base import BaseService

EDITABLE_STATUSES = ('draft', 'review')


def slugify(title: str) -> str:
    """Lowercase *title* and collapse every non-alphanumeric run into ``-``."""
    return re.sub(r'[^a-z0-9]+', '-', title.lower()).strip('-')


class AppService(BaseService):
    """Create, edit, submit and extend apps on behalf of their developer.

    Rules
    -----
    * Only developers (and admins) create apps; new apps start in ``draft``.
    * The slug is derived from the title and must be unique.
    * Title, description, category and price may change only while the app
      is ``draft`` or ``review``.
    * The owner moves ``draft → review``; everything after that is
      moderation (see :class:`ModerationService`).
    """

    def __init__(self, apps: AppRepository) -> None:
        super().__init__()
        self._apps = apps

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def create(self, caller: Identity, payload: AppCreate) -> Dict[str, Any]:
        if not caller.is_developer:
            raise ForbiddenError('Developer role required')
        slug = slugify(payload.title)
        if not slug:
            raise ValidationError('title: must contain at least one letter or digit')
        if self._apps.find_by_slug(slug) is not None:
            raise ConflictError('App with similar title already exists')
        try:
            app = self._apps.create(
                developer_id=caller.user_id, title=payload.title, slug=slug,
                description=payload.description, category=payload.category,
                price=payload.price,
            )
        except IntegrityError as e:
            raise ConflictError('App with similar title already exists') from e
        self._log.info("User %s created app %s (%s)", caller.user_id, app.id, slug)
        return app.to_dict()

    def update(self, caller: Identity, app_id: int, payload: AppUpdate) -> Dict[str, Any]:
        app = self._owned(caller, app_id)
        if app.status not in EDITABLE_STATUSES:
            raise ConflictError(f'App is {app.status} and can no longer be edited')
        changes = payload.model_dump(exclude_unset=True, exclude_none=True)
        if 'price' in changes:
            changes['price'] = round(float(changes['price']), 2)
        for field, value in changes.items():
            setattr(app, field, value)
        return self._apps.save(app).to_dict()

    def delete(self, caller: Identity, app_id: int) -> None:
        app = self._owned(caller, app_id)
        self._apps.delete(app)
        self._log.info("User %s deleted app %s", caller.user_id, app_id)

    def submit(self, caller: Identity, app_id: int) -> Dict[str, Any]:
        """Move a draft into the moderation queue."""
        app = self._owned(caller, app_id)
        if app.status != 'draft':
            raise ConflictError(f'Only draft apps can be submitted (app is {app.status})')
        app.status = 'review'
        self._log.info("App %s submitted for review", app_id)
        return self._apps.save(app).to_dict()

    def add_version(self, caller: Identity, app_id: int,
                    payload: VersionCreate) -> Dict[str, Any]:
        app = self._owned(caller, app_id)
        version = self._apps.add_version(
            app.id, payload.version, payload.file_url,
            changelog=payload.changelog, size=payload.size, checksum=payload.checksum,
        )
        return version.to_dict()

    def add_screenshot(self, caller: Identity, app_id: int,
                       payload: ScreenshotCreate) -> Dict[str, Any]:
        app = self._owned(caller, app_id)
        index = payload.order_index
        if index is None:
            index = self._apps.next_screenshot_index(app.id)
        return self._apps.add_screenshot(app.id, payload.file_url, index).to_dict()

    def developer_apps(self, caller: Identity) -> List[Dict[str, Any]]:
        """Return the caller's own apps with purchase and review counts."""
        if not caller.is_developer:
            raise ForbiddenError('Only developers can access this endpoint')
        apps = self._apps.list_by_developer(caller.user_id)
        counts = self._apps.sales_counts(a.id for a in apps)
        results = []
        for app in apps:
            data = app.to_dict(screenshot_limit=1)
            data['counts'] = counts[app.id]
            results.append(data)
        return results

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _owned(self, caller: Identity, app_id: int) -> App:
        app = self._apps.get(app_id)
        if app is None:
            raise NotFoundError('App not found')
        if app.developer_id != caller.user_id and not caller.is_admin:
            raise ForbiddenError('Unauthorized')
        return app
