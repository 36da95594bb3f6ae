"""Business logic for admin moderation of submitted apps."""
from typing import Any, Dict

from ..auth import Identity
from ..errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from ..repositories.app_repository import AppRepository
from .base import BaseService, offset_for, pagination

# current status -> statuses an admin may move it to
TRANSITIONS = {
    'review': ('approved', 'rejected'),
}
MODERATION_QUEUE_SCREENSHOTS = 3


class ModerationService(BaseService):
    """Moves apps out of the ``review`` queue.

    Only admins may call :meth:`set_status`, and only ``review → approved``
    and ``review → rejected`` exist; approved and rejected apps are final.
    """

    def __init__(self, apps: AppRepository) -> None:
        super().__init__()
        self._apps = apps

    def set_status(self, caller: Identity, app_id: int, status: str) -> Dict[str, Any]:
        if not caller.is_admin:
            raise ForbiddenError('Admin role required')
        target = (status or '').strip().lower()
        if target not in ('approved', 'rejected'):
            raise ValidationError('Status must be APPROVED or REJECTED')

        app = self._apps.get(app_id)
        if app is None:
            raise NotFoundError('App not found')
        if target not in TRANSITIONS.get(app.status, ()):
            raise ConflictError(f'Cannot move app from {app.status} to {target}')

        app.status = target
        app = self._apps.save(app)
        self._log.info("Admin %s %s app %s (%s)", caller.user_id, target, app.id, app.slug)
        return app.to_dict()

    def pending(self, page: int, limit: int) -> Dict[str, Any]:
        """Return the moderation queue, oldest submission first."""
        apps, total = self._apps.list_by_status('review', offset_for(page, limit), limit)
        results = []
        for app in apps:
            data = app.to_dict(screenshot_limit=MODERATION_QUEUE_SCREENSHOTS)
            data['developer']['email'] = app.developer.email if app.developer else None
            results.append(data)
        return {'apps': results, 'pagination': pagination(page, limit, total)}
