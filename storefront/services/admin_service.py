"""Business logic for the admin panel: statistics and user management."""
from typing import Any, Dict

from ..auth import Identity
from ..errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from ..repositories.app_repository import AppRepository
from ..repositories.purchase_repository import PurchaseRepository
from ..repositories.user_repository import UserRepository
from .base import BaseService, offset_for, pagination


class AdminService(BaseService):
    """Admin-only operations.

    Every method re-checks the caller's role so the service is safe to use
    outside the HTTP layer as well.

    Deleting a user cascades to their purchases and reviews, but is refused
    while the user still owns apps: those would otherwise disappear from
    every buyer's library.
    """

    def __init__(self, users: UserRepository, apps: AppRepository,
                 purchases: PurchaseRepository) -> None:
        super().__init__()
        self._users = users
        self._apps = apps
        self._purchases = purchases

    def stats(self, caller: Identity) -> Dict[str, Any]:
        self._require_admin(caller)
        return {
            'users': {
                'total': self._users.count(),
                'developers': self._users.count(role='developer'),
            },
            'apps': {
                'total': self._apps.count(),
                'approved': self._apps.count(status='approved'),
                'pending': self._apps.count(status='review'),
            },
            'purchases': {
                'total': self._purchases.count(),
                'revenue': self._purchases.revenue(),
            },
        }

    def list_users(self, caller: Identity, page: int, limit: int) -> Dict[str, Any]:
        self._require_admin(caller)
        users, total = self._users.list_page(offset_for(page, limit), limit)
        results = []
        for user in users:
            data = user.to_dict()
            data['counts'] = self._users.activity_counts(user.id)
            results.append(data)
        return {'users': results, 'pagination': pagination(page, limit, total)}

    def delete_user(self, caller: Identity, user_id: int) -> None:
        self._require_admin(caller)
        if user_id == caller.user_id:
            raise ValidationError('Cannot delete your own account')
        user = self._users.get(user_id)
        if user is None:
            raise NotFoundError('User not found')
        if user.apps:
            raise ConflictError('User still owns apps; delete or reassign them first')
        self._users.delete(user)
        self._log.info("Admin %s deleted user %s", caller.user_id, user_id)

    def set_role(self, caller: Identity, user_id: int, role: str) -> Dict[str, Any]:
        self._require_admin(caller)
        if user_id == caller.user_id:
            raise ValidationError('Cannot change your own role')
        user = self._users.get(user_id)
        if user is None:
            raise NotFoundError('User not found')
        user.role = role
        user = self._users.save(user)
        self._log.info("Admin %s set role of user %s to %s", caller.user_id, user_id, role)
        return user.to_dict()

    @staticmethod
    def _require_admin(caller: Identity) -> None:
        if not caller.is_admin:
            raise ForbiddenError('Admin role required')
