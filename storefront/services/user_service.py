"""Business logic for accounts: registration, login and the caller's profile."""
from typing import Any, Dict

from sqlalchemy.exc import IntegrityError

from database import User
from ..auth import Identity, hash_password, verify_password
from ..errors import ConflictError, NotFoundError, UnauthorizedError, ValidationError
from ..repositories.user_repository import UserRepository
from ..schemas import LoginRequest, ProfileUpdate, RegisterRequest
from .base import BaseService


class UserService(BaseService):
    """Account operations that act on the caller's own user row."""

    def __init__(self, users: UserRepository) -> None:
        super().__init__()
        self._users = users

    def register(self, payload: RegisterRequest) -> User:
        """Create a plain ``user`` account.

        Raises:
            ConflictError: when the email is already registered.
        """
        if self._users.find_by_email(payload.email) is not None:
            raise ConflictError('Email already registered')
        try:
            user = self._users.create(payload.email.lower(), payload.name,
                                      hash_password(payload.password))
        except IntegrityError as e:
            raise ConflictError('Email already registered') from e
        self._log.info("Registered user %s", user.id)
        return user

    def authenticate(self, payload: LoginRequest):
        """Return the user for valid credentials, or ``None``."""
        user = self._users.find_by_email(payload.email)
        if user is None or not verify_password(user.password, payload.password):
            return None
        return user

    def resolve(self, token_identity: Identity) -> Identity:
        """Re-read the caller's role so demotions and deletions apply at once."""
        user = self._users.get(token_identity.user_id)
        if user is None:
            raise UnauthorizedError('Account no longer exists')
        return Identity(user_id=user.id, role=user.role)

    def profile(self, caller: Identity) -> Dict[str, Any]:
        user = self._get(caller.user_id)
        data = user.to_dict()
        data['counts'] = self._users.activity_counts(user.id)
        return data

    def update_profile(self, caller: Identity, payload: ProfileUpdate) -> Dict[str, Any]:
        user = self._get(caller.user_id)
        if payload.name is not None:
            user.name = payload.name
            user = self._users.save(user)
        return user.to_dict()

    def upgrade_to_developer(self, caller: Identity) -> User:
        user = self._get(caller.user_id)
        if user.role != 'user':
            raise ValidationError('Only users can upgrade to developer')
        user.role = 'developer'
        self._log.info("User %s upgraded to developer", user.id)
        return self._users.save(user)

    def _get(self, user_id: int) -> User:
        user = self._users.get(user_id)
        if user is None:
            raise NotFoundError('User not found')
        return user
