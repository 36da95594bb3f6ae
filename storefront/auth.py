"""Authentication boundary: password hashing, token issue, caller identity.

Everything past this module sees only an :class:`Identity` (user id + role);
tokens are bearer JWTs issued through Flask-JWT-Extended whose subject is the
user id and whose ``role`` claim is the user's role at issue time. The web
layer re-reads the stored role on every request, so the claim is advisory.
"""
from dataclasses import dataclass

from flask_jwt_extended import create_access_token, get_jwt, get_jwt_identity
from werkzeug.security import check_password_hash, generate_password_hash


@dataclass(frozen=True)
class Identity:
    """The authenticated caller as seen by the services."""
    user_id: int
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == 'admin'

    @property
    def is_developer(self) -> bool:
        return self.role in ('developer', 'admin')


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def verify_password(password_hash: str, password: str) -> bool:
    return check_password_hash(password_hash, password)


def issue_token(user) -> str:
    """Create a bearer token for *user*; must run inside an app context."""
    return create_access_token(identity=str(user.id), additional_claims={'role': user.role})


def current_identity() -> Identity:
    """Return the identity of the verified token in the current request."""
    return Identity(user_id=int(get_jwt_identity()), role=get_jwt().get('role', 'user'))
