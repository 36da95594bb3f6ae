"""Error taxonomy shared by services and the HTTP layer."""


class StorefrontError(Exception):
    """Base class for errors that are reported to the caller.

    ``status`` is the HTTP status the web layer answers with and ``kind`` the
    short machine-readable name placed in the error envelope.
    """

    status = 500
    kind = 'error'

    def __init__(self, message: str = '') -> None:
        super().__init__(message)
        self.message = message or self.__class__.__name__


class NotFoundError(StorefrontError):
    """Missing app, user, review or version."""
    status = 404
    kind = 'not_found'


class ConflictError(StorefrontError):
    """Duplicate purchase, review or slug, or an invalid state transition."""
    status = 409
    kind = 'conflict'


class ForbiddenError(StorefrontError):
    """Role or ownership mismatch."""
    status = 403
    kind = 'forbidden'


class ValidationError(StorefrontError):
    """Malformed input payload."""
    status = 400
    kind = 'validation'


class UpstreamError(StorefrontError):
    """The payment processor failed or reported a non-success status."""
    status = 502
    kind = 'upstream'


class UnauthorizedError(StorefrontError):
    """The token's account no longer exists."""
    status = 401
    kind = 'unauthorized'
