"""Repository base class used by all concrete repositories."""
import logging
from typing import Any

from sqlalchemy.orm import Session


class BaseRepository:
    """Provides session-bound persistence for one aggregate.

    Sub-classes query through ``self.db`` and call :meth:`_commit` after a
    write.  Every write is a single-row change, so each one is committed on
    its own; a failed commit is rolled back before the error propagates so
    the session stays usable for the rest of the request.
    """

    def __init__(self, db: Session) -> None:
        self.db = db
        self._log = logging.getLogger(f'storefront.repository.{type(self).__name__}')

    def _commit(self) -> None:
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    def add(self, obj: Any) -> Any:
        """Insert *obj*, commit, and return it refreshed from the database."""
        self.db.add(obj)
        self._commit()
        self.db.refresh(obj)
        return obj

    def save(self, obj: Any) -> Any:
        """Commit pending changes on an already-attached *obj*."""
        self._commit()
        self.db.refresh(obj)
        return obj

    def delete(self, obj: Any) -> None:
        """Delete *obj* (and whatever its relationships cascade to)."""
        self.db.delete(obj)
        self._commit()
