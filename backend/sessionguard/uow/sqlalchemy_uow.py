"""
SQLAlchemy implementation of UnitOfWork for Flask.
"""

from __future__ import annotations

from contextlib import suppress

from sqlalchemy import event
from sqlalchemy.orm import Session

from sessionguard.core.extensions import db
from sessionguard.repositories import RefreshTokenRepository, UserRepository
from sessionguard.uow.base import UnitOfWork


class SQLAlchemyRepositoryContainer:
    """Provide repository instances that share a SQLAlchemy session."""

    def __init__(self, *, session: Session) -> None:
        self.session = session
        self.users = UserRepository(session=self.session)
        self.refresh_tokens = RefreshTokenRepository(session=self.session)


class SQLAlchemyUnitOfWork(SQLAlchemyRepositoryContainer, UnitOfWork):
    """
    SQLAlchemy-backed UoW using the Flask-scoped session.

    The same session is shared across all repositories for a consistent
    transaction. Nested use is allowed: only the outermost scope commits.
    """

    def __init__(self, session: Session | None = None) -> None:
        super().__init__(session=session if session is not None else db.session())
        self._owner = False

    def __enter__(self) -> SQLAlchemyUnitOfWork:
        # The session starts lazily on the first statement; the outermost
        # scope is the one that commits.
        info = self.session.info
        self._owner = not info.get("uow_active", False)
        info["uow_active"] = True
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if not self._owner:
            return
        try:
            if exc_type is None:
                try:
                    self.commit()
                except Exception:
                    self.rollback()
                    raise
            else:
                self.rollback()
        finally:
            self.session.info.pop("uow_active", None)

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()


class SQLAlchemyReadOnlyUnitOfWork(SQLAlchemyRepositoryContainer, UnitOfWork):
    """
    Read-only Unit of Work backed by the Flask-scoped SQLAlchemy session.

    Installs a flush guard for the lifetime of the scope and always rolls
    back on exit when it owns the transaction. ``commit()`` is disallowed.
    """

    def __init__(self, session: Session | None = None) -> None:
        super().__init__(session=session if session is not None else db.session())
        self._owner = False

    def __enter__(self) -> SQLAlchemyReadOnlyUnitOfWork:
        self._owner = not self.session.info.get("uow_active", False)
        event.listen(self.session, "before_flush", self._before_flush)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        with suppress(Exception):
            event.remove(self.session, "before_flush", self._before_flush)
        if self._owner:
            self.session.rollback()

    @staticmethod
    def _before_flush(session, flush_context, instances) -> None:
        if session.new or session.dirty or session.deleted:
            raise RuntimeError(
                "Read-only UnitOfWork: ORM flush blocked (new/dirty/deleted objects present)."
            )

    def commit(self) -> None:
        """
        Disallow commit in read-only Unit of Work.

        :raises RuntimeError: always, to prevent accidental writes.
        """
        raise RuntimeError("Read-only UnitOfWork does not allow commit().")

    def rollback(self) -> None:
        self.session.rollback()
