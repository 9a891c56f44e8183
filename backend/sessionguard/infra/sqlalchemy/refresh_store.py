# sessionguard/infra/sqlalchemy/refresh_store.py
from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime
from functools import wraps
from typing import Any, TypeVar

from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session

from sessionguard.core.extensions import db
from sessionguard.models.refresh_token import RefreshToken
from sessionguard.repositories.refresh_token import RefreshTokenRepository
from sessionguard.services._shared.errors import DuplicateIdError, StoreUnavailableError
from sessionguard.services._shared.ports import (
    RefreshRecord,
    RefreshStatus,
    RefreshStore,
    TransitionResult,
)
from sessionguard.uow.sqlalchemy_uow import SQLAlchemyUnitOfWork

T = TypeVar("T")

_UNAVAILABLE = (OperationalError, InterfaceError, PoolTimeoutError)


def _bounded(fn: Callable[..., T]) -> Callable[..., T]:
    """Surface connectivity/pool failures as :class:`StoreUnavailableError`."""

    @wraps(fn)
    def wrapper(*args: Any, **kwargs: Any) -> T:
        try:
            return fn(*args, **kwargs)
        except _UNAVAILABLE as exc:
            raise StoreUnavailableError() from exc

    return wrapper


def to_record(row: RefreshToken) -> RefreshRecord:
    return RefreshRecord(
        id=row.id,
        user_id=row.user_id,
        token_hash=row.token_hash,
        device_id=row.device_id,
        issued_at=row.issued_at,
        expires_at=row.expires_at,
        status=RefreshStatus(row.status),
        replaced_by=row.replaced_by,
        revoked_at=row.revoked_at,
        revoked_reason=row.revoked_reason,
    )


class SQLAlchemyRefreshStore(RefreshStore):
    """
    Durable refresh store on the application database.

    * The compare-and-swap is one conditional ``UPDATE ... WHERE status =
      'active'``; the database serializes writers on the row, so only one
      caller sees a row count of 1.
    * Chain walks lock every visited row (``SELECT ... FOR UPDATE`` where the
      dialect supports it) before revoking.
    * Methods flush but never commit; :meth:`atomic` opens a
      :class:`SQLAlchemyUnitOfWork` that commits on success.

    :param session_factory: Returns the session to use. Defaults to the
        Flask-scoped session.
    """

    def __init__(self, session_factory: Callable[[], Session] | None = None) -> None:
        self._session_factory = session_factory or (lambda: db.session())

    @property
    def repo(self) -> RefreshTokenRepository:
        return RefreshTokenRepository(session=self._session_factory())

    @contextmanager
    def atomic(self) -> Iterator[SQLAlchemyUnitOfWork]:
        try:
            with SQLAlchemyUnitOfWork(self._session_factory()) as uow:
                yield uow
        except _UNAVAILABLE as exc:
            raise StoreUnavailableError() from exc

    # ------------------------------------------------------------------ #
    # Reads
    # ------------------------------------------------------------------ #

    @_bounded
    def get(self, record_id: str) -> RefreshRecord | None:
        row = self.repo.get(record_id)
        return to_record(row) if row else None

    @_bounded
    def find_by_hash(self, token_hash: str) -> RefreshRecord | None:
        row = self.repo.get_by_hash(token_hash)
        return to_record(row) if row else None

    @_bounded
    def list_for_user(self, user_id: str) -> list[RefreshRecord]:
        return [to_record(row) for row in self.repo.list_for_user(user_id)]

    # ------------------------------------------------------------------ #
    # Writes
    # ------------------------------------------------------------------ #

    @_bounded
    def insert(self, record: RefreshRecord) -> None:
        repo = self.repo
        if repo.exists(record.id, record.token_hash):
            raise DuplicateIdError(record.id)
        row = RefreshToken(
            id=record.id,
            user_id=record.user_id,
            token_hash=record.token_hash,
            device_id=record.device_id,
            issued_at=record.issued_at,
            expires_at=record.expires_at,
            status=record.status.value,
            replaced_by=record.replaced_by,
            revoked_at=record.revoked_at,
            revoked_reason=record.revoked_reason,
        )
        try:
            repo.add(row)
        except IntegrityError as exc:
            # lost a race on the primary key or the hash
            repo.session.rollback()
            raise DuplicateIdError(record.id) from exc

    @_bounded
    def transition_to_replaced(self, record_id: str, successor_id: str) -> TransitionResult:
        repo = self.repo
        if repo.mark_replaced_if_active(record_id, successor_id):
            return TransitionResult.OK
        if repo.get(record_id) is None:
            return TransitionResult.NOT_FOUND
        return TransitionResult.ALREADY_TRANSITIONED

    @_bounded
    def revoke_chain(self, record_id: str, *, reason: str, now: datetime) -> int:
        repo = self.repo
        origin = repo.get_for_update(record_id)
        if origin is None:
            return 0

        ids = [origin.id]
        seen = {origin.id}

        # backward through the replaced_by index
        cursor = origin
        while (prev := repo.predecessor_of(cursor.id, for_update=True)) is not None:
            if prev.id in seen:
                break
            seen.add(prev.id)
            ids.append(prev.id)
            cursor = prev

        # forward through replaced_by
        cursor = origin
        while cursor.replaced_by and cursor.replaced_by not in seen:
            nxt = repo.get_for_update(cursor.replaced_by)
            if nxt is None:
                break
            seen.add(nxt.id)
            ids.append(nxt.id)
            cursor = nxt

        return repo.mark_revoked(ids, reason=reason, now=now)

    @_bounded
    def revoke_all_for_user(self, user_id: str, *, reason: str, now: datetime) -> int:
        repo = self.repo
        return repo.mark_revoked(repo.ids_for_user(user_id), reason=reason, now=now)

    @_bounded
    def revoke_all_for_device(
        self, user_id: str, device_id: str | None, *, reason: str, now: datetime
    ) -> int:
        repo = self.repo
        return repo.mark_revoked(repo.ids_for_device(user_id, device_id), reason=reason, now=now)
