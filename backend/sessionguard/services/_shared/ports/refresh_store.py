from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import AbstractContextManager, contextmanager, nullcontext
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum, auto
from typing import Protocol
from uuid import uuid4

from sessionguard.services._shared.errors import DuplicateIdError, StoreUnavailableError


class RefreshStatus(str, Enum):
    """Lifecycle state of a refresh record."""

    ACTIVE = "active"
    REPLACED = "replaced"
    REVOKED = "revoked"


class TransitionResult(Enum):
    """Outcome of the ``active -> replaced`` compare-and-swap."""

    OK = auto()
    ALREADY_TRANSITIONED = auto()
    NOT_FOUND = auto()


@dataclass(frozen=True, slots=True)
class RefreshRecord:
    """
    Durable record of one issued refresh token.

    :ivar id: Opaque token identifier (also the refresh JWT ``jti``).
    :ivar user_id: Owner user id.
    :ivar token_hash: SHA-256 digest of the raw token; never the token itself.
    :ivar device_id: Optional client/session binding of the chain.
    :ivar issued_at: Issuance instant (UTC).
    :ivar expires_at: Absolute expiry (UTC).
    :ivar status: Current lifecycle state.
    :ivar replaced_by: Successor id, set only while ``status`` is ``replaced``.
    :ivar revoked_at: Revocation instant, set only while ``status`` is ``revoked``.
    :ivar revoked_reason: Revocation reason, set only while ``status`` is ``revoked``.
    """

    id: str
    user_id: str
    token_hash: str
    device_id: str | None
    issued_at: datetime
    expires_at: datetime
    status: RefreshStatus = RefreshStatus.ACTIVE
    replaced_by: str | None = None
    revoked_at: datetime | None = None
    revoked_reason: str | None = None

    @property
    def is_active(self) -> bool:
        return self.status is RefreshStatus.ACTIVE

    def replaced_with(self, successor_id: str) -> RefreshRecord:
        return replace(self, status=RefreshStatus.REPLACED, replaced_by=successor_id)

    def revoked(self, *, reason: str, now: datetime) -> RefreshRecord:
        return replace(
            self,
            status=RefreshStatus.REVOKED,
            replaced_by=None,
            revoked_at=now,
            revoked_reason=reason,
        )


class RefreshStore(Protocol):
    """
    Durable store of every refresh record ever issued.

    ``transition_to_replaced`` MUST be linearizable per record id: among
    concurrent callers for the same id at most one observes ``OK``.
    Mutations performed inside :meth:`atomic` are committed together.
    Any bounded wait that times out raises :class:`StoreUnavailableError`.
    """

    def new_id(self) -> str:
        """Generate a new random record identifier."""
        return uuid4().hex

    def atomic(self) -> AbstractContextManager[object]:
        """Delimit a unit of work (commit on success, rollback on error)."""
        ...

    def insert(self, record: RefreshRecord) -> None:
        """
        Persist a new record.

        :raises DuplicateIdError: If ``record.id`` already exists.
        """

    def get(self, record_id: str) -> RefreshRecord | None:
        """Fetch a record by id."""

    def find_by_hash(self, token_hash: str) -> RefreshRecord | None:
        """Fetch a record by the digest of its raw token."""

    def transition_to_replaced(self, record_id: str, successor_id: str) -> TransitionResult:
        """Atomically move ``record_id`` from ``active`` to ``replaced``."""
        ...

    def revoke_chain(self, record_id: str, *, reason: str, now: datetime) -> int:
        """
        Revoke every member of the rotation chain containing ``record_id``.

        :returns: Number of records newly revoked.
        """
        ...

    def revoke_all_for_user(self, user_id: str, *, reason: str, now: datetime) -> int:
        """Revoke every record of ``user_id``. :returns: Records newly revoked."""
        ...

    def revoke_all_for_device(
        self, user_id: str, device_id: str | None, *, reason: str, now: datetime
    ) -> int:
        """Revoke every record of ``user_id`` bound to ``device_id``."""
        ...

    def list_for_user(self, user_id: str) -> list[RefreshRecord]:
        """List all records of a user, oldest first."""
        ...


class InMemoryRefreshStore(RefreshStore):
    """
    Process-local refresh store.

    A single lock serializes every operation, which makes the transition a
    true compare-and-swap. Lock acquisition is bounded by ``timeout`` seconds.

    .. note::
       Suitable for tests and single-process deployments only.
    """

    def __init__(self, *, timeout: float = 2.0) -> None:
        self._by_id: dict[str, RefreshRecord] = {}
        self._by_hash: dict[str, str] = {}
        self._by_successor: dict[str, str] = {}
        self._by_user: dict[str, list[str]] = {}
        self._lock = threading.Lock()
        self._timeout = timeout

    # ------------------------- helpers -------------------------

    @contextmanager
    def _locked(self) -> Iterator[None]:
        if not self._lock.acquire(timeout=self._timeout):
            raise StoreUnavailableError("Timed out waiting for the refresh store lock.")
        try:
            yield
        finally:
            self._lock.release()

    def _chain_ids(self, record_id: str) -> list[str]:
        """Collect chain members: back via the successor index, then forward."""
        root = record_id
        seen = {root}
        while root in self._by_successor:
            root = self._by_successor[root]
            if root in seen:
                break
            seen.add(root)

        ids: list[str] = []
        current: str | None = root
        visited: set[str] = set()
        while current is not None and current not in visited:
            visited.add(current)
            ids.append(current)
            rec = self._by_id.get(current)
            nxt = rec.replaced_by if rec else None
            # revoked members lost their forward link; fall back to the index
            if nxt is None:
                nxt = next((s for s, p in self._by_successor.items() if p == current), None)
            current = nxt
        return ids

    def _revoke_ids(self, ids: list[str], *, reason: str, now: datetime) -> int:
        count = 0
        for rid in ids:
            rec = self._by_id.get(rid)
            if rec is None or rec.status is RefreshStatus.REVOKED:
                continue
            self._by_id[rid] = rec.revoked(reason=reason, now=now)
            count += 1
        return count

    # -------------------------- API ----------------------------

    def atomic(self) -> AbstractContextManager[object]:
        return nullcontext()

    def insert(self, record: RefreshRecord) -> None:
        with self._locked():
            if record.id in self._by_id or record.token_hash in self._by_hash:
                raise DuplicateIdError(record.id)
            self._by_id[record.id] = record
            self._by_hash[record.token_hash] = record.id
            self._by_user.setdefault(record.user_id, []).append(record.id)

    def get(self, record_id: str) -> RefreshRecord | None:
        with self._locked():
            return self._by_id.get(record_id)

    def find_by_hash(self, token_hash: str) -> RefreshRecord | None:
        with self._locked():
            rid = self._by_hash.get(token_hash)
            return self._by_id.get(rid) if rid else None

    def transition_to_replaced(self, record_id: str, successor_id: str) -> TransitionResult:
        with self._locked():
            rec = self._by_id.get(record_id)
            if rec is None:
                return TransitionResult.NOT_FOUND
            if not rec.is_active:
                return TransitionResult.ALREADY_TRANSITIONED
            self._by_id[record_id] = rec.replaced_with(successor_id)
            self._by_successor[successor_id] = record_id
            return TransitionResult.OK

    def revoke_chain(self, record_id: str, *, reason: str, now: datetime) -> int:
        with self._locked():
            if record_id not in self._by_id:
                return 0
            return self._revoke_ids(self._chain_ids(record_id), reason=reason, now=now)

    def revoke_all_for_user(self, user_id: str, *, reason: str, now: datetime) -> int:
        with self._locked():
            return self._revoke_ids(list(self._by_user.get(user_id, [])), reason=reason, now=now)

    def revoke_all_for_device(
        self, user_id: str, device_id: str | None, *, reason: str, now: datetime
    ) -> int:
        with self._locked():
            ids = [
                rid
                for rid in self._by_user.get(user_id, [])
                if self._by_id[rid].device_id == device_id
            ]
            return self._revoke_ids(ids, reason=reason, now=now)

    def list_for_user(self, user_id: str) -> list[RefreshRecord]:
        with self._locked():
            return [self._by_id[rid] for rid in self._by_user.get(user_id, [])]
