# comments in English; reST docstrings
from __future__ import annotations

from collections.abc import Callable, Iterable
from contextlib import AbstractContextManager, nullcontext
from dataclasses import dataclass
from datetime import datetime
from functools import wraps
from typing import Any, TypeVar

import redis  # type: ignore[import-untyped]
from redis.exceptions import RedisError, WatchError  # type: ignore[import-untyped]

from sessionguard.services._shared.errors import DuplicateIdError, StoreUnavailableError
from sessionguard.services._shared.ports import (
    RefreshRecord,
    RefreshStatus,
    RefreshStore,
    TransitionResult,
)

T = TypeVar("T")


def _s(value: Any, default: str | None = None) -> str | None:
    """Decode a Redis reply whether or not the client uses ``decode_responses``."""
    if value is None:
        return default
    if isinstance(value, bytes | bytearray):
        return value.decode()
    return str(value)


def _bounded(fn: Callable[..., T]) -> Callable[..., T]:
    @wraps(fn)
    def wrapper(*args: Any, **kwargs: Any) -> T:
        try:
            return fn(*args, **kwargs)
        except WatchError as exc:
            raise StoreUnavailableError("Refresh store is too contended. Retry.") from exc
        except RedisError as exc:
            raise StoreUnavailableError() from exc

    return wrapper


@dataclass(slots=True)
class RedisRefreshStore(RefreshStore):
    """
    Redis-backed refresh store.

    Layout (no TTLs; records are kept for reuse detection and audit):

    * ``rt:{id}``        hash with the record fields
    * ``rt:h:{hash}``    token hash -> id
    * ``rt:prev:{id}``   successor id -> predecessor id
    * ``rt:next:{id}``   predecessor id -> successor id (survives revocation)
    * ``rt:u:{user}``    set of the user's record ids

    Every mutation runs as a ``WATCH``/``MULTI``/``EXEC`` transaction on the
    record keys it depends on, retried at most ``max_retries`` times.
    Socket timeouts on the client bound each wait.

    :param r: A Redis client (already connected).
    :param max_retries: Optimistic transaction attempts before giving up.
    """

    r: redis.Redis
    max_retries: int = 16

    # -------------------- helpers --------------------

    @staticmethod
    def _k(record_id: str) -> str:
        return f"rt:{record_id}"

    @staticmethod
    def _kh(token_hash: str) -> str:
        return f"rt:h:{token_hash}"

    @staticmethod
    def _kprev(record_id: str) -> str:
        return f"rt:prev:{record_id}"

    @staticmethod
    def _knext(record_id: str) -> str:
        return f"rt:next:{record_id}"

    @staticmethod
    def _ku(user_id: str) -> str:
        return f"rt:u:{user_id}"

    @staticmethod
    def _to_mapping(record: RefreshRecord) -> dict[str, str]:
        mapping = {
            "id": record.id,
            "user_id": record.user_id,
            "token_hash": record.token_hash,
            "device_id": record.device_id,
            "issued_at": record.issued_at.isoformat(),
            "expires_at": record.expires_at.isoformat(),
            "status": record.status.value,
            "replaced_by": record.replaced_by,
            "revoked_at": record.revoked_at.isoformat() if record.revoked_at else None,
            "revoked_reason": record.revoked_reason,
        }
        return {k: v for k, v in mapping.items() if v is not None}

    @staticmethod
    def _from_hash(h: dict[Any, Any]) -> RefreshRecord | None:
        if not h:
            return None
        fields = {_s(k): _s(v) for k, v in h.items()}
        revoked_at = fields.get("revoked_at")
        return RefreshRecord(
            id=fields["id"],
            user_id=fields["user_id"],
            token_hash=fields["token_hash"],
            device_id=fields.get("device_id"),
            issued_at=datetime.fromisoformat(fields["issued_at"]),
            expires_at=datetime.fromisoformat(fields["expires_at"]),
            status=RefreshStatus(fields.get("status", "active")),
            replaced_by=fields.get("replaced_by"),
            revoked_at=datetime.fromisoformat(revoked_at) if revoked_at else None,
            revoked_reason=fields.get("revoked_reason"),
        )

    def _status(self, client: Any, record_id: str) -> str | None:
        return _s(client.hget(self._k(record_id), "status"))

    def _chain_ids(self, client: Any, record_id: str) -> list[str]:
        """Walk back through ``rt:prev`` then forward through ``rt:next``."""
        root = record_id
        seen = {root}
        while (prev := _s(client.get(self._kprev(root)))) is not None and prev not in seen:
            seen.add(prev)
            root = prev

        ids: list[str] = []
        current: str | None = root
        visited: set[str] = set()
        while current is not None and current not in visited:
            visited.add(current)
            ids.append(current)
            current = _s(client.get(self._knext(current)))
        return ids

    def _revoke_ids(
        self,
        select_ids: Callable[[Any], list[str]],
        watch_extra: Iterable[str],
        *,
        reason: str,
        now: datetime,
    ) -> int:
        for _ in range(self.max_retries):
            with self.r.pipeline() as p:
                try:
                    ids = select_ids(self.r)
                    p.watch(*[self._k(i) for i in ids], *watch_extra)
                    if select_ids(p) != ids:
                        continue
                    pending = [
                        i for i in ids if self._status(p, i) not in (None, RefreshStatus.REVOKED.value)
                    ]
                    p.multi()
                    for i in pending:
                        key = self._k(i)
                        p.hset(
                            key,
                            mapping={
                                "status": RefreshStatus.REVOKED.value,
                                "revoked_at": now.isoformat(),
                                "revoked_reason": reason,
                            },
                        )
                        p.hdel(key, "replaced_by")
                    p.execute()
                    return len(pending)
                except WatchError:
                    continue
        raise WatchError("revocation retries exhausted")

    # -------------------- API ------------------------

    def atomic(self) -> AbstractContextManager[object]:
        # Each mutation is its own optimistic transaction.
        return nullcontext()

    @_bounded
    def insert(self, record: RefreshRecord) -> None:
        k, kh = self._k(record.id), self._kh(record.token_hash)
        for _ in range(self.max_retries):
            with self.r.pipeline() as p:
                try:
                    p.watch(k, kh)
                    if p.exists(k) or p.exists(kh):
                        raise DuplicateIdError(record.id)
                    p.multi()
                    p.hset(k, mapping=self._to_mapping(record))
                    p.set(kh, record.id)
                    p.sadd(self._ku(record.user_id), record.id)
                    p.execute()
                    return
                except WatchError:
                    continue
        raise WatchError("insert retries exhausted")

    @_bounded
    def get(self, record_id: str) -> RefreshRecord | None:
        return self._from_hash(self.r.hgetall(self._k(record_id)))

    @_bounded
    def find_by_hash(self, token_hash: str) -> RefreshRecord | None:
        record_id = _s(self.r.get(self._kh(token_hash)))
        if record_id is None:
            return None
        return self._from_hash(self.r.hgetall(self._k(record_id)))

    @_bounded
    def transition_to_replaced(self, record_id: str, successor_id: str) -> TransitionResult:
        k = self._k(record_id)
        for _ in range(self.max_retries):
            with self.r.pipeline() as p:
                try:
                    p.watch(k)
                    status = self._status(p, record_id)
                    if status is None:
                        return TransitionResult.NOT_FOUND
                    if status != RefreshStatus.ACTIVE.value:
                        return TransitionResult.ALREADY_TRANSITIONED
                    p.multi()
                    p.hset(
                        k,
                        mapping={"status": RefreshStatus.REPLACED.value, "replaced_by": successor_id},
                    )
                    p.set(self._knext(record_id), successor_id)
                    p.set(self._kprev(successor_id), record_id)
                    p.execute()
                    return TransitionResult.OK
                except WatchError:
                    continue
        raise WatchError("transition retries exhausted")

    @_bounded
    def revoke_chain(self, record_id: str, *, reason: str, now: datetime) -> int:
        if not self.r.exists(self._k(record_id)):
            return 0
        return self._revoke_ids(
            lambda client: self._chain_ids(client, record_id),
            (),
            reason=reason,
            now=now,
        )

    def _user_ids(self, client: Any, user_id: str) -> list[str]:
        return sorted(_s(m) for m in client.smembers(self._ku(user_id)))

    @_bounded
    def revoke_all_for_user(self, user_id: str, *, reason: str, now: datetime) -> int:
        return self._revoke_ids(
            lambda client: self._user_ids(client, user_id),
            (self._ku(user_id),),
            reason=reason,
            now=now,
        )

    @_bounded
    def revoke_all_for_device(
        self, user_id: str, device_id: str | None, *, reason: str, now: datetime
    ) -> int:
        def select_ids(client: Any) -> list[str]:
            return [
                i
                for i in self._user_ids(client, user_id)
                if _s(client.hget(self._k(i), "device_id")) == device_id
            ]

        return self._revoke_ids(select_ids, (self._ku(user_id),), reason=reason, now=now)

    @_bounded
    def list_for_user(self, user_id: str) -> list[RefreshRecord]:
        records = [
            rec
            for i in self._user_ids(self.r, user_id)
            if (rec := self._from_hash(self.r.hgetall(self._k(i)))) is not None
        ]
        return sorted(records, key=lambda rec: (rec.issued_at, rec.id))
