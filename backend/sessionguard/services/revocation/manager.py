# sessionguard/services/revocation/manager.py
from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from enum import Enum

from sessionguard.services._shared.ports import RefreshStore

log = logging.getLogger(__name__)


class RevocationReason(str, Enum):
    REUSE_DETECTED = "reuse-detected"
    LOGOUT = "logout"
    LOGOUT_ALL = "logout-all"
    ADMIN = "admin"
    CHAIN_REVOKED = "chain-revoked"


class RevocationManager:
    """
    Bulk invalidation of refresh records.

    Every operation runs in one store unit of work, marks records
    ``revoked`` (never deletes them) and returns how many were newly revoked,
    so repeating a call is harmless and reports ``0``.
    """

    def __init__(self, store: RefreshStore, *, clock: Callable[[], datetime] | None = None) -> None:
        self.store = store
        self.clock = clock or (lambda: datetime.now(UTC))

    def revoke_chain(self, record_id: str, reason: RevocationReason | str) -> int:
        """Revoke every member of the chain containing ``record_id``."""
        reason = RevocationReason(reason)
        with self.store.atomic():
            count = self.store.revoke_chain(record_id, reason=reason.value, now=self.clock())
        self._emit("chain", reason, count, record_id=record_id)
        return count

    def revoke_all_for_user(self, user_id: str, reason: RevocationReason | str) -> int:
        """Revoke every chain owned by ``user_id``."""
        reason = RevocationReason(reason)
        with self.store.atomic():
            count = self.store.revoke_all_for_user(user_id, reason=reason.value, now=self.clock())
        self._emit("user", reason, count, user_id=user_id)
        return count

    def revoke_all_for_device(
        self, user_id: str, device_id: str | None, reason: RevocationReason | str
    ) -> int:
        """Revoke the chains of ``user_id`` bound to ``device_id``."""
        reason = RevocationReason(reason)
        with self.store.atomic():
            count = self.store.revoke_all_for_device(
                user_id, device_id, reason=reason.value, now=self.clock()
            )
        self._emit("device", reason, count, user_id=user_id, device_id=device_id)
        return count

    @staticmethod
    def _emit(scope: str, reason: RevocationReason, count: int, **fields: str | None) -> None:
        log.info(
            "Revoked %d refresh record(s) by %s (%s)",
            count,
            scope,
            reason.value,
            extra={"event": "auth.revoked", "reason": reason.value, "revoked_count": count, **fields},
        )
