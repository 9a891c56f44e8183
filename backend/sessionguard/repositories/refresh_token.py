"""Repository for refresh-token rows (persistence only, no rotation rules)."""

from __future__ import annotations

from datetime import datetime
from typing import cast

from sqlalchemy import or_, select, update

from sessionguard.models.refresh_token import RefreshToken
from sessionguard.repositories.base import BaseRepository, apply_sorting


class RefreshTokenRepository(BaseRepository[RefreshToken]):
    """Persistence-only repository for :class:`RefreshToken`.

    The conditional updates below are single statements whose ``WHERE``
    clause carries the expected state; the affected row count tells the
    caller whether it won the race.
    """

    model = RefreshToken

    def _sortable_fields(self):
        return {
            "issued_at": RefreshToken.issued_at,
            "expires_at": RefreshToken.expires_at,
        }

    def get_by_hash(self, token_hash: str) -> RefreshToken | None:
        stmt = (
            select(RefreshToken)
            .where(RefreshToken.token_hash == token_hash)
            .execution_options(populate_existing=True)
        )
        return cast(RefreshToken | None, self.session.execute(stmt).scalars().first())

    def exists(self, record_id: str, token_hash: str) -> bool:
        """Return ``True`` when either the id or the hash is already taken."""
        stmt = select(RefreshToken.id).where(
            or_(RefreshToken.id == record_id, RefreshToken.token_hash == token_hash)
        )
        return bool(self.session.execute(stmt.limit(1)).first())

    def predecessor_of(self, record_id: str, *, for_update: bool = False) -> RefreshToken | None:
        """Return the row whose ``replaced_by`` points at ``record_id``."""
        stmt = select(RefreshToken).where(RefreshToken.replaced_by == record_id)
        if for_update:
            stmt = stmt.with_for_update()
        stmt = stmt.execution_options(populate_existing=True)
        return cast(RefreshToken | None, self.session.execute(stmt).scalars().first())

    def mark_replaced_if_active(self, record_id: str, successor_id: str) -> bool:
        """Compare-and-swap ``active -> replaced``.

        :returns: ``True`` when this call performed the transition.
        """
        stmt = (
            update(RefreshToken)
            .where(RefreshToken.id == record_id, RefreshToken.status == "active")
            .values(status="replaced", replaced_by=successor_id)
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(stmt)
        return bool(result.rowcount == 1)

    def mark_revoked(self, record_ids: list[str], *, reason: str, now: datetime) -> int:
        """Revoke every not-yet-revoked row among ``record_ids``.

        :returns: Number of rows newly revoked.
        """
        if not record_ids:
            return 0
        stmt = (
            update(RefreshToken)
            .where(RefreshToken.id.in_(record_ids), RefreshToken.status != "revoked")
            .values(status="revoked", replaced_by=None, revoked_at=now, revoked_reason=reason)
            .execution_options(synchronize_session=False)
        )
        return int(self.session.execute(stmt).rowcount or 0)

    def ids_for_user(self, user_id: str) -> list[str]:
        """Lock and return the ids of every row owned by ``user_id``."""
        stmt = select(RefreshToken.id).where(RefreshToken.user_id == user_id).with_for_update()
        return list(self.session.execute(stmt).scalars().all())

    def ids_for_device(self, user_id: str, device_id: str | None) -> list[str]:
        """Lock and return the ids of a user's rows bound to ``device_id``."""
        device_clause = (
            RefreshToken.device_id.is_(None)
            if device_id is None
            else RefreshToken.device_id == device_id
        )
        stmt = (
            select(RefreshToken.id)
            .where(RefreshToken.user_id == user_id, device_clause)
            .with_for_update()
        )
        return list(self.session.execute(stmt).scalars().all())

    def list_for_user(self, user_id: str) -> list[RefreshToken]:
        """Return a user's rows, oldest first."""
        stmt = select(RefreshToken).where(RefreshToken.user_id == user_id)
        stmt = apply_sorting(
            stmt, self._sortable_fields(), ["issued_at"], pk_attr=self._pk_attr()
        ).execution_options(populate_existing=True)
        return list(self.session.execute(stmt).scalars().all())
