"""Refresh-token record table backing the durable refresh store."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from sessionguard.core.extensions import db

from .base import ReprMixin, UTCDateTime


class RefreshToken(ReprMixin, db.Model):
    """
    One issued refresh token and its position in a rotation chain.

    Rows are never deleted; revocation and rotation only change ``status``.
    ``replaced_by`` is a plain indexed column (no foreign key) because the
    successor row is inserted after the predecessor is marked.

    Fields
    ------
    id : str
        Opaque identifier, equal to the refresh JWT ``jti``.
    user_id : str
        Owner identifier (string form of ``users.id``).
    token_hash : str
        SHA-256 hex digest of the raw token.
    device_id : str | None
        Client/session binding shared by every member of a chain.
    status : str
        ``active`` | ``replaced`` | ``revoked``.
    replaced_by : str | None
        Successor id; the index doubles as the reverse chain index.
    """

    __tablename__ = "refresh_tokens"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    token_hash: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    device_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    issued_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default="active", server_default="active"
    )
    replaced_by: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    revoked_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    revoked_reason: Mapped[str | None] = mapped_column(String(32), nullable=True)

    __table_args__ = (
        CheckConstraint("status IN ('active', 'replaced', 'revoked')", name="status_valid"),
        CheckConstraint(
            "(status = 'replaced') = (replaced_by IS NOT NULL)",
            name="replaced_by_iff_replaced",
        ),
        CheckConstraint(
            "(status = 'revoked') = (revoked_at IS NOT NULL AND revoked_reason IS NOT NULL)",
            name="revoked_fields_iff_revoked",
        ),
        Index("ix_refresh_tokens_user_device", "user_id", "device_id"),
    )
