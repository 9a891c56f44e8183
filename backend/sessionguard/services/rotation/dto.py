# sessionguard/services/rotation/dto.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from sessionguard.services.tokens.dto import TokenPair


class RotationStatus(str, Enum):
    """Outcome of presenting a refresh token for rotation."""

    OK = "ok"
    INVALID_TOKEN = "invalid_token"
    EXPIRED_TOKEN = "expired_token"
    REVOKED_TOKEN = "revoked_token"
    REUSE_DETECTED = "reuse_detected"
    CONCURRENT_ROTATION = "concurrent_rotation"


@dataclass(frozen=True, slots=True)
class RotationOutcome:
    """
    Tagged result of :meth:`RotationEngine.rotate`.

    :param status: Outcome tag.
    :param pair: New token pair, set only when ``status`` is ``OK``.
    :param user_id: Owner of the presented token, when it could be resolved.
    :param revoked_count: Records revoked as a consequence (reuse detection).
    """

    status: RotationStatus
    pair: TokenPair | None = None
    user_id: str | None = None
    revoked_count: int = 0

    @property
    def ok(self) -> bool:
        return self.status is RotationStatus.OK
