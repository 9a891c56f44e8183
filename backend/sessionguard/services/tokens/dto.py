# sessionguard/services/tokens/dto.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


@dataclass(frozen=True, slots=True)
class Identity:
    """
    Authenticated user as seen by the token core.

    :param user_id: Subject identifier (string form).
    :param role: Authorization role carried in the access token.
    :param email: Contact email carried in the access token.
    :param name: Display name carried in the access token.
    """

    user_id: str
    role: str = "user"
    email: str | None = None
    name: str | None = None


@dataclass(frozen=True, slots=True)
class TokenLifetimes:
    """
    Token emission configuration.

    :param access: Access token lifetime (minutes-scale).
    :param refresh: Refresh token lifetime (days-scale).
    """

    access: timedelta = timedelta(minutes=10)
    refresh: timedelta = timedelta(days=14)


@dataclass(frozen=True, slots=True)
class AccessToken:
    token: str
    jti: str
    issued_at: datetime
    expires_at: datetime

    @property
    def expires_in(self) -> int:
        return int((self.expires_at - self.issued_at).total_seconds())


@dataclass(frozen=True, slots=True)
class IssuedRefreshToken:
    """
    A freshly signed refresh token, not yet persisted.

    :param raw: Encoded token handed to the client (never stored).
    :param id: Record identifier, equal to the token ``jti``.
    """

    raw: str
    id: str
    user_id: str
    device_id: str | None
    issued_at: datetime
    expires_at: datetime


@dataclass(frozen=True, slots=True)
class TokenPair:
    access: AccessToken
    refresh: IssuedRefreshToken


class VerifyStatus(str, Enum):
    VALID = "valid"
    EXPIRED = "expired"
    INVALID = "invalid"


@dataclass(frozen=True, slots=True)
class TokenVerification:
    """
    Tagged result of :meth:`TokenService.verify`.

    ``claims`` is populated for ``VALID`` and ``EXPIRED`` (the signature was
    good); ``reason`` explains an ``INVALID`` result for logs only.
    """

    status: VerifyStatus
    claims: dict[str, Any] = field(default_factory=dict)
    reason: str | None = None

    @property
    def is_valid(self) -> bool:
        return self.status is VerifyStatus.VALID
