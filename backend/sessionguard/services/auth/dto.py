# sessionguard/services/auth/dto.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

# ---------------------------- Input DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class LoginIn:
    """
    Input DTO for login.

    :param email: User email (normalized).
    :param password: Raw password (to be verified).
    :param device_id: Optional client binding for the new chain.
    """

    email: str
    password: str
    device_id: str | None = None


@dataclass(frozen=True, slots=True)
class RefreshIn:
    """
    Input DTO for token refresh.

    :param refresh_token: Encoded refresh JWT, as read from the cookie.
    """

    refresh_token: str


@dataclass(frozen=True, slots=True)
class LogoutIn:
    """
    Input DTO for logout.

    :param user_id: Authenticated caller.
    :param device_id: Device binding of the caller's access token.
    :param all_sessions: If True, revoke every chain of the user.
    """

    user_id: str
    device_id: str | None = None
    all_sessions: bool = False


# --------------------------- Output DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class UserOut:
    id: int
    email: str
    username: str
    full_name: str | None
    role: str


@dataclass(frozen=True, slots=True)
class SessionOut:
    """
    A live refresh chain head as shown to its owner (never the token hash).
    """

    id: str
    device_id: str | None
    issued_at: datetime
    expires_at: datetime
