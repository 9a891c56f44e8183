"""
Domain-level exceptions used within the service layer.

These exceptions are **framework-agnostic** and never import Flask or HTTP
helpers. They are stable contracts between the token core (codec, stores,
rotation) and the application services.

The translation to HTTP responses (RFC 7807) is handled by
``sessionguard.core.errors`` via :func:`~sessionguard.services._shared.base.translate_exceptions`.

Expected token outcomes (expired access token, bad signature at the gate,
stale refresh token) are *not* modelled as exceptions inside the core: the
TokenService and RotationEngine return tagged results. The exceptions below
are raised where an outcome must abort a use case.
"""

from __future__ import annotations

from dataclasses import dataclass

# --------------------------------------------------------------------------- #
# Base types
# --------------------------------------------------------------------------- #


class ServiceError(Exception):
    """
    Base class for all service-level errors.

    :cvar code: Stable machine-readable identifier surfaced to clients.
    """

    code: str = "bad_request"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message())

    @classmethod
    def default_message(cls) -> str:
        return (cls.__doc__ or cls.__name__).strip().splitlines()[0]

    @property
    def message(self) -> str:
        return str(self)


@dataclass(slots=True)
class NotFoundError(ServiceError):
    """
    Raised when an entity is not found in the repository.

    :param entity: Entity name (e.g., "User").
    :param key: Identifier or search key.
    """

    entity: str
    key: str | int
    code = "not_found"

    def __str__(self) -> str:
        return f"{self.entity} not found: {self.key}"


# --------------------------------------------------------------------------- #
# Authentication failures (HTTP 401)
# --------------------------------------------------------------------------- #


class AuthenticationError(ServiceError):
    """Authentication failed."""

    code = "unauthorized"


class InvalidCredentialsError(AuthenticationError):
    """The email or password is incorrect."""

    code = "invalid_credentials"


class InvalidRefreshTokenError(AuthenticationError):
    """Refresh token is not recognised. Please sign in."""

    code = "refresh_token_invalid"


class ExpiredRefreshTokenError(AuthenticationError):
    """Refresh token has expired. Please sign in again."""

    code = "refresh_token_expired"


class RevokedRefreshTokenError(AuthenticationError):
    """Refresh token has been revoked. Please sign in again."""

    code = "refresh_token_revoked"


class ReuseDetectedError(AuthenticationError):
    """Refresh token reuse detected. All sessions of this login were revoked."""

    code = "refresh_token_reused"

    def __init__(self, message: str | None = None, *, revoked_count: int = 0) -> None:
        super().__init__(message)
        self.revoked_count = revoked_count


# --------------------------------------------------------------------------- #
# Contention / infrastructure
# --------------------------------------------------------------------------- #


class ConcurrentRotationError(ServiceError):
    """Refresh token was rotated by a concurrent request. Retry the original request."""

    code = "concurrent_rotation"


class StoreUnavailableError(ServiceError):
    """Session store is temporarily unavailable. Retry with backoff."""

    code = "store_unavailable"


class DuplicateIdError(ServiceError):
    """A refresh record with the same identifier already exists."""

    code = "conflict"

    def __init__(self, record_id: str) -> None:
        super().__init__(f"Refresh record already exists: {record_id}")
        self.record_id = record_id


# --------------------------------------------------------------------------- #
# Codec failures
# --------------------------------------------------------------------------- #


class TokenCodecError(Exception):
    """Base class for token decoding failures."""


class MalformedTokenError(TokenCodecError):
    """The token is not a well-formed signed token."""


class SignatureError(TokenCodecError):
    """The token signature does not match its content."""


class KeyMaterialError(Exception):
    """Signing or verifying key material is missing or corrupt."""
