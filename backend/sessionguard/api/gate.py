"""Request-scoped bearer authentication.

The gate runs before every request and turns an ``Authorization: Bearer``
header into a :class:`Principal` stored on :data:`flask.g`. It never rejects a
request itself: anonymous callers pass through with the reason recorded, and
route guards in :mod:`sessionguard.api.deps` decide between 401 and 403.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from flask import Flask, g, request

from sessionguard.services.tokens.dto import ACCESS_TOKEN_TYPE, VerifyStatus
from sessionguard.services.tokens.service import TokenService


class AuthFailure(str, Enum):
    MISSING = "missing"
    MALFORMED = "malformed"
    INVALID = "invalid"
    EXPIRED = "expired"


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated caller derived from a valid access token."""

    user_id: str
    role: str
    email: str | None = None
    name: str | None = None
    device_id: str | None = None

    def has_role(self, *roles: str) -> bool:
        return self.role in roles


@dataclass(frozen=True, slots=True)
class GateResult:
    principal: Principal | None
    failure: AuthFailure | None = None


class AuthenticationGate:
    """
    Resolve the caller of a request from its bearer token.

    :param tokens: Token service used to verify access tokens.
    """

    def __init__(self, tokens: TokenService) -> None:
        self.tokens = tokens

    def authenticate(self, header_value: str | None) -> GateResult:
        if not header_value:
            return GateResult(None, AuthFailure.MISSING)

        scheme, _, token = header_value.strip().partition(" ")
        token = token.strip()
        if scheme.lower() != "bearer" or not token or " " in token:
            return GateResult(None, AuthFailure.MALFORMED)

        verdict = self.tokens.verify(token, expected_type=ACCESS_TOKEN_TYPE)
        if verdict.status is VerifyStatus.EXPIRED:
            return GateResult(None, AuthFailure.EXPIRED)
        if verdict.status is not VerifyStatus.VALID:
            return GateResult(None, AuthFailure.INVALID)

        claims = verdict.claims
        return GateResult(
            Principal(
                user_id=str(claims["sub"]),
                role=str(claims.get("role") or "user"),
                email=claims.get("email"),
                name=claims.get("name"),
                device_id=claims.get("did"),
            )
        )


def init_app(app: Flask, tokens: TokenService) -> AuthenticationGate:
    """Install the gate as a ``before_request`` hook on ``app``."""
    gate = AuthenticationGate(tokens)

    @app.before_request
    def _authenticate_request() -> None:
        result = gate.authenticate(request.headers.get("Authorization"))
        g.principal = result.principal
        g.auth_failure = result.failure

    return gate
