# sessionguard/services/tokens/service.py
from __future__ import annotations

import hashlib
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from sessionguard.services._shared.errors import MalformedTokenError, SignatureError
from sessionguard.services._shared.ports import TokenCodec
from sessionguard.services.tokens.dto import (
    ACCESS_TOKEN_TYPE,
    REFRESH_TOKEN_TYPE,
    AccessToken,
    Identity,
    IssuedRefreshToken,
    TokenLifetimes,
    TokenVerification,
    VerifyStatus,
)

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(UTC)


def hash_token(raw: str) -> str:
    """Return the SHA-256 hex digest under which a raw refresh token is stored."""
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


class TokenService:
    """
    Issue and verify access and refresh tokens.

    Stateless apart from the codec keys and lifetimes; nothing here touches
    the refresh store. Expected failures (expired, tampered, malformed, wrong
    type) come back as :class:`TokenVerification` values, never exceptions.
    Only broken key material (:class:`KeyMaterialError`) propagates.

    :param codec: Signing/verification adapter.
    :param lifetimes: Access and refresh TTLs.
    :param clock: Source of "now"; injectable for boundary tests.
    """

    def __init__(
        self,
        *,
        codec: TokenCodec,
        lifetimes: TokenLifetimes | None = None,
        clock: Clock = utcnow,
    ) -> None:
        self.codec = codec
        self.lifetimes = lifetimes or TokenLifetimes()
        self.clock = clock

    def now(self) -> datetime:
        return self.clock()

    @staticmethod
    def new_id() -> str:
        return uuid4().hex

    # ------------------------------------------------------------------ #
    # Issuance
    # ------------------------------------------------------------------ #

    def issue_access_token(self, identity: Identity, *, device_id: str | None = None) -> AccessToken:
        """
        Sign a short-lived access token for ``identity``.

        :returns: The encoded token with its timing metadata.
        """
        issued_at = self.now().replace(microsecond=0)
        expires_at = issued_at + self.lifetimes.access
        jti = self.new_id()
        claims: dict[str, Any] = {
            "sub": str(identity.user_id),
            "role": identity.role,
            "email": identity.email,
            "name": identity.name,
            "iat": int(issued_at.timestamp()),
            "exp": int(expires_at.timestamp()),
            "typ": ACCESS_TOKEN_TYPE,
            "jti": jti,
        }
        if device_id is not None:
            claims["did"] = device_id
        return AccessToken(
            token=self.codec.encode(claims),
            jti=jti,
            issued_at=issued_at,
            expires_at=expires_at,
        )

    def issue_refresh_token(
        self,
        user_id: str,
        device_id: str | None = None,
        *,
        record_id: str | None = None,
    ) -> IssuedRefreshToken:
        """
        Sign a long-lived refresh token whose ``jti`` is the record id.

        Persistence is the caller's job (:class:`RotationEngine`).
        """
        issued_at = self.now().replace(microsecond=0)
        expires_at = issued_at + self.lifetimes.refresh
        rid = record_id or self.new_id()
        claims: dict[str, Any] = {
            "sub": str(user_id),
            "jti": rid,
            "typ": REFRESH_TOKEN_TYPE,
            "iat": int(issued_at.timestamp()),
            "exp": int(expires_at.timestamp()),
        }
        if device_id is not None:
            claims["did"] = device_id
        return IssuedRefreshToken(
            raw=self.codec.encode(claims),
            id=rid,
            user_id=str(user_id),
            device_id=device_id,
            issued_at=issued_at,
            expires_at=expires_at,
        )

    # ------------------------------------------------------------------ #
    # Verification
    # ------------------------------------------------------------------ #

    def verify(self, token: str, *, expected_type: str = ACCESS_TOKEN_TYPE) -> TokenVerification:
        """
        Check signature, type and expiry of ``token``.

        ``exp <= now`` is expired; ``exp > now`` is valid.

        :param token: Encoded token.
        :param expected_type: ``access`` or ``refresh``.
        :returns: ``VALID``, ``EXPIRED`` or ``INVALID``.
        """
        try:
            claims = self.codec.decode(token)
        except SignatureError:
            return TokenVerification(VerifyStatus.INVALID, reason="bad_signature")
        except MalformedTokenError:
            return TokenVerification(VerifyStatus.INVALID, reason="malformed")

        if claims.get("typ") != expected_type:
            return TokenVerification(VerifyStatus.INVALID, reason="wrong_type")
        if not claims.get("sub") or not claims.get("jti"):
            return TokenVerification(VerifyStatus.INVALID, reason="missing_claims")

        exp = claims.get("exp")
        if isinstance(exp, bool) or not isinstance(exp, int | float):
            return TokenVerification(VerifyStatus.INVALID, reason="missing_exp")
        if exp <= self.now().timestamp():
            return TokenVerification(VerifyStatus.EXPIRED, claims=claims, reason="expired")
        return TokenVerification(VerifyStatus.VALID, claims=claims)

    hash_token = staticmethod(hash_token)
