# sessionguard/infra/jwt/pyjwt_token_codec.py
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import jwt
from jwt.algorithms import get_default_algorithms

from sessionguard.services._shared.errors import (
    KeyMaterialError,
    MalformedTokenError,
    SignatureError,
)
from sessionguard.services._shared.ports import TokenCodec

# Time-based claims are validated by TokenService against its own clock.
_SIGNATURE_ONLY = {
    "verify_signature": True,
    "verify_exp": False,
    "verify_nbf": False,
    "verify_iat": False,
    "verify_aud": False,
    "verify_iss": False,
    "require": [],
}


@dataclass(slots=True)
class JWTTokenCodec(TokenCodec):
    """
    Compact JWS codec backed by PyJWT.

    Exactly one algorithm is accepted on decode, so ``none`` and
    algorithm-confusion tokens are rejected as malformed.

    :param algorithm: JWS algorithm (``HS256`` by default).
    :param signing_key: HMAC secret, or PEM private key for ``RS*``/``ES*``.
    :param verifying_key: PEM public key for asymmetric algorithms. Defaults
        to ``signing_key`` for HMAC.
    :raises KeyMaterialError: When the key material cannot be used with
        ``algorithm``.
    """

    signing_key: str | bytes
    algorithm: str = "HS256"
    verifying_key: str | bytes | None = None
    _verify_with: Any = field(init=False, repr=False, default=None)

    def __post_init__(self) -> None:
        algorithms = get_default_algorithms()
        impl = algorithms.get(self.algorithm)
        if impl is None or self.algorithm == "none":
            raise KeyMaterialError(f"Unsupported signing algorithm: {self.algorithm!r}")
        if not self.signing_key:
            raise KeyMaterialError("Signing key is empty.")
        verifying = self.verifying_key or self.signing_key
        try:
            impl.prepare_key(self.signing_key)
            self._verify_with = impl.prepare_key(verifying)
        except (jwt.InvalidKeyError, ValueError, TypeError) as exc:
            raise KeyMaterialError(f"Unusable key material for {self.algorithm}.") from exc

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> JWTTokenCodec:
        """Build a codec from ``JWT_ALGORITHM`` and the matching key settings."""
        algorithm = str(config.get("JWT_ALGORITHM", "HS256")).upper()
        if algorithm.startswith("HS"):
            return cls(signing_key=config.get("JWT_SECRET_KEY") or "", algorithm=algorithm)
        return cls(
            signing_key=config.get("JWT_PRIVATE_KEY") or "",
            algorithm=algorithm,
            verifying_key=config.get("JWT_PUBLIC_KEY"),
        )

    def encode(self, claims: Mapping[str, Any]) -> str:
        try:
            return jwt.encode(dict(claims), self.signing_key, algorithm=self.algorithm)
        except (jwt.InvalidKeyError, ValueError) as exc:
            raise KeyMaterialError(f"Cannot sign with {self.algorithm} key.") from exc

    def decode(self, token: str) -> dict[str, Any]:
        if not isinstance(token, str) or not token:
            raise MalformedTokenError("Token must be a non-empty string.")
        try:
            claims = jwt.decode(
                token,
                self._verify_with,
                algorithms=[self.algorithm],
                options=_SIGNATURE_ONLY,
            )
        # InvalidSignatureError subclasses DecodeError; order matters.
        except jwt.InvalidSignatureError as exc:
            raise SignatureError(str(exc)) from exc
        except jwt.InvalidKeyError as exc:
            raise KeyMaterialError(f"Cannot verify with {self.algorithm} key.") from exc
        except jwt.InvalidTokenError as exc:
            raise MalformedTokenError(str(exc)) from exc
        if not isinstance(claims, dict):
            raise MalformedTokenError("Token payload is not a JSON object.")
        return claims
