from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol


class TokenCodec(Protocol):
    """
    Port for turning claims into compact signed tokens and back.

    Implementations are stateless apart from their key material.
    ``decode`` checks the signature only; time-based validation belongs to
    :class:`~sessionguard.services.tokens.service.TokenService`.
    """

    def encode(self, claims: Mapping[str, Any]) -> str:
        """Serialize and sign ``claims``."""
        ...

    def decode(self, token: str) -> dict[str, Any]:
        """
        Verify and deserialize ``token``.

        :raises MalformedTokenError: If ``token`` is not a well-formed token.
        :raises SignatureError: If the signature does not match the content.
        """
        ...
