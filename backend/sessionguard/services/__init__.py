"""Service layer public API.

Callers import from :mod:`sessionguard.services` without knowing the internal
structure.

Re-exports
----------
- Base primitives (from ``sessionguard.services._shared.base``)
- Token core: :class:`TokenService`, :class:`RotationEngine`,
  :class:`RevocationManager`
- Application orchestration: :class:`AuthService`
"""

from __future__ import annotations

from sessionguard.services._shared.base import BaseService, translate_exceptions
from sessionguard.services.auth.service import AuthService, load_identity
from sessionguard.services.revocation.manager import RevocationManager, RevocationReason
from sessionguard.services.rotation.dto import RotationOutcome, RotationStatus
from sessionguard.services.rotation.engine import RotationEngine
from sessionguard.services.tokens.dto import Identity, TokenLifetimes, TokenPair
from sessionguard.services.tokens.service import TokenService, hash_token

__all__ = [
    "BaseService",
    "translate_exceptions",
    "AuthService",
    "load_identity",
    "RevocationManager",
    "RevocationReason",
    "RotationEngine",
    "RotationOutcome",
    "RotationStatus",
    "Identity",
    "TokenLifetimes",
    "TokenPair",
    "TokenService",
    "hash_token",
]
