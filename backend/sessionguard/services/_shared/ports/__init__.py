"""
sessionguard.services._shared.ports
===================================

*Ports* (hexagonal interfaces) that the token core depends on.

Modules
-------
- :mod:`token_codec`:
    Defines :class:`~.TokenCodec`: serialization and signature verification
    of compact signed tokens.

- :mod:`refresh_store`:
    Defines :class:`~.RefreshStore`, :class:`~.RefreshRecord`,
    :class:`~.RefreshStatus` and :class:`~.TransitionResult` plus the
    process-local :class:`~.InMemoryRefreshStore`.

Design Notes
------------
Concrete adapters (PyJWT, SQLAlchemy, Redis) live under ``sessionguard.infra``
and are selected at application start-up.
"""

from __future__ import annotations

from .refresh_store import (
    InMemoryRefreshStore,
    RefreshRecord,
    RefreshStatus,
    RefreshStore,
    TransitionResult,
)
from .token_codec import TokenCodec

__all__ = [
    "TokenCodec",
    "RefreshStore",
    "RefreshRecord",
    "RefreshStatus",
    "TransitionResult",
    "InMemoryRefreshStore",
]
