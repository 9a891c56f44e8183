"""Repository package exposing persistence-layer access for all models."""

from __future__ import annotations

from sessionguard.repositories.base import BaseRepository, apply_sorting
from sessionguard.repositories.refresh_token import RefreshTokenRepository
from sessionguard.repositories.user import UserRepository

__all__ = [
    "BaseRepository",
    "apply_sorting",
    "RefreshTokenRepository",
    "UserRepository",
]
