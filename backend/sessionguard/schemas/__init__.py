"""Convenience exports for application schemas."""

from __future__ import annotations

from .auth import (
    LoginSchema,
    LogoutSchema,
    RevokedSchema,
    SessionSchema,
    TokenResponseSchema,
    WhoAmISchema,
)

__all__ = [
    "LoginSchema",
    "LogoutSchema",
    "RevokedSchema",
    "SessionSchema",
    "TokenResponseSchema",
    "WhoAmISchema",
]
