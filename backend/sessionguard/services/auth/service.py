# sessionguard/services/auth/service.py
from __future__ import annotations

import logging

from sessionguard.repositories.user import UserRepository
from sessionguard.services._shared.base import BaseService
from sessionguard.services._shared.errors import (
    ConcurrentRotationError,
    ExpiredRefreshTokenError,
    InvalidCredentialsError,
    InvalidRefreshTokenError,
    NotFoundError,
    ReuseDetectedError,
    RevokedRefreshTokenError,
)
from sessionguard.services._shared.ports import RefreshStatus
from sessionguard.services.auth.dto import LoginIn, LogoutIn, RefreshIn, SessionOut, UserOut
from sessionguard.services.revocation.manager import RevocationManager, RevocationReason
from sessionguard.services.rotation.dto import RotationStatus
from sessionguard.services.rotation.engine import RotationEngine
from sessionguard.services.tokens.dto import Identity, TokenPair

log = logging.getLogger(__name__)

_OUTCOME_ERRORS = {
    RotationStatus.INVALID_TOKEN: InvalidRefreshTokenError,
    RotationStatus.EXPIRED_TOKEN: ExpiredRefreshTokenError,
    RotationStatus.REVOKED_TOKEN: RevokedRefreshTokenError,
    RotationStatus.CONCURRENT_ROTATION: ConcurrentRotationError,
}


def load_identity(user_id: str) -> Identity | None:
    """Resolve a token subject to the claims of a new access token."""
    if not str(user_id).isdigit():
        return None
    user = UserRepository().get(int(user_id))
    if user is None:
        return None
    return Identity(
        user_id=str(user.id),
        role=user.role,
        email=user.email,
        name=user.full_name or user.username,
    )


class AuthService(BaseService):
    """
    Authentication lifecycle service (login / refresh / logout).

    Credentials are checked against the user repository; token issuance,
    rotation and reuse detection are delegated to :class:`RotationEngine`,
    and bulk invalidation to :class:`RevocationManager`.
    """

    def __init__(self, *, engine: RotationEngine, revocation: RevocationManager) -> None:
        self.engine = engine
        self.revocation = revocation

    # ------------------------------------------------------------------ #
    # Login
    # ------------------------------------------------------------------ #

    def login(self, dto: LoginIn) -> TokenPair:
        """
        Authenticate credentials and start a new refresh chain.

        :raises InvalidCredentialsError: If email or password is wrong.
        """
        with self.ro_uow() as uow:
            user = uow.users.authenticate(dto.email, dto.password)
            if user is None:
                log.warning("Login failed", extra={"event": "auth.login_failed"})
                raise InvalidCredentialsError()
            identity = Identity(
                user_id=str(user.id),
                role=user.role,
                email=user.email,
                name=user.full_name or user.username,
            )
        return self.engine.start_chain(identity, device_id=dto.device_id)

    # ------------------------------------------------------------------ #
    # Refresh with rotation
    # ------------------------------------------------------------------ #

    def refresh(self, dto: RefreshIn) -> TokenPair:
        """
        Rotate a refresh token and emit a new token pair.

        :raises ReuseDetectedError: A retired token was replayed; its chain is revoked.
        :raises ConcurrentRotationError: Another request rotated the same token first.
        :raises AuthenticationError: For invalid, expired or revoked tokens.
        """
        outcome = self.engine.rotate(dto.refresh_token)
        if outcome.ok and outcome.pair is not None:
            return outcome.pair
        if outcome.status is RotationStatus.REUSE_DETECTED:
            raise ReuseDetectedError(revoked_count=outcome.revoked_count)
        raise _OUTCOME_ERRORS.get(outcome.status, InvalidRefreshTokenError)()

    # ------------------------------------------------------------------ #
    # Logout / revocation
    # ------------------------------------------------------------------ #

    def logout(self, dto: LogoutIn) -> int:
        """
        Revoke the caller's device chains, or all of them.

        :returns: Number of refresh records newly revoked.
        """
        if dto.all_sessions:
            return self.revocation.revoke_all_for_user(dto.user_id, RevocationReason.LOGOUT_ALL)
        return self.revocation.revoke_all_for_device(
            dto.user_id, dto.device_id, RevocationReason.LOGOUT
        )

    def revoke_user_sessions(self, user_id: str) -> int:
        """Administrative kill switch: revoke every chain of ``user_id``."""
        if load_identity(user_id) is None:
            raise NotFoundError("User", user_id)
        return self.revocation.revoke_all_for_user(user_id, RevocationReason.ADMIN)

    # ------------------------------------------------------------------ #
    # Queries
    # ------------------------------------------------------------------ #

    def whoami(self, user_id: str) -> UserOut:
        """
        Return the profile of the authenticated user.

        :raises NotFoundError: If the user vanished after the token was issued.
        """
        with self.ro_uow() as uow:
            user = uow.users.get(int(user_id)) if str(user_id).isdigit() else None
            if user is None:
                raise NotFoundError("User", user_id)
            return UserOut(
                id=user.id,
                email=user.email,
                username=user.username,
                full_name=user.full_name,
                role=user.role,
            )

    def list_sessions(self, user_id: str) -> list[SessionOut]:
        """List the user's live chains (active, unexpired records)."""
        now = self.engine.tokens.now()
        return [
            SessionOut(
                id=rec.id,
                device_id=rec.device_id,
                issued_at=rec.issued_at,
                expires_at=rec.expires_at,
            )
            for rec in self.engine.store.list_for_user(user_id)
            if rec.status is RefreshStatus.ACTIVE and rec.expires_at > now
        ]
