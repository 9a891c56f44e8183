# sessionguard/services/rotation/engine.py
from __future__ import annotations

import logging
from collections.abc import Callable

from sessionguard.services._shared.ports import (
    RefreshRecord,
    RefreshStatus,
    RefreshStore,
    TransitionResult,
)
from sessionguard.services.revocation.manager import RevocationManager, RevocationReason
from sessionguard.services.rotation.dto import RotationOutcome, RotationStatus
from sessionguard.services.tokens.dto import (
    REFRESH_TOKEN_TYPE,
    Identity,
    IssuedRefreshToken,
    TokenPair,
    VerifyStatus,
)
from sessionguard.services.tokens.service import TokenService

log = logging.getLogger(__name__)

IdentityLoader = Callable[[str], Identity | None]


class RotationEngine:
    """
    Single-use refresh tokens with reuse detection.

    A login starts a *chain*; every successful refresh retires the presented
    record (``active -> replaced``) and appends a successor. Presenting a
    retired record again means the token was copied, so the whole chain is
    revoked.

    The store's compare-and-swap decides races: of N concurrent refreshes of
    one token exactly one succeeds; the rest see ``CONCURRENT_ROTATION``,
    which is contention, not compromise, and revokes nothing.

    :param tokens: Token issuance/verification service.
    :param store: Refresh record store.
    :param revocation: Revocation manager sharing ``store``.
    :param identity_loader: Resolves a user id to the claims of a new access
        token, or ``None`` when the user no longer exists.
    """

    def __init__(
        self,
        *,
        tokens: TokenService,
        store: RefreshStore,
        revocation: RevocationManager,
        identity_loader: IdentityLoader,
    ) -> None:
        self.tokens = tokens
        self.store = store
        self.revocation = revocation
        self.identity_loader = identity_loader

    # ------------------------------------------------------------------ #
    # Chain start (login)
    # ------------------------------------------------------------------ #

    def start_chain(self, identity: Identity, *, device_id: str | None = None) -> TokenPair:
        """Issue a token pair for a fresh login and persist the chain root."""
        pair = self._issue_pair(identity, device_id)
        with self.store.atomic():
            self.store.insert(self._record_for(pair.refresh))
        log.info(
            "Refresh chain started",
            extra={
                "event": "auth.login",
                "user_id": identity.user_id,
                "record_id": pair.refresh.id,
                "device_id": device_id,
            },
        )
        return pair

    # ------------------------------------------------------------------ #
    # Rotation
    # ------------------------------------------------------------------ #

    def rotate(self, raw_token: str) -> RotationOutcome:
        """
        Exchange ``raw_token`` for a new pair.

        Expected outcomes are returned, not raised. Store outages surface as
        :class:`StoreUnavailableError` and are never folded into an outcome.
        """
        if not raw_token:
            return RotationOutcome(RotationStatus.INVALID_TOKEN)

        record = self.store.find_by_hash(self.tokens.hash_token(raw_token))
        if record is None:
            return self._finish(RotationOutcome(RotationStatus.INVALID_TOKEN))

        verdict = self.tokens.verify(raw_token, expected_type=REFRESH_TOKEN_TYPE)
        if verdict.status is VerifyStatus.INVALID or verdict.claims.get("jti") != record.id:
            return self._finish(RotationOutcome(RotationStatus.INVALID_TOKEN), record)
        if verdict.status is VerifyStatus.EXPIRED or record.expires_at <= self.tokens.now():
            return self._finish(
                RotationOutcome(RotationStatus.EXPIRED_TOKEN, user_id=record.user_id), record
            )

        if record.status is RefreshStatus.REVOKED:
            return self._finish(
                RotationOutcome(RotationStatus.REVOKED_TOKEN, user_id=record.user_id), record
            )
        if record.status is RefreshStatus.REPLACED:
            return self._reuse_detected(record)
        return self._advance(record)

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _advance(self, record: RefreshRecord) -> RotationOutcome:
        identity = self.identity_loader(record.user_id)
        if identity is None:
            return self._finish(RotationOutcome(RotationStatus.INVALID_TOKEN), record)

        pair = self._issue_pair(identity, record.device_id)
        with self.store.atomic():
            result = self.store.transition_to_replaced(record.id, pair.refresh.id)
            if result is TransitionResult.OK:
                self.store.insert(self._record_for(pair.refresh))

        if result is TransitionResult.NOT_FOUND:
            return self._finish(RotationOutcome(RotationStatus.INVALID_TOKEN), record)

        if result is TransitionResult.ALREADY_TRANSITIONED:
            current = self.store.get(record.id)
            if current is not None and current.status is RefreshStatus.REVOKED:
                status = RotationStatus.REVOKED_TOKEN
            else:
                status = RotationStatus.CONCURRENT_ROTATION
            return self._finish(RotationOutcome(status, user_id=record.user_id), record)

        # A chain revocation may have landed between our read and the commit.
        current = self.store.get(record.id)
        if current is not None and current.status is RefreshStatus.REVOKED:
            self.revocation.revoke_chain(pair.refresh.id, RevocationReason.CHAIN_REVOKED)
            return self._finish(
                RotationOutcome(RotationStatus.REVOKED_TOKEN, user_id=record.user_id), record
            )

        return self._finish(
            RotationOutcome(RotationStatus.OK, pair=pair, user_id=record.user_id), record
        )

    def _reuse_detected(self, record: RefreshRecord) -> RotationOutcome:
        count = self.revocation.revoke_chain(record.id, RevocationReason.REUSE_DETECTED)
        log.warning(
            "Refresh token reuse detected; chain revoked",
            extra={
                "event": "auth.reuse_detected",
                "user_id": record.user_id,
                "record_id": record.id,
                "device_id": record.device_id,
                "revoked_count": count,
            },
        )
        return RotationOutcome(
            RotationStatus.REUSE_DETECTED, user_id=record.user_id, revoked_count=count
        )

    def _issue_pair(self, identity: Identity, device_id: str | None) -> TokenPair:
        return TokenPair(
            access=self.tokens.issue_access_token(identity, device_id=device_id),
            refresh=self.tokens.issue_refresh_token(
                identity.user_id, device_id, record_id=self.store.new_id()
            ),
        )

    def _record_for(self, issued: IssuedRefreshToken) -> RefreshRecord:
        return RefreshRecord(
            id=issued.id,
            user_id=issued.user_id,
            token_hash=self.tokens.hash_token(issued.raw),
            device_id=issued.device_id,
            issued_at=issued.issued_at,
            expires_at=issued.expires_at,
        )

    @staticmethod
    def _finish(outcome: RotationOutcome, record: RefreshRecord | None = None) -> RotationOutcome:
        event = (
            "auth.concurrent_rotation"
            if outcome.status is RotationStatus.CONCURRENT_ROTATION
            else "auth.refresh"
        )
        log.info(
            "Refresh rotation finished: %s",
            outcome.status.value,
            extra={
                "event": event,
                "outcome": outcome.status.value,
                "user_id": record.user_id if record else None,
                "record_id": record.id if record else None,
            },
        )
        return outcome
