"""Build the token core once per application and expose it to views."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from flask import Flask, current_app

from sessionguard.core.extensions import get_redis
from sessionguard.infra.jwt.pyjwt_token_codec import JWTTokenCodec
from sessionguard.services._shared.ports import InMemoryRefreshStore, RefreshStore
from sessionguard.services.auth.service import AuthService, load_identity
from sessionguard.services.revocation.manager import RevocationManager
from sessionguard.services.rotation.engine import RotationEngine
from sessionguard.services.tokens.dto import TokenLifetimes
from sessionguard.services.tokens.service import TokenService

EXTENSION_KEY = "sessionguard"


@dataclass(slots=True)
class AuthComponents:
    """Per-application container of the token core (no module-level singletons)."""

    tokens: TokenService
    store: RefreshStore
    revocation: RevocationManager
    engine: RotationEngine
    auth: AuthService


def build_refresh_store(app: Flask) -> RefreshStore:
    """Instantiate the backend named by ``REFRESH_STORE_BACKEND``."""
    backend = str(app.config.get("REFRESH_STORE_BACKEND", "sqlalchemy")).lower()
    if backend == "memory":
        return InMemoryRefreshStore(timeout=float(app.config.get("STORE_TIMEOUT_SECONDS", 2.0)))
    if backend == "redis":
        from sessionguard.infra.redis.redis_refresh_store import RedisRefreshStore

        return RedisRefreshStore(get_redis(app))
    from sessionguard.infra.sqlalchemy.refresh_store import SQLAlchemyRefreshStore

    return SQLAlchemyRefreshStore()


def build_auth_components(app: Flask, *, store: RefreshStore | None = None) -> AuthComponents:
    """Wire codec, token service, store, revocation, rotation and auth service."""
    tokens = TokenService(
        codec=JWTTokenCodec.from_config(app.config),
        lifetimes=TokenLifetimes(
            access=timedelta(seconds=int(app.config["ACCESS_TOKEN_TTL_SECONDS"])),
            refresh=timedelta(seconds=int(app.config["REFRESH_TOKEN_TTL_SECONDS"])),
        ),
    )
    store = store or build_refresh_store(app)
    revocation = RevocationManager(store, clock=tokens.now)
    engine = RotationEngine(
        tokens=tokens,
        store=store,
        revocation=revocation,
        identity_loader=load_identity,
    )
    return AuthComponents(
        tokens=tokens,
        store=store,
        revocation=revocation,
        engine=engine,
        auth=AuthService(engine=engine, revocation=revocation),
    )


def init_app(app: Flask) -> AuthComponents:
    components = build_auth_components(app)
    app.extensions[EXTENSION_KEY] = components
    return components


def get_auth(app: Flask | None = None) -> AuthComponents:
    """Return the components bound to ``app`` (defaults to ``current_app``)."""
    target = app or current_app
    components = target.extensions.get(EXTENSION_KEY)
    if components is None:
        raise RuntimeError("Auth components are not initialized. Call create_app() first.")
    return components
