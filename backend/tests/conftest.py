"""Pytest fixtures configuring the application and an isolated database.

Each test gets a fresh schema on an in-memory SQLite database (Flask-SQLAlchemy
binds ``:memory:`` to a single shared connection), so committed rows never
leak between cases.
"""

from __future__ import annotations

from collections.abc import Iterator
from datetime import UTC, datetime, timedelta

import pytest
from flask import Flask

from sessionguard.core.config import TestingConfig
from sessionguard.core.extensions import db as _db  # Flask-SQLAlchemy instance
from sessionguard.factory import create_app  # application factory under test
from sessionguard.infra.jwt.pyjwt_token_codec import JWTTokenCodec
from sessionguard.services._shared.ports import InMemoryRefreshStore
from sessionguard.services.revocation.manager import RevocationManager
from sessionguard.services.rotation.engine import RotationEngine
from sessionguard.services.tokens.dto import Identity, TokenLifetimes
from sessionguard.services.tokens.service import TokenService
from tests.helpers.clock import FrozenClock

SECRET = "unit-test-secret-with-enough-entropy-0123456789"


@pytest.fixture(scope="session")
def app() -> Flask:
    """Create a Flask application configured for testing.

    Returns
    -------
    flask.Flask
        Application instance with :class:`TestingConfig` applied and logging
        noise reduced.
    """
    application = create_app(TestingConfig, instance_relative_config=False)
    application.logger.setLevel("WARNING")
    return application


@pytest.fixture()
def db(app: Flask) -> Iterator:
    """Create the schema inside an application context for one test.

    Yields
    ------
    flask_sqlalchemy.SQLAlchemy
        Database extension bound to the testing application.
    """
    with app.app_context():
        _db.create_all()
        try:
            yield _db
        finally:
            _db.session.remove()
            _db.drop_all()


@pytest.fixture()
def session(db):
    """Return the Flask-scoped session used by repositories and factories."""
    return db.session


@pytest.fixture()
def client(app: Flask, db):
    """Return a Flask test client without a cookie jar.

    Refresh cookies are forwarded explicitly via ``tests.helpers.http`` so that
    tests can replay stale cookies at will.
    """
    return app.test_client(use_cookies=False)


@pytest.fixture()
def clock() -> FrozenClock:
    """Controllable UTC clock starting at a fixed, whole-second instant."""
    return FrozenClock(datetime(2030, 1, 1, 12, 0, tzinfo=UTC))


@pytest.fixture()
def codec() -> JWTTokenCodec:
    return JWTTokenCodec(signing_key=SECRET)


@pytest.fixture()
def tokens(codec: JWTTokenCodec, clock: FrozenClock) -> TokenService:
    """Token service with short, round lifetimes driven by ``clock``."""
    return TokenService(
        codec=codec,
        lifetimes=TokenLifetimes(access=timedelta(minutes=10), refresh=timedelta(days=1)),
        clock=clock,
    )


@pytest.fixture()
def memory_store() -> InMemoryRefreshStore:
    return InMemoryRefreshStore(timeout=1.0)


@pytest.fixture()
def identities() -> dict[str, Identity]:
    """Mutable identity directory consulted by the rotation engine."""
    return {
        "1": Identity(user_id="1", role="user", email="ana@example.com", name="Ana"),
        "2": Identity(user_id="2", role="admin", email="bo@example.com", name="Bo"),
    }


@pytest.fixture()
def revocation(memory_store: InMemoryRefreshStore, clock: FrozenClock) -> RevocationManager:
    return RevocationManager(memory_store, clock=clock)


@pytest.fixture()
def engine(
    tokens: TokenService,
    memory_store: InMemoryRefreshStore,
    revocation: RevocationManager,
    identities: dict[str, Identity],
) -> RotationEngine:
    """Rotation engine over the in-memory store (no database involved)."""
    return RotationEngine(
        tokens=tokens,
        store=memory_store,
        revocation=revocation,
        identity_loader=identities.get,
    )


# -- Hook up Factory Boy to the Flask-SQLAlchemy session -----------------------
@pytest.fixture(autouse=True)
def _factories_session(request):
    """Wire Factory Boy's session helper when a test uses the database."""
    from tests.factories import SQLAlchemySession

    if "db" not in request.fixturenames:
        SQLAlchemySession.set(None)
        yield
        return
    SQLAlchemySession.set(request.getfixturevalue("db").session)
    yield
    SQLAlchemySession.set(None)
