"""Tests for configuration validation and refresh-store selection."""

from __future__ import annotations

import pytest

from sessionguard.core.config import TestingConfig, bounded_engine_options, validate_config
from sessionguard.core.wiring import build_auth_components, build_refresh_store
from sessionguard.infra.sqlalchemy.refresh_store import SQLAlchemyRefreshStore
from sessionguard.services._shared.ports import InMemoryRefreshStore

PRODUCTION = {
    "DEBUG": False,
    "TESTING": False,
    "SECRET_KEY": "prod-secret",
    "JWT_SECRET_KEY": "prod-jwt-secret",
    "JWT_ALGORITHM": "HS256",
    "REFRESH_STORE_BACKEND": "sqlalchemy",
}


def test_valid_production_config_passes():
    validate_config(PRODUCTION)


@pytest.mark.parametrize(
    "override",
    [
        {"JWT_SECRET_KEY": "CHANGE_ME_JWT"},
        {"SECRET_KEY": "CHANGE_ME"},
        {"REFRESH_STORE_BACKEND": "cassandra"},
        {"REFRESH_STORE_BACKEND": "redis", "REDIS_URL": None},
        {"JWT_ALGORITHM": "RS256"},
    ],
)
def test_invalid_config_fails_fast(override):
    with pytest.raises(ValueError):
        validate_config({**PRODUCTION, **override})


def test_placeholder_secrets_allowed_in_testing():
    validate_config({**PRODUCTION, "TESTING": True, "JWT_SECRET_KEY": "CHANGE_ME_JWT"})


def test_store_backend_selection(app):
    assert isinstance(build_refresh_store(app), SQLAlchemyRefreshStore)

    app.config["REFRESH_STORE_BACKEND"] = "memory"
    try:
        assert isinstance(build_refresh_store(app), InMemoryRefreshStore)
    finally:
        app.config["REFRESH_STORE_BACKEND"] = "sqlalchemy"


def test_components_share_one_store(app):
    store = InMemoryRefreshStore()
    components = build_auth_components(app, store=store)
    assert components.engine.store is store
    assert components.revocation.store is store
    assert components.auth.engine is components.engine


def test_postgres_engine_bounds_lock_and_statement_waits():
    options = bounded_engine_options("postgresql+psycopg2://u:p@db/app", 1.5)
    assert options["pool_timeout"] == 1.5
    assert options["connect_args"]["options"] == (
        "-c lock_timeout=1500 -c statement_timeout=1500"
    )


def test_sqlite_engine_bounds_busy_wait():
    options = bounded_engine_options("sqlite:///:memory:", 2.0)
    assert options == {"connect_args": {"timeout": 2.0}}


def test_app_engine_options_carry_store_timeout(app):
    timeout = app.config["STORE_TIMEOUT_SECONDS"]
    assert TestingConfig.SQLALCHEMY_ENGINE_OPTIONS["connect_args"]["timeout"] == timeout
    assert app.config["SQLALCHEMY_ENGINE_OPTIONS"]["connect_args"]["timeout"] == timeout
