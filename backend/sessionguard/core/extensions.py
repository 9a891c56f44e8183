"""Global Flask extension instances and initialization helpers."""

from __future__ import annotations

import redis  # type: ignore[import-untyped]
from flask import Flask
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from redis.exceptions import RedisError  # type: ignore[import-untyped]
from sqlalchemy import MetaData

# Global naming convention for all constraints
convention = {
    "ix": "ix_%(table_name)s_%(column_0_name)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata = MetaData(naming_convention=convention)

# Global singletons (import-safe)
db: SQLAlchemy = SQLAlchemy(session_options={"autoflush": False}, metadata=metadata)
migrate = Migrate(render_as_batch=True)


def init_app(app: Flask) -> None:
    """Initialize SQLAlchemy, migrations and, when configured, Redis.

    Parameters
    ----------
    app: flask.Flask
        Application used to bind extension instances. This call imports the
        :mod:`sessionguard.models` package to ensure SQLAlchemy metadata is
        ready for migrations.

    Notes
    -----
    The Redis client is created only when ``REDIS_URL`` is set. Socket
    timeouts follow ``STORE_TIMEOUT_SECONDS`` so a stalled Redis surfaces as an
    error rather than a hung request.
    """
    db.init_app(app)

    # Ensure models are imported so Alembic sees metadata
    from sessionguard import models as _models  # noqa: F401

    migrate.init_app(app, db)

    redis_url = app.config.get("REDIS_URL")
    if not redis_url:
        app.extensions.pop("redis_client", None)
        return

    timeout = float(app.config.get("STORE_TIMEOUT_SECONDS", 2.0))
    client = redis.Redis.from_url(
        redis_url,
        socket_timeout=timeout,
        socket_connect_timeout=timeout,
    )
    try:
        client.ping()
    except RedisError as exc:
        raise RuntimeError(f"Failed to connect to Redis at {redis_url!r}") from exc
    app.extensions["redis_client"] = client


def get_redis(app: Flask) -> redis.Redis:
    """Return the Redis client bound to ``app``."""
    client = app.extensions.get("redis_client")
    if client is None:
        raise RuntimeError("Redis client is not initialized. Set REDIS_URL first.")
    return client
