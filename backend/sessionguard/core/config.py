"""Application settings with environment-based simple classes."""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Any, Final

from dotenv import load_dotenv
from sqlalchemy.engine import make_url

# Public selector env var (keep neutral name to avoid collisions)
ENV_VAR: Final[str] = "APP_ENV"  # 'development' | 'testing' | 'production'

PLACEHOLDER_SECRETS: Final[frozenset[str]] = frozenset({"CHANGE_ME", "CHANGE_ME_JWT"})
STORE_BACKENDS: Final[frozenset[str]] = frozenset({"sqlalchemy", "redis", "memory"})

# Loads .env during development (no-op when the file is missing)
load_dotenv()


def env_bool(name: str, default: bool = False) -> bool:
    """Parse a boolean flag from an environment variable.

    Parameters
    ----------
    name: str
        Environment variable to inspect.
    default: bool, optional
        Value returned when the variable is unset. Defaults to ``False``.

    Returns
    -------
    bool
        ``True`` if the value resembles ``{"1", "true", "yes", "y", "on"}``
        ignoring case; otherwise ``False`` or ``default`` when missing.
    """
    val = os.getenv(name)
    if val is None:
        return default
    return str(val).strip().lower() in {"1", "true", "yes", "y", "on"}


def env_int(name: str, default: int) -> int:
    """Parse an integer from an environment variable, falling back on bad input."""
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def env_float(name: str, default: float) -> float:
    """Parse a float from an environment variable, falling back on bad input."""
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def bounded_engine_options(database_uri: str, timeout_seconds: float) -> dict[str, Any]:
    """Build engine options so no statement waits longer than ``timeout_seconds``.

    Parameters
    ----------
    database_uri: str
        SQLAlchemy URL of the application database.
    timeout_seconds: float
        Upper bound for pool checkout, lock waits and statement execution.

    Returns
    -------
    dict
        Keyword arguments for :func:`sqlalchemy.create_engine`. PostgreSQL gets
        ``lock_timeout``/``statement_timeout`` session settings, SQLite the
        driver's busy ``timeout``. Timeouts raise ``OperationalError``, which the
        refresh store reports as unavailable.
    """
    backend = make_url(database_uri).get_backend_name()
    if backend == "sqlite":
        # :memory: runs on a StaticPool, which takes no pool_timeout
        return {"connect_args": {"timeout": timeout_seconds}}

    options: dict[str, Any] = {"pool_pre_ping": True, "pool_timeout": timeout_seconds}
    if backend == "postgresql":
        millis = max(1, int(timeout_seconds * 1000))
        options["connect_args"] = {
            "options": f"-c lock_timeout={millis} -c statement_timeout={millis}"
        }
    return options


class BaseConfig:
    """Base configuration shared across environments.

    Attributes
    ----------
    API_BASE_PREFIX: str
        Root path for registering API blueprints.
    SECRET_KEY: str
        Flask secret. Defaults to a development placeholder.
    JWT_SECRET_KEY: str
        Symmetric key used to sign tokens when ``JWT_ALGORITHM`` is ``HS*``.
    JWT_ALGORITHM: str
        Signing algorithm. ``RS*``/``ES*`` require ``JWT_PRIVATE_KEY`` and
        ``JWT_PUBLIC_KEY`` (PEM).
    ACCESS_TOKEN_TTL_SECONDS: int
        Access token lifetime (minutes-scale, 10 minutes by default).
    REFRESH_TOKEN_TTL_SECONDS: int
        Refresh token lifetime (days-scale, 14 days by default).
    REFRESH_COOKIE_NAME: str
        Cookie carrying the raw refresh token.
    REFRESH_COOKIE_SECURE: bool
        ``Secure`` attribute of the refresh cookie.
    REFRESH_COOKIE_SAMESITE: str
        ``None`` for cross-site deployments, ``Lax`` for same-site ones.
    REFRESH_COOKIE_PATH: str | None
        Cookie path. ``None`` scopes it to the refresh endpoint.
    REFRESH_STORE_BACKEND: str
        ``sqlalchemy`` (durable, default), ``redis`` or ``memory``.
    REDIS_URL: str | None
        Redis connection string, required by the ``redis`` backend.
    STORE_TIMEOUT_SECONDS: float
        Upper bound for any single refresh-store wait.
    SQLALCHEMY_DATABASE_URI: str
        Database connection string consumed by SQLAlchemy.
    LOG_LEVEL: str
        Root logging verbosity (``INFO`` by default).
    CORS_ORIGINS: str
        Comma-separated list of allowed origins for CORS.

    Notes
    -----
    Values are primarily sourced from environment variables, enabling
    configuration without code changes.
    """

    API_BASE_PREFIX = "/api"

    # Secrets / signing
    SECRET_KEY = os.getenv("SECRET_KEY", "CHANGE_ME")
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "CHANGE_ME_JWT")
    JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
    JWT_PRIVATE_KEY = os.getenv("JWT_PRIVATE_KEY")
    JWT_PUBLIC_KEY = os.getenv("JWT_PUBLIC_KEY")

    # Token lifetimes
    ACCESS_TOKEN_TTL_SECONDS = env_int("ACCESS_TOKEN_TTL_SECONDS", 600)
    REFRESH_TOKEN_TTL_SECONDS = env_int("REFRESH_TOKEN_TTL_SECONDS", 14 * 24 * 3600)

    # Refresh cookie
    REFRESH_COOKIE_NAME = os.getenv("REFRESH_COOKIE_NAME", "refresh_token")
    REFRESH_COOKIE_SECURE = env_bool("REFRESH_COOKIE_SECURE", True)
    REFRESH_COOKIE_SAMESITE = os.getenv("REFRESH_COOKIE_SAMESITE", "None")
    REFRESH_COOKIE_PATH: str | None = os.getenv("REFRESH_COOKIE_PATH") or None

    # Refresh store
    REFRESH_STORE_BACKEND = os.getenv("REFRESH_STORE_BACKEND", "sqlalchemy").strip().lower()
    REDIS_URL = os.getenv("REDIS_URL")
    STORE_TIMEOUT_SECONDS = env_float("STORE_TIMEOUT_SECONDS", 2.0)

    # DB
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///./dev.db")
    SQLALCHEMY_ENGINE_OPTIONS = bounded_engine_options(
        SQLALCHEMY_DATABASE_URI, STORE_TIMEOUT_SECONDS
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)

    # Flask & JSON
    JSON_SORT_KEYS = False
    PROPAGATE_EXCEPTIONS = False

    # Logging & CORS
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:5173")

    # Flask built-ins
    DEBUG = False
    TESTING = False


class DevelopmentConfig(BaseConfig):
    """Configuration tailored for local development.

    Notes
    -----
    Plain HTTP is common on localhost, so the refresh cookie drops ``Secure``
    unless explicitly requested.
    """

    DEBUG = env_bool("FLASK_DEBUG", True)
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)
    REFRESH_COOKIE_SECURE = env_bool("REFRESH_COOKIE_SECURE", False)
    REFRESH_COOKIE_SAMESITE = os.getenv("REFRESH_COOKIE_SAMESITE", "Lax")
    CORS_MAX_AGE = 600  # 10 minutes


class TestingConfig(BaseConfig):
    """Configuration for automated test runs.

    Notes
    -----
    - Forces ``TESTING`` mode and disables debug logs.
    - Uses an in-memory SQLite database unless ``TEST_DATABASE_URL`` is set.
    - Propagates exceptions so pytest can surface tracebacks directly.
    """

    TESTING = True
    DEBUG = False
    JWT_SECRET_KEY = "testing-secret-key-with-enough-entropy-0123456789"
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")
    SQLALCHEMY_ENGINE_OPTIONS = bounded_engine_options(
        SQLALCHEMY_DATABASE_URI, BaseConfig.STORE_TIMEOUT_SECONDS
    )
    SQLALCHEMY_ECHO = False
    REFRESH_STORE_BACKEND = "sqlalchemy"
    REDIS_URL = None
    PROPAGATE_EXCEPTIONS = False
    USE_PROXYFIX = False


class ProductionConfig(BaseConfig):
    """Configuration defaults for production deployments.

    Notes
    -----
    Keeps debug and SQL echoing disabled. Engine options come from
    :func:`bounded_engine_options` like every other environment.
    """

    DEBUG = False
    SQLALCHEMY_ECHO = False
    PROPAGATE_EXCEPTIONS = False


# Map names -> classes (simple, explicit)
CONFIG_MAP: Mapping[str, type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}


def get_config() -> type[BaseConfig]:
    """Return the configuration class inferred from ``APP_ENV``.

    Returns
    -------
    type[BaseConfig]
        Class to pass to :meth:`flask.Config.from_object`.

    Notes
    -----
    Falls back to :class:`DevelopmentConfig` when ``APP_ENV`` is unset or
    unknown.
    """
    name = os.getenv(ENV_VAR, "development").strip().lower()
    return CONFIG_MAP.get(name, DevelopmentConfig)


def validate_config(config: Mapping[str, Any]) -> None:
    """Fail fast on settings that would make the service insecure or unusable.

    Placeholder secrets are only rejected outside debug/testing runs.

    :param config: Loaded Flask config mapping.
    :raises ValueError: On an unknown store backend, a missing Redis URL, an
        asymmetric algorithm without keys, or a placeholder production secret.
    """
    backend = str(config.get("REFRESH_STORE_BACKEND", "sqlalchemy")).lower()
    if backend not in STORE_BACKENDS:
        raise ValueError(
            f"REFRESH_STORE_BACKEND must be one of {sorted(STORE_BACKENDS)}, got {backend!r}."
        )
    if backend == "redis" and not config.get("REDIS_URL"):
        raise ValueError("REDIS_URL is required when REFRESH_STORE_BACKEND is 'redis'.")

    algorithm = str(config.get("JWT_ALGORITHM", "HS256")).upper()
    if not algorithm.startswith("HS") and not (
        config.get("JWT_PRIVATE_KEY") and config.get("JWT_PUBLIC_KEY")
    ):
        raise ValueError(f"{algorithm} requires JWT_PRIVATE_KEY and JWT_PUBLIC_KEY.")

    if config.get("DEBUG") or config.get("TESTING"):
        return
    if algorithm.startswith("HS") and config.get("JWT_SECRET_KEY") in PLACEHOLDER_SECRETS:
        raise ValueError("JWT_SECRET_KEY must be set to a strong random value in production.")
    if config.get("SECRET_KEY") in PLACEHOLDER_SECRETS:
        raise ValueError("SECRET_KEY must be set to a strong random value in production.")
