"""Shared API helpers: route guards, JSON responses and the refresh cookie."""

from __future__ import annotations

import functools
import time
from collections.abc import Callable
from typing import Any, TypeVar

from flask import Response, current_app, g, jsonify, request, url_for

from sessionguard.api.gate import AuthFailure, Principal
from sessionguard.core.errors import Forbidden, Unauthorized

F = TypeVar("F", bound=Callable[..., Any])

REFRESH_ENDPOINT = "auth.refresh"


def _principal_or_401() -> Principal:
    principal: Principal | None = g.get("principal")
    if principal is not None:
        return principal
    failure = g.get("auth_failure")
    if failure is AuthFailure.EXPIRED:
        raise Unauthorized("Access token has expired. Refresh it and retry.", code="token_expired")
    if failure is AuthFailure.MALFORMED:
        raise Unauthorized("Malformed Authorization header.", code="malformed_token")
    raise Unauthorized("Authentication required.")


def require_auth(func: F) -> F:
    """Require an authenticated caller and pass it as the ``principal`` kwarg."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        kwargs["principal"] = _principal_or_401()
        return func(*args, **kwargs)

    return wrapper  # type: ignore[return-value]


def require_role(*roles: str) -> Callable[[F], F]:
    """Require an authenticated caller holding one of ``roles``."""

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any):
            principal = _principal_or_401()
            if not principal.has_role(*roles):
                raise Forbidden("Insufficient role.", code="insufficient_role")
            kwargs["principal"] = principal
            return func(*args, **kwargs)

        return wrapper  # type: ignore[return-value]

    return decorator


def json_response(payload: Any, *, status: int = 200) -> Response:
    """Return a JSON response enforcing a consistent MIME type."""
    response = jsonify(payload)
    response.status_code = status
    return response


def no_store(response: Response) -> Response:
    """Forbid caching of responses that carry credentials."""
    response.headers["Cache-Control"] = "no-store"
    response.headers["Pragma"] = "no-cache"
    return response


# ------------------------------ Refresh cookie ------------------------------


def _cookie_path() -> str:
    return current_app.config.get("REFRESH_COOKIE_PATH") or url_for(REFRESH_ENDPOINT)


def read_refresh_cookie() -> str | None:
    return request.cookies.get(current_app.config["REFRESH_COOKIE_NAME"])


def set_refresh_cookie(response: Response, raw_token: str) -> Response:
    """Attach the refresh token as an ``HttpOnly`` cookie scoped to the refresh endpoint."""
    cfg = current_app.config
    response.set_cookie(
        cfg["REFRESH_COOKIE_NAME"],
        raw_token,
        max_age=int(cfg["REFRESH_TOKEN_TTL_SECONDS"]),
        path=_cookie_path(),
        secure=bool(cfg["REFRESH_COOKIE_SECURE"]),
        httponly=True,
        samesite=cfg["REFRESH_COOKIE_SAMESITE"],
    )
    return response


def clear_refresh_cookie(response: Response) -> Response:
    cfg = current_app.config
    response.delete_cookie(
        cfg["REFRESH_COOKIE_NAME"],
        path=_cookie_path(),
        secure=bool(cfg["REFRESH_COOKIE_SECURE"]),
        httponly=True,
        samesite=cfg["REFRESH_COOKIE_SAMESITE"],
    )
    return response


def timing(func: F) -> F:
    """Decorator capturing handler execution time in milliseconds."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        start = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            current_app.logger.debug(
                "request.elapsed",
                extra={"endpoint": request.endpoint, "elapsed_ms": round(elapsed_ms, 2)},
            )

    return wrapper  # type: ignore[return-value]
