"""CORS policy for the API, aware of the cookie-carried refresh token."""

from __future__ import annotations

from flask import Flask
from flask_cors import CORS

# Headers browsers may read from cross-origin responses.
EXPOSED_HEADERS = ("X-Request-ID", "Retry-After", "WWW-Authenticate")


def init_app(app: Flask) -> None:
    """Configure CORS for API endpoints based on application config.

    Parameters
    ----------
    app: flask.Flask
        Application whose ``CORS_ORIGINS`` and ``CORS_MAX_AGE`` settings are
        consulted.

    Notes
    -----
    The refresh cookie only travels on credentialed requests, and browsers
    reject credentials for a wildcard origin. A blank or ``"*"`` value
    therefore allows any origin for bearer-only clients while the cookie
    endpoints stay same-origin.
    """
    raw_origins = app.config.get("CORS_ORIGINS", "")
    origins = [o.strip() for o in raw_origins.split(",") if o.strip()]
    wildcard = len(origins) == 0 or origins == ["*"]

    api_base = app.config.get("API_BASE_PREFIX", "/api").rstrip("/")
    CORS(
        app,
        resources={rf"{api_base}/*": {"origins": "*" if wildcard else origins}},
        supports_credentials=not wildcard,
        expose_headers=list(EXPOSED_HEADERS),
        allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
        max_age=app.config.get("CORS_MAX_AGE", 600),
    )
