"""Authentication endpoints using the service layer."""

from __future__ import annotations

from flask import Blueprint, after_this_request, request

from sessionguard.api.deps import (
    clear_refresh_cookie,
    json_response,
    no_store,
    read_refresh_cookie,
    require_auth,
    set_refresh_cookie,
    timing,
)
from sessionguard.api.gate import Principal
from sessionguard.core.wiring import get_auth
from sessionguard.schemas import (
    LoginSchema,
    LogoutSchema,
    RevokedSchema,
    SessionSchema,
    TokenResponseSchema,
    WhoAmISchema,
)
from sessionguard.services._shared.errors import AuthenticationError
from sessionguard.services.auth.dto import LoginIn, LogoutIn, RefreshIn
from sessionguard.services.tokens.dto import TokenPair

bp = Blueprint("auth", __name__)

login_schema = LoginSchema()
logout_schema = LogoutSchema()
token_schema = TokenResponseSchema()
whoami_schema = WhoAmISchema()
session_schema = SessionSchema(many=True)
revoked_schema = RevokedSchema()


def _token_response(pair: TokenPair):
    body = {
        "data": token_schema.dump(
            {
                "access_token": pair.access.token,
                "token_type": "bearer",
                "expires_in": pair.access.expires_in,
            }
        )
    }
    response = json_response(body)
    set_refresh_cookie(response, pair.refresh.raw)
    return no_store(response)


@bp.post("/login")
@timing
def login():
    """Authenticate credentials, start a refresh chain and set the cookie."""
    data = login_schema.load(request.get_json(silent=True) or {})
    pair = get_auth().auth.login(
        LoginIn(email=data["email"], password=data["password"], device_id=data["device_id"])
    )
    return _token_response(pair)


@bp.post("/refresh")
@timing
def refresh():
    """Rotate the refresh cookie. The request body and headers are ignored."""
    try:
        pair = get_auth().auth.refresh(RefreshIn(refresh_token=read_refresh_cookie() or ""))
    except AuthenticationError:
        # contention (409) and outages (503) keep the cookie
        @after_this_request
        def _drop_cookie(response):
            return clear_refresh_cookie(response)

        raise
    return _token_response(pair)


@bp.post("/logout")
@require_auth
@timing
def logout(principal: Principal):
    """Revoke the caller's device chains (or all chains) and clear the cookie."""
    data = logout_schema.load(request.get_json(silent=True) or {})
    count = get_auth().auth.logout(
        LogoutIn(
            user_id=principal.user_id,
            device_id=principal.device_id,
            all_sessions=data["all_sessions"],
        )
    )
    response = json_response({"data": revoked_schema.dump({"revoked_count": count})})
    return no_store(clear_refresh_cookie(response))


@bp.get("/whoami")
@require_auth
@timing
def whoami(principal: Principal):
    """Return the authenticated user profile."""
    user = get_auth().auth.whoami(principal.user_id)
    return json_response({"data": whoami_schema.dump(user)})


@bp.get("/sessions")
@require_auth
@timing
def sessions(principal: Principal):
    """List the caller's live refresh sessions."""
    items = get_auth().auth.list_sessions(principal.user_id)
    return json_response({"data": session_schema.dump(items)})
