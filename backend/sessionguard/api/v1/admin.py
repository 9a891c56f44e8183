"""Administrative session management."""

from __future__ import annotations

from flask import Blueprint, current_app

from sessionguard.api.deps import json_response, require_role, timing
from sessionguard.api.gate import Principal
from sessionguard.core.wiring import get_auth
from sessionguard.schemas import RevokedSchema

bp = Blueprint("admin", __name__)

revoked_schema = RevokedSchema()


@bp.post("/users/<user_id>/revoke-sessions")
@require_role("admin")
@timing
def revoke_sessions(user_id: str, principal: Principal):
    """Revoke every refresh chain of ``user_id``."""
    count = get_auth().auth.revoke_user_sessions(user_id)
    current_app.logger.info(
        "Admin revoked user sessions",
        extra={"event": "auth.admin_revoke", "user_id": user_id, "revoked_count": count},
    )
    return json_response({"data": revoked_schema.dump({"revoked_count": count})})
