"""Authentication-related Marshmallow schemas."""

from __future__ import annotations

from marshmallow import Schema, fields, validate


class LoginSchema(Schema):
    """Input payload for authenticating a user."""

    email = fields.Email(required=True, validate=validate.Length(max=254))
    password = fields.String(required=True, validate=validate.Length(min=1, max=128))
    device_id = fields.String(load_default=None, validate=validate.Length(min=1, max=128))


class LogoutSchema(Schema):
    """Input payload for logging out."""

    all_sessions = fields.Boolean(load_default=False)


class TokenResponseSchema(Schema):
    """Response payload containing an access token."""

    access_token = fields.String(required=True)
    token_type = fields.String(dump_default="bearer")
    expires_in = fields.Integer(required=True)


class WhoAmISchema(Schema):
    """Response payload exposing identity details for the authenticated user."""

    id = fields.Integer(required=True)
    email = fields.Email(required=True)
    username = fields.String(required=True)
    full_name = fields.String(allow_none=True)
    role = fields.String(required=True)


class SessionSchema(Schema):
    """A live refresh chain of the caller (never exposes token material)."""

    id = fields.String(required=True)
    device_id = fields.String(allow_none=True)
    issued_at = fields.DateTime(required=True)
    expires_at = fields.DateTime(required=True)


class RevokedSchema(Schema):
    revoked_count = fields.Integer(required=True)
