"""Flask CLI commands for inspecting and revoking refresh sessions."""

from __future__ import annotations

import click
from flask.cli import with_appcontext

from sessionguard.core.wiring import get_auth
from sessionguard.services._shared.errors import NotFoundError, ServiceError


@click.group("sessions")
def sessions_cli() -> None:
    """Refresh session commands."""


@sessions_cli.command("list")
@click.argument("user_id")
@with_appcontext
def list_command(user_id: str) -> None:
    """Print the live sessions of USER_ID."""
    items = get_auth().auth.list_sessions(user_id)
    if not items:
        click.echo("(no live sessions)")
        return
    for item in items:
        click.echo(
            f"{item.id}  device={item.device_id or '-'}  "
            f"issued={item.issued_at.isoformat()}  expires={item.expires_at.isoformat()}"
        )


@sessions_cli.command("revoke-user")
@click.argument("user_id")
@with_appcontext
def revoke_user_command(user_id: str) -> None:
    """Revoke every refresh chain of USER_ID."""
    try:
        count = get_auth().auth.revoke_user_sessions(user_id)
    except NotFoundError as exc:
        raise click.ClickException(str(exc)) from exc
    except ServiceError as exc:
        raise click.ClickException(exc.message) from exc
    click.echo(f"Revoked {count} refresh record(s) for user {user_id}")
