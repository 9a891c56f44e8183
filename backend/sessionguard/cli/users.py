"""Flask CLI commands for managing user accounts."""

from __future__ import annotations

import logging

import click
from flask.cli import with_appcontext
from sqlalchemy.exc import IntegrityError

from sessionguard.models.user import ROLES
from sessionguard.uow import SQLAlchemyUnitOfWork

LOGGER = logging.getLogger(__name__)


@click.group("users")
def users_cli() -> None:
    """User account commands."""


@users_cli.command("create")
@click.option("--email", required=True, help="Login email (stored lowercase).")
@click.option("--username", required=True, help="Unique public handle.")
@click.option(
    "--password",
    required=True,
    prompt=True,
    hide_input=True,
    confirmation_prompt=True,
    help="Plain password; hashed before storage.",
)
@click.option(
    "--role",
    type=click.Choice(ROLES),
    default="user",
    show_default=True,
)
@click.option("--full-name", default=None, help="Optional display name.")
@with_appcontext
def create_command(
    email: str, username: str, password: str, role: str, full_name: str | None
) -> None:
    """Create a user account."""
    try:
        with SQLAlchemyUnitOfWork() as uow:
            if uow.users.exists_by_email(email):
                raise click.ClickException(f"A user with email {email!r} already exists.")
            user = uow.users.create(
                email=email,
                username=username,
                password=password,
                role=role,
                full_name=full_name,
            )
            user_id = user.id
    except (IntegrityError, ValueError) as exc:
        raise click.ClickException(f"User creation failed: {exc}") from exc
    LOGGER.info("User created", extra={"event": "users.created", "user_id": str(user_id)})
    click.echo(f"Created user {user_id} ({role})")
