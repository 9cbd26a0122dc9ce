"""CLI tools for BPM administration."""

import click

from bpm.core.errors import ServiceError
from bpm.db.enums import Role
from bpm.db.session import SessionLocal


@click.group()
def cli():
    """BPM CLI tools."""
    pass


@cli.command()
@click.option("--email", required=True, help="User email address")
@click.option("--name", "full_name", required=True, help="Full name")
@click.option(
    "--role",
    type=click.Choice([r.value for r in Role]),
    default=Role.CLIENT.value,
    show_default=True,
    help="User role",
)
@click.option("--phone", default=None, help="Optional phone number")
def create_user(email: str, full_name: str, role: str, phone: str | None):
    """
    Create a user account.

    Example:
        bpm create-user --email "admin@example.com" --name "Admin" --role admin
    """
    from bpm.services import user_service

    db = SessionLocal()
    try:
        user = user_service.create_user(db, email, full_name, Role(role), phone=phone)
        click.echo(f"✓ Created {user.role}: {user.email}")
        click.echo(f"  ID: {user.id}")
    except ServiceError as e:
        db.rollback()
        raise click.ClickException(e.message)
    finally:
        db.close()


@cli.command()
@click.option("--email", required=True, help="User email to issue a session token for")
def issue_token(email: str):
    """
    Print a session token for a user (for API clients and the WebSocket).

    Example:
        bpm issue-token --email "employee@example.com"
    """
    from bpm.core.security import create_session_token
    from bpm.services import user_service

    db = SessionLocal()
    try:
        user = user_service.get_user_by_email(db, email)
        if not user:
            raise click.ClickException(f"User not found: {email}")
        if not user.is_active:
            raise click.ClickException(f"User is disabled: {email}")
        click.echo(create_session_token(user.id, user.role, user.token_version))
    finally:
        db.close()


@cli.command()
@click.option("--email", required=True, help="User email to revoke sessions for")
def revoke_sessions(email: str):
    """
    Revoke all sessions for a user by bumping their token_version.

    Example:
        bpm revoke-sessions --email "user@example.com"
    """
    from bpm.services import user_service

    db = SessionLocal()
    try:
        user = user_service.get_user_by_email(db, email)
        if not user:
            raise click.ClickException(f"User not found: {email}")
        user_service.revoke_all_sessions(db, user.id)
        click.echo(f"✓ Revoked all sessions for {email}")
    finally:
        db.close()


@cli.command()
def init_db():
    """
    Create all tables directly from the models.

    For local development; deployments run `alembic upgrade head`.
    """
    from bpm.db import models  # noqa: F401 - registers the mappers
    from bpm.db.base import Base
    from bpm.db.session import engine

    Base.metadata.create_all(bind=engine)
    click.echo("✓ Database tables created")


if __name__ == "__main__":
    cli()
