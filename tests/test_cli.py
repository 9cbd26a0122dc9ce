"""Tests for the admin CLI."""

from click.testing import CliRunner

from bpm.cli import cli
from bpm.core.security import decode_session_token
from bpm.services import user_service


def test_create_user_and_issue_token(db):
    runner = CliRunner()

    result = runner.invoke(
        cli, ["create-user", "--email", "Ops@Example.com", "--name", "Ops", "--role", "admin"]
    )
    assert result.exit_code == 0, result.output
    assert "Created admin: ops@example.com" in result.output

    result = runner.invoke(cli, ["issue-token", "--email", "ops@example.com"])
    assert result.exit_code == 0
    payload = decode_session_token(result.output.strip())
    assert payload["role"] == "admin"


def test_create_user_duplicate_fails(db, client_user):
    result = CliRunner().invoke(
        cli, ["create-user", "--email", client_user.email, "--name", "Copy"]
    )

    assert result.exit_code == 1
    assert "already exists" in result.output


def test_revoke_sessions_bumps_token_version(db, client_user):
    before = client_user.token_version

    result = CliRunner().invoke(cli, ["revoke-sessions", "--email", client_user.email])

    assert result.exit_code == 0
    db.expire_all()
    assert user_service.get_user_by_id(db, client_user.id).token_version == before + 1


def test_unknown_email_is_reported(db):
    result = CliRunner().invoke(cli, ["issue-token", "--email", "ghost@example.com"])

    assert result.exit_code == 1
    assert "User not found" in result.output
