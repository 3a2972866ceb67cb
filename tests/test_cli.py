"""Tests for the admin CLI."""

import pytest
from rich.console import Console
from sqlalchemy import func, select
from typer.testing import CliRunner

from giveroom import cli
from giveroom.auth.models import UserAccount

runner = CliRunner()

CHANNEL = "https://t.me/example_channel"


def user_count(database):
    with database.session() as session:
        return session.scalar(select(func.count(UserAccount.id)))


@pytest.fixture(autouse=True)
def cli_database(database, monkeypatch):
    """Point the CLI at the per-test database."""
    monkeypatch.setattr(cli, "db", database)
    # Wide enough that table cells never wrap
    monkeypatch.setattr(cli, "console", Console(width=200))
    return database


class TestCli:

    def test_init(self):
        result = runner.invoke(cli.app, ["init"])

        assert result.exit_code == 0
        assert "Database initialized" in result.output

    def test_create_user(self, session_auth_service):
        result = runner.invoke(cli.app, ["create-user", "alice", "--password", "pw1"])

        assert result.exit_code == 0
        assert "alice" in result.output
        assert session_auth_service.login("alice", "pw1").identity.username == "alice"

    def test_create_duplicate_user(self):
        runner.invoke(cli.app, ["create-user", "alice", "--password", "pw1"])

        result = runner.invoke(cli.app, ["create-user", "alice", "--password", "pw1"])

        assert result.exit_code == 1
        assert "already taken" in result.output

    def test_giveaways_empty(self):
        result = runner.invoke(cli.app, ["giveaways"])

        assert result.exit_code == 0
        assert "No giveaways found" in result.output

    def test_giveaways_unknown_owner(self):
        result = runner.invoke(cli.app, ["giveaways", "--owner", "nobody"])

        assert result.exit_code == 1
        assert "Unknown user" in result.output

    def test_giveaways_by_owner(self, giveaway_service, alice, bob):
        giveaway_service.create_giveaway(alice, "Alice room", CHANNEL)
        giveaway_service.create_giveaway(bob, "Bob room", CHANNEL)

        result = runner.invoke(cli.app, ["giveaways", "--owner", "alice"])

        assert result.exit_code == 0
        assert "Alice room" in result.output
        assert "Bob room" not in result.output

    def test_referrals(self, giveaway_service, alice):
        giveaway = giveaway_service.create_giveaway(alice, "Room", CHANNEL)
        giveaway_service.submit_join(giveaway.code, "bob")

        result = runner.invoke(cli.app, ["referrals", giveaway.code])

        assert result.exit_code == 0
        assert "bob" in result.output
        assert "1 referrals" in result.output

    def test_referrals_unknown_code(self):
        result = runner.invoke(cli.app, ["referrals", "missing"])

        assert result.exit_code == 1
        assert "Giveaway not found" in result.output

    def test_purge_sessions(self):
        result = runner.invoke(cli.app, ["purge-sessions"])

        assert result.exit_code == 0
        assert "Removed 0 expired sessions" in result.output

    def test_init_reset_drops_existing_data(self, session_auth_service, cli_database):
        session_auth_service.signup("alice", "pw1")

        result = runner.invoke(cli.app, ["init", "--reset"], input="y\n")

        assert result.exit_code == 0
        assert "Existing tables dropped" in result.output
        assert user_count(cli_database) == 0

    def test_init_reset_aborts_without_confirmation(self, session_auth_service, cli_database):
        session_auth_service.signup("alice", "pw1")

        result = runner.invoke(cli.app, ["init", "--reset"], input="n\n")

        assert result.exit_code == 1
        assert user_count(cli_database) == 1
