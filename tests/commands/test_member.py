"""Tests for the member CLI command group."""

from __future__ import annotations

import pytest
from click.testing import CliRunner

from mlmctl.cli import cli
from tests.conftest import invoke_json


def _enroll(runner: CliRunner, username: str, *extra: str) -> dict:  # type: ignore[type-arg]
    return invoke_json(
        runner,
        [
            "member",
            "enroll",
            username,
            "--package",
            "Gold",
            "--password",
            "secret1",
            "--confirm-payment",
            *extra,
        ],
    )


@pytest.mark.usefixtures("_initialized_registry")
class TestEnroll:
    def test_enroll(self, cli_runner: CliRunner) -> None:
        data = _enroll(cli_runner, "alice", "--name", "Alice", "--mobile", "9876543210")
        assert data["ok"] is True
        assert data["data"]["member"]["username"] == "alice"
        assert data["data"]["placement"]["position"] == "left"

    def test_rich_output(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(
            cli,
            [
                "--no-interact",
                "member",
                "enroll",
                "alice",
                "--package",
                "gold",
                "--password",
                "secret1",
                "--confirm-payment",
            ],
        )
        assert result.exit_code == 0, result.output
        assert "OK" in result.output
        assert "enroll_client" in result.output

    def test_payment_required(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(
            cli,
            ["--no-interact", "member", "enroll", "bob", "--package", "Silver", "--password", "secret1"],
        )
        assert result.exit_code == 1
        assert "PAYMENT_UNCONFIRMED" in result.output

    def test_fallback_warning_on_stderr(self, cli_runner: CliRunner) -> None:
        _enroll(cli_runner, "alice")
        _enroll(cli_runner, "bob")
        result = cli_runner.invoke(
            cli,
            [
                "--no-interact",
                "member",
                "enroll",
                "carol",
                "--package",
                "Silver",
                "--password",
                "secret1",
                "--confirm-payment",
            ],
        )
        assert result.exit_code == 0
        assert "WARNING:" in result.output
        assert "is full" in result.output

    def test_password_required_without_prompt(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(
            cli,
            ["--no-interact", "member", "enroll", "bob", "--package", "Silver", "--confirm-payment"],
        )
        assert result.exit_code == 2
        assert "--password is required" in result.output

    def test_client_cannot_enroll(self, cli_runner: CliRunner) -> None:
        _enroll(cli_runner, "alice")
        data = invoke_json(
            cli_runner,
            [
                "--as",
                "alice",
                "member",
                "enroll",
                "bob",
                "--package",
                "Gold",
                "--password",
                "secret1",
                "--confirm-payment",
            ],
        )
        assert data["error"]["code"] == "FORBIDDEN"


@pytest.mark.usefixtures("_initialized_registry")
class TestAdd:
    def test_add_under_parent(self, cli_runner: CliRunner) -> None:
        alice = _enroll(cli_runner, "alice")["data"]["member"]
        data = invoke_json(
            cli_runner,
            [
                "member",
                "add",
                "bob",
                "--package",
                "Silver",
                "--password",
                "secret1",
                "--parent",
                "alice",
                "--position",
                "RIGHT",
            ],
        )
        assert data["data"]["member"]["parent_id"] == alice["id"]
        assert data["data"]["member"]["position"] == "right"

    def test_add_as_client(self, cli_runner: CliRunner) -> None:
        alice = _enroll(cli_runner, "alice")["data"]["member"]
        data = invoke_json(
            cli_runner,
            ["--as", "alice", "member", "add", "bob", "--package", "Silver", "--password", "secret1"],
        )
        assert data["data"]["member"]["parent_id"] == alice["id"]

    def test_unknown_actor(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(
            cli,
            ["--no-interact", "--as", "ghost", "member", "add", "bob", "--package", "Silver",
             "--password", "secret1"],
        )
        assert result.exit_code == 1
        assert "No member with username: ghost" in result.output


@pytest.mark.usefixtures("_initialized_registry")
class TestReadCommands:
    def test_show(self, cli_runner: CliRunner) -> None:
        _enroll(cli_runner, "alice", "--email", "alice@example.com")
        result = cli_runner.invoke(cli, ["member", "show", "alice"])
        assert result.exit_code == 0
        assert "alice@example.com" in result.output
        assert "password" not in result.output

    def test_list_quiet(self, cli_runner: CliRunner) -> None:
        ids = [_enroll(cli_runner, n)["data"]["member"]["id"] for n in ("alice", "bob")]
        result = cli_runner.invoke(cli, ["-q", "member", "list"])
        assert result.output.split() == ids

    def test_stats(self, cli_runner: CliRunner) -> None:
        _enroll(cli_runner, "alice")
        data = invoke_json(cli_runner, ["member", "stats"])
        assert data["data"]["gold"] == 1
        assert data["data"]["total"] == 1

    def test_login(self, cli_runner: CliRunner) -> None:
        _enroll(cli_runner, "alice")
        ok = invoke_json(cli_runner, ["member", "login", "alice", "--password", "secret1"])
        assert ok["ok"] is True
        bad = invoke_json(
            cli_runner, ["member", "login", "alice", "--password", "secret1", "--role", "admin"]
        )
        assert bad["error"]["code"] == "INVALID_CREDENTIALS"


@pytest.mark.usefixtures("_initialized_registry")
class TestMaintenance:
    def test_update(self, cli_runner: CliRunner) -> None:
        _enroll(cli_runner, "alice")
        data = invoke_json(
            cli_runner, ["--as", "alice", "member", "update", "alice", "--name", "Alice A"]
        )
        assert data["data"]["member"]["name"] == "Alice A"
        assert data["data"]["fields_changed"] == ["name"]

    def test_passwd_self(self, cli_runner: CliRunner) -> None:
        _enroll(cli_runner, "alice")
        data = invoke_json(
            cli_runner,
            ["--as", "alice", "member", "passwd", "--current", "secret1", "--new", "secret2"],
        )
        assert data["ok"] is True
        login = invoke_json(cli_runner, ["member", "login", "alice", "--password", "secret2"])
        assert login["ok"] is True

    def test_passwd_interactive(self, cli_runner: CliRunner) -> None:
        _enroll(cli_runner, "alice")
        result = cli_runner.invoke(
            cli,
            ["--as", "alice", "member", "passwd"],
            input="secret1\nsecret2\nsecret2\n",
        )
        assert result.exit_code == 0, result.output

    def test_delete_requires_confirmation(self, cli_runner: CliRunner) -> None:
        _enroll(cli_runner, "alice")
        result = cli_runner.invoke(cli, ["member", "delete", "alice"], input="n\n")
        assert result.exit_code == 1
        assert invoke_json(cli_runner, ["member", "stats"])["data"]["total"] == 1

    def test_delete(self, cli_runner: CliRunner) -> None:
        _enroll(cli_runner, "alice")
        _enroll(cli_runner, "bob", "--parent", "alice")
        data = invoke_json(cli_runner, ["member", "delete", "alice", "--yes"])
        assert len(data["data"]["detached"]) == 1
        assert invoke_json(cli_runner, ["member", "stats"])["data"]["orphans"] == 1

    def test_delete_admin_refused(self, cli_runner: CliRunner) -> None:
        data = invoke_json(cli_runner, ["member", "delete", "admin", "--yes"])
        assert data["error"]["code"] == "CANNOT_DELETE_ADMIN"
