"""Tests for the root mlmctl CLI."""

import pytest
from click.testing import CliRunner

from mlmctl import __version__
from mlmctl.cli import cli


def test_cli_help(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(cli, ["--help"])
    assert result.exit_code == 0
    assert "mlmctl" in result.output


def test_cli_version(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_cli_no_args(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(cli, [])
    assert result.exit_code == 0
    assert "Usage" in result.output


# --- Global flags ---


@pytest.mark.parametrize(
    "flag", ["--json", "-q", "-v", "--log-json", "--no-interact", "--as=alice"]
)
def test_global_flag_accepted(cli_runner: CliRunner, flag: str) -> None:
    result = cli_runner.invoke(cli, [flag, "--version"])
    assert result.exit_code == 0


def test_commands_registered(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(cli, ["--help"])
    for name in ("init", "member", "tree", "check"):
        assert name in result.output, f"{name} missing from --help"


HELP_COMMANDS: list[tuple[list[str], list[str]]] = [
    (["member", "--help"], ["add", "enroll", "show", "list", "stats", "update", "passwd", "delete", "login"]),
    (["member", "add", "--help"], ["USERNAME", "--package", "--parent", "--position"]),
    (["member", "enroll", "--help"], ["--confirm-payment", "--parent"]),
    (["member", "list", "--help"], ["--package"]),
    (["tree", "--help"], ["positions", "children", "downline", "show"]),
    (["tree", "show", "--help"], ["--depth"]),
    (["check", "--help"], ["--min-severity", "--errors-only"]),
    (["init", "--help"], ["--name", "--admin-username", "--admin-password"]),
]


@pytest.mark.parametrize(("args", "expected"), HELP_COMMANDS, ids=lambda v: str(v))
def test_help(cli_runner: CliRunner, args: list[str], expected: list[str]) -> None:
    result = cli_runner.invoke(cli, args)
    assert result.exit_code == 0, f"{args} failed: {result.output}"
    for keyword in expected:
        assert keyword in result.output


@pytest.mark.usefixtures("_isolated_registry")
def test_uninitialized_registry_reports_missing_admin(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(cli, ["member", "stats"])
    assert result.exit_code == 0

    result = cli_runner.invoke(cli, ["tree", "show"])
    assert result.exit_code == 1
    assert "NO_ADMIN" in result.output
