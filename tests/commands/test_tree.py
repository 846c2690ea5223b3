"""Tests for the tree CLI command group."""

from __future__ import annotations

import pytest
from click.testing import CliRunner

from mlmctl.cli import cli
from tests.conftest import invoke_json


def _enroll(runner: CliRunner, username: str, *extra: str) -> None:
    data = invoke_json(
        runner,
        ["member", "enroll", username, "--package", "Silver", "--password", "secret1",
         "--confirm-payment", *extra],
    )
    assert data["ok"], data


@pytest.fixture
def _network(_initialized_registry: None, cli_runner: CliRunner) -> None:
    for name in ("alice", "bob", "carol", "dave"):
        _enroll(cli_runner, name)


@pytest.mark.usefixtures("_network")
class TestTreeCommands:
    def test_positions_default_to_actor(self, cli_runner: CliRunner) -> None:
        data = invoke_json(cli_runner, ["tree", "positions"])
        assert data["data"]["username"] == "admin"
        assert data["data"]["available"] == []

    def test_positions_of_leaf(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["tree", "positions", "bob"])
        assert result.exit_code == 0
        assert "left: free" in result.output

    def test_children(self, cli_runner: CliRunner) -> None:
        data = invoke_json(cli_runner, ["tree", "children", "alice"])
        assert [i["username"] for i in data["data"]["items"]] == ["carol", "dave"]

    def test_downline(self, cli_runner: CliRunner) -> None:
        data = invoke_json(cli_runner, ["tree", "downline"])
        assert [(i["username"], i["depth"]) for i in data["data"]["items"]] == [
            ("alice", 1),
            ("bob", 1),
            ("carol", 2),
            ("dave", 2),
        ]

    def test_show(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["tree", "show"])
        assert result.exit_code == 0
        assert "admin (admin)" in result.output
        assert "[left] carol (Silver)" in result.output

    def test_show_depth(self, cli_runner: CliRunner) -> None:
        data = invoke_json(cli_runner, ["tree", "show", "--depth", "1"])
        assert data["data"]["truncated"] is True

    def test_negative_depth_rejected(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["tree", "show", "--depth", "-1"])
        assert result.exit_code == 2

    def test_client_scope(self, cli_runner: CliRunner) -> None:
        own = invoke_json(cli_runner, ["--as", "alice", "tree", "show"])
        assert [r["username"] for r in own["data"]["roots"]] == ["alice"]
        other = invoke_json(cli_runner, ["--as", "alice", "tree", "downline", "bob"])
        assert other["error"]["code"] == "FORBIDDEN"
