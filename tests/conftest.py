"""Shared pytest fixtures and test helpers for mlmctl tests."""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner
from sqlalchemy.engine import Engine

from mlmctl.config.settings import MlmSettings
from mlmctl.domain.members import Actor, MemberNode, NewMemberRecord
from mlmctl.domain.types import Role
from mlmctl.infrastructure.database.engine import init_database
from mlmctl.infrastructure.registry import Registry
from mlmctl.infrastructure.store import SqlMemberStore
from mlmctl.services.access import AccessService, actor_from_result


@pytest.fixture(autouse=True)
def _fast_bcrypt(monkeypatch: pytest.MonkeyPatch) -> None:
    """Minimum bcrypt cost and no stray MLMCTL_* overrides from the host."""
    monkeypatch.setenv("MLMCTL_SECURITY__BCRYPT_ROUNDS", "4")
    monkeypatch.delenv("MLMCTL_CONFIG", raising=False)
    monkeypatch.delenv("MLMCTL_ACTOR", raising=False)


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def db_engine(tmp_path: Path) -> Iterator[Engine]:
    """Initialized SQLite engine with all tables created."""
    engine = init_database(tmp_path)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def store(db_engine: Engine) -> Iterator[SqlMemberStore]:
    """A store bound to one open transaction (committed at teardown)."""
    with db_engine.begin() as conn:
        yield SqlMemberStore(conn)


@pytest.fixture
def registry_root(tmp_path: Path) -> Path:
    """Temporary registry directory."""
    return tmp_path


@pytest.fixture
def registry(registry_root: Path) -> Iterator[Registry]:
    """Registry with an initialized, empty database."""
    r = Registry(MlmSettings.from_cli(registry_root=registry_root))
    try:
        yield r
    finally:
        r.close()


@pytest.fixture
def admin(registry: Registry) -> Actor:
    """Bootstrapped admin of ``registry``, as an actor."""
    from mlmctl.services.bootstrap import BootstrapService

    result = BootstrapService(registry).ensure_admin("admin", "admin123")
    assert result.ok, result.error
    return actor_from_result(AccessService(registry).resolve_actor())


@pytest.fixture
def _isolated_registry(registry_root: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Change CWD to a temp registry root so the CLI uses an isolated database."""
    monkeypatch.chdir(registry_root)


# ---------------------------------------------------------------------------
# Shared test helpers
# ---------------------------------------------------------------------------


def make_registry(root: Path, **overrides: Any) -> Registry:
    """Registry with settings overrides, e.g. ``placement={"fallback": "bfs"}``."""
    return Registry(MlmSettings.from_cli(registry_root=root, **overrides))


def actor_for(registry: Registry, username: str) -> Actor:
    result = AccessService(registry).resolve_actor(username)
    assert result.ok, result.error
    return actor_from_result(result)


def enroll(
    registry: Registry,
    actor: Actor,
    username: str,
    *,
    package: str = "Silver",
    password: str = "secret1",
    **kwargs: Any,
) -> dict[str, Any]:
    """Enroll a client via MemberService, asserting success."""
    from mlmctl.services.members import MemberService

    result = MemberService(registry).enroll_client(
        actor,
        payment_confirmed=True,
        username=username,
        package=package,
        password=password,
        **kwargs,
    )
    assert result.ok, result.error
    return result.data


def add_client(
    registry: Registry,
    actor: Actor,
    username: str,
    *,
    package: str = "Silver",
    password: str = "secret1",
    **kwargs: Any,
) -> dict[str, Any]:
    """Create a client directly via MemberService, asserting success."""
    from mlmctl.services.members import MemberService

    result = MemberService(registry).create_client(
        actor,
        username=username,
        package=package,
        password=password,
        **kwargs,
    )
    assert result.ok, result.error
    return result.data


def put(
    store: SqlMemberStore,
    username: str,
    *,
    parent: MemberNode | None = None,
    position: str | None = None,
    role: Role = Role.CLIENT,
    package: str | None = "Silver",
) -> MemberNode:
    """Insert a raw row through the store, bypassing placement."""
    return store.insert(
        NewMemberRecord(
            username=username,
            password_hash="x",
            role=role,
            package=None if role == Role.ADMIN else package,
            parent_id=parent.id if parent else None,
            position=position,
        )
    )


@pytest.fixture
def _initialized_registry(registry_root: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """CWD set to a registry that went through ``init`` (admin/admin123)."""
    from mlmctl.services.bootstrap import BootstrapService

    monkeypatch.chdir(registry_root)
    result = BootstrapService.init_registry(registry_root, name="test-net")
    assert result.ok, result.error


def invoke_json(runner: CliRunner, args: list[str]) -> dict[str, Any]:
    """Run ``mlmctl --json --no-interact ARGS`` and parse the payload."""
    import json

    from mlmctl.cli import cli

    result = runner.invoke(cli, ["--json", "--no-interact", *args])
    return json.loads(result.output)
