"""Registry — repository pattern with transaction coordination.

The Registry is the single dependency injected into every service. It owns
the database engine, the graph engine and the password hasher. The
:meth:`transaction` context manager binds a :class:`SqlMemberStore` to one
database transaction:

- **DB**: Native SQLAlchemy ``engine.begin()`` with auto-commit/rollback.
- **Graph**: Cache is invalidated on transaction end (success or failure).
  The graph is lazy-rebuilt from DB on next access.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING

from mlmctl.infrastructure.database.engine import init_database
from mlmctl.infrastructure.graph.engine import GraphEngine
from mlmctl.infrastructure.passwords import PasswordHasher
from mlmctl.infrastructure.store import SqlMemberStore

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

    from sqlalchemy import Connection
    from sqlalchemy.engine import Engine

    from mlmctl.config.settings import MlmSettings

logger = logging.getLogger(__name__)


@dataclass
class RegistryTransaction:
    """Active transaction context: the raw connection and a bound store."""

    conn: Connection
    store: SqlMemberStore


class Registry:
    """Repository encapsulating database, graph and credential access.

    Constructed lazily by the CLI context from :class:`MlmSettings`.
    Services receive the Registry via their :class:`BaseService`
    constructor.
    """

    def __init__(self, settings: MlmSettings) -> None:
        self._settings = settings
        self._engine: Engine = init_database(self.root)
        self._graph = GraphEngine(self._engine)
        self._passwords = PasswordHasher(rounds=settings.security.bcrypt_rounds)

    @property
    def root(self) -> Path:
        """The registry root directory."""
        return self._settings.registry_root

    @property
    def engine(self) -> Engine:
        """The underlying SQLAlchemy engine (for direct access when needed)."""
        return self._engine

    @property
    def graph(self) -> GraphEngine:
        """The graph engine (lazy-built from DB parent links)."""
        return self._graph

    @property
    def settings(self) -> MlmSettings:
        return self._settings

    @property
    def passwords(self) -> PasswordHasher:
        return self._passwords

    @contextmanager
    def transaction(self) -> Iterator[RegistryTransaction]:
        """Read-then-write unit of work.

        Everything done through ``txn.store`` commits on normal exit and
        rolls back if the block raises. Placement reads and the insert that
        follows them must share one transaction.

        **Warning:** ``registry.graph`` is built from committed state; do
        not consult it for decisions inside the block.

        Usage::

            with registry.transaction() as txn:
                placement = engine_for(txn.store).place_direct(...)
                txn.store.insert(record)
        """
        with self._engine.begin() as conn:
            try:
                yield RegistryTransaction(conn=conn, store=SqlMemberStore(conn))
            finally:
                self._graph.invalidate()

    @contextmanager
    def connect(self) -> Iterator[SqlMemberStore]:
        """Read-only store over a plain connection."""
        with self._engine.connect() as conn:
            yield SqlMemberStore(conn)

    def close(self) -> None:
        """Dispose of pooled connections."""
        logger.debug("Disposing registry engine for %s", self.root)
        self._engine.dispose()
