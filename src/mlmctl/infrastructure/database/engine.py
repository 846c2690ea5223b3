"""Database engine setup for SQLite with WAL mode.

SQLite is the persistence layer: WAL mode for concurrent readers,
foreign keys for parent references, ACID transactions so that a placement
read and its insert commit or roll back together.
The DB is stored at {registry_root}/.mlmctl/mlmctl.db.

SQLAlchemy Core (not ORM) is used because mlmctl is a short-lived
CLI process — no benefit from session management or identity maps.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine

from mlmctl.infrastructure.database.schema import metadata

DATA_DIRNAME = ".mlmctl"
DB_FILENAME = "mlmctl.db"


def create_db_engine(db_path: Path) -> Engine:
    """Create a SQLite engine with WAL mode and foreign keys enabled."""
    engine = create_engine(f"sqlite:///{db_path}", echo=False)

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn: Any, _: Any) -> None:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return engine


def init_database(registry_root: Path) -> Engine:
    """Initialize the database at ``{registry_root}/.mlmctl/mlmctl.db``.

    Creates the ``.mlmctl/`` directory and every table from
    :data:`schema.metadata`. Idempotent — safe to call on an existing
    registry.

    Returns the engine ready for use.
    """
    data_dir = registry_root / DATA_DIRNAME
    data_dir.mkdir(parents=True, exist_ok=True)

    engine = create_db_engine(data_dir / DB_FILENAME)
    metadata.create_all(engine)
    return engine
