"""SQLite database engine and schema via SQLAlchemy Core."""

from mlmctl.infrastructure.database.engine import create_db_engine, init_database
from mlmctl.infrastructure.database.schema import members, metadata

__all__ = [
    "create_db_engine",
    "init_database",
    "members",
    "metadata",
]
