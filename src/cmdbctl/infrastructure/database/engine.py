"""Database engine setup for SQLite with WAL mode.

SQLite is the relational source of truth: WAL mode for concurrent reads
while the scheduler writes, foreign keys for referential integrity, and
ACID transactions around every check-then-insert.
The DB is stored at {data_root}/.cmdbctl/cmdbctl.db.

SQLAlchemy Core (not ORM) is used because every operation is a short
request/response cycle: no benefit from session management or identity maps.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine

from cmdbctl.config.discovery import STATE_DIRNAME
from cmdbctl.infrastructure.database.schema import metadata

DEFAULT_DB_FILENAME = "cmdbctl.db"

# Applied to every new DBAPI connection, migrations included.
SQLITE_PRAGMAS = (
    "journal_mode=WAL",
    "foreign_keys=ON",
    "busy_timeout=5000",
)


def apply_sqlite_pragmas(dbapi_conn: Any, _record: Any) -> None:
    """``connect`` event listener setting :data:`SQLITE_PRAGMAS`."""
    cursor = dbapi_conn.cursor()
    try:
        for pragma in SQLITE_PRAGMAS:
            cursor.execute(f"PRAGMA {pragma}")
    finally:
        cursor.close()


def create_db_engine(db_path: Path) -> Engine:
    """Create a SQLite engine with WAL mode and foreign keys enabled."""
    engine = create_engine(
        f"sqlite:///{db_path}",
        echo=False,
        connect_args={"check_same_thread": False},
    )
    event.listen(engine, "connect", apply_sqlite_pragmas)
    return engine


def init_database(data_root: Path, *, filename: str = DEFAULT_DB_FILENAME) -> Engine:
    """Initialize the database at ``{data_root}/.cmdbctl/{filename}``.

    Creates the ``.cmdbctl/`` directory and all tables from
    :data:`schema.metadata`. Idempotent, safe to call on an existing
    deployment.

    Returns the engine ready for use.
    """
    state_dir = data_root / STATE_DIRNAME
    state_dir.mkdir(parents=True, exist_ok=True)

    engine = create_db_engine(state_dir / filename)
    metadata.create_all(engine)
    return engine
