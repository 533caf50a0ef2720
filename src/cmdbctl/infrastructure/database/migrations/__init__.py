"""Alembic wiring for the cmdbctl schema.

There is no ``alembic.ini``: the config is built in code and commands run
on a connection borrowed from the store's engine, passed to ``env.py``
through ``Config.attributes``. Migrations therefore see the same SQLite
pragmas as the application.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory

if TYPE_CHECKING:
    from sqlalchemy.engine import Connection

SCRIPT_LOCATION = Path(__file__).parent


def build_config(connection: Connection | None = None) -> Config:
    """Alembic config for our scripts, optionally bound to *connection*."""
    cfg = Config()
    cfg.set_main_option("script_location", str(SCRIPT_LOCATION))
    if connection is not None:
        cfg.attributes["connection"] = connection
    return cfg


def head_revision() -> str | None:
    return ScriptDirectory.from_config(build_config()).get_current_head()


def current_revision(connection: Connection) -> str | None:
    """Revision recorded in ``alembic_version``; None for an untracked database."""
    return MigrationContext.configure(connection).get_current_revision()


def pending_revisions(current: str | None) -> list[dict[str, str]]:
    """Revisions above *current*, newest first."""
    script = ScriptDirectory.from_config(build_config())
    pending: list[dict[str, str]] = []
    revision = script.get_revision(script.get_current_head())
    while revision is not None and revision.revision != current:
        pending.append({"revision": revision.revision, "description": revision.doc or ""})
        if revision.down_revision is None:
            break
        revision = script.get_revision(str(revision.down_revision))
    return pending
