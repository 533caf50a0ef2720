"""Alembic environment for cmdbctl.

Runs online only, on the connection :func:`build_config` placed in
``config.attributes``. Batch mode is on because SQLite cannot ALTER most
column definitions in place.
"""

from __future__ import annotations

from alembic import context

from cmdbctl.infrastructure.database.schema import metadata

connection = context.config.attributes.get("connection")
if connection is None or context.is_offline_mode():
    raise RuntimeError("cmdbctl migrations run through `cmdbctl upgrade` only")

context.configure(connection=connection, target_metadata=metadata, render_as_batch=True)
with context.begin_transaction():
    context.run_migrations()
