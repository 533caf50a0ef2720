"""Shared repository plumbing — live-row predicate and row codecs.

Every repository runs on a caller-owned :class:`~sqlalchemy.Connection`
so services control the transaction boundary. Soft-delete filtering is
applied here, once: any read through :meth:`TableRepository.get_live` or
:func:`live` excludes tombstoned rows.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from sqlalchemy import ColumnElement, func, insert, select, update

if TYPE_CHECKING:
    from sqlalchemy import Connection, RowMapping, Table

# Columns stored as JSON text and exposed as Python objects.
JSON_COLUMNS = frozenset({"attributes", "attributes_schema", "old_values", "new_values"})

# Columns stored as 0/1 integers and exposed as bools.
FLAG_COLUMNS = frozenset(
    {
        "is_admin",
        "is_active",
        "is_bidirectional",
        "is_initial_state",
        "is_terminal_state",
        "requires_approval",
        "is_default",
    }
)


def live(table: Table) -> ColumnElement[bool]:
    """Default read predicate for soft-deletable tables."""
    return table.c.deleted_at.is_(None)


def decode_row(row: RowMapping | dict[str, Any]) -> dict[str, Any]:
    """Convert a result row to a plain dict with JSON and flag columns decoded."""
    out: dict[str, Any] = {}
    for key, value in dict(row).items():
        if key in JSON_COLUMNS and isinstance(value, str):
            out[key] = json.loads(value)
        elif key in FLAG_COLUMNS and value is not None:
            out[key] = bool(value)
        else:
            out[key] = value
    return out


def encode_values(values: dict[str, Any]) -> dict[str, Any]:
    """Prepare a values dict for INSERT/UPDATE (JSON dump, bool → int)."""
    out: dict[str, Any] = {}
    for key, value in values.items():
        if key in JSON_COLUMNS and value is not None and not isinstance(value, str):
            out[key] = json.dumps(value, sort_keys=True)
        elif key in FLAG_COLUMNS and isinstance(value, bool):
            out[key] = int(value)
        else:
            out[key] = value
    return out


def like_pattern(term: str) -> str:
    """Case-insensitive LIKE pattern for a substring match (``%`` and ``_`` escaped)."""
    escaped = term.lower().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class TableRepository:
    """CRUD helpers for one table, bound to an open connection."""

    table: Table

    def __init__(self, conn: Connection) -> None:
        self._conn = conn

    @property
    def soft_deletable(self) -> bool:
        return "deleted_at" in self.table.c

    def get(self, row_id: str) -> dict[str, Any] | None:
        """Fetch one row by id, including tombstoned rows."""
        stmt = select(self.table).where(self.table.c.id == row_id)
        first = self._conn.execute(stmt).mappings().first()
        return decode_row(first) if first is not None else None

    def get_live(self, row_id: str) -> dict[str, Any] | None:
        """Fetch one row by id, or None if absent or soft-deleted."""
        stmt = select(self.table).where(self.table.c.id == row_id)
        if self.soft_deletable:
            stmt = stmt.where(live(self.table))
        first = self._conn.execute(stmt).mappings().first()
        return decode_row(first) if first is not None else None

    def find_live_by_name(
        self, name: str, *, exclude_id: str | None = None
    ) -> dict[str, Any] | None:
        """Fetch the live row carrying *name* (exact match)."""
        stmt = select(self.table).where(self.table.c.name == name)
        if self.soft_deletable:
            stmt = stmt.where(live(self.table))
        if exclude_id is not None:
            stmt = stmt.where(self.table.c.id != exclude_id)
        first = self._conn.execute(stmt).mappings().first()
        return decode_row(first) if first is not None else None

    def insert(self, values: dict[str, Any]) -> None:
        self._conn.execute(insert(self.table).values(**encode_values(values)))

    def update(self, row_id: str, values: dict[str, Any]) -> int:
        """Update a live row. Returns the number of rows changed."""
        stmt = update(self.table).where(self.table.c.id == row_id)
        if self.soft_deletable:
            stmt = stmt.where(live(self.table))
        result = self._conn.execute(stmt.values(**encode_values(values)))
        return result.rowcount

    def soft_delete(self, row_id: str, *, now: str, deleted_by: str | None = None) -> bool:
        """Tombstone a live row. Returns False if it was already gone."""
        values: dict[str, Any] = {"deleted_at": now}
        if deleted_by is not None and "deleted_by" in self.table.c:
            values["deleted_by"] = deleted_by
        if "updated_at" in self.table.c:
            values["updated_at"] = now
        return self.update(row_id, values) > 0

    def count_live(self) -> int:
        stmt = select(func.count()).select_from(self.table)
        if self.soft_deletable:
            stmt = stmt.where(live(self.table))
        return int(self._conn.execute(stmt).scalar_one())
