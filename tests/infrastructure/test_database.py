"""Tests for the SQLite engine, schema, and live-row uniqueness backstops."""

from __future__ import annotations

from pathlib import Path

import pytest
from sqlalchemy import inspect, insert, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from cmdbctl.infrastructure.database.engine import init_database
from cmdbctl.infrastructure.database.schema import ci_types, metadata

EXPECTED_TABLES = {
    "users",
    "ci_types",
    "ci_assets",
    "relationship_types",
    "relationships",
    "lifecycle_types",
    "lifecycle_states",
    "lifecycle_transitions",
    "ci_type_lifecycles",
    "audit_log",
    "valuation_records",
    "amortization_entries",
    "event_wal",
}


def _type_row(type_id: str, name: str, *, deleted_at: str | None = None) -> dict:
    return {
        "id": type_id,
        "name": name,
        "attributes": "{}",
        "created_by": "t",
        "created_at": "2026-01-01T00:00:00",
        "updated_at": "2026-01-01T00:00:00",
        "deleted_at": deleted_at,
    }


class TestInitDatabase:
    def test_creates_state_dir_and_file(self, tmp_path: Path) -> None:
        engine = init_database(tmp_path)
        try:
            assert (tmp_path / ".cmdbctl" / "cmdbctl.db").is_file()
        finally:
            engine.dispose()

    def test_custom_filename(self, tmp_path: Path) -> None:
        engine = init_database(tmp_path, filename="other.db")
        try:
            assert (tmp_path / ".cmdbctl" / "other.db").is_file()
        finally:
            engine.dispose()

    def test_all_tables_created(self, db_engine: Engine) -> None:
        assert EXPECTED_TABLES <= set(inspect(db_engine).get_table_names())
        assert set(metadata.tables) == EXPECTED_TABLES

    def test_idempotent(self, tmp_path: Path) -> None:
        init_database(tmp_path).dispose()
        engine = init_database(tmp_path)
        try:
            assert "ci_types" in inspect(engine).get_table_names()
        finally:
            engine.dispose()

    def test_pragmas(self, db_engine: Engine) -> None:
        with db_engine.connect() as conn:
            assert conn.execute(text("PRAGMA journal_mode")).scalar() == "wal"
            assert conn.execute(text("PRAGMA foreign_keys")).scalar() == 1
            assert conn.execute(text("PRAGMA busy_timeout")).scalar() == 5000


class TestLiveUniqueness:
    def test_duplicate_live_name_rejected(self, db_engine: Engine) -> None:
        with db_engine.begin() as conn:
            conn.execute(insert(ci_types).values(**_type_row("a", "Server")))
        with pytest.raises(IntegrityError), db_engine.begin() as conn:
            conn.execute(insert(ci_types).values(**_type_row("b", "Server")))

    def test_tombstoned_name_can_be_reused(self, db_engine: Engine) -> None:
        with db_engine.begin() as conn:
            conn.execute(
                insert(ci_types).values(
                    **_type_row("a", "Server", deleted_at="2026-01-02T00:00:00")
                )
            )
            conn.execute(insert(ci_types).values(**_type_row("b", "Server")))
            count = conn.execute(text("SELECT count(*) FROM ci_types")).scalar()
        assert count == 2
