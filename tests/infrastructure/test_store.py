"""Tests for Store — the relational engine, graph mirror, and event bus root."""

from __future__ import annotations

import pytest

from cmdbctl.infrastructure.repositories import CITypeRepository
from cmdbctl.infrastructure.store import Store
from cmdbctl.plugins.event_bus import EventBus

NOW = "2026-01-01T00:00:00.000000+00:00"


def _row(type_id: str) -> dict:
    return {
        "id": type_id,
        "name": type_id,
        "attributes": {},
        "created_by": "tester",
        "created_at": NOW,
        "updated_at": NOW,
    }


class TestStore:
    def test_paths_follow_settings(self, store: Store) -> None:
        assert store.root == store.settings.data_root
        assert store.graph.path == store.settings.graph_path
        assert store.settings.db_path.is_file()

    def test_transaction_commits(self, store: Store) -> None:
        with store.transaction() as txn:
            CITypeRepository(txn.conn).insert(_row("t1"))
        with store.read() as conn:
            assert CITypeRepository(conn).get("t1") is not None

    def test_transaction_rolls_back_on_error(self, store: Store) -> None:
        with pytest.raises(RuntimeError), store.transaction() as txn:
            CITypeRepository(txn.conn).insert(_row("t1"))
            raise RuntimeError("boom")
        with store.read() as conn:
            assert CITypeRepository(conn).get("t1") is None

    def test_event_bus_off_by_default(self, store: Store) -> None:
        assert store.event_bus is None

    def test_init_event_bus(self, store: Store) -> None:
        store.init_event_bus(sync=True)
        assert isinstance(store.event_bus, EventBus)
