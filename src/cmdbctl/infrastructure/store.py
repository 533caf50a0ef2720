"""Store — the single dependency injected into every service.

The Store owns the relational engine (authoritative), the graph mirror
(best-effort projection), and the plugin event bus. There is no
cross-store transaction: :meth:`Store.transaction` covers the relational
database only, and services mirror to the graph after it commits.

- **DB**: Native SQLAlchemy ``engine.begin()`` with auto-commit/rollback.
- **Graph**: Written after commit; failures are reported, never rolled back.
- **Events**: Dispatched after commit through the WAL-backed event bus.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from cmdbctl.infrastructure.database.engine import init_database
from cmdbctl.infrastructure.graph.store import GraphStore

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

    from sqlalchemy import Connection
    from sqlalchemy.engine import Engine

    from cmdbctl.config.settings import CmdbSettings
    from cmdbctl.plugins.manager import PluginManager

logger = logging.getLogger(__name__)


@dataclass
class StoreTransaction:
    """Active relational transaction yielded by :meth:`Store.transaction`."""

    conn: Connection


class Store:
    """Repository root encapsulating the relational store and the graph mirror.

    Constructed once at CLI startup from :class:`CmdbSettings` and stored
    on the click context. Services receive the Store via their
    :class:`BaseService` constructor.
    """

    def __init__(self, settings: CmdbSettings, *, graph: GraphStore | None = None) -> None:
        self._settings = settings
        self._engine: Engine = init_database(
            settings.data_root, filename=settings.database.filename
        )
        self._graph = graph or GraphStore(settings.graph_path, enabled=settings.graph.enabled)
        self._event_bus: Any | None = None
        self._plugins: PluginManager | None = None

    @property
    def root(self) -> Path:
        """The data root directory."""
        return self._settings.data_root

    @property
    def engine(self) -> Engine:
        return self._engine

    @property
    def graph(self) -> GraphStore:
        """The graph mirror (may raise ``GraphStoreError`` on any access)."""
        return self._graph

    @property
    def settings(self) -> CmdbSettings:
        return self._settings

    @property
    def event_bus(self) -> Any | None:
        """The plugin event bus (None if not initialized)."""
        return self._event_bus

    @property
    def plugins(self) -> PluginManager | None:
        """The loaded plugin manager (None until the event bus is initialized)."""
        return self._plugins

    def init_event_bus(self, *, sync: bool = False) -> None:
        """Initialize the plugin event bus.

        Creates a PluginManager, discovers entry-point plugins, and wires
        up the EventBus. Called by AppContext when the store is first
        accessed and plugins are enabled.
        """
        from cmdbctl.plugins.event_bus import EventBus
        from cmdbctl.plugins.manager import PluginManager

        pm = PluginManager()
        pm.discover_and_load(local_dir=self._settings.state_dir / "plugins")
        self._plugins = pm
        self._event_bus = EventBus(self._engine, pm, sync=sync)

    @contextmanager
    def transaction(self) -> Iterator[StoreTransaction]:
        """Relational transaction: commit on success, rollback on exception.

        Usage::

            with store.transaction() as txn:
                CIAssetRepository(txn.conn).insert({...})
        """
        with self._engine.begin() as conn:
            yield StoreTransaction(conn=conn)

    @contextmanager
    def read(self) -> Iterator[Connection]:
        """Read-only connection (no transaction commit)."""
        with self._engine.connect() as conn:
            yield conn

    def close(self) -> None:
        """Drain the event bus and dispose of pooled connections."""
        if self._event_bus is not None:
            self._event_bus.shutdown()
        self._engine.dispose()
        logger.debug("Store closed: %s", self.root)
