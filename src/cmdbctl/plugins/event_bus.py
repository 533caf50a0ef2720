"""WAL-backed plugin event dispatch via pluggy + ThreadPoolExecutor.

Every ``post_mutation``/``post_job`` event is written to ``event_wal``
as ``pending`` before any plugin sees it. A hook that raises leaves the
row ``failed`` with its error; after ``max_retries`` attempts the row
becomes ``dead_letter``. The cleanup job drains outstanding rows, then
prunes finished ones past the retention window.

INVARIANT: Plugin failures are warnings, never errors.
"""

from __future__ import annotations

import json
import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import TYPE_CHECKING, Any

from sqlalchemy import delete, insert, select, update

from cmdbctl.infrastructure.database.schema import event_wal
from cmdbctl.services._helpers import now_iso

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

    from cmdbctl.plugins.manager import PluginManager

logger = logging.getLogger(__name__)

PENDING = "pending"
COMPLETED = "completed"
FAILED = "failed"
DEAD_LETTER = "dead_letter"
OUTSTANDING_STATUSES = (PENDING, FAILED)
FINISHED_STATUSES = (COMPLETED, DEAD_LETTER)


class EventBus:
    """Dispatches plugin hooks after commit, recording each event in the WAL.

    Parameters:
        engine: Engine owning the ``event_wal`` table.
        plugin_manager: Loaded :class:`PluginManager` whose hooks are called.
        sync: Run hooks inline (``--sync`` and tests) instead of on the pool.
        max_retries: Failed attempts before an event is dead-lettered.
        max_workers: Thread pool size for async dispatch.
    """

    def __init__(
        self,
        engine: Engine,
        plugin_manager: PluginManager,
        *,
        sync: bool = False,
        max_retries: int = 3,
        max_workers: int = 2,
    ) -> None:
        self._engine = engine
        self._pm = plugin_manager
        self._sync = sync
        self._max_retries = max_retries
        self._executor: ThreadPoolExecutor | None = (
            None if sync else ThreadPoolExecutor(max_workers=max_workers)
        )
        self._futures: list[Future[str]] = []

    def dispatch(self, hook_name: str, payload: dict[str, Any]) -> int:
        """Record the event, then run its hook. Returns the WAL row id."""
        event_id = self._append(hook_name, payload)
        if self._executor is None:
            self._run(event_id, hook_name, payload)
        else:
            self._futures.append(
                self._executor.submit(self._run, event_id, hook_name, payload)
            )
        return event_id

    def drain(self) -> list[dict[str, Any]]:
        """Wait for in-flight events, then retry outstanding ones inline.

        Returns ``{id, hook_name, status}`` per retried event, where
        status is the row's state after this attempt.
        """
        self._wait()
        with self._engine.connect() as conn:
            rows = conn.execute(
                select(event_wal.c.id, event_wal.c.hook_name, event_wal.c.payload)
                .where(event_wal.c.status.in_(OUTSTANDING_STATUSES))
                .order_by(event_wal.c.id)
            ).fetchall()

        return [
            {
                "id": row.id,
                "hook_name": row.hook_name,
                "status": self._run(row.id, row.hook_name, json.loads(row.payload)),
            }
            for row in rows
        ]

    def shutdown(self) -> None:
        """Finish in-flight events and stop the pool."""
        self._wait()
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    # ------------------------------------------------------------------
    # WAL
    # ------------------------------------------------------------------

    def _append(self, hook_name: str, payload: dict[str, Any]) -> int:
        with self._engine.begin() as conn:
            result = conn.execute(
                insert(event_wal).values(
                    hook_name=hook_name,
                    payload=json.dumps(payload),
                    status=PENDING,
                    retries=0,
                    created=now_iso(),
                )
            )
            assert result.lastrowid is not None
            return result.lastrowid

    def _run(self, event_id: int, hook_name: str, payload: dict[str, Any]) -> str:
        """Call the hook and record the outcome. Returns the new status.

        An event naming a hook no plugin implements completes at once.
        """
        hook_fn = getattr(self._pm.hook, hook_name, None)
        if hook_fn is None:
            return self._record(event_id, error=None)
        try:
            hook_fn(**payload)
        except Exception as exc:
            logger.warning("Hook %s failed for event %d: %s", hook_name, event_id, exc)
            return self._record(event_id, error=str(exc))
        return self._record(event_id, error=None)

    def _record(self, event_id: int, *, error: str | None) -> str:
        with self._engine.begin() as conn:
            if error is None:
                conn.execute(
                    update(event_wal)
                    .where(event_wal.c.id == event_id)
                    .values(status=COMPLETED, error=None, completed=now_iso())
                )
                return COMPLETED

            retries = (
                conn.execute(
                    select(event_wal.c.retries).where(event_wal.c.id == event_id)
                ).scalar_one()
                + 1
            )
            status = DEAD_LETTER if retries >= self._max_retries else FAILED
            conn.execute(
                update(event_wal)
                .where(event_wal.c.id == event_id)
                .values(
                    status=status,
                    error=error,
                    retries=retries,
                    completed=now_iso() if status == DEAD_LETTER else None,
                )
            )
            return status

    def _wait(self) -> None:
        for future in self._futures:
            try:
                future.result(timeout=30)
            except Exception:
                logger.debug("Event future raised after dispatch", exc_info=True)
        self._futures.clear()


def prune_finished_events(engine: Engine, cutoff: str) -> int:
    """Delete completed and dead-lettered WAL rows created before *cutoff*."""
    with engine.begin() as conn:
        result = conn.execute(
            delete(event_wal).where(
                event_wal.c.status.in_(FINISHED_STATUSES),
                event_wal.c.created < cutoff,
            )
        )
        return result.rowcount
