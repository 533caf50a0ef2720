"""JobScheduler — daily background jobs on a stoppable thread.

Each job has a UTC ``HH:MM`` run time and runs at most once per calendar
day. The scheduler thread wakes every ``poll_seconds``; a job is due once
the clock has passed its run time and it has not yet run today, so a
poll interval longer than a minute never skips a run.

INVARIANT: Job failures are logged and reported via ``post_job``, never raised.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, date, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy.exc import SQLAlchemyError

from cmdbctl.plugins.event_bus import prune_finished_events
from cmdbctl.services._helpers import days_ago_iso
from cmdbctl.services.audit import AuditService
from cmdbctl.services.base import fail
from cmdbctl.services.graph import GraphService
from cmdbctl.services.result import INTERNAL_ERROR, NOT_FOUND, ServiceResult
from cmdbctl.services.valuation import ValuationService

if TYPE_CHECKING:
    from cmdbctl.infrastructure.store import Store

logger = logging.getLogger(__name__)


# ── Built-in jobs ─────────────────────────────────────────────────────


def run_amortization(store: Store) -> ServiceResult:
    return ValuationService(store).recalculate_all()


def run_cleanup(store: Store) -> ServiceResult:
    """Drain pending events, then prune finished events and old audit entries."""
    op = "cleanup"
    jobs = store.settings.jobs
    warnings: list[str] = []

    bus = store.event_bus
    retried = bus.drain() if bus is not None else []

    try:
        events_pruned = prune_finished_events(
            store.engine, days_ago_iso(jobs.event_retention_days)
        )
    except SQLAlchemyError as exc:
        logger.warning("Event pruning failed: %s", exc)
        warnings.append(f"Event pruning failed: {exc}")
        events_pruned = 0

    audit = AuditService(store).prune(jobs.audit_retention_days)
    if not audit.ok:
        return audit
    return ServiceResult(
        ok=True,
        op=op,
        data={
            "events_retried": len(retried),
            "events_pruned": events_pruned,
            "audit_pruned": audit.data["deleted"],
        },
        warnings=warnings,
    )


def run_graph_reconcile(store: Store) -> ServiceResult:
    return GraphService(store).reconcile()


@dataclass(frozen=True)
class Job:
    """A named daily job."""

    name: str
    at: str  # HH:MM, UTC
    run: Callable[[Store], ServiceResult]

    def due(self, now: datetime, last_run: date | None) -> bool:
        if last_run == now.date():
            return False
        return now.strftime("%H:%M") >= self.at


def default_jobs(store: Store) -> list[Job]:
    """Built-in jobs at their configured times, then any plugin jobs."""
    jobs = store.settings.jobs
    builtin = [
        Job("amortization", jobs.amortization_at, run_amortization),
        Job("cleanup", jobs.cleanup_at, run_cleanup),
        Job("graph_reconcile", jobs.graph_reconcile_at, run_graph_reconcile),
    ]
    if store.plugins is None:
        return builtin
    return builtin + store.plugins.collect_jobs(reserved=[job.name for job in builtin])


# ── Scheduler ─────────────────────────────────────────────────────────


class JobScheduler:
    """Runs :class:`Job` entries once per day on a background thread.

    Parameters:
        store: Store handed to every job.
        jobs: Job table (defaults to the built-in jobs at configured times).
        clock: Returns the current UTC time; injectable for tests.
    """

    def __init__(
        self,
        store: Store,
        *,
        jobs: list[Job] | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._jobs = {job.name: job for job in (jobs if jobs is not None else default_jobs(store))}
        self._clock = clock or (lambda: datetime.now(UTC))
        self._last_run: dict[str, date] = {}
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def jobs(self) -> list[Job]:
        return list(self._jobs.values())

    def last_run(self, name: str) -> date | None:
        return self._last_run.get(name)

    # ------------------------------------------------------------------
    # Running jobs
    # ------------------------------------------------------------------

    def run_job(self, name: str) -> ServiceResult:
        """Run one job now. Failures come back as a failed result."""
        op = "run_job"
        job = self._jobs.get(name)
        if job is None:
            return fail(op, NOT_FOUND, f"Unknown job: {name}", available=sorted(self._jobs))

        logger.info("Running job %s", name)
        try:
            result = job.run(self._store)
        except Exception as exc:
            logger.exception("Job %s raised", name)
            result = fail(name, INTERNAL_ERROR, f"Job {name} failed: {exc}")

        detail: dict[str, Any] = dict(result.data)
        if not result.ok and result.error is not None:
            logger.warning("Job %s failed: %s", name, result.error.message)
            detail = {"error": result.error.message}
        self._notify(name, result.ok, detail)

        if result.ok:
            return ServiceResult(
                ok=True, op=op, data={"job": name, **result.data}, warnings=result.warnings
            )
        return result.model_copy(update={"op": op})

    def run_pending(self) -> list[str]:
        """Run every job that is due. Returns the names run."""
        now = self._clock()
        ran: list[str] = []
        for job in self._jobs.values():
            if not job.due(now, self._last_run.get(job.name)):
                continue
            self._last_run[job.name] = now.date()
            self.run_job(job.name)
            ran.append(job.name)
        return ran

    def _notify(self, name: str, ok: bool, detail: dict[str, Any]) -> None:
        bus = self._store.event_bus
        if bus is None:
            return
        try:
            bus.dispatch("post_job", {"job_name": name, "ok": ok, "detail": detail})
        except Exception:
            logger.debug("post_job dispatch failed for %s", name, exc_info=True)

    # ------------------------------------------------------------------
    # Thread lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start the polling thread (no-op if already running)."""
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="cmdbctl-jobs", daemon=True)
        self._thread.start()
        logger.info("Job scheduler started (%d jobs)", len(self._jobs))

    def stop(self, timeout: float | None = None) -> None:
        """Signal the thread to stop and wait for it."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info("Job scheduler stopped")

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _loop(self) -> None:
        poll = self._store.settings.jobs.poll_seconds
        while not self._stop.is_set():
            self.run_pending()
            self._stop.wait(poll)
