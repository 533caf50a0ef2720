"""Tests for the daily job scheduler and the built-in jobs."""

from __future__ import annotations

import threading
from datetime import UTC, date, datetime

import pytest
from sqlalchemy import update

from cmdbctl.infrastructure.database.schema import audit_log
from cmdbctl.infrastructure.store import Store
from cmdbctl.plugins.hookspecs import hookimpl
from cmdbctl.plugins.manager import PluginManager
from cmdbctl.services.jobs import (
    Job,
    JobScheduler,
    default_jobs,
    run_amortization,
    run_cleanup,
    run_graph_reconcile,
)
from cmdbctl.services.result import INTERNAL_ERROR, NOT_FOUND, ServiceResult
from tests.conftest import create_asset, create_ci_type, create_relationship_type, link


def _ok_job(calls: list[str], name: str = "tick", at: str = "01:00") -> Job:
    def run(store: Store) -> ServiceResult:
        calls.append(name)
        return ServiceResult(ok=True, op=name, data={"ticks": len(calls)})

    return Job(name, at, run)


def _noop(store: Store) -> ServiceResult:
    return ServiceResult(ok=True, op="noop")


class _JobPlugin:
    @hookimpl
    def register_jobs(self) -> list[Job]:
        return [Job("backup_export", "05:30", _noop), Job("cleanup", "06:00", _noop)]


class _Clock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class TestJobDue:
    def test_before_run_time(self) -> None:
        job = Job("x", "02:00", _noop)
        assert not job.due(datetime(2025, 3, 1, 1, 59, tzinfo=UTC), None)

    def test_after_run_time(self) -> None:
        job = Job("x", "02:00", _noop)
        assert job.due(datetime(2025, 3, 1, 2, 0, tzinfo=UTC), None)
        assert job.due(datetime(2025, 3, 1, 23, 0, tzinfo=UTC), date(2025, 2, 28))

    def test_once_per_day(self) -> None:
        job = Job("x", "02:00", _noop)
        assert not job.due(datetime(2025, 3, 1, 9, 0, tzinfo=UTC), date(2025, 3, 1))


class TestRunJob:
    def test_success_wraps_result(self, store: Store) -> None:
        calls: list[str] = []
        scheduler = JobScheduler(store, jobs=[_ok_job(calls)])
        result = scheduler.run_job("tick")
        assert result.ok
        assert result.op == "run_job"
        assert result.data == {"job": "tick", "ticks": 1}

    def test_unknown_job(self, store: Store) -> None:
        scheduler = JobScheduler(store, jobs=[_ok_job([])])
        result = scheduler.run_job("x")
        assert result.error.code == NOT_FOUND
        assert result.error.message == "Unknown job: x"
        assert result.error.detail["available"] == ["tick"]

    def test_raising_job_becomes_failure(self, store: Store) -> None:
        def explode(store: Store) -> ServiceResult:
            raise RuntimeError("boom")

        scheduler = JobScheduler(store, jobs=[Job("explode", "00:00", explode)])
        result = scheduler.run_job("explode")
        assert not result.ok
        assert result.op == "run_job"
        assert result.error.code == INTERNAL_ERROR
        assert result.error.message == "Job explode failed: boom"

    def test_notifies_post_job(self, store: Store, monkeypatch: pytest.MonkeyPatch) -> None:
        seen: list[tuple[str, dict]] = []

        class _Bus:
            def dispatch(self, hook: str, payload: dict) -> None:
                seen.append((hook, payload))

            def drain(self) -> list[dict]:
                return []

            def shutdown(self) -> None:
                pass

        monkeypatch.setattr(store, "_event_bus", _Bus())
        JobScheduler(store, jobs=[_ok_job([])]).run_job("tick")
        assert seen == [("post_job", {"job_name": "tick", "ok": True, "detail": {"ticks": 1}})]

    def test_default_job_table(self, store: Store) -> None:
        jobs = {job.name: job.at for job in default_jobs(store)}
        assert jobs == {"amortization": "02:00", "cleanup": "03:00", "graph_reconcile": "04:00"}

    def test_plugin_jobs_follow_builtins(
        self, store: Store, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        pm = PluginManager()
        pm.register_plugin(_JobPlugin(), name="backup")
        monkeypatch.setattr(store, "_plugins", pm)
        names = [job.name for job in default_jobs(store)]
        assert names == ["amortization", "cleanup", "graph_reconcile", "backup_export"]


class TestRunPending:
    def test_runs_due_jobs_once_per_day(self, store: Store) -> None:
        calls: list[str] = []
        clock = _Clock(datetime(2025, 3, 1, 0, 30, tzinfo=UTC))
        scheduler = JobScheduler(
            store,
            jobs=[_ok_job(calls, "early", "01:00"), _ok_job(calls, "late", "05:00")],
            clock=clock,
        )

        assert scheduler.run_pending() == []
        clock.now = datetime(2025, 3, 1, 1, 0, tzinfo=UTC)
        assert scheduler.run_pending() == ["early"]
        assert scheduler.last_run("early") == date(2025, 3, 1)
        clock.now = datetime(2025, 3, 1, 6, 0, tzinfo=UTC)
        assert scheduler.run_pending() == ["late"]
        clock.now = datetime(2025, 3, 1, 23, 59, tzinfo=UTC)
        assert scheduler.run_pending() == []
        clock.now = datetime(2025, 3, 2, 1, 5, tzinfo=UTC)
        assert scheduler.run_pending() == ["early"]
        assert calls == ["early", "late", "early"]

    def test_failed_job_still_counts_as_run(self, store: Store) -> None:
        def explode(store: Store) -> ServiceResult:
            raise RuntimeError("boom")

        clock = _Clock(datetime(2025, 3, 1, 12, 0, tzinfo=UTC))
        scheduler = JobScheduler(store, jobs=[Job("explode", "00:00", explode)], clock=clock)
        assert scheduler.run_pending() == ["explode"]
        assert scheduler.run_pending() == []


class TestThread:
    def test_start_and_stop(self, store: Store) -> None:
        ran = threading.Event()

        def run(store: Store) -> ServiceResult:
            ran.set()
            return ServiceResult(ok=True, op="t")

        scheduler = JobScheduler(
            store,
            jobs=[Job("t", "00:00", run)],
            clock=lambda: datetime(2025, 3, 1, 12, 0, tzinfo=UTC),
        )
        scheduler.start()
        try:
            assert scheduler.running
            assert ran.wait(5)
        finally:
            scheduler.stop(timeout=5)
        assert not scheduler.running


class TestBuiltInJobs:
    def test_cleanup(self, store: Store) -> None:
        create_ci_type(store, "Ancient")
        with store.transaction() as txn:
            txn.conn.execute(update(audit_log).values(created_at="2000-01-01T00:00:00+00:00"))
        create_ci_type(store, "Fresh")

        result = run_cleanup(store)
        assert result.ok
        assert result.op == "cleanup"
        assert result.data == {"events_retried": 0, "events_pruned": 0, "audit_pruned": 1}

    def test_amortization(self, store: Store) -> None:
        result = run_amortization(store)
        assert result.ok
        assert result.data["updated"] == 0

    def test_graph_reconcile(self, store: Store) -> None:
        server = create_ci_type(store, "Server")
        a = create_asset(store, server["id"], "a")
        b = create_asset(store, server["id"], "b")
        link(store, create_relationship_type(store, "Uses")["id"], a["id"], b["id"])
        store.graph.replace([], [])
        assert run_graph_reconcile(store).data == {"nodes": 2, "edges": 1}
