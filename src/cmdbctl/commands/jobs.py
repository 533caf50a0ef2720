"""Command group: scheduled background jobs."""

from __future__ import annotations

import contextlib
import time
from typing import TYPE_CHECKING

import click

from cmdbctl.commands._base import CmdbGroup
from cmdbctl.services.jobs import JobScheduler
from cmdbctl.services.result import ServiceResult

if TYPE_CHECKING:
    from cmdbctl.commands._context import AppContext


@click.group(
    cls=CmdbGroup,
    examples="""\
  cmdbctl jobs list
  cmdbctl jobs run amortization
  cmdbctl jobs serve
  cmdbctl jobs serve --once""",
)
@click.pass_obj
def jobs(app: AppContext) -> None:
    """Run the daily amortization, cleanup, and graph reconciliation jobs."""


@jobs.command("list")
@click.pass_obj
def list_cmd(app: AppContext) -> None:
    """Show the job table with daily run times (UTC)."""
    scheduler = JobScheduler(app.store)
    items = [{"id": job.name, "name": job.name, "at": job.at} for job in scheduler.jobs]
    app.emit(ServiceResult(ok=True, op="list_jobs", data={"items": items, "count": len(items)}))


@jobs.command()
@click.argument("name")
@click.pass_obj
def run(app: AppContext, name: str) -> None:
    """Run one job immediately."""
    app.emit(JobScheduler(app.store).run_job(name))


@jobs.command()
@click.option("--once", is_flag=True, help="Run whatever is due now, then exit.")
@click.pass_obj
def serve(app: AppContext, once: bool) -> None:
    """Run the scheduler in the foreground until interrupted."""
    scheduler = JobScheduler(app.store)
    if once:
        ran = scheduler.run_pending()
        app.emit(ServiceResult(ok=True, op="serve_jobs", data={"ran": ran, "count": len(ran)}))
        return

    scheduler.start()
    click.echo("Job scheduler running; press Ctrl-C to stop.", err=True)
    try:
        with contextlib.suppress(KeyboardInterrupt):
            while scheduler.running:
                time.sleep(1)
    finally:
        scheduler.stop()
