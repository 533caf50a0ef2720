"""Command: database schema migration."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from cmdbctl.commands._base import CmdbCommand

if TYPE_CHECKING:
    from cmdbctl.commands._context import AppContext


@click.command(
    cls=CmdbCommand,
    examples="""\
  cmdbctl upgrade
  cmdbctl upgrade --check
  cmdbctl --json upgrade --check""",
)
@click.option(
    "--check", "check_only", is_flag=True, help="Show pending migrations without applying."
)
@click.pass_obj
def upgrade(app: AppContext, check_only: bool) -> None:
    """Run pending database migrations."""
    from cmdbctl.services.upgrade import UpgradeService

    svc = UpgradeService(app.store)
    app.emit(svc.check_pending() if check_only else svc.apply())
