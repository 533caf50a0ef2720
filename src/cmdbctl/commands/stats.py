"""Command: dashboard counts."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from cmdbctl.commands._base import CmdbCommand

if TYPE_CHECKING:
    from cmdbctl.commands._context import AppContext


@click.command(
    cls=CmdbCommand,
    examples="""\
  cmdbctl stats
  cmdbctl --json stats""",
)
@click.pass_obj
def stats(app: AppContext) -> None:
    """Show live entity counts and the total current valuation."""
    from cmdbctl.services.dashboard import DashboardService

    app.emit(DashboardService(app.store).stats())
