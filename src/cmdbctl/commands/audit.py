"""Command group: audit trail."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from cmdbctl.commands._base import CmdbGroup, page_options
from cmdbctl.services.audit import AuditService

if TYPE_CHECKING:
    from cmdbctl.commands._context import AppContext


@click.group(
    cls=CmdbGroup,
    examples="""\
  cmdbctl audit query --entity-type ci_asset --from 2024-01-01
  cmdbctl audit history ci_asset <asset-id>""",
)
@click.pass_obj
def audit(app: AppContext) -> None:
    """Inspect the append-only audit trail."""


@audit.command()
@click.option("--entity-type", default=None)
@click.option("--entity-id", default=None)
@click.option("--by", "performed_by", default=None, help="Acting user id.")
@click.option("--from", "from_date", default=None, help="ISO date or timestamp (inclusive).")
@click.option("--to", "to_date", default=None, help="ISO date or timestamp (inclusive).")
@page_options()
@click.pass_obj
def query(
    app: AppContext,
    entity_type: str | None,
    entity_id: str | None,
    performed_by: str | None,
    from_date: str | None,
    to_date: str | None,
    limit: int,
    offset: int,
) -> None:
    """Filter audit entries, newest first."""
    app.emit(
        AuditService(app.store).query(
            entity_type=entity_type,
            entity_id=entity_id,
            performed_by=performed_by,
            from_date=from_date,
            to_date=to_date,
            limit=limit,
            offset=offset,
        )
    )


@audit.command()
@click.argument("entity_type")
@click.argument("entity_id")
@click.pass_obj
def history(app: AppContext, entity_type: str, entity_id: str) -> None:
    """Show every change to one entity with field-level diffs."""
    app.emit(AuditService(app.store).history(entity_type, entity_id))
