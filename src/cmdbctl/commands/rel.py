"""Command group: relationships between assets."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import click

from cmdbctl.commands._base import CmdbGroup, parse_json_object
from cmdbctl.services.relationship import RelationshipService

if TYPE_CHECKING:
    from cmdbctl.commands._context import AppContext

_REL_EXAMPLES = """\
  cmdbctl rel create <type-id> <from-asset> <to-asset>
  cmdbctl rel list --asset <asset-id>
  cmdbctl rel delete <id>"""


@click.group(cls=CmdbGroup, examples=_REL_EXAMPLES)
@click.pass_obj
def rel(app: AppContext) -> None:
    """Link assets with typed relationships (mirrored into the graph)."""


@rel.command()
@click.argument("relationship_type_id")
@click.argument("from_ci_asset_id")
@click.argument("to_ci_asset_id")
@click.option("--attributes", default=None, callback=parse_json_object, help="JSON object.")
@click.pass_obj
def create(
    app: AppContext,
    relationship_type_id: str,
    from_ci_asset_id: str,
    to_ci_asset_id: str,
    attributes: dict[str, Any] | None,
) -> None:
    """Create a relationship; a graph sync failure is reported as a warning."""
    actor = app.actor()
    app.emit(
        RelationshipService(app.store).create(
            relationship_type_id,
            from_ci_asset_id,
            to_ci_asset_id,
            actor=actor,
            attributes=attributes,
        )
    )


@rel.command()
@click.argument("relationship_id")
@click.pass_obj
def delete(app: AppContext, relationship_id: str) -> None:
    """Soft-delete a relationship and remove its graph edge."""
    actor = app.actor()
    app.emit(RelationshipService(app.store).delete(relationship_id, actor=actor))


@rel.command()
@click.argument("relationship_id")
@click.pass_obj
def get(app: AppContext, relationship_id: str) -> None:
    """Show one relationship with type and endpoint names."""
    app.emit(RelationshipService(app.store).get(relationship_id))


@rel.command("list")
@click.option("--type", "relationship_type_id", default=None)
@click.option("--asset", "ci_asset_id", default=None, help="Either endpoint.")
@click.option("--limit", default=None, type=int, help="Max rows.")
@click.option("--offset", default=0, type=int)
@click.pass_obj
def list_cmd(
    app: AppContext,
    relationship_type_id: str | None,
    ci_asset_id: str | None,
    limit: int | None,
    offset: int,
) -> None:
    """List live relationships, newest first."""
    app.emit(
        RelationshipService(app.store).list(
            relationship_type_id=relationship_type_id,
            ci_asset_id=ci_asset_id,
            limit=limit,
            offset=offset,
        )
    )
