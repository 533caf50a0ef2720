"""Command group: relationship type definitions."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import click

from cmdbctl.commands._base import CmdbGroup, page_options, parse_json_object
from cmdbctl.services.relationship import RelationshipService

if TYPE_CHECKING:
    from cmdbctl.commands._context import AppContext

_RELTYPE_EXAMPLES = """\
  cmdbctl reltype create "Depends On" --reverse-name "Required By"
  cmdbctl reltype create "Runs On" --from-type <app-type> --to-type <server-type>
  cmdbctl reltype list --search runs --bidirectional
  cmdbctl reltype delete <id>"""


@click.group(cls=CmdbGroup, examples=_RELTYPE_EXAMPLES)
@click.pass_obj
def reltype(app: AppContext) -> None:
    """Define relationship types between CI types (admin only for changes)."""


@reltype.command()
@click.argument("name")
@click.option("--description", default=None)
@click.option("--from-type", "from_ci_type_id", default=None, help="Required source CI type.")
@click.option("--to-type", "to_ci_type_id", default=None, help="Required target CI type.")
@click.option("--bidirectional", is_flag=True)
@click.option("--reverse-name", default=None)
@click.option("--schema", "attributes_schema", default=None, callback=parse_json_object)
@click.pass_obj
def create(
    app: AppContext,
    name: str,
    description: str | None,
    from_ci_type_id: str | None,
    to_ci_type_id: str | None,
    bidirectional: bool,
    reverse_name: str | None,
    attributes_schema: dict[str, Any] | None,
) -> None:
    """Create a relationship type and register its graph label."""
    actor = app.admin_actor()
    app.emit(
        RelationshipService(app.store).create_type(
            name,
            actor=actor,
            description=description,
            from_ci_type_id=from_ci_type_id,
            to_ci_type_id=to_ci_type_id,
            is_bidirectional=bidirectional,
            reverse_name=reverse_name,
            attributes_schema=attributes_schema,
        )
    )


@reltype.command()
@click.argument("type_id")
@click.option("--name", default=None)
@click.option("--description", default=None)
@click.pass_obj
def update(app: AppContext, type_id: str, name: str | None, description: str | None) -> None:
    """Rename or re-describe a relationship type."""
    actor = app.admin_actor()
    app.emit(
        RelationshipService(app.store).update_type(
            type_id, actor=actor, name=name, description=description
        )
    )


@reltype.command()
@click.argument("type_id")
@click.pass_obj
def delete(app: AppContext, type_id: str) -> None:
    """Soft-delete a relationship type."""
    actor = app.admin_actor()
    app.emit(RelationshipService(app.store).delete_type(type_id, actor=actor))


@reltype.command()
@click.argument("type_id")
@click.pass_obj
def get(app: AppContext, type_id: str) -> None:
    """Show one relationship type with its CI type names."""
    app.emit(RelationshipService(app.store).get_type(type_id))


@reltype.command("list")
@click.option("--search", default=None, help="Name substring.")
@click.option("--from-type", "from_ci_type_id", default=None)
@click.option("--to-type", "to_ci_type_id", default=None)
@click.option("--bidirectional/--directed", "is_bidirectional", default=None)
@page_options()
@click.pass_obj
def list_cmd(
    app: AppContext,
    search: str | None,
    from_ci_type_id: str | None,
    to_ci_type_id: str | None,
    is_bidirectional: bool | None,
    limit: int,
    offset: int,
) -> None:
    """List live relationship types."""
    app.emit(
        RelationshipService(app.store).list_types(
            search=search,
            from_ci_type_id=from_ci_type_id,
            to_ci_type_id=to_ci_type_id,
            is_bidirectional=is_bidirectional,
            limit=limit,
            offset=offset,
        )
    )
