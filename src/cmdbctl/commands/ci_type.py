"""Command group: CI type definitions."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import click

from cmdbctl.commands._base import CmdbGroup, page_options, parse_json_object
from cmdbctl.services.ci import CIService

if TYPE_CHECKING:
    from cmdbctl.commands._context import AppContext

_TYPE_EXAMPLES = """\
  cmdbctl type create Server --description "Physical or virtual host"
  cmdbctl type create Server --attributes '{"schema": {"type": "object", "required": ["ip"]}}'
  cmdbctl type list --limit 20
  cmdbctl type update <id> --description "Compute host"
  cmdbctl type delete <id>"""


@click.group("type", cls=CmdbGroup, examples=_TYPE_EXAMPLES)
@click.pass_obj
def ci_type(app: AppContext) -> None:
    """Define CI types and their attribute schemas (admin only for changes)."""


@ci_type.command(
    examples="""\
  cmdbctl type create Server
  cmdbctl type create Database --attributes '{"schema": {"type": "object"}}'"""
)
@click.argument("name")
@click.option("--description", default=None)
@click.option(
    "--attributes",
    "--schema",
    default=None,
    callback=parse_json_object,
    help='Type attributes as JSON; a "schema" key holds the asset JSON Schema.',
)
@click.pass_obj
def create(
    app: AppContext, name: str, description: str | None, attributes: dict[str, Any] | None
) -> None:
    """Create a CI type."""
    actor = app.admin_actor()
    app.emit(
        CIService(app.store).create_type(
            name, actor=actor, description=description, attributes=attributes
        )
    )


@ci_type.command(
    examples="""\
  cmdbctl type update <id> --name Host
  cmdbctl type update <id> --attributes '{}'"""
)
@click.argument("type_id")
@click.option("--name", default=None)
@click.option("--description", default=None)
@click.option("--attributes", "--schema", default=None, callback=parse_json_object)
@click.pass_obj
def update(
    app: AppContext,
    type_id: str,
    name: str | None,
    description: str | None,
    attributes: dict[str, Any] | None,
) -> None:
    """Change a CI type's name, description, or attributes."""
    actor = app.admin_actor()
    app.emit(
        CIService(app.store).update_type(
            type_id, actor=actor, name=name, description=description, attributes=attributes
        )
    )


@ci_type.command()
@click.argument("type_id")
@click.pass_obj
def delete(app: AppContext, type_id: str) -> None:
    """Soft-delete a CI type."""
    actor = app.admin_actor()
    app.emit(CIService(app.store).delete_type(type_id, actor=actor))


@ci_type.command()
@click.argument("type_id")
@click.pass_obj
def get(app: AppContext, type_id: str) -> None:
    """Show one CI type."""
    app.emit(CIService(app.store).get_type(type_id))


@ci_type.command("list")
@page_options()
@click.pass_obj
def list_cmd(app: AppContext, limit: int, offset: int) -> None:
    """List live CI types by name."""
    app.emit(CIService(app.store).list_types(limit=limit, offset=offset))


@ci_type.command()
@click.pass_obj
def count(app: AppContext) -> None:
    """Count live CI types."""
    app.emit(CIService(app.store).count_types())
