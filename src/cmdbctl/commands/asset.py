"""Command group: CI assets."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import click

from cmdbctl.commands._base import CmdbGroup, page_options, parse_json_object
from cmdbctl.services.ci import CIService

if TYPE_CHECKING:
    from cmdbctl.commands._context import AppContext

_ASSET_EXAMPLES = """\
  cmdbctl asset create <type-id> web-01 --attributes '{"ip": "10.0.0.5"}'
  cmdbctl asset list --type <type-id> --name web
  cmdbctl asset search web
  cmdbctl asset update <id> --name web-01a
  cmdbctl asset delete <id>"""


@click.group(cls=CmdbGroup, examples=_ASSET_EXAMPLES)
@click.pass_obj
def asset(app: AppContext) -> None:
    """Create, find, and retire configuration items."""


@asset.command(
    examples="""\
  cmdbctl asset create <type-id> web-01
  cmdbctl asset create <type-id> db-01 --attributes '{"engine": "postgres"}'"""
)
@click.argument("ci_type_id")
@click.argument("name")
@click.option("--attributes", default=None, callback=parse_json_object, help="JSON object.")
@click.pass_obj
def create(
    app: AppContext, ci_type_id: str, name: str, attributes: dict[str, Any] | None
) -> None:
    """Create an asset of a CI type (attributes are checked against its schema)."""
    actor = app.actor()
    app.emit(
        CIService(app.store).create_asset(ci_type_id, name, actor=actor, attributes=attributes)
    )


@asset.command()
@click.argument("asset_id")
@click.option("--name", default=None)
@click.option("--attributes", default=None, callback=parse_json_object, help="JSON object.")
@click.pass_obj
def update(
    app: AppContext, asset_id: str, name: str | None, attributes: dict[str, Any] | None
) -> None:
    """Rename an asset or replace its attributes."""
    actor = app.actor()
    app.emit(
        CIService(app.store).update_asset(asset_id, actor=actor, name=name, attributes=attributes)
    )


@asset.command()
@click.argument("asset_id")
@click.pass_obj
def delete(app: AppContext, asset_id: str) -> None:
    """Soft-delete an asset and drop it from the graph."""
    actor = app.actor()
    app.emit(CIService(app.store).delete_asset(asset_id, actor=actor))


@asset.command()
@click.argument("asset_id")
@click.pass_obj
def get(app: AppContext, asset_id: str) -> None:
    """Show one asset with its type name."""
    app.emit(CIService(app.store).get_asset(asset_id))


@asset.command(
    "list",
    examples="""\
  cmdbctl asset list
  cmdbctl asset list --type <type-id> --created-after 2024-01-01""",
)
@click.option("--type", "ci_type_id", default=None, help="Filter by CI type id.")
@click.option("--name", default=None, help="Case-insensitive name substring.")
@click.option("--created-by", default=None)
@click.option("--created-after", default=None, help="ISO date or timestamp.")
@click.option("--created-before", default=None, help="ISO date or timestamp.")
@page_options()
@click.pass_obj
def list_cmd(
    app: AppContext,
    ci_type_id: str | None,
    name: str | None,
    created_by: str | None,
    created_after: str | None,
    created_before: str | None,
    limit: int,
    offset: int,
) -> None:
    """List live assets, newest first."""
    app.emit(
        CIService(app.store).list_assets(
            ci_type_id=ci_type_id,
            name=name,
            created_by=created_by,
            created_after=created_after,
            created_before=created_before,
            limit=limit,
            offset=offset,
        )
    )


@asset.command()
@click.argument("query")
@page_options()
@click.pass_obj
def search(app: AppContext, query: str, limit: int, offset: int) -> None:
    """Search assets by name."""
    app.emit(CIService(app.store).search_assets(query, limit=limit, offset=offset))
