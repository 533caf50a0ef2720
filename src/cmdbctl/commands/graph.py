"""Command group: graph mirror traversal and healing."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from cmdbctl.commands._base import CmdbGroup
from cmdbctl.services.graph import MAX_DEPTH, GraphService

if TYPE_CHECKING:
    from cmdbctl.commands._context import AppContext

_GRAPH_EXAMPLES = """\
  cmdbctl graph neighbors <asset-id> --depth 2
  cmdbctl graph show --type Server --limit 100
  cmdbctl graph search web
  cmdbctl graph edge <from-asset> <to-asset> <reltype-id>
  cmdbctl graph path <from-asset> <to-asset>
  cmdbctl graph reconcile"""


@click.group(cls=CmdbGroup, examples=_GRAPH_EXAMPLES)
@click.pass_obj
def graph(app: AppContext) -> None:
    """Traverse the relationship graph."""


@graph.command(
    examples="""\
  cmdbctl graph neighbors <asset-id>
  cmdbctl --json graph neighbors <asset-id> --depth 3"""
)
@click.argument("asset_id")
@click.option("--depth", default=1, type=int, help=f"Hops from the asset (1-{MAX_DEPTH}).")
@click.pass_obj
def neighbors(app: AppContext, asset_id: str, depth: int) -> None:
    """Show assets within N hops of an asset."""
    app.emit(GraphService(app.store).neighbors(asset_id, depth=depth))


@graph.command()
@click.option("--type", "ci_type", default=None, help="Only nodes of this CI type name.")
@click.option("--limit", default=None, type=int, help="Max nodes.")
@click.pass_obj
def show(app: AppContext, ci_type: str | None, limit: int | None) -> None:
    """Show the whole graph (bounded)."""
    app.emit(GraphService(app.store).full_graph(ci_type=ci_type, limit=limit))


@graph.command()
@click.argument("term")
@click.option("--limit", default=None, type=int)
@click.pass_obj
def search(app: AppContext, term: str, limit: int | None) -> None:
    """Find graph nodes by name."""
    app.emit(GraphService(app.store).search(term, limit=limit))


@graph.command()
@click.argument("from_id")
@click.argument("to_id")
@click.argument("type_id")
@click.pass_obj
def edge(app: AppContext, from_id: str, to_id: str, type_id: str) -> None:
    """Read back the mirrored edge for a relationship triple."""
    app.emit(GraphService(app.store).edge(from_id, to_id, type_id))


@graph.command()
@click.argument("from_id")
@click.argument("to_id")
@click.pass_obj
def path(app: AppContext, from_id: str, to_id: str) -> None:
    """Find the shortest connection between two assets."""
    app.emit(GraphService(app.store).path(from_id, to_id))


@graph.command()
@click.pass_obj
def reconcile(app: AppContext) -> None:
    """Rebuild the graph mirror from the relational store."""
    app.actor()
    app.emit(GraphService(app.store).reconcile())
