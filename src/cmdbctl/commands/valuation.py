"""Command group: asset valuations and amortization."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

import click

from cmdbctl.commands._base import CmdbGroup, page_options
from cmdbctl.domain.depreciation import DepreciationMethod
from cmdbctl.services.valuation import ValuationService

if TYPE_CHECKING:
    from cmdbctl.commands._context import AppContext

_VALUATION_EXAMPLES = """\
  cmdbctl valuation create <asset-id> 12000 5
  cmdbctl valuation create <asset-id> 12000 5 --method double_declining --purchased 2023-04-01
  cmdbctl valuation schedule <valuation-id>
  cmdbctl valuation recalculate --as-of 2026-01-01"""


@click.group(cls=CmdbGroup, examples=_VALUATION_EXAMPLES)
@click.pass_obj
def valuation(app: AppContext) -> None:
    """Value assets and track their depreciation."""


@valuation.command()
@click.argument("ci_asset_id")
@click.argument("initial_value", type=float)
@click.argument("useful_life_years", type=int)
@click.option(
    "--method",
    type=click.Choice([m.value for m in DepreciationMethod]),
    default=DepreciationMethod.STRAIGHT_LINE.value,
    show_default=True,
)
@click.option(
    "--purchased",
    "purchase_date",
    type=click.DateTime(formats=["%Y-%m-%d"]),
    default=None,
    help="Purchase date (defaults to today).",
)
@click.pass_obj
def create(
    app: AppContext,
    ci_asset_id: str,
    initial_value: float,
    useful_life_years: int,
    method: str,
    purchase_date: datetime | None,
) -> None:
    """Record a valuation and generate its amortization schedule."""
    actor = app.actor()
    app.emit(
        ValuationService(app.store).create_valuation(
            ci_asset_id,
            initial_value,
            useful_life_years,
            actor=actor,
            depreciation_method=method,
            purchase_date=purchase_date.date() if purchase_date else None,
        )
    )


@valuation.command()
@click.argument("ci_asset_id")
@click.pass_obj
def get(app: AppContext, ci_asset_id: str) -> None:
    """Show the latest valuation of an asset."""
    app.emit(ValuationService(app.store).get_valuation(ci_asset_id))


@valuation.command("list")
@page_options()
@click.pass_obj
def list_cmd(app: AppContext, limit: int, offset: int) -> None:
    """List valuations of live assets."""
    app.emit(ValuationService(app.store).list_valuations(limit=limit, offset=offset))


@valuation.command()
@click.argument("valuation_id")
@click.pass_obj
def schedule(app: AppContext, valuation_id: str) -> None:
    """Show a valuation's year-by-year schedule."""
    app.emit(ValuationService(app.store).schedule(valuation_id))


@valuation.command()
@click.option(
    "--as-of",
    type=click.DateTime(formats=["%Y-%m-%d"]),
    default=None,
    help="Valuation day (defaults to today, UTC).",
)
@click.pass_obj
def recalculate(app: AppContext, as_of: datetime | None) -> None:
    """Recompute current values from the years elapsed."""
    app.actor()
    app.emit(
        ValuationService(app.store).recalculate_all(as_of=as_of.date() if as_of else None)
    )
