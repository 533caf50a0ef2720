"""Repositories for valuation records and their amortization schedules."""

from __future__ import annotations

from typing import Any

from sqlalchemy import delete, func, select

from cmdbctl.infrastructure.database.schema import (
    amortization_entries,
    ci_assets,
    valuation_records,
)
from cmdbctl.infrastructure.repositories.base import TableRepository, decode_row, live


class ValuationRepository(TableRepository):
    table = valuation_records

    def _live_asset_select(self) -> Any:
        return (
            select(valuation_records, ci_assets.c.name.label("ci_asset_name"))
            .join(ci_assets, ci_assets.c.id == valuation_records.c.ci_asset_id)
            .where(live(ci_assets))
        )

    def latest_for_asset(self, ci_asset_id: str) -> dict[str, Any] | None:
        stmt = (
            self._live_asset_select()
            .where(valuation_records.c.ci_asset_id == ci_asset_id)
            .order_by(valuation_records.c.created_at.desc(), valuation_records.c.id)
            .limit(1)
        )
        row = self._conn.execute(stmt).mappings().first()
        return decode_row(row) if row is not None else None

    def list_page(self, *, limit: int, offset: int) -> list[dict[str, Any]]:
        stmt = (
            self._live_asset_select()
            .order_by(valuation_records.c.created_at.desc(), valuation_records.c.id)
            .limit(limit)
            .offset(offset)
        )
        return [decode_row(r) for r in self._conn.execute(stmt).mappings()]

    def all_live(self) -> list[dict[str, Any]]:
        stmt = self._live_asset_select().order_by(valuation_records.c.created_at)
        return [decode_row(r) for r in self._conn.execute(stmt).mappings()]

    def total_current_value(self) -> float:
        stmt = (
            select(func.coalesce(func.sum(valuation_records.c.current_value), 0.0))
            .join(ci_assets, ci_assets.c.id == valuation_records.c.ci_asset_id)
            .where(live(ci_assets))
        )
        return float(self._conn.execute(stmt).scalar_one())


class AmortizationRepository(TableRepository):
    table = amortization_entries

    def for_valuation(self, valuation_id: str) -> list[dict[str, Any]]:
        stmt = (
            select(amortization_entries)
            .where(amortization_entries.c.valuation_id == valuation_id)
            .order_by(amortization_entries.c.year)
        )
        return [decode_row(r) for r in self._conn.execute(stmt).mappings()]

    def replace_for_valuation(self, valuation_id: str, rows: list[dict[str, Any]]) -> None:
        self._conn.execute(
            delete(amortization_entries).where(
                amortization_entries.c.valuation_id == valuation_id
            )
        )
        for row in rows:
            self.insert(row)
