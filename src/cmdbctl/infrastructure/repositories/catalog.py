"""Repositories for CI types and CI assets."""

from __future__ import annotations

from typing import Any

from sqlalchemy import Text, cast, func, or_, select

from cmdbctl.infrastructure.database.schema import ci_assets, ci_types
from cmdbctl.infrastructure.repositories.base import (
    TableRepository,
    decode_row,
    like_pattern,
    live,
)


class CITypeRepository(TableRepository):
    table = ci_types

    def list_page(self, *, limit: int, offset: int) -> list[dict[str, Any]]:
        stmt = (
            select(ci_types)
            .where(live(ci_types))
            .order_by(ci_types.c.created_at.desc(), ci_types.c.id)
            .limit(limit)
            .offset(offset)
        )
        return [decode_row(r) for r in self._conn.execute(stmt).mappings()]


class CIAssetRepository(TableRepository):
    table = ci_assets

    def list_page(
        self,
        *,
        ci_type_id: str | None = None,
        name: str | None = None,
        created_by: str | None = None,
        created_after: str | None = None,
        created_before: str | None = None,
        limit: int,
        offset: int,
    ) -> list[dict[str, Any]]:
        stmt = select(ci_assets).where(live(ci_assets))
        if ci_type_id is not None:
            stmt = stmt.where(ci_assets.c.ci_type_id == ci_type_id)
        if name:
            stmt = stmt.where(func.lower(ci_assets.c.name).like(like_pattern(name), escape="\\"))
        if created_by is not None:
            stmt = stmt.where(ci_assets.c.created_by == created_by)
        if created_after is not None:
            stmt = stmt.where(ci_assets.c.created_at >= created_after)
        if created_before is not None:
            stmt = stmt.where(ci_assets.c.created_at <= created_before)
        stmt = (
            stmt.order_by(ci_assets.c.created_at.desc(), ci_assets.c.id)
            .limit(limit)
            .offset(offset)
        )
        return [decode_row(r) for r in self._conn.execute(stmt).mappings()]

    def search(self, query: str, *, limit: int, offset: int) -> list[dict[str, Any]]:
        """Substring search over asset name and attribute text."""
        pattern = like_pattern(query)
        stmt = (
            select(ci_assets)
            .where(
                live(ci_assets),
                or_(
                    func.lower(ci_assets.c.name).like(pattern, escape="\\"),
                    func.lower(cast(ci_assets.c.attributes, Text)).like(pattern, escape="\\"),
                ),
            )
            .order_by(ci_assets.c.created_at.desc(), ci_assets.c.id)
            .limit(limit)
            .offset(offset)
        )
        return [decode_row(r) for r in self._conn.execute(stmt).mappings()]

    def live_with_type_names(self, asset_ids: list[str] | None = None) -> list[dict[str, Any]]:
        """Live assets joined with their type name (graph node payloads)."""
        stmt = (
            select(ci_assets, ci_types.c.name.label("ci_type_name"))
            .join(ci_types, ci_types.c.id == ci_assets.c.ci_type_id)
            .where(live(ci_assets))
        )
        if asset_ids is not None:
            stmt = stmt.where(ci_assets.c.id.in_(asset_ids))
        return [decode_row(r) for r in self._conn.execute(stmt).mappings()]
