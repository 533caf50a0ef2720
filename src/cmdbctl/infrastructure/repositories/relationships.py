"""Repositories for relationship types and relationship instances.

Relationship views are joined reads: type name and bidirectionality,
both endpoint assets with their type names, and the creator's display
name. They are what the service returns to callers.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import and_, func, or_, select

from cmdbctl.infrastructure.database.schema import (
    ci_assets,
    ci_types,
    relationship_types,
    relationships,
    users,
)
from cmdbctl.infrastructure.repositories.base import (
    TableRepository,
    decode_row,
    like_pattern,
    live,
)


class RelationshipTypeRepository(TableRepository):
    table = relationship_types

    def _summary_select(self) -> Any:
        from_t = ci_types.alias("from_t")
        to_t = ci_types.alias("to_t")
        count_sq = (
            select(
                relationships.c.relationship_type_id,
                func.count().label("relationship_count"),
            )
            .where(live(relationships))
            .group_by(relationships.c.relationship_type_id)
            .subquery()
        )
        return (
            select(
                relationship_types,
                from_t.c.name.label("from_ci_type_name"),
                to_t.c.name.label("to_ci_type_name"),
                func.coalesce(count_sq.c.relationship_count, 0).label("relationship_count"),
            )
            .outerjoin(from_t, from_t.c.id == relationship_types.c.from_ci_type_id)
            .outerjoin(to_t, to_t.c.id == relationship_types.c.to_ci_type_id)
            .outerjoin(
                count_sq,
                count_sq.c.relationship_type_id == relationship_types.c.id,
            )
            .where(live(relationship_types))
        )

    def summary(self, type_id: str) -> dict[str, Any] | None:
        stmt = self._summary_select().where(relationship_types.c.id == type_id)
        row = self._conn.execute(stmt).mappings().first()
        return decode_row(row) if row is not None else None

    def list_summaries(
        self,
        *,
        search: str | None = None,
        from_ci_type_id: str | None = None,
        to_ci_type_id: str | None = None,
        is_bidirectional: bool | None = None,
        limit: int,
        offset: int,
    ) -> list[dict[str, Any]]:
        stmt = self._summary_select()
        if search:
            pattern = like_pattern(search)
            stmt = stmt.where(
                or_(
                    func.lower(relationship_types.c.name).like(pattern, escape="\\"),
                    func.lower(relationship_types.c.description).like(pattern, escape="\\"),
                )
            )
        if from_ci_type_id is not None:
            stmt = stmt.where(relationship_types.c.from_ci_type_id == from_ci_type_id)
        if to_ci_type_id is not None:
            stmt = stmt.where(relationship_types.c.to_ci_type_id == to_ci_type_id)
        if is_bidirectional is not None:
            stmt = stmt.where(relationship_types.c.is_bidirectional == int(is_bidirectional))
        stmt = stmt.order_by(relationship_types.c.name.asc()).limit(limit).offset(offset)
        return [decode_row(r) for r in self._conn.execute(stmt).mappings()]


class RelationshipRepository(TableRepository):
    table = relationships

    def find_live_triple(
        self, relationship_type_id: str, from_ci_asset_id: str, to_ci_asset_id: str
    ) -> dict[str, Any] | None:
        stmt = select(relationships).where(
            live(relationships),
            relationships.c.relationship_type_id == relationship_type_id,
            relationships.c.from_ci_asset_id == from_ci_asset_id,
            relationships.c.to_ci_asset_id == to_ci_asset_id,
        )
        row = self._conn.execute(stmt).mappings().first()
        return decode_row(row) if row is not None else None

    def _view_select(self) -> Any:
        from_a = ci_assets.alias("from_a")
        to_a = ci_assets.alias("to_a")
        from_t = ci_types.alias("from_t")
        to_t = ci_types.alias("to_t")
        creator_name = func.trim(users.c.first_name + " " + users.c.last_name)
        stmt = (
            select(
                relationships,
                relationship_types.c.name.label("relationship_type_name"),
                relationship_types.c.is_bidirectional,
                relationship_types.c.reverse_name,
                from_a.c.name.label("from_ci_asset_name"),
                to_a.c.name.label("to_ci_asset_name"),
                from_a.c.ci_type_id.label("from_ci_type_id"),
                to_a.c.ci_type_id.label("to_ci_type_id"),
                from_t.c.name.label("from_ci_type_name"),
                to_t.c.name.label("to_ci_type_name"),
                creator_name.label("created_by_name"),
            )
            .join(
                relationship_types,
                relationship_types.c.id == relationships.c.relationship_type_id,
            )
            .join(from_a, from_a.c.id == relationships.c.from_ci_asset_id)
            .join(to_a, to_a.c.id == relationships.c.to_ci_asset_id)
            .join(from_t, from_t.c.id == from_a.c.ci_type_id)
            .join(to_t, to_t.c.id == to_a.c.ci_type_id)
            .outerjoin(users, users.c.id == relationships.c.created_by)
            .where(live(relationships))
        )
        return stmt, from_a, to_a

    def view(self, relationship_id: str) -> dict[str, Any] | None:
        stmt, _, _ = self._view_select()
        stmt = stmt.where(relationships.c.id == relationship_id)
        first = self._conn.execute(stmt).mappings().first()
        return decode_row(first) if first is not None else None

    def list_views(
        self,
        *,
        relationship_type_id: str | None = None,
        ci_asset_id: str | None = None,
        limit: int,
        offset: int,
    ) -> list[dict[str, Any]]:
        stmt, _, _ = self._view_select()
        if relationship_type_id is not None:
            stmt = stmt.where(relationships.c.relationship_type_id == relationship_type_id)
        if ci_asset_id is not None:
            stmt = stmt.where(
                or_(
                    relationships.c.from_ci_asset_id == ci_asset_id,
                    relationships.c.to_ci_asset_id == ci_asset_id,
                )
            )
        stmt = (
            stmt.order_by(relationships.c.created_at.desc(), relationships.c.id)
            .limit(limit)
            .offset(offset)
        )
        return [decode_row(r) for r in self._conn.execute(stmt).mappings()]

    def mirrorable_views(self) -> list[dict[str, Any]]:
        """Live relationships whose type and both endpoint assets are live."""
        stmt, from_a, to_a = self._view_select()
        stmt = stmt.where(
            and_(
                live(relationship_types),
                from_a.c.deleted_at.is_(None),
                to_a.c.deleted_at.is_(None),
            )
        ).order_by(relationships.c.created_at, relationships.c.id)
        return [decode_row(r) for r in self._conn.execute(stmt).mappings()]
