"""Repositories for lifecycle types, states, transitions, and CI-type mappings."""

from __future__ import annotations

from typing import Any

from sqlalchemy import func, or_, select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from cmdbctl.infrastructure.database.schema import (
    ci_type_lifecycles,
    ci_types,
    lifecycle_states,
    lifecycle_transitions,
    lifecycle_types,
)
from cmdbctl.infrastructure.repositories.base import TableRepository, decode_row, live


class LifecycleTypeRepository(TableRepository):
    table = lifecycle_types

    def _summary_select(self) -> Any:
        state_counts = (
            select(
                lifecycle_states.c.lifecycle_type_id,
                func.count().label("state_count"),
            )
            .group_by(lifecycle_states.c.lifecycle_type_id)
            .subquery()
        )
        mapping_counts = (
            select(
                ci_type_lifecycles.c.lifecycle_type_id,
                func.count().label("ci_type_count"),
            )
            .join(ci_types, ci_types.c.id == ci_type_lifecycles.c.ci_type_id)
            .where(live(ci_types))
            .group_by(ci_type_lifecycles.c.lifecycle_type_id)
            .subquery()
        )
        return (
            select(
                lifecycle_types,
                func.coalesce(state_counts.c.state_count, 0).label("state_count"),
                func.coalesce(mapping_counts.c.ci_type_count, 0).label("ci_type_count"),
            )
            .outerjoin(state_counts, state_counts.c.lifecycle_type_id == lifecycle_types.c.id)
            .outerjoin(
                mapping_counts,
                mapping_counts.c.lifecycle_type_id == lifecycle_types.c.id,
            )
            .where(live(lifecycle_types))
        )

    def list_summaries(self, *, include_inactive: bool = False) -> list[dict[str, Any]]:
        stmt = self._summary_select()
        if not include_inactive:
            stmt = stmt.where(lifecycle_types.c.is_active == 1)
        stmt = stmt.order_by(lifecycle_types.c.name)
        return [decode_row(r) for r in self._conn.execute(stmt).mappings()]

    def summaries_for_ci_type(self, ci_type_id: str) -> list[dict[str, Any]]:
        """Active lifecycle summaries mapped to a CI type, default first."""
        stmt = (
            self._summary_select()
            .add_columns(ci_type_lifecycles.c.is_default)
            .join(
                ci_type_lifecycles,
                ci_type_lifecycles.c.lifecycle_type_id == lifecycle_types.c.id,
            )
            .where(
                ci_type_lifecycles.c.ci_type_id == ci_type_id,
                lifecycle_types.c.is_active == 1,
            )
            .order_by(ci_type_lifecycles.c.is_default.desc(), lifecycle_types.c.name)
        )
        return [decode_row(r) for r in self._conn.execute(stmt).mappings()]


class LifecycleStateRepository(TableRepository):
    table = lifecycle_states

    def for_type(self, lifecycle_type_id: str) -> list[dict[str, Any]]:
        stmt = (
            select(lifecycle_states)
            .where(lifecycle_states.c.lifecycle_type_id == lifecycle_type_id)
            .order_by(lifecycle_states.c.order_index)
        )
        return [decode_row(r) for r in self._conn.execute(stmt).mappings()]

    def delete(self, state_id: str) -> bool:
        result = self._conn.execute(
            lifecycle_states.delete().where(lifecycle_states.c.id == state_id)
        )
        return result.rowcount > 0


class LifecycleTransitionRepository(TableRepository):
    table = lifecycle_transitions

    def for_type(self, lifecycle_type_id: str) -> list[dict[str, Any]]:
        stmt = (
            select(lifecycle_transitions)
            .where(lifecycle_transitions.c.lifecycle_type_id == lifecycle_type_id)
            .order_by(lifecycle_transitions.c.transition_name, lifecycle_transitions.c.id)
        )
        return [decode_row(r) for r in self._conn.execute(stmt).mappings()]

    def count_referencing(self, state_id: str) -> int:
        """Transitions using *state_id* as either endpoint."""
        stmt = (
            select(func.count())
            .select_from(lifecycle_transitions)
            .where(
                or_(
                    lifecycle_transitions.c.from_state_id == state_id,
                    lifecycle_transitions.c.to_state_id == state_id,
                )
            )
        )
        return int(self._conn.execute(stmt).scalar_one())

    def delete(self, transition_id: str) -> bool:
        result = self._conn.execute(
            lifecycle_transitions.delete().where(lifecycle_transitions.c.id == transition_id)
        )
        return result.rowcount > 0


class CITypeLifecycleRepository(TableRepository):
    table = ci_type_lifecycles

    def upsert(
        self,
        *,
        mapping_id: str,
        ci_type_id: str,
        lifecycle_type_id: str,
        is_default: bool,
        created_by: str,
        now: str,
    ) -> dict[str, Any]:
        """Insert the mapping, or update ``is_default`` if the pair exists."""
        stmt = sqlite_insert(ci_type_lifecycles).values(
            id=mapping_id,
            ci_type_id=ci_type_id,
            lifecycle_type_id=lifecycle_type_id,
            is_default=int(is_default),
            created_by=created_by,
            created_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["ci_type_id", "lifecycle_type_id"],
            set_={"is_default": stmt.excluded.is_default},
        )
        self._conn.execute(stmt)
        row = (
            self._conn.execute(
                select(ci_type_lifecycles).where(
                    ci_type_lifecycles.c.ci_type_id == ci_type_id,
                    ci_type_lifecycles.c.lifecycle_type_id == lifecycle_type_id,
                )
            )
            .mappings()
            .one()
        )
        return decode_row(row)
