"""Append-only audit log repository."""

from __future__ import annotations

from typing import Any

from sqlalchemy import delete, select

from cmdbctl.infrastructure.database.schema import audit_log
from cmdbctl.infrastructure.repositories.base import TableRepository, decode_row


class AuditRepository(TableRepository):
    table = audit_log

    def query(
        self,
        *,
        entity_type: str | None = None,
        entity_id: str | None = None,
        performed_by: str | None = None,
        from_date: str | None = None,
        to_date: str | None = None,
        limit: int,
        offset: int,
    ) -> list[dict[str, Any]]:
        stmt = select(audit_log)
        if entity_type is not None:
            stmt = stmt.where(audit_log.c.entity_type == entity_type)
        if entity_id is not None:
            stmt = stmt.where(audit_log.c.entity_id == entity_id)
        if performed_by is not None:
            stmt = stmt.where(audit_log.c.performed_by == performed_by)
        if from_date is not None:
            stmt = stmt.where(audit_log.c.created_at >= from_date)
        if to_date is not None:
            stmt = stmt.where(audit_log.c.created_at <= to_date)
        stmt = (
            stmt.order_by(audit_log.c.created_at.desc(), audit_log.c.id)
            .limit(limit)
            .offset(offset)
        )
        return [decode_row(r) for r in self._conn.execute(stmt).mappings()]

    def history(self, entity_type: str, entity_id: str) -> list[dict[str, Any]]:
        stmt = (
            select(audit_log)
            .where(
                audit_log.c.entity_type == entity_type,
                audit_log.c.entity_id == entity_id,
            )
            .order_by(audit_log.c.created_at.desc(), audit_log.c.id)
        )
        return [decode_row(r) for r in self._conn.execute(stmt).mappings()]

    def delete_older_than(self, cutoff: str) -> int:
        result = self._conn.execute(delete(audit_log).where(audit_log.c.created_at < cutoff))
        return result.rowcount
