"""AuditService — append-only trail of committed mutations.

Other services call :meth:`AuditService.record` after their own commit;
a failure there is a warning on the caller's result, never an error.
"""

from __future__ import annotations

from sqlalchemy.exc import SQLAlchemyError

from cmdbctl.domain.json_diff import json_diff
from cmdbctl.domain.models import AuditRecordCreate
from cmdbctl.infrastructure.repositories import AuditRepository
from cmdbctl.services._helpers import days_ago_iso, new_id, now_iso
from cmdbctl.services.base import BaseService, fail
from cmdbctl.services.result import VALIDATION_FAILED, ServiceResult
from cmdbctl.services.telemetry import traced


class AuditService(BaseService):
    """Records and queries audit entries."""

    @traced
    def record(
        self,
        *,
        entity_type: str,
        entity_id: str,
        action: str,
        performed_by: str,
        old_values: dict | None = None,
        new_values: dict | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> ServiceResult:
        op = "record_audit"
        req = self._parse(
            op,
            AuditRecordCreate,
            entity_type=entity_type,
            entity_id=entity_id,
            action=action,
            performed_by=performed_by,
            old_values=old_values,
            new_values=new_values,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        if isinstance(req, ServiceResult):
            return req

        entry_id = new_id()
        try:
            with self._store.transaction() as txn:
                AuditRepository(txn.conn).insert(
                    {"id": entry_id, "created_at": now_iso(), **req.model_dump()}
                )
        except SQLAlchemyError as exc:
            return self._store_failure(op, exc)
        return ServiceResult(ok=True, op=op, data={"id": entry_id})

    @traced
    def query(
        self,
        *,
        entity_type: str | None = None,
        entity_id: str | None = None,
        performed_by: str | None = None,
        from_date: str | None = None,
        to_date: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> ServiceResult:
        op = "query_audit"
        if (bad := self._check_page(op, limit, offset)) is not None:
            return bad
        with self._store.read() as conn:
            items = AuditRepository(conn).query(
                entity_type=entity_type,
                entity_id=entity_id,
                performed_by=performed_by,
                from_date=from_date,
                to_date=to_date,
                limit=limit,
                offset=offset,
            )
        return ServiceResult(
            ok=True,
            op=op,
            data={"items": items, "count": len(items), "limit": limit, "offset": offset},
        )

    @traced
    def history(self, entity_type: str, entity_id: str) -> ServiceResult:
        """Entries for one entity, newest first, each with its snapshot diff."""
        with self._store.read() as conn:
            entries = AuditRepository(conn).history(entity_type, entity_id)
        for entry in entries:
            entry["diff"] = json_diff(entry.get("old_values"), entry.get("new_values"))
        return ServiceResult(
            ok=True,
            op="audit_history",
            data={
                "entity_type": entity_type,
                "entity_id": entity_id,
                "items": entries,
                "count": len(entries),
            },
        )

    @traced
    def prune(self, older_than_days: int) -> ServiceResult:
        op = "prune_audit"
        if older_than_days < 1:
            return fail(op, VALIDATION_FAILED, "Retention must be at least one day")
        cutoff = days_ago_iso(older_than_days)
        try:
            with self._store.transaction() as txn:
                deleted = AuditRepository(txn.conn).delete_older_than(cutoff)
        except SQLAlchemyError as exc:
            return self._store_failure(op, exc)
        return ServiceResult(ok=True, op=op, data={"deleted": deleted, "cutoff": cutoff})
