"""BaseService — abstract foundation for all cmdbctl services.

Every service receives a :class:`Store` at construction time. The Store
provides transactional access to the relational database and the
best-effort graph mirror. Services own their transaction boundaries via
``self._store.transaction()``; everything that happens after the commit
(audit trail, plugin events, graph mirror) is best-effort and reported
through ``warnings``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from cmdbctl.domain.models import validation_message
from cmdbctl.domain.pagination import page_error
from cmdbctl.services.result import (
    CONFLICT,
    INTERNAL_ERROR,
    VALIDATION_FAILED,
    ServiceError,
    ServiceResult,
)

if TYPE_CHECKING:
    from cmdbctl.infrastructure.store import Store

logger = logging.getLogger(__name__)


def fail(op: str, code: str, message: str, **detail: Any) -> ServiceResult:
    """Build a failed ServiceResult."""
    return ServiceResult(
        ok=False,
        op=op,
        error=ServiceError(code=code, message=message, detail=detail),
    )


class BaseService:
    """Abstract base for all service-layer classes.

    Usage::

        class CIService(BaseService):
            def create_asset(self, ...) -> ServiceResult:
                with self._store.transaction() as txn:
                    ...
    """

    def __init__(self, store: Store) -> None:
        self._store = store

    # ------------------------------------------------------------------
    # Validation helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _parse[M: BaseModel](
        op: str, model_cls: type[M], **values: Any
    ) -> M | ServiceResult:
        """Build a request model, or a VALIDATION_FAILED result."""
        try:
            return model_cls(**values)
        except ValidationError as exc:
            return fail(op, VALIDATION_FAILED, validation_message(exc))

    def _check_page(self, op: str, limit: int, offset: int) -> ServiceResult | None:
        message = page_error(limit, offset, max_limit=self._store.settings.pagination.max_limit)
        if message is None:
            return None
        return fail(op, VALIDATION_FAILED, message, limit=limit, offset=offset)

    @staticmethod
    def _store_failure(
        op: str,
        exc: SQLAlchemyError,
        *,
        integrity_code: str = CONFLICT,
        integrity_message: str | None = None,
    ) -> ServiceResult:
        """Map a relational-store exception to a failed result.

        An :class:`IntegrityError` means a uniqueness backstop fired under
        a race; anything else is an internal error.
        """
        if isinstance(exc, IntegrityError):
            message = integrity_message or "Record conflicts with an existing record"
            return fail(op, integrity_code, message)
        logger.error("Store failure in %s: %s", op, exc)
        return fail(op, INTERNAL_ERROR, "Relational store failure", exception=str(exc))

    # ------------------------------------------------------------------
    # Post-commit side effects
    # ------------------------------------------------------------------

    def _dispatch_event(
        self,
        hook_name: str,
        payload: dict[str, Any],
        warnings: list[str],
    ) -> None:
        """Dispatch a plugin event. No-op if event bus not initialized.

        INVARIANT: Plugin failures are warnings, never errors.
        """
        bus = self._store.event_bus
        if bus is None:
            return
        try:
            bus.dispatch(hook_name, payload)
        except Exception:
            logger.debug("Event dispatch failed for %s", hook_name, exc_info=True)
            warnings.append(f"Event dispatch failed for {hook_name}")

    def _audit(
        self,
        *,
        entity_type: str,
        entity_id: str,
        action: str,
        actor: str,
        warnings: list[str],
        old_values: dict[str, Any] | None = None,
        new_values: dict[str, Any] | None = None,
    ) -> None:
        """Append an audit entry for a committed mutation (best-effort)."""
        from cmdbctl.services.audit import AuditService

        try:
            result = AuditService(self._store).record(
                entity_type=entity_type,
                entity_id=entity_id,
                action=action,
                old_values=old_values,
                new_values=new_values,
                performed_by=actor,
            )
        except Exception as exc:
            logger.warning("Audit recording failed for %s %s: %s", entity_type, entity_id, exc)
            warnings.append(f"Audit recording failed: {exc}")
            return
        if not result.ok and result.error is not None:
            warnings.append(f"Audit recording failed: {result.error.message}")

    def _after_commit(
        self,
        *,
        entity_type: str,
        entity_id: str,
        action: str,
        actor: str,
        warnings: list[str],
        old_values: dict[str, Any] | None = None,
        new_values: dict[str, Any] | None = None,
    ) -> None:
        """AUDIT → EVENT for a committed mutation."""
        self._audit(
            entity_type=entity_type,
            entity_id=entity_id,
            action=action,
            actor=actor,
            warnings=warnings,
            old_values=old_values,
            new_values=new_values,
        )
        self._dispatch_event(
            "post_mutation",
            {
                "entity_type": entity_type,
                "entity_id": entity_id,
                "action": action,
                "actor": actor,
            },
            warnings,
        )
