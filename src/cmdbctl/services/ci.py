"""CIService — CI type definitions and the assets that instantiate them.

Create pipeline: VALIDATE → CHECK → PERSIST → AUDIT → EVENT → RESPOND
Asset writes additionally refresh the asset's graph node after commit.

A CI type may declare a JSON Schema under ``attributes["schema"]``;
assets of that type are validated against it on create and update.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy.exc import SQLAlchemyError

from cmdbctl.domain.attributes import SchemaValidator, schema_of
from cmdbctl.domain.models import CIAssetCreate, CIAssetUpdate, CITypeCreate, CITypeUpdate
from cmdbctl.infrastructure.graph import GraphStoreError
from cmdbctl.infrastructure.repositories import CIAssetRepository, CITypeRepository
from cmdbctl.infrastructure.validation import JsonSchemaValidator
from cmdbctl.services._helpers import new_id, now_iso
from cmdbctl.services.base import BaseService, fail
from cmdbctl.services.result import (
    CONFLICT,
    NOT_FOUND,
    VALIDATION_FAILED,
    ServiceResult,
)
from cmdbctl.services.telemetry import trace_span, traced

if TYPE_CHECKING:
    from cmdbctl.infrastructure.store import Store

logger = logging.getLogger(__name__)


class CIService(BaseService):
    """CRUD, listing, and search over CI types and CI assets."""

    def __init__(self, store: Store, *, validator: SchemaValidator | None = None) -> None:
        super().__init__(store)
        self._validator: SchemaValidator = validator or JsonSchemaValidator()

    # ------------------------------------------------------------------
    # CI types
    # ------------------------------------------------------------------

    @traced
    def create_type(
        self,
        name: str,
        *,
        actor: str,
        description: str | None = None,
        attributes: dict[str, Any] | None = None,
    ) -> ServiceResult:
        op = "create_ci_type"
        warnings: list[str] = []

        # ── VALIDATE ──────────────────────────────────────────────
        req = self._parse(
            op, CITypeCreate, name=name, description=description, attributes=attributes or {}
        )
        if isinstance(req, ServiceResult):
            return req
        conflict = f"CI type '{req.name}' already exists"

        # ── CHECK → PERSIST ───────────────────────────────────────
        type_id = new_id()
        now = now_iso()
        try:
            with self._store.transaction() as txn:
                repo = CITypeRepository(txn.conn)
                if repo.find_live_by_name(req.name) is not None:
                    return fail(op, CONFLICT, conflict, name=req.name)
                row = {
                    "id": type_id,
                    **req.model_dump(),
                    "created_by": actor,
                    "created_at": now,
                    "updated_at": now,
                }
                repo.insert(row)
                created = repo.get(type_id)
        except SQLAlchemyError as exc:
            return self._store_failure(op, exc, integrity_message=conflict)

        assert created is not None
        self._after_commit(
            entity_type="ci_type",
            entity_id=type_id,
            action="create",
            actor=actor,
            warnings=warnings,
            new_values=created,
        )
        return ServiceResult(ok=True, op=op, data=created, warnings=warnings)

    @traced
    def update_type(
        self,
        type_id: str,
        *,
        actor: str,
        name: str | None = None,
        description: str | None = None,
        attributes: dict[str, Any] | None = None,
    ) -> ServiceResult:
        op = "update_ci_type"
        warnings: list[str] = []
        req = self._parse(
            op, CITypeUpdate, name=name, description=description, attributes=attributes
        )
        if isinstance(req, ServiceResult):
            return req
        changes = req.model_dump(exclude_none=True)

        try:
            with self._store.transaction() as txn:
                repo = CITypeRepository(txn.conn)
                before = repo.get_live(type_id)
                if before is None:
                    return fail(op, NOT_FOUND, f"CI type with id '{type_id}' not found")
                if req.name is not None and req.name != before["name"]:
                    if repo.find_live_by_name(req.name, exclude_id=type_id) is not None:
                        return fail(
                            op, CONFLICT, f"CI type '{req.name}' already exists", name=req.name
                        )
                repo.update(type_id, {**changes, "updated_at": now_iso()})
                after = repo.get(type_id)
        except SQLAlchemyError as exc:
            return self._store_failure(
                op, exc, integrity_message=f"CI type '{req.name}' already exists"
            )

        assert after is not None
        self._after_commit(
            entity_type="ci_type",
            entity_id=type_id,
            action="update",
            actor=actor,
            warnings=warnings,
            old_values=before,
            new_values=after,
        )
        return ServiceResult(ok=True, op=op, data=after, warnings=warnings)

    @traced
    def delete_type(self, type_id: str, *, actor: str) -> ServiceResult:
        """Soft-delete a CI type. Assets of the type are left untouched."""
        op = "delete_ci_type"
        warnings: list[str] = []
        try:
            with self._store.transaction() as txn:
                repo = CITypeRepository(txn.conn)
                before = repo.get_live(type_id)
                if before is None or not repo.soft_delete(type_id, now=now_iso()):
                    return fail(op, NOT_FOUND, f"CI type with id '{type_id}' not found")
        except SQLAlchemyError as exc:
            return self._store_failure(op, exc)

        self._after_commit(
            entity_type="ci_type",
            entity_id=type_id,
            action="delete",
            actor=actor,
            warnings=warnings,
            old_values=before,
        )
        return ServiceResult(ok=True, op=op, data={"id": type_id}, warnings=warnings)

    @traced
    def get_type(self, type_id: str) -> ServiceResult:
        op = "get_ci_type"
        with self._store.read() as conn:
            row = CITypeRepository(conn).get_live(type_id)
        if row is None:
            return fail(op, NOT_FOUND, f"CI type with id '{type_id}' not found")
        return ServiceResult(ok=True, op=op, data=row)

    @traced
    def list_types(self, *, limit: int = 50, offset: int = 0) -> ServiceResult:
        op = "list_ci_types"
        if (bad := self._check_page(op, limit, offset)) is not None:
            return bad
        with self._store.read() as conn:
            items = CITypeRepository(conn).list_page(limit=limit, offset=offset)
        return ServiceResult(
            ok=True,
            op=op,
            data={"items": items, "count": len(items), "limit": limit, "offset": offset},
        )

    @traced
    def count_types(self) -> ServiceResult:
        with self._store.read() as conn:
            total = CITypeRepository(conn).count_live()
        return ServiceResult(ok=True, op="count_ci_types", data={"count": total})

    # ------------------------------------------------------------------
    # CI assets
    # ------------------------------------------------------------------

    @traced
    def create_asset(
        self,
        ci_type_id: str,
        name: str,
        *,
        actor: str,
        attributes: dict[str, Any] | None = None,
    ) -> ServiceResult:
        """Create an asset after validating its attributes against the type schema.

        VALIDATE → SCHEMA → PERSIST → AUDIT → EVENT → RESPOND
        """
        op = "create_ci_asset"
        warnings: list[str] = []
        req = self._parse(
            op, CIAssetCreate, ci_type_id=ci_type_id, name=name, attributes=attributes or {}
        )
        if isinstance(req, ServiceResult):
            return req

        asset_id = new_id()
        now = now_iso()
        try:
            with self._store.transaction() as txn:
                ci_type = CITypeRepository(txn.conn).get_live(req.ci_type_id)
                if ci_type is None:
                    return fail(op, NOT_FOUND, f"CI type with id '{req.ci_type_id}' not found")

                # ── SCHEMA ────────────────────────────────────────
                with trace_span("schema_validate"):
                    bad = self._check_attributes(op, ci_type, req.attributes)
                if bad is not None:
                    return bad

                # ── PERSIST ───────────────────────────────────────
                repo = CIAssetRepository(txn.conn)
                repo.insert(
                    {
                        "id": asset_id,
                        **req.model_dump(),
                        "created_by": actor,
                        "created_at": now,
                        "updated_at": now,
                    }
                )
                created = repo.get(asset_id)
        except SQLAlchemyError as exc:
            return self._store_failure(op, exc)

        assert created is not None
        self._after_commit(
            entity_type="ci_asset",
            entity_id=asset_id,
            action="create",
            actor=actor,
            warnings=warnings,
            new_values=created,
        )
        return ServiceResult(ok=True, op=op, data=created, warnings=warnings)

    @traced
    def update_asset(
        self,
        asset_id: str,
        *,
        actor: str,
        name: str | None = None,
        attributes: dict[str, Any] | None = None,
    ) -> ServiceResult:
        """Update name and/or attributes. ``data.updated`` is False for a no-op."""
        op = "update_ci_asset"
        warnings: list[str] = []
        req = self._parse(op, CIAssetUpdate, name=name, attributes=attributes)
        if isinstance(req, ServiceResult):
            return req
        changes = req.model_dump(exclude_none=True)

        try:
            with self._store.transaction() as txn:
                repo = CIAssetRepository(txn.conn)
                before = repo.get_live(asset_id)
                if before is None:
                    return fail(op, NOT_FOUND, f"CI asset with id '{asset_id}' not found")
                if not changes:
                    return ServiceResult(
                        ok=True, op=op, data={"updated": False, "asset": before}
                    )
                ci_type = CITypeRepository(txn.conn).get(before["ci_type_id"])
                if req.attributes is not None and ci_type is not None:
                    bad = self._check_attributes(op, ci_type, req.attributes)
                    if bad is not None:
                        return bad
                repo.update(asset_id, {**changes, "updated_by": actor, "updated_at": now_iso()})
                after = repo.get(asset_id)
        except SQLAlchemyError as exc:
            return self._store_failure(op, exc)

        assert after is not None
        self._refresh_node(after, ci_type["name"] if ci_type else "", warnings)
        self._after_commit(
            entity_type="ci_asset",
            entity_id=asset_id,
            action="update",
            actor=actor,
            warnings=warnings,
            old_values=before,
            new_values=after,
        )
        return ServiceResult(
            ok=True, op=op, data={"updated": True, "asset": after}, warnings=warnings
        )

    @traced
    def delete_asset(self, asset_id: str, *, actor: str) -> ServiceResult:
        op = "delete_ci_asset"
        warnings: list[str] = []
        try:
            with self._store.transaction() as txn:
                repo = CIAssetRepository(txn.conn)
                before = repo.get_live(asset_id)
                if before is None or not repo.soft_delete(
                    asset_id, now=now_iso(), deleted_by=actor
                ):
                    return fail(op, NOT_FOUND, f"CI asset with id '{asset_id}' not found")
        except SQLAlchemyError as exc:
            return self._store_failure(op, exc)

        with trace_span("graph_mirror"):
            try:
                self._store.graph.delete_node(asset_id)
            except GraphStoreError as exc:
                logger.warning("Graph node removal failed for asset %s: %s", asset_id, exc)
                warnings.append(f"Graph mirror not updated: {exc}")

        self._after_commit(
            entity_type="ci_asset",
            entity_id=asset_id,
            action="delete",
            actor=actor,
            warnings=warnings,
            old_values=before,
        )
        return ServiceResult(ok=True, op=op, data={"id": asset_id}, warnings=warnings)

    @traced
    def get_asset(self, asset_id: str) -> ServiceResult:
        op = "get_ci_asset"
        with self._store.read() as conn:
            rows = CIAssetRepository(conn).live_with_type_names([asset_id])
        if not rows:
            return fail(op, NOT_FOUND, f"CI asset with id '{asset_id}' not found")
        return ServiceResult(ok=True, op=op, data=rows[0])

    @traced
    def list_assets(
        self,
        *,
        ci_type_id: str | None = None,
        name: str | None = None,
        created_by: str | None = None,
        created_after: str | None = None,
        created_before: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> ServiceResult:
        op = "list_ci_assets"
        if (bad := self._check_page(op, limit, offset)) is not None:
            return bad
        with self._store.read() as conn:
            items = CIAssetRepository(conn).list_page(
                ci_type_id=ci_type_id,
                name=name,
                created_by=created_by,
                created_after=created_after,
                created_before=created_before,
                limit=limit,
                offset=offset,
            )
        return ServiceResult(
            ok=True,
            op=op,
            data={"items": items, "count": len(items), "limit": limit, "offset": offset},
        )

    @traced
    def search_assets(self, query: str, *, limit: int = 50, offset: int = 0) -> ServiceResult:
        op = "search_ci_assets"
        if not query or not query.strip():
            return fail(op, VALIDATION_FAILED, "Search query cannot be empty")
        if (bad := self._check_page(op, limit, offset)) is not None:
            return bad
        with self._store.read() as conn:
            items = CIAssetRepository(conn).search(query.strip(), limit=limit, offset=offset)
        return ServiceResult(
            ok=True,
            op=op,
            data={"query": query, "items": items, "count": len(items)},
        )

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _check_attributes(
        self, op: str, ci_type: dict[str, Any], attributes: dict[str, Any]
    ) -> ServiceResult | None:
        """Validate *attributes* against the type's schema, if it declares one."""
        schema = schema_of(ci_type.get("attributes"))
        if schema is None:
            return None
        try:
            problems = self._validator.validate(schema, attributes)
        except ValueError as exc:
            return fail(op, VALIDATION_FAILED, f"Invalid JSON schema: {exc}")
        if problems:
            return fail(
                op,
                VALIDATION_FAILED,
                f"Attribute validation failed: {', '.join(problems)}",
                errors=problems,
            )
        return None

    def _refresh_node(self, asset: dict[str, Any], ci_type_name: str, warnings: list[str]) -> None:
        """Rewrite the asset's graph node if it is already mirrored."""
        with trace_span("graph_mirror"):
            try:
                graph = self._store.graph
                if graph.get_node(asset["id"]) is None:
                    return
                graph.upsert_node(
                    asset["id"],
                    name=asset["name"],
                    ci_type=ci_type_name,
                    ci_type_id=asset["ci_type_id"],
                    attributes=json.dumps(asset["attributes"], sort_keys=True),
                )
            except GraphStoreError as exc:
                logger.warning("Graph node refresh failed for asset %s: %s", asset["id"], exc)
                warnings.append(f"Graph mirror not updated: {exc}")
