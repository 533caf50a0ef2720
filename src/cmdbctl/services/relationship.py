"""RelationshipService — relationship types and the instances linking assets.

Instance creation is a two-store update without a shared transaction:

    VALIDATE → COMMIT (relational, authoritative) → MIRROR (graph, best-effort)
    → AUDIT → EVENT → RESPOND

INVARIANT: The relational write always precedes the graph write, and a
graph failure never unwinds it. The mirror may lag the relational truth
(``graph_reconcile`` heals it); it never leads it.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from cmdbctl.domain.labels import edge_label
from cmdbctl.domain.models import (
    RelationshipCreate,
    RelationshipTypeCreate,
    RelationshipTypeUpdate,
)
from cmdbctl.infrastructure.graph import GraphStoreError
from cmdbctl.infrastructure.repositories import (
    CIAssetRepository,
    CITypeRepository,
    RelationshipRepository,
    RelationshipTypeRepository,
)
from cmdbctl.services._helpers import new_id, now_iso
from cmdbctl.services.base import BaseService, fail
from cmdbctl.services.result import (
    CONFLICT,
    NOT_FOUND,
    VALIDATION_FAILED,
    ServiceResult,
)
from cmdbctl.services.telemetry import annotate, trace_span, traced

logger = logging.getLogger(__name__)

TYPE_NAME_CONFLICT = "Relationship type with this name already exists"
DUPLICATE_RELATIONSHIP = "Relationship already exists between these assets for this type"
SELF_RELATIONSHIP = "Self-relationships are not allowed"


def mirror_edge_props(view: dict[str, Any]) -> dict[str, Any]:
    """Edge properties for a relationship view, excluding the ``type_id`` key."""
    return {
        "relationship_id": view["id"],
        "from_ci_type": view["from_ci_type_name"],
        "to_ci_type": view["to_ci_type_name"],
        "is_bidirectional": bool(view["is_bidirectional"]),
        "attributes": json.dumps(view.get("attributes") or {}, sort_keys=True),
    }


class RelationshipService(BaseService):
    """Relationship type definitions and relationship instances."""

    # ------------------------------------------------------------------
    # Relationship types
    # ------------------------------------------------------------------

    @traced
    def create_type(
        self,
        name: str,
        *,
        actor: str,
        description: str | None = None,
        from_ci_type_id: str | None = None,
        to_ci_type_id: str | None = None,
        is_bidirectional: bool = False,
        reverse_name: str | None = None,
        attributes_schema: dict[str, Any] | None = None,
    ) -> ServiceResult:
        """Create a relationship type, then register its edge label with the graph.

        VALIDATE → CHECK → PERSIST → REGISTER → AUDIT → EVENT → RESPOND
        """
        op = "create_relationship_type"
        warnings: list[str] = []
        req = self._parse(
            op,
            RelationshipTypeCreate,
            name=name,
            description=description,
            from_ci_type_id=from_ci_type_id,
            to_ci_type_id=to_ci_type_id,
            is_bidirectional=is_bidirectional,
            reverse_name=reverse_name,
            attributes_schema=attributes_schema or {},
        )
        if isinstance(req, ServiceResult):
            return req

        type_id = new_id()
        now = now_iso()
        try:
            with self._store.transaction() as txn:
                repo = RelationshipTypeRepository(txn.conn)
                ci_types = CITypeRepository(txn.conn)

                # ── CHECK ─────────────────────────────────────────
                if repo.find_live_by_name(req.name) is not None:
                    return fail(op, CONFLICT, TYPE_NAME_CONFLICT, name=req.name)
                from_type = to_type = None
                if req.from_ci_type_id is not None:
                    from_type = ci_types.get_live(req.from_ci_type_id)
                    if from_type is None:
                        return fail(op, NOT_FOUND, "Source CI type not found")
                if req.to_ci_type_id is not None:
                    to_type = ci_types.get_live(req.to_ci_type_id)
                    if to_type is None:
                        return fail(op, NOT_FOUND, "Target CI type not found")
                if req.is_bidirectional and not (req.reverse_name or "").strip():
                    return fail(
                        op,
                        VALIDATION_FAILED,
                        "Reverse name is required for bidirectional relationships",
                    )
                if (
                    req.from_ci_type_id is not None
                    and req.from_ci_type_id == req.to_ci_type_id
                ):
                    return fail(op, VALIDATION_FAILED, SELF_RELATIONSHIP)

                # ── PERSIST ───────────────────────────────────────
                repo.insert(
                    {
                        "id": type_id,
                        **req.model_dump(),
                        "created_by": actor,
                        "created_at": now,
                        "updated_at": now,
                    }
                )
                created = repo.summary(type_id)
        except SQLAlchemyError as exc:
            return self._store_failure(op, exc, integrity_message=TYPE_NAME_CONFLICT)

        assert created is not None

        # ── REGISTER ──────────────────────────────────────────────
        with trace_span("register_label"):
            try:
                self._store.graph.register_relationship_label(
                    edge_label(req.name),
                    from_ci_type=from_type["name"] if from_type else None,
                    to_ci_type=to_type["name"] if to_type else None,
                    is_bidirectional=req.is_bidirectional,
                )
            except GraphStoreError as exc:
                logger.warning(
                    "Failed to register graph label for relationship type %r: %s",
                    req.name,
                    exc,
                )
                warnings.append(f"Graph label not registered: {exc}")

        self._after_commit(
            entity_type="relationship_type",
            entity_id=type_id,
            action="create",
            actor=actor,
            warnings=warnings,
            new_values=created,
        )
        return ServiceResult(ok=True, op=op, data=created, warnings=warnings)

    @traced
    def get_type(self, type_id: str) -> ServiceResult:
        op = "get_relationship_type"
        with self._store.read() as conn:
            row = RelationshipTypeRepository(conn).summary(type_id)
        if row is None:
            return fail(op, NOT_FOUND, "Relationship type not found")
        return ServiceResult(ok=True, op=op, data=row)

    @traced
    def list_types(
        self,
        *,
        search: str | None = None,
        from_ci_type_id: str | None = None,
        to_ci_type_id: str | None = None,
        is_bidirectional: bool | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> ServiceResult:
        op = "list_relationship_types"
        if (bad := self._check_page(op, limit, offset)) is not None:
            return bad
        with self._store.read() as conn:
            items = RelationshipTypeRepository(conn).list_summaries(
                search=search,
                from_ci_type_id=from_ci_type_id,
                to_ci_type_id=to_ci_type_id,
                is_bidirectional=is_bidirectional,
                limit=limit,
                offset=offset,
            )
        return ServiceResult(
            ok=True,
            op=op,
            data={"items": items, "count": len(items), "limit": limit, "offset": offset},
        )

    @traced
    def update_type(
        self,
        type_id: str,
        *,
        actor: str,
        name: str | None = None,
        description: str | None = None,
    ) -> ServiceResult:
        op = "update_relationship_type"
        warnings: list[str] = []
        req = self._parse(op, RelationshipTypeUpdate, name=name, description=description)
        if isinstance(req, ServiceResult):
            return req
        changes = req.model_dump(exclude_none=True)

        try:
            with self._store.transaction() as txn:
                repo = RelationshipTypeRepository(txn.conn)
                before = repo.get_live(type_id)
                if before is None:
                    return fail(op, NOT_FOUND, "Relationship type not found")
                if req.name is not None and req.name != before["name"]:
                    if repo.find_live_by_name(req.name, exclude_id=type_id) is not None:
                        return fail(op, CONFLICT, TYPE_NAME_CONFLICT, name=req.name)
                repo.update(type_id, {**changes, "updated_at": now_iso()})
                after = repo.summary(type_id)
        except SQLAlchemyError as exc:
            return self._store_failure(op, exc, integrity_message=TYPE_NAME_CONFLICT)

        assert after is not None
        if after["name"] != before["name"]:
            with trace_span("register_label"):
                label = edge_label(after["name"])
                try:
                    self._store.graph.register_relationship_label(
                        label,
                        from_ci_type=after["from_ci_type_name"],
                        to_ci_type=after["to_ci_type_name"],
                        is_bidirectional=after["is_bidirectional"],
                    )
                    annotate(relabelled=self._store.graph.relabel_edges(type_id, label))
                except GraphStoreError as exc:
                    logger.warning(
                        "Failed to relabel graph edges for relationship type %s: %s",
                        type_id,
                        exc,
                    )
                    warnings.append(f"Graph label not updated: {exc}")

        self._after_commit(
            entity_type="relationship_type",
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
        op = "delete_relationship_type"
        warnings: list[str] = []
        try:
            with self._store.transaction() as txn:
                repo = RelationshipTypeRepository(txn.conn)
                before = repo.get_live(type_id)
                if before is None or not repo.soft_delete(type_id, now=now_iso()):
                    return fail(op, NOT_FOUND, "Relationship type not found")
        except SQLAlchemyError as exc:
            return self._store_failure(op, exc)

        self._after_commit(
            entity_type="relationship_type",
            entity_id=type_id,
            action="delete",
            actor=actor,
            warnings=warnings,
            old_values=before,
        )
        return ServiceResult(ok=True, op=op, data={"id": type_id}, warnings=warnings)

    # ------------------------------------------------------------------
    # Relationship instances
    # ------------------------------------------------------------------

    @traced
    def create(
        self,
        relationship_type_id: str,
        from_ci_asset_id: str,
        to_ci_asset_id: str,
        *,
        actor: str,
        attributes: dict[str, Any] | None = None,
    ) -> ServiceResult:
        """Link two assets.

        COMMIT is the durability point: once it returns a record, the call
        succeeds whatever happens to the graph mirror.
        """
        op = "create_relationship"
        warnings: list[str] = []

        # ── VALIDATE ──────────────────────────────────────────────
        req = self._parse(
            op,
            RelationshipCreate,
            relationship_type_id=relationship_type_id,
            from_ci_asset_id=from_ci_asset_id,
            to_ci_asset_id=to_ci_asset_id,
            attributes=attributes or {},
        )
        if isinstance(req, ServiceResult):
            return req

        # ── COMMIT ────────────────────────────────────────────────
        with trace_span("commit_authoritative"):
            committed = self._commit_authoritative(op, req, actor)
        if isinstance(committed, ServiceResult):
            return committed

        # ── MIRROR ────────────────────────────────────────────────
        with trace_span("mirror", relationship_id=committed["id"]):
            annotate(mirrored=self._try_mirror(committed, warnings))

        self._after_commit(
            entity_type="relationship",
            entity_id=committed["id"],
            action="create",
            actor=actor,
            warnings=warnings,
            new_values={
                "relationship_type_id": committed["relationship_type_id"],
                "from_ci_asset_id": committed["from_ci_asset_id"],
                "to_ci_asset_id": committed["to_ci_asset_id"],
                "attributes": committed["attributes"],
            },
        )
        return ServiceResult(ok=True, op=op, data=committed, warnings=warnings)

    @traced
    def delete(self, relationship_id: str, *, actor: str) -> ServiceResult:
        """Soft-delete the relationship, then drop its mirrored edge (best-effort)."""
        op = "delete_relationship"
        warnings: list[str] = []
        try:
            with self._store.transaction() as txn:
                repo = RelationshipRepository(txn.conn)
                before = repo.get_live(relationship_id)
                if before is None or not repo.soft_delete(
                    relationship_id, now=now_iso(), deleted_by=actor
                ):
                    return fail(op, NOT_FOUND, "Relationship not found")
        except SQLAlchemyError as exc:
            return self._store_failure(op, exc)

        with trace_span("mirror"):
            try:
                self._store.graph.delete_edge(
                    before["from_ci_asset_id"],
                    before["to_ci_asset_id"],
                    before["relationship_type_id"],
                )
            except GraphStoreError as exc:
                logger.warning(
                    "Graph edge removal failed for relationship %s: %s", relationship_id, exc
                )
                warnings.append(f"Graph mirror not updated: {exc}")

        self._after_commit(
            entity_type="relationship",
            entity_id=relationship_id,
            action="delete",
            actor=actor,
            warnings=warnings,
            old_values=before,
        )
        return ServiceResult(ok=True, op=op, data={"id": relationship_id}, warnings=warnings)

    @traced
    def get(self, relationship_id: str) -> ServiceResult:
        op = "get_relationship"
        with self._store.read() as conn:
            view = RelationshipRepository(conn).view(relationship_id)
        if view is None:
            return fail(op, NOT_FOUND, "Relationship not found")
        return ServiceResult(ok=True, op=op, data=view)

    @traced
    def list(
        self,
        *,
        relationship_type_id: str | None = None,
        ci_asset_id: str | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> ServiceResult:
        """List relationship views, newest first.

        Bounds are not validated here: a zero or negative limit simply
        yields nothing.
        """
        if limit is None:
            limit = self._store.settings.pagination.relationship_default_limit
        with self._store.read() as conn:
            items = RelationshipRepository(conn).list_views(
                relationship_type_id=relationship_type_id,
                ci_asset_id=ci_asset_id,
                limit=max(limit, 0),
                offset=max(offset, 0),
            )
        return ServiceResult(
            ok=True,
            op="list_relationships",
            data={"items": items, "count": len(items), "limit": limit, "offset": offset},
        )

    # ------------------------------------------------------------------
    # Two-store helpers
    # ------------------------------------------------------------------

    def _commit_authoritative(
        self, op: str, req: RelationshipCreate, actor: str
    ) -> dict[str, Any] | ServiceResult:
        """Check and insert in one relational transaction.

        Returns the committed joined view, or a failed result. The partial
        unique index on live triples turns a lost race into CONFLICT.
        """
        if req.from_ci_asset_id == req.to_ci_asset_id:
            return fail(op, VALIDATION_FAILED, SELF_RELATIONSHIP)

        rel_id = new_id()
        now = now_iso()
        try:
            with self._store.transaction() as txn:
                rel_type = RelationshipTypeRepository(txn.conn).get_live(req.relationship_type_id)
                if rel_type is None:
                    return fail(op, NOT_FOUND, "Relationship type not found")

                assets = CIAssetRepository(txn.conn)
                source = assets.get_live(req.from_ci_asset_id)
                if source is None:
                    return fail(op, NOT_FOUND, "Source CI asset not found")
                target = assets.get_live(req.to_ci_asset_id)
                if target is None:
                    return fail(op, NOT_FOUND, "Target CI asset not found")

                expected_from = rel_type["from_ci_type_id"]
                if expected_from is not None and source["ci_type_id"] != expected_from:
                    return fail(
                        op,
                        VALIDATION_FAILED,
                        "Source asset type does not match the relationship type constraint",
                        expected=expected_from,
                        actual=source["ci_type_id"],
                    )
                expected_to = rel_type["to_ci_type_id"]
                if expected_to is not None and target["ci_type_id"] != expected_to:
                    return fail(
                        op,
                        VALIDATION_FAILED,
                        "Target asset type does not match the relationship type constraint",
                        expected=expected_to,
                        actual=target["ci_type_id"],
                    )

                repo = RelationshipRepository(txn.conn)
                if (
                    repo.find_live_triple(
                        req.relationship_type_id, req.from_ci_asset_id, req.to_ci_asset_id
                    )
                    is not None
                ):
                    return fail(op, CONFLICT, DUPLICATE_RELATIONSHIP)

                repo.insert(
                    {
                        "id": rel_id,
                        **req.model_dump(),
                        "created_by": actor,
                        "created_at": now,
                        "updated_at": now,
                    }
                )
                view = repo.view(rel_id)
        except SQLAlchemyError as exc:
            return self._store_failure(op, exc, integrity_message=DUPLICATE_RELATIONSHIP)

        assert view is not None
        return view

    def _try_mirror(self, record: dict[str, Any], warnings: list[str]) -> bool:
        """Project a committed relationship into the graph.

        Upserts both endpoint nodes, then merges the typed edge. A
        :class:`GraphStoreError` is logged and reported as a warning only.
        Returns whether the mirror was updated.
        """
        try:
            with self._store.read() as conn:
                endpoints = CIAssetRepository(conn).live_with_type_names(
                    [record["from_ci_asset_id"], record["to_ci_asset_id"]]
                )
            graph = self._store.graph
            for asset in endpoints:
                graph.upsert_node(
                    asset["id"],
                    name=asset["name"],
                    ci_type=asset["ci_type_name"],
                    ci_type_id=asset["ci_type_id"],
                    attributes=json.dumps(asset["attributes"], sort_keys=True),
                )
            graph.merge_edge(
                record["from_ci_asset_id"],
                record["to_ci_asset_id"],
                record["relationship_type_id"],
                label=edge_label(record["relationship_type_name"]),
                **mirror_edge_props(record),
            )
        except (GraphStoreError, SQLAlchemyError) as exc:
            logger.warning("Graph mirror failed for relationship %s: %s", record["id"], exc)
            warnings.append(f"Graph mirror not updated for relationship {record['id']}: {exc}")
            return False
        return True
