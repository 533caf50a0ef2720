"""GraphService — reads over the graph mirror, plus its reconciliation.

The mirror is best-effort: any read may fail with ``GraphStoreError`` when
the graph file is unavailable, and that surfaces as INTERNAL_ERROR here.
:meth:`GraphService.reconcile` rebuilds the mirror from the relational
tables and is the only way the graph is healed after a failed sync.
"""

from __future__ import annotations

import json
import logging

from cmdbctl.domain.labels import edge_label
from cmdbctl.infrastructure.graph import GraphStoreError
from cmdbctl.infrastructure.repositories import CIAssetRepository, RelationshipRepository
from cmdbctl.services.base import BaseService, fail
from cmdbctl.services.relationship import mirror_edge_props
from cmdbctl.services.result import INTERNAL_ERROR, NOT_FOUND, VALIDATION_FAILED, ServiceResult
from cmdbctl.services.telemetry import annotate, trace_span, traced

logger = logging.getLogger(__name__)

MAX_DEPTH = 5


class GraphService(BaseService):
    """Traversal, search, and healing over the graph projection."""

    @traced
    def neighbors(self, asset_id: str, *, depth: int = 1) -> ServiceResult:
        """Nodes within *depth* hops of an asset (either direction)."""
        op = "graph_neighbors"
        if depth < 1 or depth > MAX_DEPTH:
            return fail(op, VALIDATION_FAILED, f"Depth must be between 1 and {MAX_DEPTH}")
        try:
            nodes, edges = self._store.graph.neighbors(asset_id, depth=depth)
        except GraphStoreError as exc:
            return fail(op, INTERNAL_ERROR, f"Graph store unavailable: {exc}")
        if not nodes:
            return fail(op, NOT_FOUND, f"Asset '{asset_id}' is not in the graph")
        return ServiceResult(
            ok=True,
            op=op,
            data={"center": asset_id, "depth": depth, "nodes": nodes, "edges": edges},
        )

    @traced
    def full_graph(self, *, ci_type: str | None = None, limit: int | None = None) -> ServiceResult:
        op = "graph_full"
        node_limit = limit if limit is not None else self._store.settings.graph.node_limit
        if node_limit < 1:
            return fail(op, VALIDATION_FAILED, "Node limit must be positive")
        try:
            nodes, edges = self._store.graph.full_graph(node_limit=node_limit, ci_type=ci_type)
        except GraphStoreError as exc:
            return fail(op, INTERNAL_ERROR, f"Graph store unavailable: {exc}")
        return ServiceResult(
            ok=True,
            op=op,
            data={"nodes": nodes, "edges": edges},
            meta={"node_count": len(nodes), "edge_count": len(edges), "limit": node_limit},
        )

    @traced
    def search(self, term: str, *, limit: int | None = None) -> ServiceResult:
        op = "graph_search"
        if not term or not term.strip():
            return fail(op, VALIDATION_FAILED, "Search query cannot be empty")
        max_hits = limit if limit is not None else self._store.settings.graph.search_limit
        try:
            hits = self._store.graph.search(term.strip(), limit=max_hits)
        except GraphStoreError as exc:
            return fail(op, INTERNAL_ERROR, f"Graph store unavailable: {exc}")
        return ServiceResult(
            ok=True, op=op, data={"query": term, "items": hits, "count": len(hits)}
        )

    @traced
    def edge(self, from_id: str, to_id: str, type_id: str) -> ServiceResult:
        """Read back one mirrored edge. ``data.edge`` is None when not mirrored."""
        op = "graph_edge"
        try:
            found = self._store.graph.get_edge(from_id, to_id, type_id)
        except GraphStoreError as exc:
            return fail(op, INTERNAL_ERROR, f"Graph store unavailable: {exc}")
        return ServiceResult(ok=True, op=op, data={"edge": found, "mirrored": found is not None})

    @traced
    def path(self, from_id: str, to_id: str) -> ServiceResult:
        """Shortest hop path between two assets, ignoring edge direction."""
        op = "graph_path"
        try:
            hops = self._store.graph.shortest_path(from_id, to_id)
        except GraphStoreError as exc:
            return fail(op, INTERNAL_ERROR, f"Graph store unavailable: {exc}")
        if hops is None:
            return fail(op, NOT_FOUND, f"No path between '{from_id}' and '{to_id}'")
        return ServiceResult(
            ok=True, op=op, data={"path": hops, "length": len(hops) - 1}
        )

    @traced
    def reconcile(self) -> ServiceResult:
        """Rebuild the mirror from live relationships whose endpoints are live.

        READ (relational) → BUILD → REPLACE (graph)
        """
        op = "graph_reconcile"

        # ── READ ──────────────────────────────────────────────────
        with trace_span("read"), self._store.read() as conn:
            views = RelationshipRepository(conn).mirrorable_views()
            endpoint_ids = sorted(
                {v["from_ci_asset_id"] for v in views} | {v["to_ci_asset_id"] for v in views}
            )
            assets = CIAssetRepository(conn).live_with_type_names(endpoint_ids)

        # ── BUILD ─────────────────────────────────────────────────
        with trace_span("build"):
            nodes = [
                {
                    "id": a["id"],
                    "name": a["name"],
                    "ci_type": a["ci_type_name"],
                    "ci_type_id": a["ci_type_id"],
                    "attributes": json.dumps(a["attributes"], sort_keys=True),
                }
                for a in assets
            ]
            edges = [
                {
                    "source": v["from_ci_asset_id"],
                    "target": v["to_ci_asset_id"],
                    "type_id": v["relationship_type_id"],
                    "label": edge_label(v["relationship_type_name"]),
                    "created_at": v["created_at"],
                    "updated_at": v["updated_at"],
                    **mirror_edge_props(v),
                }
                for v in views
            ]
            annotate(nodes=len(nodes), edges=len(edges))

        # ── REPLACE ───────────────────────────────────────────────
        with trace_span("replace"):
            try:
                self._store.graph.replace(nodes, edges)
            except GraphStoreError as exc:
                logger.warning("Graph reconciliation failed: %s", exc)
                return fail(op, INTERNAL_ERROR, f"Graph store unavailable: {exc}")

        return ServiceResult(ok=True, op=op, data={"nodes": len(nodes), "edges": len(edges)})
