"""GraphStore — best-effort NetworkX mirror of assets and relationships.

The mirror is a ``MultiDiGraph`` keyed by relationship type id, so two
assets can be linked by several relationship types but at most once per
type and direction. It is persisted as JSON next to the database and is
never authoritative: every entry can be rebuilt from the relational
tables via :meth:`GraphStore.replace`.

All failures (disabled store, unreadable or unwritable file, corrupt
JSON) surface as :class:`GraphStoreError` so callers can treat the
mirror as an unreliable external collaborator.
"""

from __future__ import annotations

import json
import os
import tempfile
import threading
from collections import deque
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import networkx as nx

# Node and edge payloads are plain dicts; keys documented on each method.
type _Graph = nx.MultiDiGraph

_FORMAT_VERSION = 1


class GraphStoreError(RuntimeError):
    """Raised when the graph mirror cannot be read or written."""


def _now() -> str:
    return datetime.now(UTC).isoformat()


class GraphStore:
    """File-backed property graph mirroring CI assets and relationships.

    Parameters:
        path: JSON file holding the persisted graph. ``None`` keeps the
            graph in memory only.
        enabled: When False, every operation raises :class:`GraphStoreError`.
    """

    def __init__(self, path: Path | None, *, enabled: bool = True) -> None:
        self._path = path
        self._enabled = enabled
        self._lock = threading.RLock()
        self._graph: _Graph | None = None
        self._labels: dict[str, dict[str, Any]] = {}

    @property
    def path(self) -> Path | None:
        return self._path

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def graph(self) -> _Graph:
        """Return the graph, loading from disk on first access."""
        with self._lock:
            self._ensure_available()
            if self._graph is None:
                self._graph = self._load()
            return self._graph

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def upsert_node(
        self,
        node_id: str,
        *,
        name: str,
        ci_type: str,
        ci_type_id: str,
        attributes: str,
    ) -> None:
        """Create or refresh an asset node. *attributes* is JSON text."""
        with self._lock:
            g = self.graph
            g.add_node(
                node_id,
                name=name,
                ci_type=ci_type,
                ci_type_id=ci_type_id,
                attributes=attributes,
            )
            self._save()

    def merge_edge(
        self,
        from_id: str,
        to_id: str,
        type_id: str,
        *,
        label: str,
        **props: Any,
    ) -> None:
        """Create the typed edge, or refresh its properties if present.

        ``created_at`` is preserved across merges; ``updated_at`` is
        always refreshed. Both endpoint nodes must already exist.
        """
        with self._lock:
            g = self.graph
            for node_id in (from_id, to_id):
                if node_id not in g:
                    msg = f"Cannot link missing node {node_id}"
                    raise GraphStoreError(msg)

            now = _now()
            if g.has_edge(from_id, to_id, key=type_id):
                data = g.edges[from_id, to_id, type_id]
                data.update(props)
                data["label"] = label
                data["updated_at"] = now
            else:
                g.add_edge(
                    from_id,
                    to_id,
                    key=type_id,
                    type_id=type_id,
                    label=label,
                    **{"created_at": now, **props, "updated_at": now},
                )
            self._save()

    def relabel_edges(self, type_id: str, label: str) -> int:
        """Set *label* on every mirrored edge of relationship type *type_id*."""
        with self._lock:
            g = self.graph
            changed = 0
            for _u, _v, key, data in g.edges(keys=True, data=True):
                if key == type_id and data.get("label") != label:
                    data["label"] = label
                    data["updated_at"] = _now()
                    changed += 1
            if changed:
                self._save()
            return changed

    def delete_edge(self, from_id: str, to_id: str, type_id: str) -> bool:
        """Remove the typed edge. Returns False if it was not mirrored."""
        with self._lock:
            g = self.graph
            if not g.has_edge(from_id, to_id, key=type_id):
                return False
            g.remove_edge(from_id, to_id, key=type_id)
            self._save()
            return True

    def delete_node(self, node_id: str) -> bool:
        """Remove a node and all its incident edges."""
        with self._lock:
            g = self.graph
            if node_id not in g:
                return False
            g.remove_node(node_id)
            self._save()
            return True

    def register_relationship_label(
        self,
        label: str,
        *,
        from_ci_type: str | None,
        to_ci_type: str | None,
        is_bidirectional: bool,
    ) -> None:
        """Record an edge label and its endpoint constraints.

        The mirror is schema-less, so registration only acknowledges the
        label; it is kept so later enforcement has a single call site.
        """
        with self._lock:
            self.graph  # noqa: B018  (loads labels from disk)
            self._labels[label] = {
                "from_ci_type": from_ci_type,
                "to_ci_type": to_ci_type,
                "is_bidirectional": is_bidirectional,
                "registered_at": _now(),
            }
            self._save()

    def replace(
        self,
        nodes: list[dict[str, Any]],
        edges: list[dict[str, Any]],
    ) -> None:
        """Atomically replace the whole mirror (used by reconciliation).

        *nodes* carry ``id`` plus node properties; *edges* carry
        ``source``, ``target``, ``type_id`` plus edge properties.
        """
        with self._lock:
            self._ensure_available()
            if self._graph is None:
                try:
                    self._graph = self._load()
                except GraphStoreError:
                    # A corrupt file is exactly what a rebuild heals.
                    self._labels = {}
            g: _Graph = nx.MultiDiGraph()
            for node in nodes:
                props = {k: v for k, v in node.items() if k != "id"}
                g.add_node(node["id"], **props)
            for edge in edges:
                props = {k: v for k, v in edge.items() if k not in ("source", "target")}
                g.add_edge(edge["source"], edge["target"], key=edge["type_id"], **props)
            self._graph = g
            self._save()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_node(self, node_id: str) -> dict[str, Any] | None:
        with self._lock:
            g = self.graph
            if node_id not in g:
                return None
            return {"id": node_id, **g.nodes[node_id]}

    def get_edge(self, from_id: str, to_id: str, type_id: str) -> dict[str, Any] | None:
        with self._lock:
            g = self.graph
            if not g.has_edge(from_id, to_id, key=type_id):
                return None
            return self._edge_dict(from_id, to_id, g.edges[from_id, to_id, type_id])

    def labels(self) -> dict[str, dict[str, Any]]:
        with self._lock:
            self.graph  # noqa: B018
            return dict(self._labels)

    def neighbors(
        self, node_id: str, *, depth: int = 1
    ) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
        """Nodes within *depth* hops (either direction) and the edges among them."""
        with self._lock:
            g = self.graph
            if node_id not in g:
                return [], []

            seen: dict[str, int] = {node_id: 0}
            queue: deque[str] = deque([node_id])
            while queue:
                current = queue.popleft()
                hop = seen[current]
                if hop >= depth:
                    continue
                for nbr in (*g.successors(current), *g.predecessors(current)):
                    if nbr not in seen:
                        seen[nbr] = hop + 1
                        queue.append(nbr)

            node_list = [
                {"id": n, "distance": d, **g.nodes[n]}
                for n, d in sorted(seen.items(), key=lambda kv: (kv[1], kv[0]))
            ]
            edge_list = [
                self._edge_dict(u, v, data)
                for u, v, data in g.subgraph(seen).edges(data=True)
            ]
            return node_list, edge_list

    def full_graph(
        self, *, node_limit: int, ci_type: str | None = None
    ) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
        """Up to *node_limit* nodes (optionally one CI type) and their edges."""
        with self._lock:
            g = self.graph
            selected: list[str] = []
            for node_id in sorted(g.nodes):
                if ci_type is not None and g.nodes[node_id].get("ci_type") != ci_type:
                    continue
                selected.append(node_id)
                if len(selected) >= node_limit:
                    break

            node_list = [{"id": n, **g.nodes[n]} for n in selected]
            edge_list = [
                self._edge_dict(u, v, data)
                for u, v, data in g.subgraph(selected).edges(data=True)
            ]
            return node_list, edge_list

    def search(self, term: str, *, limit: int) -> list[dict[str, Any]]:
        """Case-insensitive substring match on node names."""
        needle = term.casefold()
        with self._lock:
            g = self.graph
            hits = [
                {"id": n, **data}
                for n, data in g.nodes(data=True)
                if needle in str(data.get("name", "")).casefold()
            ]
        hits.sort(key=lambda item: (str(item.get("name", "")).casefold(), item["id"]))
        return hits[:limit]

    def shortest_path(self, source: str, target: str) -> list[str] | None:
        """Shortest hop path ignoring direction, or None if disconnected."""
        with self._lock:
            g = self.graph
            if source not in g or target not in g:
                return None
            try:
                return list(nx.shortest_path(g.to_undirected(as_view=True), source, target))
            except nx.NetworkXNoPath:
                return None

    def stats(self) -> dict[str, int]:
        with self._lock:
            g = self.graph
            return {
                "nodes": g.number_of_nodes(),
                "edges": g.number_of_edges(),
                "labels": len(self._labels),
            }

    def invalidate(self) -> None:
        """Drop the in-memory copy; the next access reloads from disk."""
        with self._lock:
            self._graph = None
            self._labels = {}

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _ensure_available(self) -> None:
        if not self._enabled:
            msg = "Graph store is disabled"
            raise GraphStoreError(msg)

    @staticmethod
    def _edge_dict(u: str, v: str, data: dict[str, Any]) -> dict[str, Any]:
        return {"from_node_id": u, "to_node_id": v, **data}

    def _load(self) -> _Graph:
        g: _Graph = nx.MultiDiGraph()
        self._labels = {}
        if self._path is None or not self._path.exists():
            return g

        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            msg = f"Cannot load graph from {self._path}: {exc}"
            raise GraphStoreError(msg) from exc

        for node in raw.get("nodes", []):
            props = {k: v for k, v in node.items() if k != "id"}
            g.add_node(node["id"], **props)
        for edge in raw.get("edges", []):
            props = {k: v for k, v in edge.items() if k not in ("source", "target")}
            g.add_edge(edge["source"], edge["target"], key=edge["type_id"], **props)
        self._labels = dict(raw.get("labels", {}))
        return g

    def _save(self) -> None:
        """Write the graph atomically (temp file + rename)."""
        if self._path is None or self._graph is None:
            return

        g = self._graph
        payload = {
            "version": _FORMAT_VERSION,
            "labels": self._labels,
            "nodes": [{"id": n, **data} for n, data in g.nodes(data=True)],
            "edges": [
                {"source": u, "target": v, **data} for u, v, data in g.edges(data=True)
            ],
        }
        tmp: Path | None = None
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            # Unique temp file per write so concurrent processes never share one.
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self._path.parent,
                prefix=f"{self._path.name}.",
                suffix=".tmp",
                delete=False,
            ) as handle:
                tmp = Path(handle.name)
                json.dump(payload, handle, sort_keys=True)
            os.replace(tmp, self._path)
        except OSError as exc:
            if tmp is not None:
                tmp.unlink(missing_ok=True)
            # The in-memory copy is now ahead of disk; reload on next access.
            self._graph = None
            msg = f"Cannot persist graph to {self._path}: {exc}"
            raise GraphStoreError(msg) from exc
