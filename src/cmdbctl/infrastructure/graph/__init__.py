"""Graph mirror of CI assets and relationships (NetworkX)."""

from cmdbctl.infrastructure.graph.store import GraphStore, GraphStoreError

__all__ = ["GraphStore", "GraphStoreError"]
