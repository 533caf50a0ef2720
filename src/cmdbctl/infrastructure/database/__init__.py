"""SQLite database engine and schema via SQLAlchemy Core."""

from cmdbctl.infrastructure.database.engine import create_db_engine, init_database
from cmdbctl.infrastructure.database.schema import (
    amortization_entries,
    audit_log,
    ci_assets,
    ci_type_lifecycles,
    ci_types,
    event_wal,
    lifecycle_states,
    lifecycle_transitions,
    lifecycle_types,
    metadata,
    relationship_types,
    relationships,
    users,
    valuation_records,
)

__all__ = [
    "amortization_entries",
    "audit_log",
    "ci_assets",
    "ci_type_lifecycles",
    "ci_types",
    "create_db_engine",
    "event_wal",
    "init_database",
    "lifecycle_states",
    "lifecycle_transitions",
    "lifecycle_types",
    "metadata",
    "relationship_types",
    "relationships",
    "users",
    "valuation_records",
]
