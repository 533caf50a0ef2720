"""SQLAlchemy Core table definitions for the cmdbctl database.

All ids are UUID4 text, all timestamps ISO-8601 UTC text. Soft-deletable
tables carry a nullable ``deleted_at``; name uniqueness among live rows is
backed by partial unique indexes so a deleted name can be reused.

Attribution columns (``created_by``, ``updated_by``, ``deleted_by``,
``performed_by``) hold user ids without a foreign key: scheduled jobs act
as ``system``.
"""

from __future__ import annotations

from sqlalchemy import (
    REAL,
    Column,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
)

metadata = MetaData()

users = Table(
    "users",
    metadata,
    Column("id", Text, primary_key=True),
    Column("email", Text, nullable=False, unique=True),
    Column("password_hash", Text, nullable=False),
    Column("first_name", Text, nullable=False),
    Column("last_name", Text, nullable=False),
    Column("is_admin", Integer, default=0, server_default="0"),
    Column("is_active", Integer, default=1, server_default="1"),
    Column("last_login_at", Text),
    Column("created_at", Text, nullable=False),
    Column("updated_at", Text, nullable=False),
)

# ---------------------------------------------------------------------------
# CI types and assets
# ---------------------------------------------------------------------------

ci_types = Table(
    "ci_types",
    metadata,
    Column("id", Text, primary_key=True),
    Column("name", String(255), nullable=False),
    Column("description", Text),
    Column("attributes", Text, nullable=False, server_default="{}"),  # JSON
    Column("created_by", Text, nullable=False),
    Column("created_at", Text, nullable=False),
    Column("updated_at", Text, nullable=False),
    Column("deleted_at", Text),
)

ci_assets = Table(
    "ci_assets",
    metadata,
    Column("id", Text, primary_key=True),
    Column("ci_type_id", Text, ForeignKey("ci_types.id"), nullable=False),
    Column("name", String(255), nullable=False),
    Column("attributes", Text, nullable=False, server_default="{}"),  # JSON
    Column("created_by", Text, nullable=False),
    Column("updated_by", Text),
    Column("created_at", Text, nullable=False),
    Column("updated_at", Text, nullable=False),
    Column("deleted_at", Text),
    Column("deleted_by", Text),
)

# ---------------------------------------------------------------------------
# Relationship types and instances
# ---------------------------------------------------------------------------

relationship_types = Table(
    "relationship_types",
    metadata,
    Column("id", Text, primary_key=True),
    Column("name", String(255), nullable=False),
    Column("description", Text),
    Column("from_ci_type_id", Text, ForeignKey("ci_types.id")),
    Column("to_ci_type_id", Text, ForeignKey("ci_types.id")),
    Column("is_bidirectional", Integer, default=0, server_default="0"),
    Column("reverse_name", String(255)),
    Column("attributes_schema", Text, nullable=False, server_default="{}"),  # JSON
    Column("created_by", Text, nullable=False),
    Column("created_at", Text, nullable=False),
    Column("updated_at", Text, nullable=False),
    Column("deleted_at", Text),
)

relationships = Table(
    "relationships",
    metadata,
    Column("id", Text, primary_key=True),
    Column("relationship_type_id", Text, ForeignKey("relationship_types.id"), nullable=False),
    Column("from_ci_asset_id", Text, ForeignKey("ci_assets.id"), nullable=False),
    Column("to_ci_asset_id", Text, ForeignKey("ci_assets.id"), nullable=False),
    Column("attributes", Text, nullable=False, server_default="{}"),  # JSON
    Column("created_by", Text, nullable=False),
    Column("created_at", Text, nullable=False),
    Column("updated_at", Text, nullable=False),
    Column("deleted_at", Text),
    Column("deleted_by", Text),
)

# ---------------------------------------------------------------------------
# Lifecycle definitions
# ---------------------------------------------------------------------------

lifecycle_types = Table(
    "lifecycle_types",
    metadata,
    Column("id", Text, primary_key=True),
    Column("name", String(255), nullable=False),
    Column("description", Text),
    Column("default_color", String(7), nullable=False, server_default="#6B7280"),
    Column("is_active", Integer, default=1, server_default="1"),
    Column("created_by", Text, nullable=False),
    Column("created_at", Text, nullable=False),
    Column("updated_at", Text, nullable=False),
    Column("deleted_at", Text),
)

lifecycle_states = Table(
    "lifecycle_states",
    metadata,
    Column("id", Text, primary_key=True),
    Column("lifecycle_type_id", Text, ForeignKey("lifecycle_types.id"), nullable=False),
    Column("name", String(255), nullable=False),
    Column("description", Text),
    Column("color", String(7), nullable=False, server_default="#6B7280"),
    Column("order_index", Integer, nullable=False),
    Column("is_initial_state", Integer, default=0, server_default="0"),
    Column("is_terminal_state", Integer, default=0, server_default="0"),
    Column("created_by", Text, nullable=False),
    Column("created_at", Text, nullable=False),
    Column("updated_at", Text, nullable=False),
    UniqueConstraint("lifecycle_type_id", "name"),
    UniqueConstraint("lifecycle_type_id", "order_index"),
)

lifecycle_transitions = Table(
    "lifecycle_transitions",
    metadata,
    Column("id", Text, primary_key=True),
    Column("lifecycle_type_id", Text, ForeignKey("lifecycle_types.id"), nullable=False),
    Column("from_state_id", Text, ForeignKey("lifecycle_states.id")),  # NULL = from creation
    Column("to_state_id", Text, ForeignKey("lifecycle_states.id"), nullable=False),
    Column("transition_name", String(255), nullable=False),
    Column("description", Text),
    Column("requires_approval", Integer, default=0, server_default="0"),
    Column("created_by", Text, nullable=False),
    Column("created_at", Text, nullable=False),
    Column("updated_at", Text, nullable=False),
)

ci_type_lifecycles = Table(
    "ci_type_lifecycles",
    metadata,
    Column("id", Text, primary_key=True),
    Column("ci_type_id", Text, ForeignKey("ci_types.id"), nullable=False),
    Column("lifecycle_type_id", Text, ForeignKey("lifecycle_types.id"), nullable=False),
    Column("is_default", Integer, default=0, server_default="0"),
    Column("created_by", Text, nullable=False),
    Column("created_at", Text, nullable=False),
    UniqueConstraint("ci_type_id", "lifecycle_type_id"),
)

# ---------------------------------------------------------------------------
# Audit, valuation, plugin events
# ---------------------------------------------------------------------------

audit_log = Table(
    "audit_log",
    metadata,
    Column("id", Text, primary_key=True),
    Column("entity_type", String(100), nullable=False),
    Column("entity_id", Text, nullable=False),
    Column("action", String(50), nullable=False),
    Column("old_values", Text),  # JSON
    Column("new_values", Text),  # JSON
    Column("performed_by", Text, nullable=False),
    Column("ip_address", Text),
    Column("user_agent", Text),
    Column("created_at", Text, nullable=False),
)

valuation_records = Table(
    "valuation_records",
    metadata,
    Column("id", Text, primary_key=True),
    Column("ci_asset_id", Text, ForeignKey("ci_assets.id"), nullable=False),
    Column("initial_value", REAL, nullable=False),
    Column("current_value", REAL, nullable=False),
    Column("useful_life_years", Integer, nullable=False),
    Column("depreciation_method", Text, nullable=False),
    Column("purchase_date", Text, nullable=False),  # YYYY-MM-DD
    Column("created_by", Text, nullable=False),
    Column("created_at", Text, nullable=False),
    Column("updated_at", Text, nullable=False),
)

amortization_entries = Table(
    "amortization_entries",
    metadata,
    Column("id", Text, primary_key=True),
    Column("valuation_id", Text, ForeignKey("valuation_records.id"), nullable=False),
    Column("year", Integer, nullable=False),
    Column("opening_value", REAL, nullable=False),
    Column("depreciation_amount", REAL, nullable=False),
    Column("closing_value", REAL, nullable=False),
    Column("created_by", Text, nullable=False),
    Column("created_at", Text, nullable=False),
    UniqueConstraint("valuation_id", "year"),
)

event_wal = Table(
    "event_wal",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("hook_name", Text, nullable=False),
    Column("payload", Text, nullable=False),  # JSON
    Column("status", Text, nullable=False),
    Column("error", Text),
    Column("retries", Integer, default=0, server_default="0"),
    Column("created", Text, nullable=False),
    Column("completed", Text),
)

# ---------------------------------------------------------------------------
# Live-row uniqueness backstops (partial indexes, SQLite >= 3.8)
# ---------------------------------------------------------------------------

Index(
    "uq_ci_types_live_name",
    ci_types.c.name,
    unique=True,
    sqlite_where=ci_types.c.deleted_at.is_(None),
)
Index(
    "uq_relationship_types_live_name",
    relationship_types.c.name,
    unique=True,
    sqlite_where=relationship_types.c.deleted_at.is_(None),
)
Index(
    "uq_relationships_live_triple",
    relationships.c.relationship_type_id,
    relationships.c.from_ci_asset_id,
    relationships.c.to_ci_asset_id,
    unique=True,
    sqlite_where=relationships.c.deleted_at.is_(None),
)
Index(
    "uq_lifecycle_types_live_name",
    lifecycle_types.c.name,
    unique=True,
    sqlite_where=lifecycle_types.c.deleted_at.is_(None),
)

# ---------------------------------------------------------------------------
# Indexes for frequently filtered columns
# ---------------------------------------------------------------------------

Index("ix_ci_assets_type", ci_assets.c.ci_type_id)
Index("ix_ci_assets_created_at", ci_assets.c.created_at)
Index("ix_relationships_from", relationships.c.from_ci_asset_id)
Index("ix_relationships_to", relationships.c.to_ci_asset_id)
Index("ix_lifecycle_states_type", lifecycle_states.c.lifecycle_type_id)
Index("ix_lifecycle_transitions_type", lifecycle_transitions.c.lifecycle_type_id)
Index("ix_audit_log_entity", audit_log.c.entity_type, audit_log.c.entity_id)
Index("ix_audit_log_created_at", audit_log.c.created_at)
Index("ix_valuation_records_asset", valuation_records.c.ci_asset_id)
