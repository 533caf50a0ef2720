"""Baseline schema — CI catalog, relationships, lifecycles, audit, valuation.

Revision ID: 001_baseline
Revises: None
Create Date: 2026-10-18

Databases created by ``cmdbctl init`` are stamped at this revision
without running it; empty databases get it applied during
``cmdbctl upgrade``.
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision: str = "001_baseline"
down_revision: str | None = None
branch_labels: tuple[str, ...] | None = None
depends_on: tuple[str, ...] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.Text, nullable=False),
        sa.Column("updated_at", sa.Text, nullable=False),
    ]


def upgrade() -> None:
    # users
    op.create_table(
        "users",
        sa.Column("id", sa.Text, primary_key=True),
        sa.Column("email", sa.Text, nullable=False, unique=True),
        sa.Column("password_hash", sa.Text, nullable=False),
        sa.Column("first_name", sa.Text, nullable=False),
        sa.Column("last_name", sa.Text, nullable=False),
        sa.Column("is_admin", sa.Integer, server_default="0"),
        sa.Column("is_active", sa.Integer, server_default="1"),
        sa.Column("last_login_at", sa.Text),
        *_timestamps(),
    )

    # ci_types / ci_assets
    op.create_table(
        "ci_types",
        sa.Column("id", sa.Text, primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text),
        sa.Column("attributes", sa.Text, nullable=False, server_default="{}"),
        sa.Column("created_by", sa.Text, nullable=False),
        *_timestamps(),
        sa.Column("deleted_at", sa.Text),
    )
    op.create_index(
        "uq_ci_types_live_name",
        "ci_types",
        ["name"],
        unique=True,
        sqlite_where=sa.text("deleted_at IS NULL"),
    )

    op.create_table(
        "ci_assets",
        sa.Column("id", sa.Text, primary_key=True),
        sa.Column("ci_type_id", sa.Text, sa.ForeignKey("ci_types.id"), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("attributes", sa.Text, nullable=False, server_default="{}"),
        sa.Column("created_by", sa.Text, nullable=False),
        sa.Column("updated_by", sa.Text),
        *_timestamps(),
        sa.Column("deleted_at", sa.Text),
        sa.Column("deleted_by", sa.Text),
    )
    op.create_index("ix_ci_assets_type", "ci_assets", ["ci_type_id"])
    op.create_index("ix_ci_assets_created_at", "ci_assets", ["created_at"])

    # relationship_types / relationships
    op.create_table(
        "relationship_types",
        sa.Column("id", sa.Text, primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text),
        sa.Column("from_ci_type_id", sa.Text, sa.ForeignKey("ci_types.id")),
        sa.Column("to_ci_type_id", sa.Text, sa.ForeignKey("ci_types.id")),
        sa.Column("is_bidirectional", sa.Integer, server_default="0"),
        sa.Column("reverse_name", sa.String(255)),
        sa.Column("attributes_schema", sa.Text, nullable=False, server_default="{}"),
        sa.Column("created_by", sa.Text, nullable=False),
        *_timestamps(),
        sa.Column("deleted_at", sa.Text),
    )
    op.create_index(
        "uq_relationship_types_live_name",
        "relationship_types",
        ["name"],
        unique=True,
        sqlite_where=sa.text("deleted_at IS NULL"),
    )

    op.create_table(
        "relationships",
        sa.Column("id", sa.Text, primary_key=True),
        sa.Column(
            "relationship_type_id",
            sa.Text,
            sa.ForeignKey("relationship_types.id"),
            nullable=False,
        ),
        sa.Column("from_ci_asset_id", sa.Text, sa.ForeignKey("ci_assets.id"), nullable=False),
        sa.Column("to_ci_asset_id", sa.Text, sa.ForeignKey("ci_assets.id"), nullable=False),
        sa.Column("attributes", sa.Text, nullable=False, server_default="{}"),
        sa.Column("created_by", sa.Text, nullable=False),
        *_timestamps(),
        sa.Column("deleted_at", sa.Text),
        sa.Column("deleted_by", sa.Text),
    )
    op.create_index(
        "uq_relationships_live_triple",
        "relationships",
        ["relationship_type_id", "from_ci_asset_id", "to_ci_asset_id"],
        unique=True,
        sqlite_where=sa.text("deleted_at IS NULL"),
    )
    op.create_index("ix_relationships_from", "relationships", ["from_ci_asset_id"])
    op.create_index("ix_relationships_to", "relationships", ["to_ci_asset_id"])

    # lifecycle definitions
    op.create_table(
        "lifecycle_types",
        sa.Column("id", sa.Text, primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text),
        sa.Column("default_color", sa.String(7), nullable=False, server_default="#6B7280"),
        sa.Column("is_active", sa.Integer, server_default="1"),
        sa.Column("created_by", sa.Text, nullable=False),
        *_timestamps(),
        sa.Column("deleted_at", sa.Text),
    )
    op.create_index(
        "uq_lifecycle_types_live_name",
        "lifecycle_types",
        ["name"],
        unique=True,
        sqlite_where=sa.text("deleted_at IS NULL"),
    )

    op.create_table(
        "lifecycle_states",
        sa.Column("id", sa.Text, primary_key=True),
        sa.Column(
            "lifecycle_type_id", sa.Text, sa.ForeignKey("lifecycle_types.id"), nullable=False
        ),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text),
        sa.Column("color", sa.String(7), nullable=False, server_default="#6B7280"),
        sa.Column("order_index", sa.Integer, nullable=False),
        sa.Column("is_initial_state", sa.Integer, server_default="0"),
        sa.Column("is_terminal_state", sa.Integer, server_default="0"),
        sa.Column("created_by", sa.Text, nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("lifecycle_type_id", "name"),
        sa.UniqueConstraint("lifecycle_type_id", "order_index"),
    )
    op.create_index("ix_lifecycle_states_type", "lifecycle_states", ["lifecycle_type_id"])

    op.create_table(
        "lifecycle_transitions",
        sa.Column("id", sa.Text, primary_key=True),
        sa.Column(
            "lifecycle_type_id", sa.Text, sa.ForeignKey("lifecycle_types.id"), nullable=False
        ),
        sa.Column("from_state_id", sa.Text, sa.ForeignKey("lifecycle_states.id")),
        sa.Column(
            "to_state_id", sa.Text, sa.ForeignKey("lifecycle_states.id"), nullable=False
        ),
        sa.Column("transition_name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text),
        sa.Column("requires_approval", sa.Integer, server_default="0"),
        sa.Column("created_by", sa.Text, nullable=False),
        *_timestamps(),
    )
    op.create_index(
        "ix_lifecycle_transitions_type", "lifecycle_transitions", ["lifecycle_type_id"]
    )

    op.create_table(
        "ci_type_lifecycles",
        sa.Column("id", sa.Text, primary_key=True),
        sa.Column("ci_type_id", sa.Text, sa.ForeignKey("ci_types.id"), nullable=False),
        sa.Column(
            "lifecycle_type_id", sa.Text, sa.ForeignKey("lifecycle_types.id"), nullable=False
        ),
        sa.Column("is_default", sa.Integer, server_default="0"),
        sa.Column("created_by", sa.Text, nullable=False),
        sa.Column("created_at", sa.Text, nullable=False),
        sa.UniqueConstraint("ci_type_id", "lifecycle_type_id"),
    )

    # audit_log
    op.create_table(
        "audit_log",
        sa.Column("id", sa.Text, primary_key=True),
        sa.Column("entity_type", sa.String(100), nullable=False),
        sa.Column("entity_id", sa.Text, nullable=False),
        sa.Column("action", sa.String(50), nullable=False),
        sa.Column("old_values", sa.Text),
        sa.Column("new_values", sa.Text),
        sa.Column("performed_by", sa.Text, nullable=False),
        sa.Column("ip_address", sa.Text),
        sa.Column("user_agent", sa.Text),
        sa.Column("created_at", sa.Text, nullable=False),
    )
    op.create_index("ix_audit_log_entity", "audit_log", ["entity_type", "entity_id"])
    op.create_index("ix_audit_log_created_at", "audit_log", ["created_at"])

    # valuation_records / amortization_entries
    op.create_table(
        "valuation_records",
        sa.Column("id", sa.Text, primary_key=True),
        sa.Column("ci_asset_id", sa.Text, sa.ForeignKey("ci_assets.id"), nullable=False),
        sa.Column("initial_value", sa.REAL, nullable=False),
        sa.Column("current_value", sa.REAL, nullable=False),
        sa.Column("useful_life_years", sa.Integer, nullable=False),
        sa.Column("depreciation_method", sa.Text, nullable=False),
        sa.Column("purchase_date", sa.Text, nullable=False),
        sa.Column("created_by", sa.Text, nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_valuation_records_asset", "valuation_records", ["ci_asset_id"])

    op.create_table(
        "amortization_entries",
        sa.Column("id", sa.Text, primary_key=True),
        sa.Column(
            "valuation_id", sa.Text, sa.ForeignKey("valuation_records.id"), nullable=False
        ),
        sa.Column("year", sa.Integer, nullable=False),
        sa.Column("opening_value", sa.REAL, nullable=False),
        sa.Column("depreciation_amount", sa.REAL, nullable=False),
        sa.Column("closing_value", sa.REAL, nullable=False),
        sa.Column("created_by", sa.Text, nullable=False),
        sa.Column("created_at", sa.Text, nullable=False),
        sa.UniqueConstraint("valuation_id", "year"),
    )

    # event_wal
    op.create_table(
        "event_wal",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("hook_name", sa.Text, nullable=False),
        sa.Column("payload", sa.Text, nullable=False),
        sa.Column("status", sa.Text, nullable=False),
        sa.Column("error", sa.Text),
        sa.Column("retries", sa.Integer, server_default="0"),
        sa.Column("created", sa.Text, nullable=False),
        sa.Column("completed", sa.Text),
    )


def downgrade() -> None:
    for table in (
        "event_wal",
        "amortization_entries",
        "valuation_records",
        "audit_log",
        "ci_type_lifecycles",
        "lifecycle_transitions",
        "lifecycle_states",
        "lifecycle_types",
        "relationships",
        "relationship_types",
        "ci_assets",
        "ci_types",
        "users",
    ):
        op.drop_table(table)
