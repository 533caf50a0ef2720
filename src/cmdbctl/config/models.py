"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, cmdbctl.toml only contains
overrides. A fresh deployment needs only ``[auth] jwt_secret``.
"""

from __future__ import annotations

import re

from pydantic import BaseModel, field_validator

_CLOCK_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


class DatabaseConfig(BaseModel):
    """[database] section."""

    model_config = {"frozen": True}

    filename: str = "cmdbctl.db"


class GraphConfig(BaseModel):
    """[graph] section."""

    model_config = {"frozen": True}

    enabled: bool = True
    filename: str = "graph.json"
    node_limit: int = 500
    search_limit: int = 20


class AuthConfig(BaseModel):
    """[auth] section."""

    model_config = {"frozen": True}

    jwt_secret: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    jwt_expiration_hours: int = 24
    password_min_length: int = 8
    bcrypt_rounds: int = 12


class PaginationConfig(BaseModel):
    """[pagination] section."""

    model_config = {"frozen": True}

    default_limit: int = 50
    max_limit: int = 100
    relationship_default_limit: int = 100


class JobsConfig(BaseModel):
    """[jobs] section: daily UTC run times and retention windows."""

    model_config = {"frozen": True}

    amortization_at: str = "02:00"
    cleanup_at: str = "03:00"
    graph_reconcile_at: str = "04:00"
    poll_seconds: int = 30
    audit_retention_days: int = 365
    event_retention_days: int = 30

    @field_validator("amortization_at", "cleanup_at", "graph_reconcile_at")
    @classmethod
    def _check_clock(cls, value: str) -> str:
        if not _CLOCK_RE.match(value):
            msg = f"expected HH:MM (24h), got {value!r}"
            raise ValueError(msg)
        return value


class PluginsConfig(BaseModel):
    """[plugins] section."""

    model_config = {"frozen": True}

    enabled: bool = True
