"""Request models — the shape rules for every mutating operation.

Services build one of these from their keyword arguments before touching
the store; a :class:`pydantic.ValidationError` becomes a
``VALIDATION_FAILED`` result (see :func:`validation_message`).
"""

from __future__ import annotations

import re
from datetime import date
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator

from cmdbctl.domain.depreciation import DepreciationMethod
from cmdbctl.domain.lifecycle import DEFAULT_COLOR

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"


class _Request(BaseModel):
    model_config = {"frozen": True, "extra": "forbid"}


def validation_message(exc: ValidationError) -> str:
    """Flatten a pydantic error into ``field: message; field: message``."""
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err["loc"]) or "request"
        parts.append(f"{loc}: {err['msg']}")
    return "; ".join(parts)


# ---------------------------------------------------------------------------
# CI types and assets
# ---------------------------------------------------------------------------


class CITypeCreate(_Request):
    name: str = Field(min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=1000)
    attributes: dict[str, Any] = Field(default_factory=dict)


class CITypeUpdate(_Request):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=1000)
    attributes: dict[str, Any] | None = None


class CIAssetCreate(_Request):
    ci_type_id: str = Field(min_length=1)
    name: str = Field(min_length=1, max_length=255)
    attributes: dict[str, Any] = Field(default_factory=dict)


class CIAssetUpdate(_Request):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    attributes: dict[str, Any] | None = None


# ---------------------------------------------------------------------------
# Relationships
# ---------------------------------------------------------------------------


class RelationshipTypeCreate(_Request):
    name: str = Field(min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=1000)
    from_ci_type_id: str | None = None
    to_ci_type_id: str | None = None
    is_bidirectional: bool = False
    reverse_name: str | None = Field(default=None, max_length=255)
    attributes_schema: dict[str, Any] = Field(default_factory=dict)


class RelationshipTypeUpdate(_Request):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=1000)


class RelationshipCreate(_Request):
    relationship_type_id: str = Field(min_length=1)
    from_ci_asset_id: str = Field(min_length=1)
    to_ci_asset_id: str = Field(min_length=1)
    attributes: dict[str, Any] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Lifecycle definitions
# ---------------------------------------------------------------------------


class LifecycleTypeCreate(_Request):
    name: str = Field(min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=1000)
    default_color: str = Field(default=DEFAULT_COLOR, pattern=_COLOR_PATTERN)


class LifecycleTypeUpdate(_Request):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=1000)
    default_color: str | None = Field(default=None, pattern=_COLOR_PATTERN)
    is_active: bool | None = None


class LifecycleStateCreate(_Request):
    lifecycle_type_id: str = Field(min_length=1)
    name: str = Field(min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=1000)
    color: str = Field(default=DEFAULT_COLOR, pattern=_COLOR_PATTERN)
    order_index: int = Field(ge=0)
    is_initial_state: bool = False
    is_terminal_state: bool = False


class LifecycleStateUpdate(_Request):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=1000)
    color: str | None = Field(default=None, pattern=_COLOR_PATTERN)
    order_index: int | None = Field(default=None, ge=0)
    is_initial_state: bool | None = None
    is_terminal_state: bool | None = None


class LifecycleTransitionCreate(_Request):
    lifecycle_type_id: str = Field(min_length=1)
    to_state_id: str = Field(min_length=1)
    transition_name: str = Field(min_length=1, max_length=255)
    from_state_id: str | None = None
    description: str | None = Field(default=None, max_length=1000)
    requires_approval: bool = False


class CITypeLifecycleCreate(_Request):
    ci_type_id: str = Field(min_length=1)
    lifecycle_type_id: str = Field(min_length=1)
    is_default: bool = False


# ---------------------------------------------------------------------------
# Users, audit, valuation
# ---------------------------------------------------------------------------


class UserRegister(_Request):
    email: str
    password: str = Field(min_length=1)
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    is_admin: bool = False

    @field_validator("email")
    @classmethod
    def _check_email(cls, value: str) -> str:
        if not _EMAIL_RE.match(value):
            msg = "invalid email address"
            raise ValueError(msg)
        return value.lower()


class AuditRecordCreate(_Request):
    entity_type: str = Field(min_length=1, max_length=100)
    entity_id: str = Field(min_length=1)
    action: str = Field(min_length=1, max_length=50)
    old_values: dict[str, Any] | None = None
    new_values: dict[str, Any] | None = None
    performed_by: str = Field(min_length=1)
    ip_address: str | None = None
    user_agent: str | None = None


class ValuationCreate(_Request):
    ci_asset_id: str = Field(min_length=1)
    initial_value: float = Field(gt=0)
    useful_life_years: int = Field(ge=1, le=100)
    depreciation_method: DepreciationMethod = DepreciationMethod.STRAIGHT_LINE
    purchase_date: date | None = None
