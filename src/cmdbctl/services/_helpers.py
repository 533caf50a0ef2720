"""Shared service-layer helper functions."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta

# Attribution for writes made by scheduled jobs rather than a user.
SYSTEM_ACTOR = "system"


def now_iso() -> str:
    """Current UTC time as ISO 8601 with microseconds (orders lexically)."""
    return datetime.now(UTC).isoformat(timespec="microseconds")


def days_ago_iso(days: int) -> str:
    """UTC timestamp *days* before now, in the same format as :func:`now_iso`."""
    return (datetime.now(UTC) - timedelta(days=days)).isoformat(timespec="microseconds")


def now_compact() -> str:
    """Current UTC time as compact ISO (YYYYMMDDTHHmmss, for backup filenames)."""
    return datetime.now(UTC).strftime("%Y%m%dT%H%M%S")


def new_id() -> str:
    """Fresh UUID4 identifier for any row."""
    return str(uuid.uuid4())
