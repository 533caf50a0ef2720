"""Shallow JSON diff between two snapshots of a record."""

from __future__ import annotations

from typing import Any


def json_diff(old: dict[str, Any] | None, new: dict[str, Any] | None) -> dict[str, Any]:
    """Compare two top-level mappings.

    Returns ``{"added": {...}, "removed": {...}, "modified": {key: {"old", "new"}}}``.
    A missing snapshot is treated as empty.
    """
    before = old or {}
    after = new or {}

    added = {k: v for k, v in after.items() if k not in before}
    removed = {k: v for k, v in before.items() if k not in after}
    modified = {
        k: {"old": before[k], "new": after[k]}
        for k in before.keys() & after.keys()
        if before[k] != after[k]
    }
    return {
        "added": added,
        "removed": removed,
        "modified": dict(sorted(modified.items())),
    }
