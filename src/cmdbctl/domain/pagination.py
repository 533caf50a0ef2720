"""Limit/offset validation shared by every paged listing."""

from __future__ import annotations


def page_error(limit: int, offset: int, *, max_limit: int = 100) -> str | None:
    """Return the validation message for a bad page, or None if it is valid."""
    if limit < 1 or limit > max_limit:
        return f"Limit must be between 1 and {max_limit}"
    if offset < 0:
        return "Offset must be non-negative"
    return None
