"""Lifecycle definition rules.

A lifecycle type owns an ordered set of states and the transitions
between them. Within one type:
- state names are unique,
- order indexes are unique,
- at most one state is the initial state.

These checks are pure: callers pass the states already stored for the
type and get back the first broken rule's message, or None.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

DEFAULT_COLOR = "#6B7280"

DUPLICATE_STATE_NAME = "State with this name already exists in this lifecycle type"
DUPLICATE_ORDER_INDEX = "State with this order index already exists in this lifecycle type"
DUPLICATE_INITIAL_STATE = "An initial state already exists for this lifecycle type"

type StateRow = Mapping[str, Any]


def _others(states: Iterable[StateRow], exclude_id: str | None) -> list[StateRow]:
    return [s for s in states if exclude_id is None or s["id"] != exclude_id]


def state_conflict(
    states: Iterable[StateRow],
    *,
    name: str | None = None,
    order_index: int | None = None,
    is_initial_state: bool = False,
    exclude_id: str | None = None,
) -> str | None:
    """Check a new or changed state against the type's other states.

    ``None`` for *name* or *order_index* skips that check; *exclude_id*
    is the state being updated.
    """
    others = _others(states, exclude_id)
    if name is not None and any(s["name"] == name for s in others):
        return DUPLICATE_STATE_NAME
    if order_index is not None and any(s["order_index"] == order_index for s in others):
        return DUPLICATE_ORDER_INDEX
    if is_initial_state and any(s["is_initial_state"] for s in others):
        return DUPLICATE_INITIAL_STATE
    return None


def turns_initial_on(current: StateRow, requested: bool | None) -> bool:
    """Whether an update would make a non-initial state the initial one."""
    return bool(requested) and not current["is_initial_state"]
