"""Tests for lifecycle definition rules."""

from __future__ import annotations

from typing import Any

from cmdbctl.domain.lifecycle import (
    DUPLICATE_INITIAL_STATE,
    DUPLICATE_ORDER_INDEX,
    DUPLICATE_STATE_NAME,
    state_conflict,
    turns_initial_on,
)


def _state(state_id: str, name: str, order: int, *, initial: bool = False) -> dict[str, Any]:
    return {"id": state_id, "name": name, "order_index": order, "is_initial_state": initial}


STATES = [
    _state("s1", "Planned", 0, initial=True),
    _state("s2", "Active", 1),
    _state("s3", "Retired", 2),
]


class TestStateConflict:
    def test_no_conflict(self) -> None:
        assert state_conflict(STATES, name="Disposed", order_index=3) is None

    def test_empty_type(self) -> None:
        assert state_conflict([], name="Planned", order_index=0, is_initial_state=True) is None

    def test_duplicate_name(self) -> None:
        assert state_conflict(STATES, name="Active", order_index=9) == DUPLICATE_STATE_NAME

    def test_duplicate_order_index(self) -> None:
        assert state_conflict(STATES, name="Disposed", order_index=1) == DUPLICATE_ORDER_INDEX

    def test_second_initial_state(self) -> None:
        problem = state_conflict(STATES, name="Draft", order_index=5, is_initial_state=True)
        assert problem == DUPLICATE_INITIAL_STATE

    def test_name_checked_before_order(self) -> None:
        assert state_conflict(STATES, name="Active", order_index=0) == DUPLICATE_STATE_NAME

    def test_exclude_self_on_update(self) -> None:
        assert state_conflict(STATES, name="Active", order_index=1, exclude_id="s2") is None

    def test_none_skips_checks(self) -> None:
        assert state_conflict(STATES, name=None, order_index=None) is None


class TestTurnsInitialOn:
    def test_turning_on(self) -> None:
        assert turns_initial_on(STATES[1], True) is True

    def test_already_initial(self) -> None:
        assert turns_initial_on(STATES[0], True) is False

    def test_not_requested(self) -> None:
        assert turns_initial_on(STATES[1], None) is False
        assert turns_initial_on(STATES[1], False) is False
