"""Tests for limit/offset validation."""

from __future__ import annotations

from cmdbctl.domain.pagination import page_error


class TestPageError:
    def test_valid_page(self) -> None:
        assert page_error(50, 0) is None
        assert page_error(1, 10) is None
        assert page_error(100, 0) is None

    def test_limit_too_small(self) -> None:
        assert page_error(0, 0) == "Limit must be between 1 and 100"

    def test_limit_too_large(self) -> None:
        assert page_error(101, 0) == "Limit must be between 1 and 100"

    def test_custom_max(self) -> None:
        assert page_error(30, 0, max_limit=25) == "Limit must be between 1 and 25"

    def test_negative_offset(self) -> None:
        assert page_error(10, -1) == "Offset must be non-negative"
