"""Tests for the shallow JSON diff used by audit history."""

from __future__ import annotations

from cmdbctl.domain.json_diff import json_diff


class TestJsonDiff:
    def test_identical(self) -> None:
        assert json_diff({"a": 1}, {"a": 1}) == {"added": {}, "removed": {}, "modified": {}}

    def test_added_removed_modified(self) -> None:
        diff = json_diff({"a": 1, "b": 2}, {"b": 3, "c": 4})
        assert diff["added"] == {"c": 4}
        assert diff["removed"] == {"a": 1}
        assert diff["modified"] == {"b": {"old": 2, "new": 3}}

    def test_missing_old_snapshot(self) -> None:
        diff = json_diff(None, {"name": "web-01"})
        assert diff["added"] == {"name": "web-01"}
        assert diff["removed"] == {}

    def test_missing_new_snapshot(self) -> None:
        diff = json_diff({"name": "web-01"}, None)
        assert diff["removed"] == {"name": "web-01"}

    def test_nested_values_compared_whole(self) -> None:
        diff = json_diff({"attributes": {"ip": "10.0.0.1"}}, {"attributes": {"ip": "10.0.0.2"}})
        assert diff["modified"]["attributes"]["new"] == {"ip": "10.0.0.2"}

    def test_modified_keys_sorted(self) -> None:
        diff = json_diff({"z": 1, "a": 1}, {"z": 2, "a": 2})
        assert list(diff["modified"]) == ["a", "z"]
