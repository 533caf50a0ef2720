"""Tests for the jobs, upgrade, stats, lifecycle, audit, and valuation commands."""

from __future__ import annotations

from typing import Any

import pytest
from click.testing import CliRunner

from cmdbctl.infrastructure.store import Store
from tests.conftest import ACTOR, create_asset, create_ci_type, invoke_json


@pytest.fixture
def asset(store: Store) -> dict[str, Any]:
    server = create_ci_type(store, "server")
    return create_asset(store, server["id"], "web-01")


@pytest.mark.usefixtures("_isolated_root")
class TestJobsCommands:
    def test_list(self, cli_runner: CliRunner) -> None:
        code, payload = invoke_json(cli_runner, "jobs", "list")
        assert code == 0
        assert payload["op"] == "list_jobs"
        names = [item["name"] for item in payload["data"]["items"]]
        assert names == ["amortization", "cleanup", "graph_reconcile"]
        assert all(len(item["at"]) == 5 for item in payload["data"]["items"])

    def test_run_cleanup(self, cli_runner: CliRunner) -> None:
        code, payload = invoke_json(cli_runner, "jobs", "run", "cleanup")
        assert code == 0
        assert payload["op"] == "run_job"
        assert payload["data"]["job"] == "cleanup"
        assert payload["data"]["audit_pruned"] == 0

    def test_run_unknown(self, cli_runner: CliRunner) -> None:
        code, payload = invoke_json(cli_runner, "jobs", "run", "nope")
        assert code == 1
        assert payload["error"]["code"] == "NOT_FOUND"
        assert payload["error"]["message"] == "Unknown job: nope"

    def test_serve_once(self, cli_runner: CliRunner) -> None:
        code, payload = invoke_json(cli_runner, "jobs", "serve", "--once")
        assert code == 0
        assert payload["op"] == "serve_jobs"
        ran = payload["data"]["ran"]
        assert payload["data"]["count"] == len(ran)
        assert set(ran) <= {"amortization", "cleanup", "graph_reconcile"}


@pytest.mark.usefixtures("_isolated_root")
class TestUpgradeCommand:
    def test_check_then_apply(self, cli_runner: CliRunner) -> None:
        code, payload = invoke_json(cli_runner, "upgrade", "--check")
        assert code == 0
        assert payload["data"]["pending_count"] == 1

        code, payload = invoke_json(cli_runner, "upgrade")
        assert code == 0
        assert payload["data"]["current"] == "001_baseline"

        code, payload = invoke_json(cli_runner, "upgrade", "--check")
        assert payload["data"]["pending_count"] == 0


@pytest.mark.usefixtures("_isolated_root")
class TestStatsCommand:
    def test_counts(self, cli_runner: CliRunner, asset: dict[str, Any]) -> None:
        code, payload = invoke_json(cli_runner, "stats")
        assert code == 0
        assert payload["op"] == "dashboard_stats"
        assert payload["data"]["ci_types"] == 1
        assert payload["data"]["ci_assets"] == 1
        assert payload["data"]["relationships"] == 0


@pytest.mark.usefixtures("_isolated_root")
class TestLifecycleCommands:
    def test_define_and_map(
        self, cli_runner: CliRunner, admin_token: str, asset: dict[str, Any]
    ) -> None:
        code, payload = invoke_json(
            cli_runner, "lifecycle", "type-create", "hardware", token=admin_token
        )
        assert code == 0, payload
        lifecycle_id = payload["data"]["id"]

        code, payload = invoke_json(
            cli_runner, "lifecycle", "state-create", lifecycle_id, "ordered", "1", "--initial",
            token=admin_token,
        )  # fmt: skip
        assert code == 0, payload
        assert payload["data"]["is_initial_state"] is True

        code, payload = invoke_json(
            cli_runner, "lifecycle", "map", asset["ci_type_id"], lifecycle_id, "--default",
            token=admin_token,
        )  # fmt: skip
        assert code == 0, payload

        code, payload = invoke_json(cli_runner, "lifecycle", "for-type", asset["ci_type_id"])
        assert code == 0
        assert [item["id"] for item in payload["data"]["items"]] == [lifecycle_id]

    def test_type_create_requires_admin(self, cli_runner: CliRunner) -> None:
        code, _ = invoke_json(cli_runner, "lifecycle", "type-create", "hardware")
        assert code == 1


@pytest.mark.usefixtures("_isolated_root")
class TestAuditCommands:
    def test_query_and_history(self, cli_runner: CliRunner, asset: dict[str, Any]) -> None:
        code, payload = invoke_json(
            cli_runner, "audit", "query", "--entity-type", "ci_asset", "--by", ACTOR
        )
        assert code == 0
        assert [e["entity_id"] for e in payload["data"]["items"]] == [asset["id"]]

        code, payload = invoke_json(cli_runner, "audit", "history", "ci_asset", asset["id"])
        assert code == 0
        assert payload["op"] == "audit_history"
        assert payload["data"]["items"][0]["action"] == "create"


@pytest.mark.usefixtures("_isolated_root")
class TestValuationCommands:
    def test_create_schedule_recalculate(
        self, cli_runner: CliRunner, admin_token: str, asset: dict[str, Any]
    ) -> None:
        code, payload = invoke_json(
            cli_runner, "valuation", "create", asset["id"], "10000", "5",
            "--purchased", "2020-01-01",
            token=admin_token,
        )  # fmt: skip
        assert code == 0, payload
        valuation_id = payload["data"]["id"]
        assert payload["data"]["schedule_years"] == 5

        code, payload = invoke_json(cli_runner, "valuation", "schedule", valuation_id)
        assert code == 0
        assert payload["data"]["items"][0]["depreciation_amount"] == 2000.0

        code, payload = invoke_json(
            cli_runner, "valuation", "recalculate", "--as-of", "2021-06-01", token=admin_token
        )
        assert code == 0
        assert payload["data"]["as_of"] == "2021-06-01"

        code, payload = invoke_json(cli_runner, "valuation", "get", asset["id"])
        assert payload["data"]["current_value"] == 8000.0

    def test_recalculate_requires_token(self, cli_runner: CliRunner) -> None:
        code, _ = invoke_json(cli_runner, "valuation", "recalculate")
        assert code == 1
