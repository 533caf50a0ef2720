"""Parametrized help tests for all CLI commands."""

from __future__ import annotations

import pytest
from click.testing import CliRunner

from cmdbctl.cli import cli

# (CLI args, expected keywords in output)
HELP_COMMANDS: list[tuple[list[str], list[str]]] = [
    ([], ["auth", "type", "asset", "reltype", "rel", "lifecycle", "graph", "jobs"]),
    (["auth", "--help"], ["register", "login", "me"]),
    (["auth", "register", "--help"], ["EMAIL", "--first-name", "--admin"]),
    (["type", "--help"], ["create", "update", "delete", "list", "count"]),
    (["type", "create", "--help"], ["NAME", "--attributes"]),
    (["asset", "--help"], ["create", "update", "delete", "get", "list", "search"]),
    (["asset", "list", "--help"], ["--created-by", "--limit", "--offset"]),
    (["reltype", "create", "--help"], ["--bidirectional", "--reverse-name"]),
    (["rel", "--help"], ["create", "delete", "get", "list"]),
    (["lifecycle", "--help"], ["type-create", "state-create", "transition-create", "map"]),
    (["graph", "--help"], ["neighbors", "show", "search", "edge", "path", "reconcile"]),
    (["graph", "neighbors", "--help"], ["ASSET_ID", "--depth"]),
    (["audit", "--help"], ["query", "history"]),
    (["valuation", "--help"], ["create", "get", "list", "schedule", "recalculate"]),
    (["jobs", "--help"], ["list", "run", "serve"]),
    (["init", "--help"], ["PATH", "--no-config"]),
    (["upgrade", "--help"], ["--check"]),
    (["stats", "--help"], []),
]


@pytest.mark.parametrize(
    ("args", "keywords"),
    HELP_COMMANDS,
    ids=[" ".join(a) or "root" for a, _ in HELP_COMMANDS],
)
def test_help(cli_runner: CliRunner, args: list[str], keywords: list[str]) -> None:
    result = cli_runner.invoke(cli, args)
    assert result.exit_code == 0
    for keyword in keywords:
        assert keyword in result.output


@pytest.mark.parametrize("group", ["auth", "type", "lifecycle", "jobs"])
def test_examples_flag(cli_runner: CliRunner, group: str) -> None:
    result = cli_runner.invoke(cli, [group, "--examples"])
    assert result.exit_code == 0
    assert "Examples for" in result.output
    assert f"cmdbctl {group}" in result.output


def test_version(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert "cmdbctl" in result.output
