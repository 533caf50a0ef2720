"""Tests for structlog configuration and log context binding."""

from __future__ import annotations

import json
import logging
from collections.abc import Generator

import pytest
import structlog

from cmdbctl.config.logging import QUIET_LOGGERS, bind_log_context, configure_logging


@pytest.fixture(autouse=True)
def _restore_logging() -> Generator[None]:
    """Restore root logger state and drop bound context after each test."""
    root = logging.getLogger()
    original_handlers = root.handlers[:]
    original_level = root.level
    cmdb = logging.getLogger("cmdbctl")
    cmdb_level = cmdb.level
    yield
    root.handlers = original_handlers
    root.setLevel(original_level)
    cmdb.setLevel(cmdb_level)
    structlog.contextvars.clear_contextvars()


def _last_json_line(capfd: pytest.CaptureFixture[str]) -> dict[str, object]:
    lines = [line for line in capfd.readouterr().err.splitlines() if line.strip()]
    return json.loads(lines[-1])


class TestConfigureLogging:
    @pytest.mark.parametrize(
        ("verbose", "level"), [(True, logging.DEBUG), (False, logging.WARNING)]
    )
    def test_cmdbctl_level(self, verbose: bool, level: int) -> None:
        configure_logging(verbose=verbose)
        assert logging.getLogger("cmdbctl").level == level
        assert logging.getLogger().level == logging.WARNING

    @pytest.mark.parametrize("name", QUIET_LOGGERS)
    def test_library_loggers_stay_quiet(self, name: str) -> None:
        configure_logging(verbose=True)
        assert logging.getLogger(name).level == logging.WARNING

    def test_reconfigure_keeps_one_handler(self) -> None:
        configure_logging()
        configure_logging(log_json=True)
        assert len(logging.getLogger().handlers) == 1

    def test_json_lines(self, capfd: pytest.CaptureFixture[str]) -> None:
        configure_logging(verbose=True, log_json=True)
        structlog.get_logger("cmdbctl.services.ci").warning("asset.created", name="web-01")
        parsed = _last_json_line(capfd)
        assert parsed["event"] == "asset.created"
        assert parsed["name"] == "web-01"
        assert parsed["level"] == "warning"
        assert parsed["logger"] == "cmdbctl.services.ci"

    def test_stdlib_records_share_renderer(self, capfd: pytest.CaptureFixture[str]) -> None:
        configure_logging(log_json=True)
        logging.getLogger("cmdbctl.services.relationship").warning("mirror %s", "lagging")
        assert _last_json_line(capfd)["event"] == "mirror lagging"


class TestBindLogContext:
    def test_bound_values_reach_records(self, capfd: pytest.CaptureFixture[str]) -> None:
        configure_logging(log_json=True)
        bind_log_context(command="asset", actor="u-1")
        logging.getLogger("cmdbctl.services.ci").warning("schema rejected")
        parsed = _last_json_line(capfd)
        assert parsed["command"] == "asset"
        assert parsed["actor"] == "u-1"

    def test_none_values_skipped(self, capfd: pytest.CaptureFixture[str]) -> None:
        configure_logging(log_json=True)
        bind_log_context(command="stats", actor=None)
        logging.getLogger("cmdbctl").warning("counted")
        parsed = _last_json_line(capfd)
        assert parsed["command"] == "stats"
        assert "actor" not in parsed

    def test_configure_clears_previous_context(
        self, capfd: pytest.CaptureFixture[str]
    ) -> None:
        bind_log_context(actor="stale")
        configure_logging(log_json=True)
        logging.getLogger("cmdbctl").warning("fresh")
        assert "actor" not in _last_json_line(capfd)
