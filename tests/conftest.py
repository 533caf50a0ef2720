"""Shared pytest fixtures and test helpers for cmdbctl tests."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner
from sqlalchemy.engine import Engine

from cmdbctl.config.settings import CmdbSettings
from cmdbctl.infrastructure.database.engine import init_database
from cmdbctl.infrastructure.store import Store

ACTOR = "user-tester"
PASSWORD = "S3cret!pass"

# Low bcrypt cost keeps registration fast; the secret is fixed so tokens
# minted in one CliRunner invocation verify in the next.
TEST_CONFIG = """\
[auth]
jwt_secret = "test-secret"
bcrypt_rounds = 4
"""


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def db_engine(tmp_path: Path) -> Engine:
    """Initialized SQLite engine with all tables created."""
    engine = init_database(tmp_path)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def data_root(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Temporary data root holding a test ``cmdbctl.toml``.

    This is the single source of truth for the deployment layout.
    All store-related fixtures (settings, store, _isolated_root) build on this.
    """
    monkeypatch.delenv("CMDBCTL_CONFIG", raising=False)
    monkeypatch.delenv("CMDBCTL_TOKEN", raising=False)
    (tmp_path / "cmdbctl.toml").write_text(TEST_CONFIG, encoding="utf-8")
    return tmp_path


@pytest.fixture
def settings(data_root: Path) -> CmdbSettings:
    return CmdbSettings.from_cli(data_root=data_root)


@pytest.fixture
def store(settings: CmdbSettings) -> Store:
    """Fully initialized store on a temp directory (no event bus)."""
    s = Store(settings)
    try:
        yield s
    finally:
        s.close()


@pytest.fixture
def _isolated_root(data_root: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Change CWD to the temp data root so the CLI finds the test config.

    Use via ``@pytest.mark.usefixtures("_isolated_root")`` on command test
    classes. Tests that need the path can also request ``tmp_path`` directly
    (pytest deduplicates, it's the same directory).
    """
    monkeypatch.chdir(data_root)


# ---------------------------------------------------------------------------
# Shared test helpers (used across service test modules)
# ---------------------------------------------------------------------------


def create_ci_type(store: Store, name: str, **kwargs: Any) -> dict[str, Any]:
    """Create a CI type via CIService, asserting success."""
    from cmdbctl.services.ci import CIService

    result = CIService(store).create_type(name, actor=ACTOR, **kwargs)
    assert result.ok, result.error
    return result.data


def create_asset(store: Store, ci_type_id: str, name: str, **kwargs: Any) -> dict[str, Any]:
    """Create a CI asset via CIService, asserting success."""
    from cmdbctl.services.ci import CIService

    result = CIService(store).create_asset(ci_type_id, name, actor=ACTOR, **kwargs)
    assert result.ok, result.error
    return result.data


def create_relationship_type(store: Store, name: str, **kwargs: Any) -> dict[str, Any]:
    """Create a relationship type via RelationshipService, asserting success."""
    from cmdbctl.services.relationship import RelationshipService

    result = RelationshipService(store).create_type(name, actor=ACTOR, **kwargs)
    assert result.ok, result.error
    return result.data


def link(store: Store, type_id: str, from_id: str, to_id: str, **kwargs: Any) -> dict[str, Any]:
    """Create a relationship via RelationshipService, asserting success."""
    from cmdbctl.services.relationship import RelationshipService

    result = RelationshipService(store).create(type_id, from_id, to_id, actor=ACTOR, **kwargs)
    assert result.ok, result.error
    return result.data


def register_user(
    store: Store, email: str, *, is_admin: bool = False, password: str = PASSWORD
) -> dict[str, Any]:
    """Register an account via AuthService, asserting success."""
    from cmdbctl.services.auth import AuthService

    result = AuthService(store).register(email, password, "Ada", "Lovelace", is_admin=is_admin)
    assert result.ok, result.error
    return result.data


def invoke_json(runner: CliRunner, *args: str, token: str | None = None) -> tuple[int, Any]:
    """Invoke the CLI with ``--json`` and return ``(exit_code, parsed_output)``."""
    from cmdbctl.cli import cli

    argv = ["--json", "--sync"]
    if token is not None:
        argv += ["--token", token]
    result = runner.invoke(cli, [*argv, *args])
    try:
        payload = json.loads(result.output)
    except json.JSONDecodeError:
        payload = result.output
    return result.exit_code, payload


def cli_token(
    runner: CliRunner, email: str, *, is_admin: bool = False, token: str | None = None
) -> str:
    """Register an account through the CLI, log in, and return its token."""
    args = ["auth", "register", email, "--first-name", "Ada", "--last-name", "Lovelace"]
    args += ["--password", PASSWORD]
    if is_admin:
        args.append("--admin")
    code, payload = invoke_json(runner, *args, token=token)
    assert code == 0, payload
    code, payload = invoke_json(runner, "auth", "login", email, "--password", PASSWORD)
    assert code == 0, payload
    return payload["data"]["token"]


@pytest.fixture
def admin_token(cli_runner: CliRunner, _isolated_root: None) -> str:
    """Token of the first (bootstrap) admin account."""
    return cli_token(cli_runner, "admin@example.com", is_admin=True)
