"""Tests for the auth CLI commands and token handling."""

from __future__ import annotations

import pytest
from click.testing import CliRunner

from cmdbctl.cli import cli
from tests.conftest import PASSWORD, cli_token, invoke_json


@pytest.mark.usefixtures("_isolated_root")
class TestRegisterCommand:
    def test_first_admin_needs_no_token(self, cli_runner: CliRunner) -> None:
        code, payload = invoke_json(
            cli_runner,
            "auth", "register", "root@example.com",
            "--first-name", "Root", "--last-name", "User",
            "--password", PASSWORD, "--admin",
        )  # fmt: skip
        assert code == 0
        assert payload["op"] == "register"
        assert payload["data"]["is_admin"] is True
        assert "password_hash" not in payload["data"]

    def test_later_admin_needs_admin_token(
        self, cli_runner: CliRunner, admin_token: str
    ) -> None:
        args = [
            "auth", "register", "second@example.com",
            "--first-name", "S", "--last-name", "A",
            "--password", PASSWORD, "--admin",
        ]  # fmt: skip
        code, payload = invoke_json(cli_runner, *args)
        assert code == 1
        assert payload["error"]["code"] == "AUTHENTICATION_FAILED"

        code, payload = invoke_json(cli_runner, *args, token=admin_token)
        assert code == 0
        assert payload["data"]["is_admin"] is True

    def test_non_admin_cannot_grant_admin(
        self, cli_runner: CliRunner, admin_token: str
    ) -> None:
        user_token = cli_token(cli_runner, "user@example.com")
        code, payload = invoke_json(
            cli_runner,
            "auth", "register", "sneaky@example.com",
            "--first-name", "S", "--last-name", "N",
            "--password", PASSWORD, "--admin",
            token=user_token,
        )  # fmt: skip
        assert code == 1
        assert payload["error"]["code"] == "FORBIDDEN"

    def test_weak_password(self, cli_runner: CliRunner) -> None:
        code, payload = invoke_json(
            cli_runner,
            "auth", "register", "weak@example.com",
            "--first-name", "W", "--last-name", "K",
            "--password", "weak",
        )  # fmt: skip
        assert code == 1
        assert payload["error"]["code"] == "VALIDATION_FAILED"

    def test_password_prompt(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(
            cli,
            [
                "--json", "auth", "register", "p@example.com",
                "--first-name", "P", "--last-name", "Q",
            ],  # fmt: skip
            input=f"{PASSWORD}\n{PASSWORD}\n",
        )
        assert result.exit_code == 0


@pytest.mark.usefixtures("_isolated_root")
class TestLoginCommand:
    def test_login_and_me(self, cli_runner: CliRunner, admin_token: str) -> None:
        code, payload = invoke_json(cli_runner, "auth", "me", token=admin_token)
        assert code == 0
        assert payload["op"] == "me"
        assert payload["data"]["email"] == "admin@example.com"
        assert payload["data"]["is_admin"] is True

    def test_quiet_login_prints_token_only(
        self, cli_runner: CliRunner, admin_token: str
    ) -> None:
        result = cli_runner.invoke(
            cli, ["-q", "auth", "login", "admin@example.com", "--password", PASSWORD]
        )
        assert result.exit_code == 0
        assert result.output.strip().count(".") == 2

    def test_bad_password(self, cli_runner: CliRunner, admin_token: str) -> None:
        code, payload = invoke_json(
            cli_runner, "auth", "login", "admin@example.com", "--password", "Nope!nope1"
        )
        assert code == 1
        assert payload["error"]["message"] == "Invalid email or password"

    def test_me_without_token(self, cli_runner: CliRunner) -> None:
        code, payload = invoke_json(cli_runner, "auth", "me")
        assert code == 1
        assert payload["error"]["message"] == "Authentication token is missing"

    def test_token_from_environment(
        self, cli_runner: CliRunner, admin_token: str, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("CMDBCTL_TOKEN", admin_token)
        code, payload = invoke_json(cli_runner, "auth", "me")
        assert code == 0
        assert payload["data"]["email"] == "admin@example.com"

    def test_garbage_token(self, cli_runner: CliRunner) -> None:
        code, payload = invoke_json(cli_runner, "auth", "me", token="garbage")
        assert code == 1
        assert payload["error"]["message"] == "Invalid token"
