"""Tests for CmdbSettings — unified settings with TOML source."""

from pathlib import Path

import click
import pytest

from cmdbctl.config.settings import CmdbSettings


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("CMDBCTL_CONFIG", raising=False)
    monkeypatch.delenv("CMDBCTL_TOKEN", raising=False)


class TestCmdbSettingsDefaults:
    def test_all_defaults(self, tmp_path: Path) -> None:
        """With no TOML and no env vars, all fields use code defaults."""
        settings = CmdbSettings.from_cli(data_root=tmp_path)
        assert settings.data_root == tmp_path
        assert settings.config_path is None
        assert settings.json_output is False
        assert settings.token is None
        assert settings.auth.jwt_algorithm == "HS256"
        assert settings.auth.jwt_expiration_hours == 24
        assert settings.pagination.max_limit == 100
        assert settings.jobs.amortization_at == "02:00"
        assert settings.graph.enabled is True

    def test_paths(self, tmp_path: Path) -> None:
        settings = CmdbSettings.from_cli(data_root=tmp_path)
        assert settings.state_dir == tmp_path / ".cmdbctl"
        assert settings.db_path == tmp_path / ".cmdbctl" / "cmdbctl.db"
        assert settings.graph_path == tmp_path / ".cmdbctl" / "graph.json"

    def test_frozen(self, tmp_path: Path) -> None:
        settings = CmdbSettings.from_cli(data_root=tmp_path)
        with pytest.raises(Exception):
            settings.quiet = True  # type: ignore[misc]


class TestTomlSource:
    def test_loads_from_toml(self, tmp_path: Path) -> None:
        toml = tmp_path / "cmdbctl.toml"
        toml.write_text('[auth]\njwt_secret = "abc"\n[graph]\nnode_limit = 50\n')
        settings = CmdbSettings.from_cli(data_root=tmp_path)
        assert settings.auth.jwt_secret == "abc"
        assert settings.graph.node_limit == 50
        assert settings.graph.search_limit == 20  # default preserved
        assert settings.config_path == toml

    def test_data_root_from_config_parent(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        (tmp_path / "cmdbctl.toml").write_text("[database]\nfilename = 'x.db'\n")
        child = tmp_path / "nested" / "dir"
        child.mkdir(parents=True)
        monkeypatch.chdir(child)
        settings = CmdbSettings.from_cli()
        assert settings.data_root.resolve() == tmp_path.resolve()
        assert settings.db_path.name == "x.db"

    def test_explicit_config_path(self, tmp_path: Path) -> None:
        custom = tmp_path / "custom.toml"
        custom.write_text("[jobs]\ncleanup_at = '05:30'\n")
        settings = CmdbSettings.from_cli(config_path=str(custom), data_root=tmp_path)
        assert settings.jobs.cleanup_at == "05:30"

    def test_missing_explicit_config(self, tmp_path: Path) -> None:
        with pytest.raises(click.ClickException, match="Config file not found"):
            CmdbSettings.from_cli(config_path=str(tmp_path / "absent.toml"))

    def test_explicit_config_sets_data_root(self, tmp_path: Path) -> None:
        custom = tmp_path / "etc" / "cmdb.toml"
        custom.parent.mkdir()
        custom.write_text("[graph]\nenabled = false\n")
        settings = CmdbSettings.from_cli(config_path=str(custom))
        assert settings.data_root == custom.parent
        assert settings.graph.enabled is False

    def test_data_root_from_state_dir(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        (tmp_path / ".cmdbctl").mkdir()
        child = tmp_path / "sub"
        child.mkdir()
        monkeypatch.chdir(child)
        settings = CmdbSettings.from_cli()
        assert settings.data_root == tmp_path.resolve()
        assert settings.config_path is None

    def test_invalid_toml(self, tmp_path: Path) -> None:
        (tmp_path / "cmdbctl.toml").write_text("[auth\n")
        with pytest.raises(click.ClickException, match="Invalid TOML"):
            CmdbSettings.from_cli(data_root=tmp_path)

    def test_bad_job_clock_rejected(self, tmp_path: Path) -> None:
        (tmp_path / "cmdbctl.toml").write_text("[jobs]\namortization_at = '25:00'\n")
        with pytest.raises(ValueError, match="HH:MM"):
            CmdbSettings.from_cli(data_root=tmp_path)


class TestPriority:
    def test_cli_flag_beats_toml(self, tmp_path: Path) -> None:
        (tmp_path / "cmdbctl.toml").write_text("verbose = false\n")
        settings = CmdbSettings.from_cli(data_root=tmp_path, verbose=True)
        assert settings.verbose is True

    def test_env_beats_toml(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        (tmp_path / "cmdbctl.toml").write_text("[auth]\njwt_secret = 'from-toml'\n")
        monkeypatch.setenv("CMDBCTL_AUTH__JWT_SECRET", "from-env")
        settings = CmdbSettings.from_cli(data_root=tmp_path)
        assert settings.auth.jwt_secret == "from-env"

    def test_token_from_env(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CMDBCTL_TOKEN", "tok")
        settings = CmdbSettings.from_cli(data_root=tmp_path, token=None)
        assert settings.token == "tok"
