"""CmdbSettings — one frozen object for CLI flags, env vars and cmdbctl.toml.

Sources, highest priority first:

1. keyword arguments (CLI flags; ``None`` means "not given")
2. ``CMDBCTL_*`` environment variables, ``__`` for nested sections
3. the deployment's ``cmdbctl.toml``
4. defaults on the section models
"""

from __future__ import annotations

import tomllib
from contextvars import ContextVar
from pathlib import Path
from typing import Any

from pydantic import Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    TomlConfigSettingsSource,
)

from cmdbctl.config.discovery import STATE_DIRNAME, find_deployment
from cmdbctl.config.models import (
    AuthConfig,
    DatabaseConfig,
    GraphConfig,
    JobsConfig,
    PaginationConfig,
    PluginsConfig,
)

# TOML file for the settings object under construction.
_toml_file: ContextVar[Path | None] = ContextVar("cmdbctl_toml_file", default=None)


class CmdbSettings(BaseSettings):
    """Settings for the cmdbctl CLI and the job scheduler.

    Attributes:
        data_root: Deployment directory holding ``.cmdbctl/``.
        config_path: The TOML file that was loaded, if any.
        token: Bearer token identifying the acting user.
    """

    model_config = SettingsConfigDict(
        frozen=True,
        env_prefix="CMDBCTL_",
        env_nested_delimiter="__",
    )

    data_root: Path = Field(default_factory=Path.cwd)
    config_path: Path | None = None

    json_output: bool = False
    quiet: bool = False
    verbose: bool = False
    log_json: bool = False
    sync: bool = False
    token: str | None = None

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    graph: GraphConfig = Field(default_factory=GraphConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    pagination: PaginationConfig = Field(default_factory=PaginationConfig)
    jobs: JobsConfig = Field(default_factory=JobsConfig)
    plugins: PluginsConfig = Field(default_factory=PluginsConfig)

    @property
    def state_dir(self) -> Path:
        """``.cmdbctl/``: database, graph mirror, backups, local plugins."""
        return self.data_root / STATE_DIRNAME

    @property
    def db_path(self) -> Path:
        return self.state_dir / self.database.filename

    @property
    def graph_path(self) -> Path:
        return self.state_dir / self.graph.filename

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        toml_file = _toml_file.get()
        if toml_file is None:
            return (init_settings, env_settings)
        return (
            init_settings,
            env_settings,
            TomlConfigSettingsSource(settings_cls, toml_file=toml_file),
        )

    @classmethod
    def from_cli(
        cls,
        *,
        config_path: str | None = None,
        data_root: Path | None = None,
        **cli_flags: Any,
    ) -> CmdbSettings:
        """Build settings for one CLI invocation.

        An explicit *config_path* must exist and makes its directory the
        data root. Otherwise the deployment is discovered from *data_root*
        (or the cwd). An explicit *data_root* always wins.

        Raises:
            click.ClickException: Missing ``--config`` file or malformed TOML.
        """
        import click

        if config_path:
            toml_file: Path | None = Path(config_path)
            if not toml_file.is_file():
                raise click.ClickException(f"Config file not found: {config_path}")
            discovered_root: Path | None = toml_file.parent
        else:
            deployment = find_deployment(data_root)
            toml_file = deployment.config_path if deployment else None
            discovered_root = deployment.root if deployment else None

        token = _toml_file.set(toml_file)
        try:
            return cls(
                data_root=data_root or discovered_root or Path.cwd(),
                config_path=toml_file,
                **{k: v for k, v in cli_flags.items() if v is not None},
            )
        except tomllib.TOMLDecodeError as exc:
            raise click.ClickException(f"Invalid TOML in {toml_file}: {exc}") from exc
        finally:
            _toml_file.reset(token)
