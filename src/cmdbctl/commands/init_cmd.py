"""Command: deployment initialization (named init_cmd to avoid shadowing builtins)."""

from __future__ import annotations

import secrets
from pathlib import Path
from typing import TYPE_CHECKING

import click

from cmdbctl.commands._base import CmdbCommand
from cmdbctl.config.discovery import CONFIG_FILENAME, STATE_DIRNAME
from cmdbctl.services.result import ServiceResult

if TYPE_CHECKING:
    from cmdbctl.commands._context import AppContext

_INIT_EXAMPLES = """\
  cmdbctl init
  cmdbctl init /srv/cmdb
  cmdbctl --json init /tmp/cmdb --no-config"""


@click.command("init", cls=CmdbCommand, examples=_INIT_EXAMPLES)
@click.argument("path", required=False, default=".")
@click.option("--no-config", is_flag=True, help=f"Do not write {CONFIG_FILENAME}.")
@click.pass_obj
def init_cmd(app: AppContext, path: str, no_config: bool) -> None:
    """Create the database and stamp the schema version."""
    from cmdbctl.config.settings import CmdbSettings
    from cmdbctl.infrastructure.store import Store
    from cmdbctl.services.upgrade import UpgradeService

    root = Path(path).resolve()
    # The state dir marks the deployment so discovery never climbs past it.
    (root / STATE_DIRNAME).mkdir(parents=True, exist_ok=True)

    config_path = root / CONFIG_FILENAME
    wrote_config = False
    if not no_config and not config_path.exists():
        config_path.write_text(
            f'[auth]\njwt_secret = "{secrets.token_urlsafe(32)}"\n', encoding="utf-8"
        )
        wrote_config = True

    settings = CmdbSettings.from_cli(
        config_path=str(config_path) if config_path.exists() else None,
        data_root=root,
    )
    store = Store(settings)
    try:
        stamped = UpgradeService(store).stamp_current()
    finally:
        store.close()
    if not stamped.ok:
        app.emit(stamped)
        return

    app.emit(
        ServiceResult(
            ok=True,
            op="init",
            data={
                "data_root": str(root),
                "db_path": str(settings.db_path),
                "graph_path": str(settings.graph_path),
                "config_path": str(config_path) if config_path.exists() else None,
                "config_written": wrote_config,
                "revision": stamped.data["current"],
            },
        )
    )
