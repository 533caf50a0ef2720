"""Root CLI group for cmdbctl with global flags and command registration."""

from __future__ import annotations

import click

from cmdbctl import __version__
from cmdbctl.commands import register_commands
from cmdbctl.commands._context import AppContext
from cmdbctl.config.logging import bind_log_context
from cmdbctl.config.settings import CmdbSettings


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="cmdbctl")
@click.option("--json", "json_output", is_flag=True, help="Structured JSON output.")
@click.option("-q", "--quiet", is_flag=True, help="Minimal output.")
@click.option("-v", "--verbose", is_flag=True, help="Detailed output with debug info.")
@click.option("--log-json", is_flag=True, help="Structured JSON log output to stderr.")
@click.option("-c", "--config", "config_path", default=None, help="Override config file path.")
@click.option("--sync", is_flag=True, help="Force synchronous event dispatch.")
@click.option(
    "--token",
    default=None,
    help="Bearer token of the acting user (or set CMDBCTL_TOKEN).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    json_output: bool,
    quiet: bool,
    verbose: bool,
    log_json: bool,
    config_path: str | None,
    sync: bool,
    token: str | None,
) -> None:
    """cmdbctl — Configuration Management Database CLI."""
    ctx.ensure_object(dict)
    settings = CmdbSettings.from_cli(
        config_path=config_path,
        json_output=json_output,
        quiet=quiet,
        verbose=verbose,
        log_json=log_json,
        sync=sync,
        token=token,
    )
    app = AppContext(settings)
    ctx.obj = app
    ctx.call_on_close(app.close)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        return
    bind_log_context(command=ctx.invoked_subcommand)


register_commands(cli)
