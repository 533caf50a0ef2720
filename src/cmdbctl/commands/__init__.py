"""Subcommand modules for cmdbctl.

Provides register_commands() which uses deferred imports to keep
``cmdbctl --help`` fast as the codebase grows.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register all command groups and standalone commands on the root CLI group.

    Uses deferred imports so modules are only loaded when actually invoked.
    10 groups (have subcommands) + 3 standalone commands.
    """
    # --- Groups ---
    from cmdbctl.commands.asset import asset
    from cmdbctl.commands.audit import audit
    from cmdbctl.commands.auth import auth
    from cmdbctl.commands.ci_type import ci_type
    from cmdbctl.commands.graph import graph
    from cmdbctl.commands.jobs import jobs
    from cmdbctl.commands.lifecycle import lifecycle
    from cmdbctl.commands.rel import rel
    from cmdbctl.commands.reltype import reltype
    from cmdbctl.commands.valuation import valuation

    cli.add_command(auth)
    cli.add_command(ci_type)
    cli.add_command(asset)
    cli.add_command(reltype)
    cli.add_command(rel)
    cli.add_command(lifecycle)
    cli.add_command(graph)
    cli.add_command(audit)
    cli.add_command(valuation)
    cli.add_command(jobs)

    # --- Standalone commands ---
    from cmdbctl.commands.init_cmd import init_cmd
    from cmdbctl.commands.stats import stats
    from cmdbctl.commands.upgrade import upgrade

    cli.add_command(init_cmd)
    cli.add_command(upgrade)
    cli.add_command(stats)
