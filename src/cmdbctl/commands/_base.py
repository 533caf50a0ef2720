"""Click base classes and shared option parsing for cmdbctl commands.

``CmdbCommand``/``CmdbGroup`` take an ``examples`` string shown by an
eager ``--examples`` flag, keeping ``--help`` short.
"""

from __future__ import annotations

import json
from typing import Any

import click


class _ExamplesMixin:
    """Adds the ``--examples`` flag when constructed with ``examples=...``."""

    params: list[click.Parameter]

    def __init__(self, *args: Any, examples: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.examples = examples
        if examples:
            self.params.append(
                click.Option(
                    ["--examples"],
                    is_flag=True,
                    expose_value=False,
                    is_eager=True,
                    callback=self._show_examples,
                    help="Show usage examples.",
                )
            )

    def _show_examples(self, ctx: click.Context, _param: click.Parameter, value: bool) -> None:
        if not value or ctx.resilient_parsing:
            return
        click.echo(f"Examples for '{ctx.command_path}':\n\n{self.examples}")
        ctx.exit(0)


class CmdbCommand(_ExamplesMixin, click.Command):
    pass


class CmdbGroup(_ExamplesMixin, click.Group):
    """Group whose subcommands are :class:`CmdbCommand` by default."""

    command_class = CmdbCommand


def parse_json_object(
    _ctx: click.Context, param: click.Parameter, value: str | None
) -> dict[str, Any] | None:
    """Click callback: parse a JSON-object option such as ``--attributes``."""
    if value is None:
        return None
    try:
        parsed = json.loads(value)
    except json.JSONDecodeError as exc:
        msg = f"invalid JSON ({exc.msg} at position {exc.pos})"
        raise click.BadParameter(msg, param=param) from exc
    if not isinstance(parsed, dict):
        raise click.BadParameter("expected a JSON object", param=param)
    return parsed


def page_options(default_limit: int = 50) -> Any:
    """Decorator adding ``--limit``/``--offset`` to a list command."""

    def decorator(fn: Any) -> Any:
        fn = click.option("--offset", default=0, type=int, help="Rows to skip.")(fn)
        fn = click.option(
            "--limit", default=default_limit, type=int, help="Max rows (1-100)."
        )(fn)
        return fn

    return decorator
