"""Rich console and theme for cmdbctl output.

Consoles render into a StringIO so renderers can return plain strings.
Rich drops color codes when the target is not a terminal (tests, pipes).
"""

from __future__ import annotations

import re
from io import StringIO

from rich.console import Console
from rich.text import Text
from rich.theme import Theme

CMDB_THEME = Theme(
    {
        "cmdb.ok": "bold green",
        "cmdb.error": "bold red",
        "cmdb.warning": "bold yellow",
        "cmdb.op": "bold cyan",
        "cmdb.key": "dim",
        "cmdb.id": "bold blue",
        "cmdb.name": "bold",
        "cmdb.type": "magenta",
        "cmdb.money": "green",
    }
)

DEFAULT_WIDTH = 120
_HEX_COLOR = re.compile(r"^#[0-9A-Fa-f]{6}$")


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    return Console(
        file=StringIO(),
        theme=CMDB_THEME,
        no_color=no_color,
        highlight=False,
        width=width or DEFAULT_WIDTH,
    )


def get_output(console: Console) -> str:
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()


def swatch(color: object) -> Text:
    """A lifecycle color as a colored block followed by its hex code.

    Values that are not ``#RRGGBB`` are shown as plain text.
    """
    if not isinstance(color, str) or not _HEX_COLOR.match(color):
        return Text("" if color is None else str(color))
    return Text.assemble(("■", color), f" {color}")
