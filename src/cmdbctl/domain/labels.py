"""Graph edge labels derived from relationship type names."""

from __future__ import annotations

import re

_SEPARATORS = re.compile(r"[\s\-]")


def edge_label(type_name: str) -> str:
    """Uppercase *type_name* with spaces and hyphens replaced by ``_``.

    Examples:
        >>> edge_label("Depends On")
        'DEPENDS_ON'
        >>> edge_label("runs-on")
        'RUNS_ON'
    """
    return _SEPARATORS.sub("_", type_name).upper()
