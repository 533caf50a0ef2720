"""Rich/JSON output helpers.

The CLI renders ServiceResult for humans (Rich tables and key-value
blocks) or machines (--json). The formatter layer adapts ServiceResult
to the requested output mode.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from cmdbctl.output.renderers import render_quiet, render_result

if TYPE_CHECKING:
    from cmdbctl.services.result import ServiceResult


@dataclass(frozen=True)
class OutputSettings:
    """Output mode selected by the global CLI flags."""

    json_output: bool = False
    quiet: bool = False
    verbose: bool = False


def format_result(
    result: ServiceResult,
    *,
    settings: OutputSettings | None = None,
    json_output: bool = False,
) -> str:
    """Format a ServiceResult for display.

    Args:
        result: The service result to format.
        settings: Output mode; takes precedence over *json_output*.
        json_output: Shorthand for ``OutputSettings(json_output=True)``.
    """
    mode = settings or OutputSettings(json_output=json_output)
    if mode.json_output:
        return result.model_dump_json(indent=2)
    if mode.quiet:
        return render_quiet(result)
    return render_result(result, verbose=mode.verbose)
