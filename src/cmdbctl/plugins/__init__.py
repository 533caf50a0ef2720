"""Extension layer — plugin system via pluggy.

Discovery: entry_points (pip-installed) via pluggy setuptools entrypoints,
plus single-file plugins under ``.cmdbctl/plugins/``.
INVARIANT: Plugin failures are warnings, never errors.
"""

from cmdbctl.plugins.event_bus import EventBus
from cmdbctl.plugins.hookspecs import hookimpl
from cmdbctl.plugins.manager import PluginManager

__all__ = ["EventBus", "PluginManager", "hookimpl"]
