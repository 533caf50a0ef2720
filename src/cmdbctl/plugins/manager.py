"""Plugin discovery, loading, and plugin-contributed jobs.

Plugins come from the ``cmdbctl.plugins`` entry-point group and from
single-file modules in ``.cmdbctl/plugins/``. Besides reacting to
``post_mutation``/``post_job`` events, a plugin may contribute daily
jobs to the scheduler through ``register_jobs``.
"""

from __future__ import annotations

import importlib.util
import inspect
import logging
import re
import sys
from pathlib import Path
from types import ModuleType
from typing import TYPE_CHECKING

import pluggy

from cmdbctl.plugins.hookspecs import CmdbctlHookSpec

if TYPE_CHECKING:
    from collections.abc import Iterable

    from cmdbctl.services.jobs import Job

PROJECT_NAME = "cmdbctl"
ENTRY_POINT_GROUP = "cmdbctl.plugins"
LOCAL_MODULE_PREFIX = "cmdbctl_local_plugin_"

_RUN_AT = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")

logger = logging.getLogger(__name__)


class PluginManager:
    """Wraps a pluggy manager with cmdbctl's discovery rules."""

    def __init__(self) -> None:
        self._pm = pluggy.PluginManager(PROJECT_NAME)
        self._pm.add_hookspecs(CmdbctlHookSpec)
        self._loaded: bool = False

    def discover_and_load(self, *, local_dir: Path | None = None) -> list[str]:
        """Load entry-point plugins, then local ones. Returns plugin names."""
        self._pm.load_setuptools_entrypoints(ENTRY_POINT_GROUP)
        self._instantiate_registered_classes()
        if local_dir is not None and local_dir.is_dir():
            for py_file in sorted(local_dir.glob("*.py")):
                if not py_file.name.startswith("_"):
                    self._load_local(py_file)
        self._loaded = True
        return self.list_plugin_names()

    def register_plugin(self, plugin: object, name: str | None = None) -> None:
        resolved_name = name or plugin.__class__.__name__
        self._pm.register(plugin, name=resolved_name)
        logger.debug("Registered plugin: %s", resolved_name)

    def unregister(self, plugin: object) -> None:
        self._pm.unregister(plugin)

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    @property
    def hook(self) -> pluggy.HookRelay:
        """Hook relay used by the event bus for dispatch."""
        return self._pm.hook

    def get_plugins(self) -> list[object]:
        return list(self._pm.get_plugins())

    def list_plugin_names(self) -> list[str]:
        return [self._pm.get_name(p) or p.__class__.__name__ for p in self._pm.get_plugins()]

    # ------------------------------------------------------------------
    # Plugin-contributed jobs
    # ------------------------------------------------------------------

    def collect_jobs(self, *, reserved: Iterable[str] = ()) -> list[Job]:
        """Jobs returned by every ``register_jobs`` implementation.

        Entries that are not :class:`Job` instances, carry a malformed
        ``HH:MM`` time, or reuse a reserved or already-collected name are
        logged and dropped. A plugin whose hook raises contributes nothing.
        """
        from cmdbctl.services.jobs import Job

        taken = set(reserved)
        collected: list[Job] = []
        for plugin in self._pm.get_plugins():
            hook = getattr(plugin, "register_jobs", None)
            if hook is None:
                continue
            plugin_name = self._pm.get_name(plugin) or plugin.__class__.__name__
            try:
                contributed = hook() or []
            except Exception:
                logger.warning("Plugin %s failed to register jobs", plugin_name, exc_info=True)
                continue

            for job in contributed:
                if not isinstance(job, Job):
                    logger.warning("Plugin %s returned a non-Job entry: %r", plugin_name, job)
                elif not _RUN_AT.match(job.at):
                    logger.warning(
                        "Plugin %s job %r has invalid run time %r", plugin_name, job.name, job.at
                    )
                elif job.name in taken:
                    logger.warning(
                        "Plugin %s job name %r is already taken", plugin_name, job.name
                    )
                else:
                    taken.add(job.name)
                    collected.append(job)
        return collected

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def _load_local(self, py_file: Path) -> None:
        """Import one local plugin file and register its hook classes.

        A file that fails to import, or a class that fails to construct,
        is logged and skipped.
        """
        module_name = f"{LOCAL_MODULE_PREFIX}{py_file.stem}"
        module = _import_file(module_name, py_file)
        if module is None:
            return

        for _attr, cls in inspect.getmembers(module, inspect.isclass):
            if cls.__module__ != module_name or not _has_hook_impls(cls):
                continue
            try:
                self.register_plugin(cls(), name=module_name)
            except Exception:
                logger.warning(
                    "Failed to instantiate plugin class %s from %s",
                    cls.__name__,
                    py_file,
                    exc_info=True,
                )

    def _instantiate_registered_classes(self) -> None:
        """Swap plugin classes registered by entry points for instances.

        Hooks dispatched against a class would leave ``self`` unbound.
        """
        for plugin in list(self._pm.get_plugins()):
            if not inspect.isclass(plugin) or not _has_hook_impls(plugin):
                continue
            plugin_name = self._pm.get_name(plugin) or plugin.__name__
            self._pm.unregister(plugin)
            try:
                self._pm.register(plugin(), name=plugin_name)
            except Exception:
                logger.warning(
                    "Failed to instantiate entry-point plugin %s", plugin_name, exc_info=True
                )


def _import_file(module_name: str, py_file: Path) -> ModuleType | None:
    spec = importlib.util.spec_from_file_location(module_name, py_file)
    if spec is None or spec.loader is None:
        logger.warning("Could not create module spec for %s", py_file)
        return None
    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except Exception:
        logger.warning("Failed to load local plugin %s", py_file, exc_info=True)
        sys.modules.pop(module_name, None)
        return None
    return module


def _has_hook_impls(cls: type) -> bool:
    """Whether *cls* has a public method marked by ``HookimplMarker("cmdbctl")``."""
    for name in dir(cls):
        if name.startswith("_"):
            continue
        method = getattr(cls, name, None)
        if callable(method) and getattr(method, f"{PROJECT_NAME}_impl", None):
            return True
    return False
