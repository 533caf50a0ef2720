"""Pluggy hook specifications for cmdbctl.

``post_mutation`` fires after a write commits and ``post_job`` after a
scheduled job run, both through the WAL-backed
:class:`~cmdbctl.plugins.event_bus.EventBus`.
``register_jobs`` is called directly when the scheduler is built.
"""

from __future__ import annotations

from typing import Any

import pluggy

hookspec = pluggy.HookspecMarker("cmdbctl")
hookimpl = pluggy.HookimplMarker("cmdbctl")


class CmdbctlHookSpec:
    """Hook specifications for the cmdbctl plugin system."""

    @hookspec
    def post_mutation(
        self,
        entity_type: str,
        entity_id: str,
        action: str,
        actor: str,
    ) -> None:
        """Called after a create/update/delete has committed."""

    @hookspec
    def post_job(
        self,
        job_name: str,
        ok: bool,
        detail: dict[str, Any],
    ) -> None:
        """Called after a scheduled job run, successful or not."""

    @hookspec
    def register_jobs(self) -> list[Any] | None:
        """Return extra daily :class:`~cmdbctl.services.jobs.Job` entries.

        Collected once when a :class:`~cmdbctl.services.jobs.JobScheduler`
        is built. Names must not clash with the built-in jobs.
        """
