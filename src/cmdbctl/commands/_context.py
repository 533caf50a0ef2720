"""AppContext — shared Click context for all commands.

Created once by the root CLI group and flows to all subcommands via
``@click.pass_obj``.  Provides lazy Store initialization, identity
resolution from ``--token``, and centralized result emission
(stdout/stderr routing + exit codes).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from cmdbctl.config.logging import bind_log_context, configure_logging
from cmdbctl.output.formatters import OutputSettings, format_result

if TYPE_CHECKING:
    from cmdbctl.config.settings import CmdbSettings
    from cmdbctl.infrastructure.store import Store
    from cmdbctl.services.auth import Identity
    from cmdbctl.services.result import ServiceResult


class AppContext:
    """Shared context flowing through Click's command hierarchy.

    Subcommands access it via ``@click.pass_obj``.  The store is lazily
    initialized on first use so ``--help`` and ``--version`` never
    trigger database access.
    """

    def __init__(self, settings: CmdbSettings) -> None:
        self.settings = settings
        self._store: Store | None = None
        self._identity: Identity | None = None

        configure_logging(verbose=settings.verbose, log_json=settings.log_json)

        # Enable telemetry context var when verbose
        if settings.verbose:
            from cmdbctl.services.telemetry import enable_telemetry

            enable_telemetry()

    @property
    def store(self) -> Store:
        """The store instance (created lazily on first access)."""
        if self._store is None:
            from cmdbctl.infrastructure.store import Store

            self._store = Store(self.settings)
            if self.settings.plugins.enabled:
                self._store.init_event_bus(sync=self.settings.sync)
        return self._store

    def close(self) -> None:
        """Release the store, waiting for in-flight plugin events."""
        if self._store is not None:
            self._store.close()
            self._store = None

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    @property
    def identity(self) -> Identity:
        """The acting user from ``--token``/``CMDBCTL_TOKEN``; exits 1 if invalid."""
        if self._identity is None:
            from cmdbctl.services.auth import AuthService, Identity

            result = AuthService(self.store).verify(self.settings.token)
            if not result.ok:
                self.emit(result)
            self._identity = Identity(**result.data)
            bind_log_context(actor=self._identity.user_id)
        return self._identity

    def actor(self) -> str:
        """User id of the authenticated caller, required for every mutation."""
        return self.identity.user_id

    def admin_actor(self) -> str:
        """User id of the caller, who must be an admin."""
        from cmdbctl.services.auth import AuthService

        check = AuthService.require_admin(self.identity)
        if not check.ok:
            self.emit(check)
        return self.identity.user_id

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    def emit(self, result: ServiceResult) -> None:
        """Format and output a ServiceResult with correct exit semantics.

        * Success (``result.ok``): writes to stdout, returns normally.
          Warnings are emitted to stderr so they don't pollute piped output.
        * Failure: writes to stderr, exits with code 1.
        """
        settings = OutputSettings(
            json_output=self.settings.json_output,
            quiet=self.settings.quiet,
            verbose=self.settings.verbose,
        )
        output = format_result(result, settings=settings)
        if result.ok:
            click.echo(output)
            # In JSON mode, warnings are already in the serialized payload.
            if not settings.json_output:
                for warning in result.warnings:
                    click.echo(f"WARNING: {warning}", err=True)
        else:
            click.echo(output, err=True)
            raise SystemExit(1)
