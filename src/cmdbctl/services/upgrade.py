"""UpgradeService — schema versioning with Alembic.

``apply`` runs BACKUP → MIGRATE → VERIFY. A database whose tables were
created by :func:`init_database` before any revision was recorded is
adopted with a stamp instead of replaying the baseline.
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import closing
from pathlib import Path

from alembic import command
from sqlalchemy import inspect

from cmdbctl.infrastructure.database.migrations import (
    build_config,
    current_revision,
    head_revision,
    pending_revisions,
)
from cmdbctl.infrastructure.database.schema import metadata
from cmdbctl.services._helpers import now_compact
from cmdbctl.services.base import BaseService, fail
from cmdbctl.services.result import INTERNAL_ERROR, ServiceResult

logger = logging.getLogger(__name__)

BACKUP_MAX_COUNT = 5


class UpgradeService(BaseService):
    """Reports, applies and stamps schema revisions for the store's database."""

    def check_pending(self) -> ServiceResult:
        """Current and head revisions plus the revisions between them."""
        op = "upgrade"
        try:
            with self._store.engine.connect() as conn:
                current = current_revision(conn)
            head = head_revision()
            pending = pending_revisions(current)
        except Exception as exc:
            logger.warning("Revision check failed: %s", exc)
            return fail(op, INTERNAL_ERROR, f"Failed to check migrations: {exc}", stage="check")

        return ServiceResult(
            ok=True,
            op=op,
            data={
                "pending_count": len(pending),
                "pending": pending,
                "current": current,
                "head": head,
            },
        )

    def apply(self) -> ServiceResult:
        op = "upgrade"
        check = self.check_pending()
        if not check.ok:
            return check

        pending_count = check.data["pending_count"]
        head = check.data["head"]
        if pending_count == 0:
            return ServiceResult(
                ok=True,
                op=op,
                data={
                    "applied_count": 0,
                    "current": head,
                    "message": "Database is already up to date",
                },
            )

        try:
            backup_path = self._backup()
        except (OSError, sqlite3.Error) as exc:
            return fail(op, INTERNAL_ERROR, f"Backup failed: {exc}", stage="backup")

        adopt = check.data["current"] is None and "ci_types" in self._table_names()
        try:
            self._migrate(stamp_only=adopt)
        except Exception as exc:
            logger.error("Migration failed, backup kept at %s", backup_path)
            return fail(
                op,
                INTERNAL_ERROR,
                f"Migration failed: {exc}. Backup at: {backup_path}",
                stage="migrate",
                backup_path=str(backup_path),
            )

        missing = sorted(set(metadata.tables) - self._table_names())
        warnings = [f"Tables missing after migration: {', '.join(missing)}"] if missing else []
        logger.info("Schema at %s (%d revisions, adopted=%s)", head, pending_count, adopt)
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "applied_count": pending_count,
                "adopted": adopt,
                "current": head,
                "backup_path": str(backup_path),
            },
            warnings=warnings,
        )

    def stamp_current(self) -> ServiceResult:
        """Record the head revision without running migrations (used by ``init``)."""
        op = "upgrade"
        try:
            self._migrate(stamp_only=True)
            head = head_revision()
        except Exception as exc:
            return fail(op, INTERNAL_ERROR, f"Failed to stamp database: {exc}", stage="stamp")
        return ServiceResult(ok=True, op=op, data={"stamped": True, "current": head})

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _migrate(self, *, stamp_only: bool) -> None:
        with self._store.engine.begin() as conn:
            cfg = build_config(conn)
            if stamp_only:
                command.stamp(cfg, "head")
            else:
                command.upgrade(cfg, "head")

    def _table_names(self) -> set[str]:
        return set(inspect(self._store.engine).get_table_names())

    def _backup(self) -> Path:
        """Copy the live database (WAL included) into ``backups/``, keeping the newest few."""
        settings = self._store.settings
        backup_dir = settings.state_dir / "backups"
        backup_dir.mkdir(parents=True, exist_ok=True)
        stem = settings.db_path.stem
        backup_path = backup_dir / f"{stem}-{now_compact()}.db"

        raw = self._store.engine.raw_connection()
        try:
            with closing(sqlite3.connect(backup_path)) as target:
                raw.driver_connection.backup(target)
        finally:
            raw.close()

        backups = sorted(backup_dir.glob(f"{stem}-*.db"))
        for old in backups[:-BACKUP_MAX_COUNT]:
            old.unlink(missing_ok=True)
        return backup_path
