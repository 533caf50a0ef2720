"""User account repository."""

from __future__ import annotations

from typing import Any

from sqlalchemy import func, select

from cmdbctl.infrastructure.database.schema import users
from cmdbctl.infrastructure.repositories.base import TableRepository, decode_row


class UserRepository(TableRepository):
    table = users

    def find_by_email(self, email: str) -> dict[str, Any] | None:
        """Case-insensitive lookup; emails are stored lowercased."""
        stmt = select(users).where(func.lower(users.c.email) == email.lower())
        row = self._conn.execute(stmt).mappings().first()
        return decode_row(row) if row is not None else None
