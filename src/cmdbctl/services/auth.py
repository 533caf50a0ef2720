"""AuthService — accounts, bcrypt password hashes, and signed JWT identities.

Tokens carry ``sub``, ``email``, ``first_name``, ``last_name``,
``is_admin``, ``iat`` and ``exp``; :meth:`AuthService.verify` turns one
back into an :class:`Identity` without touching the database.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from typing import Any

import bcrypt
import jwt
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError

from cmdbctl.domain.models import UserRegister
from cmdbctl.domain.passwords import password_problems
from cmdbctl.infrastructure.repositories import UserRepository
from cmdbctl.services._helpers import new_id, now_iso
from cmdbctl.services.base import BaseService, fail
from cmdbctl.services.result import (
    AUTHENTICATION_FAILED,
    CONFLICT,
    FORBIDDEN,
    VALIDATION_FAILED,
    ServiceResult,
)
from cmdbctl.services.telemetry import traced

logger = logging.getLogger(__name__)

BAD_CREDENTIALS = "Invalid email or password"
EMAIL_TAKEN = "User with this email already exists"


class Identity(BaseModel):
    """The acting user, as resolved from a verified token."""

    model_config = {"frozen": True}

    user_id: str
    email: str
    first_name: str
    last_name: str
    is_admin: bool = False


def _public(user: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in user.items() if k != "password_hash"}


class AuthService(BaseService):
    """Registration, login, and token verification."""

    @traced
    def register(
        self,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        *,
        is_admin: bool = False,
    ) -> ServiceResult:
        op = "register"
        auth = self._store.settings.auth
        req = self._parse(
            op,
            UserRegister,
            email=email,
            password=password,
            first_name=first_name,
            last_name=last_name,
            is_admin=is_admin,
        )
        if isinstance(req, ServiceResult):
            return req
        problems = password_problems(req.password, min_length=auth.password_min_length)
        if problems:
            return fail(op, VALIDATION_FAILED, "; ".join(problems), errors=problems)

        hashed = bcrypt.hashpw(req.password.encode("utf-8"), bcrypt.gensalt(auth.bcrypt_rounds))
        user_id = new_id()
        now = now_iso()
        try:
            with self._store.transaction() as txn:
                repo = UserRepository(txn.conn)
                if repo.find_by_email(req.email) is not None:
                    return fail(op, CONFLICT, EMAIL_TAKEN)
                repo.insert(
                    {
                        "id": user_id,
                        "email": req.email,
                        "password_hash": hashed.decode("utf-8"),
                        "first_name": req.first_name,
                        "last_name": req.last_name,
                        "is_admin": req.is_admin,
                        "is_active": True,
                        "created_at": now,
                        "updated_at": now,
                    }
                )
                user = repo.get(user_id)
        except SQLAlchemyError as exc:
            return self._store_failure(op, exc, integrity_message=EMAIL_TAKEN)

        assert user is not None
        warnings: list[str] = []
        self._after_commit(
            entity_type="user",
            entity_id=user_id,
            action="create",
            actor=user_id,
            warnings=warnings,
            new_values=_public(user),
        )
        return ServiceResult(ok=True, op=op, data=_public(user), warnings=warnings)

    @traced
    def login(self, email: str, password: str) -> ServiceResult:
        """Check credentials and issue a signed token."""
        op = "login"
        with self._store.read() as conn:
            user = UserRepository(conn).find_by_email(email)
        if user is None or not user["is_active"]:
            return fail(op, AUTHENTICATION_FAILED, BAD_CREDENTIALS)
        if not bcrypt.checkpw(password.encode("utf-8"), user["password_hash"].encode("utf-8")):
            return fail(op, AUTHENTICATION_FAILED, BAD_CREDENTIALS)

        now = now_iso()
        try:
            with self._store.transaction() as txn:
                UserRepository(txn.conn).update(
                    user["id"], {"last_login_at": now, "updated_at": now}
                )
        except SQLAlchemyError as exc:
            return self._store_failure(op, exc)

        token, expires_at = self.issue_token(user)
        user = {**user, "last_login_at": now}
        return ServiceResult(
            ok=True,
            op=op,
            data={"token": token, "expires_at": expires_at, "user": _public(user)},
        )

    def issue_token(self, user: dict[str, Any]) -> tuple[str, str]:
        """Sign a token for *user*. Returns ``(token, expires_at_iso)``."""
        auth = self._store.settings.auth
        issued = datetime.now(UTC)
        expires = issued + timedelta(hours=auth.jwt_expiration_hours)
        payload = {
            "sub": user["id"],
            "email": user["email"],
            "first_name": user["first_name"],
            "last_name": user["last_name"],
            "is_admin": bool(user["is_admin"]),
            "iat": int(issued.timestamp()),
            "exp": int(expires.timestamp()),
        }
        token = jwt.encode(payload, auth.jwt_secret, algorithm=auth.jwt_algorithm)
        return token, expires.isoformat()

    @traced
    def verify(self, token: str | None) -> ServiceResult:
        op = "verify_token"
        if not token:
            return fail(op, AUTHENTICATION_FAILED, "Authentication token is missing")
        auth = self._store.settings.auth
        try:
            claims = jwt.decode(token, auth.jwt_secret, algorithms=[auth.jwt_algorithm])
        except jwt.ExpiredSignatureError:
            return fail(op, AUTHENTICATION_FAILED, "Token has expired")
        except jwt.PyJWTError as exc:
            logger.debug("Token rejected: %s", exc)
            return fail(op, AUTHENTICATION_FAILED, "Invalid token")

        try:
            identity = Identity(
                user_id=claims["sub"],
                email=claims["email"],
                first_name=claims["first_name"],
                last_name=claims["last_name"],
                is_admin=bool(claims.get("is_admin", False)),
            )
        except KeyError as exc:
            return fail(op, AUTHENTICATION_FAILED, f"Invalid token: missing claim {exc}")
        return ServiceResult(ok=True, op=op, data=identity.model_dump())

    @traced
    def me(self, token: str | None) -> ServiceResult:
        result = self.verify(token)
        return result.model_copy(update={"op": "me"})

    @staticmethod
    def require_admin(identity: Identity) -> ServiceResult:
        op = "require_admin"
        if not identity.is_admin:
            return fail(op, FORBIDDEN, "Admin privileges required")
        return ServiceResult(ok=True, op=op, data=identity.model_dump())

    @traced
    def count_users(self) -> ServiceResult:
        """Number of registered accounts (zero means the deployment is unclaimed)."""
        with self._store.read() as conn:
            total = UserRepository(conn).count_live()
        return ServiceResult(ok=True, op="count_users", data={"count": total})
