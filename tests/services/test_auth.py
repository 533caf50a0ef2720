"""Tests for AuthService — registration, login, and token verification."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import jwt
import pytest

from cmdbctl.infrastructure.repositories import UserRepository
from cmdbctl.infrastructure.store import Store
from cmdbctl.services.auth import AuthService, Identity
from cmdbctl.services.result import AUTHENTICATION_FAILED, CONFLICT, FORBIDDEN, VALIDATION_FAILED
from tests.conftest import PASSWORD, register_user


class TestRegister:
    def test_returns_user_without_hash(self, store: Store) -> None:
        user = register_user(store, "Ada@Example.com")
        assert user["email"] == "ada@example.com"
        assert "password_hash" not in user
        assert user["is_admin"] is False
        assert user["is_active"] is True

    def test_stores_bcrypt_hash(self, store: Store) -> None:
        register_user(store, "ada@example.com")
        with store.read() as conn:
            row = UserRepository(conn).find_by_email("ada@example.com")
        assert row["password_hash"].startswith("$2")
        assert PASSWORD not in row["password_hash"]

    def test_duplicate_email_any_case(self, store: Store) -> None:
        register_user(store, "ada@example.com")
        result = AuthService(store).register("ADA@example.com", PASSWORD, "A", "L")
        assert result.error.code == CONFLICT
        assert result.error.message == "User with this email already exists"

    def test_weak_password_lists_every_problem(self, store: Store) -> None:
        result = AuthService(store).register("ada@example.com", "short", "Ada", "Lovelace")
        assert result.error.code == VALIDATION_FAILED
        assert len(result.error.detail["errors"]) == 4
        assert result.error.message == "; ".join(result.error.detail["errors"])

    def test_invalid_email(self, store: Store) -> None:
        result = AuthService(store).register("not-an-email", PASSWORD, "Ada", "Lovelace")
        assert result.error.code == VALIDATION_FAILED

    def test_count_users(self, store: Store) -> None:
        svc = AuthService(store)
        assert svc.count_users().data["count"] == 0
        register_user(store, "ada@example.com", is_admin=True)
        assert svc.count_users().data["count"] == 1


class TestLogin:
    def test_success(self, store: Store) -> None:
        user = register_user(store, "ada@example.com", is_admin=True)
        result = AuthService(store).login("ada@example.com", PASSWORD)
        assert result.ok
        assert result.data["user"]["id"] == user["id"]
        assert result.data["user"]["last_login_at"] is not None
        assert "password_hash" not in result.data["user"]

        claims = jwt.decode(result.data["token"], "test-secret", algorithms=["HS256"])
        assert claims["sub"] == user["id"]
        assert claims["is_admin"] is True
        assert claims["exp"] - claims["iat"] == 24 * 3600

    def test_email_case_insensitive(self, store: Store) -> None:
        register_user(store, "ada@example.com")
        assert AuthService(store).login("ADA@EXAMPLE.COM", PASSWORD).ok

    @pytest.mark.parametrize(
        ("email", "password"),
        [("ada@example.com", "Wrong!pass1"), ("nobody@example.com", PASSWORD)],
    )
    def test_bad_credentials_are_indistinguishable(
        self, store: Store, email: str, password: str
    ) -> None:
        register_user(store, "ada@example.com")
        result = AuthService(store).login(email, password)
        assert result.error.code == AUTHENTICATION_FAILED
        assert result.error.message == "Invalid email or password"


class TestVerify:
    def test_round_trip(self, store: Store) -> None:
        register_user(store, "ada@example.com")
        svc = AuthService(store)
        token = svc.login("ada@example.com", PASSWORD).data["token"]
        identity = svc.verify(token)
        assert identity.ok
        assert identity.data["email"] == "ada@example.com"
        assert identity.data["first_name"] == "Ada"

    def test_missing(self, store: Store) -> None:
        result = AuthService(store).verify(None)
        assert result.error.message == "Authentication token is missing"

    def test_expired(self, store: Store) -> None:
        past = datetime.now(UTC) - timedelta(hours=2)
        token = jwt.encode(
            {
                "sub": "u1",
                "email": "a@b.co",
                "first_name": "A",
                "last_name": "B",
                "iat": int(past.timestamp()),
                "exp": int((past + timedelta(hours=1)).timestamp()),
            },
            "test-secret",
            algorithm="HS256",
        )
        result = AuthService(store).verify(token)
        assert result.error.code == AUTHENTICATION_FAILED
        assert result.error.message == "Token has expired"

    def test_wrong_secret(self, store: Store) -> None:
        token = jwt.encode({"sub": "u1"}, "another-secret-entirely", algorithm="HS256")
        assert AuthService(store).verify(token).error.message == "Invalid token"

    def test_garbage(self, store: Store) -> None:
        assert AuthService(store).verify("not.a.token").error.message == "Invalid token"

    def test_missing_claims(self, store: Store) -> None:
        token = jwt.encode({"sub": "u1"}, "test-secret", algorithm="HS256")
        result = AuthService(store).verify(token)
        assert result.error.code == AUTHENTICATION_FAILED
        assert "missing claim" in result.error.message

    def test_me(self, store: Store) -> None:
        register_user(store, "ada@example.com")
        svc = AuthService(store)
        token = svc.login("ada@example.com", PASSWORD).data["token"]
        result = svc.me(token)
        assert result.op == "me"
        assert result.data["email"] == "ada@example.com"


class TestRequireAdmin:
    def test_admin(self) -> None:
        identity = Identity(
            user_id="u", email="a@b.co", first_name="A", last_name="B", is_admin=True
        )
        assert AuthService.require_admin(identity).ok

    def test_non_admin(self) -> None:
        identity = Identity(user_id="u", email="a@b.co", first_name="A", last_name="B")
        result = AuthService.require_admin(identity)
        assert result.error.code == FORBIDDEN
        assert result.error.message == "Admin privileges required"
