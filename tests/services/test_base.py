"""Tests for BaseService helpers — parsing, paging, and store failures."""

from __future__ import annotations

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from cmdbctl.domain.models import CITypeCreate
from cmdbctl.infrastructure.store import Store
from cmdbctl.services.base import BaseService, fail
from cmdbctl.services.result import CONFLICT, INTERNAL_ERROR, VALIDATION_FAILED, ServiceResult


class TestFail:
    def test_builds_failed_result(self) -> None:
        result = fail("op", "CODE", "message", key="value")
        assert result.ok is False
        assert result.error is not None
        assert result.error.code == "CODE"
        assert result.error.detail == {"key": "value"}


class TestParse:
    def test_valid(self) -> None:
        req = BaseService._parse("op", CITypeCreate, name="Server")
        assert isinstance(req, CITypeCreate)

    def test_invalid(self) -> None:
        req = BaseService._parse("op", CITypeCreate, name="")
        assert isinstance(req, ServiceResult)
        assert req.error is not None
        assert req.error.code == VALIDATION_FAILED
        assert req.error.message.startswith("name:")


class TestCheckPage:
    def test_within_bounds(self, store: Store) -> None:
        assert BaseService(store)._check_page("op", 10, 0) is None

    def test_out_of_bounds(self, store: Store) -> None:
        bad = BaseService(store)._check_page("op", 500, 0)
        assert bad is not None
        assert bad.error is not None
        assert bad.error.message == "Limit must be between 1 and 100"
        assert bad.error.detail == {"limit": 500, "offset": 0}


class TestStoreFailure:
    def test_integrity_error_is_conflict(self) -> None:
        exc = IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed"))
        result = BaseService._store_failure("op", exc, integrity_message="Already exists")
        assert result.error is not None
        assert result.error.code == CONFLICT
        assert result.error.message == "Already exists"

    def test_integrity_code_override(self) -> None:
        exc = IntegrityError("INSERT", {}, Exception("UNIQUE"))
        result = BaseService._store_failure("op", exc, integrity_code=VALIDATION_FAILED)
        assert result.error is not None
        assert result.error.code == VALIDATION_FAILED

    def test_other_errors_are_internal(self) -> None:
        exc = OperationalError("SELECT", {}, Exception("database is locked"))
        result = BaseService._store_failure("op", exc)
        assert result.error is not None
        assert result.error.code == INTERNAL_ERROR
        assert "database is locked" in result.error.detail["exception"]


class TestAfterCommit:
    def test_audit_failure_becomes_warning(self, store: Store) -> None:
        warnings: list[str] = []
        BaseService(store)._after_commit(
            entity_type="",
            entity_id="x",
            action="create",
            actor="tester",
            warnings=warnings,
        )
        assert len(warnings) == 1
        assert warnings[0].startswith("Audit recording failed")

    def test_dispatch_failure_becomes_warning(
        self, store: Store, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        class _Boom:
            def dispatch(self, hook_name, payload):
                raise RuntimeError("bus down")

            def shutdown(self):
                return None

        monkeypatch.setattr(store, "_event_bus", _Boom())
        warnings: list[str] = []
        BaseService(store)._dispatch_event("post_mutation", {}, warnings)
        assert warnings == ["Event dispatch failed for post_mutation"]
