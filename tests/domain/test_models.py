"""Tests for request models and validation message flattening."""

from __future__ import annotations

from datetime import date

import pytest
from pydantic import ValidationError

from cmdbctl.domain.depreciation import DepreciationMethod
from cmdbctl.domain.lifecycle import DEFAULT_COLOR
from cmdbctl.domain.models import (
    CITypeCreate,
    LifecycleStateCreate,
    LifecycleTypeCreate,
    UserRegister,
    ValuationCreate,
    validation_message,
)


class TestCITypeCreate:
    def test_defaults(self) -> None:
        req = CITypeCreate(name="Server")
        assert req.attributes == {}
        assert req.description is None

    def test_empty_name_rejected(self) -> None:
        with pytest.raises(ValidationError):
            CITypeCreate(name="")

    def test_long_name_rejected(self) -> None:
        with pytest.raises(ValidationError):
            CITypeCreate(name="x" * 256)

    def test_unknown_field_rejected(self) -> None:
        with pytest.raises(ValidationError):
            CITypeCreate(name="Server", colour="red")  # type: ignore[call-arg]


class TestLifecycleModels:
    def test_default_color(self) -> None:
        assert LifecycleTypeCreate(name="Hardware").default_color == DEFAULT_COLOR

    def test_bad_color(self) -> None:
        with pytest.raises(ValidationError):
            LifecycleTypeCreate(name="Hardware", default_color="red")

    def test_negative_order_index(self) -> None:
        with pytest.raises(ValidationError):
            LifecycleStateCreate(lifecycle_type_id="lt", name="Active", order_index=-1)


class TestUserRegister:
    def test_email_lowercased(self) -> None:
        req = UserRegister(
            email="Ops@Example.COM", password="x", first_name="A", last_name="B"
        )
        assert req.email == "ops@example.com"

    def test_invalid_email(self) -> None:
        with pytest.raises(ValidationError, match="invalid email address"):
            UserRegister(email="not-an-email", password="x", first_name="A", last_name="B")


class TestValuationCreate:
    def test_defaults(self) -> None:
        req = ValuationCreate(ci_asset_id="a", initial_value=100, useful_life_years=3)
        assert req.depreciation_method is DepreciationMethod.STRAIGHT_LINE
        assert req.purchase_date is None

    def test_parses_iso_date(self) -> None:
        req = ValuationCreate(
            ci_asset_id="a", initial_value=100, useful_life_years=3, purchase_date="2024-02-29"
        )
        assert req.purchase_date == date(2024, 2, 29)

    @pytest.mark.parametrize(
        "values",
        [
            {"initial_value": 0, "useful_life_years": 3},
            {"initial_value": 100, "useful_life_years": 0},
            {"initial_value": 100, "useful_life_years": 101},
            {"initial_value": 100, "useful_life_years": 3, "depreciation_method": "magic"},
        ],
    )
    def test_rejects(self, values: dict) -> None:
        with pytest.raises(ValidationError):
            ValuationCreate(ci_asset_id="a", **values)


class TestValidationMessage:
    def test_joins_field_errors(self) -> None:
        with pytest.raises(ValidationError) as info:
            CITypeCreate(name="", description="x" * 1001)
        message = validation_message(info.value)
        assert message.startswith("name: ")
        assert "; description: " in message
