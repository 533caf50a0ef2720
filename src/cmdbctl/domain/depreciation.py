"""Depreciation methods and amortization schedules.

Two methods are supported:
- Straight line: equal share of the initial value per year, zero at end of life.
- Double declining balance: ``2 / life`` of the remaining value per year,
  applied for at most ``life - 1`` years.

Arithmetic uses :class:`~decimal.Decimal` and rounds to cents at the edge.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from enum import StrEnum

_CENT = Decimal("0.01")


class DepreciationMethod(StrEnum):
    STRAIGHT_LINE = "straight_line"
    DOUBLE_DECLINING = "double_declining"


class UnsupportedMethodError(ValueError):
    """Raised for a depreciation method outside :class:`DepreciationMethod`."""


@dataclass(frozen=True)
class ScheduleEntry:
    """One year of an amortization schedule."""

    year: int
    opening_value: float
    depreciation_amount: float
    closing_value: float


def _to_cents(value: Decimal) -> float:
    return float(value.quantize(_CENT, rounding=ROUND_HALF_UP))


def _value_after(initial: Decimal, life: int, years: int, method: str) -> Decimal:
    if method == DepreciationMethod.STRAIGHT_LINE:
        if years >= life:
            return Decimal(0)
        current = initial - initial / Decimal(life) * Decimal(years)
    elif method == DepreciationMethod.DOUBLE_DECLINING:
        rate = Decimal(2) / Decimal(life)
        current = initial
        for _ in range(min(years, life - 1)):
            current -= current * rate
    else:
        msg = f"Unsupported depreciation method: {method}"
        raise UnsupportedMethodError(msg)
    return max(current, Decimal(0))


def calculate_depreciation(
    initial_value: float,
    useful_life_years: int,
    years_elapsed: int,
    method: str,
) -> float:
    """Book value after *years_elapsed* full years, rounded to cents.

    Raises:
        UnsupportedMethodError: *method* is not a known depreciation method.
    """
    initial = Decimal(str(initial_value))
    years = max(years_elapsed, 0)
    return _to_cents(_value_after(initial, useful_life_years, years, method))


def build_schedule(
    initial_value: float,
    useful_life_years: int,
    method: str,
) -> list[ScheduleEntry]:
    """Year-by-year schedule from year 1 through the end of useful life."""
    initial = Decimal(str(initial_value))
    entries: list[ScheduleEntry] = []
    opening = initial
    for year in range(1, useful_life_years + 1):
        closing = _value_after(initial, useful_life_years, year, method)
        entries.append(
            ScheduleEntry(
                year=year,
                opening_value=_to_cents(opening),
                depreciation_amount=_to_cents(opening - closing),
                closing_value=_to_cents(closing),
            )
        )
        opening = closing
    return entries


def years_elapsed(purchase_date: date, as_of: date) -> int:
    """Whole years between *purchase_date* and *as_of* (anniversary based)."""
    years = as_of.year - purchase_date.year
    if (as_of.month, as_of.day) < (purchase_date.month, purchase_date.day):
        years -= 1
    return max(years, 0)
