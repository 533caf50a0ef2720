"""ValuationService — asset valuations and their amortization schedules.

A valuation is written together with its full year-by-year schedule in
one transaction. ``current_value`` is the book value as of a given day;
:meth:`ValuationService.recalculate_all` refreshes it for every live
asset and is what the daily amortization job runs.
"""

from __future__ import annotations

import logging
from datetime import UTC, date, datetime

from sqlalchemy.exc import SQLAlchemyError

from cmdbctl.domain.depreciation import (
    UnsupportedMethodError,
    build_schedule,
    calculate_depreciation,
    years_elapsed,
)
from cmdbctl.domain.models import ValuationCreate
from cmdbctl.infrastructure.repositories import (
    AmortizationRepository,
    CIAssetRepository,
    ValuationRepository,
)
from cmdbctl.services._helpers import SYSTEM_ACTOR, new_id, now_iso
from cmdbctl.services.base import BaseService, fail
from cmdbctl.services.result import NOT_FOUND, VALIDATION_FAILED, ServiceResult
from cmdbctl.services.telemetry import trace_span, traced

logger = logging.getLogger(__name__)


class ValuationService(BaseService):
    """Create, read, and depreciate asset valuations."""

    @traced
    def create_valuation(
        self,
        ci_asset_id: str,
        initial_value: float,
        useful_life_years: int,
        *,
        actor: str,
        depreciation_method: str = "straight_line",
        purchase_date: date | str | None = None,
    ) -> ServiceResult:
        """Record a valuation and generate its schedule.

        VALIDATE → SCHEDULE → PERSIST → AUDIT → EVENT
        """
        op = "create_valuation"
        warnings: list[str] = []

        # ── VALIDATE ──────────────────────────────────────────────
        with trace_span("validate"):
            req = self._parse(
                op,
                ValuationCreate,
                ci_asset_id=ci_asset_id,
                initial_value=initial_value,
                useful_life_years=useful_life_years,
                depreciation_method=depreciation_method,
                purchase_date=purchase_date,
            )
            if isinstance(req, ServiceResult):
                return req
            purchased = req.purchase_date or datetime.now(UTC).date()

        # ── SCHEDULE ──────────────────────────────────────────────
        with trace_span("schedule"):
            try:
                entries = build_schedule(
                    req.initial_value, req.useful_life_years, req.depreciation_method
                )
                current = calculate_depreciation(
                    req.initial_value,
                    req.useful_life_years,
                    years_elapsed(purchased, datetime.now(UTC).date()),
                    req.depreciation_method,
                )
            except UnsupportedMethodError as exc:
                return fail(op, VALIDATION_FAILED, str(exc))

        # ── PERSIST ───────────────────────────────────────────────
        valuation_id = new_id()
        now = now_iso()
        try:
            with trace_span("persist"), self._store.transaction() as txn:
                if CIAssetRepository(txn.conn).get_live(req.ci_asset_id) is None:
                    return fail(op, NOT_FOUND, "CI asset not found")
                ValuationRepository(txn.conn).insert(
                    {
                        "id": valuation_id,
                        "ci_asset_id": req.ci_asset_id,
                        "initial_value": req.initial_value,
                        "current_value": current,
                        "useful_life_years": req.useful_life_years,
                        "depreciation_method": str(req.depreciation_method),
                        "purchase_date": purchased.isoformat(),
                        "created_by": actor,
                        "created_at": now,
                        "updated_at": now,
                    }
                )
                AmortizationRepository(txn.conn).replace_for_valuation(
                    valuation_id,
                    [
                        {
                            "id": new_id(),
                            "valuation_id": valuation_id,
                            "year": e.year,
                            "opening_value": e.opening_value,
                            "depreciation_amount": e.depreciation_amount,
                            "closing_value": e.closing_value,
                            "created_by": actor,
                            "created_at": now,
                        }
                        for e in entries
                    ],
                )
                record = ValuationRepository(txn.conn).get(valuation_id)
        except SQLAlchemyError as exc:
            return self._store_failure(op, exc)

        assert record is not None
        self._after_commit(
            entity_type="valuation",
            entity_id=valuation_id,
            action="create",
            actor=actor,
            warnings=warnings,
            new_values=record,
        )
        return ServiceResult(
            ok=True,
            op=op,
            data={**record, "schedule_years": len(entries)},
            warnings=warnings,
        )

    @traced
    def get_valuation(self, ci_asset_id: str) -> ServiceResult:
        """Latest valuation recorded for an asset."""
        op = "get_valuation"
        with self._store.read() as conn:
            record = ValuationRepository(conn).latest_for_asset(ci_asset_id)
        if record is None:
            return fail(op, NOT_FOUND, "Valuation not found")
        return ServiceResult(ok=True, op=op, data=record)

    @traced
    def list_valuations(self, *, limit: int = 50, offset: int = 0) -> ServiceResult:
        op = "list_valuations"
        if (bad := self._check_page(op, limit, offset)) is not None:
            return bad
        with self._store.read() as conn:
            items = ValuationRepository(conn).list_page(limit=limit, offset=offset)
        return ServiceResult(
            ok=True,
            op=op,
            data={"items": items, "count": len(items), "limit": limit, "offset": offset},
        )

    @traced
    def schedule(self, valuation_id: str) -> ServiceResult:
        op = "valuation_schedule"
        with self._store.read() as conn:
            record = ValuationRepository(conn).get(valuation_id)
            if record is None:
                return fail(op, NOT_FOUND, "Valuation not found")
            entries = AmortizationRepository(conn).for_valuation(valuation_id)
        return ServiceResult(
            ok=True,
            op=op,
            data={"valuation_id": valuation_id, "items": entries, "count": len(entries)},
        )

    @traced
    def recalculate_all(self, *, as_of: date | None = None) -> ServiceResult:
        """Refresh ``current_value`` of every live valuation as of *as_of*.

        A record whose method is no longer recognised is skipped with a
        warning rather than failing the whole run.
        """
        op = "recalculate_valuations"
        day = as_of or datetime.now(UTC).date()
        warnings: list[str] = []
        updated = 0
        unchanged = 0
        now = now_iso()
        try:
            with self._store.transaction() as txn:
                repo = ValuationRepository(txn.conn)
                for record in repo.all_live():
                    try:
                        value = calculate_depreciation(
                            record["initial_value"],
                            record["useful_life_years"],
                            years_elapsed(date.fromisoformat(record["purchase_date"]), day),
                            record["depreciation_method"],
                        )
                    except ValueError as exc:
                        warnings.append(f"Valuation {record['id']} skipped: {exc}")
                        continue
                    if value == record["current_value"]:
                        unchanged += 1
                        continue
                    repo.update(record["id"], {"current_value": value, "updated_at": now})
                    updated += 1
        except SQLAlchemyError as exc:
            return self._store_failure(op, exc)

        logger.info("Recalculated valuations as of %s: %d updated", day, updated)
        if updated:
            self._dispatch_event(
                "post_mutation",
                {
                    "entity_type": "valuation",
                    "entity_id": "*",
                    "action": "recalculate",
                    "actor": SYSTEM_ACTOR,
                },
                warnings,
            )
        return ServiceResult(
            ok=True,
            op=op,
            data={"as_of": day.isoformat(), "updated": updated, "unchanged": unchanged},
            warnings=warnings,
        )
