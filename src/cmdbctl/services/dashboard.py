"""DashboardService — headline counts across the catalog."""

from __future__ import annotations

from cmdbctl.infrastructure.repositories import (
    CIAssetRepository,
    CITypeRepository,
    RelationshipRepository,
    RelationshipTypeRepository,
    ValuationRepository,
)
from cmdbctl.services.base import BaseService
from cmdbctl.services.result import ServiceResult
from cmdbctl.services.telemetry import traced


class DashboardService(BaseService):
    @traced
    def stats(self) -> ServiceResult:
        """Live counts per entity kind plus the total current valuation."""
        with self._store.read() as conn:
            data = {
                "ci_types": CITypeRepository(conn).count_live(),
                "ci_assets": CIAssetRepository(conn).count_live(),
                "relationship_types": RelationshipTypeRepository(conn).count_live(),
                "relationships": RelationshipRepository(conn).count_live(),
                "total_valuation": ValuationRepository(conn).total_current_value(),
            }
        return ServiceResult(ok=True, op="dashboard_stats", data=data)
