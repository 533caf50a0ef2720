"""Table repositories bound to a caller-owned connection."""

from cmdbctl.infrastructure.repositories.audit import AuditRepository
from cmdbctl.infrastructure.repositories.base import TableRepository
from cmdbctl.infrastructure.repositories.catalog import CIAssetRepository, CITypeRepository
from cmdbctl.infrastructure.repositories.lifecycle import (
    CITypeLifecycleRepository,
    LifecycleStateRepository,
    LifecycleTransitionRepository,
    LifecycleTypeRepository,
)
from cmdbctl.infrastructure.repositories.relationships import (
    RelationshipRepository,
    RelationshipTypeRepository,
)
from cmdbctl.infrastructure.repositories.users import UserRepository
from cmdbctl.infrastructure.repositories.valuation import (
    AmortizationRepository,
    ValuationRepository,
)

__all__ = [
    "AmortizationRepository",
    "AuditRepository",
    "CIAssetRepository",
    "CITypeLifecycleRepository",
    "CITypeRepository",
    "LifecycleStateRepository",
    "LifecycleTransitionRepository",
    "LifecycleTypeRepository",
    "RelationshipRepository",
    "RelationshipTypeRepository",
    "TableRepository",
    "UserRepository",
    "ValuationRepository",
]
