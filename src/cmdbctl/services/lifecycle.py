"""LifecycleService — configurable lifecycle state machines per CI type.

A lifecycle type holds ordered states and named transitions between
them; CI types are mapped to one or more lifecycle types. Rule checks
(unique names, unique order, single initial state) live in
:mod:`cmdbctl.domain.lifecycle`.

Every rule violation here, including a uniqueness backstop firing under
a race, is reported as VALIDATION_FAILED.
"""

from __future__ import annotations

from sqlalchemy.exc import SQLAlchemyError

from cmdbctl.domain.lifecycle import DEFAULT_COLOR, state_conflict, turns_initial_on
from cmdbctl.domain.models import (
    CITypeLifecycleCreate,
    LifecycleStateCreate,
    LifecycleStateUpdate,
    LifecycleTransitionCreate,
    LifecycleTypeCreate,
    LifecycleTypeUpdate,
)
from cmdbctl.infrastructure.repositories import (
    CITypeLifecycleRepository,
    CITypeRepository,
    LifecycleStateRepository,
    LifecycleTransitionRepository,
    LifecycleTypeRepository,
)
from cmdbctl.services._helpers import SYSTEM_ACTOR, new_id, now_iso
from cmdbctl.services.base import BaseService, fail
from cmdbctl.services.result import NOT_FOUND, VALIDATION_FAILED, ServiceResult
from cmdbctl.services.telemetry import traced

TYPE_NAME_TAKEN = "Lifecycle type with this name already exists"
TYPE_NOT_FOUND = "Lifecycle type not found"
STATE_NOT_FOUND = "Lifecycle state not found"
TRANSITION_NOT_FOUND = "Lifecycle transition not found"
STATE_IN_USE = "Cannot delete state that is used in transitions"
STATE_OUTSIDE_TYPE = "State does not belong to this lifecycle type"


class LifecycleService(BaseService):
    """Lifecycle types, states, transitions, and CI-type mappings."""

    # ------------------------------------------------------------------
    # Lifecycle types
    # ------------------------------------------------------------------

    @traced
    def create_type(
        self,
        name: str,
        *,
        actor: str,
        description: str | None = None,
        default_color: str = DEFAULT_COLOR,
    ) -> ServiceResult:
        op = "create_lifecycle_type"
        warnings: list[str] = []
        req = self._parse(
            op,
            LifecycleTypeCreate,
            name=name,
            description=description,
            default_color=default_color,
        )
        if isinstance(req, ServiceResult):
            return req

        type_id = new_id()
        now = now_iso()
        try:
            with self._store.transaction() as txn:
                repo = LifecycleTypeRepository(txn.conn)
                if repo.find_live_by_name(req.name) is not None:
                    return fail(op, VALIDATION_FAILED, TYPE_NAME_TAKEN, name=req.name)
                repo.insert(
                    {
                        "id": type_id,
                        **req.model_dump(),
                        "is_active": True,
                        "created_by": actor,
                        "created_at": now,
                        "updated_at": now,
                    }
                )
                created = repo.get(type_id)
        except SQLAlchemyError as exc:
            return self._lifecycle_failure(op, exc, TYPE_NAME_TAKEN)

        assert created is not None
        self._after_commit(
            entity_type="lifecycle_type",
            entity_id=type_id,
            action="create",
            actor=actor,
            warnings=warnings,
            new_values=created,
        )
        return ServiceResult(ok=True, op=op, data=created, warnings=warnings)

    @traced
    def get_type(self, type_id: str) -> ServiceResult:
        """Type details with states (by order) and transitions (by name)."""
        op = "get_lifecycle_type"
        with self._store.read() as conn:
            row = LifecycleTypeRepository(conn).get_live(type_id)
            if row is None:
                return fail(op, NOT_FOUND, TYPE_NOT_FOUND)
            states = LifecycleStateRepository(conn).for_type(type_id)
            transitions = LifecycleTransitionRepository(conn).for_type(type_id)
        return ServiceResult(
            ok=True, op=op, data={**row, "states": states, "transitions": transitions}
        )

    @traced
    def list_types(self, *, include_inactive: bool = False) -> ServiceResult:
        with self._store.read() as conn:
            items = LifecycleTypeRepository(conn).list_summaries(include_inactive=include_inactive)
        return ServiceResult(
            ok=True, op="list_lifecycle_types", data={"items": items, "count": len(items)}
        )

    @traced
    def update_type(
        self,
        type_id: str,
        *,
        actor: str,
        name: str | None = None,
        description: str | None = None,
        default_color: str | None = None,
        is_active: bool | None = None,
    ) -> ServiceResult:
        op = "update_lifecycle_type"
        warnings: list[str] = []
        req = self._parse(
            op,
            LifecycleTypeUpdate,
            name=name,
            description=description,
            default_color=default_color,
            is_active=is_active,
        )
        if isinstance(req, ServiceResult):
            return req
        changes = req.model_dump(exclude_none=True)

        try:
            with self._store.transaction() as txn:
                repo = LifecycleTypeRepository(txn.conn)
                before = repo.get_live(type_id)
                if before is None:
                    return fail(op, NOT_FOUND, TYPE_NOT_FOUND)
                if req.name is not None and repo.find_live_by_name(
                    req.name, exclude_id=type_id
                ):
                    return fail(op, VALIDATION_FAILED, TYPE_NAME_TAKEN, name=req.name)
                repo.update(type_id, {**changes, "updated_at": now_iso()})
                after = repo.get(type_id)
        except SQLAlchemyError as exc:
            return self._lifecycle_failure(op, exc, TYPE_NAME_TAKEN)

        assert after is not None
        self._after_commit(
            entity_type="lifecycle_type",
            entity_id=type_id,
            action="update",
            actor=actor,
            warnings=warnings,
            old_values=before,
            new_values=after,
        )
        return ServiceResult(ok=True, op=op, data=after, warnings=warnings)

    @traced
    def delete_type(self, type_id: str, *, actor: str) -> ServiceResult:
        """Soft-delete a lifecycle type. CI-type mappings are left in place."""
        op = "delete_lifecycle_type"
        warnings: list[str] = []
        try:
            with self._store.transaction() as txn:
                repo = LifecycleTypeRepository(txn.conn)
                before = repo.get_live(type_id)
                if before is None or not repo.soft_delete(type_id, now=now_iso()):
                    return fail(op, NOT_FOUND, TYPE_NOT_FOUND)
        except SQLAlchemyError as exc:
            return self._store_failure(op, exc)

        self._after_commit(
            entity_type="lifecycle_type",
            entity_id=type_id,
            action="delete",
            actor=actor,
            warnings=warnings,
            old_values=before,
        )
        return ServiceResult(ok=True, op=op, data={"id": type_id}, warnings=warnings)

    # ------------------------------------------------------------------
    # States
    # ------------------------------------------------------------------

    @traced
    def create_state(
        self,
        lifecycle_type_id: str,
        name: str,
        order_index: int,
        *,
        actor: str,
        color: str = DEFAULT_COLOR,
        description: str | None = None,
        is_initial_state: bool = False,
        is_terminal_state: bool = False,
    ) -> ServiceResult:
        op = "create_lifecycle_state"
        warnings: list[str] = []
        req = self._parse(
            op,
            LifecycleStateCreate,
            lifecycle_type_id=lifecycle_type_id,
            name=name,
            order_index=order_index,
            color=color,
            description=description,
            is_initial_state=is_initial_state,
            is_terminal_state=is_terminal_state,
        )
        if isinstance(req, ServiceResult):
            return req

        state_id = new_id()
        now = now_iso()
        try:
            with self._store.transaction() as txn:
                if LifecycleTypeRepository(txn.conn).get_live(req.lifecycle_type_id) is None:
                    return fail(op, NOT_FOUND, TYPE_NOT_FOUND)
                repo = LifecycleStateRepository(txn.conn)
                problem = state_conflict(
                    repo.for_type(req.lifecycle_type_id),
                    name=req.name,
                    order_index=req.order_index,
                    is_initial_state=req.is_initial_state,
                )
                if problem is not None:
                    return fail(op, VALIDATION_FAILED, problem)
                repo.insert(
                    {
                        "id": state_id,
                        **req.model_dump(),
                        "created_by": actor,
                        "created_at": now,
                        "updated_at": now,
                    }
                )
                created = repo.get(state_id)
        except SQLAlchemyError as exc:
            return self._lifecycle_failure(
                op, exc, "State conflicts with an existing state in this lifecycle type"
            )

        assert created is not None
        self._after_commit(
            entity_type="lifecycle_state",
            entity_id=state_id,
            action="create",
            actor=actor,
            warnings=warnings,
            new_values=created,
        )
        return ServiceResult(ok=True, op=op, data=created, warnings=warnings)

    @traced
    def update_state(
        self,
        state_id: str,
        *,
        actor: str,
        name: str | None = None,
        description: str | None = None,
        color: str | None = None,
        order_index: int | None = None,
        is_initial_state: bool | None = None,
        is_terminal_state: bool | None = None,
    ) -> ServiceResult:
        op = "update_lifecycle_state"
        warnings: list[str] = []
        req = self._parse(
            op,
            LifecycleStateUpdate,
            name=name,
            description=description,
            color=color,
            order_index=order_index,
            is_initial_state=is_initial_state,
            is_terminal_state=is_terminal_state,
        )
        if isinstance(req, ServiceResult):
            return req
        changes = req.model_dump(exclude_none=True)

        try:
            with self._store.transaction() as txn:
                repo = LifecycleStateRepository(txn.conn)
                before = repo.get(state_id)
                if before is None:
                    return fail(op, NOT_FOUND, STATE_NOT_FOUND)
                problem = state_conflict(
                    repo.for_type(before["lifecycle_type_id"]),
                    name=req.name,
                    order_index=req.order_index,
                    is_initial_state=turns_initial_on(before, req.is_initial_state),
                    exclude_id=state_id,
                )
                if problem is not None:
                    return fail(op, VALIDATION_FAILED, problem)
                repo.update(state_id, {**changes, "updated_at": now_iso()})
                after = repo.get(state_id)
        except SQLAlchemyError as exc:
            return self._lifecycle_failure(
                op, exc, "State conflicts with an existing state in this lifecycle type"
            )

        assert after is not None
        self._after_commit(
            entity_type="lifecycle_state",
            entity_id=state_id,
            action="update",
            actor=actor,
            warnings=warnings,
            old_values=before,
            new_values=after,
        )
        return ServiceResult(ok=True, op=op, data=after, warnings=warnings)

    @traced
    def delete_state(self, state_id: str, *, actor: str = SYSTEM_ACTOR) -> ServiceResult:
        """Hard-delete a state no transition refers to."""
        op = "delete_lifecycle_state"
        warnings: list[str] = []
        try:
            with self._store.transaction() as txn:
                repo = LifecycleStateRepository(txn.conn)
                before = repo.get(state_id)
                if before is None:
                    return fail(op, NOT_FOUND, STATE_NOT_FOUND)
                in_use = LifecycleTransitionRepository(txn.conn).count_referencing(state_id)
                if in_use:
                    return fail(op, VALIDATION_FAILED, STATE_IN_USE, transitions=in_use)
                repo.delete(state_id)
        except SQLAlchemyError as exc:
            return self._lifecycle_failure(op, exc, STATE_IN_USE)

        self._after_commit(
            entity_type="lifecycle_state",
            entity_id=state_id,
            action="delete",
            actor=actor,
            warnings=warnings,
            old_values=before,
        )
        return ServiceResult(ok=True, op=op, data={"id": state_id}, warnings=warnings)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    @traced
    def create_transition(
        self,
        lifecycle_type_id: str,
        to_state_id: str,
        transition_name: str,
        *,
        actor: str,
        from_state_id: str | None = None,
        description: str | None = None,
        requires_approval: bool = False,
    ) -> ServiceResult:
        """Create a transition; ``from_state_id=None`` means "from creation"."""
        op = "create_lifecycle_transition"
        warnings: list[str] = []
        req = self._parse(
            op,
            LifecycleTransitionCreate,
            lifecycle_type_id=lifecycle_type_id,
            to_state_id=to_state_id,
            transition_name=transition_name,
            from_state_id=from_state_id,
            description=description,
            requires_approval=requires_approval,
        )
        if isinstance(req, ServiceResult):
            return req

        transition_id = new_id()
        now = now_iso()
        try:
            with self._store.transaction() as txn:
                if LifecycleTypeRepository(txn.conn).get_live(req.lifecycle_type_id) is None:
                    return fail(op, NOT_FOUND, TYPE_NOT_FOUND)
                states = LifecycleStateRepository(txn.conn)
                for ref in (req.from_state_id, req.to_state_id):
                    if ref is None:
                        continue
                    state = states.get(ref)
                    if state is None:
                        return fail(op, NOT_FOUND, STATE_NOT_FOUND, state_id=ref)
                    if state["lifecycle_type_id"] != req.lifecycle_type_id:
                        return fail(op, VALIDATION_FAILED, STATE_OUTSIDE_TYPE, state_id=ref)
                repo = LifecycleTransitionRepository(txn.conn)
                repo.insert(
                    {
                        "id": transition_id,
                        **req.model_dump(),
                        "created_by": actor,
                        "created_at": now,
                        "updated_at": now,
                    }
                )
                created = repo.get(transition_id)
        except SQLAlchemyError as exc:
            return self._lifecycle_failure(op, exc, "Transition references an invalid state")

        assert created is not None
        self._after_commit(
            entity_type="lifecycle_transition",
            entity_id=transition_id,
            action="create",
            actor=actor,
            warnings=warnings,
            new_values=created,
        )
        return ServiceResult(ok=True, op=op, data=created, warnings=warnings)

    @traced
    def delete_transition(
        self, transition_id: str, *, actor: str = SYSTEM_ACTOR
    ) -> ServiceResult:
        op = "delete_lifecycle_transition"
        warnings: list[str] = []
        try:
            with self._store.transaction() as txn:
                repo = LifecycleTransitionRepository(txn.conn)
                before = repo.get(transition_id)
                if before is None or not repo.delete(transition_id):
                    return fail(op, NOT_FOUND, TRANSITION_NOT_FOUND)
        except SQLAlchemyError as exc:
            return self._store_failure(op, exc)

        self._after_commit(
            entity_type="lifecycle_transition",
            entity_id=transition_id,
            action="delete",
            actor=actor,
            warnings=warnings,
            old_values=before,
        )
        return ServiceResult(ok=True, op=op, data={"id": transition_id}, warnings=warnings)

    @traced
    def list_transitions(self, lifecycle_type_id: str) -> ServiceResult:
        op = "list_lifecycle_transitions"
        with self._store.read() as conn:
            if LifecycleTypeRepository(conn).get_live(lifecycle_type_id) is None:
                return fail(op, NOT_FOUND, TYPE_NOT_FOUND)
            items = LifecycleTransitionRepository(conn).for_type(lifecycle_type_id)
        return ServiceResult(ok=True, op=op, data={"items": items, "count": len(items)})

    # ------------------------------------------------------------------
    # CI-type mappings
    # ------------------------------------------------------------------

    @traced
    def create_mapping(
        self,
        ci_type_id: str,
        lifecycle_type_id: str,
        *,
        actor: str,
        is_default: bool = False,
    ) -> ServiceResult:
        """Map a lifecycle type onto a CI type (upsert on the pair).

        Marking a mapping as default does not unset an earlier default.
        """
        op = "create_lifecycle_mapping"
        warnings: list[str] = []
        req = self._parse(
            op,
            CITypeLifecycleCreate,
            ci_type_id=ci_type_id,
            lifecycle_type_id=lifecycle_type_id,
            is_default=is_default,
        )
        if isinstance(req, ServiceResult):
            return req

        try:
            with self._store.transaction() as txn:
                if CITypeRepository(txn.conn).get_live(req.ci_type_id) is None:
                    return fail(op, NOT_FOUND, "CI type not found")
                if LifecycleTypeRepository(txn.conn).get_live(req.lifecycle_type_id) is None:
                    return fail(op, NOT_FOUND, TYPE_NOT_FOUND)
                mapping = CITypeLifecycleRepository(txn.conn).upsert(
                    mapping_id=new_id(),
                    ci_type_id=req.ci_type_id,
                    lifecycle_type_id=req.lifecycle_type_id,
                    is_default=req.is_default,
                    created_by=actor,
                    now=now_iso(),
                )
        except SQLAlchemyError as exc:
            return self._store_failure(op, exc)

        self._after_commit(
            entity_type="ci_type_lifecycle",
            entity_id=mapping["id"],
            action="upsert",
            actor=actor,
            warnings=warnings,
            new_values=mapping,
        )
        return ServiceResult(ok=True, op=op, data=mapping, warnings=warnings)

    @traced
    def list_for_ci_type(self, ci_type_id: str) -> ServiceResult:
        """Active lifecycle types mapped to a CI type, default first."""
        op = "list_lifecycles_for_ci_type"
        with self._store.read() as conn:
            if CITypeRepository(conn).get_live(ci_type_id) is None:
                return fail(op, NOT_FOUND, "CI type not found")
            items = LifecycleTypeRepository(conn).summaries_for_ci_type(ci_type_id)
        return ServiceResult(
            ok=True, op=op, data={"ci_type_id": ci_type_id, "items": items, "count": len(items)}
        )

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _lifecycle_failure(
        self, op: str, exc: SQLAlchemyError, message: str
    ) -> ServiceResult:
        return self._store_failure(
            op, exc, integrity_code=VALIDATION_FAILED, integrity_message=message
        )