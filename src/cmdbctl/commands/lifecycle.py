"""Command group: lifecycle definitions and their CI type mappings."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from cmdbctl.commands._base import CmdbGroup
from cmdbctl.domain.lifecycle import DEFAULT_COLOR
from cmdbctl.services.lifecycle import LifecycleService

if TYPE_CHECKING:
    from cmdbctl.commands._context import AppContext

_LIFECYCLE_EXAMPLES = """\
  cmdbctl lifecycle type-create "Hardware" --color "#2563EB"
  cmdbctl lifecycle state-create <type-id> Ordered 0 --initial
  cmdbctl lifecycle state-create <type-id> Retired 9 --terminal --color "#DC2626"
  cmdbctl lifecycle transition-create <type-id> <to-state> Retire --from-state <state>
  cmdbctl lifecycle map <ci-type-id> <type-id> --default
  cmdbctl lifecycle for-type <ci-type-id>"""


@click.group(cls=CmdbGroup, examples=_LIFECYCLE_EXAMPLES)
@click.pass_obj
def lifecycle(app: AppContext) -> None:
    """Manage lifecycle types, states, transitions, and CI type mappings."""


# ── Types ─────────────────────────────────────────────────────────────


@lifecycle.command("type-create")
@click.argument("name")
@click.option("--description", default=None)
@click.option("--color", "default_color", default=DEFAULT_COLOR, show_default=True)
@click.pass_obj
def type_create(app: AppContext, name: str, description: str | None, default_color: str) -> None:
    """Create a lifecycle type."""
    actor = app.admin_actor()
    app.emit(
        LifecycleService(app.store).create_type(
            name, actor=actor, description=description, default_color=default_color
        )
    )


@lifecycle.command("type-get")
@click.argument("type_id")
@click.pass_obj
def type_get(app: AppContext, type_id: str) -> None:
    """Show a lifecycle type with its states and transitions."""
    app.emit(LifecycleService(app.store).get_type(type_id))


@lifecycle.command("type-list")
@click.option("--all", "include_inactive", is_flag=True, help="Include inactive types.")
@click.pass_obj
def type_list(app: AppContext, include_inactive: bool) -> None:
    """List lifecycle types with state and CI type counts."""
    app.emit(LifecycleService(app.store).list_types(include_inactive=include_inactive))


@lifecycle.command("type-update")
@click.argument("type_id")
@click.option("--name", default=None)
@click.option("--description", default=None)
@click.option("--color", "default_color", default=None)
@click.option("--active/--inactive", "is_active", default=None)
@click.pass_obj
def type_update(
    app: AppContext,
    type_id: str,
    name: str | None,
    description: str | None,
    default_color: str | None,
    is_active: bool | None,
) -> None:
    """Change a lifecycle type."""
    actor = app.admin_actor()
    app.emit(
        LifecycleService(app.store).update_type(
            type_id,
            actor=actor,
            name=name,
            description=description,
            default_color=default_color,
            is_active=is_active,
        )
    )


@lifecycle.command("type-delete")
@click.argument("type_id")
@click.pass_obj
def type_delete(app: AppContext, type_id: str) -> None:
    """Soft-delete a lifecycle type."""
    actor = app.admin_actor()
    app.emit(LifecycleService(app.store).delete_type(type_id, actor=actor))


# ── States ────────────────────────────────────────────────────────────


@lifecycle.command("state-create")
@click.argument("lifecycle_type_id")
@click.argument("name")
@click.argument("order_index", type=int)
@click.option("--description", default=None)
@click.option("--color", default=DEFAULT_COLOR, show_default=True)
@click.option("--initial", "is_initial_state", is_flag=True)
@click.option("--terminal", "is_terminal_state", is_flag=True)
@click.pass_obj
def state_create(
    app: AppContext,
    lifecycle_type_id: str,
    name: str,
    order_index: int,
    description: str | None,
    color: str,
    is_initial_state: bool,
    is_terminal_state: bool,
) -> None:
    """Add a state to a lifecycle type."""
    actor = app.admin_actor()
    app.emit(
        LifecycleService(app.store).create_state(
            lifecycle_type_id,
            name,
            order_index,
            actor=actor,
            color=color,
            description=description,
            is_initial_state=is_initial_state,
            is_terminal_state=is_terminal_state,
        )
    )


@lifecycle.command("state-update")
@click.argument("state_id")
@click.option("--name", default=None)
@click.option("--description", default=None)
@click.option("--color", default=None)
@click.option("--order", "order_index", default=None, type=int)
@click.option("--initial/--not-initial", "is_initial_state", default=None)
@click.option("--terminal/--not-terminal", "is_terminal_state", default=None)
@click.pass_obj
def state_update(
    app: AppContext,
    state_id: str,
    name: str | None,
    description: str | None,
    color: str | None,
    order_index: int | None,
    is_initial_state: bool | None,
    is_terminal_state: bool | None,
) -> None:
    """Change a lifecycle state."""
    actor = app.admin_actor()
    app.emit(
        LifecycleService(app.store).update_state(
            state_id,
            actor=actor,
            name=name,
            description=description,
            color=color,
            order_index=order_index,
            is_initial_state=is_initial_state,
            is_terminal_state=is_terminal_state,
        )
    )


@lifecycle.command("state-delete")
@click.argument("state_id")
@click.pass_obj
def state_delete(app: AppContext, state_id: str) -> None:
    """Delete a state no transition refers to."""
    actor = app.admin_actor()
    app.emit(LifecycleService(app.store).delete_state(state_id, actor=actor))


# ── Transitions ───────────────────────────────────────────────────────


@lifecycle.command("transition-create")
@click.argument("lifecycle_type_id")
@click.argument("to_state_id")
@click.argument("transition_name")
@click.option("--from-state", "from_state_id", default=None, help="Omit for entry transitions.")
@click.option("--description", default=None)
@click.option("--requires-approval", is_flag=True)
@click.pass_obj
def transition_create(
    app: AppContext,
    lifecycle_type_id: str,
    to_state_id: str,
    transition_name: str,
    from_state_id: str | None,
    description: str | None,
    requires_approval: bool,
) -> None:
    """Add a transition between two states of one lifecycle type."""
    actor = app.admin_actor()
    app.emit(
        LifecycleService(app.store).create_transition(
            lifecycle_type_id,
            to_state_id,
            transition_name,
            actor=actor,
            from_state_id=from_state_id,
            description=description,
            requires_approval=requires_approval,
        )
    )


@lifecycle.command("transition-list")
@click.argument("lifecycle_type_id")
@click.pass_obj
def transition_list(app: AppContext, lifecycle_type_id: str) -> None:
    """List a lifecycle type's transitions by name."""
    app.emit(LifecycleService(app.store).list_transitions(lifecycle_type_id))


@lifecycle.command("transition-delete")
@click.argument("transition_id")
@click.pass_obj
def transition_delete(app: AppContext, transition_id: str) -> None:
    """Delete a transition."""
    actor = app.admin_actor()
    app.emit(LifecycleService(app.store).delete_transition(transition_id, actor=actor))


# ── Mappings ──────────────────────────────────────────────────────────


@lifecycle.command("map")
@click.argument("ci_type_id")
@click.argument("lifecycle_type_id")
@click.option("--default", "is_default", is_flag=True, help="Mark as the CI type's default.")
@click.pass_obj
def map_cmd(app: AppContext, ci_type_id: str, lifecycle_type_id: str, is_default: bool) -> None:
    """Attach a lifecycle type to a CI type (re-mapping updates the default flag)."""
    actor = app.admin_actor()
    app.emit(
        LifecycleService(app.store).create_mapping(
            ci_type_id, lifecycle_type_id, actor=actor, is_default=is_default
        )
    )


@lifecycle.command("for-type")
@click.argument("ci_type_id")
@click.pass_obj
def for_type(app: AppContext, ci_type_id: str) -> None:
    """List active lifecycle types mapped to a CI type, default first."""
    app.emit(LifecycleService(app.store).list_for_ci_type(ci_type_id))
