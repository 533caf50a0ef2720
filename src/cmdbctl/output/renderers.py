"""Operation-specific Rich renderers for ServiceResult.

Each renderer writes to a Rich Console (backed by StringIO).  The caller
extracts the rendered text via ``get_output(console)``.

Renderers are dispatched by ``result.op`` in :func:`render_result`.
Unknown ops fall through to a generic key-value renderer.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from rich.padding import Padding
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from rich.tree import Tree

from cmdbctl.output.console import create_console, get_output, swatch

if TYPE_CHECKING:
    from rich.console import Console

    from cmdbctl.services.result import ServiceResult


# ── Public API ────────────────────────────────────────────────────────


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render a ServiceResult to a styled string via Rich.

    Returns plain text (no ANSI) when Rich detects no terminal,
    which is the case inside Click's CliRunner and piped output.
    """
    console = create_console()

    if result.ok:
        renderer = _OP_RENDERERS.get(result.op, _render_generic)
        renderer(result, console, verbose=verbose)
    else:
        _render_error(result, console, verbose=verbose)

    return get_output(console).rstrip("\n")


def render_quiet(result: ServiceResult) -> str:
    """Render minimal output for ``--quiet`` mode."""
    if not result.ok:
        msg = result.error.message if result.error else "Unknown error"
        return f"ERROR: {result.op} — {msg}"

    # For list results, return IDs only
    items = result.data.get("items")
    if items and isinstance(items, list):
        return "\n".join(
            str(item["id"]) for item in items if isinstance(item, dict) and "id" in item
        )

    if "id" in result.data:
        return str(result.data["id"])
    if "token" in result.data:
        return str(result.data["token"])
    return f"OK: {result.op}"


# ── Helpers ───────────────────────────────────────────────────────────


def _status_line(console: Console, result: ServiceResult) -> None:
    """Print the OK status line."""
    label = Text("OK", style="cmdb.ok")
    op = Text(f"  {result.op}", style="cmdb.op")
    console.print(label, op, end="")
    console.print()


def _compact(value: Any) -> str:
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"), sort_keys=True)
    if value is None:
        return ""
    return str(value)


def _field(console: Console, key: str, value: Any) -> None:
    """Print a single indented key-value field."""
    k = Text(f"  {key}: ", style="cmdb.key")
    if key == "id" or key.endswith("_id"):
        v = Text(_compact(value), style="cmdb.id")
    elif key == "name":
        v = Text(_compact(value), style="cmdb.name")
    elif key.endswith("_value") or key == "total_valuation":
        v = Text(_money(value), style="cmdb.money")
    else:
        v = Text(_compact(value))
    console.print(k, v, end="")
    console.print()


def _money(value: Any) -> str:
    return f"{value:,.2f}" if isinstance(value, (int, float)) else _compact(value)


def _render_meta(console: Console, result: ServiceResult) -> None:
    """Print meta block including telemetry span tree (verbose only)."""
    if not result.meta:
        return

    console.print()
    console.print(Text("  meta:", style="dim"))

    for k, v in result.meta.items():
        if k == "telemetry":
            console.print(Padding(_span_tree(v), (0, 0, 0, 4)))
        else:
            console.print(f"    {k}: {v}")


def _span_label(span: dict[str, Any]) -> Text:
    duration = span.get("duration_ms", 0.0)
    if duration > 1000:
        style = "bold red"
    elif duration > 100:
        style = "yellow"
    else:
        style = "dim"
    label = Text.assemble((f"{duration:.2f}ms", style), "  ", span.get("name", "?"))
    annotations = span.get("annotations") or {}
    if annotations:
        label.append("  " + " ".join(f"{k}={v}" for k, v in annotations.items()), style="dim")
    return label


def _span_tree(span: dict[str, Any], parent: Tree | None = None) -> Tree:
    """Nest the ``meta.telemetry`` span dicts into a Rich tree."""
    node = Tree(_span_label(span)) if parent is None else parent.add(_span_label(span))
    for child in span.get("children", []):
        _span_tree(child, node)
    return node


_COLOR_COLUMNS = ("color", "default_color")


def _cell(column: str, value: Any) -> str | Text:
    if column in _COLOR_COLUMNS:
        return swatch(value)
    if column.endswith("_value"):
        return _money(value)
    return _compact(value)


def _rows_table(items: list[dict[str, Any]], columns: list[str]) -> Table:
    """Build a Rich Table showing *columns* of each item."""
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    for col in columns:
        if col == "id" or col.endswith("_id"):
            table.add_column(col.replace("_", " ").title(), style="cmdb.id", no_wrap=True)
        elif col == "name":
            table.add_column("Name", style="cmdb.name")
        elif col.endswith("_value"):
            table.add_column(col.replace("_", " ").title(), style="cmdb.money", justify="right")
        else:
            table.add_column(col.replace("_", " ").title())
    for item in items:
        table.add_row(*(_cell(c, item.get(c)) for c in columns))
    return table


# ── Error renderer ────────────────────────────────────────────────────


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    err = result.error
    msg = err.message if err else "Unknown error"
    label = Text("ERROR", style="cmdb.error")
    op = Text(f"  {result.op}", style="cmdb.op")
    code = Text(f" [{err.code}]" if err else "", style="dim")
    sep = Text(" — ")
    console.print(label, op, code, sep, msg)
    if verbose and err and err.detail:
        console.print(Text("  detail:", style="dim"))
        for k, v in err.detail.items():
            console.print(f"    {k}: {v}")


# ── Mutation renderers ────────────────────────────────────────────────


_MUTATION_KEYS = (
    "id",
    "name",
    "transition_name",
    "email",
    "ci_type_id",
    "lifecycle_type_id",
    "relationship_type_id",
    "from_ci_asset_id",
    "to_ci_asset_id",
    "current_value",
    "updated_at",
)


def _render_mutation(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render create/update/delete results."""
    _status_line(console, result)
    data = result.data.get("asset", result.data)
    if "updated" in result.data:
        _field(console, "updated", result.data["updated"])
    for key in _MUTATION_KEYS:
        if key in data:
            _field(console, key, data[key])
    if verbose:
        _render_meta(console, result)


# ── Single-record renderer ────────────────────────────────────────────


def _render_record(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render a single record as a panel of key-value lines."""
    d = result.data
    lines = [
        f"{key}: {_compact(value)}"
        for key, value in d.items()
        if key not in ("id", "name", "states", "transitions") and (verbose or value is not None)
    ]
    ident = d.get("id", d.get("user_id", "?"))
    title = Text(f"{d.get('name') or d.get('email') or result.op} ({ident})")
    console.print(Panel(Text("\n".join(lines)), title=title, border_style="dim", expand=False))

    for nested, columns in (
        ("states", ["id", "order_index", "name", "color", "is_initial_state", "is_terminal_state"]),
        ("transitions", ["id", "transition_name", "from_state_id", "to_state_id"]),
    ):
        if d.get(nested):
            console.print(f"\n[bold]{nested.title()}[/bold]")
            console.print(_rows_table(d[nested], columns))
    if verbose:
        _render_meta(console, result)


# ── List renderers ────────────────────────────────────────────────────

_LIST_COLUMNS: dict[str, list[str]] = {
    "list_ci_types": ["id", "name", "description", "created_at"],
    "list_ci_assets": ["id", "name", "ci_type_id", "created_by", "created_at"],
    "search_ci_assets": ["id", "name", "ci_type_id", "created_at"],
    "list_relationship_types": [
        "id",
        "name",
        "from_ci_type_name",
        "to_ci_type_name",
        "is_bidirectional",
    ],
    "list_relationships": [
        "id",
        "relationship_type_name",
        "from_ci_asset_name",
        "to_ci_asset_name",
        "created_at",
    ],
    "list_lifecycle_types": ["id", "name", "default_color", "is_active", "state_count"],
    "list_lifecycle_transitions": [
        "id",
        "transition_name",
        "from_state_id",
        "to_state_id",
        "requires_approval",
    ],
    "list_lifecycles_for_ci_type": ["id", "name", "is_default", "state_count"],
    "query_audit": ["created_at", "entity_type", "entity_id", "action", "performed_by"],
    "list_valuations": [
        "id",
        "ci_asset_name",
        "depreciation_method",
        "initial_value",
        "current_value",
    ],
    "graph_search": ["id", "name", "ci_type"],
    "list_jobs": ["name", "at"],
}


def _render_list(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render paged or filtered lists as a table."""
    items = result.data.get("items", [])
    columns = _LIST_COLUMNS.get(result.op, ["id", "name"])
    console.print(_rows_table(items, columns))
    console.print(f"\n{result.data.get('count', len(items))} items")
    if verbose:
        _render_meta(console, result)


def _render_history(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render an entity's audit history with per-entry diffs."""
    d = result.data
    console.print(
        f"History of [cmdb.type]{d['entity_type']}[/cmdb.type] "
        f"[cmdb.id]{d['entity_id']}[/cmdb.id]"
    )
    for entry in d.get("items", []):
        console.print(
            f"\n  {entry['created_at']}  [bold]{entry['action']}[/bold]  by {entry['performed_by']}"
        )
        diff = entry.get("diff", {})
        for key in sorted(diff.get("added", {})):
            console.print(f"    [green]+ {key}[/green]: {_compact(diff['added'][key])}")
        for key in sorted(diff.get("removed", {})):
            console.print(f"    [red]- {key}[/red]: {_compact(diff['removed'][key])}")
        for key, change in sorted(diff.get("modified", {}).items()):
            old, new = _compact(change["old"]), _compact(change["new"])
            console.print(f"    [yellow]~ {key}[/yellow]: {old} → {new}")
    console.print(f"\n{d.get('count', 0)} entries")


def _render_schedule(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    items = result.data.get("items", [])
    console.print(f"Schedule for valuation [cmdb.id]{result.data['valuation_id']}[/cmdb.id]")
    console.print(_schedule_table(items))


def _schedule_table(items: list[dict[str, Any]]) -> Table:
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("Year", justify="right")
    for label in ("Opening", "Depreciation", "Closing"):
        table.add_column(label, style="cmdb.money", justify="right")
    for e in items:
        table.add_row(
            str(e["year"]),
            _money(e["opening_value"]),
            _money(e["depreciation_amount"]),
            _money(e["closing_value"]),
        )
    return table


# ── Graph renderers ───────────────────────────────────────────────────


def _render_subgraph(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render neighbors/full-graph results as node and edge tables."""
    d = result.data
    nodes = d.get("nodes", [])
    edges = d.get("edges", [])
    if "center" in d:
        console.print(f"Neighbors of [cmdb.id]{d['center']}[/cmdb.id] (depth {d['depth']})")
    console.print(_rows_table(nodes, ["id", "name", "ci_type"]))
    if edges:
        console.print()
        console.print(_rows_table(edges, ["from_node_id", "label", "to_node_id"]))
    console.print(f"\n{len(nodes)} nodes, {len(edges)} edges")


def _render_path(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render shortest path as a chain."""
    hops = result.data.get("path", [])
    chain = [f"[cmdb.id]{hop}[/cmdb.id]" for hop in hops]
    console.print(" → ".join(chain))
    console.print(f"\nPath length: {result.data.get('length', 0)}")


def _render_edge(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    _field(console, "mirrored", result.data.get("mirrored"))
    edge = result.data.get("edge") or {}
    for key, value in edge.items():
        _field(console, key, value)


# ── Upgrade renderer ──────────────────────────────────────────────────


def _render_upgrade(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render upgrade/migration results."""
    _status_line(console, result)
    d = result.data
    for key in ("pending_count", "applied_count", "current", "head", "backup_path", "message"):
        if key in d:
            _field(console, key, d[key])
    if verbose and d.get("pending"):
        console.print()
        for p in d["pending"]:
            console.print(f"  {p['revision']}: {p['description']}")


# ── Generic fallback ──────────────────────────────────────────────────


def _render_generic(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Fallback renderer: status line + all data as key-value pairs."""
    _status_line(console, result)
    for key, value in result.data.items():
        _field(console, key, value)
    if verbose:
        _render_meta(console, result)


# ── Dispatch table ────────────────────────────────────────────────────

_OP_RENDERERS: dict[str, Any] = {
    # Mutations
    "create_ci_type": _render_mutation,
    "update_ci_type": _render_mutation,
    "delete_ci_type": _render_mutation,
    "create_ci_asset": _render_mutation,
    "update_ci_asset": _render_mutation,
    "delete_ci_asset": _render_mutation,
    "create_relationship_type": _render_mutation,
    "update_relationship_type": _render_mutation,
    "delete_relationship_type": _render_mutation,
    "create_relationship": _render_mutation,
    "delete_relationship": _render_mutation,
    "create_lifecycle_type": _render_mutation,
    "update_lifecycle_type": _render_mutation,
    "delete_lifecycle_type": _render_mutation,
    "create_lifecycle_state": _render_mutation,
    "update_lifecycle_state": _render_mutation,
    "delete_lifecycle_state": _render_mutation,
    "create_lifecycle_transition": _render_mutation,
    "delete_lifecycle_transition": _render_mutation,
    "create_lifecycle_mapping": _render_mutation,
    "create_valuation": _render_mutation,
    "register": _render_mutation,
    # Single records
    "get_ci_type": _render_record,
    "get_ci_asset": _render_record,
    "get_relationship_type": _render_record,
    "get_relationship": _render_record,
    "get_lifecycle_type": _render_record,
    "get_valuation": _render_record,
    "me": _render_record,
    # Lists
    **{op: _render_list for op in _LIST_COLUMNS},
    "audit_history": _render_history,
    "valuation_schedule": _render_schedule,
    # Graph
    "graph_neighbors": _render_subgraph,
    "graph_full": _render_subgraph,
    "graph_path": _render_path,
    "graph_edge": _render_edge,
    # Upgrade
    "upgrade": _render_upgrade,
}
