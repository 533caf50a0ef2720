"""Tests for operation-specific Rich renderers."""

from cmdbctl.output.renderers import render_quiet, render_result
from cmdbctl.services.result import ServiceError, ServiceResult

# ── Helpers ───────────────────────────────────────────────────────────


def _ok(op: str, **data: object) -> ServiceResult:
    return ServiceResult(ok=True, op=op, data=dict(data))


def _err(op: str, code: str, message: str, **detail: object) -> ServiceResult:
    return ServiceResult(
        ok=False,
        op=op,
        error=ServiceError(code=code, message=message, detail=dict(detail)),
    )


# ── Error rendering ──────────────────────────────────────────────────


class TestErrorRenderer:
    def test_basic_error(self) -> None:
        output = render_result(_err("create_ci_type", "CONFLICT", "CI type 'X' already exists"))
        assert "ERROR" in output
        assert "create_ci_type" in output
        assert "[CONFLICT]" in output
        assert "CI type 'X' already exists" in output

    def test_verbose_shows_detail(self) -> None:
        result = _err("create_ci_asset", "VALIDATION_FAILED", "Bad", errors=["/ip: required"])
        output = render_result(result, verbose=True)
        assert "detail" in output
        assert "/ip: required" in output

    def test_no_error_object(self) -> None:
        assert "Unknown error" in render_result(ServiceResult(ok=False, op="test"))


# ── Mutations and records ────────────────────────────────────────────


class TestMutationRenderer:
    def test_create_asset(self) -> None:
        result = _ok(
            "create_ci_asset",
            id="a1",
            name="web-01",
            ci_type_id="t1",
            attributes={"ip": "10.0.0.1"},
        )
        output = render_result(result)
        assert "OK" in output
        assert "create_ci_asset" in output
        assert "a1" in output
        assert "web-01" in output
        assert "ci_type_id: t1" in output

    def test_update_asset_unwraps_asset(self) -> None:
        result = _ok("update_ci_asset", updated=True, asset={"id": "a1", "name": "web-02"})
        output = render_result(result)
        assert "updated: True" in output
        assert "web-02" in output

    def test_valuation_money(self) -> None:
        output = render_result(_ok("create_valuation", id="v1", current_value=12345.5))
        assert "12,345.50" in output


class TestRecordRenderer:
    def test_asset_panel(self) -> None:
        result = _ok("get_ci_asset", id="a1", name="web-01", ci_type_name="Server")
        output = render_result(result)
        assert "web-01 (a1)" in output
        assert "ci_type_name: Server" in output

    def test_lifecycle_states_table(self) -> None:
        result = _ok(
            "get_lifecycle_type",
            id="lt1",
            name="Hardware",
            states=[{"id": "s1", "order_index": 0, "name": "Ordered", "color": "#6B7280"}],
            transitions=[],
        )
        output = render_result(result)
        assert "States" in output
        assert "Ordered" in output
        assert "■ #6B7280" in output
        assert "Transitions" not in output

    def test_me_uses_email(self) -> None:
        output = render_result(_ok("me", user_id="u1", email="ada@example.com"))
        assert "ada@example.com (u1)" in output


# ── Lists and history ────────────────────────────────────────────────


class TestListRenderer:
    def test_asset_list(self) -> None:
        result = _ok(
            "list_ci_assets",
            items=[{"id": "a1", "name": "web-01", "ci_type_id": "t1"}],
            count=1,
        )
        output = render_result(result)
        assert "web-01" in output
        assert "1 items" in output

    def test_jobs_list(self) -> None:
        output = render_result(_ok("list_jobs", items=[{"name": "cleanup", "at": "03:00"}]))
        assert "cleanup" in output
        assert "03:00" in output

    def test_history_diff(self) -> None:
        result = _ok(
            "audit_history",
            entity_type="ci_asset",
            entity_id="a1",
            items=[
                {
                    "created_at": "2025-01-01T00:00:00",
                    "action": "update",
                    "performed_by": "u1",
                    "diff": {
                        "added": {"rack": "R1"},
                        "removed": {},
                        "modified": {"name": {"old": "web-01", "new": "web-02"}},
                    },
                }
            ],
            count=1,
        )
        output = render_result(result)
        assert "History of ci_asset a1" in output
        assert "+ rack: R1" in output
        assert "~ name: web-01 → web-02" in output
        assert "1 entries" in output

    def test_schedule(self) -> None:
        result = _ok(
            "valuation_schedule",
            valuation_id="v1",
            items=[
                {
                    "year": 1,
                    "opening_value": 1000.0,
                    "depreciation_amount": 250.0,
                    "closing_value": 750.0,
                }
            ],
        )
        output = render_result(result)
        assert "1,000.00" in output
        assert "750.00" in output


# ── Graph and upgrade ────────────────────────────────────────────────


class TestGraphRenderers:
    def test_neighbors(self) -> None:
        result = _ok(
            "graph_neighbors",
            center="a1",
            depth=1,
            nodes=[{"id": "a1", "name": "web"}, {"id": "a2", "name": "db"}],
            edges=[{"from_node_id": "a1", "to_node_id": "a2", "label": "USES"}],
        )
        output = render_result(result)
        assert "Neighbors of a1 (depth 1)" in output
        assert "USES" in output
        assert "2 nodes, 1 edges" in output

    def test_path(self) -> None:
        output = render_result(_ok("graph_path", path=["a1", "a2", "a3"], length=2))
        assert "a1 → a2 → a3" in output
        assert "Path length: 2" in output

    def test_edge_not_mirrored(self) -> None:
        output = render_result(_ok("graph_edge", edge=None, mirrored=False))
        assert "mirrored: False" in output


class TestUpgradeRenderer:
    def test_pending(self) -> None:
        result = _ok(
            "upgrade",
            pending_count=1,
            current=None,
            head="001_baseline",
            pending=[{"revision": "001_baseline", "description": "baseline"}],
        )
        output = render_result(result, verbose=True)
        assert "pending_count: 1" in output
        assert "001_baseline: baseline" in output


class TestTelemetryTree:
    def test_span_tree_with_annotations(self) -> None:
        result = ServiceResult(
            ok=True,
            op="create_relationship",
            data={"id": "r1"},
            meta={
                "telemetry": {
                    "name": "create",
                    "duration_ms": 4.5,
                    "annotations": {"op": "create_relationship"},
                    "children": [
                        {
                            "name": "mirror",
                            "duration_ms": 1.25,
                            "annotations": {"mirrored": False},
                        }
                    ],
                }
            },
        )
        output = render_result(result, verbose=True)
        assert "4.50ms  create" in output
        assert "1.25ms  mirror  mirrored=False" in output

    def test_hidden_without_verbose(self) -> None:
        result = ServiceResult(
            ok=True,
            op="create_relationship",
            data={"id": "r1"},
            meta={"telemetry": {"name": "mirror", "duration_ms": 1.0}},
        )
        assert "mirror" not in render_result(result)


# ── Quiet mode ───────────────────────────────────────────────────────


class TestQuiet:
    def test_error(self) -> None:
        output = render_quiet(_err("get_ci_asset", "NOT_FOUND", "missing"))
        assert output == "ERROR: get_ci_asset — missing"

    def test_list_ids(self) -> None:
        output = render_quiet(_ok("list_ci_types", items=[{"id": "t1"}, {"id": "t2"}]))
        assert output == "t1\nt2"

    def test_single_id(self) -> None:
        assert render_quiet(_ok("create_ci_type", id="t1")) == "t1"

    def test_token(self) -> None:
        assert render_quiet(_ok("login", token="jwt", expires_at="x")) == "jwt"

    def test_fallback(self) -> None:
        assert render_quiet(_ok("graph_reconcile", nodes=1, edges=0)) == "OK: graph_reconcile"
