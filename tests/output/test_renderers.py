"""Tests for operation-specific Rich renderers."""

from __future__ import annotations

from typing import Any

from mlmctl.output.renderers import render_quiet, render_result
from mlmctl.services.result import ServiceError, ServiceResult


def _ok(op: str, data: dict[str, Any], **kw: Any) -> ServiceResult:
    return ServiceResult(ok=True, op=op, data=data, **kw)


def _member(username: str, **kw: Any) -> dict[str, Any]:
    return {
        "id": f"id-{username}",
        "username": username,
        "role": "client",
        "package": "Gold",
        "parent_id": "id-admin",
        "position": "left",
        **kw,
    }


class TestErrorRendering:
    def test_code_and_message(self) -> None:
        result = ServiceResult(
            ok=False,
            op="create_client",
            error=ServiceError(code="PARENT_FULL", message="Parent 'p' already has 2 children"),
        )
        output = render_result(result)
        assert "ERROR" in output
        assert "[PARENT_FULL]" in output
        assert "already has 2 children" in output

    def test_verbose_detail(self) -> None:
        result = ServiceResult(
            ok=False,
            op="x",
            error=ServiceError(code="E", message="m", detail={"parent_id": "p1"}),
        )
        assert "parent_id: p1" in render_result(result, verbose=True)


class TestMemberRenderers:
    def test_placed(self) -> None:
        result = _ok(
            "enroll_client",
            {
                "member": _member("carol"),
                "placement": {"parent_id": "id-a", "position": "left", "fallback": True},
            },
        )
        output = render_result(result)
        assert "OK" in output
        assert "carol" in output
        assert "fallback: yes" in output

    def test_unplaced(self) -> None:
        result = _ok(
            "enroll_client",
            {
                "member": _member("carol", parent_id=None, position=None),
                "placement": {"parent_id": None, "position": None, "fallback": True},
            },
        )
        assert "(unplaced)" in render_result(result)

    def test_member_panel_escapes_markup(self) -> None:
        result = _ok("get_member", {"member": _member("alice", name="[bold]Al[/bold]")})
        output = render_result(result)
        assert "alice (id-alice)" in output
        assert "[bold]Al[/bold]" in output

    def test_orphan_marker(self) -> None:
        result = _ok("get_member", {"member": _member("bob", parent_id=None, position=None)})
        assert "orphaned root" in render_result(result)

    def test_member_table(self) -> None:
        items = [_member("alice"), _member("bob", position="right", package="Silver")]
        output = render_result(_ok("list_clients", {"items": items, "count": 2}))
        assert "alice" in output
        assert "Silver" in output
        assert "2 members" in output

    def test_downline_has_depth_column(self) -> None:
        items = [{**_member("alice"), "depth": 1}]
        data = {"root": _member("admin"), "items": items, "count": 1}
        output = render_result(_ok("downline", data))
        assert "Depth" in output
        assert "downline of admin" in output

    def test_stats(self) -> None:
        data = {"total": 3, "silver": 1, "gold": 1, "diamond": 1, "orphans": 2}
        output = render_result(_ok("stats", data))
        assert "Diamond" in output
        assert "2 orphaned root(s)" in output

    def test_delete(self) -> None:
        data = {"id": "id-a", "username": "a", "detached": ["id-c", "id-d"]}
        output = render_result(_ok("delete_member", data))
        assert "detached: 2" in output


class TestTreeRenderers:
    def test_positions(self) -> None:
        data = {
            "id": "id-a",
            "username": "a",
            "available": ["right"],
            "occupied": {"left": {"id": "id-c", "username": "c"}},
        }
        output = render_result(_ok("positions", data))
        assert "left: c" in output
        assert "right: free" in output

    def test_tree(self) -> None:
        leaf = {"id": "c", "username": "c", "role": "client", "package": "Silver",
                "position": "left", "children": [], "more": 2}
        a = {"id": "a", "username": "a", "role": "client", "package": "Gold",
             "position": "left", "children": [leaf]}
        root = {"id": "r", "username": "admin", "role": "admin", "package": None,
                "position": None, "children": [a]}
        output = render_result(_ok("tree", {"roots": [root], "count": 3, "truncated": True}))
        assert "admin (admin)" in output
        assert "[left] a (Gold)" in output
        assert "+2 more" in output

    def test_empty_tree(self) -> None:
        assert "(empty registry)" in render_result(_ok("tree", {"roots": [], "count": 0}))


class TestCheckRenderer:
    def test_no_issues(self) -> None:
        assert "No issues found" in render_result(_ok("check", {"issues": [], "count": 0}))

    def test_grouped_issues(self) -> None:
        issues = [
            {"category": "roles", "severity": "warning", "member_id": "m1",
             "message": "Client 'x' is an orphaned root (no parent)"},
            {"category": "slot_structure", "severity": "error", "member_id": "m2",
             "message": "'y' has a parent but no position"},
        ]
        output = render_result(_ok("check", {"issues": issues, "count": 2, "errors": 1}))
        assert "roles" in output
        assert "slot_structure" in output
        assert "1 errors, 1 warnings" in output


class TestQuiet:
    def test_items(self) -> None:
        result = _ok("list_clients", {"items": [_member("a"), _member("b")]})
        assert render_quiet(result) == "id-a\nid-b"

    def test_member(self) -> None:
        assert render_quiet(_ok("get_member", {"member": _member("a")})) == "id-a"

    def test_fallback(self) -> None:
        assert render_quiet(_ok("check", {"count": 0})) == "OK: check"


def test_unknown_op_uses_generic_renderer() -> None:
    output = render_result(_ok("mystery", {"answer": 42, "nested": {"k": 1}}))
    assert "  answer: 42" in output.splitlines()
    assert "answer:  42" not in output
    assert '{"k":1}' in output
