"""Operation-specific Rich renderers for ServiceResult.

Each renderer writes to a Rich Console (backed by StringIO). The caller
extracts the rendered text via ``get_output(console)``.

Renderers are dispatched by ``result.op`` in :func:`render_result`.
Unknown ops fall through to a generic key-value renderer.
"""

from __future__ import annotations

import json as _json
from typing import TYPE_CHECKING, Any

from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from rich.tree import Tree

from mlmctl.output.console import create_console, get_output, style_for_package

if TYPE_CHECKING:
    from rich.console import Console

    from mlmctl.services.result import ServiceResult


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
        return f"ERROR: {result.op}: {msg}"

    items = result.data.get("items")
    if isinstance(items, list):
        return "\n".join(str(item["id"]) for item in items if isinstance(item, dict) and "id" in item)

    member = result.data.get("member")
    if isinstance(member, dict) and "id" in member:
        return str(member["id"])

    return f"OK: {result.op}"


# ── Helpers ───────────────────────────────────────────────────────────


def _status_line(console: Console, result: ServiceResult) -> None:
    label = Text("OK", style="mlm.ok")
    op = Text(f"  {result.op}", style="mlm.op")
    console.print(label, op, end="")
    console.print()


def _field(console: Console, key: str, value: Any) -> None:
    """Print a single indented key-value field."""
    k = Text(f"  {key}: ", style="mlm.key")
    if key == "id" or key.endswith("_id"):
        v = Text(str(value), style="mlm.id")
    elif key == "username":
        v = Text(str(value), style="mlm.user")
    elif key == "package":
        v = Text(str(value), style=style_for_package(str(value)))
    else:
        v = Text(str(value))
    console.print(k, v, sep="", end="")
    console.print()


def _render_meta(console: Console, result: ServiceResult) -> None:
    if not result.meta:
        return
    console.print()
    console.print(Text("  meta:", style="dim"))
    for k, v in result.meta.items():
        console.print(f"    {k}: {v}")


def _member_table(
    items: list[dict[str, Any]],
    *,
    depth: bool = False,
    verbose: bool = False,
) -> Table:
    """Build a Rich Table for a list of member summaries."""
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    if depth:
        table.add_column("Depth", justify="right")
    table.add_column("Username", style="mlm.user")
    table.add_column("Package")
    table.add_column("Position")
    if verbose:
        table.add_column("ID", style="mlm.id", no_wrap=True)
        table.add_column("Parent", style="dim", no_wrap=True)

    for item in items:
        package = item.get("package") or ""
        row: list[str | Text] = []
        if depth:
            row.append(str(item.get("depth", "")))
        row.extend(
            [
                str(item.get("username", "")),
                Text(package, style=style_for_package(package)),
                str(item.get("position") or "-"),
            ]
        )
        if verbose:
            row.append(str(item.get("id", "")))
            row.append(str(item.get("parent_id") or "-"))
        table.add_row(*row)
    return table


def _member_label(view: dict[str, Any]) -> Text:
    """One tree line: ``[left] alice (Gold)``."""
    label = Text()
    position = view.get("position")
    if position:
        label.append(f"[{position}] ", style="dim")
    if view.get("role") == "admin":
        label.append(str(view.get("username")), style="mlm.admin")
        label.append(" (admin)", style="dim")
    else:
        label.append(str(view.get("username")), style="mlm.user")
        package = view.get("package")
        if package:
            label.append(f" ({package})", style=style_for_package(package))
    if view.get("more"):
        label.append(f"  +{view['more']} more", style="dim")
    return label


# ── Error renderer ────────────────────────────────────────────────────


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    err = result.error
    msg = err.message if err else "Unknown error"
    label = Text("ERROR", style="mlm.error")
    op = Text(f"  {result.op}", style="mlm.op")
    code = Text(f" [{err.code}] " if err else " ", style="dim")
    console.print(label, op, code, Text(msg), sep="")

    if verbose and err and err.detail:
        console.print(Text("  detail:", style="dim"))
        for k, v in err.detail.items():
            console.print(f"    {k}: {v}")


# ── Mutation renderers ────────────────────────────────────────────────


def _render_placed(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render create_client / enroll_client."""
    _status_line(console, result)
    member = result.data.get("member", {})
    placement = result.data.get("placement", {})
    for key in ("id", "username", "package"):
        if key in member:
            _field(console, key, member[key])
    if placement.get("parent_id"):
        _field(console, "parent_id", placement["parent_id"])
        _field(console, "position", placement.get("position"))
    else:
        _field(console, "parent_id", "- (unplaced)")
    if placement.get("fallback"):
        _field(console, "fallback", "yes")
    if verbose:
        _render_meta(console, result)


def _render_mutation(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render update_profile / change_password / delete_member."""
    _status_line(console, result)
    d = result.data
    member = d.get("member", d)
    for key in ("id", "username"):
        if key in member:
            _field(console, key, member[key])
    if "fields_changed" in d:
        _field(console, "fields_changed", ", ".join(d["fields_changed"]) or "-")
    if "detached" in d:
        _field(console, "detached", len(d["detached"]))
        if verbose:
            for member_id in d["detached"]:
                console.print(f"    {member_id}")


# ── Query renderers ───────────────────────────────────────────────────


def _render_member(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render one member as a panel."""
    m = result.data.get("member", {})
    lines: list[str] = []
    for key in ("role", "package", "parent_id", "position", "name", "email", "mobile", "created_at"):
        val = m.get(key)
        if val is not None:
            lines.append(f"{key}: {escape(str(val))}")
    if verbose and m.get("modified_at"):
        lines.append(f"modified_at: {m['modified_at']}")
    if m.get("role") == "client" and m.get("parent_id") is None:
        lines.append("[mlm.orphan]orphaned root[/mlm.orphan]")

    title = f"{m.get('username', '?')} ({m.get('id', '?')})"
    style = style_for_package(m.get("package")) or "dim"
    console.print(Panel("\n".join(lines), title=title, border_style=style, expand=False))


def _render_member_table(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render list_clients / children / downline as a table."""
    items = result.data.get("items", [])
    root = result.data.get("root")
    if root:
        console.print(Text(f"{result.op} of {root.get('username')}", style="mlm.op"))
    console.print(_member_table(items, depth=result.op == "downline", verbose=verbose))
    console.print(f"\n{result.data.get('count', len(items))} members")


def _render_stats(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    d = result.data
    table = Table(show_header=True, pad_edge=False, expand=False)
    table.add_column("Package")
    table.add_column("Clients", justify="right")
    for key in ("silver", "gold", "diamond"):
        name = key.capitalize()
        table.add_row(Text(name, style=style_for_package(name)), str(d.get(key, 0)))
    table.add_row(Text("Total", style="bold"), str(d.get("total", 0)))
    console.print(table)
    if d.get("orphans"):
        console.print(f"[mlm.orphan]{d['orphans']} orphaned root(s)[/mlm.orphan]")


def _render_positions(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    d = result.data
    console.print(Text(str(d.get("username", "?")), style="mlm.user"))
    occupied = d.get("occupied", {})
    for position in ("left", "right"):
        if position in d.get("available", []):
            console.print(f"  {position}: [mlm.free]free[/mlm.free]")
        else:
            taken = occupied.get(position, {})
            console.print(f"  {position}: {taken.get('username', 'taken')}")


def _render_tree(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render nested tree data with ``rich.tree.Tree``, iteratively."""
    roots = result.data.get("roots", [])
    if not roots:
        console.print("(empty registry)")
        return

    for root in roots:
        top = Tree(_member_label(root), guide_style="dim")
        stack: list[tuple[dict[str, Any], Tree]] = [(root, top)]
        while stack:
            view, branch = stack.pop()
            for child in view.get("children", []):
                stack.append((child, branch.add(_member_label(child))))
        console.print(top)

    if verbose:
        console.print(f"\n{result.data.get('count', 0)} members shown")


# ── Check renderers ───────────────────────────────────────────────────


def _render_check(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render check results with issues grouped by category."""
    issues = result.data.get("issues", [])
    count = result.data.get("count", len(issues))

    if count == 0:
        console.print("[mlm.ok]OK[/mlm.ok]  No issues found.")
        return

    severity_styles = {"error": "mlm.error", "warning": "mlm.warning"}

    by_category: dict[str, list[dict[str, Any]]] = {}
    for issue in issues:
        by_category.setdefault(str(issue.get("category", "unknown")), []).append(issue)

    for cat, cat_issues in by_category.items():
        console.print(f"\n[bold]{cat}[/bold]")
        for issue in cat_issues:
            sev = str(issue.get("severity", "warning"))
            style = severity_styles.get(sev, "")
            prefix = f"[{style}]{sev}[/{style}]" if style else sev
            member_id = issue.get("member_id")
            mid = f" \\[{member_id}]" if member_id and verbose else ""
            console.print(f"  {prefix}{mid}: {escape(str(issue.get('message', '')))}")

    errors = result.data.get("errors", 0)
    console.print(f"\n{errors} errors, {count - errors} warnings")


# ── Init renderers ───────────────────────────────────────────────────


def _render_init(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    d = result.data
    for key in ("name", "root"):
        if key in d:
            _field(console, key, d[key])
    admin = d.get("admin", {})
    _field(console, "admin", admin.get("username", "?"))
    _field(console, "admin_created", "yes" if d.get("created") else "no (existing)")
    if verbose:
        _field(console, "config_path", d.get("config_path"))
        _field(console, "db_path", d.get("db_path"))


# ── Generic fallback ──────────────────────────────────────────────────


def _render_generic(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Fallback renderer: status line + all data as key-value pairs."""
    _status_line(console, result)
    for key, value in result.data.items():
        if isinstance(value, (dict, list)):
            _field(console, key, _json.dumps(value, separators=(",", ":")))
        else:
            _field(console, key, value)
    if verbose:
        _render_meta(console, result)


# ── Dispatch table ────────────────────────────────────────────────────

_OP_RENDERERS: dict[str, Any] = {
    # Members
    "create_client": _render_placed,
    "enroll_client": _render_placed,
    "update_profile": _render_mutation,
    "change_password": _render_mutation,
    "delete_member": _render_mutation,
    "get_member": _render_member,
    "authenticate": _render_member,
    "list_clients": _render_member_table,
    "stats": _render_stats,
    # Tree
    "positions": _render_positions,
    "children": _render_member_table,
    "downline": _render_member_table,
    "tree": _render_tree,
    # Check
    "check": _render_check,
    # Init
    "init_registry": _render_init,
}
