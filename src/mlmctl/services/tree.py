"""TreeService — read-only views of the placement tree.

Slot and downline queries run through :class:`TreeEngine` on a plain
connection; the nested display tree is built from the NetworkX graph.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from mlmctl.domain.errors import MembershipError
from mlmctl.domain.types import POSITION_ORDER
from mlmctl.services._helpers import member_summary
from mlmctl.services.access import AccessService
from mlmctl.services.base import BaseService
from mlmctl.services.result import ErrorCode, ServiceResult

if TYPE_CHECKING:
    import networkx as nx

    from mlmctl.domain.members import Actor, MemberNode
    from mlmctl.infrastructure.store import SqlMemberStore


class TreeService(BaseService):
    """Positions, children, downline and whole-tree views."""

    def positions(self, actor: Actor, ref: str) -> ServiceResult:
        """Free slots under a member. Clients may only inspect their own node."""
        op = "positions"
        with self._registry.connect() as store:
            target = self._target(store, actor, ref, op)
            if isinstance(target, ServiceResult):
                return target
            try:
                engine = self._tree_engine(store)
                free = engine.available_positions(target.id)
                children = engine.children(target.id)
            except MembershipError as exc:
                return self._from_error(op, exc)

        return ServiceResult(
            ok=True,
            op=op,
            data={
                "id": target.id,
                "username": target.username,
                "available": [p.value for p in free],
                "occupied": {
                    c.position.value: {"id": c.id, "username": c.username}
                    for c in children
                    if c.position is not None
                },
            },
        )

    def children(self, actor: Actor, ref: str) -> ServiceResult:
        """Direct children, left before right."""
        op = "children"
        with self._registry.connect() as store:
            target = self._target(store, actor, ref, op)
            if isinstance(target, ServiceResult):
                return target
            try:
                kids = self._tree_engine(store).children(target.id)
            except MembershipError as exc:
                return self._from_error(op, exc)

        items = [member_summary(k) for k in kids]
        return ServiceResult(
            ok=True,
            op=op,
            data={"root": member_summary(target), "items": items, "count": len(items)},
        )

    def downline(self, actor: Actor, ref: str) -> ServiceResult:
        """Every descendant in level order, each with its depth below *ref*."""
        op = "downline"
        with self._registry.connect() as store:
            target = self._target(store, actor, ref, op)
            if isinstance(target, ServiceResult):
                return target
            try:
                walked = list(self._tree_engine(store).walk(target.id))
            except MembershipError as exc:
                return self._from_error(op, exc)

        items = [{**member_summary(m), "depth": depth} for m, depth in walked]
        return ServiceResult(
            ok=True,
            op=op,
            data={"root": member_summary(target), "items": items, "count": len(items)},
            meta={"max_depth": max((i["depth"] for i in items), default=0)},
        )

    def tree(
        self,
        actor: Actor,
        ref: str | None = None,
        *,
        max_depth: int | None = None,
    ) -> ServiceResult:
        """Nested tree for display.

        Without *ref*, the admin sees the main tree followed by every
        orphaned root; a client sees its own subtree.
        """
        op = "tree"
        if max_depth is not None and max_depth < 0:
            return self._failure(op, ErrorCode.VALIDATION_FAILED, "max_depth must be >= 0")

        with self._registry.connect() as store:
            if ref is None and actor.is_admin:
                admin = store.get_admin()
                start = [admin.id] if admin is not None else []
                include_orphans = True
            else:
                target = self._target(store, actor, ref or actor.member_id, op)
                if isinstance(target, ServiceResult):
                    return target
                start = [target.id]
                include_orphans = False

        g = self._registry.graph.graph
        if include_orphans:
            start.extend(n for n in g.nodes if g.in_degree(n) == 0 and n not in start)

        roots: list[dict[str, Any]] = []
        seen: set[str] = set()
        truncated = False
        for root_id in start:
            built, cut = _build_subtree(g, root_id, max_depth, seen)
            roots.append(built)
            truncated = truncated or cut

        return ServiceResult(
            ok=True,
            op=op,
            data={"roots": roots, "count": len(seen), "truncated": truncated},
        )

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    @staticmethod
    def _target(
        store: SqlMemberStore,
        actor: Actor,
        ref: str,
        op: str,
    ) -> MemberNode | ServiceResult:
        """The resolved member, or the failure to return in its place."""
        target = store.resolve(ref)
        if target is None:
            return BaseService._failure(op, ErrorCode.NOT_FOUND, f"No member found: {ref}", ref=ref)
        denied = AccessService.require_self_or_admin(actor, target.id, op)
        return denied if denied is not None else target


def _node_view(g: nx.DiGraph, node_id: str, position: str | None) -> dict[str, Any]:
    attrs = g.nodes[node_id]
    return {
        "id": node_id,
        "username": attrs.get("username"),
        "role": attrs.get("role"),
        "package": attrs.get("package"),
        "position": position,
        "children": [],
    }


def _position_rank(position: str | None) -> int:
    for i, p in enumerate(POSITION_ORDER):
        if p.value == position:
            return i
    return len(POSITION_ORDER)


def _build_subtree(
    g: nx.DiGraph,
    root_id: str,
    max_depth: int | None,
    seen: set[str],
) -> tuple[dict[str, Any], bool]:
    """Nest *root_id*'s descendants without recursion.

    Returns the nested dict and whether *max_depth* cut anything off.
    Nodes already in *seen* are not expanded again.
    """
    root = _node_view(g, root_id, None)
    seen.add(root_id)
    truncated = False
    stack: list[tuple[str, dict[str, Any], int]] = [(root_id, root, 0)]
    while stack:
        node_id, view, depth = stack.pop()
        kids = sorted(
            g.successors(node_id),
            key=lambda k: _position_rank(g.edges[node_id, k].get("position")),
        )
        if not kids:
            continue
        if max_depth is not None and depth >= max_depth:
            view["more"] = len(kids)
            truncated = True
            continue
        for kid in kids:
            if kid in seen:
                continue
            seen.add(kid)
            child_view = _node_view(g, kid, g.edges[node_id, kid].get("position"))
            view["children"].append(child_view)
            stack.append((kid, child_view, depth + 1))
    return root, truncated
