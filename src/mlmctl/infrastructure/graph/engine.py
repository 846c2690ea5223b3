"""GraphEngine — lazy-built NetworkX view of the placement tree.

Rebuilt per invocation, no cross-invocation cache. Every member is a node;
every ``parent_id`` link is a parent -> child edge carrying its ``position``.
Commands that don't need graph operations never build it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, TypeAlias

import networkx as nx

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

_Graph: TypeAlias = nx.DiGraph


class GraphEngine:
    """Lazy-loading graph engine backed by the ``members`` table."""

    def __init__(self, db: Engine) -> None:
        self._db = db
        self._graph: _Graph | None = None

    @property
    def graph(self) -> _Graph:
        """Return the graph, building from DB on first access."""
        if self._graph is None:
            self._graph = self._build_from_db()
        return self._graph

    def invalidate(self) -> None:
        """Clear the cached graph, forcing rebuild on next access."""
        self._graph = None

    def _build_from_db(self) -> _Graph:
        """Build a DiGraph of members and parent links.

        Nodes are added in insertion order before any edge, so isolated
        members (admin alone, orphaned roots) still appear, and successor
        iteration follows insertion order.
        """
        from sqlalchemy import select

        from mlmctl.infrastructure.database.schema import members

        g: _Graph = nx.DiGraph()
        with self._db.connect() as conn:
            rows = conn.execute(
                select(
                    members.c.id,
                    members.c.username,
                    members.c.role,
                    members.c.package,
                    members.c.parent_id,
                    members.c.position,
                ).order_by(members.c.seq)
            ).all()

        for row in rows:
            g.add_node(row.id, username=row.username, role=row.role, package=row.package)
        for row in rows:
            # Dangling references are left out; the checker reports them.
            if row.parent_id is not None and row.parent_id in g:
                g.add_edge(row.parent_id, row.id, position=row.position)
        return g
