"""TreeEngine — binary-tree placement and downline queries.

The engine enforces the tree shape on top of a plain :class:`MemberStore`:
at most one child per ``(parent, position)`` slot, slots offered left
before right, and placement either strict (direct) or searching for the
nearest free slot elsewhere (fallback).

The engine does no I/O of its own and holds no state beyond the store
handle, so running it over a transaction-bound store makes the placement
read and the subsequent insert atomic.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import TYPE_CHECKING

from mlmctl.domain.errors import (
    ParentFullError,
    ParentNotFoundError,
    PlacementExhaustedError,
    TreeIntegrityError,
)
from mlmctl.domain.members import MemberPatch, Placement
from mlmctl.domain.types import POSITION_ORDER, ExhaustedPolicy, FallbackStrategy, Position

if TYPE_CHECKING:
    from collections.abc import Iterator

    from mlmctl.domain.members import MemberNode
    from mlmctl.domain.store import MemberStore

logger = logging.getLogger(__name__)


def _slot_rank(member: MemberNode) -> int:
    if member.position is None:
        return len(POSITION_ORDER)
    return POSITION_ORDER.index(member.position)


class TreeEngine:
    """Placement and traversal over a member store.

    Args:
        store: Any :class:`MemberStore`; usually transaction-bound.
        strategy: Where to look when the requested parent is full.
        on_exhausted: What to do when no node has a free slot.
    """

    def __init__(
        self,
        store: MemberStore,
        *,
        strategy: FallbackStrategy = FallbackStrategy.SCAN,
        on_exhausted: ExhaustedPolicy = ExhaustedPolicy.REJECT,
    ) -> None:
        self._store = store
        self._strategy = strategy
        self._on_exhausted = on_exhausted

    # ------------------------------------------------------------------
    # Slots
    # ------------------------------------------------------------------

    def available_positions(self, parent_id: str) -> tuple[Position, ...]:
        """Free slots under *parent_id*, always ordered left then right.

        Raises:
            ParentNotFoundError: *parent_id* has no record.
        """
        if self._store.get(parent_id) is None:
            raise ParentNotFoundError(parent_id)

        occupied: set[Position] = set()
        for child in self._store.list_by_parent(parent_id):
            if child.position is None:
                logger.warning("Child %s of %s has no position; skipped", child.id, parent_id)
                continue
            occupied.add(child.position)
        return tuple(p for p in POSITION_ORDER if p not in occupied)

    @staticmethod
    def _choose(free: tuple[Position, ...], desired: Position | None) -> Position:
        if desired is not None and desired in free:
            return desired
        return free[0]

    # ------------------------------------------------------------------
    # Placement
    # ------------------------------------------------------------------

    def place_direct(self, parent_id: str, desired: Position | None = None) -> Placement:
        """Place strictly under *parent_id*; never looks elsewhere.

        An unavailable *desired* slot silently yields the other free slot.

        Raises:
            ParentNotFoundError: *parent_id* has no record.
            ParentFullError: Both slots under *parent_id* are taken.
        """
        free = self.available_positions(parent_id)
        if not free:
            raise ParentFullError(parent_id)

        position = self._choose(free, desired)
        logger.debug("Placed under %s (%s)", parent_id, position.value)
        return Placement(parent_id=parent_id, position=position, requested_parent_id=parent_id)

    def place_with_fallback(
        self,
        requested_parent_id: str | None,
        admin_id: str | None,
        desired: Position | None = None,
    ) -> Placement:
        """Place under the requested parent, or wherever a slot is free.

        *desired* only applies to the requested parent. When that parent is
        full, the configured strategy picks the first node with a free slot
        and its first free position; the admin is the last resort.

        Raises:
            ParentNotFoundError: The resolved parent has no record, or
                neither a parent nor an admin was given.
            PlacementExhaustedError: Nothing is free and the policy is
                ``reject``.
        """
        parent_id = requested_parent_id or admin_id
        if parent_id is None:
            raise ParentNotFoundError(None)

        free = self.available_positions(parent_id)
        if free:
            position = self._choose(free, desired)
            logger.debug("Placed under %s (%s)", parent_id, position.value)
            return Placement(
                parent_id=parent_id,
                position=position,
                requested_parent_id=parent_id,
            )

        found = self._search(parent_id)
        if found is None and admin_id is not None and self._store.get(admin_id) is not None:
            admin_free = self.available_positions(admin_id)
            if admin_free:
                found = (admin_id, admin_free[0])

        if found is not None:
            target_id, position = found
            logger.info(
                "Parent %s is full; falling back to %s (%s) via %s",
                parent_id,
                target_id,
                position.value,
                self._strategy.value,
            )
            return Placement(
                parent_id=target_id,
                position=position,
                fallback=True,
                requested_parent_id=parent_id,
            )

        logger.warning(
            "No free slot for %s; policy is %s", parent_id, self._on_exhausted.value
        )
        if self._on_exhausted == ExhaustedPolicy.UNPLACED:
            return Placement(
                parent_id=None,
                position=None,
                fallback=True,
                requested_parent_id=parent_id,
            )
        raise PlacementExhaustedError(parent_id, admin_id)

    def _search(self, start_id: str) -> tuple[str, Position] | None:
        if self._strategy == FallbackStrategy.BFS:
            candidates = (node.id for node, _ in self.walk(start_id))
        else:
            candidates = (client.id for client in self._store.list_clients())

        for candidate_id in candidates:
            free = self.available_positions(candidate_id)
            if free:
                return candidate_id, free[0]
        return None

    # ------------------------------------------------------------------
    # Traversal
    # ------------------------------------------------------------------

    def children(self, node_id: str) -> list[MemberNode]:
        """Direct children of *node_id*, left before right."""
        if self._store.get(node_id) is None:
            raise ParentNotFoundError(node_id)
        return sorted(self._store.list_by_parent(node_id), key=_slot_rank)

    def walk(self, node_id: str) -> Iterator[tuple[MemberNode, int]]:
        """Yield ``(descendant, depth)`` in level order, left before right.

        Depth 1 is a direct child. Iterative: depth is bounded only by the
        data, not the interpreter stack.

        Raises:
            ParentNotFoundError: *node_id* has no record.
            TreeIntegrityError: A node is reached twice (a cycle or a
                shared child in corrupted data).
        """
        if self._store.get(node_id) is None:
            raise ParentNotFoundError(node_id)

        visited = {node_id}
        queue: deque[tuple[str, int]] = deque([(node_id, 0)])
        while queue:
            current_id, depth = queue.popleft()
            for child in sorted(self._store.list_by_parent(current_id), key=_slot_rank):
                if child.id in visited:
                    msg = f"Member '{child.id}' reached twice below '{node_id}'"
                    raise TreeIntegrityError(msg, node_id=node_id, member_id=child.id)
                visited.add(child.id)
                yield child, depth + 1
                queue.append((child.id, depth + 1))

    def downline(self, node_id: str) -> list[MemberNode]:
        """Every member transitively below *node_id*, excluding itself."""
        return [member for member, _ in self.walk(node_id)]

    # ------------------------------------------------------------------
    # Deletion support
    # ------------------------------------------------------------------

    def detach_children(self, node_id: str) -> list[MemberNode]:
        """Turn every direct child of *node_id* into an orphaned root.

        Must run before the node itself is deleted; returns the updated
        children.
        """
        detached: list[MemberNode] = []
        for child in self._store.list_by_parent(node_id):
            updated = self._store.update(child.id, MemberPatch(parent_id=None, position=None))
            if updated is not None:
                detached.append(updated)
        if detached:
            logger.info("Detached %d children of %s", len(detached), node_id)
        return detached
