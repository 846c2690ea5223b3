"""MemberStore — the record-store contract the placement engine runs against.

The engine never talks to a database directly. It receives an object
satisfying this protocol, so any keyed storage (SQL table, in-memory map)
can drive it. None of these operations is tree-aware.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from mlmctl.domain.members import MemberNode, MemberPatch, NewMemberRecord


class MemberStore(Protocol):
    """Keyed storage of :class:`MemberNode` records."""

    def get(self, member_id: str) -> MemberNode | None:
        """Return the member with *member_id*, or None."""
        ...

    def get_by_username(self, username: str) -> MemberNode | None:
        """Return the member registered as *username*, or None."""
        ...

    def list_by_parent(self, parent_id: str) -> list[MemberNode]:
        """Direct children of *parent_id*, any position."""
        ...

    def list_clients(self) -> list[MemberNode]:
        """All client-role members in insertion order."""
        ...

    def insert(self, record: NewMemberRecord) -> MemberNode:
        """Persist a new member.

        Raises:
            UsernameTakenError: The username is already registered.
            SlotTakenError: ``(parent_id, position)`` is already occupied.
        """
        ...

    def update(self, member_id: str, patch: MemberPatch) -> MemberNode | None:
        """Apply *patch*; return the updated member or None if absent."""
        ...

    def delete(self, member_id: str) -> bool:
        """Remove the record. Returns False if it did not exist."""
        ...
