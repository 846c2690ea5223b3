"""Membership error taxonomy.

Every error carries a stable ``code`` (surfaced in ``ServiceError.code``)
and a ``detail`` dict with the ids involved. The engine and the store raise
these; the service layer translates them into failed ``ServiceResult``
objects and never swallows them.
"""

from __future__ import annotations

from typing import Any


class MembershipError(Exception):
    """Base class for all membership-tree failures."""

    code = "MEMBERSHIP_ERROR"

    def __init__(self, message: str, **detail: Any) -> None:
        super().__init__(message)
        self.message = message
        self.detail: dict[str, Any] = detail


class ParentNotFoundError(MembershipError):
    """A referenced parent (or traversal root) has no record."""

    code = "PARENT_NOT_FOUND"

    def __init__(self, parent_id: str | None) -> None:
        if parent_id is None:
            msg = "No parent given and no admin to fall back to"
        else:
            msg = f"Parent '{parent_id}' not found"
        super().__init__(msg, parent_id=parent_id)
        self.parent_id = parent_id


class ParentFullError(MembershipError):
    """Direct placement requested under a parent with both slots taken."""

    code = "PARENT_FULL"

    def __init__(self, parent_id: str) -> None:
        super().__init__(f"Parent '{parent_id}' already has 2 children", parent_id=parent_id)
        self.parent_id = parent_id


class UsernameTakenError(MembershipError):
    """Raised by the store when a username is already registered."""

    code = "USERNAME_TAKEN"

    def __init__(self, username: str) -> None:
        super().__init__(f"Username '{username}' already exists", username=username)
        self.username = username


class SlotTakenError(MembershipError):
    """The store rejected a write because ``(parent_id, position)`` is occupied.

    Only happens when another writer filled the slot between the placement
    read and the insert. Services retry placement on this error.
    """

    code = "SLOT_TAKEN"

    def __init__(self, parent_id: str | None, position: str | None) -> None:
        super().__init__(
            f"Slot {position!r} under '{parent_id}' was taken concurrently",
            parent_id=parent_id,
            position=position,
        )
        self.parent_id = parent_id
        self.position = position


class PlacementExhaustedError(MembershipError):
    """Fallback search found no free slot anywhere, admin included."""

    code = "NO_FREE_SLOT"

    def __init__(self, requested_parent_id: str | None, admin_id: str | None) -> None:
        super().__init__(
            "No member in the tree has a free position",
            requested_parent_id=requested_parent_id,
            admin_id=admin_id,
        )


class TreeIntegrityError(MembershipError):
    """Stored data violates a tree invariant (corruption, not user error)."""

    code = "TREE_CORRUPT"
