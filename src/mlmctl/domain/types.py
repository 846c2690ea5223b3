"""Membership enums and the fixed slot order of the binary tree."""

from __future__ import annotations

from enum import StrEnum


class Role(StrEnum):
    """Who a member is in the registry."""

    ADMIN = "admin"
    CLIENT = "client"


class Package(StrEnum):
    """Package tier purchased by a client. Admins carry none."""

    SILVER = "Silver"
    GOLD = "Gold"
    DIAMOND = "Diamond"


class Position(StrEnum):
    """Slot a child occupies under its parent."""

    LEFT = "left"
    RIGHT = "right"


# Slots are always offered and filled left before right.
POSITION_ORDER: tuple[Position, ...] = (Position.LEFT, Position.RIGHT)


class FallbackStrategy(StrEnum):
    """How a full requested parent is worked around during enrollment."""

    SCAN = "scan"
    BFS = "bfs"


class ExhaustedPolicy(StrEnum):
    """What enrollment does when no node anywhere has a free slot."""

    REJECT = "reject"
    UNPLACED = "unplaced"
