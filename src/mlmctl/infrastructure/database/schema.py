"""SQLAlchemy Core table definitions for the mlmctl database.

One table holds every member, admin and clients alike. The binary-tree
shape lives in ``parent_id`` + ``position``; the constraints below are the
store-level guard for the two-children-per-parent invariant when two
placements race for the same slot.
"""

from __future__ import annotations

from sqlalchemy import (
    Column,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    Table,
    Text,
    UniqueConstraint,
)

metadata = MetaData()

members = Table(
    "members",
    metadata,
    # Insertion order: the store's natural enumeration order.
    Column("seq", Integer, primary_key=True, autoincrement=True),
    Column("id", Text, nullable=False, unique=True),
    Column("username", Text, nullable=False, unique=True),
    Column("password_hash", Text, nullable=False),
    Column("role", Text, nullable=False, default="client", server_default="client"),
    Column("package", Text),  # Silver | Gold | Diamond, NULL for admin
    Column("parent_id", Text, ForeignKey("members.id")),
    Column("position", Text),  # left | right
    Column("name", Text),
    Column("email", Text),
    Column("mobile", Text),
    Column("created_at", Text, nullable=False),
    Column("modified_at", Text),
    # NULL parent_id rows (admin, orphans) never collide: NULLs are distinct.
    UniqueConstraint("parent_id", "position", name="uq_members_slot"),
)

# ---------------------------------------------------------------------------
# Indexes
# ---------------------------------------------------------------------------

Index("ix_members_parent", members.c.parent_id)
Index("ix_members_role", members.c.role)
Index(
    "ux_members_single_admin",
    members.c.role,
    unique=True,
    sqlite_where=members.c.role == "admin",
    postgresql_where=members.c.role == "admin",
)

# Columns that map 1:1 onto MemberNode fields (everything except seq).
MEMBER_COLUMNS = tuple(c for c in members.c if c.name != "seq")
