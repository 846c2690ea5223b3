"""SqlMemberStore — the member store over the ``members`` table.

The store is bound to a ``Connection`` obtained from the registry; the
caller owns the transaction, so a placement read and the insert that
follows it commit or roll back together.

Constraint violations are translated into domain errors here:
``UNIQUE(username)`` becomes :class:`UsernameTakenError` and
``UNIQUE(parent_id, position)`` becomes :class:`SlotTakenError`.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.exc import IntegrityError

from mlmctl.domain.errors import SlotTakenError, UsernameTakenError
from mlmctl.domain.ids import generate_member_id, looks_like_member_id
from mlmctl.domain.members import MemberNode
from mlmctl.domain.types import Role
from mlmctl.infrastructure.database.schema import MEMBER_COLUMNS, members

if TYPE_CHECKING:
    from sqlalchemy import Connection, Select

    from mlmctl.domain.members import MemberPatch, NewMemberRecord


def _now() -> str:
    return datetime.now(UTC).isoformat()


class SqlMemberStore:
    """SQL implementation of :class:`mlmctl.domain.store.MemberStore`."""

    def __init__(self, conn: Connection) -> None:
        self._conn = conn

    @property
    def conn(self) -> Connection:
        """The bound connection (for callers that need raw SQL)."""
        return self._conn

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, member_id: str) -> MemberNode | None:
        return self._one(self._select().where(members.c.id == member_id))

    def get_by_username(self, username: str) -> MemberNode | None:
        return self._one(self._select().where(members.c.username == username))

    def resolve(self, ref: str) -> MemberNode | None:
        """Look *ref* up as an ID first, then as a username."""
        if looks_like_member_id(ref):
            found = self.get(ref)
            if found is not None:
                return found
        return self.get_by_username(ref)

    def get_admin(self) -> MemberNode | None:
        return self._one(self._select().where(members.c.role == Role.ADMIN.value))

    def list_by_parent(self, parent_id: str) -> list[MemberNode]:
        return self._many(
            self._select().where(members.c.parent_id == parent_id).order_by(members.c.seq)
        )

    def list_clients(self) -> list[MemberNode]:
        return self._many(
            self._select().where(members.c.role == Role.CLIENT.value).order_by(members.c.seq)
        )

    def list_all(self) -> list[MemberNode]:
        """Every member, admin included, in insertion order."""
        return self._many(self._select().order_by(members.c.seq))

    def package_counts(self) -> dict[str, int]:
        """Client count per package value."""
        rows = self._conn.execute(
            select(members.c.package, func.count(members.c.id))
            .where(members.c.role == Role.CLIENT.value)
            .group_by(members.c.package)
        ).all()
        return {str(pkg): int(count) for pkg, count in rows if pkg is not None}

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def insert(self, record: NewMemberRecord) -> MemberNode:
        if self.get_by_username(record.username) is not None:
            raise UsernameTakenError(record.username)

        member_id = generate_member_id()
        values: dict[str, Any] = record.model_dump(mode="json")
        values.update(id=member_id, created_at=_now())
        try:
            self._conn.execute(insert(members).values(**values))
        except IntegrityError as exc:
            translated = self._translate(exc, values)
            if translated is None:
                raise
            raise translated from exc

        created = self.get(member_id)
        assert created is not None  # just inserted on this connection
        return created

    def update(self, member_id: str, patch: MemberPatch) -> MemberNode | None:
        changes = patch.changes()
        if not changes:
            return self.get(member_id)

        try:
            result = self._conn.execute(
                update(members)
                .where(members.c.id == member_id)
                .values(**changes, modified_at=_now())
            )
        except IntegrityError as exc:
            translated = self._translate(exc, changes)
            if translated is None:
                raise
            raise translated from exc
        if result.rowcount == 0:
            return None
        return self.get(member_id)

    def delete(self, member_id: str) -> bool:
        result = self._conn.execute(delete(members).where(members.c.id == member_id))
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _select() -> Select[Any]:
        return select(*MEMBER_COLUMNS)

    def _one(self, stmt: Select[Any]) -> MemberNode | None:
        row = self._conn.execute(stmt).mappings().first()
        if row is None:
            return None
        return MemberNode.model_validate(dict(row))

    def _many(self, stmt: Select[Any]) -> list[MemberNode]:
        rows = self._conn.execute(stmt).mappings().all()
        return [MemberNode.model_validate(dict(row)) for row in rows]

    @staticmethod
    def _translate(exc: IntegrityError, values: dict[str, Any]) -> Exception | None:
        """Map a constraint violation onto the matching domain error."""
        message = str(exc.orig).lower()
        if "username" in message:
            return UsernameTakenError(str(values.get("username")))
        if "uq_members_slot" in message or "parent_id, members.position" in message:
            return SlotTakenError(values.get("parent_id"), values.get("position"))
        return None
