"""Tests for SqlMemberStore — reads, writes and constraint translation."""

from __future__ import annotations

import pytest

from mlmctl.domain.errors import SlotTakenError, UsernameTakenError
from mlmctl.domain.ids import looks_like_member_id
from mlmctl.domain.members import MemberPatch
from mlmctl.domain.types import Package, Position, Role
from mlmctl.infrastructure.store import SqlMemberStore
from tests.conftest import put


class TestInsert:
    def test_assigns_id_and_timestamp(self, store: SqlMemberStore) -> None:
        m = put(store, "alice")
        assert looks_like_member_id(m.id)
        assert m.created_at is not None
        assert m.modified_at is None
        assert m.package == Package.SILVER

    def test_username_taken(self, store: SqlMemberStore) -> None:
        put(store, "alice")
        with pytest.raises(UsernameTakenError) as exc_info:
            put(store, "alice")
        assert exc_info.value.detail == {"username": "alice"}

    def test_slot_taken(self, store: SqlMemberStore) -> None:
        root = put(store, "root", role=Role.ADMIN)
        put(store, "a", parent=root, position="left")
        with pytest.raises(SlotTakenError) as exc_info:
            put(store, "b", parent=root, position="left")
        assert exc_info.value.parent_id == root.id
        assert exc_info.value.position == "left"


class TestReads:
    def test_resolve_by_id_or_username(self, store: SqlMemberStore) -> None:
        m = put(store, "alice")
        assert store.resolve(m.id) == m
        assert store.resolve("alice") == m
        assert store.resolve("nobody") is None

    def test_get_admin(self, store: SqlMemberStore) -> None:
        assert store.get_admin() is None
        admin = put(store, "admin", role=Role.ADMIN)
        assert store.get_admin() == admin
        assert admin.package is None

    def test_list_by_parent_in_insertion_order(self, store: SqlMemberStore) -> None:
        root = put(store, "root", role=Role.ADMIN)
        put(store, "r", parent=root, position="right")
        put(store, "l", parent=root, position="left")
        assert [m.username for m in store.list_by_parent(root.id)] == ["r", "l"]

    def test_list_clients_excludes_admin(self, store: SqlMemberStore) -> None:
        put(store, "admin", role=Role.ADMIN)
        put(store, "b")
        put(store, "a")
        assert [m.username for m in store.list_clients()] == ["b", "a"]
        assert [m.username for m in store.list_all()] == ["admin", "b", "a"]

    def test_package_counts(self, store: SqlMemberStore) -> None:
        put(store, "admin", role=Role.ADMIN)
        put(store, "a", package="Gold")
        put(store, "b", package="Gold")
        put(store, "c", package="Diamond")
        assert store.package_counts() == {"Gold": 2, "Diamond": 1}


class TestUpdateDelete:
    def test_patch_only_given_fields(self, store: SqlMemberStore) -> None:
        m = put(store, "alice")
        updated = store.update(m.id, MemberPatch(email="a@example.com"))
        assert updated is not None
        assert updated.email == "a@example.com"
        assert updated.package == Package.SILVER
        assert updated.modified_at is not None

    def test_clear_parent(self, store: SqlMemberStore) -> None:
        root = put(store, "root", role=Role.ADMIN)
        child = put(store, "a", parent=root, position="left")
        updated = store.update(child.id, MemberPatch(parent_id=None, position=None))
        assert updated is not None
        assert updated.parent_id is None
        assert updated.position is None

    def test_empty_patch_is_noop(self, store: SqlMemberStore) -> None:
        m = put(store, "alice")
        assert store.update(m.id, MemberPatch()) == m

    def test_update_missing(self, store: SqlMemberStore) -> None:
        assert store.update("nope", MemberPatch(name="Xy")) is None

    def test_move_into_taken_slot(self, store: SqlMemberStore) -> None:
        root = put(store, "root", role=Role.ADMIN)
        put(store, "a", parent=root, position="left")
        b = put(store, "b", parent=root, position="right")
        with pytest.raises(SlotTakenError):
            store.update(b.id, MemberPatch(position=Position.LEFT))

    def test_delete(self, store: SqlMemberStore) -> None:
        m = put(store, "alice")
        assert store.delete(m.id) is True
        assert store.get(m.id) is None
        assert store.delete(m.id) is False
