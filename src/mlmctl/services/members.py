"""MemberService — client creation, enrollment, profile and removal.

Creation pipeline: VALIDATE → RESOLVE PARENT → PLACE → INSERT → RESPOND

Placement and insert run in one transaction. If another writer takes the
chosen slot first, the store raises :class:`SlotTakenError`, the
transaction rolls back and the whole pipeline re-runs against fresh state,
up to ``[placement] max_retries`` attempts.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from mlmctl.domain.errors import (
    MembershipError,
    ParentNotFoundError,
    SlotTakenError,
    UsernameTakenError,
)
from mlmctl.domain.members import (
    MemberPatch,
    NewClient,
    NewMemberRecord,
    PasswordChange,
    ProfileUpdate,
)
from mlmctl.domain.types import Package, Position
from mlmctl.services._helpers import member_summary, validation_messages
from mlmctl.services.access import AccessService
from mlmctl.services.base import BaseService
from mlmctl.services.result import ErrorCode, ServiceResult

if TYPE_CHECKING:
    from collections.abc import Callable

    from mlmctl.domain.members import Actor, Placement
    from mlmctl.infrastructure.store import SqlMemberStore

logger = logging.getLogger(__name__)


def _parse_position(value: Position | str | None) -> Position | None:
    if value is None or isinstance(value, Position):
        return value
    return Position(value.lower())


class MemberService(BaseService):
    """Operations on individual members."""

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create_client(
        self,
        actor: Actor,
        *,
        parent: str | None = None,
        position: Position | str | None = None,
        **fields: Any,
    ) -> ServiceResult:
        """Create a client directly under a parent; fails if that parent is full.

        Admins place under *parent* (default: themselves). Clients always
        place inside their own downline: under themselves unless *parent*
        names one of their descendants.
        """
        op = "create_client"

        def resolve(store: SqlMemberStore) -> Placement:
            engine = self._tree_engine(store)
            parent_id = self._resolve_parent_id(store, parent, default=actor.member_id)
            if not actor.is_admin and parent_id != actor.member_id:
                downline = {m.id for m in engine.downline(actor.member_id)}
                if parent_id not in downline:
                    raise _Forbidden(parent_id)
            return engine.place_direct(parent_id, desired)

        try:
            desired = _parse_position(position)
        except ValueError:
            return self._invalid_position(op, position)
        return self._create(op, fields, resolve)

    def enroll_client(
        self,
        actor: Actor,
        *,
        payment_confirmed: bool,
        parent: str | None = None,
        position: Position | str | None = None,
        **fields: Any,
    ) -> ServiceResult:
        """Admin enrollment after payment, with fallback placement.

        The requested parent (default: the admin) gets the client if it has
        a free slot; otherwise the configured fallback strategy finds one.
        """
        op = "enroll_client"
        denied = AccessService.require_admin(actor, op)
        if denied is not None:
            return denied
        if not payment_confirmed:
            return self._failure(
                op,
                ErrorCode.PAYMENT_UNCONFIRMED,
                "Payment must be confirmed before enrollment",
            )

        def resolve(store: SqlMemberStore) -> Placement:
            admin = store.get_admin()
            admin_id = admin.id if admin is not None else None
            requested = self._resolve_parent_id(store, parent, default=admin_id)
            return self._tree_engine(store).place_with_fallback(requested, admin_id, desired)

        try:
            desired = _parse_position(position)
        except ValueError:
            return self._invalid_position(op, position)
        return self._create(op, fields, resolve)

    def _create(
        self,
        op: str,
        fields: dict[str, Any],
        resolve: Callable[[SqlMemberStore], Placement],
    ) -> ServiceResult:
        try:
            client = NewClient(**fields)
        except ValidationError as exc:
            return self._failure(
                op,
                ErrorCode.VALIDATION_FAILED,
                "; ".join(validation_messages(exc)),
            )

        password_hash = self._registry.passwords.hash(client.password)
        max_retries = self._registry.settings.placement.max_retries

        for attempt in range(1, max_retries + 1):
            try:
                with self._registry.transaction() as txn:
                    if txn.store.get_by_username(client.username) is not None:
                        raise UsernameTakenError(client.username)
                    placement = resolve(txn.store)
                    member = txn.store.insert(
                        NewMemberRecord(
                            username=client.username,
                            password_hash=password_hash,
                            package=client.package,
                            parent_id=placement.parent_id,
                            position=placement.position,
                            name=client.name,
                            email=client.email,
                            mobile=client.mobile,
                        )
                    )
            except SlotTakenError as exc:
                logger.info("Slot taken concurrently (attempt %d/%d): %s", attempt, max_retries, exc)
                continue
            except _Forbidden as exc:
                return self._failure(
                    op,
                    ErrorCode.FORBIDDEN,
                    "Clients can only add members inside their own downline",
                    parent_id=exc.parent_id,
                )
            except MembershipError as exc:
                return self._from_error(op, exc)

            return ServiceResult(
                ok=True,
                op=op,
                data={
                    "member": member.public(),
                    "placement": placement.model_dump(mode="json"),
                },
                warnings=self._placement_warnings(placement),
                meta={"attempts": attempt},
            )

        return self._failure(
            op,
            ErrorCode.PLACEMENT_CONFLICT,
            f"Placement kept colliding with concurrent writers after {max_retries} attempts",
            attempts=max_retries,
        )

    @staticmethod
    def _resolve_parent_id(store: SqlMemberStore, ref: str | None, *, default: str | None) -> str:
        if ref is None:
            if default is None:
                raise ParentNotFoundError(None)
            return default
        found = store.resolve(ref)
        if found is None:
            raise ParentNotFoundError(ref)
        return found.id

    @staticmethod
    def _placement_warnings(placement: Placement) -> list[str]:
        if not placement.placed:
            return ["No free position anywhere in the tree; member was created without a parent"]
        if placement.fallback:
            return [
                f"Requested parent '{placement.requested_parent_id}' is full; "
                f"placed under '{placement.parent_id}' ({placement.position})"
            ]
        return []

    def _invalid_position(self, op: str, position: object) -> ServiceResult:
        return self._failure(
            op,
            ErrorCode.VALIDATION_FAILED,
            f"position: must be one of {', '.join(p.value for p in Position)}",
            position=str(position),
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_member(self, ref: str, *, actor: Actor | None = None) -> ServiceResult:
        """Fetch one member by ID or username."""
        op = "get_member"
        with self._registry.connect() as store:
            member = store.resolve(ref)
        if member is None:
            return self._not_found(op, ref)
        if actor is not None:
            denied = AccessService.require_self_or_admin(actor, member.id, op)
            if denied is not None:
                return denied
        return ServiceResult(ok=True, op=op, data={"member": member.public()})

    def list_clients(
        self,
        *,
        package: Package | str | None = None,
        actor: Actor | None = None,
    ) -> ServiceResult:
        """All clients in creation order, optionally for one package."""
        op = "list_clients"
        try:
            wanted = Package(package) if package is not None else None
        except ValueError:
            return self._failure(
                op,
                ErrorCode.VALIDATION_FAILED,
                f"package: must be one of {', '.join(p.value for p in Package)}",
            )
        if actor is not None:
            denied = AccessService.require_admin(actor, op)
            if denied is not None:
                return denied

        with self._registry.connect() as store:
            clients = store.list_clients()
        if wanted is not None:
            clients = [c for c in clients if c.package == wanted]

        items = [{**member_summary(c), "created_at": c.created_at.isoformat()} for c in clients]
        return ServiceResult(ok=True, op=op, data={"items": items, "count": len(items)})

    def stats(self) -> ServiceResult:
        """Client totals per package plus the number of orphaned roots."""
        with self._registry.connect() as store:
            counts = store.package_counts()
            orphans = sum(1 for c in store.list_clients() if c.is_orphan)

        data: dict[str, int] = {"total": sum(counts.values())}
        for pkg in Package:
            data[pkg.value.lower()] = counts.get(pkg.value, 0)
        data["orphans"] = orphans
        return ServiceResult(ok=True, op="stats", data=data)

    # ------------------------------------------------------------------
    # Updates
    # ------------------------------------------------------------------

    def update_profile(self, actor: Actor, ref: str, **changes: Any) -> ServiceResult:
        """Change name, email and/or mobile. Only given fields are touched."""
        op = "update_profile"
        try:
            update = ProfileUpdate(**changes)
        except ValidationError as exc:
            return self._failure(
                op,
                ErrorCode.VALIDATION_FAILED,
                "; ".join(validation_messages(exc)),
            )

        with self._registry.transaction() as txn:
            target = txn.store.resolve(ref)
            if target is None:
                return self._not_found(op, ref)
            denied = AccessService.require_self_or_admin(actor, target.id, op)
            if denied is not None:
                return denied

            patch = update.to_patch()
            updated = txn.store.update(target.id, patch)

        if updated is None:
            return self._not_found(op, ref)
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "member": updated.public(),
                "fields_changed": sorted(patch.changes()),
            },
        )

    def change_password(
        self,
        actor: Actor,
        ref: str,
        *,
        current: str | None,
        new: str,
        confirm: str,
    ) -> ServiceResult:
        """Set a new password.

        Members changing their own password must supply the current one;
        the admin resetting someone else's does not.
        """
        op = "change_password"
        try:
            change = PasswordChange(current=current, new=new, confirm=confirm)
        except ValidationError as exc:
            return self._failure(
                op,
                ErrorCode.VALIDATION_FAILED,
                "; ".join(validation_messages(exc)),
            )

        with self._registry.transaction() as txn:
            target = txn.store.resolve(ref)
            if target is None:
                return self._not_found(op, ref)
            denied = AccessService.require_self_or_admin(actor, target.id, op)
            if denied is not None:
                return denied

            if actor.member_id == target.id and not self._registry.passwords.verify(
                change.current or "", target.password_hash
            ):
                return self._failure(op, ErrorCode.WRONG_PASSWORD, "Current password is incorrect")

            txn.store.update(
                target.id,
                MemberPatch(password_hash=self._registry.passwords.hash(change.new)),
            )

        logger.info("Password changed for %s", target.username)
        return ServiceResult(ok=True, op=op, data={"id": target.id, "username": target.username})

    # ------------------------------------------------------------------
    # Removal
    # ------------------------------------------------------------------

    def delete_member(self, actor: Actor, ref: str) -> ServiceResult:
        """Remove a client; its children become orphaned roots.

        Never cascades. The admin cannot be removed.
        """
        op = "delete_member"
        denied = AccessService.require_admin(actor, op)
        if denied is not None:
            return denied

        with self._registry.transaction() as txn:
            target = txn.store.resolve(ref)
            if target is None:
                return self._not_found(op, ref)
            if target.is_admin:
                return self._failure(
                    op,
                    ErrorCode.CANNOT_DELETE_ADMIN,
                    "Cannot delete admin user",
                    id=target.id,
                )

            detached = self._tree_engine(txn.store).detach_children(target.id)
            txn.store.delete(target.id)

        warnings = []
        if detached:
            names = ", ".join(m.username for m in detached)
            warnings.append(f"{len(detached)} member(s) orphaned: {names}")
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "id": target.id,
                "username": target.username,
                "detached": [m.id for m in detached],
            },
            warnings=warnings,
        )

    def _not_found(self, op: str, ref: str) -> ServiceResult:
        return self._failure(op, ErrorCode.NOT_FOUND, f"No member found: {ref}", ref=ref)


class _Forbidden(Exception):
    """Aborts a creation transaction when a client targets a foreign parent."""

    def __init__(self, parent_id: str) -> None:
        super().__init__(parent_id)
        self.parent_id = parent_id

