"""AccessService — who is calling, and what they may touch.

Clients may only read and edit their own record and their own downline;
structural operations (enrollment, deletion) belong to the admin.
"""

from __future__ import annotations

import logging

from mlmctl.domain.members import Actor
from mlmctl.domain.types import Role
from mlmctl.services.base import BaseService
from mlmctl.services.result import ErrorCode, ServiceResult

logger = logging.getLogger(__name__)


class AccessService(BaseService):
    """Actor resolution, credential checks and role gates."""

    def resolve_actor(self, username: str | None = None) -> ServiceResult:
        """Look up the acting member; the admin when *username* is None."""
        op = "resolve_actor"
        with self._registry.connect() as store:
            if username is None:
                member = store.get_admin()
                if member is None:
                    return self._failure(
                        op,
                        ErrorCode.NO_ADMIN,
                        "Registry has no admin. Run 'mlmctl init' first.",
                    )
            else:
                member = store.get_by_username(username)
                if member is None:
                    return self._failure(
                        op,
                        ErrorCode.NOT_FOUND,
                        f"No member with username: {username}",
                        username=username,
                    )

        return ServiceResult(
            ok=True,
            op=op,
            data={"member_id": member.id, "username": member.username, "role": member.role.value},
        )

    def authenticate(self, username: str, password: str, role: Role | None = None) -> ServiceResult:
        """Verify a username/password pair, optionally for a specific role.

        Unknown users, wrong passwords and role mismatches all produce the
        same ``INVALID_CREDENTIALS`` error.
        """
        op = "authenticate"
        with self._registry.connect() as store:
            member = store.get_by_username(username)

        valid = (
            member is not None
            and self._registry.passwords.verify(password, member.password_hash)
            and (role is None or member.role == role)
        )
        if not valid or member is None:
            logger.info("Authentication failed for %s", username)
            return self._failure(op, ErrorCode.INVALID_CREDENTIALS, "Invalid credentials")

        return ServiceResult(ok=True, op=op, data={"member": member.public()})

    # ------------------------------------------------------------------
    # Gates
    # ------------------------------------------------------------------

    @staticmethod
    def require_admin(actor: Actor, op: str) -> ServiceResult | None:
        """A ``FORBIDDEN`` result unless *actor* is the admin."""
        if actor.is_admin:
            return None
        return BaseService._failure(
            op,
            ErrorCode.FORBIDDEN,
            "Only the admin can perform this operation",
            actor_id=actor.member_id,
        )

    @staticmethod
    def require_self_or_admin(actor: Actor, member_id: str, op: str) -> ServiceResult | None:
        """A ``FORBIDDEN`` result unless *actor* is the admin or *member_id*."""
        if actor.is_admin or actor.member_id == member_id:
            return None
        return BaseService._failure(
            op,
            ErrorCode.FORBIDDEN,
            "Access denied: clients may only access their own record",
            actor_id=actor.member_id,
            member_id=member_id,
        )


def actor_from_result(result: ServiceResult) -> Actor:
    """Build an :class:`Actor` from a successful ``resolve_actor`` result."""
    return Actor(member_id=result.data["member_id"], role=Role(result.data["role"]))
