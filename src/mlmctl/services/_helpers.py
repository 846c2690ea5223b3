"""Shared service-layer helper functions."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import ValidationError

if TYPE_CHECKING:
    from mlmctl.domain.members import MemberNode


def validation_messages(exc: ValidationError) -> list[str]:
    """Flatten a pydantic ValidationError into ``field: message`` strings."""
    messages: list[str] = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err["loc"])
        messages.append(f"{loc}: {err['msg']}" if loc else str(err["msg"]))
    return messages


def member_summary(member: MemberNode) -> dict[str, str | None]:
    """Compact view used in lists and tree output."""
    return {
        "id": member.id,
        "username": member.username,
        "role": member.role.value,
        "package": member.package.value if member.package else None,
        "parent_id": member.parent_id,
        "position": member.position.value if member.position else None,
    }
