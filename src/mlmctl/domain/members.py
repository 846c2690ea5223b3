"""Member records, creation/update inputs, placements and actors.

``MemberNode`` is what the store hands out. It is deliberately *not*
validated against the tree invariants on read: corrupt rows must still be
loadable so the engine can skip them and the checker can report them.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, model_validator

from mlmctl.domain.ids import EMAIL_PATTERN, MOBILE_PATTERN, USERNAME_PATTERN
from mlmctl.domain.types import Package, Position, Role


class MemberNode(BaseModel):
    """One registered participant of the network."""

    model_config = {"frozen": True}

    id: str
    username: str
    role: Role
    package: Package | None = None
    parent_id: str | None = None
    position: Position | None = None
    name: str | None = None
    email: str | None = None
    mobile: str | None = None
    password_hash: str = Field(default="", exclude=True, repr=False)
    created_at: datetime
    modified_at: datetime | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def is_orphan(self) -> bool:
        """A client left parentless by the deletion of its parent."""
        return self.role == Role.CLIENT and self.parent_id is None

    def public(self) -> dict[str, Any]:
        """JSON-safe dict without the password hash."""
        return self.model_dump(mode="json")


class NewClient(BaseModel):
    """Validated input for creating a client."""

    model_config = {"frozen": True, "str_strip_whitespace": True}

    username: str = Field(min_length=3, max_length=20, pattern=USERNAME_PATTERN)
    password: str = Field(min_length=6, max_length=50, repr=False)
    package: Package
    name: str | None = Field(default=None, min_length=2, max_length=50)
    email: str | None = Field(default=None, pattern=EMAIL_PATTERN)
    mobile: str | None = Field(default=None, pattern=MOBILE_PATTERN)


class NewMemberRecord(BaseModel):
    """Fully resolved row handed to ``MemberStore.insert``."""

    model_config = {"frozen": True}

    username: str
    password_hash: str = Field(repr=False)
    role: Role = Role.CLIENT
    package: Package | None = None
    parent_id: str | None = None
    position: Position | None = None
    name: str | None = None
    email: str | None = None
    mobile: str | None = None


class MemberPatch(BaseModel):
    """Partial update. Only explicitly set fields are applied.

    ``MemberPatch(position=None)`` clears the position;
    ``MemberPatch()`` changes nothing.
    """

    model_config = {"frozen": True}

    package: Package | None = None
    parent_id: str | None = None
    position: Position | None = None
    name: str | None = None
    email: str | None = None
    mobile: str | None = None
    password_hash: str | None = Field(default=None, repr=False)

    def changes(self) -> dict[str, Any]:
        """Column values to write, keyed by field name."""
        return self.model_dump(mode="json", exclude_unset=True)


class ProfileUpdate(BaseModel):
    """Profile fields a member may edit on their own record."""

    model_config = {"frozen": True, "str_strip_whitespace": True}

    name: str | None = Field(default=None, min_length=2, max_length=50)
    email: str | None = Field(default=None, pattern=EMAIL_PATTERN)
    mobile: str | None = Field(default=None, pattern=MOBILE_PATTERN)

    def to_patch(self) -> MemberPatch:
        return MemberPatch(**self.model_dump(exclude_unset=True))


class PasswordChange(BaseModel):
    """New-password input with confirmation."""

    model_config = {"frozen": True}

    current: str | None = Field(default=None, repr=False)
    new: str = Field(min_length=6, max_length=50, repr=False)
    confirm: str = Field(min_length=1, repr=False)

    @model_validator(mode="after")
    def _confirm_matches(self) -> PasswordChange:
        if self.new != self.confirm:
            msg = "Passwords don't match"
            raise ValueError(msg)
        return self


class Placement(BaseModel):
    """Resolved insertion point for a new member."""

    model_config = {"frozen": True}

    parent_id: str | None
    position: Position | None
    fallback: bool = False
    requested_parent_id: str | None = None

    @property
    def placed(self) -> bool:
        return self.parent_id is not None


class Actor(BaseModel):
    """Identity and role of whoever is calling a service."""

    model_config = {"frozen": True}

    member_id: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


class NewAdmin(BaseModel):
    """Validated input for bootstrapping the single admin."""

    model_config = {"frozen": True, "str_strip_whitespace": True}

    username: str = Field(min_length=3, max_length=20, pattern=USERNAME_PATTERN)
    password: str = Field(min_length=6, max_length=50, repr=False)
