"""ServiceResult and ServiceError — the universal service contract.

INVARIANT: All public service methods return ServiceResult.
The CLI and any in-process caller consume this type; domain exceptions
never cross this boundary.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field


class ErrorCode(StrEnum):
    """Codes produced by the service layer itself.

    Domain errors carry their own ``code`` (see :mod:`mlmctl.domain.errors`).
    """

    VALIDATION_FAILED = "VALIDATION_FAILED"
    NOT_FOUND = "NOT_FOUND"
    FORBIDDEN = "FORBIDDEN"
    PAYMENT_UNCONFIRMED = "PAYMENT_UNCONFIRMED"
    CANNOT_DELETE_ADMIN = "CANNOT_DELETE_ADMIN"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    WRONG_PASSWORD = "WRONG_PASSWORD"
    PLACEMENT_CONFLICT = "PLACEMENT_CONFLICT"
    NO_ADMIN = "NO_ADMIN"


class ServiceError(BaseModel):
    """Structured error payload within a ServiceResult."""

    model_config = {"frozen": True}

    code: str
    message: str
    detail: dict[str, Any] = Field(default_factory=dict)


class ServiceResult(BaseModel):
    """Return type for every service operation.

    Attributes:
        ok: Whether the operation succeeded.
        op: Name of the operation (e.g. ``"enroll_client"``).
        data: Operation-specific payload on success.
        warnings: Non-fatal issues (degraded placement, orphans, ...).
        error: Structured error if ``ok`` is False.
        meta: Optional metadata (attempt counts, etc.).
    """

    model_config = {"frozen": True}

    ok: bool
    op: str
    data: dict[str, Any] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)
    error: ServiceError | None = None
    meta: dict[str, Any] | None = None
