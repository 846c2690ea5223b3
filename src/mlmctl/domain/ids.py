"""Member ID generation and input field patterns.

Member IDs are random UUID4 strings assigned at insert time.

INVARIANT: IDs are permanent. Once generated, an ID never changes.
"""

from __future__ import annotations

import re
import uuid

MEMBER_ID_PATTERN = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$")

USERNAME_PATTERN = r"^[a-zA-Z0-9_]+$"
MOBILE_PATTERN = r"^[0-9]{10}$"
EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


def generate_member_id() -> str:
    """Return a fresh member ID."""
    return str(uuid.uuid4())


def looks_like_member_id(ref: str) -> bool:
    """Whether *ref* has the shape of a generated member ID (vs. a username)."""
    return MEMBER_ID_PATTERN.match(ref) is not None
