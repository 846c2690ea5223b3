"""CheckService — tree integrity verification.

Single command following the linter pattern: reports, never modifies.
Three categories: slot structure, parent references and roles.
"""

from __future__ import annotations

from collections import Counter, defaultdict
from typing import Any

import networkx as nx

from mlmctl.domain.members import MemberNode
from mlmctl.domain.types import Role
from mlmctl.services.base import BaseService
from mlmctl.services.result import ErrorCode, ServiceResult

# ---------------------------------------------------------------------------
# Issue severity and category constants
# ---------------------------------------------------------------------------

SEVERITY_ERROR = "error"
SEVERITY_WARNING = "warning"
_SEVERITY_RANK = {SEVERITY_WARNING: 0, SEVERITY_ERROR: 1}

CAT_SLOTS = "slot_structure"
CAT_REFERENCES = "parent_references"
CAT_ROLES = "roles"


def _issue(category: str, severity: str, member_id: str | None, message: str) -> dict[str, Any]:
    return {
        "category": category,
        "severity": severity,
        "member_id": member_id,
        "message": message,
    }


class CheckService(BaseService):
    """Verifies every tree invariant over the whole registry."""

    def check(self, *, min_severity: str = SEVERITY_WARNING) -> ServiceResult:
        """Report integrity issues without modifying anything."""
        op = "check"
        if min_severity not in _SEVERITY_RANK:
            return self._failure(
                op,
                ErrorCode.VALIDATION_FAILED,
                f"min_severity must be one of: {', '.join(_SEVERITY_RANK)}",
            )

        with self._registry.connect() as store:
            everyone = store.list_all()

        issues: list[dict[str, Any]] = []
        issues.extend(self._check_slots(everyone))
        issues.extend(self._check_references(everyone))
        issues.extend(self._check_roles(everyone))

        threshold = _SEVERITY_RANK[min_severity]
        issues = [i for i in issues if _SEVERITY_RANK[i["severity"]] >= threshold]
        errors = sum(1 for i in issues if i["severity"] == SEVERITY_ERROR)

        return ServiceResult(
            ok=True,
            op=op,
            data={
                "issues": issues,
                "count": len(issues),
                "errors": errors,
                "warnings": len(issues) - errors,
                "members": len(everyone),
            },
        )

    # ------------------------------------------------------------------
    # Slot structure
    # ------------------------------------------------------------------

    @staticmethod
    def _check_slots(everyone: list[MemberNode]) -> list[dict[str, Any]]:
        issues: list[dict[str, Any]] = []
        by_parent: dict[str, list[MemberNode]] = defaultdict(list)
        for m in everyone:
            if m.parent_id is not None:
                by_parent[m.parent_id].append(m)

            if m.parent_id is not None and m.position is None:
                issues.append(
                    _issue(CAT_SLOTS, SEVERITY_ERROR, m.id, f"'{m.username}' has a parent but no position")
                )
            elif m.parent_id is None and m.position is not None:
                issues.append(
                    _issue(
                        CAT_SLOTS,
                        SEVERITY_ERROR,
                        m.id,
                        f"'{m.username}' has position '{m.position}' but no parent",
                    )
                )

        for parent_id, kids in by_parent.items():
            if len(kids) > 2:
                issues.append(
                    _issue(
                        CAT_SLOTS,
                        SEVERITY_ERROR,
                        parent_id,
                        f"Parent has {len(kids)} children (max 2)",
                    )
                )
            taken = Counter(k.position for k in kids if k.position is not None)
            for position, count in taken.items():
                if count > 1:
                    issues.append(
                        _issue(
                            CAT_SLOTS,
                            SEVERITY_ERROR,
                            parent_id,
                            f"{count} children share position '{position}'",
                        )
                    )
        return issues

    # ------------------------------------------------------------------
    # Parent references
    # ------------------------------------------------------------------

    @staticmethod
    def _check_references(everyone: list[MemberNode]) -> list[dict[str, Any]]:
        issues: list[dict[str, Any]] = []
        ids = {m.id for m in everyone}

        g: nx.DiGraph = nx.DiGraph()
        g.add_nodes_from(ids)
        for m in everyone:
            if m.parent_id is None:
                continue
            if m.parent_id not in ids:
                issues.append(
                    _issue(
                        CAT_REFERENCES,
                        SEVERITY_ERROR,
                        m.id,
                        f"'{m.username}' references missing parent '{m.parent_id}'",
                    )
                )
                continue
            g.add_edge(m.parent_id, m.id)

        for cycle in nx.simple_cycles(g):
            issues.append(
                _issue(
                    CAT_REFERENCES,
                    SEVERITY_ERROR,
                    cycle[0],
                    f"Parent cycle: {' -> '.join(cycle)}",
                )
            )
        return issues

    # ------------------------------------------------------------------
    # Roles
    # ------------------------------------------------------------------

    @staticmethod
    def _check_roles(everyone: list[MemberNode]) -> list[dict[str, Any]]:
        issues: list[dict[str, Any]] = []
        admins = [m for m in everyone if m.role == Role.ADMIN]
        if len(admins) != 1:
            issues.append(
                _issue(CAT_ROLES, SEVERITY_ERROR, None, f"Expected exactly 1 admin, found {len(admins)}")
            )

        for m in everyone:
            if m.role == Role.ADMIN:
                if m.parent_id is not None:
                    issues.append(_issue(CAT_ROLES, SEVERITY_ERROR, m.id, "Admin has a parent"))
                if m.package is not None:
                    issues.append(
                        _issue(CAT_ROLES, SEVERITY_WARNING, m.id, "Admin carries a package")
                    )
                continue
            if m.package is None:
                issues.append(
                    _issue(CAT_ROLES, SEVERITY_ERROR, m.id, f"Client '{m.username}' has no package")
                )
            if m.is_orphan:
                issues.append(
                    _issue(
                        CAT_ROLES,
                        SEVERITY_WARNING,
                        m.id,
                        f"Client '{m.username}' is an orphaned root (no parent)",
                    )
                )
        return issues
