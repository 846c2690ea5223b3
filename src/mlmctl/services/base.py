"""BaseService — foundation for all mlmctl services.

Every service receives a :class:`Registry` at construction time. The
Registry provides transactional access to the member store and the graph.
Services own their transaction boundaries via ``self._registry.transaction()``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from mlmctl.services.placement import TreeEngine
from mlmctl.services.result import ServiceError, ServiceResult

if TYPE_CHECKING:
    from mlmctl.domain.errors import MembershipError
    from mlmctl.domain.store import MemberStore
    from mlmctl.infrastructure.registry import Registry

logger = logging.getLogger(__name__)


class BaseService:
    """Base for all service-layer classes.

    Usage::

        class MemberService(BaseService):
            def get_member(self, ref: str) -> ServiceResult:
                with self._registry.connect() as store:
                    ...
    """

    def __init__(self, registry: Registry) -> None:
        self._registry = registry

    def _tree_engine(self, store: MemberStore) -> TreeEngine:
        """A placement engine over *store* configured from ``[placement]``."""
        placement = self._registry.settings.placement
        return TreeEngine(
            store,
            strategy=placement.fallback,
            on_exhausted=placement.on_exhausted,
        )

    @staticmethod
    def _failure(op: str, code: str, message: str, **detail: Any) -> ServiceResult:
        return ServiceResult(
            ok=False,
            op=op,
            error=ServiceError(code=str(code), message=message, detail=detail),
        )

    @staticmethod
    def _from_error(op: str, exc: MembershipError) -> ServiceResult:
        """Translate a domain exception into a failed result."""
        logger.debug("%s failed: %s %s", op, exc.code, exc.detail)
        return ServiceResult(
            ok=False,
            op=op,
            error=ServiceError(code=exc.code, message=exc.message, detail=exc.detail),
        )
