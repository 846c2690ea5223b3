"""BootstrapService — registry initialization and the single admin.

A registry is a directory holding ``mlmctl.toml`` and ``.mlmctl/mlmctl.db``.
Initialization is idempotent: re-running it never creates a second admin
and never rewrites an existing config file.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from pydantic import ValidationError

from mlmctl.config.discovery import CONFIG_FILENAME
from mlmctl.domain.errors import UsernameTakenError
from mlmctl.domain.members import NewAdmin, NewMemberRecord
from mlmctl.domain.types import Role
from mlmctl.infrastructure.database.engine import DATA_DIRNAME, DB_FILENAME
from mlmctl.services._helpers import validation_messages
from mlmctl.services.base import BaseService
from mlmctl.services.result import ErrorCode, ServiceResult

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_ADMIN_PASSWORD = "admin123"


def render_config(name: str, admin_username: str | None = None) -> str:
    """Sparse ``mlmctl.toml``: only values that differ per registry."""
    text = f"[registry]\nname = {json.dumps(name)}\n"
    if admin_username is not None:
        text += f"\n[security]\nadmin_username = {json.dumps(admin_username)}\n"
    return text


class BootstrapService(BaseService):
    """Creates registries and their admin account."""

    @staticmethod
    def init_registry(
        root: Path,
        *,
        name: str,
        admin_username: str | None = None,
        admin_password: str = DEFAULT_ADMIN_PASSWORD,
    ) -> ServiceResult:
        """Create (or re-open) a registry at *root* and make sure it has an admin.

        Without *admin_username* the admin is named after
        ``security.admin_username`` (env, existing config, or default).
        """
        from mlmctl.config.settings import MlmSettings
        from mlmctl.infrastructure.registry import Registry

        op = "init_registry"
        warnings: list[str] = []

        root.mkdir(parents=True, exist_ok=True)
        config_path = root / CONFIG_FILENAME
        if config_path.exists():
            warnings.append(f"{CONFIG_FILENAME} already exists; left unchanged")
        else:
            config_path.write_text(render_config(name, admin_username), encoding="utf-8")

        settings = MlmSettings.from_cli(config_path=str(config_path), registry_root=root)
        registry = Registry(settings)
        try:
            admin_result = BootstrapService(registry).ensure_admin(admin_username, admin_password)
        finally:
            registry.close()

        if not admin_result.ok:
            return admin_result.model_copy(update={"op": op})

        warnings.extend(admin_result.warnings)
        if admin_result.data["created"] and admin_password == DEFAULT_ADMIN_PASSWORD:
            warnings.append("Admin uses the default password; change it with 'mlmctl member passwd'")

        return ServiceResult(
            ok=True,
            op=op,
            data={
                "name": settings.registry.name,
                "root": str(root),
                "config_path": str(config_path),
                "db_path": str(root / DATA_DIRNAME / DB_FILENAME),
                "admin": admin_result.data["admin"],
                "created": admin_result.data["created"],
            },
            warnings=warnings,
        )

    def ensure_admin(self, username: str | None, password: str) -> ServiceResult:
        """Insert the admin unless one already exists.

        *username* defaults to ``security.admin_username``.
        """
        op = "ensure_admin"
        if username is None:
            username = self._registry.settings.security.admin_username
        try:
            new_admin = NewAdmin(username=username, password=password)
        except ValidationError as exc:
            return self._failure(
                op,
                ErrorCode.VALIDATION_FAILED,
                "; ".join(validation_messages(exc)),
            )

        with self._registry.transaction() as txn:
            existing = txn.store.get_admin()
            if existing is not None:
                warnings = []
                if existing.username != new_admin.username:
                    warnings.append(
                        f"Registry already has admin '{existing.username}'; "
                        f"'{new_admin.username}' was not created"
                    )
                return ServiceResult(
                    ok=True,
                    op=op,
                    data={"admin": existing.public(), "created": False},
                    warnings=warnings,
                )

            try:
                admin = txn.store.insert(
                    NewMemberRecord(
                        username=new_admin.username,
                        password_hash=self._registry.passwords.hash(new_admin.password),
                        role=Role.ADMIN,
                    )
                )
            except UsernameTakenError as exc:
                return self._from_error(op, exc)

        logger.info("Created admin %s", admin.username)
        return ServiceResult(ok=True, op=op, data={"admin": admin.public(), "created": True})
