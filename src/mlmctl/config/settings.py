"""Unified settings — CLI flags, env vars, and TOML config in one object.

Priority chain (highest to lowest):
  1. Init kwargs  — CLI flags passed by Click
  2. Env vars     — ``MLMCTL_*`` prefix, nested sections via ``__``
  3. TOML file    — ``mlmctl.toml`` discovered via walk-up
  4. Code defaults — baked into the section models
"""

from __future__ import annotations

import threading
import tomllib
from pathlib import Path
from typing import Any

import click
from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from mlmctl.config.discovery import find_config
from mlmctl.config.models import PlacementConfig, RegistryConfig, SecurityConfig


class TomlSettingsSource(PydanticBaseSettingsSource):
    """Read settings from a ``mlmctl.toml`` file discovered via walk-up."""

    def __init__(self, settings_cls: type[BaseSettings], toml_path: Path | None) -> None:
        super().__init__(settings_cls)
        self._data: dict[str, Any] = {}
        if toml_path and toml_path.is_file():
            raw = toml_path.read_text(encoding="utf-8")
            try:
                self._data = tomllib.loads(raw)
            except tomllib.TOMLDecodeError as exc:
                msg = f"Invalid TOML in {toml_path}: {exc}"
                raise click.ClickException(msg) from exc

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        val = self._data.get(field_name)
        return val, field_name, field_name in self._data

    def __call__(self) -> dict[str, Any]:
        return self._data


# Thread-local storage for TOML path during construction.
_tls = threading.local()


class MlmSettings(BaseSettings):
    """Unified settings for the mlmctl CLI and services.

    Attributes:
        registry_root: Resolved registry directory (parent of
            ``mlmctl.toml``, or CWD if no config found).
        config_path: The TOML file actually loaded, if any.
        actor: Username the CLI acts as (``--as``); None means the admin.
    """

    model_config = {
        "frozen": True,
        "env_prefix": "MLMCTL_",
        "env_nested_delimiter": "__",
    }

    registry_root: Path = Field(default_factory=Path.cwd)
    config_path: Path | None = None

    # --- CLI flags ---
    json_output: bool = False
    quiet: bool = False
    verbose: bool = False
    log_json: bool = False
    no_interact: bool = False
    actor: str | None = None

    # --- TOML sections ---
    registry: RegistryConfig = Field(default_factory=RegistryConfig)
    placement: PlacementConfig = Field(default_factory=PlacementConfig)
    security: SecurityConfig = Field(default_factory=SecurityConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Insert TOML source between env vars and defaults."""
        toml_path = getattr(_tls, "toml_path", None)
        return (
            init_settings,
            env_settings,
            TomlSettingsSource(settings_cls, toml_path),
        )

    @classmethod
    def from_cli(
        cls,
        *,
        config_path: str | None = None,
        registry_root: Path | None = None,
        **cli_flags: Any,
    ) -> MlmSettings:
        """Construct settings from a CLI invocation.

        Discovers ``mlmctl.toml`` via walk-up (or explicit *config_path*),
        resolves *registry_root* from the config file's parent directory,
        and merges CLI flags as highest-priority overrides.
        """
        toml_path: Path | None = None
        if config_path:
            p = Path(config_path)
            if p.is_file():
                toml_path = p
        else:
            toml_path = find_config(registry_root)

        resolved_root = registry_root
        if resolved_root is None:
            resolved_root = toml_path.parent if toml_path else Path.cwd()

        _tls.toml_path = toml_path
        try:
            return cls(
                registry_root=resolved_root,
                config_path=toml_path,
                **cli_flags,
            )
        finally:
            _tls.toml_path = None
