"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, mlmctl.toml only contains overrides.
A fresh registry needs only [registry] name.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from mlmctl.domain.types import ExhaustedPolicy, FallbackStrategy

# --- mlmctl.toml sections ---


class RegistryConfig(BaseModel):
    """[registry] section."""

    model_config = {"frozen": True}

    name: str = "my-network"


class PlacementConfig(BaseModel):
    """[placement] section."""

    model_config = {"frozen": True}

    fallback: FallbackStrategy = FallbackStrategy.SCAN
    on_exhausted: ExhaustedPolicy = ExhaustedPolicy.REJECT
    max_retries: int = Field(default=3, ge=1)


class SecurityConfig(BaseModel):
    """[security] section."""

    model_config = {"frozen": True}

    # bcrypt accepts 4..31
    bcrypt_rounds: int = Field(default=12, ge=4, le=31)
    admin_username: str = "admin"

