"""Tests for config models — defaults and validation."""

import pytest
from pydantic import ValidationError

from mlmctl.config.models import PlacementConfig, RegistryConfig, SecurityConfig


class TestDefaults:
    def test_section_defaults(self) -> None:
        assert RegistryConfig().name == "my-network"
        placement = PlacementConfig()
        assert placement.fallback.value == "scan"
        assert placement.on_exhausted.value == "reject"
        assert SecurityConfig().admin_username == "admin"

    def test_sparse_override(self) -> None:
        cfg = PlacementConfig.model_validate({"max_retries": 5})
        assert cfg.max_retries == 5
        assert cfg.fallback.value == "scan"


class TestValidation:
    def test_unknown_strategy(self) -> None:
        with pytest.raises(ValidationError):
            PlacementConfig.model_validate({"fallback": "random"})

    def test_retries_at_least_one(self) -> None:
        with pytest.raises(ValidationError):
            PlacementConfig(max_retries=0)

    @pytest.mark.parametrize("rounds", [3, 32])
    def test_bcrypt_rounds_bounds(self, rounds: int) -> None:
        with pytest.raises(ValidationError):
            SecurityConfig(bcrypt_rounds=rounds)
