"""Tests for gateway configuration loading."""

from pathlib import Path

import pytest

from cgp.config import DEFAULT_MAX_CALLS, OLD_KEY_RETENTION, GatewayConfig


CONFIG_DIR = Path(__file__).resolve().parents[1] / "config"


class TestGatewayConfig:
    def test_shipped_config(self) -> None:
        config = GatewayConfig.from_config_dir(CONFIG_DIR)
        assert config.chain_id == 2
        assert config.max_calls == 128
        assert config.retention_window == 16
        assert config.supported_source_chains == ("ethereum",)

    def test_defaults(self) -> None:
        config = GatewayConfig.from_dict({"chain_id": 7})
        assert config.max_calls == DEFAULT_MAX_CALLS
        assert config.retention_window == OLD_KEY_RETENTION

    def test_round_trip_dict(self) -> None:
        config = GatewayConfig.from_dict({"chain_id": 7, "supported_source_chains": ["a", "b"]})
        assert GatewayConfig.from_dict(config.to_dict()) == config

    def test_missing_chain_id(self) -> None:
        with pytest.raises(ValueError, match="chain_id"):
            GatewayConfig.from_dict({})

    @pytest.mark.parametrize("data", [
        {"chain_id": "2"},
        {"chain_id": True},
        {"chain_id": -1},
        {"chain_id": 2, "max_calls": 0},
        {"chain_id": 2, "retention_window": 0},
        {"chain_id": 2, "supported_source_chains": "ethereum"},
        {"chain_id": 2, "supported_source_chains": [""]},
    ])
    def test_invalid_values(self, data) -> None:
        with pytest.raises(ValueError):
            GatewayConfig.from_dict(data)
