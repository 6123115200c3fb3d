"""Gateway configuration — loads and validates runtime parameters.

Parameters live in ``config/gateway.json`` at the project root. The file
is plain JSON so operators can review it alongside deployments:

    {
        "chain_id": 2,
        "max_calls": 128,
        "retention_window": 16,
        "supported_source_chains": ["ethereum"]
    }

``chain_id`` is the only required key.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any


CONFIG_FILENAME = "gateway.json"

# Number of epochs a superseded operator set stays valid for proofs.
OLD_KEY_RETENTION = 16

# Upper bound on calls per batch. Guards against attacker-sized batches.
DEFAULT_MAX_CALLS = 128


@dataclass(frozen=True)
class GatewayConfig:
    """Immutable gateway parameters."""

    chain_id: int
    max_calls: int = DEFAULT_MAX_CALLS
    retention_window: int = OLD_KEY_RETENTION
    supported_source_chains: tuple[str, ...] = ("ethereum",)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GatewayConfig:
        """Build a config from a plain mapping.

        Raises:
            ValueError: If a key is missing or has an invalid value.
        """
        if "chain_id" not in data:
            raise ValueError("Gateway config is missing required key 'chain_id'")

        chain_id = data["chain_id"]
        max_calls = data.get("max_calls", DEFAULT_MAX_CALLS)
        retention = data.get("retention_window", OLD_KEY_RETENTION)
        chains = data.get("supported_source_chains", ["ethereum"])

        for name, value in (
            ("chain_id", chain_id),
            ("max_calls", max_calls),
            ("retention_window", retention),
        ):
            if not isinstance(value, int) or isinstance(value, bool):
                raise ValueError(f"{name} must be an integer, got {value!r}")

        if chain_id < 0:
            raise ValueError(f"chain_id must be non-negative, got {chain_id}")
        if max_calls < 1:
            raise ValueError(f"max_calls must be at least 1, got {max_calls}")
        if retention < 1:
            raise ValueError(f"retention_window must be at least 1, got {retention}")
        if not isinstance(chains, (list, tuple)) or not all(
            isinstance(c, str) and c for c in chains
        ):
            raise ValueError("supported_source_chains must be a list of non-empty strings")

        return cls(
            chain_id=chain_id,
            max_calls=max_calls,
            retention_window=retention,
            supported_source_chains=tuple(chains),
        )

    @classmethod
    def from_config_dir(cls, config_dir: Path) -> GatewayConfig:
        """Load ``gateway.json`` from a configuration directory."""
        path = config_dir / CONFIG_FILENAME
        data = json.loads(path.read_text(encoding="utf-8"))
        return cls.from_dict(data)

    def to_dict(self) -> dict[str, Any]:
        return {
            "chain_id": self.chain_id,
            "max_calls": self.max_calls,
            "retention_window": self.retention_window,
            "supported_source_chains": list(self.supported_source_chains),
        }
