"""Operator authentication — registry and epoch-aware proof validation."""

from cgp.auth.epoch_validator import EpochValidator, valid_operators
from cgp.auth.registry import OperatorRegistry

__all__ = ["EpochValidator", "OperatorRegistry", "valid_operators"]
