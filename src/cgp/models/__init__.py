"""Core data models for the gateway."""

from cgp.models.approval import ContractCallContext
from cgp.models.batch import BatchResult, ItemFailure
from cgp.models.operators import OperatorSet, Proof

__all__ = [
    "BatchResult",
    "ContractCallContext",
    "ItemFailure",
    "OperatorSet",
    "Proof",
]
