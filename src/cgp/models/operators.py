"""Operator-set and proof data models.

An operator set is one version of the weighted multisig that authorises
batches. A proof carries the operator set it claims to be signed by plus
the signatures themselves; it is decoded per call and never persisted.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class OperatorSet:
    """A weighted operator set (addresses are canonical 20-byte values)."""
    operators: tuple[bytes, ...]
    weights: tuple[int, ...]
    threshold: int

    @property
    def total_weight(self) -> int:
        return sum(self.weights)

    def hash(self) -> bytes:
        """Registry key of this set: keccak256(abi.encode(operators, weights, threshold))."""
        from cgp.crypto.abi import operators_hash

        return operators_hash(self.operators, self.weights, self.threshold)

    def weight_of(self, address: bytes) -> int | None:
        """Weight of an operator, or None if the address is not a member."""
        try:
            index = self.operators.index(address)
        except ValueError:
            return None
        return self.weights[index]


@dataclass(frozen=True)
class Proof:
    """Signed evidence authorising a batch."""
    operators: tuple[bytes, ...]
    weights: tuple[int, ...]
    threshold: int
    signatures: tuple[bytes, ...]

    @property
    def operator_set(self) -> OperatorSet:
        return OperatorSet(
            operators=self.operators,
            weights=self.weights,
            threshold=self.threshold,
        )

    def encode(self) -> bytes:
        """ABI-encode the proof as a relayer submits it."""
        from cgp.crypto.abi import encode_proof

        return encode_proof(self.operators, self.weights, self.threshold, self.signatures)
