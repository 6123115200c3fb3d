"""Epoch validator — authenticates proofs against the operator registry.

A proof is accepted when the operator set it presents was registered
within the retention window of the current epoch and its signatures
carry enough weight. Keeping superseded sets valid for a few epochs lets
batches signed just before a rotation still land.
"""

from __future__ import annotations

import logging

from eth_utils import to_hex

from cgp.auth.registry import OperatorRegistry
from cgp.config import OLD_KEY_RETENTION
from cgp.crypto.abi import decode_proof
from cgp.crypto.signatures import validate_signatures
from cgp.errors import InvalidOperators, InvalidProof, SignatureError


logger = logging.getLogger(__name__)


def valid_operators(
    operators_epoch: int,
    current_epoch: int,
    retention_window: int = OLD_KEY_RETENTION,
) -> bool:
    """True if an operator set's epoch is known and still within retention."""
    return operators_epoch != 0 and current_epoch - operators_epoch < retention_window


class EpochValidator:
    """Validates raw proofs for a message hash."""

    def __init__(
        self,
        registry: OperatorRegistry,
        retention_window: int = OLD_KEY_RETENTION,
    ) -> None:
        self._registry = registry
        self._retention_window = retention_window

    def validate_proof(self, msg_hash: bytes, raw_proof: bytes) -> bool:
        """Authenticate ``raw_proof`` for ``msg_hash``.

        Returns:
            True if the proof was signed by the current operator set,
            False if by a superseded set still inside the retention window.

        Raises:
            FailedToDecodeProof: Proof bytes are malformed.
            InvalidOperators: Operator set unknown or outside retention.
            InvalidProof: Signatures do not meet the threshold.
        """
        proof = decode_proof(raw_proof)

        op_hash = proof.operator_set.hash()
        operators_epoch = self._registry.epoch_for_hash(op_hash)
        current_epoch = self._registry.current_epoch()

        if not valid_operators(operators_epoch, current_epoch, self._retention_window):
            raise InvalidOperators(
                f"Operator set {to_hex(op_hash)} (epoch {operators_epoch}) "
                f"is not valid at epoch {current_epoch}"
            )

        try:
            validate_signatures(msg_hash, proof)
        except SignatureError as exc:
            logger.warning("Proof rejected for epoch %d: %s", operators_epoch, exc.code)
            raise InvalidProof(f"{exc.code}: {exc}") from exc

        return operators_epoch == current_epoch
