"""Weighted-threshold signature validation.

Signatures are walked in submission order. Each recovered signer must be
a member of the proof's operator set and may be counted only once; the
proof is accepted as soon as the accumulated weight reaches the
threshold. Signatures after that point are not inspected.
"""

from __future__ import annotations

import logging

from cgp.crypto.ecdsa import recover
from cgp.errors import DuplicateSigners, LowSignaturesWeight, MalformedSigners
from cgp.models.operators import Proof


logger = logging.getLogger(__name__)


def validate_signatures(msg_hash: bytes, proof: Proof) -> None:
    """Check that operators holding at least ``threshold`` weight signed ``msg_hash``.

    Raises:
        InvalidSignature: A signature is malformed or unrecoverable.
        MalformedSigners: A signer is not in the operator set.
        DuplicateSigners: An operator's signature appears twice.
        LowSignaturesWeight: All signatures were consumed below threshold.
    """
    operator_set = proof.operator_set
    seen: set[bytes] = set()
    weight = 0

    for position, signature in enumerate(proof.signatures):
        signer = recover(msg_hash, signature)

        signer_weight = operator_set.weight_of(signer)
        if signer_weight is None:
            raise MalformedSigners(
                f"Signature {position} recovered 0x{signer.hex()}, which is not an operator"
            )

        # A repeated signer would double-count its weight.
        if signer in seen:
            raise DuplicateSigners(f"Operator 0x{signer.hex()} signed more than once")
        seen.add(signer)

        weight += signer_weight
        logger.debug(
            "Signature %d from 0x%s: weight %d/%d",
            position, signer.hex(), weight, proof.threshold,
        )
        if weight >= proof.threshold:
            return

    raise LowSignaturesWeight(
        f"Signed weight {weight} is below threshold {proof.threshold}"
    )
