"""Proof codec — ABI encoding compatible with the source-chain gateway.

Operators sign the exact bytes produced by ``encode_batch_params``; any
divergence from the Solidity ABI layout makes every signature invalid.
Encoding is delegated to ``eth_abi`` so the head/tail layout, padding and
dynamic offsets are the reference ones.

Wire formats:
    proof        (address[] operators, uint256[] weights, uint256 threshold, bytes[] signatures)
    batch        (uint256 chainId, bytes32[] commandIds, string[] commands, bytes[] calls)
    operators    (address[] operators, uint256[] weights, uint256 threshold)
    approval key (bytes32 commandId, string sourceChain, string sourceAddress,
                  address contractAddress, bytes32 payloadHash)
"""

from __future__ import annotations

from typing import Sequence, Union

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError
from eth_utils import is_address, to_canonical_address

from cgp.crypto.hashing import HASH_LENGTH, keccak
from cgp.errors import FailedToDecodeProof
from cgp.models.operators import Proof


AddressLike = Union[bytes, str]

ADDRESS_LENGTH = 20

PROOF_TYPES = ["address[]", "uint256[]", "uint256", "bytes[]"]
BATCH_TYPES = ["uint256", "bytes32[]", "string[]", "bytes[]"]
OPERATORS_TYPES = ["address[]", "uint256[]", "uint256"]
APPROVAL_KEY_TYPES = ["bytes32", "string", "string", "address", "bytes32"]


# ---------------------------------------------------------------------------
# Value normalisation
# ---------------------------------------------------------------------------

def to_address(value: AddressLike) -> bytes:
    """Normalise a 20-byte address or hex string to canonical bytes.

    Raises:
        ValueError: If the value is not an address.
    """
    if isinstance(value, (bytes, bytearray)):
        if len(value) != ADDRESS_LENGTH:
            raise ValueError(f"Address must be {ADDRESS_LENGTH} bytes, got {len(value)}")
        return bytes(value)
    if not is_address(value):
        raise ValueError(f"Not an address: {value!r}")
    return to_canonical_address(value)


def to_bytes32(value: bytes | str) -> bytes:
    """Normalise a 32-byte value given as bytes or 0x-prefixed hex."""
    if isinstance(value, str):
        value = bytes.fromhex(value[2:] if value.startswith("0x") else value)
    if len(value) != HASH_LENGTH:
        raise ValueError(f"Expected {HASH_LENGTH} bytes, got {len(value)}")
    return bytes(value)


# ---------------------------------------------------------------------------
# Proofs
# ---------------------------------------------------------------------------

def encode_proof(
    operators: Sequence[AddressLike],
    weights: Sequence[int],
    threshold: int,
    signatures: Sequence[bytes],
) -> bytes:
    """Encode a proof tuple as the relayer submits it."""
    return encode(
        PROOF_TYPES,
        [
            [to_address(op) for op in operators],
            list(weights),
            threshold,
            [bytes(s) for s in signatures],
        ],
    )


def decode_proof(payload: bytes) -> Proof:
    """Decode relayer-supplied proof bytes.

    Raises:
        FailedToDecodeProof: If the payload is not a well-formed proof tuple.
    """
    try:
        operators, weights, threshold, signatures = decode(PROOF_TYPES, bytes(payload))
    except (DecodingError, ValueError, TypeError, OverflowError) as exc:
        raise FailedToDecodeProof(f"Malformed proof payload: {exc}") from exc

    return Proof(
        operators=tuple(to_canonical_address(op) for op in operators),
        weights=tuple(weights),
        threshold=threshold,
        signatures=tuple(bytes(s) for s in signatures),
    )


# ---------------------------------------------------------------------------
# Operator sets and batches
# ---------------------------------------------------------------------------

def operators_hash(
    operators: Sequence[AddressLike],
    weights: Sequence[int],
    threshold: int,
) -> bytes:
    """keccak256(abi.encode(operators, weights, threshold))."""
    encoded = encode(
        OPERATORS_TYPES,
        [[to_address(op) for op in operators], list(weights), threshold],
    )
    return keccak(encoded)


def encode_batch_params(
    chain_id: int,
    command_ids: Sequence[bytes],
    commands: Sequence[str],
    calls: Sequence[bytes],
) -> bytes:
    """Encode the batch payload operators sign."""
    return encode(
        BATCH_TYPES,
        [
            chain_id,
            [to_bytes32(cid) for cid in command_ids],
            list(commands),
            [bytes(c) for c in calls],
        ],
    )


def approval_key(
    command_id: bytes,
    source_chain: str,
    source_address: str,
    contract_address: AddressLike,
    payload_hash: bytes,
) -> bytes:
    """Storage key for a contract-call approval."""
    encoded = encode(
        APPROVAL_KEY_TYPES,
        [
            to_bytes32(command_id),
            source_chain,
            source_address,
            to_address(contract_address),
            to_bytes32(payload_hash),
        ],
    )
    return keccak(encoded)
