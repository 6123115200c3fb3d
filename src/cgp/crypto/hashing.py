"""Hashing primitives shared by the proof codec, signatures, and approvals.

All hashes are Keccak-256, matching the source chain. The signed-message
convention reproduces ``eth_sign`` so off-chain operators can sign batches
with standard Ethereum tooling.
"""

from __future__ import annotations

from web3 import Web3


ETH_SIGNED_MESSAGE_PREFIX = b"\x19Ethereum Signed Message:\n32"

HASH_LENGTH = 32


def keccak(data: bytes) -> bytes:
    """Keccak-256 digest of raw bytes."""
    return bytes(Web3.keccak(primitive=bytes(data)))


def eth_signed_hash(message_hash: bytes) -> bytes:
    """Wrap a 32-byte hash in the Ethereum signed-message envelope.

    keccak256("\\x19Ethereum Signed Message:\\n32" || hash)
    """
    if len(message_hash) != HASH_LENGTH:
        raise ValueError(
            f"Signed-message hash expects {HASH_LENGTH} bytes, got {len(message_hash)}"
        )
    return keccak(ETH_SIGNED_MESSAGE_PREFIX + bytes(message_hash))


def call_hash(call_bytes: bytes) -> bytes:
    """Payload hash an approval commits to for a given forwarded call."""
    return eth_signed_hash(keccak(call_bytes))
