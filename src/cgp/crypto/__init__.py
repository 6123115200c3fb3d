"""Cryptographic primitives — hashing, ABI codec, ECDSA, weighted signatures."""

from cgp.crypto.abi import decode_proof, encode_batch_params, encode_proof, operators_hash
from cgp.crypto.ecdsa import recover
from cgp.crypto.hashing import eth_signed_hash, keccak
from cgp.crypto.signatures import validate_signatures

__all__ = [
    "decode_proof",
    "encode_batch_params",
    "encode_proof",
    "eth_signed_hash",
    "keccak",
    "operators_hash",
    "recover",
    "validate_signatures",
]
