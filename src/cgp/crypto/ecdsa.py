"""Secp256k1 signing and signer recovery.

Signatures travel as 65 bytes R || S || V. V may be either the raw
recovery id (0/1) or the Ethereum-style 27/28; both recover the same
signer. The recovered signer is the Ethereum address of the public key
(last 20 bytes of keccak256(pubkey)).
"""

from __future__ import annotations

import logging

from eth_account import Account
from eth_account.messages import encode_defunct
from eth_keys import keys
from eth_keys.exceptions import BadSignature, ValidationError

from cgp.crypto.hashing import HASH_LENGTH, keccak
from cgp.errors import InvalidSignature


logger = logging.getLogger(__name__)

SIGNATURE_LENGTH = 65


def recover(msg_hash: bytes, signature: bytes) -> bytes:
    """Return the 20-byte address that produced ``signature`` over ``msg_hash``.

    Raises:
        InvalidSignature: If the signature is not 65 bytes, carries an
            unknown recovery id, or no public key can be recovered.
    """
    if len(msg_hash) != HASH_LENGTH:
        raise InvalidSignature(f"Message hash must be {HASH_LENGTH} bytes, got {len(msg_hash)}")
    if len(signature) != SIGNATURE_LENGTH:
        raise InvalidSignature(
            f"Signature must be {SIGNATURE_LENGTH} bytes (R||S||V), got {len(signature)}"
        )

    v = signature[64]
    if v >= 27:
        v -= 27
    if v not in (0, 1):
        raise InvalidSignature(f"Unsupported recovery id: {signature[64]}")

    try:
        sig = keys.Signature(signature_bytes=bytes(signature[:64]) + bytes([v]))
        public_key = sig.recover_public_key_from_msg_hash(bytes(msg_hash))
    except (BadSignature, ValidationError, ValueError) as exc:
        raise InvalidSignature(f"Signer could not be recovered: {exc}") from exc

    return public_key.to_canonical_address()


def sign_message_hash(msg_hash: bytes, private_key: bytes) -> bytes:
    """Sign a 32-byte hash directly, returning R || S || V with V in {0, 1}."""
    signature = keys.PrivateKey(bytes(private_key)).sign_msg_hash(bytes(msg_hash))
    return signature.to_bytes()


def sign_batch(batch_bytes: bytes, private_key: bytes | str) -> bytes:
    """Sign an encoded batch the way standard Ethereum wallets do.

    The wallet applies the signed-message envelope itself, so the result
    verifies against ``eth_signed_hash(keccak(batch_bytes))``. V is 27/28.
    """
    message = encode_defunct(primitive=keccak(batch_bytes))
    signed = Account.sign_message(message, private_key=private_key)
    return bytes(signed.signature)


def generate_keypair() -> tuple[bytes, bytes]:
    """Generate a fresh operator key. Returns (address, private_key)."""
    account = Account.create()
    logger.debug("Generated operator key for %s", account.address)
    return address_of(bytes(account.key)), bytes(account.key)


def address_of(private_key: bytes) -> bytes:
    """Canonical address controlled by a private key."""
    return keys.PrivateKey(bytes(private_key)).public_key.to_canonical_address()
