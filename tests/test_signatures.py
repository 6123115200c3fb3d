"""Tests for signer recovery and weighted-threshold validation."""

import pytest
from eth_account import Account
from eth_account.messages import encode_defunct

from cgp.crypto.abi import encode_batch_params
from cgp.crypto.ecdsa import (
    address_of,
    generate_keypair,
    recover,
    sign_batch,
    sign_message_hash,
)
from cgp.crypto.hashing import ETH_SIGNED_MESSAGE_PREFIX, eth_signed_hash, keccak
from cgp.crypto.signatures import validate_signatures
from cgp.errors import (
    DuplicateSigners,
    InvalidSignature,
    LowSignaturesWeight,
    MalformedSigners,
    SignatureError,
)
from cgp.models.operators import Proof


MSG = eth_signed_hash(keccak(b"batch"))


def _keys(n: int) -> tuple[list[bytes], list[bytes]]:
    """Deterministic operator keys, returned sorted by address."""
    pairs = sorted((address_of(bytes([i + 1]) * 32), bytes([i + 1]) * 32) for i in range(n))
    return [a for a, _ in pairs], [k for _, k in pairs]


def _proof(operators, weights, threshold, signatures) -> Proof:
    return Proof(
        operators=tuple(operators),
        weights=tuple(weights),
        threshold=threshold,
        signatures=tuple(signatures),
    )


class TestSignedMessageHash:
    def test_prefix_layout(self) -> None:
        h = keccak(b"x")
        assert eth_signed_hash(h) == keccak(ETH_SIGNED_MESSAGE_PREFIX + h)

    def test_rejects_non_32_byte_input(self) -> None:
        with pytest.raises(ValueError):
            eth_signed_hash(b"\x00" * 31)

    def test_matches_wallet_signing(self) -> None:
        """A wallet-style signature over the batch hash recovers against eth_signed_hash."""
        key = bytes([7]) * 32
        h = keccak(b"payload")
        signed = Account.sign_message(encode_defunct(primitive=h), private_key=key)
        assert recover(eth_signed_hash(h), bytes(signed.signature)) == address_of(key)


class TestRecover:
    def test_raw_recovery_id(self) -> None:
        key = bytes([3]) * 32
        sig = sign_message_hash(MSG, key)
        assert sig[64] in (0, 1)
        assert recover(MSG, sig) == address_of(key)

    def test_ethereum_style_recovery_id(self) -> None:
        key = bytes([3]) * 32
        sig = sign_message_hash(MSG, key)
        shifted = sig[:64] + bytes([sig[64] + 27])
        assert recover(MSG, shifted) == address_of(key)

    def test_sign_batch_recovers_signer(self) -> None:
        address, key = generate_keypair()
        batch = encode_batch_params(2, [b"\x01" * 32], ["x"], [b""])
        sig = sign_batch(batch, key)
        assert sig[64] in (27, 28)
        assert recover(eth_signed_hash(keccak(batch)), sig) == address

    def test_wrong_length(self) -> None:
        with pytest.raises(InvalidSignature):
            recover(MSG, b"\x01" * 64)

    def test_bad_recovery_id(self) -> None:
        sig = sign_message_hash(MSG, bytes([3]) * 32)
        with pytest.raises(InvalidSignature):
            recover(MSG, sig[:64] + bytes([5]))

    def test_zero_signature(self) -> None:
        with pytest.raises(InvalidSignature):
            recover(MSG, b"\x00" * 65)

    def test_different_message_recovers_other_address(self) -> None:
        key = bytes([3]) * 32
        sig = sign_message_hash(MSG, key)
        other = eth_signed_hash(keccak(b"other"))
        assert recover(other, sig) != address_of(key)


class TestWeightedValidation:
    def test_exact_threshold_passes(self) -> None:
        ops, keys = _keys(3)
        sigs = [sign_message_hash(MSG, keys[0]), sign_message_hash(MSG, keys[1])]
        validate_signatures(MSG, _proof(ops, [10, 10, 20], 20, sigs))

    def test_single_heavy_signer_passes(self) -> None:
        ops, keys = _keys(3)
        validate_signatures(MSG, _proof(ops, [10, 10, 20], 20, [sign_message_hash(MSG, keys[2])]))

    def test_below_threshold_fails(self) -> None:
        ops, keys = _keys(3)
        sigs = [sign_message_hash(MSG, keys[0])]
        with pytest.raises(LowSignaturesWeight):
            validate_signatures(MSG, _proof(ops, [10, 10, 20], 20, sigs))

    def test_no_signatures_fails(self) -> None:
        ops, _ = _keys(3)
        with pytest.raises(LowSignaturesWeight):
            validate_signatures(MSG, _proof(ops, [10, 10, 20], 20, []))

    def test_non_member_signer(self) -> None:
        ops, keys = _keys(3)
        outsider = bytes([99]) * 32
        sigs = [sign_message_hash(MSG, outsider), sign_message_hash(MSG, keys[2])]
        with pytest.raises(MalformedSigners):
            validate_signatures(MSG, _proof(ops, [10, 10, 20], 20, sigs))

    def test_duplicate_signer_cannot_double_count(self) -> None:
        ops, keys = _keys(3)
        sig = sign_message_hash(MSG, keys[0])
        with pytest.raises(DuplicateSigners):
            validate_signatures(MSG, _proof(ops, [10, 10, 20], 20, [sig, sig]))

    def test_duplicate_in_both_encodings_detected(self) -> None:
        ops, keys = _keys(3)
        sig = sign_message_hash(MSG, keys[0])
        shifted = sig[:64] + bytes([sig[64] + 27])
        with pytest.raises(DuplicateSigners):
            validate_signatures(MSG, _proof(ops, [10, 10, 20], 20, [sig, shifted]))

    def test_signatures_after_threshold_ignored(self) -> None:
        ops, keys = _keys(3)
        sigs = [sign_message_hash(MSG, keys[2]), b"\x00" * 65]
        validate_signatures(MSG, _proof(ops, [10, 10, 20], 20, sigs))

    def test_wrong_message_fails(self) -> None:
        ops, keys = _keys(3)
        other = eth_signed_hash(keccak(b"other"))
        sigs = [sign_message_hash(other, keys[2])]
        with pytest.raises(SignatureError):
            validate_signatures(MSG, _proof(ops, [10, 10, 20], 20, sigs))
