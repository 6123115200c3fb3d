"""Tests for the proof codec — proves ABI layouts match the source-chain gateway."""

import pytest
from eth_abi import encode

from cgp.crypto.abi import (
    approval_key,
    decode_proof,
    encode_batch_params,
    encode_proof,
    operators_hash,
    to_address,
    to_bytes32,
)
from cgp.crypto.hashing import call_hash, eth_signed_hash, keccak
from cgp.errors import FailedToDecodeProof
from cgp.models import ContractCallContext, OperatorSet, Proof


OPS = [b"\x01" * 20, b"\x02" * 20, b"\x03" * 20]
WEIGHTS = [10, 10, 20]

# keccak256(abi.encode([0x01..,0x02..,0x03..], [10,10,20], 20))
EXPECTED_OPERATORS_HASH = bytes.fromhex(
    "e8015282bdaffd4065cdd1235cfa343c786b0bb7c962526ab00d6c6d122fd6a0"
)


class TestOperatorsHash:
    def test_known_vector(self) -> None:
        assert operators_hash(OPS, WEIGHTS, 20) == EXPECTED_OPERATORS_HASH

    def test_hex_addresses_hash_like_bytes(self) -> None:
        hex_ops = ["0x" + op.hex() for op in OPS]
        assert operators_hash(hex_ops, WEIGHTS, 20) == EXPECTED_OPERATORS_HASH

    def test_threshold_changes_hash(self) -> None:
        assert operators_hash(OPS, WEIGHTS, 21) != EXPECTED_OPERATORS_HASH


class TestProofCodec:
    def test_decode_encoded_proof(self) -> None:
        sigs = [b"\xaa" * 65, b"\xbb" * 65]
        proof = decode_proof(encode_proof(OPS, WEIGHTS, 20, sigs))
        assert proof.operators == tuple(OPS)
        assert proof.weights == (10, 10, 20)
        assert proof.threshold == 20
        assert proof.signatures == tuple(sigs)

    def test_operator_set_view(self) -> None:
        proof = decode_proof(encode_proof(OPS, WEIGHTS, 20, []))
        assert proof.operator_set.total_weight == 40
        assert proof.operator_set.weight_of(b"\x03" * 20) == 20
        assert proof.operator_set.weight_of(b"\x04" * 20) is None

    def test_encoding_matches_eth_abi_tuple(self) -> None:
        sigs = [b"\x01" * 65]
        expected = encode(
            ["address[]", "uint256[]", "uint256", "bytes[]"],
            [OPS, WEIGHTS, 20, sigs],
        )
        assert encode_proof(OPS, WEIGHTS, 20, sigs) == expected

    def test_garbage_rejected(self) -> None:
        with pytest.raises(FailedToDecodeProof):
            decode_proof(b"\x00" * 7)

    def test_truncated_proof_rejected(self) -> None:
        payload = encode_proof(OPS, WEIGHTS, 20, [b"\xaa" * 65])
        with pytest.raises(FailedToDecodeProof):
            decode_proof(payload[:-40])

    def test_empty_proof_rejected(self) -> None:
        with pytest.raises(FailedToDecodeProof):
            decode_proof(b"")


class TestBatchEncoding:
    def test_layout(self) -> None:
        cid = b"\x11" * 32
        expected = encode(
            ["uint256", "bytes32[]", "string[]", "bytes[]"],
            [2, [cid], ["approveContractCall"], [b"\x01\x02"]],
        )
        assert encode_batch_params(2, [cid], ["approveContractCall"], [b"\x01\x02"]) == expected

    def test_hex_command_ids_accepted(self) -> None:
        cid = b"\x11" * 32
        assert encode_batch_params(2, ["0x" + cid.hex()], ["x"], [b""]) == \
            encode_batch_params(2, [cid], ["x"], [b""])

    def test_chain_id_is_signed(self) -> None:
        a = encode_batch_params(1, [], [], [])
        b = encode_batch_params(2, [], [], [])
        assert keccak(a) != keccak(b)


class TestApprovalKey:
    def test_every_field_contributes(self) -> None:
        base = dict(
            command_id=b"\x01" * 32,
            source_chain="ethereum",
            source_address="0x" + "ab" * 20,
            contract_address=b"\x02" * 20,
            payload_hash=b"\x03" * 32,
        )
        key = approval_key(**base)
        for field, other in (
            ("command_id", b"\x09" * 32),
            ("source_chain", "polygon"),
            ("source_address", "0x" + "cd" * 20),
            ("contract_address", b"\x09" * 20),
            ("payload_hash", b"\x09" * 32),
        ):
            assert approval_key(**{**base, field: other}) != key, field

    def test_call_hash_is_signed_message_of_keccak(self) -> None:
        call = b"some call bytes"
        assert call_hash(call) == eth_signed_hash(keccak(call))


class TestNormalisation:
    def test_to_address_rejects_wrong_length(self) -> None:
        with pytest.raises(ValueError):
            to_address(b"\x01" * 19)

    def test_to_address_rejects_non_address(self) -> None:
        with pytest.raises(ValueError):
            to_address("not-an-address")

    def test_to_bytes32_hex(self) -> None:
        assert to_bytes32("0x" + "ff" * 32) == b"\xff" * 32

    def test_to_bytes32_wrong_length(self) -> None:
        with pytest.raises(ValueError):
            to_bytes32(b"\x00" * 31)


class TestModelHelpers:
    def test_operator_set_hash(self) -> None:
        op_set = OperatorSet(operators=tuple(OPS), weights=tuple(WEIGHTS), threshold=20)
        assert op_set.hash() == EXPECTED_OPERATORS_HASH

    def test_proof_encode(self) -> None:
        proof = Proof(
            operators=tuple(OPS), weights=tuple(WEIGHTS), threshold=20,
            signatures=(b"\xaa" * 65,),
        )
        assert proof.encode() == encode_proof(OPS, WEIGHTS, 20, [b"\xaa" * 65])
        assert decode_proof(proof.encode()) == proof

    def test_context_approval_key(self) -> None:
        context = ContractCallContext(
            command_id=b"\x01" * 32,
            source_chain="ethereum",
            source_address="0x" + "ab" * 20,
            contract_address=b"\x02" * 20,
            payload_hash=b"\x03" * 32,
        )
        assert context.approval_key() == approval_key(
            b"\x01" * 32, "ethereum", "0x" + "ab" * 20, b"\x02" * 20, b"\x03" * 32,
        )
