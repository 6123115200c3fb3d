"""Batch commands — a tagged union over the call blobs a batch carries.

Every call blob is ``abi.encode(string kind, bytes params)``. Two kinds
are understood by the gateway itself:

    transferOperatorship  params = abi.encode(address[], uint256[], uint256)
    approveContractCall   params = abi.encode(string sourceChain, string sourceAddress,
                                              address contractAddress, bytes32 payloadHash,
                                              bytes32 sourceTxHash, uint256 sourceEventIndex)

Any other kind decodes to a HostCommand: it is carried and signed like
the others but the executor never dispatches it.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Protocol, Sequence, Union

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError
from eth_utils import to_canonical_address

from cgp.crypto.abi import AddressLike, to_address, to_bytes32
from cgp.engine.origin import Origin
from cgp.errors import CannotLookup


CALL_TYPES = ["string", "bytes"]
TRANSFER_OPERATORSHIP_TYPES = ["address[]", "uint256[]", "uint256"]
APPROVE_CONTRACT_CALL_TYPES = ["string", "string", "address", "bytes32", "bytes32", "uint256"]


class CommandKind(str, enum.Enum):
    """Command kinds the gateway dispatches itself."""
    TRANSFER_OPERATORSHIP = "transferOperatorship"
    APPROVE_CONTRACT_CALL = "approveContractCall"


class PrivilegedCalls(Protocol):
    """The gateway operations a dispatched command may invoke."""

    def transfer_operatorship(
        self,
        origin: Origin,
        new_operators: Sequence[AddressLike],
        new_weights: Sequence[int],
        new_threshold: int,
    ) -> bytes: ...

    def approve_contract_call(
        self,
        origin: Origin,
        source_chain: str,
        source_address: str,
        contract_address: AddressLike,
        payload_hash: bytes,
        source_tx_hash: bytes,
        source_event_index: int,
        command_id: bytes,
    ) -> bytes: ...


# ---------------------------------------------------------------------------
# Command variants
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TransferOperatorship:
    """Rotate to a new operator set."""
    operators: tuple[bytes, ...]
    weights: tuple[int, ...]
    threshold: int

    kind = CommandKind.TRANSFER_OPERATORSHIP.value

    def dispatch(self, origin: Origin, gateway: PrivilegedCalls) -> None:
        gateway.transfer_operatorship(origin, self.operators, self.weights, self.threshold)


@dataclass(frozen=True)
class ApproveContractCall:
    """Approve one call from a source-chain contract for later forwarding."""
    command_id: bytes
    source_chain: str
    source_address: str
    contract_address: bytes
    payload_hash: bytes
    source_tx_hash: bytes
    source_event_index: int

    kind = CommandKind.APPROVE_CONTRACT_CALL.value

    def dispatch(self, origin: Origin, gateway: PrivilegedCalls) -> None:
        gateway.approve_contract_call(
            origin,
            self.source_chain,
            self.source_address,
            self.contract_address,
            self.payload_hash,
            self.source_tx_hash,
            self.source_event_index,
            self.command_id,
        )


@dataclass(frozen=True)
class HostCommand:
    """A command kind defined by the host chain, not by the gateway."""
    kind: str
    params: bytes

    def dispatch(self, origin: Origin, gateway: PrivilegedCalls) -> None:
        raise CannotLookup(f"No gateway handler for command kind {self.kind!r}")


Command = Union[TransferOperatorship, ApproveContractCall, HostCommand]


# ---------------------------------------------------------------------------
# Codec
# ---------------------------------------------------------------------------

def encode_call(kind: str, params: bytes) -> bytes:
    """Wrap command params into a call blob."""
    return encode(CALL_TYPES, [kind, bytes(params)])


def decode_call(blob: bytes) -> tuple[str, bytes]:
    """Split a call blob into (kind, params).

    Raises:
        CannotLookup: If the blob is not a (string, bytes) tuple.
    """
    try:
        kind, params = decode(CALL_TYPES, bytes(blob))
    except (DecodingError, ValueError, TypeError, OverflowError, UnicodeDecodeError) as exc:
        raise CannotLookup(f"Undecodable call: {exc}") from exc
    return kind, bytes(params)


def encode_transfer_operatorship(
    operators: Sequence[AddressLike],
    weights: Sequence[int],
    threshold: int,
) -> bytes:
    params = encode(
        TRANSFER_OPERATORSHIP_TYPES,
        [[to_address(op) for op in operators], list(weights), threshold],
    )
    return encode_call(CommandKind.TRANSFER_OPERATORSHIP.value, params)


def encode_approve_contract_call(
    source_chain: str,
    source_address: str,
    contract_address: AddressLike,
    payload_hash: bytes,
    source_tx_hash: bytes,
    source_event_index: int,
) -> bytes:
    params = encode(
        APPROVE_CONTRACT_CALL_TYPES,
        [
            source_chain,
            source_address,
            to_address(contract_address),
            to_bytes32(payload_hash),
            to_bytes32(source_tx_hash),
            source_event_index,
        ],
    )
    return encode_call(CommandKind.APPROVE_CONTRACT_CALL.value, params)


def decode_command(blob: bytes, command_id: bytes) -> Command:
    """Decode a batch call blob into a Command.

    ``command_id`` is the batch id of the item; approvals are keyed by it.

    Raises:
        CannotLookup: If the blob or the params of a known kind are malformed.
    """
    kind, params = decode_call(blob)

    try:
        if kind == CommandKind.TRANSFER_OPERATORSHIP.value:
            operators, weights, threshold = decode(TRANSFER_OPERATORSHIP_TYPES, params)
            return TransferOperatorship(
                operators=tuple(to_canonical_address(op) for op in operators),
                weights=tuple(weights),
                threshold=threshold,
            )

        if kind == CommandKind.APPROVE_CONTRACT_CALL.value:
            (
                source_chain,
                source_address,
                contract_address,
                payload_hash,
                source_tx_hash,
                source_event_index,
            ) = decode(APPROVE_CONTRACT_CALL_TYPES, params)
            return ApproveContractCall(
                command_id=bytes(command_id),
                source_chain=source_chain,
                source_address=source_address,
                contract_address=to_canonical_address(contract_address),
                payload_hash=bytes(payload_hash),
                source_tx_hash=bytes(source_tx_hash),
                source_event_index=source_event_index,
            )
    except (DecodingError, ValueError, TypeError, OverflowError, UnicodeDecodeError) as exc:
        raise CannotLookup(f"Malformed {kind} params: {exc}") from exc

    return HostCommand(kind=kind, params=params)
