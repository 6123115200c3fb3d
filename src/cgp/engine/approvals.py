"""Contract-call approvals — single-use authorisations for forwarded calls.

An approval is created by an ``approveContractCall`` batch command and
names exactly one call: the command id, the source chain and sender,
the target contract, and the hash of the call bytes. Anyone may later
present the matching call bytes to forward it; the approval is consumed
by that forward.

The approval is taken out of the store before the forwarder runs, so a
forwarder that re-enters the gateway cannot spend it twice, and put back
if the forwarder fails, so a transient delivery failure does not lose it.
"""

from __future__ import annotations

import logging

from eth_utils import to_hex

from cgp.crypto.abi import AddressLike, to_address, to_bytes32
from cgp.crypto.hashing import call_hash
from cgp.engine.origin import Origin, ensure_bridge
from cgp.engine.replay import ExecutedCommands
from cgp.errors import ContractCallNotApproved, ErrorForwarding
from cgp.forwarding.forwarder import CallForwarder
from cgp.models.approval import ContractCallContext
from cgp.persistence.event_log import EventKind, EventSink
from cgp.persistence.state_store import StateStore


logger = logging.getLogger(__name__)

CONTRACT_CALL_APPROVED = "contract_call_approved"


class ContractCallApprovals:
    """Approval store and forward protocol."""

    def __init__(
        self,
        store: StateStore,
        events: EventSink,
        executed: ExecutedCommands,
        forwarder: CallForwarder,
    ) -> None:
        self._store = store
        self._events = events
        self._executed = executed
        self._forwarder = forwarder

    def approve(
        self,
        origin: Origin,
        source_chain: str,
        source_address: str,
        contract_address: AddressLike,
        payload_hash: bytes,
        source_tx_hash: bytes,
        source_event_index: int,
        command_id: bytes,
    ) -> bytes:
        """Record an approval. Bridge origin only.

        Returns:
            The approval key.
        """
        ensure_bridge(origin)

        context = _context(command_id, source_chain, source_address, contract_address, payload_hash)
        key = context.approval_key()
        self._store.put(CONTRACT_CALL_APPROVED, to_hex(key), True)

        self._events.emit(
            EventKind.CONTRACT_CALL_APPROVED,
            {
                "command_id": to_hex(context.command_id),
                "source_chain": source_chain,
                "source_address": source_address,
                "contract_address": to_hex(context.contract_address),
                "payload_hash": to_hex(context.payload_hash),
                "source_tx_hash": to_hex(to_bytes32(source_tx_hash)),
                "source_event_index": source_event_index,
            },
            origin="bridge",
        )
        logger.info("Approved contract call %s for command %s", to_hex(key), to_hex(context.command_id))
        return key

    def is_approved(
        self,
        command_id: bytes,
        source_chain: str,
        source_address: str,
        contract_address: AddressLike,
        payload_hash: bytes,
    ) -> bool:
        context = _context(command_id, source_chain, source_address, contract_address, payload_hash)
        return self._store.contains(CONTRACT_CALL_APPROVED, to_hex(context.approval_key()))

    def forward(
        self,
        origin: Origin,
        command_id: bytes,
        source_chain: str,
        source_address: str,
        contract_address: AddressLike,
        call_bytes: bytes,
    ) -> None:
        """Consume the approval for ``call_bytes`` and forward the call.

        Raises:
            ContractCallNotApproved: No approval matches the call context.
            ErrorForwarding: The forwarder failed; the approval is kept.
        """
        context = _context(
            command_id, source_chain, source_address, contract_address, call_hash(call_bytes)
        )
        contract = context.contract_address
        key_hex = to_hex(context.approval_key())

        if not self._store.contains(CONTRACT_CALL_APPROVED, key_hex):
            raise ContractCallNotApproved(f"No approval for call {key_hex}")

        destination = self._executed.destination(context.command_id)
        if destination is None:
            raise ContractCallNotApproved(
                f"Command {to_hex(context.command_id)} was never executed"
            )

        self._store.delete(CONTRACT_CALL_APPROVED, key_hex)
        try:
            self._forwarder.do_forward(
                origin, source_chain, source_address, contract, destination, call_bytes
            )
        except Exception as exc:
            self._store.put(CONTRACT_CALL_APPROVED, key_hex, True)
            logger.warning("Forwarding %s failed, approval kept: %s", key_hex, exc)
            if isinstance(exc, ErrorForwarding):
                raise
            raise ErrorForwarding(f"Forwarding {key_hex} failed: {exc}") from exc

        logger.info("Forwarded approved call %s to chain %d", key_hex, destination)


def _context(
    command_id: bytes,
    source_chain: str,
    source_address: str,
    contract_address: AddressLike,
    payload_hash: bytes,
) -> ContractCallContext:
    return ContractCallContext(
        command_id=to_bytes32(command_id),
        source_chain=source_chain,
        source_address=source_address,
        contract_address=to_address(contract_address),
        payload_hash=to_bytes32(payload_hash),
    )
