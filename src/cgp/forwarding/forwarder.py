"""Call forwarders — deliver approved calls to where they execute.

The gateway needs only the two-method CallForwarder capability. Two
implementations ship with it:

- LocalCallForwarder decodes the call bytes and runs the registered
  handler on this chain, under a BridgeOnBehalfOf origin naming the
  source-chain sender.
- RemoteCallForwarder wraps the call in a ForwardEnvelope and hands it to
  a cross-chain Transport addressed to the destination chain.

Only senders from supported source chains with 20-byte hex addresses
can be represented as an origin; anything else is rejected as BadOrigin.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Protocol, Sequence

from eth_utils import to_canonical_address
from web3 import Web3

from cgp.engine.commands import decode_call
from cgp.engine.origin import BridgeOnBehalfOf, Origin, _mint_on_behalf_of
from cgp.errors import BadOrigin, CannotLookup, ErrorForwarding


logger = logging.getLogger(__name__)

DEFAULT_FORWARD_FEE = 8_000_000_000

CallHandler = Callable[[BridgeOnBehalfOf, bytes], None]


class CallForwarder(Protocol):
    """Delivers an approved call locally or to another chain."""

    def is_local(self) -> bool: ...

    def do_forward(
        self,
        origin: Origin,
        source_chain: str,
        source_address: str,
        contract_address: bytes,
        destination: int,
        call_bytes: bytes,
    ) -> None: ...


def resolve_sender(
    source_chain: str,
    source_address: str,
    supported_chains: Sequence[str],
) -> bytes:
    """Canonical sender address for a supported source chain.

    Raises:
        BadOrigin: Unsupported chain or non-address sender.
    """
    if source_chain not in supported_chains:
        raise BadOrigin(f"Unsupported source chain {source_chain!r}")
    if not Web3.is_address(source_address):
        raise BadOrigin(f"Source address {source_address!r} is not a 20-byte address")
    return to_canonical_address(source_address)


class LocalCallForwarder:
    """Executes forwarded calls on this chain through registered handlers.

    Usage:
        forwarder = LocalCallForwarder()
        forwarder.register_handler("remark", lambda origin, params: ...)
    """

    def __init__(
        self,
        handlers: Optional[dict[str, CallHandler]] = None,
        supported_chains: Sequence[str] = ("ethereum",),
    ) -> None:
        self._handlers: dict[str, CallHandler] = dict(handlers or {})
        self._supported_chains = tuple(supported_chains)

    def register_handler(self, kind: str, handler: CallHandler) -> None:
        self._handlers[kind] = handler

    def is_local(self) -> bool:
        return True

    def do_forward(
        self,
        origin: Origin,
        source_chain: str,
        source_address: str,
        contract_address: bytes,
        destination: int,
        call_bytes: bytes,
    ) -> None:
        kind, params = decode_call(call_bytes)
        handler = self._handlers.get(kind)
        if handler is None:
            raise CannotLookup(f"No local handler for call kind {kind!r}")

        sender = resolve_sender(source_chain, source_address, self._supported_chains)
        logger.info("Dispatching forwarded %s from %s:%s locally", kind, source_chain, source_address)
        handler(_mint_on_behalf_of(source_chain, sender), params)


@dataclass(frozen=True)
class ForwardEnvelope:
    """A forwarded call as sent over the cross-chain transport."""
    destination: int
    source_chain: str
    source_address: bytes
    contract_address: bytes
    fee: int
    call: bytes


class Transport(Protocol):
    """Cross-chain message transport (external)."""

    def send(self, destination: int, envelope: ForwardEnvelope) -> None: ...


class RemoteCallForwarder:
    """Sends forwarded calls to their destination chain over a Transport."""

    def __init__(
        self,
        transport: Transport,
        supported_chains: Sequence[str] = ("ethereum",),
        fee: int = DEFAULT_FORWARD_FEE,
    ) -> None:
        self._transport = transport
        self._supported_chains = tuple(supported_chains)
        self._fee = fee

    def is_local(self) -> bool:
        return False

    def do_forward(
        self,
        origin: Origin,
        source_chain: str,
        source_address: str,
        contract_address: bytes,
        destination: int,
        call_bytes: bytes,
    ) -> None:
        sender = resolve_sender(source_chain, source_address, self._supported_chains)
        envelope = ForwardEnvelope(
            destination=destination,
            source_chain=source_chain,
            source_address=sender,
            contract_address=bytes(contract_address),
            fee=self._fee,
            call=bytes(call_bytes),
        )
        try:
            self._transport.send(destination, envelope)
        except Exception as exc:
            raise ErrorForwarding(f"Transport to chain {destination} failed: {exc}") from exc
        logger.info("Forwarded call from %s:%s to chain %d", source_chain, source_address, destination)
