"""Call origins — who is asking the gateway to do something.

Plain origins (a signed account, a sibling chain) can be built by anyone.
The two bridge origins cannot: ``BridgeOrigin`` is the privilege under
which authorised batch commands run, and ``BridgeOnBehalfOf`` is the
origin a forwarded call runs under locally. Both are minted only through
the private factories below, which the executor and the local forwarder
import. Privileged entry points check the seal with ``ensure_bridge``.
"""

from __future__ import annotations

from dataclasses import dataclass

from cgp.errors import BadOrigin


_SEAL = object()


class Origin:
    """Base class for call origins."""


@dataclass(frozen=True)
class SignedOrigin(Origin):
    """An externally signed account (relayers, users)."""
    account: str


@dataclass(frozen=True)
class ParachainOrigin(Origin):
    """A message arriving from a sibling chain identified by its id."""
    para_id: int


class BridgeOrigin(Origin):
    """Sealed privilege used only for dispatching authorised batch commands."""

    __slots__ = ("_seal",)

    def __init__(self, seal: object) -> None:
        if seal is not _SEAL:
            raise TypeError("BridgeOrigin cannot be constructed outside the gateway")
        self._seal = seal

    def __init_subclass__(cls, **kwargs) -> None:
        raise TypeError("BridgeOrigin cannot be subclassed")

    def __repr__(self) -> str:
        return "BridgeOrigin()"


class BridgeOnBehalfOf(Origin):
    """Origin of a forwarded call: the bridge acting for a source-chain sender."""

    __slots__ = ("_seal", "source_chain", "source_address")

    def __init__(self, seal: object, source_chain: str, source_address: bytes) -> None:
        if seal is not _SEAL:
            raise TypeError("BridgeOnBehalfOf cannot be constructed outside the gateway")
        self._seal = seal
        self.source_chain = source_chain
        self.source_address = source_address

    def __init_subclass__(cls, **kwargs) -> None:
        raise TypeError("BridgeOnBehalfOf cannot be subclassed")

    def __eq__(self, other: object) -> bool:
        return (
            isinstance(other, BridgeOnBehalfOf)
            and other.source_chain == self.source_chain
            and other.source_address == self.source_address
        )

    def __hash__(self) -> int:
        return hash((self.source_chain, self.source_address))

    def __repr__(self) -> str:
        return f"BridgeOnBehalfOf({self.source_chain!r}, 0x{self.source_address.hex()})"


def _mint_bridge_origin() -> BridgeOrigin:
    return BridgeOrigin(_SEAL)


def _mint_on_behalf_of(source_chain: str, source_address: bytes) -> BridgeOnBehalfOf:
    return BridgeOnBehalfOf(_SEAL, source_chain, source_address)


def ensure_bridge(origin: Origin) -> None:
    """Reject any origin that is not a genuine BridgeOrigin.

    Raises:
        BadOrigin: If the origin is anything else.
    """
    if type(origin) is not BridgeOrigin or getattr(origin, "_seal", None) is not _SEAL:
        raise BadOrigin(f"{origin!r} is not the bridge origin")


def ensure_parachain(origin: Origin) -> int:
    """Return the sender chain id of a sibling-chain origin.

    Raises:
        BadOrigin: If the origin is not a ParachainOrigin.
    """
    if not isinstance(origin, ParachainOrigin):
        raise BadOrigin(f"{origin!r} is not a sibling-chain origin")
    return origin.para_id
