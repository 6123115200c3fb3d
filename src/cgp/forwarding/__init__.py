"""Call forwarders — local dispatch and remote transport of approved calls."""

from cgp.forwarding.forwarder import (
    CallForwarder,
    ForwardEnvelope,
    LocalCallForwarder,
    RemoteCallForwarder,
    Transport,
)

__all__ = [
    "CallForwarder",
    "ForwardEnvelope",
    "LocalCallForwarder",
    "RemoteCallForwarder",
    "Transport",
]
