"""Tests for call forwarders — local handler dispatch and remote transport."""

import pytest

from cgp.engine.commands import encode_call
from cgp.engine.origin import SignedOrigin
from cgp.errors import BadOrigin, CannotLookup, ErrorForwarding
from cgp.forwarding.forwarder import (
    DEFAULT_FORWARD_FEE,
    ForwardEnvelope,
    LocalCallForwarder,
    RemoteCallForwarder,
    resolve_sender,
)


SENDER = "0x" + "ab" * 20
CONTRACT = b"\x42" * 20
ORIGIN = SignedOrigin("relayer")


class FakeTransport:
    def __init__(self, fail: bool = False) -> None:
        self.sent: list[tuple[int, ForwardEnvelope]] = []
        self._fail = fail

    def send(self, destination: int, envelope: ForwardEnvelope) -> None:
        if self._fail:
            raise ConnectionError("xcm queue full")
        self.sent.append((destination, envelope))


class TestResolveSender:
    def test_supported_chain(self) -> None:
        assert resolve_sender("ethereum", SENDER, ("ethereum",)) == bytes.fromhex("ab" * 20)

    def test_unsupported_chain(self) -> None:
        with pytest.raises(BadOrigin):
            resolve_sender("polygon", SENDER, ("ethereum",))

    def test_non_address_sender(self) -> None:
        with pytest.raises(BadOrigin):
            resolve_sender("ethereum", "alice", ("ethereum",))


class TestLocalCallForwarder:
    def test_is_local(self) -> None:
        assert LocalCallForwarder().is_local()

    def test_dispatches_to_registered_handler(self) -> None:
        seen = []
        forwarder = LocalCallForwarder()
        forwarder.register_handler("remark", lambda origin, params: seen.append((origin, params)))

        forwarder.do_forward(ORIGIN, "ethereum", SENDER, CONTRACT, 2, encode_call("remark", b"hi"))

        assert len(seen) == 1
        origin, params = seen[0]
        assert origin.source_chain == "ethereum"
        assert origin.source_address == bytes.fromhex("ab" * 20)
        assert params == b"hi"

    def test_unknown_kind(self) -> None:
        with pytest.raises(CannotLookup):
            LocalCallForwarder().do_forward(
                ORIGIN, "ethereum", SENDER, CONTRACT, 2, encode_call("remark", b""),
            )

    def test_undecodable_call(self) -> None:
        with pytest.raises(CannotLookup):
            LocalCallForwarder().do_forward(ORIGIN, "ethereum", SENDER, CONTRACT, 2, b"\x01")

    def test_handler_error_propagates(self) -> None:
        def boom(origin, params) -> None:
            raise RuntimeError("handler failed")

        forwarder = LocalCallForwarder(handlers={"remark": boom})
        with pytest.raises(RuntimeError):
            forwarder.do_forward(ORIGIN, "ethereum", SENDER, CONTRACT, 2, encode_call("remark", b""))


class TestRemoteCallForwarder:
    def test_is_remote(self) -> None:
        assert not RemoteCallForwarder(FakeTransport()).is_local()

    def test_envelope(self) -> None:
        transport = FakeTransport()
        call = encode_call("transfer", b"\x01\x02")
        RemoteCallForwarder(transport).do_forward(ORIGIN, "ethereum", SENDER, CONTRACT, 1000, call)

        assert len(transport.sent) == 1
        destination, envelope = transport.sent[0]
        assert destination == 1000
        assert envelope.destination == 1000
        assert envelope.source_chain == "ethereum"
        assert envelope.source_address == bytes.fromhex("ab" * 20)
        assert envelope.contract_address == CONTRACT
        assert envelope.fee == DEFAULT_FORWARD_FEE
        assert envelope.call == call

    def test_custom_fee(self) -> None:
        transport = FakeTransport()
        RemoteCallForwarder(transport, fee=5).do_forward(
            ORIGIN, "ethereum", SENDER, CONTRACT, 1000, b"",
        )
        assert transport.sent[0][1].fee == 5

    def test_transport_failure_wrapped(self) -> None:
        with pytest.raises(ErrorForwarding):
            RemoteCallForwarder(FakeTransport(fail=True)).do_forward(
                ORIGIN, "ethereum", SENDER, CONTRACT, 1000, b"",
            )

    def test_unsupported_chain_not_sent(self) -> None:
        transport = FakeTransport()
        with pytest.raises(BadOrigin):
            RemoteCallForwarder(transport).do_forward(
                ORIGIN, "polygon", SENDER, CONTRACT, 1000, b"",
            )
        assert transport.sent == []
