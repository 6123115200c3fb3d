"""Contract-call context — the five fields an approval commits to."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ContractCallContext:
    """Identifies one approved call.

    ``payload_hash`` is ``eth_signed_hash(keccak(call_bytes))`` of the call
    that may be forwarded.
    """
    command_id: bytes
    source_chain: str
    source_address: str
    contract_address: bytes
    payload_hash: bytes

    def approval_key(self) -> bytes:
        """keccak256(abi.encode(commandId, sourceChain, sourceAddress, contract, payloadHash))."""
        from cgp.crypto.abi import approval_key

        return approval_key(
            self.command_id,
            self.source_chain,
            self.source_address,
            self.contract_address,
            self.payload_hash,
        )
