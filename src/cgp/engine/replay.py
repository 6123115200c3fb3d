"""Replay protection — the CommandExecuted map.

A command id is marked before its command is dispatched, so a command
cannot replay itself mid-dispatch, and unmarked only if that dispatch
fails, so a later batch may retry it. The stored value is the chain id
the batch executed on; forwarding uses it as the call's destination.
"""

from __future__ import annotations

from typing import Optional

from eth_utils import to_hex

from cgp.persistence.state_store import StateStore


COMMAND_EXECUTED = "command_executed"


class ExecutedCommands:
    """View over the CommandExecuted namespace of a state store."""

    def __init__(self, store: StateStore) -> None:
        self._store = store

    def is_executed(self, command_id: bytes) -> bool:
        return self._store.contains(COMMAND_EXECUTED, to_hex(command_id))

    def destination(self, command_id: bytes) -> Optional[int]:
        """Chain id recorded for a command, or None if never executed."""
        return self._store.get(COMMAND_EXECUTED, to_hex(command_id))

    def mark(self, command_id: bytes, chain_id: int) -> None:
        self._store.put(COMMAND_EXECUTED, to_hex(command_id), chain_id)

    def unmark(self, command_id: bytes) -> None:
        self._store.delete(COMMAND_EXECUTED, to_hex(command_id))

    def count(self) -> int:
        return self._store.count(COMMAND_EXECUTED)
