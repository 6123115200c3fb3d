"""Key-value state store — the gateway's persisted state.

The gateway never keeps authoritative state in module globals. Registry,
replay-protection and approval maps all live in a StateStore injected at
construction, grouped by namespace:

    current_epoch          "value"            -> int
    hash_for_epoch         "<epoch>"          -> "0x<hash>"
    epoch_for_hash         "0x<hash>"         -> int
    command_executed       "0x<command id>"   -> int (chain id)
    contract_call_approved "0x<key>"          -> True

Keys are strings and values are JSON-compatible so the same contents can
be written to disk by JsonFileStateStore.

Transactions are journal-based: every write inside ``transaction()``
records the value it replaced, and an exception escaping the block
replays the journal backwards. Transactions nest; only the outermost
commit is made durable.
"""

from __future__ import annotations

import json
import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Optional


logger = logging.getLogger(__name__)

_MISSING = object()


class StateStore:
    """In-memory namespaced key-value store with nested transactions."""

    def __init__(self, initial: Optional[dict[str, dict[str, Any]]] = None) -> None:
        self._data: dict[str, dict[str, Any]] = {
            ns: dict(entries) for ns, entries in (initial or {}).items()
        }
        self._journal: list[tuple[str, str, Any]] = []
        self._savepoints: list[int] = []

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, namespace: str, key: str, default: Any = None) -> Any:
        return self._data.get(namespace, {}).get(key, default)

    def contains(self, namespace: str, key: str) -> bool:
        return key in self._data.get(namespace, {})

    def items(self, namespace: str) -> list[tuple[str, Any]]:
        return list(self._data.get(namespace, {}).items())

    def count(self, namespace: str) -> int:
        return len(self._data.get(namespace, {}))

    def snapshot(self) -> dict[str, dict[str, Any]]:
        """Deep-enough copy of all namespaces (values are immutable scalars)."""
        return {ns: dict(entries) for ns, entries in self._data.items()}

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def put(self, namespace: str, key: str, value: Any) -> None:
        entries = self._data.setdefault(namespace, {})
        self._record(namespace, key, entries.get(key, _MISSING))
        entries[key] = value

    def delete(self, namespace: str, key: str) -> bool:
        """Remove a key. Returns False if it was not present."""
        entries = self._data.get(namespace, {})
        if key not in entries:
            return False
        self._record(namespace, key, entries[key])
        del entries[key]
        return True

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    @contextmanager
    def transaction(self) -> Iterator[StateStore]:
        """Apply all writes in the block, or none of them.

        Rolls back and re-raises on any exception. Nested blocks act as
        savepoints inside the enclosing transaction.
        """
        self._savepoints.append(len(self._journal))
        try:
            yield self
        except BaseException:
            self._rollback_to(self._savepoints.pop())
            raise
        else:
            self._savepoints.pop()
            if not self._savepoints:
                self._journal.clear()
                self._commit()

    @property
    def in_transaction(self) -> bool:
        return bool(self._savepoints)

    def _record(self, namespace: str, key: str, previous: Any) -> None:
        if self._savepoints:
            self._journal.append((namespace, key, previous))

    def _rollback_to(self, mark: int) -> None:
        while len(self._journal) > mark:
            namespace, key, previous = self._journal.pop()
            entries = self._data.setdefault(namespace, {})
            if previous is _MISSING:
                entries.pop(key, None)
            else:
                entries[key] = previous
        logger.debug("State rolled back to journal position %d", mark)

    def _commit(self) -> None:
        """Hook for durable stores; in-memory state needs no flush."""


class JsonFileStateStore(StateStore):
    """StateStore persisted to a JSON file on every committed transaction.

    The file is replaced atomically (write to a sibling temp file, then
    rename) so a crash mid-write never leaves a truncated state file.
    Writes made outside a transaction are flushed immediately.
    """

    def __init__(self, storage_path: Path) -> None:
        initial: dict[str, dict[str, Any]] = {}
        if storage_path.exists():
            initial = json.loads(storage_path.read_text(encoding="utf-8"))
        super().__init__(initial)
        self._storage_path = storage_path

    def put(self, namespace: str, key: str, value: Any) -> None:
        super().put(namespace, key, value)
        if not self.in_transaction:
            self._commit()

    def delete(self, namespace: str, key: str) -> bool:
        removed = super().delete(namespace, key)
        if removed and not self.in_transaction:
            self._commit()
        return removed

    def _commit(self) -> None:
        self._storage_path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._storage_path.with_suffix(self._storage_path.suffix + ".tmp")
        tmp_path.write_text(
            json.dumps(self._data, sort_keys=True, indent=2),
            encoding="utf-8",
        )
        os.replace(tmp_path, self._storage_path)
