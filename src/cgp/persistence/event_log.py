"""Append-only event log — the gateway's outward event stream.

Every observable outcome (operator rotation, approval, batch and item
results, outbound calls) is appended here. Off-chain indexers and
relayers read the log; nothing in the gateway reads it back to make
decisions. The log can be persisted as JSONL and reloaded with integrity
verification.
"""

from __future__ import annotations

import enum
import hashlib
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, Protocol


logger = logging.getLogger(__name__)


class EventKind(str, enum.Enum):
    """Classification of gateway events."""
    OPERATORSHIP_TRANSFERRED = "OperatorshipTransferred"
    CONTRACT_CALL_APPROVED = "ContractCallApproved"
    CONTRACT_CALL = "ContractCall"
    BATCH_COMPLETED = "BatchCompleted"
    BATCH_COMPLETED_WITH_ERRORS = "BatchCompletedWithErrors"
    ITEM_COMPLETED = "ItemCompleted"
    ITEM_FAILED = "ItemFailed"


def _canonical_hash(
    event_id: str,
    event_kind: str,
    timestamp_utc: str,
    origin: str,
    payload: dict[str, Any],
) -> str:
    canonical = json.dumps(
        {
            "event_id": event_id,
            "event_kind": event_kind,
            "timestamp_utc": timestamp_utc,
            "origin": origin,
            "payload": payload,
        },
        sort_keys=True,
        ensure_ascii=False,
    ).encode("utf-8")
    return f"sha256:{hashlib.sha256(canonical).hexdigest()}"


@dataclass(frozen=True)
class EventRecord:
    """A single immutable gateway event.

    Payload values are JSON scalars; binary values are 0x-prefixed hex.
    """
    event_id: str
    event_kind: EventKind
    timestamp_utc: str
    origin: str
    payload: dict[str, Any]
    event_hash: str

    @staticmethod
    def create(
        event_id: str,
        event_kind: EventKind,
        origin: str,
        payload: dict[str, Any],
        timestamp_utc: Optional[datetime] = None,
    ) -> EventRecord:
        """Create a new event record with computed hash."""
        ts = timestamp_utc or datetime.now(timezone.utc)
        ts_str = ts.strftime("%Y-%m-%dT%H:%M:%SZ")
        return EventRecord(
            event_id=event_id,
            event_kind=event_kind,
            timestamp_utc=ts_str,
            origin=origin,
            payload=payload,
            event_hash=_canonical_hash(event_id, event_kind.value, ts_str, origin, payload),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "event_id": self.event_id,
            "event_kind": self.event_kind.value,
            "timestamp_utc": self.timestamp_utc,
            "origin": self.origin,
            "payload": self.payload,
            "event_hash": self.event_hash,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EventRecord:
        """Rebuild a stored record, verifying its hash.

        Raises:
            ValueError: If the stored hash does not match the contents.
        """
        computed = _canonical_hash(
            data["event_id"],
            data["event_kind"],
            data["timestamp_utc"],
            data["origin"],
            data["payload"],
        )
        if data["event_hash"] != computed:
            raise ValueError(
                f"Integrity check failed for {data['event_id']}: "
                f"stored {data['event_hash']}, computed {computed}"
            )
        return cls(
            event_id=data["event_id"],
            event_kind=EventKind(data["event_kind"]),
            timestamp_utc=data["timestamp_utc"],
            origin=data["origin"],
            payload=data["payload"],
            event_hash=computed,
        )


class EventSink(Protocol):
    """Anything the gateway can deposit events into."""

    def emit(
        self,
        kind: EventKind,
        payload: Optional[dict[str, Any]] = None,
        origin: str = "gateway",
    ) -> EventRecord: ...


class EventLog:
    """Append-only event log with optional JSONL persistence.

    Usage:
        log = EventLog()
        log.emit(EventKind.BATCH_COMPLETED)
        log.events(EventKind.ITEM_FAILED)
    """

    def __init__(self, storage_path: Optional[Path] = None) -> None:
        self._events: list[EventRecord] = []
        self._storage_path = storage_path
        self._event_ids: set[str] = set()

        if storage_path and storage_path.exists():
            self._load_from_file(storage_path)

    def emit(
        self,
        kind: EventKind,
        payload: Optional[dict[str, Any]] = None,
        origin: str = "gateway",
    ) -> EventRecord:
        """Create and append the next event in sequence."""
        event = EventRecord.create(
            event_id=f"evt-{len(self._events) + 1:08d}",
            event_kind=kind,
            origin=origin,
            payload=payload or {},
        )
        self.append(event)
        return event

    def append(self, event: EventRecord) -> None:
        """Append an event to the log.

        Raises ValueError if event_id is a duplicate.
        """
        if event.event_id in self._event_ids:
            raise ValueError(f"Duplicate event ID: {event.event_id}")

        self._events.append(event)
        self._event_ids.add(event.event_id)
        logger.debug("Event %s %s %s", event.event_id, event.event_kind.value, event.payload)

        if self._storage_path:
            self._append_to_file(event)

    def events(self, kind: Optional[EventKind] = None) -> list[EventRecord]:
        """Return events, optionally filtered by kind."""
        if kind is None:
            return list(self._events)
        return [e for e in self._events if e.event_kind == kind]

    def kinds(self) -> list[EventKind]:
        """Event kinds in emission order."""
        return [e.event_kind for e in self._events]

    @property
    def count(self) -> int:
        return len(self._events)

    @property
    def last_event(self) -> Optional[EventRecord]:
        return self._events[-1] if self._events else None

    def _append_to_file(self, event: EventRecord) -> None:
        self._storage_path.parent.mkdir(parents=True, exist_ok=True)
        line = json.dumps(event.to_dict(), sort_keys=True, ensure_ascii=False)
        with self._storage_path.open("a", encoding="utf-8") as fh:
            fh.write(line + "\n")

    def _load_from_file(self, path: Path) -> None:
        """Replay a JSONL log, rejecting tampered or repeated records."""
        lines = path.read_text(encoding="utf-8").splitlines()
        for number, raw in enumerate(lines, 1):
            if not raw.strip():
                continue
            try:
                event = EventRecord.from_dict(json.loads(raw))
            except ValueError as exc:
                raise ValueError(f"{path.name} line {number}: {exc}") from exc
            if event.event_id in self._event_ids:
                raise ValueError(f"{path.name} line {number}: duplicate event {event.event_id}")
            self._events.append(event)
            self._event_ids.add(event.event_id)
