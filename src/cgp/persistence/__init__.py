"""Persistence — namespaced state store and append-only event log."""

from cgp.persistence.event_log import EventKind, EventLog, EventRecord
from cgp.persistence.state_store import JsonFileStateStore, StateStore

__all__ = ["EventKind", "EventLog", "EventRecord", "JsonFileStateStore", "StateStore"]
