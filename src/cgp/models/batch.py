"""Batch execution outcome model."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class ItemFailure:
    """A batch item whose dispatch failed."""
    index: int
    command_id: bytes
    error: str


@dataclass(frozen=True)
class BatchResult:
    """Per-item outcome of one ``execute`` call.

    ``skipped`` covers both already-executed command ids and command
    kinds the executor does not dispatch.
    """
    completed: tuple[int, ...] = field(default_factory=tuple)
    failed: tuple[ItemFailure, ...] = field(default_factory=tuple)
    skipped: tuple[int, ...] = field(default_factory=tuple)

    @property
    def has_errors(self) -> bool:
        return bool(self.failed)
