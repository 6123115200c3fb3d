"""Operator registry — epoch-versioned weighted operator sets.

Each registration creates a new epoch. The operator-set hash is stored in
both directions (epoch -> hash, hash -> epoch) so proofs can be resolved
to an epoch by the set they present, and the current set can be looked
up by epoch.

Invariants enforced:
- Operator addresses are non-empty, strictly ascending, and the first is non-zero.
- One weight per operator; weights are uint256.
- 0 < threshold <= sum(weights).
- An operator-set hash is registered at most once.
- Epochs increase by exactly one per registration, starting from 0.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from eth_utils import decode_hex, to_hex

from cgp.crypto.abi import AddressLike, operators_hash, to_address
from cgp.errors import (
    ArithmeticOverflow,
    DuplicateOperators,
    InvalidOperators,
    InvalidThreshold,
    InvalidWeights,
)
from cgp.persistence.event_log import EventKind, EventSink
from cgp.persistence.state_store import StateStore


logger = logging.getLogger(__name__)

CURRENT_EPOCH = "current_epoch"
HASH_FOR_EPOCH = "hash_for_epoch"
EPOCH_FOR_HASH = "epoch_for_hash"

MAX_EPOCH = 2**64 - 1
MAX_UINT256 = 2**256 - 1
ZERO_ADDRESS = bytes(20)


def is_sorted_asc_and_contains_no_duplicates(accounts: Sequence[bytes]) -> bool:
    """True if addresses are strictly ascending and the first is non-zero."""
    if not accounts:
        return False
    for i in range(len(accounts) - 1):
        if accounts[i] >= accounts[i + 1]:
            return False
    return accounts[0] != ZERO_ADDRESS


class OperatorRegistry:
    """Registers operator sets and tracks the current epoch.

    Usage:
        registry = OperatorRegistry(store, events)
        op_hash = registry.register(operators, weights, threshold)
        registry.current_epoch()            # 1
        registry.epoch_for_hash(op_hash)    # 1
    """

    def __init__(self, store: StateStore, events: EventSink) -> None:
        self._store = store
        self._events = events

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def validate_operatorship(
        self,
        operators: Sequence[AddressLike],
        weights: Sequence[int],
        threshold: int,
    ) -> bytes:
        """Validate a candidate operator set and return its hash. No state change."""
        try:
            addresses = [to_address(op) for op in operators]
        except ValueError as exc:
            raise InvalidOperators(str(exc)) from exc

        if not is_sorted_asc_and_contains_no_duplicates(addresses):
            raise InvalidOperators(
                "Operators must be non-empty, strictly ascending, with a non-zero first address"
            )
        if len(addresses) != len(weights):
            raise InvalidWeights(
                f"{len(addresses)} operators but {len(weights)} weights"
            )
        for w in weights:
            if not isinstance(w, int) or isinstance(w, bool) or not 0 <= w <= MAX_UINT256:
                raise InvalidWeights(f"Weight {w!r} is not a uint256")

        total_weight = sum(weights)
        if (
            not isinstance(threshold, int)
            or isinstance(threshold, bool)
            or threshold == 0
            or threshold > MAX_UINT256
            or total_weight < threshold
        ):
            raise InvalidThreshold(
                f"Threshold {threshold!r} must be positive and at most total weight {total_weight}"
            )

        return operators_hash(addresses, weights, threshold)

    def register(
        self,
        operators: Sequence[AddressLike],
        weights: Sequence[int],
        threshold: int,
    ) -> bytes:
        """Register a new operator set as the next epoch.

        Raises:
            InvalidOperators, InvalidWeights, InvalidThreshold: Bad operator set.
            DuplicateOperators: The same set (hash) was registered before.
            ArithmeticOverflow: Epoch counter exhausted.
        """
        new_hash = self.validate_operatorship(operators, weights, threshold)

        if self.epoch_for_hash(new_hash) != 0:
            raise DuplicateOperators(f"Operator set {to_hex(new_hash)} is already registered")

        epoch = self.current_epoch() + 1
        if epoch > MAX_EPOCH:
            raise ArithmeticOverflow("Epoch counter overflow")

        hash_hex = to_hex(new_hash)
        self._store.put(CURRENT_EPOCH, "value", epoch)
        self._store.put(HASH_FOR_EPOCH, str(epoch), hash_hex)
        self._store.put(EPOCH_FOR_HASH, hash_hex, epoch)

        self._events.emit(
            EventKind.OPERATORSHIP_TRANSFERRED,
            {"hash": hash_hex, "epoch": epoch},
        )
        logger.info("Operator set %s registered for epoch %d", hash_hex, epoch)
        return new_hash

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def current_epoch(self) -> int:
        return self._store.get(CURRENT_EPOCH, "value", 0)

    def hash_for_epoch(self, epoch: int) -> Optional[bytes]:
        value = self._store.get(HASH_FOR_EPOCH, str(epoch))
        return decode_hex(value) if value is not None else None

    def epoch_for_hash(self, operator_hash: bytes) -> int:
        """Epoch of a registered operator-set hash; 0 if unknown."""
        return self._store.get(EPOCH_FOR_HASH, to_hex(operator_hash), 0)
