"""Command batch executor — the replay-protected execution state machine.

A batch is authenticated once as a whole, then its items are processed
strictly in order with best-effort semantics:

    already executed         -> skipped, no state change
    kind not permitted       -> skipped, no state change
    permitted                -> marked executed, dispatched under BridgeOrigin
        dispatch succeeds    -> ItemCompleted
        dispatch fails       -> mark removed, ItemFailed

Only two kinds are permitted. ``transferOperatorship`` requires the proof
to come from the current operator set and is allowed once per batch;
``approveContractCall`` is always allowed. A failing item never stops the
rest of the batch.
"""

from __future__ import annotations

import logging
from typing import Sequence

from eth_utils import to_hex

from cgp.auth.epoch_validator import EpochValidator
from cgp.config import GatewayConfig
from cgp.crypto.abi import encode_batch_params, to_bytes32
from cgp.crypto.hashing import eth_signed_hash, keccak
from cgp.engine.commands import (
    ApproveContractCall,
    Command,
    PrivilegedCalls,
    TransferOperatorship,
    decode_command,
)
from cgp.engine.origin import _mint_bridge_origin
from cgp.engine.replay import ExecutedCommands
from cgp.errors import (
    CommandIdsLengthMismatch,
    GatewayError,
    TooManyCalls,
    WrongChainId,
)
from cgp.models.batch import BatchResult, ItemFailure
from cgp.persistence.event_log import EventKind, EventSink
from cgp.persistence.state_store import StateStore


logger = logging.getLogger(__name__)


class CommandBatchExecutor:
    """Validates and executes relayed command batches."""

    def __init__(
        self,
        config: GatewayConfig,
        store: StateStore,
        events: EventSink,
        validator: EpochValidator,
        executed: ExecutedCommands,
        gateway: PrivilegedCalls,
    ) -> None:
        self._config = config
        self._store = store
        self._events = events
        self._validator = validator
        self._executed = executed
        self._gateway = gateway

    def execute(
        self,
        proof: bytes,
        chain_id: int,
        command_ids: Sequence[bytes],
        commands: Sequence[str],
        calls: Sequence[bytes],
    ) -> BatchResult:
        """Authenticate a batch and process its items.

        Raises (before any item is processed):
            WrongChainId: Batch is for another chain.
            CommandIdsLengthMismatch: Ids, labels and calls differ in length.
            TooManyCalls: Batch exceeds the size cap.
            FailedToDecodeProof, InvalidOperators, InvalidProof: Bad proof.
        """
        if chain_id != self._config.chain_id:
            raise WrongChainId(f"Batch for chain {chain_id}, this is chain {self._config.chain_id}")
        if len(calls) != len(command_ids) or len(commands) != len(command_ids):
            raise CommandIdsLengthMismatch(
                f"{len(command_ids)} command ids, {len(commands)} commands, {len(calls)} calls"
            )
        if len(calls) > self._config.max_calls:
            raise TooManyCalls(f"{len(calls)} calls exceeds cap of {self._config.max_calls}")

        command_ids = [to_bytes32(cid) for cid in command_ids]
        batch = encode_batch_params(chain_id, command_ids, commands, calls)
        payload_hash = eth_signed_hash(keccak(batch))
        allow_rotation = self._validator.validate_proof(payload_hash, proof)

        origin = _mint_bridge_origin()
        completed: list[int] = []
        failed: list[ItemFailure] = []
        skipped: list[int] = []

        for index, (command_id, call) in enumerate(zip(command_ids, calls)):
            if self._executed.is_executed(command_id):
                skipped.append(index)
                continue

            try:
                command = decode_command(call, command_id)
            except GatewayError as exc:
                failed.append(self._report_failure(index, command_id, exc))
                continue

            if not self._is_permitted(command, allow_rotation):
                skipped.append(index)
                continue
            if isinstance(command, TransferOperatorship):
                allow_rotation = False

            self._executed.mark(command_id, chain_id)
            try:
                with self._store.transaction():
                    command.dispatch(origin, self._gateway)
            except GatewayError as exc:
                self._executed.unmark(command_id)
                failed.append(self._report_failure(index, command_id, exc))
                continue

            self._events.emit(
                EventKind.ITEM_COMPLETED,
                {"index": index, "command_id": to_hex(command_id)},
            )
            completed.append(index)

        result = BatchResult(
            completed=tuple(completed),
            failed=tuple(failed),
            skipped=tuple(skipped),
        )
        if result.has_errors:
            self._events.emit(EventKind.BATCH_COMPLETED_WITH_ERRORS)
        else:
            self._events.emit(EventKind.BATCH_COMPLETED)

        logger.info(
            "Batch of %d on chain %d: %d completed, %d failed, %d skipped",
            len(calls), chain_id, len(completed), len(failed), len(skipped),
        )
        return result

    @staticmethod
    def _is_permitted(command: Command, allow_rotation: bool) -> bool:
        if isinstance(command, TransferOperatorship):
            return allow_rotation
        return isinstance(command, ApproveContractCall)

    def _report_failure(self, index: int, command_id: bytes, exc: GatewayError) -> ItemFailure:
        logger.warning("Batch item %d (%s) failed: %s", index, to_hex(command_id), exc)
        self._events.emit(
            EventKind.ITEM_FAILED,
            {"index": index, "command_id": to_hex(command_id), "error": exc.code},
        )
        return ItemFailure(index=index, command_id=command_id, error=exc.code)
