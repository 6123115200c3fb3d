"""Gateway service — unified facade for the cross-chain gateway core.

This is the primary interface for programmatic access to the gateway.
It wires the subsystems together over one injected state store and one
event sink:

- Operator registry (epochs, operator-set hashes)
- Epoch validator (proof authentication)
- Command batch executor (replay-protected dispatch)
- Contract-call approvals (single-use approve/forward)
- Call forwarder (local or remote delivery)

Every mutating operation runs inside ``_transaction()``: one re-entrant
lock serialises it against all other operations, and a state-store
transaction undoes its writes if it raises. A batch therefore either
commits as a whole or leaves no trace, while the per-item outcomes inside
a committed batch stay independent.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Any, Iterator, Optional, Sequence

from eth_utils import to_hex

from cgp.auth.epoch_validator import EpochValidator
from cgp.auth.registry import OperatorRegistry
from cgp.config import GatewayConfig
from cgp.crypto.abi import AddressLike
from cgp.crypto.hashing import keccak
from cgp.engine.approvals import CONTRACT_CALL_APPROVED, ContractCallApprovals
from cgp.engine.executor import CommandBatchExecutor
from cgp.engine.origin import Origin, ensure_bridge, ensure_parachain
from cgp.engine.replay import ExecutedCommands
from cgp.errors import BadOrigin
from cgp.forwarding.forwarder import CallForwarder, LocalCallForwarder
from cgp.models.batch import BatchResult
from cgp.persistence.event_log import EventKind, EventLog, EventSink
from cgp.persistence.state_store import StateStore


logger = logging.getLogger(__name__)


class GatewayService:
    """Cross-chain gateway facade.

    Usage:
        config = GatewayConfig.from_config_dir(config_dir)
        gateway = GatewayService(config)

        # Genesis operator set
        gateway.initialize_operators(operators, weights, threshold)

        # Relayer submits a signed batch
        result = gateway.execute(proof, chain_id, command_ids, commands, calls)

        # Anyone forwards an approved call
        gateway.forward_approved_call(origin, command_id, source_chain,
                                      source_address, contract_address, call_bytes)

    Persistence (optional):
        gateway = GatewayService(config, store=JsonFileStateStore(path),
                                 events=EventLog(storage_path=log_path))
    """

    def __init__(
        self,
        config: GatewayConfig,
        store: Optional[StateStore] = None,
        events: Optional[EventSink] = None,
        forwarder: Optional[CallForwarder] = None,
    ) -> None:
        self._config = config
        self._store = store if store is not None else StateStore()
        self._events = events if events is not None else EventLog()
        self._forwarder = forwarder or LocalCallForwarder(
            supported_chains=config.supported_source_chains,
        )
        self._lock = threading.RLock()

        self._registry = OperatorRegistry(self._store, self._events)
        self._validator = EpochValidator(self._registry, config.retention_window)
        self._executed = ExecutedCommands(self._store)
        self._approvals = ContractCallApprovals(
            self._store, self._events, self._executed, self._forwarder,
        )
        self._executor = CommandBatchExecutor(
            config, self._store, self._events, self._validator, self._executed, self,
        )

    # ------------------------------------------------------------------
    # Relayer-facing operations
    # ------------------------------------------------------------------

    def execute(
        self,
        proof: bytes,
        chain_id: int,
        command_ids: Sequence[bytes],
        commands: Sequence[str],
        calls: Sequence[bytes],
    ) -> BatchResult:
        """Authenticate and execute a relayed command batch."""
        with self._transaction():
            return self._executor.execute(proof, chain_id, command_ids, commands, calls)

    def forward_approved_call(
        self,
        origin: Origin,
        command_id: bytes,
        source_chain: str,
        source_address: str,
        contract_address: AddressLike,
        call_bytes: bytes,
    ) -> None:
        """Spend an approval and deliver its call. Open to any caller."""
        with self._transaction():
            self._approvals.forward(
                origin, command_id, source_chain, source_address, contract_address, call_bytes,
            )

    def call_contract(
        self,
        origin: Origin,
        destination_chain: str,
        destination_contract_address: str,
        payload: bytes,
    ) -> bytes:
        """Publish an outbound call for off-chain pickup.

        Only sibling chains may call out. Returns the payload hash.
        """
        with self._transaction():
            sender = ensure_parachain(origin)
            payload_hash = keccak(payload)
            self._events.emit(
                EventKind.CONTRACT_CALL,
                {
                    "sender": sender,
                    "destination_chain": destination_chain,
                    "destination_contract_address": destination_contract_address,
                    "payload_hash": to_hex(payload_hash),
                    "payload": to_hex(bytes(payload)),
                },
                origin=f"para:{sender}",
            )
            logger.info("Outbound call from chain %d to %s", sender, destination_chain)
            return payload_hash

    # ------------------------------------------------------------------
    # Bridge-origin operations (reached through execute)
    # ------------------------------------------------------------------

    def transfer_operatorship(
        self,
        origin: Origin,
        new_operators: Sequence[AddressLike],
        new_weights: Sequence[int],
        new_threshold: int,
    ) -> bytes:
        """Rotate to a new operator set. Bridge origin only."""
        with self._transaction():
            ensure_bridge(origin)
            return self._registry.register(new_operators, new_weights, new_threshold)

    def approve_contract_call(
        self,
        origin: Origin,
        source_chain: str,
        source_address: str,
        contract_address: AddressLike,
        payload_hash: bytes,
        source_tx_hash: bytes,
        source_event_index: int,
        command_id: bytes,
    ) -> bytes:
        """Record a single-use call approval. Bridge origin only."""
        with self._transaction():
            return self._approvals.approve(
                origin,
                source_chain,
                source_address,
                contract_address,
                payload_hash,
                source_tx_hash,
                source_event_index,
                command_id,
            )

    # ------------------------------------------------------------------
    # Genesis
    # ------------------------------------------------------------------

    def initialize_operators(
        self,
        operators: Sequence[AddressLike],
        weights: Sequence[int],
        threshold: int,
    ) -> bytes:
        """Register the genesis operator set.

        Allowed only before any operator set exists; every later rotation
        must arrive as a signed batch command.
        """
        with self._transaction():
            if self._registry.current_epoch() != 0:
                raise BadOrigin("Operators already initialised; rotate through execute")
            return self._registry.register(operators, weights, threshold)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def current_epoch(self) -> int:
        with self._lock:
            return self._registry.current_epoch()

    def hash_for_epoch(self, epoch: int) -> Optional[bytes]:
        with self._lock:
            return self._registry.hash_for_epoch(epoch)

    def epoch_for_hash(self, operator_hash: bytes) -> int:
        with self._lock:
            return self._registry.epoch_for_hash(operator_hash)

    def command_executed(self, command_id: bytes) -> Optional[int]:
        """Chain id a command executed on, or None."""
        with self._lock:
            return self._executed.destination(command_id)

    def is_contract_call_approved(
        self,
        command_id: bytes,
        source_chain: str,
        source_address: str,
        contract_address: AddressLike,
        payload_hash: bytes,
    ) -> bool:
        with self._lock:
            return self._approvals.is_approved(
                command_id, source_chain, source_address, contract_address, payload_hash,
            )

    @property
    def config(self) -> GatewayConfig:
        return self._config

    @property
    def events(self) -> EventSink:
        return self._events

    def status(self) -> dict[str, Any]:
        """Summary of gateway state for operators."""
        with self._lock:
            epoch = self._registry.current_epoch()
            current_hash = self._registry.hash_for_epoch(epoch)
            return {
                "chain_id": self._config.chain_id,
                "current_epoch": epoch,
                "current_operators_hash": to_hex(current_hash) if current_hash else None,
                "executed_commands": self._executed.count(),
                "pending_approvals": self._store.count(CONTRACT_CALL_APPROVED),
                "forwarder": "local" if self._forwarder.is_local() else "remote",
            }

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    @contextmanager
    def _transaction(self) -> Iterator[None]:
        with self._lock:
            with self._store.transaction():
                yield
