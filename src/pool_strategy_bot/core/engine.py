"""
Strategy Worker - Orchestrates one event at a time.

Flow for each incoming event:
1. Classify it (transaction, output sighting, request, or nothing)
2. Output sighting:
   a. If it is a pool, run the strategy over every relevant custody order,
      submit the resulting instructions, then persist updated state
   b. If it is an order we own, record it in the custody ledger
3. Transaction: release spent custody orders
4. Request: answer get-signer-key or a strategy-provided handler

Failures from the state store, the signer or the relay propagate out of
handle_event. The host maps them to an error so the event is redelivered;
nothing here retries.
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Optional

from pool_strategy_bot.exceptions import RequestError
from pool_strategy_bot.execution import ExecutionResult, ExecutionService
from pool_strategy_bot.ledger import (
    EventClassifier,
    EventKind,
    Transaction,
    Utxo,
    WorkerRequest,
)
from pool_strategy_bot.storage import CustodyLedger, OwnershipOutcome, StateStore
from pool_strategy_bot.strategies import BaseStrategy

from .network import Network
from .pools import PoolState

logger = logging.getLogger(__name__)

GET_SIGNER_KEY = "get-signer-key"


@dataclass
class WorkerStats:
    """Runtime statistics for the worker."""

    events_processed: int = 0
    events_ignored: int = 0
    pool_updates: int = 0
    orders_recorded: int = 0
    orders_released: int = 0
    orders_evaluated: int = 0
    instructions_submitted: int = 0
    dry_run_instructions: int = 0
    requests_answered: int = 0

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


@dataclass(frozen=True)
class EventResult:
    """What handling one event did (returned to the host as the ack body)."""

    kind: EventKind
    ownership: Optional[OwnershipOutcome] = None
    executions: tuple[ExecutionResult, ...] = ()
    response: Optional[dict[str, Any]] = None

    def to_json(self) -> dict[str, Any]:
        body: dict[str, Any] = {"kind": self.kind.value}
        if self.ownership is not None:
            body["ownership"] = self.ownership.value
        if self.executions:
            body["executions"] = [
                {
                    "tx_hash": e.submission.tx_hash,
                    "tx_index": e.submission.tx_index,
                    "posted": e.posted,
                }
                for e in self.executions
            ]
        if self.response is not None:
            body["response"] = self.response
        return body


class StrategyWorker:
    """
    Event-driven worker running one strategy.

    Usage:
        worker = StrategyWorker(
            network=Network.PREVIEW,
            strategy=build_strategy("grid", config),
            store=PostgresStateStore(db),
            custody=CustodyLedger(store, key_ring),
            execution=ExecutionService(key_ring, RelayClient(url)),
        )

        result = await worker.handle_event(raw_event)
    """

    def __init__(
        self,
        network: Network,
        strategy: BaseStrategy,
        store: StateStore,
        custody: CustodyLedger,
        execution: ExecutionService,
        classifier: Optional[EventClassifier] = None,
    ) -> None:
        self.network = network
        self.strategy = strategy
        self.store = store
        self.custody = custody
        self.execution = execution
        self.classifier = classifier or EventClassifier()
        self._stats = WorkerStats()

    @property
    def stats(self) -> WorkerStats:
        return self._stats

    @property
    def dry_run(self) -> bool:
        return self.execution.dry_run

    # =========================================================================
    # Dispatch
    # =========================================================================

    async def handle_event(self, event: Any) -> EventResult:
        """
        Process one raw event to completion.

        Raises:
            StateStoreError, SigningKeyMissingError, SubmissionError:
                Propagated so the host can redeliver
            RequestError: For requests with invalid parameters
        """
        classified = self.classifier.classify(event)
        self._stats.events_processed += 1

        if classified.kind is EventKind.TRANSACTION:
            await self.handle_transaction(classified.payload)
            return EventResult(EventKind.TRANSACTION)

        if classified.kind is EventKind.OUTPUT:
            executions, ownership = await self.handle_output(classified.payload)
            return EventResult(EventKind.OUTPUT, ownership=ownership, executions=executions)

        if classified.kind is EventKind.REQUEST:
            response = await self.handle_request(classified.payload)
            return EventResult(EventKind.REQUEST, response=response)

        self._stats.events_ignored += 1
        return EventResult(EventKind.UNKNOWN)

    # =========================================================================
    # Output sightings
    # =========================================================================

    async def handle_output(
        self, utxo: Utxo
    ) -> tuple[tuple[ExecutionResult, ...], OwnershipOutcome]:
        """Pool step first, then the custody step."""
        logger.debug(f"Output observed at slot {utxo.block_slot}: {utxo.output_ref}")
        executions = await self.handle_pool_state(utxo)
        ownership = await self.handle_custody_order(utxo)
        return executions, ownership

    async def handle_pool_state(self, utxo: Utxo) -> tuple[ExecutionResult, ...]:
        pool = PoolState.from_utxo(utxo)
        if pool is None:
            return ()

        self._stats.pool_updates += 1
        logger.debug(
            f"Pool {pool.pool_datum.identifier.hex()} updated at slot {pool.slot} "
            f"(raw price {pool.raw_price})"
        )

        orders = await self.custody.list()
        if not orders:
            return ()

        relevant = self.strategy.relevant_orders(pool, orders)
        states: dict[str, Optional[dict[str, Any]]] = {}
        for order in relevant:
            key = self.strategy.state_key(order)
            if key and key not in states:
                states[key] = await self.store.get(key)

        outcome = self.strategy.on_pool_update(pool, orders, states, self.network)
        self._stats.orders_evaluated += outcome.evaluated

        results = []
        for instruction in outcome.instructions:
            result = await self.execution.submit(instruction)
            results.append(result)
            if result.posted:
                self._stats.instructions_submitted += 1
            else:
                self._stats.dry_run_instructions += 1

        for key, value in outcome.state_updates.items():
            await self.store.set(key, value)

        return tuple(results)

    async def handle_custody_order(self, utxo: Utxo) -> OwnershipOutcome:
        outcome, order = self.custody.check_ownership(utxo)
        if order is None:
            return outcome

        if await self.custody.record(order):
            self._stats.orders_recorded += 1
            self.strategy.on_new_custody_order(order)
        return outcome

    # =========================================================================
    # Transactions
    # =========================================================================

    async def handle_transaction(self, tx: Transaction) -> int:
        """Release custody orders spent by this transaction."""
        logger.debug(f"Transaction {tx.tx_hash.hex()} observed at slot {tx.block_slot}")
        before = len(await self.custody.list())
        retained = await self.custody.release_spent(tx.inputs)
        self._stats.orders_released += max(before - retained, 0)

        remaining = await self.custody.list()
        self.strategy.on_transaction(tx, remaining)
        return retained

    # =========================================================================
    # Requests
    # =========================================================================

    async def handle_request(self, request: WorkerRequest) -> dict[str, Any]:
        """
        Answer a named request.

        Raises:
            RequestError: Unknown method (404) or invalid parameters (400)
        """
        if request.method == GET_SIGNER_KEY:
            response = self.get_signer_key()
        else:
            handler = self.strategy.request_handlers().get(request.method)
            if handler is None:
                raise RequestError(f"Unknown request method '{request.method}'", status_code=404)
            response = await handler(request.params, self.store)

        self._stats.requests_answered += 1
        return response

    def get_signer_key(self) -> dict[str, Any]:
        key = self.custody.keys.public_key(self.custody.key_name)
        return {"public_key": key.hex()}
