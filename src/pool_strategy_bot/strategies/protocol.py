"""
Strategy protocol, context and the base class built-in strategies share.

Strategies are pure logic: they receive a StrategyContext and return a
Decision. No store access, no relay calls. The engine loads state before
calling them and persists what they hand back.

Hooks (all optional, no-ops by default):
    on_new_custody_order - an owned order was just recorded
    on_pool_update       - a pool snapshot arrived; drives evaluate()
    on_transaction       - a transaction was seen and spent orders released
    request_handlers     - extra named requests the worker answers
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import (
    TYPE_CHECKING,
    Any,
    Awaitable,
    Callable,
    ClassVar,
    Optional,
    Protocol,
    Type,
    runtime_checkable,
)

from pool_strategy_bot.core.network import Network
from pool_strategy_bot.core.pools import PoolState
from pool_strategy_bot.ledger import AssetId, Interval, Transaction

from .config import StrategyConfig
from .instructions import Decision, TradeInstruction

if TYPE_CHECKING:
    from pool_strategy_bot.storage import CustodyOrder, StateStore

logger = logging.getLogger(__name__)

RequestHandler = Callable[[dict[str, Any], "StateStore"], Awaitable[dict[str, Any]]]


@dataclass
class StrategyContext:
    """
    Everything a strategy needs to decide about one custody order.

    Built by the engine for each relevant order on each pool snapshot.
    """

    pool: PoolState
    order: "CustodyOrder"
    network: Network
    state: Optional[dict[str, Any]] = None

    @property
    def now_ms(self) -> int:
        return self.pool.now_ms(self.network)

    def balance_of(self, asset: AssetId) -> int:
        """Balance of an asset held by the custody order output."""
        return self.order.utxo.amount_of(asset)

    def validity_range(self, seconds: int) -> Interval:
        return self.pool.validity_range(self.network, seconds)


@dataclass
class PoolUpdateOutcome:
    """
    Aggregate result of one pool snapshot across all relevant orders.

    Attributes:
        instructions: Trades to submit, in evaluation order
        state_updates: State key -> new value (None clears the state)
        evaluated: Number of orders that were evaluated
    """

    instructions: list[TradeInstruction] = field(default_factory=list)
    state_updates: dict[str, Optional[dict[str, Any]]] = field(default_factory=dict)
    evaluated: int = 0


@runtime_checkable
class Strategy(Protocol):
    """
    Protocol that all strategies must implement.

    Strategies are designed to be:
    - Pure: No side effects, no I/O
    - Testable: Build a context, call evaluate, inspect the Decision
    - Pluggable: Selected by name from the registry at startup
    """

    @property
    def name(self) -> str:
        """Unique strategy identifier used for selection and logging."""
        ...

    def state_key(self, order: "CustodyOrder") -> Optional[str]:
        """Store key of the order's persisted state, or None if stateless."""
        ...

    def on_new_custody_order(self, order: "CustodyOrder") -> None:
        ...

    def on_pool_update(
        self,
        pool: PoolState,
        orders: list["CustodyOrder"],
        states: dict[str, Optional[dict[str, Any]]],
        network: Network,
    ) -> PoolUpdateOutcome:
        ...

    def on_transaction(self, tx: Transaction, remaining: list["CustodyOrder"]) -> None:
        ...

    def request_handlers(self) -> dict[str, RequestHandler]:
        ...


class BaseStrategy:
    """
    Shared plumbing for the built-in strategies.

    Subclasses set `name` and `config_model`, expose the asset pair they
    trade through `asset_pair`, and implement evaluate().
    """

    name: ClassVar[str] = ""
    config_model: ClassVar[Type[StrategyConfig]] = StrategyConfig

    def __init__(self, config: StrategyConfig) -> None:
        self.config = config

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "BaseStrategy":
        """Validate raw configuration and build the strategy."""
        return cls(cls.config_model.model_validate(raw))

    @property
    def asset_pair(self) -> tuple[AssetId, AssetId]:
        raise NotImplementedError

    # -------------------------------------------------------------------------
    # Hooks
    # -------------------------------------------------------------------------

    def state_key(self, order: "CustodyOrder") -> Optional[str]:
        return None

    def on_new_custody_order(self, order: "CustodyOrder") -> None:
        pass

    def on_transaction(self, tx: Transaction, remaining: list["CustodyOrder"]) -> None:
        pass

    def request_handlers(self) -> dict[str, RequestHandler]:
        return {}

    def relevant_orders(
        self, pool: PoolState, orders: list["CustodyOrder"]
    ) -> list["CustodyOrder"]:
        """Orders that trade against this pool with our configured pair."""
        asset_a, asset_b = self.asset_pair
        return [o for o in orders if pool.is_correct_pool(o.order, asset_a, asset_b)]

    def on_pool_update(
        self,
        pool: PoolState,
        orders: list["CustodyOrder"],
        states: dict[str, Optional[dict[str, Any]]],
        network: Network,
    ) -> PoolUpdateOutcome:
        """
        Evaluate every relevant order against a pool snapshot.

        `states` holds the persisted state for each key returned by
        state_key(); orders sharing a key see each other's updates.
        """
        outcome = PoolUpdateOutcome()
        if not pool.trades_pair(*self.asset_pair):
            # An order may pin this pool by identifier, but we cannot price it
            logger.debug(
                f"Pool {pool.pool_datum.identifier.hex()} does not trade the configured pair"
            )
            return outcome

        for order in self.relevant_orders(pool, orders):
            key = self.state_key(order)
            ctx = StrategyContext(
                pool=pool,
                order=order,
                network=network,
                state=states.get(key) if key else None,
            )
            decision = self.evaluate(ctx)
            outcome.evaluated += 1
            outcome.instructions.extend(decision.instructions)
            if key and decision.persist_state:
                states[key] = decision.state
                outcome.state_updates[key] = decision.state
        return outcome

    def evaluate(self, ctx: StrategyContext) -> Decision:
        """Decide what to do about one custody order."""
        raise NotImplementedError
