"""
What strategies hand back to the engine.

Strategies are pure: they read a context and return a Decision. The engine
submits the instructions and persists the state; strategies never touch the
relay or the store themselves.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from pool_strategy_bot.ledger import (
    AssetId,
    Interval,
    OutputReference,
    SingletonValue,
    StrategyExecution,
    SwapOrder,
)


@dataclass(frozen=True)
class TradeInstruction:
    """
    A swap to perform against one custody order.

    Attributes:
        target_output: The custody order output to spend
        validity_range: Inclusive POSIX-ms window in which it may execute
        offer: What the order gives up
        min_received: The least it accepts in return
        reason: Human-readable trigger description for logs
    """

    target_output: OutputReference
    validity_range: Interval
    offer: SingletonValue
    min_received: SingletonValue
    reason: str = ""

    @classmethod
    def swap(
        cls,
        target_output: OutputReference,
        validity_range: Interval,
        give: AssetId,
        give_amount: int,
        receive: AssetId,
        receive_amount: int,
        reason: str = "",
    ) -> "TradeInstruction":
        return cls(
            target_output=target_output,
            validity_range=validity_range,
            offer=SingletonValue(give, give_amount),
            min_received=SingletonValue(receive, receive_amount),
            reason=reason,
        )

    def to_execution(self) -> StrategyExecution:
        """The unsigned payload the relay will receive."""
        return StrategyExecution(
            tx_ref=self.target_output,
            validity_range=self.validity_range,
            details=SwapOrder(offer=self.offer, min_received=self.min_received),
            extensions=b"",
        )

    def __str__(self) -> str:
        return (
            f"{self.target_output}: give {self.offer.amount} {self.offer.asset.display_name()} "
            f"for >= {self.min_received.amount} {self.min_received.asset.display_name()}"
        )


@dataclass
class Decision:
    """
    Outcome of evaluating one custody order against one pool snapshot.

    Attributes:
        instructions: Zero or more trades to submit
        state: Updated per-order state (JSON-compatible) or None to clear it
        persist_state: Whether the engine should write `state` back
    """

    instructions: list[TradeInstruction] = field(default_factory=list)
    state: Optional[dict[str, Any]] = None
    persist_state: bool = False

    @classmethod
    def nothing(cls) -> "Decision":
        return cls()
