"""
Strategies Layer - Pluggable decision engines for custody orders.

This module provides:
    - Strategy: Protocol defining the hook interface
    - BaseStrategy: No-op hooks plus the per-order evaluation loop
    - StrategyContext: Everything needed to decide about one order
    - TradeInstruction, Decision: What strategies hand back
    - StopLossConfig, GridConfig, TrailingStopConfig: Validated settings
    - StrategyRegistry: Selection by name ("stop_loss", "grid", "trailing_stop")

Design Principle:
    Strategies are PURE LOGIC - no store access, no relay calls.
    They receive a StrategyContext and return a Decision.
    The engine loads state before and persists it after.
"""

from .config import GridConfig, StopLossConfig, StrategyConfig, TrailingStopConfig
from .instructions import Decision, TradeInstruction
from .protocol import (
    BaseStrategy,
    PoolUpdateOutcome,
    RequestHandler,
    Strategy,
    StrategyContext,
)
from .registry import (
    DuplicateStrategyError,
    StrategyNotFoundError,
    StrategyRegistry,
    build_strategy,
    get_default_registry,
)
from .builtin import GridStrategy, StopLossStrategy, TrailingStopStrategy

__all__ = [
    # Protocol and context
    "Strategy",
    "BaseStrategy",
    "StrategyContext",
    "PoolUpdateOutcome",
    "RequestHandler",
    # Results
    "TradeInstruction",
    "Decision",
    # Config
    "StrategyConfig",
    "StopLossConfig",
    "GridConfig",
    "TrailingStopConfig",
    # Registry
    "StrategyRegistry",
    "StrategyNotFoundError",
    "DuplicateStrategyError",
    "get_default_registry",
    "build_strategy",
    # Built-in strategies
    "StopLossStrategy",
    "GridStrategy",
    "TrailingStopStrategy",
]
