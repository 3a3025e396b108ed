"""
Core Layer - Network parameters, pool snapshots and the worker engine.

This module provides:
    - Network: preview / mainnet slot offsets and relay URLs
    - PoolState: Pool snapshot with matching and price math
    - saturating_window: Inclusive validity window that never wraps

The orchestrator lives in pool_strategy_bot.core.engine (StrategyWorker,
WorkerStats); it is not re-exported here because it depends on the
strategies layer, which itself depends on this package.
"""

from .network import Network
from .pools import PoolState, saturating_window

__all__ = [
    "Network",
    "PoolState",
    "saturating_window",
]
