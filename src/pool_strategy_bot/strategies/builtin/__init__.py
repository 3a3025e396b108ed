"""Built-in strategy implementations."""

from .grid import GridState, GridStrategy, crossed_lines, grid_lines
from .stop_loss import StopLossStrategy
from .trailing_stop import TrailingStopStrategy, peak_price_key

__all__ = [
    "StopLossStrategy",
    "GridStrategy",
    "GridState",
    "grid_lines",
    "crossed_lines",
    "TrailingStopStrategy",
    "peak_price_key",
]
