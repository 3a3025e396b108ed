"""
Symmetrical grid strategy.

Provides liquidity around a fixed center price using a static grid of
price lines. The order output is expected to hold both the strategy token
and the base token at roughly equal value when first observed.

On first observation the current price becomes the center and the initial
balances of both tokens are snapshotted. Lines sit at
center * (1 + k * spacing) for k in [-levels, -1] and [1, levels]. The
center itself is never a line. Spacing is arithmetic rather than geometric,
so neighbouring lines are always center * spacing apart.

- Price moves up through lines: sell one slice of the strategy token per
  line crossed (slice = initial strategy balance / levels).
- Price moves down through lines: buy the strategy token back, paying one
  slice of the base token per line (slice = initial base balance / levels).

Example with spacing 0.05 and 3 levels per side, center 1.00:

    1.15  1.10  1.05  [1.00]  0.95  0.90  0.85

A rise to 1.101 crosses 1.05 and 1.10 and sells two slices in a single
swap. A fall back to 1.00 re-crosses 1.10 and 1.05 and buys two slices back.

State is keyed by the order's owner and signer so it survives the order
output being re-created after each fill.
"""
from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass
from typing import Any, Optional

from ..config import GridConfig
from ..instructions import Decision, TradeInstruction
from ..protocol import BaseStrategy, StrategyContext

logger = logging.getLogger(__name__)

GRID_STATE_PREFIX = "grid_state:"


@dataclass
class GridState:
    """
    Persisted grid state.

    Attributes:
        center_price: Price at first observation
        line_offset: Signed number of lines above (+) or below (-) center
            that have been filled
        init_strategy: Strategy token balance at first observation
        init_base: Base token balance at first observation
    """

    center_price: float
    line_offset: int
    init_strategy: int
    init_base: int

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "GridState":
        return cls(
            center_price=float(raw["center_price"]),
            line_offset=int(raw["line_offset"]),
            init_strategy=int(raw["init_strategy"]),
            init_base=int(raw["init_base"]),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def grid_lines(center_price: float, spacing_percent: float, levels_per_side: int) -> list[float]:
    """Ascending grid line prices, excluding the center."""
    below = [center_price * (1 + k * spacing_percent) for k in range(-levels_per_side, 0)]
    above = [center_price * (1 + k * spacing_percent) for k in range(1, levels_per_side + 1)]
    return below + above


def crossed_lines(
    lines: list[float], levels_per_side: int, previous_offset: int, price: float
) -> tuple[int, list[float]]:
    """
    Work out which lines the price moved through.

    Offsets are relative to the center: 0 means the price sits between the
    innermost lines. Lines are returned in the order they were crossed.

    Returns:
        (new_offset, crossed line prices)
    """
    new_offset = sum(1 for line in lines if line < price) - levels_per_side

    lo = previous_offset + levels_per_side
    hi = new_offset + levels_per_side
    if new_offset > previous_offset:
        return new_offset, lines[lo:hi]
    if new_offset < previous_offset:
        return new_offset, list(reversed(lines[hi:lo]))
    return new_offset, []


class GridStrategy(BaseStrategy):
    """Static symmetric grid around the first observed price."""

    name = "grid"
    config_model = GridConfig

    def __init__(self, config: GridConfig) -> None:
        super().__init__(config)
        self.config: GridConfig = config

    @property
    def asset_pair(self):
        return self.config.strategy_token, self.config.base_token

    def state_key(self, order) -> Optional[str]:
        return f"{GRID_STATE_PREFIX}{order.order.owner.key_hash.hex()}:{order.signer.hex()}"

    def evaluate(self, ctx: StrategyContext) -> Decision:
        cfg = self.config
        levels = cfg.levels_per_side
        strategy_amt = ctx.balance_of(cfg.strategy_token)
        base_amt = ctx.balance_of(cfg.base_token)
        if strategy_amt == 0 and base_amt == 0:
            return Decision.nothing()

        price = ctx.pool.price_of(cfg.strategy_token, cfg.base_token)

        initialized = ctx.state is None
        if initialized:
            state = GridState(
                center_price=price,
                line_offset=0,
                init_strategy=strategy_amt,
                init_base=base_amt,
            )
            logger.info(
                f"Grid for {ctx.order.output_ref} centered at {price} "
                f"({strategy_amt} {cfg.strategy_token.display_name()}, "
                f"{base_amt} {cfg.base_token.display_name()})"
            )
        else:
            state = GridState.from_dict(ctx.state)

        lines = grid_lines(state.center_price, cfg.spacing_percent, levels)
        new_offset, crossed = crossed_lines(lines, levels, state.line_offset, price)
        if not crossed:
            return Decision(state=state.to_dict(), persist_state=initialized)

        moving_up = new_offset > state.line_offset
        if moving_up:
            per_line = state.init_strategy // levels
            available = strategy_amt
        else:
            per_line = state.init_base // levels
            available = base_amt

        max_fillable = available // per_line if per_line else 0
        fills = min(len(crossed), max_fillable)

        if fills == 0:
            logger.info(
                f"Grid for {ctx.order.output_ref} crossed {len(crossed)} lines "
                f"but has nothing to fill; moving offset to {new_offset}"
            )
            state.line_offset = new_offset
            return Decision(state=state.to_dict(), persist_state=True)

        filled = crossed[:fills]
        sell_amt = per_line * fills
        validity = ctx.validity_range(cfg.validity_seconds)

        if moving_up:
            buy_amt = math.floor(sum(per_line * line for line in filled))
            instruction = TradeInstruction.swap(
                target_output=ctx.order.output_ref,
                validity_range=validity,
                give=cfg.strategy_token,
                give_amount=sell_amt,
                receive=cfg.base_token,
                receive_amount=buy_amt,
                reason=f"grid: price {price:.6g} rose through {fills} lines",
            )
            state.line_offset += fills
        else:
            buy_amt = math.floor(sum(per_line / line for line in filled))
            instruction = TradeInstruction.swap(
                target_output=ctx.order.output_ref,
                validity_range=validity,
                give=cfg.base_token,
                give_amount=sell_amt,
                receive=cfg.strategy_token,
                receive_amount=buy_amt,
                reason=f"grid: price {price:.6g} fell through {fills} lines",
            )
            state.line_offset -= fills

        if fills < len(crossed):
            logger.info(
                f"Grid for {ctx.order.output_ref} can only fill {fills} of {len(crossed)} crossed lines"
            )
        return Decision(instructions=[instruction], state=state.to_dict(), persist_state=True)
