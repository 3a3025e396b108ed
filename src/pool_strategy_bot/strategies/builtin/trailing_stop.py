"""
Trailing stop-loss strategy.

Protects a position by tracking the highest price seen since entry and
exiting once the price falls trail_percent below that peak.

- The peak starts at the configured entry price, or the current price when
  none is configured, and only ever moves up.
- trigger = peak * (1 - trail_percent)
- price < trigger: swap the whole position for the exit token, asking for
  at least position * trigger * (1 - slippage_tolerance), never less than 1.

Peaks are tracked per custody order (key peak_price:<tx hash>#<index>), so
several positions in the same pool trail independently. A peak is cleared
once its order no longer holds the position token, so a later entry on the
same output reinitializes cleanly. Peaks of spent orders are kept so
external tooling can still read them through get-peak-price.
"""
from __future__ import annotations

import logging
import math
from typing import Any, Optional

from pydantic import BaseModel, Field, ValidationError

from pool_strategy_bot.exceptions import RequestError
from pool_strategy_bot.ledger import OutputReference

from ..config import TrailingStopConfig
from ..instructions import Decision, TradeInstruction
from ..protocol import BaseStrategy, RequestHandler, StrategyContext

logger = logging.getLogger(__name__)

PEAK_PRICE_PREFIX = "peak_price:"


def peak_price_key(output_ref: OutputReference) -> str:
    return f"{PEAK_PRICE_PREFIX}{output_ref}"


class GetPeakPriceParams(BaseModel):
    """Parameters of the get-peak-price request."""

    tx_hash: str
    output_index: int = Field(ge=0)


class TrailingStopStrategy(BaseStrategy):
    """Exit a position once it falls trail_percent below its peak."""

    name = "trailing_stop"
    config_model = TrailingStopConfig

    def __init__(self, config: TrailingStopConfig) -> None:
        super().__init__(config)
        self.config: TrailingStopConfig = config

    @property
    def asset_pair(self):
        return self.config.position_token, self.config.exit_token

    def state_key(self, order) -> Optional[str]:
        return peak_price_key(order.output_ref)

    def trigger_price(self, peak_price: float) -> float:
        return peak_price * (1.0 - self.config.trail_percent)

    def min_received(self, position_amount: int, trigger_price: float) -> int:
        expected = position_amount * trigger_price * (1.0 - self.config.slippage_tolerance)
        return max(1, math.floor(expected))

    def evaluate(self, ctx: StrategyContext) -> Decision:
        cfg = self.config
        ref = ctx.order.output_ref
        position = ctx.balance_of(cfg.position_token)

        if position == 0:
            if ctx.state is not None:
                logger.info(f"{ref} no longer holds {cfg.position_token.display_name()}; clearing peak")
                return Decision(state=None, persist_state=True)
            return Decision.nothing()

        price = ctx.pool.price_of(cfg.position_token, cfg.exit_token)

        changed = False
        if ctx.state is None:
            peak = cfg.entry_price if cfg.entry_price is not None else price
            logger.info(f"Initializing peak price for {ref} to {peak} (entry_price: {cfg.entry_price})")
            changed = True
        else:
            peak = float(ctx.state["peak_price"])

        if price > peak:
            logger.info(f"Updating peak price for {ref} to {price}")
            peak = price
            changed = True

        trigger = self.trigger_price(peak)
        logger.debug(f"{ref}: price={price}, peak={peak}, trigger={trigger}")

        state = {"peak_price": peak}
        if not price < trigger:
            return Decision(state=state, persist_state=changed)

        logger.info(f"Trailing stop triggered for {ref}: price {price} < trigger {trigger}")
        instruction = TradeInstruction.swap(
            target_output=ref,
            validity_range=ctx.validity_range(cfg.validity_seconds),
            give=cfg.position_token,
            give_amount=position,
            receive=cfg.exit_token,
            receive_amount=self.min_received(position, trigger),
            reason=f"trailing stop: price {price:.6g} < trigger {trigger:.6g} (peak {peak:.6g})",
        )
        return Decision(instructions=[instruction], state=state, persist_state=changed)

    # -------------------------------------------------------------------------
    # Requests
    # -------------------------------------------------------------------------

    def request_handlers(self) -> dict[str, RequestHandler]:
        return {"get-peak-price": self.get_peak_price}

    async def get_peak_price(self, params: dict[str, Any], store) -> dict[str, Any]:
        """
        Current peak for a custody order, or null if none is stored.

        Raises:
            RequestError: If the parameters are missing or tx_hash is not hex
        """
        try:
            parsed = GetPeakPriceParams.model_validate(params)
        except ValidationError as e:
            raise RequestError(f"invalid request parameters: {e.error_count()} errors") from e

        try:
            tx_hash = bytes.fromhex(parsed.tx_hash)
        except ValueError as e:
            raise RequestError("invalid tx_hash hex encoding") from e

        output_ref = OutputReference(tx_hash, parsed.output_index)
        state = await store.get(peak_price_key(output_ref))
        peak_price = float(state["peak_price"]) if state else None
        logger.info(f"get-peak-price for {output_ref}: {peak_price}")
        return {"peak_price": peak_price}
