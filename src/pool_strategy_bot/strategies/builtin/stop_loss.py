"""
Stop-loss strategy.

Stateless. When the decimal-adjusted pool price drops strictly below the
configured execution price, sell the order's entire balance of the sell
token for the other token of the pair, asking for at least the amount the
execution price implies.

Price is units of token_a per unit of token_b. Selling token_a therefore
receives amount / price of token_b; selling token_b receives
amount * price of token_a.
"""
from __future__ import annotations

import logging

from ..config import StopLossConfig
from ..instructions import Decision, TradeInstruction
from ..protocol import BaseStrategy, StrategyContext

logger = logging.getLogger(__name__)


class StopLossStrategy(BaseStrategy):
    """
    Sell everything once price < execution_price.

    Price exactly equal to the execution price does not trigger. An order
    holding none of the sell token is skipped rather than sent a zero swap.
    """

    name = "stop_loss"
    config_model = StopLossConfig

    def __init__(self, config: StopLossConfig) -> None:
        super().__init__(config)
        self.config: StopLossConfig = config

    @property
    def asset_pair(self):
        return self.config.token_a, self.config.token_b

    def current_price(self, ctx: StrategyContext) -> float:
        cfg = self.config
        raw = ctx.pool.price_of(cfg.token_b, cfg.token_a)
        return raw * 10.0 ** (cfg.token_a_decimals - cfg.token_b_decimals)

    def receive_amount(self, give_amount: int) -> int:
        """Minimum received for selling give_amount at the execution price."""
        cfg = self.config
        # execution_price in smallest units of token_a per smallest unit of token_b
        raw_execution = cfg.execution_price * 10.0 ** (cfg.token_b_decimals - cfg.token_a_decimals)
        if cfg.sell_token == cfg.token_a:
            return int(give_amount / raw_execution)
        return int(give_amount * raw_execution)

    def on_new_custody_order(self, order) -> None:
        logger.info(
            f"Stop-loss armed for {order.output_ref}: "
            f"{order.utxo.amount_of(self.config.sell_token)} {self.config.sell_token.display_name()} "
            f"below {self.config.execution_price}"
        )

    def evaluate(self, ctx: StrategyContext) -> Decision:
        cfg = self.config
        price = self.current_price(ctx)
        logger.debug(f"Pool update for {ctx.order.output_ref}: price {price}")

        if not price < cfg.execution_price:
            return Decision.nothing()

        give_amount = ctx.balance_of(cfg.sell_token)
        if give_amount == 0:
            logger.debug(f"{ctx.order.output_ref} holds no {cfg.sell_token.display_name()}")
            return Decision.nothing()

        logger.info(
            f"Price has fallen to {price}, below stop-loss price of {cfg.execution_price}. "
            f"Triggering a sell for {ctx.order.output_ref}"
        )
        instruction = TradeInstruction.swap(
            target_output=ctx.order.output_ref,
            validity_range=ctx.validity_range(cfg.validity_seconds),
            give=cfg.sell_token,
            give_amount=give_amount,
            receive=cfg.buy_token,
            receive_amount=self.receive_amount(give_amount),
            reason=f"stop-loss: price {price:.6g} < {cfg.execution_price}",
        )
        return Decision(instructions=[instruction])
