"""
Validated configuration for the built-in strategies.

Each config is built once at startup (from JSON) and passed explicitly to
the strategy. Invalid values are rejected here, not discovered mid-run.
Asset ids are written "<policy hex>.<asset name hex>"; "." is ADA.
"""
from __future__ import annotations

from typing import Annotated, Any, Optional

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    PlainSerializer,
    model_validator,
)

from pool_strategy_bot.ledger import AssetId


def _parse_asset(value: Any) -> Any:
    if isinstance(value, str):
        return AssetId.from_string(value)
    return value


AssetField = Annotated[
    AssetId,
    BeforeValidator(_parse_asset),
    PlainSerializer(str, return_type=str),
]


class StrategyConfig(BaseModel):
    """Settings shared by every strategy."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True, extra="forbid")

    validity_seconds: int = Field(default=20, gt=0)


class StopLossConfig(StrategyConfig):
    """
    Stop-loss: sell the whole position once the price falls below a level.

    Price is units of token_a per unit of token_b, adjusted for decimals.
    """

    token_a: AssetField
    token_a_decimals: int = Field(default=0, ge=0, le=255)
    token_b: AssetField
    token_b_decimals: int = Field(default=0, ge=0, le=255)
    sell_token: AssetField
    execution_price: float = Field(gt=0)

    @model_validator(mode="after")
    def _check_tokens(self) -> "StopLossConfig":
        if self.token_a == self.token_b:
            raise ValueError("token_a and token_b must differ")
        if self.sell_token not in (self.token_a, self.token_b):
            raise ValueError("sell_token must be token_a or token_b")
        return self

    @property
    def buy_token(self) -> AssetId:
        return self.token_b if self.sell_token == self.token_a else self.token_a


class GridConfig(StrategyConfig):
    """
    Symmetrical grid: static price lines around the first observed price.

    Price is units of base_token per unit of strategy_token.
    """

    strategy_token: AssetField
    base_token: AssetField
    spacing_percent: float = Field(gt=0)
    levels_per_side: int = Field(ge=1)

    @model_validator(mode="after")
    def _check_grid(self) -> "GridConfig":
        if self.strategy_token == self.base_token:
            raise ValueError("strategy_token and base_token must differ")
        if self.spacing_percent * self.levels_per_side >= 1.0:
            raise ValueError(
                f"spacing_percent * levels_per_side must be < 1.0 "
                f"(got {self.spacing_percent} * {self.levels_per_side})"
            )
        return self


class TrailingStopConfig(StrategyConfig):
    """
    Trailing stop: exit once the price falls trail_percent below its peak.

    Price is units of exit_token per unit of position_token.
    """

    position_token: AssetField
    exit_token: AssetField
    trail_percent: float = Field(gt=0, lt=1)
    entry_price: Optional[float] = Field(default=None, gt=0)
    slippage_tolerance: float = Field(default=0.05, ge=0, lt=1)
    validity_seconds: int = Field(default=20 * 60, gt=0)

    @model_validator(mode="after")
    def _check_tokens(self) -> "TrailingStopConfig":
        if self.position_token == self.exit_token:
            raise ValueError("position_token and exit_token must differ")
        return self
