"""
Pool snapshots, pool/order matching, price math and validity windows.

A PoolState is rebuilt from every output sighting whose datum parses as a
pool datum. It is never persisted.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from pool_strategy_bot.ledger import (
    U64_MAX,
    AssetId,
    Interval,
    OrderDatum,
    OutputReference,
    PoolDatum,
    TxOutput,
    Utxo,
    try_parse,
)

from .network import Network

logger = logging.getLogger(__name__)


def saturating_window(now_ms: int, seconds: int) -> Interval:
    """
    Inclusive validity interval [now - seconds, now + seconds] in milliseconds.

    Bounds saturate at 0 and at 2**64 - 1 instead of wrapping.
    """
    delta_ms = min(max(seconds, 0) * 1000, U64_MAX)
    now_ms = min(max(now_ms, 0), U64_MAX)
    start = max(now_ms - delta_ms, 0)
    end = min(now_ms + delta_ms, U64_MAX)
    return Interval.inclusive_range(start, end)


@dataclass(frozen=True)
class PoolState:
    """
    A liquidity pool as seen in one output sighting.

    Attributes:
        slot: Slot in which the pool output was seen
        output_ref: Reference to the pool output
        utxo: Contents of the pool output
        pool_datum: Parsed pool datum
    """

    slot: int
    output_ref: OutputReference
    utxo: TxOutput
    pool_datum: PoolDatum

    @classmethod
    def from_utxo(cls, utxo: Utxo) -> Optional["PoolState"]:
        """Extract a pool snapshot, or None if the output is not a pool."""
        datum = try_parse(PoolDatum, utxo.datum)
        if datum is None:
            return None
        return cls(
            slot=utxo.block_slot,
            output_ref=utxo.output_ref,
            utxo=utxo.output,
            pool_datum=datum,
        )

    def is_correct_pool(
        self,
        order: OrderDatum,
        asset_a: AssetId,
        asset_b: AssetId,
    ) -> bool:
        """
        Whether this pool is the one an order trades against.

        An explicit pool identifier on the order is authoritative. Otherwise
        the pool's asset pair must equal {asset_a, asset_b} in either order.
        """
        if order.pool_ident is not None:
            return self.pool_datum.identifier == order.pool_ident
        return self.trades_pair(asset_a, asset_b)

    def trades_pair(self, asset_a: AssetId, asset_b: AssetId) -> bool:
        """Whether the pool's assets are {asset_a, asset_b} in either order."""
        pool_a, pool_b = self.pool_datum.assets
        return (asset_a.matches(pool_a) and asset_b.matches(pool_b)) or (
            asset_a.matches(pool_b) and asset_b.matches(pool_a)
        )

    @property
    def raw_price(self) -> float:
        """Asset A reserves per asset B reserve, in smallest units."""
        return self.pool_datum.raw_price(self.utxo)

    def price(self, asset_a_decimals: int, asset_b_decimals: int) -> float:
        """Raw price scaled by 10^(decimals_a - decimals_b)."""
        return self.raw_price * 10.0 ** (asset_a_decimals - asset_b_decimals)

    def price_of(self, asset: AssetId, quoted_in: AssetId) -> float:
        """
        Price of one unit of `asset` expressed in units of `quoted_in`.

        The pool price is A-per-B, so pricing the pool's B asset returns the
        raw price and pricing the pool's A asset returns its reciprocal.
        This is the one place that orientation is decided.

        Raises:
            ValueError: If the pair is not this pool's pair
        """
        pool_a, pool_b = self.pool_datum.assets
        raw = self.raw_price
        if asset.matches(pool_b) and quoted_in.matches(pool_a):
            return raw
        if asset.matches(pool_a) and quoted_in.matches(pool_b):
            return 1.0 / raw if raw else float("inf")
        raise ValueError(
            f"Pool {self.pool_datum.identifier.hex()} does not trade {asset} against {quoted_in}"
        )

    def now_ms(self, network: Network) -> int:
        """Wall-clock time of this snapshot in milliseconds."""
        return network.to_unix_time(self.slot)

    def validity_range(self, network: Network, seconds: int) -> Interval:
        """Validity window of +/- `seconds` around this snapshot's time."""
        return saturating_window(self.now_ms(network), seconds)
