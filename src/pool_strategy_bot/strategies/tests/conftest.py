"""
Strategy test fixtures.

Strategies are pure, so tests build PoolState and CustodyOrder objects
directly and call evaluate() or on_pool_update() without a store.
"""
from typing import Callable

import pytest

from pool_strategy_bot.core import Network, PoolState
from pool_strategy_bot.ledger import OrderDatum, parse
from pool_strategy_bot.storage import CustodyOrder
from pool_strategy_bot.strategies import StrategyContext


@pytest.fixture
def make_pool(make_pool_utxo) -> Callable[..., PoolState]:
    """PoolState at a given raw price (ADA per token)."""

    def _make(price: float, **kwargs) -> PoolState:
        return PoolState.from_utxo(make_pool_utxo(price, **kwargs))

    return _make


@pytest.fixture
def make_custody_order(make_order_utxo) -> Callable[..., CustodyOrder]:
    """CustodyOrder built from a strategy order output sighting."""

    def _make(**kwargs) -> CustodyOrder:
        utxo = make_order_utxo(**kwargs)
        return CustodyOrder(
            slot=utxo.block_slot,
            output_ref=utxo.output_ref,
            utxo=utxo.output,
            order=parse(OrderDatum, utxo.datum),
            datum_cbor=utxo.datum,
        )

    return _make


@pytest.fixture
def make_context(make_pool) -> Callable[..., StrategyContext]:
    def _make(price: float, order: CustodyOrder, state=None) -> StrategyContext:
        return StrategyContext(
            pool=make_pool(price),
            order=order,
            network=Network.PREVIEW,
            state=state,
        )

    return _make
