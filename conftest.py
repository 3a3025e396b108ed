"""
Shared test fixtures.

Builders for pool outputs, custody order outputs and raw host events that
span several layers. Layer-specific fixtures live in
src/pool_strategy_bot/{layer}/tests/conftest.py.

Prices in these fixtures are ADA-per-token: the pool's first asset is ADA
and its second asset is the test token, so raw price = lovelace reserve /
token reserve.
"""

from typing import Callable, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

from pool_strategy_bot.core import Network
from pool_strategy_bot.core.engine import StrategyWorker
from pool_strategy_bot.execution import ExecutionService, KeyRing, RelayClient
from pool_strategy_bot.ledger import (
    ADA,
    AssetAmount,
    AssetId,
    OrderDatum,
    OutputReference,
    PoolDatum,
    SignatureScript,
    StrategyOrder,
    TxOutput,
    Utxo,
    serialize,
)
from pool_strategy_bot.storage import CustodyLedger, InMemoryStateStore
from pool_strategy_bot.strategies import build_strategy

TOKEN_POLICY = bytes.fromhex("99b071ce8580d6a3a11b4902145adb8bfd0d2a03935af8cf66403e15")
TOKEN_NAME = b"SBERRY"
POOL_IDENT = bytes.fromhex("ba228444515fbefd2c8725338e49589f206c7f18a33e002b157aac3c")
OWNER_KEY_HASH = bytes.fromhex("6af53ff4f054348ad825c692dd9db8f1760a8e0eacf9af9f99306513")

# Token reserve used by make_pool_utxo; lovelace reserve = price * this
TOKEN_RESERVE = 1_000_000_000


# =============================================================================
# Assets and keys
# =============================================================================


@pytest.fixture
def token() -> AssetId:
    """The non-ADA asset of the test pool."""
    return AssetId(TOKEN_POLICY, TOKEN_NAME)


@pytest.fixture
def token_id(token: AssetId) -> str:
    """The test token in configuration format."""
    return str(token)


@pytest.fixture
def key_ring() -> KeyRing:
    """Key ring holding a deterministic "default" key."""
    return KeyRing.from_hex({"default": "11" * 32})


@pytest.fixture
def our_key(key_ring: KeyRing) -> bytes:
    return key_ring.public_key("default")


@pytest.fixture
def other_key() -> bytes:
    return KeyRing.from_hex({"default": "22" * 32}).public_key("default")


# =============================================================================
# Output builders
# =============================================================================


@pytest.fixture
def make_pool_utxo() -> Callable[..., Utxo]:
    """
    Factory for ADA/token pool output sightings at a given raw price.

    Usage:
        pool = make_pool_utxo(1.05, slot=100)
    """

    def _make(
        price: float,
        slot: int = 90_000_000,
        ident: bytes = POOL_IDENT,
        protocol_fees: int = 3_000_000,
        tx_hash: bytes = b"\xaa" * 32,
        index: int = 0,
        token_reserve: int = TOKEN_RESERVE,
    ) -> Utxo:
        datum = PoolDatum(
            identifier=ident,
            assets=((b"", b""), (TOKEN_POLICY, TOKEN_NAME)),
            circulating_lp=1_000_000,
            bid_fees_per_10_thousand=30,
            ask_fees_per_10_thousand=30,
            fee_manager=None,
            market_open=0,
            protocol_fees=protocol_fees,
        )
        lovelace = round(price * token_reserve) + protocol_fees
        output = TxOutput(
            coin=lovelace,
            assets=(
                AssetAmount(b"\x01" * 28, b"LP", 1),
                AssetAmount(TOKEN_POLICY, TOKEN_NAME, token_reserve),
            ),
        )
        return Utxo(
            block_slot=slot,
            output_ref=OutputReference(tx_hash, index),
            output=output,
            datum=serialize(datum),
        )

    return _make


@pytest.fixture
def make_order_utxo(our_key: bytes) -> Callable[..., Utxo]:
    """
    Factory for strategy order output sightings.

    The signer defaults to our key, so the order is ours unless told otherwise.
    """

    def _make(
        coin: int = 2_000_000,
        tokens: int = 0,
        tx_hash: bytes = b"\x01" * 32,
        index: int = 0,
        slot: int = 90_000_000,
        signer: Optional[bytes] = None,
        pool_ident: Optional[bytes] = None,
        owner: bytes = OWNER_KEY_HASH,
    ) -> Utxo:
        datum = OrderDatum(
            pool_ident=pool_ident,
            owner=SignatureScript(owner),
            max_protocol_fee=1_000_000,
            details=StrategyOrder(signer=our_key if signer is None else signer),
        )
        assets = (AssetAmount(TOKEN_POLICY, TOKEN_NAME, tokens),) if tokens else ()
        return Utxo(
            block_slot=slot,
            output_ref=OutputReference(tx_hash, index),
            output=TxOutput(coin=coin, assets=assets),
            datum=serialize(datum),
        )

    return _make


# =============================================================================
# Raw host events
# =============================================================================


@pytest.fixture
def utxo_event() -> Callable[[Utxo], dict]:
    """Convert a Utxo into the raw dict the host delivers."""

    def _to_event(utxo: Utxo) -> dict:
        by_policy: dict[bytes, list[dict]] = {}
        for entry in utxo.output.assets:
            by_policy.setdefault(entry.policy_id, []).append(
                {"name": entry.asset_name.hex(), "output_coin": entry.amount}
            )
        event = {
            "block_slot": utxo.block_slot,
            "tx_hash": utxo.output_ref.tx_hash_hex,
            "output_index": utxo.output_ref.output_index,
            "output": {
                "coin": utxo.output.coin,
                "assets": [
                    {"policy_id": policy.hex(), "assets": assets}
                    for policy, assets in by_policy.items()
                ],
            },
        }
        if utxo.datum is not None:
            event["datum"] = {"raw_bytes": utxo.datum.hex()}
        return event

    return _to_event


@pytest.fixture
def tx_event() -> Callable[..., dict]:
    """Build a raw transaction event spending the given output references."""

    def _make(*spent: OutputReference, slot: int = 90_000_100, tx_hash: bytes = b"\xee" * 32) -> dict:
        return {
            "block_slot": slot,
            "tx_hash": tx_hash.hex(),
            "inputs": [
                {"tx_hash": ref.tx_hash_hex, "output_index": ref.output_index} for ref in spent
            ],
        }

    return _make


@pytest.fixture
def ada() -> AssetId:
    return ADA


@pytest.fixture
def pool_ident() -> bytes:
    """Identifier of the pool built by make_pool_utxo."""
    return POOL_IDENT


# =============================================================================
# Worker
# =============================================================================


@pytest.fixture
def mock_relay() -> MagicMock:
    """Relay client whose submit() records calls instead of posting."""
    relay = MagicMock(spec=RelayClient)
    relay.submit = AsyncMock(return_value=None)
    relay.close = AsyncMock(return_value=None)
    return relay


@pytest.fixture
def make_worker(key_ring: KeyRing, mock_relay: MagicMock) -> Callable[..., StrategyWorker]:
    """
    Factory for a worker over an in-memory store and the mock relay.

    Usage:
        worker = make_worker("stop_loss", {...}, dry_run=False)
    """

    def _make(
        strategy_name: str,
        strategy_config: dict,
        dry_run: bool = False,
        store: Optional[InMemoryStateStore] = None,
    ) -> StrategyWorker:
        store = store if store is not None else InMemoryStateStore()
        return StrategyWorker(
            network=Network.PREVIEW,
            strategy=build_strategy(strategy_name, strategy_config),
            store=store,
            custody=CustodyLedger(store, key_ring),
            execution=ExecutionService(key_ring, mock_relay, dry_run=dry_run),
        )

    return _make
