"""
Custody ledger tests.

Covers ownership checks, uniqueness on redelivered sightings, release of
spent orders, and the persisted form of the ledger.
"""
from dataclasses import replace

import pytest

from pool_strategy_bot.exceptions import SigningKeyMissingError
from pool_strategy_bot.execution import KeyRing
from pool_strategy_bot.ledger import OutputReference
from pool_strategy_bot.storage import (
    MANAGED_ORDERS_KEY,
    CustodyLedger,
    CustodyOrderRecord,
    InMemoryStateStore,
    OwnershipOutcome,
)


@pytest.fixture
def store() -> InMemoryStateStore:
    return InMemoryStateStore()


@pytest.fixture
def ledger(store, key_ring) -> CustodyLedger:
    return CustodyLedger(store, key_ring)


# =============================================================================
# Ownership
# =============================================================================


class TestCheckOwnership:
    """Deciding whether an output is one of our orders."""

    def test_our_order_is_recorded(self, ledger, make_order_utxo, our_key):
        utxo = make_order_utxo(coin=5_000_000, slot=123)
        outcome, order = ledger.check_ownership(utxo)

        assert outcome is OwnershipOutcome.RECORDED
        assert order.output_ref == utxo.output_ref
        assert order.slot == 123
        assert order.utxo.coin == 5_000_000
        assert order.signer == our_key
        assert order.datum_cbor == utxo.datum

    def test_other_signer(self, ledger, make_order_utxo, other_key):
        outcome, order = ledger.check_ownership(make_order_utxo(signer=other_key))
        assert outcome is OwnershipOutcome.NOT_OWNED_BY_US
        assert order is None

    def test_pool_output_is_not_our_datum(self, ledger, make_pool_utxo):
        outcome, order = ledger.check_ownership(make_pool_utxo(1.0))
        assert outcome is OwnershipOutcome.NOT_OUR_DATUM
        assert order is None

    def test_missing_datum_is_not_our_datum(self, ledger, make_order_utxo):
        utxo = make_order_utxo()
        bare = replace(utxo, datum=None)
        outcome, _ = ledger.check_ownership(bare)
        assert outcome is OwnershipOutcome.NOT_OUR_DATUM

    def test_missing_key_raises(self, store, make_order_utxo):
        """An order datum with no configured key is a real failure."""
        keys = KeyRing.from_hex({"someone-else": "33" * 32})
        ledger = CustodyLedger(store, keys)

        with pytest.raises(SigningKeyMissingError):
            ledger.check_ownership(make_order_utxo())

    def test_missing_key_ignored_for_non_orders(self, store, make_pool_utxo):
        """Without an order datum the key is never consulted."""
        ledger = CustodyLedger(store, KeyRing({}))
        outcome, _ = ledger.check_ownership(make_pool_utxo(1.0))
        assert outcome is OwnershipOutcome.NOT_OUR_DATUM


# =============================================================================
# Recording and release
# =============================================================================


@pytest.mark.asyncio
class TestRecord:
    """Appending orders to the durable list."""

    async def test_record_if_owned_appends(self, ledger, make_order_utxo):
        outcome = await ledger.record_if_owned(make_order_utxo())

        assert outcome is OwnershipOutcome.RECORDED
        orders = await ledger.list()
        assert len(orders) == 1

    async def test_not_owned_is_not_stored(self, ledger, store, make_order_utxo, other_key):
        outcome = await ledger.record_if_owned(make_order_utxo(signer=other_key))

        assert outcome is OwnershipOutcome.NOT_OWNED_BY_US
        assert await store.get(MANAGED_ORDERS_KEY) is None

    async def test_redelivered_sighting_is_not_duplicated(self, ledger, make_order_utxo):
        utxo = make_order_utxo()

        first = await ledger.record_if_owned(utxo)
        second = await ledger.record_if_owned(utxo)

        assert first is second is OwnershipOutcome.RECORDED
        assert len(await ledger.list()) == 1

    async def test_record_reports_duplicates(self, ledger, make_order_utxo):
        _, order = ledger.check_ownership(make_order_utxo())

        assert await ledger.record(order) is True
        assert await ledger.record(order) is False

    async def test_insertion_order_is_kept(self, ledger, make_order_utxo):
        for i in range(3):
            await ledger.record_if_owned(make_order_utxo(index=i))

        refs = [o.output_ref.output_index for o in await ledger.list()]
        assert refs == [0, 1, 2]

    async def test_persisted_form_reparses(self, ledger, store, make_order_utxo):
        """The stored list is plain JSON and rebuilds the same orders."""
        utxo = make_order_utxo(tokens=750)
        await ledger.record_if_owned(utxo)

        raw = await store.get(MANAGED_ORDERS_KEY)
        record = CustodyOrderRecord.model_validate(raw[0])
        assert record.tx_hash == utxo.output_ref.tx_hash_hex
        assert record.datum == utxo.datum.hex()

        order = record.to_order()
        assert order.utxo == utxo.output
        assert order.output_ref == utxo.output_ref


@pytest.mark.asyncio
class TestReleaseSpent:
    """Removing orders whose outputs were spent."""

    async def test_releases_exactly_the_spent_orders(self, ledger, make_order_utxo):
        utxos = [make_order_utxo(index=i) for i in range(4)]
        for utxo in utxos:
            await ledger.record_if_owned(utxo)

        # Spend order is irrelevant
        remaining = await ledger.release_spent(
            [utxos[2].output_ref, utxos[0].output_ref]
        )

        assert remaining == 2
        refs = [o.output_ref for o in await ledger.list()]
        assert refs == [utxos[1].output_ref, utxos[3].output_ref]

    async def test_unrelated_inputs_release_nothing(self, ledger, make_order_utxo):
        await ledger.record_if_owned(make_order_utxo())

        remaining = await ledger.release_spent([OutputReference(b"\x77" * 32, 0)])

        assert remaining == 1

    async def test_same_hash_different_index_is_kept(self, ledger, make_order_utxo):
        await ledger.record_if_owned(make_order_utxo(index=0))

        remaining = await ledger.release_spent([OutputReference(b"\x01" * 32, 1)])

        assert remaining == 1

    async def test_empty_ledger(self, ledger, store):
        """The list is written even when empty."""
        assert await ledger.release_spent([]) == 0
        assert await store.get(MANAGED_ORDERS_KEY) == []
