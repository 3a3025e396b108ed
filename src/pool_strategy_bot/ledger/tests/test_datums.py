"""
Tests for typed datums.

Covers the byte-exact encoding of strategy executions, order and pool
datum parsing, and the "not for us" behavior of try_parse.
"""
import pytest

from pool_strategy_bot.ledger import (
    ADA,
    U64_MAX,
    AssetAmount,
    AssetId,
    BoundType,
    DatumError,
    Interval,
    IntervalBound,
    OrderDatum,
    OutputReference,
    PoolDatum,
    SignatureScript,
    SignedStrategyExecution,
    SingletonValue,
    StrategyExecution,
    StrategyOrder,
    SwapOrder,
    TxOutput,
    parse,
    serialize,
    try_parse,
)

GOLDEN_EXECUTION = (
    "d8799fd8799fd8799f5820da432ef16b7aa9b3972bdd42f86e6605c14444e75678f4e6fd75baa0116808"
    "6fff00ffd8799fd8799fd87a9f1b00000197fb75e4e8ffd87a80ffd8799fd87a9f1b00000197fb9a83e8"
    "ffd87a80ffffd87a9f9f40401a00989680ff9f581c99b071ce8580d6a3a11b4902145adb8bfd0d2a0393"
    "5af8cf66403e154653424552525901ffff40ff"
)

SBERRY = AssetId(
    bytes.fromhex("99b071ce8580d6a3a11b4902145adb8bfd0d2a03935af8cf66403e15"),
    bytes.fromhex("534245525259"),
)


@pytest.fixture
def execution() -> StrategyExecution:
    return StrategyExecution(
        tx_ref=OutputReference(
            bytes.fromhex("da432ef16b7aa9b3972bdd42f86e6605c14444e75678f4e6fd75baa01168086f"),
            0,
        ),
        validity_range=Interval.inclusive_range(1752270497000, 1752272897000),
        details=SwapOrder(
            offer=SingletonValue(ADA, 10_000_000),
            min_received=SingletonValue(SBERRY, 1),
        ),
        extensions=b"",
    )


# =============================================================================
# Strategy executions
# =============================================================================


class TestStrategyExecution:
    """Encoding of the payload the relay receives."""

    def test_matches_golden_bytes(self, execution):
        """The canonical encoding is fixed byte for byte."""
        assert serialize(execution).hex() == GOLDEN_EXECUTION

    def test_golden_bytes_parse_back(self, execution):
        assert parse(StrategyExecution, bytes.fromhex(GOLDEN_EXECUTION)) == execution

    def test_signed_wraps_execution_and_signature(self, execution):
        signed = SignedStrategyExecution(execution, signature=b"\x07" * 64)
        encoded = serialize(signed)
        assert encoded.startswith(bytes.fromhex("d8799f") + serialize(execution))
        assert parse(SignedStrategyExecution, encoded) == signed

    def test_unsigned_uses_none_option(self, execution):
        signed = SignedStrategyExecution(execution, signature=None)
        assert serialize(signed).endswith(bytes.fromhex("d87a80ff"))
        assert parse(SignedStrategyExecution, serialize(signed)).signature is None


class TestInterval:
    """Validity interval bounds."""

    def test_inclusive_range_is_finite_both_ends(self):
        interval = Interval.inclusive_range(5, 10)
        assert interval.lower == IntervalBound(BoundType.FINITE, 5, True)
        assert interval.upper == IntervalBound(BoundType.FINITE, 10, True)

    def test_infinite_bounds_round_trip(self):
        interval = Interval(
            IntervalBound(BoundType.NEGATIVE_INFINITY, None, False),
            IntervalBound(BoundType.POSITIVE_INFINITY, None, False),
        )
        assert parse(Interval, serialize(interval)) == interval

    def test_bound_above_u64_is_rejected(self):
        interval = Interval.inclusive_range(0, U64_MAX + 1)
        with pytest.raises(DatumError):
            parse(Interval, serialize(interval))


# =============================================================================
# Orders
# =============================================================================


class TestOrderDatum:
    """Parsing order datums."""

    def test_strategy_order_exposes_signer(self):
        datum = OrderDatum(
            pool_ident=None,
            owner=SignatureScript(b"\x05" * 28),
            max_protocol_fee=1_280_000,
            details=StrategyOrder(signer=b"\x09" * 32),
        )
        parsed = parse(OrderDatum, serialize(datum))
        assert parsed == datum
        assert parsed.strategy_signer == b"\x09" * 32

    def test_swap_order_has_no_signer(self):
        datum = OrderDatum(
            pool_ident=b"\x01" * 28,
            owner=SignatureScript(b"\x05" * 28),
            max_protocol_fee=0,
            details=SwapOrder(SingletonValue(ADA, 5), SingletonValue(SBERRY, 1)),
        )
        parsed = parse(OrderDatum, serialize(datum))
        assert parsed.pool_ident == b"\x01" * 28
        assert parsed.strategy_signer is None

    def test_pool_datum_is_not_an_order(self, make_pool_utxo):
        assert try_parse(OrderDatum, make_pool_utxo(1.0).datum) is None

    def test_parses_when_arrays_decode_as_tuples(self, tuple_arrays, make_order_utxo, our_key):
        """Our own order is still recognised when cbor2 returns tuples."""
        parsed = try_parse(OrderDatum, make_order_utxo().datum)

        assert parsed is not None
        assert parsed.strategy_signer == our_key


# =============================================================================
# Pools
# =============================================================================


class TestPoolDatum:
    """Parsing pool datums and reserve math."""

    def test_parses_from_output(self, make_pool_utxo):
        datum = parse(PoolDatum, make_pool_utxo(1.0).datum)
        assert datum.asset_a == ADA
        assert datum.asset_b.asset_name == b"SBERRY"

    def test_parses_when_arrays_decode_as_tuples(self, tuple_arrays, make_pool_utxo):
        datum = try_parse(PoolDatum, make_pool_utxo(1.0).datum)

        assert datum is not None
        assert datum.asset_b.asset_name == b"SBERRY"

    def test_ada_reserve_excludes_protocol_fees(self):
        datum = PoolDatum(
            identifier=b"\x01",
            assets=((b"", b""), (SBERRY.policy_id, SBERRY.asset_name)),
            circulating_lp=1,
            bid_fees_per_10_thousand=30,
            ask_fees_per_10_thousand=30,
            fee_manager=None,
            market_open=0,
            protocol_fees=2_000_000,
        )
        output = TxOutput(
            coin=12_000_000,
            assets=(AssetAmount(SBERRY.policy_id, SBERRY.asset_name, 5_000_000),),
        )
        assert datum.reserves(output, ADA) == 10_000_000
        assert datum.reserves(output, SBERRY) == 5_000_000
        assert datum.raw_price(output) == 2.0

    def test_missing_token_reserve_is_zero(self):
        datum = PoolDatum(
            identifier=b"\x01",
            assets=((b"", b""), (SBERRY.policy_id, SBERRY.asset_name)),
            circulating_lp=1,
            bid_fees_per_10_thousand=30,
            ask_fees_per_10_thousand=30,
            fee_manager=SignatureScript(b"\x02" * 28),
            market_open=0,
            protocol_fees=0,
        )
        output = TxOutput(coin=1_000)
        assert datum.reserves(output, SBERRY) == 0
        assert datum.raw_price(output) == float("inf")

    def test_order_datum_is_not_a_pool(self, make_order_utxo):
        assert try_parse(PoolDatum, make_order_utxo().datum) is None


class TestTryParse:
    """try_parse treats anything unexpected as "not this type"."""

    @pytest.mark.parametrize("raw", [None, b"", b"\xff\x00", bytes.fromhex("d87980")])
    def test_returns_none(self, raw):
        assert try_parse(OrderDatum, raw) is None
        assert try_parse(PoolDatum, raw) is None
