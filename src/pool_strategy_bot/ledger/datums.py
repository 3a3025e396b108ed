"""
Typed datums for pool outputs, strategy orders and strategy executions.

Every type converts to and from Plutus data (see plutus.py). Conversion from
Plutus data is strict: wrong constructor index, wrong field count or wrong
primitive type raises DatumError. Callers that only want to know "is this a
datum of type X?" use try_parse(), which returns None instead.

Encoding conventions used below:
    Option<T>  -> Constr 0 [value] | Constr 1 []
    Bool       -> Constr 0 [] (False) | Constr 1 [] (True)
    tuples     -> plain Plutus lists
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional, Type, TypeVar, Union

from . import plutus
from .models import AssetId, OutputReference, TxOutput
from .plutus import Constr

logger = logging.getLogger(__name__)

T = TypeVar("T")

# 2**64 - 1, the ceiling for unsigned ledger integers and interval bounds
U64_MAX = 18446744073709551615


class DatumError(ValueError):
    """Plutus data does not have the expected shape."""

    pass


# =============================================================================
# Primitive helpers
# =============================================================================


def _constr(data: Any, index: int, arity: int, what: str) -> list[Any]:
    if not isinstance(data, Constr):
        raise DatumError(f"{what}: expected constructor, got {type(data).__name__}")
    if data.index != index:
        raise DatumError(f"{what}: expected constructor {index}, got {data.index}")
    if len(data.fields) != arity:
        raise DatumError(f"{what}: expected {arity} fields, got {len(data.fields)}")
    return data.fields


def _bytes(data: Any, what: str) -> bytes:
    if not isinstance(data, bytes):
        raise DatumError(f"{what}: expected bytes, got {type(data).__name__}")
    return data


def _int(data: Any, what: str) -> int:
    if isinstance(data, bool) or not isinstance(data, int):
        raise DatumError(f"{what}: expected integer, got {type(data).__name__}")
    return data


def _uint(data: Any, what: str) -> int:
    value = _int(data, what)
    if value < 0 or value > U64_MAX:
        raise DatumError(f"{what}: {value} does not fit an unsigned 64-bit integer")
    return value


def _list(data: Any, length: int, what: str) -> list[Any]:
    if not isinstance(data, list) or len(data) != length:
        raise DatumError(f"{what}: expected list of {length}")
    return data


def _bool_to_plutus(value: bool) -> Constr:
    return Constr(1 if value else 0, [])


def _bool_from_plutus(data: Any, what: str) -> bool:
    if isinstance(data, Constr) and not data.fields and data.index in (0, 1):
        return data.index == 1
    raise DatumError(f"{what}: expected boolean constructor")


def _option_from_plutus(data: Any, what: str) -> Optional[Any]:
    if isinstance(data, Constr) and data.index == 1 and not data.fields:
        return None
    return _constr(data, 0, 1, what)[0]


def _option_to_plutus(value: Optional[Any]) -> Constr:
    if value is None:
        return Constr(1, [])
    return Constr(0, [value])


# =============================================================================
# Shared building blocks
# =============================================================================


def output_reference_to_plutus(ref: OutputReference) -> Constr:
    return Constr(0, [Constr(0, [ref.transaction_id]), ref.output_index])


def output_reference_from_plutus(data: Any) -> OutputReference:
    tx_id, index = _constr(data, 0, 2, "OutputReference")
    (tx_bytes,) = _constr(tx_id, 0, 1, "TransactionId")
    return OutputReference(
        transaction_id=_bytes(tx_bytes, "TransactionId"),
        output_index=_uint(index, "OutputReference.output_index"),
    )


@dataclass(frozen=True)
class SignatureScript:
    """MultisigScript::Signature - an owner identified by a key hash."""

    key_hash: bytes

    def to_plutus(self) -> Constr:
        return Constr(0, [self.key_hash])

    @classmethod
    def from_plutus(cls, data: Any) -> "SignatureScript":
        (key_hash,) = _constr(data, 0, 1, "MultisigScript")
        return cls(_bytes(key_hash, "MultisigScript.key_hash"))


@dataclass(frozen=True)
class SingletonValue:
    """An (asset, amount) pair, encoded as [policy_id, asset_name, amount]."""

    asset: AssetId
    amount: int

    def to_plutus(self) -> list[Any]:
        return [self.asset.policy_id, self.asset.asset_name, self.amount]

    @classmethod
    def from_plutus(cls, data: Any) -> "SingletonValue":
        policy_id, asset_name, amount = _list(data, 3, "SingletonValue")
        return cls(
            AssetId(_bytes(policy_id, "policy_id"), _bytes(asset_name, "asset_name")),
            _uint(amount, "SingletonValue.amount"),
        )


# =============================================================================
# Orders
# =============================================================================


@dataclass(frozen=True)
class StrategyOrder:
    """Order::Strategy - execution is delegated to whoever holds `signer`."""

    signer: bytes

    def to_plutus(self) -> Constr:
        # StrategyAuthorization::Signature { signer }
        return Constr(0, [Constr(0, [self.signer])])


@dataclass(frozen=True)
class SwapOrder:
    """Order::Swap - give `offer`, require at least `min_received`."""

    offer: SingletonValue
    min_received: SingletonValue

    def to_plutus(self) -> Constr:
        return Constr(1, [self.offer.to_plutus(), self.min_received.to_plutus()])


OrderDetails = Union[StrategyOrder, SwapOrder]


def order_details_from_plutus(data: Any) -> OrderDetails:
    if isinstance(data, Constr) and data.index == 0:
        (auth,) = _constr(data, 0, 1, "Order::Strategy")
        (signer,) = _constr(auth, 0, 1, "StrategyAuthorization")
        return StrategyOrder(_bytes(signer, "StrategyAuthorization.signer"))
    offer, min_received = _constr(data, 1, 2, "Order::Swap")
    return SwapOrder(
        SingletonValue.from_plutus(offer),
        SingletonValue.from_plutus(min_received),
    )


@dataclass(frozen=True)
class OrderDatum:
    """
    Datum of an order output.

    Only "pay back to self" destinations are supported; anything else fails
    to parse and is treated as not ours.
    """

    pool_ident: Optional[bytes]
    owner: SignatureScript
    max_protocol_fee: int
    details: OrderDetails
    extra: bytes = b""

    @property
    def strategy_signer(self) -> Optional[bytes]:
        """The delegated signer if this is a strategy order, else None."""
        if isinstance(self.details, StrategyOrder):
            return self.details.signer
        return None

    def to_plutus(self) -> Constr:
        pool_ident = _option_to_plutus(self.pool_ident)
        return Constr(
            0,
            [
                pool_ident,
                self.owner.to_plutus(),
                self.max_protocol_fee,
                Constr(1, []),  # Destination::Self
                self.details.to_plutus(),
                self.extra,
            ],
        )

    @classmethod
    def from_plutus(cls, data: Any) -> "OrderDatum":
        pool_ident, owner, max_fee, destination, details, extra = _constr(
            data, 0, 6, "OrderDatum"
        )
        ident = _option_from_plutus(pool_ident, "OrderDatum.pool_ident")
        _constr(destination, 1, 0, "Destination::Self")
        return cls(
            pool_ident=_bytes(ident, "pool_ident") if ident is not None else None,
            owner=SignatureScript.from_plutus(owner),
            max_protocol_fee=_int(max_fee, "OrderDatum.max_protocol_fee"),
            details=order_details_from_plutus(details),
            extra=_bytes(extra, "OrderDatum.extra"),
        )


# =============================================================================
# Pools
# =============================================================================


@dataclass(frozen=True)
class PoolDatum:
    """Datum of a liquidity pool output."""

    identifier: bytes
    assets: tuple[tuple[bytes, bytes], tuple[bytes, bytes]]
    circulating_lp: int
    bid_fees_per_10_thousand: int
    ask_fees_per_10_thousand: int
    fee_manager: Optional[SignatureScript]
    market_open: int
    protocol_fees: int

    @property
    def asset_a(self) -> AssetId:
        return AssetId(*self.assets[0])

    @property
    def asset_b(self) -> AssetId:
        return AssetId(*self.assets[1])

    def reserves(self, output: TxOutput, asset: AssetId) -> int:
        """
        Reserve of one pool asset.

        ADA reserves exclude the protocol fees the pool has accrued.
        """
        amount = output.amount_of(asset)
        if asset.is_ada:
            amount -= self.protocol_fees
        return amount

    def raw_price(self, output: TxOutput) -> float:
        """
        Reserves of asset A per unit of asset B, ignoring decimals.

        For an ADA/X pair this is lovelace per smallest unit of X.
        """
        reserves_a = self.reserves(output, self.asset_a)
        reserves_b = self.reserves(output, self.asset_b)
        if reserves_b == 0:
            return float("inf") if reserves_a > 0 else 0.0
        return reserves_a / reserves_b

    def to_plutus(self) -> Constr:
        fee_manager = None if self.fee_manager is None else self.fee_manager.to_plutus()
        return Constr(
            0,
            [
                self.identifier,
                [list(self.assets[0]), list(self.assets[1])],
                self.circulating_lp,
                self.bid_fees_per_10_thousand,
                self.ask_fees_per_10_thousand,
                _option_to_plutus(fee_manager),
                self.market_open,
                self.protocol_fees,
            ],
        )

    @classmethod
    def from_plutus(cls, data: Any) -> "PoolDatum":
        (
            identifier,
            assets,
            circulating_lp,
            bid_fees,
            ask_fees,
            fee_manager,
            market_open,
            protocol_fees,
        ) = _constr(data, 0, 8, "PoolDatum")
        asset_a, asset_b = _list(assets, 2, "PoolDatum.assets")
        policy_a, name_a = _list(asset_a, 2, "PoolDatum.assets[0]")
        policy_b, name_b = _list(asset_b, 2, "PoolDatum.assets[1]")
        manager = _option_from_plutus(fee_manager, "PoolDatum.fee_manager")
        return cls(
            identifier=_bytes(identifier, "PoolDatum.identifier"),
            assets=(
                (_bytes(policy_a, "policy_id"), _bytes(name_a, "asset_name")),
                (_bytes(policy_b, "policy_id"), _bytes(name_b, "asset_name")),
            ),
            circulating_lp=_int(circulating_lp, "PoolDatum.circulating_lp"),
            bid_fees_per_10_thousand=_int(bid_fees, "PoolDatum.bid_fees"),
            ask_fees_per_10_thousand=_int(ask_fees, "PoolDatum.ask_fees"),
            fee_manager=SignatureScript.from_plutus(manager) if manager is not None else None,
            market_open=_int(market_open, "PoolDatum.market_open"),
            protocol_fees=_uint(protocol_fees, "PoolDatum.protocol_fees"),
        )


# =============================================================================
# Validity intervals
# =============================================================================


class BoundType:
    """Interval bound kinds (constructor indexes)."""

    NEGATIVE_INFINITY = 0
    FINITE = 1
    POSITIVE_INFINITY = 2


@dataclass(frozen=True)
class IntervalBound:
    kind: int
    value: Optional[int] = None
    inclusive: bool = True

    def to_plutus(self) -> Constr:
        fields = [self.value] if self.kind == BoundType.FINITE else []
        return Constr(0, [Constr(self.kind, fields), _bool_to_plutus(self.inclusive)])

    @classmethod
    def finite(cls, value: int, inclusive: bool = True) -> "IntervalBound":
        return cls(BoundType.FINITE, value, inclusive)

    @classmethod
    def from_plutus(cls, data: Any) -> "IntervalBound":
        bound, inclusive = _constr(data, 0, 2, "IntervalBound")
        if not isinstance(bound, Constr) or bound.index not in (0, 1, 2):
            raise DatumError("IntervalBoundType: unexpected constructor")
        if bound.index == BoundType.FINITE:
            (value,) = _constr(bound, 1, 1, "IntervalBoundType::Finite")
            return cls(BoundType.FINITE, _uint(value, "Finite"), _bool_from_plutus(inclusive, "is_inclusive"))
        _constr(bound, bound.index, 0, "IntervalBoundType")
        return cls(bound.index, None, _bool_from_plutus(inclusive, "is_inclusive"))


@dataclass(frozen=True)
class Interval:
    """A POSIX-millisecond validity interval."""

    lower: IntervalBound
    upper: IntervalBound

    @classmethod
    def inclusive_range(cls, lower_ms: int, upper_ms: int) -> "Interval":
        return cls(IntervalBound.finite(lower_ms), IntervalBound.finite(upper_ms))

    def to_plutus(self) -> Constr:
        return Constr(0, [self.lower.to_plutus(), self.upper.to_plutus()])

    @classmethod
    def from_plutus(cls, data: Any) -> "Interval":
        lower, upper = _constr(data, 0, 2, "Interval")
        return cls(IntervalBound.from_plutus(lower), IntervalBound.from_plutus(upper))


# =============================================================================
# Strategy executions (what the relay receives)
# =============================================================================


@dataclass(frozen=True)
class StrategyExecution:
    """The payload that gets signed: which order, when, and what swap."""

    tx_ref: OutputReference
    validity_range: Interval
    details: OrderDetails
    extensions: bytes = b""

    def to_plutus(self) -> Constr:
        return Constr(
            0,
            [
                output_reference_to_plutus(self.tx_ref),
                self.validity_range.to_plutus(),
                self.details.to_plutus(),
                self.extensions,
            ],
        )

    @classmethod
    def from_plutus(cls, data: Any) -> "StrategyExecution":
        tx_ref, validity_range, details, extensions = _constr(
            data, 0, 4, "StrategyExecution"
        )
        return cls(
            tx_ref=output_reference_from_plutus(tx_ref),
            validity_range=Interval.from_plutus(validity_range),
            details=order_details_from_plutus(details),
            extensions=_bytes(extensions, "StrategyExecution.extensions"),
        )


@dataclass(frozen=True)
class SignedStrategyExecution:
    execution: StrategyExecution
    signature: Optional[bytes] = None

    def to_plutus(self) -> Constr:
        return Constr(0, [self.execution.to_plutus(), _option_to_plutus(self.signature)])

    @classmethod
    def from_plutus(cls, data: Any) -> "SignedStrategyExecution":
        execution, signature = _constr(data, 0, 2, "SignedStrategyExecution")
        sig = _option_from_plutus(signature, "SignedStrategyExecution.signature")
        return cls(
            execution=StrategyExecution.from_plutus(execution),
            signature=_bytes(sig, "signature") if sig is not None else None,
        )


# =============================================================================
# Entry points
# =============================================================================


def serialize(value: Any) -> bytes:
    """Encode any datum type above to CBOR bytes."""
    return plutus.encode(value.to_plutus())


def parse(datum_type: Type[T], raw: bytes) -> T:
    """
    Decode CBOR bytes as a specific datum type.

    Raises:
        DatumError: If the bytes are not that datum type
    """
    try:
        data = plutus.decode(raw)
    except plutus.PlutusDecodeError as e:
        raise DatumError(str(e)) from e
    return datum_type.from_plutus(data)


def try_parse(datum_type: Type[T], raw: Optional[bytes]) -> Optional[T]:
    """Decode CBOR bytes as a datum type, or None if they are something else."""
    if not raw:
        return None
    try:
        return parse(datum_type, raw)
    except (DatumError, ValueError, TypeError) as e:
        logger.debug(f"Datum is not a {datum_type.__name__}: {e}")
        return None
