"""
Ledger Layer - Typed ledger data, datum codec and event classification.

This module provides:
    - AssetId, OutputReference, TxOutput: Immutable ledger value types
    - Utxo, Transaction, WorkerRequest: Typed events
    - EventClassifier: Decodes raw host events in priority order
    - OrderDatum, PoolDatum: Parsed datums of order and pool outputs
    - StrategyExecution, SignedStrategyExecution: Relay payloads
    - serialize / parse / try_parse: Plutus-data CBOR codec entry points

Design Principle:
    Anything that fails to decode is "not for us", never an error.
    Decoders return None and the event is acknowledged as a no-op.
"""

from .classifier import ClassifiedEvent, EventClassifier, EventKind
from .datums import (
    U64_MAX,
    BoundType,
    DatumError,
    Interval,
    IntervalBound,
    OrderDatum,
    PoolDatum,
    SignatureScript,
    SignedStrategyExecution,
    SingletonValue,
    StrategyExecution,
    StrategyOrder,
    SwapOrder,
    parse,
    serialize,
    try_parse,
)
from .models import (
    ADA,
    AssetAmount,
    AssetId,
    OutputReference,
    Transaction,
    TxOutput,
    Utxo,
    WorkerRequest,
)

__all__ = [
    # Classification
    "EventClassifier",
    "ClassifiedEvent",
    "EventKind",
    # Value types
    "ADA",
    "AssetId",
    "AssetAmount",
    "OutputReference",
    "TxOutput",
    "Utxo",
    "Transaction",
    "WorkerRequest",
    # Datums
    "OrderDatum",
    "PoolDatum",
    "SignatureScript",
    "StrategyOrder",
    "SwapOrder",
    "SingletonValue",
    "Interval",
    "IntervalBound",
    "BoundType",
    "StrategyExecution",
    "SignedStrategyExecution",
    "DatumError",
    "U64_MAX",
    # Codec
    "serialize",
    "parse",
    "try_parse",
]
