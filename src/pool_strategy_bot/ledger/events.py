"""
Wire schemas for inbound events.

The ledger event source delivers JSON-like dicts. These pydantic models
describe the three shapes we understand and convert them into the domain
models in models.py. Hex strings are validated here so a malformed event
fails to decode instead of failing later.
"""

from __future__ import annotations

from typing import Annotated, Any, Optional

from pydantic import AfterValidator, BaseModel, Field

from .models import (
    AssetAmount,
    OutputReference,
    Transaction,
    TxOutput,
    Utxo,
    WorkerRequest,
)


def _check_hex(value: str) -> str:
    bytes.fromhex(value)
    return value


HexStr = Annotated[str, AfterValidator(_check_hex)]


class InputSchema(BaseModel):
    """A spent input: reference to a previous output."""

    tx_hash: HexStr
    output_index: int = Field(ge=0)

    def to_reference(self) -> OutputReference:
        return OutputReference(bytes.fromhex(self.tx_hash), self.output_index)


class AssetSchema(BaseModel):
    name: HexStr
    output_coin: int = Field(ge=0)


class MultiAssetSchema(BaseModel):
    policy_id: HexStr
    assets: list[AssetSchema] = Field(default_factory=list)


class OutputSchema(BaseModel):
    coin: int = Field(ge=0)
    assets: list[MultiAssetSchema] = Field(default_factory=list)

    def to_output(self) -> TxOutput:
        return TxOutput(
            coin=self.coin,
            assets=tuple(
                AssetAmount(
                    policy_id=bytes.fromhex(multiasset.policy_id),
                    asset_name=bytes.fromhex(asset.name),
                    amount=asset.output_coin,
                )
                for multiasset in self.assets
                for asset in multiasset.assets
            ),
        )


class DatumSchema(BaseModel):
    raw_bytes: HexStr


class TransactionEvent(BaseModel):
    """A whole transaction was observed."""

    block_slot: int = Field(ge=0)
    tx_hash: HexStr
    inputs: list[InputSchema]

    def to_domain(self) -> Transaction:
        return Transaction(
            block_slot=self.block_slot,
            tx_hash=bytes.fromhex(self.tx_hash),
            inputs=tuple(i.to_reference() for i in self.inputs),
        )


class OutputEvent(BaseModel):
    """A new spendable output was observed."""

    block_slot: int = Field(ge=0)
    tx_hash: HexStr
    output_index: int = Field(ge=0)
    output: OutputSchema
    datum: Optional[DatumSchema] = None

    def to_domain(self) -> Utxo:
        return Utxo(
            block_slot=self.block_slot,
            output_ref=OutputReference(bytes.fromhex(self.tx_hash), self.output_index),
            output=self.output.to_output(),
            datum=bytes.fromhex(self.datum.raw_bytes) if self.datum else None,
        )


class RequestEvent(BaseModel):
    """A named request addressed to the worker."""

    method: str = Field(min_length=1)
    params: dict[str, Any] = Field(default_factory=dict)

    def to_domain(self) -> WorkerRequest:
        return WorkerRequest(method=self.method, params=dict(self.params))
