"""
Custody orders and their persisted form.

CustodyOrder is what strategies work with. CustodyOrderRecord is the JSON
shape written to the state store; the order datum is stored as its original
CBOR hex and re-parsed on load, so the stored form never drifts from what
was seen on chain.
"""
from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field

from pool_strategy_bot.ledger import (
    AssetAmount,
    OrderDatum,
    OutputReference,
    TxOutput,
    parse,
)


@dataclass(frozen=True)
class CustodyOrder:
    """
    An order output this worker is authorised to manage.

    Attributes:
        slot: Slot in which the output was seen
        output_ref: Identity of the order output (unique within the ledger)
        utxo: Output contents at sighting time
        order: Parsed order datum
        datum_cbor: Original datum bytes
    """

    slot: int
    output_ref: OutputReference
    utxo: TxOutput
    order: OrderDatum
    datum_cbor: bytes

    @property
    def signer(self) -> bytes:
        signer = self.order.strategy_signer
        if signer is None:
            raise ValueError(f"Custody order {self.output_ref} is not a strategy order")
        return signer


# =============================================================================
# PERSISTED FORM
# =============================================================================


class AssetAmountRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    policy_id: str
    asset_name: str
    amount: int = Field(ge=0)


class CustodyOrderRecord(BaseModel):
    """One entry of the persisted custody list."""

    model_config = ConfigDict(frozen=True)

    slot: int
    tx_hash: str
    output_index: int
    coin: int
    assets: list[AssetAmountRecord] = Field(default_factory=list)
    datum: str

    @classmethod
    def from_order(cls, order: CustodyOrder) -> "CustodyOrderRecord":
        return cls(
            slot=order.slot,
            tx_hash=order.output_ref.tx_hash_hex,
            output_index=order.output_ref.output_index,
            coin=order.utxo.coin,
            assets=[
                AssetAmountRecord(
                    policy_id=a.policy_id.hex(),
                    asset_name=a.asset_name.hex(),
                    amount=a.amount,
                )
                for a in order.utxo.assets
            ],
            datum=order.datum_cbor.hex(),
        )

    def to_order(self) -> CustodyOrder:
        """
        Rebuild the domain object.

        Raises:
            DatumError: If the stored datum no longer parses
        """
        datum_cbor = bytes.fromhex(self.datum)
        return CustodyOrder(
            slot=self.slot,
            output_ref=OutputReference(bytes.fromhex(self.tx_hash), self.output_index),
            utxo=TxOutput(
                coin=self.coin,
                assets=tuple(
                    AssetAmount(
                        bytes.fromhex(a.policy_id),
                        bytes.fromhex(a.asset_name),
                        a.amount,
                    )
                    for a in self.assets
                ),
            ),
            order=parse(OrderDatum, datum_cbor),
            datum_cbor=datum_cbor,
        )
