"""
Domain models for ledger data.

These models represent:
- Asset identifiers (policy id + asset name, ADA is the empty pair)
- Output references (the globally unique identity of a ledger output)
- Output contents (ADA balance plus a multi-asset bundle)
- Typed events: output sightings, transaction sightings, worker requests

All models are immutable. Byte fields hold raw bytes; hex is only used
at the edges (wire format, logs, state-store keys).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass(frozen=True)
class AssetId:
    """
    A native asset identifier.

    ADA (lovelace) is represented by an empty policy id and empty asset name,
    written as "." in configuration.
    """

    policy_id: bytes = b""
    asset_name: bytes = b""

    @property
    def is_ada(self) -> bool:
        return not self.policy_id and not self.asset_name

    @classmethod
    def from_string(cls, value: str) -> "AssetId":
        """
        Parse "<policy hex>.<asset name hex>".

        Raises:
            ValueError: If the string is not in that format or not hex
        """
        if "." not in value:
            raise ValueError(
                f"Asset id '{value}' must be in the format hexPolicyId.hexAssetName"
            )
        policy_hex, name_hex = value.split(".", 1)
        try:
            return cls(bytes.fromhex(policy_hex), bytes.fromhex(name_hex))
        except ValueError as e:
            raise ValueError(f"Asset id '{value}' is not hex encoded: {e}") from e

    def matches(self, pair: tuple[bytes, bytes]) -> bool:
        """Compare against an inline (policy_id, asset_name) pair."""
        return self.policy_id == pair[0] and self.asset_name == pair[1]

    def __str__(self) -> str:
        return f"{self.policy_id.hex()}.{self.asset_name.hex()}"

    def display_name(self) -> str:
        """Human-readable name for logs."""
        if self.is_ada:
            return "ADA"
        try:
            return self.asset_name.decode("utf-8")
        except UnicodeDecodeError:
            return self.asset_name.hex()


ADA = AssetId()


@dataclass(frozen=True)
class OutputReference:
    """Identity of a ledger output: (transaction id, output index)."""

    transaction_id: bytes
    output_index: int

    @property
    def tx_hash_hex(self) -> str:
        return self.transaction_id.hex()

    def __str__(self) -> str:
        return f"{self.transaction_id.hex()}#{self.output_index}"


@dataclass(frozen=True)
class AssetAmount:
    """One entry of a multi-asset bundle."""

    policy_id: bytes
    asset_name: bytes
    amount: int


@dataclass(frozen=True)
class TxOutput:
    """
    Contents of a ledger output relevant to strategy decisions.

    Attributes:
        coin: Lovelace balance
        assets: Native assets held by the output
    """

    coin: int
    assets: tuple[AssetAmount, ...] = ()

    def amount_of(self, asset: AssetId) -> int:
        """
        Balance of an asset in this output.

        ADA resolves to the lovelace balance; any other asset is the sum of
        matching (policy, name) entries, or 0 if absent.
        """
        if asset.is_ada:
            return self.coin
        return sum(
            entry.amount
            for entry in self.assets
            if entry.policy_id == asset.policy_id and entry.asset_name == asset.asset_name
        )


@dataclass(frozen=True)
class Utxo:
    """A spendable-output sighting."""

    block_slot: int
    output_ref: OutputReference
    output: TxOutput
    datum: Optional[bytes] = None


@dataclass(frozen=True)
class Transaction:
    """A whole-transaction sighting. Only the spent inputs matter to us."""

    block_slot: int
    tx_hash: bytes
    inputs: tuple[OutputReference, ...] = ()

    def spends(self, output_ref: OutputReference) -> bool:
        return output_ref in self.inputs


@dataclass(frozen=True)
class WorkerRequest:
    """A named request (e.g. get-signer-key) addressed to the worker."""

    method: str
    params: dict[str, Any] = field(default_factory=dict)
