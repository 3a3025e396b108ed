"""
Order custody ledger.

Tracks the order outputs this worker may act on. The ledger is a flat list
stored under a single key and rewritten in full on every change, because
the state store only offers whole-value get/set. Live order counts are
small, so O(n) scans are fine.
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Iterable, Optional, Protocol

from pool_strategy_bot.ledger import OrderDatum, OutputReference, Utxo, try_parse

from .models import CustodyOrder, CustodyOrderRecord
from .state_store import StateStore

logger = logging.getLogger(__name__)

MANAGED_ORDERS_KEY = "managed_orders"
STRATEGY_KEY_NAME = "default"


class OwnershipOutcome(Enum):
    """Result of checking an output sighting against our signing key."""

    RECORDED = "recorded"
    NOT_OUR_DATUM = "not_our_datum"
    NOT_OWNED_BY_US = "not_owned_by_us"


class PublicKeySource(Protocol):
    def public_key(self, name: str) -> bytes:
        """Raw public key bytes; raises SigningKeyMissingError if absent."""
        ...


class CustodyLedger:
    """
    Durable list of custody orders.

    Invariant: no two entries share an OutputReference, and every entry
    was an output whose strategy signer equalled our public key.
    """

    def __init__(
        self,
        store: StateStore,
        keys: PublicKeySource,
        key_name: str = STRATEGY_KEY_NAME,
    ) -> None:
        self.store = store
        self.keys = keys
        self.key_name = key_name

    def check_ownership(self, utxo: Utxo) -> tuple[OwnershipOutcome, Optional[CustodyOrder]]:
        """
        Decide whether an output sighting is a custody order of ours.

        Does not touch the store.

        Returns:
            (outcome, order) where order is set only when we own it

        Raises:
            SigningKeyMissingError: If the output is an order but we have no key
        """
        datum = try_parse(OrderDatum, utxo.datum)
        if datum is None or datum.strategy_signer is None:
            return OwnershipOutcome.NOT_OUR_DATUM, None

        our_key = self.keys.public_key(self.key_name)
        signer = datum.strategy_signer
        if signer != our_key:
            logger.info(
                f"Strategy order {utxo.output_ref} is owned by {signer.hex()}, "
                f"not us ({our_key.hex()})"
            )
            return OwnershipOutcome.NOT_OWNED_BY_US, None

        order = CustodyOrder(
            slot=utxo.block_slot,
            output_ref=utxo.output_ref,
            utxo=utxo.output,
            order=datum,
            datum_cbor=utxo.datum,
        )
        return OwnershipOutcome.RECORDED, order

    async def record(self, order: CustodyOrder) -> bool:
        """
        Append an order to the durable list.

        Returns:
            False if an order with the same output reference was already
            tracked (redelivered sighting), True otherwise
        """
        orders = await self.list()
        if any(o.output_ref == order.output_ref for o in orders):
            logger.debug(f"Custody order {order.output_ref} already tracked")
            return False

        orders.append(order)
        await self._write(orders)
        logger.info(f"Owned strategy order {order.output_ref} recorded; now tracking {len(orders)} orders")
        return True

    async def record_if_owned(self, utxo: Utxo) -> OwnershipOutcome:
        """Check ownership and, if ours, append the order to the ledger."""
        outcome, order = self.check_ownership(utxo)
        if order is not None:
            await self.record(order)
        return outcome

    async def release_spent(self, spent_refs: Iterable[OutputReference]) -> int:
        """
        Remove every order whose output was spent.

        The list is rewritten even when nothing matched.

        Returns:
            Number of orders retained
        """
        spent = set(spent_refs)
        orders = await self.list()
        retained = [o for o in orders if o.output_ref not in spent]
        await self._write(retained)

        released = len(orders) - len(retained)
        if released:
            logger.info(f"Released {released} spent custody orders; {len(retained)} remain")
        return len(retained)

    async def list(self) -> list[CustodyOrder]:
        """Snapshot of all tracked orders, in insertion order."""
        raw = await self.store.get(MANAGED_ORDERS_KEY)
        if not raw:
            return []
        return [CustodyOrderRecord.model_validate(entry).to_order() for entry in raw]

    async def _write(self, orders: list[CustodyOrder]) -> None:
        await self.store.set(
            MANAGED_ORDERS_KEY,
            [CustodyOrderRecord.from_order(o).model_dump() for o in orders],
        )
