"""
Event classifier for raw ledger events.

Handles the transformation from opaque host events to exactly one typed
fact: a transaction sighting, an output sighting, or a worker request.
Pool snapshots are then extracted from output sightings.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Union

from pydantic import ValidationError

from .events import OutputEvent, RequestEvent, TransactionEvent
from .models import Transaction, Utxo, WorkerRequest

logger = logging.getLogger(__name__)


class EventKind(Enum):
    """What an incoming event turned out to be."""

    TRANSACTION = "transaction"
    OUTPUT = "output"
    REQUEST = "request"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class ClassifiedEvent:
    """An event with its decoded payload (None when UNKNOWN)."""

    kind: EventKind
    payload: Optional[Union[Transaction, Utxo, WorkerRequest]] = None


class EventClassifier:
    """
    Classifies incoming events.

    Decoding is attempted in a fixed priority order: transaction, then
    spendable output, then worker request. The first decode that succeeds
    wins. Failing to decode is normal (the host forwards everything) and is
    never an error: the event is classified UNKNOWN and acknowledged.
    """

    _DECODERS = (
        (EventKind.TRANSACTION, TransactionEvent),
        (EventKind.OUTPUT, OutputEvent),
        (EventKind.REQUEST, RequestEvent),
    )

    def classify(self, event: Any) -> ClassifiedEvent:
        """
        Classify a raw event.

        Args:
            event: Raw event from the host (normally a dict)

        Returns:
            ClassifiedEvent; kind is UNKNOWN if no decoder accepted it
        """
        if not isinstance(event, dict):
            return ClassifiedEvent(EventKind.UNKNOWN)

        for kind, schema in self._DECODERS:
            try:
                decoded = schema.model_validate(event)
            except ValidationError:
                continue
            return ClassifiedEvent(kind, decoded.to_domain())

        logger.debug(f"Unrecognised event shape with keys {sorted(event.keys())}")
        return ClassifiedEvent(EventKind.UNKNOWN)
