"""
Key-value state store.

The store exposes whole-value get/set per key and nothing else: no
transactions, no conditional writes, no TTL. Values are JSON-compatible
(dicts, lists, strings, numbers, None). Read-modify-write sequences built
on top of it are not atomic across concurrent invocations.
"""
from __future__ import annotations

import copy
import json
import logging
from typing import Any, Optional, Protocol, runtime_checkable

import asyncpg

from pool_strategy_bot.exceptions import StateStoreError

from .database import Database

logger = logging.getLogger(__name__)


@runtime_checkable
class StateStore(Protocol):
    """Whole-value key-value store used for custody and strategy state."""

    async def get(self, key: str) -> Optional[Any]:
        """Return the stored value, or None if the key is absent."""
        ...

    async def set(self, key: str, value: Any) -> None:
        """Replace the value stored under key."""
        ...


class InMemoryStateStore:
    """
    Process-local state store.

    Used in tests and dry runs. Values are deep-copied on the way in and
    out so callers cannot mutate stored state by accident.
    """

    def __init__(self, initial: Optional[dict[str, Any]] = None) -> None:
        self._data: dict[str, Any] = copy.deepcopy(initial or {})

    async def get(self, key: str) -> Optional[Any]:
        return copy.deepcopy(self._data.get(key))

    async def set(self, key: str, value: Any) -> None:
        # Reject values the Postgres store could not hold either
        try:
            json.dumps(value)
        except (TypeError, ValueError) as e:
            raise StateStoreError(f"Value for '{key}' is not JSON serializable: {e}") from e
        self._data[key] = copy.deepcopy(value)

    def keys(self) -> list[str]:
        return sorted(self._data)


class PostgresStateStore:
    """
    State store backed by the strategy_state table.

    Each key is one row; set() is an upsert of the full value.
    """

    def __init__(self, db: Database) -> None:
        self.db = db

    async def get(self, key: str) -> Optional[Any]:
        try:
            raw = await self.db.fetchval(
                "SELECT value FROM strategy_state WHERE key = $1", key
            )
        except (asyncpg.PostgresError, OSError, RuntimeError) as e:
            logger.error(f"Failed to read state '{key}': {e}")
            raise StateStoreError(f"Failed to read state '{key}': {e}") from e
        if raw is None:
            return None
        return json.loads(raw)

    async def set(self, key: str, value: Any) -> None:
        try:
            payload = json.dumps(value)
        except (TypeError, ValueError) as e:
            raise StateStoreError(f"Value for '{key}' is not JSON serializable: {e}") from e

        try:
            await self.db.execute(
                """
                INSERT INTO strategy_state (key, value, updated_at)
                VALUES ($1, $2::jsonb, now())
                ON CONFLICT (key) DO UPDATE
                SET value = EXCLUDED.value, updated_at = EXCLUDED.updated_at
                """,
                key,
                payload,
            )
        except (asyncpg.PostgresError, OSError, RuntimeError) as e:
            logger.error(f"Failed to write state '{key}': {e}")
            raise StateStoreError(f"Failed to write state '{key}': {e}") from e
