"""
Storage Layer - Key-value state store and the order custody ledger.

This is the foundation layer that strategies and the engine depend on.

Public API:
    StateStore - Whole-value get/set protocol
    InMemoryStateStore - Process-local store for tests and dry runs
    PostgresStateStore - JSONB-backed store on asyncpg
    Database, DatabaseConfig - Connection pool management

    CustodyLedger - Durable list of orders we are authorised to manage
    CustodyOrder, CustodyOrderRecord - Domain and persisted forms
    OwnershipOutcome - Result of an ownership check
"""
from pool_strategy_bot.storage.custody import (
    MANAGED_ORDERS_KEY,
    STRATEGY_KEY_NAME,
    CustodyLedger,
    OwnershipOutcome,
)
from pool_strategy_bot.storage.database import Database, DatabaseConfig
from pool_strategy_bot.storage.models import CustodyOrder, CustodyOrderRecord
from pool_strategy_bot.storage.state_store import (
    InMemoryStateStore,
    PostgresStateStore,
    StateStore,
)

__all__ = [
    # State store
    "StateStore",
    "InMemoryStateStore",
    "PostgresStateStore",
    "Database",
    "DatabaseConfig",
    # Custody
    "CustodyLedger",
    "CustodyOrder",
    "CustodyOrderRecord",
    "OwnershipOutcome",
    "MANAGED_ORDERS_KEY",
    "STRATEGY_KEY_NAME",
]
