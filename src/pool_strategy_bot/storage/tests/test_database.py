"""
Database transport tests.

asyncpg is replaced by a fake pool so reconnection and retry can be
exercised without a server.
"""
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from pool_strategy_bot.storage.database import (
    SCHEMA,
    Database,
    DatabaseConfig,
    backoff_delays,
)


class FakePool:
    """Minimal stand-in for asyncpg.Pool handing out one shared connection."""

    def __init__(self, conn):
        self.conn = conn
        self._closed = False

    @asynccontextmanager
    async def acquire(self):
        yield self.conn

    async def close(self):
        self._closed = True


@pytest.fixture
def conn():
    conn = MagicMock()
    conn.execute = AsyncMock(return_value="OK")
    conn.fetchval = AsyncMock(return_value=None)
    return conn


@pytest.fixture
def db(conn):
    database = Database(DatabaseConfig(url="postgresql://test@localhost/test"))
    database._open_pool = AsyncMock(side_effect=lambda: FakePool(conn))
    return database


@pytest.fixture
def no_sleep():
    with patch("pool_strategy_bot.storage.database.asyncio.sleep", new=AsyncMock()) as sleep:
        yield sleep


class TestBackoffDelays:
    """Delays between attempts."""

    def test_doubles(self):
        assert list(backoff_delays(3, 0.1, 2.0)) == [0.1, 0.2]

    def test_capped(self):
        assert list(backoff_delays(5, 1.0, 3.0)) == [1.0, 2.0, 3.0, 3.0]

    def test_single_attempt_never_sleeps(self):
        assert list(backoff_delays(1, 1.0, 3.0)) == []


@pytest.mark.asyncio
class TestDatabase:
    """Pool lifecycle and retries."""

    async def test_initialize_creates_schema(self, db, conn):
        await db.initialize()

        assert db.is_connected
        conn.execute.assert_awaited_once_with(SCHEMA)

    async def test_requires_initialize(self, db):
        with pytest.raises(RuntimeError, match="initialize"):
            await db.fetchval("SELECT 1")

    async def test_fetchval(self, db, conn):
        conn.fetchval.return_value = '{"a": 1}'
        await db.initialize()

        assert await db.fetchval("SELECT value FROM strategy_state WHERE key = $1", "k") == '{"a": 1}'
        conn.fetchval.assert_awaited_with("SELECT value FROM strategy_state WHERE key = $1", "k")

    async def test_transient_error_is_retried_on_new_pool(self, db, conn, no_sleep):
        await db.initialize()
        conn.fetchval.side_effect = [ConnectionResetError("reset"), 7]

        assert await db.fetchval("SELECT 7") == 7
        assert db._open_pool.await_count == 2
        no_sleep.assert_awaited_once_with(0.1)

    async def test_gives_up_after_max_attempts(self, db, conn, no_sleep):
        await db.initialize()
        conn.execute.side_effect = ConnectionRefusedError("down")

        with pytest.raises(ConnectionRefusedError):
            await db.execute("SELECT 1")
        # initialize() plus three attempts
        assert conn.execute.await_count == 4

    async def test_query_errors_are_not_retried(self, db, conn, no_sleep):
        await db.initialize()
        conn.fetchval.side_effect = ValueError("bad query")

        with pytest.raises(ValueError):
            await db.fetchval("SELECT nope")
        assert conn.fetchval.await_count == 1
        no_sleep.assert_not_awaited()

    async def test_close(self, db):
        await db.initialize()
        await db.close()

        assert not db.is_connected
        with pytest.raises(RuntimeError):
            await db.execute("SELECT 1")
