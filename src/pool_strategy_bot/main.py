"""
Pool Strategy Worker - Main Entry Point

Runs one strategy against a ledger event feed. The host POSTs events to
the worker's HTTP adapter; the worker records custody orders, watches pool
updates and posts signed strategy executions to the relay.

Usage:
    python -m pool_strategy_bot.main [--dry-run] [--strategy NAME] [--config PATH]

Environment Variables:
    DATABASE_URL      PostgreSQL connection string (in-memory state if unset)
    NETWORK           preview or mainnet (default: preview)
    STRATEGY_NAME     stop_loss, grid or trailing_stop (required)
    STRATEGY_CONFIG   Strategy configuration as JSON, or a path to a JSON file
    SIGNING_KEY_HEX   32-byte Ed25519 seed for the "default" key (hex)
    DRY_RUN           "true" to sign but not post executions (default: false)
    RELAY_URL         Override the network's relay URL
    HOST              Bind address (default: 0.0.0.0)
    PORT              Bind port (default: 8080)
    LOG_LEVEL         Logging level (DEBUG/INFO/WARNING/ERROR)
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

# Configure logging before imports
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

from pool_strategy_bot.core import Network  # noqa: E402
from pool_strategy_bot.core.engine import StrategyWorker  # noqa: E402
from pool_strategy_bot.exceptions import ConfigurationError, WorkerError  # noqa: E402
from pool_strategy_bot.execution import (  # noqa: E402
    SIGNING_KEY_NAME,
    ExecutionService,
    KeyRing,
    RelayClient,
)
from pool_strategy_bot.server import create_worker_app  # noqa: E402
from pool_strategy_bot.storage import (  # noqa: E402
    CustodyLedger,
    Database,
    DatabaseConfig,
    InMemoryStateStore,
    PostgresStateStore,
)
from pool_strategy_bot.strategies import build_strategy  # noqa: E402


@dataclass
class WorkerConfig:
    """Process configuration, loaded from the environment."""

    strategy_name: str = ""
    strategy_config: dict[str, Any] = field(default_factory=dict)
    network: Network = Network.PREVIEW
    database_url: str = ""
    signing_key_hex: Optional[str] = None
    dry_run: bool = False
    relay_url: Optional[str] = None
    host: str = "0.0.0.0"
    port: int = 8080

    @classmethod
    def from_env(cls) -> "WorkerConfig":
        """
        Load configuration from environment variables.

        Raises:
            ConfigurationError: If a value cannot be parsed
        """
        network_name = os.environ.get("NETWORK", "preview").lower()
        try:
            network = Network(network_name)
        except ValueError:
            raise ConfigurationError(
                f"NETWORK must be one of {[n.value for n in Network]}, got '{network_name}'"
            ) from None

        try:
            port = int(os.environ.get("PORT", "8080"))
        except ValueError as e:
            raise ConfigurationError(f"PORT must be an integer: {e}") from e

        return cls(
            strategy_name=os.environ.get("STRATEGY_NAME", ""),
            strategy_config=load_strategy_config(os.environ.get("STRATEGY_CONFIG", "")),
            network=network,
            database_url=os.environ.get("DATABASE_URL", ""),
            signing_key_hex=os.environ.get("SIGNING_KEY_HEX") or None,
            dry_run=os.environ.get("DRY_RUN", "false").lower() == "true",
            relay_url=os.environ.get("RELAY_URL") or None,
            host=os.environ.get("HOST", "0.0.0.0"),
            port=port,
        )

    @property
    def effective_relay_url(self) -> str:
        return self.relay_url or self.network.relay_url


def load_strategy_config(value: str) -> dict[str, Any]:
    """
    Parse STRATEGY_CONFIG: inline JSON, or the path of a JSON file.

    Raises:
        ConfigurationError: If the value is neither
    """
    if not value.strip():
        return {}

    text = value
    if not value.lstrip().startswith("{"):
        path = Path(value)
        if not path.is_file():
            raise ConfigurationError(f"STRATEGY_CONFIG file not found: {value}")
        text = path.read_text()

    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"STRATEGY_CONFIG is not valid JSON: {e}") from e
    if not isinstance(parsed, dict):
        raise ConfigurationError("STRATEGY_CONFIG must be a JSON object")
    return parsed


def build_key_ring(config: WorkerConfig) -> KeyRing:
    if config.signing_key_hex:
        return KeyRing.from_hex({SIGNING_KEY_NAME: config.signing_key_hex})
    if config.dry_run:
        logger.warning("No SIGNING_KEY_HEX set; using a throwaway key for the dry run")
        return KeyRing.generate(SIGNING_KEY_NAME)
    raise ConfigurationError("SIGNING_KEY_HEX is required unless DRY_RUN=true")


def parse_args() -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Pool Strategy Worker",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Sign executions but do not post them to the relay",
    )
    parser.add_argument(
        "--strategy",
        type=str,
        help="Strategy name (overrides STRATEGY_NAME)",
    )
    parser.add_argument(
        "--config",
        type=str,
        help="Path to strategy configuration JSON (overrides STRATEGY_CONFIG)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Override log level",
    )
    return parser.parse_args()


async def main_async(args: argparse.Namespace) -> int:
    """Async main function."""
    import uvicorn

    try:
        config = WorkerConfig.from_env()
        if args.dry_run:
            config.dry_run = True
        if args.strategy:
            config.strategy_name = args.strategy
        if args.config:
            config.strategy_config = load_strategy_config(args.config)

        if not config.strategy_name:
            raise ConfigurationError("STRATEGY_NAME is required")

        strategy = build_strategy(config.strategy_name, config.strategy_config)
        key_ring = build_key_ring(config)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return 1

    db: Optional[Database] = None
    if config.database_url:
        db = Database(DatabaseConfig(url=config.database_url))
        await db.initialize()
        store = PostgresStateStore(db)
    else:
        logger.warning("DATABASE_URL not set; state is kept in memory and lost on restart")
        store = InMemoryStateStore()

    execution = ExecutionService(
        key_ring=key_ring,
        relay=RelayClient(config.effective_relay_url),
        dry_run=config.dry_run,
    )
    worker = StrategyWorker(
        network=config.network,
        strategy=strategy,
        store=store,
        custody=CustodyLedger(store, key_ring),
        execution=execution,
    )

    logger.info(f"Starting worker with strategy: {strategy.name} on {config.network.value}")
    logger.info(f"Mode: {'DRY RUN' if config.dry_run else 'LIVE'} (relay {config.effective_relay_url})")
    logger.info(f"Signer public key: {key_ring.public_key(SIGNING_KEY_NAME).hex()}")

    app = create_worker_app(worker)
    server = uvicorn.Server(
        uvicorn.Config(app, host=config.host, port=config.port, log_level="info")
    )
    try:
        await server.serve()
        return 0
    except WorkerError as e:
        logger.exception(f"Fatal error: {e}")
        return 1
    finally:
        await execution.close()
        if db is not None:
            await db.close()


def main() -> int:
    """Main entry point."""
    args = parse_args()

    if args.log_level:
        logging.getLogger().setLevel(getattr(logging, args.log_level))

    try:
        return asyncio.run(main_async(args))
    except KeyboardInterrupt:
        return 0


if __name__ == "__main__":
    sys.exit(main())
