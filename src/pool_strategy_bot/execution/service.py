"""
ExecutionService - Signs trade instructions and hands them to the relay.

For each instruction:
    1. Build the StrategyExecution and encode it as CBOR
    2. Sign the encoding with the "default" key
    3. Wrap execution and signature in a SignedStrategyExecution
    4. POST {tx_hash, tx_index, data} to the network's relay

In dry-run mode steps 1-3 still run (so key problems surface) but nothing
is posted.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from pool_strategy_bot.ledger import SignedStrategyExecution, serialize

from .relay import RelayClient, RelaySubmission
from .signer import KeyRing

if TYPE_CHECKING:
    from pool_strategy_bot.strategies import TradeInstruction

logger = logging.getLogger(__name__)

SIGNING_KEY_NAME = "default"


@dataclass(frozen=True)
class ExecutionResult:
    """What happened to one instruction."""

    instruction: "TradeInstruction"
    submission: RelaySubmission
    signature: bytes
    posted: bool


class ExecutionService:
    """
    Facade the engine uses to execute instructions.

    Failures (missing key, relay errors) propagate to the caller.
    """

    def __init__(
        self,
        key_ring: KeyRing,
        relay: RelayClient,
        dry_run: bool = False,
        key_name: str = SIGNING_KEY_NAME,
    ) -> None:
        self.key_ring = key_ring
        self.relay = relay
        self.dry_run = dry_run
        self.key_name = key_name

    def prepare(self, instruction: "TradeInstruction") -> tuple[RelaySubmission, bytes]:
        """
        Encode and sign an instruction without posting it.

        Raises:
            SigningKeyMissingError: If the signing key is not in the key ring
        """
        execution = instruction.to_execution()
        signature = self.key_ring.sign(self.key_name, serialize(execution))
        signed = SignedStrategyExecution(execution=execution, signature=signature)
        submission = RelaySubmission(
            tx_hash=instruction.target_output.tx_hash_hex,
            tx_index=instruction.target_output.output_index,
            data=serialize(signed).hex(),
        )
        return submission, signature

    async def submit(self, instruction: "TradeInstruction") -> ExecutionResult:
        """
        Sign and post one instruction.

        Raises:
            SigningKeyMissingError: If the signing key is not in the key ring
            RelayError: If the relay rejects or cannot be reached
        """
        submission, signature = self.prepare(instruction)

        if self.dry_run:
            logger.info(f"[DRY RUN] Would submit {instruction} ({instruction.reason})")
            return ExecutionResult(instruction, submission, signature, posted=False)

        logger.info(f"Submitting {instruction} ({instruction.reason})")
        await self.relay.submit(submission)
        return ExecutionResult(instruction, submission, signature, posted=True)

    async def close(self) -> None:
        await self.relay.close()
