"""
Execution Layer - Signing and relay submission of trade instructions.

Public API:
    ExecutionService - Facade used by the engine (sign, wrap, post)
    ExecutionResult - Outcome of one submission
    KeyRing - Named Ed25519 signing keys
    RelayClient, RelaySubmission - HTTP relay client and its JSON body
"""
from pool_strategy_bot.execution.relay import RelayClient, RelaySubmission
from pool_strategy_bot.execution.service import (
    SIGNING_KEY_NAME,
    ExecutionResult,
    ExecutionService,
)
from pool_strategy_bot.execution.signer import KeyRing

__all__ = [
    "ExecutionService",
    "ExecutionResult",
    "SIGNING_KEY_NAME",
    "KeyRing",
    "RelayClient",
    "RelaySubmission",
]
