"""
Pool Strategy Bot.

An off-chain decision engine for UTXO-ledger liquidity pools. The bot watches
ledger events, keeps custody of strategy orders it is authorized to manage,
tracks pool prices, and submits signed trade instructions to a relay when a
pluggable strategy (stop-loss, grid, trailing stop) decides to act.
"""

__version__ = "0.1.0"
