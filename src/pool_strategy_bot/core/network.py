"""
Network parameters: slot-to-time conversion and relay endpoints.
"""
from __future__ import annotations

from enum import Enum


class Network(str, Enum):
    """Which ledger network the worker runs against."""

    PREVIEW = "preview"
    MAINNET = "mainnet"

    @property
    def genesis_offset(self) -> int:
        """Seconds to add to a slot number to get UNIX time."""
        return _GENESIS_OFFSETS[self]

    @property
    def relay_url(self) -> str:
        return _RELAY_URLS[self]

    def to_unix_time(self, slot: int) -> int:
        """UNIX time in milliseconds for a slot."""
        return (slot + self.genesis_offset) * 1000


_GENESIS_OFFSETS = {
    Network.PREVIEW: 1666656000,
    Network.MAINNET: 1591566291,
}

_RELAY_URLS = {
    Network.PREVIEW: "http://sse-relay.preview.sundae.fi/publish",
    Network.MAINNET: "http://sse-relay.sundae.fi/publish",
}
