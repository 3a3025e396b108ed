"""
HTTP client for the execution relay.

The relay takes a signed strategy execution and builds, balances and
submits the actual ledger transaction. We only POST the payload; there is
no retry and no idempotency key (target output plus validity window is the
natural dedup key on the relay side).
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Optional

import httpx

from pool_strategy_bot.exceptions import RelayError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RelaySubmission:
    """
    JSON body posted to the relay.

    Attributes:
        tx_hash: Hex id of the transaction holding the order output
        tx_index: Index of the order output
        data: Hex CBOR of the SignedStrategyExecution
    """

    tx_hash: str
    tx_index: int
    data: str

    def to_json(self) -> dict:
        return asdict(self)


class RelayClient:
    """
    Posts submissions to a relay URL.

    The underlying httpx.AsyncClient is created lazily unless one is passed
    in (tests pass one built on httpx.MockTransport).
    """

    def __init__(
        self,
        url: str,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ) -> None:
        self.url = url
        self._client = client
        self._owns_client = client is None
        self._timeout = timeout

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def submit(self, submission: RelaySubmission) -> None:
        """
        POST one submission.

        Raises:
            RelayError: On transport failure or a non-2xx response
        """
        client = await self._get_client()
        try:
            resp = await client.post(self.url, json=submission.to_json())
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.error(
                f"Relay rejected execution for {submission.tx_hash}#{submission.tx_index}: "
                f"HTTP {status} {e.response.text[:200]}"
            )
            raise RelayError(f"Relay returned HTTP {status}", status_code=status) from e
        except httpx.HTTPError as e:
            logger.error(f"Relay request to {self.url} failed: {e}")
            raise RelayError(f"Relay request failed: {e}") from e

        logger.info(
            f"Posted strategy execution for {submission.tx_hash}#{submission.tx_index} to {self.url}"
        )

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
