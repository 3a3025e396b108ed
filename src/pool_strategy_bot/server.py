"""
FastAPI adapter between the event host and the strategy worker.

Endpoints:
    POST /events             - deliver one raw ledger event (JSON body)
    POST /requests/{method}  - named request with JSON params
    GET  /api/status         - worker mode and statistics
    GET  /health             - liveness

Worker failures become 5xx responses so the host redelivers the event;
request errors carry their own status code.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Optional

from fastapi import Body, FastAPI
from fastapi.responses import JSONResponse

from pool_strategy_bot import __version__
from pool_strategy_bot.exceptions import (
    RequestError,
    SigningKeyMissingError,
    StateStoreError,
    SubmissionError,
)

if TYPE_CHECKING:
    from pool_strategy_bot.core.engine import StrategyWorker

logger = logging.getLogger(__name__)


def create_worker_app(worker: "StrategyWorker") -> FastAPI:
    """
    Create the FastAPI application for a worker.

    Args:
        worker: The worker that handles events

    Returns:
        FastAPI application instance
    """
    app = FastAPI(
        title="Pool Strategy Worker",
        description="Custody order strategy worker",
        version=__version__,
    )

    @app.exception_handler(RequestError)
    async def request_error(_request, exc: RequestError):
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc)})

    @app.exception_handler(StateStoreError)
    async def state_store_error(_request, exc: StateStoreError):
        logger.error(f"Event failed on state store: {exc}")
        return JSONResponse(status_code=503, content={"error": str(exc)})

    @app.exception_handler(SubmissionError)
    async def submission_error(_request, exc: SubmissionError):
        logger.error(f"Event failed on submission: {exc}")
        return JSONResponse(status_code=502, content={"error": str(exc)})

    @app.exception_handler(SigningKeyMissingError)
    async def signing_key_missing(_request, exc: SigningKeyMissingError):
        logger.error(str(exc))
        return JSONResponse(status_code=500, content={"error": str(exc)})

    @app.post("/events")
    async def post_event(event: Any = Body(...)):
        """Process one raw ledger event."""
        result = await worker.handle_event(event)
        return result.to_json()

    @app.post("/requests/{method}")
    async def post_request(method: str, params: Optional[dict[str, Any]] = Body(default=None)):
        """Answer a named request (get-signer-key, get-peak-price, ...)."""
        result = await worker.handle_event({"method": method, "params": params or {}})
        return result.response

    @app.get("/api/status")
    async def get_status():
        """Worker mode and runtime statistics."""
        return {
            "strategy": worker.strategy.name,
            "network": worker.network.value,
            "dry_run": worker.dry_run,
            "stats": worker.stats.to_dict(),
        }

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app
