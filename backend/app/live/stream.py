"""HTTP endpoints exposing the live channel to dashboard clients."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncGenerator
from typing import Any

from fastapi import APIRouter, Body, Request
from fastapi.responses import StreamingResponse

from .channel import LiveDataChannel
from .feed import FinancialDataFeed

logger = logging.getLogger(__name__)


def create_stream_router(channel: LiveDataChannel, feed: FinancialDataFeed) -> APIRouter:
    """Create the live-feed router with references to the channel and its feed.

    This factory pattern lets us inject both without globals.
    """
    router = APIRouter(prefix="/api/stream", tags=["streaming"])

    @router.get("/feed")
    async def stream_feed(request: Request) -> StreamingResponse:
        """SSE endpoint for live dashboard data.

        Each event carries the connection state and every accumulator:

            data: {"connection": {"status": "connected", ...}, "feed": {"marketData": [...], ...}}

        Includes a retry directive so the browser auto-reconnects on
        disconnection (EventSource built-in behavior).
        """
        return StreamingResponse(
            _generate_events(channel, feed, request),
            media_type="text/event-stream",
            headers={
                "Cache-Control": "no-cache",
                "Connection": "keep-alive",
                "X-Accel-Buffering": "no",  # Disable nginx buffering if proxied
            },
        )

    @router.get("/status")
    async def connection_status() -> dict:
        """Connection state for the Live / Connecting / Offline indicator."""
        return channel.state.to_dict()

    @router.post("/send")
    async def send(payload: Any = Body(...)) -> dict:
        """Forward a JSON payload to the feed. ``sent`` is False when offline."""
        return {"sent": channel.send_message(payload)}

    return router


def _snapshot(channel: LiveDataChannel, feed: FinancialDataFeed) -> dict:
    return {"connection": channel.state.to_dict(), "feed": feed.to_dict()}


async def _generate_events(
    channel: LiveDataChannel,
    feed: FinancialDataFeed,
    request: Request,
    interval: float = 0.5,
) -> AsyncGenerator[str, None]:
    """Async generator that yields SSE-formatted feed snapshots.

    Emits whenever the feed version or the connection status changes,
    polling every `interval` seconds. Stops when the client disconnects
    (detected via request.is_disconnected()).
    """
    # Tell the client to retry after 1 second if the connection drops
    yield "retry: 1000\n\n"

    last_seen: tuple | None = None
    client_ip = request.client.host if request.client else "unknown"
    logger.info("SSE client connected: %s", client_ip)

    try:
        while True:
            if await request.is_disconnected():
                logger.info("SSE client disconnected: %s", client_ip)
                break

            state = channel.state
            current = (feed.version, state.status, state.error)
            if current != last_seen:
                last_seen = current
                payload = json.dumps(_snapshot(channel, feed))
                yield f"data: {payload}\n\n"

            await asyncio.sleep(interval)
    except asyncio.CancelledError:
        logger.info("SSE stream cancelled for: %s", client_ip)
