"""FastAPI application serving the live dashboard feed."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .live import ChannelConfig, FinancialDataFeed, create_channel, create_stream_router

logger = logging.getLogger(__name__)


def create_app(config: ChannelConfig | None = None) -> FastAPI:
    """Build the app. The channel connects on startup and is torn down on shutdown."""
    channel = create_channel(config)
    feed = FinancialDataFeed(channel)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        channel.connect()
        try:
            yield
        finally:
            await channel.aclose()
            feed.detach()
            logger.info("Live feed shut down")

    app = FastAPI(title="Finance dashboard live feed", lifespan=lifespan)
    app.state.channel = channel
    app.state.feed = feed
    app.include_router(create_stream_router(channel, feed))
    return app
