"""WebSocket transport for a real streaming feed."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

import aiohttp

from .interface import Transport, TransportListener
from .models import MessageParseError, parse_message

logger = logging.getLogger(__name__)


class WebSocketTransport(Transport):
    """Transport backed by an aiohttp WebSocket client.

    Each open() runs one session task: connect, read text frames until the
    server goes away, then report on_close(). Frames are JSON-encoded
    ChannelMessages; frames that fail to parse are logged and dropped.
    Reconnection is the channel's job, not the transport's.
    """

    def __init__(
        self,
        url: str,
        connect_timeout: float = 10.0,
        heartbeat: float | None = 30.0,
    ) -> None:
        self._url = url
        self._connect_timeout = connect_timeout
        self._heartbeat = heartbeat
        self._listener: TransportListener | None = None
        self._task: asyncio.Task | None = None
        self._ws: aiohttp.ClientWebSocketResponse | None = None
        self._pending_sends: set[asyncio.Task] = set()
        self._closing: set[asyncio.Task] = set()

    @property
    def url(self) -> str:
        return self._url

    @property
    def is_open(self) -> bool:
        return self._ws is not None and not self._ws.closed

    def open(self, listener: TransportListener) -> None:
        self.close()
        self._listener = listener
        self._task = asyncio.create_task(self._run(listener), name="websocket-session")

    def send(self, payload: Any) -> bool:
        if not self.is_open:
            return False
        # Raises TypeError for payloads that are not JSON-serializable
        text = json.dumps(payload)
        task = asyncio.create_task(self._ws.send_str(text), name="websocket-send")
        self._pending_sends.add(task)
        task.add_done_callback(self._send_done)
        return True

    def close(self) -> None:
        self._listener = None
        for task in list(self._pending_sends):
            task.cancel()
            self._track_closing(task)
        self._pending_sends.clear()
        if self._task and not self._task.done():
            # The session task closes the socket in its finally block
            self._task.cancel()
            self._track_closing(self._task)
        self._task = None
        self._ws = None

    async def aclose(self) -> None:
        """Close and wait until cancelled tasks have released the socket and session."""
        self.close()
        if self._closing:
            await asyncio.gather(*self._closing, return_exceptions=True)

    def _track_closing(self, task: asyncio.Task) -> None:
        self._closing.add(task)
        task.add_done_callback(self._closing.discard)

    # --- Internal ---

    async def _connect(self, session: aiohttp.ClientSession) -> aiohttp.ClientWebSocketResponse:
        return await session.ws_connect(self._url, heartbeat=self._heartbeat)

    async def _run(self, listener: TransportListener) -> None:
        timeout = aiohttp.ClientTimeout(total=self._connect_timeout)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                try:
                    ws = await self._connect(session)
                except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
                    logger.warning("WebSocket connect to %s failed: %s", self._url, e)
                    self._notify_error(listener, f"Connection failed: {e}")
                    return

                self._ws = ws
                try:
                    logger.info("WebSocket connected: %s", self._url)
                    if self._listener is listener:
                        listener.on_open()
                    await self._receive(listener, ws)
                finally:
                    if self._ws is ws:
                        self._ws = None
                    if not ws.closed:
                        await ws.close()
        finally:
            if self._listener is listener:
                self._listener = None
                logger.info("WebSocket closed: %s", self._url)
                listener.on_close()

    async def _receive(self, listener: TransportListener, ws: aiohttp.ClientWebSocketResponse) -> None:
        """Read frames until the server closes or the session is abandoned."""
        try:
            async for msg in ws:
                if self._listener is not listener:
                    break
                if msg.type == aiohttp.WSMsgType.TEXT:
                    self._handle_text(listener, msg.data)
                elif msg.type == aiohttp.WSMsgType.BINARY:
                    logger.debug("Ignoring binary frame (%d bytes)", len(msg.data))
                elif msg.type == aiohttp.WSMsgType.ERROR:
                    logger.error("WebSocket error: %s", ws.exception())
                    self._notify_error(listener, f"Transport error: {ws.exception()}")
                    break
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error("WebSocket receive failed: %s", e)
            self._notify_error(listener, f"Transport error: {e}")

    def _handle_text(self, listener: TransportListener, data: str) -> None:
        try:
            message = parse_message(data)
        except MessageParseError as e:
            logger.warning("Dropping unparseable frame: %s", e)
            return
        listener.on_message(message)

    def _notify_error(self, listener: TransportListener, description: str) -> None:
        if self._listener is listener:
            listener.on_error(description)

    def _send_done(self, task: asyncio.Task) -> None:
        self._pending_sends.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("WebSocket send failed: %s", task.exception())
