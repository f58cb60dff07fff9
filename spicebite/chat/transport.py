"""
Realtime chat transport.

ChatTransport is the duplex channel ChatSession talks to. The production
implementation is a WebSocket opened with aiohttp; tests substitute an
in-memory transport.
"""

import asyncio
import json
from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Dict, Optional

import aiohttp

from spicebite.core.errors import ChatUnavailable
from spicebite.utils.logger import get_logger

logger = get_logger(__name__)


class ChatTransport(ABC):
    """JSON-framed duplex channel."""

    @abstractmethod
    async def connect(self, url: str) -> None:
        """
        Open the channel.

        Raises:
            ChatUnavailable: If the handshake fails.
        """

    @abstractmethod
    async def send_json(self, payload: Dict[str, Any]) -> None:
        """
        Transmit one frame.

        Raises:
            ChatUnavailable: If the channel is closed or the write fails.
        """

    @abstractmethod
    def receive(self) -> AsyncIterator[Dict[str, Any]]:
        """Yield decoded frames until the channel closes."""

    @abstractmethod
    async def close(self) -> None:
        """Close the channel; safe to call more than once."""


class WebSocketTransport(ChatTransport):
    """
    WebSocket transport backed by aiohttp.

    Args:
        session: Optional shared aiohttp session; one is created (and
            closed with the transport) when omitted.
        heartbeat: Ping interval in seconds.
        connect_timeout: Handshake timeout in seconds.
    """

    def __init__(
        self,
        session: Optional[aiohttp.ClientSession] = None,
        *,
        heartbeat: float = 30.0,
        connect_timeout: float = 10.0,
    ):
        self._session = session
        self._owns_session = session is None
        self._heartbeat = heartbeat
        self._connect_timeout = connect_timeout
        self._ws: Optional[aiohttp.ClientWebSocketResponse] = None

    async def connect(self, url: str) -> None:
        if self._session is None:
            self._session = aiohttp.ClientSession()

        try:
            self._ws = await asyncio.wait_for(
                self._session.ws_connect(url, heartbeat=self._heartbeat),
                timeout=self._connect_timeout,
            )
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            logger.exception("WebSocket handshake failed")
            await self.close()
            raise ChatUnavailable("Could not open chat channel") from exc

        logger.info("WebSocket opened")

    async def send_json(self, payload: Dict[str, Any]) -> None:
        if self._ws is None or self._ws.closed:
            raise ChatUnavailable("Chat channel is not open")

        try:
            await self._ws.send_json(payload)
        except (aiohttp.ClientError, ConnectionResetError) as exc:
            logger.exception("WebSocket send failed")
            raise ChatUnavailable("Failed to send chat frame") from exc

    async def receive(self) -> AsyncIterator[Dict[str, Any]]:
        if self._ws is None:
            raise ChatUnavailable("Chat channel is not open")

        async for message in self._ws:
            if message.type == aiohttp.WSMsgType.TEXT:
                try:
                    payload = json.loads(message.data)
                except ValueError:
                    logger.warning("Dropping non-JSON chat frame")
                    continue

                if isinstance(payload, dict):
                    yield payload

            elif message.type == aiohttp.WSMsgType.ERROR:
                logger.warning(
                    "WebSocket error",
                    extra={"error": str(self._ws.exception())},
                )
                break

        logger.info("WebSocket closed")

    async def close(self) -> None:
        if self._ws is not None and not self._ws.closed:
            await self._ws.close()
        self._ws = None

        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None
