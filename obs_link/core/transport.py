"""
core/transport.py — Text-frame channel underneath the OBS session.

The session only needs four things from a connection: open it, push a text
frame, iterate inbound text frames until it closes, and close it. Anything that
provides those (a real websocket, a scripted test double) can drive OBSClient.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import AsyncIterator, Optional

import websockets
from websockets.exceptions import ConnectionClosed, ConnectionClosedError, WebSocketException

from .errors import TransportError

log = logging.getLogger(__name__)


class Transport(ABC):
    @abstractmethod
    async def connect(self, address: str) -> None:
        ...

    @abstractmethod
    async def send(self, text: str) -> None:
        ...

    @abstractmethod
    def messages(self) -> AsyncIterator[str]:
        """Yield inbound text frames; the iterator ends when the connection closes."""

    @abstractmethod
    async def close(self) -> None:
        """Close the connection. Safe to call more than once."""

    @property
    @abstractmethod
    def is_open(self) -> bool:
        ...


class WebsocketTransport(Transport):
    def __init__(self, open_timeout: Optional[float] = 10.0, max_size: Optional[int] = 2**24):
        self.open_timeout = open_timeout
        self.max_size = max_size
        self._ws = None

    async def connect(self, address: str) -> None:
        try:
            self._ws = await websockets.connect(
                address,
                open_timeout=self.open_timeout,
                max_size=self.max_size,
            )
        except (OSError, WebSocketException, asyncio.TimeoutError) as e:
            self._ws = None
            raise TransportError(f"Could not connect to {address}: {e}") from e
        log.debug(f"Websocket open: {address}")

    async def send(self, text: str) -> None:
        if self._ws is None:
            raise TransportError("Websocket is not open")
        try:
            await self._ws.send(text)
        except ConnectionClosed as e:
            raise TransportError(f"Websocket closed while sending: {e}") from e

    async def messages(self) -> AsyncIterator[str]:
        ws = self._ws
        if ws is None:
            return
        try:
            async for message in ws:
                if isinstance(message, bytes):
                    continue
                yield message
        except ConnectionClosedError as e:
            log.warning(f"Websocket closed with error: {e}")

    async def close(self) -> None:
        ws, self._ws = self._ws, None
        if ws is not None:
            await ws.close()

    @property
    def is_open(self) -> bool:
        return self._ws is not None
