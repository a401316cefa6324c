"""
core/obs_client.py — Async obs-websocket session: connect, authenticate, dispatch, tear down.

Lifecycle:
  DISCONNECTED → CONNECTING → AUTHENTICATING → READY
  any state    → DISCONNECTED  (disconnect(), failed connect, or the socket dropping)

AUTHENTICATING is always entered after the socket opens; when OBS reports that no
password is set it is left straight away without an Authenticate round-trip.
Tearing down cancels every outstanding request and fires one DISCONNECTED event.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import suppress
from enum import Enum
from typing import Callable, Optional

from obs_link.events import ConnectionEvent, EventCallback, EventKind, Subscription, SubscriberRegistry

from .auth import AuthInfo, auth_response
from .correlation import CorrelationEngine
from .dispatcher import EventDispatcher
from .errors import AuthFailure, OBSError, ProtocolError, TransportError
from .requests import RequestsMixin
from .transport import Transport, WebsocketTransport

log = logging.getLogger(__name__)


class SessionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    AUTHENTICATING = "authenticating"
    READY = "ready"


class OBSClient(RequestsMixin):
    def __init__(
        self,
        request_timeout: Optional[float] = 10.0,
        transport_factory: Callable[[], Transport] = WebsocketTransport,
    ):
        self.transport_factory = transport_factory

        self._state = SessionState.DISCONNECTED
        self._address: Optional[str] = None
        self._transport: Optional[Transport] = None
        self._reader_task: Optional[asyncio.Task] = None

        self._engine = CorrelationEngine(timeout=request_timeout)
        self._registry = SubscriberRegistry()
        self._dispatcher = EventDispatcher(self._engine, self._registry)

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def address(self) -> Optional[str]:
        return self._address

    @property
    def request_timeout(self) -> Optional[float]:
        return self._engine.timeout

    @request_timeout.setter
    def request_timeout(self, value: Optional[float]) -> None:
        self._engine.timeout = value

    @property
    def pending_requests(self) -> int:
        return self._engine.pending_count

    @property
    def registry(self) -> SubscriberRegistry:
        return self._registry

    def is_connected(self) -> bool:
        return self._state is SessionState.READY

    # ── Connection ────────────────────────────────────────────────────

    async def connect(self, address: str, password: str = "") -> None:
        """
        Open address, authenticate if OBS asks for it, and mark the session ready.

        A live session is disconnected first. Any failure tears down whatever was
        set up and re-raises: TransportError if the socket can't be opened,
        AuthFailure if OBS rejects the password, or the request error that broke
        the handshake.
        """
        if self._state is not SessionState.DISCONNECTED:
            log.info(f"Already connected to {self._address}; reconnecting to {address}")
            await self.disconnect()

        self._state = SessionState.CONNECTING
        self._address = address
        transport = self.transport_factory()
        try:
            await transport.connect(address)
        except OBSError as e:
            log.warning(f"OBS connection failed: {e}")
            await self._teardown()
            raise
        except Exception as e:
            log.warning(f"OBS connection failed: {e}")
            await self._teardown()
            raise TransportError(f"Could not connect to {address}: {e}") from e

        self._transport = transport
        self._reader_task = asyncio.create_task(self._read_loop(transport))
        self._state = SessionState.AUTHENTICATING

        try:
            info = AuthInfo.from_reply(await self.send_request("GetAuthRequired"))
            if info.auth_required:
                await self._authenticate(password, info)
        except BaseException as e:
            log.warning(f"OBS handshake with {address} failed: {e}")
            await self._teardown()
            raise

        self._state = SessionState.READY
        log.info(f"Connected to OBS at {address}")
        self._registry.publish(EventKind.CONNECTED, ConnectionEvent(address))

    async def _authenticate(self, password: str, info: AuthInfo) -> None:
        try:
            await self.send_request("Authenticate", {"auth": auth_response(password, info.salt, info.challenge)})
        except ProtocolError as e:
            raise AuthFailure(f"OBS rejected the password: {e.message}") from e
        log.info("Authenticated with OBS")

    async def disconnect(self) -> None:
        await self._teardown()

    async def _teardown(self) -> None:
        previous = self._state
        transport, self._transport = self._transport, None
        reader, self._reader_task = self._reader_task, None
        self._state = SessionState.DISCONNECTED

        await self._engine.cancel_all()

        if transport is not None:
            try:
                await transport.close()
            except Exception as e:
                log.debug(f"Ignoring error while closing transport: {e}")

        if reader is not None and reader is not asyncio.current_task():
            reader.cancel()
            with suppress(asyncio.CancelledError):
                await reader

        if previous is not SessionState.DISCONNECTED:
            log.info(f"Disconnected from OBS at {self._address}")
            self._registry.publish(EventKind.DISCONNECTED, ConnectionEvent(self._address))

    async def _read_loop(self, transport: Transport) -> None:
        try:
            async for text in transport.messages():
                # One bad frame is dropped; it never ends the session.
                try:
                    await self._dispatcher.dispatch_text(text)
                except Exception as e:
                    log.error(f"Dropping inbound frame that failed to dispatch: {e!r}", exc_info=True)
        except OBSError as e:
            log.warning(f"OBS connection error: {e}")
        except Exception as e:
            log.error(f"OBS read loop failed: {e}", exc_info=True)
        if self._transport is transport:
            log.warning("OBS connection closed unexpectedly")
            await self._teardown()

    # ── Core request helper ───────────────────────────────────────────

    async def send_request(self, request_type: str, fields: Optional[dict] = None) -> dict:
        """Send any obs-websocket request and return the reply's result fields."""
        return await self._engine.send(self._transport, request_type, fields)

    # ── Event subscriptions ───────────────────────────────────────────

    def on(self, kind: EventKind, callback: EventCallback) -> Subscription:
        """
        Subscribe callback to kind. Plain functions run inline in registration
        order; coroutine functions are scheduled as tasks.

        Example:
            async def handle(event: SceneChanged):
                print(event.scene_name)
            client.on(EventKind.SCENE_CHANGED, handle)
        """
        return self._registry.subscribe(kind, callback)

    def off(self, subscription: Subscription) -> bool:
        return self._registry.unsubscribe(subscription)

    def on_connect(self, callback: EventCallback) -> Subscription:
        return self.on(EventKind.CONNECTED, callback)

    def on_disconnect(self, callback: EventCallback) -> Subscription:
        return self.on(EventKind.DISCONNECTED, callback)

    def on_scene_changed(self, callback: EventCallback) -> Subscription:
        """Program scene switched, from the OBS UI, a hotkey or any other client."""
        return self.on(EventKind.SCENE_CHANGED, callback)
