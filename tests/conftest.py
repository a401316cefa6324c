"""
tests/conftest.py — Scripted in-process stand-in for an obs-websocket server.
"""

from __future__ import annotations

import asyncio
import json
from typing import Callable, Optional

import pytest

from obs_link.core import OBSClient, Transport, TransportError, auth_response


class MockOBSServer:
    """
    Answers requests the way obs-websocket 4.x would.

    handlers maps request-type → callable(body) returning the result fields,
    a dict containing "error" to fail the request, or None to never reply.
    Request types without a handler get a bare ``status: ok``.
    """

    def __init__(self, password: Optional[str] = None, salt: str = "xyz", challenge: str = "abc"):
        self.password = password
        self.salt = salt
        self.challenge = challenge
        self.refuse_connections = False
        self.sent: list[dict] = []
        self.handlers: dict[str, Callable[[dict], Optional[dict]]] = {}
        self.transports: list["MockTransport"] = []

    def transport(self) -> "MockTransport":
        t = MockTransport(self)
        self.transports.append(t)
        return t

    @property
    def current(self) -> "MockTransport":
        return self.transports[-1]

    def request_types(self) -> list[str]:
        return [b["request-type"] for b in self.sent]

    def respond(self, body: dict) -> Optional[dict]:
        request_type = body["request-type"]
        if request_type in self.handlers:
            result = self.handlers[request_type](body)
        elif request_type == "GetAuthRequired":
            result = self._auth_required()
        elif request_type == "Authenticate":
            result = self._authenticate(body)
        else:
            result = {}
        if result is None:
            return None
        reply = {"message-id": body["message-id"], "status": "ok", **result}
        if "error" in result:
            reply["status"] = "error"
        return reply

    def _auth_required(self) -> dict:
        if self.password is None:
            return {"authRequired": False}
        return {"authRequired": True, "challenge": self.challenge, "salt": self.salt}

    def _authenticate(self, body: dict) -> dict:
        if body.get("auth") == auth_response(self.password or "", self.salt, self.challenge):
            return {}
        return {"error": "Authentication Failed."}


class MockTransport(Transport):
    def __init__(self, server: MockOBSServer):
        self.server = server
        self.address: Optional[str] = None
        self.closed = False
        self._open = False
        self._inbox: Optional[asyncio.Queue] = None

    async def connect(self, address: str) -> None:
        if self.server.refuse_connections:
            raise TransportError(f"Could not connect to {address}: connection refused")
        self.address = address
        self._inbox = asyncio.Queue()
        self._open = True

    async def send(self, text: str) -> None:
        if not self._open:
            raise TransportError("Websocket is not open")
        body = json.loads(text)
        self.server.sent.append(body)
        reply = self.server.respond(body)
        if reply is not None:
            self.push(reply)

    async def messages(self):
        while True:
            text = await self._inbox.get()
            if text is None:
                return
            yield text

    async def close(self) -> None:
        self.closed = True
        if self._open:
            self._open = False
            self._inbox.put_nowait(None)

    @property
    def is_open(self) -> bool:
        return self._open

    def push(self, envelope: dict) -> None:
        """Deliver a frame from the server side."""
        self._inbox.put_nowait(json.dumps(envelope))

    def push_raw(self, text: str) -> None:
        self._inbox.put_nowait(text)

    def drop(self) -> None:
        """Simulate OBS going away without a close from our side."""
        self._open = False
        self._inbox.put_nowait(None)


class StubTransport(Transport):
    """Records frames and never answers."""

    def __init__(self):
        self.sent: list[dict] = []
        self._open = True

    async def connect(self, address: str) -> None:
        self._open = True

    async def send(self, text: str) -> None:
        self.sent.append(json.loads(text))

    async def messages(self):
        return
        yield

    async def close(self) -> None:
        self._open = False

    @property
    def is_open(self) -> bool:
        return self._open


async def settle(condition: Callable[[], bool], rounds: int = 1000) -> None:
    """Yield to the event loop until condition() holds."""
    for _ in range(rounds):
        if condition():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition not reached")


@pytest.fixture
def server() -> MockOBSServer:
    return MockOBSServer()


@pytest.fixture
def client(server: MockOBSServer) -> OBSClient:
    return OBSClient(request_timeout=1.0, transport_factory=server.transport)
