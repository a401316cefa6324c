"""
core/correlation.py — Matches obs-websocket replies to the calls awaiting them.

Each outgoing request gets a fresh random ``message-id`` and a one-shot future.
The future is resolved exactly once: by the matching reply, by the request's
own timeout, or by cancel_all() when the session goes away. Whichever gets
there first wins; the others find the future already done and do nothing.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
import string
from dataclasses import dataclass, field
from typing import Callable, Optional

from .codec import ERROR, encode_request, is_error_reply, reply_payload
from .errors import OBSError, ProtocolError, RequestCancelled, RequestTimeout, TransportError
from .transport import Transport

log = logging.getLogger(__name__)

MESSAGE_ID_ALPHABET = string.ascii_letters + string.digits
MESSAGE_ID_LENGTH = 16


def new_message_id(length: int = MESSAGE_ID_LENGTH) -> str:
    return "".join(secrets.choice(MESSAGE_ID_ALPHABET) for _ in range(length))


@dataclass
class PendingRequest:
    message_id: str
    request_type: str
    future: asyncio.Future = field(repr=False)

    def resolve(self, payload: dict) -> bool:
        if self.future.done():
            return False
        self.future.set_result(payload)
        return True

    def fail(self, error: BaseException) -> bool:
        if self.future.done():
            return False
        self.future.set_exception(error)
        return True


class CorrelationEngine:
    def __init__(
        self,
        timeout: Optional[float] = 10.0,
        id_factory: Callable[[], str] = new_message_id,
    ):
        self.timeout = timeout
        self._id_factory = id_factory
        self._pending: dict[str, PendingRequest] = {}
        self._lock = asyncio.Lock()

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def pending_ids(self) -> list[str]:
        return list(self._pending)

    # ── Send ──────────────────────────────────────────────────────────

    async def send(
        self,
        transport: Optional[Transport],
        request_type: str,
        fields: Optional[dict] = None,
    ) -> dict:
        """
        Send one request and wait for its reply.

        Returns the reply's result fields. Raises ProtocolError when OBS answers
        with an error, RequestTimeout when nothing arrives in time,
        RequestCancelled when the session is torn down first, and
        TransportError when there is no open connection to send on.
        """
        if transport is None or not transport.is_open:
            raise TransportError("Not connected to OBS")

        pending = await self._register(request_type)
        try:
            try:
                await transport.send(encode_request(request_type, pending.message_id, fields))
            except OBSError:
                raise
            except Exception as e:
                raise TransportError(f"Failed to send {request_type}: {e}") from e

            timeout = self.timeout if self.timeout and self.timeout > 0 else None
            try:
                return await asyncio.wait_for(pending.future, timeout)
            except asyncio.TimeoutError:
                log.warning(f"{request_type} ({pending.message_id}) timed out after {timeout}s")
                raise RequestTimeout(request_type, timeout) from None
        finally:
            await self._forget(pending)

    async def _register(self, request_type: str) -> PendingRequest:
        loop = asyncio.get_running_loop()
        async with self._lock:
            message_id = self._id_factory()
            while message_id in self._pending:
                log.debug(f"message-id collision on {message_id}, re-rolling")
                message_id = self._id_factory()
            pending = PendingRequest(message_id, request_type, loop.create_future())
            self._pending[message_id] = pending
        return pending

    async def _forget(self, pending: PendingRequest) -> None:
        async with self._lock:
            if self._pending.get(pending.message_id) is pending:
                del self._pending[pending.message_id]
        if not pending.future.done():
            pending.future.cancel()
        elif not pending.future.cancelled():
            # Failed by cancel_all() while the send itself errored; mark it retrieved.
            pending.future.exception()

    # ── Completion ────────────────────────────────────────────────────

    async def complete(self, message_id: str, envelope: dict) -> bool:
        """Resolve the request waiting on message_id. Unknown or late ids are ignored."""
        async with self._lock:
            pending = self._pending.pop(message_id, None)
        if pending is None:
            log.debug(f"Dropping reply for unknown message-id {message_id!r}")
            return False

        if is_error_reply(envelope):
            error = ProtocolError(str(envelope.get(ERROR, "")), request_type=pending.request_type)
            return pending.fail(error)
        return pending.resolve(reply_payload(envelope))

    async def cancel_all(self) -> int:
        async with self._lock:
            pending = list(self._pending.values())
            self._pending.clear()

        cancelled = 0
        for p in pending:
            if p.fail(RequestCancelled(f"{p.request_type} cancelled: session closed")):
                cancelled += 1
        if cancelled:
            log.info(f"Cancelled {cancelled} pending request(s)")
        return cancelled
