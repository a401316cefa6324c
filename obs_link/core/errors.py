"""
core/errors.py — Failure types raised by the OBS session and request engine.
"""

from __future__ import annotations

from typing import Optional


class OBSError(Exception):
    pass


class TransportError(OBSError):
    """No live connection, or the websocket refused a connect/send."""


class ProtocolError(OBSError):
    """OBS answered a request with ``status: error``."""

    def __init__(self, message: str, request_type: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.request_type = request_type


class RequestTimeout(OBSError):
    def __init__(self, request_type: str, timeout: float):
        super().__init__(f"No reply to {request_type} within {timeout}s")
        self.request_type = request_type
        self.timeout = timeout


class RequestCancelled(OBSError):
    """The session was torn down while the request was outstanding."""


class AuthFailure(OBSError):
    pass
