"""core — obs-websocket session, request correlation and event dispatch."""
from .auth import AuthInfo, auth_response
from .connection_manager import get_obs_client, init_obs_client
from .correlation import CorrelationEngine, PendingRequest, new_message_id
from .dispatcher import EventDispatcher
from .errors import (
    AuthFailure,
    OBSError,
    ProtocolError,
    RequestCancelled,
    RequestTimeout,
    TransportError,
)
from .obs_client import OBSClient, SessionState
from .transport import Transport, WebsocketTransport

__all__ = [
    "AuthFailure",
    "AuthInfo",
    "CorrelationEngine",
    "EventDispatcher",
    "OBSClient",
    "OBSError",
    "PendingRequest",
    "ProtocolError",
    "RequestCancelled",
    "RequestTimeout",
    "SessionState",
    "Transport",
    "TransportError",
    "WebsocketTransport",
    "auth_response",
    "get_obs_client",
    "init_obs_client",
    "new_message_id",
]
