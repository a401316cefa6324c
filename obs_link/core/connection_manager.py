"""
core/connection_manager.py — Process-wide OBSClient for the CLI and embedding apps.
"""

from __future__ import annotations

from typing import Optional

from .obs_client import OBSClient
from .transport import WebsocketTransport

_obs_client: Optional[OBSClient] = None


def init_obs_client(request_timeout: Optional[float] = 10.0, open_timeout: Optional[float] = 10.0) -> OBSClient:
    global _obs_client
    _obs_client = OBSClient(
        request_timeout=request_timeout,
        transport_factory=lambda: WebsocketTransport(open_timeout=open_timeout),
    )
    return _obs_client


def get_obs_client() -> OBSClient:
    if _obs_client is None:
        raise RuntimeError("OBS client not initialized. Call init_obs_client() first.")
    return _obs_client
