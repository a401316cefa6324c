"""
core/auth.py — obs-websocket challenge/response authentication.

    secret = base64(sha256(password + salt))
    auth   = base64(sha256(secret + challenge))
"""

from __future__ import annotations

import base64
import hashlib
from dataclasses import dataclass


@dataclass(frozen=True)
class AuthInfo:
    auth_required: bool
    challenge: str = ""
    salt: str = ""

    @classmethod
    def from_reply(cls, payload: dict) -> "AuthInfo":
        """Build from a GetAuthRequired reply."""
        return cls(
            auth_required=bool(payload.get("authRequired", False)),
            challenge=payload.get("challenge") or "",
            salt=payload.get("salt") or "",
        )


def hash_encode(text: str) -> str:
    digest = hashlib.sha256(text.encode("utf-8")).digest()
    return base64.b64encode(digest).decode("ascii")


def auth_response(password: str, salt: str, challenge: str) -> str:
    secret = hash_encode(password + salt)
    return hash_encode(secret + challenge)
