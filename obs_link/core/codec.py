"""
core/codec.py — obs-websocket wire envelopes.

Every frame is a flat JSON object. Requests carry ``request-type`` and
``message-id``; replies echo ``message-id`` with a ``status`` of ``ok`` or
``error``; notifications carry ``update-type`` and no ``message-id``.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

log = logging.getLogger(__name__)

REQUEST_TYPE = "request-type"
MESSAGE_ID = "message-id"
UPDATE_TYPE = "update-type"
STATUS = "status"
ERROR = "error"

STATUS_OK = "ok"
STATUS_ERROR = "error"

_REPLY_KEYS = (MESSAGE_ID, STATUS, ERROR)


def encode_request(request_type: str, message_id: str, fields: Optional[dict] = None) -> str:
    # Reserved keys always win over same-named request fields.
    body: dict[str, Any] = dict(fields or {})
    body[REQUEST_TYPE] = request_type
    body[MESSAGE_ID] = message_id
    return json.dumps(body)


def decode_envelope(text: str) -> Optional[dict]:
    """Parse one inbound frame. Returns None for anything that is not a JSON object."""
    try:
        body = json.loads(text)
    except (TypeError, ValueError, RecursionError) as e:
        log.debug(f"Dropping undecodable frame: {e}")
        return None
    if not isinstance(body, dict):
        log.debug(f"Dropping non-object frame: {type(body).__name__}")
        return None
    return body


def is_reply(envelope: dict) -> bool:
    return MESSAGE_ID in envelope


def is_notification(envelope: dict) -> bool:
    return UPDATE_TYPE in envelope


def is_error_reply(envelope: dict) -> bool:
    return envelope.get(STATUS) == STATUS_ERROR


def reply_payload(envelope: dict) -> dict:
    """Operation-specific result fields of a reply, without the envelope keys."""
    return {k: v for k, v in envelope.items() if k not in _REPLY_KEYS}
