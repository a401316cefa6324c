"""
core/dispatcher.py — Routes each inbound envelope to a waiting request or to subscribers.

Routing, in order:
  1. has ``message-id``  → reply, handed to the CorrelationEngine
  2. has ``update-type`` → notification, decoded and published by kind
  3. neither             → dropped
Unknown update types are dropped as well.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from obs_link.events.registry import SubscriberRegistry
from obs_link.events.types import (
    BareEvent,
    EventKind,
    OutputState,
    OutputStateChanged,
    SceneChanged,
    SceneItemChanged,
    SourceOrderChanged,
    StreamStatus,
    StudioModeSwitched,
    TransitionChanged,
    TransitionDurationChanged,
)

from .codec import MESSAGE_ID, UPDATE_TYPE, decode_envelope, is_notification, is_reply
from .correlation import CorrelationEngine

log = logging.getLogger(__name__)

Decoder = Callable[[dict], Any]


def _bare(body: dict) -> BareEvent:
    return BareEvent(body[UPDATE_TYPE])


def _scene(body: dict) -> SceneChanged:
    return SceneChanged(body.get("scene-name", ""))


def _scene_item(body: dict) -> SceneItemChanged:
    visible = body.get("item-visible")
    return SceneItemChanged(
        scene_name=body.get("scene-name", ""),
        item_name=body.get("item-name", ""),
        visible=None if visible is None else bool(visible),
    )


def _output(output: str, state: OutputState) -> Decoder:
    return lambda body: OutputStateChanged(output, state)


def _output_states(prefix: str, kind: EventKind, output: str) -> dict[str, tuple[EventKind, Decoder]]:
    return {
        f"{prefix}Starting": (kind, _output(output, OutputState.STARTING)),
        f"{prefix}Started": (kind, _output(output, OutputState.STARTED)),
        f"{prefix}Stopping": (kind, _output(output, OutputState.STOPPING)),
        f"{prefix}Stopped": (kind, _output(output, OutputState.STOPPED)),
    }


DECODERS: dict[str, tuple[EventKind, Decoder]] = {
    "SwitchScenes": (EventKind.SCENE_CHANGED, _scene),
    "ScenesChanged": (EventKind.SCENE_LIST_CHANGED, _bare),
    "SourceOrderChanged": (EventKind.SOURCE_ORDER_CHANGED,
                           lambda body: SourceOrderChanged(body.get("scene-name", ""))),
    "SceneItemAdded": (EventKind.SCENE_ITEM_ADDED, _scene_item),
    "SceneItemRemoved": (EventKind.SCENE_ITEM_REMOVED, _scene_item),
    "SceneItemVisibilityChanged": (EventKind.SCENE_ITEM_VISIBILITY_CHANGED, _scene_item),
    "SceneCollectionChanged": (EventKind.SCENE_COLLECTION_CHANGED, _bare),
    "SceneCollectionListChanged": (EventKind.SCENE_COLLECTION_LIST_CHANGED, _bare),
    "SwitchTransition": (EventKind.TRANSITION_CHANGED,
                         lambda body: TransitionChanged(body.get("transition-name", ""))),
    "TransitionDurationChanged": (EventKind.TRANSITION_DURATION_CHANGED,
                                  lambda body: TransitionDurationChanged(int(body["new-duration"]))),
    "TransitionListChanged": (EventKind.TRANSITION_LIST_CHANGED, _bare),
    "TransitionBegin": (EventKind.TRANSITION_BEGIN, _bare),
    "ProfileChanged": (EventKind.PROFILE_CHANGED, _bare),
    "ProfileListChanged": (EventKind.PROFILE_LIST_CHANGED, _bare),
    **_output_states("Stream", EventKind.STREAMING_STATE_CHANGED, "streaming"),
    **_output_states("Recording", EventKind.RECORDING_STATE_CHANGED, "recording"),
    **_output_states("Replay", EventKind.REPLAY_BUFFER_STATE_CHANGED, "replay_buffer"),
    "StreamStatus": (EventKind.STREAM_STATUS, StreamStatus.from_body),
    "PreviewSceneChanged": (EventKind.PREVIEW_SCENE_CHANGED, _scene),
    "StudioModeSwitched": (EventKind.STUDIO_MODE_SWITCHED,
                           lambda body: StudioModeSwitched(bool(body["new-state"]))),
    "Exiting": (EventKind.EXITING, _bare),
}


class EventDispatcher:
    def __init__(self, engine: CorrelationEngine, registry: SubscriberRegistry):
        self.engine = engine
        self.registry = registry

    async def dispatch_text(self, text: str) -> None:
        envelope = decode_envelope(text)
        if envelope is not None:
            await self.dispatch(envelope)

    async def dispatch(self, envelope: dict) -> Optional[EventKind]:
        """Route one decoded envelope. Returns the EventKind published, if any."""
        if is_reply(envelope):
            message_id = envelope[MESSAGE_ID]
            if isinstance(message_id, str):
                await self.engine.complete(message_id, envelope)
            else:
                log.debug(f"Dropping reply with non-string message-id: {message_id!r}")
            return None

        if not is_notification(envelope):
            log.debug(f"Dropping unroutable envelope with keys {sorted(envelope)}")
            return None

        update_type = envelope[UPDATE_TYPE]
        entry = DECODERS.get(update_type) if isinstance(update_type, str) else None
        if entry is None:
            log.debug(f"Ignoring unknown update-type {update_type!r}")
            return None

        kind, decode = entry
        try:
            event = decode(envelope)
        except Exception as e:
            log.warning(f"Malformed {update_type} notification dropped: {e!r}")
            return None

        self.registry.publish(kind, event)
        return kind
