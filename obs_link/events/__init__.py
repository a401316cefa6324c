"""events — Notification kinds, typed payloads and the subscriber registry."""
from .registry import EventCallback, Subscription, SubscriberRegistry
from .types import (
    BareEvent,
    ConnectionEvent,
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

__all__ = [
    "BareEvent",
    "ConnectionEvent",
    "EventCallback",
    "EventKind",
    "OutputState",
    "OutputStateChanged",
    "SceneChanged",
    "SceneItemChanged",
    "SourceOrderChanged",
    "StreamStatus",
    "StudioModeSwitched",
    "Subscription",
    "SubscriberRegistry",
    "TransitionChanged",
    "TransitionDurationChanged",
]
