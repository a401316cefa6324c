"""
events/types.py — Notification kinds and the typed payloads handed to subscribers.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class EventKind(str, Enum):
    # Session signals
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"

    # Scenes
    SCENE_CHANGED = "scene_changed"
    SCENE_LIST_CHANGED = "scene_list_changed"
    SOURCE_ORDER_CHANGED = "source_order_changed"
    SCENE_ITEM_ADDED = "scene_item_added"
    SCENE_ITEM_REMOVED = "scene_item_removed"
    SCENE_ITEM_VISIBILITY_CHANGED = "scene_item_visibility_changed"
    SCENE_COLLECTION_CHANGED = "scene_collection_changed"
    SCENE_COLLECTION_LIST_CHANGED = "scene_collection_list_changed"

    # Transitions
    TRANSITION_CHANGED = "transition_changed"
    TRANSITION_DURATION_CHANGED = "transition_duration_changed"
    TRANSITION_LIST_CHANGED = "transition_list_changed"
    TRANSITION_BEGIN = "transition_begin"

    # Profiles
    PROFILE_CHANGED = "profile_changed"
    PROFILE_LIST_CHANGED = "profile_list_changed"

    # Outputs
    STREAMING_STATE_CHANGED = "streaming_state_changed"
    RECORDING_STATE_CHANGED = "recording_state_changed"
    REPLAY_BUFFER_STATE_CHANGED = "replay_buffer_state_changed"
    STREAM_STATUS = "stream_status"

    # Studio mode
    PREVIEW_SCENE_CHANGED = "preview_scene_changed"
    STUDIO_MODE_SWITCHED = "studio_mode_switched"

    EXITING = "exiting"


class OutputState(str, Enum):
    STARTING = "starting"
    STARTED = "started"
    STOPPING = "stopping"
    STOPPED = "stopped"


@dataclass(frozen=True)
class ConnectionEvent:
    address: Optional[str]


@dataclass(frozen=True)
class BareEvent:
    """A notification whose only content is that it happened."""
    update_type: str


@dataclass(frozen=True)
class SceneChanged:
    scene_name: str


@dataclass(frozen=True)
class SourceOrderChanged:
    scene_name: str


@dataclass(frozen=True)
class SceneItemChanged:
    scene_name: str
    item_name: str
    visible: Optional[bool] = None


@dataclass(frozen=True)
class TransitionChanged:
    transition_name: str


@dataclass(frozen=True)
class TransitionDurationChanged:
    duration_ms: int


@dataclass(frozen=True)
class OutputStateChanged:
    output: str
    state: OutputState


@dataclass(frozen=True)
class StudioModeSwitched:
    enabled: bool


@dataclass(frozen=True)
class StreamStatus:
    """Sent by OBS every 2 seconds while streaming."""

    streaming: bool
    recording: bool
    bytes_per_sec: int
    kbits_per_sec: int
    strain: float
    total_stream_time: int
    stream_timecode: str
    total_frames: int
    dropped_frames: int
    fps: float

    @classmethod
    def from_body(cls, body: dict) -> "StreamStatus":
        return cls(
            streaming=bool(body.get("streaming", False)),
            recording=bool(body.get("recording", False)),
            bytes_per_sec=int(body.get("bytes-per-sec", 0)),
            kbits_per_sec=int(body.get("kbits-per-sec", 0)),
            strain=float(body.get("strain", 0.0)),
            total_stream_time=int(body.get("total-stream-time", 0)),
            stream_timecode=str(body.get("stream-timecode", "")),
            total_frames=int(body.get("num-total-frames", 0)),
            dropped_frames=int(body.get("num-dropped-frames", 0)),
            fps=float(body.get("fps", 0.0)),
        )
