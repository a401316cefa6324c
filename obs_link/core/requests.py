"""
core/requests.py — Typed wrappers for common obs-websocket 4.x requests.

Each method builds the request fields, goes through send_request() and reshapes
the reply into plain Python values. Anything not covered here can be sent
directly with send_request(request_type, fields).
"""

from __future__ import annotations

from typing import Awaitable, Callable, Optional


class RequestsMixin:
    # Provided by OBSClient.
    send_request: Callable[..., Awaitable[dict]]

    # ── System ────────────────────────────────────────────────────────

    async def get_version(self) -> dict:
        d = await self.send_request("GetVersion")
        return {
            "obs_websocket_version": d.get("obs-websocket-version", ""),
            "obs_studio_version": d.get("obs-studio-version", ""),
            "available_requests": [r for r in d.get("available-requests", "").split(",") if r],
        }

    # ── Scenes ───────────────────────────────────────────────────────

    async def get_current_scene(self) -> dict:
        d = await self.send_request("GetCurrentScene")
        return {"name": d.get("name", ""), "sources": d.get("sources", [])}

    async def set_current_scene(self, scene_name: str) -> None:
        await self.send_request("SetCurrentScene", {"scene-name": scene_name})

    async def get_scenes(self) -> list[dict]:
        d = await self.send_request("GetSceneList")
        return [{"name": s.get("name", ""), "sources": s.get("sources", [])} for s in d.get("scenes", [])]

    async def set_source_render(self, item_name: str, visible: bool, scene_name: Optional[str] = None) -> None:
        """Show or hide a scene item. Without scene_name OBS uses the current scene."""
        fields = {"source": item_name, "render": visible}
        if scene_name is not None:
            fields["scene-name"] = scene_name
        await self.send_request("SetSourceRender", fields)

    # ── Streaming & recording ─────────────────────────────────────────

    async def get_streaming_status(self) -> dict:
        d = await self.send_request("GetStreamingStatus")
        return {"streaming": d.get("streaming", False), "recording": d.get("recording", False)}

    async def toggle_streaming(self) -> None:
        await self.send_request("StartStopStreaming")

    async def start_streaming(self) -> None:
        await self.send_request("StartStreaming")

    async def stop_streaming(self) -> None:
        await self.send_request("StopStreaming")

    async def toggle_recording(self) -> None:
        await self.send_request("StartStopRecording")

    async def start_recording(self) -> None:
        await self.send_request("StartRecording")

    async def stop_recording(self) -> None:
        await self.send_request("StopRecording")

    async def get_recording_folder(self) -> str:
        d = await self.send_request("GetRecordingFolder")
        return d.get("rec-folder", "")

    async def set_recording_folder(self, folder: str) -> None:
        await self.send_request("SetRecordingFolder", {"rec-folder": folder})

    # ── Replay buffer ─────────────────────────────────────────────────

    async def toggle_replay_buffer(self) -> None:
        await self.send_request("StartStopReplayBuffer")

    async def start_replay_buffer(self) -> None:
        await self.send_request("StartReplayBuffer")

    async def stop_replay_buffer(self) -> None:
        await self.send_request("StopReplayBuffer")

    async def save_replay_buffer(self) -> None:
        await self.send_request("SaveReplayBuffer")

    # ── Transitions ───────────────────────────────────────────────────

    async def get_transitions(self) -> list[str]:
        d = await self.send_request("GetTransitionList")
        return [t.get("name", "") for t in d.get("transitions", [])]

    async def get_current_transition(self) -> dict:
        d = await self.send_request("GetCurrentTransition")
        return {"name": d.get("name", ""), "duration_ms": d.get("duration", 0)}

    async def set_current_transition(self, transition_name: str) -> None:
        await self.send_request("SetCurrentTransition", {"transition-name": transition_name})

    async def get_transition_duration(self) -> int:
        d = await self.send_request("GetTransitionDuration")
        return int(d.get("transition-duration", 0))

    async def set_transition_duration(self, duration_ms: int) -> None:
        await self.send_request("SetTransitionDuration", {"duration": duration_ms})

    # ── Audio ─────────────────────────────────────────────────────────

    async def get_volume(self, source_name: str) -> dict:
        d = await self.send_request("GetVolume", {"source": source_name})
        return {"source": d.get("name", source_name), "volume": d.get("volume", 0.0), "muted": d.get("muted", False)}

    async def set_volume(self, source_name: str, volume: float) -> None:
        """volume is a linear multiplier, 0.0 to 1.0."""
        await self.send_request("SetVolume", {"source": source_name, "volume": volume})

    async def get_mute(self, source_name: str) -> bool:
        d = await self.send_request("GetMute", {"source": source_name})
        return bool(d.get("muted", False))

    async def set_mute(self, source_name: str, muted: bool) -> None:
        await self.send_request("SetMute", {"source": source_name, "mute": muted})

    async def toggle_mute(self, source_name: str) -> None:
        await self.send_request("ToggleMute", {"source": source_name})

    # ── Studio mode ───────────────────────────────────────────────────

    async def get_studio_mode(self) -> bool:
        d = await self.send_request("GetStudioModeStatus")
        return bool(d.get("studio-mode", False))

    async def set_studio_mode(self, enabled: bool) -> None:
        await self.send_request("EnableStudioMode" if enabled else "DisableStudioMode")

    async def toggle_studio_mode(self) -> None:
        await self.send_request("ToggleStudioMode")

    async def get_preview_scene(self) -> dict:
        d = await self.send_request("GetPreviewScene")
        return {"name": d.get("name", ""), "sources": d.get("sources", [])}

    async def set_preview_scene(self, scene_name: str) -> None:
        await self.send_request("SetPreviewScene", {"scene-name": scene_name})

    async def transition_to_program(
        self, duration_ms: Optional[int] = None, transition_name: Optional[str] = None
    ) -> None:
        """Move the preview scene to program, optionally overriding the transition."""
        fields: dict = {}
        with_transition: dict = {}
        if duration_ms is not None:
            with_transition["duration"] = duration_ms
        if transition_name is not None:
            with_transition["name"] = transition_name
        if with_transition:
            fields["with-transition"] = with_transition
        await self.send_request("TransitionToProgram", fields)

    # ── Profiles & scene collections ──────────────────────────────────

    async def get_current_profile(self) -> str:
        d = await self.send_request("GetCurrentProfile")
        return d.get("profile-name", "")

    async def set_current_profile(self, profile_name: str) -> None:
        await self.send_request("SetCurrentProfile", {"profile-name": profile_name})

    async def get_profiles(self) -> list[str]:
        d = await self.send_request("ListProfiles")
        return [p.get("profile-name", "") for p in d.get("profiles", [])]

    async def get_current_scene_collection(self) -> str:
        d = await self.send_request("GetCurrentSceneCollection")
        return d.get("sc-name", "")

    async def set_current_scene_collection(self, collection_name: str) -> None:
        await self.send_request("SetCurrentSceneCollection", {"sc-name": collection_name})

    async def get_scene_collections(self) -> list[str]:
        d = await self.send_request("ListSceneCollections")
        return [c.get("sc-name", "") for c in d.get("scene-collections", [])]
