"""
obs-link — asyncio client for the obs-websocket 4.x protocol.

Modules:
  core/    — session & auth, request/reply correlation, event dispatch, request wrappers
  events/  — notification kinds, typed payloads, subscriber registry
  config/  — Settings, env loading, YAML config
"""

__version__ = "0.3.0"
