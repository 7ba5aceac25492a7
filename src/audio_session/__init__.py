"""Audio capture session lifecycle controller."""

from . import audio, cli, config, core, diagnostics, session_services

__all__ = ["audio", "cli", "config", "core", "diagnostics", "session_services"]
