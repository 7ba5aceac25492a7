"""Core types shared across the audio-session package."""

from .exceptions import AudioSessionError, CaptureUnavailable

__all__ = ["AudioSessionError", "CaptureUnavailable"]
