"""Custom exception types shared across the audio-session package."""

from __future__ import annotations


class AudioSessionError(RuntimeError):
    """Base class for audio-session failures."""


class CaptureUnavailable(AudioSessionError):
    """Raised by a capture backend when the device or permission cannot be acquired."""

    def __init__(self, backend: str, reason: str | None = None):
        self.backend = backend
        self.reason = reason
        message = f"Audio capture unavailable ({backend})"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
