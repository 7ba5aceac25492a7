"""Shared helpers for capture backends and diagnostics."""

from __future__ import annotations

import platform as _platform
from collections.abc import Mapping

import numpy as np

from audio_session.config import CaptureConfig

__all__ = ["chunk_rms", "detect_platform", "device_info_dict", "expected_chunk_bytes"]

_PLATFORM_ALIASES = {"darwin": "macos"}
# platform.system() on POSIX layers over Windows reports e.g. "CYGWIN_NT-10.0-19045".
_WINDOWS_PREFIXES = ("cygwin_nt", "msys_nt", "mingw")


def detect_platform(system: str | None = None) -> str:
    """Return a normalized host tag such as ``macos``, ``windows`` or ``linux``."""

    raw = (system if system is not None else _platform.system()).strip().lower()
    if not raw:
        return "unknown"
    if raw.startswith(_WINDOWS_PREFIXES):
        return "windows"
    return _PLATFORM_ALIASES.get(raw, raw)


def device_info_dict(info: object) -> dict[str, object]:
    """Return a plain dict from sounddevice info objects for logging/debugging."""
    if isinstance(info, dict):
        return dict(info)
    if isinstance(info, Mapping):
        return dict(info.items())
    if hasattr(info, "__dict__"):
        return dict(vars(info))
    return {}


def chunk_rms(buffer: bytes) -> float:
    """Root-mean-square level of a little-endian int16 PCM chunk."""

    usable = len(buffer) - (len(buffer) % 2)
    if usable <= 0:
        return 0.0
    samples = np.frombuffer(buffer[:usable], dtype="<i2").astype(np.float64)
    return float(np.sqrt(np.mean(np.square(samples))))


def expected_chunk_bytes(config: CaptureConfig, channels: int) -> int:
    return config.chunk_size(channels)
