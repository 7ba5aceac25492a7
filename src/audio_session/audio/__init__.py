"""Capture session controller and backends with lazy imports to avoid cycles."""

from __future__ import annotations

from typing import TYPE_CHECKING

__all__ = [
    "AudioSessionController",
    "CaptureResult",
    "CaptureState",
    "create_session_controller",
]


def __getattr__(name: str):
    if name in ("AudioSessionController", "create_session_controller"):
        from . import session as _session

        return getattr(_session, name)
    if name in ("CaptureResult", "CaptureState"):
        from . import state as _state

        return getattr(_state, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


if TYPE_CHECKING:  # pragma: no cover - import-time only
    from .session import AudioSessionController as AudioSessionController
    from .session import create_session_controller as create_session_controller
    from .state import CaptureResult as CaptureResult
    from .state import CaptureState as CaptureState
