"""Capture state and start-result types."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from audio_session.core.exceptions import CaptureUnavailable


class CaptureState(Enum):
    """On/off state of a capture session."""

    IDLE = "idle"
    ACTIVE = "active"


@dataclass(frozen=True, slots=True)
class CaptureResult:
    """Outcome of :meth:`AudioSessionController.start`."""

    success: bool
    error: Optional[CaptureUnavailable] = None

    def as_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {"success": self.success}
        if self.error is not None:
            payload["error"] = str(self.error)
        return payload


__all__ = ["CaptureResult", "CaptureState"]
