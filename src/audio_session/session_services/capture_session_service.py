"""Start and stop the capture session as part of an application run."""

from __future__ import annotations

from audio_session.audio import AudioSessionController

from .session_service import BaseSessionService


class CaptureSessionService(BaseSessionService):
    """Drive the AudioSessionController within the session lifecycle."""

    def __init__(self, controller: AudioSessionController):
        super().__init__("capture")
        self._controller = controller

    @property
    def controller(self) -> AudioSessionController:
        return self._controller

    async def _start(self) -> None:
        result = await self._controller.start()
        if not result.success:
            # Startup cannot continue without audio; surface the backend failure.
            if result.error is not None:
                raise result.error
            raise RuntimeError("Capture session failed to start")

    async def _stop(self) -> None:
        self._controller.stop()
