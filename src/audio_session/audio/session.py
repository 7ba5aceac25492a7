"""
Audio capture session controller.

Gates capture on/off and notifies subscribers of the lifecycle. Audio bytes are
produced by a capture backend (or an external renderer surface) and only pass
through here when a backend delivers them.
"""

from __future__ import annotations

import time
from collections import deque
from typing import Optional

from audio_session.cli.logging_utils import (
    AUDIO_LOG_LABEL,
    CONTROL_LOG_LABEL,
    ERROR_LOG_LABEL,
    LOGGER,
    log_state_transition,
)
from audio_session.core.exceptions import CaptureUnavailable

from .backends import CaptureBackend, NoopCaptureBackend, create_backend
from .events import (
    AudioChunkEvent,
    CaptureErrorEvent,
    CaptureEventEmitter,
    CaptureStoppedEvent,
    EventHandler,
    EventKey,
    Unsubscribe,
)
from .state import CaptureResult, CaptureState
from .utils import detect_platform


class AudioSessionController:
    """Own the capture session state and publish ``audio``/``error``/``stopped``."""

    def __init__(
        self,
        backend: Optional[CaptureBackend] = None,
        *,
        platform: Optional[str] = None,
        emitter: Optional[CaptureEventEmitter] = None,
    ):
        self.backend: CaptureBackend = backend if backend is not None else NoopCaptureBackend()
        self.events = emitter if emitter is not None else CaptureEventEmitter()
        self._platform = platform
        self._state = CaptureState.IDLE
        # Never filled here; emptied on every transition to idle.
        self._pending_chunks: deque[bytes] = deque()
        # Bumped on every stop so chunks queued by an earlier session can be told apart.
        self._generation = 0

        LOGGER.verbose(
            CONTROL_LOG_LABEL, f"Capture session initialized (backend: {self.backend.name})"
        )

    # ------------------------------------------------------------------
    # Lifecycle
    async def start(self) -> CaptureResult:
        """Activate capture; a second call while active is a successful no-op."""

        if self._state is CaptureState.ACTIVE:
            LOGGER.warning(CONTROL_LOG_LABEL, "Already capturing, ignoring start request")
            return CaptureResult(success=True)

        platform = self._resolve_platform()
        try:
            await self.backend.start(self, platform=platform)
        except CaptureUnavailable as exc:
            LOGGER.log(ERROR_LOG_LABEL, str(exc), error=True)
            self.events.emit(CaptureErrorEvent(error=exc))
            return CaptureResult(success=False, error=exc)

        self._transition(CaptureState.ACTIVE, f"{self.backend.name} backend started")
        return CaptureResult(success=True)

    def stop(self) -> None:
        """Deactivate capture and emit ``stopped``; does nothing while idle."""

        if self._state is CaptureState.IDLE:
            return

        LOGGER.log(CONTROL_LOG_LABEL, "Stopping audio capture...")
        try:
            self.backend.stop()
        finally:
            self._pending_chunks.clear()
            self._generation += 1
            self._transition(CaptureState.IDLE, "stop requested")
            self.events.emit(CaptureStoppedEvent())
            LOGGER.log(CONTROL_LOG_LABEL, "Capture stopped")

    # ------------------------------------------------------------------
    # Read-only accessors
    @property
    def state(self) -> CaptureState:
        return self._state

    @property
    def is_capturing(self) -> bool:
        return self._state is CaptureState.ACTIVE

    @property
    def queue_size(self) -> int:
        return len(self._pending_chunks)

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def platform(self) -> Optional[str]:
        return self._platform

    # ------------------------------------------------------------------
    # Subscriber API
    def subscribe(self, event: EventKey, handler: EventHandler) -> Unsubscribe:
        return self.events.subscribe(event, handler)

    def unsubscribe(self, event: EventKey, handler: EventHandler) -> bool:
        return self.events.unsubscribe(event, handler)

    # ------------------------------------------------------------------
    # Sink API used by capture backends
    def deliver_chunk(
        self,
        buffer: bytes,
        timestamp: Optional[float] = None,
        generation: Optional[int] = None,
    ) -> None:
        """
        Publish one captured chunk as an ``audio`` notification.

        Backends that hand chunks over asynchronously pass the ``generation`` they
        read at start; chunks from an earlier session are dropped.
        """

        if self._state is not CaptureState.ACTIVE:
            LOGGER.verbose(AUDIO_LOG_LABEL, f"Dropping {len(buffer)} byte chunk while idle")
            return
        if generation is not None and generation != self._generation:
            LOGGER.verbose(
                AUDIO_LOG_LABEL, f"Dropping {len(buffer)} byte chunk from a previous session"
            )
            return
        if timestamp is None:
            timestamp = time.time()
        self.events.emit(AudioChunkEvent(buffer=bytes(buffer), timestamp=timestamp))

    def report_error(self, error: Exception) -> None:
        """Broadcast a backend failure that happened while capturing."""

        LOGGER.log(ERROR_LOG_LABEL, f"Capture error: {error}", error=True)
        self.events.emit(CaptureErrorEvent(error=error))

    # ------------------------------------------------------------------
    # Internal helpers
    def _resolve_platform(self) -> str:
        if self._platform is None:
            self._platform = detect_platform()
        return self._platform

    def _transition(self, new: CaptureState, reason: str) -> None:
        previous = self._state
        self._state = new
        log_state_transition(previous, new, reason)


def create_session_controller(
    backend: str | CaptureBackend | None = None,
    *,
    platform: Optional[str] = None,
) -> AudioSessionController:
    """Build a controller, resolving ``backend`` by name when given a string."""

    if isinstance(backend, str):
        backend = create_backend(backend)
    return AudioSessionController(backend, platform=platform)


__all__ = ["AudioSessionController", "create_session_controller"]
