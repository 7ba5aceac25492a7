"""
Capture backends for the audio session controller.

A backend acquires the audio device (or declines to, when capture happens in
the renderer) and pushes chunks into the controller through a ``ChunkSink``.
"""

from __future__ import annotations

import asyncio
import time
from types import ModuleType
from typing import Any, Callable, Optional, Protocol

from audio_session.cli.logging_utils import AUDIO_LOG_LABEL, LOGGER, verbose_print
from audio_session.config import (
    AUDIO_INPUT_DEVICE,
    CAPTURE_CHANNELS,
    CAPTURE_CONFIG,
    CaptureConfig,
)
from audio_session.core.exceptions import CaptureUnavailable

from .utils import device_info_dict

NOOP_BACKEND = "noop"
SOUNDDEVICE_BACKEND = "sounddevice"


class ChunkSink(Protocol):
    @property
    def generation(self) -> int: ...

    def deliver_chunk(
        self,
        buffer: bytes,
        timestamp: Optional[float] = None,
        generation: Optional[int] = None,
    ) -> None: ...

    def report_error(self, error: Exception) -> None: ...


class CaptureBackend(Protocol):
    """Acquire and release the audio source for a capture session."""

    name: str

    async def start(self, sink: ChunkSink, *, platform: str) -> None: ...

    def stop(self) -> None: ...


class NoopCaptureBackend:
    """
    Backend for hosts where audio is captured by the rendering surface.

    The renderer records system audio itself (getDisplayMedia with audio, backed by
    ScreenCaptureKit on macOS), so nothing is acquired here and start never fails.
    """

    name = NOOP_BACKEND

    async def start(self, sink: ChunkSink, *, platform: str) -> None:
        if platform == "macos":
            LOGGER.log(
                AUDIO_LOG_LABEL, "macOS audio capture handled via ScreenCaptureKit in renderer"
            )
        else:
            LOGGER.log(AUDIO_LOG_LABEL, f"Audio capture handled in renderer ({platform})")

    def stop(self) -> None:
        return None


def _load_sounddevice() -> ModuleType:
    import sounddevice

    return sounddevice


class SoundDeviceCaptureBackend:
    """Capture interleaved int16 PCM chunks from a local input device via PortAudio."""

    name = SOUNDDEVICE_BACKEND

    def __init__(
        self,
        *,
        config: CaptureConfig = CAPTURE_CONFIG,
        channels: int = CAPTURE_CHANNELS,
        device: Optional[str] = AUDIO_INPUT_DEVICE,
        loader: Callable[[], ModuleType] = _load_sounddevice,
    ):
        self.config = config
        self.channels = channels
        self.device_override = device
        self._loader = loader
        self._sd: Any = None
        self.stream: Any = None
        self.loop: Optional[asyncio.AbstractEventLoop] = None
        self.sink: Optional[ChunkSink] = None
        self.generation = 0
        self.callback_count = 0
        self.input_device: Any = None

    async def start(self, sink: ChunkSink, *, platform: str) -> None:
        sd = self._sounddevice()
        self.loop = asyncio.get_running_loop()
        self.sink = sink
        self.callback_count = 0
        self.generation = sink.generation

        verbose_print("Initializing input stream...")
        verbose_print(f"  Platform: {platform}")
        verbose_print(f"  Sample rate: {self.config.sample_rate} Hz")
        verbose_print(f"  Channels: {self.channels}")
        verbose_print(f"  Chunk: {self.config.chunk_frames} frames")

        device = self._select_input_device(sd)
        self.input_device = device
        verbose_print(f"  Input device: {self._describe_device(sd, device)}")

        try:
            sd.check_input_settings(
                device=device,
                channels=self.channels,
                dtype=self.config.dtype,
                samplerate=self.config.sample_rate,
            )
        except Exception as exc:
            raise CaptureUnavailable(
                self.name,
                f"{self._describe_device(sd, device)} rejected "
                f"{self.config.sample_rate} Hz / {self.channels} channel(s): {exc}",
            ) from exc

        try:
            stream = sd.RawInputStream(
                samplerate=self.config.sample_rate,
                channels=self.channels,
                dtype=self.config.dtype,
                blocksize=self.config.chunk_frames,
                callback=self.callback,
                device=device,
            )
            stream.start()
        except Exception as exc:
            raise CaptureUnavailable(
                self.name,
                "unable to open the input stream; verify that a microphone is connected "
                "and that microphone access is granted",
            ) from exc

        self.stream = stream
        verbose_print("Input stream started")

    def stop(self) -> None:
        stream, self.stream = self.stream, None
        self.sink = None
        if stream is None:
            return
        try:
            stream.stop()
        finally:
            stream.close()
        verbose_print("Input stream closed")

    def callback(self, indata, frames, time_info, status) -> None:
        """
        PortAudio block callback. Runs on the audio thread, so the chunk is handed
        to the event loop instead of touching the controller directly.
        """
        self.callback_count += 1

        if status:
            LOGGER.log(AUDIO_LOG_LABEL, f"Input callback status: {status}", error=True)

        loop, sink = self.loop, self.sink
        if loop is None or sink is None:
            return
        # Tagged with the session it was captured for; the controller drops it if
        # that session has ended by the time the loop runs the delivery.
        loop.call_soon_threadsafe(
            sink.deliver_chunk, bytes(indata), time.time(), self.generation
        )

    def _sounddevice(self) -> Any:
        if self._sd is None:
            try:
                self._sd = self._loader()
            except (ImportError, OSError) as exc:
                raise CaptureUnavailable(self.name, f"PortAudio is not available: {exc}") from exc
        return self._sd

    def _select_input_device(self, sd: Any) -> Any:
        override = self._parse_device_override(self.device_override)
        if override is None:
            return None
        try:
            sd.query_devices(override)
        except Exception as exc:
            raise CaptureUnavailable(
                self.name, f"AUDIO_INPUT_DEVICE {override!r} is not recognized"
            ) from exc
        return override

    @staticmethod
    def _parse_device_override(value: Optional[str]):
        if not value:
            return None

        candidate = value.strip()
        if not candidate:
            return None

        try:
            return int(candidate)
        except ValueError:
            return candidate

    @staticmethod
    def _describe_device(sd: Any, device: Any) -> str:
        if device is None:
            return "system default"

        try:
            info = device_info_dict(sd.query_devices(device))
        except Exception:
            return str(device)
        name = info.get("name") or "Unknown device"
        index = info.get("index", device)
        return f"{name} (id {index})"


_BACKENDS: dict[str, Callable[[], CaptureBackend]] = {
    NOOP_BACKEND: NoopCaptureBackend,
    SOUNDDEVICE_BACKEND: SoundDeviceCaptureBackend,
}


def available_backends() -> tuple[str, ...]:
    return tuple(_BACKENDS)


def create_backend(name: str) -> CaptureBackend:
    """Instantiate the backend registered under ``name``."""

    key = name.strip().lower()
    try:
        factory = _BACKENDS[key]
    except KeyError:
        choices = ", ".join(_BACKENDS)
        raise ValueError(f"Unknown capture backend {name!r}. Choose from: {choices}.") from None
    return factory()


__all__ = [
    "CaptureBackend",
    "ChunkSink",
    "NOOP_BACKEND",
    "NoopCaptureBackend",
    "SOUNDDEVICE_BACKEND",
    "SoundDeviceCaptureBackend",
    "available_backends",
    "create_backend",
]
