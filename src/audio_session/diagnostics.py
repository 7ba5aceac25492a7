"""
Helper routines for validating capture hardware outside the main run loop.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Optional

from audio_session.audio import AudioSessionController
from audio_session.audio.events import AudioChunkEvent, CaptureErrorEvent
from audio_session.audio.utils import chunk_rms, expected_chunk_bytes
from audio_session.cli.logging_utils import LOGGER, PROBE_LOG_LABEL
from audio_session.config import CAPTURE_CHANNELS, CAPTURE_CONFIG, CaptureConfig

PROGRESS_EVERY_CHUNKS = 10


@dataclass
class ProbeReport:
    chunks: int = 0
    total_bytes: int = 0
    peak_rms: float = 0.0
    expected_chunk_bytes: int = 0
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.chunks > 0


async def probe_audio_capture(
    controller: AudioSessionController,
    duration: float = 5.0,
    *,
    config: CaptureConfig = CAPTURE_CONFIG,
    channels: int = CAPTURE_CHANNELS,
) -> ProbeReport:
    """Capture for ``duration`` seconds and summarize what the backend delivered."""

    report = ProbeReport(expected_chunk_bytes=expected_chunk_bytes(config, channels))

    def _on_audio(event: AudioChunkEvent) -> None:
        report.chunks += 1
        report.total_bytes += len(event.buffer)
        report.peak_rms = max(report.peak_rms, chunk_rms(event.buffer))
        if report.chunks % PROGRESS_EVERY_CHUNKS == 0:
            LOGGER.log(
                PROBE_LOG_LABEL,
                f"Captured {report.chunks} chunks, {report.total_bytes:,} bytes",
            )

    def _on_error(event: CaptureErrorEvent) -> None:
        report.error = event.error

    unsubscribe_audio = controller.subscribe(AudioChunkEvent, _on_audio)
    unsubscribe_error = controller.subscribe(CaptureErrorEvent, _on_error)
    try:
        result = await controller.start()
        if not result.success:
            report.error = result.error
            return report

        LOGGER.log(PROBE_LOG_LABEL, f"Capturing audio for {duration:g} seconds...")
        await asyncio.sleep(duration)
    finally:
        controller.stop()
        unsubscribe_audio()
        unsubscribe_error()

    LOGGER.log(PROBE_LOG_LABEL, f"Total chunks: {report.chunks}")
    LOGGER.log(PROBE_LOG_LABEL, f"Total bytes: {report.total_bytes:,}")
    LOGGER.log(PROBE_LOG_LABEL, f"Expected bytes per chunk: {report.expected_chunk_bytes}")
    LOGGER.log(PROBE_LOG_LABEL, f"Peak RMS level: {report.peak_rms:.1f}")
    return report
