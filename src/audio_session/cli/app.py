"""
Audio capture session runner.

Starts a capture session on the selected backend, reports lifecycle events and
stops cleanly on Ctrl+C.
"""

import argparse
import asyncio
import sys
from functools import partial
from typing import Optional

from audio_session.audio import create_session_controller
from audio_session.audio.backends import SOUNDDEVICE_BACKEND, CaptureBackend, available_backends
from audio_session.audio.events import AudioChunkEvent, CaptureStoppedEvent
from audio_session.audio.utils import detect_platform
from audio_session.cli.logging_utils import (
    AUDIO_LOG_LABEL,
    CONTROL_LOG_LABEL,
    ERROR_LOG_LABEL,
    LOGGER,
    SYSTEM_LOG_LABEL,
    is_chunk_progress_logging_enabled,
    set_chunk_progress_logging,
    set_verbose_logging,
)
from audio_session.config import CAPTURE_BACKEND, CAPTURE_CHANNELS, CAPTURE_CONFIG
from audio_session.core.exceptions import CaptureUnavailable
from audio_session.diagnostics import probe_audio_capture
from audio_session.session_services import CaptureSessionService

CHUNK_PROGRESS_INTERVAL = 100
DEFAULT_PROBE_SECONDS = 5.0


async def run_capture(*, backend: str = CAPTURE_BACKEND, duration: Optional[float] = None) -> int:
    """
    Run a capture session until cancelled (or for ``duration`` seconds).

    Returns the number of audio chunks observed.
    """
    LOGGER.log(SYSTEM_LOG_LABEL, f"Starting capture session (backend: {backend})")

    controller = create_session_controller(backend)
    service = CaptureSessionService(controller)
    chunk_count = 0

    def _on_audio(event: AudioChunkEvent) -> None:
        nonlocal chunk_count
        chunk_count += 1
        if is_chunk_progress_logging_enabled() and chunk_count % CHUNK_PROGRESS_INTERVAL == 0:
            LOGGER.verbose(AUDIO_LOG_LABEL, f"Received {chunk_count} chunks")

    def _on_stopped(_event: CaptureStoppedEvent) -> None:
        LOGGER.log(CONTROL_LOG_LABEL, f"Capture session ended after {chunk_count} chunks")

    controller.subscribe(AudioChunkEvent, _on_audio)
    controller.subscribe(CaptureStoppedEvent, _on_stopped)

    await service.start()
    try:
        if duration is None:
            await asyncio.Event().wait()
        else:
            await asyncio.sleep(duration)
    finally:
        await service.stop()
    return chunk_count


async def run_probe(
    *, backend: str | CaptureBackend = SOUNDDEVICE_BACKEND, duration: float
) -> None:
    """Verify that the backend delivers audio chunks."""

    controller = create_session_controller(backend)
    report = await probe_audio_capture(controller, duration)
    if report.error is not None:
        raise report.error
    if report.chunks == 0:
        LOGGER.log(ERROR_LOG_LABEL, "Warning: No audio data received", error=True)


async def show_info() -> None:
    """Print the capture format contract and host details."""

    LOGGER.log(SYSTEM_LOG_LABEL, f"platform: {detect_platform()}")
    LOGGER.log(SYSTEM_LOG_LABEL, f"backends: {', '.join(available_backends())}")
    LOGGER.log(SYSTEM_LOG_LABEL, f"default backend: {CAPTURE_BACKEND}")
    LOGGER.log(SYSTEM_LOG_LABEL, f"capture channels: {CAPTURE_CHANNELS}")
    for key, value in CAPTURE_CONFIG.as_dict().items():
        LOGGER.log(SYSTEM_LOG_LABEL, f"{key}: {value}")


def _positive_float(value: str) -> float:
    try:
        parsed = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Expected a number of seconds, got {value!r}.") from None
    if parsed <= 0:
        raise argparse.ArgumentTypeError("Duration must be greater than zero.")
    return parsed


def parse_args(argv: Optional[list[str]] = None):
    """Parse CLI arguments."""

    parser = argparse.ArgumentParser(description="Audio capture session controller.")
    parser.add_argument(
        "mode",
        nargs="?",
        choices=["run", "test-audio", "info"],
        default="run",
        help="Select an execution mode (default: run)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show detailed diagnostic logs (state changes, device setup, etc.).",
    )
    parser.add_argument(
        "--log-chunks",
        action="store_true",
        help="Emit per-100 chunk counters inside verbose logs.",
    )
    parser.add_argument(
        "--backend",
        choices=available_backends(),
        help=(
            f"Capture backend to drive. Defaults to {CAPTURE_BACKEND} for 'run' "
            f"(override via CAPTURE_BACKEND) and {SOUNDDEVICE_BACKEND} for 'test-audio'."
        ),
    )
    parser.add_argument(
        "--duration",
        type=_positive_float,
        help=(
            "Stop after this many seconds. 'run' keeps capturing until Ctrl+C when omitted; "
            f"'test-audio' defaults to {DEFAULT_PROBE_SECONDS:g}."
        ),
    )
    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None):
    """Main entry point"""

    args = parse_args(argv)

    set_verbose_logging(args.verbose)
    set_chunk_progress_logging(args.log_chunks)
    if args.mode == "info":
        run_func = show_info
    elif args.mode == "test-audio":
        run_func = partial(
            run_probe,
            backend=args.backend or SOUNDDEVICE_BACKEND,
            duration=args.duration or DEFAULT_PROBE_SECONDS,
        )
    else:
        run_func = partial(
            run_capture,
            backend=args.backend or CAPTURE_BACKEND,
            duration=args.duration,
        )

    try:
        asyncio.run(run_func())
    except KeyboardInterrupt:
        LOGGER.log(SYSTEM_LOG_LABEL, "Shutdown requested")
    except CaptureUnavailable as e:
        LOGGER.log(ERROR_LOG_LABEL, str(e), error=True)
        sys.exit(1)
    except Exception as e:
        LOGGER.log(ERROR_LOG_LABEL, f"CLI error: {e}", error=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
