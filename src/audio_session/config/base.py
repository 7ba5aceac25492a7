"""
Shared configuration helpers and capture settings for audio-session.

Defaults live in ``config/defaults.toml`` and can be overridden via environment
variables or CLI flags.
"""

from __future__ import annotations

import os
import sys
from dataclasses import asdict, dataclass
from pathlib import Path

import tomllib
from dotenv import load_dotenv

PROJECT_ROOT = Path(__file__).resolve().parents[3]
DEFAULTS_PATH = PROJECT_ROOT / "config" / "defaults.toml"
ENV_PATH = PROJECT_ROOT / ".env"

load_dotenv(ENV_PATH)

if not DEFAULTS_PATH.exists():  # pragma: no cover - configuration issue
    raise FileNotFoundError(
        f"Missing configuration defaults at {DEFAULTS_PATH}. Ensure config/defaults.toml exists."
    )

with DEFAULTS_PATH.open("rb") as defaults_file:
    _DEFAULTS = tomllib.load(defaults_file)


def _coerce_path(value: str | Path) -> Path:
    path = Path(value).expanduser()
    if not path.is_absolute():
        path = (PROJECT_ROOT / path).resolve()
    return path


def _env_bool(name: str, default: bool = False) -> bool:
    """Return True when the env var is set to a truthy value."""

    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        _warn_invalid_env_value(name, value, default)
        return default


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        _warn_invalid_env_value(name, value, default)
        return default


def _env_path(name: str, default: str) -> Path:
    raw = os.getenv(name, default)
    return _coerce_path(raw)


def _warn_invalid_env_value(name: str, value: str | None, default: object) -> None:
    """Emit a warning when env overrides cannot be parsed."""

    sys.stderr.write(f"Invalid value for {name}={value!r}; falling back to {default!r}.\n")


_AUDIO = _DEFAULTS["audio"]

# PCM sample formats keyed by byte width; chunk sizes and levels assume int16.
SAMPLE_DTYPES: dict[int, str] = {2: "int16"}


@dataclass(frozen=True)
class CaptureConfig:
    """Audio format contract shared by capture backends and their consumers."""

    sample_rate: int
    channels_mono: int
    channels_stereo: int
    bytes_per_sample: int
    chunk_duration: float
    max_queue_size: int
    max_buffer_seconds: float

    @property
    def dtype(self) -> str:
        return SAMPLE_DTYPES[self.bytes_per_sample]

    @property
    def chunk_frames(self) -> int:
        return round(self.sample_rate * self.chunk_duration)

    @property
    def chunk_size_mono(self) -> int:
        return self.chunk_size(self.channels_mono)

    @property
    def chunk_size_stereo(self) -> int:
        return self.chunk_size(self.channels_stereo)

    @property
    def max_buffer_size(self) -> int:
        # Sized for a single channel regardless of the capture layout.
        return round(self.sample_rate * self.bytes_per_sample * self.max_buffer_seconds)

    def chunk_size(self, channels: int) -> int:
        """Bytes in one chunk of ``channels`` interleaved samples."""

        return round(self.sample_rate * self.bytes_per_sample * channels * self.chunk_duration)

    def as_dict(self) -> dict[str, float | int | str]:
        values: dict[str, float | int | str] = dict(asdict(self))
        values["dtype"] = self.dtype
        values["chunk_frames"] = self.chunk_frames
        values["chunk_size_mono"] = self.chunk_size_mono
        values["chunk_size_stereo"] = self.chunk_size_stereo
        values["max_buffer_size"] = self.max_buffer_size
        return values


def load_capture_config() -> CaptureConfig:
    """Build a :class:`CaptureConfig` from defaults.toml plus environment overrides."""

    default_width = _AUDIO["bytes_per_sample"]
    bytes_per_sample = _env_int("BYTES_PER_SAMPLE", default_width)
    if bytes_per_sample not in SAMPLE_DTYPES:
        _warn_invalid_env_value("BYTES_PER_SAMPLE", str(bytes_per_sample), default_width)
        bytes_per_sample = default_width

    return CaptureConfig(
        sample_rate=_env_int("SAMPLE_RATE", _AUDIO["sample_rate"]),
        channels_mono=_env_int("CHANNELS_MONO", _AUDIO["channels_mono"]),
        channels_stereo=_env_int("CHANNELS_STEREO", _AUDIO["channels_stereo"]),
        bytes_per_sample=bytes_per_sample,
        chunk_duration=_env_float("CHUNK_DURATION", _AUDIO["chunk_duration"]),
        max_queue_size=_env_int("MAX_QUEUE_SIZE", _AUDIO["max_queue_size"]),
        max_buffer_seconds=_env_float("MAX_BUFFER_SECONDS", _AUDIO["max_buffer_seconds"]),
    )


# Audio Configuration
CAPTURE_CONFIG = load_capture_config()
SAMPLE_RATE = CAPTURE_CONFIG.sample_rate
CHANNELS_MONO = CAPTURE_CONFIG.channels_mono
CHANNELS_STEREO = CAPTURE_CONFIG.channels_stereo
BYTES_PER_SAMPLE = CAPTURE_CONFIG.bytes_per_sample
CHUNK_DURATION = CAPTURE_CONFIG.chunk_duration
MAX_QUEUE_SIZE = CAPTURE_CONFIG.max_queue_size
MAX_BUFFER_SECONDS = CAPTURE_CONFIG.max_buffer_seconds
CHUNK_SIZE_MONO = CAPTURE_CONFIG.chunk_size_mono
CHUNK_SIZE_STEREO = CAPTURE_CONFIG.chunk_size_stereo
MAX_BUFFER_SIZE = CAPTURE_CONFIG.max_buffer_size

CAPTURE_CHANNELS = _env_int("CAPTURE_CHANNELS", _AUDIO.get("capture_channels", CHANNELS_MONO))
if CAPTURE_CHANNELS not in (CHANNELS_MONO, CHANNELS_STEREO):
    _warn_invalid_env_value("CAPTURE_CHANNELS", str(CAPTURE_CHANNELS), CHANNELS_MONO)
    CAPTURE_CHANNELS = CHANNELS_MONO
DTYPE = CAPTURE_CONFIG.dtype
AUDIO_INPUT_DEVICE = os.getenv("AUDIO_INPUT_DEVICE")

_CAPTURE = _DEFAULTS.get("capture", {})
CAPTURE_BACKEND = (os.getenv("CAPTURE_BACKEND") or _CAPTURE.get("backend", "noop")).strip()

_LOGGING = _DEFAULTS.get("logging", {})
VERBOSE_LOG_CAPTURE_ENABLED = _env_bool(
    "VERBOSE_LOG_CAPTURE_ENABLED", _LOGGING.get("verbose_capture_enabled", False)
)
if VERBOSE_LOG_CAPTURE_ENABLED:
    _DEFAULT_VERBOSE_DIR = _LOGGING.get("verbose_log_directory")
    default_verbose_dir = (
        _DEFAULT_VERBOSE_DIR.strip()
        if isinstance(_DEFAULT_VERBOSE_DIR, str) and _DEFAULT_VERBOSE_DIR.strip()
        else "logs"
    )

    VERBOSE_LOG_DIRECTORY: Path | None = _env_path("VERBOSE_LOG_DIRECTORY", default_verbose_dir)
else:
    VERBOSE_LOG_DIRECTORY = None

__all__ = [
    "PROJECT_ROOT",
    "DEFAULTS_PATH",
    "ENV_PATH",
    "_DEFAULTS",
    "_coerce_path",
    "_env_bool",
    "_env_int",
    "_env_float",
    "_env_path",
    "SAMPLE_DTYPES",
    "CaptureConfig",
    "load_capture_config",
    "CAPTURE_CONFIG",
    "SAMPLE_RATE",
    "CHANNELS_MONO",
    "CHANNELS_STEREO",
    "BYTES_PER_SAMPLE",
    "CHUNK_DURATION",
    "MAX_QUEUE_SIZE",
    "MAX_BUFFER_SECONDS",
    "CHUNK_SIZE_MONO",
    "CHUNK_SIZE_STEREO",
    "MAX_BUFFER_SIZE",
    "CAPTURE_CHANNELS",
    "DTYPE",
    "AUDIO_INPUT_DEVICE",
    "CAPTURE_BACKEND",
    "VERBOSE_LOG_CAPTURE_ENABLED",
    "VERBOSE_LOG_DIRECTORY",
]
