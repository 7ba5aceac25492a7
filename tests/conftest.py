import os

import pytest

_TEST_ENV_DEFAULTS = {
    "VERBOSE_LOG_CAPTURE_ENABLED": "0",
    "CAPTURE_BACKEND": "noop",
}

# Capture format overrides would shift the contract values the tests assert on.
_CAPTURE_ENV_KEYS = (
    "SAMPLE_RATE",
    "CHANNELS_MONO",
    "CHANNELS_STEREO",
    "BYTES_PER_SAMPLE",
    "CHUNK_DURATION",
    "MAX_QUEUE_SIZE",
    "MAX_BUFFER_SECONDS",
    "CAPTURE_CHANNELS",
    "AUDIO_INPUT_DEVICE",
)

for key in _CAPTURE_ENV_KEYS:
    os.environ.pop(key, None)

for key, value in _TEST_ENV_DEFAULTS.items():
    os.environ[key] = value


@pytest.fixture(autouse=True)
def set_test_env_vars(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep critical environment variables stable across tests."""

    for key, value in _TEST_ENV_DEFAULTS.items():
        monkeypatch.setenv(key, value)
    for key in _CAPTURE_ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


@pytest.fixture(autouse=True)
def quiet_logger():
    """Start every test with verbose console output disabled."""

    from audio_session.cli import logging_utils

    logging_utils.set_verbose_logging(False)
    logging_utils.set_chunk_progress_logging(False)
    yield
    logging_utils.set_verbose_logging(False)
    logging_utils.set_chunk_progress_logging(False)
