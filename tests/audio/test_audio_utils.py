import math
from types import SimpleNamespace

import numpy as np
import pytest

from audio_session.audio import utils
from audio_session.config import CAPTURE_CONFIG


@pytest.mark.parametrize(
    ("system", "expected"),
    [
        ("Darwin", "macos"),
        ("Windows", "windows"),
        ("CYGWIN_NT-10.0-19045", "windows"),
        ("MINGW64_NT-10.0-22631", "windows"),
        ("MSYS_NT-10.0-22631", "windows"),
        ("Linux", "linux"),
        ("FreeBSD", "freebsd"),
        ("  ", "unknown"),
    ],
)
def test_detect_platform_normalizes_names(system, expected):
    assert utils.detect_platform(system) == expected


def test_detect_platform_queries_host(monkeypatch):
    monkeypatch.setattr(utils._platform, "system", lambda: "Darwin")

    assert utils.detect_platform() == "macos"


def test_device_info_dict_handles_mappings_and_objects():
    assert utils.device_info_dict({"name": "Mic"}) == {"name": "Mic"}
    assert utils.device_info_dict(SimpleNamespace(name="Mic", index=2)) == {
        "name": "Mic",
        "index": 2,
    }
    assert utils.device_info_dict(5) == {}


def test_chunk_rms_of_silence_is_zero():
    assert utils.chunk_rms(bytes(CAPTURE_CONFIG.chunk_size_mono)) == 0.0
    assert utils.chunk_rms(b"") == 0.0


def test_chunk_rms_matches_constant_signal():
    samples = np.full(16, -1000, dtype="<i2")

    assert math.isclose(utils.chunk_rms(samples.tobytes()), 1000.0)


def test_chunk_rms_ignores_trailing_odd_byte():
    samples = np.array([300, -300], dtype="<i2").tobytes() + b"\x7f"

    assert math.isclose(utils.chunk_rms(samples), 300.0)


def test_expected_chunk_bytes_follows_channel_count():
    assert utils.expected_chunk_bytes(CAPTURE_CONFIG, 1) == 4800  # noqa: PLR2004
    assert utils.expected_chunk_bytes(CAPTURE_CONFIG, 2) == 9600  # noqa: PLR2004
