import asyncio

import pytest

from audio_session.cli import app
from audio_session.core.exceptions import CaptureUnavailable


def test_parse_args_defaults():
    args = app.parse_args([])

    assert args.mode == "run"
    assert args.verbose is False
    assert args.log_chunks is False
    assert args.backend is None
    assert args.duration is None


def test_parse_args_invalid_mode():
    with pytest.raises(SystemExit):
        app.parse_args(["record"])


def test_parse_args_rejects_unknown_backend():
    with pytest.raises(SystemExit):
        app.parse_args(["run", "--backend", "audiotee"])


@pytest.mark.parametrize("value", ["0", "-1", "later"])
def test_parse_args_rejects_bad_duration(value):
    with pytest.raises(SystemExit):
        app.parse_args(["run", "--duration", value])


def test_parse_args_reads_sys_argv(monkeypatch):
    monkeypatch.setattr(app.sys, "argv", ["audio-session", "info", "-v"])

    args = app.parse_args()

    assert args.mode == "info"
    assert args.verbose is True


@pytest.mark.asyncio
async def test_run_capture_with_duration_starts_and_stops(capsys):
    chunks = await app.run_capture(backend="noop", duration=0.01)

    out = capsys.readouterr().out
    assert chunks == 0
    assert "Starting capture session (backend: noop)" in out
    assert "Capture session ended after 0 chunks" in out


@pytest.mark.asyncio
async def test_run_capture_stops_when_cancelled(monkeypatch):
    controllers = []
    real_factory = app.create_session_controller

    def recording_factory(backend):
        controller = real_factory(backend, platform="linux")
        controllers.append(controller)
        return controller

    monkeypatch.setattr(app, "create_session_controller", recording_factory)

    task = asyncio.create_task(app.run_capture(backend="noop"))
    await asyncio.sleep(0.01)
    assert controllers[0].is_capturing is True

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert controllers[0].is_capturing is False


def test_main_info_prints_contract(capsys):
    app.main(["info"])

    out = capsys.readouterr().out
    assert "sample_rate: 24000" in out
    assert "chunk_size_stereo: 9600" in out
    assert "max_buffer_size: 48000" in out
    assert "backends: noop, sounddevice" in out


def test_main_run_with_duration(capsys):
    app.main(["run", "--duration", "0.01"])

    assert "Capture stopped" in capsys.readouterr().out


def test_main_test_audio_uses_sounddevice_by_default(monkeypatch):
    received = {}

    async def fake_probe(*, backend, duration):
        received["backend"] = backend
        received["duration"] = duration

    monkeypatch.setattr(app, "run_probe", fake_probe)

    app.main(["test-audio"])

    assert received == {"backend": "sounddevice", "duration": app.DEFAULT_PROBE_SECONDS}


def test_main_exits_when_capture_unavailable(monkeypatch, capsys):
    async def failing_probe(*, backend, duration):
        raise CaptureUnavailable(backend, "no input devices")

    monkeypatch.setattr(app, "run_probe", failing_probe)

    with pytest.raises(SystemExit) as excinfo:
        app.main(["test-audio", "--duration", "1"])

    assert excinfo.value.code == 1
    assert "no input devices" in capsys.readouterr().err


def test_main_reports_unexpected_errors(monkeypatch, capsys):
    async def broken_info():
        raise RuntimeError("boom")

    monkeypatch.setattr(app, "show_info", broken_info)

    with pytest.raises(SystemExit) as excinfo:
        app.main(["info"])

    assert excinfo.value.code == 1
    assert "CLI error: boom" in capsys.readouterr().err


def test_main_sets_logging_flags(monkeypatch):
    calls = {}
    monkeypatch.setattr(app, "set_verbose_logging", lambda value: calls.setdefault("v", value))
    monkeypatch.setattr(
        app, "set_chunk_progress_logging", lambda value: calls.setdefault("c", value)
    )

    app.main(["info", "--verbose", "--log-chunks"])

    assert calls == {"v": True, "c": True}


@pytest.mark.asyncio
async def test_run_probe_raises_backend_failure(monkeypatch):
    class _FailingBackend:
        name = "failing"

        async def start(self, sink, *, platform):
            raise CaptureUnavailable(self.name, "denied")

        def stop(self):
            return None

    with pytest.raises(CaptureUnavailable, match="denied"):
        await app.run_probe(backend=_FailingBackend(), duration=0.01)


@pytest.mark.asyncio
async def test_run_probe_warns_when_no_audio_arrives(capsys):
    await app.run_probe(backend="noop", duration=0.01)

    assert "No audio data received" in capsys.readouterr().err
