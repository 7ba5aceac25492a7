import pytest

from audio_session.audio.state import CaptureState
from audio_session.cli import logging_utils


@pytest.fixture(autouse=True)
def reset_verbose_log_capture():
    """Ensure each test starts with logging disabled and no open files."""

    logging_utils.configure_verbose_log_capture(None)
    yield
    logging_utils.configure_verbose_log_capture(None)


def test_logger_verbose_writes_to_disk_even_when_disabled(tmp_path):
    log_file = tmp_path / "logs" / "session.log"
    logging_utils.configure_verbose_log_capture(log_file)
    logging_utils.set_verbose_logging(False)

    logging_utils.LOGGER.verbose(
        logging_utils.STATE_LOG_LABEL,
        "hello",
        "world",
        end="!",
    )

    logging_utils.configure_verbose_log_capture(None)

    data = log_file.read_text(encoding="utf-8")
    assert "hello world" in data
    assert data.endswith("!")
    assert "\x1b" not in data


def test_verbose_lines_hidden_from_console_when_disabled(capsys):
    logging_utils.LOGGER.verbose(logging_utils.AUDIO_LOG_LABEL, "quiet")

    assert capsys.readouterr().out == ""


def test_state_transition_logs_when_capture_enabled(tmp_path):
    log_file = tmp_path / "session.log"
    logging_utils.configure_verbose_log_capture(log_file)

    logging_utils.log_state_transition(CaptureState.IDLE, CaptureState.ACTIVE, "start")

    logging_utils.configure_verbose_log_capture(None)

    contents = log_file.read_text(encoding="utf-8")
    assert "IDLE -> ACTIVE (start)" in contents


def test_state_transition_ignores_same_state(capsys):
    logging_utils.set_verbose_logging(True)

    logging_utils.log_state_transition(CaptureState.IDLE, CaptureState.IDLE, "noop")

    assert capsys.readouterr().out == ""


def test_state_transition_from_unknown_state(capsys):
    logging_utils.set_verbose_logging(True)

    logging_utils.log_state_transition(None, CaptureState.IDLE, "boot")

    assert "Entered IDLE (boot)" in capsys.readouterr().out


def test_per_session_capture_generates_iso_filename(tmp_path):
    log_dir = tmp_path / "logs"
    logging_utils.configure_verbose_log_capture(log_dir, per_session=True)
    path = logging_utils.current_verbose_log_path()
    logging_utils.configure_verbose_log_capture(None)

    assert path is not None
    assert path.parent == log_dir
    stem = path.stem
    assert "T" in stem
    assert stem[:4].isdigit()


def test_logger_log_includes_timestamp(capsys):
    logging_utils.LOGGER.log("TRACE", "plain output")

    out = capsys.readouterr().out.strip()
    assert out.startswith("[")
    assert "] [TRACE] plain output" in out


def test_logger_colors_known_labels(capsys):
    logging_utils.LOGGER.log(logging_utils.ERROR_LOG_LABEL, "bad", error=True)

    err = capsys.readouterr().err
    assert f"{logging_utils.COLOR_RED}[ERROR]{logging_utils.RESET} bad" in err


def test_logger_log_with_exc_info(capsys):
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        logging_utils.LOGGER.log(
            logging_utils.ERROR_LOG_LABEL,
            "Failure encountered",
            exc_info=True,
            error=True,
        )

    captured = capsys.readouterr()
    assert "RuntimeError: boom" in captured.err
    assert "Traceback" in captured.err


def test_logger_rejects_unknown_options():
    with pytest.raises(TypeError, match="Unsupported log option"):
        logging_utils.LOGGER.log("TRACE", "x", colour="red")  # type: ignore[call-arg]


def test_logger_requires_source():
    with pytest.raises(ValueError):
        logging_utils.LOGGER.log("", "x")


def test_strip_ansi_sequences():
    assert logging_utils.strip_ansi_sequences("\x1b[31mred\x1b[0m") == "red"


def test_chunk_progress_flag_round_trips():
    logging_utils.set_chunk_progress_logging(True)
    assert logging_utils.is_chunk_progress_logging_enabled() is True
    logging_utils.set_chunk_progress_logging(False)
    assert logging_utils.is_chunk_progress_logging_enabled() is False
