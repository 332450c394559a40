"""Tests for per-session log files."""

import logging

from chatbridge.core.logging import close_session_logger, get_session_logger, setup_session_logger


def test_session_logger_writes_own_file(tmp_path):
    session_id = "sess_1_0123456789abcdef"
    session_logger = setup_session_logger(session_id, directory=tmp_path)
    try:
        session_logger.warning("transport hiccup")
        for handler in session_logger.handlers:
            handler.flush()

        log_file = tmp_path / "sessions" / f"{session_id}.log"
        assert "transport hiccup" in log_file.read_text()
        assert f"[{session_id}]" in log_file.read_text()
    finally:
        close_session_logger(session_id)

    assert get_session_logger(session_id).handlers == []


def test_setup_is_idempotent(tmp_path):
    session_id = "sess_2_0123456789abcdef"
    try:
        first = setup_session_logger(session_id, directory=tmp_path)
        second = setup_session_logger(session_id, directory=tmp_path)

        assert first is second
        assert len(second.handlers) == 1
    finally:
        close_session_logger(session_id)


def test_close_drops_logger_from_manager(tmp_path):
    """Closed session loggers do not accumulate in the logging manager."""
    session_id = "sess_3_0123456789abcdef"
    setup_session_logger(session_id, directory=tmp_path)

    close_session_logger(session_id)

    assert f"chatbridge.session.{session_id}" not in logging.Logger.manager.loggerDict


def test_close_unknown_session_is_noop():
    session_id = "sess_4_0123456789abcdef"

    close_session_logger(session_id)

    assert f"chatbridge.session.{session_id}" not in logging.Logger.manager.loggerDict
