"""Logging configuration and setup for chatbridge."""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from chatbridge.core.paths import MAIN_LOG_FILE

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(
    level: str = "INFO",
    directory: str | Path = "logs",
    max_size_mb: int = 10,
    backup_count: int = 5,
) -> None:
    """Configure root logger with file and console handlers.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        directory: Directory for log files.
        max_size_mb: Maximum size in MB before rotation.
        backup_count: Number of backup files to keep.
    """
    log_dir = Path(directory)
    log_dir.mkdir(parents=True, exist_ok=True)
    numeric_level = getattr(logging, level.upper())

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(numeric_level)

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    file_handler = RotatingFileHandler(
        log_dir / MAIN_LOG_FILE,
        maxBytes=max_size_mb * 1024 * 1024,
        backupCount=backup_count,
        encoding="utf-8",
    )
    file_handler.setLevel(numeric_level)
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)

    # Chatty third-party loggers
    for noisy in ("httpx", "apscheduler", "telegram.ext"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    logging.info(f"Logging initialized: level={level}, directory={log_dir}")


def setup_session_logger(
    session_id: str,
    directory: str | Path = "logs",
    max_size_mb: int = 10,
    backup_count: int = 5,
) -> logging.Logger:
    """Create a session-specific logger with its own log file.

    The logger still propagates to the root logger so session events also
    show up in the console and the main log.

    Args:
        session_id: Identifier of the session.
        directory: Directory for log files.
        max_size_mb: Maximum size in MB before rotation.
        backup_count: Number of backup files to keep.

    Returns:
        Configured logger instance for the session.
    """
    session_logger = get_session_logger(session_id)
    if session_logger.handlers:
        return session_logger

    log_dir = Path(directory) / "sessions"
    log_dir.mkdir(parents=True, exist_ok=True)

    session_logger.setLevel(logging.NOTSET)

    file_handler = RotatingFileHandler(
        log_dir / f"{session_id}.log",
        maxBytes=max_size_mb * 1024 * 1024,
        backupCount=backup_count,
        encoding="utf-8",
    )
    file_handler.setLevel(logging.NOTSET)
    file_handler.setFormatter(
        logging.Formatter(
            f"%(asctime)s - [{session_id}] %(levelname)s - %(message)s",
            datefmt=DATE_FORMAT,
        )
    )
    session_logger.addHandler(file_handler)
    return session_logger


def get_session_logger(session_id: str) -> logging.Logger:
    """Get the logger for a specific session."""
    return logging.getLogger(_session_logger_name(session_id))


def _session_logger_name(session_id: str) -> str:
    return f"chatbridge.session.{session_id}"


def close_session_logger(session_id: str) -> None:
    """Detach and close the file handlers of a session logger.

    The logger is also dropped from the logging manager so loggers of swept
    sessions do not pile up. Calling this for an unknown session is a no-op.
    """
    session_logger = logging.Logger.manager.loggerDict.pop(_session_logger_name(session_id), None)
    if not isinstance(session_logger, logging.Logger):
        return
    for handler in list(session_logger.handlers):
        session_logger.removeHandler(handler)
        handler.close()
