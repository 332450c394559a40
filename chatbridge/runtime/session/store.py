"""On-disk shadow of the session registry.

File layout under the data directory::

    active-sessions.json        list of session records
    sessions/<session_id>/      per-session working directory
    history/<session_id>.json   chat history snapshot (contact id -> turns)

All methods are synchronous and thread-safe; the registry calls them through
``asyncio.to_thread`` so file I/O never runs under its own lock.
"""

import json
import logging
import shutil
from pathlib import Path
from threading import Lock
from typing import Any

from chatbridge.core.errors import PersistenceError, SessionRecordError
from chatbridge.core.paths import HISTORY_DIR, SESSIONS_DIR, SESSIONS_FILE
from chatbridge.model.session import SessionRecord

logger = logging.getLogger(__name__)


def _atomic_write_json(path: Path, data: Any) -> None:
    """Write JSON via a temp file and rename so readers never see partial files."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(".tmp")
    with tmp_path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
    tmp_path.replace(path)


class SessionStore:
    """JSON persistence for session records, directories and history."""

    def __init__(self, data_dir: Path | str):
        self.data_dir = Path(data_dir)
        self._records_file = self.data_dir / SESSIONS_FILE
        self._sessions_dir = self.data_dir / SESSIONS_DIR
        self._history_dir = self.data_dir / HISTORY_DIR
        self._lock = Lock()

    def load_records(self) -> list[SessionRecord]:
        """Read persisted session records.

        Records that fail validation are skipped and logged. A missing or
        corrupted file yields an empty list.
        """
        with self._lock:
            if not self._records_file.exists():
                logger.debug(f"Session file does not exist: {self._records_file}")
                return []

            try:
                with self._records_file.open("r", encoding="utf-8") as f:
                    data = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                logger.error(f"Corrupted session file {self._records_file}: {e}")
                return []

        if not isinstance(data, list):
            logger.error(f"Invalid session file format (expected list): {self._records_file}")
            return []

        records = []
        for item in data:
            try:
                records.append(SessionRecord.from_dict(item))
            except SessionRecordError as e:
                logger.error(f"Skipping invalid session record: {e}")
        logger.debug(f"Loaded {len(records)} session record(s)")
        return records

    def save_records(self, records: list[SessionRecord]) -> None:
        """Replace the persisted record list.

        Raises:
            PersistenceError: If the file cannot be written.
        """
        payload = [record.to_dict() for record in records]
        with self._lock:
            try:
                _atomic_write_json(self._records_file, payload)
            except OSError as e:
                raise PersistenceError(f"Failed to save sessions to {self._records_file}: {e}") from e
        logger.debug(f"Saved {len(payload)} session record(s)")

    def session_dir(self, session_id: str) -> Path:
        return self._sessions_dir / session_id

    def ensure_session_dir(self, session_id: str) -> Path:
        path = self.session_dir(session_id)
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PersistenceError(f"Failed to create session directory {path}: {e}") from e
        return path

    def remove_session_data(self, session_id: str) -> None:
        """Delete the session's directory and history snapshot."""
        with self._lock:
            try:
                shutil.rmtree(self.session_dir(session_id), ignore_errors=False)
            except FileNotFoundError:
                pass
            except OSError as e:
                raise PersistenceError(f"Failed to remove session directory for {session_id}: {e}") from e
            self._history_file(session_id).unlink(missing_ok=True)

    def load_history(self, session_id: str) -> dict[str, list[dict[str, Any]]]:
        """Read a history snapshot. Missing or unreadable snapshots yield {}."""
        path = self._history_file(session_id)
        if not path.exists():
            return {}
        try:
            with path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Corrupted history snapshot {path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.error(f"Invalid history snapshot format (expected dict): {path}")
            return {}
        return data

    def save_history(self, session_id: str, history: dict[str, list[dict[str, Any]]]) -> None:
        """Write a history snapshot.

        Raises:
            PersistenceError: If the file cannot be written.
        """
        path = self._history_file(session_id)
        try:
            _atomic_write_json(path, history)
        except OSError as e:
            raise PersistenceError(f"Failed to save history to {path}: {e}") from e

    def _history_file(self, session_id: str) -> Path:
        return self._history_dir / f"{session_id}.json"
