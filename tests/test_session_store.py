"""Tests for SessionRecord serialization and SessionStore persistence."""

import json
from datetime import UTC, datetime, timedelta

import pytest

from chatbridge.core.errors import SessionRecordError
from chatbridge.model.session import MessageStats, SessionRecord, SessionStatus
from chatbridge.runtime.session.store import SessionStore

CREATED = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)


def _record(session_id: str = "sess_1_0123456789abcdef", **kwargs) -> SessionRecord:
    defaults = {
        "state": SessionStatus.READY,
        "created_at": CREATED,
        "last_activity_at": CREATED,
        "message_stats": MessageStats(received=3, sent=2, errors=1),
    }
    defaults.update(kwargs)
    return SessionRecord(id=session_id, **defaults)


class TestSessionRecord:
    def test_to_dict_uses_camel_case(self):
        data = _record().to_dict()

        assert data == {
            "version": 1,
            "id": "sess_1_0123456789abcdef",
            "state": "ready",
            "createdAt": "2026-01-01T12:00:00+00:00",
            "lastActivityAt": "2026-01-01T12:00:00+00:00",
            "messageStats": {"received": 3, "sent": 2, "errors": 1},
            "isActive": True,
        }

    def test_from_dict_restores_record(self):
        record = SessionRecord.from_dict(_record().to_dict())

        assert record == _record()

    def test_unknown_fields_rejected(self):
        data = _record().to_dict()
        data["qrCode"] = "..."

        with pytest.raises(SessionRecordError, match="qrCode"):
            SessionRecord.from_dict(data)

    def test_unsupported_version_rejected(self):
        data = _record().to_dict()
        data["version"] = 2

        with pytest.raises(SessionRecordError, match="version"):
            SessionRecord.from_dict(data)

    def test_bad_state_rejected(self):
        data = _record().to_dict()
        data["state"] = "sleeping"

        with pytest.raises(SessionRecordError):
            SessionRecord.from_dict(data)

    def test_touch_never_moves_backwards(self):
        record = _record()

        record.touch(CREATED - timedelta(minutes=5))
        assert record.last_activity_at == CREATED

        record.touch(CREATED + timedelta(minutes=5))
        assert record.last_activity_at == CREATED + timedelta(minutes=5)


class TestSessionStore:
    def test_missing_file_loads_empty(self, tmp_path):
        assert SessionStore(tmp_path).load_records() == []

    def test_save_and_load_records(self, tmp_path):
        store = SessionStore(tmp_path)
        records = [_record("sess_1_0123456789abcdef"), _record("sess_2_0123456789abcdef", is_active=False)]

        store.save_records(records)

        assert store.load_records() == records
        assert not (tmp_path / "active-sessions.tmp").exists()

    def test_corrupted_file_loads_empty(self, tmp_path):
        (tmp_path / "active-sessions.json").write_text("{not json")

        assert SessionStore(tmp_path).load_records() == []

    def test_invalid_records_are_skipped(self, tmp_path):
        good = _record().to_dict()
        bad = {**_record("sess_9_0123456789abcdef").to_dict(), "extra": 1}
        (tmp_path / "active-sessions.json").write_text(json.dumps([good, bad]))

        records = SessionStore(tmp_path).load_records()

        assert [r.id for r in records] == ["sess_1_0123456789abcdef"]

    def test_history_round_trip(self, tmp_path):
        store = SessionStore(tmp_path)
        history = {"c1": [{"direction": "in", "text": "hi", "timestamp": CREATED.isoformat()}]}

        store.save_history("sess_1_0123456789abcdef", history)

        assert store.load_history("sess_1_0123456789abcdef") == history
        assert store.load_history("sess_2_0123456789abcdef") == {}

    def test_remove_session_data(self, tmp_path):
        store = SessionStore(tmp_path)
        session_dir = store.ensure_session_dir("sess_1_0123456789abcdef")
        (session_dir / "credentials").write_text("secret")
        store.save_history("sess_1_0123456789abcdef", {})

        store.remove_session_data("sess_1_0123456789abcdef")

        assert not session_dir.exists()
        assert store.load_history("sess_1_0123456789abcdef") == {}
        store.remove_session_data("sess_1_0123456789abcdef")
