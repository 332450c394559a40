"""Tests for session identifier generation."""

from chatbridge.core.session_id import generate_session_id, is_valid_session_id


def test_format():
    session_id = generate_session_id()

    assert is_valid_session_id(session_id)
    prefix, timestamp, suffix = session_id.split("_")
    assert prefix == "sess"
    assert timestamp.isdigit()
    assert len(suffix) == 16


def test_ids_are_unique_and_timestamps_non_decreasing():
    ids = [generate_session_id() for _ in range(500)]

    assert len(set(ids)) == len(ids)
    timestamps = [int(session_id.split("_")[1]) for session_id in ids]
    assert timestamps == sorted(timestamps)


def test_rejects_malformed_ids():
    for bad in ("", "sess_1_abc", "session_123_0123456789abcdef", "sess_12_0123456789ABCDEF", "../etc"):
        assert not is_valid_session_id(bad)
