"""Central data-directory path constants.

Single source of truth for the files the registry shadows its state into.
All paths are relative to the configured data directory.
"""

from pathlib import PurePosixPath

# ---------------------------------------------------------------------------
# Session shadow state
# ---------------------------------------------------------------------------

SESSIONS_FILE = PurePosixPath("active-sessions.json")
SESSIONS_DIR = PurePosixPath("sessions")

# ---------------------------------------------------------------------------
# Chat history snapshots
# ---------------------------------------------------------------------------

HISTORY_DIR = PurePosixPath("history")

# ---------------------------------------------------------------------------
# Logs
# ---------------------------------------------------------------------------

MAIN_LOG_FILE = "chatbridge.log"
