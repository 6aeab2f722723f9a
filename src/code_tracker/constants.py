import os
from pathlib import Path

"""Global constants and path definitions for Code Tracker.

This module defines the filesystem layout (adhering to XDG standards where applicable),
application identifiers, persisted state keys, and the default tracking values used
across the application.
"""

# --- Identity ---
APP_NAME = "code-tracker"
"""str: The human-readable application name."""

# --- Paths ---
_XDG_STATE = os.environ.get("XDG_STATE_HOME")
_BASE_STATE = Path(_XDG_STATE) if _XDG_STATE else Path.home() / ".local/state"

STATE_DIR = _BASE_STATE / "code-tracker"
"""Path: The directory for runtime state data (daemon log, pid, persisted state)."""

# Ensure state directory exists immediately upon module import.
STATE_DIR.mkdir(parents=True, exist_ok=True)

_XDG_DATA = os.environ.get("XDG_DATA_HOME")
_BASE_DATA = Path(_XDG_DATA) if _XDG_DATA else Path.home() / ".local/share"

STORAGE_ROOT = _BASE_DATA / "code-tracker"
"""Path: The per-installation storage root holding logs, snapshots and the repo."""

LOG_FILE = STATE_DIR / "daemon.log"
"""Path: The file path for the tracker process logs."""

PID_FILE = STATE_DIR / "tracker.pid"
"""Path: The file path storing the running tracker's process ID."""

STATE_FILE = STATE_DIR / "state.json"
"""Path: The key-value store persisted across sessions."""

# --- Configuration Paths ---
CONFIG_DIR: Path = Path.home() / ".config/code-tracker"
"""Path: The directory for user configuration files."""

CONFIG_FILE: Path = CONFIG_DIR / "config.toml"
"""Path: The main configuration file path."""

# --- Persisted State Keys ---
TOKEN_KEY = "githubAccessToken"
REPO_URL_KEY = "repoUrl"
INTERVAL_KEY = "trackerInterval"

# --- Tracking ---
DEFAULT_INTERVAL_MS = 15 * 60 * 1000
"""int: Default tracking interval (15 minutes), in milliseconds."""

INTERVAL_CHOICES = {
    "5m": 5 * 60 * 1000,
    "15m": 15 * 60 * 1000,
    "30m": 30 * 60 * 1000,
    "1h": 60 * 60 * 1000,
    "2h": 2 * 60 * 60 * 1000,
}
"""dict[str, int]: The interval menu offered by the `interval` command."""

NO_ACTIVITY = "No activity in the last 30 minutes."
"""str: The report written when no file was edited during an interval."""

# --- Git ---
SYNC_BRANCH = "master"
"""str: The remote branch that receives the force-pushed logs."""

GIT_INDEX_LOCK = "index.lock"
"""str: Lock file left behind in .git by a crashed git process."""

COMMIT_AUTHOR = ("Code Tracker", "code-tracker@users.noreply.github.com")
"""tuple[str, str]: Repository-local user.name and user.email for log commits."""

REPO_NAME = "code-tracking"
REPO_DESCRIPTION = "Daily activity tracker"
