"""Tests for the configuration and persisted state subsystem."""

import logging
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest

from code_tracker.config import (
    Config,
    TrackerConfig,
    parse_size,
    parse_time,
    resolve_tracker_config,
)
from code_tracker.constants import INTERVAL_KEY
from code_tracker.state import StateStore


@pytest.fixture(autouse=True)
def clear_config_cache() -> Any:
    """Ensures every test starts with a clean config cache."""
    Config._global_cache = None
    yield
    Config._global_cache = None


@pytest.fixture
def state(tmp_path: Path) -> StateStore:
    return StateStore(tmp_path / "state.json")


def test_config_defaults() -> None:
    """Verifies that the configuration initializes with sensible defaults."""
    conf = Config()
    assert conf.tracker.interval == 900  # Default 15 mins
    assert conf.sync.branch == "master"
    assert conf.sync.remote_name == "origin"
    assert conf.sync.private is True


def test_config_load_from_file(tmp_path: Path, mocker: MagicMock) -> None:
    config_path = tmp_path / "config.toml"
    config_path.write_text(
        '[tracker]\ninterval = "1h"\n'
        '[sync]\nbranch = "logs"\n'
        f'[storage]\nroot = "{tmp_path / "data"}"\n'
        '[limits]\nmax_log_size = "1mb"\n'
    )
    mocker.patch("code_tracker.config.CONFIG_FILE", config_path)

    conf = Config.load()

    assert conf.tracker.interval == 3600
    assert conf.sync.branch == "logs"
    assert conf.storage.root == tmp_path / "data"
    assert conf.limits.max_log_size == 1024 * 1024


def test_config_invalid_keys_and_values(
    tmp_path: Path, mocker: MagicMock, caplog: pytest.LogCaptureFixture
) -> None:
    """Verifies that unknown keys are ignored and invalid values fallback to defaults."""
    caplog.set_level(logging.WARNING)
    config_path = tmp_path / "config.toml"
    config_path.write_text(
        "[tracker]\n"
        'interval = "soon"\n'
        'fake_setting = "ignored"\n'
        "[limits]\n"
        'max_log_size = "10 gallons"\n'
    )
    mocker.patch("code_tracker.config.CONFIG_FILE", config_path)

    conf = Config.load()

    assert conf.tracker.interval == 900
    assert conf.limits.max_log_size == 5242880
    assert "Unknown config keys in [tracker]: fake_setting" in caplog.text
    assert "Config error in [tracker].interval: Invalid time format" in caplog.text
    assert "Config error in [limits].max_log_size: Invalid size format" in caplog.text


def test_config_syntax_error_uses_defaults(
    tmp_path: Path, mocker: MagicMock, caplog: pytest.LogCaptureFixture
) -> None:
    config_path = tmp_path / "config.toml"
    config_path.write_text("[tracker\ninterval = ")
    mocker.patch("code_tracker.config.CONFIG_FILE", config_path)

    conf = Config.load()

    assert conf.tracker.interval == 900
    assert "Config syntax error" in caplog.text


def test_parse_size() -> None:
    assert parse_size(100) == 100
    assert parse_size("100kb") == 102400
    assert parse_size("10 MB") == 10485760

    with pytest.raises(ValueError, match=r"Invalid size format '100 bits'"):
        parse_size("100 bits")


def test_parse_time() -> None:
    assert parse_time(50) == 50
    assert parse_time("15m") == 900
    assert parse_time("2 hrs") == 7200

    with pytest.raises(ValueError, match=r"Invalid time format '10 lightyears'"):
        parse_time("10 lightyears")


def test_interval_resolution_order(state: StateStore) -> None:
    """Persisted interval > config file > default."""
    conf = Config()
    assert resolve_tracker_config(state, conf) == TrackerConfig(15 * 60 * 1000)

    conf.tracker.interval = 1800
    assert resolve_tracker_config(state, conf) == TrackerConfig(30 * 60 * 1000)

    state.set(INTERVAL_KEY, 60 * 60 * 1000)
    assert resolve_tracker_config(state, conf).interval_seconds == 3600


def test_invalid_persisted_interval_falls_back(
    state: StateStore, caplog: pytest.LogCaptureFixture
) -> None:
    state.set(INTERVAL_KEY, -5)

    assert resolve_tracker_config(state, Config()) == TrackerConfig()
    assert f"Ignoring persisted {INTERVAL_KEY}" in caplog.text


def test_state_store_round_trip_and_removal(state: StateStore) -> None:
    assert state.get("repoUrl") is None

    state.set("repoUrl", "https://github.com/u/r.git")
    assert StateStore(state.path).get("repoUrl") == "https://github.com/u/r.git"

    state.set("repoUrl", None)
    assert state.get("repoUrl") is None
    assert not state.path.with_suffix(".tmp").exists()


def test_state_store_tolerates_corrupt_file(state: StateStore) -> None:
    state.path.write_text("{not json")

    assert state.get("repoUrl", "fallback") == "fallback"
