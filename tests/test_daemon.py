"""Tests for the tracking cycle and foreground session start."""

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from code_tracker import daemon, github
from code_tracker.diff_engine import DiffEngine
from code_tracker.log_store import LogStore
from code_tracker.observer import EditAccumulator
from code_tracker.state import StateStore
from code_tracker.sync import SyncEngine, SyncError


@pytest.fixture
def tracker(tmp_path: Path) -> daemon.Tracker:
    store = LogStore(tmp_path / "storage")
    return daemon.Tracker(
        store=store,
        engine=DiffEngine(store.temp_dir),
        sync_engine=MagicMock(spec=SyncEngine),
        workspace_root=tmp_path / "ws",
    )


def test_run_cycle_writes_report_then_syncs(
    tmp_path: Path, tracker: daemon.Tracker
) -> None:
    workspace = tmp_path / "ws"
    workspace.mkdir()
    (workspace / "a.txt").write_text("x\ny\nz\n")
    acc = EditAccumulator({str(workspace / "a.txt"): 3})

    tracker.run_cycle(acc)

    logs = list(tracker.store.logs_dir.rglob("*.txt"))
    assert len(logs) == 1
    assert logs[0].read_text() == "File: a.txt, Changes: +3 -0"
    tracker.sync_engine.sync.assert_called_once()


def test_sync_failure_is_notified_not_raised(
    tracker: daemon.Tracker, mocker: MagicMock
) -> None:
    """The log file stays on disk and the cycle completes when the push fails."""
    tracker.sync_engine.sync.side_effect = SyncError("remote rejected")
    notify = mocker.patch("code_tracker.daemon.user_notify")

    tracker.run_cycle(EditAccumulator())

    notify.assert_called_once_with("Failed to push logs: remote rejected")
    assert len(list(tracker.store.logs_dir.rglob("*.txt"))) == 1


def test_report_write_failure_propagates(
    tracker: daemon.Tracker, mocker: MagicMock
) -> None:
    mocker.patch.object(tracker.store, "write_report", side_effect=OSError("disk full"))

    with pytest.raises(OSError):
        tracker.run_cycle(EditAccumulator())

    tracker.sync_engine.sync.assert_not_called()


@pytest.mark.parametrize(
    ("error", "expected"),
    [
        (github.AuthError("GitHub authentication is required to start tracking."),
         "GitHub authentication is required to start tracking."),
        (github.BootstrapError("quota"),
         "Failed to initialize repository for tracking: quota"),
    ],
)
def test_run_aborts_when_start_fails(
    tmp_path: Path, mocker: MagicMock, error: Exception, expected: str
) -> None:
    mocker.patch("code_tracker.daemon.setup_logging")
    mocker.patch("code_tracker.daemon.read_pid", return_value=None)
    mocker.patch("code_tracker.daemon.connect", side_effect=error)
    notify = mocker.patch("code_tracker.daemon.user_notify")
    scheduler_cls = mocker.patch("code_tracker.daemon.Scheduler")

    code = daemon.run(tmp_path, state=StateStore(tmp_path / "state.json"))

    assert code == 1
    notify.assert_called_once_with(expected)
    scheduler_cls.assert_not_called()


def test_run_refuses_second_instance(tmp_path: Path, mocker: MagicMock) -> None:
    mocker.patch("code_tracker.daemon.setup_logging")
    mocker.patch("code_tracker.daemon.read_pid", return_value=4242)
    connect = mocker.patch("code_tracker.daemon.connect")
    notify = mocker.patch("code_tracker.daemon.user_notify")

    assert daemon.run(tmp_path) == 1
    connect.assert_not_called()
    notify.assert_called_once_with("Activity tracker is already running.")


def test_connect_uses_sync_settings(tmp_path: Path, mocker: MagicMock) -> None:
    state = StateStore(tmp_path / "state.json")
    mocker.patch("code_tracker.daemon.github.get_token", return_value="tok")
    ensure = mocker.patch(
        "code_tracker.daemon.github.ensure_repository",
        return_value="https://github.com/u/r.git",
    )
    conf = daemon.Config()

    assert daemon.connect(state, conf) == ("tok", "https://github.com/u/r.git")
    ensure.assert_called_once_with(
        state, "tok", "code-tracking", "Daily activity tracker", True
    )


def test_watcher_skips_storage_and_state(tmp_path: Path) -> None:
    """Writing a report under a watched workspace is not counted as activity."""
    conf = daemon.Config()
    conf.storage.root = tmp_path / "storage"

    watcher = daemon.build_watcher(tmp_path, conf)

    assert (tmp_path / "storage").resolve() in watcher.ignore
    assert daemon.STATE_DIR.resolve() in watcher.ignore
    assert watcher.root == tmp_path.resolve()
