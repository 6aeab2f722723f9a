import atexit
import logging
import os
import signal
import sys
import threading
from dataclasses import dataclass
from logging.handlers import RotatingFileHandler
from pathlib import Path
from types import FrameType

from . import github
from .config import Config, resolve_tracker_config
from .constants import APP_NAME, LOG_FILE, PID_FILE, STATE_DIR
from .diff_engine import DiffEngine
from .log_store import LogStore
from .observer import EditAccumulator, EditSource, WorkspaceWatcher
from .scheduler import Scheduler
from .state import StateStore
from .summary import build_summary
from .sync import SyncEngine, SyncError
from .system import read_pid, user_notify

logger = logging.getLogger(APP_NAME)
logger.setLevel(logging.INFO)


@dataclass
class Tracker:
    """The per-interval pipeline: summarize, write the log, sync.

    Attributes:
        store (LogStore): Where reports are written.
        engine (DiffEngine): Computes per-file changes.
        sync_engine (SyncEngine): Pushes the logs tree.
        workspace_root (Path | None): Root used to shorten report paths.
    """

    store: LogStore
    engine: DiffEngine
    sync_engine: SyncEngine
    workspace_root: Path | None = None

    def run_cycle(self, accumulator: EditAccumulator) -> None:
        """Runs one interval.

        A sync failure is reported but does not fail the cycle: the log file is
        already on disk and is pushed with the next successful sync.

        Raises:
            OSError: If the report cannot be written.
        """
        report = build_summary(accumulator, self.engine, self.workspace_root)
        self.store.write_report(report)
        try:
            self.sync_engine.sync()
        except SyncError as e:
            logger.error(f"SYNC ERROR: {e}")
            user_notify(f"Failed to push logs: {e}")


def build_tracker(
    config: Config, repo_url: str, token: str, workspace_root: Path | None = None
) -> Tracker:
    store = LogStore(config.storage.root)
    return Tracker(
        store=store,
        engine=DiffEngine(store.temp_dir),
        sync_engine=SyncEngine(
            store,
            repo_url,
            token,
            branch=config.sync.branch,
            remote_name=config.sync.remote_name,
        ),
        workspace_root=workspace_root,
    )


def build_watcher(workspace: Path, config: Config) -> WorkspaceWatcher:
    """Watches `workspace`, skipping the tracker's own storage and state."""
    return WorkspaceWatcher(workspace, ignore=(config.storage.root, STATE_DIR))


def connect(
    state: StateStore, config: Config, interactive: bool = False
) -> tuple[str, str]:
    """Acquires the credential and the remote repository URL.

    Returns:
        tuple[str, str]: (token, repo_url).

    Raises:
        github.AuthError: If no credential could be obtained.
        github.BootstrapError: If the repository could not be created.
    """
    token = github.get_token(state, interactive=interactive)
    repo_url = github.ensure_repository(
        state,
        token,
        config.sync.repo_name,
        config.sync.repo_description,
        config.sync.private,
    )
    return token, repo_url


def setup_logging(interactive: bool, max_log_size: int = 5 * 1024 * 1024) -> None:
    """Configures the logging subsystem.

    Args:
        interactive (bool): If True, logs to stdout. If False, logs to file/stderr
                            with rotation enabled.
        max_log_size (int): Bytes before the log file rotates.
    """
    formatter = logging.Formatter(
        "[%(asctime)s] %(levelname)s: %(message)s", "%Y-%m-%d %H:%M:%S"
    )

    stream_handler = logging.StreamHandler(
        sys.stderr if not interactive else sys.stdout
    )
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    if not interactive:
        file_handler = RotatingFileHandler(
            LOG_FILE,
            maxBytes=max_log_size,
            backupCount=5,
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)


def run(
    workspace: Path,
    state: StateStore | None = None,
    source: EditSource | None = None,
    interactive: bool = False,
) -> int:
    """Runs the tracker in the foreground until SIGTERM/SIGINT.

    SIGHUP re-reads the interval and restarts the session with it.

    Args:
        workspace (Path): The workspace directory whose edits are tracked.
        state (StateStore | None): Persisted state; defaults to the global store.
        source (EditSource | None): Edit source; defaults to a watcher on `workspace`.
        interactive (bool): Whether credential prompts are allowed.

    Returns:
        int: Process exit code.
    """
    config = Config.load()
    setup_logging(interactive, config.limits.max_log_size)
    state = state or StateStore()
    workspace = workspace.resolve()

    if read_pid() is not None:
        user_notify("Activity tracker is already running.")
        return 1

    try:
        token, repo_url = connect(state, config, interactive=interactive)
    except github.AuthError as e:
        logger.error(f"AUTH ERROR: {e}")
        user_notify(str(e))
        return 1
    except github.BootstrapError as e:
        logger.error(f"BOOTSTRAP ERROR: {e}")
        user_notify(f"Failed to initialize repository for tracking: {e}")
        return 1

    tracker = build_tracker(config, repo_url, token, workspace)
    scheduler = Scheduler(
        source or build_watcher(workspace, config),
        tracker.run_cycle,
        notify=user_notify,
        default_config=resolve_tracker_config(state, config),
    )

    shutdown = threading.Event()
    reload = threading.Event()

    def handle_stop(_signum: int, _frame: FrameType | None) -> None:
        shutdown.set()

    def handle_reload(_signum: int, _frame: FrameType | None) -> None:
        reload.set()

    signal.signal(signal.SIGTERM, handle_stop)
    signal.signal(signal.SIGINT, handle_stop)
    if hasattr(signal, "SIGHUP"):
        signal.signal(signal.SIGHUP, handle_reload)

    try:
        with open(PID_FILE, "w") as f:
            f.write(str(os.getpid()))
        atexit.register(lambda: PID_FILE.unlink(missing_ok=True))
    except OSError as e:
        logger.warning(f"Could not write PID file: {e}")

    scheduler.start()
    user_notify("Code tracking started successfully.")

    while not shutdown.is_set():
        shutdown.wait(1.0)
        if reload.is_set():
            reload.clear()
            Config._global_cache = None
            scheduler.reconfigure(resolve_tracker_config(state, Config.load()))

    scheduler.stop(wait=True)
    PID_FILE.unlink(missing_ok=True)
    return 0


def sync_once(state: StateStore | None = None) -> bool:
    """Pushes the existing logs tree once, outside of a session.

    Returns:
        bool: True if a commit was pushed.

    Raises:
        github.AuthError: If no credential is available.
        github.BootstrapError: If the repository could not be created.
        SyncError: If the push failed.
    """
    config = Config.load()
    state = state or StateStore()
    token, repo_url = connect(state, config)
    return build_tracker(config, repo_url, token).sync_engine.sync()
