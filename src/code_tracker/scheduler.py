"""Drives tracking cycles on a fixed interval.

A `TrackerSession` owns everything that lives between start and stop: the
observer subscription, the accumulator, a ticker thread and a single worker
thread. Edit notifications and timer ticks are posted to the worker's queue,
so edits and cycles never run concurrently and an edit that arrives while a
cycle is running is counted in the next cycle.
"""

import logging
import queue
import threading
from typing import Any, Callable

from .config import TrackerConfig
from .constants import APP_NAME
from .observer import ChangeObserver, Document, EditAccumulator, EditSource

logger = logging.getLogger(APP_NAME)

Cycle = Callable[[EditAccumulator], None]
Notify = Callable[[str], None]

_EDIT = "edit"
_TICK = "tick"
_STOP = "stop"


def _log_notify(message: str) -> None:
    logger.info(message)


class TrackerSession:
    """One active tracking session.

    Attributes:
        config (TrackerConfig): The interval this session ticks at.
        observer (ChangeObserver): Holds the session's accumulator.
    """

    def __init__(
        self,
        config: TrackerConfig,
        source: EditSource,
        cycle: Cycle,
        notify: Notify = _log_notify,
        accumulator: EditAccumulator | None = None,
    ):
        self.config = config
        self.observer = ChangeObserver(accumulator)
        self._source = source
        self._cycle = cycle
        self._notify = notify
        self._queue: queue.Queue[tuple[str, Any]] = queue.Queue()
        self._stopped = threading.Event()
        self._tick_pending = threading.Event()
        self._subscription = None
        self._worker = threading.Thread(
            target=self._run, name="tracker-worker", daemon=True
        )
        self._ticker = threading.Thread(
            target=self._tick_loop, name="tracker-ticker", daemon=True
        )

    @property
    def accumulator(self) -> EditAccumulator:
        return self.observer.accumulator

    @property
    def active(self) -> bool:
        return self._worker.is_alive() and not self._stopped.is_set()

    def start(self) -> None:
        self._subscription = self._source.subscribe(self.post_edit)
        self._worker.start()
        self._ticker.start()
        logger.info(
            f"SESSION: Started (interval {self.config.interval_seconds:g}s)."
        )

    def post_edit(self, document: Document) -> None:
        """Queues an edit notification for the worker."""
        if not self._stopped.is_set():
            self._queue.put((_EDIT, document))

    def request_cycle(self) -> bool:
        """Queues a cycle unless one is already waiting.

        Returns:
            bool: False if the request was coalesced into a pending tick.
        """
        if self._stopped.is_set():
            return False
        if self._tick_pending.is_set():
            logger.debug("SESSION: Tick skipped, previous cycle still pending.")
            return False
        self._tick_pending.set()
        self._queue.put((_TICK, None))
        return True

    def wait_idle(self) -> None:
        """Blocks until every queued message has been processed."""
        self._queue.join()

    def stop(self) -> None:
        """Disarms the timer and releases the subscription.

        Safe to call mid-cycle: the running cycle completes, but no further
        cycle starts.
        """
        if self._stopped.is_set():
            return
        self._stopped.set()
        if self._subscription is not None:
            self._subscription.dispose()
            self._subscription = None
        self._queue.put((_STOP, None))
        logger.info("SESSION: Stopped.")

    def join(self, timeout: float | None = None) -> None:
        if self._worker.is_alive():
            self._worker.join(timeout)
        if self._ticker.is_alive():
            self._ticker.join(timeout)

    def _tick_loop(self) -> None:
        while not self._stopped.wait(self.config.interval_seconds):
            self.request_cycle()

    def _run(self) -> None:
        while True:
            kind, payload = self._queue.get()
            try:
                if kind == _STOP:
                    return
                if kind == _EDIT:
                    self.observer.handle(payload)
                elif kind == _TICK:
                    self._tick_pending.clear()
                    if not self._stopped.is_set():
                        self._run_cycle()
            finally:
                self._queue.task_done()

    def _run_cycle(self) -> None:
        try:
            self._cycle(self.accumulator)
        except Exception as e:
            logger.exception("CYCLE ERROR")
            self._notify(f"Activity tracking error: {e}")
            return
        self.accumulator.clear()


class Scheduler:
    """Starts, stops and reconfigures the tracking session.

    Attributes:
        default_config (TrackerConfig): Used when `start` is given no interval.
    """

    def __init__(
        self,
        source: EditSource,
        cycle: Cycle,
        notify: Notify = _log_notify,
        default_config: TrackerConfig | None = None,
    ):
        self.default_config = default_config or TrackerConfig()
        self._source = source
        self._cycle = cycle
        self._notify = notify
        self._session: TrackerSession | None = None
        self._lock = threading.RLock()

    @property
    def session(self) -> TrackerSession | None:
        return self._session

    @property
    def is_running(self) -> bool:
        return self._session is not None

    def start(
        self,
        config: TrackerConfig | None = None,
        accumulator: EditAccumulator | None = None,
    ) -> bool:
        """Starts a session.

        Args:
            config (TrackerConfig | None): Interval to use; defaults to
                `default_config`.
            accumulator (EditAccumulator | None): Unflushed activity to carry in.

        Returns:
            bool: False if a session was already active.
        """
        with self._lock:
            if self._session is not None:
                self._notify("Activity tracker is already running.")
                return False

            session = TrackerSession(
                config or self.default_config,
                self._source,
                self._cycle,
                self._notify,
                accumulator,
            )
            session.start()
            self._session = session
            return True

    def stop(self, wait: bool = False) -> bool:
        """Stops the active session.

        Args:
            wait (bool): Block until an in-flight cycle has finished.

        Returns:
            bool: False if no session was active.
        """
        with self._lock:
            session = self._session
            if session is None:
                self._notify("Activity tracker is not running.")
                return False
            self._session = None
            session.stop()
            if wait:
                session.join()
            self._notify("Activity tracker stopped.")
            return True

    def reconfigure(self, config: TrackerConfig) -> None:
        """Restarts the active session with a new interval.

        Activity accumulated but not yet flushed carries over into the new
        session. When no session is active only the default is updated.
        """
        with self._lock:
            self.default_config = config
            session = self._session
            if session is None:
                return

            self._session = None
            session.stop()
            session.join()
            logger.info(f"SESSION: Interval changed to {config.interval_seconds:g}s.")
            self.start(config, session.accumulator)
