"""Tests for the tracking session and scheduler lifecycle."""

import threading
from typing import Iterator
from unittest.mock import MagicMock

import pytest

from code_tracker.config import TrackerConfig
from code_tracker.observer import Document, EditAccumulator
from code_tracker.scheduler import Scheduler

HOUR = TrackerConfig(60 * 60 * 1000)
QUARTER = TrackerConfig(15 * 60 * 1000)


class FakeSource:
    """An edit source that hands notifications straight to its subscribers."""

    def __init__(self) -> None:
        self.callbacks: list = []
        self.subscriptions: list[MagicMock] = []

    def subscribe(self, callback):  # type: ignore[no-untyped-def]
        self.callbacks.append(callback)
        sub = MagicMock()
        self.subscriptions.append(sub)
        return sub

    def emit(self, path: str | None, **kwargs: object) -> None:
        self.callbacks[-1](Document(path=path, **kwargs))


@pytest.fixture
def source() -> FakeSource:
    return FakeSource()


@pytest.fixture
def seen() -> list[dict[str, int]]:
    return []


@pytest.fixture
def scheduler(source: FakeSource, seen: list[dict[str, int]]) -> Iterator[Scheduler]:
    notify = MagicMock()

    def cycle(acc: EditAccumulator) -> None:
        seen.append(acc.as_dict())

    sched = Scheduler(source, cycle, notify=notify, default_config=QUARTER)
    yield sched
    if sched.is_running:
        sched.stop(wait=True)


def test_stop_when_never_started(scheduler: Scheduler) -> None:
    assert scheduler.stop() is False
    assert scheduler.session is None
    scheduler._notify.assert_called_once_with("Activity tracker is not running.")  # type: ignore[attr-defined]


def test_double_start_is_a_noop(scheduler: Scheduler, source: FakeSource) -> None:
    assert scheduler.start() is True
    assert scheduler.start() is False

    assert len(source.subscriptions) == 1
    scheduler._notify.assert_called_with("Activity tracker is already running.")  # type: ignore[attr-defined]


def test_cycle_sees_edits_then_accumulator_is_cleared(
    scheduler: Scheduler, source: FakeSource, seen: list[dict[str, int]]
) -> None:
    scheduler.start()
    session = scheduler.session
    assert session is not None

    for _ in range(3):
        source.emit("/ws/a.txt")
    source.emit(None, scheme="untitled", is_untitled=True)
    session.request_cycle()
    session.wait_idle()

    assert seen == [{"/ws/a.txt": 3}]
    assert len(session.accumulator) == 0


def test_failed_cycle_keeps_activity_and_notifies(source: FakeSource) -> None:
    notify = MagicMock()
    cycle = MagicMock(side_effect=OSError("disk full"))
    scheduler = Scheduler(source, cycle, notify=notify, default_config=HOUR)
    scheduler.start()
    session = scheduler.session
    assert session is not None

    source.emit("/ws/a.txt")
    session.request_cycle()
    session.wait_idle()

    assert session.accumulator.as_dict() == {"/ws/a.txt": 1}
    notify.assert_called_with("Activity tracking error: disk full")
    scheduler.stop(wait=True)


def test_reconfigure_preserves_unflushed_activity(
    scheduler: Scheduler,
    source: FakeSource,
    seen: list[dict[str, int]],
    mocker: MagicMock,
) -> None:
    scheduler.start()
    old = scheduler.session
    assert old is not None
    source.emit("/ws/a.txt")
    source.emit("/ws/a.txt")
    stop_spy = mocker.spy(old, "stop")

    scheduler.reconfigure(HOUR)

    new = scheduler.session
    assert new is not None and new is not old
    assert stop_spy.call_count == 1
    assert not old.active
    source.subscriptions[0].dispose.assert_called_once()
    assert new.config == HOUR

    source.emit("/ws/b.txt")
    new.request_cycle()
    new.wait_idle()

    assert seen == [{"/ws/a.txt": 2, "/ws/b.txt": 1}]


def test_reconfigure_while_stopped_only_updates_default(scheduler: Scheduler) -> None:
    scheduler.reconfigure(HOUR)

    assert scheduler.session is None
    assert scheduler.default_config == HOUR


def test_no_cycle_starts_after_stop(source: FakeSource) -> None:
    started = threading.Event()
    release = threading.Event()
    calls = []

    def slow_cycle(acc: EditAccumulator) -> None:
        calls.append(acc.as_dict())
        started.set()
        release.wait(5)

    scheduler = Scheduler(source, slow_cycle, notify=MagicMock(), default_config=HOUR)
    scheduler.start()
    session = scheduler.session
    assert session is not None

    session.request_cycle()
    assert started.wait(5)

    scheduler.stop()
    assert session.request_cycle() is False

    release.set()
    session.join(5)
    assert len(calls) == 1


def test_overlapping_ticks_are_coalesced(source: FakeSource) -> None:
    started = threading.Event()
    release = threading.Event()
    calls = []

    def slow_cycle(acc: EditAccumulator) -> None:
        calls.append(1)
        started.set()
        release.wait(5)

    scheduler = Scheduler(source, slow_cycle, notify=MagicMock(), default_config=HOUR)
    scheduler.start()
    session = scheduler.session
    assert session is not None

    session.request_cycle()
    assert started.wait(5)

    assert session.request_cycle() is True
    assert session.request_cycle() is False

    release.set()
    session.wait_idle()
    assert len(calls) == 2
    scheduler.stop(wait=True)


def test_timer_drives_cycles(source: FakeSource) -> None:
    fired = threading.Event()
    scheduler = Scheduler(
        source,
        lambda acc: fired.set(),
        notify=MagicMock(),
        default_config=TrackerConfig(20),
    )
    scheduler.start()

    assert fired.wait(5)
    scheduler.stop(wait=True)


def test_tracker_config_rejects_non_positive() -> None:
    with pytest.raises(ValueError):
        TrackerConfig(0)
