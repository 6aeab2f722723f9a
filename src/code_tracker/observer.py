"""Edit observation: the per-interval accumulator and the sources feeding it.

An editing session reports every change to an open document. The observer
keeps a count per real file path until the scheduler flushes it; untitled or
virtual buffers never reach the accumulator.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Iterator, Protocol

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .constants import APP_NAME

logger = logging.getLogger(APP_NAME)


@dataclass(frozen=True)
class Document:
    """A buffer reported by the editing session.

    Attributes:
        path (str | None): Absolute filesystem path, if the buffer has one.
        scheme (str): URI scheme of the buffer ('file' for on-disk files).
        is_untitled (bool): True for unsaved buffers that were never written.
    """

    path: str | None
    scheme: str = "file"
    is_untitled: bool = False


EditCallback = Callable[[Document], None]


class Subscription(Protocol):
    def dispose(self) -> None: ...


class EditSource(Protocol):
    """Anything that can deliver document-change notifications."""

    def subscribe(self, callback: EditCallback) -> Subscription: ...


class EditAccumulator:
    """Edit-event counts per absolute path since the last flush.

    Only paths with at least one recorded edit are present as keys; `clear`
    removes the keys rather than zeroing them.
    """

    def __init__(self, counts: dict[str, int] | None = None):
        self._counts: dict[str, int] = dict(counts or {})

    def record(self, path: str) -> None:
        self._counts[path] = self._counts.get(path, 0) + 1

    def count(self, path: str) -> int:
        return self._counts.get(path, 0)

    def paths(self) -> list[str]:
        """Returns tracked paths in first-edit order."""
        return list(self._counts)

    def as_dict(self) -> dict[str, int]:
        return dict(self._counts)

    def clear(self) -> None:
        self._counts.clear()

    def __len__(self) -> int:
        return len(self._counts)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._counts))

    def __contains__(self, path: object) -> bool:
        return path in self._counts

    def __repr__(self) -> str:
        return f"EditAccumulator({self._counts!r})"


class ChangeObserver:
    """Turns document-change notifications into accumulator entries."""

    def __init__(self, accumulator: EditAccumulator | None = None):
        self.accumulator = accumulator if accumulator is not None else EditAccumulator()

    def handle(self, document: Document) -> None:
        if document.is_untitled or document.scheme != "file":
            return
        if not document.path:
            return
        self.accumulator.record(document.path)


class _WatchdogHandler(FileSystemEventHandler):
    def __init__(self, callback: EditCallback, ignore: Iterable[Path] = ()):
        super().__init__()
        self._callback = callback
        self._ignore = tuple(ignore)

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._dispatch_edit(event.src_path)

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._dispatch_edit(event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        # Atomic saves write a temp file and rename it over the target.
        if not event.is_directory:
            self._dispatch_edit(event.dest_path)

    def _dispatch_edit(self, raw_path: str | bytes) -> None:
        if isinstance(raw_path, bytes):
            raw_path = raw_path.decode(errors="replace")
        path = Path(raw_path).absolute()
        if ".git" in path.parts:
            return
        if any(path.is_relative_to(root) for root in self._ignore):
            return
        self._callback(Document(path=str(path)))


class _WatchSubscription:
    def __init__(self, observer: Observer):
        self._observer = observer
        self._disposed = False

    def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        self._observer.stop()
        self._observer.join()


class WorkspaceWatcher:
    """An edit source backed by a watchdog observer over a workspace directory.

    Each file creation, modification or rename-into-place under `root` is
    reported as an edit of that file. Directory events, anything inside a
    `.git` directory and anything under an `ignore` root are skipped; the
    tracker's own storage is passed as `ignore` so that writing a report is
    not counted as activity.

    Attributes:
        root (Path): The workspace directory being watched.
        ignore (tuple[Path, ...]): Directories whose events are dropped.
    """

    def __init__(self, root: Path, ignore: Iterable[Path] = ()):
        self.root = root.resolve()
        self.ignore = tuple(p.resolve() for p in ignore)

    def subscribe(self, callback: EditCallback) -> Subscription:
        observer = Observer()
        observer.schedule(
            _WatchdogHandler(callback, self.ignore), str(self.root), recursive=True
        )
        observer.daemon = True
        observer.start()
        logger.info(f"WATCH: Observing edits under {self.root}")
        return _WatchSubscription(observer)
