import difflib
import logging
from dataclasses import dataclass
from pathlib import Path

from .constants import APP_NAME

logger = logging.getLogger(APP_NAME)


@dataclass(frozen=True)
class DiffResult:
    """Line counts for one file over one interval.

    Attributes:
        added (int): Non-blank lines added since the previous snapshot.
        removed (int): Non-blank lines removed since the previous snapshot.
        accessible (bool): False when the file was missing or unreadable.
    """

    added: int = 0
    removed: int = 0
    accessible: bool = True


def _count_non_blank(lines: list[str]) -> int:
    return sum(1 for line in lines if line.strip())


def count_changes(old: str, new: str) -> tuple[int, int]:
    """Counts non-blank lines added and removed between two texts.

    Replaced blocks count on both sides; hunks made only of blank lines
    contribute nothing.

    Returns:
        tuple[int, int]: (added, removed).
    """
    old_lines = old.splitlines()
    new_lines = new.splitlines()
    matcher = difflib.SequenceMatcher(None, old_lines, new_lines, autojunk=False)

    added = removed = 0
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag in ("replace", "delete"):
            removed += _count_non_blank(old_lines[i1:i2])
        if tag in ("replace", "insert"):
            added += _count_non_blank(new_lines[j1:j2])
    return added, removed


class DiffEngine:
    """Diffs files against the snapshot taken at the end of the previous interval.

    Snapshots live in `snapshot_dir` keyed by file basename, so two tracked
    files sharing a name in different directories share one snapshot.

    Attributes:
        snapshot_dir (Path): Directory holding the snapshots.
    """

    def __init__(self, snapshot_dir: Path):
        self.snapshot_dir = snapshot_dir

    def snapshot_path(self, path: str | Path) -> Path:
        return self.snapshot_dir / Path(path).name

    def compute(self, path: str | Path) -> DiffResult:
        """Counts the changes to `path` since its snapshot, then refreshes the snapshot.

        A missing snapshot means the previous content was empty. Never raises:
        a file that cannot be read is reported as inaccessible, and any other
        I/O failure yields zero counts.

        Args:
            path (str | Path): The changed file.

        Returns:
            DiffResult: The added/removed counts.
        """
        file_path = Path(path)
        try:
            current = file_path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            logger.warning(f"DIFF {file_path.name}: deleted or not accessible ({e})")
            return DiffResult(accessible=False)

        snapshot = self.snapshot_path(file_path)
        try:
            previous = ""
            if snapshot.exists():
                previous = snapshot.read_text(encoding="utf-8", errors="replace")

            added, removed = count_changes(previous, current)

            self.snapshot_dir.mkdir(parents=True, exist_ok=True)
            snapshot.write_text(current, encoding="utf-8")
            return DiffResult(added, removed)
        except OSError as e:
            logger.error(f"DIFF ERROR {file_path}: {e}")
            return DiffResult()
