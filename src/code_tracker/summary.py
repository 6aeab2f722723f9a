from dataclasses import dataclass
from pathlib import Path

from .constants import NO_ACTIVITY
from .diff_engine import DiffEngine
from .observer import EditAccumulator


@dataclass(frozen=True)
class IntervalReport:
    """The summary of one interval, written verbatim to a log file.

    Attributes:
        lines (tuple[str, ...]): One line per changed file, in first-edit order.
    """

    lines: tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.lines

    @property
    def text(self) -> str:
        if self.is_empty:
            return NO_ACTIVITY
        return "\n".join(self.lines)


def relative_path(path: str, workspace_root: Path | None) -> str:
    """Formats `path` relative to the workspace root when it lies inside it."""
    if workspace_root is None:
        return path
    try:
        return Path(path).relative_to(workspace_root).as_posix()
    except ValueError:
        return path


def build_summary(
    accumulator: EditAccumulator,
    engine: DiffEngine,
    workspace_root: Path | None = None,
) -> IntervalReport:
    """Builds the report for every path edited since the last flush.

    Args:
        accumulator (EditAccumulator): Paths edited this interval.
        engine (DiffEngine): Computes per-file line changes.
        workspace_root (Path | None): Root used to shorten report paths.

    Returns:
        IntervalReport: The report; empty when nothing was edited.
    """
    lines = []
    for path in accumulator:
        result = engine.compute(path)
        shown = relative_path(path, workspace_root)
        if not result.accessible:
            lines.append(f"File: {shown} (deleted or not accessible)")
        else:
            lines.append(f"File: {shown}, Changes: +{result.added} -{result.removed}")
    return IntervalReport(tuple(lines))
