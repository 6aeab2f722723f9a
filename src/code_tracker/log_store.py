import datetime
import logging
from pathlib import Path

from .constants import APP_NAME
from .summary import IntervalReport

logger = logging.getLogger(APP_NAME)


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class LogStore:
    """Owns the on-disk layout under the per-installation storage root.

    Layout:
        logs/<YYYY-MM-DD>/<HH-MM>.txt   interval reports (UTC)
        temp/<basename>                 diff snapshots
        repo/                           git working copy

    Each directory is created recursively the first time it is requested.
    Logs are never rotated.

    Attributes:
        root (Path): The storage root.
    """

    def __init__(self, root: Path):
        self.root = root

    def _ensure(self, name: str) -> Path:
        path = self.root / name
        path.mkdir(parents=True, exist_ok=True)
        return path

    @property
    def logs_dir(self) -> Path:
        return self._ensure("logs")

    @property
    def temp_dir(self) -> Path:
        return self._ensure("temp")

    @property
    def repo_dir(self) -> Path:
        return self._ensure("repo")

    def daily_dir(self, now: datetime.datetime | None = None) -> Path:
        now = now or _utcnow()
        path = self.logs_dir / now.strftime("%Y-%m-%d")
        path.mkdir(parents=True, exist_ok=True)
        return path

    def write_report(
        self, report: IntervalReport, now: datetime.datetime | None = None
    ) -> Path:
        """Writes the report to `logs/<date>/<HH-MM>.txt`.

        A second report in the same minute overwrites the first.

        Returns:
            Path: The log file written.

        Raises:
            OSError: If the file cannot be written.
        """
        now = now or _utcnow()
        log_file = self.daily_dir(now) / f"{now.strftime('%H-%M')}.txt"
        log_file.write_text(report.text, encoding="utf-8")
        logger.info(f"LOGGED: {log_file.relative_to(self.root)}")
        return log_file

    def latest_log(self) -> Path | None:
        """Returns the most recent report file, if any."""
        candidates = sorted(self.logs_dir.glob("*/*.txt"))
        return candidates[-1] if candidates else None
