import contextlib
import json
import logging
import os
import threading
from pathlib import Path
from typing import Any

from .constants import APP_NAME, STATE_FILE

logger = logging.getLogger(APP_NAME)


class StateStore:
    """A small JSON key-value store that survives process restarts.

    Holds the cached credential (`githubAccessToken`), the remote repository
    URL (`repoUrl`) and the chosen interval (`trackerInterval`).

    Attributes:
        path (Path): The JSON file backing the store.
    """

    def __init__(self, path: Path = STATE_FILE):
        self.path = path
        self._lock = threading.Lock()

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            content = self.path.read_text().strip()
            if not content:
                return {}
            data = json.loads(content)
            return data if isinstance(data, dict) else {}
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to read state from {self.path}: {e}")
            return {}

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._read().get(key, default)

    def set(self, key: str, value: Any) -> None:
        """Persists a single key atomically. A value of None removes the key.

        Raises:
            OSError: If the state file cannot be written.
        """
        with self._lock:
            data = self._read()
            if value is None:
                data.pop(key, None)
            else:
                data[key] = value

            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_file = self.path.with_suffix(".tmp")
            try:
                with open(tmp_file, "w") as f:
                    json.dump(data, f, indent=2)
                    f.flush()
                    os.fsync(f.fileno())

                # Atomic pointer swap at the filesystem level
                os.replace(tmp_file, self.path)
            except OSError:
                with contextlib.suppress(OSError):
                    tmp_file.unlink()
                raise
