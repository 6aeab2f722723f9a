import logging
import re
import tomllib
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from .constants import (
    APP_NAME,
    CONFIG_FILE,
    DEFAULT_INTERVAL_MS,
    INTERVAL_KEY,
    REPO_DESCRIPTION,
    REPO_NAME,
    STORAGE_ROOT,
    SYNC_BRANCH,
)
from .state import StateStore

logger = logging.getLogger(APP_NAME)


def parse_size(value: int | str) -> int:
    """Converts human-readable size strings (e.g., '100MB') to bytes."""
    if isinstance(value, int):
        return value
    match = re.match(r"^(\d+(?:\.\d+)?)\s*([kmg]b?)$", str(value).strip().lower())
    if not match:
        raise ValueError(f"Invalid size format '{value}'")
    num, unit = float(match.group(1)), match.group(2)
    multiplier = {
        "k": 1024,
        "kb": 1024,
        "m": 1024**2,
        "mb": 1024**2,
        "g": 1024**3,
        "gb": 1024**3,
    }
    return int(num * multiplier[unit])


def parse_time(value: int | str) -> int:
    """Converts human-readable time strings (e.g., '1hr', '30m') to seconds."""
    if isinstance(value, int):
        return value
    match = re.match(
        r"^(\d+(?:\.\d+)?)\s*(s|sec|m|min|h|hr)s?$", str(value).strip().lower()
    )
    if not match:
        raise ValueError(f"Invalid time format '{value}'")
    num, unit = float(match.group(1)), match.group(2)
    multiplier = {"s": 1, "sec": 1, "m": 60, "min": 60, "h": 3600, "hr": 3600}
    return int(num * multiplier[unit])


@dataclass(frozen=True)
class TrackerConfig:
    """The interval the scheduler runs a tracking cycle at.

    Attributes:
        interval_millis (int): Milliseconds between cycles. Must be positive.
    """

    interval_millis: int = DEFAULT_INTERVAL_MS

    def __post_init__(self) -> None:
        if self.interval_millis <= 0:
            raise ValueError(f"Interval must be positive, got {self.interval_millis}")

    @property
    def interval_seconds(self) -> float:
        return self.interval_millis / 1000


@dataclass
class TrackerSection:
    """Tracking settings.

    Attributes:
        interval (int): Seconds between tracking cycles.
    """

    interval: int = DEFAULT_INTERVAL_MS // 1000


@dataclass
class SyncConfig:
    """Remote synchronization settings.

    Attributes:
        branch (str): The remote branch that receives the logs.
        remote_name (str): The git remote name bound in the working copy.
        repo_name (str): Name of the repository created on first start.
        repo_description (str): Description of that repository.
        private (bool): Whether that repository is private.
    """

    branch: str = SYNC_BRANCH
    remote_name: str = "origin"
    repo_name: str = REPO_NAME
    repo_description: str = REPO_DESCRIPTION
    private: bool = True


@dataclass
class StorageConfig:
    """On-disk storage settings.

    Attributes:
        root (Path): Directory holding logs/, temp/ and repo/.
    """

    root: Path = STORAGE_ROOT


@dataclass
class LimitsConfig:
    """Resource limitation settings.

    Attributes:
        max_log_size (int): Max bytes for the daemon log before rotation.
    """

    max_log_size: int = 5 * 1024 * 1024


@dataclass
class Config:
    """Global configuration aggregator.

    Attributes:
        tracker (TrackerSection): Tracking settings.
        sync (SyncConfig): Remote synchronization settings.
        storage (StorageConfig): Storage layout settings.
        limits (LimitsConfig): Resource limits.
    """

    tracker: TrackerSection = field(default_factory=TrackerSection)
    sync: SyncConfig = field(default_factory=SyncConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    limits: LimitsConfig = field(default_factory=LimitsConfig)

    # Cache for the parsed configuration file
    _global_cache: "Config | None" = None

    @classmethod
    def load(cls) -> "Config":
        """Loads configuration from defaults and the global config file.

        Returns:
            Config: The fully merged configuration object.
        """
        if cls._global_cache is None:
            instance = cls()
            if CONFIG_FILE.exists():
                instance._merge_from_file(CONFIG_FILE)
            cls._global_cache = instance

        return replace(cls._global_cache)

    def _merge_from_file(self, path: Path) -> None:
        """Parses a TOML file and merges it into the current instance.

        Args:
            path (Path): Path to the TOML file.
        """
        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)

            if not data:
                return

            if "tracker" in data:
                self.tracker = self._update_dataclass(
                    "tracker", self.tracker, data["tracker"]
                )
            if "sync" in data:
                self.sync = self._update_dataclass("sync", self.sync, data["sync"])
            if "storage" in data:
                self.storage = self._update_dataclass(
                    "storage", self.storage, data["storage"]
                )
            if "limits" in data:
                self.limits = self._update_dataclass(
                    "limits", self.limits, data["limits"]
                )

        except tomllib.TOMLDecodeError as e:
            logger.error(f"Config syntax error in {path}: {e}")
        except Exception as e:
            logger.warning(f"Failed to load config from {path}: {e}")

    @staticmethod
    def _update_dataclass(section_name: str, instance: Any, updates: dict) -> Any:
        """Updates a dataclass, warning on invalid keys and parsing human-readable formats."""
        valid_keys = instance.__dataclass_fields__.keys()
        filtered_updates = {}

        invalid_keys = set(updates.keys()) - set(valid_keys)
        if invalid_keys:
            logger.warning(
                f"Unknown config keys in [{section_name}]: {', '.join(sorted(invalid_keys))}. Ignoring."
            )

        for k, v in updates.items():
            if k not in valid_keys:
                continue

            try:
                if k == "max_log_size":
                    filtered_updates[k] = parse_size(v)
                elif k == "interval":
                    seconds = parse_time(v)
                    if seconds <= 0:
                        raise ValueError(f"Interval must be positive, got '{v}'")
                    filtered_updates[k] = seconds
                elif k == "root":
                    filtered_updates[k] = Path(v).expanduser()
                else:
                    filtered_updates[k] = v
            except ValueError as e:
                logger.warning(
                    f"Config error in [{section_name}].{k}: {e}. Falling back to default."
                )

        return replace(instance, **filtered_updates)


def resolve_tracker_config(state: StateStore, config: Config) -> TrackerConfig:
    """Resolves the effective interval.

    The value chosen through the `interval` command (persisted state) wins over
    the config file, which wins over the 15 minute default.
    """
    stored = state.get(INTERVAL_KEY)
    if stored is not None:
        try:
            return TrackerConfig(int(stored))
        except (TypeError, ValueError) as e:
            logger.warning(f"Ignoring persisted {INTERVAL_KEY}={stored!r}: {e}")
    return TrackerConfig(config.tracker.interval * 1000)
