import logging
import os
import signal
import subprocess
import sys
from pathlib import Path

from .constants import APP_NAME, PID_FILE

logger = logging.getLogger(APP_NAME)

NOTIFY_TITLE = "Code Tracker"


class SystemStrategy:
    """Base class defining the interface for system-level interactions."""

    def notify(self, title: str, message: str) -> None:
        """Sends a desktop notification.

        Args:
            title (str): The notification title.
            message (str): The notification body text.
        """
        pass


class MacOSStrategy(SystemStrategy):
    """System strategy implementation for macOS."""

    def notify(self, title: str, message: str) -> None:
        """Sends a notification using AppleScript."""
        # Sanitize quotes to prevent AppleScript syntax errors.
        clean_msg = message.replace('"', "'")
        script = f'display notification "{clean_msg}" with title "{title}"'
        try:
            subprocess.run(["osascript", "-e", script], stderr=subprocess.DEVNULL)
        except OSError as e:
            logger.debug(f"osascript notification failed: {e}")


class LinuxStrategy(SystemStrategy):
    """System strategy implementation for Linux."""

    def notify(self, title: str, message: str) -> None:
        """Sends a notification using `notify-send`."""
        try:
            subprocess.run(["notify-send", title, message], stderr=subprocess.DEVNULL)
        except FileNotFoundError as e:
            logger.debug(f"notify-send notification failed: {e}")


def get_system() -> SystemStrategy:
    """Factory function to retrieve the platform-specific system strategy.

    Returns:
        SystemStrategy: An instance of MacOSStrategy, LinuxStrategy, or the base
        SystemStrategy depending on the operating system.
    """
    if sys.platform == "darwin":
        return MacOSStrategy()
    elif sys.platform.startswith("linux"):
        return LinuxStrategy()
    else:
        return SystemStrategy()


def user_notify(message: str) -> None:
    """Surfaces a single-line message to the user and the log."""
    logger.info(f"NOTIFY: {message}")
    get_system().notify(NOTIFY_TITLE, message)


def read_pid(pid_file: Path = PID_FILE) -> int | None:
    """Returns the PID of a live tracker process, or None.

    A PID file pointing at a dead process is removed.
    """
    try:
        pid = int(pid_file.read_text().strip())
    except (OSError, ValueError):
        return None

    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        pid_file.unlink(missing_ok=True)
        return None
    except PermissionError:
        pass  # Alive, owned by another user.
    return pid


def signal_tracker(sig: signal.Signals, pid_file: Path = PID_FILE) -> bool:
    """Sends `sig` to the running tracker.

    Returns:
        bool: False if no tracker is running.
    """
    pid = read_pid(pid_file)
    if pid is None:
        return False
    os.kill(pid, sig)
    return True
