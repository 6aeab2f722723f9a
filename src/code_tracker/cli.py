import argparse
import signal
import subprocess
import sys
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt
from rich.text import Text

from . import daemon, github, system
from .config import Config, resolve_tracker_config
from .constants import (
    INTERVAL_CHOICES,
    INTERVAL_KEY,
    LOG_FILE,
    REPO_URL_KEY,
)
from .log_store import LogStore
from .state import StateStore
from .sync import SyncError

console = Console()


def _format_interval(millis: int) -> str:
    for label, value in INTERVAL_CHOICES.items():
        if value == millis:
            return label
    return f"{millis // 1000}s"


def start_tracking(workspace: Path) -> int:
    """Runs the tracker in the foreground for `workspace`."""
    if not workspace.is_dir():
        console.print(f"[bold red]Not a directory:[/bold red] {workspace}")
        return 1
    console.print(
        f"[bold blue]Code Tracker:[/bold blue] tracking [cyan]{workspace}[/cyan] "
        "(Ctrl+C to stop)..."
    )
    return daemon.run(workspace, interactive=sys.stdin.isatty())


def stop_tracking() -> None:
    """Asks the running tracker to stop."""
    if system.signal_tracker(signal.SIGTERM):
        console.print("Activity tracker stopped.", style="bold yellow")
    else:
        console.print("Activity tracker is not running.", style="dim")


def set_interval(choice: str | None, state: StateStore | None = None) -> None:
    """Persists a new interval and tells a running tracker to pick it up.

    Args:
        choice (str | None): One of INTERVAL_CHOICES; prompts when omitted.
        state (StateStore | None): Persisted state; defaults to the global store.
    """
    state = state or StateStore()
    if choice is None:
        current = resolve_tracker_config(state, Config.load()).interval_millis
        choice = Prompt.ask(
            "Select tracking interval",
            choices=list(INTERVAL_CHOICES),
            default=_format_interval(current)
            if current in INTERVAL_CHOICES.values()
            else "15m",
            console=console,
        )

    state.set(INTERVAL_KEY, INTERVAL_CHOICES[choice])
    console.print(f"Tracking interval set to [bold]{choice}[/bold].", style="green")

    if hasattr(signal, "SIGHUP") and system.signal_tracker(signal.SIGHUP):
        console.print("Running tracker restarted with the new interval.", style="dim")


def sync_now() -> int:
    """Pushes the existing logs immediately."""
    try:
        with console.status("Syncing activity logs...", spinner="dots"):
            pushed = daemon.sync_once()
    except (github.AuthError, github.BootstrapError, SyncError) as e:
        console.print(f"[bold red]Sync failed:[/bold red] {e}")
        return 1

    if pushed:
        console.print("[bold green]✔ Logs committed and pushed.[/bold green]")
    else:
        console.print("No changes to commit.", style="dim")
    return 0


def show_status(state: StateStore | None = None) -> None:
    """Displays tracker, interval, remote and latest log."""
    state = state or StateStore()
    config = Config.load()

    content = Text()
    pid = system.read_pid()
    content.append("Tracker:  ", style="bold")
    if pid is not None:
        content.append(f"Running (pid {pid})\n", style="bold green")
    else:
        content.append("Stopped\n", style="bold red")

    interval = resolve_tracker_config(state, config).interval_millis
    content.append("Interval: ", style="bold")
    content.append(_format_interval(interval) + "\n")

    content.append("Remote:   ", style="bold")
    content.append(f"{state.get(REPO_URL_KEY) or 'Not created yet'}\n", style="dim")

    latest = LogStore(config.storage.root).latest_log()
    content.append("Last Log: ", style="bold")
    if latest is not None:
        content.append(f"{latest.parent.name}/{latest.name}")
    else:
        content.append("Never", style="dim")

    console.print(Panel(content, title="Code Tracker", expand=False))


def tail_log() -> None:
    """Follows the tracker log file in real-time."""
    if not LOG_FILE.exists():
        console.print(f"[red]No log file found yet at {LOG_FILE}.[/red]")
        return

    console.print(f"Tailing [bold cyan]{LOG_FILE}[/bold cyan] (Ctrl+C to stop)...")
    try:
        subprocess.run(["tail", "-n", "1000", "-f", str(LOG_FILE)])
    except KeyboardInterrupt:
        console.print("\nStopped.", style="dim")


def main() -> None:
    """Main entry point for the Code Tracker CLI."""
    parser = argparse.ArgumentParser(
        prog="code-tracker",
        description="Track editing activity and push interval summaries to GitHub.",
    )
    subparsers = parser.add_subparsers(dest="command")

    start_parser = subparsers.add_parser("start", help="Start tracking a workspace")
    start_parser.add_argument(
        "workspace",
        nargs="?",
        type=Path,
        default=Path.cwd(),
        help="Workspace directory (default: current directory)",
    )
    subparsers.add_parser("stop", help="Stop the running tracker")

    interval_parser = subparsers.add_parser("interval", help="Set the tracking interval")
    interval_parser.add_argument(
        "choice", nargs="?", choices=list(INTERVAL_CHOICES), help="Interval to use"
    )

    subparsers.add_parser("sync", help="Push accumulated logs now")
    subparsers.add_parser("status", help="Show tracker status")
    subparsers.add_parser("log", help="Tail the tracker log file")

    args = parser.parse_args()

    if args.command == "start":
        sys.exit(start_tracking(args.workspace))
    elif args.command == "stop":
        stop_tracking()
    elif args.command == "interval":
        set_interval(args.choice)
    elif args.command == "sync":
        sys.exit(sync_now())
    elif args.command == "status":
        show_status()
    elif args.command == "log":
        tail_log()
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
