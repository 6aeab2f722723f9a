"""Code Tracker: periodic summaries of editing activity, pushed to GitHub.

This package provides the command-line interface, the foreground tracker, and the
pipeline that turns edit notifications into per-interval log files synced to a
remote git repository.
"""

from . import (
    cli,
    config,
    constants,
    daemon,
    diff_engine,
    git_wrapper,
    github,
    log_store,
    observer,
    scheduler,
    state,
    summary,
    sync,
    system,
)

__all__ = [
    "cli",
    "config",
    "constants",
    "daemon",
    "diff_engine",
    "git_wrapper",
    "github",
    "log_store",
    "observer",
    "scheduler",
    "state",
    "summary",
    "sync",
    "system",
]
