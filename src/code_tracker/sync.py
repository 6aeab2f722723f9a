"""Pushes the accumulated logs tree to the remote repository.

One sync attempt moves through: derive the authenticated URL, clear a stale
index lock, bootstrap the working copy if needed, copy the logs root over
`repo/logs`, and commit + force-push only when `git status` reports changes.

The remote branch is owned by a single installation: every push overwrites
it, so two installations sharing one remote will clobber each other.
"""

import datetime
import logging
import shutil
from pathlib import Path

from .constants import APP_NAME, COMMIT_AUTHOR, GIT_INDEX_LOCK, SYNC_BRANCH
from .git_wrapper import GitRepo
from .log_store import LogStore

logger = logging.getLogger(APP_NAME)


class SyncError(Exception):
    """A staging, commit or push step failed."""


def authenticated_url(repo_url: str, token: str | None) -> str:
    """Embeds the bearer token into an https remote URL.

    Args:
        repo_url (str): The plain clone URL (e.g., https://github.com/u/r.git).
        token (str | None): The bearer credential.

    Returns:
        str: `https://oauth2:<token>@...` for https URLs; other URLs unchanged.
    """
    if not token or not repo_url.startswith("https://"):
        return repo_url
    return repo_url.replace("https://", f"https://oauth2:{token}@", 1)


class SyncEngine:
    """Stages, commits and force-pushes the logs tree through a local working copy.

    Attributes:
        store (LogStore): Provides the logs root and working copy directory.
        repo_url (str): The plain remote URL.
        branch (str): The remote branch receiving the logs.
        remote_name (str): The remote name bound in the working copy.
    """

    def __init__(
        self,
        store: LogStore,
        repo_url: str,
        token: str | None,
        branch: str = SYNC_BRANCH,
        remote_name: str = "origin",
    ):
        self.store = store
        self.repo_url = repo_url
        self.branch = branch
        self.remote_name = remote_name
        self._token = token
        self._remote_url = authenticated_url(repo_url, token)

    def _redact(self, message: str) -> str:
        if self._token:
            return message.replace(self._token, "***")
        return message

    def clear_stale_lock(self, repo_dir: Path) -> bool:
        """Removes an index lock left behind by a crashed git process.

        Returns:
            bool: True if a lock was removed.
        """
        lock_file = repo_dir / ".git" / GIT_INDEX_LOCK
        if not lock_file.exists():
            return False
        lock_file.unlink(missing_ok=True)
        logger.warning(f"Stale lock removed: {lock_file}")
        return True

    def open_repo(self, repo_dir: Path) -> GitRepo:
        """Returns the working copy, initializing it on first use.

        A new working copy gets the remote and a local commit identity, so
        committing does not depend on the user's global git configuration.
        """
        if (repo_dir / ".git").exists():
            return GitRepo(repo_dir)

        logger.info(f"BOOTSTRAP: Initializing working copy at {repo_dir}")
        repo = GitRepo.init(repo_dir, self.branch)
        repo.add_remote(self.remote_name, self._remote_url)
        name, email = COMMIT_AUTHOR
        repo.set_config("user.name", name)
        repo.set_config("user.email", email)
        return repo

    def stage_files(self, repo_dir: Path) -> None:
        """Copies the logs root over the working copy's logs/ subtree.

        Files removed from the logs root are left in place.
        """
        shutil.copytree(self.store.logs_dir, repo_dir / "logs", dirs_exist_ok=True)

    def sync(self) -> bool:
        """Runs one sync attempt.

        Returns:
            bool: True if a commit was created and pushed, False if there was
            nothing to commit.

        Raises:
            SyncError: If any step fails.
        """
        try:
            repo_dir = self.store.repo_dir
            self.clear_stale_lock(repo_dir)
            repo = self.open_repo(repo_dir)
            self.stage_files(repo_dir)

            if not repo.status_porcelain():
                logger.info("SYNC: No changes to commit.")
                return False

            timestamp = datetime.datetime.now(datetime.timezone.utc).isoformat()
            repo.add_all()
            repo.commit(f"Update activity logs - {timestamp}")
            repo.push(self.remote_name, self.branch, force=True)
            head = repo.rev_parse("HEAD")
        except (RuntimeError, ValueError, OSError) as e:
            raise SyncError(self._redact(str(e))) from e

        logger.info(f"SUCCESS: Logs committed and pushed as {head}.")
        return True
