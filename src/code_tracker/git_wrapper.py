import logging
import os
import subprocess
from pathlib import Path

from .constants import APP_NAME

logger = logging.getLogger(APP_NAME)


class GitRepo:
    """A wrapper around the Git command-line interface for a specific repository.

    This class provides the narrow set of operations the sync engine needs,
    executed via `subprocess` with captured output and exit status.

    Attributes:
        path (Path): The file system path to the repository root.
    """

    def __init__(self, path: Path):
        """Initializes the GitRepo instance.

        Args:
            path (Path): The path to the repository root directory.

        Raises:
            ValueError: If the specified path does not contain a .git directory.
        """
        self.path = path
        if not (self.path / ".git").exists():
            raise ValueError(f"Not a git repository: {self.path}")

    @classmethod
    def init(cls, path: Path, branch: str) -> "GitRepo":
        """Creates an empty repository whose unborn HEAD points at `branch`.

        Args:
            path (Path): The directory to initialize.
            branch (str): The branch the first commit will land on.

        Returns:
            GitRepo: The new repository.

        Raises:
            RuntimeError: If git fails.
        """
        path.mkdir(parents=True, exist_ok=True)
        try:
            subprocess.run(
                ["git", "init"], cwd=path, capture_output=True, text=True, check=True
            )
        except subprocess.CalledProcessError as e:
            raise RuntimeError(f"Git error: {e.stderr or e}") from e

        repo = cls(path)
        repo._run(["symbolic-ref", "HEAD", f"refs/heads/{branch}"])
        return repo

    def _run(
        self, args: list[str], capture: bool = True, env: dict | None = None
    ) -> str:
        """Executes a Git command within the repository context.

        Args:
            args (list[str]): A list of arguments to pass to the git command.
            capture (bool, optional):   Whether to capture and return stdout.
                                        Defaults to True.
            env (Optional[dict], optional): Environment variables to pass to the
                                            subprocess. Defaults to None.

        Returns:
            str:    The stripped stdout of the command if capture is True,
                    otherwise an empty string.

        Raises:
            RuntimeError: If the git command returns a non-zero exit code.
        """
        try:
            res = subprocess.run(
                ["git", *args],
                cwd=self.path,
                capture_output=capture,
                text=True,
                check=True,
                env=env,
            )
            return res.stdout.strip() if capture else ""
        except subprocess.CalledProcessError as e:
            raise RuntimeError(f"Git error: {e.stderr or e}") from e

    def add_remote(self, name: str, url: str) -> None:
        """Registers a remote.

        Args:
            name (str): The remote name (e.g., 'origin').
            url (str): The remote URL.
        """
        self._run(["remote", "add", name, url])

    def set_config(self, key: str, value: str) -> None:
        """Sets a repository-local configuration value (e.g., 'user.name')."""
        self._run(["config", "--local", key, value])

    def status_porcelain(self) -> list[str]:
        """Returns the porcelain (machine-readable) status of the repository.

        Returns:
            list[str]: A list of status lines returned by `git status --porcelain`.
        """
        output = self._run(["status", "--porcelain"])
        return output.splitlines() if output else []

    def add_all(self) -> None:
        """
        Stages all changes (modified, deleted, and untracked files)
        in the working directory.
        """
        self._run(["add", "."], capture=False)

    def commit(self, message: str) -> None:
        """Creates a new commit with the provided message.

        Args:
            message (str): The commit message.
        """
        self._run(["commit", "-m", message])

    def push(self, remote: str, branch: str, force: bool = False) -> None:
        """Pushes HEAD to `branch` on `remote`, setting it as upstream.

        Interactive credential prompts are disabled so a rejected credential
        fails instead of waiting on stdin.

        Args:
            remote (str): The remote name.
            branch (str): The destination branch.
            force (bool, optional): Overwrite the remote branch unconditionally.
        """
        env = os.environ.copy()
        env["GIT_TERMINAL_PROMPT"] = "0"
        env["GIT_SSH_COMMAND"] = "ssh -o BatchMode=yes"
        cmd = ["push", "--set-upstream"]
        if force:
            cmd.append("--force")
        cmd.extend([remote, f"HEAD:refs/heads/{branch}"])
        self._run(cmd, env=env)

    def rev_parse(self, rev: str) -> str | None:
        """Resolves a revision (tag, branch, relative ref) to a full SHA-1 hash.

        Args:
            rev (str): The revision to parse (e.g., 'HEAD', 'master').

        Returns:
            Optional[str]:  The full SHA-1 hash,
                            or None if the revision could not be resolved.
        """
        try:
            return self._run(["rev-parse", "--verify", "--quiet", rev])
        except RuntimeError as e:
            logger.debug(f"rev-parse failed for '{rev}': {e}")
            return None
