"""GitHub credential and repository bootstrap.

Both are only needed when a session starts: the token authenticates the
push URL, and the repository is created once per installation.
"""

import logging
import os

import httpx
from rich.console import Console
from rich.prompt import Prompt

from .constants import APP_NAME, REPO_URL_KEY, TOKEN_KEY
from .state import StateStore

logger = logging.getLogger(APP_NAME)
console = Console()

API_URL = "https://api.github.com"
TOKEN_SCOPE = "repo"


class AuthError(Exception):
    """No usable credential could be obtained."""


class BootstrapError(Exception):
    """The remote repository could not be created."""


def get_token(state: StateStore, interactive: bool = False) -> str:
    """Returns a bearer token usable for the API and for push URLs.

    Resolution order: the token cached in persisted state, the GITHUB_TOKEN
    environment variable, then (interactive only) a hidden prompt. A newly
    obtained token is cached.

    Args:
        state (StateStore): Persisted state holding the cached token.
        interactive (bool): Whether the user may be prompted.

    Returns:
        str: The token.

    Raises:
        AuthError: If no token could be obtained.
    """
    token = state.get(TOKEN_KEY)
    if token:
        return token

    token = os.environ.get("GITHUB_TOKEN", "").strip()
    if not token and interactive:
        console.print(
            f"A GitHub token with the [bold]{TOKEN_SCOPE}[/bold] scope is required."
        )
        token = Prompt.ask("GitHub token", password=True, console=console).strip()

    if not token:
        raise AuthError("GitHub authentication is required to start tracking.")

    try:
        state.set(TOKEN_KEY, token)
    except OSError as e:
        logger.warning(f"Could not cache GitHub token: {e}")
    logger.info("GitHub authentication successful.")
    return token


def create_repository(
    token: str,
    name: str,
    description: str,
    private: bool,
    client: httpx.Client | None = None,
) -> str:
    """Creates a repository for the authenticated user.

    Args:
        token (str): Bearer token with the `repo` scope.
        name (str): Repository name.
        description (str): Repository description.
        private (bool): Repository visibility.
        client (httpx.Client | None): Client to use; one is created if omitted.

    Returns:
        str: The repository's https clone URL.

    Raises:
        BootstrapError: If the API call fails.
    """
    headers = {
        "Authorization": f"Bearer {token}",
        "Accept": "application/vnd.github.v3+json",
        "User-Agent": f"{APP_NAME}/1.0",
    }
    payload = {
        "name": name,
        "description": description,
        "private": private,
        "auto_init": True,
    }

    own_client = client is None
    http = client or httpx.Client(base_url=API_URL, timeout=30.0)
    try:
        response = http.post("/user/repos", json=payload, headers=headers)
        if response.is_error:
            try:
                message = response.json().get("message")
            except ValueError:
                message = None
            raise BootstrapError(
                message or f"Failed to create repository (HTTP {response.status_code})"
            )
        return response.json()["clone_url"]
    except httpx.HTTPError as e:
        raise BootstrapError(f"Failed to create repository: {e}") from e
    except (KeyError, ValueError) as e:
        raise BootstrapError(f"Unexpected response from GitHub: {e}") from e
    finally:
        if own_client:
            http.close()


def ensure_repository(
    state: StateStore,
    token: str,
    name: str,
    description: str,
    private: bool = True,
) -> str:
    """Returns the cached repository URL, creating the repository on first use.

    Raises:
        BootstrapError: If the repository has to be created and creation fails.
    """
    repo_url = state.get(REPO_URL_KEY)
    if repo_url:
        return repo_url

    logger.info(f"BOOTSTRAP: Creating repository '{name}'...")
    repo_url = create_repository(token, name, description, private)
    try:
        state.set(REPO_URL_KEY, repo_url)
    except OSError as e:
        logger.warning(f"Could not cache repository URL: {e}")
    return repo_url
