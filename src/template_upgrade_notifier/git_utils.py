"""Git repository operations using git CLI."""

from __future__ import annotations

import logging
import re
import shutil
import subprocess
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from .exceptions import CloneError, GitCommandError, InvalidBranchNameError, PushError

logger: logging.Logger = logging.getLogger(__name__)

# GitHub accepts installation and personal tokens under this user name
TOKEN_PREFIX = "x-access-token:"

_FORBIDDEN_REF_CHARS = re.compile(r"[\x00-\x20\x7f~^:?*\[\\]")


def _inject_token(url: str, token: str | None, prefix: str = TOKEN_PREFIX) -> str:
    """Inject authentication token into HTTPS URL.

    Args:
        url: The URL to modify
        token: Token to inject (if None, returns original URL)
        prefix: Prefix before token

    Returns:
        URL with token injected, or original if not HTTPS or no token
    """
    if not token or not url.startswith("https://"):
        return url
    return url.replace("https://", f"https://{prefix}{token}@", 1)


def _sanitize_error(error: str, tokens: list[str | None]) -> str:
    """Remove tokens from error message to prevent leakage.

    Args:
        error: Error message that may contain tokens
        tokens: List of tokens to redact (None values are ignored)

    Returns:
        Error message with tokens replaced by ***TOKEN***
    """
    result = error
    for token in tokens:
        if token:
            result = result.replace(token, "***TOKEN***")
    return result


def repository_url(base_url: str, full_name: str) -> str:
    """Build the clone URL of ``owner/name`` under ``base_url`` (e.g. https://github.com)."""
    return f"{base_url.rstrip('/')}/{full_name}.git"


def validate_branch_name(name: str) -> None:
    """Check ``name`` against git's reference name rules (``git check-ref-format --branch``).

    Raises:
        InvalidBranchNameError: If the name is not a legal branch name
    """
    problem: str | None = None
    if not name:
        problem = "name is empty"
    elif name.startswith("-"):
        problem = "name starts with '-'"
    elif name in {"@", "HEAD"}:
        problem = f"'{name}' is reserved"
    elif _FORBIDDEN_REF_CHARS.search(name):
        problem = "name contains a space, control character or one of ~^:?*[\\"
    elif ".." in name:
        problem = "name contains '..'"
    elif "@{" in name:
        problem = "name contains '@{'"
    elif name.startswith("/") or name.endswith("/") or "//" in name:
        problem = "name has an empty path component"
    elif name.endswith("."):
        problem = "name ends with '.'"
    else:
        for component in name.split("/"):
            if component.startswith("."):
                problem = f"component '{component}' starts with '.'"
                break
            if component.endswith(".lock"):
                problem = f"component '{component}' ends with '.lock'"
                break

    if problem is not None:
        msg = f"Invalid branch name '{name}': {problem}"
        raise InvalidBranchNameError(msg)


def run_git(args: list[str], cwd: Path, *, tokens: list[str | None] | None = None) -> str:
    """Run ``git <args>`` in ``cwd`` and return stdout.

    Raises:
        GitCommandError: If git cannot be started or exits non-zero
    """
    secrets = tokens or []
    command = _sanitize_error(" ".join(args), secrets)
    logger.debug(f"Running git {command} in {cwd}")
    try:
        result = subprocess.run(  # noqa: S603
            ["git", *args],
            cwd=cwd,
            check=False,
            capture_output=True,
            text=True,
        )
    except OSError as e:
        msg = f"Failed to execute git {command}: {_sanitize_error(str(e), secrets)}"
        raise GitCommandError(msg) from e

    if result.returncode != 0:
        stderr = _sanitize_error(result.stderr.strip(), secrets)
        msg = f"git {command} failed: {stderr}"
        raise GitCommandError(msg, stderr=stderr)
    return result.stdout


def clone_repository(clone_url: str, destination: Path, token: str | None) -> None:
    """Shallow-clone ``clone_url`` into the (empty) ``destination`` directory.

    Raises:
        CloneError: If cloning fails
    """
    url = _inject_token(clone_url, token)
    try:
        run_git(["clone", "--depth", "1", url, "."], destination, tokens=[token])
    except GitCommandError as e:
        msg = f"Failed to clone repository: {e}"
        raise CloneError(msg, stderr=e.stderr) from e


def create_branch(path: Path, branch_name: str) -> None:
    """Create and check out ``branch_name``."""
    run_git(["checkout", "-b", branch_name], path)


def has_changes(path: Path) -> bool:
    """Check whether the working tree has uncommitted changes (including untracked files)."""
    return bool(run_git(["status", "--porcelain"], path).strip())


def configure_identity(path: Path, name: str, email: str) -> None:
    """Set the commit author for this clone only."""
    run_git(["config", "user.name", name], path)
    run_git(["config", "user.email", email], path)


def commit_all(path: Path, message: str) -> None:
    """Stage every change and commit it."""
    run_git(["add", "-A"], path)
    run_git(["commit", "-m", message], path)


def push_branch(path: Path, remote_url: str, branch_name: str, token: str | None) -> None:
    """Push HEAD to ``branch_name`` on ``remote_url``.

    The authenticated URL is passed on the command line and never stored in
    the clone's git config.

    Raises:
        PushError: If the push fails
    """
    url = _inject_token(remote_url, token)
    try:
        run_git(["push", url, f"HEAD:refs/heads/{branch_name}"], path, tokens=[token])
    except GitCommandError as e:
        msg = f"Failed to push changes: {e}"
        raise PushError(msg, stderr=e.stderr) from e


def cleanup_workspace(path: Path) -> None:
    """Remove a temporary clone directory.

    Args:
        path: Path to the directory to remove
    """
    if path.exists():
        try:
            shutil.rmtree(path)
            logger.debug(f"Cleaned up workspace at {path}")
        except OSError as e:
            logger.warning(f"Failed to clean up workspace at {path}: {e}")


@contextmanager
def ephemeral_workspace(prefix: str = "template_upgrade_") -> Iterator[Path]:
    """Create a private temporary directory and remove it on exit, whatever happens."""
    path = Path(tempfile.mkdtemp(prefix=prefix))
    try:
        yield path
    finally:
        cleanup_workspace(path)
