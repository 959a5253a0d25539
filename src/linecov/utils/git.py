"""Git helpers used for report titles."""

from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path

logger = logging.getLogger(__name__)


def _git_executable() -> str:
    """Resolve the full path to the ``git`` executable."""
    return shutil.which("git") or "git"


class GitOperationError(Exception):
    """Exception raised when git operations fail."""


def get_current_branch(repo_path: Path | str) -> str:
    """Return the name of the checked out branch.

    Raises:
        GitOperationError: If git is missing or *repo_path* is not a repository.
    """
    try:
        result = subprocess.run(
            [_git_executable(), "rev-parse", "--abbrev-ref", "HEAD"],
            cwd=Path(repo_path),
            capture_output=True,
            text=True,
            check=True,
        )
    except (OSError, subprocess.CalledProcessError) as exc:
        raise GitOperationError(f"Failed to detect git branch in {repo_path}: {exc}") from exc
    return result.stdout.strip()


def current_branch(repo_path: Path | str) -> str | None:
    """Return the checked out branch, or None when it cannot be detected."""
    try:
        return get_current_branch(repo_path)
    except GitOperationError as exc:
        logger.warning("git branch could not be detected: %s", exc)
        return None
