"""Repository discovery functionality."""

from dataclasses import dataclass
from pathlib import Path

from gtown.core.git.abc import Git
from gtown.core.steps.run_state_store import run_state_dir


@dataclass(frozen=True)
class RepoContext:
    """Represents a git repo root and its gtown state directory."""

    root: Path
    repo_name: str
    state_dir: Path  # <state_root>/repos/<sanitized repo root>


@dataclass(frozen=True)
class NoRepoSentinel:
    """Sentinel value indicating execution outside a git repository.

    Commands that require a repository check for this sentinel and fail fast.
    """

    message: str = "Not inside a git repository"


def discover_repo_or_sentinel(
    cwd: Path, state_root: Path, git: Git
) -> RepoContext | NoRepoSentinel:
    """Find the repository containing `cwd`.

    Args:
        cwd: Current working directory to start search from
        state_root: Global state directory (from config)
        git: Git operations interface

    Returns:
        RepoContext if inside a git repository, NoRepoSentinel otherwise
    """
    root = git.get_repository_root(cwd)
    if root is None:
        return NoRepoSentinel()

    return RepoContext(
        root=root,
        repo_name=root.name,
        state_dir=run_state_dir(state_root, root),
    )
