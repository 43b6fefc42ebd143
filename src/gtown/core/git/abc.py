"""Abstract interface for the git operations used by steps and commands.

Query methods never raise for "expected" negative answers (a missing branch,
a detached HEAD). Mutating methods raise RuntimeError on failure, except the
merge family and stash_pop, which return a CommandResult because conflicts
are an expected outcome the caller must inspect.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

DEFAULT_REMOTE = "origin"


@dataclass(frozen=True)
class CommandResult:
    """Outcome of a git command that is allowed to fail."""

    success: bool
    stdout: str = ""
    stderr: str = ""


class Git(ABC):
    """Abstract interface for git operations.

    All implementations (real, fake and printing) must implement every method.
    """

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @abstractmethod
    def get_current_branch(self, cwd: Path) -> str | None:
        """Get the currently checked-out branch.

        Returns:
            Branch name, or None when HEAD is detached or cwd is not a repository
        """

    @abstractmethod
    def get_repository_root(self, cwd: Path) -> Path | None:
        """Get the top-level directory of the repository containing cwd."""

    @abstractmethod
    def get_trunk_branch(self, repo_root: Path) -> str:
        """Detect the trunk branch ("main" or "master") of the repository."""

    @abstractmethod
    def has_branch(self, cwd: Path, branch: str) -> bool:
        """Check whether a local branch exists."""

    @abstractmethod
    def has_remote(self, cwd: Path, remote: str = DEFAULT_REMOTE) -> bool:
        """Check whether the named remote is configured."""

    @abstractmethod
    def has_tracking_branch(self, cwd: Path, branch: str) -> bool:
        """Check whether origin/<branch> exists."""

    @abstractmethod
    def get_branch_sha(self, cwd: Path, ref: str) -> str | None:
        """Resolve a ref (branch, remote branch, HEAD) to a commit SHA."""

    @abstractmethod
    def has_open_changes(self, cwd: Path) -> bool:
        """Check for uncommitted changes, including untracked files."""

    @abstractmethod
    def get_conflicted_files(self, cwd: Path) -> list[str]:
        """List files with unresolved merge conflicts."""

    @abstractmethod
    def is_merge_in_progress(self, cwd: Path) -> bool:
        """Check whether a merge is waiting to be committed."""

    @abstractmethod
    def has_shippable_changes(self, cwd: Path, branch: str, parent: str) -> bool:
        """Check whether branch contains changes that parent does not."""

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    @abstractmethod
    def fetch(self, cwd: Path) -> None:
        """Fetch updates from the default remote."""

    @abstractmethod
    def checkout_branch(self, cwd: Path, branch: str) -> None:
        """Check out a local branch."""

    @abstractmethod
    def merge_branch(self, cwd: Path, ref: str) -> CommandResult:
        """Merge ref into the current branch with the default message."""

    @abstractmethod
    def squash_merge(self, cwd: Path, branch: str) -> CommandResult:
        """Stage the squashed changes of branch onto the current branch."""

    @abstractmethod
    def abort_merge(self, cwd: Path) -> None:
        """Abort the merge in progress."""

    @abstractmethod
    def commit(self, cwd: Path, message: str | None) -> None:
        """Commit staged changes.

        Args:
            cwd: Working directory
            message: Commit message, or None to use the prepared message
                (e.g. the merge message) without opening an editor
        """

    @abstractmethod
    def reset_hard(self, cwd: Path, ref: str) -> None:
        """Reset the current branch and working tree to ref."""

    @abstractmethod
    def push_branch(self, cwd: Path, branch: str, *, force: bool, set_upstream: bool) -> None:
        """Push a local branch to the default remote."""

    @abstractmethod
    def push_sha(self, cwd: Path, branch: str, sha: str) -> None:
        """Force-push a specific commit to the remote branch."""

    @abstractmethod
    def delete_local_branch(self, cwd: Path, branch: str, *, force: bool) -> None:
        """Delete a local branch."""

    @abstractmethod
    def delete_remote_branch(self, cwd: Path, branch: str) -> None:
        """Delete a branch on the default remote."""

    @abstractmethod
    def stash(self, cwd: Path) -> None:
        """Stash all open changes, including untracked files."""

    @abstractmethod
    def stash_pop(self, cwd: Path) -> CommandResult:
        """Restore the most recent stash entry."""
