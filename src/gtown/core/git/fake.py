"""Fake git implementation for testing.

FakeGit is an in-memory implementation that accepts pre-configured state
in its constructor. Mutating operations update the in-memory state and are
recorded so tests can assert on what was executed.
"""

from pathlib import Path

from gtown.core.git.abc import DEFAULT_REMOTE, CommandResult, Git

_REMOTE_PREFIX = f"{DEFAULT_REMOTE}/"


class FakeGit(Git):
    """In-memory fake implementation of git operations.

    State Management:
    -----------------
    Branch heads are plain strings. Merges that bring in a commit the target
    does not already point at create a new synthetic SHA ("sha-1", "sha-2", ...).

    Conflicts are configured up front through ``conflicting_merges``, a set of
    ``(target_branch, ref)`` pairs. A conflicting merge leaves a merge in
    progress with ``conflicted_files`` populated until the test calls
    ``resolve_conflicts()``, which plays the part of the user fixing them.

    Mutation Tracking:
    -----------------
    Read-only properties expose every mutating call (checkouts, merges,
    commits, pushes, deletions, stash operations, fetches).
    """

    def __init__(
        self,
        *,
        repo_root: Path = Path("/repo"),
        current_branch: str | None = "main",
        branch_heads: dict[str, str] | None = None,
        remote_heads: dict[str, str] | None = None,
        remotes: list[str] | None = None,
        open_changes: list[str] | None = None,
        conflicting_merges: set[tuple[str, str]] | None = None,
        conflicting_stash_pop: bool = False,
        unshippable_branches: set[str] | None = None,
        failing_pushes: set[str] | None = None,
        trunk_branch: str = "main",
    ) -> None:
        self._repo_root = repo_root
        self._current_branch = current_branch
        if branch_heads is None:
            branch_heads = {"main": "sha-main"}
        self._branch_heads = dict(branch_heads)
        self._remote_heads = dict(remote_heads) if remote_heads is not None else {}
        self._remotes = list(remotes) if remotes is not None else [DEFAULT_REMOTE]
        self._open_changes = list(open_changes) if open_changes is not None else []
        self._conflicting_merges = set(conflicting_merges or set())
        self._conflicting_stash_pop = conflicting_stash_pop
        self._unshippable_branches = set(unshippable_branches or set())
        self._failing_pushes = set(failing_pushes or set())
        self._trunk_branch = trunk_branch

        self._conflicted_files: list[str] = []
        self._merge_in_progress = False
        self._staged_squash: str | None = None
        self._stash_stack: list[list[str]] = []
        self._sha_counter = 0

        # Mutation tracking
        self._checked_out_branches: list[str] = []
        self._merges: list[tuple[str, str]] = []
        self._squash_merges: list[tuple[str, str]] = []
        self._commits: list[tuple[str, str | None]] = []
        self._resets: list[tuple[str, str]] = []
        self._pushes: list[tuple[str, bool]] = []
        self._pushed_shas: list[tuple[str, str]] = []
        self._deleted_branches: list[str] = []
        self._deleted_remote_branches: list[str] = []
        self._aborted_merges = 0
        self._stash_count = 0
        self._stash_pop_count = 0
        self._fetch_count = 0

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _next_sha(self) -> str:
        self._sha_counter += 1
        return f"sha-{self._sha_counter}"

    def _resolve(self, ref: str) -> str | None:
        if ref == "HEAD":
            if self._current_branch is None:
                return None
            return self._branch_heads.get(self._current_branch)
        if ref.startswith(_REMOTE_PREFIX):
            return self._remote_heads.get(ref.removeprefix(_REMOTE_PREFIX))
        if ref in self._branch_heads:
            return self._branch_heads[ref]
        if ref in self._branch_heads.values() or ref in self._remote_heads.values():
            return ref
        return None

    def _require_current_branch(self) -> str:
        if self._current_branch is None:
            raise RuntimeError("Failed to run git command: HEAD is detached")
        return self._current_branch

    def _start_conflict(self, ref: str) -> CommandResult:
        self._merge_in_progress = True
        self._conflicted_files = [f"{ref.replace('/', '-')}-conflict.txt"]
        return CommandResult(
            success=False,
            stdout="",
            stderr="CONFLICT (content): Merge conflict\nAutomatic merge failed",
        )

    def resolve_conflicts(self) -> None:
        """Simulate the user resolving and staging all conflicted files."""
        self._conflicted_files = []

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_current_branch(self, cwd: Path) -> str | None:
        return self._current_branch

    def get_repository_root(self, cwd: Path) -> Path | None:
        return self._repo_root

    def get_trunk_branch(self, repo_root: Path) -> str:
        return self._trunk_branch

    def has_branch(self, cwd: Path, branch: str) -> bool:
        return branch in self._branch_heads

    def has_remote(self, cwd: Path, remote: str = DEFAULT_REMOTE) -> bool:
        return remote in self._remotes

    def has_tracking_branch(self, cwd: Path, branch: str) -> bool:
        return DEFAULT_REMOTE in self._remotes and branch in self._remote_heads

    def get_branch_sha(self, cwd: Path, ref: str) -> str | None:
        return self._resolve(ref)

    def has_open_changes(self, cwd: Path) -> bool:
        return bool(self._open_changes or self._conflicted_files or self._staged_squash)

    def get_conflicted_files(self, cwd: Path) -> list[str]:
        return list(self._conflicted_files)

    def is_merge_in_progress(self, cwd: Path) -> bool:
        return self._merge_in_progress

    def has_shippable_changes(self, cwd: Path, branch: str, parent: str) -> bool:
        return branch not in self._unshippable_branches

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def fetch(self, cwd: Path) -> None:
        self._fetch_count += 1

    def checkout_branch(self, cwd: Path, branch: str) -> None:
        if branch not in self._branch_heads:
            raise RuntimeError(f"Failed to checkout branch '{branch}'\nstderr: no such branch")
        if self._conflicted_files:
            raise RuntimeError(
                f"Failed to checkout branch '{branch}'\nstderr: you need to resolve your conflicts"
            )
        self._current_branch = branch
        self._checked_out_branches.append(branch)

    def merge_branch(self, cwd: Path, ref: str) -> CommandResult:
        target = self._require_current_branch()
        self._merges.append((target, ref))
        source_sha = self._resolve(ref)
        if source_sha is None:
            return CommandResult(
                success=False,
                stderr=f"merge: {ref} - not something we can merge",
            )
        if (target, ref) in self._conflicting_merges:
            return self._start_conflict(ref)
        if source_sha != self._branch_heads[target]:
            self._branch_heads[target] = self._next_sha()
        return CommandResult(success=True)

    def squash_merge(self, cwd: Path, branch: str) -> CommandResult:
        target = self._require_current_branch()
        self._squash_merges.append((target, branch))
        if branch not in self._branch_heads:
            return CommandResult(
                success=False,
                stderr=f"merge: {branch} - not something we can merge",
            )
        if (target, branch) in self._conflicting_merges:
            self._staged_squash = branch
            result = self._start_conflict(branch)
            # A squash merge does not record MERGE_HEAD
            self._merge_in_progress = False
            return result
        self._staged_squash = branch
        return CommandResult(success=True)

    def abort_merge(self, cwd: Path) -> None:
        if not self._merge_in_progress:
            raise RuntimeError("Failed to abort merge\nstderr: There is no merge to abort")
        self._aborted_merges += 1
        self._merge_in_progress = False
        self._conflicted_files = []

    def commit(self, cwd: Path, message: str | None) -> None:
        branch = self._require_current_branch()
        if self._conflicted_files:
            raise RuntimeError("Failed to commit\nstderr: you have unmerged files")
        if not (self._merge_in_progress or self._staged_squash or self._open_changes):
            raise RuntimeError("Failed to commit\nstdout: nothing to commit, working tree clean")
        self._branch_heads[branch] = self._next_sha()
        self._commits.append((branch, message))
        self._merge_in_progress = False
        self._staged_squash = None
        self._open_changes = []

    def reset_hard(self, cwd: Path, ref: str) -> None:
        branch = self._require_current_branch()
        sha = self._resolve(ref)
        if sha is None:
            raise RuntimeError(f"Failed to reset to '{ref}'\nstderr: unknown revision")
        self._branch_heads[branch] = sha
        self._resets.append((branch, sha))
        self._merge_in_progress = False
        self._staged_squash = None
        self._conflicted_files = []
        self._open_changes = []

    def push_branch(self, cwd: Path, branch: str, *, force: bool, set_upstream: bool) -> None:
        if branch in self._failing_pushes:
            raise RuntimeError(f"Failed to push branch '{branch}'\nstderr: rejected")
        self._remote_heads[branch] = self._branch_heads[branch]
        self._pushes.append((branch, force))

    def push_sha(self, cwd: Path, branch: str, sha: str) -> None:
        if branch in self._failing_pushes:
            raise RuntimeError(f"Failed to reset remote branch '{branch}'")
        self._remote_heads[branch] = sha
        self._pushed_shas.append((branch, sha))

    def delete_local_branch(self, cwd: Path, branch: str, *, force: bool) -> None:
        if branch == self._current_branch:
            raise RuntimeError(
                f"Failed to delete branch '{branch}'\nstderr: cannot delete the checked out branch"
            )
        if branch not in self._branch_heads:
            raise RuntimeError(f"Failed to delete branch '{branch}'\nstderr: branch not found")
        del self._branch_heads[branch]
        self._deleted_branches.append(branch)

    def delete_remote_branch(self, cwd: Path, branch: str) -> None:
        if branch not in self._remote_heads:
            raise RuntimeError(f"Failed to delete remote branch '{branch}'")
        del self._remote_heads[branch]
        self._deleted_remote_branches.append(branch)

    def stash(self, cwd: Path) -> None:
        self._stash_stack.append(list(self._open_changes))
        self._open_changes = []
        self._stash_count += 1

    def stash_pop(self, cwd: Path) -> CommandResult:
        self._stash_pop_count += 1
        if not self._stash_stack:
            return CommandResult(success=False, stderr="No stash entries found.")
        if self._conflicted_files or self._conflicting_stash_pop:
            return CommandResult(success=False, stderr="error: could not restore untracked files")
        self._open_changes.extend(self._stash_stack.pop())
        return CommandResult(success=True)

    # ------------------------------------------------------------------
    # Read-only state for assertions
    # ------------------------------------------------------------------

    @property
    def branch_heads(self) -> dict[str, str]:
        return dict(self._branch_heads)

    @property
    def remote_heads(self) -> dict[str, str]:
        return dict(self._remote_heads)

    @property
    def open_changes(self) -> list[str]:
        return list(self._open_changes)

    @property
    def stash_depth(self) -> int:
        return len(self._stash_stack)

    @property
    def checked_out_branches(self) -> list[str]:
        return list(self._checked_out_branches)

    @property
    def merges(self) -> list[tuple[str, str]]:
        """(target branch, merged ref) for every merge attempt."""
        return list(self._merges)

    @property
    def squash_merges(self) -> list[tuple[str, str]]:
        return list(self._squash_merges)

    @property
    def commits(self) -> list[tuple[str, str | None]]:
        return list(self._commits)

    @property
    def resets(self) -> list[tuple[str, str]]:
        return list(self._resets)

    @property
    def pushes(self) -> list[tuple[str, bool]]:
        return list(self._pushes)

    @property
    def pushed_shas(self) -> list[tuple[str, str]]:
        return list(self._pushed_shas)

    @property
    def deleted_branches(self) -> list[str]:
        return list(self._deleted_branches)

    @property
    def deleted_remote_branches(self) -> list[str]:
        return list(self._deleted_remote_branches)

    @property
    def aborted_merges(self) -> int:
        return self._aborted_merges

    @property
    def stash_count(self) -> int:
        return self._stash_count

    @property
    def stash_pop_count(self) -> int:
        return self._stash_pop_count

    @property
    def fetch_count(self) -> int:
        return self._fetch_count
