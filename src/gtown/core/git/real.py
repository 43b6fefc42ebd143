"""Production Git implementation using subprocess.

This module provides the real Git implementation that executes actual git
commands via subprocess.
"""

import subprocess
from pathlib import Path

from gtown.core.git.abc import DEFAULT_REMOTE, CommandResult, Git
from gtown.core.subprocess import run_subprocess_with_context


def _run_unchecked(cmd: list[str], cwd: Path) -> subprocess.CompletedProcess[str]:
    return subprocess.run(cmd, cwd=cwd, capture_output=True, text=True, check=False)


def _to_command_result(result: subprocess.CompletedProcess[str]) -> CommandResult:
    return CommandResult(
        success=result.returncode == 0,
        stdout=result.stdout,
        stderr=result.stderr,
    )


class RealGit(Git):
    """Production implementation using subprocess.

    All git operations execute actual git commands via subprocess.
    """

    def get_current_branch(self, cwd: Path) -> str | None:
        result = _run_unchecked(["git", "rev-parse", "--abbrev-ref", "HEAD"], cwd)
        if result.returncode != 0:
            return None

        branch = result.stdout.strip()
        if branch == "HEAD":
            return None

        return branch

    def get_repository_root(self, cwd: Path) -> Path | None:
        result = _run_unchecked(["git", "rev-parse", "--show-toplevel"], cwd)
        if result.returncode != 0:
            return None
        return Path(result.stdout.strip())

    def get_trunk_branch(self, repo_root: Path) -> str:
        """Get the trunk branch name for the repository.

        Detects trunk by checking git's remote HEAD reference. Falls back to
        checking for existence of common trunk branch names if detection fails.
        """
        # 1. Try git symbolic-ref to detect default branch
        result = _run_unchecked(["git", "symbolic-ref", "refs/remotes/origin/HEAD"], repo_root)
        if result.returncode == 0:
            # Parse "refs/remotes/origin/master" -> "master"
            ref = result.stdout.strip()
            if ref.startswith("refs/remotes/origin/"):
                return ref.replace("refs/remotes/origin/", "")

        # 2. Fallback: try 'main' then 'master', use first that exists
        for candidate in ["main", "master"]:
            if self.has_branch(repo_root, candidate):
                return candidate

        # 3. Final fallback: 'main'
        return "main"

    def has_branch(self, cwd: Path, branch: str) -> bool:
        result = _run_unchecked(
            ["git", "show-ref", "--verify", "--quiet", f"refs/heads/{branch}"],
            cwd,
        )
        return result.returncode == 0

    def has_remote(self, cwd: Path, remote: str = DEFAULT_REMOTE) -> bool:
        result = _run_unchecked(["git", "remote"], cwd)
        if result.returncode != 0:
            return False
        return remote in result.stdout.split()

    def has_tracking_branch(self, cwd: Path, branch: str) -> bool:
        result = _run_unchecked(
            ["git", "show-ref", "--verify", "--quiet", f"refs/remotes/{DEFAULT_REMOTE}/{branch}"],
            cwd,
        )
        return result.returncode == 0

    def get_branch_sha(self, cwd: Path, ref: str) -> str | None:
        result = _run_unchecked(["git", "rev-parse", "--verify", "--quiet", ref], cwd)
        if result.returncode != 0:
            return None
        return result.stdout.strip()

    def has_open_changes(self, cwd: Path) -> bool:
        result = run_subprocess_with_context(
            ["git", "status", "--porcelain"],
            operation_context="check for open changes",
            cwd=cwd,
        )
        return bool(result.stdout.strip())

    def get_conflicted_files(self, cwd: Path) -> list[str]:
        result = _run_unchecked(["git", "diff", "--name-only", "--diff-filter=U"], cwd)
        if result.returncode != 0:
            return []
        return [line.strip() for line in result.stdout.splitlines() if line.strip()]

    def is_merge_in_progress(self, cwd: Path) -> bool:
        result = _run_unchecked(["git", "rev-parse", "--verify", "--quiet", "MERGE_HEAD"], cwd)
        return result.returncode == 0

    def has_shippable_changes(self, cwd: Path, branch: str, parent: str) -> bool:
        # --quiet exits 1 when the trees differ
        result = _run_unchecked(["git", "diff", "--quiet", parent, branch], cwd)
        return result.returncode == 1

    def fetch(self, cwd: Path) -> None:
        run_subprocess_with_context(
            ["git", "fetch", "--prune", DEFAULT_REMOTE],
            operation_context=f"fetch from {DEFAULT_REMOTE}",
            cwd=cwd,
        )

    def checkout_branch(self, cwd: Path, branch: str) -> None:
        run_subprocess_with_context(
            ["git", "checkout", branch],
            operation_context=f"checkout branch '{branch}'",
            cwd=cwd,
        )

    def merge_branch(self, cwd: Path, ref: str) -> CommandResult:
        return _to_command_result(_run_unchecked(["git", "merge", "--no-edit", ref], cwd))

    def squash_merge(self, cwd: Path, branch: str) -> CommandResult:
        return _to_command_result(_run_unchecked(["git", "merge", "--squash", branch], cwd))

    def abort_merge(self, cwd: Path) -> None:
        run_subprocess_with_context(
            ["git", "merge", "--abort"],
            operation_context="abort merge",
            cwd=cwd,
        )

    def commit(self, cwd: Path, message: str | None) -> None:
        cmd = ["git", "commit", "--no-edit"]
        if message is not None:
            cmd = ["git", "commit", "-m", message]
        run_subprocess_with_context(cmd, operation_context="commit", cwd=cwd)

    def reset_hard(self, cwd: Path, ref: str) -> None:
        run_subprocess_with_context(
            ["git", "reset", "--hard", ref],
            operation_context=f"reset to '{ref}'",
            cwd=cwd,
        )

    def push_branch(self, cwd: Path, branch: str, *, force: bool, set_upstream: bool) -> None:
        cmd = ["git", "push"]
        if set_upstream:
            cmd.append("-u")
        if force:
            cmd.append("--force-with-lease")
        cmd.extend([DEFAULT_REMOTE, branch])
        run_subprocess_with_context(cmd, operation_context=f"push branch '{branch}'", cwd=cwd)

    def push_sha(self, cwd: Path, branch: str, sha: str) -> None:
        run_subprocess_with_context(
            ["git", "push", "--force", DEFAULT_REMOTE, f"{sha}:refs/heads/{branch}"],
            operation_context=f"reset remote branch '{branch}' to {sha}",
            cwd=cwd,
        )

    def delete_local_branch(self, cwd: Path, branch: str, *, force: bool) -> None:
        flag = "-D" if force else "-d"
        run_subprocess_with_context(
            ["git", "branch", flag, branch],
            operation_context=f"delete branch '{branch}'",
            cwd=cwd,
        )

    def delete_remote_branch(self, cwd: Path, branch: str) -> None:
        run_subprocess_with_context(
            ["git", "push", DEFAULT_REMOTE, "--delete", branch],
            operation_context=f"delete remote branch '{branch}'",
            cwd=cwd,
        )

    def stash(self, cwd: Path) -> None:
        run_subprocess_with_context(
            ["git", "add", "-A"],
            operation_context="stage open changes",
            cwd=cwd,
        )
        run_subprocess_with_context(
            ["git", "stash"],
            operation_context="stash open changes",
            cwd=cwd,
        )

    def stash_pop(self, cwd: Path) -> CommandResult:
        return _to_command_result(_run_unchecked(["git", "stash", "pop"], cwd))
