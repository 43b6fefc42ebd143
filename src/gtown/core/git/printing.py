"""Printing Git wrapper for verbose output.

This module provides a Git wrapper that prints every mutating git command
before delegating to the wrapped implementation, so users can follow what a
command run does to their repository.
"""

from pathlib import Path

import click

from gtown.cli.output import user_output
from gtown.core.git.abc import DEFAULT_REMOTE, CommandResult, Git


def format_command(args: list[str], branch: str | None) -> str:
    """Render a git command the way it is shown to users.

    Arguments containing spaces are quoted. The current branch, when known,
    is shown as a ``[branch]`` prefix.
    """
    quoted = [f'"{arg}"' if " " in arg else arg for arg in args]
    line = " ".join(quoted)
    if branch is not None:
        line = f"[{branch}] {line}"
    return line


class PrintingGit(Git):
    """Wrapper that prints operations before delegating to inner implementation.

    Usage:
        printing_git = PrintingGit(RealGit())
    """

    def __init__(self, wrapped: Git) -> None:
        self._wrapped = wrapped

    def _emit(self, cwd: Path, args: list[str]) -> None:
        branch = self._wrapped.get_current_branch(cwd)
        user_output("")
        user_output(click.style(format_command(args, branch), bold=True))

    # Read-only operations: delegate without printing

    def get_current_branch(self, cwd: Path) -> str | None:
        return self._wrapped.get_current_branch(cwd)

    def get_repository_root(self, cwd: Path) -> Path | None:
        return self._wrapped.get_repository_root(cwd)

    def get_trunk_branch(self, repo_root: Path) -> str:
        return self._wrapped.get_trunk_branch(repo_root)

    def has_branch(self, cwd: Path, branch: str) -> bool:
        return self._wrapped.has_branch(cwd, branch)

    def has_remote(self, cwd: Path, remote: str = DEFAULT_REMOTE) -> bool:
        return self._wrapped.has_remote(cwd, remote)

    def has_tracking_branch(self, cwd: Path, branch: str) -> bool:
        return self._wrapped.has_tracking_branch(cwd, branch)

    def get_branch_sha(self, cwd: Path, ref: str) -> str | None:
        return self._wrapped.get_branch_sha(cwd, ref)

    def has_open_changes(self, cwd: Path) -> bool:
        return self._wrapped.has_open_changes(cwd)

    def get_conflicted_files(self, cwd: Path) -> list[str]:
        return self._wrapped.get_conflicted_files(cwd)

    def is_merge_in_progress(self, cwd: Path) -> bool:
        return self._wrapped.is_merge_in_progress(cwd)

    def has_shippable_changes(self, cwd: Path, branch: str, parent: str) -> bool:
        return self._wrapped.has_shippable_changes(cwd, branch, parent)

    # Operations that change the repository: print, then delegate

    def fetch(self, cwd: Path) -> None:
        self._emit(cwd, ["git", "fetch", "--prune", DEFAULT_REMOTE])
        self._wrapped.fetch(cwd)

    def checkout_branch(self, cwd: Path, branch: str) -> None:
        self._emit(cwd, ["git", "checkout", branch])
        self._wrapped.checkout_branch(cwd, branch)

    def merge_branch(self, cwd: Path, ref: str) -> CommandResult:
        self._emit(cwd, ["git", "merge", "--no-edit", ref])
        return self._wrapped.merge_branch(cwd, ref)

    def squash_merge(self, cwd: Path, branch: str) -> CommandResult:
        self._emit(cwd, ["git", "merge", "--squash", branch])
        return self._wrapped.squash_merge(cwd, branch)

    def abort_merge(self, cwd: Path) -> None:
        self._emit(cwd, ["git", "merge", "--abort"])
        self._wrapped.abort_merge(cwd)

    def commit(self, cwd: Path, message: str | None) -> None:
        args = ["git", "commit", "--no-edit"]
        if message is not None:
            args = ["git", "commit", "-m", message]
        self._emit(cwd, args)
        self._wrapped.commit(cwd, message)

    def reset_hard(self, cwd: Path, ref: str) -> None:
        self._emit(cwd, ["git", "reset", "--hard", ref])
        self._wrapped.reset_hard(cwd, ref)

    def push_branch(self, cwd: Path, branch: str, *, force: bool, set_upstream: bool) -> None:
        args = ["git", "push"]
        if set_upstream:
            args.append("-u")
        if force:
            args.append("--force-with-lease")
        args.extend([DEFAULT_REMOTE, branch])
        self._emit(cwd, args)
        self._wrapped.push_branch(cwd, branch, force=force, set_upstream=set_upstream)

    def push_sha(self, cwd: Path, branch: str, sha: str) -> None:
        self._emit(cwd, ["git", "push", "--force", DEFAULT_REMOTE, f"{sha}:refs/heads/{branch}"])
        self._wrapped.push_sha(cwd, branch, sha)

    def delete_local_branch(self, cwd: Path, branch: str, *, force: bool) -> None:
        self._emit(cwd, ["git", "branch", "-D" if force else "-d", branch])
        self._wrapped.delete_local_branch(cwd, branch, force=force)

    def delete_remote_branch(self, cwd: Path, branch: str) -> None:
        self._emit(cwd, ["git", "push", DEFAULT_REMOTE, "--delete", branch])
        self._wrapped.delete_remote_branch(cwd, branch)

    def stash(self, cwd: Path) -> None:
        self._emit(cwd, ["git", "add", "-A"])
        self._emit(cwd, ["git", "stash"])
        self._wrapped.stash(cwd)

    def stash_pop(self, cwd: Path) -> CommandResult:
        self._emit(cwd, ["git", "stash", "pop"])
        return self._wrapped.stash_pop(cwd)
