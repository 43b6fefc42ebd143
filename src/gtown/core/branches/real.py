"""Branch hierarchy stored in the repository's git config.

Keys:
    git-town.main-branch-name            main branch
    git-town.perennial-branch-names      space-separated perennial branches
    git-town-branch.<branch>.parent      parent of a feature branch
    git-town-branch.<branch>.ancestors   cached, space-separated ancestor list
"""

import subprocess
from pathlib import Path

from gtown.core.branches.abc import BranchHierarchy
from gtown.core.git.abc import Git
from gtown.core.subprocess import run_subprocess_with_context

MAIN_BRANCH_KEY = "git-town.main-branch-name"
PERENNIAL_BRANCHES_KEY = "git-town.perennial-branch-names"
_BRANCH_PREFIX = "git-town-branch."
_PARENT_SUFFIX = ".parent"
_ANCESTORS_SUFFIX = ".ancestors"


def parent_key(branch: str) -> str:
    return f"{_BRANCH_PREFIX}{branch}{_PARENT_SUFFIX}"


def ancestors_key(branch: str) -> str:
    return f"{_BRANCH_PREFIX}{branch}{_ANCESTORS_SUFFIX}"


class RealBranchHierarchy(BranchHierarchy):
    """Reads and writes the hierarchy with `git config`."""

    def __init__(self, repo_root: Path, git: Git) -> None:
        self._repo_root = repo_root
        self._git = git

    def _get(self, key: str) -> str | None:
        result = subprocess.run(
            ["git", "config", "--get", key],
            cwd=self._repo_root,
            capture_output=True,
            text=True,
            check=False,
        )
        if result.returncode != 0:
            return None
        value = result.stdout.strip()
        return value or None

    def _get_regexp(self, pattern: str) -> list[tuple[str, str]]:
        result = subprocess.run(
            ["git", "config", "--get-regexp", pattern],
            cwd=self._repo_root,
            capture_output=True,
            text=True,
            check=False,
        )
        # Exit code 1 means no matching keys
        if result.returncode != 0:
            return []
        entries: list[tuple[str, str]] = []
        for line in result.stdout.splitlines():
            key, _, value = line.partition(" ")
            entries.append((key, value.strip()))
        return entries

    def _set(self, key: str, value: str) -> None:
        run_subprocess_with_context(
            ["git", "config", key, value],
            operation_context=f"set git config '{key}'",
            cwd=self._repo_root,
        )

    def _unset(self, key: str) -> None:
        if self._get(key) is None:
            return
        run_subprocess_with_context(
            ["git", "config", "--unset", key],
            operation_context=f"unset git config '{key}'",
            cwd=self._repo_root,
        )

    def get_main_branch(self) -> str:
        configured = self._get(MAIN_BRANCH_KEY)
        if configured is not None:
            return configured
        return self._git.get_trunk_branch(self._repo_root)

    def get_perennial_branches(self) -> list[str]:
        value = self._get(PERENNIAL_BRANCHES_KEY)
        if value is None:
            return []
        return value.split()

    def get_parent_branch(self, branch: str) -> str | None:
        return self._get(parent_key(branch))

    def get_child_branches(self, branch: str) -> list[str]:
        children: list[str] = []
        for key, value in self._get_regexp(r"^git-town-branch\..*\.parent$"):
            if value != branch:
                continue
            children.append(key.removeprefix(_BRANCH_PREFIX).removesuffix(_PARENT_SUFFIX))
        return sorted(children)

    def get_ancestor_branches(self, branch: str) -> list[str]:
        cached = self._get(ancestors_key(branch))
        if cached is not None:
            return cached.split()
        ancestors = self._compute_ancestors(branch)
        if ancestors:
            self._set(ancestors_key(branch), " ".join(ancestors))
        return ancestors

    def set_parent_branch(self, branch: str, parent: str) -> None:
        self._set(parent_key(branch), parent)

    def delete_parent_branch(self, branch: str) -> None:
        self._unset(parent_key(branch))

    def delete_all_ancestor_branches(self) -> None:
        for key, _ in self._get_regexp(r"^git-town-branch\..*\.ancestors$"):
            self._unset(key)
