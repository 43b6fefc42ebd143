"""In-memory branch hierarchy for tests."""

from gtown.core.branches.abc import BranchHierarchy


class FakeBranchHierarchy(BranchHierarchy):
    """Branch hierarchy held in dictionaries.

    Ancestor lists are cached on first lookup, matching the git config
    implementation, so tests can observe DeleteAncestorBranchesStep.
    """

    def __init__(
        self,
        *,
        main_branch: str = "main",
        parents: dict[str, str] | None = None,
        perennial_branches: list[str] | None = None,
    ) -> None:
        self._main_branch = main_branch
        self._parents = dict(parents or {})
        self._perennial_branches = list(perennial_branches or [])
        self._ancestor_cache: dict[str, list[str]] = {}

    def get_main_branch(self) -> str:
        return self._main_branch

    def get_perennial_branches(self) -> list[str]:
        return list(self._perennial_branches)

    def get_parent_branch(self, branch: str) -> str | None:
        return self._parents.get(branch)

    def get_child_branches(self, branch: str) -> list[str]:
        return sorted(child for child, parent in self._parents.items() if parent == branch)

    def get_ancestor_branches(self, branch: str) -> list[str]:
        if branch not in self._ancestor_cache:
            ancestors = self._compute_ancestors(branch)
            if not ancestors:
                return []
            self._ancestor_cache[branch] = ancestors
        return list(self._ancestor_cache[branch])

    def set_parent_branch(self, branch: str, parent: str) -> None:
        self._parents[branch] = parent

    def delete_parent_branch(self, branch: str) -> None:
        self._parents.pop(branch, None)

    def delete_all_ancestor_branches(self) -> None:
        self._ancestor_cache.clear()

    @property
    def parents(self) -> dict[str, str]:
        return dict(self._parents)

    @property
    def cached_ancestors(self) -> dict[str, list[str]]:
        return {branch: list(ancestors) for branch, ancestors in self._ancestor_cache.items()}
