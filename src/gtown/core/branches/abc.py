"""Abstract interface for the branch hierarchy.

The hierarchy records which branch each feature branch was cut from (its
parent), which branch is the main branch, and which branches are perennial.
Parents form a forest rooted at the main branch and perennial branches.
"""

from abc import ABC, abstractmethod


class BranchHierarchy(ABC):
    """Read and update the parent/child relationships between branches."""

    @abstractmethod
    def get_main_branch(self) -> str:
        """Name of the main development branch."""

    @abstractmethod
    def get_perennial_branches(self) -> list[str]:
        """Long-lived branches besides main (e.g. "production", "qa")."""

    @abstractmethod
    def get_parent_branch(self, branch: str) -> str | None:
        """Parent of branch, or None when it is unknown."""

    @abstractmethod
    def get_child_branches(self, branch: str) -> list[str]:
        """Branches whose parent is branch, sorted by name."""

    @abstractmethod
    def get_ancestor_branches(self, branch: str) -> list[str]:
        """Ancestors of branch, oldest first (the main branch comes first).

        The result may come from a cache. DeleteAncestorBranchesStep clears
        that cache after the hierarchy changes.
        """

    @abstractmethod
    def set_parent_branch(self, branch: str, parent: str) -> None:
        """Record parent as the parent of branch."""

    @abstractmethod
    def delete_parent_branch(self, branch: str) -> None:
        """Forget the parent of branch. A no-op when none is recorded."""

    @abstractmethod
    def delete_all_ancestor_branches(self) -> None:
        """Clear every cached ancestor list."""

    def is_feature_branch(self, branch: str) -> bool:
        """A feature branch is any branch that is neither main nor perennial."""
        if branch == self.get_main_branch():
            return False
        return branch not in self.get_perennial_branches()

    def _compute_ancestors(self, branch: str) -> list[str]:
        ancestors: list[str] = []
        seen = {branch}
        current = self.get_parent_branch(branch)
        while current is not None and current not in seen:
            ancestors.insert(0, current)
            seen.add(current)
            current = self.get_parent_branch(current)
        return ancestors
