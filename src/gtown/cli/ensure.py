"""CLI error handling utilities with styled output.

This module provides the Ensure class for asserting invariants in CLI commands
with consistent, user-friendly error messages. All errors use red "Error:" prefix
for visual consistency.
"""

from typing import TYPE_CHECKING, TypeVar

import click

from gtown.cli.output import user_output
from gtown.core.repo_discovery import RepoContext

if TYPE_CHECKING:
    from gtown.core.context import GtownContext

T = TypeVar("T")


class Ensure:
    """Helper class for asserting invariants with consistent error handling."""

    @staticmethod
    def invariant(condition: bool, error_message: str) -> None:
        """Ensure condition is true, otherwise output styled error and exit.

        Args:
            condition: Boolean condition to check
            error_message: Error message to display if condition is false.
                          "Error: " prefix will be added automatically in red.

        Raises:
            SystemExit: If condition is false (with exit code 1)
        """
        if not condition:
            user_output(click.style("Error: ", fg="red") + error_message)
            raise SystemExit(1)

    @staticmethod
    def not_none(value: T | None, error_message: str) -> T:
        """Ensure value is not None, otherwise output styled error and exit.

        This method provides type narrowing: it takes `T | None` and returns `T`.

        Example:
            >>> branch: str | None = ctx.git.get_current_branch(ctx.cwd)
            >>> current: str = Ensure.not_none(branch, "Not on a branch")
        """
        if value is None:
            user_output(click.style("Error: ", fg="red") + error_message)
            raise SystemExit(1)
        return value

    @staticmethod
    def in_repo(ctx: "GtownContext") -> RepoContext:
        """Ensure the command runs inside a git repository.

        Returns:
            The discovered RepoContext
        """
        if not isinstance(ctx.repo, RepoContext):
            user_output(click.style("Error: ", fg="red") + ctx.repo.message)
            raise SystemExit(1)
        return ctx.repo

    @staticmethod
    def branch_exists(ctx: "GtownContext", branch: str) -> None:
        """Ensure a local branch exists."""
        if not ctx.git.has_branch(ctx.cwd, branch):
            user_output(click.style("Error: ", fg="red") + f"There is no branch named '{branch}'")
            raise SystemExit(1)

    @staticmethod
    def no_open_changes(ctx: "GtownContext", error_message: str) -> None:
        """Ensure the working tree has no uncommitted changes."""
        if ctx.git.has_open_changes(ctx.cwd):
            user_output(click.style("Error: ", fg="red") + error_message)
            raise SystemExit(1)
