"""Core step abstractions.

A Step is one atomic, reversible unit of work against the repository. Every
step knows how to produce the step that undoes it, the step that completes it
after the user resolved a conflict, and the step that reverts it when the run
is aborted mid-way.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import ClassVar

from gtown.core.branches.abc import BranchHierarchy
from gtown.core.git.abc import Git
from gtown.core.user_feedback import UserFeedback


class StepOutcome(Enum):
    COMPLETED = "completed"
    CONFLICT = "conflict"
    FAILED = "failed"


@dataclass(frozen=True)
class StepResult:
    """Result of running a single step."""

    outcome: StepOutcome
    message: str | None = None
    conflicted_files: list[str] = field(default_factory=list)

    @staticmethod
    def completed() -> "StepResult":
        return StepResult(outcome=StepOutcome.COMPLETED)

    @staticmethod
    def conflict(conflicted_files: list[str]) -> "StepResult":
        return StepResult(
            outcome=StepOutcome.CONFLICT,
            message="merge conflict",
            conflicted_files=list(conflicted_files),
        )

    @staticmethod
    def failed(message: str) -> "StepResult":
        return StepResult(outcome=StepOutcome.FAILED, message=message)

    @property
    def is_completed(self) -> bool:
        return self.outcome is StepOutcome.COMPLETED


@dataclass
class StepContext:
    """Mutable execution environment shared by the steps of one run.

    Attributes:
        git: Git operations
        branches: Branch hierarchy accessor
        feedback: User-facing output
        cwd: Directory git commands run in; moved by the directory steps
        repo_root: Top-level directory of the repository
        pending_stashes: Stash entries created by this run and not yet restored
    """

    git: Git
    branches: BranchHierarchy
    feedback: UserFeedback
    cwd: Path
    repo_root: Path
    pending_stashes: int = 0


class Step(ABC):
    """Base class for all steps.

    Concrete steps are frozen dataclasses holding only their parameters, so
    they can be persisted and compared by value.
    """

    releases_scope: ClassVar[bool] = False
    """True for steps that give back something acquired at the start of the
    run (the stash, the working directory). They run even when the run stops."""

    @abstractmethod
    def run(self, ctx: StepContext) -> StepResult:
        """Execute the step."""

    @abstractmethod
    def describe(self) -> str:
        """Short human-readable summary, e.g. "checkout main"."""

    def create_undo_step(self, ctx: StepContext) -> "Step":
        """Return the step that reverts this one.

        Called immediately before run(), so implementations can capture the
        state they are about to change.
        """
        return NoOpStep()

    def create_abort_step(self) -> "Step":
        """Return the step that reverts a partially applied run of this step."""
        return NoOpStep()

    def create_continue_step(self) -> "Step":
        """Return the step that completes this one after a suspension."""
        return self

    def should_abort_on_error(self) -> bool:
        """Whether a failure of this step aborts the whole run automatically."""
        return False


@dataclass(frozen=True)
class NoOpStep(Step):
    """Does nothing."""

    def run(self, ctx: StepContext) -> StepResult:
        return StepResult.completed()

    def describe(self) -> str:
        return "no-op"


@dataclass(frozen=True)
class IrreversibleStep(Step):
    """Placeholder undo step for an effect that cannot be reversed.

    Restoration never runs it. It is reported as a gap instead.
    """

    description: str

    def run(self, ctx: StepContext) -> StepResult:
        return StepResult.failed(f"cannot be undone: {self.description}")

    def describe(self) -> str:
        return f"irreversible: {self.description}"
