"""Steps that acquire and release the run's scope: working directory and stash.

StepList.wrap() brackets a list with these. The release steps (restore
directory, restore open changes) also run when a run stops early.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import ClassVar

from gtown.core.steps.base import Step, StepContext, StepResult


@dataclass(frozen=True)
class ChangeDirectoryStep(Step):
    directory: str

    def run(self, ctx: StepContext) -> StepResult:
        ctx.cwd = Path(self.directory)
        return StepResult.completed()

    def describe(self) -> str:
        return f"cd {self.directory}"


@dataclass(frozen=True)
class RestoreDirectoryStep(Step):
    directory: str

    releases_scope: ClassVar[bool] = True

    def run(self, ctx: StepContext) -> StepResult:
        ctx.cwd = Path(self.directory)
        return StepResult.completed()

    def describe(self) -> str:
        return f"cd {self.directory}"


@dataclass(frozen=True)
class StashOpenChangesStep(Step):
    """Stashes uncommitted changes so the run starts from a clean tree."""

    def run(self, ctx: StepContext) -> StepResult:
        try:
            if ctx.git.get_conflicted_files(ctx.cwd):
                return StepResult.failed("Cannot stash open changes while conflicts are unresolved")
            if not ctx.git.has_open_changes(ctx.cwd):
                return StepResult.completed()
            ctx.git.stash(ctx.cwd)
        except RuntimeError as e:
            return StepResult.failed(str(e))
        ctx.pending_stashes += 1
        return StepResult.completed()

    def describe(self) -> str:
        return "stash open changes"


@dataclass(frozen=True)
class RestoreOpenChangesStep(Step):
    """Pops every stash entry this run created."""

    releases_scope: ClassVar[bool] = True

    def run(self, ctx: StepContext) -> StepResult:
        while ctx.pending_stashes > 0:
            try:
                result = ctx.git.stash_pop(ctx.cwd)
            except RuntimeError as e:
                return StepResult.failed(str(e))
            if not result.success:
                return StepResult.failed(
                    "Could not restore your stashed changes. "
                    'They are still in the stash; run "git stash pop" once the tree is clean.'
                )
            ctx.pending_stashes -= 1
        return StepResult.completed()

    def describe(self) -> str:
        return "restore open changes"
