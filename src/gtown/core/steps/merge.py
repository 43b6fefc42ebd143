"""Merge-family steps and the restoration helpers they hand out."""

from dataclasses import dataclass

from gtown.core.git.abc import DEFAULT_REMOTE, CommandResult
from gtown.core.steps.base import NoOpStep, Step, StepContext, StepResult


def merge_result(ctx: StepContext, result: CommandResult, action: str) -> StepResult:
    """Classify the outcome of a merge-like command.

    The repository status decides: conflicted paths mean CONFLICT whatever
    the exit code said. A non-zero exit without conflicts is a hard failure.
    """
    conflicted = ctx.git.get_conflicted_files(ctx.cwd)
    if conflicted:
        return StepResult.conflict(conflicted)
    if not result.success:
        detail = result.stderr.strip() or result.stdout.strip()
        return StepResult.failed(f"Failed to {action}" + (f": {detail}" if detail else ""))
    return StepResult.completed()


def _reset_to_head(ctx: StepContext) -> Step:
    sha = ctx.git.get_branch_sha(ctx.cwd, "HEAD")
    if sha is None:
        return NoOpStep()
    return ResetToShaStep(sha=sha)


@dataclass(frozen=True)
class MergeBranchStep(Step):
    """Merges the given branch into the current branch."""

    branch_name: str

    def run(self, ctx: StepContext) -> StepResult:
        try:
            result = ctx.git.merge_branch(ctx.cwd, self.branch_name)
        except RuntimeError as e:
            return StepResult.failed(str(e))
        return merge_result(ctx, result, f"merge '{self.branch_name}'")

    def describe(self) -> str:
        return f"merge {self.branch_name}"

    def create_undo_step(self, ctx: StepContext) -> Step:
        return _reset_to_head(ctx)

    def create_abort_step(self) -> Step:
        return AbortMergeStep()

    def create_continue_step(self) -> Step:
        return ContinueMergeStep()


@dataclass(frozen=True)
class MergeTrackingBranchStep(Step):
    """Merges origin/<current branch> into the current branch, if it exists."""

    def run(self, ctx: StepContext) -> StepResult:
        try:
            branch = ctx.git.get_current_branch(ctx.cwd)
            if branch is None:
                return StepResult.failed("Cannot merge the tracking branch: HEAD is detached")
            if not ctx.git.has_tracking_branch(ctx.cwd, branch):
                return StepResult.completed()
            ref = f"{DEFAULT_REMOTE}/{branch}"
            result = ctx.git.merge_branch(ctx.cwd, ref)
        except RuntimeError as e:
            return StepResult.failed(str(e))
        return merge_result(ctx, result, f"merge '{ref}'")

    def describe(self) -> str:
        return "merge tracking branch"

    def create_undo_step(self, ctx: StepContext) -> Step:
        return _reset_to_head(ctx)

    def create_abort_step(self) -> Step:
        return AbortMergeStep()

    def create_continue_step(self) -> Step:
        return ContinueMergeStep()


@dataclass(frozen=True)
class SquashMergeBranchStep(Step):
    """Squash-merges branch into the current branch as a single commit.

    With no commit message, git's prepared squash message is used.
    """

    branch_name: str
    commit_message: str | None = None

    def run(self, ctx: StepContext) -> StepResult:
        try:
            result = ctx.git.squash_merge(ctx.cwd, self.branch_name)
            outcome = merge_result(ctx, result, f"squash-merge '{self.branch_name}'")
            if not outcome.is_completed:
                return outcome
            ctx.git.commit(ctx.cwd, self.commit_message)
        except RuntimeError as e:
            return StepResult.failed(str(e))
        return StepResult.completed()

    def describe(self) -> str:
        return f"squash-merge {self.branch_name}"

    def create_undo_step(self, ctx: StepContext) -> Step:
        return _reset_to_head(ctx)

    def create_abort_step(self) -> Step:
        return DiscardOpenChangesStep()

    def create_continue_step(self) -> Step:
        return ContinueSquashMergeStep(
            branch_name=self.branch_name,
            commit_message=self.commit_message,
        )


@dataclass(frozen=True)
class ContinueMergeStep(Step):
    """Commits a merge whose conflicts the user resolved."""

    def run(self, ctx: StepContext) -> StepResult:
        try:
            # The user may already have committed the merge themselves
            if not ctx.git.is_merge_in_progress(ctx.cwd):
                return StepResult.completed()
            ctx.git.commit(ctx.cwd, None)
        except RuntimeError as e:
            return StepResult.failed(str(e))
        return StepResult.completed()

    def describe(self) -> str:
        return "commit resolved merge"

    def create_abort_step(self) -> Step:
        return AbortMergeStep()


@dataclass(frozen=True)
class ContinueSquashMergeStep(Step):
    """Commits a squash merge whose conflicts the user resolved."""

    branch_name: str
    commit_message: str | None = None

    def run(self, ctx: StepContext) -> StepResult:
        try:
            if not ctx.git.has_open_changes(ctx.cwd):
                return StepResult.completed()
            ctx.git.commit(ctx.cwd, self.commit_message)
        except RuntimeError as e:
            return StepResult.failed(str(e))
        return StepResult.completed()

    def describe(self) -> str:
        return f"commit squash-merge of {self.branch_name}"

    def create_abort_step(self) -> Step:
        return DiscardOpenChangesStep()


@dataclass(frozen=True)
class AbortMergeStep(Step):
    """Aborts the merge in progress."""

    def run(self, ctx: StepContext) -> StepResult:
        try:
            if ctx.git.is_merge_in_progress(ctx.cwd):
                ctx.git.abort_merge(ctx.cwd)
        except RuntimeError as e:
            return StepResult.failed(str(e))
        return StepResult.completed()

    def describe(self) -> str:
        return "abort merge"


@dataclass(frozen=True)
class DiscardOpenChangesStep(Step):
    """Throws away all uncommitted changes on the current branch."""

    def run(self, ctx: StepContext) -> StepResult:
        try:
            ctx.git.reset_hard(ctx.cwd, "HEAD")
        except RuntimeError as e:
            return StepResult.failed(str(e))
        return StepResult.completed()

    def describe(self) -> str:
        return "discard open changes"


@dataclass(frozen=True)
class ResetToShaStep(Step):
    """Hard-resets the current branch to the given commit."""

    sha: str

    def run(self, ctx: StepContext) -> StepResult:
        try:
            if ctx.git.get_branch_sha(ctx.cwd, "HEAD") == self.sha:
                return StepResult.completed()
            ctx.git.reset_hard(ctx.cwd, self.sha)
        except RuntimeError as e:
            return StepResult.failed(str(e))
        return StepResult.completed()

    def describe(self) -> str:
        return f"reset to {self.sha}"
