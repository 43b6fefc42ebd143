"""Steps that change branches on the remote."""

from dataclasses import dataclass

from gtown.core.git.abc import DEFAULT_REMOTE
from gtown.core.steps.base import IrreversibleStep, NoOpStep, Step, StepContext, StepResult


@dataclass(frozen=True)
class PushBranchStep(Step):
    """Pushes a local branch, setting up tracking when it has none.

    Attributes:
        branch_name: Branch to push
        force: Push with --force-with-lease
        undoable: Whether undo may force-push the previous remote commit back.
            Only set this for branches the run owns, e.g. main after shipping.
    """

    branch_name: str
    force: bool = False
    undoable: bool = False

    def run(self, ctx: StepContext) -> StepResult:
        try:
            has_tracking = ctx.git.has_tracking_branch(ctx.cwd, self.branch_name)
            if has_tracking and self._is_in_sync(ctx):
                return StepResult.completed()
            ctx.git.push_branch(
                ctx.cwd,
                self.branch_name,
                force=self.force,
                set_upstream=not has_tracking,
            )
        except RuntimeError as e:
            return StepResult.failed(str(e))
        return StepResult.completed()

    def _is_in_sync(self, ctx: StepContext) -> bool:
        local_sha = ctx.git.get_branch_sha(ctx.cwd, self.branch_name)
        remote_sha = ctx.git.get_branch_sha(ctx.cwd, f"{DEFAULT_REMOTE}/{self.branch_name}")
        return local_sha == remote_sha

    def describe(self) -> str:
        return f"push {self.branch_name}"

    def create_undo_step(self, ctx: StepContext) -> Step:
        if not ctx.git.has_tracking_branch(ctx.cwd, self.branch_name):
            return DeleteRemoteBranchStep(branch_name=self.branch_name, is_tracking=True)
        if self._is_in_sync(ctx):
            return NoOpStep()
        remote_sha = ctx.git.get_branch_sha(ctx.cwd, f"{DEFAULT_REMOTE}/{self.branch_name}")
        if self.undoable and remote_sha is not None:
            return ResetRemoteBranchStep(branch_name=self.branch_name, sha=remote_sha)
        return IrreversibleStep(description=f"un-push branch '{self.branch_name}'")


@dataclass(frozen=True)
class ResetRemoteBranchStep(Step):
    """Force-pushes the given commit to the remote branch."""

    branch_name: str
    sha: str

    def run(self, ctx: StepContext) -> StepResult:
        try:
            ctx.git.push_sha(ctx.cwd, self.branch_name, self.sha)
        except RuntimeError as e:
            return StepResult.failed(str(e))
        return StepResult.completed()

    def describe(self) -> str:
        return f"reset {DEFAULT_REMOTE}/{self.branch_name} to {self.sha}"


@dataclass(frozen=True)
class DeleteRemoteBranchStep(Step):
    """Deletes a branch on the remote.

    `is_tracking` records that the remote branch is the tracking branch of a
    local branch with the same name.
    """

    branch_name: str
    is_tracking: bool = False

    def run(self, ctx: StepContext) -> StepResult:
        try:
            ctx.git.delete_remote_branch(ctx.cwd, self.branch_name)
        except RuntimeError as e:
            return StepResult.failed(str(e))
        return StepResult.completed()

    def describe(self) -> str:
        return f"delete remote branch {self.branch_name}"

    def create_undo_step(self, ctx: StepContext) -> Step:
        return IrreversibleStep(description=f"restore remote branch '{self.branch_name}'")
