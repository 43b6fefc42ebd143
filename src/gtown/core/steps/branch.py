"""Steps that move between, delete, or re-parent local branches."""

from dataclasses import dataclass

from gtown.core.steps.base import IrreversibleStep, NoOpStep, Step, StepContext, StepResult


@dataclass(frozen=True)
class CheckoutBranchStep(Step):
    """Checks out the given branch. Does nothing when it is already checked out."""

    branch_name: str

    def run(self, ctx: StepContext) -> StepResult:
        try:
            if ctx.git.get_current_branch(ctx.cwd) == self.branch_name:
                return StepResult.completed()
            ctx.git.checkout_branch(ctx.cwd, self.branch_name)
        except RuntimeError as e:
            return StepResult.failed(str(e))
        return StepResult.completed()

    def describe(self) -> str:
        return f"checkout {self.branch_name}"

    def create_undo_step(self, ctx: StepContext) -> Step:
        previous = ctx.git.get_current_branch(ctx.cwd)
        if previous is None or previous == self.branch_name:
            return NoOpStep()
        return CheckoutBranchStep(branch_name=previous)


@dataclass(frozen=True)
class DeleteLocalBranchStep(Step):
    """Deletes a local branch. `force` allows deleting unmerged work."""

    branch_name: str
    force: bool = False

    def run(self, ctx: StepContext) -> StepResult:
        try:
            ctx.git.delete_local_branch(ctx.cwd, self.branch_name, force=self.force)
        except RuntimeError as e:
            return StepResult.failed(str(e))
        return StepResult.completed()

    def describe(self) -> str:
        return f"delete branch {self.branch_name}"

    def create_undo_step(self, ctx: StepContext) -> Step:
        return IrreversibleStep(description=f"restore deleted branch '{self.branch_name}'")


@dataclass(frozen=True)
class SetParentBranchStep(Step):
    branch_name: str
    parent_branch_name: str

    def run(self, ctx: StepContext) -> StepResult:
        try:
            ctx.branches.set_parent_branch(self.branch_name, self.parent_branch_name)
        except RuntimeError as e:
            return StepResult.failed(str(e))
        return StepResult.completed()

    def describe(self) -> str:
        return f"set parent of {self.branch_name} to {self.parent_branch_name}"

    def create_undo_step(self, ctx: StepContext) -> Step:
        previous = ctx.branches.get_parent_branch(self.branch_name)
        if previous is None:
            return DeleteParentBranchStep(branch_name=self.branch_name)
        return SetParentBranchStep(branch_name=self.branch_name, parent_branch_name=previous)


@dataclass(frozen=True)
class DeleteParentBranchStep(Step):
    branch_name: str

    def run(self, ctx: StepContext) -> StepResult:
        try:
            ctx.branches.delete_parent_branch(self.branch_name)
        except RuntimeError as e:
            return StepResult.failed(str(e))
        return StepResult.completed()

    def describe(self) -> str:
        return f"delete parent entry of {self.branch_name}"

    def create_undo_step(self, ctx: StepContext) -> Step:
        previous = ctx.branches.get_parent_branch(self.branch_name)
        if previous is None:
            return NoOpStep()
        return SetParentBranchStep(branch_name=self.branch_name, parent_branch_name=previous)


@dataclass(frozen=True)
class DeleteAncestorBranchesStep(Step):
    """Clears the cached ancestor lists so they are recomputed from the parents."""

    def run(self, ctx: StepContext) -> StepResult:
        try:
            ctx.branches.delete_all_ancestor_branches()
        except RuntimeError as e:
            return StepResult.failed(str(e))
        return StepResult.completed()

    def describe(self) -> str:
        return "clear cached ancestor branches"


@dataclass(frozen=True)
class EnsureHasShippableChangesStep(Step):
    """Fails when branch has no changes compared to the main branch.

    A failure aborts the run automatically: there is nothing for the user to
    resolve.
    """

    branch_name: str

    def run(self, ctx: StepContext) -> StepResult:
        main_branch = ctx.branches.get_main_branch()
        if ctx.git.has_shippable_changes(ctx.cwd, self.branch_name, main_branch):
            return StepResult.completed()
        return StepResult.failed(f"The branch '{self.branch_name}' has no shippable changes")

    def describe(self) -> str:
        return f"ensure {self.branch_name} has shippable changes"

    def should_abort_on_error(self) -> bool:
        return True
