"""Step builders shared by commands that bring branches up to date."""

from pathlib import Path

from gtown.core.git.abc import Git
from gtown.core.steps.branch import CheckoutBranchStep
from gtown.core.steps.merge import MergeTrackingBranchStep
from gtown.core.steps.remote import PushBranchStep
from gtown.core.steps.step_list import StepList


def get_sync_branch_steps(git: Git, cwd: Path, branch: str, *, offline: bool) -> StepList:
    """Steps that update branch from its tracking branch and push the result.

    Without a tracking branch, or when offline, the branch is only checked out.
    """
    steps = StepList([CheckoutBranchStep(branch_name=branch)])
    if offline or not git.has_tracking_branch(cwd, branch):
        return steps
    steps.append(MergeTrackingBranchStep())
    steps.append(PushBranchStep(branch_name=branch))
    return steps
