"""Ship command - squash-merge a feature branch into the main branch."""

from dataclasses import dataclass

import click

from gtown.cli.ensure import Ensure
from gtown.cli.run import execute_run, with_printing_git
from gtown.core.context import GtownContext
from gtown.core.repo_discovery import RepoContext
from gtown.core.steps.branch import (
    CheckoutBranchStep,
    DeleteAncestorBranchesStep,
    DeleteLocalBranchStep,
    DeleteParentBranchStep,
    EnsureHasShippableChangesStep,
    SetParentBranchStep,
)
from gtown.core.steps.merge import MergeBranchStep, MergeTrackingBranchStep, SquashMergeBranchStep
from gtown.core.steps.remote import DeleteRemoteBranchStep, PushBranchStep
from gtown.core.steps.runner import RunOptions
from gtown.core.steps.step_list import StepList, WrapOptions
from gtown.core.steps.sync import get_sync_branch_steps

COMMAND_NAME = "ship"


@dataclass(frozen=True)
class ShipConfig:
    """Facts about the repository that the ship step list depends on."""

    initial_branch: str
    branch_to_ship: str
    main_branch: str
    child_branches: list[str]
    has_remote: bool
    has_tracking_branch: bool
    offline: bool


def check_ship_preconditions(ctx: GtownContext, branch_name: str | None) -> ShipConfig:
    """Validate that branch_name (default: current branch) can be shipped.

    Fetches from the remote when one is configured and gtown is not offline.

    Raises:
        SystemExit: If a precondition does not hold
    """
    initial_branch = Ensure.not_none(
        ctx.git.get_current_branch(ctx.cwd),
        "You are not on a branch. Check out the branch to ship first.",
    )
    branch_to_ship = branch_name or initial_branch

    if branch_to_ship == initial_branch:
        Ensure.no_open_changes(
            ctx,
            "You have uncommitted changes. Did you mean to commit them before shipping?",
        )

    has_remote = ctx.git.has_remote(ctx.cwd)
    if has_remote and not ctx.offline:
        ctx.git.fetch(ctx.cwd)

    if branch_to_ship != initial_branch:
        Ensure.branch_exists(ctx, branch_to_ship)

    Ensure.invariant(
        ctx.branches.is_feature_branch(branch_to_ship),
        "Only feature branches can be shipped.",
    )

    main_branch = ctx.branches.get_main_branch()
    parent = Ensure.not_none(
        ctx.branches.get_parent_branch(branch_to_ship),
        f"The parent branch of '{branch_to_ship}' is unknown.\n"
        f"Record it with: git config git-town-branch.{branch_to_ship}.parent {main_branch}",
    )
    _ensure_parent_is_main(ctx, branch_to_ship, parent, main_branch)

    return ShipConfig(
        initial_branch=initial_branch,
        branch_to_ship=branch_to_ship,
        main_branch=main_branch,
        child_branches=ctx.branches.get_child_branches(branch_to_ship),
        has_remote=has_remote,
        has_tracking_branch=ctx.git.has_tracking_branch(ctx.cwd, branch_to_ship),
        offline=ctx.offline,
    )


def _ensure_parent_is_main(ctx: GtownContext, branch: str, parent: str, main_branch: str) -> None:
    if parent == main_branch:
        return
    # The ancestor list is a cache and may predate the current parent
    ancestors = ctx.branches.get_ancestor_branches(branch)
    unshipped = [ancestor for ancestor in ancestors if ancestor != main_branch]
    if parent not in unshipped:
        unshipped = [parent]
    Ensure.invariant(
        False,
        f"Shipping this branch would ship {', '.join(unshipped)} as well.\n"
        f'Please ship "{unshipped[0]}" first.',
    )


def get_ship_step_list(
    ctx: GtownContext,
    repo: RepoContext,
    config: ShipConfig,
    commit_message: str | None,
) -> StepList:
    """Build the ship plan.

    Sync the main branch, bring the feature branch up to date, verify it has
    changes, squash-merge it into main, publish main, and remove the feature
    branch along with its hierarchy entries.
    """
    branch = config.branch_to_ship
    main_branch = config.main_branch
    is_online = config.has_remote and not config.offline

    steps = get_sync_branch_steps(ctx.git, ctx.cwd, main_branch, offline=config.offline)
    steps.append(CheckoutBranchStep(branch_name=branch))
    steps.append(MergeTrackingBranchStep())
    steps.append(MergeBranchStep(branch_name=main_branch))
    steps.append(EnsureHasShippableChangesStep(branch_name=branch))
    steps.append(CheckoutBranchStep(branch_name=main_branch))
    steps.append(SquashMergeBranchStep(branch_name=branch, commit_message=commit_message))
    if is_online:
        steps.append(PushBranchStep(branch_name=main_branch, undoable=True))

    if config.has_tracking_branch and not config.child_branches and not config.offline:
        steps.append(DeleteRemoteBranchStep(branch_name=branch, is_tracking=True))
    steps.append(DeleteLocalBranchStep(branch_name=branch, force=True))
    steps.append(DeleteParentBranchStep(branch_name=branch))
    for child in config.child_branches:
        steps.append(SetParentBranchStep(branch_name=child, parent_branch_name=main_branch))
    steps.append(DeleteAncestorBranchesStep())

    if config.initial_branch != branch:
        steps.append(CheckoutBranchStep(branch_name=config.initial_branch))

    steps.wrap(
        WrapOptions(
            run_in_git_root=True,
            stash_open_changes=config.initial_branch != branch,
        ),
        git_root=repo.root,
        initial_directory=ctx.cwd,
    )
    return steps


@click.command(COMMAND_NAME)
@click.argument("branch", required=False)
@click.option("-m", "--message", "commit_message", help="Commit message for the squash commit")
@click.option("--abort", "abort_ship", is_flag=True, help="Abort a ship that stopped on conflicts")
@click.option(
    "--continue", "continue_ship", is_flag=True, help="Continue after resolving conflicts"
)
@click.option("--undo", "undo_ship", is_flag=True, help="Undo the last completed ship")
@click.pass_obj
def ship_cmd(
    ctx: GtownContext,
    branch: str | None,
    commit_message: str | None,
    abort_ship: bool,
    continue_ship: bool,
    undo_ship: bool,
) -> None:
    """Deliver a completed feature branch.

    Squash-merges BRANCH (default: the current branch) into the main branch,
    pushes main, and deletes the feature branch locally and on the remote.

    Only feature branches whose parent is the main branch can be shipped.
    Stops on merge conflicts: resolve them, then run with --continue, or
    revert everything with --abort.
    """
    repo = Ensure.in_repo(ctx)
    ctx = with_printing_git(ctx)

    def generate_steps() -> StepList:
        config = check_ship_preconditions(ctx, branch)
        return get_ship_step_list(ctx, repo, config, commit_message)

    execute_run(
        ctx,
        RunOptions(
            command=COMMAND_NAME,
            step_list_generator=generate_steps,
            is_abort=abort_ship,
            is_continue=continue_ship,
            is_undo=undo_ship,
        ),
    )
