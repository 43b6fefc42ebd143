"""Tests for the status command."""

from click.testing import CliRunner

from gtown.cli.cli import cli
from gtown.core.context import GtownContext
from gtown.core.steps.branch import CheckoutBranchStep
from gtown.core.steps.merge import AbortMergeStep, MergeBranchStep
from gtown.core.steps.run_state import RunState, UnfinishedDetails
from gtown.core.steps.run_state_store import FakeRunStateStore
from gtown.core.steps.step_list import StepList


def test_status_without_state() -> None:
    runner = CliRunner()
    ctx = GtownContext.for_test()

    result = runner.invoke(cli, ["status"], obj=ctx)

    assert result.exit_code == 0
    assert "No pending run" in result.output


def test_status_shows_unfinished_run() -> None:
    state = RunState(
        command="ship",
        initial_branch="feature",
        run_steps=StepList([CheckoutBranchStep(branch_name="main")]),
        undo_steps=StepList([CheckoutBranchStep(branch_name="feature")]),
        abort_steps=StepList([AbortMergeStep(), CheckoutBranchStep(branch_name="feature")]),
        unfinished=UnfinishedDetails(
            suspended_step=MergeBranchStep(branch_name="main"),
            end_branch="feature",
            end_time="2024-01-01T12:00:00+00:00",
            conflicted_files=["README.md"],
        ),
    )
    ctx = GtownContext.for_test(run_state_store=FakeRunStateStore(state))
    runner = CliRunner()

    result = runner.invoke(cli, ["status"], obj=ctx)

    assert result.exit_code == 0, result.output
    assert "Unfinished" in result.output
    assert "merge main" in result.output
    assert "README.md" in result.output
    assert "Remaining steps" in result.output
    assert "Abort steps" in result.output
    assert "abort merge" in result.output


def test_status_shows_finished_run() -> None:
    state = RunState(
        command="ship",
        initial_branch="feature",
        run_steps=StepList(),
        undo_steps=StepList([CheckoutBranchStep(branch_name="feature")]),
        abort_steps=StepList(),
    )
    ctx = GtownContext.for_test(run_state_store=FakeRunStateStore(state))
    runner = CliRunner()

    result = runner.invoke(cli, ["status"], obj=ctx)

    assert result.exit_code == 0, result.output
    assert "Finished" in result.output
    assert "Undo steps" in result.output
    assert "checkout feature" in result.output
