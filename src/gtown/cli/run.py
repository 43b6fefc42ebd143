"""Glue between CLI commands and the step runner.

Commands build RunOptions and hand them to execute_run, which runs them
against the repository and turns the result into messages and an exit code.
"""

import dataclasses

import click

from gtown.cli.ensure import Ensure
from gtown.cli.output import user_output
from gtown.core.context import GtownContext
from gtown.core.git.printing import PrintingGit
from gtown.core.steps.base import StepContext
from gtown.core.steps.errors import ProtocolError
from gtown.core.steps.runner import RunOptions, RunOutcome, RunResult, StepRunner

PROGRAM_NAME = "gtown"


def with_printing_git(ctx: GtownContext) -> GtownContext:
    """Return a context whose git operations echo the commands they run."""
    return dataclasses.replace(ctx, git=PrintingGit(ctx.git))


def execute_run(ctx: GtownContext, options: RunOptions) -> None:
    """Run options through the step runner and report the outcome.

    Raises:
        SystemExit: With exit code 1 unless the run completed, was aborted, or
            was undone
    """
    repo = Ensure.in_repo(ctx)
    step_ctx = StepContext(
        git=ctx.git,
        branches=ctx.branches,
        feedback=ctx.feedback,
        cwd=ctx.cwd,
        repo_root=repo.root,
    )
    runner = StepRunner(step_ctx, ctx.run_state_store, ctx.time)

    try:
        result = runner.run(options)
    except ProtocolError as e:
        user_output(click.style("Error: ", fg="red") + str(e))
        raise SystemExit(1) from None
    except ValueError as e:
        user_output(click.style("Error: ", fg="red") + str(e))
        user_output(f"Delete {ctx.run_state_store.location()} to start over.")
        raise SystemExit(1) from None

    report_result(options, result)
    if result.exit_code != 0:
        raise SystemExit(result.exit_code)


def report_result(options: RunOptions, result: RunResult) -> None:
    command = f"{PROGRAM_NAME} {options.command}"

    match result.outcome:
        case RunOutcome.COMPLETED:
            user_output("")
        case RunOutcome.AWAITING_RESOLUTION:
            user_output("")
            if result.conflicted_files:
                user_output(click.style("Conflicts in:", fg="red", bold=True))
                for path in result.conflicted_files:
                    user_output(f"  {path}")
            elif result.message:
                user_output(click.style("Error: ", fg="red") + result.message)
            user_output("")
            user_output(f'To abort, run "{command} --abort".')
            user_output(f'To continue after having resolved conflicts, run "{command} --continue".')
            if options.can_skip():
                user_output(f'To continue by skipping the current branch, run "{command} --skip".')
        case RunOutcome.FAILED:
            _report_gaps(result)
            user_output(click.style("Error: ", fg="red") + (result.message or "command failed"))
            if result.unexecuted:
                user_output("These restoration steps were not run:")
                for description in result.unexecuted:
                    user_output(f"  {description}")
        case RunOutcome.ABORTED:
            _report_gaps(result)
            user_output(click.style(f"Aborted {options.command}.", fg="green"))
        case RunOutcome.UNDONE:
            _report_gaps(result)
            user_output(click.style(f"Undid {options.command}.", fg="green"))


def _report_gaps(result: RunResult) -> None:
    if not result.gaps:
        return
    warning = click.style("Warning: ", fg="yellow")
    user_output(warning + "the repository was only partially restored:")
    for gap in result.gaps:
        user_output(f"  {gap}")
