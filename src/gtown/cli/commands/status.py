"""Status command - show the persisted run state of the repository."""

import click
from rich.console import Console
from rich.table import Table

from gtown.cli.ensure import Ensure
from gtown.cli.output import user_output
from gtown.core.context import GtownContext
from gtown.core.steps.run_state import RunState
from gtown.core.steps.step_list import StepList


def _steps_table(title: str, steps: StepList) -> Table:
    table = Table(title=title, show_header=True, header_style="bold", title_justify="left")
    table.add_column("#", justify="right", no_wrap=True)
    table.add_column("step")
    for index, step in enumerate(steps, start=1):
        table.add_row(str(index), step.describe())
    return table


def render_run_state(console: Console, state: RunState) -> None:
    console.print(f"[bold]Command:[/bold] {state.command}")
    console.print(f"[bold]Started on:[/bold] {state.initial_branch or '(detached HEAD)'}")

    if state.unfinished is None:
        console.print("[green]Finished[/green] - can be undone with --undo")
        console.print(_steps_table("Undo steps", state.undo_steps))
        return

    unfinished = state.unfinished
    console.print(f"[yellow]Unfinished[/yellow] since {unfinished.end_time}")
    console.print(f"[bold]Stopped at:[/bold] {unfinished.suspended_step.describe()}")
    if unfinished.end_branch is not None:
        console.print(f"[bold]On branch:[/bold] {unfinished.end_branch}")
    if unfinished.reason:
        console.print(f"[bold]Reason:[/bold] {unfinished.reason}")
    if unfinished.conflicted_files:
        console.print("[bold red]Conflicts:[/bold red]")
        for path in unfinished.conflicted_files:
            console.print(f"  {path}")
    if state.pending_stashes:
        console.print(f"[bold]Stashed changes to restore:[/bold] {state.pending_stashes}")

    console.print(_steps_table("Remaining steps", state.run_steps))
    console.print(_steps_table("Abort steps", state.abort_steps))


@click.command("status")
@click.pass_obj
def status_cmd(ctx: GtownContext) -> None:
    """Show the pending or last completed command run."""
    Ensure.in_repo(ctx)

    try:
        state = ctx.run_state_store.load()
    except ValueError as e:
        user_output(click.style("Error: ", fg="red") + str(e))
        raise SystemExit(1) from None

    if state is None:
        user_output("No pending run")
        return

    render_run_state(Console(), state)
